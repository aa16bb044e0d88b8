"""
ORM-Level Immutability Enforcement (Layer 1 of 2).

===============================================================================
WHY THIS EXISTS
===============================================================================

The audit log and resolved transactions are history.  Once written they are
never edited or removed through application code:

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications through Python/SQLAlchemy code
    - Fires BEFORE the SQL is sent to the database

  Layer 2: db/sql/<dialect>/*.sql (database triggers)
    - Catches raw SQL and bulk UPDATE/DELETE statements
    - Fires AT the database level, independent of application code

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | When Immutable                      | Blocked
----------------|-------------------------------------|------------------
AuditRecord     | ALWAYS (from creation)              | UPDATE, DELETE
Transaction     | After state leaves 'pending'        | UPDATE

The pending -> approved/rejected update itself is allowed: the listener
inspects attribute history and only blocks rows whose state was ALREADY
terminal before the flush.

===============================================================================
USAGE
===============================================================================

    from expense_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that need to seed corrupt data may unregister temporarily.
===============================================================================
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from expense_kernel.exceptions import ImmutabilityViolationError
from expense_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(entity_type: str, entity_id: str, operation: str, reason: str, **extra):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "operation": operation,
            **extra,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )


# =============================================================================
# Audit records: always immutable
# =============================================================================


def _check_audit_record_immutability(mapper, connection, target):
    _block(
        "AuditRecord",
        str(target.id),
        "UPDATE",
        "Audit records are immutable and cannot be modified",
    )


def _check_audit_record_delete(mapper, connection, target):
    _block(
        "AuditRecord",
        str(target.id),
        "DELETE",
        "Audit records cannot be deleted",
    )


# =============================================================================
# Transactions: immutable once resolved
# =============================================================================


def _check_transaction_immutability(mapper, connection, target):
    """
    Block updates to transactions that were already approved or rejected.

    Logic:
        1. state changing FROM a terminal value: block.
        2. state unchanged AND terminal: block (another field is changing).
        3. state changing FROM pending: allow (this IS the resolution).
    """
    state_history = get_history(target, "state")

    if state_history.deleted:
        previous = state_history.deleted[0]
    elif not state_history.added:
        previous = target.state
    else:
        # Newly set without a loaded prior value; the trigger still guards.
        return

    previous = getattr(previous, "value", previous)
    if previous == "pending":
        return

    insp = inspect(target)
    for attr in insp.attrs:
        if attr.history.has_changes():
            _block(
                "Transaction",
                f"{target.wallet_id}/{target.number}",
                "UPDATE",
                f"Cannot modify field '{attr.key}' on a {previous} transaction",
                field=attr.key,
            )


# =============================================================================
# Registration
# =============================================================================


def _listeners():
    from expense_kernel.models.audit_record import AuditRecord
    from expense_kernel.models.transaction import Transaction

    return (
        (AuditRecord, "before_update", _check_audit_record_immutability),
        (AuditRecord, "before_delete", _check_audit_record_delete),
        (Transaction, "before_update", _check_transaction_immutability),
    )


def register_immutability_listeners() -> None:
    """Register all immutability listeners (idempotent)."""
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """Remove immutability listeners. TESTS ONLY."""
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)


def listeners_registered() -> bool:
    return all(
        event.contains(target, event_name, listener_fn)
        for target, event_name, listener_fn in _listeners()
    )
