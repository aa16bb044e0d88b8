"""
AuditorService -- append-only, hash-chained audit log.

Responsibility:
    Writes one immutable audit record per significant state change
    (organization, wallet, or transaction create/update/delete, and every
    approval or rejection).  Can bind the record to the change itself so
    that both commit or neither does.  Validates each organization's hash
    chain for tamper detection.

Architecture position:
    Kernel > Services -- called by TransactionWorkflow, WalletLedger, and
    OrganizationService.

Invariants enforced:
    - Atomic with its effect: ``record_with_effect`` runs the effect and
      the insert inside one savepoint.  If either raises, both are undone
      and the exception propagates.
    - Sequence monotonicity per organization via SequenceService (locked
      counter row, never max+1).
    - Chain integrity: each record's hash covers its predecessor's hash.
    - Append-only: no update or delete API exists; the model is also
      protected by ORM listeners and database triggers.

Failure modes:
    - AuditChainBrokenError from validate_chain() when a stored hash or
      prev_hash link does not match the recomputed value.
    - Any exception raised by the effect, re-raised after rollback.

Audit relevance:
    This IS the audit service.  Every audit record in the system is
    created by ``record()``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from expense_kernel.domain.clock import Clock
from expense_kernel.exceptions import AuditChainBrokenError
from expense_kernel.logging_config import get_logger
from expense_kernel.models.audit_record import (
    AuditAction,
    AuditObjectType,
    AuditRecord,
)
from expense_kernel.services.base import BaseService
from expense_kernel.services.sequence_service import (
    SequenceService,
    audit_sequence_name,
)
from expense_kernel.utils.hashing import hash_audit_record

logger = get_logger("services.auditor")

T = TypeVar("T")

AuditMessage = str | Callable[[T], str]


class AuditorService(BaseService):
    """
    Append-only audit recorder.

    Contract:
        ``record`` flushes exactly one AuditRecord in the caller's
        transaction.  ``record_with_effect`` additionally wraps a caller
        supplied effect in the same savepoint.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT expose update or delete operations.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._sequence_service = SequenceService(session)

    def _get_last_hash(self, organization_id: UUID) -> str | None:
        last = self.session.execute(
            select(AuditRecord.hash)
            .where(AuditRecord.organization_id == organization_id)
            .order_by(AuditRecord.seq.desc())
            .limit(1)
        ).scalar_one_or_none()
        return last

    def record(
        self,
        actor_id: UUID,
        organization_id: UUID,
        object_type: AuditObjectType,
        object_id: str | UUID,
        action: AuditAction,
        message: str,
    ) -> AuditRecord:
        """
        Append one audit record to the organization's chain.

        Postconditions:
            - The record is flushed with the next per-organization seq and
              ``prev_hash`` equal to the previous record's hash (None for
              the first record).
        """
        # Counter lock first: it serializes chain appends for this organization.
        seq = self._sequence_service.next_value(audit_sequence_name(organization_id))
        prev_hash = self._get_last_hash(organization_id)
        occurred_at = self.clock.now()
        object_type = AuditObjectType(object_type)
        action = AuditAction(action)

        record_hash = hash_audit_record(
            organization_id=organization_id,
            seq=seq,
            subject_id=actor_id,
            action=action.value,
            object_type=object_type.value,
            object_id=str(object_id),
            message=message,
            occurred_at=occurred_at,
            prev_hash=prev_hash,
        )

        record = AuditRecord(
            organization_id=organization_id,
            seq=seq,
            occurred_at=occurred_at,
            subject_id=actor_id,
            action=action.value,
            object_type=object_type.value,
            object_id=str(object_id),
            message=message,
            prev_hash=prev_hash,
            hash=record_hash,
        )
        self.session.add(record)
        self.session.flush()

        logger.info(
            "audit_record_created",
            extra={
                "organization_id": str(organization_id),
                "seq": seq,
                "object_type": object_type.value,
                "object_id": str(object_id),
                "audit_action": action.value,
            },
        )
        return record

    def record_with_effect(
        self,
        actor_id: UUID,
        organization_id: UUID,
        object_type: AuditObjectType,
        object_id: str | UUID,
        action: AuditAction,
        message: AuditMessage,
        effect: Callable[[], T],
    ) -> T:
        """
        Run ``effect`` and record its audit entry as one atomic unit.

        ``message`` may be a string or a callable receiving the effect's
        result, for messages that describe the outcome (new balance).

        Raises:
            Whatever ``effect`` raises; the savepoint is rolled back first,
            so neither the effect's writes nor an audit record survive.
        """
        with self.session.begin_nested():
            result = effect()
            text = message(result) if callable(message) else message
            self.record(
                actor_id,
                organization_id,
                object_type,
                object_id,
                action,
                text,
            )
        return result

    def validate_chain(self, organization_id: UUID) -> bool:
        """
        Recompute one organization's chain from stored columns.

        Returns True when every hash and every prev_hash link matches.

        Raises:
            AuditChainBrokenError: at the first mismatching record.
        """
        records = self.session.execute(
            select(AuditRecord)
            .where(AuditRecord.organization_id == organization_id)
            .order_by(AuditRecord.seq)
        ).scalars().all()

        expected_prev: str | None = None
        for record in records:
            if record.prev_hash != expected_prev:
                logger.critical(
                    "audit_chain_broken",
                    extra={"audit_record_id": record.id, "check": "prev_hash"},
                )
                raise AuditChainBrokenError(
                    str(record.id), str(expected_prev), str(record.prev_hash),
                )

            expected_hash = hash_audit_record(
                organization_id=record.organization_id,
                seq=record.seq,
                subject_id=record.subject_id,
                action=record.action,
                object_type=record.object_type,
                object_id=record.object_id,
                message=record.message,
                occurred_at=record.occurred_at,
                prev_hash=record.prev_hash,
            )
            if record.hash != expected_hash:
                logger.critical(
                    "audit_chain_broken",
                    extra={"audit_record_id": record.id, "check": "hash"},
                )
                raise AuditChainBrokenError(str(record.id), expected_hash, record.hash)

            expected_prev = record.hash

        return True
