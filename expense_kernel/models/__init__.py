"""ORM models for the expense kernel."""

from expense_kernel.models.audit_record import (
    AuditAction,
    AuditObjectType,
    AuditRecord,
)
from expense_kernel.models.organization import Membership, Organization
from expense_kernel.models.sequence_counter import SequenceCounter
from expense_kernel.models.transaction import Transaction
from expense_kernel.models.user import User
from expense_kernel.models.wallet import Wallet

__all__ = [
    "AuditAction",
    "AuditObjectType",
    "AuditRecord",
    "Membership",
    "Organization",
    "SequenceCounter",
    "Transaction",
    "User",
    "Wallet",
    "import_all_models",
]


def import_all_models() -> tuple[type, ...]:
    """Return every mapped class; importing this package registers their tables."""
    return (
        User,
        Organization,
        Membership,
        Wallet,
        Transaction,
        AuditRecord,
        SequenceCounter,
    )
