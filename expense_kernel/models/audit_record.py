"""
Module: expense_kernel.models.audit_record
Responsibility: ORM persistence for the per-organization audit log.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Audit records are append-only; no UPDATE or DELETE (ORM listener +
      DB trigger).
    - seq is strictly monotonic per organization, allocated by
      SequenceService under a row lock.  UNIQUE(organization_id, seq).
    - Hash chain: hash = H(organization | seq | subject | action | object |
      message | occurred_at | prev_hash), chained per organization.
      Validated by AuditorService.validate_chain().

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.
    - AuditChainBrokenError when chain validation detects a mismatch.

Audit relevance:
    AuditRecord IS the audit log.  Every create/update/delete of an
    organization, wallet, or transaction, and every approval or rejection,
    writes one record inside the same database transaction as the change.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import Base, UUIDString
from expense_kernel.db.types import BigIntegerPK


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"


class AuditObjectType(str, Enum):
    ORGANIZATION = "organization"
    WALLET = "wallet"
    TRANSACTION = "transaction"


class AuditRecord(Base):
    """One immutable entry in an organization's audit log."""

    __tablename__ = "audit_records"

    __table_args__ = (
        UniqueConstraint("organization_id", "seq", name="uq_audit_records_org_seq"),
        CheckConstraint(
            "action IN ('create', 'update', 'delete', 'approve', 'reject')",
            name="ck_audit_records_valid_action",
        ),
        CheckConstraint(
            "object_type IN ('organization', 'wallet', 'transaction')",
            name="ck_audit_records_valid_object_type",
        ),
        Index("ix_audit_records_object", "object_type", "object_id"),
        Index("ix_audit_records_occurred_at", "organization_id", "occurred_at"),
    )

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("organizations.id"),
        nullable=False,
    )
    seq: Mapped[int] = mapped_column(nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    subject_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    action: Mapped[str] = mapped_column(String(16), nullable=False)
    object_type: Mapped[str] = mapped_column(String(16), nullable=False)
    object_id: Mapped[str] = mapped_column(String(80), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<AuditRecord org={self.organization_id} seq={self.seq} "
            f"{self.object_type}:{self.object_id} {self.action}>"
        )
