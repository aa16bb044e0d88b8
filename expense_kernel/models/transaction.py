"""
Module: expense_kernel.models.transaction
Responsibility: ORM persistence for expense transactions.

Architecture position: Kernel > Models.  May import from db/ and the pure
    domain types in domain/transaction_state.py.

Invariants enforced:
    - Identity is (wallet_id, number); number is allocated from the wallet's
      transaction_count under the wallet row lock.
    - state is one of pending/approved/rejected (DB check constraint).  The
      service enforces the transition table; the ORM listener and the DB
      trigger refuse any update to a row that is no longer pending.
    - creator_id != reviewer_id (DB check constraint).
    - value is signed: positive incoming, negative outgoing, never zero.

Failure modes:
    - IntegrityError on a duplicate (wallet_id, number).
    - ImmutabilityViolationError on UPDATE of an approved/rejected row.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import Base, UUIDString
from expense_kernel.domain.transaction_state import (
    TransactionRef,
    TransactionSnapshot,
    TransactionState,
)


class Transaction(Base):
    """Persistent expense transaction.

    Contract:
        Created PENDING.  Moves to APPROVED or REJECTED exactly once,
        recording who resolved it and when; nothing changes afterwards.
    """

    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint(
            "state IN ('pending', 'approved', 'rejected')",
            name="ck_transactions_valid_state",
        ),
        CheckConstraint(
            "creator_id <> reviewer_id",
            name="ck_transactions_reviewer_not_creator",
        ),
        Index("ix_transactions_reviewer_state", "reviewer_id", "state"),
        Index("ix_transactions_organization", "organization_id"),
    )

    wallet_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("wallets.id", ondelete="CASCADE"),
        primary_key=True,
    )
    number: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    value: Mapped[Decimal] = mapped_column(nullable=False)
    state: Mapped[str] = mapped_column(
        String(16), nullable=False, default=TransactionState.PENDING.value,
    )
    creator_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    reviewer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    spent_at: Mapped[datetime] = mapped_column(nullable=False)
    entered_at: Mapped[datetime] = mapped_column(nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    resolved_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=True,
    )
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def ref(self) -> TransactionRef:
        return TransactionRef(wallet_id=self.wallet_id, number=self.number)

    @property
    def is_pending(self) -> bool:
        return self.state == TransactionState.PENDING.value

    def __repr__(self) -> str:
        return f"<Transaction {self.wallet_id}/{self.number} state={self.state}>"

    def to_snapshot(self) -> TransactionSnapshot:
        """Convert ORM row to a frozen domain snapshot."""
        return TransactionSnapshot(
            ref=self.ref,
            organization_id=self.organization_id,
            value=self.value,
            state=TransactionState(self.state),
            creator_id=self.creator_id,
            reviewer_id=self.reviewer_id,
            spent_at=self.spent_at,
            entered_at=self.entered_at,
            notes=self.notes,
            resolved_by_id=self.resolved_by_id,
            resolved_at=self.resolved_at,
        )
