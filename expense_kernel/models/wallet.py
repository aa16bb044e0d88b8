"""
Module: expense_kernel.models.wallet
Responsibility: ORM persistence for wallets, the only holders of a mutable
    balance in the system.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - balance is a two-decimal Decimal (MoneyType); never float.
    - balance changes only at wallet creation and when a transaction is
      approved (WalletLedger is the only writer).
    - transaction_count is monotonic; it hands out per-wallet transaction
      numbers and is only incremented under the wallet row lock.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import EntityBase, UUIDString


class Wallet(EntityBase):
    __tablename__ = "wallets"

    __table_args__ = (
        Index("ix_wallets_organization", "organization_id"),
    )

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    balance: Mapped[Decimal] = mapped_column(nullable=False)
    transaction_count: Mapped[int] = mapped_column(nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Wallet {self.id} {self.name!r} balance={self.balance}>"
