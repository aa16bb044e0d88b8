"""
Module: expense_kernel.selectors.transaction_selector
Responsibility: Read access to transactions as frozen snapshots.
Architecture position: Kernel > Selectors.

Failure modes:
    - get() returns None for a missing transaction; lists return [].
"""

from uuid import UUID

from sqlalchemy import select

from expense_kernel.domain.transaction_state import TransactionSnapshot, TransactionState
from expense_kernel.models.transaction import Transaction
from expense_kernel.selectors.base import BaseSelector


class TransactionSelector(BaseSelector):

    def get(self, wallet_id: UUID, number: int) -> TransactionSnapshot | None:
        txn = self.session.get(Transaction, (wallet_id, number))
        return txn.to_snapshot() if txn is not None else None

    def list_for_wallet(
        self,
        wallet_id: UUID,
        state: TransactionState | None = None,
    ) -> list[TransactionSnapshot]:
        """Transactions of one wallet, most recent number first."""
        query = select(Transaction).where(Transaction.wallet_id == wallet_id)
        if state is not None:
            query = query.where(Transaction.state == TransactionState(state).value)
        query = query.order_by(Transaction.number.desc())
        return [t.to_snapshot() for t in self.session.scalars(query)]

    def pending_for_reviewer(
        self,
        reviewer_id: UUID,
        organization_id: UUID | None = None,
    ) -> list[TransactionSnapshot]:
        """Pending transactions naming ``reviewer_id``, oldest entry first."""
        query = select(Transaction).where(
            Transaction.reviewer_id == reviewer_id,
            Transaction.state == TransactionState.PENDING.value,
        )
        if organization_id is not None:
            query = query.where(Transaction.organization_id == organization_id)
        query = query.order_by(Transaction.entered_at, Transaction.number)
        return [t.to_snapshot() for t in self.session.scalars(query)]
