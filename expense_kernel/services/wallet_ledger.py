"""
WalletLedger -- the only writer of wallet balances and transaction counters.

Responsibility:
    Creates wallets with an opening balance, hands out per-wallet
    transaction numbers, and applies approved transaction values to the
    balance.  Every read-check-write goes through ``lock_wallet`` first.

Architecture position:
    Kernel > Services.  Called by TransactionWorkflow and
    OrganizationService.  Does not authorize; callers do.

Invariants enforced:
    - balance never drops below zero through this service.
    - transaction_count only increases, and only under the wallet lock.
    - Lock order: the wallet row is always locked before its transaction
      rows and before the audit sequence counter.

Failure modes:
    - WalletNotFoundError when the wallet does not exist.
    - InsufficientBalanceError when an applied value would go negative.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select

from expense_kernel.domain.money import format_money
from expense_kernel.exceptions import InsufficientBalanceError, WalletNotFoundError
from expense_kernel.logging_config import get_logger
from expense_kernel.models.audit_record import AuditAction, AuditObjectType
from expense_kernel.models.wallet import Wallet
from expense_kernel.services.auditor_service import AuditorService
from expense_kernel.services.base import BaseService

logger = get_logger("services.wallet_ledger")


class WalletLedger(BaseService):
    """
    Balance and counter bookkeeping for wallets.

    Non-goals:
        - Does NOT check membership or role -- callers authorize first.
        - Does NOT call ``session.commit()``.
    """

    def __init__(self, session, auditor: AuditorService, clock=None):
        super().__init__(session, clock)
        self._auditor = auditor

    def get_wallet(self, wallet_id: UUID) -> Wallet:
        wallet = self.session.get(Wallet, wallet_id)
        if wallet is None:
            raise WalletNotFoundError(str(wallet_id))
        return wallet

    def lock_wallet(self, wallet_id: UUID) -> Wallet:
        """
        Load the wallet with ``SELECT ... FOR UPDATE`` and fresh state.

        The lock is held until the caller's transaction ends.
        """
        wallet = self.session.execute(
            select(Wallet)
            .where(Wallet.id == wallet_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if wallet is None:
            raise WalletNotFoundError(str(wallet_id))
        return wallet

    def create_wallet(
        self,
        actor_id: UUID,
        organization_id: UUID,
        name: str,
        opening_balance: Decimal,
    ) -> Wallet:
        """Persist a wallet with its opening balance and audit the creation."""
        wallet_id = uuid4()

        def effect() -> Wallet:
            wallet = Wallet(
                id=wallet_id,
                organization_id=organization_id,
                name=name,
                balance=opening_balance,
                transaction_count=0,
                created_at=self.clock.now(),
            )
            self.session.add(wallet)
            self.session.flush()
            return wallet

        wallet = self._auditor.record_with_effect(
            actor_id,
            organization_id,
            AuditObjectType.WALLET,
            wallet_id,
            AuditAction.CREATE,
            f"Created wallet {name} with balance {format_money(opening_balance)}",
            effect,
        )
        logger.info(
            "wallet_created",
            extra={
                "wallet_id": str(wallet_id),
                "organization_id": str(organization_id),
                "opening_balance": opening_balance,
            },
        )
        return wallet

    def allocate_transaction_number(self, wallet: Wallet) -> int:
        """Increment the locked wallet's counter and return the new number."""
        wallet.transaction_count += 1
        self.session.flush()
        return wallet.transaction_count

    def apply_approved_value(self, wallet: Wallet, value: Decimal) -> Decimal:
        """
        Add a signed value to the locked wallet's balance.

        Returns:
            The new balance.

        Raises:
            InsufficientBalanceError: the result would be negative.
        """
        balance_after = wallet.balance + value
        if balance_after < 0:
            raise InsufficientBalanceError(
                str(wallet.id),
                wallet.balance,
                value,
                "Wallet does not have enough balance to approve this transaction",
            )
        wallet.balance = balance_after
        self.session.flush()
        return balance_after

    def rename_wallet(self, actor_id: UUID, wallet: Wallet, name: str) -> Wallet:
        old_name = wallet.name

        def effect() -> Wallet:
            wallet.name = name
            self.session.flush()
            return wallet

        return self._auditor.record_with_effect(
            actor_id,
            wallet.organization_id,
            AuditObjectType.WALLET,
            wallet.id,
            AuditAction.UPDATE,
            f"Wallet was renamed from {old_name} to {name}",
            effect,
        )

    def delete_wallet(self, actor_id: UUID, wallet: Wallet) -> None:
        """Delete the wallet; its transactions go with it (ON DELETE CASCADE)."""

        def effect() -> None:
            self.session.delete(wallet)
            self.session.flush()

        self._auditor.record_with_effect(
            actor_id,
            wallet.organization_id,
            AuditObjectType.WALLET,
            wallet.id,
            AuditAction.DELETE,
            f"Deleted wallet {wallet.name}",
            effect,
        )
        logger.info("wallet_deleted", extra={"wallet_id": str(wallet.id)})
