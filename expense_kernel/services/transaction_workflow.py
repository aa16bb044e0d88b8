"""
TransactionWorkflow -- creation and resolution of expense transactions.

Responsibility:
    Owns the pending -> approved/rejected lifecycle.  Creation validates the
    request, checks the reviewer, and persists a PENDING transaction with its
    audit record.  Resolution moves a PENDING transaction to a terminal
    state and, on approval, applies its value to the wallet balance.

Architecture position:
    Kernel > Services.  Composes AuthorizationGuard, WalletLedger, and
    AuditorService.  Called by the gateway in expense_services.

Invariants enforced:
    - Transitions come only from TRANSACTION_TRANSITIONS; a resolved
      transaction is never resolved again.
    - creator != reviewer, and the reviewer holds approve-transactions in
      the wallet's organization at creation time.
    - Outgoing creation is refused when the balance cannot cover it (eager
      check); approval re-checks under the wallet lock (authoritative).
    - State change, balance change, and their audit records commit
      together or not at all (one savepoint).
    - Lock order: wallet row, then transaction row, then audit counter.

Failure modes:
    - NotFoundError: wallet or transaction missing, or caller not a member.
    - ForbiddenError: caller lacks the capability.
    - ValidationError: malformed input, all failing fields at once.
    - InvalidReviewerError: reviewer is the creator or cannot approve.
    - InsufficientBalanceError: at creation or at approval.
    - TransactionStateConflictError: transaction already resolved.
    - InternalError: corrupt role data; never converted to a denial.

Audit relevance:
    Creation writes ``transaction/create``.  Resolution writes
    ``transaction/approve`` or ``transaction/reject`` and, for approvals,
    ``wallet/update`` describing the balance change.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from expense_kernel.domain.clock import Clock
from expense_kernel.domain.money import format_money
from expense_kernel.domain.roles import Capability, requires
from expense_kernel.domain.transaction_state import (
    RESOLUTION_STATES,
    ResolutionOutcome,
    TransactionRef,
    TransactionState,
    TransactionType,
    can_transition,
)
from expense_kernel.domain.validation import validate_transaction_input
from expense_kernel.exceptions import (
    ForbiddenError,
    InsufficientBalanceError,
    InvalidReviewerError,
    NotFoundError,
    TransactionNotFoundError,
    TransactionStateConflictError,
    ValidationError,
)
from expense_kernel.logging_config import get_logger
from expense_kernel.models.audit_record import AuditAction, AuditObjectType
from expense_kernel.models.transaction import Transaction
from expense_kernel.services.auditor_service import AuditorService
from expense_kernel.services.authorization_guard import AuthorizationGuard
from expense_kernel.services.base import BaseService
from expense_kernel.services.wallet_ledger import WalletLedger

logger = get_logger("services.transaction_workflow")

CAN_CREATE = requires(Capability.CREATE_TRANSACTIONS)
CAN_APPROVE = requires(Capability.APPROVE_TRANSACTIONS)

_RESOLUTION_ACTIONS = {
    TransactionState.APPROVED: AuditAction.APPROVE,
    TransactionState.REJECTED: AuditAction.REJECT,
}


class TransactionWorkflow(BaseService):
    """
    Transaction lifecycle service.

    Contract:
        ``create_transaction`` returns the new transaction's identity;
        ``resolve_transaction`` returns the resolved snapshot with the
        wallet balance before and after.

    Guarantees:
        - Every failure happens before any write, or inside the savepoint
          that is rolled back, so a failed call leaves no trace.

    Non-goals:
        - Does NOT call ``session.commit()`` -- the gateway does.
        - Does NOT retry on lock contention.
    """

    def __init__(
        self,
        session: Session,
        guard: AuthorizationGuard,
        ledger: WalletLedger,
        auditor: AuditorService,
        clock: Clock | None = None,
        enforce_named_reviewer: bool = False,
    ):
        super().__init__(session, clock)
        self._guard = guard
        self._ledger = ledger
        self._auditor = auditor
        self._enforce_named_reviewer = enforce_named_reviewer

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_transaction(
        self,
        wallet_id: UUID,
        creator_id: UUID,
        reviewer_id: UUID | str | None,
        transaction_type: TransactionType | str,
        magnitude: Decimal | str | int,
        spent_at: datetime | str,
        notes: str = "",
    ) -> TransactionRef:
        """
        Record a new PENDING transaction against ``wallet_id``.

        ``magnitude`` is the positive amount; ``transaction_type`` decides
        the sign of the stored value.
        """
        wallet = self._ledger.get_wallet(wallet_id)
        organization_id = wallet.organization_id

        self._guard.require_authorization(creator_id, organization_id, CAN_CREATE)

        draft = validate_transaction_input(
            transaction_type=transaction_type,
            magnitude=magnitude,
            spent_at=spent_at,
            notes=notes,
            reviewer_id=reviewer_id,
            now=self.clock.now(),
        )
        reviewer_id = draft.reviewer_id

        if reviewer_id == creator_id:
            raise InvalidReviewerError(str(reviewer_id), "Reviewer cannot be yourself")

        wallet = self._ledger.lock_wallet(wallet_id)

        if (
            draft.transaction_type is TransactionType.OUTGOING
            and wallet.balance < draft.magnitude
        ):
            logger.info(
                "transaction_rejected_insufficient_balance",
                extra={
                    "wallet_id": str(wallet_id),
                    "balance": wallet.balance,
                    "magnitude": draft.magnitude,
                },
            )
            raise InsufficientBalanceError(
                str(wallet_id),
                wallet.balance,
                draft.value,
                "The wallet does not have enough balance for this transaction.",
            )

        self._check_reviewer(reviewer_id, organization_id)

        number = wallet.transaction_count + 1
        ref = TransactionRef(wallet_id=wallet_id, number=number)

        def effect() -> Transaction:
            allocated = self._ledger.allocate_transaction_number(wallet)
            assert allocated == number, "transaction number allocated out of order"
            txn = Transaction(
                wallet_id=wallet_id,
                number=number,
                organization_id=organization_id,
                value=draft.value,
                state=TransactionState.PENDING.value,
                creator_id=creator_id,
                reviewer_id=reviewer_id,
                spent_at=draft.spent_at,
                entered_at=self.clock.now(),
                notes=draft.notes,
            )
            self.session.add(txn)
            self.session.flush()
            return txn

        self._auditor.record_with_effect(
            creator_id,
            organization_id,
            AuditObjectType.TRANSACTION,
            str(ref),
            AuditAction.CREATE,
            "Created new transaction",
            effect,
        )

        logger.info(
            "transaction_created",
            extra={
                "transaction": str(ref),
                "value": draft.value,
                "reviewer_id": str(reviewer_id),
            },
        )
        return ref

    def _check_reviewer(self, reviewer_id: UUID, organization_id: UUID) -> None:
        try:
            self._guard.require_authorization(reviewer_id, organization_id, CAN_APPROVE)
        except (NotFoundError, ForbiddenError):
            raise InvalidReviewerError(
                str(reviewer_id),
                "User is not authorized to review your transaction",
            ) from None

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_transaction(
        self,
        wallet_id: UUID,
        number: int,
        resolver_id: UUID,
        target_state: TransactionState | str,
    ) -> ResolutionOutcome:
        """
        Approve or reject a PENDING transaction.

        Approval adds the signed value to the wallet balance; rejection
        leaves the balance untouched.
        """
        wallet = self._ledger.get_wallet(wallet_id)
        organization_id = wallet.organization_id

        self._guard.require_authorization(resolver_id, organization_id, CAN_APPROVE)

        target = self._parse_target_state(target_state)

        wallet = self._ledger.lock_wallet(wallet_id)
        txn = self._lock_transaction(wallet_id, number)

        if self._enforce_named_reviewer and txn.reviewer_id != resolver_id:
            raise ForbiddenError(
                str(resolver_id),
                str(organization_id),
                "Only the assigned reviewer can resolve this transaction",
            )

        current = TransactionState(txn.state)
        if not can_transition(current, target):
            logger.info(
                "transaction_resolution_conflict",
                extra={
                    "transaction": f"{wallet_id}/{number}",
                    "current_state": current.value,
                    "target_state": target.value,
                },
            )
            raise TransactionStateConflictError(str(wallet_id), number, current.value)

        balance_before = wallet.balance
        if target is TransactionState.APPROVED and balance_before + txn.value < 0:
            raise InsufficientBalanceError(
                str(wallet_id),
                balance_before,
                txn.value,
                "Wallet does not have enough balance to approve this transaction",
            )

        with self.session.begin_nested():
            self._auditor.record_with_effect(
                resolver_id,
                organization_id,
                AuditObjectType.TRANSACTION,
                str(txn.ref),
                _RESOLUTION_ACTIONS[target],
                f"Transaction was {target.value}",
                lambda: self._apply_state(txn, target, resolver_id),
            )
            balance_after = balance_before
            if target is TransactionState.APPROVED:
                balance_after = self._auditor.record_with_effect(
                    resolver_id,
                    organization_id,
                    AuditObjectType.WALLET,
                    wallet.id,
                    AuditAction.UPDATE,
                    lambda new_balance: (
                        f"Wallet balance was incremented by "
                        f"{format_money(txn.value)} to {format_money(new_balance)}"
                    ),
                    lambda: self._ledger.apply_approved_value(wallet, txn.value),
                )

        logger.info(
            "transaction_resolved",
            extra={
                "transaction": f"{wallet_id}/{number}",
                "state": target.value,
                "balance_before": balance_before,
                "balance_after": balance_after,
            },
        )
        return ResolutionOutcome(
            transaction=txn.to_snapshot(),
            balance_before=balance_before,
            balance_after=balance_after,
        )

    def _parse_target_state(self, target_state: Any) -> TransactionState:
        try:
            target = TransactionState(target_state)
        except ValueError:
            target = None
        if target not in RESOLUTION_STATES:
            raise ValidationError(
                {"state": "State must be either approved or rejected"}
            )
        return target

    def _lock_transaction(self, wallet_id: UUID, number: int) -> Transaction:
        txn = self.session.execute(
            select(Transaction)
            .where(Transaction.wallet_id == wallet_id, Transaction.number == number)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if txn is None:
            raise TransactionNotFoundError(str(wallet_id), number)
        return txn

    def _apply_state(
        self,
        txn: Transaction,
        target: TransactionState,
        resolver_id: UUID,
    ) -> Transaction:
        txn.state = target.value
        txn.resolved_by_id = resolver_id
        txn.resolved_at = self.clock.now()
        self.session.flush()
        return txn