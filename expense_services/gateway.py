"""
expense_services.gateway -- request-facing boundary of the expense ledger.

Responsibility:
    One method per user action.  Each call opens its own session, binds the
    request's log context, runs the kernel operation through a fresh
    ServiceContainer, commits on success, and rolls back on any failure.
    Typed kernel errors become an ``ActionResult`` with field-scoped
    messages; nothing the kernel raises crosses this boundary.

Architecture position:
    Services -- the outermost layer in this repository.  Transport adapters
    (HTTP handlers, CLIs) call the gateway and translate ``ActionResult``
    with ``ActionStatus.http_status``.

Invariants enforced:
    - Transaction boundary: the gateway is the only caller of
      ``session.commit()`` and ``session.rollback()``.
    - No retries: a failed action is reported, never re-run.
    - InternalError and unexpected exceptions are logged at ERROR with the
      traceback and surfaced only as "Internal server error".

Failure modes:
    - None propagate.  Every outcome is an ``ActionResult``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from expense_config import WorkflowConfig
from expense_kernel.domain.clock import Clock, SystemClock
from expense_kernel.domain.roles import ANY_MEMBER, Capability, Role, requires
from expense_kernel.domain.transaction_state import (
    ResolutionOutcome,
    TransactionRef,
    TransactionSnapshot,
    TransactionState,
    TransactionType,
)
from expense_kernel.domain.validation import validate_search_term
from expense_kernel.exceptions import (
    ConflictError,
    ExpenseKernelError,
    ForbiddenError,
    InsufficientBalanceError,
    InternalError,
    InvalidReviewerError,
    NotFoundError,
    TransactionNotFoundError,
    ValidationError,
)
from expense_kernel.logging_config import LogContext, get_logger
from expense_kernel.selectors import (
    AuditRecordDTO,
    MemberDTO,
    OrganizationDTO,
    UserDTO,
    WalletDTO,
)
from expense_services.container import ServiceContainer

logger = get_logger("services.gateway")

T = TypeVar("T")

INTERNAL_ERROR_MESSAGE = "Internal server error"

CAN_READ_AUDIT_LOG = requires(Capability.READ_AUDIT_LOG)


class ActionStatus(str, Enum):
    """Outcome category of a gateway action."""

    OK = "ok"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INVALID_REVIEWER = "invalid_reviewer"
    CONFLICT = "conflict"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INTERNAL_ERROR = "internal_error"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS: dict[ActionStatus, int] = {
    ActionStatus.OK: 200,
    ActionStatus.VALIDATION_ERROR: 400,
    ActionStatus.NOT_FOUND: 404,
    ActionStatus.FORBIDDEN: 403,
    ActionStatus.INVALID_REVIEWER: 400,
    ActionStatus.CONFLICT: 409,
    ActionStatus.INSUFFICIENT_BALANCE: 400,
    ActionStatus.INTERNAL_ERROR: 500,
}

# Checked in order; the first matching class wins.
_ERROR_STATUS: tuple[tuple[type[ExpenseKernelError], ActionStatus], ...] = (
    (ValidationError, ActionStatus.VALIDATION_ERROR),
    (NotFoundError, ActionStatus.NOT_FOUND),
    (ForbiddenError, ActionStatus.FORBIDDEN),
    (InvalidReviewerError, ActionStatus.INVALID_REVIEWER),
    (ConflictError, ActionStatus.CONFLICT),
    (InsufficientBalanceError, ActionStatus.INSUFFICIENT_BALANCE),
    (InternalError, ActionStatus.INTERNAL_ERROR),
)


def status_for_error(exc: ExpenseKernelError) -> ActionStatus:
    for error_type, status in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status
    return ActionStatus.INTERNAL_ERROR


@dataclass(frozen=True)
class ActionResult(Generic[T]):
    """Stable result type for callers of the gateway.

    ``errors`` maps a request field name to a message; the empty key holds
    form-level messages.  ``value`` is set only when ``status`` is OK.
    """

    status: ActionStatus
    errors: dict[str, str] = field(default_factory=dict)
    value: T | None = None

    @classmethod
    def success(cls, value: T | None = None) -> ActionResult[T]:
        return cls(status=ActionStatus.OK, value=value)

    @classmethod
    def failure(cls, status: ActionStatus, errors: Mapping[str, str]) -> ActionResult[T]:
        return cls(status=status, errors=dict(errors))

    @classmethod
    def internal_error(cls) -> ActionResult[T]:
        return cls(status=ActionStatus.INTERNAL_ERROR, errors={"": INTERNAL_ERROR_MESSAGE})

    @property
    def is_success(self) -> bool:
        return self.status is ActionStatus.OK

    @property
    def http_status(self) -> int:
        return self.status.http_status


class ExpenseGateway:
    """Transaction-per-action facade over the kernel.

    Contract:
        Receives a session factory (``sessionmaker`` or any zero-argument
        callable returning a Session).  Every public method takes the
        authenticated ``actor_id`` first and returns an ``ActionResult``.

    Non-goals:
        - Does NOT authenticate; ``actor_id`` is trusted.
        - Does NOT retry failed actions.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        workflow_config: WorkflowConfig | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._workflow_config = workflow_config or WorkflowConfig()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _run(
        self,
        action: str,
        actor_id: UUID,
        operation: Callable[[ServiceContainer], T],
        **context: Any,
    ) -> ActionResult[T]:
        with LogContext.bind(
            correlation_id=uuid4(),
            actor_id=actor_id,
            action=action,
            **context,
        ):
            session = self._session_factory()
            try:
                container = ServiceContainer(
                    session,
                    clock=self._clock,
                    workflow_config=self._workflow_config,
                )
                value = operation(container)
                session.commit()
            except InternalError as exc:
                session.rollback()
                logger.error(
                    "action_internal_error",
                    exc_info=True,
                    extra={"error_code": exc.code},
                )
                return ActionResult.internal_error()
            except ExpenseKernelError as exc:
                session.rollback()
                status = status_for_error(exc)
                logger.info(
                    "action_failed",
                    extra={"status": status.value, "error_code": exc.code},
                )
                return ActionResult.failure(status, exc.field_errors())
            except Exception:
                session.rollback()
                logger.error("action_unexpected_error", exc_info=True)
                return ActionResult.internal_error()
            finally:
                session.close()

            logger.info("action_completed")
            return ActionResult.success(value)

    # ------------------------------------------------------------------
    # Organizations and membership
    # ------------------------------------------------------------------

    def create_organization(self, actor_id: UUID, name: str) -> ActionResult[UUID]:
        return self._run(
            "create_organization",
            actor_id,
            lambda c: c.organizations.create_organization(actor_id, name).id,
        )

    def rename_organization(
        self, actor_id: UUID, organization_id: UUID, name: str,
    ) -> ActionResult[None]:
        def operation(c: ServiceContainer) -> None:
            c.organizations.rename_organization(actor_id, organization_id, name)

        return self._run(
            "rename_organization", actor_id, operation, organization_id=organization_id,
        )

    def set_members(
        self,
        actor_id: UUID,
        organization_id: UUID,
        members: Sequence[tuple[str, Role | str]],
    ) -> ActionResult[list[MemberDTO]]:
        """Replace the roster (apart from the actor) with ``members``."""

        def operation(c: ServiceContainer) -> list[MemberDTO]:
            c.organizations.replace_members(actor_id, organization_id, members)
            return c.directory.list_members(organization_id)

        return self._run(
            "set_members", actor_id, operation, organization_id=organization_id,
        )

    def leave_organization(self, actor_id: UUID, organization_id: UUID) -> ActionResult[None]:
        def operation(c: ServiceContainer) -> None:
            c.organizations.leave_organization(actor_id, organization_id)

        return self._run(
            "leave_organization", actor_id, operation, organization_id=organization_id,
        )

    def list_organizations(self, actor_id: UUID) -> ActionResult[list[OrganizationDTO]]:
        return self._run(
            "list_organizations",
            actor_id,
            lambda c: c.directory.organizations_for_user(actor_id),
        )

    def search_users(self, actor_id: UUID, search: str) -> ActionResult[list[UserDTO]]:
        """Users matching ``search``, for picking reviewers and members.

        The actor is never listed.
        """

        def operation(c: ServiceContainer) -> list[UserDTO]:
            return c.users.search(validate_search_term(search), exclude_user_id=actor_id)

        return self._run("search_users", actor_id, operation)

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------

    def create_wallet(
        self,
        actor_id: UUID,
        organization_id: UUID,
        name: str,
        balance: Decimal | str | int,
    ) -> ActionResult[WalletDTO]:
        def operation(c: ServiceContainer) -> WalletDTO:
            wallet = c.organizations.create_wallet(actor_id, organization_id, name, balance)
            return c.directory.get_wallet(wallet.id)

        return self._run(
            "create_wallet", actor_id, operation, organization_id=organization_id,
        )

    def rename_wallet(self, actor_id: UUID, wallet_id: UUID, name: str) -> ActionResult[WalletDTO]:
        def operation(c: ServiceContainer) -> WalletDTO:
            c.organizations.rename_wallet(actor_id, wallet_id, name)
            return c.directory.get_wallet(wallet_id)

        return self._run("rename_wallet", actor_id, operation, wallet_id=wallet_id)

    def delete_wallet(self, actor_id: UUID, wallet_id: UUID) -> ActionResult[None]:
        def operation(c: ServiceContainer) -> None:
            c.organizations.delete_wallet(actor_id, wallet_id)

        return self._run("delete_wallet", actor_id, operation, wallet_id=wallet_id)

    def list_wallets(self, actor_id: UUID, organization_id: UUID) -> ActionResult[list[WalletDTO]]:
        def operation(c: ServiceContainer) -> list[WalletDTO]:
            c.guard.require_authorization(actor_id, organization_id, ANY_MEMBER)
            return c.directory.list_wallets(organization_id)

        return self._run(
            "list_wallets", actor_id, operation, organization_id=organization_id,
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def create_transaction(
        self,
        actor_id: UUID,
        wallet_id: UUID,
        *,
        reviewer_id: UUID | str | None,
        transaction_type: TransactionType | str,
        amount: Decimal | str | int,
        spent_at: datetime | str,
        notes: str = "",
    ) -> ActionResult[TransactionRef]:
        return self._run(
            "create_transaction",
            actor_id,
            lambda c: c.workflow.create_transaction(
                wallet_id,
                actor_id,
                reviewer_id,
                transaction_type,
                amount,
                spent_at,
                notes,
            ),
            wallet_id=wallet_id,
        )

    def resolve_transaction(
        self,
        actor_id: UUID,
        wallet_id: UUID,
        number: int,
        state: TransactionState | str,
    ) -> ActionResult[ResolutionOutcome]:
        return self._run(
            "resolve_transaction",
            actor_id,
            lambda c: c.workflow.resolve_transaction(wallet_id, number, actor_id, state),
            wallet_id=wallet_id,
        )

    def get_transaction(
        self, actor_id: UUID, wallet_id: UUID, number: int,
    ) -> ActionResult[TransactionSnapshot]:
        def operation(c: ServiceContainer) -> TransactionSnapshot:
            wallet = c.ledger.get_wallet(wallet_id)
            c.guard.require_authorization(actor_id, wallet.organization_id, ANY_MEMBER)
            snapshot = c.transactions.get(wallet_id, number)
            if snapshot is None:
                raise TransactionNotFoundError(str(wallet_id), number)
            return snapshot

        return self._run("get_transaction", actor_id, operation, wallet_id=wallet_id)

    def list_wallet_transactions(
        self,
        actor_id: UUID,
        wallet_id: UUID,
        state: TransactionState | str | None = None,
    ) -> ActionResult[list[TransactionSnapshot]]:
        def operation(c: ServiceContainer) -> list[TransactionSnapshot]:
            wallet = c.ledger.get_wallet(wallet_id)
            c.guard.require_authorization(actor_id, wallet.organization_id, ANY_MEMBER)
            return c.transactions.list_for_wallet(wallet_id, state=_parse_state_filter(state))

        return self._run(
            "list_wallet_transactions", actor_id, operation, wallet_id=wallet_id,
        )

    def list_pending_reviews(
        self, actor_id: UUID, organization_id: UUID,
    ) -> ActionResult[list[TransactionSnapshot]]:
        def operation(c: ServiceContainer) -> list[TransactionSnapshot]:
            c.guard.require_authorization(actor_id, organization_id, ANY_MEMBER)
            return c.transactions.pending_for_reviewer(actor_id, organization_id)

        return self._run(
            "list_pending_reviews", actor_id, operation, organization_id=organization_id,
        )

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    def read_audit_log(
        self,
        actor_id: UUID,
        organization_id: UUID,
        limit: int | None = None,
    ) -> ActionResult[list[AuditRecordDTO]]:
        """Audit records of the organization, newest first."""

        def operation(c: ServiceContainer) -> list[AuditRecordDTO]:
            c.guard.require_authorization(actor_id, organization_id, CAN_READ_AUDIT_LOG)
            return c.audit_log.list_for_organization(organization_id, limit=limit)

        return self._run(
            "read_audit_log", actor_id, operation, organization_id=organization_id,
        )


def _parse_state_filter(state: TransactionState | str | None) -> TransactionState | None:
    if state is None:
        return None
    try:
        return TransactionState(state)
    except ValueError:
        raise ValidationError(
            {"state": "State must be one of pending, approved or rejected"}
        ) from None
