"""
Typed Exception Hierarchy for the Expense Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every outcome a caller must react to differently has its own class:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)
  4. Every exception can render itself as field-scoped messages via
     ``field_errors()``, which is what the request boundary returns.

Kernel services raise; only the gateway (expense_services.gateway) catches
and converts to a transport result. No kernel code retries.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ExpenseKernelError (base)
    |
    +-- ValidationError                    VALIDATION_ERROR
    |
    +-- NotFoundError                      NOT_FOUND
    |   +-- MembershipNotFoundError
    |   +-- WalletNotFoundError
    |   +-- TransactionNotFoundError
    |   +-- UserNotFoundError
    |
    +-- ForbiddenError                     FORBIDDEN
    |
    +-- InvalidReviewerError               INVALID_REVIEWER
    |
    +-- ConflictError                      CONFLICT
    |   +-- TransactionStateConflictError  TRANSACTION_STATE_CONFLICT
    |   +-- OwnerCannotLeaveError          OWNER_CANNOT_LEAVE
    |
    +-- InsufficientBalanceError           INSUFFICIENT_BALANCE
    |
    +-- InternalError                      INTERNAL_ERROR
        +-- UnrecognizedRoleError          UNRECOGNIZED_ROLE
        +-- AuditChainBrokenError          AUDIT_CHAIN_BROKEN
        +-- ImmutabilityViolationError     IMMUTABILITY_VIOLATION

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        workflow.resolve_transaction(wallet_id, number, user_id, state)
    except TransactionStateConflictError as e:
        return {"state": e.message}
    except InsufficientBalanceError as e:
        return {"balance": f"balance is only {e.balance}"}

NotFoundError deliberately does not distinguish "organization does not
exist" from "you are not a member of it".
===============================================================================
"""

from decimal import Decimal


class ExpenseKernelError(Exception):
    """
    Base exception for all expense kernel errors.

    All subclasses carry a ``code`` class attribute and a ``field`` naming
    the request field the message belongs to ("" for form-level errors).
    """

    code: str = "EXPENSE_KERNEL_ERROR"
    field: str = ""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def field_errors(self) -> dict[str, str]:
        return {self.field: self.message}


# Validation


class ValidationError(ExpenseKernelError):
    """
    Malformed input. Collects every failing field at once.
    """

    code: str = "VALIDATION_ERROR"

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__(
            "; ".join(f"{k or 'request'}: {v}" for k, v in self.errors.items())
        )

    def field_errors(self) -> dict[str, str]:
        return dict(self.errors)


# Not found


class NotFoundError(ExpenseKernelError):
    """Target does not exist or the caller cannot see it."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str, message: str | None = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message or f"{entity_type} not found: {entity_id}")


class MembershipNotFoundError(NotFoundError):
    """
    The user holds no membership in the organization.

    Organization absence and non-membership are indistinguishable here.
    """

    def __init__(self, user_id: str, organization_id: str):
        self.user_id = user_id
        self.organization_id = organization_id
        super().__init__(
            "Organization",
            organization_id,
            message="Organization not found",
        )


class WalletNotFoundError(NotFoundError):
    def __init__(self, wallet_id: str):
        self.wallet_id = wallet_id
        super().__init__("Wallet", wallet_id, message="Wallet not found")


class TransactionNotFoundError(NotFoundError):
    def __init__(self, wallet_id: str, number: int):
        self.wallet_id = wallet_id
        self.number = number
        super().__init__(
            "Transaction",
            f"{wallet_id}/{number}",
            message="Transaction not found",
        )


class UserNotFoundError(NotFoundError):
    field: str = "username"

    def __init__(self, username: str):
        self.username = username
        super().__init__("User", username, message=f"User {username} not found")


# Authorization


class ForbiddenError(ExpenseKernelError):
    """Caller is a member but the role lacks the required capability."""

    code: str = "FORBIDDEN"

    def __init__(self, user_id: str, organization_id: str, reason: str | None = None):
        self.user_id = user_id
        self.organization_id = organization_id
        super().__init__(reason or "Forbidden")


class InvalidReviewerError(ExpenseKernelError):
    """Designated reviewer is the creator or cannot approve in the organization."""

    code: str = "INVALID_REVIEWER"
    field: str = "reviewer"

    def __init__(self, reviewer_id: str, reason: str):
        self.reviewer_id = reviewer_id
        super().__init__(reason)


# Conflicts


class ConflictError(ExpenseKernelError):
    """Base exception for requests that contradict current state."""

    code: str = "CONFLICT"


class TransactionStateConflictError(ConflictError):
    """Transaction has already left the pending state."""

    code: str = "TRANSACTION_STATE_CONFLICT"
    field: str = "state"

    def __init__(self, wallet_id: str, number: int, current_state: str):
        self.wallet_id = wallet_id
        self.number = number
        self.current_state = current_state
        super().__init__("Transaction state has already been set")


class OwnerCannotLeaveError(ConflictError):
    code: str = "OWNER_CANNOT_LEAVE"

    def __init__(self, user_id: str, organization_id: str):
        self.user_id = user_id
        self.organization_id = organization_id
        super().__init__("Owners cannot leave the organization")


# Balance


class InsufficientBalanceError(ExpenseKernelError):
    """Wallet balance cannot absorb the outgoing value."""

    code: str = "INSUFFICIENT_BALANCE"
    field: str = "balance"

    def __init__(self, wallet_id: str, balance: Decimal, value: Decimal, message: str):
        self.wallet_id = wallet_id
        self.balance = balance
        self.value = value
        super().__init__(message)


# Internal


class InternalError(ExpenseKernelError):
    """Data or invariant corruption. Never shown to callers verbatim."""

    code: str = "INTERNAL_ERROR"


class UnrecognizedRoleError(InternalError):
    """Persisted membership role is not in the role policy table."""

    code: str = "UNRECOGNIZED_ROLE"

    def __init__(self, role: str):
        self.role = role
        super().__init__(f"Unrecognized role: {role!r}")


class AuditChainBrokenError(InternalError):
    """Audit hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, audit_record_id: str, expected_hash: str, actual_hash: str):
        self.audit_record_id = audit_record_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at {audit_record_id}: "
            f"expected {expected_hash}, found {actual_hash}"
        )


class ImmutabilityViolationError(InternalError):
    """Attempted to modify or delete an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
