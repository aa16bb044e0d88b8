"""
Transaction lifecycle types (``expense_kernel.domain.transaction_state``).

Responsibility
--------------
Pure value objects for the expense transaction workflow: the lifecycle
state machine, the incoming/outgoing direction, and the frozen snapshots
returned to callers.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* ``TRANSACTION_TRANSITIONS`` is the only source of valid transitions.
  PENDING may move to APPROVED or REJECTED; terminal states have no
  outgoing edges, so a transaction is resolved at most once.
* A stored value is signed: positive for incoming, negative for outgoing.
  The magnitude supplied by the creator is always positive.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class TransactionState(str, Enum):
    """Transaction lifecycle states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


TRANSACTION_TRANSITIONS: dict[TransactionState, frozenset[TransactionState]] = {
    TransactionState.PENDING: frozenset({
        TransactionState.APPROVED,
        TransactionState.REJECTED,
    }),
    TransactionState.APPROVED: frozenset(),
    TransactionState.REJECTED: frozenset(),
}

TERMINAL_TRANSACTION_STATES: frozenset[TransactionState] = frozenset(
    state for state, targets in TRANSACTION_TRANSITIONS.items() if not targets
)

RESOLUTION_STATES: frozenset[TransactionState] = TRANSACTION_TRANSITIONS[
    TransactionState.PENDING
]


def can_transition(current: TransactionState, target: TransactionState) -> bool:
    return target in TRANSACTION_TRANSITIONS[current]


class TransactionType(str, Enum):
    """Direction of money relative to the wallet."""

    INCOMING = "in"
    OUTGOING = "out"

    def signed(self, magnitude: Decimal) -> Decimal:
        """Apply this direction's sign to a positive magnitude."""
        return magnitude if self is TransactionType.INCOMING else -magnitude


@dataclass(frozen=True)
class TransactionRef:
    """Identity of a transaction: the wallet and its per-wallet number."""

    wallet_id: UUID
    number: int

    def __str__(self) -> str:
        return f"{self.wallet_id}/{self.number}"


@dataclass(frozen=True)
class TransactionSnapshot:
    """Read-only view of a transaction row."""

    ref: TransactionRef
    organization_id: UUID
    value: Decimal
    state: TransactionState
    creator_id: UUID
    reviewer_id: UUID
    spent_at: datetime
    entered_at: datetime
    notes: str
    resolved_by_id: UUID | None = None
    resolved_at: datetime | None = None

    @property
    def transaction_type(self) -> TransactionType:
        return TransactionType.INCOMING if self.value > 0 else TransactionType.OUTGOING

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_TRANSACTION_STATES


@dataclass(frozen=True)
class ResolutionOutcome:
    """Result of a successful resolution."""

    transaction: TransactionSnapshot
    balance_before: Decimal
    balance_after: Decimal
