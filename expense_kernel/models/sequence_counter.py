"""
Module: expense_kernel.models.sequence_counter
Responsibility: Named counter rows backing monotonic sequence allocation.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One row per sequence name: UNIQUE(name).
    - current_value only grows; SequenceService increments it under
      ``SELECT ... FOR UPDATE``.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import EntityBase


class SequenceCounter(EntityBase):
    """
    Sequence counter table.

    Each row is a named sequence with its current value.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<SequenceCounter {self.name}={self.current_value}>"
