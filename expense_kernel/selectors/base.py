"""
Module: expense_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/,
    and pure domain value types.  MUST NOT import from services/ or outer
    layers.

Invariants enforced:
    - Read-only access: selectors never add, delete, flush, or commit.
    - DTO return convention: selectors return frozen dataclasses, not ORM
      instances.
    - Selectors do not authorize.  Callers run the authorization guard
      first (the gateway does this for every read it exposes).
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """Read-only query helper bound to the caller's session."""

    def __init__(self, session: Session):
        self.session = session
