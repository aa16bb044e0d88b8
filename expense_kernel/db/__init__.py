"""Database layer - engine, base classes, column types, and immutability."""

from expense_kernel.db.base import UUID, Base, EntityBase, UUIDString
from expense_kernel.db.engine import (
    create_engine_from_url,
    create_tables,
    get_engine,
    get_session,
    session_scope,
)
from expense_kernel.db.types import Money, MoneyType, Timestamp, UTCDateTime

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_engine_from_url",
    "create_tables",
    "Base",
    "EntityBase",
    "UUIDString",
    "UUID",
    "Money",
    "MoneyType",
    "Timestamp",
    "UTCDateTime",
]
