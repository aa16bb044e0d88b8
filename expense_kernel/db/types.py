"""
Module: expense_kernel.db.types
Responsibility: Column types and helpers for monetary and temporal values.
    Centralizes money precision so that every model and service uses the
    same two-decimal fixed-point representation.
Architecture position: Kernel > DB.  May be imported by models/,
    services/, and selectors/.  Imports only the pure domain/money rules.

Invariants enforced:
    - Money is Decimal with exactly two decimal places.  Floats are rejected
      at the bind boundary; they never reach storage.
    - Timestamps are timezone-aware UTC on the way in and on the way out,
      regardless of whether the dialect keeps offsets (SQLite does not).

Failure modes:
    - TypeError when a float (or any non-Decimal) is bound to a money column.
    - ValueError when a bound Decimal has more than two decimal places, or
      when a naive datetime is bound.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated

from sqlalchemy import BigInteger, DateTime, Integer, Numeric, String
from sqlalchemy.types import TypeDecorator

from expense_kernel.domain.money import MONEY_QUANTUM, has_money_precision


class MoneyType(TypeDecorator):
    """
    Two-decimal fixed-point money column.

    Contract:
        Binds only ``Decimal`` values with at most two decimal places.
        PostgreSQL stores NUMERIC(38, 2).  SQLite has no fixed-point
        storage, so the canonical string form is stored instead of letting
        the driver round-trip through float.

    Guarantees:
        - process_result_value always returns a Decimal quantized to 0.01.
    """

    impl = Numeric(38, 2)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(48))
        return dialect.type_descriptor(Numeric(38, 2, asdecimal=True))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, Decimal):
            raise TypeError(
                f"Money columns accept Decimal only, got {type(value).__name__}"
            )
        if not has_money_precision(value):
            raise ValueError(f"Money value {value} has more than 2 decimal places")
        value = value.quantize(MONEY_QUANTUM)
        if dialect.name == "sqlite":
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(str(value)).quantize(MONEY_QUANTUM)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp normalized to UTC.

    Naive datetimes are refused on bind.  Values read back from dialects
    that drop the offset are re-attached to UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Naive datetimes cannot be stored; attach a timezone")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigIntegerPK = BigInteger().with_variant(Integer(), "sqlite")

Money = Annotated[Decimal, MoneyType()]
Timestamp = Annotated[datetime, UTCDateTime()]

# SHA-256 hash as hex string (64 characters)
Hash = Annotated[str, String(64)]

# Wallet and organization display names
Name = Annotated[str, String(64)]
