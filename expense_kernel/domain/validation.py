"""
Input validation for transactions and wallets.

Pure checks with no I/O.  Field checks return or raise a message for one
field so callers can collect all failing fields into a single
ValidationError.
Monetary input is accepted as Decimal, int, or str; float is refused so
that binary rounding never reaches a balance.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from expense_kernel.domain.money import has_money_precision
from expense_kernel.domain.transaction_state import TransactionType
from expense_kernel.exceptions import ValidationError

WALLET_NAME_MAX_LENGTH = 64
ORGANIZATION_NAME_MAX_LENGTH = 64
SEARCH_MAX_LENGTH = 64

_SEARCH_PATTERN = re.compile(r"[0-9A-Za-z]+")


class MoneyParseError(ValueError):
    pass


def parse_money(value: Any) -> Decimal:
    """Convert user input to a Decimal without passing through float.

    Raises:
        MoneyParseError: ``value`` is a float, bool, or not numeric, or has
            more than two decimal places.
    """
    if isinstance(value, (float, bool)):
        raise MoneyParseError("Amount must be a decimal, not a float")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise MoneyParseError("Amount must be a number") from None
    else:
        raise MoneyParseError("Amount must be a number")
    if not amount.is_finite():
        raise MoneyParseError("Amount must be a number")
    try:
        precise = has_money_precision(amount)
    except InvalidOperation:
        # Quantizing overflows the context precision: far too large.
        raise MoneyParseError("Amount is too large") from None
    if not precise:
        raise MoneyParseError("Balance cannot have more than 2 decimal points")
    return amount


def check_name(value: Any, max_length: int = WALLET_NAME_MAX_LENGTH) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return "Name is required"
    if len(value.strip()) > max_length:
        return f"Name cannot be longer than {max_length} characters"
    return None


@dataclass(frozen=True)
class TransactionDraft:
    """Validated creation input."""

    transaction_type: TransactionType
    magnitude: Decimal
    spent_at: datetime
    notes: str
    reviewer_id: UUID

    @property
    def value(self) -> Decimal:
        return self.transaction_type.signed(self.magnitude)


def parse_spent_at(value: Any) -> datetime:
    """Accept a datetime or an ISO-8601 string.

    Raises:
        ValueError: with the field message for a missing or unparseable value.
    """
    if isinstance(value, str):
        if not value.strip():
            raise ValueError("Date is required")
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValueError("Date is invalid") from None
    if not isinstance(value, datetime):
        raise ValueError("Date is required")
    return value


def parse_reviewer_id(value: Any) -> UUID:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("Reviewer is required")
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str):
        raise ValueError("Reviewer is invalid")
    try:
        return UUID(value.strip())
    except ValueError:
        raise ValueError("Reviewer is invalid") from None


def validate_transaction_input(
    *,
    transaction_type: Any,
    magnitude: Any,
    spent_at: Any,
    notes: Any,
    reviewer_id: Any,
    now: datetime,
) -> TransactionDraft:
    """Validate every creation field, raising one ValidationError for all failures.

    ``spent_at`` may be an aware datetime or an ISO-8601 string with an offset.
    """
    errors: dict[str, str] = {}

    try:
        txn_type = TransactionType(transaction_type)
    except ValueError:
        txn_type = None
        errors["type"] = "Type must be either incoming or outgoing"

    amount: Decimal | None = None
    try:
        amount = parse_money(magnitude)
    except MoneyParseError as exc:
        errors["value"] = str(exc)
    else:
        if amount <= 0:
            errors["value"] = "Amount must be greater than 0"

    try:
        spent_at = parse_spent_at(spent_at)
    except ValueError as exc:
        errors["date"] = str(exc)
    else:
        if spent_at.tzinfo is None:
            errors["date"] = "Date must include a timezone"
        elif spent_at > now:
            errors["date"] = "Date cannot be in the future"

    if notes is None:
        notes = ""
    if not isinstance(notes, str):
        errors["notes"] = "Notes must be text"

    try:
        reviewer_id = parse_reviewer_id(reviewer_id)
    except ValueError as exc:
        errors["reviewer"] = str(exc)

    if errors:
        raise ValidationError(errors)

    return TransactionDraft(
        transaction_type=txn_type,
        magnitude=amount,
        spent_at=spent_at,
        notes=notes,
        reviewer_id=reviewer_id,
    )


def validate_wallet_input(*, name: Any, balance: Any) -> tuple[str, Decimal]:
    errors: dict[str, str] = {}

    name_error = check_name(name)
    if name_error:
        errors["name"] = name_error

    amount: Decimal | None = None
    try:
        amount = parse_money(balance)
    except MoneyParseError as exc:
        errors["balance"] = str(exc)
    else:
        if amount < 0:
            errors["balance"] = "Balance cannot be negative"

    if errors:
        raise ValidationError(errors)
    return name.strip(), amount


def validate_search_term(value: Any) -> str:
    """A user search term: 1 to 64 ASCII letters or digits."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError({"search": "Search is required"})
    term = value.strip()
    if len(term) > SEARCH_MAX_LENGTH:
        raise ValidationError(
            {"search": f"Search cannot be longer than {SEARCH_MAX_LENGTH} characters"}
        )
    if not _SEARCH_PATTERN.fullmatch(term):
        raise ValidationError({"search": "Search must be alphanumeric"})
    return term
