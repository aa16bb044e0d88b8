"""
Unit tests for money parsing and request validation.

Verifies:
- Float input is refused; Decimal, int and str are accepted
- Two-decimal precision
- Every failing field is reported at once
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from expense_kernel.domain.money import format_money, has_money_precision, round_money
from expense_kernel.domain.transaction_state import TransactionType
from expense_kernel.domain.validation import (
    MoneyParseError,
    check_name,
    parse_money,
    validate_transaction_input,
    validate_wallet_input,
)
from expense_kernel.exceptions import ValidationError

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
REVIEWER = uuid4()


class TestParseMoney:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("100.50", Decimal("100.50")),
            (" 7 ", Decimal("7")),
            (42, Decimal("42")),
            (Decimal("0.01"), Decimal("0.01")),
            ("3.100", Decimal("3.100")),
        ],
    )
    def test_accepts(self, raw, expected):
        assert parse_money(raw) == expected

    def test_float_refused(self):
        with pytest.raises(MoneyParseError, match="not a float"):
            parse_money(1.5)

    def test_bool_refused(self):
        with pytest.raises(MoneyParseError):
            parse_money(True)

    @pytest.mark.parametrize("raw", ["abc", "", "NaN", "Infinity", None])
    def test_non_numeric_refused(self, raw):
        with pytest.raises(MoneyParseError):
            parse_money(raw)

    def test_three_decimal_places_refused(self):
        with pytest.raises(MoneyParseError, match="more than 2 decimal points"):
            parse_money("1.005")

    def test_huge_exponent_refused(self):
        with pytest.raises(MoneyParseError, match="too large"):
            parse_money("1E+999")


class TestMoneyHelpers:

    def test_round_half_up(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")

    def test_precision_check(self):
        assert has_money_precision(Decimal("2.30"))
        assert not has_money_precision(Decimal("2.301"))

    def test_format_pads_to_two_places(self):
        assert format_money(Decimal("5")) == "5.00"
        assert format_money(Decimal("-150.5")) == "-150.50"


class TestCheckName:

    def test_required(self):
        assert check_name("   ") == "Name is required"
        assert check_name(None) == "Name is required"

    def test_max_length(self):
        assert check_name("x" * 64) is None
        assert check_name("x" * 65) == "Name cannot be longer than 64 characters"


class TestValidateTransactionInput:

    def test_valid_outgoing(self):
        draft = validate_transaction_input(
            transaction_type="out",
            magnitude="50.00",
            spent_at=NOW - timedelta(hours=1),
            notes="Taxi",
            reviewer_id=REVIEWER,
            now=NOW,
        )
        assert draft.transaction_type is TransactionType.OUTGOING
        assert draft.value == Decimal("-50.00")

    def test_notes_default_to_empty(self):
        draft = validate_transaction_input(
            transaction_type="in", magnitude=10, spent_at=NOW, notes=None,
            reviewer_id=REVIEWER, now=NOW,
        )
        assert draft.notes == ""

    def test_all_errors_collected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_transaction_input(
                transaction_type="sideways",
                magnitude="0",
                spent_at=None,
                notes=12,
                reviewer_id=REVIEWER,
                now=NOW,
            )
        assert exc_info.value.field_errors() == {
            "type": "Type must be either incoming or outgoing",
            "value": "Amount must be greater than 0",
            "date": "Date is required",
            "notes": "Notes must be text",
        }

    def test_future_date_refused(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_transaction_input(
                transaction_type="in",
                magnitude="1.00",
                spent_at=NOW + timedelta(seconds=1),
                notes="",
                reviewer_id=REVIEWER,
                now=NOW,
            )
        assert exc_info.value.errors == {"date": "Date cannot be in the future"}

    def test_naive_date_refused(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_transaction_input(
                transaction_type="in",
                magnitude="1.00",
                spent_at=datetime(2023, 12, 31),
                notes="",
                reviewer_id=REVIEWER,
                now=NOW,
            )
        assert "date" in exc_info.value.errors

    def test_negative_amount_refused(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_transaction_input(
                transaction_type="out", magnitude="-5", spent_at=NOW, notes="",
                reviewer_id=REVIEWER, now=NOW,
            )
        assert exc_info.value.errors["value"] == "Amount must be greater than 0"


class TestSpentAtAndReviewer:

    def _validate(self, spent_at=NOW, reviewer_id=REVIEWER):
        return validate_transaction_input(
            transaction_type="in",
            magnitude="1.00",
            spent_at=spent_at,
            notes="",
            reviewer_id=reviewer_id,
            now=NOW,
        )

    @pytest.mark.parametrize(
        "raw",
        ["2024-01-01T10:30:00+00:00", "2024-01-01T10:30:00Z", "2024-01-01T12:30:00+02:00"],
    )
    def test_iso_string_parsed(self, raw):
        draft = self._validate(spent_at=raw)
        assert draft.spent_at == datetime(2024, 1, 1, 10, 30, tzinfo=timezone.utc)

    def test_unparseable_string(self):
        with pytest.raises(ValidationError) as exc_info:
            self._validate(spent_at="yesterday")
        assert exc_info.value.errors == {"date": "Date is invalid"}

    def test_blank_string_is_missing(self):
        with pytest.raises(ValidationError) as exc_info:
            self._validate(spent_at="  ")
        assert exc_info.value.errors == {"date": "Date is required"}

    def test_iso_string_without_offset_refused(self):
        with pytest.raises(ValidationError) as exc_info:
            self._validate(spent_at="2024-01-01T10:30:00")
        assert exc_info.value.errors == {"date": "Date must include a timezone"}

    def test_future_iso_string_refused(self):
        with pytest.raises(ValidationError) as exc_info:
            self._validate(spent_at="2024-01-01T12:00:01+00:00")
        assert exc_info.value.errors == {"date": "Date cannot be in the future"}

    def test_reviewer_string_parsed(self):
        assert self._validate(reviewer_id=str(REVIEWER)).reviewer_id == REVIEWER

    @pytest.mark.parametrize(
        "raw, message",
        [
            (None, "Reviewer is required"),
            ("", "Reviewer is required"),
            ("not-a-uuid", "Reviewer is invalid"),
            (42, "Reviewer is invalid"),
        ],
    )
    def test_reviewer_refused(self, raw, message):
        with pytest.raises(ValidationError) as exc_info:
            self._validate(reviewer_id=raw)
        assert exc_info.value.errors == {"reviewer": message}

    def test_reviewer_reported_with_other_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_transaction_input(
                transaction_type="sideways",
                magnitude="1.00",
                spent_at="bad",
                notes="",
                reviewer_id=None,
                now=NOW,
            )
        assert exc_info.value.errors.keys() == {"type", "date", "reviewer"}


class TestValidateWalletInput:

    def test_valid(self):
        assert validate_wallet_input(name=" Travel ", balance="0") == ("Travel", Decimal("0"))

    def test_negative_balance(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_wallet_input(name="Travel", balance="-0.01")
        assert exc_info.value.errors == {"balance": "Balance cannot be negative"}

    def test_precision_and_name_together(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_wallet_input(name="", balance="1.234")
        assert exc_info.value.errors == {
            "name": "Name is required",
            "balance": "Balance cannot have more than 2 decimal points",
        }
