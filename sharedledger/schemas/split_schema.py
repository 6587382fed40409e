"""
schemas/split_schema.py — Marshmallow schemas for split computation requests.

Validation responsibility:
  - This file:
      - Field types, required fields, enum values
      - Currency code shape (INVALID_CURRENCY)
      - Major-unit -> minor-unit conversion and precision (INVALID_AMOUNT_PRECISION)
      - DUPLICATE_PARTICIPANT (400), a request shape rule
  - services/split_service.py:
      - Percentage sum, exact sum, share counts, empty participant list
        (ValidationError, 422). These need the split arithmetic itself

All money crosses this boundary as decimal strings (or JSON numbers) in
major units and leaves it as int minor units. Nothing past this file ever
sees a float.

IMPORTANT: Inherits from marshmallow.Schema directly. Schemas must load
           without a Flask application context so unit tests can use them.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    post_load,
    validate,
    validates_schema,
)

from sharedledger.config import default_currency
from sharedledger.errors import AppError, ErrorCode
from sharedledger.models.expense import ParticipantShare, Payment, SplitType
from sharedledger.models.money import Money, to_minor_units


# ── Shared validators ──────────────────────────────────────────────────────

def validate_positive_amount(value: Decimal) -> None:
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")


def validate_non_negative_amount(value: Decimal) -> None:
    if value < Decimal("0"):
        raise ValidationError("Amount must not be negative.")


def validate_non_empty_after_trim(value: str) -> None:
    """
    Raises ValidationError if the string is blank or contains only whitespace.
    validate.Length(min=1) alone would accept "   ".
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def currency_field(**kwargs) -> fields.Str:
    """Currency code field; defaults to the configured DEFAULT_CURRENCY."""
    kwargs.setdefault("load_default", default_currency)
    return fields.Str(
        validate=validate.Regexp(r"^[A-Z]{3}$", error=ErrorCode.INVALID_CURRENCY),
        **kwargs,
    )


def minor_units(value: Decimal, currency: str, field_name: str) -> int:
    """
    Converts a loaded Decimal to minor units, re-raising precision problems as
    a marshmallow ValidationError so they surface as a 400 for `field_name`.
    """
    try:
        return to_minor_units(value, currency)
    except AppError as err:
        raise ValidationError({field_name: [err.code]}) from None


# ── Sub-schemas ────────────────────────────────────────────────────────────

class ParticipantInputSchema(Schema):
    """
    One entry of the `participants` array.

    split_value is interpreted by split_type:
      percentage -> percentage points, e.g. "33.33"
      exact      -> major-unit amount, e.g. "12.50" (converted to minor units)
      shares     -> whole share count, e.g. 2
      equal      -> ignored
    """

    class Meta:
        unknown = EXCLUDE

    user_id = fields.Str(
        required=True,
        validate=validate.Length(min=1, error="user_id must not be empty."),
    )

    split_value = fields.Decimal(
        load_default=None,
        allow_none=True,
    )


class PaymentInputSchema(Schema):
    """One entry of the `paid_by` array: a user and the amount they paid."""

    class Meta:
        unknown = EXCLUDE

    user_id = fields.Str(
        required=True,
        validate=validate.Length(min=1, error="user_id must not be empty."),
    )

    amount = fields.Decimal(
        required=True,
        validate=validate_non_negative_amount,
    )


def check_duplicate_participants(participants: list[dict] | None) -> None:
    if not participants:
        return
    user_ids = [p["user_id"] for p in participants]
    if len(user_ids) != len(set(user_ids)):
        raise ValidationError({"participants": [ErrorCode.DUPLICATE_PARTICIPANT]})


def build_participants(
        participants: list[dict],
        split_type: SplitType,
        currency: str,
) -> list[ParticipantShare]:
    """
    Turns loaded participant dicts into ParticipantShares.

    Exact split values are money and become minor units; shares that are
    whole numbers become int; percentages stay Decimal.
    """
    result = []
    for p in participants:
        value = p.get("split_value")
        if value is not None:
            if split_type == SplitType.EXACT:
                value = minor_units(value, currency, "participants")
            elif split_type == SplitType.SHARES and value == value.to_integral_value():
                value = int(value)
        result.append(ParticipantShare(user_id=p["user_id"], split_value=value))
    return result


def build_payments(paid_by: list[dict], currency: str) -> list[Payment]:
    return [
        Payment(user_id=p["user_id"], amount=minor_units(p["amount"], currency, "paid_by"))
        for p in paid_by
    ]


# ── Split request ──────────────────────────────────────────────────────────

class SplitRequestSchema(Schema):
    """
    POST /splits

    Loads to:
        {"total": Money, "split_type": SplitType,
         "participants": [ParticipantShare], "paid_by": [Payment]}

    Checks NOT in this schema (belong in split_service):
      - empty participant list, percentage sum, exact sum, share counts
    """

    total = fields.Decimal(
        required=True,
        validate=validate_positive_amount,
    )

    currency = currency_field()

    split_type = fields.Enum(
        SplitType,
        load_default=SplitType.EQUAL,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_TYPE},
    )

    participants = fields.List(
        fields.Nested(ParticipantInputSchema),
        required=True,
    )

    paid_by = fields.List(
        fields.Nested(PaymentInputSchema),
        load_default=list,
    )

    @validates_schema
    def validate_participants(self, data: dict, **kwargs) -> None:
        """DUPLICATE_PARTICIPANT (400): same user_id twice in participants."""
        check_duplicate_participants(data.get("participants"))

    @post_load
    def to_domain(self, data: dict, **kwargs) -> dict:
        currency = data["currency"]
        return {
            "total": Money(minor_units(data["total"], currency, "total"), currency),
            "split_type": data["split_type"],
            "participants": build_participants(
                data["participants"], data["split_type"], currency,
            ),
            "paid_by": build_payments(data["paid_by"], currency),
        }
