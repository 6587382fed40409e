"""
schemas/expense_schema.py — Marshmallow schemas for expense snapshots and
balance requests.

The balance endpoints are stateless: the client posts the expense collection
it owns and receives computed balances. These schemas load that collection.

Validation responsibility:
  - This file:
      - Field types, lengths, enum values (INVALID_SPLIT_TYPE, INVALID_CATEGORY)
      - Currency code shape and minor-unit precision
      - Non-empty-after-trim enforcement for title
      - DUPLICATE_PARTICIPANT (400)
      - Exactly one of paid_by / payer_ids
  - services/expense_service.py and services/split_service.py:
      - Split arithmetic rules and PAYMENT_SUM_MISMATCH (422)

Loaded expenses come out as keyword dicts for
expense_service.create_expense(). The schema never calls a service.
"""

from __future__ import annotations

from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    post_load,
    validate,
    validates_schema,
)

from sharedledger.errors import ErrorCode
from sharedledger.models.expense import Category, SplitType
from sharedledger.models.money import Money
from sharedledger.schemas.split_schema import (
    ParticipantInputSchema,
    PaymentInputSchema,
    build_participants,
    build_payments,
    check_duplicate_participants,
    currency_field,
    minor_units,
    validate_non_empty_after_trim,
    validate_positive_amount,
)


class ExpenseInputSchema(Schema):
    """
    One expense snapshot.

    Payers are given either as `paid_by` (explicit amounts) or as `payer_ids`
    (the total is divided equally among them). Exactly one must be present.

    Computed fields a client echoes back (owed_amount, net_amount, ...) are
    ignored; they are always recomputed.
    """

    class Meta:
        unknown = EXCLUDE

    id = fields.Str(
        required=True,
        validate=validate.Length(min=1, error="id must not be empty."),
    )

    title = fields.Str(
        load_default="",
        validate=[
            validate.Length(max=255, error="Title must be at most 255 characters."),
            validate_non_empty_after_trim,
        ],
    )

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
        load_default=None,
    )

    payer_ids = fields.List(
        fields.Str(validate=validate.Length(min=1)),
        load_default=None,
    )

    group_id = fields.Str(
        load_default=None,
        allow_none=True,
    )

    category = fields.Enum(
        Category,
        load_default=Category.OTHER,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
    )

    settled = fields.Bool(load_default=False)

    @validates_schema
    def validate_expense_shape(self, data: dict, **kwargs) -> None:
        """
        1. DUPLICATE_PARTICIPANT (400): same user_id twice in participants.
        2. Exactly one of paid_by / payer_ids.
        """
        check_duplicate_participants(data.get("participants"))

        has_paid_by = data.get("paid_by") is not None
        has_payer_ids = data.get("payer_ids") is not None
        if has_paid_by == has_payer_ids:
            raise ValidationError(
                {"paid_by": ["Provide exactly one of paid_by or payer_ids."]}
            )

    @post_load
    def to_domain(self, data: dict, **kwargs) -> dict:
        currency = data["currency"]
        total = Money(minor_units(data["total"], currency, "total"), currency)
        if data.get("paid_by") is not None:
            paid_by = build_payments(data["paid_by"], currency)
        else:
            paid_by = list(data["payer_ids"])
        return {
            "expense_id": data["id"],
            "title": data["title"].strip(),
            "total": total,
            "split_type": data["split_type"],
            "participants": build_participants(
                data["participants"], data["split_type"], currency,
            ),
            "paid_by": paid_by,
            "group_id": data["group_id"],
            "category": data["category"],
            "settled": data["settled"],
        }


def _category_filter_field() -> fields.Enum:
    return fields.Enum(
        Category,
        load_default=None,
        allow_none=True,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
    )


class UserBalanceRequestSchema(Schema):
    """
    POST /balances/users/:user_id

    currency is optional; when absent the configured default is used for the
    aggregate summary. Per-currency summaries are always returned.

    category is optional; when present every result covers only expenses of
    that category.
    """

    expenses = fields.List(
        fields.Nested(ExpenseInputSchema),
        required=True,
    )

    currency = currency_field(load_default=None, allow_none=True)

    category = _category_filter_field()

    @validates_schema
    def validate_unique_ids(self, data: dict, **kwargs) -> None:
        _check_unique_expense_ids(data.get("expenses"))


class GroupBalanceRequestSchema(Schema):
    """
    POST /balances/groups/:group_id

    currency is required only when the group's expenses span several
    currencies (CURRENCY_MISMATCH, 422 otherwise, checked in the service).
    category optionally scopes the balances to one spending category.
    """

    expenses = fields.List(
        fields.Nested(ExpenseInputSchema),
        required=True,
    )

    currency = currency_field(load_default=None, allow_none=True)

    category = _category_filter_field()

    member_ids = fields.List(
        fields.Str(validate=validate.Length(min=1)),
        load_default=list,
    )

    @validates_schema
    def validate_unique_ids(self, data: dict, **kwargs) -> None:
        _check_unique_expense_ids(data.get("expenses"))


def _check_unique_expense_ids(expenses: list[dict] | None) -> None:
    """An expense id may appear once per snapshot."""
    if not expenses:
        return
    ids = [e["expense_id"] for e in expenses]
    if len(ids) != len(set(ids)):
        raise ValidationError({"expenses": ["Each expense id may appear only once."]})
