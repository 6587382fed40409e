"""
schemas/settlement_schema.py — Marshmallow schema for settlement suggestions.

Validation responsibility:
  - This file: field types, currency code shape, minor-unit precision.
    Balances may be negative, zero or positive.
  - services/settlement_service.py:
      - UNBALANCED_BALANCES (422): balances must sum to zero.

IMPORTANT: Inherits from marshmallow.Schema directly. See split_schema.py.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, post_load, validates_schema

from sharedledger.models.money import Money
from sharedledger.schemas.split_schema import currency_field, minor_units


class SettlementRequestSchema(Schema):
    """
    POST /settlements/suggest

    {"currency": "USD", "balances": {"alice": "30.00", "bob": "-30.00"}}

    Loads to {"currency": str, "balances": {user_id: Money}}.
    """

    currency = currency_field()

    balances = fields.Dict(
        keys=fields.Str(),
        values=fields.Decimal(),
        required=True,
    )

    @validates_schema
    def validate_user_ids(self, data: dict, **kwargs) -> None:
        if any(not uid for uid in data.get("balances", {})):
            raise ValidationError({"balances": ["user ids must not be empty."]})

    @post_load
    def to_domain(self, data: dict, **kwargs) -> dict:
        currency = data["currency"]
        return {
            "currency": currency,
            "balances": {
                uid: Money(minor_units(amount, currency, "balances"), currency)
                for uid, amount in data["balances"].items()
            },
        }
