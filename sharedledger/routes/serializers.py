"""
routes/serializers.py — Pure data-shaping helpers for JSON responses.

No logic beyond formatting. Amounts leave as decimal strings in major units
(e.g. "12.50"), never as JSON numbers, so no client ever parses money into a
float.
"""

from __future__ import annotations

from sharedledger.models.expense import Participant
from sharedledger.models.ledger import DebtSummary, SettlementSuggestion
from sharedledger.models.money import Money


def serialize_amount(amount: int, currency: str) -> str:
    return str(Money(amount, currency).to_decimal())


def serialize_participant(participant: Participant, currency: str) -> dict:
    split_value = participant.split_value
    return {
        "user_id": participant.user_id,
        "split_value": None if split_value is None else str(split_value),
        "owed_amount": serialize_amount(participant.owed_amount, currency),
        "paid_amount": serialize_amount(participant.paid_amount, currency),
        "net_amount": serialize_amount(participant.net_amount, currency),
    }


def serialize_debt_summary(summary: DebtSummary) -> dict:
    payload = {
        "user_id": summary.user_id,
        "currency": summary.currency,
        "total_owed": serialize_amount(summary.total_owed, summary.currency),
        "total_owing": serialize_amount(summary.total_owing, summary.currency),
        "net_amount": serialize_amount(summary.net_amount, summary.currency),
        "expense_count": summary.expense_count,
    }
    if summary.counterparty_id is not None:
        payload["counterparty_id"] = summary.counterparty_id
        payload["amount"] = serialize_amount(summary.amount, summary.currency)
    return payload


def serialize_suggestion(suggestion: SettlementSuggestion) -> dict:
    return {
        "from_user_id": suggestion.from_user_id,
        "to_user_id": suggestion.to_user_id,
        "amount": str(suggestion.amount.to_decimal()),
        "currency": suggestion.currency,
    }
