"""
routes/balances.py — Balance route handlers.

Layer rules:
  - Parse the posted snapshot, call the services, return envelope.
  - No business logic. Nothing is stored: the client owns the expenses and
    sends the current collection with every request.

Endpoints (url_prefix=/api/v1):
  POST /balances/users/:user_id    → 200  user summary, per-currency summaries,
                                          pairwise debts
  POST /balances/groups/:group_id  → 200  group balances + simplified debts
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from sharedledger.config import default_currency
from sharedledger.models.expense import Expense
from sharedledger.routes.serializers import (
    serialize_amount,
    serialize_debt_summary,
    serialize_suggestion,
)
from sharedledger.schemas.expense_schema import (
    GroupBalanceRequestSchema,
    UserBalanceRequestSchema,
)
from sharedledger.services import balance_service, expense_service, settlement_service

balances_bp = Blueprint("balances", __name__)


def _build_expenses(loaded: list[dict]) -> list[Expense]:
    """Runs every loaded expense through the split calculator."""
    return [expense_service.create_expense(**e) for e in loaded]


@balances_bp.route("/balances/users/<user_id>", methods=["POST"])
def get_user_balance(user_id: str):
    """
    POST /balances/users/:user_id

    Body: {"expenses": [...], "currency": "USD"?, "category": "food"?}

    `summary` covers one currency only (the requested one, else the default);
    `by_currency` lists every currency the user appears in. Amounts in
    different currencies are never added together.
    With a category, every section covers only expenses of that category.
    """
    data = UserBalanceRequestSchema().load(request.get_json(force=True) or {})
    expenses = _build_expenses(data["expenses"])
    currency = data["currency"] or default_currency()
    category = data["category"]

    summary = balance_service.calculate_balance(user_id, expenses, currency, category=category)
    by_currency = balance_service.calculate_balances_by_currency(
        user_id, expenses, category=category,
    )
    debts = balance_service.get_user_debts(user_id, expenses, category=category)

    return jsonify({
        "data": {
            "user_id": user_id,
            "category": category.value if category else None,
            "summary": serialize_debt_summary(summary),
            "by_currency": [serialize_debt_summary(s) for s in by_currency.values()],
            "debts": {
                "owes": [serialize_debt_summary(s) for s in debts.owes],
                "owed": [serialize_debt_summary(s) for s in debts.owed],
            },
        },
        "warnings": [],
    }), 200


@balances_bp.route("/balances/groups/<group_id>", methods=["POST"])
def get_group_balance(group_id: str):
    """
    POST /balances/groups/:group_id

    Body: {"expenses": [...], "currency": "USD"?, "member_ids": [...]?,
           "category": "food"?}

    Only expenses whose group_id matches count. If the group's expenses span
    several currencies the request must name one (CURRENCY_MISMATCH, 422).
    balance_sum is always "0.00" because every posted expense's payments
    must cover its total.
    """
    data = GroupBalanceRequestSchema().load(request.get_json(force=True) or {})
    expenses = _build_expenses(data["expenses"])

    balances = balance_service.calculate_group_balance(
        group_id,
        expenses,
        currency=data["currency"],
        member_ids=data["member_ids"],
        category=data["category"],
    )
    currency = data["currency"] or next(
        (m.currency for m in balances.values()),
        default_currency(),
    )
    suggestions = settlement_service.suggest_settlements(balances, currency=currency)

    return jsonify({
        "data": {
            "group_id": group_id,
            "currency": currency,
            "category": data["category"].value if data["category"] else None,
            "balances": [
                {"user_id": uid, "balance": str(money.to_decimal())}
                for uid, money in sorted(balances.items())
            ],
            "simplified_debts": [serialize_suggestion(s) for s in suggestions],
            "balance_sum": serialize_amount(
                sum(m.amount for m in balances.values()), currency,
            ),
        },
        "warnings": [],
    }), 200
