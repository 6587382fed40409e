"""
tests/integration/test_settlements.py — Integration tests for POST /settlements/suggest.

Endpoints covered:
  POST /api/v1/settlements/suggest  → 200 (suggested transfers)

Properties verified:
  - One creditor, two debtors → two transfers, largest debt first
  - Applying the suggestions zeroes every balance
  - Balances that do not sum to zero → 422 UNBALANCED_BALANCES
  - Amounts with too many decimal places → 400 INVALID_AMOUNT_PRECISION
  - Nothing is recorded: the same request gives the same answer every time
"""

from __future__ import annotations

from decimal import Decimal

from conftest import post

URL = "/api/v1/settlements/suggest"


def test_one_creditor_two_debtors(client):
    status, body = post(client, URL, {
        "currency": "USD",
        "balances": {"A": "3.00", "B": "-1.00", "C": "-2.00"},
    })

    assert status == 200
    assert body["warnings"] == []
    assert body["data"] == {
        "currency": "USD",
        "suggestions": [
            {"from_user_id": "C", "to_user_id": "A", "amount": "2.00", "currency": "USD"},
            {"from_user_id": "B", "to_user_id": "A", "amount": "1.00", "currency": "USD"},
        ],
    }


def test_suggestions_zero_every_balance(client):
    balances = {"a": "120.50", "b": "-20.25", "c": "-50.00", "d": "10.00", "e": "-60.25"}
    _, body = post(client, URL, {"currency": "USD", "balances": balances})

    remaining = {uid: Decimal(v) for uid, v in balances.items()}
    for s in body["data"]["suggestions"]:
        remaining[s["from_user_id"]] += Decimal(s["amount"])
        remaining[s["to_user_id"]] -= Decimal(s["amount"])

    assert all(v == 0 for v in remaining.values())
    assert len(body["data"]["suggestions"]) <= len(balances) - 1


def test_all_zero_balances(client):
    status, body = post(client, URL, {"currency": "USD", "balances": {"a": "0", "b": "0.00"}})
    assert status == 200
    assert body["data"]["suggestions"] == []


def test_repeated_requests_identical(client):
    payload = {"currency": "EUR", "balances": {"x": "5.00", "y": "-2.50", "z": "-2.50"}}
    first = client.post(URL, json=payload).get_data()
    second = client.post(URL, json=payload).get_data()
    assert first == second


def test_unbalanced_rejected(client):
    status, body = post(client, URL, {
        "currency": "USD",
        "balances": {"a": "50.00", "b": "-49.99"},
    })

    assert status == 422
    assert body["error"]["code"] == "UNBALANCED_BALANCES"
    assert body["error"]["field"] == "balances"


def test_too_precise_amount_rejected(client):
    status, body = post(client, URL, {
        "currency": "USD",
        "balances": {"a": "0.001", "b": "-0.001"},
    })

    assert status == 400
    assert body["error"]["code"] == "INVALID_AMOUNT_PRECISION"


def test_missing_balances(client):
    status, body = post(client, URL, {"currency": "USD"})
    assert status == 400
    assert body["error"]["code"] == "MISSING_FIELD"
    assert body["error"]["field"] == "balances"
