"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing").
  - The API holds no state between requests, so no per-test cleanup is needed.
    Every request carries its own snapshot.

Helper functions (not fixtures) are provided for building request bodies:
  - expense_payload(...)  → one expense snapshot dict
  - post(client, ...)     → (status_code, json body)

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest

from sharedledger import create_app


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """Creates the Flask application in 'testing' mode once for the session."""
    return create_app("testing")


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def expense_payload(
    expense_id: str,
    total: str,
    participants: list,
    payer_ids: list | None = None,
    paid_by: list | None = None,
    currency: str = "USD",
    split_type: str = "equal",
    group_id: str | None = "trip",
    **extra,
) -> dict:
    """
    Builds one expense snapshot as a client would post it.

    participants may be plain user ids (equal split) or
    {"user_id", "split_value"} dicts.
    """
    body = {
        "id": expense_id,
        "title": f"Expense {expense_id}",
        "total": total,
        "currency": currency,
        "split_type": split_type,
        "participants": [
            p if isinstance(p, dict) else {"user_id": p} for p in participants
        ],
        "group_id": group_id,
    }
    if paid_by is not None:
        body["paid_by"] = paid_by
    else:
        body["payer_ids"] = payer_ids or []
    body.update(extra)
    return body


def post(client, url: str, body: dict) -> tuple[int, dict]:
    """POSTs JSON and returns (status_code, parsed body)."""
    resp = client.post(url, json=body)
    return resp.status_code, resp.get_json()
