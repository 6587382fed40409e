"""
services/settlement_service.py — Settlement suggestions (debt simplification).

Greedy minimum cash flow: repeatedly match the largest debtor with the
largest creditor until every balance is zero. This is a heuristic; the
true minimum number of transfers is NP-hard to find in general.

Guarantees:
  - Applying every suggestion to the input balances leaves each at zero.
  - At most (#creditors + #debtors - 1) suggestions are produced.
  - Equal amounts are ordered by user id, so the output is deterministic.
  - No suggestion is a self-transfer and every amount is > 0.

Suggestions are not records of payment. Recording that a transfer happened
is the owning application's job.

Layer rules:
  - No Flask imports. Pure functions; input mappings are never mutated.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Iterable, Mapping

from sharedledger.config import default_currency
from sharedledger.errors import CurrencyMismatchError, ErrorCode, ValidationError
from sharedledger.models.expense import Expense
from sharedledger.models.ledger import SettlementSuggestion
from sharedledger.models.money import Money, validate_currency
from sharedledger.services.balance_service import calculate_group_balance, calculate_net_balances
from sharedledger.services.expense_service import active_expenses, currencies_of

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _to_minor_units(
        balances: Mapping[str, Money | int],
        currency: str | None,
) -> tuple[dict[str, int], str]:
    """
    Normalises a balance map to {user_id: int} plus its single currency.

    Money values carry their own currency; int values use `currency` (or the
    configured default). Any disagreement raises CurrencyMismatchError.
    """
    found = {v.currency for v in balances.values() if isinstance(v, Money)}
    if currency is not None:
        found.add(validate_currency(currency))
    if len(found) > 1:
        raise CurrencyMismatchError(found)
    resolved = found.pop() if found else validate_currency(default_currency())

    amounts: dict[str, int] = {}
    for user_id, value in balances.items():
        amount = value.amount if isinstance(value, Money) else value
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError(
                ErrorCode.INVALID_AMOUNT,
                f"Balance for {user_id} must be Money or int minor units, "
                f"got {type(value).__name__}.",
                field="balances",
            )
        amounts[user_id] = amount
    return amounts, resolved


# ── Public service functions ───────────────────────────────────────────────

def suggest_settlements(
        balances: Mapping[str, Money | int],
        currency: str | None = None,
) -> list[SettlementSuggestion]:
    """
    Proposes transfers that bring every balance to zero.

    Args:
        balances: {user_id: net balance}. Positive = is owed, negative = owes.
                  Values are Money, or int minor units in `currency`.
                  MUST sum to zero.
        currency: Currency of int balances. Defaults to DEFAULT_CURRENCY.

    Algorithm:
      1. Discard zero balances.
      2. Creditors (> 0) and debtors (< 0, as absolute values) go into two
         max-heaps keyed by (amount desc, user_id asc).
      3. Pop the largest of each, transfer min(debt, credit), push back any
         non-zero remainder. Repeat until both heaps are empty.

    Returns:
        SettlementSuggestions in the order they were generated. An empty list
        means every balance is already zero.

    Raises:
        CurrencyMismatchError             -- balances span several currencies.
        ValidationError(UNBALANCED_BALANCES) -- balances do not sum to zero.
    """
    amounts, currency = _to_minor_units(balances, currency)

    imbalance = sum(amounts.values())
    if imbalance != 0:
        raise ValidationError(
            ErrorCode.UNBALANCED_BALANCES,
            f"Balances must sum to zero to be settled, got {Money(imbalance, currency)}.",
            field="balances",
        )

    creditors = [(-amt, uid) for uid, amt in amounts.items() if amt > 0]
    debtors = [(amt, uid) for uid, amt in amounts.items() if amt < 0]
    heapq.heapify(creditors)
    heapq.heapify(debtors)

    suggestions: list[SettlementSuggestion] = []
    while creditors and debtors:
        neg_credit, creditor_id = heapq.heappop(creditors)
        neg_debt, debtor_id = heapq.heappop(debtors)
        credit, debt = -neg_credit, -neg_debt

        transfer = min(credit, debt)
        suggestions.append(SettlementSuggestion(
            from_user_id=debtor_id,
            to_user_id=creditor_id,
            amount=Money(transfer, currency),
        ))

        if credit > transfer:
            heapq.heappush(creditors, (-(credit - transfer), creditor_id))
        if debt > transfer:
            heapq.heappush(debtors, (-(debt - transfer), debtor_id))

    logger.debug(
        "Simplified %d non-zero %s balances into %d transfers",
        sum(1 for amt in amounts.values() if amt), currency, len(suggestions),
    )
    return suggestions


def apply_settlements(
        balances: Mapping[str, Money | int],
        suggestions: Iterable[SettlementSuggestion],
        currency: str | None = None,
) -> dict[str, int]:
    """
    Returns the balances (int minor units) left after every suggested
    transfer is paid. The payer's balance rises, the recipient's falls.
    """
    amounts, currency = _to_minor_units(balances, currency)
    for suggestion in suggestions:
        if suggestion.currency != currency:
            raise CurrencyMismatchError([currency, suggestion.currency])
        amounts[suggestion.from_user_id] = amounts.get(suggestion.from_user_id, 0) + suggestion.amount.amount
        amounts[suggestion.to_user_id] = amounts.get(suggestion.to_user_id, 0) - suggestion.amount.amount
    return amounts


def suggest_group_settlements(
        group_id: str,
        expenses: Iterable[Expense],
        currency: str | None = None,
) -> list[SettlementSuggestion]:
    """Group balance fed straight into suggest_settlements()."""
    balances = calculate_group_balance(group_id, expenses, currency=currency)
    return suggest_settlements(balances, currency=currency)


def suggest_settlements_by_currency(
        expenses: Iterable[Expense],
        group_id: str | None = None,
) -> dict[str, list[SettlementSuggestion]]:
    """
    Settlement suggestions for every currency present, each computed on its
    own. Currencies are never netted against each other.
    """
    expenses = active_expenses(expenses, group_id=group_id)
    return {
        currency: suggest_settlements(
            calculate_net_balances(expenses, currency=currency, group_id=group_id),
            currency=currency,
        )
        for currency in currencies_of(expenses)
    }
