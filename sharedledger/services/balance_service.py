"""
services/balance_service.py — Per-user, per-pair, and per-group balances.

This file is the SINGLE SOURCE OF TRUTH for how balances are computed.
The canonical formula (calculate_net_balances) must not be reimplemented
elsewhere. Any change to how balances work is made here.

Layer rules:
  - No Flask imports. Pure functions over frozen Expense snapshots.
  - Returns dataclasses and plain dicts. Inputs are never mutated, so calling
    any function twice on the same collection gives identical results.

Currency rule:
  - Balances in different currencies are NEVER combined. Every function either
    works on one currency (default: the configured DEFAULT_CURRENCY) or keys
    its results by currency.

Expense filter:
  - Every function reads expenses through expense_service.active_expenses(),
    so settled expenses never count towards outstanding balances.
  - The optional `category` argument scopes a result to one spending category.
    Each expense balances on its own, so a category-scoped group balance still
    sums to zero.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable

from sharedledger.config import default_currency
from sharedledger.errors import CurrencyMismatchError
from sharedledger.models.expense import Category, Expense
from sharedledger.models.ledger import DebtSummary, UserDebts
from sharedledger.models.money import Money, validate_currency
from sharedledger.services.expense_service import active_expenses, currencies_of
from sharedledger.services.split_service import allocate_proportionally, paid_amounts

logger = logging.getLogger(__name__)


def _resolve_currency(currency: str | None) -> str:
    return validate_currency(currency if currency is not None else default_currency())


# ── Core formula ───────────────────────────────────────────────────────────

def expense_contributions(expense: Expense) -> dict[str, int]:
    """
    Net effect of one expense on each involved user, in minor units.

    Algorithm:
      1. Credit each payer for what they paid.
      2. Debit each participant for what they owe.

    A payer who is not a participant still gets credit, so the values sum to
    (total paid - total owed), which is zero for expenses built by
    expense_service.create_expense().
    """
    contributions: dict[str, int] = defaultdict(int)
    for payment in expense.paid_by:
        contributions[payment.user_id] += payment.amount
    for participant in expense.participants:
        contributions[participant.user_id] -= participant.owed_amount
    return dict(contributions)


def calculate_net_balances(
        expenses: Iterable[Expense],
        currency: str | None = None,
        group_id: str | None = None,
        category: Category | str | None = None,
) -> dict[str, int]:
    """
    Canonical balance computation: {user_id: net minor units}.

    Only active expenses in `currency` (and `group_id` and `category`, when
    given) count.
    Positive means others owe the user; negative means the user owes.
    """
    currency = _resolve_currency(currency)
    balances: dict[str, int] = defaultdict(int)
    for expense in active_expenses(
            expenses, group_id=group_id, currency=currency, category=category,
    ):
        for user_id, amount in expense_contributions(expense).items():
            balances[user_id] += amount
    return dict(balances)


# ── Per user ───────────────────────────────────────────────────────────────

def calculate_balance(
        user_id: str,
        expenses: Iterable[Expense],
        currency: str | None = None,
        category: Category | str | None = None,
) -> DebtSummary:
    """
    Aggregate balance of one user in one currency.

    Expenses in other currencies are ignored for this summary, not converted.
    Use calculate_balances_by_currency() to see every currency.

    Returns:
        DebtSummary with counterparty_id=None. total_owed sums the expenses
        where the user came out ahead, total_owing those where they came out
        behind. expense_count counts every active expense involving the user.
    """
    currency = _resolve_currency(currency)
    total_owed = total_owing = count = 0

    for expense in active_expenses(expenses, currency=currency, category=category):
        if not expense.involves(user_id):
            continue
        count += 1
        net = expense_contributions(expense).get(user_id, 0)
        if net > 0:
            total_owed += net
        else:
            total_owing -= net

    summary = DebtSummary(
        user_id=user_id,
        currency=currency,
        total_owed=total_owed,
        total_owing=total_owing,
        expense_count=count,
    )
    logger.debug(
        "Balance for %s in %s: net=%d over %d expenses",
        user_id, currency, summary.net_amount, count,
    )
    return summary


def calculate_balances_by_currency(
        user_id: str,
        expenses: Iterable[Expense],
        category: Category | str | None = None,
) -> dict[str, DebtSummary]:
    """One DebtSummary per currency the user has active expenses in."""
    expenses = list(expenses)
    involved = [
        e for e in active_expenses(expenses, category=category) if e.involves(user_id)
    ]
    return {
        currency: calculate_balance(user_id, involved, currency)
        for currency in currencies_of(involved)
    }


# ── Per pair ───────────────────────────────────────────────────────────────

def pairwise_coverage(expense: Expense) -> dict[tuple[str, str], int]:
    """
    Who paid for whom within one expense.

    Returns {(payer_id, participant_id): minor units}. Each participant's
    owed amount is attributed to the payers in proportion to what each paid,
    payers taken in first-payment order. A payer covering their own share is
    omitted. An expense with no payments yields {}.
    """
    paid = {uid: amount for uid, amount in paid_amounts(expense.paid_by).items() if amount > 0}
    if not paid:
        return {}

    payer_ids = list(paid)
    weights = [paid[uid] for uid in payer_ids]
    coverage: dict[tuple[str, str], int] = {}

    for participant in expense.participants:
        if participant.owed_amount == 0:
            continue
        portions = allocate_proportionally(participant.owed_amount, weights)
        for payer_id, portion in zip(payer_ids, portions):
            if payer_id != participant.user_id and portion:
                coverage[(payer_id, participant.user_id)] = portion
    return coverage


def get_user_debts(
        user_id: str,
        expenses: Iterable[Expense],
        currency: str | None = None,
        category: Category | str | None = None,
) -> UserDebts:
    """
    Pairwise debts between `user_id` and everyone they share an expense with.

    For each other user and currency:
        net = (what user_id paid on the other's behalf)
            - (what the other paid on user_id's behalf)

    Negative nets go to `owes`, positive to `owed`; pairs that net to zero
    are dropped. Each entry's expense_count is the number of expenses that
    moved money between the two. Lists are ordered by amount descending,
    then counterparty id.

    Args:
        currency: When provided, only that currency. Otherwise every currency
                  is reported, each pair/currency as its own entry.
        category: When provided, only expenses of that category.
    """
    if currency is not None:
        validate_currency(currency)

    owed_to_user: dict[tuple[str, str], int] = defaultdict(int)
    owed_by_user: dict[tuple[str, str], int] = defaultdict(int)
    counts: dict[tuple[str, str], int] = defaultdict(int)

    for expense in active_expenses(expenses, currency=currency, category=category):
        if not expense.involves(user_id):
            continue
        touched: set[str] = set()
        for (payer_id, participant_id), amount in pairwise_coverage(expense).items():
            if payer_id == user_id:
                owed_to_user[(participant_id, expense.currency)] += amount
                touched.add(participant_id)
            elif participant_id == user_id:
                owed_by_user[(payer_id, expense.currency)] += amount
                touched.add(payer_id)
        for other_id in touched:
            counts[(other_id, expense.currency)] += 1

    owes: list[DebtSummary] = []
    owed: list[DebtSummary] = []
    for key in counts:
        other_id, pair_currency = key
        summary = DebtSummary(
            user_id=user_id,
            currency=pair_currency,
            total_owed=owed_to_user.get(key, 0),
            total_owing=owed_by_user.get(key, 0),
            expense_count=counts[key],
            counterparty_id=other_id,
        )
        if summary.net_amount > 0:
            owed.append(summary)
        elif summary.net_amount < 0:
            owes.append(summary)

    def _order(s: DebtSummary):
        return (-s.amount, s.counterparty_id, s.currency)

    return UserDebts(
        user_id=user_id,
        owes=sorted(owes, key=_order),
        owed=sorted(owed, key=_order),
    )


# ── Per group ──────────────────────────────────────────────────────────────

def calculate_group_balance(
        group_id: str,
        expenses: Iterable[Expense],
        currency: str | None = None,
        member_ids: Iterable[str] = (),
        category: Category | str | None = None,
) -> dict[str, Money]:
    """
    Net balance of every user within one group: {user_id: Money}.

    Only active expenses with this group_id count, so a user's group balance
    is independent of their other expenses.

    Args:
        currency:   When provided, only that currency's expenses count. When
                    omitted, the group's expenses must all share one currency.
        member_ids: Users to report even if they have no activity (balance 0).
        category:   When provided, only expenses of that category.

    Raises:
        CurrencyMismatchError -- currency omitted and the group's active
                                 expenses span more than one currency.
    """
    expenses = active_expenses(expenses, group_id=group_id, category=category)

    if currency is None:
        found = currencies_of(expenses)
        if len(found) > 1:
            raise CurrencyMismatchError(
                found,
                f"Group {group_id} has expenses in {', '.join(found)}; "
                f"name one currency to compute its balance.",
            )
        currency = found[0] if found else default_currency()

    balances = calculate_net_balances(expenses, currency=currency, group_id=group_id)

    # Ensure every member appears, even if their net balance is zero.
    for member_id in member_ids:
        balances.setdefault(member_id, 0)

    return {uid: Money(amount, currency) for uid, amount in balances.items()}
