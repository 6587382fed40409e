"""
services/expense_service.py — Building, editing, and filtering expense snapshots.

Expenses are frozen values owned by the caller. Every function here returns a
new Expense (or a new list); nothing is mutated and nothing is stored.

Rules enforced here:
  - Computed participant fields always come from split_service.compute_split().
    They are recomputed on every edit and never copied from input.
  - sum(paid_by.amount) == total.amount (PAYMENT_SUM_MISMATCH, 422).
  - active_expenses() is the ONLY sanctioned filter for balance purposes.
    Settled expenses are excluded unless include_settled=True.

Layer rules:
  - No Flask imports. Receives plain values; returns Expense or raises AppError.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence

from sharedledger.errors import AppError, ErrorCode, ValidationError
from sharedledger.models.expense import (
    Category,
    Expense,
    ParticipantShare,
    Payment,
    SplitType,
)
from sharedledger.models.money import Money
from sharedledger.services.split_service import (
    compute_split,
    parse_split_type,
    split_payment_equally,
)


# ── Private helpers ────────────────────────────────────────────────────────

def _normalise_payments(total: Money, paid_by: Sequence[Payment | str]) -> list[Payment]:
    """
    Accepts either Payments or bare payer ids.

    Bare ids split the total equally among the payers; mixing the two forms
    in one list is rejected.
    """
    paid_by = list(paid_by)
    if paid_by and all(isinstance(p, str) for p in paid_by):
        return split_payment_equally(total, paid_by)
    if not all(isinstance(p, Payment) for p in paid_by):
        raise ValidationError(
            ErrorCode.INVALID_PAYMENT,
            "paid_by must be a list of payments or a list of payer ids, not a mix.",
            field="paid_by",
        )
    return paid_by


def _parse_category(category: Category | str) -> Category:
    try:
        return Category(category)
    except ValueError:
        raise ValidationError(
            ErrorCode.INVALID_CATEGORY,
            f"'{category}' is not a valid category. "
            f"Valid values: {', '.join(c.value for c in Category)}.",
            field="category",
        ) from None


def _validate_payment_sum(payments: Sequence[Payment], total: Money) -> None:
    """
    Raises PAYMENT_SUM_MISMATCH (422) if the payments do not cover the total
    exactly. Integer arithmetic only.
    """
    paid = sum(p.amount for p in payments)
    if paid != total.amount:
        raise ValidationError(
            ErrorCode.PAYMENT_SUM_MISMATCH,
            f"Payments ({Money(paid, total.currency)}) do not equal the expense "
            f"total ({total}).",
            field="paid_by",
        )


# ── Public service functions ───────────────────────────────────────────────

def create_expense(
        expense_id: str,
        title: str,
        total: Money,
        split_type: SplitType | str,
        participants: Iterable[ParticipantShare],
        paid_by: Sequence[Payment | str],
        group_id: str | None = None,
        category: Category | str = Category.OTHER,
        settled: bool = False,
) -> Expense:
    """
    Builds a new Expense snapshot with computed participant amounts.

    Args:
        paid_by: Payments, or bare payer ids to split the total equally
                 among them (first payers absorb any remainder).

    Raises:
        ValidationError -- any compute_split() failure, or
                           PAYMENT_SUM_MISMATCH if payments != total.
    """
    participants = list(participants)
    payments = _normalise_payments(total, paid_by) if isinstance(total, Money) else list(paid_by)

    computed = compute_split(total, participants, split_type, payments)
    _validate_payment_sum(payments, total)

    return Expense(
        id=expense_id,
        title=title,
        total=total,
        split_type=parse_split_type(split_type),
        participants=tuple(computed),
        paid_by=tuple(payments),
        group_id=group_id,
        category=_parse_category(category),
        settled=settled,
    )


def participant_shares(expense: Expense) -> list[ParticipantShare]:
    """The input form of an expense's participants, for re-splitting."""
    return [ParticipantShare(p.user_id, p.split_value) for p in expense.participants]


def edit_expense(expense: Expense, **changes) -> Expense:
    """
    Returns a new Expense with `changes` applied and every computed field
    recomputed.

    Accepted keys: title, total, split_type, participants, paid_by,
    group_id, category, settled.

    Changing split_type without new participants reuses the existing user
    ids. Their old split values are carried over only when the split type is
    unchanged, since a percentage means nothing to a shares split.
    """
    unknown = set(changes) - {
        "title", "total", "split_type", "participants", "paid_by",
        "group_id", "category", "settled",
    }
    if unknown:
        raise TypeError(f"edit_expense() got unexpected fields: {', '.join(sorted(unknown))}")

    split_type = parse_split_type(changes.get("split_type", expense.split_type))

    if "participants" in changes:
        participants = changes["participants"]
    elif split_type == expense.split_type:
        participants = participant_shares(expense)
    else:
        participants = [ParticipantShare(p.user_id) for p in expense.participants]

    total = changes.get("total", expense.total)
    if "paid_by" in changes:
        paid_by = changes["paid_by"]
    elif total == expense.total:
        paid_by = list(expense.paid_by)
    else:
        # Same payers, re-divided over the new total.
        paid_by = list(expense.payer_ids)

    return create_expense(
        expense_id=expense.id,
        title=changes.get("title", expense.title),
        total=total,
        split_type=split_type,
        participants=participants,
        paid_by=paid_by,
        group_id=changes.get("group_id", expense.group_id),
        category=changes.get("category", expense.category),
        settled=changes.get("settled", expense.settled),
    )


def set_settled(expense: Expense, settled: bool = True) -> Expense:
    """Settlement toggle. Amounts are unaffected, so nothing is recomputed."""
    return dataclasses.replace(expense, settled=settled)


def find_expense(expenses: Iterable[Expense], expense_id: str) -> Expense:
    """Returns the expense with `expense_id` or raises EXPENSE_NOT_FOUND (404)."""
    for expense in expenses:
        if expense.id == expense_id:
            return expense
    raise AppError(
        ErrorCode.EXPENSE_NOT_FOUND,
        f"Expense {expense_id} does not exist.",
        404,
    )


def active_expenses(
        expenses: Iterable[Expense],
        group_id: str | None = None,
        currency: str | None = None,
        include_settled: bool = False,
        category: Category | str | None = None,
) -> list[Expense]:
    """
    Returns the expenses that count towards outstanding balances.

    Args:
        group_id:        When provided, only expenses of that group.
        currency:        When provided, only expenses in that currency.
                         Other currencies are skipped, never converted.
        include_settled: Settled expenses are excluded unless True.
        category:        When provided, only expenses of that category.
                         Used for the category-scoped balance view.

    Raises:
        ValidationError(INVALID_CATEGORY) -- unknown category.
    """
    if category is not None:
        category = _parse_category(category)
    return [
        e for e in expenses
        if (include_settled or not e.settled)
        and (group_id is None or e.group_id == group_id)
        and (currency is None or e.currency == currency)
        and (category is None or e.category == category)
    ]


def currencies_of(expenses: Iterable[Expense]) -> list[str]:
    """Distinct currencies in sorted order."""
    return sorted({e.currency for e in expenses})
