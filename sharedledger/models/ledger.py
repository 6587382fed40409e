"""
models/ledger.py — Derived ledger results.

DebtSummary and SettlementSuggestion are always recomputed from the expense
collection on demand. They are never stored and never edited.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sharedledger.models.money import Money


@dataclass(frozen=True)
class DebtSummary:
    """
    Balance of one user, either overall (counterparty_id is None) or towards
    one other user.

    total_owed  -- minor units others owe this user.
    total_owing -- minor units this user owes others.
    """

    user_id: str
    currency: str
    total_owed: int = 0
    total_owing: int = 0
    expense_count: int = 0
    counterparty_id: str | None = None

    @property
    def net_amount(self) -> int:
        return self.total_owed - self.total_owing

    @property
    def amount(self) -> int:
        """Absolute size of the net balance."""
        return abs(self.net_amount)

    @property
    def net(self) -> Money:
        return Money(self.net_amount, self.currency)


@dataclass(frozen=True)
class UserDebts:
    """Pairwise debts of one user: who they owe and who owes them."""

    user_id: str
    owes: list[DebtSummary] = field(default_factory=list)
    owed: list[DebtSummary] = field(default_factory=list)


@dataclass(frozen=True)
class SettlementSuggestion:
    """A proposed transfer. Not a record of a payment that happened."""

    from_user_id: str
    to_user_id: str
    amount: Money

    @property
    def currency(self) -> str:
        return self.amount.currency
