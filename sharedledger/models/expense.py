"""
models/expense.py — Expense, participant, and split-rule value types.

No business logic. No imports from services or routes.

Key design points:
  - Every type here is a frozen dataclass. Collections are tuples, so an
    Expense is hashable and can be used as a memoisation key by callers.
  - Amounts are int minor units. Percentages are Decimal. Never float.
  - Participant.owed_amount / paid_amount / net_amount are derived by
    services/split_service.py and never set by hand.
  - SplitType and Category are str enums so they can be loaded from and
    dumped to plain data without repeating string literals.
  - The four split rules form a closed set (SplitRule). Each variant carries
    only the per-participant values it needs.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Union

from sharedledger.models.money import Money


# ── Enum Definitions ───────────────────────────────────────────────────────

class SplitType(str, enum.Enum):
    EQUAL      = "equal"
    PERCENTAGE = "percentage"
    EXACT      = "exact"
    SHARES     = "shares"


class Category(str, enum.Enum):
    FOOD            = "food"
    TRANSPORT       = "transport"
    ACCOMMODATION   = "accommodation"
    ENTERTAINMENT   = "entertainment"
    UTILITIES       = "utilities"
    SHOPPING        = "shopping"
    OTHER           = "other"


# ── Split rules ────────────────────────────────────────────────────────────
# Participant order is significant: remainders are handed out in this order.

@dataclass(frozen=True)
class EqualSplit:
    user_ids: tuple[str, ...]

    split_type = SplitType.EQUAL

    @property
    def entries(self) -> tuple[tuple[str, None], ...]:
        return tuple((uid, None) for uid in self.user_ids)


@dataclass(frozen=True)
class PercentageSplit:
    percentages: tuple[tuple[str, Decimal], ...]

    split_type = SplitType.PERCENTAGE

    @property
    def entries(self) -> tuple[tuple[str, Decimal], ...]:
        return self.percentages


@dataclass(frozen=True)
class ExactSplit:
    amounts: tuple[tuple[str, int], ...]

    split_type = SplitType.EXACT

    @property
    def entries(self) -> tuple[tuple[str, int], ...]:
        return self.amounts


@dataclass(frozen=True)
class SharesSplit:
    shares: tuple[tuple[str, int], ...]

    split_type = SplitType.SHARES

    @property
    def entries(self) -> tuple[tuple[str, int], ...]:
        return self.shares


SplitRule = Union[EqualSplit, PercentageSplit, ExactSplit, SharesSplit]


# ── Inputs ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ParticipantShare:
    """
    One participant as submitted with an expense.

    split_value meaning depends on the split type:
      percentage -> Decimal percentage points (0-100)
      exact      -> int minor units
      shares     -> positive int share count
      equal      -> ignored (normally None)
    """

    user_id: str
    split_value: Decimal | int | None = None


@dataclass(frozen=True)
class Payment:
    """Amount (minor units) a user paid towards an expense."""

    user_id: str
    amount: int


# ── Computed ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Participant:
    user_id: str
    split_value: Decimal | int | None
    owed_amount: int
    paid_amount: int

    @property
    def net_amount(self) -> int:
        return self.paid_amount - self.owed_amount


@dataclass(frozen=True)
class Expense:
    id: str
    title: str
    total: Money
    split_type: SplitType
    participants: tuple[Participant, ...]
    paid_by: tuple[Payment, ...]
    group_id: str | None = None
    category: Category = Category.OTHER
    settled: bool = False

    @property
    def currency(self) -> str:
        return self.total.currency

    @property
    def payer_ids(self) -> tuple[str, ...]:
        """Distinct payer ids in first-payment order."""
        return tuple(dict.fromkeys(p.user_id for p in self.paid_by))

    def involves(self, user_id: str) -> bool:
        """True if the user is a participant or paid something."""
        return (
            any(p.user_id == user_id for p in self.participants)
            or any(p.user_id == user_id for p in self.paid_by)
        )

    def participant(self, user_id: str) -> Participant | None:
        return next((p for p in self.participants if p.user_id == user_id), None)

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Expense id={self.id} "
            f"total={self.total} "
            f"split_type={self.split_type.value} "
            f"group_id={self.group_id}>"
        )
