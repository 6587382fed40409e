"""
services/split_service.py — Per-expense split computation.

This file is the SINGLE SOURCE OF TRUTH for how an expense total is divided
among its participants. The ledger and settlement services consume its
output; they never re-divide a total themselves.

Guarantees (checked before returning):
  - Every owed amount is an int >= 0.
  - sum(owed_amount) == total.amount exactly. No rounding residue.
  - Identical input produces identical output, including which participants
    absorb a remainder (list order is the tie-break, never a sort).

Layer rules:
  - No Flask imports. Pure functions over frozen values.
  - Invalid configurations raise ValidationError before any amount is
    computed. No partial result is ever returned.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

from sharedledger.errors import AppError, ErrorCode, ValidationError
from sharedledger.models.expense import (
    EqualSplit,
    ExactSplit,
    Participant,
    ParticipantShare,
    Payment,
    PercentageSplit,
    SharesSplit,
    SplitRule,
    SplitType,
)
from sharedledger.models.money import Money

logger = logging.getLogger(__name__)

PERCENTAGE_TOLERANCE = Decimal("0.01")
_HUNDRED = Decimal("100")


# ── Integer allocation ─────────────────────────────────────────────────────

def distribute_remainder(amounts: list[int], remainder: int) -> list[int]:
    """
    Hands out `remainder` minor units one at a time in list order.

    A positive remainder adds 1 to the first entries; a negative remainder
    subtracts 1, skipping entries already at zero. Cycles if |remainder|
    exceeds the list length. Returns a new list.
    """
    result = list(amounts)
    if not result:
        return result

    step = 1 if remainder > 0 else -1
    left = abs(remainder)
    i = 0
    while left > 0:
        idx = i % len(result)
        if step > 0 or result[idx] > 0:
            result[idx] += step
            left -= 1
        elif not any(result):
            # Nothing left to take from. Cannot happen for a positive total.
            raise AppError(
                ErrorCode.INTERNAL_ERROR,
                f"Cannot remove {left} more minor units from an all-zero split.",
                500,
            )
        i += 1
    return result


def allocate_proportionally(total: int, weights: Sequence[int]) -> list[int]:
    """
    Splits int `total` in proportion to int `weights`.

    Each entry gets floor(total * weight / sum(weights)); the remainder goes
    one unit at a time to the first entries in list order. The result sums to
    `total` exactly.
    """
    weight_sum = sum(weights)
    if weight_sum <= 0:
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            "Proportional allocation needs a positive weight sum.",
            500,
        )
    base = [total * w // weight_sum for w in weights]
    return distribute_remainder(base, total - sum(base))


# ── Rule construction ──────────────────────────────────────────────────────

def _as_int(value, code: str, message: str, field: str) -> int:
    """Coerces integral Decimals to int; rejects floats, bools and fractions."""
    if isinstance(value, bool) or value is None or isinstance(value, float):
        raise ValidationError(code, message, field=field)
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        return int(value)
    raise ValidationError(code, message, field=field)


def _as_percentage(value, user_id: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError(
            ErrorCode.MISSING_SPLIT_VALUE,
            f"Participant {user_id} has no percentage.",
            field="participants",
        )
    try:
        pct = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        pct = None
    if pct is None or not pct.is_finite() or pct < 0 or pct > _HUNDRED:
        raise ValidationError(
            ErrorCode.INVALID_PERCENTAGE,
            f"Percentage for participant {user_id} must be between 0 and 100, got {value!r}.",
            field="participants",
        )
    return pct


def parse_split_type(split_type: SplitType | str) -> SplitType:
    """Raises ValidationError(INVALID_SPLIT_TYPE) for unknown values."""
    try:
        return SplitType(split_type)
    except ValueError:
        raise ValidationError(
            ErrorCode.INVALID_SPLIT_TYPE,
            f"'{split_type}' is not a valid split type. "
            f"Valid values: {', '.join(t.value for t in SplitType)}.",
            field="split_type",
        ) from None


def build_split_rule(
        split_type: SplitType | str,
        participants: Iterable[ParticipantShare],
) -> SplitRule:
    """
    Maps a generic participant list onto the matching split-rule variant.

    Raises:
        ValidationError(INVALID_SPLIT_TYPE)     -- unknown split type.
        ValidationError(EMPTY_PARTICIPANTS)     -- no participants.
        ValidationError(DUPLICATE_PARTICIPANT)  -- same user twice.
        ValidationError(MISSING_SPLIT_VALUE)    -- non-equal split without a value.
        ValidationError(INVALID_PERCENTAGE / INVALID_EXACT_AMOUNT / INVALID_SHARES)
    """
    split_type = parse_split_type(split_type)

    participants = list(participants)
    if not participants:
        raise ValidationError(
            ErrorCode.EMPTY_PARTICIPANTS,
            "An expense needs at least one participant.",
            field="participants",
        )

    seen: set[str] = set()
    for p in participants:
        if p.user_id in seen:
            raise ValidationError(
                ErrorCode.DUPLICATE_PARTICIPANT,
                f"User {p.user_id} appears more than once in the participant list.",
                field="participants",
            )
        seen.add(p.user_id)

    if split_type == SplitType.EQUAL:
        return EqualSplit(tuple(p.user_id for p in participants))

    for p in participants:
        if p.split_value is None:
            raise ValidationError(
                ErrorCode.MISSING_SPLIT_VALUE,
                f"Participant {p.user_id} needs a split value for a {split_type.value} split.",
                field="participants",
            )

    if split_type == SplitType.PERCENTAGE:
        return PercentageSplit(tuple(
            (p.user_id, _as_percentage(p.split_value, p.user_id)) for p in participants
        ))

    if split_type == SplitType.EXACT:
        amounts = []
        for p in participants:
            amount = _as_int(
                p.split_value,
                ErrorCode.INVALID_EXACT_AMOUNT,
                f"Exact amount for participant {p.user_id} must be a whole number "
                f"of minor units, got {p.split_value!r}.",
                "participants",
            )
            if amount < 0:
                raise ValidationError(
                    ErrorCode.INVALID_EXACT_AMOUNT,
                    f"Exact amount for participant {p.user_id} must not be negative.",
                    field="participants",
                )
            amounts.append((p.user_id, amount))
        return ExactSplit(tuple(amounts))

    shares = []
    for p in participants:
        share = _as_int(
            p.split_value,
            ErrorCode.INVALID_SHARES,
            f"Share count for participant {p.user_id} must be a positive integer, "
            f"got {p.split_value!r}.",
            "participants",
        )
        if share <= 0:
            raise ValidationError(
                ErrorCode.INVALID_SHARES,
                f"Share count for participant {p.user_id} must be a positive integer, "
                f"got {share}.",
                field="participants",
            )
        shares.append((p.user_id, share))
    return SharesSplit(tuple(shares))


# ── Owed amounts per rule ──────────────────────────────────────────────────

def _equal_owed(total: int, rule: EqualSplit) -> list[int]:
    n = len(rule.user_ids)
    base = total // n
    return distribute_remainder([base] * n, total - base * n)


def _percentage_owed(total: int, rule: PercentageSplit) -> list[int]:
    """
    Rounds each total * pct / 100 half-up, then corrects the rounding residue
    one minor unit at a time starting from the FIRST participant in list
    order, cycling and skipping 0% participants. This is the same list-order
    tie-break that equal and shares splits use for their remainders, so the
    last participant is not singled out.
    """
    pct_sum = sum((pct for _, pct in rule.percentages), Decimal("0"))
    if abs(pct_sum - _HUNDRED) > PERCENTAGE_TOLERANCE:
        raise ValidationError(
            ErrorCode.PERCENTAGE_SUM_MISMATCH,
            f"Percentages must add up to 100, got {pct_sum}.",
            field="participants",
        )
    with localcontext() as ctx:
        # Wide enough that total * pct / 100 is exact before quantizing.
        ctx.prec = max(
            ctx.prec,
            len(str(abs(total))) + max(len(pct.as_tuple().digits) for _, pct in rule.percentages) + 3,
        )
        rounded = [
            int((Decimal(total) * pct / _HUNDRED).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
            for _, pct in rule.percentages
        ]

    # A 0% participant never absorbs a rounding correction.
    eligible = [i for i, (_, pct) in enumerate(rule.percentages) if pct > 0]
    corrected = distribute_remainder([rounded[i] for i in eligible], total - sum(rounded))
    for i, amount in zip(eligible, corrected):
        rounded[i] = amount
    return rounded


def _exact_owed(total: int, rule: ExactSplit) -> list[int]:
    owed = [amount for _, amount in rule.amounts]
    if sum(owed) != total:
        raise ValidationError(
            ErrorCode.EXACT_SUM_MISMATCH,
            f"Exact amounts ({sum(owed)}) do not equal the expense total ({total}).",
            field="participants",
        )
    return owed


def _shares_owed(total: int, rule: SharesSplit) -> list[int]:
    return allocate_proportionally(total, [share for _, share in rule.shares])


def owed_amounts(total: int, rule: SplitRule) -> list[int]:
    """Owed minor units per participant, in the rule's participant order."""
    if isinstance(rule, EqualSplit):
        return _equal_owed(total, rule)
    if isinstance(rule, PercentageSplit):
        return _percentage_owed(total, rule)
    if isinstance(rule, ExactSplit):
        return _exact_owed(total, rule)
    if isinstance(rule, SharesSplit):
        return _shares_owed(total, rule)
    raise TypeError(f"Unknown split rule: {type(rule).__name__}")


# ── Payments ───────────────────────────────────────────────────────────────

def _validate_payments(paid_by: Sequence[Payment]) -> None:
    for payment in paid_by:
        amount = payment.amount
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValidationError(
                ErrorCode.INVALID_PAYMENT,
                f"Payment by {payment.user_id} must be a non-negative whole number "
                f"of minor units, got {amount!r}.",
                field="paid_by",
            )


def paid_amounts(paid_by: Iterable[Payment]) -> dict[str, int]:
    """Sums payments per user id, keeping first-payment order."""
    totals: dict[str, int] = {}
    for payment in paid_by:
        totals[payment.user_id] = totals.get(payment.user_id, 0) + payment.amount
    return totals


def split_payment_equally(total: Money, payer_ids: Sequence[str]) -> list[Payment]:
    """
    Builds Payments for a bare list of payers, dividing `total` like an equal
    split: the remainder goes to the first payers in list order.
    """
    payer_ids = list(dict.fromkeys(payer_ids))
    if not payer_ids:
        raise ValidationError(
            ErrorCode.INVALID_PAYMENT,
            "At least one payer is required.",
            field="paid_by",
        )
    amounts = _equal_owed(total.amount, EqualSplit(tuple(payer_ids)))
    return [Payment(uid, amount) for uid, amount in zip(payer_ids, amounts)]


# ── Public entry point ─────────────────────────────────────────────────────

def compute_split(
        total: Money,
        participants: Iterable[ParticipantShare],
        split_type: SplitType | str,
        paid_by: Iterable[Payment] = (),
) -> list[Participant]:
    """
    Divides one expense total among its participants.

    Args:
        total:        Expense total. Must be a positive Money.
        participants: Ordered participants; order decides who absorbs
                      remainders.
        split_type:   equal | percentage | exact | shares.
        paid_by:      Payments towards the expense. A participant's
                      paid_amount is the sum of their payments (0 if none).

    Returns:
        One Participant per input participant, in input order.

    Raises:
        ValidationError -- see build_split_rule(), plus INVALID_AMOUNT for a
                           non-positive total, PERCENTAGE_SUM_MISMATCH,
                           EXACT_SUM_MISMATCH and INVALID_PAYMENT.
    """
    if not isinstance(total, Money) or total.amount <= 0:
        raise ValidationError(
            ErrorCode.INVALID_AMOUNT,
            f"Expense total must be a positive amount, got {total!r}.",
            field="total",
        )

    participants = list(participants)
    paid_by = list(paid_by)
    rule = build_split_rule(split_type, participants)
    _validate_payments(paid_by)

    owed = owed_amounts(total.amount, rule)

    # Must always hold. A failure here is a programming error.
    if sum(owed) != total.amount or any(amount < 0 for amount in owed):
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            f"{rule.split_type.value} split produced {owed} for total {total.amount}. "
            f"This is a bug, please report it.",
            500,
        )

    paid = paid_amounts(paid_by)
    result = [
        Participant(
            user_id=p.user_id,
            split_value=value,
            owed_amount=amount,
            paid_amount=paid.get(p.user_id, 0),
        )
        for p, (_, value), amount in zip(participants, rule.entries, owed)
    ]

    logger.debug(
        "Computed %s split of %s across %d participants: %s",
        rule.split_type.value,
        total,
        len(result),
        owed,
    )
    return result
