"""
tests/unit/test_equal_split.py — Unit tests for equal splits in split_service.

What this file proves:
  - Equal split guarantees sum(owed) == total for ANY amount and participant count
  - When the total is not evenly divisible, the leftover minor units go to the
    FIRST participants in list order, one unit each
  - Reordering participants moves the remainder with them
  - Single participant receives the full amount
  - All owed amounts are int minor units, never float or Decimal
  - split_payment_equally() divides a payment the same way

Unit test constraints:
  - No Flask. Pure integer arithmetic.
"""

from __future__ import annotations

import pytest

from sharedledger.models.expense import ParticipantShare, Payment, SplitType
from sharedledger.models.money import Money
from sharedledger.services.split_service import compute_split, split_payment_equally


# ── Helpers ────────────────────────────────────────────────────────────────

def _equal(amount: int, user_ids: list[str], paid_by=()) -> list:
    return compute_split(
        Money(amount, "USD"),
        [ParticipantShare(uid) for uid in user_ids],
        SplitType.EQUAL,
        paid_by,
    )


def _assert_conserved(result, expected_amount: int) -> None:
    """sum(owed_amount) == total exactly. Tolerance: zero."""
    total = sum(p.owed_amount for p in result)
    assert total == expected_amount, (
        f"Split sum {total} != expected amount {expected_amount}"
    )


# ── Tests ──────────────────────────────────────────────────────────────────

def test_even_split_two_participants():
    """$100.00 split between two participants → $50.00 each."""
    result = _equal(10000, ["alice", "bob"])

    assert [p.owed_amount for p in result] == [5000, 5000]
    _assert_conserved(result, 10000)


def test_even_split_three_participants():
    """$90.00 / 3 = $30.00 each. No remainder."""
    result = _equal(9000, ["a", "b", "c"])

    assert all(p.owed_amount == 3000 for p in result)
    _assert_conserved(result, 9000)


def test_one_cent_remainder_goes_to_first_participant():
    """
    $10.00 / 3 = 333 cents each, 1 cent left over.
    The first participant in list order absorbs it.
    """
    result = _equal(1000, ["a", "b", "c"])

    assert [p.owed_amount for p in result] == [334, 333, 333]
    _assert_conserved(result, 1000)


def test_two_cent_remainder_goes_to_first_two():
    """$0.11 / 3 = 3 cents each, 2 left over → the first two owe 4."""
    result = _equal(11, ["a", "b", "c"])

    assert [p.owed_amount for p in result] == [4, 4, 3]
    _assert_conserved(result, 11)


def test_remainder_follows_list_order_not_user_id():
    """Remainder order is the caller's list order, never a sort by id."""
    result = _equal(1000, ["zoe", "adam", "mia"])

    assert [(p.user_id, p.owed_amount) for p in result] == [
        ("zoe", 334), ("adam", 333), ("mia", 333),
    ]


def test_single_participant_gets_full_amount():
    result = _equal(4321, ["solo"])

    assert len(result) == 1
    assert result[0].owed_amount == 4321


def test_total_smaller_than_participant_count():
    """2 cents across 3 people: first two owe 1, the last owes 0."""
    result = _equal(2, ["a", "b", "c"])

    assert [p.owed_amount for p in result] == [1, 1, 0]
    _assert_conserved(result, 2)


def test_result_order_matches_input_order():
    ids = ["u5", "u1", "u3", "u2"]
    result = _equal(10000, ids)
    assert [p.user_id for p in result] == ids


def test_amounts_are_int():
    result = _equal(1000, ["a", "b", "c"])
    assert all(type(p.owed_amount) is int for p in result)


@pytest.mark.parametrize("amount", [1, 7, 99, 100, 101, 9999, 1000001])
@pytest.mark.parametrize("n", [1, 2, 3, 6, 7])
def test_conservation_for_many_shapes(amount, n):
    result = _equal(amount, [f"u{i}" for i in range(n)])
    _assert_conserved(result, amount)
    owed = [p.owed_amount for p in result]
    assert max(owed) - min(owed) <= 1


def test_paid_amount_and_net():
    """Alice paid the whole $30.00; everyone owes $10.00."""
    result = _equal(3000, ["alice", "bob", "carol"], [Payment("alice", 3000)])

    by_id = {p.user_id: p for p in result}
    assert by_id["alice"].paid_amount == 3000
    assert by_id["alice"].net_amount == 2000
    assert by_id["bob"].paid_amount == 0
    assert by_id["bob"].net_amount == -1000
    assert sum(p.net_amount for p in result) == 0


# ── split_payment_equally ──────────────────────────────────────────────────

def test_split_payment_equally_first_payer_absorbs_remainder():
    payments = split_payment_equally(Money(1001, "USD"), ["x", "y"])
    assert payments == [Payment("x", 501), Payment("y", 500)]


def test_split_payment_equally_ignores_repeated_payer():
    payments = split_payment_equally(Money(1000, "USD"), ["x", "y", "x"])
    assert payments == [Payment("x", 500), Payment("y", 500)]
