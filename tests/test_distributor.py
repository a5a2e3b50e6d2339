"""
Tests for weight distribution and the sorted merge-diff.
"""
import random
import pytest

from splitvote.engine.core.distributor import distribute
from splitvote.engine.core.reconcile import merge_diff, pairwise_delta
from splitvote.protocol.types.delegation import Delegation
from splitvote.protocol.types.common import InvalidShareZero, ShareSumExceedsDenominator
from splitvote.protocol.config.params import DENOMINATOR
from splitvote.protocol.crypto.addresses import address_sort_key
from conftest import addr


def _set(*shares):
    return [Delegation(delegatee=addr(i + 1), numerator=s) for i, s in enumerate(shares)]


# ═══════════════════════════════════════════════════════════════════
# DISTRIBUTE
# ═══════════════════════════════════════════════════════════════════

def test_split_60_40():
    adjustments = distribute(_set(6000, 4000), 1000)
    assert [(a.delegatee, a.amount) for a in adjustments] == [(addr(1), 600), (addr(2), 400)]


def test_amounts_are_floored():
    # 1/3 each of 100: 33 + 33 + 33, one unit is never granted
    adjustments = distribute(_set(3333, 3333, 3334), 100)
    assert [a.amount for a in adjustments] == [33, 33, 33]
    assert sum(a.amount for a in adjustments) == 99


def test_empty_set_distributes_nothing():
    assert distribute([], 10**18) == []


def test_zero_balance():
    assert [a.amount for a in distribute(_set(5000, 5000), 0)] == [0, 0]


def test_zero_share_rejected():
    with pytest.raises(InvalidShareZero) as exc:
        distribute(_set(5000, 0), 1000)
    assert exc.value.delegatee == addr(2)


def test_share_sum_over_denominator_rejected():
    with pytest.raises(ShareSumExceedsDenominator) as exc:
        distribute(_set(6000, 4001), 1000)
    assert exc.value.total == 10_001
    assert exc.value.denominator == DENOMINATOR


def test_large_balances_do_not_lose_precision():
    balance = 2**208 - 1
    adjustments = distribute(_set(1, DENOMINATOR - 1), balance)
    assert adjustments[0].amount == balance // DENOMINATOR
    assert adjustments[1].amount == balance * (DENOMINATOR - 1) // DENOMINATOR


def test_remainder_is_inert():
    """
    Votes never exceed the balance, and equal it only when the shares cover
    the whole denominator and no truncation happens.
    """
    rng = random.Random(1234)
    for _ in range(500):
        n = rng.randint(1, 6)
        cuts = sorted(rng.sample(range(1, DENOMINATOR), n - 1)) if n > 1 else []
        full = [b - a for a, b in zip([0] + cuts, cuts + [DENOMINATOR])]
        partial = full[:-1] + [max(1, full[-1] - rng.randint(0, full[-1] - 1))]
        balance = rng.randint(0, 10**24)

        full_total = sum(a.amount for a in distribute(_set(*full), balance))
        partial_total = sum(a.amount for a in distribute(_set(*partial), balance))

        assert full_total <= balance
        assert partial_total <= full_total
        if balance % DENOMINATOR == 0:
            assert full_total == balance
        if sum(partial) < DENOMINATOR and balance >= DENOMINATOR:
            assert partial_total < balance


# ═══════════════════════════════════════════════════════════════════
# MERGE DIFF
# ═══════════════════════════════════════════════════════════════════

def test_merge_diff_identical_inputs_yield_nothing():
    dist = [(addr(1), 600), (addr(2), 400)]
    assert list(merge_diff(dist, list(dist), address_sort_key)) == []


def test_merge_diff_redelegation():
    old = [(addr(1), 1000)]
    new = [(addr(2), 1000)]
    assert list(merge_diff(old, new, address_sort_key)) == [(addr(1), -1000), (addr(2), 1000)]


def test_merge_diff_interleaved():
    old = [(addr(1), 100), (addr(3), 300), (addr(5), 500)]
    new = [(addr(2), 20), (addr(3), 330), (addr(5), 500), (addr(6), 60)]
    assert list(merge_diff(old, new, address_sort_key)) == [
        (addr(1), -100),
        (addr(2), 20),
        (addr(3), 30),
        (addr(6), 60),
    ]


def test_merge_diff_one_side_empty():
    side = [(addr(1), 5), (addr(2), 0)]
    assert list(merge_diff(side, [], address_sort_key)) == [(addr(1), -5)]
    assert list(merge_diff([], side, address_sort_key)) == [(addr(1), 5)]


def test_merge_diff_orders_by_payload_not_string():
    # Sorting the bech32 strings would give a different order for some payloads
    a, b = addr(0x10), addr(0xF0)
    out = list(merge_diff([(b, 1)], [(a, 1)], address_sort_key))
    assert out == [(a, 1), (b, -1)]


def test_pairwise_delta_signs():
    before = [(addr(1), 600), (addr(2), 400)]
    after = [(addr(1), 300), (addr(2), 200)]
    assert pairwise_delta(before, after) == [(addr(1), -300), (addr(2), -200)]
    assert pairwise_delta(before, after, sign=-1) == [(addr(1), 300), (addr(2), 200)]
