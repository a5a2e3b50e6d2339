# MIT License
# Copyright (c) 2025 Hashborn

from typing import List, Sequence
from ...protocol.types.delegation import Delegation, DelegationAdjustment
from ...protocol.types.common import InvalidShareZero, ShareSumExceedsDenominator, InvariantViolation
from ...protocol.config.params import DENOMINATOR


def distribute(delegations: Sequence[Delegation], balance: int,
               denominator: int = DENOMINATOR) -> List[DelegationAdjustment]:
    """
    Splits `balance` across a delegation set.

    Each delegatee gets floor(balance * numerator / denominator). Anything not
    covered by the numerators, and any truncation dust, is not granted to
    anyone (inert remainder).

    Args:
        delegations: Sorted, duplicate-free delegation set
        balance: Delegator balance
        denominator: Share denominator

    Returns:
        One adjustment per delegation, in the same order
    """
    total = 0
    for d in delegations:
        if d.numerator == 0:
            raise InvalidShareZero(d.delegatee)
        total += d.numerator
    if total > denominator:
        raise ShareSumExceedsDenominator(total, denominator)

    # Python ints are unbounded: balance * numerator never overflows
    adjustments = [
        DelegationAdjustment(delegatee=d.delegatee, amount=balance * d.numerator // denominator)
        for d in delegations
    ]

    granted = sum(a.amount for a in adjustments)
    if granted > balance:
        raise InvariantViolation(f"Distributed {granted} votes from a balance of {balance}")

    return adjustments
