# MIT License
# Copyright (c) 2025 Hashborn

"""
Sorted merge-diff shared by delegation changes and balance moves.
"""
from typing import Callable, Iterator, List, Sequence, Tuple, TypeVar, Any
from ...protocol.types.common import InvariantViolation

K = TypeVar("K")


def merge_diff(
    old: Sequence[Tuple[K, int]],
    new: Sequence[Tuple[K, int]],
    sort_key: Callable[[K], Any],
) -> Iterator[Tuple[K, int]]:
    """
    Walks two key-sorted (key, amount) sequences and yields (key, new - old)
    for every key whose net change is non-zero.

    Keys present only in `old` yield a negative delta, keys only in `new` a
    positive one. Each key is yielded at most once.
    """
    i = j = 0
    while i < len(old) or j < len(new):
        if i < len(old) and j < len(new) and old[i][0] == new[j][0]:
            delta = new[j][1] - old[i][1]
            key = old[i][0]
            i += 1
            j += 1
        elif j >= len(new) or (i < len(old) and sort_key(old[i][0]) < sort_key(new[j][0])):
            key, delta = old[i][0], -old[i][1]
            i += 1
        else:
            key, delta = new[j][0], new[j][1]
            j += 1

        if delta != 0:
            yield key, delta


def pairwise_delta(before: Sequence[Tuple[K, int]], after: Sequence[Tuple[K, int]],
                   sign: int = 1) -> List[Tuple[K, int]]:
    """
    Per-key `sign * (after - before)` for two distributions of the same set.

    Both sequences must list the same keys in the same order.
    """
    out = []
    for (key, amount_before), (key_after, amount_after) in zip(before, after):
        if key != key_after:
            raise InvariantViolation(f"Distribution order mismatch: {key} vs {key_after}")
        out.append((key, sign * (amount_after - amount_before)))
    return out
