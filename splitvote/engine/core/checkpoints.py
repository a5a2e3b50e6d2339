# MIT License
# Copyright (c) 2025 Hashborn

"""
Append-only checkpoint traces keyed by delegatee (or the total supply key).

All traces share one clock, so times are non-decreasing across the whole
store. Writes at the same time collapse into the latest entry.
"""
from bisect import bisect_right
from math import isqrt
from typing import Callable, Dict, List, Optional, Set, Tuple
import logging
import threading

from ...protocol.types.delegation import Checkpoint
from ...protocol.types.common import FutureLookup, InvariantViolation
from ...protocol.config.params import MAX_CHECKPOINT_VALUE
from ..storage.db import StorageDB

logger = logging.getLogger(__name__)


def add(a: int, b: int) -> int:
    return a + b


def subtract(a: int, b: int) -> int:
    if b > a:
        raise InvariantViolation(f"Checkpoint underflow: {a} - {b}")
    return a - b


def _time_of(ckpt: Checkpoint) -> int:
    return ckpt.time


class CheckpointStore:
    def __init__(self, clock, max_value: int = MAX_CHECKPOINT_VALUE, db: Optional[StorageDB] = None):
        self.clock = clock
        self.max_value = max_value
        self.db = db
        self._traces: Dict[str, List[Checkpoint]] = {}
        # Latest time written to any trace
        self._last_time = 0
        # (key, pos) entries changed since the last persist
        self._dirty: Set[Tuple[str, int]] = set()
        self._write_lock = threading.Lock()

    def now(self) -> int:
        return self.clock.now()

    # --- Reads ---
    def latest(self, key: str) -> int:
        trace = self._traces.get(key)
        if not trace:
            return 0
        return trace[-1].value

    def at(self, key: str, time: int) -> int:
        """
        Value of `key` at the end of `time`.

        Raises FutureLookup unless `time` is strictly before the current clock.
        """
        current = self.now()
        if time >= current:
            raise FutureLookup(time, current)
        return self._upper_lookup_recent(self._traces.get(key, []), time)

    def num_checkpoints(self, key: str) -> int:
        return len(self._traces.get(key, []))

    def checkpoint(self, key: str, pos: int) -> Checkpoint:
        trace = self._traces.get(key, [])
        if pos < 0 or pos >= len(trace):
            raise IndexError(f"No checkpoint {pos} for {key} ({len(trace)} recorded)")
        return trace[pos]

    def trace(self, key: str) -> List[Checkpoint]:
        return list(self._traces.get(key, []))

    def keys(self) -> List[str]:
        return list(self._traces.keys())

    @property
    def last_time(self) -> int:
        return self._last_time

    @staticmethod
    def _upper_lookup_recent(trace: List[Checkpoint], time: int) -> int:
        # Recent lookups are the common case: probe near the tail first
        low, high = 0, len(trace)
        if high > 5:
            mid = high - isqrt(high)
            if time < trace[mid].time:
                high = mid
            else:
                low = mid + 1

        pos = bisect_right(trace, time, low, high, key=_time_of)
        return trace[pos - 1].value if pos > 0 else 0

    # --- Writes ---
    def check_write(self, time: int, value: int) -> None:
        """Raises InvariantViolation if push(time, value) would be illegal."""
        if time < self._last_time:
            raise InvariantViolation(f"Checkpoint time {time} is before last recorded time {self._last_time}")
        if value < 0 or value > self.max_value:
            raise InvariantViolation(f"Checkpoint value {value} outside [0, {self.max_value}]")

    def push(self, key: str, time: int, value: int) -> Tuple[int, int]:
        """
        Records `value` for `key` at `time`.

        Returns:
            (previous latest value, new value)
        """
        with self._write_lock:
            self.check_write(time, value)

            trace = self._traces.setdefault(key, [])
            old = trace[-1].value if trace else 0
            ckpt = Checkpoint(time=time, value=value)

            if trace and trace[-1].time == time:
                trace[-1] = ckpt
            else:
                trace.append(ckpt)

            self._last_time = time
            self._dirty.add((key, len(trace) - 1))
            logger.debug(f"Checkpoint {key} @ {time}: {old} -> {value}")
            return old, value

    def apply_delta(self, key: str, op: Callable[[int, int], int], amount: int) -> Tuple[int, int]:
        return self.push(key, self.now(), op(self.latest(key), amount))

    # --- Persistence ---
    def persist(self) -> int:
        """Writes changed checkpoints to the DB. Returns the number of rows written."""
        if self.db is None:
            return 0
        with self._write_lock:
            rows = []
            for key, pos in sorted(self._dirty):
                ckpt = self._traces[key][pos]
                rows.append((key, pos, ckpt.time, str(ckpt.value)))
            self.db.save_checkpoints(rows)
            self._dirty.clear()
        logger.debug(f"Persisted {len(rows)} checkpoint rows")
        return len(rows)

    def load(self) -> None:
        if self.db is None:
            return
        with self._write_lock:
            self._traces.clear()
            self._dirty.clear()
            self._last_time = 0
            for key, pos, time, value in self.db.get_checkpoints():
                trace = self._traces.setdefault(key, [])
                if pos != len(trace):
                    raise InvariantViolation(f"Stored trace for {key} has a gap at position {len(trace)}")
                trace.append(Checkpoint(time=time, value=int(value)))
                self._last_time = max(self._last_time, time)
        logger.info(f"Loaded {len(self._traces)} checkpoint traces (last time {self._last_time})")
