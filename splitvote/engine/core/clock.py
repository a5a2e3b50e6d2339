# MIT License
# Copyright (c) 2025 Hashborn

"""
Clock collaborators.

Every checkpoint write is stamped with the clock value at the time of the
operation. Clocks must never go backwards.
"""
import time
import threading
import logging
from ...protocol.types.common import ClockMode, InvariantViolation

logger = logging.getLogger(__name__)


class BlockClock:
    """Manually advanced block height (the chain calls advance() per block)."""

    mode = ClockMode.BLOCKNUMBER

    def __init__(self, height: int = 1):
        self._height = height
        self._lock = threading.Lock()

    def now(self) -> int:
        return self._height

    def advance(self, blocks: int = 1) -> int:
        if blocks < 0:
            raise InvariantViolation(f"Clock cannot move backwards by {-blocks} blocks")
        with self._lock:
            self._height += blocks
            logger.debug(f"Clock advanced to height {self._height}")
            return self._height

    def set(self, height: int) -> None:
        with self._lock:
            if height < self._height:
                raise InvariantViolation(f"Clock cannot move from {self._height} back to {height}")
            self._height = height


class TimestampClock:
    """Unix seconds, clamped so it never decreases."""

    mode = ClockMode.TIMESTAMP

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


def make_clock(mode: ClockMode):
    if mode == ClockMode.TIMESTAMP:
        return TimestampClock()
    return BlockClock()
