# MIT License
# Copyright (c) 2025 Hashborn

from enum import Enum


class EventType(str, Enum):
    DELEGATION_SET_CHANGED = "delegation_set_changed"
    VOTING_POWER_CHANGED = "voting_power_changed"
    TOTAL_SUPPLY_CHANGED = "total_supply_changed"


class ClockMode(str, Enum):
    BLOCKNUMBER = "blocknumber"
    TIMESTAMP = "timestamp"


class ProtocolError(Exception):
    pass


class ValidationError(ProtocolError):
    pass


class InvalidShareZero(ValidationError):
    def __init__(self, delegatee: str):
        self.delegatee = delegatee
        super().__init__(f"Delegation to {delegatee} has a zero numerator")


class ShareSumExceedsDenominator(ValidationError):
    def __init__(self, total: int, denominator: int):
        self.total = total
        self.denominator = denominator
        super().__init__(f"Numerator sum {total} exceeds denominator {denominator}")


class UnsortedOrDuplicate(ValidationError):
    def __init__(self, delegatee: str):
        self.delegatee = delegatee
        super().__init__(f"Delegations must be sorted and unique, offending delegatee: {delegatee}")


class LimitExceeded(ValidationError):
    def __init__(self, length: int, maximum: int):
        self.length = length
        self.maximum = maximum
        super().__init__(f"Too many delegations: {length} > {maximum}")


class FutureLookup(ValidationError):
    def __init__(self, time: int, current: int):
        self.time = time
        self.current = current
        super().__init__(f"Lookup at {time} is not in the past (current clock {current})")


class InvalidAddress(ValidationError):
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Invalid address: {address!r}")


class InsufficientBalance(ValidationError):
    def __init__(self, address: str, balance: int, needed: int):
        self.address = address
        self.balance = balance
        self.needed = needed
        super().__init__(f"Insufficient balance: {address} has {balance}, need {needed}")


class SupplyCapExceeded(ValidationError):
    def __init__(self, supply: int, cap: int):
        self.supply = supply
        self.cap = cap
        super().__init__(f"Total supply {supply} would exceed cap {cap}")


class InvariantViolation(RuntimeError):
    """
    Raised when internal accounting breaks (checkpoint time going backwards,
    vote underflow, votes exceeding a balance).

    Not a ProtocolError: callers handling bad requests must never catch it.
    """
    pass
