# MIT License
# Copyright (c) 2025 Hashborn

from dataclasses import dataclass
from pydantic import BaseModel, ConfigDict, Field
from typing import List


class Delegation(BaseModel):
    """A share of a delegator's balance granted to one delegatee."""
    model_config = ConfigDict(frozen=True)

    delegatee: str                  # Delegatee address (zero address = no delegate)
    numerator: int = Field(ge=0)    # Share out of DENOMINATOR


@dataclass(frozen=True)
class DelegationAdjustment:
    """Absolute votes owed to a delegatee at a given balance. Never persisted."""
    delegatee: str
    amount: int


class Checkpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: int    # Clock value (block height or unix seconds)
    value: int   # Votes / supply from `time` onwards


class DelegationSetChanged(BaseModel):
    account: str
    old_delegations: List[Delegation] = Field(default_factory=list)
    new_delegations: List[Delegation] = Field(default_factory=list)


class VotingPowerChanged(BaseModel):
    delegatee: str
    old_value: int
    new_value: int


class TotalSupplyChanged(BaseModel):
    old_value: int
    new_value: int
