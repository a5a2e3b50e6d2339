# MIT License
# Copyright (c) 2025 Hashborn

from typing import List
from ...protocol.types.delegation import Checkpoint, Delegation
from ...protocol.config.params import EngineConfig, TOTAL_SUPPLY_KEY
from ...protocol.crypto.addresses import canonical_address
from .checkpoints import CheckpointStore
from .delegations import DelegationSetStore


class VotingPowerQuery:
    """
    Read-only view for governance collaborators.

    Historical lookups only accept times strictly before the current clock;
    the current block may still change. Addresses are read under their
    canonical form; a foreign prefix raises InvalidAddress.
    """

    def __init__(self, checkpoints: CheckpointStore, delegations: DelegationSetStore,
                 config: EngineConfig, clock):
        self._checkpoints = checkpoints
        self._delegations = delegations
        self._config = config
        self._clock = clock

    def current_votes(self, delegatee: str) -> int:
        return self._checkpoints.latest(self._key(delegatee))

    def votes_at(self, delegatee: str, time: int) -> int:
        return self._checkpoints.at(self._key(delegatee), time)

    def current_total_supply(self) -> int:
        return self._checkpoints.latest(TOTAL_SUPPLY_KEY)

    def total_supply_at(self, time: int) -> int:
        return self._checkpoints.at(TOTAL_SUPPLY_KEY, time)

    def current_delegations(self, account: str) -> List[Delegation]:
        return self._delegations.get(self._key(account))

    def num_checkpoints(self, delegatee: str) -> int:
        return self._checkpoints.num_checkpoints(self._key(delegatee))

    def checkpoint(self, delegatee: str, pos: int) -> Checkpoint:
        return self._checkpoints.checkpoint(self._key(delegatee), pos)

    def checkpoints(self, delegatee: str) -> List[Checkpoint]:
        return self._checkpoints.trace(self._key(delegatee))

    def delegatees(self) -> List[str]:
        return sorted(k for k in self._checkpoints.keys() if k != TOTAL_SUPPLY_KEY)

    def clock(self) -> int:
        return self._clock.now()

    def clock_mode(self) -> str:
        return self._config.clock_mode_string

    def _key(self, address: str) -> str:
        return canonical_address(address, self._config.bech32_prefix_acc)
