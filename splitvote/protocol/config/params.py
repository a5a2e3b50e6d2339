# MIT License
# Copyright (c) 2025 Hashborn

from typing import Dict
from ..types.common import ClockMode

# Global Constants
DENOM = "svt"
DECIMALS = 18

# Shares are expressed in basis points
DENOMINATOR = 10_000
MAX_PARTIAL_DELEGATIONS = 100

# Checkpoint values are stored in 208 bits (uint48 key / uint208 value traces)
CHECKPOINT_VALUE_BITS = 208
MAX_CHECKPOINT_VALUE = 2**CHECKPOINT_VALUE_BITS - 1

# Reserved trace key for total supply (never a valid bech32 address)
TOTAL_SUPPLY_KEY = "__total_supply__"


class EngineConfig:
    def __init__(self,
                 network_id: str,
                 denominator: int = DENOMINATOR,
                 max_partial_delegations: int = MAX_PARTIAL_DELEGATIONS,
                 value_bits: int = CHECKPOINT_VALUE_BITS,
                 clock_mode: ClockMode = ClockMode.BLOCKNUMBER,
                 bech32_prefix_acc: str = "svt"):
        self.network_id = network_id
        self.denominator = denominator
        self.max_partial_delegations = max_partial_delegations
        self.value_bits = value_bits
        self.clock_mode = clock_mode
        self.bech32_prefix_acc = bech32_prefix_acc

    @property
    def max_value(self) -> int:
        return 2**self.value_bits - 1

    @property
    def clock_mode_string(self) -> str:
        # EIP-6372 machine-readable clock description
        if self.clock_mode == ClockMode.TIMESTAMP:
            return "mode=timestamp"
        return "mode=blocknumber&from=default"


NETWORKS: Dict[str, EngineConfig] = {
    "devnet": EngineConfig(
        network_id="devnet",
    ),
    "testnet": EngineConfig(
        network_id="testnet",
        clock_mode=ClockMode.TIMESTAMP,
    ),
    "mainnet": EngineConfig(
        network_id="mainnet",
    ),
}

# Default to devnet for now
CURRENT_NETWORK = NETWORKS["devnet"]
