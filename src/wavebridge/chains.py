"""Supported settlement networks and bridge backends.

Four chains are bridgeable:
- SOL (Solana): NEAR Intents, StarkGate
- NEAR: NEAR Intents, Defuse
- ZEC (Zcash): NEAR Intents
- STRK (StarkNet): StarkGate

Address formats are table-driven so the validation layer never needs
chain-specific code.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ChainId(str, Enum):
    """Settlement network identifier."""
    SOLANA = "solana"
    NEAR = "near"
    ZCASH = "zec"
    STARKNET = "starknet"


class ProviderId(str, Enum):
    """Bridging backend identifier."""
    NEAR_INTENTS = "near_intents"   # Intents-based settlement network (1Click)
    STARKGATE = "starkgate"         # Native lock/relay bridge
    DEFUSE = "defuse"               # Generic cross-chain settlement (solver relay)


@dataclass(frozen=True)
class ChainConfig:
    """Configuration for a blockchain."""

    name: str
    symbol: str
    address_format: str  # Human-readable description for error messages
    address_patterns: tuple[re.Pattern, ...] = field(default_factory=tuple)
    explorer_url: Optional[str] = None
    native_decimals: int = 9

    def matches(self, address: str) -> bool:
        """Check an address against every accepted format for this chain."""
        return any(pattern.fullmatch(address) for pattern in self.address_patterns)


# ======================
# Chain Configurations
# ======================

CHAINS: dict[ChainId, ChainConfig] = {
    ChainId.SOLANA: ChainConfig(
        name="Solana",
        symbol="SOL",
        address_format="44-character Base58",
        address_patterns=(re.compile(r"[1-9A-HJ-NP-Za-km-z]{44}"),),
        explorer_url="https://solscan.io",
        native_decimals=9,
    ),
    ChainId.NEAR: ChainConfig(
        name="NEAR",
        symbol="NEAR",
        address_format=".near name or 64-char hex",
        address_patterns=(
            re.compile(r"[a-z0-9._-]+\.near"),
            re.compile(r"[a-f0-9]{64}"),  # Implicit account
        ),
        explorer_url="https://nearblocks.io",
        native_decimals=24,
    ),
    ChainId.ZCASH: ChainConfig(
        name="Zcash",
        symbol="ZEC",
        address_format="Transparent (t1/t3) or Unified (u1)",
        address_patterns=(re.compile(r"[tu][1-9A-HJ-NP-Za-km-z]{33,94}"),),
        explorer_url="https://mainnet.zcashexplorer.app",
        native_decimals=8,
    ),
    ChainId.STARKNET: ChainConfig(
        name="StarkNet",
        symbol="STRK",
        address_format="0x-prefixed hex address",
        address_patterns=(re.compile(r"0x[a-fA-F0-9]{63,64}"),),
        explorer_url="https://starkscan.co",
        native_decimals=18,
    ),
}

# The lock/relay bridge owns this chain pair in both directions.
NATIVE_BRIDGE_CHAINS: frozenset[ChainId] = frozenset({ChainId.SOLANA, ChainId.STARKNET})


def get_chain(chain: ChainId | str) -> ChainConfig:
    """Get configuration for a chain.

    Raises:
        ValueError: If the chain is not supported
    """
    return CHAINS[ChainId(chain)]


def is_native_bridge_pair(origin: ChainId, destination: ChainId) -> bool:
    """Check whether a chain pair is reserved for the native bridge."""
    return origin != destination and {origin, destination} == NATIVE_BRIDGE_CHAINS
