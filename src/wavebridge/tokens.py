"""Cross-chain token model and amount conversion.

Amounts are kept as human-readable decimal strings at the edges and as
integer smallest units everywhere a provider sees them. Floats never touch
an amount.
"""

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from wavebridge.chains import ChainId, ProviderId
from wavebridge.errors import InvalidAmount, InvalidRoute

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BridgeSupport:
    """Which backends declare support for a token."""

    near_intents: bool = False
    starkgate: bool = False
    defuse: bool = False
    direct_bridge: bool = False

    def supports(self, provider: ProviderId) -> bool:
        return bool(getattr(self, ProviderId(provider).value))

    def merge(self, other: "BridgeSupport") -> "BridgeSupport":
        """Combine two capability sets (logical OR)."""
        return BridgeSupport(
            near_intents=self.near_intents or other.near_intents,
            starkgate=self.starkgate or other.starkgate,
            defuse=self.defuse or other.defuse,
            direct_bridge=self.direct_bridge or other.direct_bridge,
        )


@dataclass(frozen=True, eq=False)
class CrossChainToken:
    """A fungible asset on one chain.

    Two tokens are the same entity iff their (chain, address) match.
    """

    symbol: str
    name: str
    address: str
    decimals: int
    chain: ChainId
    bridge_support: BridgeSupport = field(default_factory=BridgeSupport)
    logo_uri: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "chain", ChainId(self.chain))
        if self.decimals < 0:
            raise ValueError(f"Token {self.symbol} has negative decimals: {self.decimals}")

    @property
    def key(self) -> tuple[ChainId, str]:
        return (self.chain, self.address)

    def __eq__(self, other):
        if not isinstance(other, CrossChainToken):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)

    @property
    def asset_id(self) -> str:
        """Cross-chain asset identifier in 1cs_v1 format."""
        if self.chain == ChainId.SOLANA:
            return f"1cs_v1:solana:spl:{self.address}"
        if self.chain == ChainId.NEAR:
            return f"1cs_v1:near:nep141:{self.address}"
        return f"1cs_v1:{self.chain.value}:token:{self.address}"

    @property
    def nep141_id(self) -> str:
        """Asset identifier used by the Defuse verifier contract."""
        if self.chain == ChainId.NEAR:
            return f"nep141:{self.address}"
        return f"nep141:{self.chain.value}-{self.address}.omft.near"

    def to_smallest_unit(self, amount: str | Decimal) -> int:
        return to_smallest_unit(amount, self.decimals)

    def from_smallest_unit(self, units: int | str) -> Decimal:
        return from_smallest_unit(units, self.decimals)

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "address": self.address,
            "decimals": self.decimals,
            "chain": self.chain.value,
            "asset_id": self.asset_id,
            "bridge_support": {
                "near_intents": self.bridge_support.near_intents,
                "starkgate": self.bridge_support.starkgate,
                "defuse": self.bridge_support.defuse,
                "direct_bridge": self.bridge_support.direct_bridge,
            },
        }


@dataclass(frozen=True)
class Route:
    """Ordered (origin, destination) token pair."""

    origin: CrossChainToken
    destination: CrossChainToken

    @property
    def is_cross_chain(self) -> bool:
        return self.origin.chain != self.destination.chain

    def require_cross_chain(self) -> "Route":
        """Reject same-chain routes.

        Raises:
            InvalidRoute: If both tokens are on the same chain
        """
        if not self.is_cross_chain:
            raise InvalidRoute(
                f"Origin and destination are both on {self.origin.chain.value}",
                origin=self.origin.symbol,
                destination=self.destination.symbol,
            )
        return self

    def __str__(self) -> str:
        return (
            f"{self.origin.chain.value}/{self.origin.symbol} -> "
            f"{self.destination.chain.value}/{self.destination.symbol}"
        )


# ======================
# Amount conversion
# ======================

def parse_amount(amount: str | Decimal) -> Decimal:
    """Parse a human-readable amount.

    Raises:
        InvalidAmount: If the amount is not a finite decimal number
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Not a number: {amount!r}", amount=str(amount))
    if not value.is_finite():
        raise InvalidAmount(f"Not a finite number: {amount!r}", amount=str(amount))
    return value


def to_smallest_unit(amount: str | Decimal, decimals: int) -> int:
    """Convert a human-readable amount to integer smallest units.

    "1.5" with 9 decimals -> 1500000000. Amounts with more fractional
    digits than the token supports are rejected rather than truncated.

    Raises:
        InvalidAmount: If the amount is malformed or too precise
    """
    sign, digits, exponent = parse_amount(amount).as_tuple()
    coefficient = int("".join(map(str, digits)) or "0")
    shift = exponent + decimals
    if shift >= 0:
        units = coefficient * 10**shift
    else:
        units, remainder = divmod(coefficient, 10**-shift)
        if remainder:
            raise InvalidAmount(
                f"Amount {amount} has more than {decimals} decimal places",
                amount=str(amount),
                decimals=decimals,
            )
    return -units if sign else units


def from_smallest_unit(units: int | str, decimals: int) -> Decimal:
    """Convert integer smallest units back to a human-readable Decimal."""
    units = int(units)
    digits = tuple(int(d) for d in str(abs(units)))
    return Decimal((1 if units < 0 else 0, digits, -decimals))


def rescale_units(units: int, from_decimals: int, to_decimals: int) -> int:
    """Move an integer amount between precisions (rounds down)."""
    if to_decimals >= from_decimals:
        return units * 10 ** (to_decimals - from_decimals)
    return units // 10 ** (from_decimals - to_decimals)


def format_amount(value: Decimal) -> str:
    """Render a Decimal without exponent or trailing zeros."""
    text = format(value.normalize(), "f")
    return text if text != "-0" else "0"


# ======================
# Static token table
# ======================

SOLANA_TOKENS = [
    CrossChainToken(
        symbol="SOL",
        name="Solana",
        address="So11111111111111111111111111111111111111112",
        decimals=9,
        chain=ChainId.SOLANA,
        bridge_support=BridgeSupport(near_intents=True, starkgate=True),
    ),
    CrossChainToken(
        symbol="USDC",
        name="USD Coin",
        address="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        decimals=6,
        chain=ChainId.SOLANA,
        bridge_support=BridgeSupport(near_intents=True, starkgate=True, defuse=True, direct_bridge=True),
    ),
    CrossChainToken(
        symbol="USDT",
        name="Tether USD",
        address="Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
        decimals=6,
        chain=ChainId.SOLANA,
        bridge_support=BridgeSupport(near_intents=True, starkgate=True, defuse=True, direct_bridge=True),
    ),
]

NEAR_TOKENS = [
    CrossChainToken(
        symbol="NEAR",
        name="NEAR",
        address="wrap.near",
        decimals=24,
        chain=ChainId.NEAR,
        bridge_support=BridgeSupport(near_intents=True, defuse=True),
    ),
    CrossChainToken(
        symbol="USDC",
        name="USD Coin",
        address="17208628f84f5d6ad33f0da3bbbeb27ffcb398eac501a31bd6ad2011e36133a1",
        decimals=6,
        chain=ChainId.NEAR,
        bridge_support=BridgeSupport(near_intents=True, defuse=True),
    ),
    CrossChainToken(
        symbol="USDT",
        name="Tether USD",
        address="usdt.tether-token.near",
        decimals=6,
        chain=ChainId.NEAR,
        bridge_support=BridgeSupport(defuse=True),
    ),
]

ZCASH_TOKENS = [
    CrossChainToken(
        symbol="ZEC",
        name="Zcash",
        address="zec",
        decimals=8,
        chain=ChainId.ZCASH,
        bridge_support=BridgeSupport(near_intents=True),
    ),
]

STARKNET_TOKENS = [
    CrossChainToken(
        symbol="SOL",
        name="Solana (StarkGate)",
        address="0x049d36570d4e46f48e99674bd3fcc84644ddd6b96f7c741b1562b82f9e004dc7",
        decimals=18,
        chain=ChainId.STARKNET,
        bridge_support=BridgeSupport(starkgate=True),
    ),
    CrossChainToken(
        symbol="USDC",
        name="USD Coin",
        address="0x053c91253bc9682c04929ca02ed00b3e423f6710d2ee7e0d5ebb06f3ecf368a8",
        decimals=6,
        chain=ChainId.STARKNET,
        bridge_support=BridgeSupport(starkgate=True),
    ),
    CrossChainToken(
        symbol="USDT",
        name="Tether USD",
        address="0x068f5c6a61780768455de69077e07e89787839bf8166decfbf92b645209c0fb8",
        decimals=6,
        chain=ChainId.STARKNET,
        bridge_support=BridgeSupport(starkgate=True),
    ),
]

DEFAULT_TOKENS: list[CrossChainToken] = SOLANA_TOKENS + NEAR_TOKENS + ZCASH_TOKENS + STARKNET_TOKENS


def merge_token_lists(*token_lists: Iterable[CrossChainToken]) -> list[CrossChainToken]:
    """Merge token lists keyed by (chain, address).

    The first occurrence keeps its metadata; bridge support is OR-ed across
    every occurrence.
    """
    merged: dict[tuple[ChainId, str], CrossChainToken] = {}
    for tokens in token_lists:
        for token in tokens:
            existing = merged.get(token.key)
            if existing is None:
                merged[token.key] = token
            else:
                merged[token.key] = replace(
                    existing,
                    bridge_support=existing.bridge_support.merge(token.bridge_support),
                    logo_uri=existing.logo_uri or token.logo_uri,
                )
    logger.debug(f"Merged token lists: {len(merged)} unique tokens")
    return list(merged.values())
