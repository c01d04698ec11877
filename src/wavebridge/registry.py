"""Capability registry.

Maps each token to the bridging backends that can move it and decides which
backend owns a route. Pure lookups, no I/O.
"""

import logging
from typing import Iterable, Optional

from wavebridge.chains import ChainId, ProviderId, is_native_bridge_pair
from wavebridge.errors import NoProviderForRoute
from wavebridge.tokens import DEFAULT_TOKENS, CrossChainToken, Route, merge_token_lists

logger = logging.getLogger(__name__)

# Order matters: the first provider both tokens support wins.
PROVIDER_PRECEDENCE: tuple[ProviderId, ...] = (
    ProviderId.NEAR_INTENTS,
    ProviderId.DEFUSE,
)


class CapabilityRegistry:
    """Token table plus the provider precedence rule."""

    def __init__(self, tokens: Optional[Iterable[CrossChainToken]] = None):
        self._tokens: dict[tuple[ChainId, str], CrossChainToken] = {}
        self.register(DEFAULT_TOKENS if tokens is None else tokens)

    def register(self, tokens: Iterable[CrossChainToken]) -> None:
        """Add tokens, OR-ing bridge support into tokens already known."""
        for token in merge_token_lists(self._tokens.values(), tokens):
            self._tokens[token.key] = token

    @property
    def tokens(self) -> list[CrossChainToken]:
        return list(self._tokens.values())

    def find(self, chain: ChainId, address: str) -> Optional[CrossChainToken]:
        return self._tokens.get((ChainId(chain), address))

    def find_by_symbol(self, chain: ChainId, symbol: str) -> Optional[CrossChainToken]:
        chain = ChainId(chain)
        for token in self._tokens.values():
            if token.chain == chain and token.symbol.upper() == symbol.upper():
                return token
        return None

    def tokens_on(self, chain: ChainId) -> list[CrossChainToken]:
        chain = ChainId(chain)
        return [t for t in self._tokens.values() if t.chain == chain]

    @staticmethod
    def is_supported(token: CrossChainToken, provider: ProviderId) -> bool:
        return token.bridge_support.supports(provider)

    def providers_for(self, route: Route) -> frozenset[ProviderId]:
        """All providers that declare support for both ends of a route."""
        providers = set()
        if is_native_bridge_pair(route.origin.chain, route.destination.chain):
            providers.add(ProviderId.STARKGATE)
        for provider in PROVIDER_PRECEDENCE:
            if self.is_supported(route.origin, provider) and self.is_supported(route.destination, provider):
                providers.add(provider)
        return frozenset(providers)

    def select(self, route: Route) -> ProviderId:
        """Pick the provider that owns a route.

        A Solana <-> StarkNet route always goes to the native bridge, even
        when both tokens also support a settlement network. Otherwise the
        first entry of PROVIDER_PRECEDENCE supported by both tokens wins.

        Raises:
            NoProviderForRoute: If no provider supports the route
        """
        if is_native_bridge_pair(route.origin.chain, route.destination.chain):
            return ProviderId.STARKGATE

        for provider in PROVIDER_PRECEDENCE:
            if self.is_supported(route.origin, provider) and self.is_supported(route.destination, provider):
                return provider

        logger.info(f"No provider for route {route}")
        raise NoProviderForRoute(
            f"No bridge provider supports {route}",
            origin=route.origin.symbol,
            destination=route.destination.symbol,
        )
