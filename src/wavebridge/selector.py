"""Provider selection.

The registry decides which provider owns a route; the selector turns that
decision into the provider implementation to call.
"""

import logging
from typing import Mapping

from wavebridge.bridges.base import BridgeProvider
from wavebridge.chains import ProviderId
from wavebridge.errors import ProviderNotConfigured
from wavebridge.registry import CapabilityRegistry
from wavebridge.tokens import Route

logger = logging.getLogger(__name__)


class ProviderSelector:
    """Resolve routes to bridge providers."""

    def __init__(self, registry: CapabilityRegistry, providers: Mapping[ProviderId, BridgeProvider]):
        self.registry = registry
        self.providers = dict(providers)

    def select_provider(self, route: Route) -> ProviderId:
        """Pick the provider id for a route.

        Deterministic for a given registry. No network calls.

        Raises:
            InvalidRoute: If the route stays on one chain
            NoProviderForRoute: If no provider supports the route
        """
        route.require_cross_chain()
        provider_id = self.registry.select(route)
        logger.debug(f"Selected {provider_id.value} for {route}")
        return provider_id

    def get(self, provider_id: ProviderId) -> BridgeProvider:
        """Get the implementation for a provider id.

        Raises:
            ProviderNotConfigured: If the provider has no implementation
        """
        provider = self.providers.get(ProviderId(provider_id))
        if provider is None:
            raise ProviderNotConfigured(f"Provider {ProviderId(provider_id).value} is not configured", provider=provider_id)
        return provider

    def provider_for(self, route: Route) -> BridgeProvider:
        return self.get(self.select_provider(route))
