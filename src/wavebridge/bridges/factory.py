"""Factory for creating bridge providers.

All providers share one httpx client when given; each provider opens its own
otherwise.
"""

import logging
from typing import Optional

import httpx

from wavebridge.bridges.base import BridgeProvider
from wavebridge.bridges.defuse import DefuseProvider
from wavebridge.bridges.near_intents import NearIntentsProvider
from wavebridge.bridges.starkgate import StarkGateProvider
from wavebridge.chains import ProviderId
from wavebridge.config import Settings

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[ProviderId, type[BridgeProvider]] = {
    ProviderId.NEAR_INTENTS: NearIntentsProvider,
    ProviderId.STARKGATE: StarkGateProvider,
    ProviderId.DEFUSE: DefuseProvider,
}


def create_provider(
    provider_id: ProviderId,
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> BridgeProvider:
    """Create a single bridge provider.

    Raises:
        ValueError: If the provider id is unknown
    """
    provider_class = PROVIDER_CLASSES[ProviderId(provider_id)]
    return provider_class(settings, client=client)


def create_providers(
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> dict[ProviderId, BridgeProvider]:
    """Create every bridge provider keyed by id."""
    providers = {provider_id: create_provider(provider_id, settings, client) for provider_id in PROVIDER_CLASSES}
    logger.info(f"Created bridge providers: {', '.join(p.value for p in providers)}")
    return providers
