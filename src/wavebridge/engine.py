"""Bridge engine.

Wires the registry, validation, selection, quoting, execution and
monitoring together. Build one with create_engine() at startup and pass it
to whatever needs it.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Awaitable, Callable, Mapping, Optional

import httpx

from wavebridge.bridges.base import BridgeOptions, BridgeProvider, BridgeQuote, ProviderStatus
from wavebridge.bridges.factory import create_providers
from wavebridge.bridges.near_intents import NearIntentsProvider
from wavebridge.chains import ProviderId
from wavebridge.config import Settings, get_settings
from wavebridge.errors import BridgeError
from wavebridge.execution.models import BridgeExecution, ExecutionContext
from wavebridge.execution.monitor import MonitorConfig, StatusMonitor
from wavebridge.execution.state_machine import BridgeExecutor
from wavebridge.registry import CapabilityRegistry
from wavebridge.selector import ProviderSelector
from wavebridge.tokens import CrossChainToken, Route, merge_token_lists
from wavebridge.validation import BridgeRequestValidator, ValidatedRequest

logger = logging.getLogger(__name__)


class BridgeEngine:
    """Cross-chain bridge orchestration.

    Example:
        async with create_engine() as engine:
            quote = await engine.generate_quote(sol, strk_sol, "1.5", options)
            execution = await engine.execute_bridge(quote, context)
    """

    def __init__(
        self,
        settings: Settings,
        registry: CapabilityRegistry,
        providers: Mapping[ProviderId, BridgeProvider],
        monitor_config: Optional[MonitorConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings
        self.registry = registry
        self.providers = dict(providers)
        self.selector = ProviderSelector(registry, self.providers)
        self.validator = BridgeRequestValidator(registry)
        self.monitor = StatusMonitor(monitor_config or settings.monitor_config(), sleep=sleep)
        self.executor = BridgeExecutor(self.selector, self.monitor)
        self._owned_client: Optional[httpx.AsyncClient] = None

    # ======================
    # Pre-flight
    # ======================

    def validate(
        self,
        origin: CrossChainToken,
        destination: CrossChainToken,
        amount: str | Decimal,
        options: Optional[BridgeOptions] = None,
    ) -> ValidatedRequest:
        """Run pre-flight checks without touching the network."""
        return self.validator.validate(Route(origin, destination), amount, options)

    def select_provider(self, origin: CrossChainToken, destination: CrossChainToken) -> ProviderId:
        return self.selector.select_provider(Route(origin, destination))

    def estimated_time(self, provider_id: ProviderId) -> str:
        """Display label for how long a provider usually takes."""
        return self.selector.get(provider_id).ESTIMATED_TIME

    # ======================
    # Quotes
    # ======================

    async def generate_quote(
        self,
        origin: CrossChainToken,
        destination: CrossChainToken,
        amount: str | Decimal,
        options: Optional[BridgeOptions] = None,
    ) -> BridgeQuote:
        """Validate a request and quote it with the provider that owns the route.

        Raises:
            BridgeError: Any input, provider or liquidity error
        """
        options = options or self.settings.default_options()
        request = self.validate(origin, destination, amount, options)
        provider = self.selector.get(request.provider)

        try:
            return await provider.generate_quote(origin, destination, str(amount), options)
        except BridgeError as e:
            e.with_context(provider=request.provider)
            logger.warning(*e.to_log_args(), extra=e.to_dict())
            raise

    # ======================
    # Execution
    # ======================

    async def execute_bridge(self, quote: BridgeQuote, context: ExecutionContext) -> BridgeExecution:
        """Execute a confirmed quote. Failures come back on the execution."""
        return await self.executor.execute_bridge(quote, context)

    async def get_bridge_status(self, provider_id: ProviderId, ref: str) -> ProviderStatus:
        """One read-only status query, outside of any execution."""
        return await self.selector.get(provider_id).check_status(ref)

    # ======================
    # Tokens
    # ======================

    async def get_supported_tokens(self) -> list[CrossChainToken]:
        """Static token table merged with the NEAR Intents listing.

        A failing listing is logged and the static table is returned alone.
        """
        listed: list[CrossChainToken] = []
        provider = self.providers.get(ProviderId.NEAR_INTENTS)
        if isinstance(provider, NearIntentsProvider):
            try:
                listed = await provider.list_tokens()
            except BridgeError as e:
                logger.warning(f"Could not load NEAR Intents token list: {e}")
        return merge_token_lists(self.registry.tokens, listed)

    # ======================
    # Lifecycle
    # ======================

    async def aclose(self) -> None:
        for provider in self.providers.values():
            await provider.aclose()
        if self._owned_client is not None:
            await self._owned_client.aclose()
            self._owned_client = None

    async def __aenter__(self) -> "BridgeEngine":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def create_engine(
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
    registry: Optional[CapabilityRegistry] = None,
    monitor_config: Optional[MonitorConfig] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> BridgeEngine:
    """Create a bridge engine with every provider sharing one HTTP client.

    Args:
        settings: Engine settings (environment settings if not provided)
        client: Shared httpx client; one is created and owned if not provided
        registry: Token registry (default token table if not provided)
        monitor_config: Polling policy (from settings if not provided)
        sleep: Sleep used between status polls
    """
    settings = settings or get_settings()
    owned_client = None
    if client is None:
        client = owned_client = httpx.AsyncClient(timeout=settings.request_timeout)

    engine = BridgeEngine(
        settings=settings,
        registry=registry or CapabilityRegistry(),
        providers=create_providers(settings, client),
        monitor_config=monitor_config,
        sleep=sleep,
    )
    engine._owned_client = owned_client
    logger.info(f"Bridge engine ready ({settings.environment})")
    return engine
