"""Bridge providers.

Providers:
- NEAR Intents: intents-based settlement (1Click API)
- StarkGate: native Solana <-> StarkNet lock/relay bridge
- Defuse: generic settlement through the solver relay
"""

from wavebridge.bridges.base import (
    BridgeOptions,
    BridgeProvider,
    BridgeQuote,
    ProcessResult,
    ProviderStatus,
    QuoteStatus,
    StatusOutcome,
)
from wavebridge.bridges.defuse import DefuseProvider
from wavebridge.bridges.factory import create_provider, create_providers
from wavebridge.bridges.near_intents import NearIntentsProvider
from wavebridge.bridges.starkgate import StarkGateProvider

__all__ = [
    # Base classes
    "BridgeOptions",
    "BridgeProvider",
    "BridgeQuote",
    "ProcessResult",
    "ProviderStatus",
    "QuoteStatus",
    "StatusOutcome",
    # Providers
    "NearIntentsProvider",
    "StarkGateProvider",
    "DefuseProvider",
    # Factory functions
    "create_provider",
    "create_providers",
]
