"""wavebridge - cross-chain bridge orchestration engine.

Moves tokens between Solana, NEAR, Zcash and StarkNet through NEAR Intents,
StarkGate or Defuse.
"""

from wavebridge.bridges import BridgeOptions, BridgeQuote, QuoteStatus
from wavebridge.chains import ChainId, ProviderId
from wavebridge.config import Settings, configure_logging, get_settings
from wavebridge.engine import BridgeEngine, create_engine
from wavebridge.execution import BridgeExecution, ExecutionContext, ExecutionStatus, MonitorConfig
from wavebridge.registry import CapabilityRegistry
from wavebridge.signing import DepositRequest, DepositSigner
from wavebridge.tokens import BridgeSupport, CrossChainToken, Route

__version__ = "0.1.0"

__all__ = [
    "BridgeEngine",
    "BridgeExecution",
    "BridgeOptions",
    "BridgeQuote",
    "BridgeSupport",
    "CapabilityRegistry",
    "ChainId",
    "CrossChainToken",
    "DepositRequest",
    "DepositSigner",
    "ExecutionContext",
    "ExecutionStatus",
    "MonitorConfig",
    "ProviderId",
    "QuoteStatus",
    "Route",
    "Settings",
    "configure_logging",
    "create_engine",
    "get_settings",
]
