"""Bridge engine configuration using pydantic-settings."""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables (WAVEBRIDGE_ prefix)."""

    model_config = SettingsConfigDict(
        env_prefix="WAVEBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")
    log_level: str = Field(default="INFO", description="Log level when debug is off")

    # ======================
    # NEAR Intents (1Click)
    # ======================
    near_intents_api_url: str = Field(
        default="https://1click.chaindefuser.com/v0", description="1Click API base URL"
    )
    near_intents_jwt: Optional[str] = Field(
        default=None, description="Optional 1Click JWT for authenticated quotes"
    )

    # ======================
    # StarkGate
    # ======================
    starkgate_relay_url: str = Field(
        default="https://relay.starkgate.starknet.io/v1", description="StarkGate relay service URL"
    )
    starkgate_solana_escrow: str = Field(
        default="9wFFyRfZBsuAha4YcuxcXLKwMxJR43S7fPfQLusDBzvT",
        description="StarkGate escrow address on Solana",
    )
    starkgate_starknet_escrow: str = Field(
        default="0x0616757a151c21f9be8775098d591c2807316d992bbc3bb1a5c1821630589256",
        description="StarkGate escrow contract on StarkNet",
    )
    starkgate_fee_bps: int = Field(
        default=20, description="Fallback bridge fee for tokens without a flat fee (0.2%)"
    )

    # ======================
    # Defuse
    # ======================
    defuse_solver_relay_url: str = Field(
        default="https://solver-relay-v2.chaindefuser.com/rpc", description="Defuse solver relay URL"
    )
    defuse_verifier_contract: str = Field(
        default="intents.near", description="Defuse verifier contract account"
    )
    defuse_solana_deposit: str = Field(
        default="HWjmoUNYckccg9Qrwi43JTzBcGcM1nbdAtATf9GXmz16",
        description="Defuse deposit address on Solana",
    )

    # ======================
    # Quote defaults
    # ======================
    default_slippage_bps: int = Field(default=50, description="Default slippage tolerance (0.5%)")
    default_deadline_seconds: int = Field(default=1200, description="Quote validity window")

    # ======================
    # HTTP / retries
    # ======================
    request_timeout: float = Field(default=30.0, description="HTTP request timeout in seconds")
    quote_retry_attempts: int = Field(default=3, description="Attempts per quote request")
    quote_retry_wait: float = Field(default=0.5, description="Initial backoff between quote retries")

    # ======================
    # Monitoring
    # ======================
    monitor_poll_interval: float = Field(default=3.0, description="Seconds between status polls")
    monitor_max_attempts: int = Field(default=40, description="Status polls before giving up")

    def get_deposit_address(self, provider: str, chain: str) -> Optional[str]:
        """Get the configured deposit target for a provider on a chain."""
        address_map = {
            ("starkgate", "solana"): self.starkgate_solana_escrow,
            ("starkgate", "starknet"): self.starkgate_starknet_escrow,
            ("defuse", "solana"): self.defuse_solana_deposit,
            ("defuse", "near"): self.defuse_verifier_contract,
        }
        return address_map.get((str(getattr(provider, "value", provider)), str(getattr(chain, "value", chain))))

    def default_options(self):
        """Build quote options from the configured defaults."""
        from wavebridge.bridges.base import BridgeOptions

        return BridgeOptions(
            slippage_bps=self.default_slippage_bps,
            deadline_seconds=self.default_deadline_seconds,
        )

    def monitor_config(self):
        """Build the status monitor polling policy."""
        from wavebridge.execution.monitor import MonitorConfig

        return MonitorConfig(
            poll_interval=self.monitor_poll_interval,
            max_attempts=self.monitor_max_attempts,
        )

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "providers": {
                "near_intents": {
                    "api": self.near_intents_api_url,
                    "jwt": "***" if self.near_intents_jwt else "(not set)",
                },
                "starkgate": {
                    "relay": self.starkgate_relay_url,
                    "fee_bps": self.starkgate_fee_bps,
                },
                "defuse": {
                    "relay": self.defuse_solver_relay_url,
                    "verifier": self.defuse_verifier_contract,
                },
            },
            "quotes": {
                "slippage_bps": self.default_slippage_bps,
                "deadline_seconds": self.default_deadline_seconds,
                "retry_attempts": self.quote_retry_attempts,
            },
            "monitor": {
                "poll_interval": self.monitor_poll_interval,
                "max_attempts": self.monitor_max_attempts,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings) -> None:
    """Configure root logging for the engine."""
    log_level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
