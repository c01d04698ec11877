"""Status monitor: bounded polling until a provider reports a terminal state."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from wavebridge.bridges.base import BridgeProvider, StatusOutcome
from wavebridge.errors import BridgeError, BridgeMonitoringTimeout

logger = logging.getLogger(__name__)


@dataclass
class MonitorConfig:
    """Polling policy."""

    poll_interval: float = 3.0  # seconds
    max_attempts: int = 40

    @property
    def budget_seconds(self) -> float:
        return self.poll_interval * self.max_attempts


@dataclass
class TerminalStatus:
    """Final provider-reported outcome of a transfer."""

    outcome: StatusOutcome
    attempts: int
    raw_status: str = ""
    completion_ref: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == StatusOutcome.COMPLETED


class StatusMonitor:
    """Poll a provider until it reports completed or failed.

    One read-only status query per attempt, a fixed sleep between attempts
    and a hard attempt budget. Provider errors during a poll count as
    "still pending".
    """

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config or MonitorConfig()
        self._sleep = sleep

    async def monitor(self, ref: str, provider: BridgeProvider) -> TerminalStatus:
        """Wait for a terminal status.

        Args:
            ref: Provider reference to poll (quote id, relay id or intent hash)
            provider: Provider that issued the reference

        Returns:
            TerminalStatus for completed or failed transfers

        Raises:
            BridgeMonitoringTimeout: If the attempt budget runs out first
        """
        max_attempts = self.config.max_attempts
        last_status = ""

        for attempt in range(1, max_attempts + 1):
            try:
                status = await provider.check_status(ref)
            except BridgeError as e:
                logger.warning(f"Status check {attempt}/{max_attempts} for {ref} on {provider.name} failed: {e}")
                status = None

            if status is not None:
                last_status = status.raw_status
                if status.is_terminal:
                    logger.info(
                        f"{provider.name} {ref}: {status.outcome.value} ({status.raw_status}) "
                        f"after {attempt} attempts"
                    )
                    return TerminalStatus(
                        outcome=status.outcome,
                        attempts=attempt,
                        raw_status=status.raw_status,
                        completion_ref=status.completion_ref,
                        error=status.error,
                    )
                logger.debug(f"Waiting for {provider.name} {ref}... status: {status.raw_status}")

            if attempt < max_attempts:
                await self._sleep(self.config.poll_interval)

        raise BridgeMonitoringTimeout(
            f"No terminal status for {ref} after {max_attempts} attempts "
            f"({self.config.budget_seconds:.0f}s); last status: {last_status or 'unknown'}",
            provider=provider.PROVIDER_ID,
            attempts=max_attempts,
            ref=ref,
        )
