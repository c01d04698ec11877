"""Execution records."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from wavebridge.bridges.base import BridgeQuote, utcnow
from wavebridge.errors import BridgeError, BridgeMonitoringTimeout
from wavebridge.signing.base import DepositSigner


class ExecutionStatus(str, Enum):
    """Bridge execution state machine states."""
    INITIALIZING = "INITIALIZING"
    VALIDATING = "VALIDATING"
    DEPOSITING = "DEPOSITING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


TERMINAL_STATUSES = frozenset({ExecutionStatus.COMPLETED, ExecutionStatus.FAILED})


@dataclass
class BridgeExecution:
    """One attempt to fulfill a quote.

    Owned by the task running it. The quote is referenced, never modified.
    ``total_steps`` is fixed when the record is created.
    """

    quote: BridgeQuote
    total_steps: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: ExecutionStatus = ExecutionStatus.INITIALIZING
    current_step: int = 0
    steps: list[str] = field(default_factory=list)
    deposit_tx_ref: Optional[str] = None
    completion_tx_ref: Optional[str] = None
    monitor_ref: Optional[str] = None
    error: Optional[str] = None
    failure: Optional[BridgeError] = None
    estimated_completion: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.COMPLETED

    @property
    def timed_out(self) -> bool:
        """Monitoring gave up; the transfer may still complete on-chain."""
        return isinstance(self.failure, BridgeMonitoringTimeout)

    @property
    def progress(self) -> float:
        if not self.total_steps:
            return 0.0
        return self.current_step / self.total_steps

    def transition(self, status: ExecutionStatus) -> None:
        if self.is_terminal:
            raise RuntimeError(f"Execution {self.id} is already {self.status.value}")
        self.status = status
        self.updated_at = utcnow()

    def advance(self, description: str) -> None:
        """Record the start of the next step."""
        if self.current_step >= self.total_steps:
            raise RuntimeError(f"Execution {self.id} has no steps left ({self.current_step}/{self.total_steps})")
        self.steps.append(description)
        self.current_step += 1
        self.updated_at = utcnow()

    def complete(self, completion_ref: Optional[str] = None) -> None:
        if completion_ref:
            self.completion_tx_ref = completion_ref
        self.transition(ExecutionStatus.COMPLETED)

    def fail(self, error: BridgeError) -> None:
        self.error = str(error)
        self.failure = error
        self.transition(ExecutionStatus.FAILED)

    def snapshot(self) -> "BridgeExecution":
        """Copy safe to hand to progress listeners."""
        return replace(self, steps=list(self.steps))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "quote_id": self.quote.id,
            "provider": self.quote.provider.value,
            "status": self.status.value,
            "current_step": self.current_step,
            "total_steps": self.total_steps,
            "steps": list(self.steps),
            "deposit_tx_ref": self.deposit_tx_ref,
            "completion_tx_ref": self.completion_tx_ref,
            "error": self.error,
            "timed_out": self.timed_out,
            "user_action": self.failure.user_action if self.failure else None,
            "estimated_completion": self.estimated_completion.isoformat() if self.estimated_completion else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


UpdateCallback = Callable[[BridgeExecution], Awaitable[Any]]


@dataclass
class ExecutionContext:
    """Caller-supplied collaborators for one execution."""

    signer: DepositSigner
    sender_address: str
    recipient_address: Optional[str] = None
    refund_address: Optional[str] = None
    on_update: Optional[UpdateCallback] = None
