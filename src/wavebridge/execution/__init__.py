"""Bridge execution: state machine and status monitor."""

from wavebridge.execution.models import (
    BridgeExecution,
    ExecutionContext,
    ExecutionStatus,
)
from wavebridge.execution.monitor import MonitorConfig, StatusMonitor, TerminalStatus
from wavebridge.execution.state_machine import BridgeExecutor

__all__ = [
    "BridgeExecution",
    "BridgeExecutor",
    "ExecutionContext",
    "ExecutionStatus",
    "MonitorConfig",
    "StatusMonitor",
    "TerminalStatus",
]
