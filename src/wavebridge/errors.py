"""Bridge error taxonomy.

Every error carries the provider, quote id and step index (when known) so
it can be logged and displayed without inspecting engine internals.
"""

from enum import Enum
from typing import Optional


def _label(value) -> Optional[str]:
    if value is None:
        return None
    return value.value if isinstance(value, Enum) else str(value)


class UserMistakes:
    error_owner = "user"
    retryable = False


class ProviderMistakes:
    error_owner = "provider"
    retryable = False


class BridgeMistakes:
    error_owner = "bridge"
    retryable = False


class BridgeError(Exception):
    """Common error for the bridge engine."""

    msg_to_log = "Bridge error"
    user_action: Optional[str] = None
    error_owner = "bridge"
    retryable = False

    def __init__(
        self,
        message: Optional[str] = None,
        provider: Optional[str] = None,
        quote_id: Optional[str] = None,
        step: Optional[int] = None,
        **kwargs,
    ):
        self.message = message or self.msg_to_log
        self.provider = _label(provider)
        self.quote_id = quote_id
        self.step = step
        self.kwargs = kwargs
        super().__init__(self.message)

    def __str__(self):
        return self.message

    def __repr__(self):
        return (
            f"{self.__class__.__name__}({self.message!r}, provider={self.provider}, "
            f"quote_id={self.quote_id}, step={self.step}, {self.kwargs})"
        )

    def with_context(self, **context) -> "BridgeError":
        """Fill in missing context fields and return self."""
        for name in ("provider", "quote_id", "step"):
            if getattr(self, name) is None and context.get(name) is not None:
                value = context[name]
                setattr(self, name, _label(value) if name == "provider" else value)
        return self

    def to_dict(self) -> dict:
        return {
            "error": self.__class__.__name__,
            "reason": self.message,
            "provider": self.provider,
            "quote_id": self.quote_id,
            "step": self.step,
            "error_owner": self.error_owner,
            "retryable": self.retryable,
            **self.kwargs,
        }

    def to_log_args(self) -> tuple:
        return (
            "%s: %s (provider=%s, quote=%s, step=%s)",
            self.msg_to_log,
            self.message,
            self.provider,
            self.quote_id,
            self.step,
        )


# ======================
# Input errors
# ======================

class InvalidRoute(UserMistakes, BridgeError):
    """Origin and destination are on the same chain, or the route is malformed"""
    msg_to_log = "Invalid route"
    user_action = "Choose a destination on a different chain"


class InvalidAmount(UserMistakes, BridgeError):
    """Amount is not a positive number the token can represent"""
    msg_to_log = "Invalid amount"
    user_action = "Enter a different amount"


class InvalidQuote(UserMistakes, BridgeError):
    """Quote is missing data required to execute it"""
    msg_to_log = "Invalid quote"
    user_action = "Request a new quote"


class InvalidAddressFormat(UserMistakes, BridgeError):
    """Address does not match the chain's address format"""
    msg_to_log = "Invalid address format"
    user_action = "Check the address"


class QuoteExpired(UserMistakes, BridgeError):
    """Quote validity window has passed"""
    msg_to_log = "Quote has expired"
    user_action = "Request a new quote"


# ======================
# Provider errors
# ======================

class QuoteProviderUnavailable(ProviderMistakes, BridgeError):
    """Provider API did not respond or returned a server error"""
    msg_to_log = "Provider is unavailable"
    user_action = "Retry"
    retryable = True


class InsufficientLiquidity(ProviderMistakes, BridgeError):
    """Provider cannot fill the requested amount"""
    msg_to_log = "Insufficient liquidity"
    user_action = "Try a smaller amount"


class NoProviderForRoute(ProviderMistakes, BridgeError):
    """No backend can service the route"""
    msg_to_log = "No bridge provider for route"
    user_action = "Try a different token pair"


class ProviderRequestError(ProviderMistakes, BridgeError):
    """Provider rejected the request"""
    msg_to_log = "Provider rejected request"


class ProviderNotConfigured(BridgeMistakes, BridgeError):
    """Provider id has no configured implementation"""
    msg_to_log = "Provider is not configured"


class ProviderResponseError(BridgeMistakes, BridgeError):
    """Provider returned a response we cannot parse"""
    msg_to_log = "Cannot parse provider response"


# ======================
# Execution errors
# ======================

class DepositFailed(ProviderMistakes, BridgeError):
    """Deposit on the origin chain failed"""
    msg_to_log = "Deposit failed"
    user_action = "Request a new quote"


class ExecutionStepFailed(ProviderMistakes, BridgeError):
    """Relay, submission or settlement step failed"""
    msg_to_log = "Bridge step failed"


class BridgeFailed(ProviderMistakes, BridgeError):
    """Provider reported the transfer as failed"""
    msg_to_log = "Bridge transfer failed"


class BridgeMonitoringTimeout(BridgeMistakes, BridgeError):
    """Monitor stopped watching before a terminal status was observed.

    The transfer may still complete on-chain.
    """
    msg_to_log = "Bridge monitoring timeout"
    user_action = "Check the chain explorers before retrying"
