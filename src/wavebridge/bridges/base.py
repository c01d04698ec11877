"""Abstract bridge provider interface and the quote value object."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
from tenacity import (
    AsyncRetrying,
    before_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from wavebridge.chains import ChainId, ProviderId
from wavebridge.config import Settings
from wavebridge.errors import (
    BridgeError,
    InvalidAddressFormat,
    ProviderRequestError,
    ProviderResponseError,
    QuoteProviderUnavailable,
)
from wavebridge.tokens import CrossChainToken, Route, format_amount

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Invoked by a provider right before each processing sub-step starts.
StepCallback = Callable[[str], Awaitable[None]]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuoteStatus(str, Enum):
    """Lifecycle status of a quote."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class BridgeOptions:
    """Caller options for a quote request."""

    slippage_bps: int = 50
    deadline_seconds: int = 1200
    recipient_address: Optional[str] = None
    refund_address: Optional[str] = None

    @property
    def slippage_percent(self) -> Decimal:
        return Decimal(self.slippage_bps) / Decimal(100)


@dataclass(frozen=True, eq=False)
class BridgeQuote:
    """A time-bounded, priced offer to move tokens across chains.

    Quotes are immutable once returned, route_details included. Execution
    carries them by reference and tracks progress separately. Two quotes
    are equal when they share an id.
    """

    id: str
    origin_token: CrossChainToken
    destination_token: CrossChainToken
    from_amount: str  # Human-readable units
    to_amount: Decimal
    rate: Decimal
    provider: ProviderId
    fee_amount: Decimal
    fee_percentage: Decimal
    deposit_chain: ChainId
    destination_chain: ChainId
    expires_at: datetime
    from_amount_units: str  # Smallest units, as sent to the provider
    deposit_address: Optional[str] = None
    destination_address: Optional[str] = None
    refund_address: Optional[str] = None
    deposit_memo: Optional[str] = None
    slippage_tolerance: Decimal = Decimal("0.5")  # Percent
    estimated_time: str = ""
    estimated_seconds: int = 0
    status: QuoteStatus = QuoteStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    route_details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "route_details", MappingProxyType(dict(self.route_details)))

    def __eq__(self, other):
        if not isinstance(other, BridgeQuote):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    @property
    def route(self) -> Route:
        return Route(self.origin_token, self.destination_token)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if quote has expired."""
        return (now or utcnow()) > self.expires_at

    @property
    def seconds_until_expiry(self) -> float:
        """Get seconds until quote expires (negative if expired)."""
        return (self.expires_at - utcnow()).total_seconds()

    def to_dict(self) -> dict:
        """Convert to dictionary for display."""
        return {
            "id": self.id,
            "provider": self.provider.value,
            "origin_token": self.origin_token.to_dict(),
            "destination_token": self.destination_token.to_dict(),
            "from_amount": self.from_amount,
            "from_amount_units": self.from_amount_units,
            "to_amount": format_amount(self.to_amount),
            "rate": format_amount(self.rate),
            "fee_amount": format_amount(self.fee_amount),
            "fee_percentage": format_amount(self.fee_percentage),
            "deposit_chain": self.deposit_chain.value,
            "destination_chain": self.destination_chain.value,
            "deposit_address": self.deposit_address,
            "destination_address": self.destination_address,
            "slippage_tolerance": format_amount(self.slippage_tolerance),
            "estimated_time": self.estimated_time,
            "expires_at": self.expires_at.isoformat(),
            "status": self.status.value,
        }


class StatusOutcome(str, Enum):
    """Normalized result of one status query."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ProviderStatus:
    """One provider status observation, normalized."""

    outcome: StatusOutcome
    raw_status: str = ""
    completion_ref: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.outcome != StatusOutcome.PENDING


@dataclass
class ProcessResult:
    """Output of the provider processing sub-steps."""

    monitor_ref: str
    completion_ref: Optional[str] = None


class BridgeProvider(ABC):
    """Abstract base class for bridging backends.

    Each provider prices routes, runs its post-deposit sub-steps and answers
    read-only status queries. Execution order and step accounting belong to
    the state machine, not to providers.
    """

    PROVIDER_ID: ProviderId
    DEPOSIT_STEP: str = "Depositing on origin chain"
    PROCESSING_STEPS: tuple[str, ...] = ()
    ESTIMATED_TIME: str = "5-12 minutes"
    ESTIMATED_SECONDS: int = 720

    # Substring of a provider error message -> error class
    ERRORS: dict[str, Type[BridgeError]] = {}

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._client = client
        self._owns_client = client is None

    @property
    def name(self) -> str:
        return self.PROVIDER_ID.value

    @property
    def total_steps(self) -> int:
        """Validate, deposit, processing sub-steps, monitor."""
        return 3 + len(self.PROCESSING_STEPS)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.request_timeout)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def supports_route(self, route: Route) -> bool:
        """Check if both tokens declare support for this provider."""
        return route.origin.bridge_support.supports(self.PROVIDER_ID) and route.destination.bridge_support.supports(
            self.PROVIDER_ID
        )

    @abstractmethod
    async def generate_quote(
        self,
        origin: CrossChainToken,
        destination: CrossChainToken,
        amount: str,
        options: Optional[BridgeOptions] = None,
    ) -> BridgeQuote:
        """
        Price a transfer.

        Args:
            origin: Token sent on the origin chain
            destination: Token received on the destination chain
            amount: Amount in human-readable units
            options: Slippage, deadline and address options

        Returns:
            BridgeQuote with status=pending

        Raises:
            InvalidRoute, InvalidAmount, QuoteProviderUnavailable,
            InsufficientLiquidity, ProviderResponseError
        """
        pass

    @abstractmethod
    async def process(self, quote: BridgeQuote, deposit_ref: str, advance: StepCallback) -> ProcessResult:
        """
        Run the post-deposit sub-steps.

        Calls ``advance`` with each entry of PROCESSING_STEPS, in order,
        right before that sub-step starts.

        Returns:
            Reference to poll plus the completion reference, when known
        """
        pass

    @abstractmethod
    async def check_status(self, ref: str) -> ProviderStatus:
        """Single read-only status query."""
        pass

    # ======================
    # Helpers
    # ======================

    def _expires_at(self, options: BridgeOptions, provider_expiry: Optional[datetime] = None) -> datetime:
        """Quote expiry: the caller's deadline, capped by the provider's own expiry."""
        expires_at = utcnow() + timedelta(seconds=options.deadline_seconds)
        if provider_expiry is not None:
            if provider_expiry.tzinfo is None:
                provider_expiry = provider_expiry.replace(tzinfo=timezone.utc)
            expires_at = min(expires_at, provider_expiry)
        return expires_at

    def _options(self, options: Optional[BridgeOptions]) -> BridgeOptions:
        if options is not None:
            return options
        return BridgeOptions(
            slippage_bps=self.settings.default_slippage_bps,
            deadline_seconds=self.settings.default_deadline_seconds,
        )

    def _require_recipient(self, options: BridgeOptions) -> str:
        """Quotes without a destination address cannot be executed.

        Raises:
            InvalidAddressFormat: If options carry no recipient_address
        """
        if not options.recipient_address:
            raise InvalidAddressFormat(
                f"{self.name} quotes need a recipient_address", provider=self.PROVIDER_ID
            )
        return options.recipient_address

    async def _with_retry(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Retry a read-only call on transport failures."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.quote_retry_attempts),
            wait=wait_exponential(multiplier=self.settings.quote_retry_wait, max=10),
            retry=retry_if_exception_type(QuoteProviderUnavailable),
            before=before_log(logger, logging.DEBUG),
            reraise=True,
        )
        return await retrying(func, *args, **kwargs)

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        """Send one HTTP request and return the decoded JSON body.

        Raises:
            QuoteProviderUnavailable: Transport failure or 5xx
            ProviderRequestError: 4xx (or a mapped subclass from ERRORS)
            ProviderResponseError: Body cannot be decoded or is not JSON
        """
        logger.debug(f"{self.name}: {method} {url}")
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise QuoteProviderUnavailable(f"{self.name} request failed: {e!r}", provider=self.PROVIDER_ID)
        except httpx.HTTPError as e:
            raise ProviderResponseError(f"{self.name} response could not be read: {e!r}", provider=self.PROVIDER_ID)

        if response.status_code >= 500:
            raise QuoteProviderUnavailable(
                f"{self.name} returned HTTP {response.status_code}",
                provider=self.PROVIDER_ID,
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise self._error_from_response(response)

        try:
            return response.json()
        except ValueError as e:
            raise ProviderResponseError(f"{self.name} returned invalid JSON: {e}", provider=self.PROVIDER_ID)

    def _error_from_response(self, response: httpx.Response) -> BridgeError:
        """Map a 4xx response to the most specific error class."""
        try:
            data = response.json()
        except ValueError:
            data = {}
        text = ""
        if isinstance(data, dict):
            text = str(data.get("message") or data.get("error") or "")
        text = text or response.text or f"HTTP {response.status_code}"
        return self._map_error(text, status_code=response.status_code)

    def _map_error(self, text: str, **context) -> BridgeError:
        for fragment, error_class in self.ERRORS.items():
            if fragment.lower() in text.lower():
                return error_class(text, provider=self.PROVIDER_ID, **context)
        return ProviderRequestError(text, provider=self.PROVIDER_ID, **context)

    def _parse(self, model: Type[ModelT], data: Any, **context) -> ModelT:
        """Validate a provider payload.

        Raises:
            ProviderResponseError: If the payload does not match the model
        """
        try:
            return model.model_validate(data)
        except ValidationError as e:
            error = ProviderResponseError(
                f"Unexpected {self.name} response: {e.error_count()} validation errors",
                provider=self.PROVIDER_ID,
                model=model.__name__,
                **context,
            )
            logger.error(*error.to_log_args(), extra=error.to_dict())
            raise error

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider={self.name})"
