"""Pre-flight checks run before any provider is contacted.

Everything here is synchronous and deterministic: no network calls, so a
request that cannot succeed never burns a quote validity window.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from wavebridge.chains import ChainId, ProviderId, get_chain
from wavebridge.errors import InvalidAddressFormat, InvalidAmount
from wavebridge.registry import CapabilityRegistry
from wavebridge.tokens import Route, parse_amount, to_smallest_unit

logger = logging.getLogger(__name__)


def validate_address(address: Optional[str], chain: ChainId | str) -> tuple[bool, str]:
    """Validate address format for a chain.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not address or not isinstance(address, str):
        return False, "Address is required"

    try:
        config = get_chain(chain)
    except ValueError:
        return False, f"Unsupported chain: {chain}"

    if not config.matches(address.strip()):
        return False, f"Invalid {config.name} address: expected {config.address_format}"
    return True, ""


class AddressValidator:
    """Table-driven address checks backed by ChainConfig.address_patterns."""

    def is_valid(self, address: Optional[str], chain: ChainId) -> bool:
        valid, _ = validate_address(address, chain)
        return valid

    def require(self, address: Optional[str], chain: ChainId, field: str = "address") -> str:
        """Return the stripped address or raise.

        Raises:
            InvalidAddressFormat: If the address does not match the chain format
        """
        valid, error = validate_address(address, chain)
        if not valid:
            raise InvalidAddressFormat(
                f"{field}: {error}",
                chain=ChainId(chain).value,
                address=address,
            )
        return address.strip()


@dataclass(frozen=True)
class ValidatedRequest:
    """Result of a successful pre-flight check."""

    route: Route
    amount: Decimal
    amount_units: int
    provider: ProviderId


class BridgeRequestValidator:
    """Route, amount and address checks for a bridge request."""

    def __init__(self, registry: CapabilityRegistry, addresses: Optional[AddressValidator] = None):
        self.registry = registry
        self.addresses = addresses or AddressValidator()

    def validate_amount(self, route: Route, amount: str | Decimal) -> tuple[Decimal, int]:
        """Check that amount is positive and representable by the origin token.

        Raises:
            InvalidAmount: If the amount is malformed, not positive or too precise
        """
        value = parse_amount(amount)
        if value <= 0:
            raise InvalidAmount(f"Amount must be positive, got {amount}", amount=str(amount))
        return value, to_smallest_unit(value, route.origin.decimals)

    def validate(self, route: Route, amount: str | Decimal, options=None) -> ValidatedRequest:
        """Run every pre-flight check.

        Order: route shape, amount, provider availability, then the optional
        recipient (destination chain) and refund (origin chain) addresses.

        Raises:
            InvalidRoute, InvalidAmount, NoProviderForRoute, InvalidAddressFormat
        """
        route.require_cross_chain()
        value, units = self.validate_amount(route, amount)
        provider = self.registry.select(route)

        if options is not None:
            if options.recipient_address is not None:
                self.addresses.require(
                    options.recipient_address, route.destination.chain, field="recipient_address"
                )
            if options.refund_address is not None:
                self.addresses.require(options.refund_address, route.origin.chain, field="refund_address")

        logger.debug(f"Validated {value} {route.origin.symbol} on {route} via {provider.value}")
        return ValidatedRequest(route=route, amount=value, amount_units=units, provider=provider)
