"""StarkGate lock/relay bridge between Solana and StarkNet.

Quotes are computed locally: same asset on both sides, rate 1, minus a flat
per-token bridge fee. Execution locks funds in the escrow, then the relay
service carries the deposit across and executes it on the destination chain.
"""

import logging
import uuid
from decimal import Decimal
from typing import Optional

from wavebridge.bridges.base import (
    BridgeOptions,
    BridgeProvider,
    BridgeQuote,
    ProcessResult,
    ProviderStatus,
    StatusOutcome,
    StepCallback,
)
from wavebridge.bridges.models import ExecuteResponse, RelayResponse, RelayStatusResponse
from wavebridge.chains import ProviderId, is_native_bridge_pair
from wavebridge.errors import InvalidAmount, InvalidQuote, InvalidRoute
from wavebridge.tokens import CrossChainToken, Route, rescale_units

logger = logging.getLogger(__name__)

# Flat bridge fee per token, in human units of the token itself
BRIDGE_FEES: dict[str, Decimal] = {
    "ETH": Decimal("0.001"),
    "USDC": Decimal("0.5"),
    "USDT": Decimal("0.5"),
    "SOL": Decimal("0.01"),
}

# Added to the fee to get the smallest transfer worth bridging
MIN_AMOUNT_BUFFER = Decimal("0.001")

COMPLETED_STATUSES = {"COMPLETED", "EXECUTED", "FINALIZED"}
FAILED_STATUSES = {"FAILED", "REJECTED"}


class StarkGateProvider(BridgeProvider):
    """Native Solana <-> StarkNet bridge."""

    PROVIDER_ID = ProviderId.STARKGATE
    DEPOSIT_STEP = "Locking tokens in StarkGate escrow"
    PROCESSING_STEPS = ("Relaying deposit to destination chain", "Executing transfer on destination chain")
    ESTIMATED_TIME = "4-8 minutes"
    ESTIMATED_SECONDS = 480

    @property
    def relay_url(self) -> str:
        return self.settings.starkgate_relay_url.rstrip("/")

    def supports_route(self, route: Route) -> bool:
        return is_native_bridge_pair(route.origin.chain, route.destination.chain)

    def bridge_fee_units(self, token: CrossChainToken, amount_units: int) -> int:
        """Bridge fee in the token's smallest units.

        Tokens without a flat fee pay starkgate_fee_bps of the amount.
        """
        flat_fee = BRIDGE_FEES.get(token.symbol.upper())
        if flat_fee is not None:
            return token.to_smallest_unit(flat_fee)
        return amount_units * self.settings.starkgate_fee_bps // 10000

    def minimum_amount(self, token: CrossChainToken) -> Decimal:
        """Smallest amount accepted for a token (flat fee tokens only)."""
        return BRIDGE_FEES.get(token.symbol.upper(), Decimal("0")) + MIN_AMOUNT_BUFFER

    async def generate_quote(
        self,
        origin: CrossChainToken,
        destination: CrossChainToken,
        amount: str,
        options: Optional[BridgeOptions] = None,
    ) -> BridgeQuote:
        options = self._options(options)
        route = Route(origin, destination).require_cross_chain()
        if not self.supports_route(route):
            raise InvalidRoute(f"StarkGate only bridges Solana <-> StarkNet, not {route}", provider=self.PROVIDER_ID)
        if origin.symbol.upper() != destination.symbol.upper():
            raise InvalidRoute(
                f"StarkGate moves one asset across chains, got {origin.symbol} -> {destination.symbol}",
                provider=self.PROVIDER_ID,
            )

        amount_units = origin.to_smallest_unit(amount)
        from_amount = origin.from_smallest_unit(amount_units)
        minimum = self.minimum_amount(origin)
        if from_amount < minimum:
            raise InvalidAmount(
                f"Minimum StarkGate transfer is {minimum} {origin.symbol}",
                provider=self.PROVIDER_ID,
                minimum=str(minimum),
            )
        recipient = self._require_recipient(options)

        deposit_address = self.settings.get_deposit_address(self.PROVIDER_ID, origin.chain)
        if not deposit_address:
            raise InvalidQuote(
                f"No StarkGate escrow configured on {origin.chain.value}", provider=self.PROVIDER_ID
            )

        fee_units = self.bridge_fee_units(origin, amount_units)
        out_units = rescale_units(amount_units - fee_units, origin.decimals, destination.decimals)
        to_amount = destination.from_smallest_unit(out_units)
        fee_amount = origin.from_smallest_unit(fee_units)

        quote = BridgeQuote(
            id=f"sg_{uuid.uuid4().hex}",
            origin_token=origin,
            destination_token=destination,
            from_amount=str(amount),
            to_amount=to_amount,
            rate=Decimal("1"),
            provider=self.PROVIDER_ID,
            fee_amount=fee_amount,
            fee_percentage=(fee_amount / from_amount * 100).quantize(Decimal("0.0001")),
            deposit_chain=origin.chain,
            destination_chain=destination.chain,
            expires_at=self._expires_at(options),
            from_amount_units=str(amount_units),
            deposit_address=deposit_address,
            destination_address=recipient,
            refund_address=options.refund_address,
            slippage_tolerance=options.slippage_percent,
            estimated_time=self.ESTIMATED_TIME,
            estimated_seconds=self.ESTIMATED_SECONDS,
        )
        logger.info(
            f"StarkGate quote {quote.id}: {from_amount} {origin.symbol} -> {to_amount} {destination.symbol} "
            f"(fee {fee_amount})"
        )
        return quote

    async def process(self, quote: BridgeQuote, deposit_ref: str, advance: StepCallback) -> ProcessResult:
        if not quote.destination_address:
            raise InvalidQuote("StarkGate execution needs a destination address", provider=self.PROVIDER_ID)

        await advance(self.PROCESSING_STEPS[0])
        data = await self._request(
            "POST",
            f"{self.relay_url}/relay",
            json={
                "quoteId": quote.id,
                "depositTx": deposit_ref,
                "originChain": quote.deposit_chain.value,
                "destinationChain": quote.destination_chain.value,
                "token": quote.destination_token.address,
                "amount": quote.from_amount_units,
                "recipient": quote.destination_address,
            },
        )
        relay = self._parse(RelayResponse, data, method="relay", quote_id=quote.id)
        logger.info(f"Relay {relay.relay_id} accepted deposit {deposit_ref}")

        await advance(self.PROCESSING_STEPS[1])
        data = await self._request("POST", f"{self.relay_url}/execute", json={"relayId": relay.relay_id})
        execution = self._parse(ExecuteResponse, data, method="execute", quote_id=quote.id)
        logger.info(f"Relay {relay.relay_id} executed on {quote.destination_chain.value}: {execution.tx_hash}")

        return ProcessResult(monitor_ref=relay.relay_id, completion_ref=execution.tx_hash)

    async def check_status(self, ref: str) -> ProviderStatus:
        data = await self._request("GET", f"{self.relay_url}/status/{ref}")
        response = self._parse(RelayStatusResponse, data, method="status")
        status = response.status.upper()

        if status in COMPLETED_STATUSES:
            return ProviderStatus(StatusOutcome.COMPLETED, status, completion_ref=response.tx_hash)
        if status in FAILED_STATUSES:
            return ProviderStatus(
                StatusOutcome.FAILED,
                status,
                error=response.error or f"StarkGate relay reported {status}",
            )
        return ProviderStatus(StatusOutcome.PENDING, status)
