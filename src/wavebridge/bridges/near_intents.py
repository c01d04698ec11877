"""NEAR Intents bridge via the 1Click API.

Quote -> deposit to the quoted address -> submit deposit tx -> poll status.
API docs: https://docs.near-intents.org/near-intents/integration/distribution-channels/1click-api
"""

import logging
from datetime import timedelta
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
    utcnow,
)
from wavebridge.bridges.models import (
    OneClickQuoteRequest,
    OneClickQuoteResponse,
    OneClickStatusResponse,
    OneClickToken,
)
from wavebridge.chains import ChainId, ProviderId
from wavebridge.errors import (
    InsufficientLiquidity,
    InvalidAddressFormat,
    InvalidAmount,
    NoProviderForRoute,
    ProviderResponseError,
)
from wavebridge.tokens import BridgeSupport, CrossChainToken, Route

logger = logging.getLogger(__name__)

# 1Click status -> normalized outcome. Anything else is still pending.
COMPLETED_STATUSES = {"SUCCESS"}
FAILED_STATUSES = {"FAILED", "REFUNDED"}

# Chain names used by the /tokens listing
LISTING_CHAINS = {
    "sol": ChainId.SOLANA,
    "solana": ChainId.SOLANA,
    "near": ChainId.NEAR,
    "zec": ChainId.ZCASH,
    "zcash": ChainId.ZCASH,
    "starknet": ChainId.STARKNET,
}


def calculate_fee(amount: Decimal, fee_bps: int, swap_type: str = "EXACT_INPUT") -> Decimal:
    """Fee charged on an amount at a basis-point rate.

    EXACT_INPUT takes the fee out of the amount; EXACT_OUTPUT adds it on top.
    Both come out to amount * bps / 10000.
    """
    amount = Decimal(amount)
    rate = Decimal(fee_bps) / Decimal(10000)
    if swap_type == "EXACT_INPUT":
        return amount - amount * (1 - rate)
    return amount * (1 + rate) - amount


class NearIntentsProvider(BridgeProvider):
    """Intents-based settlement through the 1Click API."""

    PROVIDER_ID = ProviderId.NEAR_INTENTS
    DEPOSIT_STEP = "Executing NEAR Intents deposit"
    PROCESSING_STEPS = ("Submitting deposit to NEAR Intents",)
    ESTIMATED_TIME = "3-6 minutes"
    ESTIMATED_SECONDS = 360

    ERRORS = {
        "insufficient liquidity": InsufficientLiquidity,
        "no quotes": InsufficientLiquidity,
        "amount is too low": InvalidAmount,
        "tokens are not supported": NoProviderForRoute,
    }

    @property
    def base_url(self) -> str:
        return self.settings.near_intents_api_url.rstrip("/")

    @property
    def headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.settings.near_intents_jwt:
            headers["Authorization"] = f"Bearer {self.settings.near_intents_jwt}"
        return headers

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
            raise NoProviderForRoute(f"NEAR Intents does not support {route}", provider=self.PROVIDER_ID)

        if not options.recipient_address or not options.refund_address:
            raise InvalidAddressFormat(
                "NEAR Intents quotes need both recipient_address and refund_address",
                provider=self.PROVIDER_ID,
            )

        amount_units = origin.to_smallest_unit(amount)
        if amount_units <= 0:
            raise InvalidAmount(f"Amount must be positive, got {amount}", provider=self.PROVIDER_ID)

        deadline = utcnow() + timedelta(seconds=options.deadline_seconds)
        request = OneClickQuoteRequest(
            slippage_tolerance=options.slippage_bps,
            origin_asset=origin.asset_id,
            destination_asset=destination.asset_id,
            amount=str(amount_units),
            refund_to=options.refund_address,
            recipient=options.recipient_address,
            deadline=deadline.isoformat().replace("+00:00", "Z"),
        )

        logger.info(f"Requesting NEAR Intents quote: {amount} {route} ({amount_units} units)")
        data = await self._with_retry(
            self._request,
            "POST",
            f"{self.base_url}/quote",
            json=request.model_dump(by_alias=True),
            headers=self.headers,
        )
        response = self._parse(OneClickQuoteResponse, data, method="quote")

        try:
            out_units = int(response.amount.amount_out)
            fee_units = int(response.fee.amount)
        except ValueError as e:
            raise ProviderResponseError(f"Non-integer amount in 1Click quote: {e}", provider=self.PROVIDER_ID)

        if out_units <= 0:
            raise InsufficientLiquidity(
                f"NEAR Intents returned no output for {amount} {origin.symbol}",
                provider=self.PROVIDER_ID,
                quote_id=response.id,
            )

        from_amount = origin.from_smallest_unit(amount_units)
        to_amount = destination.from_smallest_unit(out_units)
        if fee_units:
            fee_amount = origin.from_smallest_unit(fee_units)
        else:
            fee_amount = calculate_fee(from_amount, response.fee.bps)

        quote = BridgeQuote(
            id=response.id,
            origin_token=origin,
            destination_token=destination,
            from_amount=str(amount),
            to_amount=to_amount,
            rate=to_amount / from_amount,
            provider=self.PROVIDER_ID,
            fee_amount=fee_amount,
            fee_percentage=Decimal(response.fee.bps) / Decimal(100),
            deposit_chain=origin.chain,
            destination_chain=destination.chain,
            expires_at=self._expires_at(options, response.expires_at),
            from_amount_units=str(amount_units),
            deposit_address=response.deposit_address,
            destination_address=options.recipient_address,
            refund_address=options.refund_address,
            deposit_memo=response.deposit_memo,
            slippage_tolerance=options.slippage_percent,
            estimated_time=self.ESTIMATED_TIME,
            estimated_seconds=response.time_estimate or self.ESTIMATED_SECONDS,
        )
        logger.info(
            f"NEAR Intents quote {quote.id}: {quote.from_amount} {origin.symbol} -> "
            f"{to_amount} {destination.symbol} (fee {response.fee.bps} bps)"
        )
        return quote

    async def process(self, quote: BridgeQuote, deposit_ref: str, advance: StepCallback) -> ProcessResult:
        await advance(self.PROCESSING_STEPS[0])
        await self._request(
            "POST",
            f"{self.base_url}/deposit/submit",
            json={"quoteId": quote.id, "txHash": deposit_ref},
            headers=self.headers,
        )
        logger.info(f"Submitted deposit {deposit_ref} for quote {quote.id}")
        return ProcessResult(monitor_ref=quote.id)

    async def check_status(self, ref: str) -> ProviderStatus:
        data = await self._request(
            "GET", f"{self.base_url}/status", params={"quoteId": ref}, headers=self.headers
        )
        response = self._parse(OneClickStatusResponse, data, method="status", quote_id=ref)

        if response.status in COMPLETED_STATUSES:
            outcome = StatusOutcome.COMPLETED
        elif response.status in FAILED_STATUSES:
            outcome = StatusOutcome.FAILED
        else:
            outcome = StatusOutcome.PENDING

        error = None
        if outcome == StatusOutcome.FAILED:
            error = response.error or f"NEAR Intents reported {response.status}"
        return ProviderStatus(
            outcome=outcome,
            raw_status=response.status,
            completion_ref=response.tx_hash,
            error=error,
        )

    async def list_tokens(self) -> list[CrossChainToken]:
        """Tokens the 1Click API can route, on chains this engine supports."""
        data = await self._with_retry(self._request, "GET", f"{self.base_url}/tokens", headers=self.headers)
        if not isinstance(data, list):
            raise ProviderResponseError("1Click /tokens did not return a list", provider=self.PROVIDER_ID)

        tokens = []
        for item in data:
            listing = self._parse(OneClickToken, item, method="tokens")
            chain = LISTING_CHAINS.get(listing.chain.lower())
            if chain is None:
                continue
            tokens.append(
                CrossChainToken(
                    symbol=listing.symbol,
                    name=listing.name or listing.symbol,
                    address=listing.address,
                    decimals=listing.decimals,
                    chain=chain,
                    bridge_support=BridgeSupport(near_intents=True),
                    logo_uri=listing.logo_uri,
                )
            )
        logger.debug(f"1Click lists {len(tokens)} tokens on supported chains")
        return tokens
