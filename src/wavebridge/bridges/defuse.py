"""Defuse generic cross-chain settlement via the solver relay (JSON-RPC).

Solvers compete on each quote request; the best amount_out wins. After the
deposit lands, an intent referencing the winning quote hash is published and
tracked until the verifier contract settles it.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any, Optional

from wavebridge.bridges.base import (
    BridgeOptions,
    BridgeProvider,
    BridgeQuote,
    ProcessResult,
    ProviderStatus,
    StatusOutcome,
    StepCallback,
)
from wavebridge.bridges.models import (
    IntentStatusResult,
    JsonRpcResponse,
    PublishIntentResult,
    SolverQuote,
)
from wavebridge.chains import ProviderId
from wavebridge.errors import (
    ExecutionStepFailed,
    InsufficientLiquidity,
    InvalidAmount,
    InvalidQuote,
    NoProviderForRoute,
    ProviderResponseError,
)
from wavebridge.tokens import CrossChainToken, Route

logger = logging.getLogger(__name__)

SETTLED = "SETTLED"
NOT_FOUND = "NOT_FOUND_OR_NOT_VALID"


class DefuseProvider(BridgeProvider):
    """Generic settlement through Defuse solvers."""

    PROVIDER_ID = ProviderId.DEFUSE
    DEPOSIT_STEP = "Depositing to Defuse verifier"
    PROCESSING_STEPS = ("Publishing intent to solver relay",)
    ESTIMATED_TIME = "3-5 minutes"
    ESTIMATED_SECONDS = 300

    ERRORS = {
        "insufficient": InsufficientLiquidity,
        "amount too small": InvalidAmount,
        "unsupported asset": NoProviderForRoute,
    }

    async def _rpc(self, method: str, params: dict, retry: bool = False) -> Any:
        """Call one solver relay method and return its result."""
        body = {
            "id": 1,
            "jsonrpc": "2.0",
            "method": method,
            "params": [params],
        }
        url = self.settings.defuse_solver_relay_url
        if retry:
            data = await self._with_retry(self._request, "POST", url, json=body)
        else:
            data = await self._request("POST", url, json=body)

        response = self._parse(JsonRpcResponse, data, method=method)
        if response.error is not None:
            raise self._map_error(response.error.message or f"{method} failed", rpc_code=response.error.code)
        return response.result

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
            raise NoProviderForRoute(f"Defuse does not support {route}", provider=self.PROVIDER_ID)

        amount_units = origin.to_smallest_unit(amount)
        if amount_units <= 0:
            raise InvalidAmount(f"Amount must be positive, got {amount}", provider=self.PROVIDER_ID)
        recipient = self._require_recipient(options)

        deposit_address = self.settings.get_deposit_address(self.PROVIDER_ID, origin.chain)
        if not deposit_address:
            raise InvalidQuote(f"No Defuse deposit address on {origin.chain.value}", provider=self.PROVIDER_ID)

        logger.info(f"Requesting Defuse solver quotes: {amount} {route} ({amount_units} units)")
        result = await self._rpc(
            "quote",
            {
                "defuse_asset_identifier_in": origin.nep141_id,
                "defuse_asset_identifier_out": destination.nep141_id,
                "exact_amount_in": str(amount_units),
                "min_deadline_ms": options.deadline_seconds * 1000,
            },
            retry=True,
        )
        if not result:
            raise InsufficientLiquidity(
                f"No Defuse solver quoted {amount} {origin.symbol} -> {destination.symbol}",
                provider=self.PROVIDER_ID,
            )
        if not isinstance(result, list):
            raise ProviderResponseError("Defuse quote result is not a list", provider=self.PROVIDER_ID)

        solver_quotes = [self._parse(SolverQuote, item, method="quote") for item in result]
        try:
            best = max(solver_quotes, key=lambda q: int(q.amount_out))
            out_units = int(best.amount_out)
        except ValueError as e:
            raise ProviderResponseError(f"Non-integer amount_out in solver quote: {e}", provider=self.PROVIDER_ID)

        if out_units <= 0:
            raise InsufficientLiquidity(f"Best Defuse quote is empty for {route}", provider=self.PROVIDER_ID)

        from_amount = origin.from_smallest_unit(amount_units)
        to_amount = destination.from_smallest_unit(out_units)

        quote = BridgeQuote(
            id=f"df_{uuid.uuid4().hex}",
            origin_token=origin,
            destination_token=destination,
            from_amount=str(amount),
            to_amount=to_amount,
            rate=to_amount / from_amount,
            provider=self.PROVIDER_ID,
            # Solvers price their fee into amount_out
            fee_amount=Decimal("0"),
            fee_percentage=Decimal("0"),
            deposit_chain=origin.chain,
            destination_chain=destination.chain,
            expires_at=self._expires_at(options, best.expiration_time),
            from_amount_units=str(amount_units),
            deposit_address=deposit_address,
            destination_address=recipient,
            refund_address=options.refund_address,
            slippage_tolerance=options.slippage_percent,
            estimated_time=self.ESTIMATED_TIME,
            estimated_seconds=self.ESTIMATED_SECONDS,
            route_details={
                "quote_hash": best.quote_hash,
                "asset_in": best.defuse_asset_identifier_in,
                "asset_out": best.defuse_asset_identifier_out,
                "solver_quotes": len(solver_quotes),
            },
        )
        logger.info(
            f"Defuse quote {quote.id}: best of {len(solver_quotes)} solver quotes "
            f"{to_amount} {destination.symbol} (hash {best.quote_hash})"
        )
        return quote

    async def process(self, quote: BridgeQuote, deposit_ref: str, advance: StepCallback) -> ProcessResult:
        quote_hash = quote.route_details.get("quote_hash")
        if not quote_hash:
            raise InvalidQuote("Defuse quote has no solver quote hash", provider=self.PROVIDER_ID)

        await advance(self.PROCESSING_STEPS[0])
        result = await self._rpc(
            "publish_intent",
            {
                "quote_hashes": [quote_hash],
                "deposit_tx": deposit_ref,
                "recipient": quote.destination_address,
            },
        )
        published = self._parse(PublishIntentResult, result, method="publish_intent")
        if published.status != "OK" or not published.intent_hash:
            raise ExecutionStepFailed(
                published.reason or f"Solver relay rejected intent ({published.status})",
                provider=self.PROVIDER_ID,
            )

        logger.info(f"Published intent {published.intent_hash} for quote {quote.id}")
        return ProcessResult(monitor_ref=published.intent_hash)

    async def check_status(self, ref: str) -> ProviderStatus:
        result = await self._rpc("get_status", {"intent_hash": ref})
        status = self._parse(IntentStatusResult, result, method="get_status")

        if status.status == SETTLED:
            completion_ref = status.data.hash if status.data else None
            return ProviderStatus(StatusOutcome.COMPLETED, status.status, completion_ref=completion_ref)
        if status.status == NOT_FOUND:
            return ProviderStatus(
                StatusOutcome.FAILED, status.status, error=f"Intent {ref} was not found or is not valid"
            )
        return ProviderStatus(StatusOutcome.PENDING, status.status)
