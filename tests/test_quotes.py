"""Tests for the quote generators."""

import asyncio
from datetime import timedelta
from decimal import Decimal

import httpx
import pytest

from conftest import NEAR_ADDRESS, SOLANA_ADDRESS, STARKNET_ADDRESS, mock_client, request_json
from wavebridge.bridges.base import BridgeOptions, QuoteStatus, StatusOutcome, utcnow
from wavebridge.bridges.defuse import DefuseProvider
from wavebridge.bridges.near_intents import NearIntentsProvider, calculate_fee
from wavebridge.bridges.starkgate import StarkGateProvider
from wavebridge.chains import ChainId, ProviderId
from wavebridge.config import Settings
from wavebridge.errors import (
    InsufficientLiquidity,
    InvalidAddressFormat,
    InvalidAmount,
    InvalidRoute,
    NoProviderForRoute,
    ProviderResponseError,
    QuoteProviderUnavailable,
)
from wavebridge.tokens import CrossChainToken

ONE_CLICK_DEPOSIT = "Dep1oSitAddr3ss1111111111111111111111111111"


def one_click_quote(**overrides) -> dict:
    body = {
        "id": "q-123",
        "depositAddress": ONE_CLICK_DEPOSIT,
        "depositChain": "solana",
        "amount": {"in": "1500000000", "out": "225000000", "fee": "1500000"},
        "fee": {"bps": 10, "amount": "1500000"},
        "status": "PENDING_DEPOSIT",
        "expiresAt": (utcnow() + timedelta(hours=1)).isoformat(),
        "createdAt": utcnow().isoformat(),
    }
    body.update(overrides)
    return body


def intents_options() -> BridgeOptions:
    return BridgeOptions(recipient_address=NEAR_ADDRESS, refund_address=SOLANA_ADDRESS)


def fail_on_request(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"Unexpected request: {request.method} {request.url}")


class TestNearIntentsQuotes:
    """Tests for NEAR Intents (1Click) quotes."""

    @pytest.mark.asyncio
    async def test_quote_request_and_normalization(self, settings, sol, near_usdc):
        """Test the 1Click request body and the normalized quote."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=one_click_quote())

        provider = NearIntentsProvider(settings, client=mock_client(handler))
        quote = await provider.generate_quote(sol, near_usdc, "1.5", intents_options())

        assert len(requests) == 1
        request = requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v0/quote"
        body = request_json(request)
        assert body["amount"] == "1500000000"
        assert body["originAsset"] == sol.asset_id
        assert body["destinationAsset"] == near_usdc.asset_id
        assert body["slippageTolerance"] == 50
        assert body["swapType"] == "EXACT_INPUT"
        assert body["depositMode"] == "SIMPLE"
        assert body["recipient"] == NEAR_ADDRESS
        assert body["recipientType"] == "DESTINATION_CHAIN"
        assert body["refundTo"] == SOLANA_ADDRESS
        assert body["refundType"] == "ORIGIN_CHAIN"
        assert body["dry"] is False
        assert body["deadline"].endswith("Z")
        assert "Authorization" not in request.headers

        assert quote.id == "q-123"
        assert quote.provider == ProviderId.NEAR_INTENTS
        assert quote.status == QuoteStatus.PENDING
        assert quote.from_amount == "1.5"
        assert quote.from_amount_units == "1500000000"
        assert quote.to_amount == Decimal("225")
        assert quote.to_amount > 0
        assert quote.rate == Decimal("150")
        assert quote.fee_amount == Decimal("0.0015")
        assert quote.fee_percentage == Decimal("0.1")
        assert quote.deposit_address == ONE_CLICK_DEPOSIT
        assert quote.deposit_chain == ChainId.SOLANA
        assert quote.destination_chain == ChainId.NEAR
        assert quote.destination_address == NEAR_ADDRESS
        assert quote.estimated_time == "3-6 minutes"
        assert not quote.is_expired()
        assert quote.seconds_until_expiry <= 1200

    @pytest.mark.asyncio
    async def test_jwt_sent_as_bearer(self, sol, near_usdc):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=one_click_quote())

        settings = Settings(_env_file=None, near_intents_jwt="secret-jwt")
        provider = NearIntentsProvider(settings, client=mock_client(handler))
        await provider.generate_quote(sol, near_usdc, "1.5", intents_options())

        assert seen["auth"] == "Bearer secret-jwt"

    @pytest.mark.asyncio
    async def test_expiry_capped_by_provider(self, settings, sol, near_usdc):
        """Test a provider expiry earlier than the deadline wins."""
        provider_expiry = utcnow() + timedelta(seconds=60)

        def handler(request):
            return httpx.Response(200, json=one_click_quote(expiresAt=provider_expiry.isoformat()))

        provider = NearIntentsProvider(settings, client=mock_client(handler))
        quote = await provider.generate_quote(sol, near_usdc, "1.5", intents_options())

        assert quote.expires_at <= provider_expiry

    @pytest.mark.asyncio
    async def test_fee_computed_from_bps_when_amount_missing(self, settings, sol, near_usdc):
        def handler(request):
            return httpx.Response(200, json=one_click_quote(fee={"bps": 20, "amount": "0"}))

        provider = NearIntentsProvider(settings, client=mock_client(handler))
        quote = await provider.generate_quote(sol, near_usdc, "1.5", intents_options())

        assert quote.fee_amount == Decimal("0.003")

    @pytest.mark.asyncio
    async def test_transport_failure_retried(self, settings, sol, near_usdc):
        """Test a 503 is retried and the next response is used."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503, json={"message": "overloaded"})
            return httpx.Response(200, json=one_click_quote())

        provider = NearIntentsProvider(settings, client=mock_client(handler))
        quote = await provider.generate_quote(sol, near_usdc, "1.5", intents_options())

        assert len(calls) == 2
        assert quote.id == "q-123"

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, settings, sol, near_usdc):
        """Test QuoteProviderUnavailable after the configured attempts."""
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        provider = NearIntentsProvider(settings, client=mock_client(handler))
        with pytest.raises(QuoteProviderUnavailable) as exc_info:
            await provider.generate_quote(sol, near_usdc, "1.5", intents_options())

        assert len(calls) == settings.quote_retry_attempts
        assert exc_info.value.retryable
        assert exc_info.value.provider == "near_intents"

    @pytest.mark.asyncio
    async def test_liquidity_error_not_retried(self, settings, sol, near_usdc):
        """Test a provider-reported liquidity error maps to InsufficientLiquidity once."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, json={"message": "Insufficient liquidity for this pair"})

        provider = NearIntentsProvider(settings, client=mock_client(handler))
        with pytest.raises(InsufficientLiquidity):
            await provider.generate_quote(sol, near_usdc, "1.5", intents_options())

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_zero_output_is_insufficient_liquidity(self, settings, sol, near_usdc):
        def handler(request):
            return httpx.Response(200, json=one_click_quote(amount={"in": "1500000000", "out": "0"}))

        provider = NearIntentsProvider(settings, client=mock_client(handler))
        with pytest.raises(InsufficientLiquidity):
            await provider.generate_quote(sol, near_usdc, "1.5", intents_options())

    @pytest.mark.asyncio
    async def test_malformed_response(self, settings, sol, near_usdc):
        def handler(request):
            return httpx.Response(200, json={"id": "q-123"})

        provider = NearIntentsProvider(settings, client=mock_client(handler))
        with pytest.raises(ProviderResponseError):
            await provider.generate_quote(sol, near_usdc, "1.5", intents_options())

    @pytest.mark.asyncio
    async def test_addresses_required(self, settings, sol, near_usdc):
        """Test missing addresses fail before any request."""
        provider = NearIntentsProvider(settings, client=mock_client(fail_on_request))
        with pytest.raises(InvalidAddressFormat):
            await provider.generate_quote(sol, near_usdc, "1.5", BridgeOptions())

    @pytest.mark.asyncio
    async def test_same_chain_rejected(self, settings, sol, sol_usdc):
        provider = NearIntentsProvider(settings, client=mock_client(fail_on_request))
        with pytest.raises(InvalidRoute):
            await provider.generate_quote(sol, sol_usdc, "1.5", intents_options())

    @pytest.mark.asyncio
    async def test_unsupported_tokens(self, settings, sol, near_usdt):
        provider = NearIntentsProvider(settings, client=mock_client(fail_on_request))
        with pytest.raises(NoProviderForRoute):
            await provider.generate_quote(sol, near_usdt, "1.5", intents_options())

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,outcome",
        [
            ("SUCCESS", StatusOutcome.COMPLETED),
            ("FAILED", StatusOutcome.FAILED),
            ("REFUNDED", StatusOutcome.FAILED),
            ("PROCESSING", StatusOutcome.PENDING),
            ("PENDING_DEPOSIT", StatusOutcome.PENDING),
            ("INCOMPLETE_DEPOSIT", StatusOutcome.PENDING),
        ],
    )
    async def test_status_mapping(self, settings, status, outcome):
        def handler(request):
            assert request.url.path == "/v0/status"
            assert request.url.params["quoteId"] == "q-123"
            return httpx.Response(200, json={"id": "q-123", "status": status, "txHash": "near-tx"})

        provider = NearIntentsProvider(settings, client=mock_client(handler))
        result = await provider.check_status("q-123")

        assert result.outcome == outcome
        assert result.raw_status == status
        assert result.is_terminal == (outcome != StatusOutcome.PENDING)

    @pytest.mark.asyncio
    async def test_list_tokens_skips_unknown_chains(self, settings):
        def handler(request):
            return httpx.Response(
                200,
                json=[
                    {"symbol": "SOL", "name": "Solana", "chain": "sol", "address": "So111", "decimals": 9},
                    {"symbol": "ETH", "name": "Ether", "chain": "eth", "address": "0xeth", "decimals": 18},
                    {"symbol": "NEAR", "chain": "near", "address": "wrap.near", "decimals": 24},
                ],
            )

        provider = NearIntentsProvider(settings, client=mock_client(handler))
        tokens = await provider.list_tokens()

        assert [t.symbol for t in tokens] == ["SOL", "NEAR"]
        assert tokens[0].chain == ChainId.SOLANA
        assert tokens[1].name == "NEAR"
        assert all(t.bridge_support.near_intents for t in tokens)

    def test_calculate_fee(self):
        assert calculate_fee(Decimal("100"), 30) == Decimal("0.3")
        assert calculate_fee(Decimal("100"), 30, "EXACT_OUTPUT") == Decimal("0.3")
        assert calculate_fee(Decimal("100"), 0) == Decimal("0")


class TestStarkGateQuotes:
    """Tests for locally computed StarkGate quotes."""

    @pytest.mark.asyncio
    async def test_quote_is_local(self, settings, sol, strk_sol):
        """Test the quote is computed without any HTTP request."""
        provider = StarkGateProvider(settings, client=mock_client(fail_on_request))
        quote = await provider.generate_quote(
            sol, strk_sol, "1.5", BridgeOptions(recipient_address=STARKNET_ADDRESS)
        )

        assert quote.provider == ProviderId.STARKGATE
        assert quote.from_amount_units == "1500000000"
        assert quote.fee_amount == Decimal("0.01")
        assert quote.to_amount == Decimal("1.49")
        assert quote.rate == Decimal("1")
        assert quote.fee_percentage == Decimal("0.6667")
        assert quote.deposit_address == settings.starkgate_solana_escrow
        assert quote.destination_address == STARKNET_ADDRESS
        assert quote.status == QuoteStatus.PENDING
        assert quote.id.startswith("sg_")

    @pytest.mark.asyncio
    async def test_reverse_direction_uses_starknet_escrow(self, settings, sol, strk_sol):
        provider = StarkGateProvider(settings, client=mock_client(fail_on_request))
        quote = await provider.generate_quote(strk_sol, sol, "2", BridgeOptions(recipient_address=SOLANA_ADDRESS))

        assert quote.deposit_address == settings.starkgate_starknet_escrow
        assert quote.to_amount == Decimal("1.99")

    @pytest.mark.asyncio
    async def test_minimum_amount(self, settings, sol, strk_sol):
        """Test amounts below fee + 0.001 are rejected."""
        starknet_options = BridgeOptions(recipient_address=STARKNET_ADDRESS)
        provider = StarkGateProvider(settings, client=mock_client(fail_on_request))
        with pytest.raises(InvalidAmount):
            await provider.generate_quote(sol, strk_sol, "0.0109", starknet_options)

        quote = await provider.generate_quote(sol, strk_sol, "0.011", starknet_options)
        assert quote.to_amount == Decimal("0.001")

    @pytest.mark.asyncio
    async def test_percentage_fee_fallback(self, settings):
        """Test tokens without a flat fee pay starkgate_fee_bps."""
        jup = CrossChainToken(symbol="JUP", name="Jupiter", address="JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN", decimals=6, chain=ChainId.SOLANA)
        strk_jup = CrossChainToken(symbol="JUP", name="Jupiter", address="0x0abc", decimals=6, chain=ChainId.STARKNET)
        provider = StarkGateProvider(settings, client=mock_client(fail_on_request))

        quote = await provider.generate_quote(jup, strk_jup, "100", BridgeOptions(recipient_address=STARKNET_ADDRESS))

        assert quote.fee_amount == Decimal("0.2")
        assert quote.to_amount == Decimal("99.8")

    @pytest.mark.asyncio
    async def test_asset_must_match(self, settings, sol_usdc, strk_sol):
        provider = StarkGateProvider(settings, client=mock_client(fail_on_request))
        with pytest.raises(InvalidRoute):
            await provider.generate_quote(sol_usdc, strk_sol, "10")

    @pytest.mark.asyncio
    async def test_non_native_pair_rejected(self, settings, sol_usdc, near_usdc):
        provider = StarkGateProvider(settings, client=mock_client(fail_on_request))
        with pytest.raises(InvalidRoute):
            await provider.generate_quote(sol_usdc, near_usdc, "10")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("options", [None, BridgeOptions(refund_address=SOLANA_ADDRESS)])
    async def test_recipient_required(self, settings, sol, strk_sol, options):
        """Test a quote without a destination address is never issued."""
        provider = StarkGateProvider(settings, client=mock_client(fail_on_request))
        with pytest.raises(InvalidAddressFormat):
            await provider.generate_quote(sol, strk_sol, "1.5", options)

    def test_total_steps(self, settings):
        assert StarkGateProvider(settings).total_steps == 5
        assert NearIntentsProvider(settings).total_steps == 4
        assert DefuseProvider(settings).total_steps == 4


def solver_relay(quotes=None, error=None, publish=None, status=None):
    """Solver relay JSON-RPC double. Returns (handler, calls)."""
    calls = []

    def handler(request):
        body = request_json(request)
        calls.append(body)
        if error is not None:
            return httpx.Response(200, json={"id": 1, "jsonrpc": "2.0", "error": error})
        results = {"quote": quotes, "publish_intent": publish, "get_status": status}
        return httpx.Response(200, json={"id": 1, "jsonrpc": "2.0", "result": results[body["method"]]})

    return handler, calls


def solver_quote(quote_hash: str, amount_out: str) -> dict:
    return {
        "quote_hash": quote_hash,
        "defuse_asset_identifier_in": "nep141:in",
        "defuse_asset_identifier_out": "nep141:out",
        "amount_in": "100000000",
        "amount_out": amount_out,
        "expiration_time": (utcnow() + timedelta(minutes=5)).isoformat(),
    }


class TestDefuseQuotes:
    """Tests for Defuse solver relay quotes."""

    @pytest.mark.asyncio
    async def test_best_solver_quote_selected(self, settings, sol_usdc, near_usdt):
        handler, calls = solver_relay(quotes=[solver_quote("hash-a", "99500000"), solver_quote("hash-b", "99800000")])
        provider = DefuseProvider(settings, client=mock_client(handler))

        quote = await provider.generate_quote(sol_usdc, near_usdt, "100", BridgeOptions(recipient_address=NEAR_ADDRESS))

        assert len(calls) == 1
        assert calls[0]["method"] == "quote"
        params = calls[0]["params"][0]
        assert params["exact_amount_in"] == "100000000"
        assert params["defuse_asset_identifier_in"] == sol_usdc.nep141_id
        assert params["defuse_asset_identifier_out"] == near_usdt.nep141_id

        assert quote.provider == ProviderId.DEFUSE
        assert quote.to_amount == Decimal("99.8")
        assert quote.route_details["quote_hash"] == "hash-b"
        assert quote.route_details["solver_quotes"] == 2
        assert quote.deposit_address == settings.defuse_solana_deposit
        assert quote.seconds_until_expiry <= 300

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quotes", [None, []])
    async def test_no_solver_quotes(self, settings, sol_usdc, near_usdt, quotes):
        handler, _ = solver_relay(quotes=quotes)
        provider = DefuseProvider(settings, client=mock_client(handler))

        with pytest.raises(InsufficientLiquidity):
            await provider.generate_quote(sol_usdc, near_usdt, "100", BridgeOptions(recipient_address=NEAR_ADDRESS))

    @pytest.mark.asyncio
    async def test_rpc_error_mapped(self, settings, sol_usdc, near_usdt):
        handler, _ = solver_relay(error={"code": -32000, "message": "Unsupported asset pair"})
        provider = DefuseProvider(settings, client=mock_client(handler))

        with pytest.raises(NoProviderForRoute) as exc_info:
            await provider.generate_quote(sol_usdc, near_usdt, "100", BridgeOptions(recipient_address=NEAR_ADDRESS))
        assert exc_info.value.to_dict()["rpc_code"] == -32000

    @pytest.mark.asyncio
    async def test_recipient_required(self, settings, sol_usdc, near_usdt):
        handler, calls = solver_relay(quotes=[solver_quote("hash-a", "99500000")])
        provider = DefuseProvider(settings, client=mock_client(handler))

        with pytest.raises(InvalidAddressFormat):
            await provider.generate_quote(sol_usdc, near_usdt, "100")
        assert calls == []

    @pytest.mark.asyncio
    async def test_quote_is_immutable_and_hashable(self, settings, sol_usdc, near_usdt):
        handler, _ = solver_relay(quotes=[solver_quote("hash-a", "99500000")])
        provider = DefuseProvider(settings, client=mock_client(handler))
        options = BridgeOptions(recipient_address=NEAR_ADDRESS)

        quote = await provider.generate_quote(sol_usdc, near_usdt, "100", options)
        other = await provider.generate_quote(sol_usdc, near_usdt, "100", options)

        with pytest.raises(TypeError):
            quote.route_details["quote_hash"] = "hash-x"
        assert quote.route_details["quote_hash"] == "hash-a"
        assert len({quote, quote, other}) == 2
        assert quote != other

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,outcome",
        [
            ("SETTLED", StatusOutcome.COMPLETED),
            ("NOT_FOUND_OR_NOT_VALID", StatusOutcome.FAILED),
            ("PENDING", StatusOutcome.PENDING),
            ("TX_BROADCASTED", StatusOutcome.PENDING),
        ],
    )
    async def test_status_mapping(self, settings, status, outcome):
        handler, calls = solver_relay(status={"intent_hash": "ih-1", "status": status, "data": {"hash": "near-tx"}})
        provider = DefuseProvider(settings, client=mock_client(handler))

        result = await provider.check_status("ih-1")

        assert calls[0]["params"][0] == {"intent_hash": "ih-1"}
        assert result.outcome == outcome


class TestConcurrentQuotes:
    """Tests for independent quote generation."""

    @pytest.mark.asyncio
    async def test_concurrent_quotes_do_not_block(self, settings, sol, zec, near_usdc):
        """Test two quotes for different routes are in flight at the same time."""
        in_flight = 0
        both_started = asyncio.Event()

        async def handler(request):
            nonlocal in_flight
            in_flight += 1
            if in_flight == 2:
                both_started.set()
            # Serialized requests would time out here
            await asyncio.wait_for(both_started.wait(), timeout=2)
            body = request_json(request)
            quote_id = "q-sol" if body["originAsset"] == sol.asset_id else "q-zec"
            return httpx.Response(200, json=one_click_quote(id=quote_id))

        provider = NearIntentsProvider(settings, client=mock_client(handler))
        sol_quote, zec_quote = await asyncio.gather(
            provider.generate_quote(sol, near_usdc, "1.5", intents_options()),
            provider.generate_quote(
                zec, near_usdc, "2", BridgeOptions(recipient_address=NEAR_ADDRESS, refund_address="t1Rv4exT7bqhZqi2j7xz8bUHDMxwosrjADU")
            ),
        )

        assert sol_quote.id == "q-sol"
        assert zec_quote.id == "q-zec"
        assert sol_quote.origin_token == sol
        assert zec_quote.origin_token == zec
        assert zec_quote.from_amount_units == "200000000"
        assert sol_quote.to_amount > 0 and zec_quote.to_amount > 0
