"""Pytest configuration and fixtures."""

import json
from datetime import timedelta
from decimal import Decimal
from typing import Callable
from unittest.mock import AsyncMock

import httpx
import pytest

from wavebridge.bridges.base import BridgeQuote, utcnow
from wavebridge.chains import ChainId, ProviderId
from wavebridge.config import Settings
from wavebridge.registry import CapabilityRegistry
from wavebridge.signing.base import DepositSigner
from wavebridge.tokens import BridgeSupport, CrossChainToken

SOLANA_ADDRESS = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
STARKNET_ADDRESS = "0x04a3c1f9b2e8d7f6a5b4c3d2e1f0a9b8c7d6e5f4a3b2c1d0e9f8a7b6c5d4e3f2"
NEAR_ADDRESS = "alice.near"
ZCASH_ADDRESS = "t1Rv4exT7bqhZqi2j7xz8bUHDMxwosrjADU"


@pytest.fixture
def settings() -> Settings:
    """Settings with no environment file and instant retries."""
    return Settings(_env_file=None, quote_retry_wait=0, quote_retry_attempts=3)


@pytest.fixture
def registry() -> CapabilityRegistry:
    return CapabilityRegistry()


@pytest.fixture
def sol() -> CrossChainToken:
    return CrossChainToken(
        symbol="SOL",
        name="Solana",
        address="So11111111111111111111111111111111111111112",
        decimals=9,
        chain=ChainId.SOLANA,
        bridge_support=BridgeSupport(near_intents=True, starkgate=True, defuse=True),
    )


@pytest.fixture
def strk_sol() -> CrossChainToken:
    return CrossChainToken(
        symbol="SOL",
        name="Solana (StarkGate)",
        address="0x049d36570d4e46f48e99674bd3fcc84644ddd6b96f7c741b1562b82f9e004dc7",
        decimals=18,
        chain=ChainId.STARKNET,
        bridge_support=BridgeSupport(starkgate=True, defuse=True),
    )


@pytest.fixture
def sol_usdc() -> CrossChainToken:
    return CrossChainToken(
        symbol="USDC",
        name="USD Coin",
        address="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        decimals=6,
        chain=ChainId.SOLANA,
        bridge_support=BridgeSupport(near_intents=True, starkgate=True, defuse=True),
    )


@pytest.fixture
def near_usdc() -> CrossChainToken:
    return CrossChainToken(
        symbol="USDC",
        name="USD Coin",
        address="17208628f84f5d6ad33f0da3bbbeb27ffcb398eac501a31bd6ad2011e36133a1",
        decimals=6,
        chain=ChainId.NEAR,
        bridge_support=BridgeSupport(near_intents=True, defuse=True),
    )


@pytest.fixture
def near_usdt() -> CrossChainToken:
    return CrossChainToken(
        symbol="USDT",
        name="Tether USD",
        address="usdt.tether-token.near",
        decimals=6,
        chain=ChainId.NEAR,
        bridge_support=BridgeSupport(defuse=True),
    )


@pytest.fixture
def zec() -> CrossChainToken:
    return CrossChainToken(
        symbol="ZEC",
        name="Zcash",
        address="zec",
        decimals=8,
        chain=ChainId.ZCASH,
        bridge_support=BridgeSupport(near_intents=True),
    )


@pytest.fixture
def signer() -> AsyncMock:
    """Deposit collaborator spy."""
    mock = AsyncMock(spec=DepositSigner)
    mock.submit_deposit.return_value = "5deposit1111111111111111111111111111111111111"
    return mock


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """httpx client whose requests go to handler instead of the network."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def request_json(request: httpx.Request) -> dict:
    return json.loads(request.content)


@pytest.fixture
def make_quote(sol, strk_sol):
    """Build a quote directly, bypassing providers."""

    def _make_quote(**overrides) -> BridgeQuote:
        values = dict(
            id="sg_test",
            origin_token=sol,
            destination_token=strk_sol,
            from_amount="1.5",
            to_amount=Decimal("1.49"),
            rate=Decimal("1"),
            provider=ProviderId.STARKGATE,
            fee_amount=Decimal("0.01"),
            fee_percentage=Decimal("0.6667"),
            deposit_chain=ChainId.SOLANA,
            destination_chain=ChainId.STARKNET,
            expires_at=utcnow() + timedelta(minutes=20),
            from_amount_units="1500000000",
            deposit_address="9wFFyRfZBsuAha4YcuxcXLKwMxJR43S7fPfQLusDBzvT",
            destination_address=STARKNET_ADDRESS,
            refund_address=SOLANA_ADDRESS,
            estimated_time="4-8 minutes",
            estimated_seconds=480,
        )
        values.update(overrides)
        return BridgeQuote(**values)

    return _make_quote
