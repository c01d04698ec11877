"""Provider API payload models.

These are the only place provider-specific payload shapes exist. Providers
parse raw JSON into these models and normalize them into BridgeQuote and
ProviderStatus before anything else sees them.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProviderModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ======================
# NEAR Intents (1Click)
# ======================

class OneClickQuoteRequest(ProviderModel):
    """Body of POST /quote."""

    dry: bool = False
    deposit_mode: str = Field(default="SIMPLE", alias="depositMode")
    swap_type: str = Field(default="EXACT_INPUT", alias="swapType")
    slippage_tolerance: int = Field(alias="slippageTolerance", description="Basis points")
    origin_asset: str = Field(alias="originAsset")
    deposit_type: str = Field(default="ORIGIN_CHAIN", alias="depositType")
    destination_asset: str = Field(alias="destinationAsset")
    amount: str = Field(description="Smallest units")
    refund_to: str = Field(alias="refundTo")
    refund_type: str = Field(default="ORIGIN_CHAIN", alias="refundType")
    recipient: str
    recipient_type: str = Field(default="DESTINATION_CHAIN", alias="recipientType")
    deadline: str


class OneClickAmount(ProviderModel):
    amount_in: str = Field(alias="in")
    amount_out: str = Field(alias="out")
    fee: str = "0"


class OneClickFee(ProviderModel):
    bps: int = 0
    amount: str = "0"


class OneClickQuoteResponse(ProviderModel):
    id: str
    deposit_address: str = Field(alias="depositAddress")
    deposit_memo: Optional[str] = Field(default=None, alias="depositMemo")
    amount: OneClickAmount
    fee: OneClickFee = Field(default_factory=OneClickFee)
    status: str = "PENDING_DEPOSIT"
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    time_estimate: Optional[int] = Field(default=None, alias="timeEstimate")


class OneClickStatusResponse(ProviderModel):
    id: Optional[str] = None
    status: str
    tx_hash: Optional[str] = Field(default=None, alias="txHash")
    error: Optional[str] = None


class OneClickToken(ProviderModel):
    symbol: str
    name: Optional[str] = None
    chain: str
    address: str
    decimals: int
    logo_uri: Optional[str] = Field(default=None, alias="logoURI")


# ======================
# StarkGate relay service
# ======================

class RelayResponse(ProviderModel):
    relay_id: str = Field(alias="relayId")
    status: Optional[str] = None


class ExecuteResponse(ProviderModel):
    tx_hash: str = Field(alias="txHash")


class RelayStatusResponse(ProviderModel):
    relay_id: Optional[str] = Field(default=None, alias="relayId")
    status: str
    tx_hash: Optional[str] = Field(default=None, alias="txHash")
    error: Optional[str] = None


# ======================
# Defuse solver relay (JSON-RPC)
# ======================

class JsonRpcError(ProviderModel):
    code: Optional[int] = None
    message: str = ""
    data: Any = None


class JsonRpcResponse(ProviderModel):
    id: Any = None
    result: Any = None
    error: Optional[JsonRpcError] = None


class SolverQuote(ProviderModel):
    quote_hash: str
    defuse_asset_identifier_in: str
    defuse_asset_identifier_out: str
    amount_in: str
    amount_out: str
    expiration_time: Optional[datetime] = None


class PublishIntentResult(ProviderModel):
    status: str
    intent_hash: Optional[str] = None
    reason: Optional[str] = None


class IntentStatusData(ProviderModel):
    hash: Optional[str] = None


class IntentStatusResult(ProviderModel):
    intent_hash: Optional[str] = None
    status: str
    data: Optional[IntentStatusData] = None
