"""
Pydantic schemas for exchange API request/response validation.

These schemas enforce input validation and define the API contract.
API secrets are accepted on input only; no response schema carries one.
No business logic belongs here.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

ExchangeName = Literal["binance", "binance_us"]
CapabilityName = Literal["spot", "margin", "futures", "withdraw"]
FetchStatusName = Literal["live", "degraded", "placeholder"]

SYMBOL_PATTERN = r"^[A-Za-z0-9]+([/-][A-Za-z0-9]+)?$"


class HealthResponse(BaseModel):
    """Liveness payload: service identity and the exchange variants it serves."""

    status: str
    service: str
    version: str
    exchanges: list[ExchangeName]


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None


# ── Credentials ──────────────────────────────────────────────────


class CreateCredentialRequest(BaseModel):
    """Request schema for registering an API key.

    Attributes:
        name: Label shown to the owner.
        exchange: Exchange variant the key belongs to.
        api_key: API key as issued by the exchange.
        api_secret: API secret as issued by the exchange.
        capabilities: Declared capabilities; validation may revise them.
    """

    name: str = Field(..., min_length=1, max_length=120)
    exchange: ExchangeName = "binance"
    api_key: str = Field(..., min_length=1, max_length=256)
    api_secret: str = Field(..., min_length=1, max_length=256)
    capabilities: list[CapabilityName] = Field(default_factory=lambda: ["spot"])


class UpdateCapabilitiesRequest(BaseModel):
    capabilities: list[CapabilityName] = Field(..., min_length=1)


class CredentialResponse(BaseModel):
    """A stored credential with its key masked."""

    id: str
    name: str
    exchange: ExchangeName
    masked_key: str
    capabilities: list[CapabilityName]
    active: bool
    created_at: datetime | None = None


class CredentialListResponse(BaseModel):
    credentials: list[CredentialResponse]


class CapabilityReportResponse(BaseModel):
    """Outcome of probing a credential against the exchange."""

    valid: bool
    permissions: dict[CapabilityName, bool]
    error_message: str | None = None


# ── Trading pairs ────────────────────────────────────────────────


class AddTradingPairRequest(BaseModel):
    symbol: str = Field(
        ...,
        min_length=2,
        max_length=24,
        pattern=SYMBOL_PATTERN,
        description="Exchange symbol, e.g. BTCUSDT or BTC/USDT",
    )


class UpdateTradingPairRequest(BaseModel):
    active: bool


class TradingPairResponse(BaseModel):
    id: str
    symbol: str
    active: bool
    created_at: datetime | None = None


class TradingPairListResponse(BaseModel):
    pairs: list[TradingPairResponse]


class AvailableSymbolsResponse(BaseModel):
    """Tradable symbols not yet tracked by the owner.

    `status` is "placeholder" when the exchange universe could not be
    read and the default symbol set was used instead.
    """

    symbols: list[str]
    status: FetchStatusName


# ── Account and market ───────────────────────────────────────────


class BalanceItem(BaseModel):
    asset: str
    available: Decimal
    on_order: Decimal
    total: Decimal


class BalancesResponse(BaseModel):
    """Balances of the account.

    When `degraded` is true the quantities are unknown, not zero.
    """

    status: FetchStatusName
    degraded: bool
    reason: str | None = None
    balances: list[BalanceItem]


class MarketPairItem(BaseModel):
    symbol: str
    price: Decimal
    change_24h: Decimal
    volume: Decimal


class MarketOverviewResponse(BaseModel):
    pairs: list[MarketPairItem]


# ── Trade history ────────────────────────────────────────────────


class SyncTradeHistoryResponse(BaseModel):
    """Counters of one trade-history sync."""

    symbols: list[str]
    failures: dict[str, str]
    skipped: list[str]
    orders_fetched: int
    orders_inserted: int
    orders_refreshed: int
    executions_fetched: int
    executions_inserted: int
    executions_dropped: int
    timed_out: bool


class RecentTradeItem(BaseModel):
    id: str
    symbol: str
    side: Literal["BUY", "SELL"]
    quantity: Decimal
    price: Decimal
    total: Decimal
    executed_at: datetime
    exchange_order_id: str
    order_type: str
    strategy: str


class RecentTradesResponse(BaseModel):
    trades: list[RecentTradeItem]


# ── Dashboard ────────────────────────────────────────────────────


class HoldingItem(BaseModel):
    asset: str
    quantity: Decimal
    unit_price: Decimal
    total_value: Decimal
    percentage: Decimal
    color: str


class DashboardResponse(BaseModel):
    """Dashboard aggregate.

    `degraded` is true when balances or market data are not live, so an
    empty portfolio must not be read as an empty account.
    """

    total_balance: Decimal
    daily_change: Decimal
    total_profit: Decimal
    active_strategies: int
    portfolio: list[HoldingItem]
    market: list[MarketPairItem]
    recent_trades: list[RecentTradeItem]
    balance_status: FetchStatusName
    degraded: bool
