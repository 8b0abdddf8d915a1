"""
Domain entities for the exchange bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class ExchangeVariant(Enum):
    """Exchange deployments a credential can belong to."""

    BINANCE = "binance"
    BINANCE_US = "binance_us"


class Capability(Enum):
    """Scope of action a credential is permitted to perform."""

    SPOT = "spot"
    MARGIN = "margin"
    FUTURES = "futures"
    WITHDRAW = "withdraw"


class Side(Enum):
    """Direction of an order or execution."""

    BUY = "BUY"
    SELL = "SELL"


class FetchStatus(Enum):
    """How trustworthy a fetched view is.

    LIVE: read from the exchange.
    DEGRADED: inferred from secondary data; quantities are unknown.
    PLACEHOLDER: nothing could be read; fixed stand-in values.
    """

    LIVE = "live"
    DEGRADED = "degraded"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class CredentialSummary:
    """A stored credential as shown to its owner. Never carries the secret."""

    id: str
    owner_id: str
    name: str
    exchange: ExchangeVariant
    masked_key: str
    capabilities: frozenset[Capability]
    active: bool = True
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ExchangeCredential:
    """Decrypted API key pair ready to sign requests for one exchange account."""

    credential_id: str
    owner_id: str
    exchange: ExchangeVariant
    api_key: str = field(repr=False)
    api_secret: str = field(repr=False)
    capabilities: frozenset[Capability] = frozenset()


@dataclass(frozen=True)
class TradingPair:
    """A symbol an owner chose to track."""

    id: str
    owner_id: str
    symbol: str
    active: bool
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Instrument:
    """Exchange metadata for one tradable instrument."""

    symbol: str
    status: str
    base_asset: str
    quote_asset: str


@dataclass(frozen=True)
class ExchangeOrder:
    """An order as reported by the exchange, mapped to the internal schema."""

    exchange_order_id: str
    symbol: str
    side: Side
    kind: str
    status: str
    limit_price: Decimal
    requested_qty: Decimal
    filled_qty: Decimal
    cumulative_quote_qty: Decimal
    placed_at: datetime
    time_in_force: Optional[str] = None
    stop_price: Optional[Decimal] = None
    client_order_id: Optional[str] = None


@dataclass(frozen=True)
class ExchangeTrade:
    """An execution (fill) as reported by the exchange."""

    exchange_trade_id: str
    exchange_order_id: str
    symbol: str
    side: Side
    price: Decimal
    quantity: Decimal
    quote_quantity: Decimal
    fee: Decimal
    fee_asset: str
    is_maker: bool
    executed_at: datetime


@dataclass(frozen=True)
class RemoteOrder:
    """An exchange order mirrored in the local ledger.

    `exchange_order_id` is the natural key used for deduplication.
    Identity fields never change once stored; only the fill progress
    (status, filled_qty, cumulative_quote_qty) may be refreshed.
    """

    local_id: str
    owner_id: str
    exchange_order_id: str
    symbol: str
    side: Side
    kind: str
    status: str
    limit_price: Decimal
    requested_qty: Decimal
    filled_qty: Decimal
    cumulative_quote_qty: Decimal
    placed_at: datetime
    time_in_force: Optional[str] = None
    stop_price: Optional[Decimal] = None
    client_order_id: Optional[str] = None

    @classmethod
    def from_exchange(
        cls, local_id: str, owner_id: str, order: ExchangeOrder
    ) -> "RemoteOrder":
        """Build the ledger row for a freshly fetched exchange order."""
        return cls(
            local_id=local_id,
            owner_id=owner_id,
            exchange_order_id=order.exchange_order_id,
            symbol=order.symbol,
            side=order.side,
            kind=order.kind,
            status=order.status,
            limit_price=order.limit_price,
            requested_qty=order.requested_qty,
            filled_qty=order.filled_qty,
            cumulative_quote_qty=order.cumulative_quote_qty,
            placed_at=order.placed_at,
            time_in_force=order.time_in_force,
            stop_price=order.stop_price,
            client_order_id=order.client_order_id,
        )


@dataclass(frozen=True)
class StoredOrderRef:
    """What the ledger knows about an already persisted order."""

    local_id: str
    exchange_order_id: str
    status: str
    filled_qty: Decimal
    cumulative_quote_qty: Decimal

    def differs_from(self, order: ExchangeOrder) -> bool:
        """Return True when the exchange reports new fill progress."""
        return (
            self.status != order.status
            or self.filled_qty != order.filled_qty
            or self.cumulative_quote_qty != order.cumulative_quote_qty
        )


@dataclass(frozen=True)
class RemoteExecution:
    """An execution mirrored in the local ledger.

    Always owned by a RemoteOrder: `parent_order_local_id` must
    reference an order already present in the ledger.
    """

    local_id: str
    owner_id: str
    parent_order_local_id: str
    exchange_trade_id: str
    symbol: str
    side: Side
    price: Decimal
    quantity: Decimal
    quote_quantity: Decimal
    fee: Decimal
    fee_asset: str
    is_maker: bool
    executed_at: datetime


@dataclass(frozen=True)
class RecentTrade:
    """A persisted execution joined with its parent order, for display."""

    id: str
    symbol: str
    side: Side
    quantity: Decimal
    price: Decimal
    total: Decimal
    executed_at: datetime
    exchange_order_id: str
    order_type: str
    strategy: str = "Manual"


@dataclass(frozen=True)
class AssetBalance:
    """Quantities of one asset held on the exchange account."""

    available: Decimal
    on_order: Decimal

    @property
    def total(self) -> Decimal:
        return self.available + self.on_order

    @property
    def is_empty(self) -> bool:
        return self.available <= 0 and self.on_order <= 0


@dataclass(frozen=True)
class BalanceSnapshot:
    """Balances produced for one request, tagged with how they were obtained.

    Callers must read `status` before trusting quantities: DEGRADED and
    PLACEHOLDER snapshots list assets with zero quantities that mean
    "unknown", not "empty account".
    """

    status: FetchStatus
    balances: dict[str, AssetBalance]
    reason: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.status is not FetchStatus.LIVE


@dataclass(frozen=True)
class SymbolUniverse:
    """Set of tradable symbols and whether it came from the exchange."""

    symbols: frozenset[str]
    status: FetchStatus


@dataclass(frozen=True)
class TickerStatistic:
    """Rolling 24-hour statistics for one symbol."""

    symbol: str
    last_price: Decimal
    price_change_percent: Decimal
    volume: Decimal
    quote_volume: Decimal
    high_price: Decimal
    low_price: Decimal


@dataclass(frozen=True)
class MarketPair:
    """Headline market row: display symbol, price and 24h movement."""

    symbol: str
    price: Decimal
    change_24h: Decimal
    volume: Decimal


@dataclass(frozen=True)
class Holding:
    """A balance valued in the quote currency."""

    asset: str
    quantity: Decimal
    unit_price: Decimal
    total_value: Decimal
    percentage: Decimal
    color: str
