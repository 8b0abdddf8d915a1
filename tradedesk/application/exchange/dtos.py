"""
Data Transfer Objects for the exchange application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from tradedesk.domain.exchange.entities import (
    Capability,
    ExchangeVariant,
    FetchStatus,
    Holding,
    MarketPair,
    RecentTrade,
)


@dataclass(frozen=True)
class CreateCredentialCommand:
    """Input DTO for registering an exchange credential.

    Attributes:
        owner_id: Owner of the credential.
        name: Human label chosen by the owner.
        exchange: Exchange variant the key belongs to.
        api_key: Plain API key. Encrypted before it is stored.
        api_secret: Plain API secret. Encrypted before it is stored.
        capabilities: Capabilities the owner declares for the key.
    """

    owner_id: str
    name: str
    exchange: ExchangeVariant
    api_key: str
    api_secret: str
    capabilities: frozenset[Capability] = frozenset({Capability.SPOT})


@dataclass(frozen=True)
class UpdateCapabilitiesCommand:
    """Input DTO for replacing the capabilities of a credential."""

    owner_id: str
    credential_id: str
    capabilities: frozenset[Capability]


@dataclass(frozen=True)
class CapabilityReport:
    """Output DTO of a credential validation probe.

    Attributes:
        valid: True when the key can at least read the spot account.
        permissions: Capability -> whether its probe call succeeded.
        error_message: Human readable reason when `valid` is False.
    """

    valid: bool
    permissions: dict[Capability, bool]
    error_message: Optional[str] = None


@dataclass(frozen=True)
class SyncTradeHistoryCommand:
    """Input DTO for a trade-history sync.

    Attributes:
        owner_id: Owner whose ledger is synced.
        credential_id: Credential to use. The first active one when None.
    """

    owner_id: str
    credential_id: Optional[str] = None


@dataclass
class SyncReport:
    """Output DTO of a trade-history sync.

    Attributes:
        symbols: Symbols the sync resolved, in the order attempted.
        failures: Symbol -> reason for every fetch that failed.
        skipped: Symbols not attempted because the deadline passed.
        orders_fetched: Orders returned by the exchange.
        orders_inserted: New orders written to the ledger.
        orders_refreshed: Stored orders whose fill progress was updated.
        executions_fetched: Executions returned by the exchange.
        executions_inserted: New executions written to the ledger.
        executions_dropped: Executions discarded for lack of a parent order.
        timed_out: True when the overall deadline cut the sync short.
    """

    symbols: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    orders_fetched: int = 0
    orders_inserted: int = 0
    orders_refreshed: int = 0
    executions_fetched: int = 0
    executions_inserted: int = 0
    executions_dropped: int = 0
    timed_out: bool = False


@dataclass(frozen=True)
class DashboardSnapshot:
    """Output DTO of the dashboard aggregate.

    Attributes:
        total_balance: Sum of the holding values, in USDT.
        daily_change: Value-weighted 24h change of the held assets, in percent.
        total_profit: SELL minus BUY quote value of the ledger executions.
        active_strategies: Number of strategies switched on.
        portfolio: Valued holdings, largest first.
        market: Headline market pairs.
        recent_trades: Latest ledger executions.
        balance_status: How the balances behind the portfolio were obtained.
        degraded: True when any part of the snapshot is not live data.
    """

    total_balance: Decimal
    daily_change: Decimal
    total_profit: Decimal
    active_strategies: int
    portfolio: list[Holding]
    market: list[MarketPair]
    recent_trades: list[RecentTrade]
    balance_status: FetchStatus
    degraded: bool
