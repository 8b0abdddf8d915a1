"""
Port interfaces (ABCs) for the exchange bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any

from tradedesk.domain.exchange.entities import (
    AssetBalance,
    Capability,
    CredentialSummary,
    ExchangeCredential,
    ExchangeOrder,
    ExchangeTrade,
    ExchangeVariant,
    Instrument,
    RecentTrade,
    RemoteExecution,
    RemoteOrder,
    Side,
    StoredOrderRef,
    TickerStatistic,
    TradingPair,
)


class ExchangePort(ABC):
    """Port for reading account and market data from the exchange.

    Every method raises ExchangeApiError when the exchange rejects the
    call or cannot be reached. Nothing is retried or swallowed here.
    """

    @abstractmethod
    def get_account_balances(
        self, credential: ExchangeCredential
    ) -> dict[str, AssetBalance]:
        """Return every balance of the spot account (signed)."""
        raise NotImplementedError

    @abstractmethod
    def get_margin_account(self, credential: ExchangeCredential) -> dict[str, Any]:
        """Return the margin account payload (signed)."""
        raise NotImplementedError

    @abstractmethod
    def get_futures_account(self, credential: ExchangeCredential) -> dict[str, Any]:
        """Return the futures account payload (signed)."""
        raise NotImplementedError

    @abstractmethod
    def get_withdraw_config(self, credential: ExchangeCredential) -> list[Any]:
        """Return the withdrawal configuration payload (signed)."""
        raise NotImplementedError

    @abstractmethod
    def get_orders(
        self,
        credential: ExchangeCredential,
        symbol: str,
        start_time: datetime,
        limit: int,
    ) -> list[ExchangeOrder]:
        """Return orders for a symbol placed since `start_time` (signed).

        Records that cannot be mapped are skipped by the adapter.
        """
        raise NotImplementedError

    @abstractmethod
    def get_trades(
        self,
        credential: ExchangeCredential,
        symbol: str,
        start_time: datetime,
        limit: int,
    ) -> list[ExchangeTrade]:
        """Return executions for a symbol since `start_time` (signed)."""
        raise NotImplementedError

    @abstractmethod
    def get_open_orders(self, credential: ExchangeCredential) -> list[ExchangeOrder]:
        """Return currently open orders across all symbols (signed)."""
        raise NotImplementedError

    @abstractmethod
    def get_instruments(self, credential: ExchangeCredential) -> list[Instrument]:
        """Return instrument metadata for the whole exchange (public)."""
        raise NotImplementedError

    @abstractmethod
    def get_ticker_prices(self, credential: ExchangeCredential) -> dict[str, Decimal]:
        """Return symbol -> last price for every symbol (public)."""
        raise NotImplementedError

    @abstractmethod
    def get_24h_statistics(
        self, credential: ExchangeCredential
    ) -> list[TickerStatistic]:
        """Return rolling 24h statistics for every symbol (public)."""
        raise NotImplementedError


class CredentialRepository(ABC):
    """Port for storing API credentials.

    Key material is encrypted at rest; `get` is the only method that
    hands out decrypted keys.
    """

    @abstractmethod
    def create(
        self,
        owner_id: str,
        name: str,
        exchange: ExchangeVariant,
        api_key: str,
        api_secret: str,
        capabilities: frozenset[Capability],
    ) -> CredentialSummary:
        """Persist a new credential.

        Raises:
            DuplicateCredentialError: If the owner already has one for `exchange`.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, credential_id: str, owner_id: str) -> ExchangeCredential:
        """Return the decrypted credential.

        Raises:
            CredentialNotFoundError: If it does not exist for this owner.
        """
        raise NotImplementedError

    @abstractmethod
    def get_summary(self, credential_id: str, owner_id: str) -> CredentialSummary:
        """Return the masked credential, or raise CredentialNotFoundError."""
        raise NotImplementedError

    @abstractmethod
    def list_active(self, owner_id: str) -> list[CredentialSummary]:
        """Return the owner's active credentials, oldest first."""
        raise NotImplementedError

    @abstractmethod
    def update_capabilities(
        self,
        credential_id: str,
        owner_id: str,
        capabilities: frozenset[Capability],
    ) -> CredentialSummary:
        """Replace the capability set of a credential."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, credential_id: str, owner_id: str) -> None:
        """Remove a credential, or raise CredentialNotFoundError."""
        raise NotImplementedError


class TradingPairRepository(ABC):
    """Port for the symbols an owner tracks."""

    @abstractmethod
    def list_all(self, owner_id: str) -> list[TradingPair]:
        """Return all pairs of an owner, newest first."""
        raise NotImplementedError

    @abstractmethod
    def list_active_symbols(self, owner_id: str) -> list[str]:
        """Return the symbols of the owner's active pairs, oldest first."""
        raise NotImplementedError

    @abstractmethod
    def add(self, owner_id: str, symbol: str) -> TradingPair:
        """Persist a new active pair, or raise DuplicateTradingPairError."""
        raise NotImplementedError

    @abstractmethod
    def set_active(self, pair_id: str, owner_id: str, active: bool) -> TradingPair:
        """Toggle a pair, or raise TradingPairNotFoundError."""
        raise NotImplementedError

    @abstractmethod
    def remove(self, pair_id: str, owner_id: str) -> None:
        """Delete a pair, or raise TradingPairNotFoundError."""
        raise NotImplementedError


class RemoteOrderRepository(ABC):
    """Port for the local ledger of exchange orders."""

    @abstractmethod
    def find_by_exchange_ids(
        self, owner_id: str, exchange_order_ids: set[str]
    ) -> dict[str, StoredOrderRef]:
        """Return exchange_order_id -> stored reference for the ids already stored.

        One bulk lookup regardless of how many ids are given.
        """
        raise NotImplementedError

    @abstractmethod
    def save_batch(self, orders: list[RemoteOrder]) -> int:
        """Insert orders in a single transaction and return the row count."""
        raise NotImplementedError

    @abstractmethod
    def update_progress(self, owner_id: str, orders: list[ExchangeOrder]) -> int:
        """Refresh status and fill quantities of stored orders in one transaction."""
        raise NotImplementedError


class RemoteExecutionRepository(ABC):
    """Port for the local ledger of exchange executions."""

    @abstractmethod
    def find_existing_trade_ids(
        self, owner_id: str, exchange_trade_ids: set[str]
    ) -> set[str]:
        """Return the subset of `exchange_trade_ids` already stored."""
        raise NotImplementedError

    @abstractmethod
    def save_batch(self, executions: list[RemoteExecution]) -> int:
        """Insert executions in a single transaction and return the row count."""
        raise NotImplementedError

    @abstractmethod
    def get_recent(self, owner_id: str, limit: int = 10) -> list[RecentTrade]:
        """Return the latest executions with their parent order details."""
        raise NotImplementedError

    @abstractmethod
    def quote_totals_by_side(self, owner_id: str) -> dict[Side, Decimal]:
        """Return the summed quote value of executions per side."""
        raise NotImplementedError


class StrategyRepository(ABC):
    """Port for the strategy configuration records."""

    @abstractmethod
    def count_active(self, owner_id: str) -> int:
        """Return how many strategies of the owner are switched on."""
        raise NotImplementedError
