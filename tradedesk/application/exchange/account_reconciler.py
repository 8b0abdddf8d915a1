"""
Service: account balances with tiered degradation.

Tiers, tried in order:
    LIVE        - the signed account call; only nonzero balances are kept.
    DEGRADED    - the account call failed; assets are inferred from recent
                  order activity and listed with zero (unknown) quantities,
                  together with the common stablecoins.
    PLACEHOLDER - recent activity could not be read either; a fixed
                  two-asset zero snapshot is returned.

get_balances never raises for exchange failures. Callers read the
snapshot status to tell "unknown" from "empty".
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Optional, Union

from tradedesk.application.exchange.symbol_resolver import SymbolResolver
from tradedesk.domain.exchange.entities import (
    AssetBalance,
    BalanceSnapshot,
    ExchangeCredential,
    ExchangeOrder,
    ExchangeTrade,
    FetchStatus,
)
from tradedesk.domain.exchange.errors import ExchangeApiError, MalformedPayloadError
from tradedesk.domain.exchange.ports import ExchangePort
from tradedesk.domain.exchange.symbols import base_asset

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_DAYS = 7
RECENT_ACTIVITY_LIMIT = 10
DEGRADED_STABLECOINS: tuple[str, ...] = ("USDT", "USDC")
PLACEHOLDER_ASSETS: tuple[str, ...] = ("BTC", "USDT")

RecentActivity = Union[ExchangeOrder, ExchangeTrade]

_RECOVERABLE = (ExchangeApiError, MalformedPayloadError)


def _zero() -> AssetBalance:
    return AssetBalance(available=Decimal("0"), on_order=Decimal("0"))


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AccountReconciler:
    """Reads balances and recent activity for one owner's credential."""

    def __init__(
        self,
        exchange: ExchangePort,
        symbol_resolver: SymbolResolver,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self._exchange = exchange
        self._symbol_resolver = symbol_resolver
        self._clock = clock

    def get_balances(
        self, owner_id: str, credential: ExchangeCredential
    ) -> BalanceSnapshot:
        """Return the account balances, degrading instead of failing."""
        try:
            balances = self._exchange.get_account_balances(credential)
        except _RECOVERABLE as exc:
            logger.warning("Account balances unavailable: %s", exc.message)
            return self._degraded(owner_id, credential, exc.message)

        return BalanceSnapshot(
            status=FetchStatus.LIVE,
            balances={
                asset: balance
                for asset, balance in balances.items()
                if not balance.is_empty
            },
        )

    def _degraded(
        self, owner_id: str, credential: ExchangeCredential, reason: str
    ) -> BalanceSnapshot:
        try:
            activity = self.recent_orders(owner_id, credential)
        except _RECOVERABLE as exc:
            logger.warning("Recent activity unavailable, using placeholder: %s", exc.message)
            return BalanceSnapshot(
                status=FetchStatus.PLACEHOLDER,
                balances={asset: _zero() for asset in PLACEHOLDER_ASSETS},
                reason=reason,
            )

        assets: dict[str, AssetBalance] = {}
        for record in activity:
            asset = base_asset(record.symbol)
            if asset:
                assets.setdefault(asset, _zero())
        for stablecoin in DEGRADED_STABLECOINS:
            assets.setdefault(stablecoin, _zero())

        logger.info("Inferred %d assets from recent activity", len(assets))
        return BalanceSnapshot(
            status=FetchStatus.DEGRADED, balances=assets, reason=reason
        )

    def recent_orders(
        self,
        owner_id: str,
        credential: ExchangeCredential,
        symbols: Optional[list[str]] = None,
    ) -> list[RecentActivity]:
        """Return the owner's recent orders, or executions when there are none.

        Per symbol, orders of the last seven days are read; a failing
        symbol is skipped. When no symbol yields an order, executions are
        read the same way. When neither yields anything, the open orders
        are returned.

        Raises:
            ExchangeApiError: Only if the final open-orders call fails.
        """
        symbols = symbols or self._symbol_resolver.resolve_symbols(owner_id)
        since = self._clock() - timedelta(days=RECENT_ACTIVITY_DAYS)

        orders: list[RecentActivity] = []
        for symbol in symbols:
            try:
                orders.extend(
                    self._exchange.get_orders(
                        credential, symbol, since, RECENT_ACTIVITY_LIMIT
                    )
                )
            except _RECOVERABLE as exc:
                logger.info("Skipping recent orders of %s: %s", symbol, exc.message)
        if orders:
            return orders

        trades: list[RecentActivity] = []
        for symbol in symbols:
            try:
                trades.extend(
                    self._exchange.get_trades(
                        credential, symbol, since, RECENT_ACTIVITY_LIMIT
                    )
                )
            except _RECOVERABLE as exc:
                logger.info("Skipping recent trades of %s: %s", symbol, exc.message)
        if trades:
            return trades

        return list(self._exchange.get_open_orders(credential))
