"""
Tests for balance degradation and symbol resolution.

The exchange is a MagicMock; trading pairs live in SQLite.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from tradedesk.application.exchange.account_reconciler import AccountReconciler
from tradedesk.application.exchange.symbol_resolver import SymbolResolver
from tradedesk.domain.exchange.entities import AssetBalance, FetchStatus, Instrument
from tradedesk.domain.exchange.errors import ExchangeApiError
from tradedesk.domain.exchange.symbols import DEFAULT_SYMBOLS
from tradedesk.infrastructure.exchange.binance_adapter import BinanceExchangeAdapter
from tradedesk.infrastructure.exchange.request_gateway import RequestGateway

OWNER = "owner-1"
NOW = datetime(2024, 3, 8, 12, 0, tzinfo=timezone.utc)
ZERO = AssetBalance(available=Decimal("0"), on_order=Decimal("0"))


@pytest.fixture
def resolver(pair_repo, exchange) -> SymbolResolver:
    return SymbolResolver(pair_repo, exchange)


@pytest.fixture
def reconciler(exchange, resolver) -> AccountReconciler:
    return AccountReconciler(exchange, resolver, clock=lambda: NOW)


class TestSymbolResolver:
    def test_defaults_without_pairs(self, resolver) -> None:
        assert resolver.resolve_symbols(OWNER) == list(DEFAULT_SYMBOLS)

    def test_active_pairs_only(self, resolver, pair_repo) -> None:
        pair_repo.add(OWNER, "ETHUSDT")
        paused = pair_repo.add(OWNER, "SOLUSDT")
        pair_repo.set_active(paused.id, OWNER, False)

        assert resolver.resolve_symbols(OWNER) == ["ETHUSDT"]

    def test_universe_filters_status_and_quote(self, resolver, exchange, credential) -> None:
        exchange.get_instruments.return_value = [
            Instrument("BTCUSDT", "TRADING", "BTC", "USDT"),
            Instrument("ETHBTC", "TRADING", "ETH", "BTC"),
            Instrument("LUNAUSDT", "BREAK", "LUNA", "USDT"),
            Instrument("BTCEUR", "TRADING", "BTC", "EUR"),
        ]

        universe = resolver.list_tradable_symbols(credential)

        assert universe.status is FetchStatus.LIVE
        assert universe.symbols == frozenset({"BTCUSDT", "ETHBTC"})

    def test_universe_placeholder_on_error(self, resolver, exchange, credential) -> None:
        exchange.get_instruments.side_effect = ExchangeApiError("down")

        universe = resolver.list_tradable_symbols(credential)

        assert universe.status is FetchStatus.PLACEHOLDER
        assert universe.symbols == frozenset(DEFAULT_SYMBOLS)

    def test_universe_placeholder_on_unexpected_exchange_info(
        self, pair_repo, credential
    ) -> None:
        gateway = MagicMock(spec=RequestGateway)
        gateway.public_request.return_value = [{"symbol": "BTCUSDT"}]
        resolver = SymbolResolver(pair_repo, BinanceExchangeAdapter(gateway))

        universe = resolver.list_tradable_symbols(credential)

        assert universe.status is FetchStatus.PLACEHOLDER
        assert universe.symbols == frozenset(DEFAULT_SYMBOLS)


class TestGetBalances:
    """Tests for AccountReconciler.get_balances."""

    def test_live_drops_empty_balances(self, reconciler, exchange, credential) -> None:
        exchange.get_account_balances.return_value = {
            "BTC": AssetBalance(Decimal("0.5"), Decimal("0")),
            "USDT": AssetBalance(Decimal("0"), Decimal("10")),
            "LTC": ZERO,
        }

        snapshot = reconciler.get_balances(OWNER, credential)

        assert snapshot.status is FetchStatus.LIVE
        assert snapshot.degraded is False
        assert set(snapshot.balances) == {"BTC", "USDT"}

    def test_degraded_infers_assets_from_orders(
        self, reconciler, exchange, credential, make_order
    ) -> None:
        """Assets of recently traded symbols are listed with unknown quantity."""
        exchange.get_account_balances.side_effect = ExchangeApiError(
            "Error -2015: Invalid API key", code=-2015
        )
        activity = {
            "BTCUSDT": [make_order("1", symbol="BTCUSDT")],
            "ETHUSDT": [make_order("2", symbol="ETHUSDT")],
        }
        exchange.get_orders.side_effect = lambda cred, symbol, since, limit: activity.get(symbol, [])

        snapshot = reconciler.get_balances(OWNER, credential)

        assert snapshot.status is FetchStatus.DEGRADED
        assert snapshot.degraded is True
        assert snapshot.balances == {"BTC": ZERO, "ETH": ZERO, "USDT": ZERO, "USDC": ZERO}
        assert snapshot.reason == "Error -2015: Invalid API key"

    def test_placeholder_when_activity_unreadable(self, reconciler, exchange, credential) -> None:
        exchange.get_account_balances.side_effect = ExchangeApiError("down")
        exchange.get_orders.return_value = []
        exchange.get_trades.return_value = []
        exchange.get_open_orders.side_effect = ExchangeApiError("still down")

        snapshot = reconciler.get_balances(OWNER, credential)

        assert snapshot.status is FetchStatus.PLACEHOLDER
        assert snapshot.balances == {"BTC": ZERO, "USDT": ZERO}
        assert snapshot.reason == "down"


class TestRecentOrders:
    """Tests for AccountReconciler.recent_orders."""

    def test_queries_last_seven_days(self, reconciler, exchange, credential, make_order) -> None:
        exchange.get_orders.return_value = [make_order("1")]

        result = reconciler.recent_orders(OWNER, credential, ["BTCUSDT"])

        assert [o.exchange_order_id for o in result] == ["1"]
        exchange.get_orders.assert_called_once_with(
            credential, "BTCUSDT", NOW - timedelta(days=7), 10
        )
        exchange.get_trades.assert_not_called()

    def test_failing_symbol_skipped(self, reconciler, exchange, credential, make_order) -> None:
        def _orders(cred, symbol, since, limit):
            if symbol == "BTCUSDT":
                raise ExchangeApiError("Invalid symbol", code=-1121)
            return [make_order("9", symbol=symbol)]

        exchange.get_orders.side_effect = _orders

        result = reconciler.recent_orders(OWNER, credential, ["BTCUSDT", "ETHUSDT"])

        assert [o.symbol for o in result] == ["ETHUSDT"]

    def test_falls_back_to_trades(self, reconciler, exchange, credential, make_trade) -> None:
        exchange.get_orders.return_value = []
        exchange.get_trades.return_value = [make_trade("t1", "1")]

        result = reconciler.recent_orders(OWNER, credential, ["BTCUSDT"])

        assert [t.exchange_trade_id for t in result] == ["t1"]
        exchange.get_open_orders.assert_not_called()

    def test_falls_back_to_open_orders(self, reconciler, exchange, credential, make_order) -> None:
        exchange.get_orders.return_value = []
        exchange.get_trades.return_value = []
        exchange.get_open_orders.return_value = [make_order("5", status="NEW")]

        result = reconciler.recent_orders(OWNER, credential, ["BTCUSDT"])

        assert [o.status for o in result] == ["NEW"]
