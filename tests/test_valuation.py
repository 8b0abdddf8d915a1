"""
Tests for portfolio valuation, market overview and the dashboard aggregate.
"""

from decimal import Decimal

import pytest
from sqlalchemy import insert

from tradedesk.application.exchange.account_reconciler import AccountReconciler
from tradedesk.application.exchange.get_dashboard import GetDashboardUseCase
from tradedesk.application.exchange.market_data import MarketDataFetcher, build_overview
from tradedesk.application.exchange.symbol_resolver import SymbolResolver
from tradedesk.domain.exchange.entities import AssetBalance, FetchStatus, TickerStatistic
from tradedesk.domain.exchange.errors import ExchangeApiError
from tradedesk.domain.exchange.symbols import display_symbol, split_symbol
from tradedesk.domain.exchange.valuation import (
    DEFAULT_COLOR,
    unit_price,
    valuate,
    weighted_daily_change,
)
from tradedesk.infrastructure.exchange.tables import strategies
from tradedesk.infrastructure.exchange.trading_pair_repository import (
    StrategyRepositoryAdapter,
)

OWNER = "owner-1"
PRICES = {"BTCUSDT": Decimal("50000"), "ETHUSDT": Decimal("2000")}


def _balance(total: str) -> AssetBalance:
    return AssetBalance(available=Decimal(total), on_order=Decimal("0"))


def _statistic(symbol: str, change: str, volume: str = "10") -> TickerStatistic:
    return TickerStatistic(
        symbol=symbol,
        last_price=Decimal("1"),
        price_change_percent=Decimal(change),
        volume=Decimal(volume),
        quote_volume=Decimal("0"),
        high_price=Decimal("0"),
        low_price=Decimal("0"),
    )


class TestSymbols:
    def test_split(self) -> None:
        assert split_symbol("BTCUSDT") == ("BTC", "USDT")
        assert split_symbol("ETHBTC") == ("ETH", "BTC")
        assert split_symbol("USDT") is None

    def test_display(self) -> None:
        assert display_symbol("BNBUSDT") == "BNB/USDT"
        assert display_symbol("WEIRD") == "WEIRD"


class TestValuate:
    """Tests for valuate()."""

    def test_percentages_by_value(self) -> None:
        holdings = valuate({"BTC": _balance("1"), "USDT": _balance("1000")}, PRICES)

        assert [h.asset for h in holdings] == ["BTC", "USDT"]
        btc, usdt = holdings
        assert btc.total_value == Decimal("50000")
        assert usdt.unit_price == Decimal("1")
        assert btc.percentage == pytest.approx(Decimal("98.04"), abs=Decimal("0.01"))
        assert usdt.percentage == pytest.approx(Decimal("1.96"), abs=Decimal("0.01"))
        assert btc.color == "#F7931A"

    def test_dust_dropped_before_weighting(self) -> None:
        """Percentages of the listed holdings always sum to 100."""
        holdings = valuate(
            {"BTC": _balance("0.00001"), "USDT": _balance("100")},
            PRICES,
            min_value=Decimal("1"),
        )

        assert [h.asset for h in holdings] == ["USDT"]
        assert holdings[0].percentage == Decimal("100")

    def test_unpriced_asset_is_dropped(self) -> None:
        holdings = valuate({"XYZ": _balance("1000"), "USDC": _balance("5")}, PRICES)
        assert [h.asset for h in holdings] == ["USDC"]

    def test_locked_quantity_counts(self) -> None:
        balance = AssetBalance(available=Decimal("0.5"), on_order=Decimal("0.5"))
        holdings = valuate({"ETH": balance}, PRICES)
        assert holdings[0].quantity == Decimal("1")
        assert holdings[0].color == "#627EEA"

    def test_unknown_asset_gets_default_color(self) -> None:
        holdings = valuate({"LINK": _balance("2")}, {"LINKUSDT": Decimal("10")})
        assert holdings[0].color == DEFAULT_COLOR

    def test_empty_portfolio(self) -> None:
        assert valuate({}, PRICES) == []

    def test_unit_price_of_stablecoin(self) -> None:
        assert unit_price("BUSD", {}) == Decimal("1")
        assert unit_price("SOL", {}) == Decimal("0")


class TestWeightedDailyChange:
    def test_weighted_by_value(self) -> None:
        holdings = valuate({"BTC": _balance("1"), "ETH": _balance("25")}, PRICES)

        change = weighted_daily_change(
            holdings, {"BTCUSDT": Decimal("2"), "ETHUSDT": Decimal("-2")}
        )

        assert change == Decimal("0")

    def test_no_known_change(self) -> None:
        holdings = valuate({"USDT": _balance("10")}, PRICES)
        assert weighted_daily_change(holdings, {}) == Decimal("0")


class TestBuildOverview:
    def test_display_symbols_and_zero_fill(self) -> None:
        overview = build_overview(
            PRICES,
            [_statistic("BTCUSDT", "1.5", volume="1234")],
            symbols=("BTCUSDT", "SOLUSDT"),
        )

        assert [p.symbol for p in overview] == ["BTC/USDT", "SOL/USDT"]
        assert overview[0].price == Decimal("50000")
        assert overview[0].change_24h == Decimal("1.5")
        assert overview[0].volume == Decimal("1234")
        assert overview[1].price == Decimal("0")
        assert overview[1].change_24h == Decimal("0")

    def test_fetcher_combines_both_calls(self, exchange, credential) -> None:
        exchange.get_ticker_prices.return_value = PRICES
        exchange.get_24h_statistics.return_value = [_statistic("ETHUSDT", "-2")]

        overview = MarketDataFetcher(exchange).market_overview(credential, ["ETHUSDT"])

        assert len(overview) == 1
        assert overview[0].symbol == "ETH/USDT"
        assert overview[0].change_24h == Decimal("-2")


class TestGetDashboard:
    """Tests for GetDashboardUseCase."""

    @pytest.fixture
    def dashboard(self, credential_repo, exchange, pair_repo, execution_repo, engine):
        reconciler = AccountReconciler(exchange, SymbolResolver(pair_repo, exchange))
        return GetDashboardUseCase(
            credential_repo=credential_repo,
            reconciler=reconciler,
            market_data=MarketDataFetcher(exchange),
            execution_repo=execution_repo,
            strategy_repo=StrategyRepositoryAdapter(engine),
        )

    def test_live_snapshot(self, dashboard, exchange, stored_credential, engine) -> None:
        with engine.begin() as conn:
            conn.execute(
                insert(strategies),
                [
                    {"id": "s1", "owner_id": OWNER, "name": "Grid", "symbol": "BTCUSDT", "type": "grid", "active": True},
                    {"id": "s2", "owner_id": OWNER, "name": "DCA", "symbol": "ETHUSDT", "type": "dca", "active": False},
                ],
            )
        exchange.get_account_balances.return_value = {
            "BTC": _balance("1"),
            "USDT": _balance("1000"),
        }
        exchange.get_ticker_prices.return_value = PRICES
        exchange.get_24h_statistics.return_value = [_statistic("BTCUSDT", "2")]

        snapshot = dashboard.execute(OWNER)

        assert snapshot.total_balance == Decimal("51000")
        assert snapshot.balance_status is FetchStatus.LIVE
        assert snapshot.degraded is False
        assert snapshot.active_strategies == 1
        assert [h.asset for h in snapshot.portfolio] == ["BTC", "USDT"]
        assert snapshot.market[0].symbol == "BTC/USDT"
        assert snapshot.total_profit == Decimal("0")

    def test_without_credential(self, dashboard, exchange) -> None:
        snapshot = dashboard.execute(OWNER)

        assert snapshot.degraded is True
        assert snapshot.balance_status is FetchStatus.PLACEHOLDER
        assert snapshot.portfolio == []
        exchange.get_account_balances.assert_not_called()

    def test_market_failure_degrades(self, dashboard, exchange, stored_credential) -> None:
        exchange.get_account_balances.return_value = {"USDT": _balance("10")}
        exchange.get_ticker_prices.side_effect = ExchangeApiError("down")

        snapshot = dashboard.execute(OWNER)

        assert snapshot.degraded is True
        assert snapshot.balance_status is FetchStatus.LIVE
        assert snapshot.market == []
        assert snapshot.total_balance == Decimal("10")
