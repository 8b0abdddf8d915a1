"""
Tests for the trade-history sync.

The ledger is real (SQLite); the exchange is a MagicMock answering per symbol.
Quantities are binary-exact so they survive SQLite's float storage.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select

from tradedesk.application.exchange.dtos import SyncTradeHistoryCommand
from tradedesk.application.exchange.symbol_resolver import SymbolResolver
from tradedesk.application.exchange.sync_trade_history import (
    SyncTradeHistoryUseCase,
    chunked,
)
from tradedesk.domain.exchange.entities import Side
from tradedesk.domain.exchange.errors import ExchangeApiError, NoActiveCredentialError
from tradedesk.infrastructure.exchange.binance_adapter import BinanceExchangeAdapter
from tradedesk.infrastructure.exchange.request_gateway import RequestGateway
from tradedesk.infrastructure.exchange.tables import remote_executions, remote_orders

OWNER = "owner-1"
NOW = datetime(2024, 3, 8, 12, 0, tzinfo=timezone.utc)
BTC_ORDER_PAYLOAD = {
    "symbol": "BTCUSDT",
    "orderId": 28,
    "price": "50000",
    "origQty": "0.5",
    "executedQty": "0.5",
    "cummulativeQuoteQty": "25000",
    "status": "FILLED",
    "type": "LIMIT",
    "side": "BUY",
    "time": 1709294400000,
}


def _count(engine, table) -> int:
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(table)).scalar_one()


def _answer(per_symbol: dict):
    """Return a side_effect serving records (or raising errors) per symbol."""

    def _side_effect(credential, symbol, since, limit):
        value = per_symbol.get(symbol, [])
        if isinstance(value, Exception):
            raise value
        return list(value)

    return _side_effect


@pytest.fixture
def symbols(pair_repo) -> list[str]:
    pair_repo.add(OWNER, "BTCUSDT")
    pair_repo.add(OWNER, "ETHUSDT")
    return ["BTCUSDT", "ETHUSDT"]


@pytest.fixture
def build(credential_repo, exchange, pair_repo, order_repo, execution_repo):
    def _build(**overrides) -> SyncTradeHistoryUseCase:
        options = dict(
            credential_repo=credential_repo,
            exchange=exchange,
            symbol_resolver=SymbolResolver(pair_repo, exchange),
            order_repo=order_repo,
            execution_repo=execution_repo,
            clock=lambda: NOW,
        )
        options.update(overrides)
        return SyncTradeHistoryUseCase(**options)

    return _build


class TestChunked:
    def test_splits_into_fixed_batches(self) -> None:
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]

    def test_empty_input(self) -> None:
        assert list(chunked([], 3)) == []

    def test_rejects_non_positive_size(self) -> None:
        with pytest.raises(ValueError):
            list(chunked([1], 0))


class TestSyncTradeHistory:
    """Tests for SyncTradeHistoryUseCase."""

    def test_inserts_orders_then_executions(
        self, build, exchange, stored_credential, symbols, engine, make_order, make_trade
    ) -> None:
        exchange.get_orders.side_effect = _answer({"BTCUSDT": [make_order("1")]})
        exchange.get_trades.side_effect = _answer(
            {"BTCUSDT": [make_trade("t1", "1"), make_trade("t2", "1", quantity="0.25")]}
        )

        report = build().execute(SyncTradeHistoryCommand(owner_id=OWNER))

        assert report.symbols == symbols
        assert report.orders_fetched == 1
        assert report.orders_inserted == 1
        assert report.executions_inserted == 2
        assert report.failures == {}
        with engine.connect() as conn:
            order_id = conn.execute(select(remote_orders.c.id)).scalar_one()
            parents = conn.execute(select(remote_executions.c.order_id)).scalars().all()
        assert parents == [order_id, order_id]

    def test_window_and_page_limit(
        self, build, exchange, stored_credential, symbols
    ) -> None:
        exchange.get_orders.return_value = []
        exchange.get_trades.return_value = []

        build(lookback_days=3, page_limit=50).execute(SyncTradeHistoryCommand(owner_id=OWNER))

        exchange.get_orders.assert_any_call(
            stored_credential, "BTCUSDT", NOW - timedelta(days=3), 50
        )

    def test_rerun_inserts_nothing(
        self, build, exchange, stored_credential, symbols, engine, make_order, make_trade
    ) -> None:
        """Overlapping windows never duplicate ledger rows."""
        exchange.get_orders.side_effect = _answer({"BTCUSDT": [make_order("1"), make_order("2")]})
        exchange.get_trades.side_effect = _answer({"BTCUSDT": [make_trade("t1", "1")]})
        use_case = build()

        use_case.execute(SyncTradeHistoryCommand(owner_id=OWNER))
        second = use_case.execute(SyncTradeHistoryCommand(owner_id=OWNER))

        assert second.orders_fetched == 2
        assert second.orders_inserted == 0
        assert second.orders_refreshed == 0
        assert second.executions_inserted == 0
        assert _count(engine, remote_orders) == 2
        assert _count(engine, remote_executions) == 1

    def test_orphan_executions_are_dropped(
        self, build, exchange, stored_credential, symbols, engine, make_order, make_trade
    ) -> None:
        exchange.get_orders.side_effect = _answer({"BTCUSDT": [make_order("1")]})
        exchange.get_trades.side_effect = _answer(
            {"BTCUSDT": [make_trade("t1", "1"), make_trade("t2", "404")]}
        )

        report = build().execute(SyncTradeHistoryCommand(owner_id=OWNER))

        assert report.executions_inserted == 1
        assert report.executions_dropped == 1
        assert _count(engine, remote_executions) == 1

    def test_parent_from_previous_run_is_linked(
        self, build, exchange, stored_credential, symbols, engine, make_order, make_trade
    ) -> None:
        """An execution whose order left the window still finds its parent."""
        exchange.get_orders.side_effect = _answer({"BTCUSDT": [make_order("1")]})
        exchange.get_trades.return_value = []
        build().execute(SyncTradeHistoryCommand(owner_id=OWNER))

        exchange.get_orders.side_effect = _answer({})
        exchange.get_trades.side_effect = _answer({"BTCUSDT": [make_trade("t9", "1")]})
        report = build().execute(SyncTradeHistoryCommand(owner_id=OWNER))

        assert report.executions_inserted == 1
        assert report.executions_dropped == 0

    def test_failing_symbol_does_not_abort(
        self, build, exchange, stored_credential, symbols, make_order, make_trade
    ) -> None:
        exchange.get_orders.side_effect = _answer(
            {
                "BTCUSDT": [make_order("1")],
                "ETHUSDT": ExchangeApiError("Error -1121: Invalid symbol", code=-1121),
            }
        )
        exchange.get_trades.side_effect = _answer({"BTCUSDT": [make_trade("t1", "1")]})

        report = build().execute(SyncTradeHistoryCommand(owner_id=OWNER))

        assert report.failures == {"ETHUSDT": "orders: Error -1121: Invalid symbol"}
        assert report.orders_inserted == 1
        assert report.executions_inserted == 1
        assert report.timed_out is False

    def test_both_endpoints_failing_are_reported(
        self, build, exchange, stored_credential, symbols
    ) -> None:
        exchange.get_orders.side_effect = ExchangeApiError("down")
        exchange.get_trades.side_effect = ExchangeApiError("down")

        report = build().execute(SyncTradeHistoryCommand(owner_id=OWNER))

        assert report.failures == {
            "BTCUSDT": "orders: down; trades: down",
            "ETHUSDT": "orders: down; trades: down",
        }
        assert report.orders_inserted == 0

    def test_deadline_skips_remaining_symbols(
        self, build, exchange, stored_credential, symbols, make_order
    ) -> None:
        ticks = iter([0.0, 0.0, 0.0, 61.0])
        exchange.get_orders.side_effect = _answer({"BTCUSDT": [make_order("1")]})
        exchange.get_trades.return_value = []

        report = build(deadline_seconds=60.0, monotonic=lambda: next(ticks)).execute(
            SyncTradeHistoryCommand(owner_id=OWNER)
        )

        assert report.timed_out is True
        assert report.skipped == ["ETHUSDT"]
        assert report.orders_inserted == 1
        called = [c.args[1] for c in exchange.get_orders.call_args_list]
        assert called == ["BTCUSDT"]

    def test_deadline_reached_between_orders_and_trades(
        self, build, exchange, stored_credential, symbols, make_order
    ) -> None:
        """Orders already fetched are kept; the trades call is not sent."""
        ticks = iter([0.0, 0.0, 61.0])
        exchange.get_orders.side_effect = _answer({"BTCUSDT": [make_order("1")]})

        report = build(deadline_seconds=60.0, monotonic=lambda: next(ticks)).execute(
            SyncTradeHistoryCommand(owner_id=OWNER)
        )

        assert report.timed_out is True
        assert report.failures == {"BTCUSDT": "trades: sync deadline reached"}
        assert report.skipped == ["ETHUSDT"]
        assert report.orders_inserted == 1
        exchange.get_trades.assert_not_called()

    def test_unexpected_payload_shape_fails_only_that_symbol(
        self, build, stored_credential, symbols, engine
    ) -> None:
        gateway = MagicMock(spec=RequestGateway)

        def _respond(endpoint, params, *args):
            if params["symbol"] == "ETHUSDT":
                return {"unexpected": "object"}
            return [BTC_ORDER_PAYLOAD] if endpoint == "/api/v3/allOrders" else []

        gateway.signed_request.side_effect = _respond

        report = build(exchange=BinanceExchangeAdapter(gateway)).execute(
            SyncTradeHistoryCommand(owner_id=OWNER)
        )

        assert "ETHUSDT" in report.failures
        assert "BTCUSDT" not in report.failures
        assert report.orders_inserted == 1
        assert _count(engine, remote_orders) == 1

    def test_changed_orders_are_refreshed(
        self, build, exchange, stored_credential, symbols, engine, make_order
    ) -> None:
        exchange.get_trades.return_value = []
        exchange.get_orders.side_effect = _answer(
            {"BTCUSDT": [make_order("1", status="NEW", filled="0", quote="0")]}
        )
        build().execute(SyncTradeHistoryCommand(owner_id=OWNER))

        exchange.get_orders.side_effect = _answer({"BTCUSDT": [make_order("1")]})
        report = build().execute(SyncTradeHistoryCommand(owner_id=OWNER))

        assert report.orders_inserted == 0
        assert report.orders_refreshed == 1
        with engine.connect() as conn:
            row = conn.execute(select(remote_orders)).one()
        assert row.status == "FILLED"
        assert Decimal(row.executed_qty) == Decimal("0.5")

    def test_writes_in_batches(
        self, build, exchange, stored_credential, symbols, order_repo, make_order
    ) -> None:
        spy = MagicMock(wraps=order_repo)
        exchange.get_orders.side_effect = _answer(
            {"BTCUSDT": [make_order(str(i)) for i in range(5)]}
        )
        exchange.get_trades.return_value = []

        report = build(order_repo=spy, batch_size=2).execute(
            SyncTradeHistoryCommand(owner_id=OWNER)
        )

        assert report.orders_inserted == 5
        assert [len(c.args[0]) for c in spy.save_batch.call_args_list] == [2, 2, 1]
        spy.find_by_exchange_ids.assert_called_once()

    def test_sell_execution_keeps_side(
        self, build, exchange, stored_credential, symbols, execution_repo, make_order, make_trade
    ) -> None:
        exchange.get_orders.side_effect = _answer({"ETHUSDT": [make_order("7", symbol="ETHUSDT", side=Side.SELL)]})
        exchange.get_trades.side_effect = _answer(
            {"ETHUSDT": [make_trade("t7", "7", symbol="ETHUSDT", side=Side.SELL, price="2000")]}
        )

        build().execute(SyncTradeHistoryCommand(owner_id=OWNER))

        totals = execution_repo.quote_totals_by_side(OWNER)
        assert totals[Side.SELL] == Decimal("1000")
        assert totals[Side.BUY] == Decimal("0")

    def test_requires_a_credential(self, build, symbols) -> None:
        with pytest.raises(NoActiveCredentialError):
            build().execute(SyncTradeHistoryCommand(owner_id=OWNER))
