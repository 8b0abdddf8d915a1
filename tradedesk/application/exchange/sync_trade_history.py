"""
Use case: Reconcile exchange order and execution history into the ledger.

Input: SyncTradeHistoryCommand (owner id, optional credential id)
Output: SyncReport
Side effects: Inserts new orders and executions; refreshes the fill
    progress of stored orders whose status changed upstream.
Failure cases: CredentialNotFoundError and NoActiveCredentialError
    propagate. Per-symbol fetch failures are recorded in the report
    and never abort the sync.

Phases:
    1. Fetch, per symbol and in sequence, the orders and then the
       executions of the lookback window. A symbol that fails is
       recorded and skipped. The overall deadline is checked before
       every exchange call: once it has passed, a symbol whose orders
       were fetched is recorded as failed for its executions and the
       remaining symbols are skipped.
    2. Persist orders: one bulk lookup of the fetched ids, insert the
       set difference in fixed-size batches, refresh changed ones.
    3. Persist executions: same lookup and set difference, then resolve
       each parent order from the ledger written in phase 2. Executions
       without a stored parent are dropped and counted.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, Sequence, TypeVar
from uuid import uuid4

from tradedesk.application.exchange.dtos import SyncReport, SyncTradeHistoryCommand
from tradedesk.application.exchange.manage_credentials import resolve_credential
from tradedesk.application.exchange.symbol_resolver import SymbolResolver
from tradedesk.domain.exchange.entities import (
    ExchangeCredential,
    ExchangeOrder,
    ExchangeTrade,
    RemoteExecution,
    RemoteOrder,
)
from tradedesk.domain.exchange.errors import ExchangeApiError, MalformedPayloadError
from tradedesk.domain.exchange.ports import (
    CredentialRepository,
    ExchangePort,
    RemoteExecutionRepository,
    RemoteOrderRepository,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RECOVERABLE = (ExchangeApiError, MalformedPayloadError)


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of at most `size` items."""
    if size < 1:
        raise ValueError("batch size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class SyncTradeHistoryUseCase:
    """Orchestrates one trade-history reconciliation for an owner.

    Safe to re-run over overlapping windows: records already in the
    ledger are recognised by their exchange id and never inserted twice.
    """

    def __init__(
        self,
        credential_repo: CredentialRepository,
        exchange: ExchangePort,
        symbol_resolver: SymbolResolver,
        order_repo: RemoteOrderRepository,
        execution_repo: RemoteExecutionRepository,
        lookback_days: int = 7,
        page_limit: int = 500,
        batch_size: int = 100,
        deadline_seconds: float = 60.0,
        clock: Callable[[], datetime] = _now,
        monotonic: Callable[[], float] = time.monotonic,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        """Initialize the use case.

        Args:
            credential_repo: Source of the decrypted credential.
            exchange: Port to the exchange REST API.
            symbol_resolver: Decides which symbols are synced.
            order_repo: Order ledger.
            execution_repo: Execution ledger.
            lookback_days: Size of the fetched history window.
            page_limit: Records requested per symbol and endpoint.
            batch_size: Rows written per transaction.
            deadline_seconds: Budget for the fetch phase of one sync.
            clock: Wall clock used for the history window.
            monotonic: Clock used for the deadline.
            id_factory: Generates local ids for new ledger rows.
        """
        self._credential_repo = credential_repo
        self._exchange = exchange
        self._symbol_resolver = symbol_resolver
        self._order_repo = order_repo
        self._execution_repo = execution_repo
        self._lookback = timedelta(days=lookback_days)
        self._page_limit = page_limit
        self._batch_size = batch_size
        self._deadline_seconds = deadline_seconds
        self._clock = clock
        self._monotonic = monotonic
        self._id_factory = id_factory

    def execute(self, command: SyncTradeHistoryCommand) -> SyncReport:
        """Run the sync.

        Args:
            command: Owner and optional credential to sync with.

        Returns:
            Counters and per-symbol failures of this run.
        """
        credential = resolve_credential(
            self._credential_repo, command.owner_id, command.credential_id
        )
        symbols = self._symbol_resolver.resolve_symbols(command.owner_id)
        report = SyncReport(symbols=list(symbols))

        logger.info(
            "Syncing trade history: owner=%s, symbols=%d", command.owner_id, len(symbols)
        )

        orders, trades = self._fetch(credential, symbols, report)
        report.orders_fetched = len(orders)
        report.executions_fetched = len(trades)

        # Executions resolve their parents from what this step writes.
        self._persist_orders(command.owner_id, orders, report)
        self._persist_executions(command.owner_id, trades, report)

        logger.info(
            "Trade history synced: owner=%s, orders +%d ~%d, executions +%d "
            "(dropped %d), failed symbols=%d, timed_out=%s",
            command.owner_id,
            report.orders_inserted,
            report.orders_refreshed,
            report.executions_inserted,
            report.executions_dropped,
            len(report.failures),
            report.timed_out,
        )
        return report

    def _fetch(
        self,
        credential: ExchangeCredential,
        symbols: list[str],
        report: SyncReport,
    ) -> tuple[list[ExchangeOrder], list[ExchangeTrade]]:
        since = self._clock() - self._lookback
        started = self._monotonic()
        orders: list[ExchangeOrder] = []
        trades: list[ExchangeTrade] = []

        for index, symbol in enumerate(symbols):
            if self._expired(started):
                self._stop(report, symbols[index:])
                break

            reasons: list[str] = []
            try:
                orders.extend(
                    self._exchange.get_orders(credential, symbol, since, self._page_limit)
                )
            except _RECOVERABLE as exc:
                logger.warning("Failed to fetch orders for %s: %s", symbol, exc.message)
                reasons.append(f"orders: {exc.message}")

            if self._expired(started):
                reasons.append("trades: sync deadline reached")
                report.failures[symbol] = "; ".join(reasons)
                self._stop(report, symbols[index + 1 :])
                break

            try:
                trades.extend(
                    self._exchange.get_trades(credential, symbol, since, self._page_limit)
                )
            except _RECOVERABLE as exc:
                logger.warning("Failed to fetch trades for %s: %s", symbol, exc.message)
                reasons.append(f"trades: {exc.message}")

            if reasons:
                report.failures[symbol] = "; ".join(reasons)

        return orders, trades

    def _expired(self, started: float) -> bool:
        return self._monotonic() - started >= self._deadline_seconds

    def _stop(self, report: SyncReport, remaining: list[str]) -> None:
        report.timed_out = True
        report.skipped = list(remaining)
        logger.warning(
            "Sync deadline of %.1fs reached, skipping %d symbols",
            self._deadline_seconds,
            len(report.skipped),
        )

    def _persist_orders(
        self, owner_id: str, orders: list[ExchangeOrder], report: SyncReport
    ) -> None:
        fetched = {order.exchange_order_id: order for order in orders}
        if not fetched:
            return

        stored = self._order_repo.find_by_exchange_ids(owner_id, set(fetched))
        new_orders = [
            RemoteOrder.from_exchange(self._id_factory(), owner_id, order)
            for exchange_id, order in fetched.items()
            if exchange_id not in stored
        ]
        changed = [
            order
            for exchange_id, order in fetched.items()
            if exchange_id in stored and stored[exchange_id].differs_from(order)
        ]

        for batch in chunked(new_orders, self._batch_size):
            report.orders_inserted += self._order_repo.save_batch(batch)
        if changed:
            report.orders_refreshed = self._order_repo.update_progress(owner_id, changed)

    def _persist_executions(
        self, owner_id: str, trades: list[ExchangeTrade], report: SyncReport
    ) -> None:
        fetched = {trade.exchange_trade_id: trade for trade in trades}
        if not fetched:
            return

        existing = self._execution_repo.find_existing_trade_ids(owner_id, set(fetched))
        new_trades = [t for trade_id, t in fetched.items() if trade_id not in existing]
        if not new_trades:
            return

        parents = self._order_repo.find_by_exchange_ids(
            owner_id, {trade.exchange_order_id for trade in new_trades}
        )

        executions: list[RemoteExecution] = []
        for trade in new_trades:
            parent = parents.get(trade.exchange_order_id)
            if parent is None:
                report.executions_dropped += 1
                logger.warning(
                    "Dropping execution %s of %s: parent order %s not in ledger",
                    trade.exchange_trade_id,
                    trade.symbol,
                    trade.exchange_order_id,
                )
                continue
            executions.append(
                RemoteExecution(
                    local_id=self._id_factory(),
                    owner_id=owner_id,
                    parent_order_local_id=parent.local_id,
                    exchange_trade_id=trade.exchange_trade_id,
                    symbol=trade.symbol,
                    side=trade.side,
                    price=trade.price,
                    quantity=trade.quantity,
                    quote_quantity=trade.quote_quantity,
                    fee=trade.fee,
                    fee_asset=trade.fee_asset,
                    is_maker=trade.is_maker,
                    executed_at=trade.executed_at,
                )
            )

        for batch in chunked(executions, self._batch_size):
            report.executions_inserted += self._execution_repo.save_batch(batch)
