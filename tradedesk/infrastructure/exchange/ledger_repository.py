"""
Adapters: order and execution ledger.

Implements RemoteOrderRepository and RemoteExecutionRepository ports.
Each save_batch call runs inside its own transaction so a failed batch
leaves no partial rows behind.
"""

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import and_, bindparam, func, insert, select, update
from sqlalchemy.engine import Engine

from tradedesk.domain.exchange.entities import (
    ExchangeOrder,
    RecentTrade,
    RemoteExecution,
    RemoteOrder,
    Side,
    StoredOrderRef,
)
from tradedesk.domain.exchange.ports import (
    RemoteExecutionRepository,
    RemoteOrderRepository,
)
from tradedesk.infrastructure.exchange.tables import (
    remote_executions,
    remote_orders,
    strategies,
)

logger = logging.getLogger(__name__)


def _order_row(order: RemoteOrder) -> dict[str, Any]:
    return {
        "id": order.local_id,
        "owner_id": order.owner_id,
        "exchange_order_id": order.exchange_order_id,
        "client_order_id": order.client_order_id,
        "strategy_id": None,
        "symbol": order.symbol,
        "side": order.side.value,
        "type": order.kind,
        "status": order.status,
        "price": order.limit_price,
        "quantity": order.requested_qty,
        "executed_qty": order.filled_qty,
        "cumulative_quote_qty": order.cumulative_quote_qty,
        "time_in_force": order.time_in_force,
        "stop_price": order.stop_price,
        "placed_at": order.placed_at,
    }


def _execution_row(execution: RemoteExecution) -> dict[str, Any]:
    return {
        "id": execution.local_id,
        "owner_id": execution.owner_id,
        "order_id": execution.parent_order_local_id,
        "exchange_trade_id": execution.exchange_trade_id,
        "symbol": execution.symbol,
        "side": execution.side.value,
        "price": execution.price,
        "quantity": execution.quantity,
        "quote_quantity": execution.quote_quantity,
        "fee": execution.fee,
        "fee_asset": execution.fee_asset,
        "is_maker": execution.is_maker,
        "executed_at": execution.executed_at,
    }


class RemoteOrderRepositoryAdapter(RemoteOrderRepository):
    """SQL implementation of the order ledger."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def find_by_exchange_ids(
        self, owner_id: str, exchange_order_ids: set[str]
    ) -> dict[str, StoredOrderRef]:
        if not exchange_order_ids:
            return {}

        query = select(
            remote_orders.c.id,
            remote_orders.c.exchange_order_id,
            remote_orders.c.status,
            remote_orders.c.executed_qty,
            remote_orders.c.cumulative_quote_qty,
        ).where(
            and_(
                remote_orders.c.owner_id == owner_id,
                remote_orders.c.exchange_order_id.in_(sorted(exchange_order_ids)),
            )
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query).fetchall()

        return {
            row.exchange_order_id: StoredOrderRef(
                local_id=row.id,
                exchange_order_id=row.exchange_order_id,
                status=row.status,
                filled_qty=Decimal(row.executed_qty),
                cumulative_quote_qty=Decimal(row.cumulative_quote_qty),
            )
            for row in rows
        }

    def save_batch(self, orders: list[RemoteOrder]) -> int:
        if not orders:
            return 0
        with self._engine.begin() as conn:
            conn.execute(insert(remote_orders), [_order_row(order) for order in orders])
        logger.debug("Inserted %d orders", len(orders))
        return len(orders)

    def update_progress(self, owner_id: str, orders: list[ExchangeOrder]) -> int:
        if not orders:
            return 0

        statement = (
            update(remote_orders)
            .where(
                and_(
                    remote_orders.c.owner_id == bindparam("b_owner_id"),
                    remote_orders.c.exchange_order_id == bindparam("b_exchange_order_id"),
                )
            )
            .values(
                status=bindparam("b_status"),
                executed_qty=bindparam("b_executed_qty"),
                cumulative_quote_qty=bindparam("b_cumulative_quote_qty"),
            )
        )
        params = [
            {
                "b_owner_id": owner_id,
                "b_exchange_order_id": order.exchange_order_id,
                "b_status": order.status,
                "b_executed_qty": order.filled_qty,
                "b_cumulative_quote_qty": order.cumulative_quote_qty,
            }
            for order in orders
        ]
        with self._engine.begin() as conn:
            conn.execute(statement, params)
        logger.debug("Refreshed progress of %d orders", len(orders))
        return len(orders)


class RemoteExecutionRepositoryAdapter(RemoteExecutionRepository):
    """SQL implementation of the execution ledger."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def find_existing_trade_ids(
        self, owner_id: str, exchange_trade_ids: set[str]
    ) -> set[str]:
        if not exchange_trade_ids:
            return set()

        query = select(remote_executions.c.exchange_trade_id).where(
            and_(
                remote_executions.c.owner_id == owner_id,
                remote_executions.c.exchange_trade_id.in_(sorted(exchange_trade_ids)),
            )
        )
        with self._engine.connect() as conn:
            return {row[0] for row in conn.execute(query).fetchall()}

    def save_batch(self, executions: list[RemoteExecution]) -> int:
        if not executions:
            return 0
        with self._engine.begin() as conn:
            conn.execute(
                insert(remote_executions),
                [_execution_row(execution) for execution in executions],
            )
        logger.debug("Inserted %d executions", len(executions))
        return len(executions)

    def get_recent(self, owner_id: str, limit: int = 10) -> list[RecentTrade]:
        """Return the latest executions, newest first.

        Joins the parent order for its type and, when the order was
        placed by a strategy, the strategy name. Orders without a
        strategy are reported as "Manual".
        """
        query = (
            select(
                remote_executions.c.id,
                remote_executions.c.symbol,
                remote_executions.c.side,
                remote_executions.c.quantity,
                remote_executions.c.price,
                remote_executions.c.quote_quantity,
                remote_executions.c.executed_at,
                remote_orders.c.exchange_order_id,
                remote_orders.c.type,
                strategies.c.name.label("strategy_name"),
            )
            .select_from(
                remote_executions.join(
                    remote_orders, remote_executions.c.order_id == remote_orders.c.id
                ).outerjoin(strategies, remote_orders.c.strategy_id == strategies.c.id)
            )
            .where(remote_executions.c.owner_id == owner_id)
            .order_by(remote_executions.c.executed_at.desc(), remote_executions.c.id.asc())
            .limit(limit)
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query).fetchall()

        return [
            RecentTrade(
                id=row.id,
                symbol=row.symbol,
                side=Side(row.side),
                quantity=Decimal(row.quantity),
                price=Decimal(row.price),
                total=Decimal(row.quote_quantity),
                executed_at=row.executed_at,
                exchange_order_id=row.exchange_order_id,
                order_type=row.type,
                strategy=row.strategy_name or "Manual",
            )
            for row in rows
        ]

    def quote_totals_by_side(self, owner_id: str) -> dict[Side, Decimal]:
        query = (
            select(
                remote_executions.c.side,
                func.coalesce(func.sum(remote_executions.c.quote_quantity), 0),
            )
            .where(remote_executions.c.owner_id == owner_id)
            .group_by(remote_executions.c.side)
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query).fetchall()

        totals = {side: Decimal("0") for side in Side}
        for side, total in rows:
            totals[Side(side)] = Decimal(str(total))
        return totals
