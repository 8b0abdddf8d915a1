"""
Adapter: trading pair repository.

Implements TradingPairRepository and StrategyRepository ports over
the trading_pairs and strategies tables.
"""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from tradedesk.domain.exchange.entities import TradingPair
from tradedesk.domain.exchange.errors import (
    DuplicateTradingPairError,
    TradingPairNotFoundError,
)
from tradedesk.domain.exchange.ports import StrategyRepository, TradingPairRepository
from tradedesk.infrastructure.exchange.tables import strategies, trading_pairs

logger = logging.getLogger(__name__)


def _to_pair(row: Any) -> TradingPair:
    return TradingPair(
        id=row.id,
        owner_id=row.owner_id,
        symbol=row.symbol,
        active=row.active,
        created_at=row.created_at,
    )


class TradingPairRepositoryAdapter(TradingPairRepository):
    """SQL implementation of the trading pair store."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _scope(self, pair_id: str, owner_id: str):
        return and_(trading_pairs.c.id == pair_id, trading_pairs.c.owner_id == owner_id)

    def list_all(self, owner_id: str) -> list[TradingPair]:
        query = (
            select(trading_pairs)
            .where(trading_pairs.c.owner_id == owner_id)
            .order_by(trading_pairs.c.created_at.desc(), trading_pairs.c.symbol.asc())
        )
        with self._engine.connect() as conn:
            return [_to_pair(row) for row in conn.execute(query).fetchall()]

    def list_active_symbols(self, owner_id: str) -> list[str]:
        query = (
            select(trading_pairs.c.symbol)
            .where(
                and_(
                    trading_pairs.c.owner_id == owner_id,
                    trading_pairs.c.active.is_(True),
                )
            )
            .order_by(trading_pairs.c.created_at.asc(), trading_pairs.c.symbol.asc())
        )
        with self._engine.connect() as conn:
            return [row[0] for row in conn.execute(query).fetchall()]

    def add(self, owner_id: str, symbol: str) -> TradingPair:
        pair = TradingPair(
            id=str(uuid4()),
            owner_id=owner_id,
            symbol=symbol,
            active=True,
            created_at=datetime.now(timezone.utc),
        )
        try:
            with self._engine.begin() as conn:
                existing = conn.execute(
                    select(trading_pairs.c.id).where(
                        and_(
                            trading_pairs.c.owner_id == owner_id,
                            trading_pairs.c.symbol == symbol,
                        )
                    )
                ).first()
                if existing is not None:
                    raise DuplicateTradingPairError(symbol)
                conn.execute(
                    insert(trading_pairs).values(
                        id=pair.id,
                        owner_id=owner_id,
                        symbol=symbol,
                        active=True,
                        created_at=pair.created_at,
                    )
                )
        except IntegrityError as exc:
            raise DuplicateTradingPairError(symbol) from exc

        logger.info("Added trading pair %s for owner=%s", symbol, owner_id)
        return pair

    def set_active(self, pair_id: str, owner_id: str, active: bool) -> TradingPair:
        with self._engine.begin() as conn:
            result = conn.execute(
                update(trading_pairs)
                .where(self._scope(pair_id, owner_id))
                .values(active=active)
            )
            if result.rowcount == 0:
                raise TradingPairNotFoundError(pair_id)
            row = conn.execute(
                select(trading_pairs).where(self._scope(pair_id, owner_id))
            ).first()
        return _to_pair(row)

    def remove(self, pair_id: str, owner_id: str) -> None:
        with self._engine.begin() as conn:
            result = conn.execute(delete(trading_pairs).where(self._scope(pair_id, owner_id)))
        if result.rowcount == 0:
            raise TradingPairNotFoundError(pair_id)


class StrategyRepositoryAdapter(StrategyRepository):
    """Read access to strategy configuration records."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def count_active(self, owner_id: str) -> int:
        query = select(func.count()).select_from(strategies).where(
            and_(strategies.c.owner_id == owner_id, strategies.c.active.is_(True))
        )
        with self._engine.connect() as conn:
            return int(conn.execute(query).scalar() or 0)
