"""
Use case: Build the dashboard aggregate for an owner.

Input: owner id, optional credential id
Output: DashboardSnapshot
Side effects: None (read-only; exchange reads are public or signed GETs).
Failure cases: CredentialNotFoundError when an unknown credential id is
    given. Exchange failures only degrade the snapshot.
"""

import logging
from decimal import Decimal
from typing import Optional

from tradedesk.application.exchange.account_reconciler import AccountReconciler
from tradedesk.application.exchange.dtos import DashboardSnapshot
from tradedesk.application.exchange.manage_credentials import resolve_credential
from tradedesk.application.exchange.market_data import MarketDataFetcher, build_overview
from tradedesk.domain.exchange.entities import FetchStatus, Side
from tradedesk.domain.exchange.errors import (
    ExchangeApiError,
    MalformedPayloadError,
    NoActiveCredentialError,
)
from tradedesk.domain.exchange.ports import (
    CredentialRepository,
    RemoteExecutionRepository,
    StrategyRepository,
)
from tradedesk.domain.exchange.valuation import valuate, weighted_daily_change

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
RECENT_TRADES_LIMIT = 10


class GetDashboardUseCase:
    """Combines ledger figures with live balances and market data.

    Ledger figures (profit, strategies, recent trades) are always
    available. Exchange-backed figures fall back to empty values and
    mark the snapshot as degraded.
    """

    def __init__(
        self,
        credential_repo: CredentialRepository,
        reconciler: AccountReconciler,
        market_data: MarketDataFetcher,
        execution_repo: RemoteExecutionRepository,
        strategy_repo: StrategyRepository,
        min_value: Decimal = Decimal("1"),
    ) -> None:
        self._credential_repo = credential_repo
        self._reconciler = reconciler
        self._market_data = market_data
        self._execution_repo = execution_repo
        self._strategy_repo = strategy_repo
        self._min_value = min_value

    def execute(
        self, owner_id: str, credential_id: Optional[str] = None
    ) -> DashboardSnapshot:
        totals = self._execution_repo.quote_totals_by_side(owner_id)
        total_profit = totals.get(Side.SELL, ZERO) - totals.get(Side.BUY, ZERO)
        active_strategies = self._strategy_repo.count_active(owner_id)
        recent_trades = self._execution_repo.get_recent(owner_id, RECENT_TRADES_LIMIT)

        try:
            credential = resolve_credential(self._credential_repo, owner_id, credential_id)
        except NoActiveCredentialError:
            logger.info("Dashboard for owner %s without credential", owner_id)
            return DashboardSnapshot(
                total_balance=ZERO,
                daily_change=ZERO,
                total_profit=total_profit,
                active_strategies=active_strategies,
                portfolio=[],
                market=[],
                recent_trades=recent_trades,
                balance_status=FetchStatus.PLACEHOLDER,
                degraded=True,
            )

        snapshot = self._reconciler.get_balances(owner_id, credential)

        market_live = True
        try:
            prices = self._market_data.current_prices(credential)
            statistics = self._market_data.statistics_24h(credential)
        except (ExchangeApiError, MalformedPayloadError) as exc:
            logger.warning("Market data unavailable for dashboard: %s", exc.message)
            prices, statistics, market_live = {}, [], False

        portfolio = valuate(snapshot.balances, prices, self._min_value)
        changes = {s.symbol: s.price_change_percent for s in statistics}

        return DashboardSnapshot(
            total_balance=sum((h.total_value for h in portfolio), ZERO),
            daily_change=weighted_daily_change(portfolio, changes),
            total_profit=total_profit,
            active_strategies=active_strategies,
            portfolio=portfolio,
            market=build_overview(prices, statistics) if market_live else [],
            recent_trades=recent_trades,
            balance_status=snapshot.status,
            degraded=snapshot.degraded or not market_live,
        )
