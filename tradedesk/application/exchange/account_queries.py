"""
Use cases: read-only account views.

GetBalancesUseCase   - tiered balance snapshot of a credential.
GetMarketOverviewUseCase - headline pairs with price and 24h movement.
GetRecentTradesUseCase - latest executions from the local ledger.

Side effects: None.
Failure cases: CredentialNotFoundError, NoActiveCredentialError; the
    market overview also propagates ExchangeApiError.
"""

import logging
from typing import Optional

from tradedesk.application.exchange.account_reconciler import AccountReconciler
from tradedesk.application.exchange.manage_credentials import resolve_credential
from tradedesk.application.exchange.market_data import MarketDataFetcher
from tradedesk.domain.exchange.entities import BalanceSnapshot, MarketPair, RecentTrade
from tradedesk.domain.exchange.ports import CredentialRepository, RemoteExecutionRepository

logger = logging.getLogger(__name__)


class GetBalancesUseCase:
    def __init__(
        self, credential_repo: CredentialRepository, reconciler: AccountReconciler
    ) -> None:
        self._credential_repo = credential_repo
        self._reconciler = reconciler

    def execute(
        self, owner_id: str, credential_id: Optional[str] = None
    ) -> BalanceSnapshot:
        credential = resolve_credential(self._credential_repo, owner_id, credential_id)
        snapshot = self._reconciler.get_balances(owner_id, credential)
        logger.info(
            "Balances for owner=%s: status=%s, assets=%d",
            owner_id,
            snapshot.status.value,
            len(snapshot.balances),
        )
        return snapshot


class GetMarketOverviewUseCase:
    def __init__(
        self, credential_repo: CredentialRepository, market_data: MarketDataFetcher
    ) -> None:
        self._credential_repo = credential_repo
        self._market_data = market_data

    def execute(
        self, owner_id: str, credential_id: Optional[str] = None
    ) -> list[MarketPair]:
        credential = resolve_credential(self._credential_repo, owner_id, credential_id)
        return self._market_data.market_overview(credential)


class GetRecentTradesUseCase:
    """Latest persisted executions, newest first."""

    def __init__(self, execution_repo: RemoteExecutionRepository) -> None:
        self._execution_repo = execution_repo

    def execute(self, owner_id: str, limit: int = 10) -> list[RecentTrade]:
        return self._execution_repo.get_recent(owner_id, limit)
