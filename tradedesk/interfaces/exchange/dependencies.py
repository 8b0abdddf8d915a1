"""
Dependency injection for the exchange bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the exchange context.

Tests replace `get_engine`, `get_exchange` and `get_cipher` through
`app.dependency_overrides`; every use case factory reaches them via
Depends so the overrides apply everywhere.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from tradedesk.application.exchange.account_queries import (
    GetBalancesUseCase,
    GetMarketOverviewUseCase,
    GetRecentTradesUseCase,
)
from tradedesk.application.exchange.account_reconciler import AccountReconciler
from tradedesk.application.exchange.get_dashboard import GetDashboardUseCase
from tradedesk.application.exchange.manage_credentials import (
    CreateCredentialUseCase,
    DeleteCredentialUseCase,
    GetCredentialUseCase,
    ListCredentialsUseCase,
    UpdateCapabilitiesUseCase,
)
from tradedesk.application.exchange.manage_trading_pairs import (
    AddTradingPairUseCase,
    ListAvailableSymbolsUseCase,
    ListTradingPairsUseCase,
    RemoveTradingPairUseCase,
    ToggleTradingPairUseCase,
)
from tradedesk.application.exchange.market_data import MarketDataFetcher
from tradedesk.application.exchange.symbol_resolver import SymbolResolver
from tradedesk.application.exchange.sync_trade_history import SyncTradeHistoryUseCase
from tradedesk.application.exchange.validate_credential import ValidateCredentialUseCase
from tradedesk.core.config import settings
from tradedesk.domain.exchange.entities import ExchangeVariant
from tradedesk.domain.exchange.ports import ExchangePort
from tradedesk.infrastructure.exchange.binance_adapter import (
    BinanceExchangeAdapter,
    ExchangeEndpoints,
)
from tradedesk.infrastructure.exchange.credential_cipher import CredentialCipher
from tradedesk.infrastructure.exchange.credential_repository import (
    CredentialRepositoryAdapter,
)
from tradedesk.infrastructure.exchange.ledger_repository import (
    RemoteExecutionRepositoryAdapter,
    RemoteOrderRepositoryAdapter,
)
from tradedesk.infrastructure.exchange.request_gateway import RequestGateway
from tradedesk.infrastructure.exchange.trading_pair_repository import (
    StrategyRepositoryAdapter,
    TradingPairRepositoryAdapter,
)
from tradedesk.shared.errors.exceptions import AuthenticationRequiredError

OWNER_HEADER = "X-User-Id"


# ── Infrastructure singletons ────────────────────────────────────


@lru_cache
def get_engine() -> Engine:
    """Build the SQLAlchemy engine from application settings."""
    return create_engine(settings.get_database_dsn(), pool_pre_ping=True)


@lru_cache
def get_gateway() -> RequestGateway:
    """Shared HTTP gateway; one connection pool for the whole process."""
    return RequestGateway(
        timeout=settings.exchange_timeout_seconds,
        recv_window=settings.exchange_recv_window_ms,
    )


def get_exchange() -> ExchangePort:
    return BinanceExchangeAdapter(
        gateway=get_gateway(),
        endpoints={
            ExchangeVariant.BINANCE: ExchangeEndpoints(
                spot_base_url=settings.binance_base_url,
                futures_base_url=settings.binance_futures_base_url,
            ),
            ExchangeVariant.BINANCE_US: ExchangeEndpoints(
                spot_base_url=settings.binance_us_base_url,
                futures_base_url=settings.binance_us_futures_base_url,
            ),
        },
    )


@lru_cache
def get_cipher() -> CredentialCipher:
    return CredentialCipher(settings.credential_encryption_secret)


def get_current_owner(
    x_user_id: Optional[str] = Header(default=None, alias=OWNER_HEADER),
) -> str:
    """Return the owner id set by the upstream session layer."""
    owner_id = (x_user_id or "").strip()
    if not owner_id:
        raise AuthenticationRequiredError(f"Missing {OWNER_HEADER} header")
    return owner_id


# ── Repositories and services ────────────────────────────────────


def get_credential_repository(
    engine: Engine = Depends(get_engine),
    cipher: CredentialCipher = Depends(get_cipher),
) -> CredentialRepositoryAdapter:
    return CredentialRepositoryAdapter(engine=engine, cipher=cipher)


def get_trading_pair_repository(
    engine: Engine = Depends(get_engine),
) -> TradingPairRepositoryAdapter:
    return TradingPairRepositoryAdapter(engine=engine)


def get_symbol_resolver(
    pair_repo: TradingPairRepositoryAdapter = Depends(get_trading_pair_repository),
    exchange: ExchangePort = Depends(get_exchange),
) -> SymbolResolver:
    return SymbolResolver(pair_repo=pair_repo, exchange=exchange)


def get_account_reconciler(
    exchange: ExchangePort = Depends(get_exchange),
    symbol_resolver: SymbolResolver = Depends(get_symbol_resolver),
) -> AccountReconciler:
    return AccountReconciler(exchange=exchange, symbol_resolver=symbol_resolver)


def get_market_data(exchange: ExchangePort = Depends(get_exchange)) -> MarketDataFetcher:
    return MarketDataFetcher(exchange=exchange)


# ── Use cases ────────────────────────────────────────────────────


def get_create_credential_use_case(
    repo: CredentialRepositoryAdapter = Depends(get_credential_repository),
) -> CreateCredentialUseCase:
    return CreateCredentialUseCase(credential_repo=repo)


def get_list_credentials_use_case(
    repo: CredentialRepositoryAdapter = Depends(get_credential_repository),
) -> ListCredentialsUseCase:
    return ListCredentialsUseCase(credential_repo=repo)


def get_get_credential_use_case(
    repo: CredentialRepositoryAdapter = Depends(get_credential_repository),
) -> GetCredentialUseCase:
    return GetCredentialUseCase(credential_repo=repo)


def get_update_capabilities_use_case(
    repo: CredentialRepositoryAdapter = Depends(get_credential_repository),
) -> UpdateCapabilitiesUseCase:
    return UpdateCapabilitiesUseCase(credential_repo=repo)


def get_delete_credential_use_case(
    repo: CredentialRepositoryAdapter = Depends(get_credential_repository),
) -> DeleteCredentialUseCase:
    return DeleteCredentialUseCase(credential_repo=repo)


def get_validate_credential_use_case(
    repo: CredentialRepositoryAdapter = Depends(get_credential_repository),
    exchange: ExchangePort = Depends(get_exchange),
) -> ValidateCredentialUseCase:
    return ValidateCredentialUseCase(credential_repo=repo, exchange=exchange)


def get_list_trading_pairs_use_case(
    pair_repo: TradingPairRepositoryAdapter = Depends(get_trading_pair_repository),
) -> ListTradingPairsUseCase:
    return ListTradingPairsUseCase(pair_repo=pair_repo)


def get_add_trading_pair_use_case(
    pair_repo: TradingPairRepositoryAdapter = Depends(get_trading_pair_repository),
    credential_repo: CredentialRepositoryAdapter = Depends(get_credential_repository),
    symbol_resolver: SymbolResolver = Depends(get_symbol_resolver),
) -> AddTradingPairUseCase:
    return AddTradingPairUseCase(
        pair_repo=pair_repo,
        credential_repo=credential_repo,
        symbol_resolver=symbol_resolver,
    )


def get_toggle_trading_pair_use_case(
    pair_repo: TradingPairRepositoryAdapter = Depends(get_trading_pair_repository),
) -> ToggleTradingPairUseCase:
    return ToggleTradingPairUseCase(pair_repo=pair_repo)


def get_remove_trading_pair_use_case(
    pair_repo: TradingPairRepositoryAdapter = Depends(get_trading_pair_repository),
) -> RemoveTradingPairUseCase:
    return RemoveTradingPairUseCase(pair_repo=pair_repo)


def get_available_symbols_use_case(
    pair_repo: TradingPairRepositoryAdapter = Depends(get_trading_pair_repository),
    credential_repo: CredentialRepositoryAdapter = Depends(get_credential_repository),
    symbol_resolver: SymbolResolver = Depends(get_symbol_resolver),
) -> ListAvailableSymbolsUseCase:
    return ListAvailableSymbolsUseCase(
        pair_repo=pair_repo,
        credential_repo=credential_repo,
        symbol_resolver=symbol_resolver,
    )


def get_balances_use_case(
    repo: CredentialRepositoryAdapter = Depends(get_credential_repository),
    reconciler: AccountReconciler = Depends(get_account_reconciler),
) -> GetBalancesUseCase:
    return GetBalancesUseCase(credential_repo=repo, reconciler=reconciler)


def get_market_overview_use_case(
    repo: CredentialRepositoryAdapter = Depends(get_credential_repository),
    market_data: MarketDataFetcher = Depends(get_market_data),
) -> GetMarketOverviewUseCase:
    return GetMarketOverviewUseCase(credential_repo=repo, market_data=market_data)


def get_sync_trade_history_use_case(
    engine: Engine = Depends(get_engine),
    repo: CredentialRepositoryAdapter = Depends(get_credential_repository),
    exchange: ExchangePort = Depends(get_exchange),
    symbol_resolver: SymbolResolver = Depends(get_symbol_resolver),
) -> SyncTradeHistoryUseCase:
    """Build SyncTradeHistoryUseCase with the sync tuning from settings."""
    return SyncTradeHistoryUseCase(
        credential_repo=repo,
        exchange=exchange,
        symbol_resolver=symbol_resolver,
        order_repo=RemoteOrderRepositoryAdapter(engine=engine),
        execution_repo=RemoteExecutionRepositoryAdapter(engine=engine),
        lookback_days=settings.sync_lookback_days,
        page_limit=settings.sync_page_limit,
        batch_size=settings.sync_batch_size,
        deadline_seconds=settings.sync_deadline_seconds,
    )


def get_recent_trades_use_case(
    engine: Engine = Depends(get_engine),
) -> GetRecentTradesUseCase:
    return GetRecentTradesUseCase(
        execution_repo=RemoteExecutionRepositoryAdapter(engine=engine)
    )


def get_dashboard_use_case(
    engine: Engine = Depends(get_engine),
    repo: CredentialRepositoryAdapter = Depends(get_credential_repository),
    reconciler: AccountReconciler = Depends(get_account_reconciler),
    market_data: MarketDataFetcher = Depends(get_market_data),
) -> GetDashboardUseCase:
    return GetDashboardUseCase(
        credential_repo=repo,
        reconciler=reconciler,
        market_data=market_data,
        execution_repo=RemoteExecutionRepositoryAdapter(engine=engine),
        strategy_repo=StrategyRepositoryAdapter(engine=engine),
        min_value=Decimal(str(settings.portfolio_min_value)),
    )
