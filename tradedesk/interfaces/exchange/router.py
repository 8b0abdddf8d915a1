"""
FastAPI router for the exchange bounded context.

All routes delegate to use cases. No business logic here.
Input validation is handled by Pydantic schemas.
Error mapping is handled by centralized error handlers.
The owner is identified by the X-User-Id header.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from tradedesk.application.exchange.account_queries import (
    GetBalancesUseCase,
    GetMarketOverviewUseCase,
    GetRecentTradesUseCase,
)
from tradedesk.application.exchange.dtos import (
    CreateCredentialCommand,
    SyncTradeHistoryCommand,
    UpdateCapabilitiesCommand,
)
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
from tradedesk.application.exchange.sync_trade_history import SyncTradeHistoryUseCase
from tradedesk.application.exchange.validate_credential import ValidateCredentialUseCase
from tradedesk.domain.exchange.entities import (
    Capability,
    CredentialSummary,
    ExchangeVariant,
    MarketPair,
    RecentTrade,
    TradingPair,
)
from tradedesk.interfaces.exchange.dependencies import (
    get_add_trading_pair_use_case,
    get_available_symbols_use_case,
    get_balances_use_case,
    get_create_credential_use_case,
    get_current_owner,
    get_dashboard_use_case,
    get_delete_credential_use_case,
    get_get_credential_use_case,
    get_list_credentials_use_case,
    get_list_trading_pairs_use_case,
    get_market_overview_use_case,
    get_recent_trades_use_case,
    get_remove_trading_pair_use_case,
    get_sync_trade_history_use_case,
    get_toggle_trading_pair_use_case,
    get_update_capabilities_use_case,
    get_validate_credential_use_case,
)
from tradedesk.interfaces.exchange.schemas import (
    AddTradingPairRequest,
    AvailableSymbolsResponse,
    BalanceItem,
    BalancesResponse,
    CapabilityReportResponse,
    CreateCredentialRequest,
    CredentialListResponse,
    CredentialResponse,
    DashboardResponse,
    ErrorResponse,
    HoldingItem,
    MarketOverviewResponse,
    MarketPairItem,
    RecentTradeItem,
    RecentTradesResponse,
    SyncTradeHistoryResponse,
    TradingPairListResponse,
    TradingPairResponse,
    UpdateCapabilitiesRequest,
    UpdateTradingPairRequest,
)
from tradedesk.shared.security.rate_limiting import HEAVY_RATE_LIMIT, limiter

router = APIRouter(tags=["exchange"])

CREDENTIAL_QUERY = Query(
    default=None, description="Credential to use; the first active one when omitted"
)

_NOT_FOUND = {404: {"model": ErrorResponse}}
_BAD_REQUEST = {400: {"model": ErrorResponse}}


def _credential_response(summary: CredentialSummary) -> CredentialResponse:
    return CredentialResponse(
        id=summary.id,
        name=summary.name,
        exchange=summary.exchange.value,
        masked_key=summary.masked_key,
        capabilities=sorted(c.value for c in summary.capabilities),
        active=summary.active,
        created_at=summary.created_at,
    )


def _pair_response(pair: TradingPair) -> TradingPairResponse:
    return TradingPairResponse(
        id=pair.id, symbol=pair.symbol, active=pair.active, created_at=pair.created_at
    )


def _market_item(pair: MarketPair) -> MarketPairItem:
    return MarketPairItem(
        symbol=pair.symbol,
        price=pair.price,
        change_24h=pair.change_24h,
        volume=pair.volume,
    )


def _trade_item(trade: RecentTrade) -> RecentTradeItem:
    return RecentTradeItem(
        id=trade.id,
        symbol=trade.symbol,
        side=trade.side.value,
        quantity=trade.quantity,
        price=trade.price,
        total=trade.total,
        executed_at=trade.executed_at,
        exchange_order_id=trade.exchange_order_id,
        order_type=trade.order_type,
        strategy=trade.strategy,
    )


# ── Credentials ──────────────────────────────────────────────────


@router.get(
    "/credentials",
    response_model=CredentialListResponse,
    summary="List credentials",
    description="List the owner's active API keys, masked.",
)
def list_credentials(
    owner_id: str = Depends(get_current_owner),
    use_case: ListCredentialsUseCase = Depends(get_list_credentials_use_case),
) -> CredentialListResponse:
    return CredentialListResponse(
        credentials=[_credential_response(c) for c in use_case.execute(owner_id)]
    )


@router.post(
    "/credentials",
    response_model=CredentialResponse,
    status_code=201,
    responses=_BAD_REQUEST,
    summary="Register a credential",
    description="Store an API key pair, encrypted. One per owner and exchange.",
)
def create_credential(
    payload: CreateCredentialRequest,
    owner_id: str = Depends(get_current_owner),
    use_case: CreateCredentialUseCase = Depends(get_create_credential_use_case),
) -> CredentialResponse:
    summary = use_case.execute(
        CreateCredentialCommand(
            owner_id=owner_id,
            name=payload.name,
            exchange=ExchangeVariant(payload.exchange),
            api_key=payload.api_key,
            api_secret=payload.api_secret,
            capabilities=frozenset(Capability(c) for c in payload.capabilities),
        )
    )
    return _credential_response(summary)


@router.get(
    "/credentials/{credential_id}",
    response_model=CredentialResponse,
    responses=_NOT_FOUND,
    summary="Get a credential",
)
def get_credential(
    credential_id: str,
    owner_id: str = Depends(get_current_owner),
    use_case: GetCredentialUseCase = Depends(get_get_credential_use_case),
) -> CredentialResponse:
    return _credential_response(use_case.execute(owner_id, credential_id))


@router.put(
    "/credentials/{credential_id}/capabilities",
    response_model=CredentialResponse,
    responses={**_NOT_FOUND, **_BAD_REQUEST},
    summary="Replace declared capabilities",
)
def update_capabilities(
    credential_id: str,
    payload: UpdateCapabilitiesRequest,
    owner_id: str = Depends(get_current_owner),
    use_case: UpdateCapabilitiesUseCase = Depends(get_update_capabilities_use_case),
) -> CredentialResponse:
    summary = use_case.execute(
        UpdateCapabilitiesCommand(
            owner_id=owner_id,
            credential_id=credential_id,
            capabilities=frozenset(Capability(c) for c in payload.capabilities),
        )
    )
    return _credential_response(summary)


@router.delete(
    "/credentials/{credential_id}",
    status_code=204,
    responses=_NOT_FOUND,
    summary="Delete a credential",
)
def delete_credential(
    credential_id: str,
    owner_id: str = Depends(get_current_owner),
    use_case: DeleteCredentialUseCase = Depends(get_delete_credential_use_case),
) -> Response:
    use_case.execute(owner_id, credential_id)
    return Response(status_code=204)


@router.post(
    "/credentials/{credential_id}/validate",
    response_model=CapabilityReportResponse,
    responses=_NOT_FOUND,
    summary="Probe credential capabilities",
    description=(
        "Call the exchange once per capability with this key and store "
        "the capabilities that succeeded."
    ),
)
@limiter.limit(HEAVY_RATE_LIMIT)
def validate_credential(
    request: Request,
    credential_id: str,
    owner_id: str = Depends(get_current_owner),
    use_case: ValidateCredentialUseCase = Depends(get_validate_credential_use_case),
) -> CapabilityReportResponse:
    report = use_case.execute(owner_id, credential_id)
    return CapabilityReportResponse(
        valid=report.valid,
        permissions={c.value: ok for c, ok in report.permissions.items()},
        error_message=report.error_message,
    )


# ── Trading pairs ────────────────────────────────────────────────


@router.get(
    "/trading-pairs",
    response_model=TradingPairListResponse,
    summary="List trading pairs",
)
def list_trading_pairs(
    owner_id: str = Depends(get_current_owner),
    use_case: ListTradingPairsUseCase = Depends(get_list_trading_pairs_use_case),
) -> TradingPairListResponse:
    return TradingPairListResponse(
        pairs=[_pair_response(p) for p in use_case.execute(owner_id)]
    )


@router.get(
    "/trading-pairs/available-symbols",
    response_model=AvailableSymbolsResponse,
    summary="List symbols that can be added",
)
def available_symbols(
    credential_id: Optional[str] = CREDENTIAL_QUERY,
    owner_id: str = Depends(get_current_owner),
    use_case: ListAvailableSymbolsUseCase = Depends(get_available_symbols_use_case),
) -> AvailableSymbolsResponse:
    symbols, status = use_case.execute(owner_id, credential_id)
    return AvailableSymbolsResponse(symbols=symbols, status=status.value)


@router.post(
    "/trading-pairs",
    response_model=TradingPairResponse,
    status_code=201,
    responses=_BAD_REQUEST,
    summary="Track a trading pair",
)
def add_trading_pair(
    payload: AddTradingPairRequest,
    credential_id: Optional[str] = CREDENTIAL_QUERY,
    owner_id: str = Depends(get_current_owner),
    use_case: AddTradingPairUseCase = Depends(get_add_trading_pair_use_case),
) -> TradingPairResponse:
    return _pair_response(use_case.execute(owner_id, payload.symbol, credential_id))


@router.patch(
    "/trading-pairs/{pair_id}",
    response_model=TradingPairResponse,
    responses=_NOT_FOUND,
    summary="Toggle a trading pair",
)
def update_trading_pair(
    pair_id: str,
    payload: UpdateTradingPairRequest,
    owner_id: str = Depends(get_current_owner),
    use_case: ToggleTradingPairUseCase = Depends(get_toggle_trading_pair_use_case),
) -> TradingPairResponse:
    return _pair_response(use_case.execute(owner_id, pair_id, payload.active))


@router.delete(
    "/trading-pairs/{pair_id}",
    status_code=204,
    responses=_NOT_FOUND,
    summary="Stop tracking a trading pair",
)
def remove_trading_pair(
    pair_id: str,
    owner_id: str = Depends(get_current_owner),
    use_case: RemoveTradingPairUseCase = Depends(get_remove_trading_pair_use_case),
) -> Response:
    use_case.execute(owner_id, pair_id)
    return Response(status_code=204)


# ── Account and market ───────────────────────────────────────────


@router.get(
    "/account/balances",
    response_model=BalancesResponse,
    responses=_NOT_FOUND,
    summary="Account balances",
    description="Balances of the account. `degraded` means quantities are unknown.",
)
def get_balances(
    credential_id: Optional[str] = CREDENTIAL_QUERY,
    owner_id: str = Depends(get_current_owner),
    use_case: GetBalancesUseCase = Depends(get_balances_use_case),
) -> BalancesResponse:
    snapshot = use_case.execute(owner_id, credential_id)
    return BalancesResponse(
        status=snapshot.status.value,
        degraded=snapshot.degraded,
        reason=snapshot.reason,
        balances=[
            BalanceItem(
                asset=asset,
                available=balance.available,
                on_order=balance.on_order,
                total=balance.total,
            )
            for asset, balance in sorted(snapshot.balances.items())
        ],
    )


@router.get(
    "/market/overview",
    response_model=MarketOverviewResponse,
    responses=_NOT_FOUND,
    summary="Headline market pairs",
)
def market_overview(
    credential_id: Optional[str] = CREDENTIAL_QUERY,
    owner_id: str = Depends(get_current_owner),
    use_case: GetMarketOverviewUseCase = Depends(get_market_overview_use_case),
) -> MarketOverviewResponse:
    return MarketOverviewResponse(
        pairs=[_market_item(p) for p in use_case.execute(owner_id, credential_id)]
    )


# ── Trade history ────────────────────────────────────────────────


@router.post(
    "/trade-history/sync",
    response_model=SyncTradeHistoryResponse,
    responses=_NOT_FOUND,
    summary="Sync trade history",
    description=(
        "Fetch recent orders and executions per tracked symbol and store "
        "the ones not yet in the ledger."
    ),
)
@limiter.limit(HEAVY_RATE_LIMIT)
def sync_trade_history(
    request: Request,
    credential_id: Optional[str] = CREDENTIAL_QUERY,
    owner_id: str = Depends(get_current_owner),
    use_case: SyncTradeHistoryUseCase = Depends(get_sync_trade_history_use_case),
) -> SyncTradeHistoryResponse:
    report = use_case.execute(
        SyncTradeHistoryCommand(owner_id=owner_id, credential_id=credential_id)
    )
    return SyncTradeHistoryResponse(
        symbols=report.symbols,
        failures=report.failures,
        skipped=report.skipped,
        orders_fetched=report.orders_fetched,
        orders_inserted=report.orders_inserted,
        orders_refreshed=report.orders_refreshed,
        executions_fetched=report.executions_fetched,
        executions_inserted=report.executions_inserted,
        executions_dropped=report.executions_dropped,
        timed_out=report.timed_out,
    )


@router.get(
    "/trade-history/recent",
    response_model=RecentTradesResponse,
    summary="Latest stored executions",
)
def recent_trades(
    limit: int = Query(default=10, ge=1, le=100),
    owner_id: str = Depends(get_current_owner),
    use_case: GetRecentTradesUseCase = Depends(get_recent_trades_use_case),
) -> RecentTradesResponse:
    return RecentTradesResponse(
        trades=[_trade_item(t) for t in use_case.execute(owner_id, limit)]
    )


# ── Dashboard ────────────────────────────────────────────────────


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    responses=_NOT_FOUND,
    summary="Dashboard aggregate",
)
def dashboard(
    credential_id: Optional[str] = CREDENTIAL_QUERY,
    owner_id: str = Depends(get_current_owner),
    use_case: GetDashboardUseCase = Depends(get_dashboard_use_case),
) -> DashboardResponse:
    snapshot = use_case.execute(owner_id, credential_id)
    return DashboardResponse(
        total_balance=snapshot.total_balance,
        daily_change=snapshot.daily_change,
        total_profit=snapshot.total_profit,
        active_strategies=snapshot.active_strategies,
        portfolio=[
            HoldingItem(
                asset=h.asset,
                quantity=h.quantity,
                unit_price=h.unit_price,
                total_value=h.total_value,
                percentage=h.percentage,
                color=h.color,
            )
            for h in snapshot.portfolio
        ],
        market=[_market_item(p) for p in snapshot.market],
        recent_trades=[_trade_item(t) for t in snapshot.recent_trades],
        balance_status=snapshot.balance_status.value,
        degraded=snapshot.degraded,
    )
