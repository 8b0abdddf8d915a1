"""
Adapter: Binance exchange.

Implements ExchangePort on top of the RequestGateway.
Maps raw Binance payloads into the stable internal schema
(ExchangeOrder, ExchangeTrade, AssetBalance, ...). Numeric strings
become Decimals and epoch-millisecond timestamps become UTC datetimes.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterator, Optional, TypeVar

from tradedesk.domain.exchange.entities import (
    AssetBalance,
    ExchangeCredential,
    ExchangeOrder,
    ExchangeTrade,
    ExchangeVariant,
    Instrument,
    Side,
    TickerStatistic,
)
from tradedesk.domain.exchange.errors import MalformedPayloadError
from tradedesk.domain.exchange.ports import ExchangePort
from tradedesk.infrastructure.exchange.request_gateway import RequestGateway

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ExchangeEndpoints:
    """Base URLs of one exchange variant."""

    spot_base_url: str
    futures_base_url: str


DEFAULT_ENDPOINTS: dict[ExchangeVariant, ExchangeEndpoints] = {
    ExchangeVariant.BINANCE: ExchangeEndpoints(
        spot_base_url="https://api.binance.com",
        futures_base_url="https://fapi.binance.com",
    ),
    ExchangeVariant.BINANCE_US: ExchangeEndpoints(
        spot_base_url="https://api.binance.us",
        futures_base_url="https://fapi.binance.us",
    ),
}


# ── Payload mapping ──────────────────────────────────────────────


def _decimal(raw: dict[str, Any], key: str, kind: str, default: Optional[str] = None) -> Decimal:
    value = raw.get(key, default)
    if value is None:
        raise MalformedPayloadError(kind, f"missing '{key}'")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise MalformedPayloadError(kind, f"'{key}' is not a number: {value!r}") from exc


def _timestamp(raw: dict[str, Any], keys: tuple[str, ...], kind: str) -> datetime:
    for key in keys:
        value = raw.get(key)
        if value is None:
            continue
        try:
            return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
        except (TypeError, ValueError, OverflowError) as exc:
            raise MalformedPayloadError(kind, f"'{key}' is not a timestamp: {value!r}") from exc
    raise MalformedPayloadError(kind, f"missing '{keys[0]}'")


def _required(raw: dict[str, Any], key: str, kind: str) -> str:
    value = raw.get(key)
    if value is None or value == "":
        raise MalformedPayloadError(kind, f"missing '{key}'")
    return str(value)


def _side(value: Any, kind: str) -> Side:
    try:
        return Side(str(value).upper())
    except ValueError as exc:
        raise MalformedPayloadError(kind, f"unknown side {value!r}") from exc


def order_from_payload(raw: dict[str, Any]) -> ExchangeOrder:
    """Map an allOrders/openOrders record to an ExchangeOrder.

    Raises:
        MalformedPayloadError: If a required field is missing or invalid.
    """
    kind = "order"
    stop_price = _decimal(raw, "stopPrice", kind, default="0")
    return ExchangeOrder(
        exchange_order_id=_required(raw, "orderId", kind),
        symbol=_required(raw, "symbol", kind).upper(),
        side=_side(raw.get("side"), kind),
        kind=str(raw.get("type") or "UNKNOWN"),
        status=str(raw.get("status") or "UNKNOWN"),
        limit_price=_decimal(raw, "price", kind, default="0"),
        requested_qty=_decimal(raw, "origQty", kind),
        filled_qty=_decimal(raw, "executedQty", kind, default="0"),
        cumulative_quote_qty=_decimal(raw, "cummulativeQuoteQty", kind, default="0"),
        placed_at=_timestamp(raw, ("time", "updateTime"), kind),
        time_in_force=raw.get("timeInForce") or None,
        stop_price=stop_price if stop_price > 0 else None,
        client_order_id=raw.get("clientOrderId") or None,
    )


def trade_from_payload(raw: dict[str, Any]) -> ExchangeTrade:
    """Map a myTrades record to an ExchangeTrade.

    Raises:
        MalformedPayloadError: If a required field is missing or invalid.
    """
    kind = "trade"
    price = _decimal(raw, "price", kind)
    quantity = _decimal(raw, "qty", kind)
    quote_quantity = (
        _decimal(raw, "quoteQty", kind) if raw.get("quoteQty") is not None else price * quantity
    )
    if "isBuyer" in raw:
        side = Side.BUY if raw["isBuyer"] else Side.SELL
    else:
        side = _side(raw.get("side"), kind)
    return ExchangeTrade(
        exchange_trade_id=_required(raw, "id", kind),
        exchange_order_id=_required(raw, "orderId", kind),
        symbol=_required(raw, "symbol", kind).upper(),
        side=side,
        price=price,
        quantity=quantity,
        quote_quantity=quote_quantity,
        fee=_decimal(raw, "commission", kind, default="0"),
        fee_asset=str(raw.get("commissionAsset") or ""),
        is_maker=bool(raw.get("isMaker", False)),
        executed_at=_timestamp(raw, ("time",), kind),
    )


def statistic_from_payload(raw: dict[str, Any]) -> TickerStatistic:
    kind = "ticker"
    return TickerStatistic(
        symbol=_required(raw, "symbol", kind),
        last_price=_decimal(raw, "lastPrice", kind, default="0"),
        price_change_percent=_decimal(raw, "priceChangePercent", kind, default="0"),
        volume=_decimal(raw, "volume", kind, default="0"),
        quote_volume=_decimal(raw, "quoteVolume", kind, default="0"),
        high_price=_decimal(raw, "highPrice", kind, default="0"),
        low_price=_decimal(raw, "lowPrice", kind, default="0"),
    )


def _expect_list(data: Any, kind: str) -> list[Any]:
    if not isinstance(data, list):
        raise MalformedPayloadError(kind, f"expected a list, got {type(data).__name__}")
    return data


def _expect_dict(data: Any, kind: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise MalformedPayloadError(kind, f"expected an object, got {type(data).__name__}")
    return data


def _records(data: Any, kind: str, context: str) -> Iterator[dict[str, Any]]:
    """Yield the object rows of a list payload, skipping anything else.

    Raises:
        MalformedPayloadError: If the payload itself is not a list.
    """
    for row in _expect_list(data, kind):
        if isinstance(row, dict):
            yield row
        else:
            logger.warning("Skipping non-object record from %s: %r", context, row)


def _map_all(
    rows: Any, mapper: Callable[[dict[str, Any]], T], kind: str, context: str
) -> list[T]:
    """Map every record, skipping (and logging) the ones that do not fit."""
    mapped: list[T] = []
    for row in _records(rows, kind, context):
        try:
            mapped.append(mapper(row))
        except MalformedPayloadError as exc:
            logger.warning("Skipping record from %s: %s", context, exc.message)
    return mapped


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class BinanceExchangeAdapter(ExchangePort):
    """Concrete adapter for the Binance spot REST API.

    Implements the ExchangePort defined in the domain layer.
    Every call goes through the injected RequestGateway.
    """

    def __init__(
        self,
        gateway: RequestGateway,
        endpoints: Optional[dict[ExchangeVariant, ExchangeEndpoints]] = None,
    ) -> None:
        self._gateway = gateway
        self._endpoints = endpoints or DEFAULT_ENDPOINTS

    def _urls(self, credential: ExchangeCredential) -> ExchangeEndpoints:
        return self._endpoints[credential.exchange]

    def _signed(
        self,
        credential: ExchangeCredential,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
        base_url: Optional[str] = None,
    ) -> Any:
        return self._gateway.signed_request(
            endpoint,
            params or {},
            "GET",
            credential.api_key,
            credential.api_secret,
            base_url or self._urls(credential).spot_base_url,
        )

    def _public(self, credential: ExchangeCredential, endpoint: str) -> Any:
        return self._gateway.public_request(
            endpoint, {}, self._urls(credential).spot_base_url
        )

    def get_account_balances(
        self, credential: ExchangeCredential
    ) -> dict[str, AssetBalance]:
        data = _expect_dict(self._signed(credential, "/api/v3/account"), "account")
        if "balances" not in data:
            raise MalformedPayloadError("account", "missing 'balances'")

        balances: dict[str, AssetBalance] = {}
        for row in _records(data["balances"], "account", "account balances"):
            asset = str(row.get("asset", "")).strip().upper()
            if not asset:
                continue
            try:
                balances[asset] = AssetBalance(
                    available=_decimal(row, "free", "balance", default="0"),
                    on_order=_decimal(row, "locked", "balance", default="0"),
                )
            except MalformedPayloadError as exc:
                logger.warning("Skipping balance for %s: %s", asset, exc.message)
        return balances

    def get_margin_account(self, credential: ExchangeCredential) -> dict[str, Any]:
        return self._signed(credential, "/sapi/v1/margin/account")

    def get_futures_account(self, credential: ExchangeCredential) -> dict[str, Any]:
        return self._signed(
            credential,
            "/fapi/v1/account",
            base_url=self._urls(credential).futures_base_url,
        )

    def get_withdraw_config(self, credential: ExchangeCredential) -> list[Any]:
        return self._signed(credential, "/sapi/v1/capital/config/getall")

    def get_orders(
        self,
        credential: ExchangeCredential,
        symbol: str,
        start_time: datetime,
        limit: int,
    ) -> list[ExchangeOrder]:
        rows = self._signed(
            credential,
            "/api/v3/allOrders",
            {"symbol": symbol, "startTime": _epoch_ms(start_time), "limit": int(limit)},
        )
        return _map_all(rows, order_from_payload, "order", f"allOrders {symbol}")

    def get_trades(
        self,
        credential: ExchangeCredential,
        symbol: str,
        start_time: datetime,
        limit: int,
    ) -> list[ExchangeTrade]:
        rows = self._signed(
            credential,
            "/api/v3/myTrades",
            {"symbol": symbol, "startTime": _epoch_ms(start_time), "limit": int(limit)},
        )
        return _map_all(rows, trade_from_payload, "trade", f"myTrades {symbol}")

    def get_open_orders(self, credential: ExchangeCredential) -> list[ExchangeOrder]:
        rows = self._signed(credential, "/api/v3/openOrders")
        return _map_all(rows, order_from_payload, "order", "openOrders")

    def get_instruments(self, credential: ExchangeCredential) -> list[Instrument]:
        data = _expect_dict(self._public(credential, "/api/v3/exchangeInfo"), "exchangeInfo")
        instruments: list[Instrument] = []
        for row in _records(data.get("symbols", []), "exchangeInfo", "exchangeInfo"):
            if not row.get("symbol"):
                continue
            instruments.append(
                Instrument(
                    symbol=str(row["symbol"]),
                    status=str(row.get("status", "")),
                    base_asset=str(row.get("baseAsset", "")),
                    quote_asset=str(row.get("quoteAsset", "")),
                )
            )
        return instruments

    def get_ticker_prices(self, credential: ExchangeCredential) -> dict[str, Decimal]:
        rows = self._public(credential, "/api/v3/ticker/price")
        prices: dict[str, Decimal] = {}
        for row in _records(rows, "price", "ticker/price"):
            try:
                prices[_required(row, "symbol", "price")] = _decimal(row, "price", "price")
            except MalformedPayloadError as exc:
                logger.debug("Skipping price row: %s", exc.message)
        return prices

    def get_24h_statistics(
        self, credential: ExchangeCredential
    ) -> list[TickerStatistic]:
        rows = self._public(credential, "/api/v3/ticker/24hr")
        return _map_all(rows, statistic_from_payload, "ticker", "ticker/24hr")
