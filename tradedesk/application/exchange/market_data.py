"""
Service: public market data.

Reads current prices and rolling 24h statistics. Nothing is cached:
every call goes to the exchange. Errors propagate to the caller.
"""

import logging
from decimal import Decimal
from typing import Iterable, Mapping

from tradedesk.domain.exchange.entities import (
    ExchangeCredential,
    MarketPair,
    TickerStatistic,
)
from tradedesk.domain.exchange.ports import ExchangePort
from tradedesk.domain.exchange.symbols import HEADLINE_SYMBOLS, display_symbol

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def build_overview(
    prices: Mapping[str, Decimal],
    statistics: Iterable[TickerStatistic],
    symbols: Iterable[str] = HEADLINE_SYMBOLS,
) -> list[MarketPair]:
    """Combine already fetched prices and statistics into market rows."""
    by_symbol = {s.symbol: s for s in statistics}
    overview: list[MarketPair] = []
    for symbol in symbols:
        statistic = by_symbol.get(symbol)
        if symbol not in prices:
            logger.debug("No price for headline symbol %s", symbol)
        overview.append(
            MarketPair(
                symbol=display_symbol(symbol),
                price=prices.get(symbol, ZERO),
                change_24h=statistic.price_change_percent if statistic else ZERO,
                volume=statistic.volume if statistic else ZERO,
            )
        )
    return overview


class MarketDataFetcher:
    """Reads public market data through the exchange port."""

    def __init__(self, exchange: ExchangePort) -> None:
        self._exchange = exchange

    def current_prices(self, credential: ExchangeCredential) -> dict[str, Decimal]:
        """Return exchange symbol -> last price for every symbol."""
        return self._exchange.get_ticker_prices(credential)

    def statistics_24h(self, credential: ExchangeCredential) -> list[TickerStatistic]:
        """Return the rolling 24h statistics of every symbol."""
        return self._exchange.get_24h_statistics(credential)

    def market_overview(
        self,
        credential: ExchangeCredential,
        symbols: Iterable[str] = HEADLINE_SYMBOLS,
    ) -> list[MarketPair]:
        """Combine price, 24h change and volume for the given symbols.

        Symbols missing from the exchange data are reported with zeros.

        Returns:
            One MarketPair per symbol, in the given order, with the
            symbol in display form (BTC/USDT).
        """
        return build_overview(
            self.current_prices(credential), self.statistics_24h(credential), symbols
        )
