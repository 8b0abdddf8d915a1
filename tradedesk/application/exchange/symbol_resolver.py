"""
Service: resolve which symbols matter for an owner.

resolve_symbols reads the owner's active trading pairs, falling back to
a fixed set of liquid pairs. list_tradable_symbols reads the exchange
instrument universe and never raises: on failure it returns the same
fixed set, tagged as a placeholder.
"""

import logging

from tradedesk.domain.exchange.entities import (
    ExchangeCredential,
    FetchStatus,
    SymbolUniverse,
)
from tradedesk.domain.exchange.errors import ExchangeApiError, MalformedPayloadError
from tradedesk.domain.exchange.ports import ExchangePort, TradingPairRepository
from tradedesk.domain.exchange.symbols import ALLOWED_QUOTE_ASSETS, DEFAULT_SYMBOLS

logger = logging.getLogger(__name__)

TRADING_STATUS = "TRADING"


class SymbolResolver:
    """Decides the symbol set used by sync, balances and pair management."""

    def __init__(
        self, pair_repo: TradingPairRepository, exchange: ExchangePort
    ) -> None:
        self._pair_repo = pair_repo
        self._exchange = exchange

    def resolve_symbols(self, owner_id: str) -> list[str]:
        """Return the owner's active pair symbols, or the default set."""
        symbols = self._pair_repo.list_active_symbols(owner_id)
        if symbols:
            return list(dict.fromkeys(s.upper() for s in symbols))
        logger.info("Owner %s has no active pairs, using default symbols", owner_id)
        return list(DEFAULT_SYMBOLS)

    def list_tradable_symbols(self, credential: ExchangeCredential) -> SymbolUniverse:
        """Return the symbols currently trading against an allowed quote asset."""
        try:
            instruments = self._exchange.get_instruments(credential)
        except (ExchangeApiError, MalformedPayloadError) as exc:
            logger.warning(
                "Instrument metadata unavailable, using default symbols: %s",
                exc.message,
            )
            return SymbolUniverse(
                symbols=frozenset(DEFAULT_SYMBOLS), status=FetchStatus.PLACEHOLDER
            )

        symbols = frozenset(
            instrument.symbol
            for instrument in instruments
            if instrument.status.upper() == TRADING_STATUS
            and instrument.quote_asset.upper() in ALLOWED_QUOTE_ASSETS
        )
        return SymbolUniverse(symbols=symbols, status=FetchStatus.LIVE)
