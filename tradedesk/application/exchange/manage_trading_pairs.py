"""
Use cases: manage the trading pairs an owner tracks.

Input: owner id, symbol or pair id
Output: TradingPair, list[TradingPair] or list[str]
Side effects: Writes to the trading_pairs table.
Failure cases: UnsupportedSymbolError, DuplicateTradingPairError,
    TradingPairNotFoundError, InvalidInputError.

New pairs are checked against the tradable universe of the owner's
credential. Owners without a credential are checked against the
default liquid pairs.
"""

import logging
from typing import Optional

from tradedesk.application.exchange.manage_credentials import resolve_credential
from tradedesk.application.exchange.symbol_resolver import SymbolResolver
from tradedesk.domain.exchange.entities import (
    FetchStatus,
    SymbolUniverse,
    TradingPair,
)
from tradedesk.domain.exchange.errors import (
    InvalidInputError,
    NoActiveCredentialError,
    UnsupportedSymbolError,
)
from tradedesk.domain.exchange.ports import CredentialRepository, TradingPairRepository
from tradedesk.domain.exchange.symbols import DEFAULT_SYMBOLS

logger = logging.getLogger(__name__)


def normalize_symbol(raw: str) -> str:
    """Turn "btc/usdt" or " BTCUSDT " into "BTCUSDT"."""
    symbol = (raw or "").replace("/", "").replace("-", "").strip().upper()
    if not symbol.isalnum():
        raise InvalidInputError(f"Invalid symbol: {raw!r}")
    return symbol


class _UniverseLookup:
    def __init__(
        self, credential_repo: CredentialRepository, symbol_resolver: SymbolResolver
    ) -> None:
        self._credential_repo = credential_repo
        self._symbol_resolver = symbol_resolver

    def universe(self, owner_id: str, credential_id: Optional[str]) -> SymbolUniverse:
        try:
            credential = resolve_credential(self._credential_repo, owner_id, credential_id)
        except NoActiveCredentialError:
            logger.info("Owner %s has no credential, using default symbols", owner_id)
            return SymbolUniverse(
                symbols=frozenset(DEFAULT_SYMBOLS), status=FetchStatus.PLACEHOLDER
            )
        return self._symbol_resolver.list_tradable_symbols(credential)


class ListTradingPairsUseCase:
    def __init__(self, pair_repo: TradingPairRepository) -> None:
        self._pair_repo = pair_repo

    def execute(self, owner_id: str) -> list[TradingPair]:
        return self._pair_repo.list_all(owner_id)


class AddTradingPairUseCase(_UniverseLookup):
    """Registers a symbol for an owner after checking it is tradable."""

    def __init__(
        self,
        pair_repo: TradingPairRepository,
        credential_repo: CredentialRepository,
        symbol_resolver: SymbolResolver,
    ) -> None:
        super().__init__(credential_repo, symbol_resolver)
        self._pair_repo = pair_repo

    def execute(
        self, owner_id: str, symbol: str, credential_id: Optional[str] = None
    ) -> TradingPair:
        """Add an active pair.

        Raises:
            InvalidInputError: If the symbol is malformed.
            UnsupportedSymbolError: If the symbol is not tradable.
            DuplicateTradingPairError: If the owner already tracks it.
        """
        symbol = normalize_symbol(symbol)
        universe = self.universe(owner_id, credential_id)
        if symbol not in universe.symbols:
            raise UnsupportedSymbolError(symbol)
        return self._pair_repo.add(owner_id, symbol)


class ToggleTradingPairUseCase:
    def __init__(self, pair_repo: TradingPairRepository) -> None:
        self._pair_repo = pair_repo

    def execute(self, owner_id: str, pair_id: str, active: bool) -> TradingPair:
        pair = self._pair_repo.set_active(pair_id, owner_id, active)
        logger.info("Trading pair %s set active=%s", pair.symbol, active)
        return pair


class RemoveTradingPairUseCase:
    def __init__(self, pair_repo: TradingPairRepository) -> None:
        self._pair_repo = pair_repo

    def execute(self, owner_id: str, pair_id: str) -> None:
        self._pair_repo.remove(pair_id, owner_id)


class ListAvailableSymbolsUseCase(_UniverseLookup):
    """Tradable symbols the owner does not track yet, sorted."""

    def __init__(
        self,
        pair_repo: TradingPairRepository,
        credential_repo: CredentialRepository,
        symbol_resolver: SymbolResolver,
    ) -> None:
        super().__init__(credential_repo, symbol_resolver)
        self._pair_repo = pair_repo

    def execute(
        self, owner_id: str, credential_id: Optional[str] = None
    ) -> tuple[list[str], FetchStatus]:
        universe = self.universe(owner_id, credential_id)
        tracked = {pair.symbol for pair in self._pair_repo.list_all(owner_id)}
        return sorted(universe.symbols - tracked), universe.status
