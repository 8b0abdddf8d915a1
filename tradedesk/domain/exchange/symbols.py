"""
Symbol conventions shared by the exchange context.

Exchange symbols are the concatenation of base and quote asset
(BTCUSDT). The display form separates them (BTC/USDT).
"""

from typing import Iterable, Optional

# Liquid pairs used whenever an owner configured none, or the
# instrument universe cannot be read.
DEFAULT_SYMBOLS: tuple[str, ...] = (
    "BTCUSDT",
    "ETHUSDT",
    "BNBUSDT",
    "ADAUSDT",
    "XRPUSDT",
    "DOGEUSDT",
    "SOLUSDT",
    "MATICUSDT",
    "DOTUSDT",
    "LTCUSDT",
    "LINKUSDT",
)

# Quote assets an instrument must use to be offered as a trading pair.
ALLOWED_QUOTE_ASSETS: frozenset[str] = frozenset({"USDT", "BTC", "ETH", "BNB", "BRL"})

# Suffixes tried, in order, when splitting a concatenated symbol.
KNOWN_QUOTE_ASSETS: tuple[str, ...] = (
    "USDT",
    "BUSD",
    "USDC",
    "BTC",
    "ETH",
    "BNB",
    "BRL",
    "USD",
)

STABLECOINS: frozenset[str] = frozenset({"USDT", "USDC", "BUSD"})

HEADLINE_SYMBOLS: tuple[str, ...] = ("BTCUSDT", "ETHUSDT", "BNBUSDT", "SOLUSDT", "XRPUSDT")


def split_symbol(
    symbol: str, quotes: Iterable[str] = KNOWN_QUOTE_ASSETS
) -> Optional[tuple[str, str]]:
    """Split BTCUSDT into ("BTC", "USDT"), or return None if no quote matches."""
    raw = (symbol or "").strip().upper()
    for quote in quotes:
        if raw.endswith(quote) and len(raw) > len(quote):
            return raw[: -len(quote)], quote
    return None


def base_asset(symbol: str) -> Optional[str]:
    """Return the base asset of a concatenated symbol, if it can be split."""
    parts = split_symbol(symbol)
    return parts[0] if parts else None


def display_symbol(symbol: str) -> str:
    """Format BTCUSDT as BTC/USDT; unknown shapes are returned unchanged."""
    parts = split_symbol(symbol)
    if parts is None:
        return symbol
    return f"{parts[0]}/{parts[1]}"


def pair_symbol(base: str, quote: str = "USDT") -> str:
    return f"{base.upper()}{quote.upper()}"
