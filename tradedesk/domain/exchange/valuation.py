"""
Domain service: portfolio valuation.

Turns raw balances and current prices into holdings valued in USDT,
weighted by their share of the portfolio. Pure computation, no IO.
"""

from decimal import Decimal
from typing import Mapping

from tradedesk.domain.exchange.entities import AssetBalance, Holding
from tradedesk.domain.exchange.symbols import STABLECOINS, pair_symbol

VALUATION_QUOTE = "USDT"

ASSET_COLORS: dict[str, str] = {
    "BTC": "#F7931A",
    "ETH": "#627EEA",
    "BNB": "#F3BA2F",
    "SOL": "#00FFA3",
    "ADA": "#0033AD",
    "XRP": "#00AAE4",
    "DOGE": "#C3A634",
    "DOT": "#E6007A",
    "USDT": "#26A17B",
    "USDC": "#2775CA",
}
DEFAULT_COLOR = "#6B7280"

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def unit_price(asset: str, prices: Mapping[str, Decimal]) -> Decimal:
    """Return the USDT price of one unit of `asset`.

    Stablecoins are worth 1. Assets without an `<asset>USDT` market
    are worth 0.
    """
    if asset in STABLECOINS:
        return Decimal("1")
    return Decimal(prices.get(pair_symbol(asset, VALUATION_QUOTE), ZERO))


def valuate(
    balances: Mapping[str, AssetBalance],
    prices: Mapping[str, Decimal],
    min_value: Decimal = Decimal("1"),
) -> list[Holding]:
    """Value balances and weight them by share of the portfolio.

    Holdings worth less than `min_value` are dropped before percentages
    are computed, so the percentages of the returned holdings sum to 100.

    Args:
        balances: Asset -> balance, as read from the account.
        prices: Exchange symbol (e.g. BTCUSDT) -> last price.
        min_value: Smallest value, in USDT, a holding needs to be listed.

    Returns:
        Holdings sorted by descending total value.
    """
    valued: list[tuple[str, Decimal, Decimal, Decimal]] = []
    for asset, balance in balances.items():
        if balance.is_empty:
            continue
        quantity = balance.total
        price = unit_price(asset, prices)
        value = quantity * price
        if value < min_value:
            continue
        valued.append((asset, quantity, price, value))

    portfolio_value = sum((v[3] for v in valued), ZERO)

    holdings = [
        Holding(
            asset=asset,
            quantity=quantity,
            unit_price=price,
            total_value=value,
            percentage=(value / portfolio_value * HUNDRED) if portfolio_value else ZERO,
            color=ASSET_COLORS.get(asset, DEFAULT_COLOR),
        )
        for asset, quantity, price, value in valued
    ]
    holdings.sort(key=lambda h: h.total_value, reverse=True)
    return holdings


def weighted_daily_change(
    holdings: list[Holding], changes: Mapping[str, Decimal]
) -> Decimal:
    """Return the value-weighted 24h change (%) of the held assets.

    Args:
        holdings: Valued holdings.
        changes: Exchange symbol -> 24h price change in percent.

    Returns:
        Weighted average change; 0 when no holding has a known change.
    """
    weighted_sum = ZERO
    total_weight = ZERO
    for holding in holdings:
        change = changes.get(pair_symbol(holding.asset, VALUATION_QUOTE))
        if change is None:
            continue
        weighted_sum += Decimal(change) * holding.total_value
        total_weight += holding.total_value
    return weighted_sum / total_weight if total_weight else ZERO
