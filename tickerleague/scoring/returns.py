"""Weighted weekly return calculation.

A position's return is ``exit / entry - 1`` where entry is the Monday open and
exit the Friday close. A lineup's weekly return is the weight-averaged sum of
its position returns. Everything here is pure: the same positions and prices
always produce the same number, and a missing price never produces a partial
or approximate result.
"""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from ..core.exceptions import InvalidPriceData, MissingPriceData
from ..core.types import LineupPosition, PricePoint


@dataclass(frozen=True)
class WeeklyReturnResult:
    weekly_return: float
    asset_returns: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ReturnOutcome:
    """Structured result of a lineup return attempt.

    ``reason`` is ``"missing_price"`` or ``"invalid_price"`` when ``ok`` is False.
    """

    ok: bool
    value: float | None = None
    reason: str | None = None
    ticker: str | None = None
    message: str | None = None


def calculate_asset_return(entry_price: float, exit_price: float) -> float:
    """Return of a single asset over the week.

    Raises:
        InvalidPriceData: If a price is not finite or the entry price is not positive
    """
    if not math.isfinite(entry_price) or not math.isfinite(exit_price):
        raise InvalidPriceData("Invalid price data.")
    if entry_price <= 0:
        raise InvalidPriceData("Entry price must be greater than zero.")
    return exit_price / entry_price - 1


def price_return(price: PricePoint) -> float:
    return calculate_asset_return(price.entry_price, price.exit_price)


def index_prices(prices: Iterable[PricePoint]) -> dict[str, PricePoint]:
    """Key price points by upper-cased ticker."""
    return {price.ticker.strip().upper(): price for price in prices}


def calculate_weekly_return(
    positions: Iterable[LineupPosition], prices: Mapping[str, PricePoint]
) -> WeeklyReturnResult:
    """Weighted weekly return of a lineup.

    Args:
        positions: Lineup positions (ticker, weight)
        prices: Price points keyed by upper-cased ticker

    Returns:
        The weekly return plus the per-ticker asset returns

    Raises:
        MissingPriceData: If any position's ticker has no price point
        InvalidPriceData: If a price point is unusable
    """
    weekly_return = 0.0
    asset_returns: dict[str, float] = {}

    for position in positions:
        ticker = position.ticker.strip().upper()
        price = prices.get(ticker)
        if price is None:
            raise MissingPriceData(ticker)
        asset_return = price_return(price)
        asset_returns[ticker] = asset_return
        weekly_return += position.weight * asset_return

    return WeeklyReturnResult(weekly_return=weekly_return, asset_returns=asset_returns)


def compute_lineup_return(
    positions: Iterable[LineupPosition], prices: Mapping[str, PricePoint]
) -> ReturnOutcome:
    """Like ``calculate_weekly_return`` but reports failures instead of raising."""
    try:
        result = calculate_weekly_return(positions, prices)
    except MissingPriceData as e:
        return ReturnOutcome(ok=False, reason="missing_price", ticker=e.ticker, message=str(e))
    except InvalidPriceData as e:
        return ReturnOutcome(ok=False, reason="invalid_price", message=str(e))
    return ReturnOutcome(ok=True, value=result.weekly_return)


def score_matchup(home_return: float, away_return: float) -> tuple[float, float, str | None]:
    """Score a head-to-head matchup.

    Returns:
        ``(home_score, away_score, winner)`` where winner is ``"home"``,
        ``"away"`` or None for a tie
    """
    if home_return > away_return:
        return home_return, away_return, "home"
    if away_return > home_return:
        return home_return, away_return, "away"
    return home_return, away_return, None
