"""Lineup validation and weekly return calculation."""

from .lineup import validate_lineup_positions
from .returns import (
    ReturnOutcome,
    WeeklyReturnResult,
    calculate_asset_return,
    calculate_weekly_return,
    compute_lineup_return,
    index_prices,
    price_return,
    score_matchup,
)

__all__ = [
    "ReturnOutcome",
    "WeeklyReturnResult",
    "calculate_asset_return",
    "calculate_weekly_return",
    "compute_lineup_return",
    "index_prices",
    "price_return",
    "score_matchup",
    "validate_lineup_positions",
]
