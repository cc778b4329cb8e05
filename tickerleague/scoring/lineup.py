"""Lineup validation.

A lineup is rejected as a whole before any computation: it is never partially
applied and never silently normalized.
"""

import math
from collections.abc import Collection, Iterable

from ..core.exceptions import ValidationError
from ..core.types import LineupPosition

WEIGHT_TOLERANCE = 1e-4


def validate_lineup_positions(
    positions: Iterable[LineupPosition],
    expected_count: int = 5,
    allowed_tickers: Collection[str] | None = None,
    excluded_tickers: Collection[str] = (),
    tolerance: float = WEIGHT_TOLERANCE,
) -> list[LineupPosition]:
    """Validate a lineup and return its positions with normalized tickers.

    Tickers are stripped and upper-cased; weights are left untouched.

    Args:
        positions: Submitted positions
        expected_count: Exact number of positions required
        allowed_tickers: Investable universe (None or empty skips the check)
        excluded_tickers: Tickers never allowed, e.g. the benchmark ticker
        tolerance: Allowed deviation of the weight sum from 1

    Raises:
        ValidationError: On the first rule the lineup breaks
    """
    positions = list(positions)
    if len(positions) != expected_count:
        raise ValidationError(f"Lineup must include exactly {expected_count} assets.")

    excluded = {ticker.upper() for ticker in excluded_tickers}
    allowlist = {ticker.upper() for ticker in allowed_tickers or ()} - excluded

    normalized: list[LineupPosition] = []
    seen: set[str] = set()
    for position in positions:
        ticker = (position.ticker or "").strip().upper()
        if not ticker:
            raise ValidationError("Ticker is required.")
        if ticker in excluded or (allowlist and ticker not in allowlist):
            raise ValidationError(f"{ticker} is not in the allowed universe.")
        if ticker in seen:
            raise ValidationError("Duplicate tickers are not allowed.")
        seen.add(ticker)

        weight = position.weight
        if not isinstance(weight, (int, float)) or not math.isfinite(weight) or weight <= 0:
            raise ValidationError("Weights must be positive numbers.")
        normalized.append(LineupPosition(ticker=ticker, weight=float(weight)))

    weight_sum = math.fsum(position.weight for position in normalized)
    if abs(weight_sum - 1) > tolerance:
        raise ValidationError(
            f"Weights must sum to 100%. Current sum: {weight_sum * 100:.2f}%"
        )

    return normalized
