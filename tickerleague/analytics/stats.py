"""Return statistics over weekly series.

All functions take plain sequences of weekly returns (0.012 means +1.2%) and
return plain floats or None when the statistic is undefined for the input.
"""

from collections.abc import Sequence

import numpy as np

PERIODS_PER_YEAR = 52


def mean(values: Sequence[float]) -> float | None:
    if len(values) == 0:
        return None
    return float(np.mean(values))


def sample_std(values: Sequence[float]) -> float | None:
    """Sample standard deviation (n-1). None with fewer than 2 observations."""
    if len(values) < 2:
        return None
    return float(np.std(values, ddof=1))


def std_dev(values: Sequence[float]) -> float | None:
    """Like ``sample_std`` but a single observation has zero dispersion."""
    if len(values) == 1:
        return 0.0
    return sample_std(values)


def compounded_return(values: Sequence[float], last: int | None = None) -> float | None:
    """Growth of 1 unit compounded over ``values`` (or only the last ``last``), minus 1."""
    window = list(values)[-last:] if last else list(values)
    if not window:
        return None
    return float(np.prod(1.0 + np.asarray(window, dtype=float)) - 1.0)


def annualized_return(values: Sequence[float], periods_per_year: int = PERIODS_PER_YEAR) -> float | None:
    """Geometric mean weekly return compounded to a full year.

    ``(prod(1 + r_i)) ** (periods / n) - 1``, which equals compounding the
    geometric weekly mean over ``periods_per_year`` periods.
    """
    if len(values) == 0:
        return None
    growth = float(np.prod(1.0 + np.asarray(values, dtype=float)))
    return growth ** (periods_per_year / len(values)) - 1.0


def cumulative_series(values: Sequence[float]) -> list[float]:
    """Compounded return through each week."""
    if len(values) == 0:
        return []
    return [float(v) for v in np.cumprod(1.0 + np.asarray(values, dtype=float)) - 1.0]


def beta_alpha(
    portfolio: Sequence[float], benchmark: Sequence[float]
) -> tuple[float | None, float | None]:
    """Beta and alpha of ``portfolio`` against an aligned ``benchmark`` series.

    Returns:
        ``(beta, alpha)``. No points gives ``(None, None)``; a single point
        gives beta 0 and alpha equal to the excess return; a constant
        benchmark gives ``(None, None)``.
    """
    n = min(len(portfolio), len(benchmark))
    if n == 0:
        return None, None

    p = np.asarray(portfolio[:n], dtype=float)
    b = np.asarray(benchmark[:n], dtype=float)
    if n == 1:
        return 0.0, float(p[0] - b[0])

    if np.ptp(b) == 0:
        return None, None
    variance = float(np.var(b, ddof=1))
    covariance = float(np.cov(p, b, ddof=1)[0, 1])
    beta = covariance / variance
    alpha = float(p.mean()) - beta * float(b.mean())
    return beta, alpha


def rolling_metrics(portfolio: Sequence[float], benchmark: Sequence[float]) -> dict[str, list[float]]:
    """Sharpe, beta, alpha and volatility recomputed over each growing prefix.

    Undefined values are reported as 0 so every series has one point per week.
    """
    n = min(len(portfolio), len(benchmark))
    series: dict[str, list[float]] = {"sharpe": [], "beta": [], "alpha": [], "volatility": []}

    for i in range(1, n + 1):
        p_slice = portfolio[:i]
        b_slice = benchmark[:i]
        volatility = std_dev(p_slice)
        average = mean(p_slice)
        sharpe = average / volatility if volatility else 0.0
        beta, alpha = beta_alpha(p_slice, b_slice)

        series["sharpe"].append(sharpe)
        series["beta"].append(beta if beta is not None else 0.0)
        series["alpha"].append(alpha if alpha is not None else 0.0)
        series["volatility"].append(volatility if volatility is not None else 0.0)

    return series
