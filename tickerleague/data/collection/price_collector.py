"""Weekly price collection from a daily market-data feed.

Settlement needs two numbers per ticker and week: the entry price (open of the
first trading day on or after ``week_start``) and the exit price (close of the
last trading day on or before ``week_end``). This collector fetches daily bars
in the Alpha Vantage ``TIME_SERIES_DAILY`` format, derives both prices and
upserts them into ``weekly_prices``.

Tickers without usable data are reported back, never filled in: settlement
treats a missing price as "retry later", and an invented price would settle
matchups on wrong numbers. For the same reason a week is only collected once
its settlement boundary has passed, and a series that stops before
``week_end`` counts as missing.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime

import httpx
import pandas as pd
from httpx import ConnectError, HTTPError, TimeoutException

from ...config.settings import Settings, settings
from ...core.exceptions import ConfigurationError, NotFoundError, ValidationError
from ...core.time import utc_now
from ...database.repository import LeagueRepository

logger = logging.getLogger(__name__)

SERIES_KEY = "Time Series (Daily)"


@dataclass
class CollectionReport:
    week_id: str
    stored: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


def parse_daily_series(payload: dict) -> pd.DataFrame:
    """Daily bars as a DataFrame indexed by date with ``open``/``close`` columns."""
    series = payload.get(SERIES_KEY) or {}
    records = []
    for day, bar in series.items():
        try:
            records.append(
                {"date": pd.Timestamp(day), "open": float(bar["1. open"]), "close": float(bar["4. close"])}
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed daily bar for {day}: {e}")

    if not records:
        return pd.DataFrame(columns=["open", "close"])
    return pd.DataFrame(records).set_index("date").sort_index()


def weekly_prices_from_series(
    bars: pd.DataFrame, week_start: date, week_end: date
) -> tuple[float, float] | None:
    """Entry (first open on/after start) and exit (last close on/before end).

    None when the series has no bar inside the week, or ends before
    ``week_end`` so the exit close may not be final yet.
    """
    if bars.empty or bars.index.max() < pd.Timestamp(week_end):
        return None
    window = bars.loc[(bars.index >= pd.Timestamp(week_start)) & (bars.index <= pd.Timestamp(week_end))]
    if window.empty:
        return None
    return float(window["open"].iloc[0]), float(window["close"].iloc[-1])


class WeeklyPriceCollector:
    """Fetches daily series over HTTP and stores weekly entry/exit prices.

    Args:
        repo: Repository the prices are written through
        api_key: Market-data API key (from settings if not provided)
        client: Preconfigured ``httpx.Client``; one is created when omitted
        request_delay: Base delay in seconds between retries (doubled each attempt)
        max_retries: Attempts per ticker before giving up
        clock: Returns the current UTC time
    """

    def __init__(
        self,
        repo: LeagueRepository,
        api_key: str | None = None,
        client: httpx.Client | None = None,
        request_delay: float = 1.0,
        max_retries: int = 3,
        config: Settings = settings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repo = repo
        self.config = config
        self.clock = clock
        self.api_key = api_key or config.market_data_api_key
        if not self.api_key:
            raise ConfigurationError(
                "Market data API key not found. Set MARKET_DATA_API_KEY environment variable."
            )

        self.base_url = config.market_data_base_url
        self.request_delay = request_delay
        self.max_retries = max_retries
        self.client = client or httpx.Client(
            timeout=config.market_data_timeout, headers={"User-Agent": "TickerLeague/1.0"}
        )

    def fetch_daily_series(self, ticker: str) -> pd.DataFrame | None:
        """Daily bars for ``ticker``, or None after exhausting retries."""
        params = {
            "function": "TIME_SERIES_DAILY",
            "symbol": ticker,
            "outputsize": "compact",
            "apikey": self.api_key,
        }

        for attempt in range(self.max_retries):
            try:
                if attempt > 0:
                    time.sleep(self.request_delay * (2**attempt))  # Exponential backoff

                logger.debug(f"Requesting daily series for {ticker} (attempt {attempt + 1})")
                response = self.client.get(self.base_url, params=params)

                if response.status_code == 200:
                    payload = response.json()
                    if SERIES_KEY not in payload:
                        # Throttled or unknown symbol: the feed answers 200 with a note
                        note = payload.get("Note") or payload.get("Error Message") or payload
                        logger.warning(f"No daily series for {ticker}: {note}")
                        continue
                    return parse_daily_series(payload)
                elif response.status_code in (401, 403):
                    logger.error("Market data API rejected the API key")
                    break
                else:
                    logger.warning(
                        f"Market data API returned status {response.status_code} for {ticker}"
                    )

            except TimeoutException:
                logger.warning(f"Market data request timeout for {ticker} (attempt {attempt + 1})")
            except (ConnectError, HTTPError) as e:
                logger.warning(f"Market data network error for {ticker} (attempt {attempt + 1}): {e}")

        logger.error(f"Failed to get daily series for {ticker} after {self.max_retries} attempts")
        return None

    def collect_week(self, week_id: str, tickers: list[str]) -> CollectionReport:
        """Fetch and store entry/exit prices for ``tickers`` in one week.

        Raises:
            NotFoundError: If the week does not exist
            ValidationError: If the week has not reached its settlement boundary
        """
        week = self.repo.get_week(week_id)
        if week is None:
            raise NotFoundError(f"Week {week_id} not found.")
        if not week.has_ended(self.clock(), self.config.reference_timezone):
            raise ValidationError(
                f"Week {week_id} has not ended yet; exit prices are final after "
                f"{week.settlement_boundary(self.config.reference_timezone).isoformat()}."
            )

        report = CollectionReport(week_id=week_id)
        for ticker in dict.fromkeys(t.strip().upper() for t in tickers if t.strip()):
            bars = self.fetch_daily_series(ticker)
            prices = (
                weekly_prices_from_series(bars, week.week_start, week.week_end)
                if bars is not None
                else None
            )
            if prices is None:
                report.missing.append(ticker)
                continue

            monday_open, friday_close = prices
            self.repo.upsert_weekly_price(week_id, ticker, monday_open, friday_close)
            report.stored.append(ticker)

        logger.info(
            f"Collected weekly prices for {week_id}: "
            f"{len(report.stored)} stored, {len(report.missing)} missing"
        )
        return report

    def close(self) -> None:
        self.client.close()
