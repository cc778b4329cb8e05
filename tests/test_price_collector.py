"""Tests for weekly price collection over a mocked market-data feed."""

from datetime import date

import httpx
import pytest

from conftest import NOW
from tickerleague.core.exceptions import ConfigurationError, NotFoundError, ValidationError
from tickerleague.data.collection.price_collector import (
    WeeklyPriceCollector,
    parse_daily_series,
    weekly_prices_from_series,
)


def _bar(open_, close):
    return {"1. open": str(open_), "2. high": "0", "3. low": "0", "4. close": str(close), "5. volume": "100"}


SERIES = {
    "Time Series (Daily)": {
        "2026-01-20": _bar(120.0, 121.0),
        "2026-01-16": _bar(104.0, 105.5),
        "2026-01-14": _bar(102.0, 103.0),
        "2026-01-13": _bar(100.5, 101.0),
        "2026-01-09": _bar(90.0, 91.0),
    }
}


class FakeFeed:
    """Serves ``SERIES`` for known symbols and a throttle note otherwise."""

    def __init__(self, known=("AAPL", "SPY"), status_code=200):
        self.known = set(known)
        self.status_code = status_code
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        symbol = request.url.params["symbol"]
        self.calls.append(symbol)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={})
        if symbol in self.known:
            return httpx.Response(200, json=SERIES)
        return httpx.Response(200, json={"Note": "API call frequency exceeded"})


@pytest.fixture
def week(seed):
    seed.league("L1", members=("alice",))
    seed.week("L1", "W2")


def _collector(repo, config, feed, clock=lambda: NOW):
    client = httpx.Client(transport=httpx.MockTransport(feed))
    return WeeklyPriceCollector(
        repo, client=client, request_delay=0, max_retries=2, config=config, clock=clock
    )


def test_weekly_prices_use_first_open_and_last_close():
    """Monday 2026-01-12 was a holiday in this series, so entry is Tuesday's open."""
    bars = parse_daily_series(SERIES)

    assert weekly_prices_from_series(bars, date(2026, 1, 12), date(2026, 1, 16)) == (100.5, 105.5)
    assert weekly_prices_from_series(bars, date(2026, 2, 2), date(2026, 2, 6)) is None


def test_series_ending_before_week_end_is_not_final():
    bars = parse_daily_series(SERIES)

    assert weekly_prices_from_series(bars, date(2026, 1, 19), date(2026, 1, 23)) is None


def test_malformed_bars_skipped():
    bars = parse_daily_series({"Time Series (Daily)": {"2026-01-13": {"1. open": "x"}, "2026-01-14": _bar(1, 2)}})

    assert len(bars) == 1
    assert parse_daily_series({}).empty


def test_collect_week_stores_prices(repo, config, week):
    feed = FakeFeed()
    collector = _collector(repo, config, feed)

    report = collector.collect_week("W2", ["aapl", "SPY", "AAPL"])
    collector.close()

    assert report.stored == ["AAPL", "SPY"]
    assert report.missing == []
    price = repo.price_for("W2", "AAPL")
    assert (price.entry_price, price.exit_price) == (100.5, 105.5)


def test_unknown_symbol_reported_missing_after_retries(repo, config, week):
    feed = FakeFeed()
    collector = _collector(repo, config, feed)

    report = collector.collect_week("W2", ["ZZZZ"])

    assert report.missing == ["ZZZZ"]
    assert repo.price_for("W2", "ZZZZ") is None
    assert feed.calls == ["ZZZZ", "ZZZZ"]


def test_rejected_api_key_stops_retrying(repo, config, week):
    feed = FakeFeed(status_code=403)
    collector = _collector(repo, config, feed)

    report = collector.collect_week("W2", ["AAPL"])

    assert report.missing == ["AAPL"]
    assert feed.calls == ["AAPL"]


def test_week_in_progress_is_not_collected(repo, config, seed, week):
    """Tuesday 2026-01-20: week W3 closes on Friday, so no exit price exists yet."""
    seed.week("L1", "W3")
    feed = FakeFeed()
    collector = _collector(repo, config, feed)

    with pytest.raises(ValidationError):
        collector.collect_week("W3", ["AAPL"])

    assert feed.calls == []
    assert repo.price_for("W3", "AAPL") is None


def test_unknown_week_raises(repo, config, week):
    collector = _collector(repo, config, FakeFeed())

    with pytest.raises(NotFoundError):
        collector.collect_week("W9", ["AAPL"])


def test_missing_api_key_raises(repo, config):
    config.market_data_api_key = None

    with pytest.raises(ConfigurationError):
        WeeklyPriceCollector(repo, config=config)
