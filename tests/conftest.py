"""Shared pytest fixtures.

Every test gets a fresh in-memory SQLite database (``StaticPool`` keeps the
single connection alive so all sessions see the same tables), a repository
over it, and a clock frozen at ``NOW``.

Calendar used throughout the suite (weeks run Monday to Friday and lock at
the Monday open, 14:30 UTC):

    W1  2026-01-05 .. 2026-01-09   ended
    W2  2026-01-12 .. 2026-01-16   ended
    W3  2026-01-19 .. 2026-01-23   locked, in progress
    W4  2026-01-26 .. 2026-01-30   not locked yet
"""

from datetime import date, datetime, time, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tickerleague.config.settings import Settings
from tickerleague.database.models import (
    PARTICIPANT_BENCHMARK,
    Base,
    League,
    LeagueMember,
    LeagueWeek,
    Lineup,
    LineupPositionRow,
    MatchupRow,
    Participant,
    WeeklyPrice,
)
from tickerleague.database.repository import LeagueRepository

NOW = datetime(2026, 1, 20, 17, 0, tzinfo=timezone.utc)

WEEK_STARTS = {
    "W1": date(2026, 1, 5),
    "W2": date(2026, 1, 12),
    "W3": date(2026, 1, 19),
    "W4": date(2026, 1, 26),
}

BENCHMARK_ID = "benchmark-spy"


class Seeder:
    """Writes fixture rows straight through the ORM."""

    def __init__(self, session):
        self.session = session

    def participant(self, participant_id: str, display_name: str | None = None):
        if self.session.get(Participant, participant_id) is None:
            self.session.add(
                Participant(id=participant_id, display_name=display_name or participant_id.title())
            )
            self.session.commit()

    def benchmark(self, ticker: str = "SPY"):
        if self.session.get(Participant, BENCHMARK_ID) is None:
            self.session.add(
                Participant(
                    id=BENCHMARK_ID, display_name="S&P 500", kind=PARTICIPANT_BENCHMARK, ticker=ticker
                )
            )
            self.session.commit()
        return BENCHMARK_ID

    def league(self, league_id: str = "L1", members=("alice", "bob", "carol"), name: str = "Alpha League"):
        self.session.add(League(id=league_id, name=name))
        self.session.commit()
        for member in members:
            self.member(league_id, member)

    def member(self, league_id: str, participant_id: str):
        self.participant(participant_id)
        self.session.add(LeagueMember(league_id=league_id, participant_id=participant_id))
        self.session.commit()

    def remove_member(self, league_id: str, participant_id: str):
        self.session.query(LeagueMember).filter_by(
            league_id=league_id, participant_id=participant_id
        ).delete()
        self.session.commit()

    def week(self, league_id: str = "L1", week_id: str = "W1", week_start: date | None = None):
        start = week_start or WEEK_STARTS[week_id]
        self.session.add(
            LeagueWeek(
                id=week_id,
                league_id=league_id,
                week_start=start,
                week_end=start + timedelta(days=4),
                lock_time=datetime.combine(start, time(14, 30), tzinfo=timezone.utc),
            )
        )
        self.session.commit()
        return week_id

    def weeks(self, league_id: str = "L1", week_ids=("W1", "W2", "W3", "W4")):
        for week_id in week_ids:
            self.week(league_id, week_id)

    def lineup(self, week_id: str, participant_id: str, positions: dict, league_id: str = "L1",
               weekly_return: float | None = None):
        row = Lineup(
            league_id=league_id,
            week_id=week_id,
            participant_id=participant_id,
            weekly_return=weekly_return,
        )
        for ticker, weight in positions.items():
            row.positions.append(LineupPositionRow(ticker=ticker, weight=weight))
        self.session.add(row)
        self.session.commit()
        return row.id

    def price(self, week_id: str, ticker: str, monday_open: float, friday_close: float):
        self.session.add(
            WeeklyPrice(week_id=week_id, ticker=ticker, monday_open=monday_open, friday_close=friday_close)
        )
        self.session.commit()

    def matchup(self, week_id: str, home: str, away: str, league_id: str = "L1",
                home_score: float | None = None, away_score: float | None = None,
                winner: str | None = None):
        row = MatchupRow(
            league_id=league_id,
            week_id=week_id,
            home_participant_id=home,
            away_participant_id=away,
            home_score=home_score,
            away_score=away_score,
            winner_participant_id=winner,
        )
        self.session.add(row)
        self.session.commit()
        return str(row.id)


@pytest.fixture
def config():
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        benchmark_ticker="SPY",
        benchmark_provisioning_enabled=True,
        reference_timezone="America/New_York",
        market_data_api_key="test-key",
        scoring_cron_secret=None,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def repo(session, config):
    return LeagueRepository(session, config)


@pytest.fixture
def seed(session):
    return Seeder(session)


@pytest.fixture
def clock():
    return lambda: NOW
