"""SQLAlchemy database models for the weekly league engine.

Each class maps one table. The unique constraints carry real weight: the
settlement engine relies on matchups being keyed by (week, home, away) and
lineups by (week, participant), so concurrent settlement attempts on the same
week write the same rows instead of duplicating them.

Model Categories:
1. Participants: league members and the single benchmark participant
2. League structure: leagues, memberships, weeks
3. Weekly inputs: universe snapshots, lineups, lineup positions, weekly prices
4. Outcomes: matchups with nullable scores
"""

from sqlalchemy import Column
from sqlalchemy import Date
from sqlalchemy import DateTime
from sqlalchemy import Float
from sqlalchemy import ForeignKey
from sqlalchemy import Index
from sqlalchemy import Integer
from sqlalchemy import String
from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

Base = declarative_base()

PARTICIPANT_MEMBER = "member"
PARTICIPANT_BENCHMARK = "benchmark"


class Participant(Base):
    """A competitor: either a real member or the benchmark.

    ``kind`` distinguishes the two variants; ``ticker`` is only set for the
    benchmark. There is at most one benchmark row per deployment.
    """

    __tablename__ = "participants"

    id = Column(String(64), primary_key=True)
    display_name = Column(String(100), nullable=False, default="")
    kind = Column(String(16), nullable=False, default=PARTICIPANT_MEMBER, index=True)
    ticker = Column(String(16))

    created_at = Column(DateTime, default=func.now())


class League(Base):
    __tablename__ = "leagues"

    id = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=False)
    season_length_weeks = Column(Integer, nullable=False, default=12)
    max_members = Column(Integer, nullable=False, default=10)

    members = relationship("LeagueMember", back_populates="league", cascade="all, delete-orphan")
    weeks = relationship("LeagueWeek", back_populates="league", cascade="all, delete-orphan")

    created_at = Column(DateTime, default=func.now())


class LeagueMember(Base):
    """Current membership. Leaving a league deletes the row."""

    __tablename__ = "league_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(String(64), ForeignKey("leagues.id"), nullable=False)
    participant_id = Column(String(64), ForeignKey("participants.id"), nullable=False)
    joined_at = Column(DateTime, default=func.now())

    league = relationship("League", back_populates="members")
    participant = relationship("Participant")

    __table_args__ = (
        UniqueConstraint("league_id", "participant_id"),
        Index("idx_member_participant", "participant_id"),
    )


class LeagueWeek(Base):
    """A scoring week. Immutable once created except for the universe reference."""

    __tablename__ = "weeks"

    id = Column(String(64), primary_key=True)
    league_id = Column(String(64), ForeignKey("leagues.id"), nullable=False, index=True)
    week_start = Column(Date, nullable=False)
    week_end = Column(Date, nullable=False)
    lock_time = Column(DateTime(timezone=True), nullable=False)
    universe_snapshot_id = Column(String(64))

    league = relationship("League", back_populates="weeks")

    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        UniqueConstraint("league_id", "week_start"),
        Index("idx_week_league_start", "league_id", "week_start"),
    )


class UniverseSnapshot(Base):
    """A dated list of tickers that lineups may hold."""

    __tablename__ = "universe_snapshots"

    id = Column(String(64), primary_key=True)
    as_of = Column(Date, nullable=False, index=True)

    members = relationship(
        "UniverseMember", back_populates="snapshot", cascade="all, delete-orphan"
    )

    created_at = Column(DateTime, default=func.now())


class UniverseMember(Base):
    __tablename__ = "universe_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    snapshot_id = Column(String(64), ForeignKey("universe_snapshots.id"), nullable=False)
    ticker = Column(String(16), nullable=False)

    snapshot = relationship("UniverseSnapshot", back_populates="members")

    __table_args__ = (UniqueConstraint("snapshot_id", "ticker"),)


class Lineup(Base):
    """One lineup per (week, participant). ``weekly_return`` is written by settlement only."""

    __tablename__ = "lineups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(String(64), ForeignKey("leagues.id"), nullable=False, index=True)
    week_id = Column(String(64), ForeignKey("weeks.id"), nullable=False)
    participant_id = Column(String(64), ForeignKey("participants.id"), nullable=False)
    submitted_at = Column(DateTime, default=func.now())
    weekly_return = Column(Float)

    positions = relationship(
        "LineupPositionRow", back_populates="lineup", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("week_id", "participant_id"),
        Index("idx_lineup_participant", "participant_id"),
    )


class LineupPositionRow(Base):
    __tablename__ = "lineup_positions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    lineup_id = Column(Integer, ForeignKey("lineups.id"), nullable=False)
    ticker = Column(String(16), nullable=False)
    weight = Column(Float, nullable=False)

    lineup = relationship("Lineup", back_populates="positions")

    __table_args__ = (UniqueConstraint("lineup_id", "ticker"),)


class WeeklyPrice(Base):
    """Entry (Monday open) and exit (Friday close) price per week and ticker."""

    __tablename__ = "weekly_prices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    week_id = Column(String(64), ForeignKey("weeks.id"), nullable=False)
    ticker = Column(String(16), nullable=False)
    monday_open = Column(Float, nullable=False)
    friday_close = Column(Float, nullable=False)

    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        UniqueConstraint("week_id", "ticker"),
        Index("idx_price_ticker", "ticker"),
    )


class MatchupRow(Base):
    """A head-to-head pairing. Scores stay null until settlement."""

    __tablename__ = "matchups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(String(64), ForeignKey("leagues.id"), nullable=False, index=True)
    week_id = Column(String(64), ForeignKey("weeks.id"), nullable=False)
    home_participant_id = Column(String(64), ForeignKey("participants.id"), nullable=False)
    away_participant_id = Column(String(64), ForeignKey("participants.id"), nullable=False)
    home_score = Column(Float)
    away_score = Column(Float)
    winner_participant_id = Column(String(64), ForeignKey("participants.id"))

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("week_id", "home_participant_id", "away_participant_id"),
        Index("idx_matchup_week", "week_id"),
        Index("idx_matchup_home", "home_participant_id"),
        Index("idx_matchup_away", "away_participant_id"),
    )
