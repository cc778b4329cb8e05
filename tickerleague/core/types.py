"""Domain types shared by the scheduler, settlement engine and aggregators.

Participants are a tagged union: a ``RealMember`` is a league member, a
``BenchmarkParticipant`` is the synthetic competitor tracking a market index.
Components branch on ``participant.is_benchmark`` rather than comparing ids.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, Union

from .time import day_end, day_start


@dataclass(frozen=True)
class RealMember:
    """A league member. Purely a key plus display data."""

    participant_id: str
    display_name: str = ""
    joined_at: datetime | None = None

    is_benchmark: Literal[False] = field(default=False, init=False)


@dataclass(frozen=True)
class BenchmarkParticipant:
    """The synthetic, always-active competitor representing a market index."""

    participant_id: str
    display_name: str
    ticker: str

    is_benchmark: Literal[True] = field(default=True, init=False)


Participant = Union[RealMember, BenchmarkParticipant]


@dataclass(frozen=True)
class Week:
    """One scoring week of a league."""

    week_id: str
    league_id: str
    week_start: date
    week_end: date
    lock_time: datetime
    universe_snapshot_id: str | None = None

    def settlement_boundary(self, timezone_name: str) -> datetime:
        """End of ``week_end`` in the reference timezone, as aware UTC."""
        return day_end(self.week_end, timezone_name)

    def start_boundary(self, timezone_name: str) -> datetime:
        return day_start(self.week_start, timezone_name)

    def has_ended(self, now: datetime, timezone_name: str) -> bool:
        return now >= self.settlement_boundary(timezone_name)

    def is_locked(self, now: datetime) -> bool:
        return now >= self.lock_time


@dataclass(frozen=True)
class LineupPosition:
    ticker: str
    weight: float


@dataclass(frozen=True)
class Lineup:
    """A member's weighted basket for one week."""

    lineup_id: str
    week_id: str
    member_id: str
    positions: tuple[LineupPosition, ...]
    weekly_return: float | None = None


@dataclass(frozen=True)
class PricePoint:
    """Monday open (entry) and Friday close (exit) for one ticker and week."""

    ticker: str
    entry_price: float
    exit_price: float


@dataclass(frozen=True)
class MatchupPair:
    """A home/away pairing, either scheduler output or pairing history."""

    home: Participant
    away: Participant

    @property
    def benchmark_side(self) -> Participant | None:
        if self.home.is_benchmark:
            return self.home
        if self.away.is_benchmark:
            return self.away
        return None


@dataclass(frozen=True)
class Matchup:
    """A persisted matchup with nullable scores."""

    matchup_id: str
    league_id: str
    week_id: str
    home: Participant
    away: Participant
    home_score: float | None = None
    away_score: float | None = None
    winner_id: str | None = None

    @property
    def is_settled(self) -> bool:
        return self.home_score is not None and self.away_score is not None

    def involves(self, participant_id: str) -> bool:
        return participant_id in (self.home.participant_id, self.away.participant_id)

    def score_for(self, participant_id: str) -> float | None:
        if self.home.participant_id == participant_id:
            return self.home_score
        if self.away.participant_id == participant_id:
            return self.away_score
        return None

    def resolved_winner(self) -> str | None:
        """Explicit winner, else inferred from a recorded score pair."""
        if self.winner_id:
            return self.winner_id
        if not self.is_settled:
            return None
        if self.home_score > self.away_score:
            return self.home.participant_id
        if self.away_score > self.home_score:
            return self.away.participant_id
        return None
