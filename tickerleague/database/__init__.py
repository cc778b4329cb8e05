"""Database package initialization."""

from .connection import SessionLocal, engine, get_session
from .models import (
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
from .repository import LeagueRepository

__all__ = [
    "Base",
    "League",
    "LeagueMember",
    "LeagueRepository",
    "LeagueWeek",
    "Lineup",
    "LineupPositionRow",
    "MatchupRow",
    "Participant",
    "SessionLocal",
    "WeeklyPrice",
    "engine",
    "get_session",
]
