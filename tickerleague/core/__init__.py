"""Core domain types, errors and infrastructure shared by every component."""

from .exceptions import (
    AuthorizationError,
    ConfigurationError,
    InvalidPriceData,
    LeagueError,
    MissingPriceData,
    NotFoundError,
    ValidationError,
)
from .types import (
    BenchmarkParticipant,
    Lineup,
    LineupPosition,
    Matchup,
    MatchupPair,
    Participant,
    PricePoint,
    RealMember,
    Week,
)

__all__ = [
    "AuthorizationError",
    "BenchmarkParticipant",
    "ConfigurationError",
    "InvalidPriceData",
    "LeagueError",
    "Lineup",
    "LineupPosition",
    "Matchup",
    "MatchupPair",
    "MissingPriceData",
    "NotFoundError",
    "Participant",
    "PricePoint",
    "RealMember",
    "ValidationError",
    "Week",
]
