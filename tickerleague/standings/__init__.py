"""League standings aggregation."""

from .aggregator import LeagueStandings, StandingRow, StandingsAggregator, standings_frame

__all__ = ["LeagueStandings", "StandingRow", "StandingsAggregator", "standings_frame"]
