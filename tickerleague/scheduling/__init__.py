"""Weekly matchup scheduling."""

from .matchups import PairingHistory, build_matchups_for_week, participant_ids, stable_hash
from .service import ScheduleOutcome, ScheduleService, select_current_week

__all__ = [
    "PairingHistory",
    "ScheduleOutcome",
    "ScheduleService",
    "build_matchups_for_week",
    "participant_ids",
    "select_current_week",
    "stable_hash",
]
