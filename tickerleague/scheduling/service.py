"""Keeps a week's persisted matchups in line with league membership.

Membership can change between scheduling and lock. Until the lock time passes,
``ScheduleService`` compares the stored matchups with the members who should be
playing and rebuilds the week when they disagree. After lock the schedule is
frozen; departures from then on are handled as forfeits at settlement.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from ..config.settings import Settings, settings
from ..core.exceptions import NotFoundError
from ..core.time import utc_now
from ..core.types import MatchupPair, RealMember, Week
from ..database.repository import LeagueRepository
from .matchups import build_matchups_for_week, participant_ids

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleOutcome:
    """Result of ``ensure_week_schedule``.

    ``reason`` is one of ``locked``, ``up_to_date``, ``count_mismatch``,
    ``missing_members`` or ``duplicate_participants``.
    """

    rebuilt: bool
    reason: str
    pairs: list[MatchupPair] = field(default_factory=list)


def select_current_week(weeks: Sequence[Week], now: datetime, timezone_name: str) -> Week | None:
    """The week in progress, else the next to end, else the latest week."""
    for week in weeks:
        if week.start_boundary(timezone_name) <= now <= week.settlement_boundary(timezone_name):
            return week
    for week in weeks:
        if week.settlement_boundary(timezone_name) >= now:
            return week
    return weeks[-1] if weeks else None


class ScheduleService:
    def __init__(
        self,
        repo: LeagueRepository,
        clock: Callable[[], datetime] = utc_now,
        config: Settings = settings,
    ):
        self.repo = repo
        self.clock = clock
        self.config = config

    def ensure_week_schedule(self, league_id: str, week_id: str) -> ScheduleOutcome:
        """Rebuild the week's matchups if they no longer match membership.

        Members who left but already hold a pairing for the week stay in the
        scheduling pool, so their opponent is not reshuffled by their exit.

        Raises:
            NotFoundError: If the week does not exist
        """
        week = self.repo.get_week(week_id)
        if week is None or week.league_id != league_id:
            raise NotFoundError(f"Week {week_id} not found in league {league_id}.")

        existing = self.repo.matchups(league_id, week_id)
        existing_pairs = [MatchupPair(home=m.home, away=m.away) for m in existing]

        if week.is_locked(self.clock()):
            return ScheduleOutcome(rebuilt=False, reason="locked", pairs=existing_pairs)

        members = self.repo.active_members(league_id)
        member_ids = {member.participant_id for member in members}

        scheduled: dict[str, RealMember] = {}
        for matchup in existing:
            for side in (matchup.home, matchup.away):
                if not side.is_benchmark:
                    scheduled[side.participant_id] = side

        departed = [scheduled[pid] for pid in sorted(scheduled) if pid not in member_ids]
        pool = members + departed

        needs_benchmark = len(pool) % 2 == 1
        benchmark = self.repo.ensure_benchmark() if needs_benchmark else self.repo.get_benchmark()

        expected = len(pool) // 2 + (1 if needs_benchmark and benchmark is not None else 0)
        max_missing = 1 if needs_benchmark and benchmark is None else 0
        missing = sum(1 for member in pool if member.participant_id not in scheduled)

        ids = participant_ids(existing_pairs)
        if len(set(ids)) != len(ids):
            reason = "duplicate_participants"
        elif len(existing) != expected:
            reason = "count_mismatch"
        elif missing > max_missing:
            reason = "missing_members"
        else:
            return ScheduleOutcome(rebuilt=False, reason="up_to_date", pairs=existing_pairs)

        history = self.repo.pairing_history(league_id, exclude_week_id=week_id)
        pairs = build_matchups_for_week(pool, history, week_id, benchmark)
        self.repo.replace_week_matchups(league_id, week_id, pairs)

        logger.info(
            f"Rebuilt schedule for league {league_id} week {week_id} "
            f"({reason}): {len(pairs)} matchups"
        )
        return ScheduleOutcome(rebuilt=True, reason=reason, pairs=pairs)
