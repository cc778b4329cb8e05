"""
Current matchup endpoint.

Reading the current matchup keeps the week's schedule in line with membership
(before lock) and settles the week if it has ended, so the response always
reflects the latest state.
"""

from collections.abc import Callable
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from ...config.settings import settings
from ...core.exceptions import NotFoundError
from ...core.types import Lineup, Matchup, Participant
from ...database.repository import LeagueRepository
from ...scheduling.service import ScheduleService, select_current_week
from ...settlement.engine import SettlementEngine
from ..dependencies import get_clock, get_member_id, get_repository
from ..schemas import (
    CurrentMatchupResponse,
    LineupPositionSchema,
    MatchupResponse,
    MatchupSideResponse,
    WeekResponse,
)

router = APIRouter()


def _side(
    participant: Participant, score: float | None, lineup: Lineup | None, visible: bool
) -> MatchupSideResponse:
    positions = None
    if visible and lineup is not None:
        positions = [LineupPositionSchema.model_validate(position) for position in lineup.positions]
    return MatchupSideResponse(
        participant_id=participant.participant_id,
        display_name=participant.display_name or participant.participant_id,
        is_benchmark=participant.is_benchmark,
        score=score,
        lineup=positions,
    )


@router.get("/current", response_model=CurrentMatchupResponse)
async def get_current_matchup(
    league_id: str = Query(..., description="League to look in"),
    week_id: str | None = Query(None, description="Week (defaults to the current week)"),
    member_id: str = Depends(get_member_id),
    repo: LeagueRepository = Depends(get_repository),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Get the caller's matchup for a week.

    The opponent's lineup is only revealed once the week is locked.

    Raises:
        HTTPException: 403 if the caller is not a member, 404 for an unknown week
    """
    if not repo.is_member(league_id, member_id):
        raise HTTPException(status_code=403, detail="Not a member of this league.")

    now = clock()
    if week_id:
        week = repo.get_week(week_id)
        if week is None or week.league_id != league_id:
            raise HTTPException(status_code=404, detail="Week not found")
    else:
        week = select_current_week(repo.weeks(league_id), now, settings.reference_timezone)
        if week is None:
            return CurrentMatchupResponse(league_id=league_id)

    try:
        schedule = ScheduleService(repo, clock=clock, config=settings).ensure_week_schedule(
            league_id, week.week_id
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    SettlementEngine(repo, clock=clock, config=settings).settle_week(league_id, week.week_id)

    matchup: Matchup | None = next(
        (m for m in repo.matchups(league_id, week.week_id) if m.involves(member_id)), None
    )
    week_response = WeekResponse.model_validate(week)
    if matchup is None:
        return CurrentMatchupResponse(league_id=league_id, week=week_response, rescheduled=schedule.rebuilt)

    locked = week.is_locked(now)
    lineups = repo.lineups(week.week_id)
    return CurrentMatchupResponse(
        league_id=league_id,
        week=week_response,
        rescheduled=schedule.rebuilt,
        matchup=MatchupResponse(
            matchup_id=matchup.matchup_id,
            home=_side(
                matchup.home,
                matchup.home_score,
                lineups.get(matchup.home.participant_id),
                visible=locked or matchup.home.participant_id == member_id,
            ),
            away=_side(
                matchup.away,
                matchup.away_score,
                lineups.get(matchup.away.participant_id),
                visible=locked or matchup.away.participant_id == member_id,
            ),
            winner_id=matchup.resolved_winner(),
            is_settled=matchup.is_settled,
        ),
    )
