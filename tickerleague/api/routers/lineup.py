"""
Lineup submission endpoint.

A lineup is validated as a whole and stored only if every rule passes. Once a
week locks, lineups for it can no longer change.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from ...config.settings import settings
from ...core.exceptions import ValidationError
from ...core.types import LineupPosition
from ...database.repository import LeagueRepository
from ...scoring.lineup import validate_lineup_positions
from ..dependencies import get_clock, get_member_id, get_repository
from ..schemas import LineupResponse, LineupSubmitRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/submit", response_model=LineupResponse)
async def submit_lineup(
    request: LineupSubmitRequest,
    member_id: str = Depends(get_member_id),
    repo: LeagueRepository = Depends(get_repository),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Create or replace the caller's lineup for a week.

    Raises:
        HTTPException: 400 for an invalid lineup, 403 for non-members or a
            locked week, 404 for an unknown week
    """
    if not repo.is_member(request.league_id, member_id):
        raise HTTPException(status_code=403, detail="Not a member of this league.")

    week = repo.get_week(request.week_id)
    if week is None or week.league_id != request.league_id:
        raise HTTPException(status_code=404, detail="Week not found")
    if week.is_locked(clock()):
        raise HTTPException(status_code=403, detail="Lineups are locked for this week.")

    try:
        positions = validate_lineup_positions(
            [LineupPosition(ticker=p.ticker, weight=p.weight) for p in request.positions],
            expected_count=settings.lineup_size,
            allowed_tickers=repo.allowed_tickers(week.universe_snapshot_id),
            excluded_tickers=[settings.benchmark_ticker],
            tolerance=settings.weight_tolerance,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    lineup = repo.submit_lineup(request.league_id, week.week_id, member_id, positions)
    logger.info(f"Stored lineup for {member_id} in week {week.week_id}")
    return LineupResponse.model_validate(lineup)
