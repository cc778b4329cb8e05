"""
League standings endpoint.

Standings are recomputed from matchup and lineup history on every cache miss;
see ``tickerleague.standings.aggregator`` for the aggregation rules.
"""

from collections.abc import Callable
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from ...config.settings import settings
from ...core.cache import ReadCache
from ...database.repository import LeagueRepository
from ...standings.aggregator import StandingsAggregator
from ..dependencies import get_cache, get_clock, get_member_id, get_repository
from ..schemas import LeagueStandingsResponse, StandingsResponse

router = APIRouter()


@router.get("/standings", response_model=StandingsResponse)
async def get_standings(
    league_id: str | None = Query(None, description="Limit to one league"),
    member_id: str = Depends(get_member_id),
    repo: LeagueRepository = Depends(get_repository),
    cache: ReadCache = Depends(get_cache),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Get standings for one league or for every league the caller belongs to.

    Raises:
        HTTPException: 403 if the caller is not a member of ``league_id``
    """
    if league_id:
        if not repo.is_member(league_id, member_id):
            raise HTTPException(status_code=403, detail="Not a member of this league.")
        league_ids = [league_id]
    else:
        league_ids = repo.leagues_for_member(member_id)

    aggregator = StandingsAggregator(repo, cache=cache, clock=clock, config=settings)
    return StandingsResponse(
        leagues=[
            LeagueStandingsResponse.model_validate(standings)
            for standings in aggregator.league_standings(league_ids)
        ]
    )
