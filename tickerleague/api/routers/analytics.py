"""
Member analytics endpoint.

Viewing another member's analytics requires naming a league both of you
belong to. Selected weeks are settled on read before statistics are computed.
"""

from collections.abc import Callable
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from ...analytics.engine import DEFAULT_WINDOW, AnalyticsEngine
from ...config.settings import settings
from ...core.cache import ReadCache
from ...core.exceptions import LeagueError
from ...database.repository import LeagueRepository
from ..dependencies import get_cache, get_clock, get_member_id, get_repository, to_http_error
from ..schemas import AnalyticsResponse

router = APIRouter()


@router.get("/summary", response_model=AnalyticsResponse)
async def get_analytics_summary(
    league_id: str | None = Query(None, description="League filter"),
    target_member_id: str | None = Query(None, alias="member_id", description="Member to view"),
    window: str = Query(DEFAULT_WINDOW, alias="range", description="1w 2w 3w 4w 12w 6m 12m qtd ytd all live"),
    viewer_id: str = Depends(get_member_id),
    repo: LeagueRepository = Depends(get_repository),
    cache: ReadCache = Depends(get_cache),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Get record, statistics and weekly series for a member.

    Raises:
        HTTPException: 400 for an unknown range or a missing league when viewing
            another member, 403 when either party is not a league member
    """
    engine = AnalyticsEngine(repo, cache=cache, clock=clock, config=settings)
    try:
        view = engine.summary(viewer_id, target_member_id, league_id, window)
    except LeagueError as e:
        raise to_http_error(e) from e
    return AnalyticsResponse.from_view(view)
