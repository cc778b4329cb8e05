"""
Settlement triggers.

``/weekly`` lets a league member settle one week on demand. ``/auto`` is the
timer trigger: it sweeps every week of every league and is protected by a
bearer token when ``SCORING_CRON_SECRET`` is configured.
"""

from collections.abc import Callable
from datetime import datetime

from fastapi import APIRouter, Depends, Header, HTTPException

from ...config.settings import settings
from ...database.repository import LeagueRepository
from ...settlement.engine import SettlementEngine, SettlementOutcome
from ..dependencies import get_clock, get_member_id, get_repository
from ..schemas import SettlementOutcomeResponse, SettleWeekRequest, SweepResponse

router = APIRouter()


def outcome_response(outcome: SettlementOutcome) -> SettlementOutcomeResponse:
    return SettlementOutcomeResponse(
        league_id=outcome.league_id,
        week_id=outcome.week_id,
        status=outcome.status.value,
        scored=outcome.scored,
        reason=outcome.reason,
        matchups_written=outcome.matchups_written,
        lineups_written=outcome.lineups_written,
        missing_tickers=list(outcome.missing_tickers),
        message=outcome.message,
    )


@router.post("/weekly", response_model=SettlementOutcomeResponse)
async def settle_week(
    request: SettleWeekRequest,
    member_id: str = Depends(get_member_id),
    repo: LeagueRepository = Depends(get_repository),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Settle one week if it has ended. A no-op for pending or scored weeks."""
    if not repo.is_member(request.league_id, member_id):
        raise HTTPException(status_code=403, detail="Not a member of this league.")

    outcome = SettlementEngine(repo, clock=clock, config=settings).settle_week(
        request.league_id, request.week_id
    )
    return outcome_response(outcome)


def require_cron_secret(authorization: str | None = Header(None)) -> None:
    secret = settings.scoring_cron_secret
    if secret and authorization != f"Bearer {secret}":
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.api_route("/auto", methods=["GET", "POST"], response_model=SweepResponse)
async def sweep(
    _: None = Depends(require_cron_secret),
    repo: LeagueRepository = Depends(get_repository),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Offer every week of every league to the settlement engine."""
    outcomes = SettlementEngine(repo, clock=clock, config=settings).sweep()
    return SweepResponse(
        weeks_checked=len(outcomes),
        weeks_settled=sum(1 for outcome in outcomes if outcome.scored),
        outcomes=[outcome_response(outcome) for outcome in outcomes],
    )
