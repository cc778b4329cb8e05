"""Weekly settlement: turns lineups and prices into matchup results.

Each (league, week) moves through three states:

    PENDING  the settlement boundary (end of week_end, reference timezone)
             has not passed
    READY    the week ended and at least one matchup is unscored
    SCORED   every matchup has both scores (terminal)

``settle_week`` is safe to call any number of times, from a timer or from a
user request. A SCORED week is never written again, and each matchup result is
written with a conditional update that only touches unscored rows, so two
concurrent attempts on the same week converge on the same values.

Failures are reported as a ``SettlementOutcome`` rather than raised. Callers
log the reason and retry on a later invocation once prices arrive.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from ..config.settings import Settings, settings
from ..core.exceptions import InvalidPriceData
from ..core.time import utc_now
from ..core.types import Lineup, Matchup, Participant, PricePoint, Week
from ..database.repository import LeagueRepository
from ..scoring.returns import ReturnOutcome, compute_lineup_return, price_return, score_matchup

logger = logging.getLogger(__name__)


class SettlementStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    SCORED = "scored"


@dataclass(frozen=True)
class SettlementOutcome:
    """What one settlement attempt did.

    Attributes:
        status: Week state after the attempt
        scored: True if this attempt wrote at least one matchup result
        reason: Machine-readable tag, e.g. ``week_not_ended``, ``already_scored``,
            ``no_matchups``, ``settled``, ``missing_price``, ``invalid_price``,
            ``data_error`` or ``week_not_found``
        missing_tickers: Tickers whose absent prices left matchups unscored
    """

    league_id: str
    week_id: str
    status: SettlementStatus
    scored: bool
    reason: str
    matchups_written: int = 0
    lineups_written: int = 0
    missing_tickers: tuple[str, ...] = ()
    message: str | None = None


def week_status(week: Week, matchups: list[Matchup], now: datetime, timezone_name: str) -> SettlementStatus:
    if not week.has_ended(now, timezone_name):
        return SettlementStatus.PENDING
    if matchups and all(matchup.is_settled for matchup in matchups):
        return SettlementStatus.SCORED
    return SettlementStatus.READY


class SettlementEngine:
    """Settles weeks for the leagues behind a repository.

    Args:
        repo: Data access for the request's unit of work
        clock: Returns the current aware UTC time
        config: Settings supplying the reference timezone
    """

    def __init__(
        self,
        repo: LeagueRepository,
        clock: Callable[[], datetime] = utc_now,
        config: Settings = settings,
    ):
        self.repo = repo
        self.clock = clock
        self.config = config

    def week_state(self, league_id: str, week_id: str) -> SettlementStatus | None:
        """Current state of a week, or None if it does not exist."""
        week = self.repo.get_week(week_id)
        if week is None or week.league_id != league_id:
            return None
        matchups = self.repo.matchups(league_id, week_id)
        return week_status(week, matchups, self.clock(), self.config.reference_timezone)

    def settle_week(self, league_id: str, week_id: str) -> SettlementOutcome:
        """Settle every unscored matchup of a week whose boundary has passed."""
        try:
            outcome = self._settle(league_id, week_id)
        except SQLAlchemyError as e:
            self.repo.session.rollback()
            outcome = SettlementOutcome(
                league_id=league_id,
                week_id=week_id,
                status=SettlementStatus.READY,
                scored=False,
                reason="data_error",
                message=str(e),
            )

        self._log(outcome)
        return outcome

    def sweep(self) -> list[SettlementOutcome]:
        """Offer every week of every league for settlement."""
        outcomes = []
        for league_id in self.repo.league_ids():
            for week in self.repo.weeks(league_id):
                outcomes.append(self.settle_week(league_id, week.week_id))

        settled = sum(1 for outcome in outcomes if outcome.scored)
        logger.info(f"Settlement sweep finished: {len(outcomes)} weeks checked, {settled} settled")
        return outcomes

    def _settle(self, league_id: str, week_id: str) -> SettlementOutcome:
        def report(
            status: SettlementStatus, reason: str, scored: bool = False, **extra
        ) -> SettlementOutcome:
            return SettlementOutcome(
                league_id=league_id,
                week_id=week_id,
                status=status,
                scored=scored,
                reason=reason,
                **extra,
            )

        week = self.repo.get_week(week_id)
        if week is None or week.league_id != league_id:
            return report(SettlementStatus.PENDING, "week_not_found")

        now = self.clock()
        if not week.has_ended(now, self.config.reference_timezone):
            return report(SettlementStatus.PENDING, "week_not_ended")

        matchups = self.repo.matchups(league_id, week_id)
        if not matchups:
            return report(SettlementStatus.READY, "no_matchups")
        if all(matchup.is_settled for matchup in matchups):
            return report(SettlementStatus.SCORED, "already_scored")

        self.repo.ensure_benchmark()
        active = {member.participant_id for member in self.repo.active_members(league_id)}
        lineups = self.repo.lineups(week_id)
        prices = self.repo.prices(week_id)

        def is_inactive(side: Participant) -> bool:
            return not side.is_benchmark and side.participant_id not in active

        matchups_written = 0
        lineups_written = 0
        side_returns: dict[str, ReturnOutcome] = {}

        def side_return(side: Participant) -> ReturnOutcome:
            nonlocal lineups_written
            if side.participant_id not in side_returns:
                outcome = self._side_return(side, lineups, prices)
                side_returns[side.participant_id] = outcome
                # Lineup returns land before any matchup result that depends on them
                lineup = lineups.get(side.participant_id)
                if lineup is not None and outcome.ok:
                    if self.repo.set_lineup_return(lineup.lineup_id, outcome.value):
                        lineups_written += 1
            return side_returns[side.participant_id]

        missing: set[str] = set()
        invalid: list[str] = []
        remaining = 0

        for matchup in matchups:
            if matchup.is_settled:
                continue

            home_out = is_inactive(matchup.home)
            away_out = is_inactive(matchup.away)
            if home_out != away_out:
                winner = matchup.away if home_out else matchup.home
                logger.info(
                    f"Matchup {matchup.matchup_id} forfeited to {winner.participant_id}: "
                    f"opponent is no longer a member of league {league_id}"
                )
                if self.repo.record_matchup_result(matchup.matchup_id, 0.0, 0.0, winner.participant_id):
                    matchups_written += 1
                continue

            home = side_return(matchup.home)
            away = side_return(matchup.away)
            failures = [outcome for outcome in (home, away) if not outcome.ok]
            if failures:
                remaining += 1
                for failure in failures:
                    if failure.reason == "missing_price":
                        missing.add(failure.ticker)
                    else:
                        invalid.append(failure.message)
                continue

            home_score, away_score, winner_side = score_matchup(home.value, away.value)
            winner_id = {
                "home": matchup.home.participant_id,
                "away": matchup.away.participant_id,
            }.get(winner_side)
            if self.repo.record_matchup_result(matchup.matchup_id, home_score, away_score, winner_id):
                matchups_written += 1

        counts = {
            "scored": matchups_written > 0,
            "matchups_written": matchups_written,
            "lineups_written": lineups_written,
        }
        if remaining == 0:
            return report(SettlementStatus.SCORED, "settled", **counts)
        if missing:
            tickers = tuple(sorted(missing))
            return report(
                SettlementStatus.READY,
                "missing_price",
                missing_tickers=tickers,
                message=f"Missing weekly prices for {', '.join(tickers)}.",
                **counts,
            )
        return report(SettlementStatus.READY, "invalid_price", message=invalid[0], **counts)

    def _side_return(
        self,
        side: Participant,
        lineups: dict[str, Lineup],
        prices: dict[str, PricePoint],
    ) -> ReturnOutcome:
        if side.is_benchmark:
            price = prices.get(side.ticker.upper())
            if price is None:
                return ReturnOutcome(
                    ok=False,
                    reason="missing_price",
                    ticker=side.ticker.upper(),
                    message=f"Missing weekly prices for {side.ticker.upper()}.",
                )
            try:
                return ReturnOutcome(ok=True, value=price_return(price))
            except InvalidPriceData as e:
                return ReturnOutcome(ok=False, reason="invalid_price", message=str(e))

        lineup = lineups.get(side.participant_id)
        if lineup is None:
            # No lineup submitted counts as no activity
            return ReturnOutcome(ok=True, value=0.0)
        return compute_lineup_return(lineup.positions, prices)

    def _log(self, outcome: SettlementOutcome) -> None:
        label = f"league {outcome.league_id} week {outcome.week_id}"
        if outcome.reason in ("missing_price", "invalid_price", "data_error"):
            logger.warning(
                f"Settlement incomplete for {label}: {outcome.reason} "
                f"({outcome.message}); {outcome.matchups_written} matchups written"
            )
        elif outcome.scored:
            logger.info(
                f"Settled {label}: {outcome.matchups_written} matchups, "
                f"{outcome.lineups_written} lineup returns written"
            )
        else:
            logger.debug(f"Settlement no-op for {label}: {outcome.reason}")
