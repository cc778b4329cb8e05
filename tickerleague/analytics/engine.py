"""Per-member performance analytics over a lookback window.

For one member (optionally within one league) the engine selects the weeks in
the requested window, offers them to the settlement engine so freshly ended
weeks are scored on read, and then reports the member's record, summary
statistics, alpha/beta against the benchmark and per-week rolling series.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..config.settings import Settings, settings
from ..core.cache import NullCache, ReadCache
from ..core.exceptions import AuthorizationError, InvalidPriceData, ValidationError
from ..core.time import utc_now
from ..core.types import Lineup, Matchup, Week
from ..database.repository import LeagueRepository
from ..settlement.engine import SettlementEngine
from ..scoring.returns import price_return
from . import stats

logger = logging.getLogger(__name__)

RANGE_WEEKS = {
    "1w": 1,
    "2w": 2,
    "3w": 3,
    "4w": 4,
    "12w": 12,
    "6m": 26,
    "12m": 52,
}
CALENDAR_RANGES = ("qtd", "ytd")
DEFAULT_WINDOW = "4w"


@dataclass(frozen=True)
class LookbackWindow:
    """A named analytics window: a week count, a calendar range, ``all`` or ``live``."""

    name: str
    weeks: int | None = None

    @classmethod
    def parse(cls, value: str | None) -> "LookbackWindow":
        name = (value or DEFAULT_WINDOW).strip().lower()
        if name in RANGE_WEEKS:
            return cls(name=name, weeks=RANGE_WEEKS[name])
        if name in CALENDAR_RANGES or name in ("all", "live"):
            return cls(name=name)
        raise ValidationError(f"Unknown range: {value}")

    @property
    def is_live(self) -> bool:
        return self.name == "live"

    def calendar_start(self, now: datetime) -> datetime | None:
        """First instant of the current UTC quarter or year for ``qtd``/``ytd``."""
        now = now.astimezone(timezone.utc)
        if self.name == "qtd":
            month = (now.month - 1) // 3 * 3 + 1
            return datetime(now.year, month, 1, tzinfo=timezone.utc)
        if self.name == "ytd":
            return datetime(now.year, 1, 1, tzinfo=timezone.utc)
        return None


def pick_weeks(weeks: Sequence[Week], window: LookbackWindow, now: datetime, timezone_name: str) -> list[Week]:
    """Select the weeks of ``window`` from weeks sorted by start date."""
    weeks = list(weeks)
    completed = [week for week in weeks if week.has_ended(now, timezone_name)]

    if window.is_live:
        current = [
            week
            for week in weeks
            if week.start_boundary(timezone_name) <= now <= week.settlement_boundary(timezone_name)
        ]
        selected = current[:1] or completed[-1:]
    elif window.weeks is not None:
        pool = completed or weeks
        selected = pool[-window.weeks:]
    elif window.calendar_start(now) is not None:
        start = window.calendar_start(now)
        selected = [week for week in weeks if week.settlement_boundary(timezone_name) >= start]
    else:
        selected = weeks

    if not selected and weeks:
        selected = weeks[-1:]
    return selected


@dataclass(frozen=True)
class RecordSummary:
    wins: int = 0
    losses: int = 0
    ties: int = 0
    games: int = 0
    win_pct: float | None = None


@dataclass(frozen=True)
class AnalyticsView:
    member_id: str
    league_id: str | None
    window: str
    record: RecordSummary
    avg_weekly: float | None = None
    monthly: float | None = None
    annualized: float | None = None
    std_dev: float | None = None
    alpha: float | None = None
    beta: float | None = None
    week_ids: list[str] = field(default_factory=list)
    portfolio: list[float] = field(default_factory=list)
    benchmark: list[float] = field(default_factory=list)
    cumulative: list[float] = field(default_factory=list)
    benchmark_cumulative: list[float] = field(default_factory=list)
    rolling_sharpe: list[float] = field(default_factory=list)
    rolling_beta: list[float] = field(default_factory=list)
    rolling_alpha: list[float] = field(default_factory=list)
    rolling_volatility: list[float] = field(default_factory=list)


def _record(matchups: Sequence[Matchup], member_id: str) -> RecordSummary:
    wins = losses = ties = 0
    for matchup in matchups:
        if not matchup.is_settled and not matchup.winner_id:
            continue
        winner = matchup.resolved_winner()
        if winner is None:
            ties += 1
        elif winner == member_id:
            wins += 1
        else:
            losses += 1
    games = wins + losses + ties
    return RecordSummary(
        wins=wins, losses=losses, ties=ties, games=games, win_pct=wins / games if games else None
    )


class AnalyticsEngine:
    """Computes ``AnalyticsView`` objects, settling selected weeks on demand.

    Args:
        repo: Data access for the request's unit of work
        cache: Read cache for finished views
        clock: Returns the current aware UTC time
        config: Settings supplying the timezone, benchmark ticker and compounding basis
    """

    def __init__(
        self,
        repo: LeagueRepository,
        cache: ReadCache | None = None,
        clock: Callable[[], datetime] = utc_now,
        config: Settings = settings,
    ):
        self.repo = repo
        self.cache = cache or NullCache()
        self.clock = clock
        self.config = config

    def authorize(self, viewer_id: str, member_id: str, league_id: str | None) -> None:
        """Check the viewer may see ``member_id``'s analytics.

        Raises:
            ValidationError: Viewing another member without naming a league
            AuthorizationError: Viewer or member is not in the league
        """
        if member_id != viewer_id:
            if not league_id:
                raise ValidationError("A league is required to view another member.")
            if not (
                self.repo.is_member(league_id, viewer_id)
                and self.repo.is_member(league_id, member_id)
            ):
                raise AuthorizationError("Both members must belong to the league.")
        elif league_id and not self.repo.is_member(league_id, viewer_id):
            raise AuthorizationError("Not a member of this league.")

    def summary(
        self,
        viewer_id: str,
        member_id: str | None = None,
        league_id: str | None = None,
        window: str | None = DEFAULT_WINDOW,
    ) -> AnalyticsView:
        target = member_id or viewer_id
        self.authorize(viewer_id, target, league_id)
        lookback = LookbackWindow.parse(window)

        key = ("analytics", viewer_id, target, league_id or "all", lookback.name)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        view = self._build(target, league_id, lookback)
        self.cache.set(key, view)
        return view

    def _build(self, member_id: str, league_id: str | None, window: LookbackWindow) -> AnalyticsView:
        now = self.clock()
        tz = self.config.reference_timezone

        league_weeks = self.repo.weeks(league_id) if league_id else []
        matchups = self.repo.member_matchups(member_id, league_id)
        lineups = self.repo.member_lineups(member_id, league_id)

        def sort_weeks(weeks) -> list[Week]:
            return sorted(weeks, key=lambda week: (week.week_start, week.week_id))

        candidate_ids = {m.week_id for m in matchups} | {lineup.week_id for lineup in lineups}
        known = self.repo.weeks_by_ids(candidate_ids)
        known.update({week.week_id: week for week in league_weeks})
        candidates = sort_weeks(known[week_id] for week_id in candidate_ids if week_id in known)
        if not candidates:
            candidates = league_weeks

        base = league_weeks if window.is_live and league_weeks else candidates
        selected = pick_weeks(base, window, now, tz)
        if not selected and league_weeks:
            selected = pick_weeks(league_weeks, window, now, tz)

        settlement = SettlementEngine(self.repo, clock=self.clock, config=self.config)
        outcomes = [settlement.settle_week(week.league_id, week.week_id) for week in selected]
        if any(outcome.scored for outcome in outcomes):
            matchups = self.repo.member_matchups(member_id, league_id)
            lineups = self.repo.member_lineups(member_id, league_id)

        if not window.is_live:
            scored_ids = {lineup.week_id for lineup in lineups if lineup.weekly_return is not None}
            scored_ids |= {m.week_id for m in matchups if m.is_settled or m.winner_id}
            scored_weeks = sort_weeks(known[week_id] for week_id in scored_ids if week_id in known)
            if scored_weeks:
                selected = pick_weeks(scored_weeks, window, now, tz)

        week_ids, returns = self._member_returns(member_id, selected, matchups, lineups, now)
        aligned_ids, aligned_portfolio, aligned_benchmark = self._align_benchmark(
            week_ids, returns, known, now
        )

        beta, alpha = stats.beta_alpha(aligned_portfolio, aligned_benchmark)
        rolling = stats.rolling_metrics(aligned_portfolio, aligned_benchmark)

        return AnalyticsView(
            member_id=member_id,
            league_id=league_id,
            window=window.name,
            record=_record(matchups, member_id),
            avg_weekly=stats.mean(returns),
            monthly=stats.compounded_return(returns, last=4),
            annualized=stats.annualized_return(returns, self.config.periods_per_year),
            std_dev=stats.std_dev(returns),
            alpha=alpha,
            beta=beta,
            week_ids=aligned_ids,
            portfolio=aligned_portfolio,
            benchmark=aligned_benchmark,
            cumulative=stats.cumulative_series(aligned_portfolio),
            benchmark_cumulative=stats.cumulative_series(aligned_benchmark),
            rolling_sharpe=rolling["sharpe"],
            rolling_beta=rolling["beta"],
            rolling_alpha=rolling["alpha"],
            rolling_volatility=rolling["volatility"],
        )

    def _member_returns(
        self,
        member_id: str,
        weeks: Sequence[Week],
        matchups: Sequence[Matchup],
        lineups: Sequence[Lineup],
        now: datetime,
    ) -> tuple[list[str], list[float]]:
        """Lineup return, else matchup score, else 0 once the week has ended."""
        lineup_returns = {
            lineup.week_id: lineup.weekly_return
            for lineup in lineups
            if lineup.weekly_return is not None
        }
        matchup_scores = {
            m.week_id: m.score_for(member_id) for m in matchups if m.is_settled
        }

        week_ids, returns = [], []
        for week in weeks:
            value = lineup_returns.get(week.week_id, matchup_scores.get(week.week_id))
            if value is None and week.has_ended(now, self.config.reference_timezone):
                value = 0.0
            if value is not None:
                week_ids.append(week.week_id)
                returns.append(value)
        return week_ids, returns

    def _align_benchmark(
        self,
        week_ids: Sequence[str],
        returns: Sequence[float],
        weeks: dict[str, Week],
        now: datetime,
    ) -> tuple[list[str], list[float], list[float]]:
        """Weeks that have a benchmark return, with both return series for them.

        An ended week without a benchmark price counts as 0; a week in progress
        without one is left out.
        """
        benchmark = self.repo.get_benchmark()
        ticker = benchmark.ticker if benchmark is not None else self.config.benchmark_ticker

        aligned_ids, portfolio, aligned = [], [], []
        for week_id, value in zip(week_ids, returns):
            bench = None
            price = self.repo.price_for(week_id, ticker)
            if price is not None:
                try:
                    bench = price_return(price)
                except InvalidPriceData:
                    logger.warning(f"Ignoring invalid {ticker} price for week {week_id}")
            week = weeks.get(week_id)
            if bench is None and week is not None and week.has_ended(now, self.config.reference_timezone):
                bench = 0.0
            if bench is not None:
                aligned_ids.append(week_id)
                portfolio.append(value)
                aligned.append(bench)
        return aligned_ids, portfolio, aligned
