"""League standings derived from settled matchups and lineup returns.

Standings are never stored. Each read rebuilds them from the matchup and
lineup history (served from the read cache for a few seconds):

- Record: wins/losses/ties from matchups with a result. The explicit winner
  wins; otherwise the strictly greater recorded score; equal scores tie.
- Returns: the member's lineup returns, plus 0 for every ended week in which
  they had a matchup but no return ("no activity").
- Risk statistics: annualized return, sample volatility and alpha/beta
  against the benchmark's weekly returns, aligned week by week.

The benchmark gets its own row, always sorted last.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass, field
from datetime import datetime

import pandas as pd

from ..analytics.stats import annualized_return, beta_alpha, mean, sample_std
from ..config.settings import Settings, settings
from ..core.cache import NullCache, ReadCache
from ..core.exceptions import InvalidPriceData
from ..core.time import utc_now
from ..core.types import BenchmarkParticipant, Matchup, Participant, Week
from ..database.repository import LeagueRepository
from ..scoring.returns import price_return

logger = logging.getLogger(__name__)

PLACEHOLDER = "—"


@dataclass(frozen=True)
class StandingRow:
    member_id: str
    display_name: str
    wins: int = 0
    losses: int = 0
    ties: int = 0
    games: int = 0
    win_pct: float | None = None
    loss_pct: float | None = None
    tie_pct: float | None = None
    total_return: float = 0.0
    avg_return: float | None = None
    annualized_return: float | None = None
    volatility: float | None = None
    alpha: float | None = None
    beta: float | None = None
    is_benchmark: bool = False


@dataclass(frozen=True)
class LeagueStandings:
    league_id: str
    name: str
    rows: list[StandingRow] = field(default_factory=list)


@dataclass
class _Record:
    wins: int = 0
    losses: int = 0
    ties: int = 0
    games: int = 0
    total_return: float = 0.0

    def add(self, matchup: Matchup, participant_id: str) -> None:
        if not matchup.is_settled and not matchup.winner_id:
            return
        self.games += 1
        if matchup.is_settled:
            self.total_return += matchup.score_for(participant_id)

        winner = matchup.resolved_winner()
        if winner is None:
            self.ties += 1
        elif winner == participant_id:
            self.wins += 1
        else:
            self.losses += 1

    def percentages(self) -> dict[str, float | None]:
        if not self.games:
            return {"win_pct": None, "loss_pct": None, "tie_pct": None}
        return {
            "win_pct": self.wins / self.games,
            "loss_pct": self.losses / self.games,
            "tie_pct": self.ties / self.games,
        }


def _sort_key(row: StandingRow) -> tuple:
    win_pct = row.win_pct if row.win_pct is not None else -1.0
    avg = row.avg_return if row.avg_return is not None else float("-inf")
    return (-win_pct, -row.wins, -avg, row.member_id)


class StandingsAggregator:
    """Builds per-league standings on demand.

    Args:
        repo: Data access for the request's unit of work
        cache: Read cache for finished standings
        clock: Returns the current aware UTC time
        config: Settings supplying the timezone and compounding basis
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

    def league_standings(self, league_ids: Iterable[str]) -> list[LeagueStandings]:
        return [self.standings_for_league(league_id) for league_id in league_ids]

    def standings_for_league(self, league_id: str) -> LeagueStandings:
        key = ("standings", league_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        standings = self._build(league_id)
        self.cache.set(key, standings)
        return standings

    def _build(self, league_id: str) -> LeagueStandings:
        now = self.clock()
        tz = self.config.reference_timezone

        weeks = self.repo.weeks(league_id)
        week_order = {week.week_id: index for index, week in enumerate(weeks)}
        ended = {week.week_id for week in weeks if week.has_ended(now, tz)}

        matchups = self.repo.matchups(league_id)
        benchmark = self.repo.get_benchmark()
        benchmark_returns = self._benchmark_returns(weeks, benchmark)

        returns_by_member: dict[str, dict[str, float]] = {}
        for lineup in self.repo.league_lineups(league_id):
            if lineup.weekly_return is not None:
                returns_by_member.setdefault(lineup.member_id, {})[lineup.week_id] = lineup.weekly_return

        rows = []
        for member in self.repo.active_members(league_id):
            member_id = member.participant_id
            record = _Record()
            weekly = dict(returns_by_member.get(member_id, {}))
            for matchup in matchups:
                if not matchup.involves(member_id):
                    continue
                record.add(matchup, member_id)
                if matchup.week_id in ended:
                    weekly.setdefault(matchup.week_id, 0.0)

            ordered = sorted(weekly.items(), key=lambda item: week_order.get(item[0], len(week_order)))
            returns = [value for _, value in ordered]

            portfolio, aligned = [], []
            for week_id, value in ordered:
                bench = benchmark_returns.get(week_id)
                if bench is None and week_id in ended:
                    bench = 0.0
                if bench is not None:
                    portfolio.append(value)
                    aligned.append(bench)
            beta, alpha = beta_alpha(portfolio, aligned)

            avg = mean(returns)
            if avg is None and record.games:
                avg = record.total_return / record.games

            rows.append(
                StandingRow(
                    member_id=member_id,
                    display_name=member.display_name or member_id,
                    wins=record.wins,
                    losses=record.losses,
                    ties=record.ties,
                    games=record.games,
                    total_return=record.total_return,
                    avg_return=avg,
                    annualized_return=annualized_return(returns, self.config.periods_per_year),
                    volatility=sample_std(returns),
                    alpha=alpha,
                    beta=beta,
                    **record.percentages(),
                )
            )

        rows.sort(key=_sort_key)
        if benchmark is not None:
            rows.append(self._benchmark_row(benchmark, matchups, weeks, ended, benchmark_returns))

        name = self.repo.league_name(league_id) or league_id
        logger.debug(f"Built standings for league {league_id}: {len(rows)} rows")
        return LeagueStandings(league_id=league_id, name=name, rows=rows)

    def _benchmark_returns(
        self, weeks: list[Week], benchmark: BenchmarkParticipant | None
    ) -> dict[str, float]:
        ticker = benchmark.ticker if benchmark is not None else self.config.benchmark_ticker
        returns = {}
        for week in weeks:
            price = self.repo.price_for(week.week_id, ticker)
            if price is None:
                continue
            try:
                returns[week.week_id] = price_return(price)
            except InvalidPriceData:
                logger.warning(f"Ignoring invalid {ticker} price for week {week.week_id}")
        return returns

    def _benchmark_row(
        self,
        benchmark: Participant,
        matchups: list[Matchup],
        weeks: list[Week],
        ended: set[str],
        benchmark_returns: dict[str, float],
    ) -> StandingRow:
        record = _Record()
        for matchup in matchups:
            if matchup.involves(benchmark.participant_id):
                record.add(matchup, benchmark.participant_id)

        returns = [
            benchmark_returns[week.week_id]
            for week in weeks
            if week.week_id in ended and week.week_id in benchmark_returns
        ]
        beta, alpha = beta_alpha(returns, returns) if len(returns) >= 2 else (None, None)

        avg = mean(returns)
        if avg is None and record.games:
            avg = record.total_return / record.games

        return StandingRow(
            member_id=benchmark.participant_id,
            display_name=benchmark.display_name,
            wins=record.wins,
            losses=record.losses,
            ties=record.ties,
            games=record.games,
            total_return=record.total_return,
            avg_return=avg,
            annualized_return=annualized_return(returns, self.config.periods_per_year),
            volatility=sample_std(returns),
            alpha=alpha,
            beta=beta,
            is_benchmark=True,
            **record.percentages(),
        )


STANDINGS_COLUMNS = [
    "member_id",
    "display_name",
    "wins",
    "losses",
    "ties",
    "games",
    "win_pct",
    "loss_pct",
    "tie_pct",
    "avg_return",
    "annualized_return",
    "volatility",
    "alpha",
    "beta",
    "is_benchmark",
]


def standings_frame(rows: Iterable[StandingRow]) -> pd.DataFrame:
    """Standings rows as a DataFrame with undefined values shown as a placeholder."""
    records = [asdict(row) for row in rows]
    if not records:
        return pd.DataFrame(columns=STANDINGS_COLUMNS)

    df = pd.DataFrame(records)[STANDINGS_COLUMNS].astype(object)
    return df.where(df.notna(), PLACEHOLDER)
