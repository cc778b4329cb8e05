"""
Pydantic schemas for API request/response models.

Response schemas are built straight from the engine's frozen dataclasses:
``from_attributes=True`` lets Pydantic read attributes off any object, not just
SQLAlchemy rows.

Schema Organization:
- Standings: league tables with one row per member plus the benchmark
- Analytics: record, summary statistics and weekly series for one member
- Scoring: settlement outcomes
- Matchups and lineups: the caller's current matchup and lineup submission
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

# ========== STANDINGS SCHEMAS ==========


class StandingRowResponse(BaseModel):
    """One standings row. Null statistics mean "not determinable yet"."""

    model_config = ConfigDict(from_attributes=True)

    member_id: str
    display_name: str
    wins: int
    losses: int
    ties: int
    games: int
    win_pct: float | None = None
    loss_pct: float | None = None
    tie_pct: float | None = None
    avg_return: float | None = None
    annualized_return: float | None = None
    volatility: float | None = None
    alpha: float | None = None
    beta: float | None = None
    is_benchmark: bool = False


class LeagueStandingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    league_id: str
    name: str
    rows: list[StandingRowResponse]


class StandingsResponse(BaseModel):
    leagues: list[LeagueStandingsResponse]


# ========== ANALYTICS SCHEMAS ==========


class RecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    wins: int
    losses: int
    ties: int
    games: int
    win_pct: float | None = None


class AnalyticsStatsResponse(BaseModel):
    avg_weekly: float | None = None
    monthly: float | None = None
    annualized: float | None = None
    std_dev: float | None = None


class BenchmarkStatsResponse(BaseModel):
    alpha: float | None = None
    beta: float | None = None


class AnalyticsSeriesResponse(BaseModel):
    week_ids: list[str] = []
    portfolio: list[float] = []
    benchmark: list[float] = []
    cumulative: list[float] = []
    benchmark_cumulative: list[float] = []
    rolling_sharpe: list[float] = []
    rolling_beta: list[float] = []
    rolling_alpha: list[float] = []
    rolling_volatility: list[float] = []


class AnalyticsResponse(BaseModel):
    """Analytics view for one member over one lookback window."""

    member_id: str
    league_id: str | None = None
    range: str
    record: RecordResponse
    stats: AnalyticsStatsResponse
    benchmark: BenchmarkStatsResponse
    series: AnalyticsSeriesResponse

    @classmethod
    def from_view(cls, view) -> "AnalyticsResponse":
        return cls(
            member_id=view.member_id,
            league_id=view.league_id,
            range=view.window,
            record=RecordResponse.model_validate(view.record),
            stats=AnalyticsStatsResponse(
                avg_weekly=view.avg_weekly,
                monthly=view.monthly,
                annualized=view.annualized,
                std_dev=view.std_dev,
            ),
            benchmark=BenchmarkStatsResponse(alpha=view.alpha, beta=view.beta),
            series=AnalyticsSeriesResponse(
                week_ids=view.week_ids,
                portfolio=view.portfolio,
                benchmark=view.benchmark,
                cumulative=view.cumulative,
                benchmark_cumulative=view.benchmark_cumulative,
                rolling_sharpe=view.rolling_sharpe,
                rolling_beta=view.rolling_beta,
                rolling_alpha=view.rolling_alpha,
                rolling_volatility=view.rolling_volatility,
            ),
        )


# ========== SCORING SCHEMAS ==========


class SettleWeekRequest(BaseModel):
    league_id: str
    week_id: str


class SettlementOutcomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    league_id: str
    week_id: str
    status: str
    scored: bool
    reason: str
    matchups_written: int = 0
    lineups_written: int = 0
    missing_tickers: list[str] = []
    message: str | None = None


class SweepResponse(BaseModel):
    weeks_checked: int
    weeks_settled: int
    outcomes: list[SettlementOutcomeResponse]


# ========== MATCHUP & LINEUP SCHEMAS ==========


class WeekResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    week_id: str
    league_id: str
    week_start: date
    week_end: date
    lock_time: datetime


class LineupPositionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticker: str
    weight: float


class MatchupSideResponse(BaseModel):
    participant_id: str
    display_name: str
    is_benchmark: bool
    score: float | None = None
    lineup: list[LineupPositionSchema] | None = None  # Hidden before lock for opponents


class MatchupResponse(BaseModel):
    matchup_id: str
    home: MatchupSideResponse
    away: MatchupSideResponse
    winner_id: str | None = None
    is_settled: bool


class CurrentMatchupResponse(BaseModel):
    league_id: str
    week: WeekResponse | None = None
    matchup: MatchupResponse | None = None
    rescheduled: bool = False


class LineupSubmitRequest(BaseModel):
    league_id: str
    week_id: str
    positions: list[LineupPositionSchema] = Field(..., description="Ticker/weight pairs")


class LineupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lineup_id: str
    week_id: str
    member_id: str
    positions: list[LineupPositionSchema]
