"""Repository translating between ORM rows and domain types.

Every component that needs league data goes through ``LeagueRepository``; the
scheduler, return calculator and aggregators never see a SQLAlchemy object.
Writes are small, unique-keyed and committed individually so that concurrent
settlement attempts on the same week converge on the same rows.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import date

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config.settings import Settings, settings
from ..core.exceptions import NotFoundError
from ..core.time import as_utc
from ..core.types import (
    BenchmarkParticipant,
    Lineup,
    LineupPosition,
    Matchup,
    MatchupPair,
    Participant,
    PricePoint,
    RealMember,
    Week,
)
from .models import PARTICIPANT_BENCHMARK
from .models import League
from .models import LeagueMember
from .models import LeagueWeek
from .models import Lineup as LineupRow
from .models import LineupPositionRow
from .models import MatchupRow
from .models import UniverseMember
from .models import UniverseSnapshot
from .models import Participant as ParticipantRow
from .models import WeeklyPrice

logger = logging.getLogger(__name__)


def _to_participant(row: ParticipantRow) -> Participant:
    if row.kind == PARTICIPANT_BENCHMARK:
        return BenchmarkParticipant(
            participant_id=row.id, display_name=row.display_name, ticker=row.ticker
        )
    return RealMember(participant_id=row.id, display_name=row.display_name)


def _to_week(row: LeagueWeek) -> Week:
    return Week(
        week_id=row.id,
        league_id=row.league_id,
        week_start=row.week_start,
        week_end=row.week_end,
        lock_time=as_utc(row.lock_time),
        universe_snapshot_id=row.universe_snapshot_id,
    )


def _to_lineup(row: LineupRow) -> Lineup:
    positions = tuple(
        LineupPosition(ticker=position.ticker, weight=position.weight)
        for position in sorted(row.positions, key=lambda position: position.id)
    )
    return Lineup(
        lineup_id=str(row.id),
        week_id=row.week_id,
        member_id=row.participant_id,
        positions=positions,
        weekly_return=row.weekly_return,
    )


class LeagueRepository:
    """Data access for leagues, weeks, lineups, prices and matchups.

    Args:
        session: Request-scoped SQLAlchemy session
        config: Settings supplying the benchmark ticker and provisioning flag
    """

    def __init__(self, session: Session, config: Settings = settings):
        self.session = session
        self.config = config

    # ========== LEAGUES & MEMBERSHIP ==========

    def league_ids(self) -> list[str]:
        return [row.id for row in self.session.query(League.id).order_by(League.id)]

    def league_name(self, league_id: str) -> str | None:
        league = self.session.get(League, league_id)
        return league.name if league else None

    def leagues_for_member(self, participant_id: str) -> list[str]:
        rows = (
            self.session.query(LeagueMember.league_id)
            .filter(LeagueMember.participant_id == participant_id)
            .order_by(LeagueMember.league_id)
        )
        return [row.league_id for row in rows]

    def active_members(self, league_id: str) -> list[RealMember]:
        """Current members of a league, sorted by id. Never includes the benchmark."""
        rows = (
            self.session.query(LeagueMember, ParticipantRow)
            .join(ParticipantRow, ParticipantRow.id == LeagueMember.participant_id)
            .filter(LeagueMember.league_id == league_id)
            .filter(ParticipantRow.kind != PARTICIPANT_BENCHMARK)
            .order_by(ParticipantRow.id)
        )
        return [
            RealMember(
                participant_id=participant.id,
                display_name=participant.display_name,
                joined_at=membership.joined_at,
            )
            for membership, participant in rows
        ]

    def is_member(self, league_id: str, participant_id: str) -> bool:
        return (
            self.session.query(LeagueMember.id)
            .filter(LeagueMember.league_id == league_id)
            .filter(LeagueMember.participant_id == participant_id)
            .first()
            is not None
        )

    def participants(self, participant_ids: Iterable[str]) -> dict[str, Participant]:
        ids = set(participant_ids)
        if not ids:
            return {}
        rows = self.session.query(ParticipantRow).filter(ParticipantRow.id.in_(ids))
        return {row.id: _to_participant(row) for row in rows}

    # ========== BENCHMARK ==========

    def get_benchmark(self) -> BenchmarkParticipant | None:
        row = (
            self.session.query(ParticipantRow)
            .filter(ParticipantRow.kind == PARTICIPANT_BENCHMARK)
            .order_by(ParticipantRow.created_at)
            .first()
        )
        return _to_participant(row) if row else None

    def ensure_benchmark(self) -> BenchmarkParticipant | None:
        """Return the benchmark participant, creating it on first need.

        Returns None when it does not exist and provisioning is disabled.
        """
        benchmark = self.get_benchmark()
        if benchmark is not None:
            return benchmark
        if not self.config.benchmark_provisioning_enabled:
            logger.warning("Benchmark participant missing and provisioning is disabled")
            return None

        ticker = self.config.benchmark_ticker.upper()
        row = ParticipantRow(
            id=f"benchmark-{ticker.lower()}",
            display_name=self.config.benchmark_display_name,
            kind=PARTICIPANT_BENCHMARK,
            ticker=ticker,
        )
        self.session.add(row)
        try:
            self.session.commit()
            logger.info(f"Created benchmark participant {row.id} tracking {ticker}")
        except IntegrityError:
            # Another worker created it first
            self.session.rollback()
        return self.get_benchmark()

    # ========== WEEKS ==========

    def get_week(self, week_id: str) -> Week | None:
        row = self.session.get(LeagueWeek, week_id)
        return _to_week(row) if row else None

    def weeks(self, league_id: str) -> list[Week]:
        rows = (
            self.session.query(LeagueWeek)
            .filter(LeagueWeek.league_id == league_id)
            .order_by(LeagueWeek.week_start)
        )
        return [_to_week(row) for row in rows]

    def weeks_by_ids(self, week_ids: Iterable[str]) -> dict[str, Week]:
        ids = set(week_ids)
        if not ids:
            return {}
        rows = self.session.query(LeagueWeek).filter(LeagueWeek.id.in_(ids))
        return {row.id: _to_week(row) for row in rows}

    # ========== MATCHUPS ==========

    def _to_matchups(self, rows: Sequence[MatchupRow]) -> list[Matchup]:
        participants = self.participants(
            pid for row in rows for pid in (row.home_participant_id, row.away_participant_id)
        )

        def resolve(participant_id: str) -> Participant:
            # Rows outliving their participant fall back to a bare member
            return participants.get(participant_id) or RealMember(participant_id=participant_id)

        return [
            Matchup(
                matchup_id=str(row.id),
                league_id=row.league_id,
                week_id=row.week_id,
                home=resolve(row.home_participant_id),
                away=resolve(row.away_participant_id),
                home_score=row.home_score,
                away_score=row.away_score,
                winner_id=row.winner_participant_id,
            )
            for row in rows
        ]

    def matchups(self, league_id: str, week_id: str | None = None) -> list[Matchup]:
        query = self.session.query(MatchupRow).filter(MatchupRow.league_id == league_id)
        if week_id is not None:
            query = query.filter(MatchupRow.week_id == week_id)
        return self._to_matchups(query.order_by(MatchupRow.id).all())

    def member_matchups(self, participant_id: str, league_id: str | None = None) -> list[Matchup]:
        query = self.session.query(MatchupRow).filter(
            or_(
                MatchupRow.home_participant_id == participant_id,
                MatchupRow.away_participant_id == participant_id,
            )
        )
        if league_id is not None:
            query = query.filter(MatchupRow.league_id == league_id)
        return self._to_matchups(query.order_by(MatchupRow.id).all())

    def pairing_history(self, league_id: str, exclude_week_id: str | None = None) -> list[MatchupPair]:
        """All of a league's pairs, optionally excluding one week."""
        return [
            MatchupPair(home=matchup.home, away=matchup.away)
            for matchup in self.matchups(league_id)
            if matchup.week_id != exclude_week_id
        ]

    def record_matchup_result(
        self,
        matchup_id: str,
        home_score: float,
        away_score: float,
        winner_id: str | None,
    ) -> bool:
        """Write a matchup's scores if it is still unscored.

        Returns:
            True if this call wrote the result, False if it was already settled
        """
        updated = (
            self.session.query(MatchupRow)
            .filter(MatchupRow.id == int(matchup_id))
            .filter(or_(MatchupRow.home_score.is_(None), MatchupRow.away_score.is_(None)))
            .update(
                {
                    MatchupRow.home_score: home_score,
                    MatchupRow.away_score: away_score,
                    MatchupRow.winner_participant_id: winner_id,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated > 0

    def replace_week_matchups(
        self, league_id: str, week_id: str, pairs: Iterable[MatchupPair]
    ) -> int:
        """Delete a week's matchups and insert ``pairs`` in one transaction."""
        self.session.query(MatchupRow).filter(MatchupRow.league_id == league_id).filter(
            MatchupRow.week_id == week_id
        ).delete(synchronize_session=False)

        count = 0
        for pair in pairs:
            self.session.add(
                MatchupRow(
                    league_id=league_id,
                    week_id=week_id,
                    home_participant_id=pair.home.participant_id,
                    away_participant_id=pair.away.participant_id,
                )
            )
            count += 1
        self.session.commit()
        return count

    # ========== LINEUPS ==========

    def lineups(self, week_id: str) -> dict[str, Lineup]:
        """Lineups of a week keyed by member id."""
        rows = self.session.query(LineupRow).filter(LineupRow.week_id == week_id)
        return {row.participant_id: _to_lineup(row) for row in rows}

    def league_lineups(self, league_id: str) -> list[Lineup]:
        rows = self.session.query(LineupRow).filter(LineupRow.league_id == league_id)
        return [_to_lineup(row) for row in rows]

    def member_lineups(self, participant_id: str, league_id: str | None = None) -> list[Lineup]:
        query = self.session.query(LineupRow).filter(LineupRow.participant_id == participant_id)
        if league_id is not None:
            query = query.filter(LineupRow.league_id == league_id)
        return [_to_lineup(row) for row in query]

    def lineup_for(self, week_id: str, participant_id: str) -> Lineup | None:
        row = (
            self.session.query(LineupRow)
            .filter(LineupRow.week_id == week_id)
            .filter(LineupRow.participant_id == participant_id)
            .first()
        )
        return _to_lineup(row) if row else None

    def set_lineup_return(self, lineup_id: str, weekly_return: float) -> bool:
        """Store a lineup's weekly return. Returns False when unchanged."""
        row = self.session.get(LineupRow, int(lineup_id))
        if row is None or row.weekly_return == weekly_return:
            return False
        row.weekly_return = weekly_return
        self.session.commit()
        return True

    def submit_lineup(
        self,
        league_id: str,
        week_id: str,
        participant_id: str,
        positions: Sequence[LineupPosition],
    ) -> Lineup:
        """Insert or replace a member's lineup for a week. Positions must be validated."""
        row = (
            self.session.query(LineupRow)
            .filter(LineupRow.week_id == week_id)
            .filter(LineupRow.participant_id == participant_id)
            .first()
        )
        if row is None:
            row = LineupRow(league_id=league_id, week_id=week_id, participant_id=participant_id)
            self.session.add(row)
        else:
            row.positions.clear()
            # Flush the deletes before re-adding tickers under the same unique key
            self.session.flush()

        row.weekly_return = None
        for position in positions:
            row.positions.append(LineupPositionRow(ticker=position.ticker, weight=position.weight))

        self.session.commit()
        self.session.refresh(row)
        return _to_lineup(row)

    # ========== UNIVERSE ==========

    def allowed_tickers(self, snapshot_id: str | None = None) -> set[str]:
        """Tickers a lineup may hold, upper-cased, never including the benchmark.

        Uses the given snapshot, or the most recent one when ``snapshot_id`` is
        None. An empty set means no universe is loaded and any ticker passes.
        """
        if snapshot_id is None:
            latest = (
                self.session.query(UniverseSnapshot.id)
                .order_by(UniverseSnapshot.as_of.desc())
                .first()
            )
            if latest is None:
                return set()
            snapshot_id = latest.id

        rows = self.session.query(UniverseMember.ticker).filter(
            UniverseMember.snapshot_id == snapshot_id
        )
        allowed = {row.ticker.upper() for row in rows}
        if not allowed:
            logger.warning(f"Universe snapshot {snapshot_id} has no tickers")
        allowed.discard(self.config.benchmark_ticker.upper())
        return allowed

    def store_universe(self, snapshot_id: str, as_of: date, tickers: Iterable[str]) -> int:
        """Create or replace a universe snapshot. Returns the number of tickers stored."""
        snapshot = self.session.get(UniverseSnapshot, snapshot_id)
        if snapshot is None:
            snapshot = UniverseSnapshot(id=snapshot_id, as_of=as_of)
            self.session.add(snapshot)
        else:
            snapshot.as_of = as_of
            snapshot.members.clear()
            self.session.flush()

        unique = sorted({ticker.strip().upper() for ticker in tickers if ticker.strip()})
        for ticker in unique:
            snapshot.members.append(UniverseMember(ticker=ticker))
        self.session.commit()
        return len(unique)

    def assign_universe(self, week_id: str, snapshot_id: str) -> None:
        """Point a week at a universe snapshot, the one change a week allows."""
        row = self.session.get(LeagueWeek, week_id)
        if row is None:
            raise NotFoundError(f"Unknown week {week_id}")
        row.universe_snapshot_id = snapshot_id
        self.session.commit()

    # ========== PRICES ==========

    def prices(self, week_id: str) -> dict[str, PricePoint]:
        """Price points of a week keyed by upper-cased ticker."""
        rows = self.session.query(WeeklyPrice).filter(WeeklyPrice.week_id == week_id)
        return {
            row.ticker.upper(): PricePoint(
                ticker=row.ticker.upper(),
                entry_price=row.monday_open,
                exit_price=row.friday_close,
            )
            for row in rows
        }

    def price_for(self, week_id: str, ticker: str) -> PricePoint | None:
        return self.prices(week_id).get(ticker.upper())

    def upsert_weekly_price(
        self, week_id: str, ticker: str, monday_open: float, friday_close: float
    ) -> None:
        ticker = ticker.upper()
        row = (
            self.session.query(WeeklyPrice)
            .filter(WeeklyPrice.week_id == week_id)
            .filter(WeeklyPrice.ticker == ticker)
            .first()
        )
        if row is None:
            row = WeeklyPrice(week_id=week_id, ticker=ticker)
            self.session.add(row)
        row.monday_open = monday_open
        row.friday_close = friday_close
        self.session.commit()
