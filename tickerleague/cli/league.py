"""
CLI commands for running a league.

Every command opens one database session, does its work through
``LeagueRepository`` and exits non-zero on failure so schedulers (cron,
systemd timers) can detect problems.

Typical weekly cycle:
0. load-universe - store the tickers lineups may hold (optional)
1. schedule      - pair members for the coming week (safe to repeat before lock)
2. collect-prices - store Monday open / Friday close for every ticker in play
3. sweep         - settle every week whose boundary has passed
4. standings     - print or export the league table
"""

import logging
import sys
from datetime import date
from pathlib import Path

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from ..analytics.engine import DEFAULT_WINDOW, AnalyticsEngine
from ..config.settings import settings
from ..core.exceptions import LeagueError
from ..data.collection.price_collector import WeeklyPriceCollector
from ..database.connection import get_session_context
from ..database.init_db import create_database
from ..database.repository import LeagueRepository
from ..scheduling.service import ScheduleService
from ..settlement.engine import SettlementEngine, SettlementOutcome
from ..standings.aggregator import PLACEHOLDER, StandingsAggregator, standings_frame

logger = logging.getLogger(__name__)

console = Console()


def setup_logging():
    """Log to stdout, and to ``settings.log_file`` when one is configured."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_file))

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def _pct(value) -> str:
    if value is None or value == PLACEHOLDER:
        return PLACEHOLDER
    return f"{value * 100:+.2f}%"


def _num(value) -> str:
    if value is None or value == PLACEHOLDER:
        return PLACEHOLDER
    return f"{value:.2f}"


def _print_outcome(outcome: SettlementOutcome) -> None:
    style = {"scored": "green", "ready": "yellow", "pending": "dim"}[outcome.status.value]
    line = f"{outcome.league_id}/{outcome.week_id}: {outcome.status.value} ({outcome.reason})"
    if outcome.scored:
        line += f" - {outcome.matchups_written} matchups, {outcome.lineups_written} lineups"
    if outcome.missing_tickers:
        line += f" - missing prices: {', '.join(outcome.missing_tickers)}"
    console.print(line, style=style)


# ========== DATABASE MANAGEMENT COMMANDS ==========


def init_db():
    """
    Initialize the database with required tables and structure.

    Example usage:
        tickerleague init-db
    """
    typer.echo("Initializing database...")
    try:
        create_database()
        typer.echo("Database initialized successfully!")
    except Exception as e:
        typer.echo(f"Database initialization failed: {e}")
        raise typer.Exit(1) from e


# ========== SCHEDULING & SETTLEMENT COMMANDS ==========


def schedule(
    league_id: str = typer.Argument(..., help="League to schedule"),
    week_id: str = typer.Argument(..., help="Week to schedule"),
):
    """Create or repair a week's matchups before it locks."""
    setup_logging()
    try:
        with get_session_context() as session:
            repo = LeagueRepository(session, settings)
            outcome = ScheduleService(repo, config=settings).ensure_week_schedule(league_id, week_id)
            names = repo.participants(
                pid for pair in outcome.pairs for pid in (pair.home.participant_id, pair.away.participant_id)
            )
    except LeagueError as e:
        console.print(f"Scheduling failed: {e}", style="red")
        raise typer.Exit(1) from e

    status = "rebuilt" if outcome.rebuilt else "unchanged"
    console.print(f"Schedule {status} ({outcome.reason})")
    for pair in outcome.pairs:
        home = names.get(pair.home.participant_id, pair.home)
        away = names.get(pair.away.participant_id, pair.away)
        console.print(f"  {home.display_name or home.participant_id} vs {away.display_name or away.participant_id}")


def settle(
    league_id: str = typer.Argument(..., help="League of the week"),
    week_id: str = typer.Argument(..., help="Week to settle"),
):
    """Settle one week if its boundary has passed."""
    setup_logging()
    with get_session_context() as session:
        outcome = SettlementEngine(LeagueRepository(session, settings), config=settings).settle_week(
            league_id, week_id
        )
    _print_outcome(outcome)
    if outcome.reason == "data_error":
        raise typer.Exit(1)


def sweep():
    """Settle every ended week of every league. Intended for a timer."""
    setup_logging()
    with get_session_context() as session:
        outcomes = SettlementEngine(LeagueRepository(session, settings), config=settings).sweep()

    for outcome in outcomes:
        if outcome.reason != "already_scored":
            _print_outcome(outcome)
    settled = sum(1 for outcome in outcomes if outcome.scored)
    console.print(f"{len(outcomes)} weeks checked, {settled} settled", style="bold")


# ========== REPORTING COMMANDS ==========


def standings(
    league: list[str] = typer.Option([], "--league", "-l", help="League ids (default: all)"),
    csv: Path = typer.Option(None, "--csv", help="Write standings to this CSV file"),
):
    """Print league standings, optionally exporting them to CSV."""
    setup_logging()
    with get_session_context() as session:
        repo = LeagueRepository(session, settings)
        league_ids = league or repo.league_ids()
        tables = StandingsAggregator(repo, config=settings).league_standings(league_ids)

    frames = []
    for league_table in tables:
        df = standings_frame(league_table.rows)
        frames.append(df.assign(league_id=league_table.league_id))

        table = Table(title=f"{league_table.name} ({league_table.league_id})")
        table.add_column("#", justify="right")
        table.add_column("Member", style="cyan")
        table.add_column("W-L-T", justify="center")
        table.add_column("Win %", justify="right")
        table.add_column("Avg", justify="right", style="green")
        table.add_column("Annualized", justify="right")
        table.add_column("Volatility", justify="right")
        table.add_column("Alpha", justify="right")
        table.add_column("Beta", justify="right")

        for rank, row in enumerate(df.itertuples(index=False), start=1):
            table.add_row(
                PLACEHOLDER if row.is_benchmark else str(rank),
                row.display_name,
                f"{row.wins}-{row.losses}-{row.ties}",
                _pct(row.win_pct),
                _pct(row.avg_return),
                _pct(row.annualized_return),
                _pct(row.volatility),
                _pct(row.alpha),
                _num(row.beta),
                style="dim" if row.is_benchmark else None,
            )
        console.print(table)

    if csv is not None and frames:
        pd.concat(frames, ignore_index=True).to_csv(csv, index=False)
        console.print(f"Standings written to {csv}")


def analytics(
    member_id: str = typer.Argument(..., help="Member to analyze"),
    league: str = typer.Option(None, "--league", "-l", help="League filter"),
    window: str = typer.Option(DEFAULT_WINDOW, "--range", "-r", help="1w 2w 3w 4w 12w 6m 12m qtd ytd all live"),
):
    """Print a member's record, return statistics and benchmark comparison."""
    setup_logging()
    try:
        with get_session_context() as session:
            view = AnalyticsEngine(LeagueRepository(session, settings), config=settings).summary(
                member_id, member_id, league, window
            )
    except LeagueError as e:
        console.print(f"Analytics failed: {e}", style="red")
        raise typer.Exit(1) from e

    record = view.record
    table = Table(title=f"Analytics for {member_id} ({view.window})")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Record", f"{record.wins}-{record.losses}-{record.ties}")
    table.add_row("Win %", _pct(record.win_pct))
    table.add_row("Avg weekly", _pct(view.avg_weekly))
    table.add_row("Last 4 weeks", _pct(view.monthly))
    table.add_row("Annualized", _pct(view.annualized))
    table.add_row("Std dev", _pct(view.std_dev))
    table.add_row("Alpha", _pct(view.alpha))
    table.add_row("Beta", _num(view.beta))
    table.add_row("Weeks", str(len(view.portfolio)))
    console.print(table)


# ========== MARKET DATA COMMANDS ==========


def collect_prices(
    week_id: str = typer.Argument(..., help="Week to collect prices for"),
    tickers: list[str] = typer.Argument(..., help="Tickers, e.g. AAPL MSFT SPY"),
):
    """Fetch entry/exit prices for tickers and store them for a week."""
    setup_logging()
    try:
        with get_session_context() as session:
            collector = WeeklyPriceCollector(LeagueRepository(session, settings), config=settings)
            try:
                report = collector.collect_week(week_id, tickers)
            finally:
                collector.close()
    except LeagueError as e:
        console.print(f"Price collection failed: {e}", style="red")
        raise typer.Exit(1) from e

    console.print(f"Stored prices for {len(report.stored)} tickers", style="green")
    if report.missing:
        console.print(f"No usable data for: {', '.join(report.missing)}", style="yellow")


def load_universe(
    snapshot_id: str = typer.Argument(..., help="Snapshot id, e.g. sp500-2026-01"),
    tickers: list[str] = typer.Argument(..., help="Tickers lineups may hold"),
    as_of: str = typer.Option(None, "--as-of", help="Snapshot date (YYYY-MM-DD), default today"),
    weeks: list[str] = typer.Option([], "--week", help="Week ids to restrict to this snapshot"),
):
    """Store a universe snapshot and optionally attach it to weeks."""
    setup_logging()
    try:
        snapshot_date = date.fromisoformat(as_of) if as_of else date.today()
    except ValueError as e:
        console.print(f"Invalid --as-of date: {as_of}", style="red")
        raise typer.Exit(1) from e

    try:
        with get_session_context() as session:
            repo = LeagueRepository(session, settings)
            count = repo.store_universe(snapshot_id, snapshot_date, tickers)
            for week_id in weeks:
                repo.assign_universe(week_id, snapshot_id)
    except LeagueError as e:
        console.print(f"Loading universe failed: {e}", style="red")
        raise typer.Exit(1) from e

    console.print(f"Stored {count} tickers in snapshot {snapshot_id}", style="green")
    if weeks:
        console.print(f"Attached to weeks: {', '.join(weeks)}")
