"""CLI interface for the ticker league."""

import typer

from . import league

main = typer.Typer(help="Ticker League CLI")

main.command("init-db")(league.init_db)
main.command("schedule")(league.schedule)
main.command("settle")(league.settle)
main.command("sweep")(league.sweep)
main.command("standings")(league.standings)
main.command("analytics")(league.analytics)
main.command("collect-prices")(league.collect_prices)
main.command("load-universe")(league.load_universe)
