"""Test file to verify development environment setup.

This file contains automated tests that validate the development environment
is properly configured for the ticker league engine: the third-party stack
imports, settings load with their documented defaults, and the database
schema can be created from scratch.

Test Categories:

- Import Tests: Verify all required packages can be imported
- Configuration Tests: Validate project settings and environment overrides
- Database Tests: Ensure the schema builds on an empty database

Usage:
    pytest tests/test_setup.py -v
    python tests/test_setup.py  # Run directly
"""

import pytest
from sqlalchemy import create_engine, inspect


def test_import_numpy_and_pandas():
    """Test that numpy and pandas can be imported and are functional.

    numpy backs every return statistic (volatility, beta, compounding) and
    pandas shapes standings into tables for CSV export and daily price bars
    into weekly entry/exit prices.

    Common Issues:
    - Missing packages: pip install -e ".[test]"
    - numpy/pandas binary mismatch after partial upgrades
    """
    import numpy as np
    import pandas as pd

    assert np.__version__, "numpy version should be accessible"
    assert pd.__version__, "pandas version should be accessible"

    test_df = pd.DataFrame({"ticker": ["AAPL", "MSFT"], "weekly_return": [0.012, -0.004]})
    assert len(test_df) == 2, "Should be able to create DataFrames"
    assert float(np.prod(1 + test_df["weekly_return"])) > 0, "Vectorized math should work"


def test_import_fastapi():
    """Test that the API application imports and exposes its routers.

    Importing the app also imports every router, schema and dependency, so a
    broken import anywhere in the API layer fails here first.
    """
    from tickerleague.api.main import app

    route_paths = {route.path for route in app.routes}
    for path in (
        "/health",
        "/api/league/standings",
        "/api/analytics/summary",
        "/api/scoring/weekly",
        "/api/scoring/auto",
        "/api/matchup/current",
        "/api/lineup/submit",
    ):
        assert path in route_paths, f"Route {path} should be registered"


def test_project_config(monkeypatch):
    """Test that project configuration loads correctly.

    Validates:
    1. Documented defaults for league rules and the benchmark
    2. Environment variables override defaults (case-insensitive)

    Common Issues:
    - A stray .env file overriding defaults during local runs
    - Invalid environment variable types (e.g. CACHE_TTL=abc)
    """
    from tickerleague.config.settings import Settings

    settings = Settings(_env_file=None)
    assert settings.benchmark_ticker == "SPY", f"Expected SPY, got {settings.benchmark_ticker}"
    assert settings.lineup_size == 5, "Lineups hold exactly five positions by default"
    assert settings.periods_per_year == 52, "Weekly returns annualize over 52 periods"
    assert settings.reference_timezone == "America/New_York"
    assert settings.cache_backend == "memory"

    monkeypatch.setenv("BENCHMARK_TICKER", "QQQ")
    monkeypatch.setenv("cache_ttl", "2.5")
    overridden = Settings(_env_file=None)
    assert overridden.benchmark_ticker == "QQQ", "Environment should override the benchmark"
    assert overridden.cache_ttl == 2.5, "Environment names are case-insensitive"


def test_database_schema_creates(tmp_path):
    """Test that every table is created on an empty SQLite file.

    This mirrors ``tickerleague init-db`` against a throwaway database.
    """
    from tickerleague.database.init_db import create_database, reset_database

    engine = create_engine(f"sqlite:///{tmp_path / 'league.db'}")
    create_database(engine)

    tables = set(inspect(engine).get_table_names())
    expected = {
        "participants",
        "leagues",
        "league_members",
        "weeks",
        "universe_snapshots",
        "universe_members",
        "lineups",
        "lineup_positions",
        "weekly_prices",
        "matchups",
    }
    missing = expected - tables
    assert not missing, f"Missing tables: {missing}"

    reset_database(engine)
    assert expected <= set(inspect(engine).get_table_names()), "Reset should recreate all tables"
    engine.dispose()


if __name__ == "__main__":
    print("Running environment setup tests...")
    print("=" * 50)

    exit_code = pytest.main([__file__, "-v", "-x"])

    if exit_code == 0:
        print("\nAll setup tests passed! Environment is ready for development.")
    else:
        print("\nSome tests failed. Please fix the issues above before proceeding.")

    raise SystemExit(exit_code)
