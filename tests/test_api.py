"""API tests against an in-memory database with a frozen clock."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from tickerleague.api.dependencies import get_cache, get_clock
from tickerleague.api.main import app
from tickerleague.config.settings import settings
from tickerleague.core.cache import NullCache
from tickerleague.database.connection import get_db

ALICE = {"X-Member-Id": "alice"}
MALLORY = {"X-Member-Id": "mallory"}

FIVE = [
    {"ticker": "aapl", "weight": 0.2},
    {"ticker": "msft", "weight": 0.2},
    {"ticker": "nvda", "weight": 0.2},
    {"ticker": "amzn", "weight": 0.2},
    {"ticker": "googl", "weight": 0.2},
]


@pytest.fixture
def client(session, clock):
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_cache] = NullCache
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def league(seed):
    seed.league("L1", members=("alice", "bob", "carol"))
    seed.league("L2", members=("mallory",), name="Other League")
    seed.weeks("L1")


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_missing_member_header_is_unauthorized(client, league):
    assert client.get("/api/league/standings").status_code == 401


# ========== STANDINGS ==========


def test_standings_for_callers_leagues(client, seed, league):
    seed.matchup("W1", "alice", "bob", home_score=0.02, away_score=0.01, winner="alice")

    response = client.get("/api/league/standings", headers=ALICE)

    assert response.status_code == 200
    leagues = response.json()["leagues"]
    assert [table["league_id"] for table in leagues] == ["L1"]
    top = leagues[0]["rows"][0]
    assert top["member_id"] == "alice"
    assert top["wins"] == 1
    assert top["win_pct"] == 1.0


def test_standings_for_foreign_league_forbidden(client, league):
    response = client.get("/api/league/standings", params={"league_id": "L1"}, headers=MALLORY)

    assert response.status_code == 403


# ========== LINEUPS ==========


def test_submit_lineup_before_lock(client, repo, league):
    response = client.post(
        "/api/lineup/submit", json={"league_id": "L1", "week_id": "W4", "positions": FIVE}, headers=ALICE
    )

    assert response.status_code == 200
    body = response.json()
    assert [p["ticker"] for p in body["positions"]] == ["AAPL", "MSFT", "NVDA", "AMZN", "GOOGL"]
    assert repo.lineup_for("W4", "alice") is not None


def test_resubmitting_lineup_replaces_it(client, repo, league):
    client.post("/api/lineup/submit", json={"league_id": "L1", "week_id": "W4", "positions": FIVE}, headers=ALICE)
    replacement = [dict(position, ticker=f"T{i}") for i, position in enumerate(FIVE)]

    response = client.post(
        "/api/lineup/submit",
        json={"league_id": "L1", "week_id": "W4", "positions": replacement},
        headers=ALICE,
    )

    assert response.status_code == 200
    stored = repo.lineup_for("W4", "alice")
    assert [p.ticker for p in stored.positions] == ["T0", "T1", "T2", "T3", "T4"]


def test_invalid_lineup_rejected(client, repo, league):
    positions = [dict(position, weight=0.1) for position in FIVE]

    response = client.post(
        "/api/lineup/submit", json={"league_id": "L1", "week_id": "W4", "positions": positions}, headers=ALICE
    )

    assert response.status_code == 400
    assert "Current sum: 50.00%" in response.json()["detail"]
    assert repo.lineup_for("W4", "alice") is None


def test_ticker_outside_week_universe_rejected(client, repo, league):
    repo.store_universe("sp-jan", date(2026, 1, 2), ["AAPL", "MSFT", "NVDA", "AMZN", "GOOGL", "SPY"])
    repo.assign_universe("W4", "sp-jan")
    positions = FIVE[:4] + [dict(FIVE[4], ticker="FOO")]

    rejected = client.post(
        "/api/lineup/submit", json={"league_id": "L1", "week_id": "W4", "positions": positions}, headers=ALICE
    )
    accepted = client.post(
        "/api/lineup/submit", json={"league_id": "L1", "week_id": "W4", "positions": FIVE}, headers=ALICE
    )

    assert rejected.status_code == 400
    assert "FOO is not in the allowed universe" in rejected.json()["detail"]
    assert accepted.status_code == 200


def test_week_without_universe_uses_latest_snapshot(client, repo, league):
    repo.store_universe("sp-old", date(2025, 12, 1), ["FOO", "AAPL", "MSFT", "NVDA", "AMZN"])
    repo.store_universe("sp-new", date(2026, 1, 2), ["AAPL", "MSFT", "NVDA", "AMZN", "GOOGL"])
    positions = FIVE[:4] + [dict(FIVE[4], ticker="FOO")]

    response = client.post(
        "/api/lineup/submit", json={"league_id": "L1", "week_id": "W4", "positions": positions}, headers=ALICE
    )

    assert response.status_code == 400
    assert repo.allowed_tickers() == {"AAPL", "MSFT", "NVDA", "AMZN", "GOOGL"}


def test_benchmark_ticker_rejected(client, league):
    positions = [dict(FIVE[0], ticker="SPY")] + FIVE[1:]

    response = client.post(
        "/api/lineup/submit", json={"league_id": "L1", "week_id": "W4", "positions": positions}, headers=ALICE
    )

    assert response.status_code == 400


def test_locked_week_rejects_lineups(client, league):
    response = client.post(
        "/api/lineup/submit", json={"league_id": "L1", "week_id": "W3", "positions": FIVE}, headers=ALICE
    )

    assert response.status_code == 403


def test_lineup_for_unknown_week_or_foreign_league(client, league):
    unknown = client.post(
        "/api/lineup/submit", json={"league_id": "L1", "week_id": "W9", "positions": FIVE}, headers=ALICE
    )
    foreign = client.post(
        "/api/lineup/submit", json={"league_id": "L1", "week_id": "W4", "positions": FIVE}, headers=MALLORY
    )

    assert unknown.status_code == 404
    assert foreign.status_code == 403


# ========== MATCHUPS ==========


def test_current_matchup_schedules_and_hides_opponent_lineup(client, seed, league):
    for member in ("alice", "bob", "carol"):
        seed.lineup("W4", member, {"AAA": 1.0})

    response = client.get("/api/matchup/current", params={"league_id": "L1", "week_id": "W4"}, headers=ALICE)

    assert response.status_code == 200
    body = response.json()
    assert body["rescheduled"]
    matchup = body["matchup"]
    sides = {side["participant_id"]: side for side in (matchup["home"], matchup["away"])}
    assert "alice" in sides
    opponent = next(side for pid, side in sides.items() if pid != "alice")
    assert sides["alice"]["lineup"] == [{"ticker": "AAA", "weight": 1.0}]
    assert opponent["lineup"] is None, "Opponent lineup stays hidden until lock"
    assert not matchup["is_settled"]


def test_current_matchup_defaults_to_week_in_progress(client, league):
    response = client.get("/api/matchup/current", params={"league_id": "L1"}, headers=ALICE)

    assert response.status_code == 200
    body = response.json()
    assert body["week"]["week_id"] == "W3"
    assert body["matchup"] is None, "Locked weeks are never scheduled after the fact"


# ========== SCORING ==========


def test_settle_week_on_demand(client, seed, league):
    seed.matchup("W2", "alice", "bob")
    seed.lineup("W2", "alice", {"AAA": 1.0})
    seed.price("W2", "AAA", 100.0, 105.0)

    response = client.post("/api/scoring/weekly", json={"league_id": "L1", "week_id": "W2"}, headers=ALICE)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "scored"
    assert body["scored"]
    assert body["matchups_written"] == 1


def test_settle_week_requires_membership(client, league):
    response = client.post("/api/scoring/weekly", json={"league_id": "L1", "week_id": "W2"}, headers=MALLORY)

    assert response.status_code == 403


def test_sweep_requires_secret_when_configured(client, league, monkeypatch):
    monkeypatch.setattr(settings, "scoring_cron_secret", "s3cret")

    assert client.post("/api/scoring/auto").status_code == 401
    assert client.get("/api/scoring/auto", headers={"Authorization": "Bearer wrong"}).status_code == 401

    response = client.get("/api/scoring/auto", headers={"Authorization": "Bearer s3cret"})
    assert response.status_code == 200
    assert response.json()["weeks_checked"] == 4


# ========== ANALYTICS ==========


def test_analytics_summary(client, seed, league):
    seed.matchup("W2", "alice", "bob")
    seed.lineup("W2", "alice", {"AAA": 1.0})
    seed.price("W2", "AAA", 100.0, 103.0)

    response = client.get("/api/analytics/summary", params={"range": "all"}, headers=ALICE)

    assert response.status_code == 200
    body = response.json()
    assert body["range"] == "all"
    assert body["record"]["wins"] == 1
    assert body["series"]["week_ids"] == ["W2"]
    assert body["stats"]["avg_weekly"] == pytest.approx(0.03)


def test_analytics_for_other_member_needs_league(client, league):
    without_league = client.get("/api/analytics/summary", params={"member_id": "bob"}, headers=ALICE)
    foreign = client.get(
        "/api/analytics/summary", params={"member_id": "bob", "league_id": "L1"}, headers=MALLORY
    )
    bad_range = client.get("/api/analytics/summary", params={"range": "5y"}, headers=ALICE)

    assert without_league.status_code == 400
    assert foreign.status_code == 403
    assert bad_range.status_code == 400
