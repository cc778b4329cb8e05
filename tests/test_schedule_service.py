"""Tests for keeping a week's schedule in line with membership."""

from datetime import datetime, timezone

import pytest

from conftest import BENCHMARK_ID, NOW
from tickerleague.core.exceptions import NotFoundError
from tickerleague.core.types import Week
from tickerleague.scheduling.service import ScheduleService, select_current_week


@pytest.fixture
def service(repo, clock, config):
    return ScheduleService(repo, clock=clock, config=config)


@pytest.fixture
def league(seed):
    seed.league("L1", members=("alice", "bob", "carol"))
    seed.weeks("L1")


def test_unscheduled_week_is_built_with_benchmark(service, repo, league):
    outcome = service.ensure_week_schedule("L1", "W4")

    assert outcome.rebuilt
    assert outcome.reason == "count_mismatch"
    matchups = repo.matchups("L1", "W4")
    assert len(matchups) == 2
    assert sum(1 for m in matchups if m.away.participant_id == BENCHMARK_ID) == 1
    assert repo.get_benchmark() is not None, "Benchmark should be provisioned on first need"


def test_rerun_before_lock_is_a_no_op(service, repo, league):
    service.ensure_week_schedule("L1", "W4")
    before = [(m.matchup_id, m.home.participant_id, m.away.participant_id) for m in repo.matchups("L1", "W4")]

    outcome = service.ensure_week_schedule("L1", "W4")

    after = [(m.matchup_id, m.home.participant_id, m.away.participant_id) for m in repo.matchups("L1", "W4")]
    assert not outcome.rebuilt
    assert outcome.reason == "up_to_date"
    assert before == after


def test_new_member_triggers_rebuild(service, repo, seed, league):
    service.ensure_week_schedule("L1", "W4")
    seed.member("L1", "dave")

    outcome = service.ensure_week_schedule("L1", "W4")

    assert outcome.rebuilt
    matchups = repo.matchups("L1", "W4")
    assert len(matchups) == 2
    assert all(not m.home.is_benchmark and not m.away.is_benchmark for m in matchups)
    ids = sorted(pid for m in matchups for pid in (m.home.participant_id, m.away.participant_id))
    assert ids == ["alice", "bob", "carol", "dave"]


def test_departed_member_keeps_existing_pairing(service, repo, seed, league):
    """Leaving before lock does not reshuffle a pairing already made."""
    service.ensure_week_schedule("L1", "W4")
    seed.remove_member("L1", "carol")

    outcome = service.ensure_week_schedule("L1", "W4")

    assert not outcome.rebuilt
    assert outcome.reason == "up_to_date"


def test_locked_week_is_never_rebuilt(service, repo, seed, league):
    seed.matchup("W3", "alice", "bob")

    outcome = service.ensure_week_schedule("L1", "W3")

    assert not outcome.rebuilt
    assert outcome.reason == "locked"
    assert len(repo.matchups("L1", "W3")) == 1


def test_duplicate_participants_rebuilt(service, repo, seed, league):
    seed.benchmark()
    seed.matchup("W4", "alice", "bob")
    seed.matchup("W4", "alice", BENCHMARK_ID)

    outcome = service.ensure_week_schedule("L1", "W4")

    assert outcome.rebuilt
    assert outcome.reason == "duplicate_participants"


def test_unknown_week_raises(service, league):
    with pytest.raises(NotFoundError):
        service.ensure_week_schedule("L1", "W99")


def test_select_current_week_prefers_week_in_progress(repo, league):
    weeks = repo.weeks("L1")

    assert select_current_week(weeks, NOW, "America/New_York").week_id == "W3"


def test_select_current_week_falls_back_to_next_then_last(repo, league):
    weeks = repo.weeks("L1")
    saturday = datetime(2026, 1, 24, 18, 0, tzinfo=timezone.utc)
    after_season = datetime(2026, 6, 1, tzinfo=timezone.utc)

    assert select_current_week(weeks, saturday, "America/New_York").week_id == "W4"
    assert select_current_week(weeks, after_season, "America/New_York").week_id == "W4"
    assert select_current_week([], NOW, "America/New_York") is None


def test_week_lock_and_end_boundaries():
    week = Week(
        week_id="W",
        league_id="L1",
        week_start=datetime(2026, 1, 12).date(),
        week_end=datetime(2026, 1, 16).date(),
        lock_time=datetime(2026, 1, 12, 14, 30, tzinfo=timezone.utc),
    )

    assert week.is_locked(datetime(2026, 1, 12, 14, 30, tzinfo=timezone.utc))
    assert not week.is_locked(datetime(2026, 1, 12, 14, 29, tzinfo=timezone.utc))
    # Friday 23:59:59.999 Eastern is 04:59:59.999 UTC on Saturday in winter
    assert not week.has_ended(datetime(2026, 1, 17, 4, 59, tzinfo=timezone.utc), "America/New_York")
    assert week.has_ended(datetime(2026, 1, 17, 5, 0, tzinfo=timezone.utc), "America/New_York")
