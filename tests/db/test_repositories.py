"""Tests for the SQL-backed providers."""

from datetime import datetime

import pytest

from liftcoach.db.repositories import PlanRepository, SqlExerciseLibrary, SqlPerformanceRecords, SqlStrengthHistory
from liftcoach.workouts.history import collect_user_history
from liftcoach.workouts.one_rep_max import estimate_one_rep_max
from liftcoach.workouts.types import WorkoutPlan


@pytest.fixture
def seeded_session(db_session, catalog):
    library = SqlExerciseLibrary(db_session)
    for exercise in reversed(catalog):
        library.add(exercise)
    db_session.flush()
    records = SqlPerformanceRecords(db_session)
    records.log_set("user-1", 1, 80, 8, 2, performed_at=datetime(2024, 5, 1, 18))
    records.log_set("user-1", 1, 85, 6, 1, performed_at=datetime(2024, 5, 8, 18))
    records.log_set("user-1", 1, None, 10, None, performed_at=datetime(2024, 5, 9, 18))
    records.log_set("user-1", 2, 120, 5, 0, performed_at=datetime(2024, 5, 2, 18))
    records.log_set("user-2", 2, 200, 3, 0, performed_at=datetime(2024, 5, 2, 18))
    db_session.commit()
    return db_session


def test_library_lists_in_id_order(seeded_session, catalog):
    assert SqlExerciseLibrary(seeded_session).list() == catalog


@pytest.mark.asyncio
async def test_strength_history_derives_one_rep_max(seeded_session, db_session_factory):
    provider = SqlStrengthHistory(db_session_factory)

    sets = await provider.get_one_rep_max_data("user-1", 1)

    assert [(s.weight, s.reps, s.rir) for s in sets] == [(85, 6, 1), (80, 8, 2)]
    assert sets[0].estimated_1rm == estimate_one_rep_max(85, 6, 1).estimated_1rm
    assert await provider.get_one_rep_max_data("user-1", 6) == []


@pytest.mark.asyncio
async def test_collect_history_from_database(seeded_session, db_session_factory, catalog):
    history = await collect_user_history(SqlStrengthHistory(db_session_factory), "user-1", catalog)

    assert sorted(history) == [1, 2]
    assert history[1].estimated_1rm == max(s.estimated_1rm for s in history[1].recent_sets)


def test_records_feed_trend_analysis(seeded_session):
    records = SqlPerformanceRecords(seeded_session).list_records("user-1")

    assert [r.exercise for r in records] == [
        "Barbell Bench Press",
        "Barbell Back Squat",
        "Barbell Bench Press",
        "Barbell Bench Press",
    ]
    assert records[-1].weight is None
    assert records[-1].estimated_1rm is None
    assert records[0].estimated_1rm == estimate_one_rep_max(80, 8, 2).estimated_1rm


def test_plan_repository_round_trip(db_session, plan_payload):
    repository = PlanRepository(db_session)
    plan = WorkoutPlan.model_validate(plan_payload)

    program_id = repository.save("user-1", plan)
    db_session.commit()

    assert repository.get(program_id) == plan
    assert repository.get("missing") is None
    assert [pid for pid, _ in repository.list_for_user("user-1")] == [program_id]
