"""Tests for concurrent strength history gathering."""

import asyncio

import pytest

from liftcoach.workouts.history import StaticExerciseLibrary, collect_user_history
from liftcoach.workouts.types import StrengthSet


class FakeHistoryProvider:
    def __init__(self, data, delay: float = 0.0):
        self.data = data
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_one_rep_max_data(self, user_id, exercise_id):
        self.calls.append((user_id, exercise_id))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            value = self.data.get(exercise_id, [])
            if isinstance(value, Exception):
                raise value
            return value
        finally:
            self.in_flight -= 1


def _sets(*estimates: float) -> list[StrengthSet]:
    return [StrengthSet(weight=e * 0.8, reps=6, rir=1, estimated_1rm=e) for e in estimates]


@pytest.mark.asyncio
async def test_collects_best_estimate_and_recent_sets(catalog):
    provider = FakeHistoryProvider({1: _sets(100, 110, 105, 102, 101, 99, 98)})

    history = await collect_user_history(provider, "user-1", catalog, recent_sets=5)

    assert list(history) == [1]
    bench = history[1]
    assert bench.exercise_name == "Barbell Bench Press"
    assert bench.estimated_1rm == 110
    assert [s.estimated_1rm for s in bench.recent_sets] == [100, 110, 105, 102, 101]


@pytest.mark.asyncio
async def test_failed_or_empty_lookups_mean_no_history(catalog):
    provider = FakeHistoryProvider(
        {
            1: _sets(100),
            2: RuntimeError("database unavailable"),
            3: [],
            4: _sets(60, 62),
        }
    )

    history = await collect_user_history(provider, "user-1", catalog)

    assert sorted(history) == [1, 4]
    assert len(provider.calls) == len(catalog)


@pytest.mark.asyncio
async def test_lookups_run_concurrently(catalog):
    provider = FakeHistoryProvider({}, delay=0.01)

    await collect_user_history(provider, "user-1", catalog)

    assert provider.max_in_flight == len(catalog)


def test_static_library_returns_a_copy(catalog):
    library = StaticExerciseLibrary(catalog)
    listed = library.list()
    listed.clear()
    assert library.list() == catalog
