"""Exercise library and strength history providers, and history gathering."""

import asyncio
from collections.abc import Sequence
from typing import Protocol

from loguru import logger

from liftcoach.config.settings import settings
from liftcoach.workouts.types import Exercise, ExerciseHistory, StrengthSet


class ExerciseLibrary(Protocol):
    def list(self) -> list[Exercise]: ...


class StrengthHistoryProvider(Protocol):
    async def get_one_rep_max_data(self, user_id: str, exercise_id: int) -> list[StrengthSet]: ...


class StaticExerciseLibrary:
    """ExerciseLibrary over a fixed in-memory catalog."""

    def __init__(self, exercises: Sequence[Exercise]) -> None:
        self._exercises = list(exercises)

    def list(self) -> list[Exercise]:
        return list(self._exercises)


async def _lookup(
    provider: StrengthHistoryProvider,
    user_id: str,
    exercise: Exercise,
    recent_sets: int,
) -> ExerciseHistory | None:
    try:
        sets = await provider.get_one_rep_max_data(user_id, exercise.id)
    except Exception as e:
        logger.error(f"Error fetching 1RM data for user {user_id}, exercise {exercise.id}: {type(e).__name__}")
        return None

    if not sets:
        return None

    return ExerciseHistory(
        exercise_id=exercise.id,
        exercise_name=exercise.name,
        estimated_1rm=max(s.estimated_1rm for s in sets),
        recent_sets=sets[:recent_sets],
    )


async def collect_user_history(
    provider: StrengthHistoryProvider,
    user_id: str,
    exercises: Sequence[Exercise],
    recent_sets: int | None = None,
) -> dict[int, ExerciseHistory]:
    """Fetch strength history for every catalog exercise concurrently.

    Lookups are independent. One that fails or returns no sets means
    "no history" for that exercise and does not affect the others.

    Args:
        provider: Strength history provider
        user_id: User whose history to fetch
        exercises: Catalog to look up
        recent_sets: Sets kept per exercise (defaults to settings.history_recent_sets)

    Returns:
        Mapping of exercise ID to ExerciseHistory, only for exercises with data
    """
    limit = recent_sets if recent_sets is not None else settings.history_recent_sets
    results = await asyncio.gather(*[_lookup(provider, user_id, exercise, limit) for exercise in exercises])
    history = {item.exercise_id: item for item in results if item is not None}
    logger.info(f"User history data collected: {len(history)} exercises", user_id=user_id)
    return history
