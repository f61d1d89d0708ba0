"""Per-exercise progress trends."""

import datetime as dt
from collections.abc import Iterable

from pydantic import BaseModel


class PerformanceRecord(BaseModel):
    """One logged data point for an exercise."""

    exercise: str
    date: dt.date | dt.datetime
    weight: float | None = None
    reps: int | None = None
    estimated_1rm: float | None = None


class ExerciseTrend(BaseModel):
    exercise: str
    weight_change: float
    reps_change: float
    est1rm_change: float
    sessions: int


def _sort_key(record: PerformanceRecord) -> dt.datetime:
    value = record.date
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(dt.timezone.utc)
        return value.replace(tzinfo=None)
    return dt.datetime(value.year, value.month, value.day)


def group_by_exercise(records: Iterable[PerformanceRecord]) -> dict[str, list[PerformanceRecord]]:
    """Group records by exercise name, keeping first-seen order of exercises."""
    groups: dict[str, list[PerformanceRecord]] = {}
    for record in records:
        groups.setdefault(record.exercise, []).append(record)
    return groups


def analyze_trends(records: Iterable[PerformanceRecord]) -> list[ExerciseTrend]:
    """Compute first-to-last changes per exercise.

    Exercises with fewer than two records are left out (not enough data,
    which is different from zero change). A missing value counts as 0.
    Pure: no I/O, same input gives the same output.
    """
    trends = []
    for exercise, group in group_by_exercise(records).items():
        if len(group) < 2:
            continue
        ordered = sorted(group, key=_sort_key)
        first, last = ordered[0], ordered[-1]
        trends.append(
            ExerciseTrend(
                exercise=exercise,
                weight_change=(last.weight or 0) - (first.weight or 0),
                reps_change=(last.reps or 0) - (first.reps or 0),
                est1rm_change=(last.estimated_1rm or 0) - (first.estimated_1rm or 0),
                sessions=len(ordered),
            )
        )
    return trends
