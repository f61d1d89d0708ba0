"""SQL-backed providers for the exercise catalog, strength history and programs."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from liftcoach.analytics.trends import PerformanceRecord
from liftcoach.db.models import ExerciseRow, PerformanceSetRow, WorkoutProgramRow
from liftcoach.db.session import get_session
from liftcoach.workouts.one_rep_max import estimate_one_rep_max
from liftcoach.workouts.types import Exercise, StrengthSet, WorkoutPlan


def _to_exercise(row: ExerciseRow) -> Exercise:
    return Exercise(id=row.id, name=row.name, muscles=tuple(row.primary_muscles or ()))


class SqlExerciseLibrary:
    """ExerciseLibrary over the exercises table, in id order."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list(self) -> list[Exercise]:
        rows = self.session.execute(select(ExerciseRow).order_by(ExerciseRow.id)).scalars().all()
        return [_to_exercise(row) for row in rows]

    def add(self, exercise: Exercise) -> None:
        self.session.add(ExerciseRow(id=exercise.id, name=exercise.name, primary_muscles=list(exercise.muscles)))


class SqlStrengthHistory:
    """StrengthHistoryProvider over performance_sets.

    Each lookup opens its own session in a worker thread, so concurrent
    lookups from collect_user_history never share a session.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None, limit: int = 20) -> None:
        self.session_factory = session_factory
        self.limit = limit

    def _load(self, user_id: str, exercise_id: int) -> list[StrengthSet]:
        with get_session(self.session_factory) as session:
            rows = (
                session.execute(
                    select(PerformanceSetRow)
                    .where(PerformanceSetRow.user_id == user_id, PerformanceSetRow.exercise_id == exercise_id)
                    .order_by(PerformanceSetRow.performed_at.desc())
                    .limit(self.limit)
                )
                .scalars()
                .all()
            )
            sets = []
            for row in rows:
                if not row.weight or not row.reps or row.weight <= 0 or row.reps <= 0:
                    continue
                estimate = estimate_one_rep_max(row.weight, row.reps, row.rir)
                sets.append(
                    StrengthSet(
                        weight=row.weight,
                        reps=row.reps,
                        rir=row.rir or 0,
                        estimated_1rm=estimate.estimated_1rm,
                    )
                )
            return sets

    async def get_one_rep_max_data(self, user_id: str, exercise_id: int) -> list[StrengthSet]:
        """Most recent usable sets first, each with its derived 1RM."""
        return await asyncio.to_thread(self._load, user_id, exercise_id)


class SqlPerformanceRecords:
    """Reads logged sets as trend-analysis records."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def has_exercise(self, exercise_id: int) -> bool:
        return self.session.get(ExerciseRow, exercise_id) is not None

    def log_set(
        self,
        user_id: str,
        exercise_id: int,
        weight: float | None,
        reps: int | None,
        rir: int | None = None,
        performed_at: datetime | None = None,
    ) -> PerformanceSetRow:
        row = PerformanceSetRow(
            user_id=user_id,
            exercise_id=exercise_id,
            weight=weight,
            reps=reps,
            rir=rir,
            performed_at=performed_at or datetime.now(timezone.utc),
        )
        self.session.add(row)
        self.session.flush()
        return row

    def list_records(self, user_id: str) -> list[PerformanceRecord]:
        rows = self.session.execute(
            select(PerformanceSetRow, ExerciseRow.name)
            .join(ExerciseRow, ExerciseRow.id == PerformanceSetRow.exercise_id)
            .where(PerformanceSetRow.user_id == user_id)
            .order_by(PerformanceSetRow.performed_at)
        ).all()

        records = []
        for row, exercise_name in rows:
            estimated = None
            if row.weight and row.reps and row.weight > 0 and row.reps > 0:
                estimated = estimate_one_rep_max(row.weight, row.reps, row.rir).estimated_1rm
            records.append(
                PerformanceRecord(
                    exercise=exercise_name,
                    date=row.performed_at,
                    weight=row.weight,
                    reps=row.reps,
                    estimated_1rm=estimated,
                )
            )
        return records


class PlanRepository:
    """Stores generated plans as opaque JSON records."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def save(self, user_id: str, plan: WorkoutPlan) -> str:
        """Persist ``plan`` for ``user_id``.

        Returns:
            The new program ID
        """
        row = WorkoutProgramRow(user_id=user_id, name=plan.name, plan_json=plan.model_dump(mode="json"))
        self.session.add(row)
        self.session.flush()
        logger.info(f"Saved workout program {row.id}", user_id=user_id)
        return row.id

    def get(self, program_id: str) -> WorkoutPlan | None:
        row = self.session.get(WorkoutProgramRow, program_id)
        if row is None:
            return None
        return WorkoutPlan.model_validate(row.plan_json)

    def list_for_user(self, user_id: str) -> list[tuple[str, WorkoutPlan]]:
        rows = (
            self.session.execute(
                select(WorkoutProgramRow)
                .where(WorkoutProgramRow.user_id == user_id)
                .order_by(WorkoutProgramRow.created_at.desc())
            )
            .scalars()
            .all()
        )
        return [(row.id, WorkoutPlan.model_validate(row.plan_json)) for row in rows]
