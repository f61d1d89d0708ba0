"""Exercise-ID validation and repair for generated plans.

After validate_plan every PlannedExercise references a catalog exercise and
carries that exercise's exact name, so the plan can be stored and rendered
without lookup failures.

Repair is a heuristic: the substitute is the first catalog exercise (in
catalog order) whose name contains the first word of the generated name,
else the first catalog exercise. The substitute may train different
muscles than the model intended. Every repair is logged at WARNING.
"""

from collections.abc import Sequence
from typing import Literal

from loguru import logger
from pydantic import BaseModel

from liftcoach.errors import ValidationRepairExhausted
from liftcoach.workouts.types import Exercise, PlannedExercise, WorkoutPlan


class ExerciseRepair(BaseModel):
    """A single substitution made by the validator."""

    day: str
    original_id: int | None
    original_name: str
    replacement_id: int
    replacement_name: str
    strategy: Literal["name_match", "fallback"]


class PlanRepairResult(BaseModel):
    plan: WorkoutPlan
    repairs: list[ExerciseRepair]


def find_similar_exercise(name: str, exercises: Sequence[Exercise]) -> Exercise | None:
    """Return the first exercise whose name contains the first word of ``name``.

    Case-insensitive. Ties resolve to catalog order.
    """
    words = name.lower().split()
    if not words:
        return None
    first_word = words[0]
    for exercise in exercises:
        if exercise.name and first_word in exercise.name.lower():
            return exercise
    return None


def _apply(planned: PlannedExercise, exercise: Exercise) -> None:
    planned.exercise_id = exercise.id
    planned.exercise_name = exercise.name
    planned.primary_muscles = list(exercise.muscles)


def repair_plan(plan: WorkoutPlan, exercises: Sequence[Exercise]) -> PlanRepairResult:
    """Validate every exercise reference in ``plan`` and repair unknown IDs.

    The input plan is not modified; a repaired deep copy is returned.

    Args:
        plan: Generated plan
        exercises: Exercise catalog the plan must reference

    Returns:
        PlanRepairResult with the repaired plan and the repairs made

    Raises:
        ValidationRepairExhausted: If a repair is needed and the catalog is empty
    """
    catalog = {exercise.id: exercise for exercise in exercises}
    repaired = plan.model_copy(deep=True)
    repairs: list[ExerciseRepair] = []

    for day in repaired.workouts:
        for planned in day.all_exercises():
            known = catalog.get(planned.exercise_id) if planned.exercise_id is not None else None
            if known is not None:
                if planned.exercise_name != known.name:
                    planned.exercise_name = known.name
                if not planned.primary_muscles:
                    planned.primary_muscles = list(known.muscles)
                continue

            if not exercises:
                raise ValidationRepairExhausted(planned.exercise_name)

            logger.warning(
                f"Exercise ID {planned.exercise_id} not found in library",
                exercise_name=planned.exercise_name,
                day=day.day,
            )
            similar = find_similar_exercise(planned.exercise_name, exercises)
            replacement = similar or exercises[0]
            repairs.append(
                ExerciseRepair(
                    day=day.day,
                    original_id=planned.exercise_id,
                    original_name=planned.exercise_name,
                    replacement_id=replacement.id,
                    replacement_name=replacement.name,
                    strategy="name_match" if similar else "fallback",
                )
            )
            _apply(planned, replacement)

    if repairs:
        logger.info(f"Repaired {len(repairs)} exercise reference(s) in plan '{repaired.name}'")
    return PlanRepairResult(plan=repaired, repairs=repairs)


def validate_plan(plan: WorkoutPlan, exercises: Sequence[Exercise]) -> WorkoutPlan:
    """Return ``plan`` with every exercise reference valid against ``exercises``."""
    return repair_plan(plan, exercises).plan
