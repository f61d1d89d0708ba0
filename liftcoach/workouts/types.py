"""Workout plan types.

Model output is never trusted as already-typed: every plan the generator
returns is parsed into these models right after JSON extraction. Field
names match the snake_case JSON the model is asked to emit.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Difficulty = Literal["beginner", "intermediate", "advanced"]
ModuleType = Literal["warmup", "main", "core", "cooldown"]
TurnType = Literal["user", "assistant"]


class Exercise(BaseModel):
    """Catalog exercise. Read-only reference data."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    muscles: tuple[str, ...] = ()


class StrengthSet(BaseModel):
    """A recent set returned by the strength history provider.

    estimated_1rm is derived from weight/reps/rir and never stored.
    """

    weight: float
    reps: int
    rir: int = 0
    estimated_1rm: float


class ExerciseHistory(BaseModel):
    """Per-exercise strength context handed to the plan generator."""

    exercise_id: int
    exercise_name: str
    estimated_1rm: float
    recent_sets: list[StrengthSet] = Field(default_factory=list)


class PlannedExercise(BaseModel):
    """An exercise prescription inside a day or module."""

    exercise_id: int | None = None
    exercise_name: str = ""
    sets: int = 3
    reps: str = "8-12"
    rest: str = "90s"
    suggested_weight: str | None = None
    notes: str | None = None
    primary_muscles: list[str] = Field(default_factory=list)

    @field_validator("exercise_id", mode="before")
    @classmethod
    def coerce_exercise_id(cls, value: Any) -> int | None:
        """Unparseable IDs become None so the validator can repair them."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if value.is_integer() else None
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                return None
        return None

    @field_validator("reps", "rest", mode="before")
    @classmethod
    def stringify(cls, value: Any) -> str:
        if isinstance(value, int | float):
            return str(value)
        return value

    @field_validator("suggested_weight", mode="before")
    @classmethod
    def stringify_weight(cls, value: Any) -> str | None:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return f"{value}kg"
        return value

    @field_validator("primary_muscles", mode="before")
    @classmethod
    def default_muscles(cls, value: Any) -> list[str]:
        return [] if value is None else value


class WorkoutModule(BaseModel):
    """A warmup/main/core/cooldown block within a day."""

    type: ModuleType
    name: str
    description: str = ""
    duration_minutes: int = 0
    exercises: list[PlannedExercise] = Field(default_factory=list)
    order: int = 0


class DayPlan(BaseModel):
    """One training day."""

    day: str
    name: str = ""
    description: str = ""
    total_duration_minutes: int | None = None
    exercises: list[PlannedExercise] = Field(default_factory=list)
    modules: list[WorkoutModule] = Field(default_factory=list)

    def all_exercises(self) -> list[PlannedExercise]:
        """Exercises from the flat list followed by every module's exercises."""
        items = list(self.exercises)
        for module in self.modules:
            items.extend(module.exercises)
        return items


class WorkoutPlan(BaseModel):
    """A complete multi-week plan. Revisions replace it wholesale."""

    name: str
    description: str = ""
    duration_weeks: int = 4
    days_per_week: int = 3
    difficulty: Difficulty = "beginner"
    goals: list[str] = Field(default_factory=list)
    workouts: list[DayPlan]
    enabled_modules: list[ModuleType] = Field(default_factory=list)

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def is_empty(self) -> bool:
        return not self.workouts or all(not day.all_exercises() for day in self.workouts)


class ConversationTurn(BaseModel):
    type: TurnType
    content: str
    timestamp: datetime | None = None


class UserPreferences(BaseModel):
    """Profile answers collected before the consultation starts."""

    goal: str = "general fitness"
    days_per_week: int = 3
    session_length: int = 60
    equipment: str = "basic equipment"
    injuries: str = ""
    experience: str = "beginner"
