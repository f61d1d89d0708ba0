"""Workout plan generation, validation and strength estimation."""

from liftcoach.workouts.generator import PlanGenerator
from liftcoach.workouts.history import collect_user_history
from liftcoach.workouts.one_rep_max import estimate_one_rep_max, suggest_weight
from liftcoach.workouts.types import (
    ConversationTurn,
    DayPlan,
    Exercise,
    ExerciseHistory,
    PlannedExercise,
    StrengthSet,
    UserPreferences,
    WorkoutModule,
    WorkoutPlan,
)
from liftcoach.workouts.validator import repair_plan, validate_plan

__all__ = [
    "ConversationTurn",
    "DayPlan",
    "Exercise",
    "ExerciseHistory",
    "PlanGenerator",
    "PlannedExercise",
    "StrengthSet",
    "UserPreferences",
    "WorkoutModule",
    "WorkoutPlan",
    "collect_user_history",
    "estimate_one_rep_max",
    "repair_plan",
    "suggest_weight",
    "validate_plan",
]
