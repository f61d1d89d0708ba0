"""Conversion between the modular and flat day layouts.

Modular days group exercises into warmup/main/core/cooldown modules for
display. Flat days keep a single exercise list, which is what storage and
the calendar expect.
"""

from liftcoach.workouts.types import DayPlan, PlannedExercise, WorkoutModule, WorkoutPlan

DEFAULT_DAY_MINUTES = 60
WARMUP_MINUTES = 10
COOLDOWN_MINUTES = 10
MIN_MAIN_MINUTES = 30


def is_flat(plan: WorkoutPlan) -> bool:
    """True when every day carries a flat exercise list and no modules."""
    return bool(plan.workouts) and all(day.exercises and not day.modules for day in plan.workouts)


def to_flat(plan: WorkoutPlan) -> WorkoutPlan:
    """Flatten modules (sorted by order) into each day's exercise list."""
    days = []
    for day in plan.workouts:
        if not day.modules:
            days.append(day.model_copy(deep=True))
            continue
        exercises: list[PlannedExercise] = [e.model_copy(deep=True) for e in day.exercises]
        for module in sorted(day.modules, key=lambda m: m.order):
            for exercise in module.exercises:
                flat = exercise.model_copy(deep=True)
                if not flat.notes:
                    flat.notes = f"{module.name} - {module.description}"
                exercises.append(flat)
        days.append(
            DayPlan(
                day=day.day,
                name=day.name,
                description=day.description,
                total_duration_minutes=day.total_duration_minutes,
                exercises=exercises,
            )
        )
    return plan.model_copy(update={"workouts": days, "enabled_modules": []}, deep=True)


def to_modular(plan: WorkoutPlan) -> WorkoutPlan:
    """Wrap flat days in warm-up, main and cool-down modules.

    Days that already have modules are kept as they are.
    """
    days = []
    for day in plan.workouts:
        if day.modules:
            days.append(day.model_copy(deep=True))
            continue
        total = day.total_duration_minutes or DEFAULT_DAY_MINUTES
        modules = [
            WorkoutModule(
                type="warmup",
                name="Warm-up",
                description="Prepare your body for the workout",
                duration_minutes=WARMUP_MINUTES,
                order=0,
            ),
            WorkoutModule(
                type="main",
                name="Main Workout",
                description="Primary training exercises",
                duration_minutes=max(total - WARMUP_MINUTES - COOLDOWN_MINUTES, MIN_MAIN_MINUTES),
                exercises=[e.model_copy(deep=True) for e in day.exercises],
                order=1,
            ),
            WorkoutModule(
                type="cooldown",
                name="Cool-down",
                description="Stretching and recovery",
                duration_minutes=COOLDOWN_MINUTES,
                order=2,
            ),
        ]
        days.append(
            DayPlan(
                day=day.day,
                name=day.name,
                description=day.description,
                total_duration_minutes=day.total_duration_minutes,
                modules=modules,
            )
        )
    return plan.model_copy(
        update={"workouts": days, "enabled_modules": ["warmup", "main", "cooldown"]},
        deep=True,
    )
