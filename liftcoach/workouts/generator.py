"""Workout plan generator.

Builds the create/modify instruction around the exercise catalog, calls the
text-generation service once, extracts the plan JSON from the raw response,
validates it against the plan schema, and repairs exercise references.

No retries: a GenerationError goes back to the caller, who decides whether
to resubmit. No persistence: storing the plan is the caller's job.
"""

from collections.abc import Mapping, Sequence

from loguru import logger
from pydantic import ValidationError

from liftcoach.config.settings import settings
from liftcoach.core.tracking import LoggerTrackingSink, TrackingSink
from liftcoach.errors import GenerationError
from liftcoach.services.llm.json_output import extract_json_object
from liftcoach.services.llm.text import TextGenerationRequest, TextGenerator
from liftcoach.workouts.one_rep_max import suggest_weight
from liftcoach.workouts.prompts import build_plan_system_prompt, build_plan_user_prompt
from liftcoach.workouts.types import (
    ConversationTurn,
    DayPlan,
    Exercise,
    ExerciseHistory,
    PlannedExercise,
    WorkoutPlan,
)
from liftcoach.workouts.validator import PlanRepairResult, repair_plan

REQUIRED_PLAN_FIELDS = ("name", "workouts")

FALLBACK_DAYS = ("Monday", "Wednesday", "Friday")
FALLBACK_EXERCISES_PER_DAY = 5


def build_fallback_plan(exercises: Sequence[Exercise]) -> WorkoutPlan:
    """Three full-body days drawn from the catalog, used when the model returns no exercises."""
    workouts = []
    for index, day in enumerate(FALLBACK_DAYS):
        start = index * FALLBACK_EXERCISES_PER_DAY
        picked = exercises[start : start + FALLBACK_EXERCISES_PER_DAY]
        workouts.append(
            DayPlan(
                day=day,
                name=f"Full Body {index + 1}",
                description="Auto-generated fallback when AI output was empty.",
                exercises=[
                    PlannedExercise(
                        exercise_id=exercise.id,
                        exercise_name=exercise.name,
                        sets=3,
                        reps="8-12",
                        rest="60-90s",
                        suggested_weight="Start moderate",
                        notes="Adjust weight to stay in target reps with good form.",
                        primary_muscles=list(exercise.muscles),
                    )
                    for exercise in picked
                ],
            )
        )
    return WorkoutPlan(
        name="Auto Plan",
        description="Fallback plan generated automatically due to empty AI output.",
        duration_weeks=4,
        days_per_week=len(workouts),
        difficulty="beginner",
        goals=["Build Muscle", "Lose Fat"],
        workouts=workouts,
    )


def parse_plan(raw: str) -> WorkoutPlan:
    """Parse raw model output into a WorkoutPlan.

    Raises:
        GenerationError: If no JSON object is present, required fields are
            missing, or the object does not match the plan schema
    """
    try:
        payload = extract_json_object(raw)
    except ValueError as e:
        raise GenerationError(f"Failed to parse generated workout plan: {e}") from e

    missing = [field for field in REQUIRED_PLAN_FIELDS if field not in payload]
    if missing:
        raise GenerationError(f"Generated workout plan is missing required fields: {', '.join(missing)}")

    try:
        return WorkoutPlan.model_validate(payload)
    except ValidationError as e:
        raise GenerationError(f"Generated workout plan failed schema validation: {e.error_count()} error(s)") from e


def apply_weight_suggestions(plan: WorkoutPlan, user_history: Mapping[int, ExerciseHistory]) -> int:
    """Fill missing suggested weights from the 1RM policy. Returns the count filled."""
    filled = 0
    for day in plan.workouts:
        for planned in day.all_exercises():
            if planned.suggested_weight or planned.exercise_id is None:
                continue
            history = user_history.get(planned.exercise_id)
            if history is None:
                continue
            try:
                weight = suggest_weight(history.estimated_1rm, planned.reps)
            except ValueError:
                continue
            planned.suggested_weight = f"{weight:g}kg"
            filled += 1
    return filled


class PlanGenerator:
    """Generates and revises workout plans.

    Attributes:
        text_generator: Text-generation service boundary
        tracker: Sink for generation events
    """

    def __init__(
        self,
        text_generator: TextGenerator,
        tracker: TrackingSink | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self.text_generator = text_generator
        self.tracker = tracker or LoggerTrackingSink()
        self.model = model or settings.plan_model
        self.max_tokens = max_tokens or settings.plan_max_tokens

    def build_request(
        self,
        prompt: str,
        exercises: Sequence[Exercise],
        current_plan: WorkoutPlan | None = None,
        conversation_history: Sequence[ConversationTurn] = (),
        user_history: Mapping[int, ExerciseHistory] | None = None,
    ) -> TextGenerationRequest:
        return TextGenerationRequest(
            model=self.model,
            system_prompt=build_plan_system_prompt(
                exercises,
                current_plan=current_plan,
                conversation_history=conversation_history,
                user_history=user_history,
            ),
            user_prompt=build_plan_user_prompt(prompt, is_revision=current_plan is not None),
            max_tokens=self.max_tokens,
        )

    async def generate_with_repairs(
        self,
        prompt: str,
        exercises: Sequence[Exercise],
        current_plan: WorkoutPlan | None = None,
        conversation_history: Sequence[ConversationTurn] = (),
        user_history: Mapping[int, ExerciseHistory] | None = None,
    ) -> PlanRepairResult:
        """Generate (or revise) a plan and return it with the repairs applied.

        Raises:
            GenerationError: On blank prompt, service failure, or unparseable output
            ValidationRepairExhausted: If repair is needed and the catalog is empty
        """
        if not prompt or not prompt.strip():
            raise GenerationError("Prompt is required")

        user_history = user_history or {}
        is_revision = current_plan is not None
        request = self.build_request(prompt, exercises, current_plan, conversation_history, user_history)
        self.tracker.track(
            "plan_generation_started",
            mode="modify" if is_revision else "create",
            exercise_count=len(exercises),
            history_count=len(user_history),
        )
        logger.info(
            "Sending plan request to text generator",
            mode="modify" if is_revision else "create",
            model=self.model,
            prompt_length=len(request.system_prompt),
        )

        try:
            raw = await self.text_generator.complete(request)
        except Exception as e:
            logger.error(f"Plan generation call failed: {type(e).__name__}: {e}")
            self.tracker.track("plan_generation_failed", reason="service_error")
            raise GenerationError(f"Text generation service error: {e}") from e

        if not raw or not raw.strip():
            self.tracker.track("plan_generation_failed", reason="empty_response")
            raise GenerationError("Empty response from text generation service")

        try:
            plan = parse_plan(raw)
        except GenerationError:
            logger.error("Failed to parse workout plan", raw_content=raw[:2000])
            self.tracker.track("plan_generation_failed", reason="parse_error")
            raise

        if plan.is_empty():
            logger.warning("AI returned no workouts/exercises. Building fallback plan.")
            plan = build_fallback_plan(exercises)

        result = repair_plan(plan, exercises)
        filled = apply_weight_suggestions(result.plan, user_history)

        self.tracker.track(
            "plan_generation_completed",
            mode="modify" if is_revision else "create",
            days=len(result.plan.workouts),
            repairs=len(result.repairs),
            weights_filled=filled,
        )
        return result

    async def generate(
        self,
        prompt: str,
        exercises: Sequence[Exercise],
        current_plan: WorkoutPlan | None = None,
        conversation_history: Sequence[ConversationTurn] = (),
        user_history: Mapping[int, ExerciseHistory] | None = None,
    ) -> WorkoutPlan:
        """Generate a new plan, or a complete replacement for ``current_plan``."""
        result = await self.generate_with_repairs(
            prompt,
            exercises,
            current_plan=current_plan,
            conversation_history=conversation_history,
            user_history=user_history,
        )
        return result.plan
