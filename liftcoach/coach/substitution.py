"""Mid-workout exercise substitution.

When a lifter cannot do the planned exercise (pain, a busy machine,
fatigue), the advisor proposes replacements from the same catalog the plan
was built from. Suggestions outside the catalog are dropped; if none
survive, a catalog fallback is offered so the lifter is never left empty
handed.
"""

from collections.abc import Sequence

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from liftcoach.config.settings import settings
from liftcoach.core.tracking import LoggerTrackingSink, TrackingSink
from liftcoach.errors import GenerationError
from liftcoach.services.llm.json_output import extract_json_object
from liftcoach.services.llm.text import TextGenerationRequest, TextGenerator
from liftcoach.workouts.types import Exercise
from liftcoach.workouts.validator import find_similar_exercise

SUBSTITUTION_MAX_TOKENS = 1000
SUBSTITUTION_TEMPERATURE = 0.4
MAX_SUGGESTIONS = 3

SUBSTITUTION_SYSTEM_PROMPT = """You are an expert strength coach helping a lifter swap an exercise in the middle of a workout.

GUIDELINES:
1. Safety first: if the lifter mentions pain or injury, prefer easier, lower-impact options
2. Keep the muscle groups as close to the original exercise as possible
3. Respect the available equipment and the lifter's goals
4. Offer 2-3 options, each with a one-sentence reason
5. Say how the working weight should change for the new exercise
6. Assume the lifter is already partly fatigued

Only suggest exercises from the AVAILABLE EXERCISES list, using their exact IDs.

Return ONLY valid JSON:
{
  "suggestions": [
    {
      "exercise_id": number,
      "exercise_name": "string",
      "reason": "why this is a good substitute",
      "muscle_match": "primary" | "secondary" | "partial",
      "difficulty_adjustment": "easier" | "similar" | "harder",
      "weight_recommendation": "e.g. use 10-15% less weight"
    }
  ],
  "general_advice": "short guidance for the rest of the session"
}

muscle_match: primary = same muscles, secondary = mostly overlapping, partial = some overlap."""

FALLBACK_ADVICE = "No suitable substitute was suggested; the closest catalog match is shown instead."


class SubstitutionRequest(BaseModel):
    current_exercise: Exercise
    user_request: str = ""
    available_equipment: list[str] = Field(default_factory=list)
    user_goals: list[str] = Field(default_factory=list)
    injuries: list[str] = Field(default_factory=list)


class SubstitutionSuggestion(BaseModel):
    exercise_id: int
    exercise_name: str
    reason: str = ""
    muscle_match: str = "partial"
    difficulty_adjustment: str = "similar"
    weight_recommendation: str = ""


class SubstitutionResult(BaseModel):
    suggestions: list[SubstitutionSuggestion]
    general_advice: str = ""
    original_exercise: Exercise
    fallback: bool = False


def build_substitution_prompt(request: SubstitutionRequest, exercises: Sequence[Exercise]) -> str:
    current = request.current_exercise
    lines = [
        f"CURRENT EXERCISE: {current.name}",
        f"MUSCLE GROUPS: {', '.join(current.muscles)}",
        "",
        f'LIFTER REQUEST: "{request.user_request}"',
    ]
    if request.injuries:
        lines.append(f"INJURIES/CONCERNS: {', '.join(request.injuries)}")
    if request.available_equipment:
        lines.append(f"AVAILABLE EQUIPMENT: {', '.join(request.available_equipment)}")
    if request.user_goals:
        lines.append(f"GOALS: {', '.join(request.user_goals)}")
    lines.append("")
    lines.append("AVAILABLE EXERCISES:")
    lines.extend(f"- {ex.name} (ID: {ex.id}) [{', '.join(ex.muscles)}]" for ex in exercises)
    return "\n".join(lines)


def catalog_substitute(current: Exercise, exercises: Sequence[Exercise]) -> SubstitutionSuggestion | None:
    """Pick a replacement without the model.

    Prefers the first exercise sharing a muscle with ``current``, then the
    first name match. The current exercise itself is never returned.
    """
    others = [ex for ex in exercises if ex.id != current.id]
    muscles = set(current.muscles)
    for exercise in others:
        shared = muscles & set(exercise.muscles)
        if shared:
            return SubstitutionSuggestion(
                exercise_id=exercise.id,
                exercise_name=exercise.name,
                reason=f"Trains {', '.join(sorted(shared))} like {current.name}",
                muscle_match="primary" if set(exercise.muscles) == muscles else "partial",
            )
    similar = find_similar_exercise(current.name, others)
    if similar is None:
        return None
    return SubstitutionSuggestion(
        exercise_id=similar.id,
        exercise_name=similar.name,
        reason=f"Closest catalog match to {current.name}",
    )


def _catalog_suggestions(
    raw_suggestions: object,
    current: Exercise,
    catalog: dict[int, Exercise],
) -> list[SubstitutionSuggestion]:
    if not isinstance(raw_suggestions, list):
        return []
    suggestions: list[SubstitutionSuggestion] = []
    seen: set[int] = set()
    for item in raw_suggestions:
        try:
            suggestion = SubstitutionSuggestion.model_validate(item)
        except ValidationError:
            logger.warning(f"Dropping malformed substitution suggestion: {item!r}")
            continue
        exercise = catalog.get(suggestion.exercise_id)
        if exercise is None or exercise.id == current.id or exercise.id in seen:
            logger.warning(f"Dropping substitution outside the catalog: {suggestion.exercise_id}")
            continue
        seen.add(exercise.id)
        suggestions.append(suggestion.model_copy(update={"exercise_name": exercise.name}))
    return suggestions[:MAX_SUGGESTIONS]


class ExerciseSubstitutionAdvisor:
    """Suggests catalog replacements for an exercise during a session."""

    def __init__(
        self,
        text_generator: TextGenerator,
        tracker: TrackingSink | None = None,
        model: str | None = None,
    ) -> None:
        self.text_generator = text_generator
        self.tracker = tracker or LoggerTrackingSink()
        self.model = model or settings.substitution_model

    async def suggest(self, request: SubstitutionRequest, exercises: Sequence[Exercise]) -> SubstitutionResult:
        """Suggest up to three substitutes for ``request.current_exercise``.

        Args:
            request: The exercise being replaced and the lifter's situation
            exercises: Catalog every suggestion must come from

        Returns:
            SubstitutionResult; ``fallback`` is set when the catalog fallback was used

        Raises:
            GenerationError: If the model call fails or returns no JSON object
        """
        model_request = TextGenerationRequest(
            model=self.model,
            system_prompt=SUBSTITUTION_SYSTEM_PROMPT,
            user_prompt=build_substitution_prompt(request, exercises),
            max_tokens=SUBSTITUTION_MAX_TOKENS,
            temperature=SUBSTITUTION_TEMPERATURE,
        )
        try:
            raw = await self.text_generator.complete(model_request)
        except Exception as e:
            logger.error(f"Exercise substitution failed: {type(e).__name__}: {e}")
            self.tracker.track("substitution_failed", reason="service_error")
            raise GenerationError(f"Text generation service error: {e}") from e

        try:
            payload = extract_json_object(raw or "")
        except ValueError as e:
            logger.error("Failed to parse substitution response", raw_content=(raw or "")[:500])
            self.tracker.track("substitution_failed", reason="parse_error")
            raise GenerationError("Failed to parse exercise substitution response") from e

        current = request.current_exercise
        catalog = {exercise.id: exercise for exercise in exercises}
        suggestions = _catalog_suggestions(payload.get("suggestions"), current, catalog)
        advice = str(payload.get("general_advice") or "")

        fallback = False
        if not suggestions:
            substitute = catalog_substitute(current, exercises)
            if substitute is not None:
                suggestions = [substitute]
                advice = advice or FALLBACK_ADVICE
                fallback = True

        logger.info(f"Suggested {len(suggestions)} substitutes for exercise {current.id} (fallback={fallback})")
        self.tracker.track(
            "substitution_suggested",
            exercise_id=current.id,
            suggestion_count=len(suggestions),
            fallback=fallback,
        )
        return SubstitutionResult(
            suggestions=suggestions,
            general_advice=advice,
            original_exercise=current,
            fallback=fallback,
        )
