"""Training insights and progress analysis.

Insight types run one after another through a RequestSpacer, so a batch
never bursts the model endpoint.
"""

import json
from collections.abc import Sequence
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel, Field

from liftcoach.analytics.trends import PerformanceRecord, analyze_trends, group_by_exercise
from liftcoach.config.settings import settings
from liftcoach.core.rate_limit import RequestSpacer
from liftcoach.core.tracking import LoggerTrackingSink, TrackingSink
from liftcoach.errors import GenerationError, InsightGenerationError
from liftcoach.services.llm.json_output import extract_json_object
from liftcoach.services.llm.text import TextGenerationRequest, TextGenerator

InsightType = Literal["strength_profile", "training_patterns", "progression_gaps", "personalization_factors"]

INSIGHT_TYPES: tuple[InsightType, ...] = (
    "strength_profile",
    "training_patterns",
    "progression_gaps",
    "personalization_factors",
)

INSIGHT_SYSTEM_PROMPT = (
    "You are a fitness analytics expert. Always return valid JSON responses with the exact structure requested."
)
PROGRESS_SYSTEM_PROMPT = (
    "You are an expert fitness coach and data analyst. "
    "Provide concise, actionable fitness insights based on workout data."
)
INSIGHT_MAX_TOKENS = 800
PROGRESS_MAX_TOKENS = 800


class WorkoutFrequency(BaseModel):
    total_workouts: int = 0
    avg_workouts_per_week: float = 0
    current_streak: int = 0
    longest_streak: int = 0


class ExerciseStat(BaseModel):
    exercise_name: str
    total_sets: int = 0
    avg_weight: float | None = None
    avg_reps: float | None = None


class CoreLift(BaseModel):
    exercise_name: str
    current_1rm: float | None = None
    improvement_30d: float | None = None


class InsightData(BaseModel):
    """Everything the insight prompts draw on for one user."""

    workout_frequency: WorkoutFrequency | None = None
    exercise_stats: list[ExerciseStat] = Field(default_factory=list)
    core_lifts: list[CoreLift] = Field(default_factory=list)
    progress: list[PerformanceRecord] = Field(default_factory=list)
    user_profile: dict[str, Any] = Field(default_factory=dict)
    timeframe: str = "month"


class ProgressDataPoints(BaseModel):
    total_workouts: int
    total_sets: int
    exercises_tracked: int
    trends_count: int


class ProgressAnalysis(BaseModel):
    analysis: str
    data_points: ProgressDataPoints


def _fmt(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.0f}"


def _signed(value: float) -> str:
    return f"{'+' if value > 0 else ''}{value:.1f}"


def _progress_lines(data: InsightData, limit: int) -> str:
    return "\n".join(
        f"{p.exercise}: {p.weight or 0}kg x {p.reps or 0}r ({p.date.isoformat()})" for p in data.progress[:limit]
    )


def build_insight_prompt(insight_type: InsightType, data: InsightData) -> str:
    """Prompt for one insight type."""
    freq = data.workout_frequency or WorkoutFrequency()

    if insight_type == "strength_profile":
        lifts = json.dumps([lift.model_dump() for lift in data.core_lifts], indent=2)
        stats = "\n".join(
            f"{s.exercise_name}: {s.total_sets} sets, avg {_fmt(s.avg_weight)}kg x {_fmt(s.avg_reps)} reps"
            for s in data.exercise_stats[:15]
        )
        return f"""Analyze this user's strength profile and identify patterns:

CORE LIFTS DATA:
{lifts}

EXERCISE PERFORMANCE:
{stats}

RECENT PROGRESS:
{_progress_lines(data, 20)}

Analyze and return JSON with:
{{
  "dominantMovements": ["movement patterns they excel at"],
  "weakPoints": ["areas needing development"],
  "asymmetries": ["imbalances or gaps"],
  "strengthLevel": "beginner/intermediate/advanced",
  "recommendations": ["specific targeted advice"]
}}"""

    if insight_type == "training_patterns":
        stats = "\n".join(f"{s.exercise_name}: {s.total_sets} sets performed" for s in data.exercise_stats[:10])
        return f"""Analyze this user's training patterns and preferences:

WORKOUT FREQUENCY:
- Total workouts: {freq.total_workouts}
- Avg per week: {freq.avg_workouts_per_week}
- Current streak: {freq.current_streak}
- Longest streak: {freq.longest_streak}

EXERCISE PREFERENCES:
{stats}

USER PROFILE:
{json.dumps(data.user_profile, indent=2, default=str)}

Analyze and return JSON with:
{{
  "preferredVolume": "low/moderate/high description",
  "recoveryNeeds": "recovery pattern analysis",
  "consistencyScore": 1-10,
  "exercisePreferences": ["preferred exercise types"],
  "adherenceFactors": ["what keeps them consistent"],
  "optimizationTips": ["how to improve their routine"]
}}"""

    if insight_type == "progression_gaps":
        lifts = "\n".join(
            f"{lift.exercise_name}: {_fmt(lift.current_1rm)}kg ({_signed(lift.improvement_30d or 0)}kg in 30d)"
            for lift in data.core_lifts
        )
        trends = "\n".join(
            f"{t.exercise}: {_signed(t.est1rm_change)}kg est. 1RM over {t.sessions} sessions"
            for t in analyze_trends(data.progress)
        )
        return f"""Identify progression gaps and stalled exercises:

EXERCISE PERFORMANCE OVER TIME:
{_progress_lines(data, 30)}

TRENDS:
{trends or "Not enough repeated sessions for trends."}

CORE LIFT PROGRESSION:
{lifts}

TIME PERIOD: {data.timeframe}

Analyze and return JSON with:
{{
  "stalledExercises": ["exercises showing no progress"],
  "fastProgressors": ["exercises with good progress"],
  "plateauReasons": ["likely causes of stalls"],
  "progressionStrategies": ["specific recommendations to break plateaus"],
  "volumeAdjustments": ["how to modify training volume"]
}}"""

    stats = "\n".join(f"{s.exercise_name}: {s.total_sets} sets" for s in data.exercise_stats[:8])
    return f"""Identify personalization factors for this user:

USER PROFILE & GOALS:
{json.dumps(data.user_profile, indent=2, default=str)}

TRAINING CONSISTENCY:
- Current streak: {freq.current_streak} workouts
- Longest streak: {freq.longest_streak} workouts
- Average frequency: {freq.avg_workouts_per_week}/week

EXERCISE ENGAGEMENT:
{stats}

Analyze and return JSON with:
{{
  "motivationTriggers": ["what likely motivates them"],
  "adherencePredictors": ["factors that improve consistency"],
  "adaptationStyle": "how they respond to training",
  "communicationPreferences": ["how to best coach them"],
  "programStructure": ["optimal program layout for them"]
}}"""


def build_progress_prompt(records: Sequence[PerformanceRecord], recent_workouts: int, total_sets: int) -> str:
    trends = analyze_trends(records)
    exercises_tracked = len(group_by_exercise(records))
    trend_lines = "\n".join(
        f"- {t.exercise}: {_signed(t.weight_change)}kg weight change, {_signed(t.reps_change)} reps change, "
        f"{_signed(t.est1rm_change)}kg 1RM change over {t.sessions} sessions"
        for t in trends
    )
    recent = "\n".join(
        f"- {r.exercise}: {r.date.isoformat()}, {r.weight or 0}kg x {r.reps or 0} reps "
        f"(Est 1RM: {(r.estimated_1rm or 0):.1f}kg)"
        for r in list(records)[:10]
    )
    return f"""You are a fitness coach analyzing a user's workout progress. Provide a concise, motivational analysis based on this data:

**Recent Activity:**
- Completed {recent_workouts} workouts recently
- Performed {total_sets} sets total
- Tracking {exercises_tracked} different exercises

**Progress Trends:**
{trend_lines}

**Recent Progress Data:**
{recent}

Provide a markdown-formatted analysis covering:
1. **Overall Progress** - Key achievements and improvements
2. **Strengths** - What's going well
3. **Areas for Focus** - Specific recommendations for improvement
4. **Next Steps** - Actionable advice for continued progress

Keep it concise (max 300 words), encouraging, and data-driven. Use markdown formatting with headers, bullet points, and emphasis."""


class InsightEngine:
    """Generates per-type insights and progress analyses."""

    def __init__(
        self,
        text_generator: TextGenerator,
        tracker: TrackingSink | None = None,
        spacer: RequestSpacer | None = None,
        model: str | None = None,
    ) -> None:
        self.text_generator = text_generator
        self.tracker = tracker or LoggerTrackingSink()
        self.spacer = spacer or RequestSpacer(settings.insight_spacing_seconds)
        self.model = model or settings.insight_model

    async def _complete(self, system_prompt: str, user_prompt: str, max_tokens: int) -> str:
        request = TextGenerationRequest(
            model=self.model,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            max_tokens=max_tokens,
        )
        async with self.spacer:
            try:
                return await self.text_generator.complete(request)
            except Exception as e:
                logger.error(f"Insight call failed: {type(e).__name__}: {e}")
                raise GenerationError(f"Text generation service error: {e}") from e

    async def generate(self, insight_type: InsightType, data: InsightData) -> dict[str, Any]:
        """Generate one insight object.

        Raises:
            GenerationError: If the call fails
            InsightGenerationError: If the response holds no JSON object
        """
        raw = await self._complete(INSIGHT_SYSTEM_PROMPT, build_insight_prompt(insight_type, data), INSIGHT_MAX_TOKENS)
        try:
            insight = extract_json_object(raw or "")
        except ValueError as e:
            logger.error(f"Invalid JSON response for {insight_type} insight")
            raise InsightGenerationError(insight_type, "Invalid JSON response from AI") from e
        self.tracker.track("insight_generated", insight_type=insight_type)
        return insight

    async def generate_all(
        self,
        data: InsightData,
        insight_types: Sequence[InsightType] = INSIGHT_TYPES,
    ) -> dict[str, dict[str, Any] | None]:
        """Generate insight types in order; a failed type maps to None."""
        results: dict[str, dict[str, Any] | None] = {}
        for insight_type in insight_types:
            try:
                results[insight_type] = await self.generate(insight_type, data)
            except GenerationError as e:
                logger.warning(f"Insight {insight_type} unavailable: {e.message}")
                self.tracker.track("insight_failed", insight_type=insight_type)
                results[insight_type] = None
        return results

    async def analyze_progress(
        self,
        records: Sequence[PerformanceRecord],
        recent_workouts: int = 0,
        total_sets: int | None = None,
    ) -> ProgressAnalysis:
        """Markdown progress analysis built from the user's trends.

        Raises:
            GenerationError: If the call fails or returns nothing
        """
        total_sets = len(records) if total_sets is None else total_sets
        prompt = build_progress_prompt(records, recent_workouts, total_sets)
        analysis = await self._complete(PROGRESS_SYSTEM_PROMPT, prompt, PROGRESS_MAX_TOKENS)
        if not analysis or not analysis.strip():
            raise GenerationError("Empty progress analysis from text generation service")

        data_points = ProgressDataPoints(
            total_workouts=recent_workouts,
            total_sets=total_sets,
            exercises_tracked=len(group_by_exercise(records)),
            trends_count=len(analyze_trends(records)),
        )
        logger.info("Progress analysis generated", trends_count=data_points.trends_count)
        return ProgressAnalysis(analysis=analysis.strip(), data_points=data_points)
