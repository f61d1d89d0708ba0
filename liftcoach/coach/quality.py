"""Conversation quality assessment for the consultation phase.

The assessor fails soft: whatever goes wrong upstream, the caller gets a
QualityAssessment back and the dialogue keeps going.
"""

from collections.abc import Sequence

from loguru import logger
from pydantic import ValidationError

from liftcoach.coach.types import AssessmentContext, QualityAssessment, neutral_assessment
from liftcoach.config.settings import settings
from liftcoach.core.tracking import LoggerTrackingSink, TrackingSink
from liftcoach.errors import AssessmentDegraded
from liftcoach.services.llm.json_output import extract_json_object
from liftcoach.services.llm.text import TextGenerationRequest, TextGenerator
from liftcoach.workouts.types import ConversationTurn, UserPreferences

ASSESSMENT_MAX_TOKENS = 400


def average_user_turn_length(conversation_history: Sequence[ConversationTurn]) -> float:
    """Mean character length of user-authored turns; 0.0 when there are none."""
    user_turns = [turn for turn in conversation_history if turn.type == "user"]
    if not user_turns:
        return 0.0
    return sum(len(turn.content) for turn in user_turns) / len(user_turns)


def build_assessment_prompt(
    conversation_history: Sequence[ConversationTurn],
    preferences: UserPreferences,
    context: AssessmentContext,
) -> str:
    user_turns = [turn for turn in conversation_history if turn.type == "user"]
    transcript = "\n".join(f"{turn.type}: {turn.content}" for turn in conversation_history)
    return f"""Assess the quality of this fitness consultation conversation:

USER GOAL: {preferences.goal}
CONVERSATION LENGTH: {len(conversation_history)} messages
USER RESPONSES: {len(user_turns)}
AVG RESPONSE LENGTH: {average_user_turn_length(conversation_history):.0f} characters
QUESTION {context.question_count}/{context.max_questions}
PHASE: {context.phase}

FULL CONVERSATION:
{transcript}

Assess quality on these factors (1-10 scale):
1. DEPTH: How detailed and informative are the user's responses?
2. RELEVANCE: How relevant are responses to fitness program design?
3. ENGAGEMENT: How engaged and enthusiastic is the user?
4. CLARITY: How clear and specific are the user's preferences?

Also determine:
- Should we continue asking questions or move to program generation?
- What specific areas need more exploration?
- How can we improve the conversation?

Return JSON:
{{
  "score": overall_score_1_to_10,
  "factors": {{
    "depth": 1-10,
    "relevance": 1-10,
    "engagement": 1-10,
    "clarity": 1-10
  }},
  "suggestions": ["specific improvement suggestions"],
  "shouldContinue": true/false,
  "reasoning": "why continue or stop"
}}"""


def parse_assessment(raw: str) -> QualityAssessment:
    """Parse model output into a QualityAssessment.

    Raises:
        AssessmentDegraded: If the output holds no valid assessment object
    """
    try:
        payload = extract_json_object(raw)
        return QualityAssessment.model_validate(payload)
    except (ValueError, ValidationError) as e:
        raise AssessmentDegraded(f"Unusable assessment output: {e}") from e


class ConversationQualityAssessor:
    """Scores an ongoing consultation and recommends whether to keep asking."""

    def __init__(
        self,
        text_generator: TextGenerator,
        tracker: TrackingSink | None = None,
        model: str | None = None,
    ) -> None:
        self.text_generator = text_generator
        self.tracker = tracker or LoggerTrackingSink()
        self.model = model or settings.assessment_model

    async def _request_assessment(self, request: TextGenerationRequest) -> QualityAssessment:
        try:
            raw = await self.text_generator.complete(request)
        except Exception as e:
            raise AssessmentDegraded(f"Assessment call failed: {type(e).__name__}: {e}") from e
        return parse_assessment(raw or "")

    async def assess(
        self,
        conversation_history: Sequence[ConversationTurn],
        preferences: UserPreferences,
        context: AssessmentContext,
    ) -> QualityAssessment:
        """Rate the conversation; returns the neutral default on any failure."""
        request = TextGenerationRequest(
            model=self.model,
            system_prompt=build_assessment_prompt(conversation_history, preferences, context),
            user_prompt="Assess conversation quality.",
            max_tokens=ASSESSMENT_MAX_TOKENS,
        )
        try:
            assessment = await self._request_assessment(request)
        except AssessmentDegraded as e:
            logger.warning(f"Conversation assessment degraded to neutral default: {e.message}")
            self.tracker.track("conversation_assessment_degraded", question_count=context.question_count)
            return neutral_assessment()

        self.tracker.track(
            "conversation_assessed",
            score=assessment.score,
            should_continue=assessment.should_continue,
        )
        return assessment
