"""Consultation coach: the question/answer phase before plan generation."""

import time
from collections.abc import Sequence

from loguru import logger

from liftcoach.coach.types import AssessmentContext
from liftcoach.config.settings import settings
from liftcoach.core.tracking import LoggerTrackingSink, TrackingSink
from liftcoach.errors import GenerationError
from liftcoach.services.llm.text import TextGenerationRequest, TextGenerator
from liftcoach.workouts.types import ConversationTurn, UserPreferences

QUESTION_MAX_TOKENS = 200
FOLLOW_UP_MAX_TOKENS = 150
SUMMARY_MAX_TOKENS = 500
RECENT_TURNS = 4


def new_user_question(preferences: UserPreferences, question_count: int) -> str:
    """Fixed fast-track questions for users with no training history."""
    questions = [
        f"Hi! I see you're just getting started with us. Given your goal of {preferences.goal}, what type of "
        "workouts do you enjoy most? For example, do you prefer strength training, cardio, bodyweight "
        "exercises, or a mix?",
        f"Thanks for that! Since you mentioned having {preferences.equipment} available, are there any specific "
        "exercises you've done before that you really enjoyed or would like to include in your program?",
        "Perfect! One more question to help me create the best program for you - what's the most challenging "
        "part about sticking to a workout routine for you? Is it time, motivation, not knowing what to do, "
        "or something else?",
        "Great insights! Finally, on a scale of 1-10, how would you rate your current fitness level, and are "
        "there any areas of your body you'd specifically like to focus on or avoid due to past injuries or "
        "preferences?",
        f"Excellent! I have enough information to create a personalized program that fits your "
        f"{preferences.goal} goal. Let me design something perfect for you!",
    ]
    if 0 <= question_count < len(questions):
        return questions[question_count]
    return questions[-1]


def _profile_block(preferences: UserPreferences) -> str:
    lines = [
        "USER PROFILE:",
        f"- Goal: {preferences.goal}",
        f"- Experience: {preferences.experience}",
        f"- Equipment: {preferences.equipment}",
        f"- Days/week: {preferences.days_per_week}",
        f"- Session length: {preferences.session_length}min",
    ]
    if preferences.injuries:
        lines.append(f"- Injuries: {preferences.injuries}")
    return "\n".join(lines)


def _transcript(turns: Sequence[ConversationTurn]) -> str:
    return "\n".join(f"{turn.type}: {turn.content}" for turn in turns)


class ConsultationCoach:
    """Drives the consultation that gathers context before generation."""

    def __init__(
        self,
        text_generator: TextGenerator,
        tracker: TrackingSink | None = None,
        model: str | None = None,
    ) -> None:
        self.text_generator = text_generator
        self.tracker = tracker or LoggerTrackingSink()
        self.model = model or settings.coach_model

    async def _complete(self, system_prompt: str, user_prompt: str, max_tokens: int, action: str) -> str:
        request = TextGenerationRequest(
            model=self.model,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            max_tokens=max_tokens,
        )
        started = time.perf_counter()
        try:
            content = await self.text_generator.complete(request)
        except Exception as e:
            logger.error(f"Consultation {action} failed: {type(e).__name__}: {e}")
            raise GenerationError(f"Text generation service error: {e}") from e
        if not content or not content.strip():
            raise GenerationError("Empty response from text generation service")
        elapsed_ms = round((time.perf_counter() - started) * 1000)
        self.tracker.track(f"consultation_{action}", source="model", response_time_ms=elapsed_ms)
        return content.strip()

    async def next_question(
        self,
        preferences: UserPreferences,
        conversation_history: Sequence[ConversationTurn],
        context: AssessmentContext,
        is_new_user: bool = False,
    ) -> str:
        """Return the next consultation question.

        New users get the first fast-track question without a model call.
        """
        if is_new_user and context.question_count == 0:
            self.tracker.track("consultation_question", source="fast_track")
            return new_user_question(preferences, context.question_count)

        system_prompt = f"""You are an adaptive AI fitness coach. Generate a personalized question based on the user's data and conversation flow.

{_profile_block(preferences)}

CONVERSATION CONTEXT:
Question {context.question_count}/{context.max_questions}
Phase: {context.phase}

RECENT CONVERSATION:
{_transcript(conversation_history[-RECENT_TURNS:])}

ADAPTIVE RULES:
1. If user gives short answers, ask more engaging questions
2. If user gives detailed answers, dig deeper into specific areas
3. If user seems confused, simplify and clarify
4. If user is experienced, ask more technical questions
5. If user mentions specific preferences, explore them further

Generate ONE personalized question that adapts to their response style and progresses the conversation toward better program design.

Question:"""
        return await self._complete(system_prompt, "Generate adaptive question.", QUESTION_MAX_TOKENS, "question")

    async def follow_up(
        self,
        conversation_history: Sequence[ConversationTurn],
        context: AssessmentContext,
    ) -> str:
        """Brief acknowledgement of the latest answer that bridges to what comes next."""
        last_user = next((turn for turn in reversed(conversation_history) if turn.type == "user"), None)
        system_prompt = f"""Generate a smart follow-up response based on the user's latest input:

LATEST USER RESPONSE: "{last_user.content if last_user else ''}"

CONTEXT:
Phase: {context.phase}
Question count: {context.question_count}

Generate a brief, intelligent follow-up that:
1. Acknowledges their response appropriately
2. Shows understanding of their specific situation
3. Bridges to the next logical question or program generation

Keep it concise (1-2 sentences) and natural."""
        return await self._complete(system_prompt, "Generate smart followup.", FOLLOW_UP_MAX_TOKENS, "follow_up")

    async def summarize(
        self,
        conversation_history: Sequence[ConversationTurn],
        preferences: UserPreferences,
    ) -> str:
        """Summarize the consultation into prompt material for plan generation."""
        system_prompt = f"""Create a concise summary of this fitness consultation:

{_profile_block(preferences)}

CONVERSATION:
{_transcript(conversation_history)}

Create a summary that captures:
1. Key user preferences and requirements discovered
2. Important constraints or limitations mentioned
3. Specific goals and motivations identified
4. Training preferences and style

Keep it concise but comprehensive - this will be used to generate their workout program."""
        return await self._complete(system_prompt, "Generate consultation summary.", SUMMARY_MAX_TOKENS, "summary")
