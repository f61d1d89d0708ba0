"""FastAPI providers for services and repositories.

Every component is built here with its collaborators passed in, so tests
swap any of them through ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends, Header
from sqlalchemy.orm import Session, sessionmaker

from liftcoach.analytics.insights import InsightEngine
from liftcoach.coach.consultation import ConsultationCoach
from liftcoach.coach.quality import ConversationQualityAssessor
from liftcoach.coach.substitution import ExerciseSubstitutionAdvisor
from liftcoach.core.tracking import LoggerTrackingSink, TrackingSink
from liftcoach.db.metrics import SessionMetricsSink, SqlSessionMetrics
from liftcoach.db.repositories import PlanRepository, SqlExerciseLibrary, SqlPerformanceRecords, SqlStrengthHistory
from liftcoach.db.session import get_db, get_session_factory
from liftcoach.services.llm.text import PydanticAITextGenerator, TextGenerator
from liftcoach.services.speech.transcription import OpenAISpeechToText, SpeechToText
from liftcoach.voice.transcriber import VoiceTranscriber
from liftcoach.workouts.generator import PlanGenerator
from liftcoach.workouts.history import StrengthHistoryProvider


@lru_cache
def get_text_generator() -> TextGenerator:
    return PydanticAITextGenerator()


@lru_cache
def get_speech_to_text() -> SpeechToText:
    return OpenAISpeechToText()


def get_metrics_session_factory() -> sessionmaker[Session]:
    return get_session_factory()


def get_tracker(
    user_id: str | None = Header(default=None, alias="X-User-Id"),
    session_id: str | None = Header(default=None, alias="X-Session-Id"),
    session_factory: sessionmaker[Session] = Depends(get_metrics_session_factory),
) -> TrackingSink:
    """Requests that name a user and consultation session get their metrics stored."""
    if user_id and session_id:
        return SessionMetricsSink(user_id, session_id, session_factory)
    return LoggerTrackingSink()


def get_plan_generator(
    text_generator: TextGenerator = Depends(get_text_generator),
    tracker: TrackingSink = Depends(get_tracker),
) -> PlanGenerator:
    return PlanGenerator(text_generator, tracker=tracker)


def get_quality_assessor(
    text_generator: TextGenerator = Depends(get_text_generator),
    tracker: TrackingSink = Depends(get_tracker),
) -> ConversationQualityAssessor:
    return ConversationQualityAssessor(text_generator, tracker=tracker)


def get_consultation_coach(
    text_generator: TextGenerator = Depends(get_text_generator),
    tracker: TrackingSink = Depends(get_tracker),
) -> ConsultationCoach:
    return ConsultationCoach(text_generator, tracker=tracker)


def get_voice_transcriber(
    speech_to_text: SpeechToText = Depends(get_speech_to_text),
    text_generator: TextGenerator = Depends(get_text_generator),
    tracker: TrackingSink = Depends(get_tracker),
) -> VoiceTranscriber:
    return VoiceTranscriber(speech_to_text, text_generator, tracker=tracker)


def get_substitution_advisor(
    text_generator: TextGenerator = Depends(get_text_generator),
    tracker: TrackingSink = Depends(get_tracker),
) -> ExerciseSubstitutionAdvisor:
    return ExerciseSubstitutionAdvisor(text_generator, tracker=tracker)


def get_insight_engine(
    text_generator: TextGenerator = Depends(get_text_generator),
    tracker: TrackingSink = Depends(get_tracker),
) -> InsightEngine:
    return InsightEngine(text_generator, tracker=tracker)


def get_exercise_library(db: Session = Depends(get_db)) -> SqlExerciseLibrary:
    return SqlExerciseLibrary(db)


def get_strength_history() -> StrengthHistoryProvider:
    return SqlStrengthHistory()


def get_performance_records(db: Session = Depends(get_db)) -> SqlPerformanceRecords:
    return SqlPerformanceRecords(db)


def get_plan_repository(db: Session = Depends(get_db)) -> PlanRepository:
    return PlanRepository(db)


def get_session_metrics(db: Session = Depends(get_db)) -> SqlSessionMetrics:
    return SqlSessionMetrics(db)
