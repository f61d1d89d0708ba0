"""Consultation API endpoints: quality assessment, questions, summaries and substitutions."""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from liftcoach.api.dependencies import (
    get_consultation_coach,
    get_exercise_library,
    get_quality_assessor,
    get_substitution_advisor,
)
from liftcoach.coach.consultation import ConsultationCoach
from liftcoach.coach.quality import ConversationQualityAssessor
from liftcoach.coach.substitution import ExerciseSubstitutionAdvisor, SubstitutionRequest, SubstitutionResult
from liftcoach.coach.types import AssessmentContext, QualityAssessment
from liftcoach.db.repositories import SqlExerciseLibrary
from liftcoach.errors import GenerationError
from liftcoach.workouts.types import ConversationTurn, Exercise, UserPreferences

router = APIRouter(prefix="/coach", tags=["coach"])


class ConsultationRequest(BaseModel):
    conversation_history: list[ConversationTurn] = Field(default_factory=list)
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    context: AssessmentContext = Field(default_factory=AssessmentContext)
    is_new_user: bool = False


class SubstitutionApiRequest(SubstitutionRequest):
    exercise_library: list[Exercise] = Field(default_factory=list)


class QualityResponse(BaseModel):
    quality: QualityAssessment


class QuestionResponse(BaseModel):
    question: str


class FollowUpResponse(BaseModel):
    message: str


class SummaryResponse(BaseModel):
    summary: str


@router.post("/quality", response_model=QualityResponse)
async def assess_quality(
    request: ConsultationRequest,
    assessor: ConversationQualityAssessor = Depends(get_quality_assessor),
) -> QualityResponse:
    """Rate the consultation so far. Never fails on model errors."""
    quality = await assessor.assess(request.conversation_history, request.preferences, request.context)
    return QualityResponse(quality=quality)


@router.post("/question", response_model=QuestionResponse)
async def next_question(
    request: ConsultationRequest,
    coach: ConsultationCoach = Depends(get_consultation_coach),
) -> QuestionResponse:
    try:
        question = await coach.next_question(
            request.preferences,
            request.conversation_history,
            request.context,
            is_new_user=request.is_new_user,
        )
    except GenerationError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message) from e
    return QuestionResponse(question=question)


@router.post("/follow-up", response_model=FollowUpResponse)
async def follow_up(
    request: ConsultationRequest,
    coach: ConsultationCoach = Depends(get_consultation_coach),
) -> FollowUpResponse:
    try:
        message = await coach.follow_up(request.conversation_history, request.context)
    except GenerationError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message) from e
    return FollowUpResponse(message=message)


@router.post("/summary", response_model=SummaryResponse)
async def summarize(
    request: ConsultationRequest,
    coach: ConsultationCoach = Depends(get_consultation_coach),
) -> SummaryResponse:
    try:
        summary = await coach.summarize(request.conversation_history, request.preferences)
    except GenerationError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message) from e
    return SummaryResponse(summary=summary)


@router.post("/substitutions", response_model=SubstitutionResult)
async def suggest_substitutions(
    request: SubstitutionApiRequest,
    advisor: ExerciseSubstitutionAdvisor = Depends(get_substitution_advisor),
    library: SqlExerciseLibrary = Depends(get_exercise_library),
) -> SubstitutionResult:
    """Suggest catalog replacements for an exercise mid-workout.

    Falls back to the stored exercise catalog when the request carries none.

    Raises:
        HTTPException: 422 if there is no catalog to choose from,
            502 if the text-generation service fails
    """
    exercises = request.exercise_library or library.list()
    if not exercises:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Exercise library is empty")
    try:
        return await advisor.suggest(request, exercises)
    except GenerationError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message) from e
