"""Workout plan API endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from liftcoach.api.dependencies import (
    get_exercise_library,
    get_performance_records,
    get_plan_generator,
    get_plan_repository,
    get_strength_history,
)
from liftcoach.db.repositories import PlanRepository, SqlExerciseLibrary, SqlPerformanceRecords
from liftcoach.db.session import get_db
from liftcoach.errors import GenerationError, ValidationRepairExhausted
from liftcoach.workouts.generator import PlanGenerator
from liftcoach.workouts.history import StrengthHistoryProvider, collect_user_history
from liftcoach.workouts.one_rep_max import estimate_one_rep_max
from liftcoach.workouts.serializer import to_flat, to_modular
from liftcoach.workouts.types import ConversationTurn, Exercise, WorkoutPlan
from liftcoach.workouts.validator import ExerciseRepair

router = APIRouter(prefix="/workouts", tags=["workouts"])


class GenerateWorkoutRequest(BaseModel):
    prompt: str
    exercises: list[Exercise] = Field(default_factory=list)
    current_plan: WorkoutPlan | None = None
    conversation_history: list[ConversationTurn] = Field(default_factory=list)
    user_id: str | None = None
    save: bool = False


class GenerateWorkoutResponse(BaseModel):
    workout: WorkoutPlan
    message: str
    repairs: list[ExerciseRepair] = Field(default_factory=list)
    program_id: str | None = None


class FormatWorkoutRequest(BaseModel):
    plan: WorkoutPlan
    layout: Literal["flat", "modular"]


class LogSetRequest(BaseModel):
    user_id: str
    exercise_id: int
    weight: float | None = None
    reps: int | None = Field(default=None, ge=0)
    rir: int | None = Field(default=None, ge=0)


class LogSetResponse(BaseModel):
    id: int
    estimated_1rm: float | None = None


@router.post("/generate", response_model=GenerateWorkoutResponse)
async def generate_workout(
    request: GenerateWorkoutRequest,
    generator: PlanGenerator = Depends(get_plan_generator),
    library: SqlExerciseLibrary = Depends(get_exercise_library),
    history_provider: StrengthHistoryProvider = Depends(get_strength_history),
    plans: PlanRepository = Depends(get_plan_repository),
    db: Session = Depends(get_db),
) -> GenerateWorkoutResponse:
    """Generate a new workout plan or revise ``current_plan``.

    Falls back to the stored exercise catalog when the request carries none.

    Raises:
        HTTPException: 400 on blank prompt, 422 if repair is impossible,
            502 if the text-generation service fails
    """
    if not request.prompt.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Prompt is required")

    exercises = request.exercises or library.list()
    is_revision = request.current_plan is not None
    logger.info(
        "Workout generation requested",
        user_id=request.user_id,
        mode="modify" if is_revision else "create",
        exercise_count=len(exercises),
    )

    user_history = {}
    if request.user_id:
        user_history = await collect_user_history(history_provider, request.user_id, exercises)

    try:
        result = await generator.generate_with_repairs(
            request.prompt,
            exercises,
            current_plan=request.current_plan,
            conversation_history=request.conversation_history,
            user_history=user_history,
        )
    except ValidationRepairExhausted as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message) from e
    except GenerationError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message) from e

    program_id = None
    if request.save and request.user_id:
        program_id = plans.save(request.user_id, result.plan)
        db.commit()

    return GenerateWorkoutResponse(
        workout=result.plan,
        message="Workout modified successfully" if is_revision else "Workout generated successfully",
        repairs=result.repairs,
        program_id=program_id,
    )


@router.post("/format", response_model=WorkoutPlan)
def format_workout(request: FormatWorkoutRequest) -> WorkoutPlan:
    """Convert a plan between the flat and module layouts."""
    if request.layout == "flat":
        return to_flat(request.plan)
    return to_modular(request.plan)


@router.get("/programs/{program_id}", response_model=WorkoutPlan)
def get_program(program_id: str, plans: PlanRepository = Depends(get_plan_repository)) -> WorkoutPlan:
    plan = plans.get(program_id)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workout program not found")
    return plan


@router.post("/sets", response_model=LogSetResponse, status_code=status.HTTP_201_CREATED)
def log_set(
    request: LogSetRequest,
    records: SqlPerformanceRecords = Depends(get_performance_records),
    db: Session = Depends(get_db),
) -> LogSetResponse:
    """Record a performed set, typically from voice transcription output.

    Raises:
        HTTPException: 404 if the exercise is not in the catalog
    """
    if not records.has_exercise(request.exercise_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Exercise {request.exercise_id} not found")
    row = records.log_set(request.user_id, request.exercise_id, request.weight, request.reps, request.rir)
    db.commit()
    estimated = None
    if request.weight and request.reps and request.weight > 0 and request.reps > 0:
        estimated = estimate_one_rep_max(request.weight, request.reps, request.rir).estimated_1rm
    return LogSetResponse(id=row.id, estimated_1rm=estimated)
