"""Prompt construction for workout plan generation and revision."""

import json
from collections.abc import Mapping, Sequence

from liftcoach.workouts.types import ConversationTurn, Exercise, ExerciseHistory, WorkoutPlan

PLAN_SCHEMA = """{
  "name": "Program Name",
  "description": "Brief description of the program",
  "duration_weeks": 4-12,
  "days_per_week": 3-6,
  "difficulty": "beginner|intermediate|advanced",
  "goals": ["goal1", "goal2"],
  "workouts": [
    {
      "day": "Monday",
      "name": "Workout Name",
      "description": "Brief workout description",
      "exercises": [
        {
          "exercise_id": 123,
          "exercise_name": "Exact name from library",
          "sets": 3,
          "reps": "8-12",
          "rest": "90s",
          "suggested_weight": "75kg" or "Bodyweight" or "Start light",
          "notes": "Form cues and weight rationale based on user's 1RM if available",
          "primary_muscles": ["muscle1", "muscle2"]
        }
      ]
    }
  ]
}"""


def render_exercise_library(
    exercises: Sequence[Exercise],
    user_history: Mapping[int, ExerciseHistory] | None = None,
) -> str:
    """One line per exercise, annotated with the user's estimated 1RM when known."""
    user_history = user_history or {}
    lines = []
    for exercise in exercises:
        muscles = ", ".join(exercise.muscles) if exercise.muscles else "not specified"
        line = f'ID: {exercise.id}, Name: "{exercise.name}", Muscles: [{muscles}]'
        history = user_history.get(exercise.id)
        if history is not None:
            line += f" | User's Est. 1RM: {history.estimated_1rm:.1f}kg"
        lines.append(line)
    return "\n".join(lines)


def render_conversation(conversation_history: Sequence[ConversationTurn]) -> str:
    if not conversation_history:
        return ""
    lines = "\n".join(f"{turn.type}: {turn.content}" for turn in conversation_history)
    return f"Previous conversation:\n{lines}"


def serialize_plan(plan: WorkoutPlan) -> str:
    return json.dumps(plan.model_dump(mode="json"), indent=2)


def build_plan_system_prompt(
    exercises: Sequence[Exercise],
    current_plan: WorkoutPlan | None = None,
    conversation_history: Sequence[ConversationTurn] = (),
    user_history: Mapping[int, ExerciseHistory] | None = None,
) -> str:
    """Build the system instruction for creating or revising a plan.

    A non-null current_plan switches to modify semantics: the plan is
    embedded verbatim and the model must return the complete revised plan.
    """
    sections = [
        "You are an expert fitness coach and workout programmer. Your job is to create comprehensive, "
        "personalized workout plans using ONLY exercises from the provided exercise library.",
        """CRITICAL REQUIREMENTS:
1. ONLY use exercises from the provided library - NEVER make up exercise names
2. Always use the exact exercise ID and name from the library
3. Match exercise IDs correctly with exercise names
4. Include realistic sets, reps, and rest periods
5. Consider muscle balance and recovery
6. Provide clear, actionable workout structure
7. IMPORTANT: When a user has historical data (Est. 1RM shown), provide specific weight suggestions based on their strength levels
8. Use percentage-based recommendations: 75-80% of 1RM for 6-12 reps, 85-90% for 3-5 reps, 65-75% for 12+ reps
9. For exercises without user history, suggest "Start with bodyweight" or "Begin with light weight" instead of a number""",
        f"Available Exercise Library:\n{render_exercise_library(exercises, user_history)}",
        f"RESPONSE FORMAT - Return ONLY valid JSON:\n{PLAN_SCHEMA}",
    ]

    if current_plan is not None:
        sections.append(
            "CURRENT WORKOUT TO MODIFY:\n"
            f"{serialize_plan(current_plan)}\n\n"
            "Return the COMPLETE updated plan in the response format above, "
            "including every day and exercise that is not changing. Do not return a partial diff."
        )

    conversation = render_conversation(conversation_history)
    if conversation:
        sections.append(conversation)

    return "\n\n".join(sections)


def build_plan_user_prompt(prompt: str, is_revision: bool) -> str:
    if is_revision:
        return f"Modify the current workout based on this request: {prompt}"
    return f"Create a new workout plan based on this request: {prompt}"
