"""Tests for mid-workout exercise substitution."""

import json

import pytest

from liftcoach.coach.substitution import (
    FALLBACK_ADVICE,
    ExerciseSubstitutionAdvisor,
    SubstitutionRequest,
    build_substitution_prompt,
    catalog_substitute,
)
from liftcoach.errors import GenerationError
from liftcoach.workouts.types import Exercise


@pytest.fixture
def squat_request(catalog) -> SubstitutionRequest:
    return SubstitutionRequest(
        current_exercise=catalog[1],
        user_request="my knee hurts on deep squats",
        injuries=["left knee"],
        available_equipment=["barbell", "dumbbells"],
    )


def _response(*suggestions, advice="Keep the rest of the session light.") -> str:
    return json.dumps({"suggestions": list(suggestions), "general_advice": advice})


def test_prompt_lists_catalog_and_constraints(squat_request, catalog):
    prompt = build_substitution_prompt(squat_request, catalog)

    assert "CURRENT EXERCISE: Barbell Back Squat" in prompt
    assert "MUSCLE GROUPS: quads, glutes" in prompt
    assert "INJURIES/CONCERNS: left knee" in prompt
    assert "- Dumbbell Row (ID: 6) [back]" in prompt
    assert "GOALS" not in prompt


@pytest.mark.asyncio
async def test_suggestions_are_limited_to_catalog(scripted_generator, tracker, squat_request, catalog):
    text_generator = scripted_generator(
        _response(
            {"exercise_id": 3, "exercise_name": "RDL", "reason": "Hinge instead", "muscle_match": "partial"},
            {"exercise_id": 42, "exercise_name": "Leg Press", "reason": "Not in the gym"},
            {"exercise_id": 2, "exercise_name": "Barbell Back Squat", "reason": "Same exercise"},
            {"exercise_id": 3, "exercise_name": "Conventional Deadlift", "reason": "Duplicate"},
            {"reason": "No id"},
        )
    )
    advisor = ExerciseSubstitutionAdvisor(text_generator, tracker=tracker)

    result = await advisor.suggest(squat_request, catalog)

    assert [(s.exercise_id, s.exercise_name) for s in result.suggestions] == [(3, "Conventional Deadlift")]
    assert result.suggestions[0].reason == "Hinge instead"
    assert result.general_advice == "Keep the rest of the session light."
    assert result.original_exercise == catalog[1]
    assert result.fallback is False
    assert tracker.events == [
        ("substitution_suggested", {"exercise_id": 2, "suggestion_count": 1, "fallback": False}),
    ]


@pytest.mark.asyncio
async def test_no_catalog_suggestion_falls_back_to_shared_muscles(scripted_generator, catalog):
    advisor = ExerciseSubstitutionAdvisor(
        scripted_generator(_response({"exercise_id": 99, "exercise_name": "Cable Row"}, advice=""))
    )
    request = SubstitutionRequest(current_exercise=catalog[5], user_request="dumbbells are taken")

    result = await advisor.suggest(request, catalog)

    assert result.fallback is True
    assert result.general_advice == FALLBACK_ADVICE
    (suggestion,) = result.suggestions
    assert suggestion.exercise_id == 3
    assert suggestion.muscle_match == "partial"


@pytest.mark.asyncio
async def test_at_most_three_suggestions(scripted_generator, catalog, squat_request):
    advisor = ExerciseSubstitutionAdvisor(
        scripted_generator(_response(*({"exercise_id": i, "exercise_name": "x"} for i in (1, 3, 4, 5, 6))))
    )

    result = await advisor.suggest(squat_request, catalog)

    assert [s.exercise_id for s in result.suggestions] == [1, 3, 4]


def test_catalog_substitute_prefers_muscle_overlap_then_name():
    current = Exercise(id=10, name="Barbell Curl", muscles=("biceps",))
    exercises = [
        Exercise(id=1, name="Barbell Bench Press", muscles=("chest",)),
        Exercise(id=5, name="Pull Up", muscles=("back", "biceps")),
        current,
    ]

    assert catalog_substitute(current, exercises).exercise_id == 5
    assert catalog_substitute(current, exercises[:1] + [current]).exercise_id == 1
    assert catalog_substitute(current, [current]) is None


@pytest.mark.asyncio
async def test_service_failure_raises(scripted_generator, tracker, squat_request, catalog):
    advisor = ExerciseSubstitutionAdvisor(scripted_generator(RuntimeError("503")), tracker=tracker)

    with pytest.raises(GenerationError, match="service error"):
        await advisor.suggest(squat_request, catalog)

    assert tracker.events == [("substitution_failed", {"reason": "service_error"})]


@pytest.mark.asyncio
async def test_unparseable_response_raises(scripted_generator, squat_request, catalog):
    advisor = ExerciseSubstitutionAdvisor(scripted_generator("Try lunges instead!"))

    with pytest.raises(GenerationError, match="Failed to parse"):
        await advisor.suggest(squat_request, catalog)
