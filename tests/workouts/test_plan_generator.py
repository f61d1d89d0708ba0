"""Tests for workout plan generation and revision."""

import json

import pytest

from liftcoach.errors import GenerationError
from liftcoach.workouts.generator import PlanGenerator, apply_weight_suggestions, build_fallback_plan, parse_plan
from liftcoach.workouts.prompts import serialize_plan
from liftcoach.workouts.types import ConversationTurn, ExerciseHistory, StrengthSet, WorkoutPlan


@pytest.fixture
def squat_history() -> dict[int, ExerciseHistory]:
    return {
        2: ExerciseHistory(
            exercise_id=2,
            exercise_name="Barbell Back Squat",
            estimated_1rm=140.0,
            recent_sets=[StrengthSet(weight=120, reps=5, rir=1, estimated_1rm=140.0)],
        )
    }


@pytest.mark.asyncio
async def test_create_plan_from_fenced_response(scripted_generator, tracker, catalog, plan_json):
    text_generator = scripted_generator(f"Here you go!\n```json\n{plan_json}\n```")
    generator = PlanGenerator(text_generator, tracker=tracker, model="test-model", max_tokens=1234)

    plan = await generator.generate("3 day strength program", catalog)

    assert plan.name == "Upper/Lower Split"
    assert plan.difficulty == "intermediate"
    assert [day.day for day in plan.workouts] == ["Monday", "Thursday"]

    request = text_generator.requests[0]
    assert request.model == "test-model"
    assert request.max_tokens == 1234
    assert request.user_prompt == "Create a new workout plan based on this request: 3 day strength program"
    assert "CURRENT WORKOUT TO MODIFY" not in request.system_prompt
    assert tracker.names() == ["plan_generation_started", "plan_generation_completed"]


@pytest.mark.asyncio
async def test_revision_embeds_current_plan_and_returns_full_plan(scripted_generator, catalog, plan_payload):
    current_plan = WorkoutPlan.model_validate(plan_payload)
    revised = dict(plan_payload, name="Upper/Lower Split v2")
    text_generator = scripted_generator(json.dumps(revised))
    generator = PlanGenerator(text_generator)

    plan = await generator.generate("swap Thursday to Friday", catalog, current_plan=current_plan)

    request = text_generator.requests[0]
    assert "CURRENT WORKOUT TO MODIFY:" in request.system_prompt
    assert serialize_plan(current_plan) in request.system_prompt
    assert request.user_prompt == "Modify the current workout based on this request: swap Thursday to Friday"
    assert plan.name == "Upper/Lower Split v2"
    assert len(plan.workouts) == len(current_plan.workouts)


@pytest.mark.asyncio
async def test_prompt_includes_history_and_conversation(scripted_generator, catalog, plan_json, squat_history):
    text_generator = scripted_generator(plan_json)
    generator = PlanGenerator(text_generator)
    history = [
        ConversationTurn(type="user", content="I want to squat more"),
        ConversationTurn(type="assistant", content="How many days can you train?"),
    ]

    await generator.generate("build my squat", catalog, conversation_history=history, user_history=squat_history)

    system_prompt = text_generator.requests[0].system_prompt
    assert 'ID: 2, Name: "Barbell Back Squat", Muscles: [quads, glutes] | User\'s Est. 1RM: 140.0kg' in system_prompt
    assert 'ID: 1, Name: "Barbell Bench Press", Muscles: [chest, triceps]\n' in system_prompt
    assert "Previous conversation:\nuser: I want to squat more\nassistant: How many days can you train?" in system_prompt


@pytest.mark.asyncio
async def test_malformed_response_raises_generation_error(scripted_generator, tracker, catalog):
    generator = PlanGenerator(scripted_generator("I'm not able to build that plan."), tracker=tracker)

    with pytest.raises(GenerationError):
        await generator.generate("anything", catalog)

    assert tracker.events[-1] == ("plan_generation_failed", {"reason": "parse_error"})


@pytest.mark.asyncio
async def test_service_error_is_wrapped(scripted_generator, tracker, catalog):
    generator = PlanGenerator(scripted_generator(RuntimeError("upstream timeout")), tracker=tracker)

    with pytest.raises(GenerationError, match="upstream timeout") as exc_info:
        await generator.generate("anything", catalog)

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert tracker.events[-1] == ("plan_generation_failed", {"reason": "service_error"})


@pytest.mark.asyncio
async def test_empty_response_raises(scripted_generator, catalog):
    generator = PlanGenerator(scripted_generator("   "))
    with pytest.raises(GenerationError, match="Empty response"):
        await generator.generate("anything", catalog)


@pytest.mark.asyncio
async def test_blank_prompt_never_calls_service(scripted_generator, catalog):
    text_generator = scripted_generator()
    generator = PlanGenerator(text_generator)

    with pytest.raises(GenerationError, match="Prompt is required"):
        await generator.generate("  ", catalog)

    assert text_generator.requests == []


@pytest.mark.asyncio
async def test_empty_workouts_fall_back_to_auto_plan(scripted_generator, catalog):
    generator = PlanGenerator(scripted_generator('{"name": "Nothing", "workouts": []}'))

    plan = await generator.generate("anything", catalog)

    assert plan.name == "Auto Plan"
    assert [day.day for day in plan.workouts] == ["Monday", "Wednesday", "Friday"]
    assert [e.exercise_id for e in plan.workouts[0].exercises] == [1, 2, 3, 4, 5]
    assert [e.exercise_id for e in plan.workouts[1].exercises] == [6]


@pytest.mark.asyncio
async def test_unknown_exercises_are_repaired(scripted_generator, catalog, plan_payload):
    plan_payload["workouts"][0]["exercises"][1]["exercise_id"] = 500
    plan_payload["workouts"][0]["exercises"][1]["exercise_name"] = "Pull Down"
    generator = PlanGenerator(scripted_generator(json.dumps(plan_payload)))

    result = await generator.generate_with_repairs("anything", catalog)

    assert len(result.repairs) == 1
    assert result.repairs[0].replacement_id == 5
    assert result.plan.workouts[0].exercises[1].exercise_name == "Pull Up"


@pytest.mark.asyncio
async def test_missing_weights_are_filled_from_history(scripted_generator, catalog, plan_json, squat_history):
    generator = PlanGenerator(scripted_generator(plan_json))

    plan = await generator.generate("anything", catalog, user_history=squat_history)

    bench, pull_up = plan.workouts[0].exercises
    squat = plan.workouts[1].exercises[0]
    assert bench.suggested_weight == "60kg"
    assert pull_up.suggested_weight is None
    assert squat.suggested_weight == "122.5kg"


def test_parse_plan_requires_name_and_workouts():
    with pytest.raises(GenerationError, match="missing required fields: workouts"):
        parse_plan('{"name": "No days"}')


def test_parse_plan_rejects_schema_violations():
    with pytest.raises(GenerationError, match="schema validation"):
        parse_plan('{"name": "Bad", "workouts": [{"exercises": []}]}')


def test_parse_plan_coerces_bad_exercise_id():
    plan = parse_plan('{"name": "x", "workouts": [{"day": "Mon", "exercises": [{"exercise_id": "n/a"}]}]}')
    assert plan.workouts[0].exercises[0].exercise_id is None


def test_apply_weight_suggestions_skips_unparseable_targets(squat_history):
    plan = WorkoutPlan.model_validate(
        {"name": "x", "workouts": [{"day": "Mon", "exercises": [{"exercise_id": 2, "reps": "AMRAP"}]}]}
    )
    assert apply_weight_suggestions(plan, squat_history) == 0
    assert plan.workouts[0].exercises[0].suggested_weight is None


def test_fallback_plan_with_small_catalog(catalog):
    plan = build_fallback_plan(catalog[:2])
    assert plan.days_per_week == 3
    assert [len(day.exercises) for day in plan.workouts] == [2, 0, 0]
