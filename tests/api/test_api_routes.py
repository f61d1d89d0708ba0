"""Tests for the HTTP API."""

import base64

import pytest
from fastapi.testclient import TestClient

from liftcoach.analytics.insights import InsightEngine
from liftcoach.api.dependencies import (
    get_insight_engine,
    get_metrics_session_factory,
    get_speech_to_text,
    get_strength_history,
    get_text_generator,
)
from liftcoach.core.rate_limit import RequestSpacer
from liftcoach.db.repositories import SqlExerciseLibrary, SqlStrengthHistory
from liftcoach.db.session import get_db
from liftcoach.main import app


@pytest.fixture
def client(db_session_factory):
    def _get_db():
        session = db_session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_strength_history] = lambda: SqlStrengthHistory(db_session_factory)
    app.dependency_overrides[get_metrics_session_factory] = lambda: db_session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def use_generator(scripted_generator):
    """Install a scripted text generator for every model-backed service."""

    def _use(*responses):
        text_generator = scripted_generator(*responses)
        app.dependency_overrides[get_text_generator] = lambda: text_generator
        app.dependency_overrides[get_insight_engine] = lambda: InsightEngine(text_generator, spacer=RequestSpacer(0))
        return text_generator

    return _use


@pytest.fixture
def seeded_catalog(db_session_factory, catalog):
    session = db_session_factory()
    library = SqlExerciseLibrary(session)
    for exercise in catalog:
        library.add(exercise)
    session.commit()
    session.close()
    return catalog


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_generate_with_request_catalog(client, use_generator, catalog, plan_json):
    use_generator(plan_json)

    response = client.post(
        "/workouts/generate",
        json={"prompt": "upper/lower split", "exercises": [e.model_dump(mode="json") for e in catalog]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["workout"]["name"] == "Upper/Lower Split"
    assert body["message"] == "Workout generated successfully"
    assert body["repairs"] == []
    assert body["program_id"] is None


def test_generate_uses_stored_catalog_and_saves(client, use_generator, seeded_catalog, plan_payload, plan_json):
    text_generator = use_generator(plan_json)

    response = client.post("/workouts/generate", json={"prompt": "make it", "user_id": "user-1", "save": True})

    assert response.status_code == 200
    program_id = response.json()["program_id"]
    assert program_id
    assert 'ID: 6, Name: "Dumbbell Row"' in text_generator.requests[0].system_prompt

    stored = client.get(f"/workouts/programs/{program_id}")
    assert stored.status_code == 200
    assert stored.json()["name"] == plan_payload["name"]


def test_revision_reports_modified(client, use_generator, catalog, plan_payload, plan_json):
    use_generator(plan_json)

    response = client.post(
        "/workouts/generate",
        json={
            "prompt": "more pulling",
            "exercises": [e.model_dump(mode="json") for e in catalog],
            "current_plan": plan_payload,
        },
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Workout modified successfully"


def test_blank_prompt_is_rejected(client, use_generator, catalog):
    text_generator = use_generator()
    response = client.post("/workouts/generate", json={"prompt": "   ", "exercises": []})
    assert response.status_code == 400
    assert text_generator.requests == []


def test_generation_failure_maps_to_bad_gateway(client, use_generator, catalog):
    use_generator("not a plan")
    response = client.post(
        "/workouts/generate",
        json={"prompt": "anything", "exercises": [e.model_dump(mode="json") for e in catalog]},
    )
    assert response.status_code == 502


def test_empty_catalog_maps_to_unprocessable(client, use_generator, plan_json):
    use_generator(plan_json)
    response = client.post("/workouts/generate", json={"prompt": "anything"})
    assert response.status_code == 422
    assert "exercise library is empty" in response.json()["detail"]


def test_program_not_found(client):
    assert client.get("/workouts/programs/nope").status_code == 404


def test_format_to_modular(client, plan_payload):
    response = client.post("/workouts/format", json={"plan": plan_payload, "layout": "modular"})
    assert response.status_code == 200
    assert response.json()["enabled_modules"] == ["warmup", "main", "cooldown"]


def test_quality_never_fails(client, use_generator):
    use_generator("no json here")
    response = client.post(
        "/coach/quality",
        json={"conversation_history": [{"type": "user", "content": "I like squats"}]},
    )
    assert response.status_code == 200
    quality = response.json()["quality"]
    assert quality["score"] == 6
    assert quality["shouldContinue"] is True


def test_new_user_question(client, use_generator):
    use_generator()
    response = client.post("/coach/question", json={"is_new_user": True, "preferences": {"goal": "fat loss"}})
    assert response.status_code == 200
    assert "fat loss" in response.json()["question"]


def test_summary_failure_maps_to_bad_gateway(client, use_generator):
    use_generator(RuntimeError("down"))
    assert client.post("/coach/summary", json={}).status_code == 502


def test_voice_transcription(client, use_generator, fake_speech):
    use_generator('{"weight": 185, "reps": 10, "rir": 1}')
    speech = fake_speech("185 for 10, could have done 1 more")
    app.dependency_overrides[get_speech_to_text] = lambda: speech

    response = client.post(
        "/voice/transcribe",
        json={"audio": base64.b64encode(b"audio-bytes").decode(), "format": "m4a"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "transcription": "185 for 10, could have done 1 more",
        "workout_data": {"weight": 185.0, "reps": 10, "rir": 1},
    }
    assert speech.calls == [(b"audio-bytes", "m4a")]


def test_voice_rejects_bad_base64(client, use_generator, fake_speech):
    use_generator()
    app.dependency_overrides[get_speech_to_text] = lambda: fake_speech("unused")
    response = client.post("/voice/transcribe", json={"audio": "%%%"})
    assert response.status_code == 422


def test_trends_from_posted_records(client):
    response = client.post(
        "/analytics/trends",
        json={
            "records": [
                {"exercise": "Squat", "date": "2024-01-01", "weight": 100},
                {"exercise": "Squat", "date": "2024-02-01", "weight": 110},
                {"exercise": "Bench", "date": "2024-01-01", "weight": 80},
            ]
        },
    )
    assert response.status_code == 200
    trends = response.json()["trends"]
    assert len(trends) == 1
    assert trends[0]["weight_change"] == 10


def test_logged_sets_feed_user_trends(client, seeded_catalog):
    first = client.post("/workouts/sets", json={"user_id": "user-9", "exercise_id": 2, "weight": 100, "reps": 5})
    client.post("/workouts/sets", json={"user_id": "user-9", "exercise_id": 2, "weight": 105, "reps": 5})

    assert first.status_code == 201
    assert first.json()["estimated_1rm"] == pytest.approx(116.67)

    trends = client.get("/analytics/trends/user-9").json()["trends"]
    assert [(t["exercise"], t["weight_change"], t["sessions"]) for t in trends] == [("Barbell Back Squat", 5.0, 2)]


def test_insights_subset(client, use_generator):
    use_generator('{"strengthLevel": "intermediate"}', "garbage")
    response = client.post("/analytics/insights", json={"types": ["strength_profile", "training_patterns"]})
    assert response.status_code == 200
    assert response.json()["insights"] == {
        "strength_profile": {"strengthLevel": "intermediate"},
        "training_patterns": None,
    }


def test_progress_requires_records(client, use_generator):
    use_generator()
    assert client.post("/analytics/progress", json={"records": []}).status_code == 400


def test_logging_set_for_unknown_exercise_is_not_found(client, seeded_catalog):
    response = client.post("/workouts/sets", json={"user_id": "user-9", "exercise_id": 999, "weight": 100, "reps": 5})

    assert response.status_code == 404
    assert client.get("/analytics/trends/user-9").json() == {"trends": []}


def test_voice_service_outage_maps_to_bad_gateway(client, use_generator, fake_speech):
    use_generator()
    app.dependency_overrides[get_speech_to_text] = lambda: fake_speech(RuntimeError("speech service down"))

    response = client.post("/voice/transcribe", json={"audio": base64.b64encode(b"audio-bytes").decode()})

    assert response.status_code == 502


def test_substitution_uses_stored_catalog(client, use_generator, seeded_catalog):
    text_generator = use_generator(
        '{"suggestions": [{"exercise_id": 3, "exercise_name": "Deadlift", "reason": "Hinge"}], "general_advice": "Go light"}'
    )

    response = client.post(
        "/coach/substitutions",
        json={
            "current_exercise": {"id": 2, "name": "Barbell Back Squat", "muscles": ["quads", "glutes"]},
            "user_request": "knee pain",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert [(s["exercise_id"], s["exercise_name"]) for s in body["suggestions"]] == [(3, "Conventional Deadlift")]
    assert body["fallback"] is False
    assert "- Dumbbell Row (ID: 6) [back]" in text_generator.requests[0].user_prompt


def test_substitution_without_catalog_is_unprocessable(client, use_generator):
    text_generator = use_generator()
    response = client.post("/coach/substitutions", json={"current_exercise": {"id": 2, "name": "Squat"}})

    assert response.status_code == 422
    assert text_generator.requests == []


def test_consultation_metrics_are_recorded_per_session(client, use_generator):
    use_generator("Which lift do you most want to improve?")
    headers = {"X-User-Id": "user-1", "X-Session-Id": "session-1"}

    assert client.post("/coach/question", json={}, headers=headers).status_code == 200
    client.post("/coach/question", json={"is_new_user": True}, headers=headers)

    analytics = client.get("/analytics/sessions/user-1/session-1").json()
    assert analytics["question_count"] == 2
    assert analytics["completion_status"] == "in_progress"
    assert [m["metric_type"] for m in analytics["metrics"]].count("response_time") == 1
    assert client.get("/analytics/sessions/user-1/other").json()["question_count"] == 0


def test_untracked_requests_store_no_metrics(client, use_generator):
    use_generator("Which lift do you most want to improve?")

    client.post("/coach/question", json={})

    assert client.get("/analytics/usage/user-1", params={"timeframe": "day"}).json()["total_sessions"] == 0


def test_reported_metrics_feed_usage_and_report(client):
    metric = {"user_id": "user-1", "session_id": "session-7", "metric_type": "generation_success", "value": 1}

    assert client.post("/analytics/metrics", json=metric).status_code == 201

    usage = client.get("/analytics/usage/user-1", params={"timeframe": "day"}).json()
    assert usage["total_sessions"] == 1
    assert usage["success_rate"] == 100
    report = client.get("/analytics/report/user-1").json()
    assert report["summary"]["total_sessions"] == 1
    assert report["timeframe"] == "week"
