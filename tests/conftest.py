"""Root conftest for all tests.

Provides the exercise catalog, scripted fakes for the text-generation and
speech boundaries, and an isolated SQLite database per test.
"""

import json

import pytest
from sqlalchemy.orm import sessionmaker

from liftcoach.core.tracking import RecordingTrackingSink
from liftcoach.db.models import Base
from liftcoach.db.session import build_engine
from liftcoach.workouts.types import Exercise


class ScriptedTextGenerator:
    """TextGenerator that replays canned responses in order.

    An Exception in the script is raised instead of returned.
    """

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    async def complete(self, request):
        self.requests.append(request)
        if not self.responses:
            raise AssertionError("Unexpected text generation call")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeSpeechToText:
    def __init__(self, transcript):
        self.transcript = transcript
        self.calls = []

    async def transcribe(self, audio, audio_format):
        self.calls.append((audio, audio_format))
        if isinstance(self.transcript, Exception):
            raise self.transcript
        return self.transcript


@pytest.fixture
def catalog() -> list[Exercise]:
    return [
        Exercise(id=1, name="Barbell Bench Press", muscles=("chest", "triceps")),
        Exercise(id=2, name="Barbell Back Squat", muscles=("quads", "glutes")),
        Exercise(id=3, name="Conventional Deadlift", muscles=("hamstrings", "back")),
        Exercise(id=4, name="Overhead Press", muscles=("shoulders",)),
        Exercise(id=5, name="Pull Up", muscles=("back", "biceps")),
        Exercise(id=6, name="Dumbbell Row", muscles=("back",)),
    ]


@pytest.fixture
def scripted_generator():
    """Factory: ``scripted_generator("response", RuntimeError("down"))``."""

    def _make(*responses):
        return ScriptedTextGenerator(responses)

    return _make


@pytest.fixture
def fake_speech():
    def _make(transcript):
        return FakeSpeechToText(transcript)

    return _make


@pytest.fixture
def tracker() -> RecordingTrackingSink:
    return RecordingTrackingSink()


@pytest.fixture
def plan_payload() -> dict:
    """A well-formed plan as the model would emit it."""
    return {
        "name": "Upper/Lower Split",
        "description": "Four week strength block",
        "duration_weeks": 4,
        "days_per_week": 2,
        "difficulty": "Intermediate",
        "goals": ["Build Strength"],
        "workouts": [
            {
                "day": "Monday",
                "name": "Upper",
                "description": "Press and pull",
                "exercises": [
                    {
                        "exercise_id": 1,
                        "exercise_name": "Barbell Bench Press",
                        "sets": 4,
                        "reps": "6-8",
                        "rest": "120s",
                        "suggested_weight": "60kg",
                        "notes": "Pause on the chest",
                        "primary_muscles": ["chest", "triceps"],
                    },
                    {
                        "exercise_id": 5,
                        "exercise_name": "Pull Up",
                        "sets": 3,
                        "reps": "8-12",
                        "rest": "90s",
                        "primary_muscles": ["back", "biceps"],
                    },
                ],
            },
            {
                "day": "Thursday",
                "name": "Lower",
                "description": "Squat and hinge",
                "exercises": [
                    {
                        "exercise_id": 2,
                        "exercise_name": "Barbell Back Squat",
                        "sets": 4,
                        "reps": "5",
                        "rest": "180s",
                        "primary_muscles": ["quads", "glutes"],
                    },
                ],
            },
        ],
    }


@pytest.fixture
def plan_json(plan_payload) -> str:
    return json.dumps(plan_payload)


@pytest.fixture
def db_session_factory(tmp_path):
    """Session factory over an isolated per-test SQLite database.

    A file database rather than :memory:, so sessions opened from worker
    threads each get their own connection to the same data.
    """
    engine = build_engine(f"sqlite:///{tmp_path / 'liftcoach-test.db'}")
    Base.metadata.create_all(engine)
    try:
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    finally:
        engine.dispose()


@pytest.fixture
def db_session(db_session_factory):
    session = db_session_factory()
    try:
        yield session
    finally:
        session.close()
