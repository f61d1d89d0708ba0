from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


class ExerciseRow(Base):
    """Exercise catalog entry.

    Read-only at request time; the plan generator receives the whole table
    as its catalog when the caller sends none.
    """

    __tablename__ = "exercises"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    primary_muscles: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)


class PerformanceSetRow(Base):
    """A logged set.

    Stores only what the user did. Estimated 1RM is derived on read.
    """

    __tablename__ = "performance_sets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    exercise_id: Mapped[int] = mapped_column(Integer, ForeignKey("exercises.id"), nullable=False)
    weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    reps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rir: Mapped[int | None] = mapped_column(Integer, nullable=True)
    performed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (Index("idx_performance_sets_user_exercise", "user_id", "exercise_id"),)


class WorkoutProgramRow(Base):
    """Stored workout program.

    The plan is kept as an opaque JSON document; a revision is saved as a
    new row rather than patched in place.
    """

    __tablename__ = "workout_programs"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    plan_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))


class SessionMetricRow(Base):
    """One consultation metric (question asked, response time, generation outcome).

    Timestamps are stored as naive UTC.
    """

    __tablename__ = "session_metrics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    session_id: Mapped[str] = mapped_column(String, nullable=False)
    metric_type: Mapped[str] = mapped_column(String, nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    details: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    recorded_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_session_metrics_user_session", "user_id", "session_id"),
        Index("idx_session_metrics_user_recorded", "user_id", "recorded_at"),
    )
