"""Storage for consultation session metrics and the tracking sink that feeds it."""

from __future__ import annotations

import datetime as dt
from typing import Any

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from liftcoach.analytics.sessions import SessionMetric, metrics_for_event
from liftcoach.db.models import SessionMetricRow
from liftcoach.db.session import get_session


def _naive_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(dt.timezone.utc).replace(tzinfo=None)


def _to_metric(row: SessionMetricRow) -> SessionMetric:
    return SessionMetric(
        user_id=row.user_id,
        session_id=row.session_id,
        metric_type=row.metric_type,
        value=row.value,
        metadata=row.details or {},
        timestamp=row.recorded_at,
    )


class SqlSessionMetrics:
    """Reads and writes rows of session_metrics."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def record(self, metric: SessionMetric) -> int:
        """Store ``metric`` and return its row ID (flush only, caller commits)."""
        row = SessionMetricRow(
            user_id=metric.user_id,
            session_id=metric.session_id,
            metric_type=metric.metric_type,
            value=metric.value,
            details=metric.metadata,
            recorded_at=_naive_utc(metric.timestamp),
        )
        self.session.add(row)
        self.session.flush()
        return row.id

    def for_session(self, user_id: str, session_id: str) -> list[SessionMetric]:
        rows = (
            self.session.execute(
                select(SessionMetricRow)
                .where(SessionMetricRow.user_id == user_id, SessionMetricRow.session_id == session_id)
                .order_by(SessionMetricRow.recorded_at, SessionMetricRow.id)
            )
            .scalars()
            .all()
        )
        return [_to_metric(row) for row in rows]

    def for_user(self, user_id: str, since: dt.datetime | None = None) -> list[SessionMetric]:
        query = select(SessionMetricRow).where(SessionMetricRow.user_id == user_id)
        if since is not None:
            query = query.where(SessionMetricRow.recorded_at >= _naive_utc(since))
        rows = self.session.execute(query.order_by(SessionMetricRow.recorded_at, SessionMetricRow.id)).scalars().all()
        return [_to_metric(row) for row in rows]


class SessionMetricsSink:
    """TrackingSink that persists the session metrics implied by each event.

    Bound to one user and consultation session. Every event is also logged at
    DEBUG. A storage failure is logged and does not interrupt the caller.
    """

    def __init__(
        self,
        user_id: str,
        session_id: str,
        session_factory: sessionmaker[Session] | None = None,
    ) -> None:
        self.user_id = user_id
        self.session_id = session_id
        self.session_factory = session_factory

    def track(self, event: str, **properties: Any) -> None:
        logger.debug(f"track: {event}", event=event, session_id=self.session_id, **properties)
        metrics = metrics_for_event(event, properties)
        if not metrics:
            return
        try:
            with get_session(self.session_factory) as session:
                repository = SqlSessionMetrics(session)
                for metric_type, value in metrics:
                    repository.record(
                        SessionMetric(
                            user_id=self.user_id,
                            session_id=self.session_id,
                            metric_type=metric_type,
                            value=value,
                            metadata={"event": event},
                        )
                    )
        except SQLAlchemyError as e:
            logger.warning(f"Could not store session metrics for {event}: {type(e).__name__}")
