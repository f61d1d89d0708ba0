"""Consultation session metrics: per-session and per-user usage analytics.

Metrics are small numeric facts recorded while a user goes through a
consultation (a question asked, a model response time, whether a plan was
generated). Everything here is pure; storage lives in liftcoach.db.metrics.
"""

import datetime as dt
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Literal

from pydantic import BaseModel, Field

MetricType = Literal[
    "conversation_duration",
    "question_count",
    "response_time",
    "user_engagement",
    "generation_success",
]
Timeframe = Literal["session", "day", "week", "month"]
CompletionStatus = Literal["completed", "in_progress", "started"]
EngagementTrend = Literal["improving", "declining", "stable"]

TIMEFRAME_DAYS: dict[str, int] = {"session": 1, "day": 1, "week": 7, "month": 30}

NEUTRAL_ENGAGEMENT = 5.0
ENGAGEMENT_TREND_THRESHOLD = 0.5


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class SessionMetric(BaseModel):
    user_id: str
    session_id: str
    metric_type: MetricType
    value: float
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: dt.datetime = Field(default_factory=_utcnow)


class SessionAnalytics(BaseModel):
    session_duration: int
    question_count: int
    average_response_time: float
    engagement_score: float
    completion_status: CompletionStatus
    metrics: list[SessionMetric] = Field(default_factory=list)


class UserAnalytics(BaseModel):
    total_sessions: int
    average_session_duration: float
    average_questions_per_session: float
    success_rate: float
    engagement_trend: EngagementTrend
    performance_score: int
    timeframe: Timeframe


class PerformanceReport(BaseModel):
    summary: dict[str, Any]
    insights: list[str]
    recommendations: list[str]
    benchmarks: dict[str, Any]
    timeframe: Timeframe


def metrics_for_event(event: str, properties: Mapping[str, Any]) -> list[tuple[MetricType, float]]:
    """Translate a tracking event into the session metrics it implies.

    Events that say nothing about the consultation map to an empty list.
    """
    metrics: list[tuple[MetricType, float]] = []
    if event == "consultation_question":
        metrics.append(("question_count", 1))
    elif event == "plan_generation_completed":
        metrics.append(("generation_success", 1))
    elif event == "plan_generation_failed":
        metrics.append(("generation_success", 0))
    elif event == "conversation_assessed" and properties.get("score") is not None:
        metrics.append(("user_engagement", float(properties["score"])))

    if properties.get("response_time_ms") is not None:
        metrics.append(("response_time", float(properties["response_time_ms"])))
    return metrics


def _ordered(metrics: Iterable[SessionMetric]) -> list[SessionMetric]:
    return sorted(metrics, key=lambda m: m.timestamp)


def session_duration(metrics: Sequence[SessionMetric]) -> int:
    """Seconds between the first and last metric; 0 with fewer than two."""
    if len(metrics) < 2:
        return 0
    ordered = _ordered(metrics)
    return round((ordered[-1].timestamp - ordered[0].timestamp).total_seconds())


def average_response_time(metrics: Iterable[SessionMetric]) -> float:
    times = [m.value for m in metrics if m.metric_type == "response_time"]
    if not times:
        return 0.0
    return sum(times) / len(times)


def engagement_score(metrics: Iterable[SessionMetric]) -> float:
    """Mean engagement rounded to one decimal, neutral 5.0 without data."""
    values = [m.value for m in metrics if m.metric_type == "user_engagement"]
    if not values:
        return NEUTRAL_ENGAGEMENT
    return round(sum(values) / len(values), 1)


def question_count(metrics: Iterable[SessionMetric]) -> int:
    return sum(1 for m in metrics if m.metric_type == "question_count")


def _generated(metrics: Iterable[SessionMetric]) -> bool:
    return any(m.metric_type == "generation_success" and m.value == 1 for m in metrics)


def completion_status(metrics: Sequence[SessionMetric]) -> CompletionStatus:
    if _generated(metrics):
        return "completed"
    if question_count(metrics):
        return "in_progress"
    return "started"


def summarize_session(metrics: Sequence[SessionMetric]) -> SessionAnalytics:
    ordered = _ordered(metrics)
    return SessionAnalytics(
        session_duration=session_duration(ordered),
        question_count=question_count(ordered),
        average_response_time=average_response_time(ordered),
        engagement_score=engagement_score(ordered),
        completion_status=completion_status(ordered),
        metrics=ordered,
    )


def group_by_session(metrics: Iterable[SessionMetric]) -> dict[str, list[SessionMetric]]:
    """Group metrics by session, sessions ordered by their first metric."""
    groups: dict[str, list[SessionMetric]] = {}
    for metric in _ordered(metrics):
        groups.setdefault(metric.session_id, []).append(metric)
    return groups


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def engagement_trend(sessions: Mapping[str, Sequence[SessionMetric]]) -> EngagementTrend:
    """Compare mean engagement of the later half of sessions to the earlier half."""
    scores = [engagement_score(metrics) for metrics in sessions.values()]
    if len(scores) < 2:
        return "stable"
    middle = len(scores) // 2
    difference = _mean(scores[middle:]) - _mean(scores[:middle])
    if difference > ENGAGEMENT_TREND_THRESHOLD:
        return "improving"
    if difference < -ENGAGEMENT_TREND_THRESHOLD:
        return "declining"
    return "stable"


def performance_score(
    session_count: int,
    average_duration: float,
    average_questions: float,
    success_rate: float,
) -> int:
    """Weighted 0-100 score.

    Duration (capped at 5 minutes) and question count (capped at 5) give 25
    points each, success rate 40 and session volume (capped at 10) 10.
    """
    duration_score = min(average_duration / 300, 1) * 25
    question_score = min(average_questions / 5, 1) * 25
    success_score = success_rate * 0.4
    volume_score = min(session_count / 10, 1) * 10
    return round(duration_score + question_score + success_score + volume_score)


def summarize_user(metrics: Iterable[SessionMetric], timeframe: Timeframe = "week") -> UserAnalytics:
    """Aggregate a user's metrics across sessions.

    The caller is responsible for restricting ``metrics`` to the timeframe.
    """
    sessions = group_by_session(metrics)
    durations = [session_duration(group) for group in sessions.values()]
    questions = [question_count(group) for group in sessions.values()]
    completed = sum(1 for group in sessions.values() if _generated(group))
    success_rate = completed / len(sessions) * 100 if sessions else 0.0

    average_duration = _mean(durations)
    average_questions = _mean(questions)
    return UserAnalytics(
        total_sessions=len(sessions),
        average_session_duration=average_duration,
        average_questions_per_session=average_questions,
        success_rate=success_rate,
        engagement_trend=engagement_trend(sessions),
        performance_score=performance_score(len(sessions), average_duration, average_questions, success_rate),
        timeframe=timeframe,
    )


def timeframe_start(timeframe: Timeframe, now: dt.datetime | None = None) -> dt.datetime:
    now = now or _utcnow()
    return now - dt.timedelta(days=TIMEFRAME_DAYS.get(timeframe, 7))


def _insights(analytics: UserAnalytics) -> list[str]:
    insights = []
    if analytics.success_rate > 80:
        insights.append("Excellent completion rate: most consultations end with a generated plan")
    elif analytics.success_rate < 50:
        insights.append("Low completion rate suggests users need more guidance during the consultation")

    if analytics.average_session_duration > 600:
        insights.append("Long sessions indicate a thorough consultation process")
    elif analytics.average_session_duration < 120:
        insights.append("Short sessions suggest an efficient question flow or early drop-off")

    if analytics.engagement_trend == "improving":
        insights.append("Engagement is improving over time")
    elif analytics.engagement_trend == "declining":
        insights.append("Engagement is declining and needs attention")
    return insights


def _recommendations(analytics: UserAnalytics) -> list[str]:
    recommendations = []
    if analytics.success_rate < 70:
        recommendations.append("Improve question clarity and add more user guidance")
        recommendations.append("Reduce question complexity to raise completion rates")
    if analytics.average_questions_per_session > 6:
        recommendations.append("Shorten the question flow")
    if analytics.performance_score < 60:
        recommendations.append("Focus on overall consultation experience and engagement")
    return recommendations


def build_report(analytics: UserAnalytics) -> PerformanceReport:
    benchmarks = {
        "optimal_session_duration": "3-5 minutes",
        "target_question_count": "3-5 questions",
        "good_success_rate": ">75%",
        "excellent_engagement": ">7/10",
        "current_performance": {
            "session_duration": f"{round(analytics.average_session_duration)}s",
            "question_count": f"{analytics.average_questions_per_session:.1f}",
            "success_rate": f"{analytics.success_rate:.1f}%",
            "performance_score": f"{analytics.performance_score}/100",
        },
    }
    return PerformanceReport(
        summary={
            "total_sessions": analytics.total_sessions,
            "performance_score": analytics.performance_score,
            "trend": analytics.engagement_trend,
        },
        insights=_insights(analytics),
        recommendations=_recommendations(analytics),
        benchmarks=benchmarks,
        timeframe=analytics.timeframe,
    )
