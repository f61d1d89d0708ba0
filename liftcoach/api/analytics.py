"""Analytics API endpoints: trends, insights, progress analysis and session metrics."""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from liftcoach.analytics.insights import INSIGHT_TYPES, InsightData, InsightEngine, InsightType, ProgressAnalysis
from liftcoach.analytics.sessions import (
    PerformanceReport,
    SessionAnalytics,
    SessionMetric,
    Timeframe,
    UserAnalytics,
    build_report,
    summarize_session,
    summarize_user,
    timeframe_start,
)
from liftcoach.analytics.trends import ExerciseTrend, PerformanceRecord, analyze_trends
from liftcoach.api.dependencies import get_insight_engine, get_performance_records, get_session_metrics
from liftcoach.db.metrics import SqlSessionMetrics
from liftcoach.db.repositories import SqlPerformanceRecords
from liftcoach.db.session import get_db
from liftcoach.errors import GenerationError

router = APIRouter(prefix="/analytics", tags=["analytics"])


class TrendsRequest(BaseModel):
    records: list[PerformanceRecord] = Field(default_factory=list)


class TrendsResponse(BaseModel):
    trends: list[ExerciseTrend]


class InsightsRequest(BaseModel):
    data: InsightData = Field(default_factory=InsightData)
    types: list[InsightType] = Field(default_factory=lambda: list(INSIGHT_TYPES))


class InsightsResponse(BaseModel):
    insights: dict[str, dict | None]


class MetricRecorded(BaseModel):
    id: int


class ProgressRequest(BaseModel):
    records: list[PerformanceRecord] = Field(default_factory=list)
    recent_workouts: int = 0
    total_sets: int | None = None


@router.post("/trends", response_model=TrendsResponse)
def trends(request: TrendsRequest) -> TrendsResponse:
    return TrendsResponse(trends=analyze_trends(request.records))


@router.get("/trends/{user_id}", response_model=TrendsResponse)
def user_trends(
    user_id: str,
    records: SqlPerformanceRecords = Depends(get_performance_records),
) -> TrendsResponse:
    """Trends over every set the user has logged."""
    return TrendsResponse(trends=analyze_trends(records.list_records(user_id)))


@router.post("/insights", response_model=InsightsResponse)
async def insights(
    request: InsightsRequest,
    engine: InsightEngine = Depends(get_insight_engine),
) -> InsightsResponse:
    """Generate the requested insight types; unavailable ones come back as null."""
    return InsightsResponse(insights=await engine.generate_all(request.data, request.types))


@router.post("/progress", response_model=ProgressAnalysis)
async def progress(
    request: ProgressRequest,
    engine: InsightEngine = Depends(get_insight_engine),
) -> ProgressAnalysis:
    if not request.records:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No progress data to analyze")
    try:
        return await engine.analyze_progress(request.records, request.recent_workouts, request.total_sets)
    except GenerationError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message) from e


@router.post("/metrics", response_model=MetricRecorded, status_code=status.HTTP_201_CREATED)
def record_metric(
    metric: SessionMetric,
    metrics: SqlSessionMetrics = Depends(get_session_metrics),
    db: Session = Depends(get_db),
) -> MetricRecorded:
    """Record a metric reported by the client (e.g. total conversation duration)."""
    metric_id = metrics.record(metric)
    db.commit()
    return MetricRecorded(id=metric_id)


@router.get("/sessions/{user_id}/{session_id}", response_model=SessionAnalytics)
def session_analytics(
    user_id: str,
    session_id: str,
    metrics: SqlSessionMetrics = Depends(get_session_metrics),
) -> SessionAnalytics:
    return summarize_session(metrics.for_session(user_id, session_id))


@router.get("/usage/{user_id}", response_model=UserAnalytics)
def user_usage(
    user_id: str,
    timeframe: Timeframe = "week",
    metrics: SqlSessionMetrics = Depends(get_session_metrics),
) -> UserAnalytics:
    """Consultation usage across the user's sessions within ``timeframe``."""
    return summarize_user(metrics.for_user(user_id, since=timeframe_start(timeframe)), timeframe)


@router.get("/report/{user_id}", response_model=PerformanceReport)
def usage_report(
    user_id: str,
    timeframe: Timeframe = "week",
    metrics: SqlSessionMetrics = Depends(get_session_metrics),
) -> PerformanceReport:
    usage = summarize_user(metrics.for_user(user_id, since=timeframe_start(timeframe)), timeframe)
    return build_report(usage)
