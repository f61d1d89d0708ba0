"""Consultation and quality-assessment types."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _round_rating(value: Any) -> Any:
    if isinstance(value, float):
        return round(value)
    return value


class AssessmentContext(BaseModel):
    """Where the consultation currently stands."""

    question_count: int = 0
    max_questions: int = 5
    phase: str = "questioning"


class QualityFactors(BaseModel):
    depth: int = Field(ge=1, le=10)
    relevance: int = Field(ge=1, le=10)
    engagement: int = Field(ge=1, le=10)
    clarity: int = Field(ge=1, le=10)

    @field_validator("depth", "relevance", "engagement", "clarity", mode="before")
    @classmethod
    def round_factor(cls, value: Any) -> Any:
        return _round_rating(value)


class QualityAssessment(BaseModel):
    """1-10 rating of a consultation plus a continue/stop recommendation.

    Recomputed on demand; never persisted.
    """

    model_config = ConfigDict(populate_by_name=True)

    score: int = Field(ge=1, le=10)
    factors: QualityFactors
    suggestions: list[str] = Field(default_factory=list)
    should_continue: bool = Field(alias="shouldContinue")
    reasoning: str | None = None

    @field_validator("score", mode="before")
    @classmethod
    def round_score(cls, value: Any) -> Any:
        return _round_rating(value)


def neutral_assessment() -> QualityAssessment:
    """The fixed default returned whenever an assessment cannot be produced."""
    return QualityAssessment(
        score=6,
        factors=QualityFactors(depth=6, relevance=6, engagement=6, clarity=6),
        suggestions=["Continue with more specific questions"],
        should_continue=True,
    )
