"""Match scoring contracts."""

import math
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MatchWeights(BaseModel):
    """Weights of the five match factors. Must sum to 1.0."""
    model_config = ConfigDict(frozen=True)

    skills: float = 0.40
    experience: float = 0.25
    location: float = 0.15
    salary: float = 0.10
    education: float = 0.10

    @model_validator(mode="after")
    def _check_sum(self) -> "MatchWeights":
        total = self.skills + self.experience + self.location + self.salary + self.education
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"match weights must sum to 1.0, got {total:.4f}")
        if min(self.as_tuple()) < 0:
            raise ValueError("match weights must be non-negative")
        return self

    def as_tuple(self) -> tuple[float, float, float, float, float]:
        return (self.skills, self.experience, self.location, self.salary, self.education)


class MatchBreakdown(BaseModel):
    """Per-factor scores, each 0.0-1.0."""
    model_config = ConfigDict(frozen=True)

    skills: float = 0.0
    experience: float = 0.0
    location: float = 0.0
    salary: float = 0.0
    education: float = 0.0

    def as_tuple(self) -> tuple[float, float, float, float, float]:
        return (self.skills, self.experience, self.location, self.salary, self.education)


class MatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    profile_id: str
    posting_id: str
    total_score: float  # 0.0-1.0
    breakdown: MatchBreakdown


class MatchFilters(BaseModel):
    limit: int | None = Field(default=None, ge=1)
    location: str | None = None
    remote_only: bool | None = None
    min_salary: float | None = None
    max_salary: float | None = None
    employment_type: str | None = None
    seniority_level: str | None = None


class MatchItem(BaseModel):
    posting_id: str
    total_score: float
    breakdown: MatchBreakdown


class MatchQueryResponse(BaseModel):
    matches: list[MatchItem] = []
    total_considered: int = 0


class RecommendationCacheEntry(BaseModel):
    """JSON shape stored in the result cache for a recommendation set."""
    recommendations: list[MatchItem] = []
    total_considered: int = 0
    generated_at: datetime
    expires_at: datetime


class SimilarPosting(BaseModel):
    posting_id: str
    similarity: int  # 0-100
