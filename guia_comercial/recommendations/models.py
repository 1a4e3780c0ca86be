from __future__ import annotations

from pydantic import BaseModel, Field

from ..store.models import Business


class RecommendationItem(BaseModel):
    business: Business
    score: float
    reasons: list[str] = Field(default_factory=list)


class RecommendationResponse(BaseModel):
    recommendations: list[RecommendationItem]
    total_candidates: int
