from __future__ import annotations

from pydantic import BaseModel, Field

from ..store.models import TrackingEventType


class TrackRequest(BaseModel):
    business_id: str = Field(..., min_length=1)
    event_type: TrackingEventType
    user_id: str | None = None
