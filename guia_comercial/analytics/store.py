from __future__ import annotations

from datetime import datetime, timedelta

from ..store import DataStore, generate_id
from ..store.models import TrackingEvent, TrackingEventType


def record_event(
    store: DataStore,
    business_id: str,
    event_type: TrackingEventType,
    user_id: str | None = None,
) -> TrackingEvent:
    return store.add_event(
        TrackingEvent(
            id=generate_id("ev"),
            business_id=business_id,
            event_type=event_type,
            user_id=user_id,
            timestamp=store.clock(),
        )
    )


def events_since(store: DataStore, days: int, now: datetime | None = None) -> list[TrackingEvent]:
    cutoff = (now or store.clock()) - timedelta(days=days)
    return [e for e in store.events() if e.timestamp >= cutoff]
