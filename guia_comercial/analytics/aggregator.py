from __future__ import annotations

from typing import Any, Sequence

import pandas as pd

from ..config import DEFAULT_SETTINGS, Settings
from ..store import DataStore
from ..store.models import TrackingEvent
from .store import events_since

EVENT_COLUMNS = ["business_id", "event_type", "user_id", "timestamp"]
TOP_BUSINESSES = 10


def _events_frame(events: Sequence[TrackingEvent]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "business_id": e.business_id,
                "event_type": e.event_type.value,
                "user_id": e.user_id,
                "timestamp": e.timestamp,
            }
            for e in events
        ],
        columns=EVENT_COLUMNS,
    )


def _event_totals(df: pd.DataFrame) -> dict[str, int]:
    counts = df["event_type"].value_counts()
    return {
        "views": int(counts.get("view", 0)),
        "whatsapp_clicks": int(counts.get("whatsapp_click", 0)),
        "website_clicks": int(counts.get("website_click", 0)),
    }


def business_analytics(
    store: DataStore,
    business_id: str,
    settings: Settings = DEFAULT_SETTINGS,
) -> dict[str, Any]:
    """Event totals for one business over the analytics window."""
    df = _events_frame(events_since(store, settings.analytics_window_days))
    totals = _event_totals(df[df["business_id"] == business_id])
    return {
        "business_id": business_id,
        "window_days": settings.analytics_window_days,
        "total_views": totals["views"],
        "total_whatsapp_clicks": totals["whatsapp_clicks"],
        "total_website_clicks": totals["website_clicks"],
    }


def admin_analytics(store: DataStore, settings: Settings = DEFAULT_SETTINGS) -> dict[str, Any]:
    """Directory-wide view counts by category, top businesses and totals."""
    df = _events_frame(events_since(store, settings.analytics_window_days))

    businesses = pd.DataFrame(
        [{"business_id": b.id, "business_name": b.name, "category_id": b.category_id}
         for b in store.businesses()],
        columns=["business_id", "business_name", "category_id"],
    )
    category_names = {c.id: c.name for c in store.categories()}

    # Views of deleted businesses still count in the totals, not in the breakdowns
    views = df[df["event_type"] == "view"].merge(businesses, on="business_id", how="inner")

    by_category = views.groupby("category_id").size().sort_values(ascending=False, kind="stable")
    visits_by_category = [
        {"category_id": cid, "category_name": category_names.get(cid, "Unknown"), "count": int(n)}
        for cid, n in by_category.items()
    ]

    by_business = (
        views.groupby(["business_id", "business_name"]).size()
        .sort_values(ascending=False, kind="stable")
        .head(TOP_BUSINESSES)
    )
    top_visited = [
        {"business_id": bid, "business_name": name, "count": int(n)}
        for (bid, name), n in by_business.items()
    ]

    return {
        "window_days": settings.analytics_window_days,
        "visits_by_category": visits_by_category,
        "top_visited_businesses": top_visited,
        "total_events": _event_totals(df),
    }
