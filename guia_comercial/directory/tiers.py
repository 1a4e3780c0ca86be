from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..store.models import Business

HOME_BANNER_TIER = 6
HEADER_BANNER_TIER = 5
MAX_LIST_TIER = 4
EXPIRY_NOTICE_DAYS = 7


@dataclass(frozen=True)
class AdTier:
    level: int
    name: str
    price: int


AD_TIERS: dict[int, AdTier] = {
    t.level: t
    for t in (
        AdTier(1, "Gratis", 0),
        AdTier(2, "Básico", 1500),
        AdTier(3, "Estándar", 3000),
        AdTier(4, "Avanzado", 5000),
        AdTier(5, "Destacado", 8000),
        AdTier(6, "Exclusivo", 12000),
    )
}


def is_valid_tier(level: int) -> bool:
    return level in AD_TIERS


def apply_tier(business: Business, level: int, now: datetime, duration_days: int) -> None:
    """Set ``level`` on ``business`` keeping the expiration invariant.

    Paid tiers always get a fresh expiration ``duration_days`` from ``now``;
    the free tier carries no expiration and no auto-renewal.
    """
    business.ad_tier = level
    if level > 1:
        business.ad_expires_at = now + timedelta(days=duration_days)
    else:
        business.ad_expires_at = None
        business.auto_renew = False


def days_until_expiry(business: Business, now: datetime) -> int | None:
    if business.ad_expires_at is None:
        return None
    return math.ceil((business.ad_expires_at - now).total_seconds() / 86400)


def expiring_soon(businesses: list[Business], now: datetime) -> list[dict]:
    """Paid listings whose ad expires within ``EXPIRY_NOTICE_DAYS``."""
    notices = []
    for b in businesses:
        if b.ad_tier <= 1:
            continue
        days = days_until_expiry(b, now)
        if days is not None and 0 <= days <= EXPIRY_NOTICE_DAYS:
            notices.append({
                "business_id": b.id,
                "business_name": b.name,
                "days_remaining": days,
                "expires_at": b.ad_expires_at,
                "auto_renew": b.auto_renew,
            })
    return notices
