from __future__ import annotations

from typing import Sequence

from ..store.models import Business, PublicUser
from .models import RecommendationItem, RecommendationResponse

DEFAULT_LIMIT = 4

CATEGORY_WEIGHT = 2.0
CITY_WEIGHT = 1.0
CARD_TIER_WEIGHT = 3.0  # tiers 4+ render as full cards
STANDARD_TIER_WEIGHT = 0.5


def interacted_ids(user: PublicUser) -> set[str]:
    return {h.business_id for h in user.history} | set(user.favorites)


def _score(
    business: Business,
    categories: set[str],
    cities: set[str],
) -> tuple[float, list[str]]:
    """Compute the additive score for one candidate business."""
    score = 0.0
    reasons: list[str] = []
    if business.category_id in categories:
        score += CATEGORY_WEIGHT
        reasons.append("category")
    if business.city_id in cities:
        score += CITY_WEIGHT
        reasons.append("city")
    if business.ad_tier >= 4:
        score += CARD_TIER_WEIGHT
        reasons.append("featured")
    elif business.ad_tier == 3:
        score += STANDARD_TIER_WEIGHT
        reasons.append("featured")
    return score, reasons


def score_candidates(user: PublicUser, businesses: Sequence[Business]) -> list[RecommendationItem]:
    """Score every business the user has not interacted with.

    Users with no history and no favorites get nothing (cold start), as do
    users whose interactions all point at businesses that no longer exist.
    """
    if not user.history and not user.favorites:
        return []

    seen = interacted_ids(user)
    interacted = [b for b in businesses if b.id in seen]
    if not interacted:
        return []

    categories = {b.category_id for b in interacted}
    cities = {b.city_id for b in interacted}

    items = []
    for business in businesses:
        if business.id in seen:
            continue
        score, reasons = _score(business, categories, cities)
        if score > 0:
            items.append(RecommendationItem(business=business, score=score, reasons=reasons))

    # sorted() is stable: equal scores keep catalogue order
    return sorted(items, key=lambda item: -item.score)


def recommend(
    user: PublicUser,
    businesses: Sequence[Business],
    limit: int = DEFAULT_LIMIT,
) -> RecommendationResponse:
    scored = score_candidates(user, businesses)
    return RecommendationResponse(recommendations=scored[:limit], total_candidates=len(scored))
