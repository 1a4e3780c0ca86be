from __future__ import annotations

import logging
from datetime import timedelta

from ..config import DEFAULT_SETTINGS, Settings
from ..directory.service import get_business
from ..directory.tiers import AD_TIERS, HEADER_BANNER_TIER, AdTier, apply_tier, is_valid_tier
from ..errors import DirectoryError, PermissionDeniedError
from ..store import DataStore, generate_id
from ..store.models import Banner, Business, Payment
from .models import ConfirmationResponse, PreferenceResponse

logger = logging.getLogger(__name__)


def _paid_tier(level: int) -> AdTier:
    if not is_valid_tier(level) or level <= 1:
        raise DirectoryError(f"Invalid ad tier: {level}")
    return AD_TIERS[level]


def _owned_business(store: DataStore, business_id: str, owner_id: str) -> Business:
    business = get_business(store, business_id)
    if business.owner_id != owner_id:
        raise PermissionDeniedError("You do not own this business.")
    return business


def create_preference(store: DataStore, business_id: str, level: int, owner_id: str) -> PreferenceResponse:
    tier = _paid_tier(level)
    business = _owned_business(store, business_id, owner_id)
    preference_id = generate_id("pref-")
    logger.info(
        "Payment preference %s for business %s: tier %d (%s), amount %d",
        preference_id, business.id, tier.level, tier.name, tier.price,
    )
    return PreferenceResponse(preference_id=preference_id, amount=tier.price, tier_name=tier.name)


def confirm_payment(
    store: DataStore,
    business_id: str,
    level: int,
    owner_id: str,
    settings: Settings = DEFAULT_SETTINGS,
) -> ConfirmationResponse:
    """Apply a paid tier to a business without verifying any payment."""
    tier = _paid_tier(level)
    with store.lock:
        business = _owned_business(store, business_id, owner_id)
        now = store.clock()
        apply_tier(business, tier.level, now, settings.ad_duration_days)
        payment = store.add_payment(
            Payment(
                id=generate_id("pay"),
                business_id=business.id,
                amount=tier.price,
                date=now,
                provider_reference=generate_id("sim-"),
                tier=tier.level,
            )
        )
        if tier.level >= HEADER_BANNER_TIER:
            store.add_banner(
                Banner(
                    id=generate_id("b"),
                    business_id=business.id,
                    image_url=business.image_url,
                    expires_at=now + timedelta(days=settings.ad_duration_days),
                )
            )
    logger.info("Payment %s confirmed: business %s now tier %d", payment.id, business.id, tier.level)
    return ConfirmationResponse(
        message=f"Payment confirmed. Your listing is now on the {tier.name} plan.",
        business=business,
        payment=payment,
    )
