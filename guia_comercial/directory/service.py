from __future__ import annotations

import logging

from ..config import DEFAULT_SETTINGS, Settings
from ..errors import ConflictError, DirectoryError, NotFoundError, PermissionDeniedError
from ..store import DataStore, generate_id
from ..store.models import Business, Opinion, OpinionReply, Report
from .models import BusinessIn, OpinionIn, ReportIn
from .tiers import apply_tier

logger = logging.getLogger(__name__)


def get_business(store: DataStore, business_id: str) -> Business:
    business = store.business(business_id)
    if business is None:
        raise NotFoundError("Business not found.")
    return business


def _check_owner(business: Business, user_id: str) -> None:
    if business.owner_id != user_id:
        raise PermissionDeniedError("You do not own this business.")


def _denormalize_location(store: DataStore, business: Business) -> None:
    """Regenerate the stored province/city names from their ids."""
    business.province_name = ""
    business.city_name = ""
    if business.province_id:
        province = store.province(business.province_id)
        if province is None:
            raise DirectoryError(f"Unknown province: {business.province_id}")
        business.province_name = province.name
    if business.city_id:
        city = store.city(business.city_id)
        if city is None:
            raise DirectoryError(f"Unknown city: {business.city_id}")
        if business.province_id and city.province_id != business.province_id:
            raise DirectoryError("City does not belong to the selected province.")
        business.city_name = city.name


def create_business(
    store: DataStore,
    owner_id: str,
    data: BusinessIn,
    settings: Settings = DEFAULT_SETTINGS,
) -> Business:
    fields = data.model_dump(exclude={"ad_tier"})
    business = Business(id=generate_id("co"), owner_id=owner_id, **fields)
    _denormalize_location(store, business)
    apply_tier(business, data.ad_tier, store.clock(), settings.ad_duration_days)
    if data.ad_tier > 1:
        business.auto_renew = data.auto_renew
    store.add_business(business)
    logger.info("Business %s created by %s (tier %d)", business.id, owner_id, business.ad_tier)
    return business


def update_business(store: DataStore, business_id: str, user_id: str, data: BusinessIn) -> Business:
    """Replace the editable fields of a business.

    Ad tier and expiration only change through the payment flow.
    """
    with store.lock:
        business = get_business(store, business_id)
        _check_owner(business, user_id)
        fields = data.model_dump(exclude={"ad_tier", "auto_renew"})
        candidate = business.model_copy(update=fields)
        _denormalize_location(store, candidate)
        for key in (*fields, "province_name", "city_name"):
            setattr(business, key, getattr(candidate, key))
        business.auto_renew = data.auto_renew if business.ad_tier > 1 else False
    return business


def delete_business(store: DataStore, business_id: str, user_id: str) -> None:
    business = get_business(store, business_id)
    _check_owner(business, user_id)
    store.remove_business(business_id)
    logger.info("Business %s deleted by %s", business_id, user_id)


def add_opinion(store: DataStore, business_id: str, data: OpinionIn) -> Business:
    with store.lock:
        business = get_business(store, business_id)
        if any(o.author_id == data.author_id for o in business.opinions):
            raise ConflictError("You have already reviewed this business.")
        business.opinions.append(
            Opinion(
                id=generate_id("op"),
                author_id=data.author_id,
                author_name=data.author_name,
                rating=data.rating,
                text=(data.text or "").strip() or None,
                timestamp=store.clock(),
            )
        )
    return business


def _get_opinion(business: Business, opinion_id: str) -> Opinion:
    opinion = next((o for o in business.opinions if o.id == opinion_id), None)
    if opinion is None:
        raise NotFoundError("Opinion not found.")
    return opinion


def reply_to_opinion(
    store: DataStore, business_id: str, opinion_id: str, user_id: str, text: str
) -> Business:
    with store.lock:
        business = get_business(store, business_id)
        _check_owner(business, user_id)
        opinion = _get_opinion(business, opinion_id)
        if opinion.reply is not None:
            raise ConflictError("This opinion already has a reply.")
        text = text.strip()
        if not text:
            raise DirectoryError("Reply text is required.")
        opinion.reply = OpinionReply(text=text, timestamp=store.clock())
    return business


def toggle_opinion_like(store: DataStore, business_id: str, opinion_id: str, user_id: str) -> Business:
    with store.lock:
        business = get_business(store, business_id)
        opinion = _get_opinion(business, opinion_id)
        if user_id in opinion.likes:
            opinion.likes.remove(user_id)
        else:
            opinion.likes.append(user_id)
    return business


def submit_report(store: DataStore, data: ReportIn) -> Report:
    get_business(store, data.business_id)
    report = store.add_report(
        Report(
            id=generate_id("rep"),
            business_id=data.business_id,
            reason=data.reason,
            details=data.details,
            user_id=data.user_id,
            timestamp=store.clock(),
        )
    )
    logger.info("Report %s filed against business %s: %s", report.id, data.business_id, data.reason)
    return report
