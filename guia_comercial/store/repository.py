from __future__ import annotations

import threading
import uuid
from datetime import datetime
from typing import Any, Callable

from .models import (
    Banner,
    Business,
    Category,
    ChatMessage,
    City,
    Conversation,
    Merchant,
    Payment,
    Province,
    PublicUser,
    Report,
    Subcategory,
    TrackingEvent,
    utc_now,
)
from .seed import seed_collections


def generate_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex[:8]}"


class DataStore:
    """In-process repository for every directory collection.

    Call sites go through these methods only, so a persistent backend can
    replace this class without touching them. Lookups return the stored
    objects themselves; mutating them mutates the store.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self.clock = clock
        self.lock = threading.RLock()
        self.reset()

    # ── Lifecycle ───────────────────────────────────────────────────────

    def reset(self) -> None:
        """Wipe all state back to the seed collections."""
        with self.lock:
            seed = seed_collections(self.clock())
            self._provinces: list[Province] = seed["provinces"]
            self._cities: list[City] = seed["cities"]
            self._categories: list[Category] = seed["categories"]
            self._subcategories: list[Subcategory] = seed["subcategories"]
            self._merchants: list[Merchant] = seed["merchants"]
            self._businesses: list[Business] = seed["businesses"]
            self._banners: list[Banner] = seed["banners"]
            self._payments: list[Payment] = seed["payments"]
            self._public_users: list[PublicUser] = []
            self._conversations: list[Conversation] = []
            self._messages: list[ChatMessage] = []
            self._events: list[TrackingEvent] = []
            self._reports: list[Report] = []

    def snapshot(self) -> dict[str, Any]:
        """Return the full denormalized state as plain JSON-ready data."""
        with self.lock:
            return {
                "provinces": [p.model_dump(mode="json") for p in self._provinces],
                "cities": [c.model_dump(mode="json") for c in self._cities],
                "categories": [c.model_dump(mode="json") for c in self._categories],
                "subcategories": [s.model_dump(mode="json") for s in self._subcategories],
                "merchants": [m.model_dump(mode="json") for m in self._merchants],
                "businesses": [b.model_dump(mode="json") for b in self._businesses],
                "banners": [b.model_dump(mode="json") for b in self._banners],
                "payments": [p.model_dump(mode="json") for p in self._payments],
                "public_users": [u.model_dump(mode="json") for u in self._public_users],
                "conversations": [c.model_dump(mode="json") for c in self._conversations],
                "messages": [m.model_dump(mode="json") for m in self._messages],
            }

    # ── Locations & categories ──────────────────────────────────────────

    def province(self, province_id: str) -> Province | None:
        return next((p for p in self._provinces if p.id == province_id), None)

    def city(self, city_id: str) -> City | None:
        return next((c for c in self._cities if c.id == city_id), None)

    def category(self, category_id: str) -> Category | None:
        return next((c for c in self._categories if c.id == category_id), None)

    def categories(self) -> list[Category]:
        return list(self._categories)

    # ── Merchants ───────────────────────────────────────────────────────

    def merchants(self) -> list[Merchant]:
        return list(self._merchants)

    def merchant(self, merchant_id: str) -> Merchant | None:
        return next((m for m in self._merchants if m.id == merchant_id), None)

    def merchant_by_email(self, email: str) -> Merchant | None:
        email = email.strip().lower()
        return next((m for m in self._merchants if m.email.lower() == email), None)

    def add_merchant(self, merchant: Merchant) -> Merchant:
        with self.lock:
            self._merchants.append(merchant)
        return merchant

    # ── Public users ────────────────────────────────────────────────────

    def public_users(self) -> list[PublicUser]:
        return list(self._public_users)

    def public_user(self, user_id: str) -> PublicUser | None:
        return next((u for u in self._public_users if u.id == user_id), None)

    def public_user_by_email(self, email: str) -> PublicUser | None:
        email = email.strip().lower()
        return next((u for u in self._public_users if u.email.lower() == email), None)

    def add_public_user(self, user: PublicUser) -> PublicUser:
        with self.lock:
            self._public_users.append(user)
        return user

    # ── Businesses ──────────────────────────────────────────────────────

    def businesses(self) -> list[Business]:
        return list(self._businesses)

    def business(self, business_id: str) -> Business | None:
        return next((b for b in self._businesses if b.id == business_id), None)

    def businesses_owned_by(self, owner_id: str) -> list[Business]:
        return [b for b in self._businesses if b.owner_id == owner_id]

    def add_business(self, business: Business) -> Business:
        with self.lock:
            self._businesses.append(business)
        return business

    def remove_business(self, business_id: str) -> bool:
        with self.lock:
            before = len(self._businesses)
            self._businesses = [b for b in self._businesses if b.id != business_id]
            return len(self._businesses) != before

    # ── Banners & payments ──────────────────────────────────────────────

    def banners(self) -> list[Banner]:
        return list(self._banners)

    def add_banner(self, banner: Banner) -> Banner:
        with self.lock:
            self._banners.append(banner)
        return banner

    def payments(self) -> list[Payment]:
        return list(self._payments)

    def add_payment(self, payment: Payment) -> Payment:
        with self.lock:
            self._payments.append(payment)
        return payment

    # ── Chat ────────────────────────────────────────────────────────────

    def conversations(self) -> list[Conversation]:
        return list(self._conversations)

    def conversation(self, conversation_id: str) -> Conversation | None:
        return next((c for c in self._conversations if c.id == conversation_id), None)

    def find_conversation(self, client_id: str, business_id: str) -> Conversation | None:
        return next(
            (
                c
                for c in self._conversations
                if c.client_id == client_id and c.business_id == business_id
            ),
            None,
        )

    def add_conversation(self, conversation: Conversation) -> Conversation:
        with self.lock:
            self._conversations.append(conversation)
        return conversation

    def messages_for(self, conversation_id: str) -> list[ChatMessage]:
        return [m for m in self._messages if m.conversation_id == conversation_id]

    def add_message(self, message: ChatMessage) -> ChatMessage:
        with self.lock:
            self._messages.append(message)
        return message

    # ── Tracking & reports ──────────────────────────────────────────────

    def events(self) -> list[TrackingEvent]:
        return list(self._events)

    def add_event(self, event: TrackingEvent) -> TrackingEvent:
        with self.lock:
            self._events.append(event)
        return event

    def reports(self) -> list[Report]:
        return list(self._reports)

    def add_report(self, report: Report) -> Report:
        with self.lock:
            self._reports.append(report)
        return report


_store: DataStore | None = None


def get_store() -> DataStore:
    """Return the process-wide store, creating it on first call."""
    global _store
    if _store is None:
        _store = DataStore()
    return _store
