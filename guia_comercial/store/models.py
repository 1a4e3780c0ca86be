from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class Province(BaseModel):
    id: str
    name: str


class City(BaseModel):
    id: str
    name: str
    province_id: str


class Category(BaseModel):
    id: str
    name: str
    icon: str = ""


class Subcategory(BaseModel):
    id: str
    name: str
    category_id: str


class InteractionType(str, Enum):
    view = "view"
    favorite = "favorite"
    opinion = "opinion"


class Interaction(BaseModel):
    business_id: str
    type: InteractionType
    timestamp: datetime = Field(default_factory=utc_now)
    business_name: str = ""

    model_config = {"frozen": True}


class OpinionReply(BaseModel):
    text: str
    timestamp: datetime = Field(default_factory=utc_now)


class Opinion(BaseModel):
    id: str
    author_id: str
    author_name: str
    rating: int = Field(..., ge=1, le=5)
    text: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)
    reply: OpinionReply | None = None
    likes: list[str] = Field(default_factory=list)


class Business(BaseModel):
    id: str
    name: str
    image_url: str = ""
    category_id: str = ""
    subcategory_id: str = ""
    province_id: str = ""
    province_name: str = ""
    city_id: str = ""
    city_name: str = ""
    neighborhood: str | None = None
    owner_id: str
    whatsapp: str = ""
    address: str | None = None
    google_maps_url: str | None = None
    website_url: str | None = None
    description: str | None = None
    gallery: list[str] = Field(default_factory=list)
    ad_tier: int = Field(default=1, ge=1, le=6)
    ad_expires_at: datetime | None = None
    auto_renew: bool = False
    opinions: list[Opinion] = Field(default_factory=list)
    lat: float | None = None
    lon: float | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    @property
    def average_rating(self) -> float | None:
        if not self.opinions:
            return None
        return round(sum(o.rating for o in self.opinions) / len(self.opinions), 1)


class Merchant(BaseModel):
    id: str
    name: str
    email: str
    phone: str | None = None
    is_verified: bool = False
    unread_message_count: int = 0
    password_hash: str = Field(default="", exclude=True)
    verification_code: str | None = Field(default=None, exclude=True)


class PublicUser(BaseModel):
    id: str
    name: str
    surname: str
    email: str
    whatsapp: str | None = None
    favorites: list[str] = Field(default_factory=list)
    history: list[Interaction] = Field(default_factory=list)
    unread_message_count: int = 0
    password_hash: str = Field(default="", exclude=True)


class Conversation(BaseModel):
    id: str
    client_id: str
    business_id: str
    client_name: str
    business_name: str
    business_image_url: str = ""
    last_message: str | None = None
    last_message_timestamp: datetime | None = None
    last_message_sender_id: str | None = None
    unread_by_client: int = 0
    unread_by_business: int = 0


class ChatMessage(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    content: str
    timestamp: datetime = Field(default_factory=utc_now)
    is_read: bool = False


class Banner(BaseModel):
    id: str
    business_id: str
    image_url: str
    expires_at: datetime


class Payment(BaseModel):
    id: str
    business_id: str
    amount: int
    date: datetime = Field(default_factory=utc_now)
    provider_reference: str
    tier: int | None = None


class TrackingEventType(str, Enum):
    view = "view"
    whatsapp_click = "whatsapp_click"
    website_click = "website_click"


class TrackingEvent(BaseModel):
    id: str
    business_id: str
    event_type: TrackingEventType
    user_id: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)


class Report(BaseModel):
    id: str
    business_id: str
    reason: str
    details: str | None = None
    user_id: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)
