from __future__ import annotations

from pydantic import BaseModel, Field

from ..store.models import Business


class BusinessFilters(BaseModel):
    province_id: str = ""
    city_id: str = ""
    neighborhood: str = ""
    category_id: str = ""
    subcategory_id: str = ""
    name: str = ""


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)


class RankedBusiness(Business):
    distance_km: float | None = None


class SearchResponse(BaseModel):
    home_banners: list[RankedBusiness]
    header_banners: list[RankedBusiness]
    items: list[RankedBusiness]
    page: int
    total_pages: int
    total_results: int
    geolocated: bool = False


class BusinessIn(BaseModel):
    name: str = Field(..., min_length=1)
    image_url: str = ""
    category_id: str = ""
    subcategory_id: str = ""
    province_id: str = ""
    city_id: str = ""
    neighborhood: str | None = None
    whatsapp: str = ""
    address: str | None = None
    google_maps_url: str | None = None
    website_url: str | None = None
    description: str | None = None
    gallery: list[str] = Field(default_factory=list)
    ad_tier: int = Field(default=1, ge=1, le=6)
    auto_renew: bool = False
    lat: float | None = Field(default=None, ge=-90.0, le=90.0)
    lon: float | None = Field(default=None, ge=-180.0, le=180.0)


class OpinionIn(BaseModel):
    author_id: str = Field(..., min_length=1)
    author_name: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    text: str | None = None


class ReplyIn(BaseModel):
    text: str = Field(..., min_length=1)


class LikeIn(BaseModel):
    user_id: str = Field(..., min_length=1)


class ReportIn(BaseModel):
    business_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)
    details: str | None = None
    user_id: str | None = None
