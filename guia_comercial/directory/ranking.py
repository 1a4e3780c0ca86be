from __future__ import annotations

import math
from typing import Protocol, Sequence, TypeVar

import numpy as np

from ..store.models import Business
from .geo import distances_km
from .models import BusinessFilters, Coordinates, RankedBusiness, SearchResponse
from .tiers import HEADER_BANNER_TIER, HOME_BANNER_TIER, MAX_LIST_TIER


class Tiered(Protocol):
    ad_tier: int


T = TypeVar("T")
TieredT = TypeVar("TieredT", bound=Tiered)

PAGE_SIZE = 8

# Initial home-page listing: Buenos Aires province, La Plata.
DEFAULT_FILTERS = BusinessFilters(province_id="06", city_id="060364")


def filter_businesses(businesses: Sequence[Business], filters: BusinessFilters) -> list[Business]:
    """Apply the home-page filters.

    Id filters match exactly when non-empty; ``name`` and ``neighborhood``
    are trimmed, case-insensitive substring matches.
    """
    results = list(businesses)

    if filters.province_id:
        results = [b for b in results if b.province_id == filters.province_id]
    if filters.city_id:
        results = [b for b in results if b.city_id == filters.city_id]

    hood = filters.neighborhood.strip().lower()
    if hood:
        results = [b for b in results if b.neighborhood and hood in b.neighborhood.lower()]

    if filters.category_id:
        results = [b for b in results if b.category_id == filters.category_id]
    if filters.subcategory_id:
        results = [b for b in results if b.subcategory_id == filters.subcategory_id]

    name = filters.name.strip().lower()
    if name:
        results = [b for b in results if name in b.name.lower()]

    return results


def sort_by_tier(businesses: Sequence[Business]) -> list[Business]:
    """Highest ad tier first; equal tiers keep their relative order."""
    return sorted(businesses, key=lambda b: -b.ad_tier)


def sort_by_distance(
    businesses: Sequence[Business], coords: Coordinates
) -> list[tuple[Business, float]]:
    """Nearest first, ties broken by higher ad tier.

    Businesses without coordinates get an infinite distance and end up last.
    """
    if not businesses:
        return []
    lats = np.array([b.lat if b.has_coordinates else np.nan for b in businesses], dtype=float)
    lons = np.array([b.lon if b.has_coordinates else np.nan for b in businesses], dtype=float)
    dists = distances_km(coords.lat, coords.lon, lats, lons)
    paired = [(b, float(d)) for b, d in zip(businesses, dists)]
    return sorted(paired, key=lambda pair: (pair[1], -pair[0].ad_tier))


def partition_tiers(
    businesses: Sequence[TieredT],
) -> tuple[list[TieredT], list[TieredT], list[TieredT]]:
    """Split into (home banners, header banners, list) by ad tier.

    Tier 6 goes to the home banner, tier 5 to the header banner and tiers
    1-4 to the paginated list. Relative order is preserved in each bucket.
    """
    home: list[TieredT] = []
    header: list[TieredT] = []
    listing: list[TieredT] = []
    for item in businesses:
        tier = item.ad_tier
        if tier == HOME_BANNER_TIER:
            home.append(item)
        elif tier == HEADER_BANNER_TIER:
            header.append(item)
        elif tier <= MAX_LIST_TIER:
            listing.append(item)
    return home, header, listing


def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(count / page_size)


def clamp_page(page: int, count: int, page_size: int = PAGE_SIZE) -> int:
    return max(1, min(page, max(total_pages(count, page_size), 1)))


def paginate(items: Sequence[T], page: int, page_size: int = PAGE_SIZE) -> list[T]:
    page = clamp_page(page, len(items), page_size)
    start = (page - 1) * page_size
    return list(items[start:start + page_size])


def search(
    businesses: Sequence[Business],
    filters: BusinessFilters,
    page: int = 1,
    coords: Coordinates | None = None,
) -> SearchResponse:
    """Run the full home-listing pipeline: filter, sort, partition, paginate."""
    filtered = filter_businesses(businesses, filters)

    if coords is not None:
        ranked = [
            RankedBusiness.model_validate(
                {**b.model_dump(), "distance_km": round(d, 3) if math.isfinite(d) else None}
            )
            for b, d in sort_by_distance(filtered, coords)
        ]
    else:
        ranked = [RankedBusiness.model_validate(b.model_dump()) for b in sort_by_tier(filtered)]

    home, header, listing = partition_tiers(ranked)
    current = clamp_page(page, len(listing))

    return SearchResponse(
        home_banners=home,
        header_banners=header,
        items=paginate(listing, current),
        page=current,
        total_pages=total_pages(len(listing)),
        total_results=len(listing),
        geolocated=coords is not None,
    )
