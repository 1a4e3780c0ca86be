from __future__ import annotations

import math

from fastapi.testclient import TestClient

from guia_comercial.app import app
from guia_comercial.directory.geo import distances_km, haversine_km
from guia_comercial.directory.models import BusinessFilters, Coordinates, RankedBusiness
from guia_comercial.directory.ranking import (
    DEFAULT_FILTERS,
    PAGE_SIZE,
    clamp_page,
    filter_businesses,
    paginate,
    partition_tiers,
    search,
    sort_by_distance,
    sort_by_tier,
)
from guia_comercial.store import get_store
from guia_comercial.store.models import Business

client = TestClient(app)

USER = Coordinates(lat=-34.6, lon=-58.4)


def _biz(bid: str, tier: int = 1, lat: float | None = None, lon: float | None = None, **kw) -> Business:
    return Business(id=bid, name=kw.pop("name", f"Comercio {bid}"), owner_id="u1", ad_tier=tier, lat=lat, lon=lon, **kw)


# ── Filters ──────────────────────────────────────────────────────────────


class TestFilters:
    def test_empty_filters_keep_everything(self):
        items = [_biz("a"), _biz("b")]
        assert filter_businesses(items, BusinessFilters()) == items

    def test_exact_id_match(self):
        items = [
            _biz("a", province_id="06", city_id="060364"),
            _biz("b", province_id="06", city_id="060357"),
            _biz("c", province_id="14", city_id="c4"),
        ]
        result = filter_businesses(items, BusinessFilters(province_id="06", city_id="060364"))
        assert [b.id for b in result] == ["a"]

    def test_name_is_case_insensitive_substring(self):
        items = [_biz("a", name="La Pizzería de Juan"), _biz("b", name="Tech Shop")]
        result = filter_businesses(items, BusinessFilters(name="  PIZZ "))
        assert [b.id for b in result] == ["a"]

    def test_neighborhood_substring_skips_missing(self):
        items = [_biz("a", neighborhood="City Bell"), _biz("b"), _biz("c", neighborhood="Tolosa")]
        result = filter_businesses(items, BusinessFilters(neighborhood="bell"))
        assert [b.id for b in result] == ["a"]

    def test_category_and_subcategory(self):
        items = [
            _biz("a", category_id="r1", subcategory_id="sr1"),
            _biz("b", category_id="r1", subcategory_id="sr2"),
            _biz("c", category_id="r2", subcategory_id="sr3"),
        ]
        assert [b.id for b in filter_businesses(items, BusinessFilters(category_id="r1"))] == ["a", "b"]
        assert [b.id for b in filter_businesses(items, BusinessFilters(subcategory_id="sr2"))] == ["b"]

    def test_default_filters_target_la_plata(self):
        assert DEFAULT_FILTERS.province_id == "06"
        assert DEFAULT_FILTERS.city_id == "060364"


# ── Sorting ──────────────────────────────────────────────────────────────


def test_sort_by_tier_descending_and_stable():
    items = [_biz("a", 1), _biz("b", 3), _biz("c", 1), _biz("d", 3), _biz("e", 2)]
    assert [b.id for b in sort_by_tier(items)] == ["b", "d", "e", "a", "c"]


def test_sort_by_distance_nearest_first():
    a = _biz("a", lat=-34.609, lon=-58.4)  # ~1 km
    b = _biz("b", lat=-35.05, lon=-58.4)  # ~50 km
    ranked = sort_by_distance([b, a], USER)
    assert [biz.id for biz, _ in ranked] == ["a", "b"]
    assert 0.5 < ranked[0][1] < 1.5
    assert 45 < ranked[1][1] < 55


def test_sort_by_distance_missing_coordinates_last():
    items = [_biz("none1", tier=6), _biz("far", lat=-31.4, lon=-64.2), _biz("none2"), _biz("near", lat=-34.61, lon=-58.41)]
    ranked = sort_by_distance(items, USER)
    ids = [biz.id for biz, _ in ranked]
    assert ids[:2] == ["near", "far"]
    assert set(ids[2:]) == {"none1", "none2"}
    assert all(math.isinf(d) for _, d in ranked[2:])


def test_sort_by_distance_ties_prefer_higher_tier():
    items = [_biz("low", 1, lat=-34.7, lon=-58.5), _biz("high", 4, lat=-34.7, lon=-58.5)]
    assert [biz.id for biz, _ in sort_by_distance(items, USER)] == ["high", "low"]


def test_sort_by_distance_empty():
    assert sort_by_distance([], USER) == []


# ── Haversine ────────────────────────────────────────────────────────────


def test_haversine_symmetric_and_zero():
    ab = haversine_km(-34.6, -58.4, -31.42, -64.19)
    ba = haversine_km(-31.42, -64.19, -34.6, -58.4)
    assert math.isclose(ab, ba)
    assert haversine_km(-34.6, -58.4, -34.6, -58.4) == 0.0


def test_haversine_known_distance():
    # Buenos Aires to Córdoba is roughly 650 km
    assert 600 < haversine_km(-34.6037, -58.3816, -31.4201, -64.1888) < 700


def test_vectorised_distances_match_scalar():
    lats = [-34.61, float("nan"), -31.42]
    lons = [-58.41, -60.0, -64.19]
    result = distances_km(-34.6, -58.4, lats, lons)
    assert math.isclose(result[0], haversine_km(-34.6, -58.4, -34.61, -58.41))
    assert math.isinf(result[1])
    assert math.isclose(result[2], haversine_km(-34.6, -58.4, -31.42, -64.19))


# ── Partition & pagination ───────────────────────────────────────────────


def test_partition_by_tier_table():
    items = [_biz(str(t), t) for t in (6, 1, 5, 4, 2, 6, 3)]
    home, header, listing = partition_tiers(items)
    assert [b.id for b in home] == ["6", "6"]
    assert [b.id for b in header] == ["5"]
    assert [b.id for b in listing] == ["1", "4", "2", "3"]


def test_home_banner_tier_never_in_list():
    items = [_biz(f"b{i}", tier=(i % 6) + 1) for i in range(30)]
    result = search(items, BusinessFilters(), page=1)
    listed = {b.id for b in result.items}
    for page in range(2, result.total_pages + 1):
        listed |= {b.id for b in search(items, BusinessFilters(), page=page).items}
    assert all(b.ad_tier == 6 for b in result.home_banners)
    assert not any(b.ad_tier == 6 for b in items if b.id in listed)


def test_pagination_reconstructs_list():
    items = list(range(21))
    pages = math.ceil(len(items) / PAGE_SIZE)
    rebuilt = []
    for page in range(1, pages + 1):
        rebuilt.extend(paginate(items, page))
    assert rebuilt == items


def test_pagination_clamps():
    items = list(range(10))
    assert paginate(items, 0) == items[:8]
    assert paginate(items, 99) == items[8:]
    assert clamp_page(5, 0) == 1
    assert paginate([], 3) == []


def test_search_empty_result():
    result = search([_biz("a", province_id="02")], BusinessFilters(province_id="06"))
    assert result.items == [] and result.home_banners == [] and result.header_banners == []
    assert result.total_pages == 0
    assert result.page == 1


def test_search_geolocated_reports_distances():
    a = _biz("a", lat=-34.609, lon=-58.4)
    b = _biz("b", lat=-35.05, lon=-58.4)
    c = _biz("c")
    result = search([c, b, a], BusinessFilters(), coords=USER)
    assert [x.id for x in result.items] == ["a", "b", "c"]
    assert result.items[2].distance_km is None
    assert result.geolocated


# ── API ──────────────────────────────────────────────────────────────────


def test_search_endpoint_defaults_to_la_plata():
    get_store().reset()
    resp = client.get("/api/comercios/search")
    assert resp.status_code == 200
    body = resp.json()
    assert [b["id"] for b in body["items"]] == ["co4", "co8"]
    assert body["home_banners"] == [] and body["header_banners"] == []


def test_free_tier_without_coordinates_lands_in_list():
    get_store().reset()
    body = client.get("/api/comercios/search", params={"province_id": "06"}).json()
    assert "co8" in [b["id"] for b in body["items"]]
    assert "co8" not in [b["id"] for b in body["home_banners"] + body["header_banners"]]


def test_search_endpoint_banners_without_filters():
    get_store().reset()
    body = client.get("/api/comercios/search", params={"province_id": ""}).json()
    assert [b["id"] for b in body["home_banners"]] == ["co1"]
    assert [b["id"] for b in body["header_banners"]] == ["co5"]
    assert body["total_results"] == 6
    assert [b["ad_tier"] for b in body["items"]] == sorted((b["ad_tier"] for b in body["items"]), reverse=True)


def test_search_endpoint_geolocated():
    get_store().reset()
    body = client.get("/api/comercios/search", params={"province_id": "", "lat": -34.92, "lon": -57.95}).json()
    assert body["geolocated"] is True
    assert body["items"][0]["id"] == "co4"
    assert body["items"][0]["distance_km"] < 1


def test_search_geolocated_keeps_filters():
    near_other_city = _biz("near", lat=-34.601, lon=-58.4, city_id="c1")
    far_in_city = _biz("far", lat=-35.05, lon=-58.4, city_id="060364")
    close_in_city = _biz("close", lat=-34.62, lon=-58.4, city_id="060364")
    no_coords_in_city = _biz("nowhere", city_id="060364")
    result = search(
        [near_other_city, far_in_city, no_coords_in_city, close_in_city],
        BusinessFilters(city_id="060364"),
        coords=USER,
    )
    assert [b.id for b in result.items] == ["close", "far", "nowhere"]
    assert result.total_results == 3


def test_search_endpoint_geolocated_with_filters():
    get_store().reset()
    body = client.get(
        "/api/comercios/search", params={"province_id": "14", "lat": -34.92, "lon": -57.95}
    ).json()
    # co4 is nearest overall but lies outside the province filter
    assert [b["id"] for b in body["items"]] == ["co2", "co6"]
    assert body["items"][0]["distance_km"] < body["items"][1]["distance_km"]


def test_search_endpoint_requires_both_coordinates():
    resp = client.get("/api/comercios/search", params={"lat": -34.6})
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_partition_keeps_ranked_items():
    ranked = [
        RankedBusiness(id=str(t), name=str(t), owner_id="u1", ad_tier=t, distance_km=float(t))
        for t in (5, 2, 6)
    ]
    home, header, listing = partition_tiers(ranked)
    assert [b.distance_km for b in home + header + listing] == [6.0, 5.0, 2.0]
