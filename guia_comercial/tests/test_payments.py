from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from guia_comercial.app import app
from guia_comercial.directory.tiers import AD_TIERS, apply_tier, expiring_soon
from guia_comercial.store import DataStore, get_store
from guia_comercial.store.models import Business

NOW = datetime(2025, 6, 1, 9, 30, tzinfo=timezone.utc)

client = TestClient(app)


class _FixedClockApp:
    def setup_method(self):
        self.store = DataStore(clock=lambda: NOW)
        app.dependency_overrides[get_store] = lambda: self.store
        client.post("/api/logout")
        client.post("/api/login", json={"email": "juan.perez@example.com", "password": "password123"})

    def teardown_method(self):
        app.dependency_overrides.clear()


# ── Tier rules ───────────────────────────────────────────────────────────


def test_tier_prices():
    assert [AD_TIERS[level].price for level in range(1, 7)] == [0, 1500, 3000, 5000, 8000, 12000]


def test_apply_free_tier_clears_expiration():
    business = Business(id="x", name="X", owner_id="u1", ad_tier=3, ad_expires_at=NOW, auto_renew=True)
    apply_tier(business, 1, NOW, 30)
    assert business.ad_expires_at is None
    assert business.auto_renew is False


def test_expiring_soon_window():
    businesses = [
        Business(id="soon", name="Soon", owner_id="u1", ad_tier=2, ad_expires_at=NOW + timedelta(days=3)),
        Business(id="later", name="Later", owner_id="u1", ad_tier=2, ad_expires_at=NOW + timedelta(days=20)),
        Business(id="past", name="Past", owner_id="u1", ad_tier=2, ad_expires_at=NOW - timedelta(days=2)),
        Business(id="free", name="Free", owner_id="u1"),
    ]
    assert [n["business_id"] for n in expiring_soon(businesses, NOW)] == ["soon"]


# ── Payment flow ─────────────────────────────────────────────────────────


class TestPayments(_FixedClockApp):
    def test_create_preference(self):
        resp = client.post("/api/payments/create-preference", json={"business_id": "co7", "new_level": 4})
        assert resp.status_code == 200
        body = resp.json()
        assert body["amount"] == 5000
        assert body["tier_name"] == "Avanzado"
        assert body["preference_id"].startswith("pref-")

    def test_confirm_upgrades_for_thirty_days(self):
        resp = client.post("/api/payments/confirm-payment", json={"business_id": "co7", "new_level": 4})
        assert resp.status_code == 200
        business = self.store.business("co7")
        assert business.ad_tier == 4
        assert business.ad_expires_at == NOW + timedelta(days=30)
        payment = self.store.payments()[-1]
        assert payment.business_id == "co7" and payment.amount == 5000 and payment.tier == 4

    def test_confirm_top_tier_adds_banner(self):
        banners_before = len(self.store.banners())
        client.post("/api/payments/confirm-payment", json={"business_id": "co7", "new_level": 6})
        banners = self.store.banners()
        assert len(banners) == banners_before + 1
        assert banners[-1].business_id == "co7"
        assert banners[-1].expires_at == NOW + timedelta(days=30)

    def test_upgraded_business_moves_to_home_banner(self):
        client.post("/api/payments/confirm-payment", json={"business_id": "co7", "new_level": 6})
        body = client.get("/api/comercios/search", params={"province_id": "82"}).json()
        assert [b["id"] for b in body["home_banners"]] == ["co7"]

    def test_invalid_levels(self):
        for level in (0, 1, 7):
            resp = client.post("/api/payments/confirm-payment", json={"business_id": "co7", "new_level": level})
            assert resp.status_code == 400
        assert self.store.business("co7").ad_tier == 1

    def test_only_owner_pays(self):
        resp = client.post("/api/payments/confirm-payment", json={"business_id": "co2", "new_level": 4})
        assert resp.status_code == 403
        missing = client.post("/api/payments/confirm-payment", json={"business_id": "nope", "new_level": 4})
        assert missing.status_code == 404

    def test_requires_login(self):
        client.post("/api/logout")
        resp = client.post("/api/payments/create-preference", json={"business_id": "co7", "new_level": 2})
        assert resp.status_code == 401
