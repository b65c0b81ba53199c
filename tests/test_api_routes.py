"""Tests for the FastAPI routes — status codes and response shapes."""
from datetime import date, datetime
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from app.analyzer.overview import MonthlyAggregator, SnapshotStoreError
from app.api.deps import get_aggregator, get_attribution
from app.database import get_session
from app.main import app
from app.models.ads_models import AdsCache, AdsCachePayload


@pytest.fixture
def client(db_engine, attribution):
    """Test client wired to the per-test SQLite store (no lifespan)."""

    def _session():
        with Session(db_engine) as session:
            yield session

    app.dependency_overrides[get_aggregator] = lambda: MonthlyAggregator(db_engine, attribution)
    app.dependency_overrides[get_attribution] = lambda: attribution
    app.dependency_overrides[get_session] = _session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(store):
    store.customer("cust-1", "That Customer", "thatcustomer", facebook=["page-1"])
    store.followers("page-1", date(2025, 11, 30), 1000)
    store.followers("page-1", date(2025, 12, 31), 1050)
    store.post("p1", "page-1", datetime(2025, 12, 5), body="Hello")
    store.snapshot("p1", datetime(2025, 12, 6), reactions=10, comments=2)


class TestHealth:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"


class TestOverviewRoutes:

    def test_customer_overview(self, client, seeded):
        resp = client.get("/customer-overview", params={"month": "2025-12"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["month"] == "2025-12"
        assert body["customers"][0]["fb"]["follower_netto"] == 50
        assert body["customers"][0]["totals"]["interactions"] == 12

    @pytest.mark.parametrize("path", ["/customer-overview", "/stats", "/posts/facebook", "/export/overview"])
    def test_bad_month(self, client, path):
        resp = client.get(path, params={"month": "2025-13"})
        assert resp.status_code == 400

    def test_bad_end_month(self, client):
        resp = client.get("/followers", params={"end_month": "12-2025"})
        assert resp.status_code == 400

    def test_store_unavailable(self, client):
        with patch.object(
            MonthlyAggregator,
            "get_customer_overview",
            AsyncMock(side_effect=SnapshotStoreError("down")),
        ):
            resp = client.get("/customer-overview", params={"month": "2025-12"})
        assert resp.status_code == 503

    def test_stats(self, client, seeded):
        resp = client.get("/stats", params={"month": "2025-12", "customer": "thatcustomer"})
        assert resp.status_code == 200
        assert resp.json()["fb_reactions"] == 10

    def test_followers(self, client, seeded):
        resp = client.get("/followers", params={"end_month": "2025-12", "months": 2})
        assert resp.status_code == 200
        body = resp.json()
        assert body["months"] == ["2025-11", "2025-12"]
        assert body["summary"][0]["facebook"] == 50

    def test_posts(self, client, seeded):
        resp = client.get("/posts/facebook", params={"month": "2025-12"})
        assert resp.status_code == 200
        assert resp.json()["count"] == 1

    def test_unknown_platform(self, client):
        assert client.get("/posts/tiktok").status_code == 422

    def test_attribution(self, client):
        resp = client.get(
            "/attribution/resolve",
            params={"account_id": "111", "campaign_name": "Herlitz Winter"},
        )
        assert resp.status_code == 200
        assert resp.json()["customer"] == "herlitz"
        assert resp.json()["config_version"] == "test-1"

    def test_attribution_unmatched(self, client):
        resp = client.get("/attribution/resolve", params={"account_id": "999"})
        assert resp.json()["customer"] is None

    def test_customers(self, client, seeded, store):
        store.customer("cust-2", "Empty", "empty")
        resp = client.get("/customers")
        assert resp.status_code == 200
        assert [c["slug"] for c in resp.json()] == ["thatcustomer"]


class TestExportRoutes:

    def test_export_overview(self, client, seeded):
        resp = client.get("/export/overview", params={"month": "2025-12"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["rows"][0]["fb_follower_netto"] == "+50"
        assert "thatcustomer" in body["slides"]

    def test_export_posts(self, client, seeded):
        resp = client.get("/export/posts", params={"month": "2025-12"})
        body = resp.json()
        assert body["rows"][0]["saves"] == "—"
        assert body["totals"]["facebook"]["interactions"] == 12

    def test_export_followers(self, client, seeded):
        resp = client.get("/export/followers", params={"end_month": "2025-12", "months": 1})
        assert resp.json()["facebook"] == [50]


class TestAdsRoutes:

    def test_sync_without_token(self, client):
        with patch("app.api.ads_routes.settings") as mock_settings:
            mock_settings.meta_access_token = ""
            resp = client.post("/ads/sync", params={"month": "2025-12"})
        assert resp.status_code == 500

    def test_sync(self, client):
        payload = AdsCachePayload(month="2025-12")
        with patch("app.api.ads_routes.settings") as mock_settings, patch(
            "app.api.ads_routes.sync_ads_month", AsyncMock(return_value=payload)
        ):
            mock_settings.meta_access_token = "token"
            resp = client.post("/ads/sync", params={"month": "2025-12"})
        assert resp.status_code == 200
        assert resp.json()["month"] == "2025-12"
        assert resp.json()["campaign_count"] == 0

    def test_sync_bad_month(self, client):
        assert client.post("/ads/sync", params={"month": "nope"}).status_code == 400

    def test_get_ads_all_accounts(self, client, store, make_campaign):
        store.ads(
            "2025-12",
            [
                make_campaign("c1", "Acme Winter", "111", spend=40.0),
                make_campaign("c2", "Globex Winter", "222", spend=60.0),
            ],
        )
        resp = client.get("/ads", params={"month": "2025-12"})
        assert resp.status_code == 200
        assert [c["id"] for c in resp.json()["campaigns"]] == ["c1", "c2"]

    def test_get_ads_for_customer(self, client, store, make_campaign):
        store.ads(
            "2025-12",
            [
                make_campaign("c1", "Acme Winter", "111", spend=40.0, clicks=20, impressions=4000),
                make_campaign("c2", "Herlitz Winter", "111", spend=10.0),
                make_campaign("c3", "Globex Winter", "222", spend=60.0),
            ],
        )
        resp = client.get("/ads", params={"month": "2025-12", "customer": "acme"})
        body = resp.json()
        assert [c["id"] for c in body["campaigns"]] == ["c1"]
        assert body["account_summaries"] == []
        assert body["totals"]["total_spend"] == 40.0
        assert body["totals"]["avg_cpc"] == 2.0

    def test_get_ads_never_synced(self, client):
        resp = client.get("/ads", params={"month": "2025-12"})
        assert resp.status_code == 200
        assert resp.json()["campaigns"] == []

    def test_get_ads_bad_month(self, client):
        assert client.get("/ads", params={"month": "2025-13"}).status_code == 400

    def test_get_ads_unreadable_cache(self, client, db_session):
        db_session.add(AdsCache(month="2025-12", payload_json='{"campaigns": "nope"}'))
        db_session.commit()
        assert client.get("/ads", params={"month": "2025-12"}).status_code == 503
