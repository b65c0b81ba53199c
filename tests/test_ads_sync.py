"""Tests for app.connectors.meta — ads cache sync and insight transforms."""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.analyzer.ads_engine import load_ads_payload
from app.connectors.meta.client import MetaAPIError
from app.connectors.meta.sync import store_ads_payload, sync_ads_month
from app.connectors.meta.transformer import compute_totals, transform_campaigns
from app.models.ads_models import AdAccountSummary, AdsCachePayload

ACCOUNTS = [
    {"id": "act_111", "account_id": "111", "name": "Acme Ads", "currency": "EUR", "account_status": 1},
    {"id": "act_222", "account_id": "222", "name": "Broken", "currency": "EUR", "account_status": 1},
]


def _campaign_row(campaign_id, name, spend, clicks=10, impressions=1000):
    return {
        "campaign_id": campaign_id,
        "campaign_name": name,
        "spend": str(spend),
        "clicks": str(clicks),
        "impressions": str(impressions),
        "reach": "500",
        "actions": [{"action_type": "link_click", "value": "7"}],
    }


def _mock_endpoints(campaigns_by_act, failing=()):
    """Build a MagicMock shaped like MetaEndpoints."""
    endpoints = MagicMock()
    endpoints.fetch_active_ad_accounts = AsyncMock(return_value=ACCOUNTS)

    async def account_insights(act_id, since, until):
        if act_id in failing:
            raise MetaAPIError("permission denied", 400, 200)
        rows = campaigns_by_act.get(act_id, [])
        spend = sum(float(r["spend"]) for r in rows)
        return [{"spend": str(spend), "clicks": "10", "impressions": "1000", "reach": "500"}] if rows else []

    async def campaign_insights(act_id, since, until):
        if act_id in failing:
            raise MetaAPIError("permission denied", 400, 200)
        return campaigns_by_act.get(act_id, [])

    endpoints.fetch_account_insights = AsyncMock(side_effect=account_insights)
    endpoints.fetch_campaign_insights = AsyncMock(side_effect=campaign_insights)
    return endpoints


class TestSyncAdsMonth:

    def test_caches_campaigns_sorted_by_spend(self, db_session):
        endpoints = _mock_endpoints(
            {"act_111": [_campaign_row("c1", "Small", 5), _campaign_row("c2", "Big", 50)]}
        )
        client = MagicMock()
        client.close = AsyncMock()

        with patch("app.connectors.meta.sync.MetaEndpoints", return_value=endpoints):
            payload = asyncio.run(sync_ads_month(db_session, "2025-12", client=client))

        assert payload.start_date == "2025-12-01"
        assert payload.end_date == "2025-12-31"
        assert [c.id for c in payload.campaigns] == ["c2", "c1"]
        assert payload.campaigns[0].account_id == "111"
        assert payload.campaigns[0].insight.link_clicks == 7
        assert payload.totals.total_spend == 55.0
        # Caller-owned client stays open
        client.close.assert_not_awaited()

        cached = load_ads_payload(db_session, "2025-12")
        assert [c.id for c in cached.campaigns] == ["c2", "c1"]

    def test_failing_account_skipped(self, db_session):
        endpoints = _mock_endpoints(
            {"act_111": [_campaign_row("c1", "Ok", 5)]}, failing={"act_222"}
        )
        client = MagicMock()
        client.close = AsyncMock()

        with patch("app.connectors.meta.sync.MetaEndpoints", return_value=endpoints):
            payload = asyncio.run(sync_ads_month(db_session, "2025-12", client=client))

        assert [c.id for c in payload.campaigns] == ["c1"]
        assert len(payload.ad_accounts) == 2
        assert len(payload.account_summaries) == 1

    def test_account_list_failure_propagates(self, db_session):
        endpoints = MagicMock()
        endpoints.fetch_active_ad_accounts = AsyncMock(side_effect=MetaAPIError("bad token", 401))
        client = MagicMock()
        client.close = AsyncMock()

        with patch("app.connectors.meta.sync.MetaEndpoints", return_value=endpoints):
            with pytest.raises(MetaAPIError):
                asyncio.run(sync_ads_month(db_session, "2025-12", client=client))


class TestStoreAdsPayload:

    def test_upsert_replaces_month(self, db_session):
        store_ads_payload(db_session, AdsCachePayload(month="2025-12", start_date="a"))
        store_ads_payload(db_session, AdsCachePayload(month="2025-12", start_date="b"))
        assert load_ads_payload(db_session, "2025-12").start_date == "b"


class TestTransformer:

    def test_campaign_fields(self):
        campaigns = transform_campaigns(
            [_campaign_row("c9", "Herlitz Winter", "12.34")],
            {"account_id": 594963889574701, "name": "Pelikan", "currency": "EUR"},
        )
        assert campaigns[0].account_id == "594963889574701"
        assert campaigns[0].insight.spend == 12.34
        assert campaigns[0].insight.clicks == 10

    def test_garbage_numbers_become_zero(self):
        campaigns = transform_campaigns([{"campaign_id": "x", "spend": "n/a"}], {"account_id": "1"})
        assert campaigns[0].insight.spend == 0.0
        assert campaigns[0].insight.impressions == 0

    def test_totals_zero_guarded(self):
        totals = compute_totals([AdAccountSummary(account_id="1", spend=10.0)])
        assert totals.total_spend == 10.0
        assert totals.avg_cpc == 0
        assert totals.avg_cpm == 0
        assert totals.avg_ctr == 0
