"""Pulse — Meta API Endpoints.

Fetch functions for the ad accounts and monthly insights that feed the
ads cache. Each returns raw insight rows; normalisation happens in the
transformer.
"""

import json
from typing import Any, Dict, List

from app.connectors.meta.client import MetaClient, META_BASE
from app.core.logging import get_logger

logger = get_logger("meta.endpoints")

AD_ACCOUNT_FIELDS = "id,name,account_id,currency,account_status"
ACCOUNT_INSIGHT_FIELDS = "impressions,reach,clicks,spend,cpc,cpm,ctr,actions"
CAMPAIGN_INSIGHT_FIELDS = (
    "campaign_id,campaign_name,impressions,reach,clicks,spend,"
    "cpc,cpm,ctr,actions,cost_per_action_type,objective"
)

ACTIVE_ACCOUNT_STATUS = 1


class MetaEndpoints:
    """Ads-related reads on behalf of one access token."""

    def __init__(self, client: MetaClient):
        self.client = client

    async def fetch_active_ad_accounts(self) -> List[Dict[str, Any]]:
        """Ad accounts visible to the token with account_status == 1."""
        url = f"{META_BASE}/me/adaccounts"
        params = {"fields": AD_ACCOUNT_FIELDS, "limit": 100}
        accounts = await self.client.paginated_get(url, params)
        active = [a for a in accounts if a.get("account_status") == ACTIVE_ACCOUNT_STATUS]
        logger.info(f"{len(active)} of {len(accounts)} ad accounts are active")
        return active

    async def fetch_account_insights(
        self, act_id: str, date_start: str, date_stop: str
    ) -> List[Dict[str, Any]]:
        """Account-level totals for the time range (one row, or none)."""
        url = f"{META_BASE}/{act_id}/insights"
        params = {
            "fields": ACCOUNT_INSIGHT_FIELDS,
            "time_range": json.dumps({"since": date_start, "until": date_stop}),
            "level": "account",
        }
        return await self.client.paginated_get(url, params)

    async def fetch_campaign_insights(
        self, act_id: str, date_start: str, date_stop: str
    ) -> List[Dict[str, Any]]:
        """One row per campaign with activity in the time range."""
        url = f"{META_BASE}/{act_id}/insights"
        params = {
            "fields": CAMPAIGN_INSIGHT_FIELDS,
            "time_range": json.dumps({"since": date_start, "until": date_stop}),
            "level": "campaign",
            "limit": 500,
        }
        return await self.client.paginated_get(url, params)
