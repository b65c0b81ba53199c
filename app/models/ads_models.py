"""Pulse — Ads Cache Models.

The ads cache holds one synced Meta Ads payload per month. The payload is
stored as raw JSON and parsed into the pydantic shapes below on read.
"""

from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel
from sqlmodel import SQLModel, Field


class AdsCache(SQLModel, table=True):
    """Synced campaign + account-summary JSON for one month."""

    __tablename__ = "ads_cache"

    id: Optional[int] = Field(default=None, primary_key=True)
    month: str = Field(index=True, unique=True, description="YYYY-MM")
    payload_json: str = Field(description="Serialized AdsCachePayload")
    synced_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AdInsight(BaseModel):
    """Campaign or account insight totals for one month."""

    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    reach: int = 0
    conversions: int = 0
    leads: int = 0
    link_clicks: int = 0
    post_engagement: int = 0


class AdCampaign(BaseModel):
    """A campaign's insight snapshot for exactly one month."""

    id: str
    name: str = ""
    account_id: str
    account_name: str = ""
    currency: str = ""
    objective: str = ""
    insight: AdInsight = AdInsight()


class AdAccount(BaseModel):
    id: str
    account_id: str
    name: str = ""
    currency: str = ""


class AdAccountSummary(AdInsight):
    account_id: str
    account_name: str = ""
    currency: str = ""


class AdsTotals(BaseModel):
    total_spend: float = 0.0
    total_impressions: int = 0
    total_reach: int = 0
    total_clicks: int = 0
    total_conversions: int = 0
    total_leads: int = 0
    avg_cpc: float = 0.0
    avg_cpm: float = 0.0
    avg_ctr: float = 0.0


class AdsCachePayload(BaseModel):
    """Everything the sync job writes for a month."""

    month: str
    start_date: str = ""
    end_date: str = ""
    ad_accounts: List[AdAccount] = []
    account_summaries: List[AdAccountSummary] = []
    campaigns: List[AdCampaign] = []
    totals: AdsTotals = AdsTotals()
