"""Pulse — Aggregation Output Models.

Never persisted; rebuilt from the snapshot store and ads cache per request.
"""

from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel

from app.core.metric_registry import interaction_columns


# ─────────────────────────────────────────────
# FOLLOWER GROWTH
# ─────────────────────────────────────────────


class FollowerGrowth(BaseModel):
    """Start/end follower counts over one month.

    start_followers is None when no snapshot exists on or before the
    previous month end. net_change is then 0 and has_prev_data is False,
    so presentation can render "–" instead of "+0".
    """

    start_followers: Optional[int] = None
    end_followers: int = 0
    net_change: int = 0
    percent_change: float = 0.0  # 0 by convention when start is 0 or missing
    has_prev_data: bool = False


class AccountGrowth(FollowerGrowth):
    """Follower growth of a single account in a single month."""

    month: str
    platform: str
    account_id: str
    account_name: str = ""


class MonthlySummary(BaseModel):
    """Net follower change per platform for one month."""

    month: str
    facebook: int = 0
    instagram: int = 0
    total: int = 0
    has_prev_data: bool = False


class CurrentFollowers(BaseModel):
    platform: str
    account_id: str
    account_name: str = ""
    followers_count: int
    snapshot_date: date


class CurrentTotals(BaseModel):
    facebook: int = 0
    instagram: int = 0
    total: int = 0


class FollowerGrowthReport(BaseModel):
    months: List[str] = []
    summary: List[MonthlySummary] = []
    details: List[AccountGrowth] = []
    current_totals: CurrentTotals = CurrentTotals()
    current_details: List[CurrentFollowers] = []


# ─────────────────────────────────────────────
# CUSTOMER OVERVIEW
# ─────────────────────────────────────────────


class PlatformBlock(BaseModel):
    """Fields shared by the Facebook and Instagram blocks."""

    followers: int = 0
    prev_followers: Optional[int] = None
    follower_netto: int = 0
    follower_percent: float = 0.0
    has_prev_data: bool = False
    posts: int = 0
    comments: int = 0
    shares: int = 0
    reach: int = 0
    impressions: int = 0
    unobserved_posts: int = 0  # posts with no metric snapshot before the cutoff
    prev_posts: int = 0
    prev_reach: int = 0
    prev_impressions: int = 0


class FacebookBlock(PlatformBlock):
    reactions: int = 0
    video_views: int = 0


class InstagramBlock(PlatformBlock):
    likes: int = 0
    saves: int = 0
    plays: int = 0


class AdsBlock(BaseModel):
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    reach: int = 0
    cpc: float = 0.0
    cpm: float = 0.0
    ctr: float = 0.0
    campaigns: int = 0


class TotalsBlock(BaseModel):
    followers: int = 0
    prev_followers: Optional[int] = None
    follower_netto: int = 0
    has_prev_data: bool = False
    posts: int = 0
    reach: int = 0
    impressions: int = 0
    interactions: int = 0  # reactions + comments only; see build_totals()
    ad_spend: float = 0.0


class CustomerOverview(BaseModel):
    """One customer's unified monthly numbers.

    available=False means a store read failed for this customer; the
    metric blocks are then zeroed placeholders, not data.
    """

    customer_id: str
    name: str
    slug: str
    available: bool = True
    error: Optional[str] = None
    fb: FacebookBlock = FacebookBlock()
    ig: InstagramBlock = InstagramBlock()
    ads: AdsBlock = AdsBlock()
    totals: TotalsBlock = TotalsBlock()


class OverviewReport(BaseModel):
    month: str
    customers: List[CustomerOverview] = []
    unattributed_campaigns: int = 0
    orphaned_campaigns: int = 0  # attributed to a slug with no active customer


# ─────────────────────────────────────────────
# FLAT STATS & POSTS
# ─────────────────────────────────────────────


class MonthlyStats(BaseModel):
    """Flat monthly totals for one customer or "all"."""

    month: str
    customer: str = "all"
    total_followers: int = 0
    total_reach: int = 0
    total_interactions: int = 0
    total_posts: int = 0
    fb_followers: int = 0
    fb_reactions: int = 0
    fb_comments: int = 0
    fb_reach: int = 0
    fb_posts: int = 0
    ig_followers: int = 0
    ig_likes: int = 0
    ig_comments: int = 0
    ig_saves: int = 0
    ig_reach: int = 0
    ig_posts: int = 0


class PostWithMetrics(BaseModel):
    """A post joined with its latest snapshot as of the window end."""

    post_id: str
    platform: str
    account_id: str
    created_time: datetime
    body: str = ""
    media_type: str = ""
    permalink: str = ""
    observed: bool = False
    reach: int = 0
    impressions: int = 0
    reactions: int = 0
    comments: int = 0
    shares: int = 0
    saves: int = 0
    plays: int = 0

    @property
    def interactions(self) -> int:
        return sum(getattr(self, column) for column in interaction_columns(self.platform))


class CustomerSummary(BaseModel):
    customer_id: str
    name: str
    slug: str
    is_active: bool = True
