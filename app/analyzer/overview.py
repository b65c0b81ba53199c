"""Pulse — Monthly Aggregator.

Builds per-customer monthly overviews:
  customers → (FB posts, IG posts, followers, ads) in parallel → totals

Every store read runs in a worker thread with its own session, bounded by a
per-request semaphore. Customers are independent: a failed read marks
that customer unavailable and the rest of the batch still completes.
"""

import asyncio
import time
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.analyzer.ads_engine import (
    AttributedAds,
    attribute_campaigns,
    load_ads_payload,
    report_orphaned_campaigns,
    summarize_campaigns,
)
from app.analyzer.customers import AccountSet, list_active_customers
from app.analyzer.follower_engine import combine_growth, get_follower_growth, platform_growth
from app.analyzer.post_engine import aggregate_platform, fetch_month_posts, top_posts
from app.config import settings
from app.core.attribution import AttributionMap
from app.core.logging import bind, elapsed_ms, get_logger
from app.core.metric_registry import Platform
from app.core.months import MonthWindow, parse_month
from app.models.customer_models import Customer
from app.models.overview_models import (
    AdsBlock,
    CustomerOverview,
    FacebookBlock,
    FollowerGrowth,
    FollowerGrowthReport,
    InstagramBlock,
    MonthlyStats,
    OverviewReport,
    PostWithMetrics,
    TotalsBlock,
)

logger = get_logger("analyzer.overview")

T = TypeVar("T")

ALL_CUSTOMERS = "all"


class SnapshotStoreError(Exception):
    """The snapshot store failed as a whole, not just for one customer."""


# ─────────────────────────────────────────────
# BLOCK BUILDERS — pure functions of branch results
# ─────────────────────────────────────────────


def _follower_fields(growth: FollowerGrowth) -> dict:
    return {
        "followers": growth.end_followers,
        "prev_followers": growth.start_followers,
        "follower_netto": growth.net_change,
        "follower_percent": growth.percent_change,
        "has_prev_data": growth.has_prev_data,
    }


def build_facebook_block(current: dict, previous: dict, growth: FollowerGrowth) -> FacebookBlock:
    return FacebookBlock(
        **_follower_fields(growth),
        posts=current["posts"],
        reactions=current["reactions"],
        comments=current["comments"],
        shares=current["shares"],
        reach=current["reach"],
        impressions=current["impressions"],
        video_views=current["plays"],
        unobserved_posts=current["unobserved_posts"],
        prev_posts=previous["posts"],
        prev_reach=previous["reach"],
        prev_impressions=previous["impressions"],
    )


def build_instagram_block(current: dict, previous: dict, growth: FollowerGrowth) -> InstagramBlock:
    return InstagramBlock(
        **_follower_fields(growth),
        posts=current["posts"],
        likes=current["reactions"],
        comments=current["comments"],
        saves=current["saves"],
        shares=current["shares"],
        reach=current["reach"],
        impressions=current["impressions"],
        plays=current["plays"],
        unobserved_posts=current["unobserved_posts"],
        prev_posts=previous["posts"],
        prev_reach=previous["reach"],
        prev_impressions=previous["impressions"],
    )


def build_totals(
    fb: FacebookBlock,
    ig: InstagramBlock,
    ads: AdsBlock,
    followers: FollowerGrowth,
) -> TotalsBlock:
    """Cross-platform totals.

    interactions is reactions + comments on Facebook plus likes + comments
    on Instagram. Shares, saves and plays are not interactions here, so the
    figure matches historical reports.
    """
    return TotalsBlock(
        followers=followers.end_followers,
        prev_followers=followers.start_followers,
        follower_netto=followers.net_change,
        has_prev_data=followers.has_prev_data,
        posts=fb.posts + ig.posts,
        reach=fb.reach + ig.reach,
        impressions=fb.impressions + ig.impressions,
        interactions=fb.reactions + fb.comments + ig.likes + ig.comments,
        ad_spend=ads.spend,
    )


# ─────────────────────────────────────────────
# AGGREGATOR
# ─────────────────────────────────────────────


class MonthlyAggregator:
    """Stateless query façade over the snapshot store and ads cache."""

    def __init__(
        self,
        engine: Engine,
        attribution: AttributionMap,
        max_parallel_reads: Optional[int] = None,
    ):
        self.engine = engine
        self.attribution = attribution
        self.max_parallel_reads = max_parallel_reads or settings.max_parallel_reads

    # ── Store access ──

    def _run_in_session(self, fn: Callable[..., T], *args) -> T:
        with Session(self.engine) as session:
            return fn(session, *args)

    async def _read(self, sem: asyncio.Semaphore, fn: Callable[..., T], *args) -> T:
        """Run one blocking read in a worker thread."""
        async with sem:
            return await asyncio.to_thread(self._run_in_session, fn, *args)

    def _semaphore(self) -> asyncio.Semaphore:
        # Created per request so it binds to the running loop
        return asyncio.Semaphore(self.max_parallel_reads)

    async def _accounts_for(
        self, sem: asyncio.Semaphore, customer_filter: Optional[str]
    ) -> AccountSet:
        """Accounts of one customer, or every account for "all"/None."""
        if not customer_filter or customer_filter == ALL_CUSTOMERS:
            return AccountSet.everything()
        found = await self._read(sem, list_active_customers, customer_filter, False)
        if not found:
            logger.warning(f"Unknown or inactive customer {customer_filter!r}")
            return AccountSet()
        return found[0][1]

    # ── Customer overview ──

    async def _customer_overview(
        self,
        sem: asyncio.Semaphore,
        customer: Customer,
        accounts: AccountSet,
        window: MonthWindow,
        ads: AttributedAds,
    ) -> CustomerOverview:
        prev = window.previous()
        fb_ids, ig_ids = accounts.facebook, accounts.instagram

        fb_cur, fb_prev, ig_cur, ig_prev, fb_growth, ig_growth = await asyncio.gather(
            self._read(sem, aggregate_platform, Platform.FACEBOOK, fb_ids, window),
            self._read(sem, aggregate_platform, Platform.FACEBOOK, fb_ids, prev),
            self._read(sem, aggregate_platform, Platform.INSTAGRAM, ig_ids, window),
            self._read(sem, aggregate_platform, Platform.INSTAGRAM, ig_ids, prev),
            self._read(sem, platform_growth, Platform.FACEBOOK, fb_ids, window),
            self._read(sem, platform_growth, Platform.INSTAGRAM, ig_ids, window),
        )

        fb = build_facebook_block(fb_cur, fb_prev, fb_growth)
        ig = build_instagram_block(ig_cur, ig_prev, ig_growth)
        ads_block = summarize_campaigns(ads.for_customer(customer.slug))

        return CustomerOverview(
            customer_id=customer.customer_id,
            name=customer.name,
            slug=customer.slug,
            fb=fb,
            ig=ig,
            ads=ads_block,
            totals=build_totals(fb, ig, ads_block, combine_growth([fb_growth, ig_growth])),
        )

    async def _customer_overview_isolated(
        self,
        sem: asyncio.Semaphore,
        customer: Customer,
        accounts: AccountSet,
        window: MonthWindow,
        ads: AttributedAds,
    ) -> CustomerOverview:
        """Like _customer_overview, but a read failure yields an unavailable marker."""
        try:
            return await self._customer_overview(sem, customer, accounts, window, ads)
        except SQLAlchemyError as e:
            bind(logger, customer=customer.slug, month=window.key).error(
                f"Overview for {customer.slug} unavailable: {e}", exc_info=True
            )
            return CustomerOverview(
                customer_id=customer.customer_id,
                name=customer.name,
                slug=customer.slug,
                available=False,
                error="Snapshot store read failed",
            )

    async def get_customer_overview(
        self, month: str, customer_filter: Optional[str] = None
    ) -> OverviewReport:
        """One CustomerOverview per active customer (or just `customer_filter`)."""
        window = parse_month(month)
        sem = self._semaphore()
        started = time.perf_counter()

        try:
            customers: List[Tuple[Customer, AccountSet]] = await self._read(
                sem, list_active_customers, customer_filter, False
            )
            payload = await self._read(sem, load_ads_payload, window.key)
        except SQLAlchemyError as e:
            raise SnapshotStoreError(f"Snapshot store unavailable: {e}") from e

        ads = attribute_campaigns(payload, self.attribution)
        orphaned = 0
        if not customer_filter:
            orphaned = report_orphaned_campaigns(ads, (c.slug for c, _ in customers))

        overviews: Sequence[CustomerOverview] = await asyncio.gather(
            *(
                self._customer_overview_isolated(sem, customer, accounts, window, ads)
                for customer, accounts in customers
            )
        )

        failed = [o.slug for o in overviews if not o.available]
        if overviews and len(failed) == len(overviews):
            raise SnapshotStoreError(
                f"Snapshot store reads failed for all {len(failed)} customers"
            )

        logger.info(
            f"Customer overview for {window}: {len(overviews)} customers, "
            f"{len(failed)} unavailable, {len(ads.unattributed)} unattributed and "
            f"{orphaned} orphaned campaigns",
            extra={
                "month": window.key,
                "duration_ms": elapsed_ms(started),
            },
        )
        return OverviewReport(
            month=window.key,
            customers=list(overviews),
            unattributed_campaigns=len(ads.unattributed),
            orphaned_campaigns=orphaned,
        )

    # ── Flat monthly stats ──

    async def get_monthly_stats(
        self, month: str, customer_filter: Optional[str] = None
    ) -> MonthlyStats:
        """Flat FB + IG totals for one customer or all posts in the store."""
        window = parse_month(month)
        sem = self._semaphore()

        try:
            accounts = await self._accounts_for(sem, customer_filter)
            fb, ig, fb_growth, ig_growth = await asyncio.gather(
                self._read(sem, aggregate_platform, Platform.FACEBOOK, accounts.facebook, window),
                self._read(sem, aggregate_platform, Platform.INSTAGRAM, accounts.instagram, window),
                self._read(sem, platform_growth, Platform.FACEBOOK, accounts.facebook, window),
                self._read(sem, platform_growth, Platform.INSTAGRAM, accounts.instagram, window),
            )
        except SQLAlchemyError as e:
            raise SnapshotStoreError(f"Snapshot store unavailable: {e}") from e

        return MonthlyStats(
            month=window.key,
            customer=customer_filter or ALL_CUSTOMERS,
            total_followers=fb_growth.end_followers + ig_growth.end_followers,
            total_reach=fb["reach"] + ig["reach"],
            total_interactions=fb["reactions"] + fb["comments"] + ig["reactions"] + ig["comments"],
            total_posts=fb["posts"] + ig["posts"],
            fb_followers=fb_growth.end_followers,
            fb_reactions=fb["reactions"],
            fb_comments=fb["comments"],
            fb_reach=fb["reach"],
            fb_posts=fb["posts"],
            ig_followers=ig_growth.end_followers,
            ig_likes=ig["reactions"],
            ig_comments=ig["comments"],
            ig_saves=ig["saves"],
            ig_reach=ig["reach"],
            ig_posts=ig["posts"],
        )

    # ── Follower growth ──

    async def _follower_growth_for(
        self, sem: asyncio.Semaphore, accounts: AccountSet, months: List[MonthWindow]
    ) -> FollowerGrowthReport:
        try:
            return await self._read(sem, get_follower_growth, accounts, months)
        except SQLAlchemyError as e:
            raise SnapshotStoreError(f"Snapshot store unavailable: {e}") from e

    async def get_follower_growth(
        self, customer_filter: Optional[str], months: List[MonthWindow]
    ) -> FollowerGrowthReport:
        """Monthly follower growth for one customer (or "all") over a month range."""
        sem = self._semaphore()
        try:
            accounts = await self._accounts_for(sem, customer_filter)
        except SQLAlchemyError as e:
            raise SnapshotStoreError(f"Snapshot store unavailable: {e}") from e
        return await self._follower_growth_for(sem, accounts, months)

    # ── Posts ──

    async def get_top_posts(
        self,
        platform: Platform | str,
        month: str,
        customer_filter: Optional[str] = None,
        limit: int = 100,
    ) -> List[PostWithMetrics]:
        window = parse_month(month)
        sem = self._semaphore()
        try:
            accounts = await self._accounts_for(sem, customer_filter)
            return await self._read(
                sem, top_posts, platform, accounts.for_platform(platform), window, limit
            )
        except SQLAlchemyError as e:
            raise SnapshotStoreError(f"Snapshot store unavailable: {e}") from e

    async def get_month_posts(
        self, month: str, customer_filter: Optional[str] = None
    ) -> List[PostWithMetrics]:
        """All FB then IG posts of the month, oldest first within a platform."""
        window = parse_month(month)
        sem = self._semaphore()
        try:
            accounts = await self._accounts_for(sem, customer_filter)
            fb, ig = await asyncio.gather(
                self._read(sem, fetch_month_posts, Platform.FACEBOOK, accounts.facebook, window),
                self._read(sem, fetch_month_posts, Platform.INSTAGRAM, accounts.instagram, window),
            )
        except SQLAlchemyError as e:
            raise SnapshotStoreError(f"Snapshot store unavailable: {e}") from e
        return fb + ig
