"""Pulse — Dashboard API Routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.analyzer.ads_engine import AdsCacheError
from app.analyzer.customers import list_active_customers
from app.analyzer.overview import MonthlyAggregator, SnapshotStoreError
from app.api.deps import get_aggregator, get_attribution
from app.core.attribution import AttributionMap
from app.core.logging import get_logger
from app.core.metric_registry import Platform
from app.core.months import InvalidMonthError, month_range, resolve_month
from app.database import get_session
from app.models.overview_models import (
    CustomerSummary,
    FollowerGrowthReport,
    MonthlyStats,
    OverviewReport,
    PostWithMetrics,
)

logger = get_logger("api.overview")

router = APIRouter(tags=["Dashboard"])


# ── Response Models ──


class AttributionResponse(BaseModel):
    """Response for GET /attribution/resolve."""

    account_id: str
    campaign_name: str
    customer: Optional[str] = None
    config_version: str


class PostsResponse(BaseModel):
    month: str
    platform: str
    customer: str
    count: int
    posts: List[PostWithMetrics]


# ── Endpoints ──


@router.get("/customer-overview", response_model=OverviewReport)
async def customer_overview(
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to this month"),
    customer: Optional[str] = Query(None, description="Customer slug"),
    aggregator: MonthlyAggregator = Depends(get_aggregator),
):
    """Unified FB / IG / Ads overview per customer for one month."""
    try:
        window = resolve_month(month)
        return await aggregator.get_customer_overview(window.key, customer)
    except InvalidMonthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (SnapshotStoreError, AdsCacheError) as e:
        logger.error(f"Customer overview failed: {e}", extra={"status_code": 503})
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/stats", response_model=MonthlyStats)
async def monthly_stats(
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to this month"),
    customer: Optional[str] = Query(None, description='Customer slug or "all"'),
    aggregator: MonthlyAggregator = Depends(get_aggregator),
):
    """Flat monthly totals for one customer or all accounts."""
    try:
        window = resolve_month(month)
        return await aggregator.get_monthly_stats(window.key, customer)
    except InvalidMonthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SnapshotStoreError as e:
        logger.error(f"Monthly stats failed: {e}", extra={"status_code": 503})
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/followers", response_model=FollowerGrowthReport)
async def follower_growth(
    customer: Optional[str] = Query(None, description='Customer slug or "all"'),
    end_month: Optional[str] = Query(None, description="Last month of the range, YYYY-MM"),
    months: int = Query(12, ge=1, le=36),
    aggregator: MonthlyAggregator = Depends(get_aggregator),
):
    """Monthly follower growth summary and per-account details."""
    try:
        windows = month_range(resolve_month(end_month), months)
        return await aggregator.get_follower_growth(customer, windows)
    except InvalidMonthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SnapshotStoreError as e:
        logger.error(f"Follower growth failed: {e}", extra={"status_code": 503})
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/posts/{platform}", response_model=PostsResponse)
async def posts(
    platform: Platform,
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to this month"),
    customer: Optional[str] = Query(None, description='Customer slug or "all"'),
    limit: int = Query(100, ge=1, le=500),
    aggregator: MonthlyAggregator = Depends(get_aggregator),
):
    """The month's posts ranked by interactions, with metrics as of month end."""
    try:
        window = resolve_month(month)
        result = await aggregator.get_top_posts(platform, window.key, customer, limit)
    except InvalidMonthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SnapshotStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return PostsResponse(
        month=window.key,
        platform=platform.value,
        customer=customer or "all",
        count=len(result),
        posts=result,
    )


@router.get("/attribution/resolve", response_model=AttributionResponse)
async def resolve_attribution(
    account_id: str = Query(..., description="Meta ad account ID (without act_)"),
    campaign_name: str = Query("", description="Campaign name"),
    attribution: AttributionMap = Depends(get_attribution),
):
    """Which customer a campaign's spend is attributed to (null if none)."""
    return AttributionResponse(
        account_id=account_id,
        campaign_name=campaign_name,
        customer=attribution.resolve(account_id, campaign_name),
        config_version=attribution.version,
    )


@router.get("/customers", response_model=List[CustomerSummary])
async def customers(session: Session = Depends(get_session)):
    """Active customers owning at least one account, by name."""
    try:
        found = list_active_customers(session)
    except SQLAlchemyError as e:
        logger.error(f"Customer list failed: {e}", extra={"status_code": 503})
        raise HTTPException(status_code=503, detail="Snapshot store unavailable")
    return [
        CustomerSummary(
            customer_id=c.customer_id, name=c.name, slug=c.slug, is_active=c.is_active
        )
        for c, _ in found
    ]
