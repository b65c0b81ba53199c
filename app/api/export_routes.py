"""Pulse — Export API Routes.

Row sets for the spreadsheet and slide renderers.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.analyzer.ads_engine import AdsCacheError
from app.analyzer.overview import MonthlyAggregator, SnapshotStoreError
from app.api.deps import get_aggregator
from app.core.logging import get_logger
from app.core.months import InvalidMonthError, month_range, resolve_month
from app.export.projection import (
    customer_slide_data,
    follower_chart_series,
    overview_table_rows,
    post_export_rows,
    post_export_totals,
)

logger = get_logger("api.export")

router = APIRouter(prefix="/export", tags=["Export"])


@router.get("/overview")
async def export_overview(
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to this month"),
    customer: Optional[str] = Query(None, description="Customer slug"),
    aggregator: MonthlyAggregator = Depends(get_aggregator),
):
    """Overview table rows plus per-customer slide data."""
    try:
        window = resolve_month(month)
        report = await aggregator.get_customer_overview(window.key, customer)
    except InvalidMonthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (SnapshotStoreError, AdsCacheError) as e:
        logger.error(f"Overview export failed: {e}", extra={"status_code": 503})
        raise HTTPException(status_code=503, detail=str(e))

    return {
        "month": report.month,
        "rows": overview_table_rows(report),
        "slides": {
            c.slug: customer_slide_data(c) for c in report.customers if c.available
        },
    }


@router.get("/posts")
async def export_posts(
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to this month"),
    customer: Optional[str] = Query(None, description='Customer slug or "all"'),
    aggregator: MonthlyAggregator = Depends(get_aggregator),
):
    """Per-post rows and per-platform totals for the monthly spreadsheet."""
    try:
        window = resolve_month(month)
        posts = await aggregator.get_month_posts(window.key, customer)
    except InvalidMonthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SnapshotStoreError as e:
        logger.error(f"Post export failed: {e}", extra={"status_code": 503})
        raise HTTPException(status_code=503, detail=str(e))

    return {
        "month": window.key,
        "customer": customer or "all",
        "rows": post_export_rows(posts),
        "totals": post_export_totals(posts),
    }


@router.get("/followers")
async def export_followers(
    customer: Optional[str] = Query(None, description='Customer slug or "all"'),
    end_month: Optional[str] = Query(None, description="Last month of the range, YYYY-MM"),
    months: int = Query(12, ge=1, le=36),
    aggregator: MonthlyAggregator = Depends(get_aggregator),
):
    """Follower growth chart series, oldest month first."""
    try:
        windows = month_range(resolve_month(end_month), months)
        report = await aggregator.get_follower_growth(customer, windows)
    except InvalidMonthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SnapshotStoreError as e:
        logger.error(f"Follower export failed: {e}", extra={"status_code": 503})
        raise HTTPException(status_code=503, detail=str(e))

    return follower_chart_series(report)
