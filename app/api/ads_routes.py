"""Pulse — Ads Cache API Routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.analyzer.ads_engine import AdsCacheError, customer_ads_view, load_ads_payload
from app.analyzer.overview import ALL_CUSTOMERS
from app.api.deps import get_attribution
from app.config import settings
from app.connectors.meta.client import MetaAPIError
from app.connectors.meta.sync import sync_ads_month
from app.core.attribution import AttributionMap
from app.core.logging import get_logger
from app.core.months import InvalidMonthError, resolve_month
from app.database import get_session
from app.models.ads_models import AdsCachePayload

logger = get_logger("api.ads")

router = APIRouter(prefix="/ads", tags=["Ads"])


class SyncResponse(BaseModel):
    """Response for POST /ads/sync."""

    status: str = "success"
    month: str
    campaign_count: int
    account_count: int
    total_spend: float


@router.get("", response_model=AdsCachePayload)
def get_ads(
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to this month"),
    customer: Optional[str] = Query(None, description="Customer slug; omit for every account"),
    session: Session = Depends(get_session),
    attribution: AttributionMap = Depends(get_attribution),
):
    """Cached ad accounts, summaries, campaigns and totals for a month."""
    try:
        window = resolve_month(month)
    except InvalidMonthError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        payload = load_ads_payload(session, window.key)
    except (AdsCacheError, SQLAlchemyError) as e:
        logger.error(f"Ads cache read failed: {e}", extra={"month": window.key, "status_code": 503})
        raise HTTPException(status_code=503, detail="Ads cache unavailable")

    if customer and customer != ALL_CUSTOMERS:
        payload = customer_ads_view(payload, attribution, customer)
    return payload


@router.post("/sync", response_model=SyncResponse)
async def sync_ads(
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to this month"),
    session: Session = Depends(get_session),
):
    """Refresh the ads cache for a month from the Meta Marketing API."""
    try:
        window = resolve_month(month)
    except InvalidMonthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not settings.meta_access_token:
        raise HTTPException(status_code=500, detail="META_ACCESS_TOKEN not configured")

    try:
        payload = await sync_ads_month(session, window.key)
    except MetaAPIError as e:
        logger.error(f"Ads sync failed: {e}", extra={"month": window.key, "status_code": 502})
        raise HTTPException(status_code=502, detail=f"Ads sync failed: {str(e)}")

    return SyncResponse(
        month=payload.month,
        campaign_count=len(payload.campaigns),
        account_count=len(payload.ad_accounts),
        total_spend=payload.totals.total_spend,
    )
