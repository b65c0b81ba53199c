"""Pulse — Ads Cache Sync.

Pulls one month of campaign insights for every active ad account and
upserts the result into the ads cache. Runs outside the request path
(scheduler or manual trigger); the aggregator only ever reads the cache.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlmodel import Session, select

from app.connectors.meta.client import MetaAPIError, MetaClient
from app.connectors.meta.endpoints import MetaEndpoints
from app.connectors.meta.transformer import (
    compute_totals,
    transform_account_summary,
    transform_campaigns,
)
from app.core.logging import bind, elapsed_ms, get_logger
from app.core.months import parse_month
from app.models.ads_models import (
    AdAccount,
    AdAccountSummary,
    AdCampaign,
    AdsCache,
    AdsCachePayload,
)

logger = get_logger("meta.sync")


async def _fetch_account(
    endpoints: MetaEndpoints,
    account: Dict[str, Any],
    date_start: str,
    date_stop: str,
) -> Tuple[List[AdCampaign], Optional[AdAccountSummary]]:
    """Insights for one ad account; a failing account is skipped, not fatal."""
    act_id = account.get("id", "")
    try:
        account_rows, campaign_rows = await asyncio.gather(
            endpoints.fetch_account_insights(act_id, date_start, date_stop),
            endpoints.fetch_campaign_insights(act_id, date_start, date_stop),
        )
    except MetaAPIError as e:
        bind(logger, account_id=account.get("account_id", "")).error(
            f"Skipping ad account {act_id}: {e}"
        )
        return [], None
    return (
        transform_campaigns(campaign_rows, account),
        transform_account_summary(account_rows, account),
    )


def store_ads_payload(session: Session, payload: AdsCachePayload) -> AdsCache:
    """Insert or replace the cached payload for payload.month."""
    row = session.exec(select(AdsCache).where(AdsCache.month == payload.month)).first()
    if row is None:
        row = AdsCache(month=payload.month, payload_json=payload.model_dump_json())
    else:
        row.payload_json = payload.model_dump_json()
        row.synced_at = datetime.now(timezone.utc)
    session.add(row)
    session.commit()
    return row


async def sync_ads_month(
    session: Session,
    month: str,
    client: Optional[MetaClient] = None,
) -> AdsCachePayload:
    """Fetch and cache a month of Meta Ads data. Raises MetaAPIError if
    the ad account list itself cannot be read."""
    window = parse_month(month)
    date_start = window.first_day.isoformat()
    date_stop = window.last_day.isoformat()
    log = bind(logger, month=window.key)
    log.info(f"Syncing ads cache for {window}")
    started = time.perf_counter()

    own_client = client is None
    client = client or MetaClient()
    endpoints = MetaEndpoints(client)
    try:
        accounts = await endpoints.fetch_active_ad_accounts()
        results = await asyncio.gather(
            *(_fetch_account(endpoints, a, date_start, date_stop) for a in accounts)
        )
    finally:
        if own_client:
            await client.close()

    campaigns = [c for account_campaigns, _ in results for c in account_campaigns]
    campaigns.sort(key=lambda c: c.insight.spend, reverse=True)
    summaries = [s for _, s in results if s is not None]

    payload = AdsCachePayload(
        month=window.key,
        start_date=date_start,
        end_date=date_stop,
        ad_accounts=[
            AdAccount(
                id=a.get("id", ""),
                account_id=str(a.get("account_id", "")),
                name=a.get("name", ""),
                currency=a.get("currency", ""),
            )
            for a in accounts
        ],
        account_summaries=summaries,
        campaigns=campaigns,
        totals=compute_totals(summaries),
    )
    store_ads_payload(session, payload)

    log.info(
        f"Ads cache for {window}: {len(campaigns)} campaigns across "
        f"{len(accounts)} accounts, spend {payload.totals.total_spend:.2f}",
        extra={"duration_ms": elapsed_ms(started)},
    )
    return payload
