"""Pulse — Ads Engine.

Reads the month's synced Meta Ads payload, attributes each campaign to a
customer and sums campaign insights into the overview's ads block.
Campaign-level sums are used instead of account summaries because one
ad account can carry several customers' campaigns.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from pydantic import ValidationError
from sqlmodel import Session, select

from app.connectors.meta.transformer import compute_totals
from app.core.attribution import AttributionMap
from app.core.logging import get_logger
from app.core.ratios import cpc, cpm, ctr
from app.models.ads_models import AdCampaign, AdsCache, AdsCachePayload
from app.models.overview_models import AdsBlock

logger = get_logger("analyzer.ads")


class AdsCacheError(Exception):
    """Raised when a cached ads payload cannot be parsed."""


@dataclass
class AttributedAds:
    """A month's campaigns grouped by customer slug."""

    month: str
    by_customer: Dict[str, List[AdCampaign]] = field(default_factory=dict)
    unattributed: List[AdCampaign] = field(default_factory=list)

    def for_customer(self, slug: str) -> List[AdCampaign]:
        return self.by_customer.get(slug, [])

    def orphaned(self, known_slugs: Iterable[str]) -> Dict[str, List[AdCampaign]]:
        """Campaigns attributed to a slug that no loaded customer carries."""
        known = set(known_slugs)
        return {
            slug: campaigns
            for slug, campaigns in sorted(self.by_customer.items())
            if slug not in known
        }


def load_ads_payload(session: Session, month: str) -> AdsCachePayload:
    """Cached payload for a month; an empty payload if the month was never synced."""
    row = session.exec(select(AdsCache).where(AdsCache.month == month)).first()
    if row is None:
        logger.info(f"No ads cache for {month}", extra={"month": month})
        return AdsCachePayload(month=month)
    try:
        return AdsCachePayload.model_validate_json(row.payload_json)
    except ValidationError as e:
        raise AdsCacheError(f"Ads cache for {month} is unreadable: {e}") from e


def attribute_campaigns(
    payload: AdsCachePayload, attribution: AttributionMap
) -> AttributedAds:
    """Split campaigns by owning customer and log what could not be placed."""
    by_customer, unattributed = attribution.partition(payload.campaigns)

    if unattributed:
        per_account = Counter(c.account_id for c in unattributed)
        for account_id, count in sorted(per_account.items()):
            logger.warning(
                f"{count} campaign(s) on ad account {account_id} match no customer "
                f"(attribution v{attribution.version})",
                extra={"month": payload.month, "account_id": account_id},
            )

    return AttributedAds(
        month=payload.month, by_customer=by_customer, unattributed=unattributed
    )


def summarize_campaigns(campaigns: List[AdCampaign]) -> AdsBlock:
    """Sum campaign insights and derive zero-guarded CPC / CPM / CTR."""
    spend = sum(c.insight.spend for c in campaigns)
    impressions = sum(c.insight.impressions for c in campaigns)
    clicks = sum(c.insight.clicks for c in campaigns)
    reach = sum(c.insight.reach for c in campaigns)

    return AdsBlock(
        spend=round(spend, 2),
        impressions=impressions,
        clicks=clicks,
        reach=reach,
        cpc=cpc(spend, clicks),
        cpm=cpm(spend, impressions),
        ctr=ctr(clicks, impressions),
        campaigns=len(campaigns),
    )


def report_orphaned_campaigns(ads: AttributedAds, known_slugs: Iterable[str]) -> int:
    """Warn per slug whose campaigns no active customer will pick up."""
    orphaned = ads.orphaned(known_slugs)
    for slug, campaigns in orphaned.items():
        spend = sum(c.insight.spend for c in campaigns)
        logger.warning(
            f"{len(campaigns)} campaign(s) ({spend:.2f} spend) attributed to "
            f"'{slug}', which is not an active customer",
            extra={"month": ads.month, "customer": slug},
        )
    return sum(len(campaigns) for campaigns in orphaned.values())


def customer_ads_view(
    payload: AdsCachePayload, attribution: AttributionMap, customer: str
) -> AdsCachePayload:
    """The month's payload narrowed to one customer's campaigns.

    Account summaries are dropped: a shared ad account's summary cannot be
    split per customer, so totals are recomputed from the kept campaigns.
    """
    slug = customer.lower()
    campaigns = [
        c for c in payload.campaigns if attribution.resolve(c.account_id, c.name) == slug
    ]
    account_ids = {c.account_id for c in campaigns}
    return payload.model_copy(
        update={
            "ad_accounts": [a for a in payload.ad_accounts if a.account_id in account_ids],
            "account_summaries": [],
            "campaigns": campaigns,
            "totals": compute_totals([c.insight for c in campaigns]),
        }
    )
