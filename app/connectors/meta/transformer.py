"""Pulse — Meta Insights → Ads Cache Transformer.

Converts raw Meta insight rows into the typed campaign and account-summary
shapes stored in the ads cache.
"""

from typing import Any, Dict, List, Optional, Sequence

from app.core.ratios import cpc, cpm, ctr
from app.models.ads_models import (
    AdAccountSummary,
    AdCampaign,
    AdInsight,
    AdsTotals,
)


def _safe_float(value: Any) -> float:
    """Safely convert a value to float."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _safe_int(value: Any) -> int:
    return int(_safe_float(value))


def _action_value(actions: Optional[List[Dict[str, Any]]], action_type: str) -> int:
    """Value of one action type from a Meta `actions` list, 0 if absent."""
    for action in actions or []:
        if action.get("action_type") == action_type:
            return _safe_int(action.get("value", 0))
    return 0


def transform_insight(row: Dict[str, Any]) -> AdInsight:
    actions = row.get("actions")
    return AdInsight(
        spend=_safe_float(row.get("spend")),
        impressions=_safe_int(row.get("impressions")),
        clicks=_safe_int(row.get("clicks")),
        reach=_safe_int(row.get("reach")),
        conversions=_action_value(actions, "offsite_conversion"),
        leads=_action_value(actions, "lead"),
        link_clicks=_action_value(actions, "link_click"),
        post_engagement=_action_value(actions, "post_engagement"),
    )


def transform_campaigns(
    rows: List[Dict[str, Any]], account: Dict[str, Any]
) -> List[AdCampaign]:
    """Campaign insight rows of one ad account → AdCampaign list."""
    return [
        AdCampaign(
            id=str(row.get("campaign_id", "")),
            name=row.get("campaign_name", ""),
            account_id=str(account.get("account_id", "")),
            account_name=account.get("name", ""),
            currency=account.get("currency", ""),
            objective=row.get("objective", ""),
            insight=transform_insight(row),
        )
        for row in rows
    ]


def transform_account_summary(
    rows: List[Dict[str, Any]], account: Dict[str, Any]
) -> Optional[AdAccountSummary]:
    """The single account-level insight row, or None without activity."""
    if not rows:
        return None
    insight = transform_insight(rows[0])
    return AdAccountSummary(
        account_id=str(account.get("account_id", "")),
        account_name=account.get("name", ""),
        currency=account.get("currency", ""),
        **insight.model_dump(),
    )


def compute_totals(insights: Sequence[AdInsight]) -> AdsTotals:
    """Month totals over account summaries, or campaign insights for one customer."""
    spend = sum(i.spend for i in insights)
    impressions = sum(i.impressions for i in insights)
    clicks = sum(i.clicks for i in insights)
    return AdsTotals(
        total_spend=round(spend, 2),
        total_impressions=impressions,
        total_reach=sum(i.reach for i in insights),
        total_clicks=clicks,
        total_conversions=sum(i.conversions for i in insights),
        total_leads=sum(i.leads for i in insights),
        avg_cpc=cpc(spend, clicks),
        avg_cpm=cpm(spend, impressions),
        avg_ctr=ctr(clicks, impressions),
    )
