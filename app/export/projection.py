"""Pulse — Export Projection.

Turns aggregator output into presentation-ready rows and series for the
spreadsheet and slide renderers. Only formatting decisions live here:
"–" for follower deltas without prior data, "—" for metrics a platform
does not report, "n/a" for customers whose data could not be read.
"""

from typing import Any, Dict, List

from app.core.metric_registry import Platform, fields_for, is_available
from app.models.overview_models import (
    CustomerOverview,
    FollowerGrowthReport,
    OverviewReport,
    PostWithMetrics,
)

NO_PREVIOUS = "–"
NOT_AVAILABLE = "—"
UNAVAILABLE_CUSTOMER = "n/a"

Row = Dict[str, Any]


def format_netto(value: int, has_prev_data: bool) -> str:
    """Signed delta, or "–" when there is nothing to compare against."""
    if not has_prev_data:
        return NO_PREVIOUS
    return f"{value:+d}"


def overview_table_rows(report: OverviewReport) -> List[Row]:
    """One flat row per customer for the overview table."""
    rows: List[Row] = []
    for c in report.customers:
        if not c.available:
            rows.append(
                {"customer": c.name, "slug": c.slug, "status": UNAVAILABLE_CUSTOMER}
            )
            continue
        rows.append(
            {
                "customer": c.name,
                "slug": c.slug,
                "status": "ok",
                "fb_followers": c.fb.followers,
                "fb_follower_netto": format_netto(c.fb.follower_netto, c.fb.has_prev_data),
                "fb_posts": c.fb.posts,
                "fb_reach": c.fb.reach,
                "fb_interactions": c.fb.reactions + c.fb.comments,
                "ig_followers": c.ig.followers,
                "ig_follower_netto": format_netto(c.ig.follower_netto, c.ig.has_prev_data),
                "ig_posts": c.ig.posts,
                "ig_reach": c.ig.reach,
                "ig_interactions": c.ig.likes + c.ig.comments,
                "ad_spend": c.ads.spend,
                "ad_clicks": c.ads.clicks,
                "ad_cpc": c.ads.cpc,
                "total_follower_netto": format_netto(
                    c.totals.follower_netto, c.totals.has_prev_data
                ),
                "total_interactions": c.totals.interactions,
                "total_reach": c.totals.reach,
            }
        )
    return rows


def _if_reported(block: Any, platform: Platform, column: str) -> Any:
    """The block's value, or "—" when the platform never reports the column."""
    if not is_available(platform, column):
        return NOT_AVAILABLE
    return getattr(block, column)


def customer_slide_data(overview: CustomerOverview) -> Dict[str, List[Row]]:
    """Label/value pairs per slide section for one customer."""
    fb, ig, ads = overview.fb, overview.ig, overview.ads
    return {
        "facebook": [
            {"label": "Follower", "value": fb.followers},
            {"label": "Follower netto", "value": format_netto(fb.follower_netto, fb.has_prev_data)},
            {"label": "Posts", "value": fb.posts},
            {"label": "Reach", "value": fb.reach},
            {"label": "Reactions", "value": fb.reactions},
            {"label": "Comments", "value": fb.comments},
            {"label": "Shares", "value": fb.shares},
            {"label": "Saves", "value": _if_reported(fb, Platform.FACEBOOK, "saves")},
            {"label": "Video Views (3s)", "value": fb.video_views},
        ],
        "instagram": [
            {"label": "Follower", "value": ig.followers},
            {"label": "Follower netto", "value": format_netto(ig.follower_netto, ig.has_prev_data)},
            {"label": "Posts", "value": ig.posts},
            {"label": "Reach", "value": ig.reach},
            {"label": "Likes", "value": ig.likes},
            {"label": "Comments", "value": ig.comments},
            {"label": "Shares", "value": ig.shares},
            {"label": "Saves", "value": _if_reported(ig, Platform.INSTAGRAM, "saves")},
            {"label": "Plays", "value": ig.plays},
        ],
        "ads": [
            {"label": "Spend", "value": ads.spend},
            {"label": "Impressions", "value": ads.impressions},
            {"label": "Clicks", "value": ads.clicks},
            {"label": "CPC", "value": ads.cpc},
            {"label": "CPM", "value": ads.cpm},
            {"label": "CTR %", "value": ads.ctr},
        ],
        "totals": [
            {"label": "Interactions", "value": overview.totals.interactions},
            {"label": "Reach", "value": overview.totals.reach},
            {"label": "Ad Spend", "value": overview.totals.ad_spend},
        ],
    }


def follower_chart_series(report: FollowerGrowthReport) -> Dict[str, List[Any]]:
    """Net follower change per month, oldest first, for the growth chart.

    Months without any prior-month data carry None so the chart shows a gap.
    """
    by_month = {s.month: s for s in report.summary}
    labels, facebook, instagram, total = [], [], [], []
    for month in report.months:
        summary = by_month.get(month)
        labels.append(month)
        if summary is None or not summary.has_prev_data:
            facebook.append(None)
            instagram.append(None)
            total.append(None)
            continue
        facebook.append(summary.facebook)
        instagram.append(summary.instagram)
        total.append(summary.total)
    return {"labels": labels, "facebook": facebook, "instagram": instagram, "total": total}


def post_export_rows(posts: List[PostWithMetrics]) -> List[Row]:
    """Per-post rows; columns the platform does not report render as "—"."""
    rows: List[Row] = []
    for post in posts:
        platform = Platform(post.platform)
        row: Row = {
            "platform": platform.value.capitalize(),
            "date": post.created_time.isoformat(),
            "format": post.media_type or ("IMAGE" if platform == Platform.INSTAGRAM else "post"),
            "message": post.body,
            "permalink": post.permalink,
        }
        for f in fields_for(platform):
            row[f.column] = getattr(post, f.column) if f.available else NOT_AVAILABLE
        row["interactions"] = post.interactions
        rows.append(row)
    return rows


def post_export_totals(posts: List[PostWithMetrics]) -> Dict[str, Row]:
    """Column totals per platform, with "—" for unavailable columns."""
    totals: Dict[str, Row] = {}
    for platform in Platform:
        subset = [p for p in posts if p.platform == platform.value]
        row: Row = {"posts": len(subset)}
        for f in fields_for(platform):
            row[f.column] = (
                sum(getattr(p, f.column) for p in subset) if f.available else NOT_AVAILABLE
            )
        row["interactions"] = sum(p.interactions for p in subset)
        totals[platform.value] = row
    return totals
