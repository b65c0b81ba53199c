"""Pulse — Post Metrics Engine.

Joins the posts created in a month window with each post's latest metric
snapshot as of the window end, and sums the result per platform.
"""

from typing import Dict, List, Optional

from sqlmodel import Session, select

from app.analyzer.snapshot_resolver import latest_post_metrics
from app.core.logging import get_logger
from app.core.metric_registry import SNAPSHOT_COLUMNS, Platform
from app.core.months import MonthWindow
from app.models.overview_models import PostWithMetrics
from app.models.store_models import Post, PostMetricSnapshot

logger = get_logger("analyzer.posts")


def _join(post: Post, snapshot: Optional[PostMetricSnapshot]) -> PostWithMetrics:
    """Merge a post with its snapshot; NULL or missing counters become 0."""
    values = {
        col: (getattr(snapshot, col) or 0) if snapshot is not None else 0
        for col in SNAPSHOT_COLUMNS
    }
    return PostWithMetrics(
        post_id=post.post_id,
        platform=post.platform,
        account_id=post.account_id,
        created_time=post.created_time,
        body=post.body or "",
        media_type=post.media_type or "",
        permalink=post.permalink or "",
        observed=snapshot is not None,
        **values,
    )


def fetch_month_posts(
    session: Session,
    platform: Platform | str,
    account_ids: Optional[List[str]],
    window: MonthWindow,
) -> List[PostWithMetrics]:
    """Posts created in [window.start_at, window.end_at), oldest first.

    account_ids=None means every account on the platform.
    """
    if account_ids is not None and not account_ids:
        return []

    query = select(Post).where(
        Post.platform == Platform(platform).value,
        Post.created_time >= window.start_at,
        Post.created_time < window.end_at,
    )
    if account_ids is not None:
        query = query.where(Post.account_id.in_(account_ids))
    posts = session.exec(query.order_by(Post.created_time, Post.post_id)).all()

    snapshots = latest_post_metrics(session, [p.post_id for p in posts], window.end_at)
    return [_join(p, snapshots.get(p.post_id)) for p in posts]


def summarize_posts(posts: List[PostWithMetrics]) -> Dict[str, int]:
    """Post count, summed counters and the number of never-observed posts."""
    totals = {col: 0 for col in SNAPSHOT_COLUMNS}
    for post in posts:
        for col in SNAPSHOT_COLUMNS:
            totals[col] += getattr(post, col)
    totals["posts"] = len(posts)
    totals["unobserved_posts"] = sum(1 for p in posts if not p.observed)
    return totals


def aggregate_platform(
    session: Session,
    platform: Platform | str,
    account_ids: Optional[List[str]],
    window: MonthWindow,
) -> Dict[str, int]:
    """Monthly post totals for one platform."""
    totals = summarize_posts(fetch_month_posts(session, platform, account_ids, window))
    if totals["unobserved_posts"]:
        logger.info(
            f"{totals['unobserved_posts']} of {totals['posts']} {Platform(platform).value} "
            f"posts have no metric snapshot before {window.end_at:%Y-%m-%d}",
            extra={"month": window.key},
        )
    return totals


def top_posts(
    session: Session,
    platform: Platform | str,
    account_ids: Optional[List[str]],
    window: MonthWindow,
    limit: int = 100,
) -> List[PostWithMetrics]:
    """Posts of the month ranked by interactions (reactions + comments)."""
    posts = fetch_month_posts(session, platform, account_ids, window)
    posts.sort(key=lambda p: (-p.interactions, p.created_time, p.post_id))
    return posts[:limit]
