"""Pulse — Follower Growth Engine.

Net follower change for a month is the difference between the latest
snapshot on or before the month's last day and the latest snapshot on or
before the previous month's last day.

"No earlier snapshot" and "earlier snapshot of 0 followers" are different
things: the first sets has_prev_data=False and leaves start_followers as
None, the second is ordinary data.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from sqlmodel import Session

from app.analyzer.customers import AccountSet, account_names
from app.analyzer.snapshot_resolver import latest_followers
from app.core.logging import get_logger
from app.core.metric_registry import Platform
from app.core.months import MonthWindow
from app.core.ratios import percent_change
from app.models.overview_models import (
    AccountGrowth,
    CurrentFollowers,
    CurrentTotals,
    FollowerGrowth,
    FollowerGrowthReport,
    MonthlySummary,
)
from app.models.store_models import FollowerSnapshot

logger = get_logger("analyzer.followers")


def compute_growth(
    start: Optional[FollowerSnapshot],
    end: Optional[FollowerSnapshot],
) -> FollowerGrowth:
    """Growth between two resolved snapshots (either may be missing)."""
    end_followers = end.follower_count if end is not None else 0
    if start is None:
        return FollowerGrowth(end_followers=end_followers, has_prev_data=False)

    net = end_followers - start.follower_count
    return FollowerGrowth(
        start_followers=start.follower_count,
        end_followers=end_followers,
        net_change=net,
        percent_change=percent_change(net, start.follower_count),
        has_prev_data=True,
    )


def combine_growth(parts: Iterable[FollowerGrowth]) -> FollowerGrowth:
    """Elementwise sum. has_prev_data is true if any part has prior data.

    Parts without prior data contribute their end count to the start sum,
    matching their net change of 0.
    """
    parts = list(parts)
    end = sum(p.end_followers for p in parts)
    net = sum(p.net_change for p in parts)
    has_prev = any(p.has_prev_data for p in parts)
    if not has_prev:
        return FollowerGrowth(end_followers=end, has_prev_data=False)

    start = sum(
        p.start_followers if p.start_followers is not None else p.end_followers
        for p in parts
    )
    return FollowerGrowth(
        start_followers=start,
        end_followers=end,
        net_change=net,
        percent_change=percent_change(net, start),
        has_prev_data=True,
    )


def account_growth(
    session: Session,
    platform: Platform | str,
    account_ids: Optional[List[str]],
    window: MonthWindow,
) -> Dict[str, FollowerGrowth]:
    """Per-account growth for one platform and month.

    Accounts with no snapshots at all report 0 → 0 without prior data.
    With account_ids=None, every account observed by the month end is included.
    """
    platform = Platform(platform).value
    end = latest_followers(session, platform, account_ids, window.last_day)
    start = latest_followers(session, platform, account_ids, window.previous().last_day)

    ids = account_ids if account_ids is not None else sorted(end)
    return {aid: compute_growth(start.get(aid), end.get(aid)) for aid in ids}


def platform_growth(
    session: Session,
    platform: Platform | str,
    account_ids: Optional[List[str]],
    window: MonthWindow,
) -> FollowerGrowth:
    """Growth of all given accounts on one platform, combined."""
    return combine_growth(account_growth(session, platform, account_ids, window).values())


def current_followers(
    session: Session,
    platform: Platform | str,
    account_ids: Optional[List[str]],
) -> List[CurrentFollowers]:
    """Latest known follower count per account, regardless of month."""
    platform = Platform(platform).value
    names = account_names(session, platform)
    latest = latest_followers(session, platform, account_ids)
    return [
        CurrentFollowers(
            platform=platform,
            account_id=aid,
            account_name=names.get(aid, aid),
            followers_count=snap.follower_count,
            snapshot_date=snap.snapshot_date,
        )
        for aid, snap in sorted(latest.items())
    ]


def get_follower_growth(
    session: Session,
    accounts: AccountSet,
    months: List[MonthWindow],
) -> FollowerGrowthReport:
    """Monthly growth summary and per-account details for a month range.

    Details only list accounts that had a snapshot by the month's end.
    Summary and details are ordered newest month first.
    """
    details: List[AccountGrowth] = []
    summary: Dict[str, MonthlySummary] = {}
    current: List[CurrentFollowers] = []
    totals: Dict[str, int] = defaultdict(int)

    for platform in Platform:
        ids = accounts.for_platform(platform)
        names = account_names(session, platform)

        for window in months:
            row = summary.setdefault(window.key, MonthlySummary(month=window.key))
            end = latest_followers(session, platform.value, ids, window.last_day)
            start = latest_followers(
                session, platform.value, ids, window.previous().last_day
            )
            for aid, end_snap in sorted(end.items()):
                growth = compute_growth(start.get(aid), end_snap)
                details.append(
                    AccountGrowth(
                        month=window.key,
                        platform=platform.value,
                        account_id=aid,
                        account_name=names.get(aid, aid),
                        **growth.model_dump(),
                    )
                )
                setattr(row, platform.value, getattr(row, platform.value) + growth.net_change)
                row.total += growth.net_change
                row.has_prev_data = row.has_prev_data or growth.has_prev_data

        platform_current = current_followers(session, platform, ids)
        totals[platform.value] = sum(c.followers_count for c in platform_current)
        current.extend(platform_current)

    logger.info(
        f"Follower growth over {len(months)} months: {len(details)} account-months"
    )
    return FollowerGrowthReport(
        months=[w.key for w in months],
        summary=sorted(summary.values(), key=lambda s: s.month, reverse=True),
        details=sorted(details, key=lambda d: (-_month_ordinal(d.month), d.account_name)),
        current_totals=CurrentTotals(
            facebook=totals[Platform.FACEBOOK.value],
            instagram=totals[Platform.INSTAGRAM.value],
            total=sum(totals.values()),
        ),
        current_details=current,
    )


def _month_ordinal(key: str) -> int:
    year, month = key.split("-")
    return int(year) * 12 + int(month)
