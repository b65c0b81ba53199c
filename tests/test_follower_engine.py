"""Tests for app.analyzer.follower_engine — monthly follower deltas."""
from datetime import date

from app.analyzer.customers import AccountSet
from app.analyzer.follower_engine import (
    account_growth,
    combine_growth,
    get_follower_growth,
    platform_growth,
)
from app.core.months import MonthWindow, month_range
from app.models.overview_models import FollowerGrowth

DECEMBER = MonthWindow(2025, 12)


class TestAccountGrowth:

    def test_net_change(self, store, db_session):
        store.followers("page", date(2025, 11, 30), 1000)
        store.followers("page", date(2025, 12, 31), 1050)

        growth = account_growth(db_session, "facebook", ["page"], DECEMBER)["page"]
        assert growth.start_followers == 1000
        assert growth.end_followers == 1050
        assert growth.net_change == 50
        assert growth.percent_change == 5.0
        assert growth.has_prev_data is True

    def test_zero_followers_without_history_is_no_data(self, store, db_session):
        store.followers("page", date(2025, 12, 10), 0)

        growth = account_growth(db_session, "facebook", ["page"], DECEMBER)["page"]
        assert growth.has_prev_data is False
        assert growth.start_followers is None
        assert growth.net_change == 0

    def test_zero_followers_with_history_is_data(self, store, db_session):
        store.followers("page", date(2025, 11, 1), 0)
        store.followers("page", date(2025, 12, 10), 25)

        growth = account_growth(db_session, "facebook", ["page"], DECEMBER)["page"]
        assert growth.has_prev_data is True
        assert growth.start_followers == 0
        assert growth.net_change == 25
        assert growth.percent_change == 0.0

    def test_account_without_snapshots(self, db_session):
        growth = account_growth(db_session, "facebook", ["ghost"], DECEMBER)["ghost"]
        assert growth.end_followers == 0
        assert growth.has_prev_data is False

    def test_start_uses_latest_before_previous_month_end(self, store, db_session):
        store.followers("page", date(2025, 10, 15), 900)
        store.followers("page", date(2025, 11, 20), 980)
        store.followers("page", date(2025, 12, 5), 1000)

        growth = account_growth(db_session, "facebook", ["page"], DECEMBER)["page"]
        assert growth.start_followers == 980
        assert growth.net_change == 20


class TestCombineGrowth:

    def test_sums_parts(self):
        combined = combine_growth(
            [
                FollowerGrowth(start_followers=100, end_followers=110, net_change=10, has_prev_data=True),
                FollowerGrowth(start_followers=50, end_followers=45, net_change=-5, has_prev_data=True),
            ]
        )
        assert combined.start_followers == 150
        assert combined.end_followers == 155
        assert combined.net_change == 5
        assert combined.percent_change == 3.33

    def test_part_without_history_contributes_end_to_start(self):
        combined = combine_growth(
            [
                FollowerGrowth(start_followers=100, end_followers=110, net_change=10, has_prev_data=True),
                FollowerGrowth(end_followers=40, has_prev_data=False),
            ]
        )
        assert combined.has_prev_data is True
        assert combined.start_followers == 140
        assert combined.end_followers == 150
        assert combined.net_change == 10

    def test_no_part_has_history(self):
        combined = combine_growth([FollowerGrowth(end_followers=5), FollowerGrowth()])
        assert combined.has_prev_data is False
        assert combined.start_followers is None
        assert combined.end_followers == 5

    def test_empty(self):
        combined = combine_growth([])
        assert combined.end_followers == 0
        assert combined.has_prev_data is False


class TestPlatformGrowth:

    def test_combines_accounts(self, store, db_session):
        store.followers("a", date(2025, 11, 30), 100)
        store.followers("a", date(2025, 12, 31), 120)
        store.followers("b", date(2025, 12, 15), 30)

        growth = platform_growth(db_session, "facebook", ["a", "b"], DECEMBER)
        assert growth.end_followers == 150
        assert growth.net_change == 20
        assert growth.has_prev_data is True


class TestFollowerGrowthReport:

    def test_summary_details_and_current(self, store, db_session):
        store.account("facebook", "page", name="Acme Page")
        store.followers("page", date(2025, 10, 31), 900)
        store.followers("page", date(2025, 11, 30), 1000)
        store.followers("page", date(2025, 12, 31), 1050)
        store.followers("insta", date(2025, 12, 10), 300, platform="instagram")

        report = get_follower_growth(
            db_session,
            AccountSet(facebook=["page"], instagram=["insta"]),
            month_range(DECEMBER, 2),
        )

        assert report.months == ["2025-11", "2025-12"]
        assert [s.month for s in report.summary] == ["2025-12", "2025-11"]
        december = report.summary[0]
        assert december.facebook == 50
        assert december.instagram == 0
        assert december.total == 50
        assert december.has_prev_data is True

        fb_details = [d for d in report.details if d.platform == "facebook"]
        assert [(d.month, d.net_change) for d in fb_details] == [("2025-12", 50), ("2025-11", 100)]
        assert fb_details[0].account_name == "Acme Page"

        ig_details = [d for d in report.details if d.platform == "instagram"]
        assert len(ig_details) == 1
        assert ig_details[0].has_prev_data is False

        assert report.current_totals.facebook == 1050
        assert report.current_totals.instagram == 300
        assert report.current_totals.total == 1350

    def test_month_without_any_history(self, store, db_session):
        store.followers("page", date(2025, 12, 10), 0)
        report = get_follower_growth(
            db_session, AccountSet(facebook=["page"], instagram=[]), [DECEMBER]
        )
        assert report.summary[0].has_prev_data is False
        assert report.summary[0].total == 0
