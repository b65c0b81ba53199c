"""Shared test fixtures."""
from datetime import date, datetime
from typing import List, Optional

import pytest
from sqlmodel import SQLModel, Session

from app.core.attribution import AttributionConfig, AttributionMap, CampaignOverride
from app.database import build_engine
from app.models.ads_models import AdCampaign, AdInsight, AdsCache, AdsCachePayload
from app.models.customer_models import Customer, CustomerAccount, PlatformAccount
from app.models.store_models import FollowerSnapshot, Post, PostMetricSnapshot


@pytest.fixture
def db_engine(tmp_path):
    """File-backed SQLite engine with schema created.

    A file (not :memory:) so worker-thread sessions see the same data.
    """
    engine = build_engine(f"sqlite:///{tmp_path / 'pulse-test.db'}")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    with Session(db_engine) as session:
        yield session


@pytest.fixture
def attribution():
    """Small fixture mapping instead of the built-in production map."""
    return AttributionMap(
        AttributionConfig(
            version="test-1",
            account_map={"111": "acme", "222": "globex"},
            campaign_overrides=[CampaignOverride(pattern="herlitz", target_customer="herlitz")],
        )
    )


class StoreBuilder:
    """Writes customers, posts and snapshots the way the collector would."""

    def __init__(self, session: Session):
        self.session = session
        self._snapshot_id = 0

    def _save(self, *rows):
        for row in rows:
            self.session.add(row)
        self.session.commit()

    def customer(
        self,
        customer_id: str,
        name: str,
        slug: str,
        facebook: Optional[List[str]] = None,
        instagram: Optional[List[str]] = None,
        is_active: bool = True,
    ) -> Customer:
        customer = Customer(customer_id=customer_id, name=name, slug=slug, is_active=is_active)
        links = [
            CustomerAccount(customer_id=customer_id, platform="facebook", account_id=a)
            for a in facebook or []
        ] + [
            CustomerAccount(customer_id=customer_id, platform="instagram", account_id=a)
            for a in instagram or []
        ]
        self._save(customer, *links)
        return customer

    def account(self, platform: str, account_id: str, name: str = None, username: str = None):
        self._save(
            PlatformAccount(platform=platform, account_id=account_id, name=name, username=username)
        )

    def post(
        self,
        post_id: str,
        account_id: str,
        created_time: datetime,
        platform: str = "facebook",
        body: str = "",
        media_type: str = None,
    ) -> Post:
        post = Post(
            post_id=post_id,
            account_id=account_id,
            platform=platform,
            created_time=created_time,
            body=body,
            media_type=media_type,
            permalink=f"https://example.com/{post_id}",
        )
        self._save(post)
        return post

    def snapshot(self, post_id: str, observed_at: datetime, **metrics) -> PostMetricSnapshot:
        snap = PostMetricSnapshot(post_id=post_id, observed_at=observed_at, **metrics)
        self._save(snap)
        return snap

    def followers(
        self, account_id: str, day: date, count: int, platform: str = "facebook"
    ) -> FollowerSnapshot:
        snap = FollowerSnapshot(
            platform=platform, account_id=account_id, snapshot_date=day, follower_count=count
        )
        self._save(snap)
        return snap

    def ads(self, month: str, campaigns: List[AdCampaign]) -> AdsCache:
        payload = AdsCachePayload(month=month, campaigns=campaigns)
        row = AdsCache(month=month, payload_json=payload.model_dump_json())
        self._save(row)
        return row


@pytest.fixture
def store(db_session):
    return StoreBuilder(db_session)


@pytest.fixture
def make_campaign():
    """Factory fixture for AdCampaign with insight overrides."""
    def _make(campaign_id="c1", name="Campaign", account_id="111", **insight):
        return AdCampaign(
            id=campaign_id,
            name=name,
            account_id=account_id,
            insight=AdInsight(**insight),
        )
    return _make
