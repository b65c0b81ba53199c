"""Pulse — Snapshot Store Models (Append-Only).

Populated by the organic collector. This service only reads them.
"""

from datetime import date, datetime
from typing import Optional
from sqlalchemy import Column, DateTime
from sqlmodel import SQLModel, Field, Index


class Post(SQLModel, table=True):
    """A published Facebook or Instagram post. Immutable once created."""

    __tablename__ = "posts"

    post_id: str = Field(primary_key=True)
    account_id: str = Field(index=True, description="Page ID or IG account ID")
    platform: str = Field(index=True, description="facebook | instagram")
    created_time: datetime = Field(
        sa_column=Column(DateTime(timezone=False), index=True, nullable=False),
        description="UTC, naive",
    )
    body: Optional[str] = Field(default=None, description="Message or caption")
    media_type: Optional[str] = None
    permalink: Optional[str] = None


class PostMetricSnapshot(SQLModel, table=True):
    """One observation of a post's counters.

    Fields the platform does not report stay NULL (e.g. saves on Facebook).
    """

    __tablename__ = "post_metric_snapshots"
    __table_args__ = (Index("ix_post_metric_latest", "post_id", "observed_at"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    post_id: str = Field(index=True, foreign_key="posts.post_id")
    observed_at: datetime = Field(
        sa_column=Column(DateTime(timezone=False), nullable=False),
        description="UTC, naive",
    )
    reach: Optional[int] = None
    impressions: Optional[int] = None
    reactions: Optional[int] = Field(default=None, description="Likes on Instagram")
    comments: Optional[int] = None
    shares: Optional[int] = None
    saves: Optional[int] = None
    plays: Optional[int] = Field(default=None, description="3s video views on Facebook")


class FollowerSnapshot(SQLModel, table=True):
    """Daily follower count for an account. Last inserted row wins per day."""

    __tablename__ = "follower_snapshots"
    __table_args__ = (
        Index("ix_follower_latest", "platform", "account_id", "snapshot_date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    platform: str = Field(description="facebook | instagram")
    account_id: str
    snapshot_date: date
    follower_count: int
