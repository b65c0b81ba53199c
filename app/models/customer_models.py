"""Pulse — Customer & Account Ownership Models."""

from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint


class Customer(SQLModel, table=True):
    """A tenant of the agency.

    Deactivation is soft (is_active=False); customers are never deleted.
    """

    __tablename__ = "customers"

    customer_id: str = Field(primary_key=True)
    name: str = Field(description="Display name")
    slug: str = Field(index=True, unique=True, description="URL-safe name")
    is_active: bool = Field(default=True, index=True)


class CustomerAccount(SQLModel, table=True):
    """Ownership join: one platform account belongs to at most one customer."""

    __tablename__ = "customer_accounts"
    __table_args__ = (
        UniqueConstraint("platform", "account_id", name="uq_customer_account"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: str = Field(index=True, foreign_key="customers.customer_id")
    platform: str = Field(index=True, description="facebook | instagram")
    account_id: str = Field(index=True, description="Page ID or IG business account ID")


class PlatformAccount(SQLModel, table=True):
    """Display metadata for a Facebook page or Instagram account."""

    __tablename__ = "platform_accounts"
    __table_args__ = (
        UniqueConstraint("platform", "account_id", name="uq_platform_account"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    platform: str = Field(index=True)
    account_id: str = Field(index=True)
    name: Optional[str] = None
    username: Optional[str] = None
