"""Pulse — Customer & Account Lookup."""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from sqlmodel import Session, select

from app.core.metric_registry import Platform
from app.models.customer_models import Customer, CustomerAccount, PlatformAccount


@dataclass
class AccountSet:
    """Platform account IDs to aggregate. None on a platform means "all"."""

    facebook: Optional[List[str]] = field(default_factory=list)
    instagram: Optional[List[str]] = field(default_factory=list)

    @classmethod
    def everything(cls) -> "AccountSet":
        return cls(facebook=None, instagram=None)

    def for_platform(self, platform: Platform | str) -> Optional[List[str]]:
        if Platform(platform) == Platform.FACEBOOK:
            return self.facebook
        return self.instagram


def list_active_customers(
    session: Session,
    slug: Optional[str] = None,
    with_accounts_only: bool = True,
) -> List[Tuple[Customer, AccountSet]]:
    """Active customers (optionally one slug) with their owned accounts, by name."""
    query = select(Customer).where(Customer.is_active == True)  # noqa: E712
    if slug:
        query = query.where(Customer.slug == slug.lower())
    customers = session.exec(query.order_by(Customer.name, Customer.customer_id)).all()
    if not customers:
        return []

    links = session.exec(
        select(CustomerAccount)
        .where(CustomerAccount.customer_id.in_([c.customer_id for c in customers]))
        .order_by(CustomerAccount.account_id)
    ).all()

    by_customer: Dict[str, AccountSet] = defaultdict(AccountSet)
    for link in links:
        accounts = by_customer[link.customer_id]
        if link.platform == Platform.FACEBOOK.value:
            accounts.facebook.append(link.account_id)
        elif link.platform == Platform.INSTAGRAM.value:
            accounts.instagram.append(link.account_id)

    result = []
    for customer in customers:
        if with_accounts_only and customer.customer_id not in by_customer:
            continue
        result.append((customer, by_customer.get(customer.customer_id, AccountSet())))
    return result


def account_names(session: Session, platform: Platform | str) -> Dict[str, str]:
    """account_id → display name (name, then username) for one platform."""
    rows = session.exec(
        select(PlatformAccount).where(PlatformAccount.platform == Platform(platform).value)
    ).all()
    return {r.account_id: (r.name or r.username or r.account_id) for r in rows}
