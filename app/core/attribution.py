"""Pulse — Customer Attribution Map.

Resolves a Meta ad account + campaign name to the owning customer's slug.

Resolution order (first match wins):
  1. campaign-name override rules, in declared order
  2. account-level default mapping
  3. None: the campaign belongs to no customer

Some ad accounts hold campaigns for more than one customer, which is why
the name overrides are consulted before the account default.
"""

import json
import re
from collections import defaultdict
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, field_validator

from app.config import settings
from app.core.logging import get_logger
from app.models.ads_models import AdCampaign

logger = get_logger("core.attribution")


class CampaignOverride(BaseModel):
    """Reassign campaigns whose name matches `pattern` (case-insensitive)."""

    pattern: str
    target_customer: str

    @field_validator("pattern")
    @classmethod
    def _compiles(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Override pattern must not be empty; it would match every campaign")
        try:
            re.compile(v, re.IGNORECASE)
        except re.error as e:
            raise ValueError(f"Invalid override pattern {v!r}: {e}") from e
        return v


class AttributionConfig(BaseModel):
    """Versioned attribution rules, loaded once at startup."""

    version: str
    account_map: Dict[str, str] = {}
    campaign_overrides: List[CampaignOverride] = []


DEFAULT_ATTRIBUTION = AttributionConfig(
    version="2025-12-01",
    account_map={
        "64446085": "andskincare",  # Kosmetikvertrieb H.Renner GmbH
        "289778171212746": "contipark",
        "1908114009405295": "captrain-deutschland",
        "589986474813245": "pelikan",  # Hamelin / Oxford
        "456263405094069": "famefact-gmbh",  # WeWatch Security Service GmbH
        "969976773634901": "asphericon",
        "594963889574701": "pelikan",  # shared with Herlitz
        "1812018146005238": "fensterart",
        "778746264991304": "vergleich.org",  # VGL Publishing AG
    },
    campaign_overrides=[
        CampaignOverride(pattern="herlitz", target_customer="herlitz"),
    ],
)


class AttributionMap:
    """Read-only resolver over an AttributionConfig. Safe to share across tasks."""

    def __init__(self, config: AttributionConfig):
        self.config = config
        self._overrides: List[Tuple[re.Pattern, str]] = [
            (re.compile(o.pattern, re.IGNORECASE), o.target_customer)
            for o in config.campaign_overrides
        ]

    @property
    def version(self) -> str:
        return self.config.version

    def resolve(self, account_id: str, campaign_name: str) -> Optional[str]:
        """Return the owning customer slug, or None if unattributable."""
        name = campaign_name or ""
        for pattern, target in self._overrides:
            if pattern.search(name):
                return target
        return self.config.account_map.get(str(account_id))

    def partition(
        self, campaigns: Iterable[AdCampaign]
    ) -> Tuple[Dict[str, List[AdCampaign]], List[AdCampaign]]:
        """Group campaigns by customer slug; return (by_slug, unattributed)."""
        by_slug: Dict[str, List[AdCampaign]] = defaultdict(list)
        unattributed: List[AdCampaign] = []
        for campaign in campaigns:
            slug = self.resolve(campaign.account_id, campaign.name)
            if slug is None:
                unattributed.append(campaign)
            else:
                by_slug[slug].append(campaign)
        return dict(by_slug), unattributed


def load_attribution_config(path: Optional[str] = None) -> AttributionConfig:
    """Load rules from a JSON file, or return the built-in defaults."""
    if not path:
        return DEFAULT_ATTRIBUTION
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    config = AttributionConfig.model_validate(raw)
    logger.info(
        f"Loaded attribution config v{config.version} from {path}: "
        f"{len(config.account_map)} accounts, {len(config.campaign_overrides)} overrides"
    )
    return config


@lru_cache(maxsize=1)
def get_attribution_map() -> AttributionMap:
    """Process-wide map, built on first use from settings."""
    return AttributionMap(load_attribution_config(settings.attribution_config_path))


def resolve_customer_for_campaign(
    account_id: str,
    campaign_name: str,
    attribution: Optional[AttributionMap] = None,
) -> Optional[str]:
    """Slug owning a campaign, or None when no rule matches."""
    return (attribution or get_attribution_map()).resolve(account_id, campaign_name)
