"""Pulse — Platform Field Registry.

Declares which post metrics each platform reports. A field that is not
available (Facebook saves, for example) must render as "—" in exports,
never as 0, so availability is looked up here instead of inferred from
the value.
"""

from enum import Enum
from typing import Dict, List


class Platform(str, Enum):
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"


class MetricType(str, Enum):
    """How a metric is categorised."""

    VOLUME = "volume"  # reach, impressions
    ENGAGEMENT = "engagement"  # reactions, comments, shares, saves
    VIDEO = "video"  # plays / 3s views


class FieldDefinition:
    """Describes one snapshot column as a platform exposes it."""

    def __init__(
        self,
        column: str,
        label: str,
        metric_type: MetricType,
        available: bool = True,
        interaction: bool = False,
    ):
        self.column = column
        self.label = label
        self.metric_type = metric_type
        self.available = available
        self.interaction = interaction

    def __repr__(self) -> str:
        flag = "" if self.available else ", unavailable"
        return f"<Field {self.column} as {self.label!r} ({self.metric_type.value}{flag})>"


# ─────────────────────────────────────────────
# PER-PLATFORM FIELDS — order is the export column order
# ─────────────────────────────────────────────

PLATFORM_FIELDS: Dict[Platform, List[FieldDefinition]] = {
    Platform.FACEBOOK: [
        FieldDefinition("reach", "Reach", MetricType.VOLUME),
        FieldDefinition("impressions", "Impressions", MetricType.VOLUME),
        FieldDefinition("reactions", "Reactions", MetricType.ENGAGEMENT, interaction=True),
        FieldDefinition("comments", "Comments", MetricType.ENGAGEMENT, interaction=True),
        FieldDefinition("shares", "Shares", MetricType.ENGAGEMENT),
        FieldDefinition("saves", "Saves", MetricType.ENGAGEMENT, available=False),
        FieldDefinition("plays", "Video Views (3s)", MetricType.VIDEO),
    ],
    Platform.INSTAGRAM: [
        FieldDefinition("reach", "Reach", MetricType.VOLUME),
        FieldDefinition("impressions", "Impressions", MetricType.VOLUME),
        FieldDefinition("reactions", "Likes", MetricType.ENGAGEMENT, interaction=True),
        FieldDefinition("comments", "Comments", MetricType.ENGAGEMENT, interaction=True),
        FieldDefinition("shares", "Shares", MetricType.ENGAGEMENT),
        FieldDefinition("saves", "Saves", MetricType.ENGAGEMENT),
        FieldDefinition("plays", "Plays", MetricType.VIDEO),
    ],
}

SNAPSHOT_COLUMNS = [f.column for f in PLATFORM_FIELDS[Platform.FACEBOOK]]


# ─────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────


def fields_for(platform: Platform | str) -> List[FieldDefinition]:
    return PLATFORM_FIELDS[Platform(platform)]


def is_available(platform: Platform | str, column: str) -> bool:
    """Whether the platform reports this snapshot column at all."""
    for f in fields_for(platform):
        if f.column == column:
            return f.available
    return False


def interaction_columns(platform: Platform | str) -> List[str]:
    """Columns summed into "interactions" (reactions/likes + comments)."""
    return [f.column for f in fields_for(platform) if f.interaction]
