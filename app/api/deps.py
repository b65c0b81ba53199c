"""Pulse — Shared API Dependencies."""

from fastapi import Depends
from sqlalchemy.engine import Engine

from app.analyzer.overview import MonthlyAggregator
from app.core.attribution import AttributionMap, get_attribution_map
from app.database import get_engine


def get_attribution() -> AttributionMap:
    """Dependency — the process-wide attribution map."""
    return get_attribution_map()


def get_aggregator(
    engine: Engine = Depends(get_engine),
    attribution: AttributionMap = Depends(get_attribution),
) -> MonthlyAggregator:
    """Dependency — a stateless aggregator bound to the engine and rules."""
    return MonthlyAggregator(engine, attribution)
