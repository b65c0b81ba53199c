"""Pulse — Zero-Guarded Ratios.

Every division in the service goes through safe_div so a zero denominator
yields exactly 0.0, never NaN, Infinity or ZeroDivisionError.
"""

from typing import Optional, Union

Number = Union[int, float]


def safe_div(numerator: Number, denominator: Optional[Number], scale: float = 1.0) -> float:
    """numerator / denominator * scale, or 0.0 when the denominator is 0 or None."""
    if not denominator:
        return 0.0
    return numerator / denominator * scale


def cpc(spend: float, clicks: int) -> float:
    return round(safe_div(spend, clicks), 4)


def cpm(spend: float, impressions: int) -> float:
    return round(safe_div(spend, impressions, 1000), 4)


def ctr(clicks: int, impressions: int) -> float:
    return round(safe_div(clicks, impressions, 100), 4)


def percent_change(net_change: int, base: Optional[int]) -> float:
    """Net change as % of base; 0 by convention when base is 0 or missing."""
    if base is None or base <= 0:
        return 0.0
    return round(safe_div(net_change, base, 100), 2)
