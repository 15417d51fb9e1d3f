"""Analyst consensus score and recommendation label.

The consensus score is a weighted average of the five rating buckets:

    strong buy = +2, buy = +1, hold = 0, sell = -1, strong sell = -2

so it always lies in [-2, +2]. It is undefined (``None``) when no analyst
covers the stock.
"""

from __future__ import annotations

import math
from typing import Sequence

from stockgateway.models.enums import RecommendationKey
from stockgateway.models.payloads import FinnhubRecommendation
from stockgateway.models.snapshot import RecommendationBreakdown

WEIGHTS = {
    "strong_buy": 2,
    "buy": 1,
    "hold": 0,
    "sell": -1,
    "strong_sell": -2,
}


def round_half_up(value: float, digits: int = 2) -> float:
    """Round like ``Math.round(x * 10**d) / 10**d`` (halves toward +inf)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def consensus_score(breakdown: RecommendationBreakdown) -> float | None:
    """Weighted average rating in [-2, 2], rounded to 2 decimals."""
    total = breakdown.total
    if total <= 0:
        return None
    weighted = sum(getattr(breakdown, name) * w for name, w in WEIGHTS.items())
    return round_half_up(weighted / total)


def recommendation_key(breakdown: RecommendationBreakdown) -> RecommendationKey | None:
    """Majority label; ties fall back to hold."""
    if breakdown.total <= 0:
        return None

    buy_total = breakdown.strong_buy + breakdown.buy
    sell_total = breakdown.strong_sell + breakdown.sell
    hold_total = breakdown.hold

    if buy_total > sell_total and buy_total > hold_total:
        if breakdown.strong_buy > breakdown.buy:
            return RecommendationKey.STRONG_BUY
        return RecommendationKey.BUY
    if sell_total > buy_total and sell_total > hold_total:
        if breakdown.strong_sell > breakdown.sell:
            return RecommendationKey.STRONG_SELL
        return RecommendationKey.SELL
    return RecommendationKey.HOLD


def latest_breakdown(
    trends: Sequence[FinnhubRecommendation],
) -> RecommendationBreakdown | None:
    """Breakdown of the most recent period (first entry, newest first)."""
    if not trends:
        return None
    latest = trends[0]
    return RecommendationBreakdown(
        strong_buy=max(latest.strong_buy, 0),
        buy=max(latest.buy, 0),
        hold=max(latest.hold, 0),
        sell=max(latest.sell, 0),
        strong_sell=max(latest.strong_sell, 0),
        period=latest.period,
    )
