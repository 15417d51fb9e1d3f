"""Enumerations shared across the gateway models."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum


class ProviderRole(Enum):
    """Slot an upstream provider fills in the fallback chain."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    TERTIARY = "tertiary"


class FieldGroup(Enum):
    """Independently cacheable categories of per-ticker data."""

    RECOMMENDATION = "recommendation"
    QUOTE = "quote"
    EARNINGS = "earnings"
    METRICS = "metrics"
    PEERS = "peers"
    PROFILE = "profile"
    INSIDER = "insider"
    DESCRIPTION = "description"

    @property
    def cacheable(self) -> bool:
        """Quotes are always fetched live."""
        return self is not FieldGroup.QUOTE

    @property
    def default_ttl(self) -> timedelta | None:
        return DEFAULT_TTLS.get(self)


DEFAULT_TTLS: dict[FieldGroup, timedelta] = {
    FieldGroup.RECOMMENDATION: timedelta(hours=24),
    FieldGroup.EARNINGS: timedelta(hours=24),
    FieldGroup.METRICS: timedelta(hours=24),
    FieldGroup.INSIDER: timedelta(hours=24),
    FieldGroup.PEERS: timedelta(days=30),
    FieldGroup.PROFILE: timedelta(days=30),
    FieldGroup.DESCRIPTION: timedelta(days=90),
}


class Position(Enum):
    """Marker for the extremes of a peer ranking."""

    BEST = "best"
    WORST = "worst"


class RecommendationKey(Enum):
    """Categorical analyst recommendation label."""

    STRONG_BUY = "strong_buy"
    BUY = "buy"
    HOLD = "hold"
    SELL = "sell"
    STRONG_SELL = "strong_sell"
