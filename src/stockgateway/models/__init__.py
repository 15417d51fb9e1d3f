"""Gateway data models."""

from stockgateway.models.enums import (
    DEFAULT_TTLS,
    FieldGroup,
    Position,
    ProviderRole,
    RecommendationKey,
)
from stockgateway.models.ranking import RankingResult
from stockgateway.models.request import GatewayRequest, GatewayResponse, RateLimitState
from stockgateway.models.snapshot import (
    EarningsSurprise,
    FundamentalMetrics,
    InsiderMonth,
    InsiderSentiment,
    PriceData,
    RecommendationBreakdown,
    Snapshot,
)
from stockgateway.models.ticker import Ticker

__all__ = [
    "DEFAULT_TTLS",
    "FieldGroup",
    "Position",
    "ProviderRole",
    "RecommendationKey",
    "Ticker",
    "Snapshot",
    "PriceData",
    "RecommendationBreakdown",
    "EarningsSurprise",
    "FundamentalMetrics",
    "InsiderMonth",
    "InsiderSentiment",
    "RankingResult",
    "RateLimitState",
    "GatewayRequest",
    "GatewayResponse",
]
