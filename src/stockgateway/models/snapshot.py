"""Snapshot data model: the per-ticker aggregated output."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


def to_camel(name: str) -> str:
    """``fifty_two_week_high`` -> ``fiftyTwoWeekHigh``."""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def camelize(value: Any) -> Any:
    """Rename dict keys to camelCase at every depth; tuples become lists."""
    if isinstance(value, dict):
        return {to_camel(k): camelize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [camelize(v) for v in value]
    return value


@dataclass(frozen=True)
class PriceData:
    """Price fields merged from the primary quote and secondary chart.

    Attributes:
        current: Last traded price.
        change: Absolute change from the previous close.
        change_percent: Percent change from the previous close.
        fifty_two_week_high: 52-week high.
        fifty_two_week_low: 52-week low.
        source: Provider role the current price came from.
    """

    current: float | None = None
    change: float | None = None
    change_percent: float | None = None
    fifty_two_week_high: float | None = None
    fifty_two_week_low: float | None = None
    source: str | None = None


@dataclass(frozen=True)
class RecommendationBreakdown:
    """Analyst rating counts for one recommendation period."""

    strong_buy: int = 0
    buy: int = 0
    hold: int = 0
    sell: int = 0
    strong_sell: int = 0
    period: str | None = None

    @property
    def total(self) -> int:
        return self.strong_buy + self.buy + self.hold + self.sell + self.strong_sell


@dataclass(frozen=True)
class EarningsSurprise:
    """Reported vs. estimated EPS for one period."""

    period: str | None = None
    actual: float | None = None
    estimate: float | None = None
    surprise: float | None = None
    surprise_percent: float | None = None


@dataclass(frozen=True)
class FundamentalMetrics:
    """Normalized fundamental ratios.

    Percent-style fields (margins, ROE, growth, returns) are in percent as
    delivered by the primary provider. Market cap is in millions.
    """

    pe_ratio: float | None = None
    pb_ratio: float | None = None
    ps_ratio: float | None = None
    ev_ebitda: float | None = None
    dividend_yield: float | None = None
    beta: float | None = None
    roe: float | None = None
    roa: float | None = None
    gross_margin: float | None = None
    operating_margin: float | None = None
    net_margin: float | None = None
    debt_to_equity: float | None = None
    current_ratio: float | None = None
    quick_ratio: float | None = None
    revenue_growth: float | None = None
    eps_growth: float | None = None
    market_cap: float | None = None
    return_1m: float | None = None
    return_3m: float | None = None
    return_6m: float | None = None
    return_1y: float | None = None


@dataclass(frozen=True)
class InsiderMonth:
    """Insider activity for one calendar month."""

    year: int
    month: int
    change: float | None = None
    mspr: float | None = None


@dataclass(frozen=True)
class InsiderSentiment:
    """Aggregate over the most recent months plus the full monthly series.

    Attributes:
        mspr: Average monthly share purchase ratio (-100..100).
        change: Net shares bought (positive) or sold (negative).
        months: Full monthly series, oldest first.
    """

    mspr: float | None = None
    change: float | None = None
    months: tuple[InsiderMonth, ...] = ()


@dataclass(frozen=True)
class Snapshot:
    """Normalized analytics snapshot for one ticker."""

    ticker: str
    stock_name: str | None = None
    provider_symbol: str | None = None
    company_name: str | None = None
    price: PriceData = field(default_factory=PriceData)
    recommendation: RecommendationBreakdown | None = None
    consensus_score: float | None = None
    recommendation_key: str | None = None
    number_of_analysts: int | None = None
    earnings: tuple[EarningsSurprise, ...] = ()
    fundamentals: FundamentalMetrics = field(default_factory=FundamentalMetrics)
    insider_sentiment: InsiderSentiment | None = None
    peers: tuple[str, ...] = ()
    industry: str | None = None
    description: str | None = None
    error: str | None = None

    def metric(self, name: str) -> float | None:
        """Look up a numeric field for peer ranking."""
        if hasattr(self.fundamentals, name):
            return getattr(self.fundamentals, name)
        if hasattr(self.price, name):
            return getattr(self.price, name)
        if name == "consensus_score":
            return self.consensus_score
        raise KeyError(name)

    def to_dict(self) -> dict[str, Any]:
        """Wire form with camelCase keys."""
        return camelize(asdict(self))
