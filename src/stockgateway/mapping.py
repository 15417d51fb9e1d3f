"""Pure mapping functions from provider payload records to canonical models."""

from __future__ import annotations

from typing import Sequence

from stockgateway.models.payloads import (
    FinnhubEarning,
    FinnhubInsiderMonth,
    FinnhubMetrics,
    FinnhubQuote,
    YahooChart,
)
from stockgateway.models.snapshot import (
    EarningsSurprise,
    FundamentalMetrics,
    InsiderMonth,
    InsiderSentiment,
    PriceData,
)
from stockgateway.scoring import round_half_up

INSIDER_AGGREGATE_MONTHS = 3


def map_fundamentals(metrics: FinnhubMetrics | None) -> FundamentalMetrics:
    if metrics is None:
        return FundamentalMetrics()
    v = metrics.value
    return FundamentalMetrics(
        pe_ratio=v("peBasicExclExtraTTM", "peTTM"),
        pb_ratio=v("pbQuarterly", "pbAnnual"),
        ps_ratio=v("psTTM"),
        ev_ebitda=v("evEbitdaTTM"),
        dividend_yield=v("dividendYieldIndicatedAnnual", "dividendYield5Y"),
        beta=v("beta"),
        roe=v("roeTTM", "roeRfy"),
        roa=v("roaTTM", "roaRfy"),
        gross_margin=v("grossMarginTTM", "grossMargin5Y"),
        operating_margin=v("operatingMarginTTM", "operatingMargin5Y"),
        net_margin=v("netProfitMarginTTM", "netProfitMargin5Y"),
        debt_to_equity=v("totalDebt/totalEquityQuarterly", "totalDebt/totalEquityAnnual"),
        current_ratio=v("currentRatioQuarterly", "currentRatioAnnual"),
        quick_ratio=v("quickRatioQuarterly", "quickRatioAnnual"),
        revenue_growth=v("revenueGrowthQuarterlyYoy", "revenueGrowth3Y"),
        eps_growth=v("epsGrowthQuarterlyYoy", "epsGrowth3Y"),
        market_cap=v("marketCapitalization"),
        return_1m=v("1MonthPriceReturnDaily"),
        return_3m=v("3MonthPriceReturnDaily", "13WeekPriceReturnDaily"),
        return_6m=v("6MonthPriceReturnDaily", "26WeekPriceReturnDaily"),
        return_1y=v("52WeekPriceReturnDaily", "yearToDatePriceReturnDaily"),
    )


def map_earnings(rows: Sequence[FinnhubEarning], limit: int = 4) -> tuple[EarningsSurprise, ...]:
    return tuple(
        EarningsSurprise(
            period=e.period,
            actual=e.actual,
            estimate=e.estimate,
            surprise=e.surprise,
            surprise_percent=e.surprise_percent,
        )
        for e in rows[:limit]
    )


def map_insider(rows: Sequence[FinnhubInsiderMonth]) -> InsiderSentiment | None:
    """Average MSPR and net change over the latest three months."""
    if not rows:
        return None
    recent = rows[-INSIDER_AGGREGATE_MONTHS:]
    avg_mspr = sum(r.mspr or 0.0 for r in recent) / len(recent)
    total_change = sum(r.change or 0.0 for r in recent)
    return InsiderSentiment(
        mspr=round_half_up(avg_mspr),
        change=total_change,
        months=tuple(
            InsiderMonth(year=r.year, month=r.month, change=r.change, mspr=r.mspr)
            for r in rows
        ),
    )


def map_peers(symbols: Sequence[str], exclude: Sequence[str], limit: int = 5) -> tuple[str, ...]:
    """Drop the ticker itself (in any spelling) and duplicates."""
    skip = {s.upper() for s in exclude}
    out: list[str] = []
    for s in symbols:
        if s in skip or s in out:
            continue
        out.append(s)
        if len(out) >= limit:
            break
    return tuple(out)


def price_from_quote(quote: FinnhubQuote | None) -> PriceData:
    if quote is None or not quote.current:
        return PriceData()
    return PriceData(
        current=quote.current,
        change=quote.change,
        change_percent=quote.change_percent,
        source="primary",
    )


def price_from_chart(chart: YahooChart | None) -> PriceData:
    """Price and day change computed from the previous close."""
    if chart is None or chart.regular_market_price is None:
        return PriceData()
    current = chart.regular_market_price
    change = change_percent = None
    prev = chart.previous_close
    if prev:
        change = current - prev
        change_percent = change / prev * 100
    return PriceData(
        current=current,
        change=change,
        change_percent=change_percent,
        source="secondary",
    )


def fifty_two_week_range(chart: YahooChart | None) -> tuple[float | None, float | None]:
    if chart is None:
        return None, None
    high = max(chart.highs) if chart.highs else None
    low = min(chart.lows) if chart.lows else None
    return high, low
