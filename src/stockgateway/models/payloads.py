"""Explicit records for each upstream provider's JSON responses.

Upstream payloads are loosely typed. Each record here accepts the raw JSON
via ``from_json`` and raises ``GatewayError(MALFORMED_PAYLOAD)`` when the
overall shape is wrong; individual missing or non-numeric fields become
``None``. Mapping into canonical models lives in ``stockgateway.mapping``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from stockgateway.errors import GatewayError, GatewayErrorCode


def _num(value: Any) -> float | None:
    """Coerce a JSON scalar to float; None for missing, NaN or junk."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        f = float(value)
    elif isinstance(value, str):
        try:
            f = float(value)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(f) or math.isinf(f):
        return None
    return f


def _int(value: Any) -> int:
    f = _num(value)
    return int(f) if f is not None else 0


def _str(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or value in ("None", "-"):
        return None
    return value


def _malformed(provider: str, what: str, data: Any) -> GatewayError:
    return GatewayError(
        f"{provider} {what}: unexpected payload type {type(data).__name__}",
        code=GatewayErrorCode.MALFORMED_PAYLOAD,
    )


def _require_dict(provider: str, what: str, data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise _malformed(provider, what, data)
    return data


def _require_list(provider: str, what: str, data: Any) -> list[Any]:
    if not isinstance(data, list):
        raise _malformed(provider, what, data)
    return data


# ---------------------------------------------------------------- Finnhub


@dataclass(frozen=True)
class FinnhubQuote:
    """``/quote`` response."""

    current: float | None = None
    change: float | None = None
    change_percent: float | None = None
    high: float | None = None
    low: float | None = None
    open: float | None = None
    previous_close: float | None = None

    @classmethod
    def from_json(cls, data: Any) -> FinnhubQuote:
        d = _require_dict("finnhub", "quote", data)
        return cls(
            current=_num(d.get("c")),
            change=_num(d.get("d")),
            change_percent=_num(d.get("dp")),
            high=_num(d.get("h")),
            low=_num(d.get("l")),
            open=_num(d.get("o")),
            previous_close=_num(d.get("pc")),
        )


@dataclass(frozen=True)
class FinnhubRecommendation:
    """One period of ``/stock/recommendation``."""

    period: str | None = None
    strong_buy: int = 0
    buy: int = 0
    hold: int = 0
    sell: int = 0
    strong_sell: int = 0

    @classmethod
    def from_json_list(cls, data: Any) -> list[FinnhubRecommendation]:
        """Parse the trend series, provider-sorted newest first."""
        out: list[FinnhubRecommendation] = []
        for item in _require_list("finnhub", "recommendation", data):
            d = _require_dict("finnhub", "recommendation entry", item)
            out.append(cls(
                period=_str(d.get("period")),
                strong_buy=_int(d.get("strongBuy")),
                buy=_int(d.get("buy")),
                hold=_int(d.get("hold")),
                sell=_int(d.get("sell")),
                strong_sell=_int(d.get("strongSell")),
            ))
        return out


@dataclass(frozen=True)
class FinnhubEarning:
    """One period of ``/stock/earnings``."""

    period: str | None = None
    actual: float | None = None
    estimate: float | None = None
    surprise: float | None = None
    surprise_percent: float | None = None
    quarter: int | None = None
    year: int | None = None

    @classmethod
    def from_json_list(cls, data: Any) -> list[FinnhubEarning]:
        out: list[FinnhubEarning] = []
        for item in _require_list("finnhub", "earnings", data):
            d = _require_dict("finnhub", "earnings entry", item)
            quarter = _num(d.get("quarter"))
            year = _num(d.get("year"))
            out.append(cls(
                period=_str(d.get("period")),
                actual=_num(d.get("actual")),
                estimate=_num(d.get("estimate")),
                surprise=_num(d.get("surprise")),
                surprise_percent=_num(d.get("surprisePercent")),
                quarter=int(quarter) if quarter is not None else None,
                year=int(year) if year is not None else None,
            ))
        return out


@dataclass(frozen=True)
class FinnhubMetrics:
    """``/stock/metric?metric=all`` response — the ``metric`` mapping."""

    metric: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Any) -> FinnhubMetrics:
        d = _require_dict("finnhub", "metrics", data)
        metric = d.get("metric") or {}
        if not isinstance(metric, dict):
            raise _malformed("finnhub", "metrics.metric", metric)
        return cls(metric=metric)

    def value(self, *keys: str) -> float | None:
        """First numeric value among ``keys``."""
        for key in keys:
            v = _num(self.metric.get(key))
            if v is not None:
                return v
        return None


@dataclass(frozen=True)
class FinnhubProfile:
    """``/stock/profile2`` response."""

    name: str | None = None
    ticker: str | None = None
    industry: str | None = None
    country: str | None = None
    exchange: str | None = None
    currency: str | None = None
    market_cap: float | None = None
    weburl: str | None = None

    @classmethod
    def from_json(cls, data: Any) -> FinnhubProfile:
        d = _require_dict("finnhub", "profile", data)
        return cls(
            name=_str(d.get("name")),
            ticker=_str(d.get("ticker")),
            industry=_str(d.get("finnhubIndustry")),
            country=_str(d.get("country")),
            exchange=_str(d.get("exchange")),
            currency=_str(d.get("currency")),
            market_cap=_num(d.get("marketCapitalization")),
            weburl=_str(d.get("weburl")),
        )


@dataclass(frozen=True)
class FinnhubInsiderMonth:
    """One month of ``/stock/insider-sentiment``."""

    year: int
    month: int
    change: float | None = None
    mspr: float | None = None

    @classmethod
    def from_json(cls, data: Any) -> list[FinnhubInsiderMonth]:
        d = _require_dict("finnhub", "insider sentiment", data)
        rows = _require_list("finnhub", "insider sentiment data", d.get("data") or [])
        out: list[FinnhubInsiderMonth] = []
        for item in rows:
            r = _require_dict("finnhub", "insider sentiment entry", item)
            out.append(cls(
                year=_int(r.get("year")),
                month=_int(r.get("month")),
                change=_num(r.get("change")),
                mspr=_num(r.get("mspr")),
            ))
        out.sort(key=lambda m: (m.year, m.month))
        return out


def finnhub_peer_list(data: Any) -> list[str]:
    """``/stock/peers`` is a bare array of symbols."""
    return [
        s.strip().upper()
        for s in _require_list("finnhub", "peers", data)
        if isinstance(s, str) and s.strip()
    ]


# ------------------------------------------------------------------ Yahoo


@dataclass(frozen=True)
class YahooChart:
    """``/v8/finance/chart`` response (first result only)."""

    symbol: str | None = None
    regular_market_price: float | None = None
    previous_close: float | None = None
    long_name: str | None = None
    short_name: str | None = None
    currency: str | None = None
    exchange_name: str | None = None
    highs: tuple[float, ...] = ()
    lows: tuple[float, ...] = ()

    @property
    def display_name(self) -> str | None:
        return self.long_name or self.short_name

    @classmethod
    def from_json(cls, data: Any) -> YahooChart | None:
        """Parse a chart response; ``None`` when Yahoo reports no result."""
        d = _require_dict("yahoo", "chart", data)
        chart = _require_dict("yahoo", "chart.chart", d.get("chart"))
        results = chart.get("result")
        if not results:
            return None
        result = _require_dict("yahoo", "chart result", _require_list("yahoo", "chart results", results)[0])
        meta = result.get("meta") or {}
        if not isinstance(meta, dict):
            raise _malformed("yahoo", "chart meta", meta)

        previous_close = None
        for key in ("regularMarketPreviousClose", "previousClose", "chartPreviousClose"):
            previous_close = _num(meta.get(key))
            if previous_close is not None:
                break

        highs: tuple[float, ...] = ()
        lows: tuple[float, ...] = ()
        quotes = (result.get("indicators") or {}).get("quote") or []
        if isinstance(quotes, list) and quotes and isinstance(quotes[0], dict):
            q = quotes[0]
            highs = tuple(v for v in (_num(h) for h in q.get("high") or []) if v is not None)
            lows = tuple(v for v in (_num(x) for x in q.get("low") or []) if v is not None)

        return cls(
            symbol=_str(meta.get("symbol")),
            regular_market_price=_num(meta.get("regularMarketPrice")),
            previous_close=previous_close,
            long_name=_str(meta.get("longName")),
            short_name=_str(meta.get("shortName")),
            currency=_str(meta.get("currency")),
            exchange_name=_str(meta.get("exchangeName")),
            highs=highs,
            lows=lows,
        )


@dataclass(frozen=True)
class YahooSearchQuote:
    """One entry of ``/v1/finance/search`` ``quotes``."""

    symbol: str
    quote_type: str | None = None
    exchange: str | None = None
    short_name: str | None = None
    long_name: str | None = None

    @classmethod
    def from_json_list(cls, data: Any) -> list[YahooSearchQuote]:
        d = _require_dict("yahoo", "search", data)
        out: list[YahooSearchQuote] = []
        for item in _require_list("yahoo", "search quotes", d.get("quotes") or []):
            if not isinstance(item, dict):
                continue
            symbol = _str(item.get("symbol"))
            if symbol is None:
                continue
            out.append(cls(
                symbol=symbol.upper(),
                quote_type=_str(item.get("quoteType")),
                exchange=_str(item.get("exchange")),
                short_name=_str(item.get("shortname")),
                long_name=_str(item.get("longname")),
            ))
        return out


# ---------------------------------------------------------- Alpha Vantage


@dataclass(frozen=True)
class AlphaVantageOverview:
    """``function=OVERVIEW`` response."""

    symbol: str | None = None
    name: str | None = None
    description: str | None = None
    exchange: str | None = None
    country: str | None = None
    sector: str | None = None
    industry: str | None = None

    @classmethod
    def from_json(cls, data: Any) -> AlphaVantageOverview | None:
        """Parse an overview; ``None`` for Alpha Vantage's empty ``{}``."""
        d = _require_dict("alphavantage", "overview", data)
        if not d:
            return None
        return cls(
            symbol=_str(d.get("Symbol")),
            name=_str(d.get("Name")),
            description=_str(d.get("Description")),
            exchange=_str(d.get("Exchange")),
            country=_str(d.get("Country")),
            sector=_str(d.get("Sector")),
            industry=_str(d.get("Industry")),
        )
