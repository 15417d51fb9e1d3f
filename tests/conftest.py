"""Shared fixtures for stockgateway tests."""

from __future__ import annotations

import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from urllib.parse import urlencode

import pytest
import requests

# Ensure src/ is on the path for editable-style imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from stockgateway.cache import MemoryCache
from stockgateway.config import CacheBackendType, GatewayConfig
from stockgateway.fetch import NoDelayScheduler, RateLimitedFetchClient
from stockgateway.gateway import SnapshotGateway
from stockgateway.models.request import RateLimitState


class FakeResponse:
    """Just enough of ``requests.Response`` for the fetch client."""

    def __init__(self, payload: Any = None, status_code: int = 200, text: str | None = None) -> None:
        self._payload = payload
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if self.text is not None:
            raise ValueError("not json")
        return self._payload


class FakeSession:
    """Routes GETs to canned responses by URL substring.

    The routed string is ``url?query``, so a key may pin query params
    (e.g. ``"chart/AAPL?range=1y"``); the longest matching key wins. A
    route value may be a ``FakeResponse``, an exception to raise, a list
    of those consumed in order, or plain JSON served with status 200.
    Unrouted URLs answer 404.
    """

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.calls: list[dict[str, Any]] = []

    def get(self, url, params=None, headers=None, timeout=None):
        full = f"{url}?{urlencode(params or {})}"
        self.calls.append({"url": url, "full": full, "params": params, "headers": headers})
        matches = [k for k in self.routes if k in full]
        if not matches:
            return FakeResponse({}, status_code=404)
        key = max(matches, key=len)
        value = self.routes[key]
        if isinstance(value, list) and value and isinstance(value[0], (FakeResponse, Exception)):
            value = value.pop(0) if len(value) > 1 else value[0]
        if isinstance(value, Exception):
            raise value
        if isinstance(value, FakeResponse):
            return value
        return FakeResponse(value)

    def count(self, fragment: str) -> int:
        return sum(1 for c in self.calls if fragment in c["full"])


class Clock:
    """Controllable UTC clock."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2024, 6, 3, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# ------------------------------------------------------------ canned JSON

AAPL_QUOTE = {"c": 190.5, "d": 1.5, "dp": 0.79, "h": 191.0, "l": 188.0, "o": 189.0, "pc": 189.0}

AAPL_RECOMMENDATION = [
    {"period": "2024-06-01", "strongBuy": 5, "buy": 3, "hold": 2, "sell": 0, "strongSell": 0, "symbol": "AAPL"},
    {"period": "2024-05-01", "strongBuy": 1, "buy": 1, "hold": 8, "sell": 0, "strongSell": 0, "symbol": "AAPL"},
]

AAPL_EARNINGS = [
    {"period": "2024-03-31", "actual": 1.53, "estimate": 1.5, "surprise": 0.03, "surprisePercent": 2.0},
    {"period": "2023-12-31", "actual": 2.18, "estimate": 2.1, "surprise": 0.08, "surprisePercent": 3.81},
    {"period": "2023-09-30", "actual": 1.46, "estimate": 1.39, "surprise": 0.07, "surprisePercent": 5.04},
    {"period": "2023-06-30", "actual": 1.26, "estimate": 1.19, "surprise": 0.07, "surprisePercent": 5.88},
    {"period": "2023-03-31", "actual": 1.52, "estimate": 1.43, "surprise": 0.09, "surprisePercent": 6.29},
]

AAPL_METRICS = {
    "metric": {
        "peBasicExclExtraTTM": 29.5,
        "evEbitdaTTM": 22.1,
        "roeTTM": 147.0,
        "netProfitMarginTTM": 26.3,
        "revenueGrowthQuarterlyYoy": -4.3,
        "52WeekPriceReturnDaily": 12.0,
        "marketCapitalization": 2900000.0,
        "52WeekHigh": 199.6,
        "52WeekLow": 164.1,
        "beta": 1.2,
    },
    "metricType": "all",
    "symbol": "AAPL",
}

AAPL_PEERS = ["AAPL", "MSFT", "GOOGL", "DELL", "HPQ", "HPE", "NTAP"]

AAPL_PROFILE = {"name": "Apple Inc", "ticker": "AAPL", "finnhubIndustry": "Technology", "country": "US"}

AAPL_INSIDER = {
    "data": [
        {"symbol": "AAPL", "year": 2024, "month": 1, "change": -100, "mspr": -10.0},
        {"symbol": "AAPL", "year": 2024, "month": 2, "change": -200, "mspr": -20.0},
        {"symbol": "AAPL", "year": 2024, "month": 3, "change": 300, "mspr": 30.0},
        {"symbol": "AAPL", "year": 2024, "month": 4, "change": 50, "mspr": 5.0},
    ],
    "symbol": "AAPL",
}

AAPL_OVERVIEW = {"Symbol": "AAPL", "Name": "Apple Inc", "Description": "Apple designs phones."}


def yahoo_chart(price=None, previous_close=None, highs=(), lows=(), long_name=None, symbol="X"):
    meta: dict[str, Any] = {"symbol": symbol}
    if price is not None:
        meta["regularMarketPrice"] = price
    if previous_close is not None:
        meta["chartPreviousClose"] = previous_close
    if long_name is not None:
        meta["longName"] = long_name
    return {
        "chart": {
            "result": [{
                "meta": meta,
                "indicators": {"quote": [{"high": list(highs), "low": list(lows)}]},
            }],
            "error": None,
        }
    }


def yahoo_search(*quotes):
    return {"quotes": [
        {"symbol": s, "quoteType": qt, "exchange": ex, "shortname": s}
        for s, qt, ex in quotes
    ]}


def aapl_routes() -> dict[str, Any]:
    return {
        "/quote?symbol=AAPL": AAPL_QUOTE,
        "/stock/recommendation?symbol=AAPL": AAPL_RECOMMENDATION,
        "/stock/earnings?symbol=AAPL": AAPL_EARNINGS,
        "/stock/metric?symbol=AAPL": AAPL_METRICS,
        "/stock/peers?symbol=AAPL": AAPL_PEERS,
        "/stock/profile2?symbol=AAPL": AAPL_PROFILE,
        "/stock/insider-sentiment?symbol=AAPL": AAPL_INSIDER,
        "function=OVERVIEW&symbol=AAPL": AAPL_OVERVIEW,
    }


# ---------------------------------------------------------------- fixtures


@pytest.fixture
def sleeps() -> list[float]:
    """Recorded sleep durations; pass ``sleeps.append`` as the sleep function."""
    return []


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def state() -> RateLimitState:
    return RateLimitState()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(session, sleeps) -> RateLimitedFetchClient:
    return RateLimitedFetchClient(session, sleep=sleeps.append)


@pytest.fixture
def make_gateway(session, sleeps, clock):
    """Factory: gateway over the fake session with an in-memory cache."""

    def _make(routes: dict[str, Any] | None = None, **kwargs) -> SnapshotGateway:
        if routes is not None:
            session.routes.update(routes)
        config = kwargs.pop("config", None) or GatewayConfig(
            finnhub_api_key="fh-key",
            alpha_vantage_api_key="av-key",
            cache_backend=CacheBackendType.MEMORY,
        )
        kwargs.setdefault("client", RateLimitedFetchClient(session, sleep=sleeps.append))
        kwargs.setdefault("cache", MemoryCache(clock=clock))
        kwargs.setdefault("scheduler", NoDelayScheduler())
        kwargs.setdefault("today", lambda: date(2024, 6, 3))
        return SnapshotGateway(config, **kwargs)

    return _make


@pytest.fixture
def network_error() -> Exception:
    return requests.ConnectionError("connection reset")
