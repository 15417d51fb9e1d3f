"""Finnhub provider — the primary source for almost every field group.

Endpoints: quote, recommendation trends, earnings surprises, basic
financials, peers, company profile and insider sentiment.
"""

from __future__ import annotations

import os
from datetime import date
from typing import Any

from stockgateway.errors import GatewayError, GatewayErrorCode
from stockgateway.fetch import RateLimitedFetchClient
from stockgateway.models.enums import ProviderRole
from stockgateway.models.request import RateLimitState
from stockgateway.providers.base import BaseProvider


class FinnhubProvider(BaseProvider):
    """Fetch fundamentals and analyst data from Finnhub.io."""

    name = "finnhub"
    role = ProviderRole.PRIMARY
    base_url = "https://finnhub.io/api/v1"

    def __init__(self, client: RateLimitedFetchClient, api_key: str | None = None) -> None:
        super().__init__(client)
        self.api_key = api_key or os.getenv("FINNHUB_API_KEY")
        if not self.api_key:
            raise GatewayError(
                "Finnhub API key required. Set FINNHUB_API_KEY env var or pass api_key.",
                code=GatewayErrorCode.AUTH_FAILED,
            )

    def _params(self, params: dict[str, Any]) -> dict[str, Any]:
        params["token"] = self.api_key
        return params

    def quote(self, symbol: str, state: RateLimitState) -> Any | None:
        return self._get_json("/quote", state, {"symbol": symbol})

    def recommendation(self, symbol: str, state: RateLimitState) -> Any | None:
        return self._get_json("/stock/recommendation", state, {"symbol": symbol})

    def earnings(self, symbol: str, state: RateLimitState, limit: int = 4) -> Any | None:
        return self._get_json("/stock/earnings", state, {"symbol": symbol, "limit": limit})

    def metrics(self, symbol: str, state: RateLimitState) -> Any | None:
        return self._get_json("/stock/metric", state, {"symbol": symbol, "metric": "all"})

    def peers(self, symbol: str, state: RateLimitState) -> Any | None:
        return self._get_json("/stock/peers", state, {"symbol": symbol})

    def profile(self, symbol: str, state: RateLimitState) -> Any | None:
        return self._get_json("/stock/profile2", state, {"symbol": symbol})

    def insider_sentiment(
        self, symbol: str, state: RateLimitState, start: date, end: date,
    ) -> Any | None:
        return self._get_json(
            "/stock/insider-sentiment",
            state,
            {"symbol": symbol, "from": start.isoformat(), "to": end.isoformat()},
        )
