"""Alpha Vantage provider — long-form company descriptions.

Alpha Vantage signals throttling with HTTP 200 and a ``Note`` or
``Information`` body instead of 429.
"""

from __future__ import annotations

import os
from typing import Any

import requests

from stockgateway.errors import GatewayError, GatewayErrorCode
from stockgateway.fetch import RateLimitedFetchClient, ThrottleCheck
from stockgateway.models.enums import ProviderRole
from stockgateway.models.request import RateLimitState
from stockgateway.providers.base import BaseProvider

_THROTTLE_KEYS = ("Note", "Information")


def is_throttle_body(resp: requests.Response) -> bool:
    try:
        body = resp.json()
    except ValueError:
        return False
    return isinstance(body, dict) and any(k in body for k in _THROTTLE_KEYS)


class AlphaVantageProvider(BaseProvider):
    """``function=OVERVIEW`` of alphavantage.co."""

    name = "alphavantage"
    role = ProviderRole.TERTIARY
    base_url = "https://www.alphavantage.co"

    def __init__(self, client: RateLimitedFetchClient, api_key: str | None = None) -> None:
        super().__init__(client)
        self.api_key = api_key or os.getenv("ALPHA_VANTAGE_API_KEY")
        if not self.api_key:
            raise GatewayError(
                "Alpha Vantage API key required. Set ALPHA_VANTAGE_API_KEY env var or pass api_key.",
                code=GatewayErrorCode.AUTH_FAILED,
            )

    def _params(self, params: dict[str, Any]) -> dict[str, Any]:
        params["apikey"] = self.api_key
        return params

    def _throttled(self) -> ThrottleCheck:
        return is_throttle_body

    def overview(self, symbol: str, state: RateLimitState) -> Any | None:
        return self._get_json("/query", state, {"function": "OVERVIEW", "symbol": symbol})
