"""Yahoo Finance provider — price fallback, 52-week backfill and search.

Yahoo's public endpoints reject requests without a browser-like
``User-Agent``; no API key is needed.
"""

from __future__ import annotations

from typing import Any

from stockgateway.config import DEFAULT_USER_AGENT
from stockgateway.fetch import RateLimitedFetchClient
from stockgateway.models.enums import ProviderRole
from stockgateway.models.request import RateLimitState
from stockgateway.providers.base import BaseProvider


class YahooProvider(BaseProvider):
    """Chart and search endpoints of query1.finance.yahoo.com."""

    name = "yahoo"
    role = ProviderRole.SECONDARY
    base_url = "https://query1.finance.yahoo.com"

    def __init__(
        self,
        client: RateLimitedFetchClient,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        super().__init__(client)
        self.user_agent = user_agent

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent}

    def chart(self, symbol: str, state: RateLimitState, range_: str = "1d") -> Any | None:
        """Chart series; ``range_`` is ``1d`` for price or ``1y`` for 52w."""
        return self._get_json(
            f"/v8/finance/chart/{symbol}",
            state,
            {"range": range_, "interval": "1d"},
        )

    def search(self, query: str, state: RateLimitState, count: int = 10) -> Any | None:
        return self._get_json(
            "/v1/finance/search",
            state,
            {"q": query, "quotesCount": count, "newsCount": 0},
        )
