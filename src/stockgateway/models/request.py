"""Inbound request, outbound response and per-batch rate-limit state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from stockgateway.errors import GatewayError, GatewayErrorCode
from stockgateway.models.enums import ProviderRole
from stockgateway.models.snapshot import Snapshot
from stockgateway.models.ticker import normalize_symbol


@dataclass
class RateLimitState:
    """Which providers throttled during one request batch.

    Created fresh for every external request and passed down the call
    chain explicitly.
    """

    primary: bool = False
    secondary: bool = False
    tertiary: bool = False

    def mark(self, role: ProviderRole) -> None:
        setattr(self, role.value, True)

    def is_limited(self, role: ProviderRole) -> bool:
        return getattr(self, role.value)

    @property
    def any(self) -> bool:
        return self.primary or self.secondary or self.tertiary

    def to_dict(self) -> dict[str, bool]:
        return {
            "primary": self.primary,
            "secondary": self.secondary,
            "tertiary": self.tertiary,
        }


# wire name -> attribute name
_REQUEST_KEYS = {
    "ticker": "ticker",
    "stockName": "stock_name",
    "stock_name": "stock_name",
    "providerSymbolHint": "provider_symbol_hint",
    "provider_symbol_hint": "provider_symbol_hint",
    "forceRefresh": "force_refresh",
    "force_refresh": "force_refresh",
    "refreshTickers": "refresh_tickers",
    "refresh_tickers": "refresh_tickers",
    "portfolioId": "portfolio_id",
    "portfolio_id": "portfolio_id",
}


@dataclass(frozen=True)
class GatewayRequest:
    """Single-ticker or portfolio-wide snapshot request.

    Attributes:
        ticker: When set, only this ticker is processed.
        stock_name: Display name echoed into the snapshot.
        provider_symbol_hint: Explicit primary-provider symbol for ``ticker``.
        force_refresh: Invalidate cached entries before fetching.
        refresh_tickers: Tickers to invalidate when ``force_refresh`` is set.
        portfolio_id: Portfolio whose holdings are processed when no ticker
            is given. ``None`` means all holdings.
    """

    ticker: str | None = None
    stock_name: str | None = None
    provider_symbol_hint: str | None = None
    force_refresh: bool = False
    refresh_tickers: tuple[str, ...] = ()
    portfolio_id: str | None = None

    @classmethod
    def from_dict(cls, body: dict[str, Any]) -> GatewayRequest:
        """Build a request from a decoded JSON body, validating types."""
        if not isinstance(body, dict):
            raise GatewayError(
                "Request body must be a JSON object",
                code=GatewayErrorCode.BAD_REQUEST,
            )

        kwargs: dict[str, Any] = {}
        for key, value in body.items():
            attr = _REQUEST_KEYS.get(key)
            if attr is None or value is None:
                continue
            kwargs[attr] = value

        for name in ("ticker", "stock_name", "provider_symbol_hint", "portfolio_id"):
            value = kwargs.get(name)
            if value is not None and not isinstance(value, str):
                raise GatewayError(
                    f"'{name}' must be a string",
                    code=GatewayErrorCode.BAD_REQUEST,
                )
            if isinstance(value, str) and not value.strip():
                kwargs.pop(name)

        force = kwargs.get("force_refresh", False)
        if not isinstance(force, bool):
            raise GatewayError(
                "'force_refresh' must be a boolean",
                code=GatewayErrorCode.BAD_REQUEST,
            )

        refresh = kwargs.get("refresh_tickers", [])
        if not isinstance(refresh, list) or not all(isinstance(t, str) for t in refresh):
            raise GatewayError(
                "'refresh_tickers' must be an array of strings",
                code=GatewayErrorCode.BAD_REQUEST,
            )
        kwargs["refresh_tickers"] = tuple(normalize_symbol(t) for t in refresh if t.strip())

        if "ticker" in kwargs:
            kwargs["ticker"] = normalize_symbol(kwargs["ticker"])

        return cls(**kwargs)


@dataclass
class GatewayResponse:
    """Batch result: one snapshot per ticker plus collected errors."""

    data: list[Snapshot] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    rate_limited: RateLimitState | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "data": [s.to_dict() for s in self.data],
            "errors": list(self.errors),
        }
        if self.rate_limited is not None and self.rate_limited.any:
            out["rateLimited"] = self.rate_limited.to_dict()
        return out
