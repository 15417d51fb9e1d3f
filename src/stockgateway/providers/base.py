"""Abstract base class for upstream providers."""

from __future__ import annotations

from abc import ABC
from typing import Any

from stockgateway.fetch import RateLimitedFetchClient, ThrottleCheck
from stockgateway.models.enums import ProviderRole
from stockgateway.models.request import RateLimitState


class BaseProvider(ABC):
    """Common plumbing for the three upstream providers.

    Providers return the decoded JSON body (or ``None`` when the upstream is
    unavailable) so that payloads can be cached verbatim; parsing into
    records happens in ``stockgateway.models.payloads``. All HTTP goes
    through the shared ``RateLimitedFetchClient``.
    """

    name: str = "base"
    role: ProviderRole = ProviderRole.PRIMARY
    base_url: str = ""

    def __init__(self, client: RateLimitedFetchClient) -> None:
        self.client = client

    def _params(self, params: dict[str, Any]) -> dict[str, Any]:
        """Hook for adding credentials to every request."""
        return params

    def _headers(self) -> dict[str, str] | None:
        return None

    def _throttled(self) -> ThrottleCheck | None:
        return None

    def _get_json(
        self,
        path: str,
        state: RateLimitState,
        params: dict[str, Any] | None = None,
    ) -> Any | None:
        return self.client.get_json(
            f"{self.base_url}{path}",
            self.role,
            state,
            params=self._params(dict(params or {})),
            headers=self._headers(),
            throttled=self._throttled(),
        )
