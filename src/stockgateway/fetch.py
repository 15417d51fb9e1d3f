"""Rate-limited fetch client, the single entry point for upstream HTTP calls.

Throttling (HTTP 429, or a provider-specific predicate) is retried with
exponential backoff and recorded in the request-scoped ``RateLimitState``;
network errors are retried after a fixed wait. Retries run through
``tenacity``; after the last attempt the client gives up and returns
``None`` instead of raising.

Steady-state pacing lives in a separate ``DelayScheduler`` so the fixed
delays can be replaced by a smarter limiter without touching fetch logic.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Callable

import requests
import structlog
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
)

from stockgateway.models.enums import ProviderRole
from stockgateway.models.request import RateLimitState

logger = structlog.get_logger(__name__)

ThrottleCheck = Callable[[requests.Response], bool]


# ------------------------------------------------------------- schedulers


class DelayScheduler(ABC):
    """Paces upstream calls between field groups and between tickers."""

    @abstractmethod
    def pause_call(self, role: ProviderRole) -> None:
        """Wait after a non-quote call to ``role``."""
        ...

    @abstractmethod
    def pause_ticker(self) -> None:
        """Wait between two tickers of one batch."""
        ...


class NoDelayScheduler(DelayScheduler):
    """Never waits."""

    def pause_call(self, role):  # type: ignore[override]
        pass

    def pause_ticker(self):
        pass


class FixedDelayScheduler(DelayScheduler):
    """Sleeps a fixed interval after every call, regardless of outcome."""

    def __init__(
        self,
        call_delay: float = 0.25,
        ticker_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.call_delay = call_delay
        self.ticker_delay = ticker_delay
        self._sleep = sleep

    def pause_call(self, role: ProviderRole) -> None:
        if self.call_delay > 0:
            self._sleep(self.call_delay)

    def pause_ticker(self) -> None:
        if self.ticker_delay > 0:
            self._sleep(self.ticker_delay)


# ----------------------------------------------------------------- client


class RateLimitedFetchClient:
    """Throttle-aware wrapper around a ``requests.Session``."""

    def __init__(
        self,
        session: requests.Session | None = None,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
        network_retry_delay: float = 1.0,
        timeout: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session or requests.Session()
        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self.network_retry_delay = network_retry_delay
        self.timeout = timeout
        self._sleep = sleep
        self._logger = logger.bind(component="fetch_client")

    def call(
        self,
        url: str,
        role: ProviderRole,
        state: RateLimitState,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        throttled: ThrottleCheck | None = None,
    ) -> requests.Response | None:
        """GET ``url``; ``None`` once retries are exhausted.

        Non-throttling error responses are returned as-is.
        """

        def is_throttled(resp: requests.Response) -> bool:
            return self._is_throttled(resp, throttled)

        def record(retry_state: RetryCallState) -> None:
            outcome = retry_state.outcome
            if outcome.failed:
                self._logger.warning(
                    "upstream_network_error",
                    role=role.value,
                    url=url,
                    attempt=retry_state.attempt_number,
                    error=str(outcome.exception()),
                )
                return
            state.mark(role)
            self._logger.warning(
                "upstream_throttled",
                role=role.value,
                url=url,
                attempt=retry_state.attempt_number,
            )

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=(
                retry_if_result(is_throttled)
                | retry_if_exception_type(requests.RequestException)
            ),
            after=record,
            sleep=self._sleep,
            retry_error_callback=lambda _: None,
        )
        return retrying(
            self.session.get, url, params=params, headers=headers, timeout=self.timeout,
        )

    def _wait(self, retry_state: RetryCallState) -> float:
        # Network errors wait a fixed interval; throttling backs off exponentially.
        if retry_state.outcome.failed:
            return self.network_retry_delay
        return self.backoff_base * 2 ** (retry_state.attempt_number - 1)

    def get_json(
        self,
        url: str,
        role: ProviderRole,
        state: RateLimitState,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        throttled: ThrottleCheck | None = None,
    ) -> Any | None:
        """Decoded JSON body, or ``None`` if unavailable or undecodable."""
        resp = self.call(url, role, state, params=params, headers=headers, throttled=throttled)
        if resp is None:
            return None
        if not resp.ok:
            self._logger.info(
                "upstream_unavailable",
                role=role.value,
                url=url,
                status=resp.status_code,
            )
            return None
        try:
            return resp.json()
        except ValueError:
            self._logger.warning("upstream_bad_json", role=role.value, url=url)
            return None

    @staticmethod
    def _is_throttled(resp: requests.Response, check: ThrottleCheck | None) -> bool:
        if resp.status_code == 429:
            return True
        return bool(check and check(resp))
