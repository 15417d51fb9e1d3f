"""Gateway configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

from stockgateway.models.enums import FieldGroup

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)


class CacheBackendType(Enum):
    """Supported cache backends."""

    PARQUET = "parquet"
    MEMORY = "memory"
    NONE = "none"


@dataclass
class GatewayConfig:
    """Configuration for SnapshotGateway.

    Attributes:
        finnhub_api_key: Primary provider (Finnhub) API key.
        alpha_vantage_api_key: Tertiary provider (Alpha Vantage) API key.
            Descriptions are skipped when unset.
        cache_backend: Cache type.
        cache_dir: Directory for parquet cache files.
        ttl_overrides: Per field-group TTL replacing the defaults.
        inter_call_delay: Seconds between non-quote calls within one ticker.
        inter_ticker_delay: Seconds between tickers in a batch.
        max_attempts: Attempts per upstream call (throttling and network errors).
        backoff_base: Base of the exponential throttling backoff, in seconds.
        network_retry_delay: Fixed wait after a network-level failure.
        request_timeout: Per-request timeout in seconds.
        peer_limit: Maximum peers kept per snapshot.
        earnings_limit: Number of earnings periods kept per snapshot.
        insider_months: Months of insider sentiment history requested.
        user_agent: Browser-like header sent to the secondary provider.
    """

    finnhub_api_key: str | None = None
    alpha_vantage_api_key: str | None = None

    cache_backend: CacheBackendType = CacheBackendType.PARQUET
    cache_dir: str = "data/cache"
    ttl_overrides: dict[FieldGroup, timedelta] = field(default_factory=dict)

    inter_call_delay: float = 0.25
    inter_ticker_delay: float = 1.0
    max_attempts: int = 3
    backoff_base: float = 1.0
    network_retry_delay: float = 1.0
    request_timeout: float = 10.0

    peer_limit: int = 5
    earnings_limit: int = 4
    insider_months: int = 12
    user_agent: str = DEFAULT_USER_AGENT
