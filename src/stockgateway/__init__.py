"""stockgateway — market-data aggregation and caching gateway.

Turns a ticker into a normalized analytics snapshot from three rate-limited
providers (Finnhub, Yahoo Finance, Alpha Vantage), with per-field-group
caching, symbol reconciliation for foreign listings, analyst consensus
scoring and peer ranking.

Quick start::

    from stockgateway import create_gateway_from_env, handle_request
    gw = create_gateway_from_env()
    result = handle_request(gw, {"ticker": "AAPL"})
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from stockgateway.cache import CacheEntry, CacheStore, MemoryCache, NoCache, ParquetCache
from stockgateway.config import CacheBackendType, GatewayConfig
from stockgateway.errors import GatewayError, GatewayErrorCode
from stockgateway.fetch import (
    DelayScheduler,
    FixedDelayScheduler,
    NoDelayScheduler,
    RateLimitedFetchClient,
)
from stockgateway.gateway import PeerComparison, SnapshotGateway
from stockgateway.holdings import Holding, HoldingsStore, InMemoryHoldingsStore
from stockgateway.log import configure_logging
from stockgateway.models import (
    FieldGroup,
    GatewayRequest,
    GatewayResponse,
    Position,
    ProviderRole,
    RankingResult,
    RateLimitState,
    RecommendationKey,
    Snapshot,
    Ticker,
)
from stockgateway.ranking import PEER_METRICS, rank_metric, rank_peers, valuation_score
from stockgateway.scoring import consensus_score, recommendation_key
from stockgateway.service import handle_request
from stockgateway.symbols import SymbolResolution, SymbolResolver

__version__ = "0.1.0"

__all__ = [
    # Gateway
    "SnapshotGateway",
    "PeerComparison",
    "create_gateway_from_env",
    "handle_request",
    # Config
    "GatewayConfig",
    "CacheBackendType",
    "configure_logging",
    # Errors
    "GatewayError",
    "GatewayErrorCode",
    # Collaborators
    "CacheEntry",
    "CacheStore",
    "NoCache",
    "MemoryCache",
    "ParquetCache",
    "DelayScheduler",
    "FixedDelayScheduler",
    "NoDelayScheduler",
    "RateLimitedFetchClient",
    "Holding",
    "HoldingsStore",
    "InMemoryHoldingsStore",
    "SymbolResolver",
    "SymbolResolution",
    # Models
    "FieldGroup",
    "ProviderRole",
    "Position",
    "RecommendationKey",
    "Ticker",
    "Snapshot",
    "RankingResult",
    "RateLimitState",
    "GatewayRequest",
    "GatewayResponse",
    # Engines
    "consensus_score",
    "recommendation_key",
    "rank_metric",
    "rank_peers",
    "valuation_score",
    "PEER_METRICS",
]


def create_gateway_from_env(holdings: HoldingsStore | None = None) -> SnapshotGateway:
    """Zero-config factory — reads API keys and tuning from env vars.

    A ``.env`` file in the working directory is loaded first.

    Environment variables:
        FINNHUB_API_KEY: Finnhub API key (required).
        ALPHA_VANTAGE_API_KEY: Alpha Vantage API key (descriptions skipped if unset).
        STOCKGATEWAY_CACHE: Cache backend — "parquet", "memory", "none" (default: "parquet").
        STOCKGATEWAY_CACHE_DIR: Cache directory (default: "data/cache").
        STOCKGATEWAY_INTER_CALL_DELAY: Seconds between calls (default: 0.25).
        STOCKGATEWAY_INTER_TICKER_DELAY: Seconds between tickers (default: 1.0).
        STOCKGATEWAY_LOG_LEVEL: Log level (default: "INFO").
    """
    load_dotenv(dotenv_path=Path.cwd() / ".env")
    configure_logging(os.getenv("STOCKGATEWAY_LOG_LEVEL", "INFO"))

    config = GatewayConfig(
        finnhub_api_key=os.getenv("FINNHUB_API_KEY"),
        alpha_vantage_api_key=os.getenv("ALPHA_VANTAGE_API_KEY"),
        cache_backend=CacheBackendType(os.getenv("STOCKGATEWAY_CACHE", "parquet")),
        cache_dir=os.getenv("STOCKGATEWAY_CACHE_DIR", "data/cache"),
        inter_call_delay=float(os.getenv("STOCKGATEWAY_INTER_CALL_DELAY", "0.25")),
        inter_ticker_delay=float(os.getenv("STOCKGATEWAY_INTER_TICKER_DELAY", "1.0")),
    )

    return SnapshotGateway(config, holdings=holdings)
