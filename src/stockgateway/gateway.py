"""SnapshotGateway — central orchestrator: resolve -> cache -> providers -> map."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Callable

import structlog

from stockgateway.cache import CacheStore, MemoryCache, NoCache, ParquetCache, is_empty_payload
from stockgateway.config import CacheBackendType, GatewayConfig
from stockgateway.errors import GatewayError, GatewayErrorCode
from stockgateway.fetch import DelayScheduler, FixedDelayScheduler, RateLimitedFetchClient
from stockgateway.holdings import HoldingsStore
from stockgateway.mapping import (
    fifty_two_week_range,
    map_earnings,
    map_fundamentals,
    map_insider,
    map_peers,
    price_from_chart,
    price_from_quote,
)
from stockgateway.models.enums import FieldGroup, ProviderRole
from stockgateway.models.payloads import (
    AlphaVantageOverview,
    FinnhubEarning,
    FinnhubInsiderMonth,
    FinnhubMetrics,
    FinnhubProfile,
    FinnhubQuote,
    FinnhubRecommendation,
    YahooChart,
    finnhub_peer_list,
)
from stockgateway.models.ranking import RankingResult
from stockgateway.models.request import GatewayRequest, GatewayResponse, RateLimitState
from stockgateway.models.snapshot import PriceData, Snapshot, to_camel
from stockgateway.models.ticker import Ticker
from stockgateway.providers import create_provider
from stockgateway.providers.alphavantage import AlphaVantageProvider
from stockgateway.providers.finnhub import FinnhubProvider
from stockgateway.providers.yahoo import YahooProvider
from stockgateway.ranking import PEER_METRICS, rank_peers, valuation_score
from stockgateway.scoring import consensus_score, latest_breakdown, recommendation_key
from stockgateway.symbols import SymbolResolver

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Source:
    """One named upstream source for a field group.

    ``fetch`` returns the raw JSON payload in the shape the group's parser
    expects, or None when the upstream had nothing. Sources that pace
    their own upstream calls set ``paced=False``.
    """

    name: str
    role: ProviderRole
    fetch: Callable[[], Any]
    paced: bool = True


@dataclass(frozen=True)
class PeerComparison:
    """A ticker ranked against its peers on every peer metric."""

    ticker: str
    snapshots: tuple[Snapshot, ...] = ()
    rankings: dict[str, dict[str, RankingResult]] = field(default_factory=dict)
    valuation_scores: dict[str, int] = field(default_factory=dict)
    errors: tuple[str, ...] = ()
    rate_limited: RateLimitState = field(default_factory=RateLimitState)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "ticker": self.ticker,
            "snapshots": [s.to_dict() for s in self.snapshots],
            "rankings": {
                to_camel(metric): {t: r.to_dict() for t, r in by_ticker.items()}
                for metric, by_ticker in self.rankings.items()
            },
            "valuationScores": dict(self.valuation_scores),
            "errors": list(self.errors),
        }
        if self.rate_limited.any:
            out["rateLimited"] = self.rate_limited.to_dict()
        return out


def months_before(day: date, months: int) -> date:
    """First day of the month ``months`` before ``day``'s month."""
    year, month = divmod(day.year * 12 + day.month - 1 - months, 12)
    return date(year, month + 1, 1)


def _non_empty(parsed: Any) -> Any | None:
    if parsed is None:
        return None
    if isinstance(parsed, (list, tuple)) and not parsed:
        return None
    return parsed


def _parse_metrics(data: Any) -> FinnhubMetrics | None:
    metrics = FinnhubMetrics.from_json(data)
    return metrics if metrics.metric else None


def _parse_profile(data: Any) -> FinnhubProfile | None:
    profile = FinnhubProfile.from_json(data)
    return profile if (profile.name or profile.industry) else None


def _parse_overview(data: Any) -> AlphaVantageOverview | None:
    overview = AlphaVantageOverview.from_json(data)
    return overview if overview is not None and overview.description else None


PARSERS: dict[FieldGroup, Callable[[Any], Any]] = {
    FieldGroup.RECOMMENDATION: lambda d: _non_empty(FinnhubRecommendation.from_json_list(d)),
    FieldGroup.EARNINGS: lambda d: _non_empty(FinnhubEarning.from_json_list(d)),
    FieldGroup.METRICS: _parse_metrics,
    FieldGroup.PEERS: lambda d: _non_empty(finnhub_peer_list(d)),
    FieldGroup.PROFILE: _parse_profile,
    FieldGroup.INSIDER: lambda d: _non_empty(FinnhubInsiderMonth.from_json(d)),
    FieldGroup.DESCRIPTION: _parse_overview,
}


class SnapshotGateway:
    """Central orchestrator: symbol resolution -> cache -> providers -> snapshot.

    Usage::

        from stockgateway import create_gateway_from_env
        gw = create_gateway_from_env()
        response = gw.handle(GatewayRequest(ticker="AAPL"))
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        holdings: HoldingsStore | None = None,
        client: RateLimitedFetchClient | None = None,
        cache: CacheStore | None = None,
        scheduler: DelayScheduler | None = None,
        finnhub: FinnhubProvider | None = None,
        yahoo: YahooProvider | None = None,
        alphavantage: AlphaVantageProvider | None = None,
        resolver: SymbolResolver | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.config = config or GatewayConfig()
        self.holdings = holdings
        self._today = today
        self._logger = logger.bind(component="gateway")

        self.client = client or RateLimitedFetchClient(
            max_attempts=self.config.max_attempts,
            backoff_base=self.config.backoff_base,
            network_retry_delay=self.config.network_retry_delay,
            timeout=self.config.request_timeout,
        )
        self.scheduler = scheduler or FixedDelayScheduler(
            self.config.inter_call_delay, self.config.inter_ticker_delay,
        )

        # Providers: primary is mandatory, tertiary only with a key
        self.finnhub = finnhub or create_provider(
            ProviderRole.PRIMARY, client=self.client, api_key=self.config.finnhub_api_key,
        )
        self.yahoo = yahoo or create_provider(
            ProviderRole.SECONDARY, client=self.client, user_agent=self.config.user_agent,
        )
        self.alphavantage = alphavantage
        if self.alphavantage is None and self.config.alpha_vantage_api_key:
            self.alphavantage = create_provider(
                ProviderRole.TERTIARY,
                client=self.client,
                api_key=self.config.alpha_vantage_api_key,
            )

        self.resolver = resolver or SymbolResolver(self.yahoo, scheduler=self.scheduler)
        self.cache = cache if cache is not None else self._build_cache()

    def _build_cache(self) -> CacheStore:
        backend = self.config.cache_backend
        ttls = self.config.ttl_overrides
        if backend is CacheBackendType.PARQUET:
            return ParquetCache(self.config.cache_dir, ttls=ttls)
        if backend is CacheBackendType.MEMORY:
            return MemoryCache(ttls=ttls)
        return NoCache()

    # ---------------------------------------------------------------- batch

    def handle(self, request: GatewayRequest) -> GatewayResponse:
        """Process one inbound request.

        Raises:
            GatewayError: BAD_REQUEST when there is nothing to process.
        """
        state = RateLimitState()
        targets = self._targets(request)

        refresh: set[str] = set()
        if request.force_refresh:
            refresh = set(request.refresh_tickers)
            if not refresh and request.ticker:
                refresh = {request.ticker}
            for t in sorted(refresh):
                self.invalidate(t)

        response = GatewayResponse(rate_limited=state)
        for idx, (ticker, stock_name, hint) in enumerate(targets):
            if idx:
                self.scheduler.pause_ticker()
            response.data.append(self._safe_snapshot(
                ticker, state, stock_name, hint, response.errors,
                force_resolve=ticker in refresh,
            ))

        if state.any:
            self._logger.warning("batch_rate_limited", **state.to_dict())
        return response

    def _targets(self, request: GatewayRequest) -> list[tuple[str, str | None, str | None]]:
        if request.ticker:
            hint = request.provider_symbol_hint or self._stored_hint(request.ticker)
            return [(request.ticker, request.stock_name, hint)]

        if self.holdings is None:
            raise GatewayError(
                "No ticker given and no holdings store configured",
                code=GatewayErrorCode.BAD_REQUEST,
            )

        seen: set[str] = set()
        out: list[tuple[str, str | None, str | None]] = []
        for h in self.holdings.list_holdings(request.portfolio_id):
            if h.ticker in seen:
                continue
            seen.add(h.ticker)
            hint = h.provider_symbol or self._stored_hint(h.ticker)
            out.append((h.ticker, h.stock_name, hint))
        return out

    # ------------------------------------------------------------- snapshot

    def fetch_snapshot(
        self,
        ticker: str,
        state: RateLimitState,
        stock_name: str | None = None,
        hint: str | None = None,
        force_refresh: bool = False,
    ) -> Snapshot:
        """Build the snapshot for one ticker.

        With ``force_refresh`` every cached entry for the ticker is dropped
        and the provider symbol is resolved again.
        """
        t = Ticker(ticker)
        if force_refresh:
            self.invalidate(t.symbol)
        return self._build_snapshot(t, state, stock_name, hint, force_resolve=force_refresh)

    def _build_snapshot(
        self,
        ticker: Ticker,
        state: RateLimitState,
        stock_name: str | None,
        hint: str | None,
        force_resolve: bool = False,
    ) -> Snapshot:
        resolution = self.resolver.resolve(ticker, state, hint=hint, force=force_resolve)
        ticker.with_variant(ProviderRole.PRIMARY, resolution.symbol, force=True)
        symbol = ticker.variant(ProviderRole.PRIMARY)
        log = self._logger.bind(ticker=ticker.symbol, provider_symbol=symbol)
        log.debug("snapshot_start", resolution=resolution.source)

        # Secondary charts fetched for this snapshot, by range.
        charts: dict[str, YahooChart | None] = {}
        if resolution.chart is not None:
            charts["1d"] = resolution.chart

        price = self._price(ticker, symbol, state, charts)

        trends = self._field_group(ticker, FieldGroup.RECOMMENDATION, state, [
            Source("finnhub.recommendation", ProviderRole.PRIMARY,
                   lambda: self.finnhub.recommendation(symbol, state)),
        ])
        earnings = self._field_group(ticker, FieldGroup.EARNINGS, state, [
            Source("finnhub.earnings", ProviderRole.PRIMARY,
                   lambda: self.finnhub.earnings(symbol, state, self.config.earnings_limit)),
        ])
        metrics = self._field_group(ticker, FieldGroup.METRICS, state, [
            Source("finnhub.metrics", ProviderRole.PRIMARY,
                   lambda: self.finnhub.metrics(symbol, state)),
        ])
        peers = self._field_group(ticker, FieldGroup.PEERS, state, [
            Source("finnhub.peers", ProviderRole.PRIMARY,
                   lambda: self.finnhub.peers(symbol, state)),
        ])
        profile = self._field_group(ticker, FieldGroup.PROFILE, state, [
            Source("finnhub.profile", ProviderRole.PRIMARY,
                   lambda: self.finnhub.profile(symbol, state)),
            Source("yahoo.chart_name", ProviderRole.SECONDARY,
                   lambda: self._yahoo_profile(ticker, state, charts), paced=False),
        ])
        today = self._today()
        insider = self._field_group(ticker, FieldGroup.INSIDER, state, [
            Source("finnhub.insider_sentiment", ProviderRole.PRIMARY,
                   lambda: self.finnhub.insider_sentiment(
                       symbol, state, months_before(today, self.config.insider_months), today,
                   )),
        ])

        description = None
        if not ticker.is_foreign and self.alphavantage is not None:
            overview = self._field_group(ticker, FieldGroup.DESCRIPTION, state, [
                Source("alphavantage.overview", ProviderRole.TERTIARY,
                       lambda: self.alphavantage.overview(ticker.symbol, state)),
            ])
            description = overview.description if overview is not None else None

        price = self._with_52_week_range(ticker, price, metrics, state, charts)

        breakdown = latest_breakdown(trends or [])
        key = recommendation_key(breakdown) if breakdown is not None else None
        return Snapshot(
            ticker=ticker.symbol,
            stock_name=stock_name,
            provider_symbol=symbol,
            company_name=profile.name if profile is not None else None,
            price=price,
            recommendation=breakdown,
            consensus_score=consensus_score(breakdown) if breakdown is not None else None,
            recommendation_key=key.value if key is not None else None,
            number_of_analysts=breakdown.total if breakdown is not None else None,
            earnings=map_earnings(earnings or [], self.config.earnings_limit),
            fundamentals=map_fundamentals(metrics),
            insider_sentiment=map_insider(insider or []),
            peers=map_peers(
                peers or [], exclude=(ticker.symbol, symbol), limit=self.config.peer_limit,
            ),
            industry=profile.industry if profile is not None else None,
            description=description,
        )

    # ---------------------------------------------------------------- price

    def _price(
        self,
        ticker: Ticker,
        symbol: str,
        state: RateLimitState,
        charts: dict[str, YahooChart | None],
    ) -> PriceData:
        """Primary quote for domestic tickers, secondary chart otherwise."""
        price = PriceData()
        if not ticker.is_foreign:
            price = price_from_quote(self._parse_live(
                FinnhubQuote.from_json, self.finnhub.quote(symbol, state), ticker, "quote",
            ))
        if not price.current:
            price = price_from_chart(self._chart(ticker, state, "1d", charts))
        return price

    def _with_52_week_range(
        self,
        ticker: Ticker,
        price: PriceData,
        metrics: FinnhubMetrics | None,
        state: RateLimitState,
        charts: dict[str, YahooChart | None],
    ) -> PriceData:
        high = low = None
        if metrics is not None and not ticker.is_foreign:
            high = metrics.value("52WeekHigh")
            low = metrics.value("52WeekLow")
        if high is None or low is None:
            series_high, series_low = fifty_two_week_range(self._chart(ticker, state, "1y", charts))
            high = high if high is not None else series_high
            low = low if low is not None else series_low
        return replace(price, fifty_two_week_high=high, fifty_two_week_low=low)

    def _chart(
        self,
        ticker: Ticker,
        state: RateLimitState,
        range_: str,
        charts: dict[str, YahooChart | None],
    ) -> YahooChart | None:
        """Parsed secondary chart, fetched at most once per range and snapshot."""
        if range_ not in charts:
            charts[range_] = self._parse_live(
                YahooChart.from_json, self.yahoo.chart(ticker.symbol, state, range_), ticker, "chart",
            )
            self.scheduler.pause_call(ProviderRole.SECONDARY)
        return charts[range_]

    def _yahoo_profile(
        self, ticker: Ticker, state: RateLimitState, charts: dict[str, YahooChart | None],
    ) -> dict[str, Any] | None:
        """Profile-shaped payload carrying only the secondary display name."""
        chart = self._chart(ticker, state, "1d", charts)
        name = chart.display_name if chart is not None else None
        return {"name": name, "ticker": ticker.symbol} if name else None

    def _parse_live(
        self, parser: Callable[[Any], Any], data: Any, ticker: Ticker, what: str,
    ) -> Any | None:
        if data is None:
            return None
        try:
            return parser(data)
        except GatewayError as exc:
            self._logger.warning(
                "payload_malformed", ticker=ticker.symbol, payload=what, error=exc.message,
            )
            return None

    # --------------------------------------------------------- field groups

    def _field_group(
        self,
        ticker: Ticker,
        group: FieldGroup,
        state: RateLimitState,
        sources: list[Source],
    ) -> Any | None:
        """Cached payload or the first source with a usable one.

        Returns the parsed record, or None when every source came up empty.
        A malformed payload is treated like an empty one.
        """
        parser = PARSERS[group]
        log = self._logger.bind(ticker=ticker.symbol, field_group=group.value)

        cached = self.cache.get(ticker.symbol, group)
        if cached is not None:
            try:
                parsed = parser(cached)
            except GatewayError as exc:
                log.warning("cache_payload_malformed", error=exc.message)
                parsed = None
            if parsed is not None:
                log.debug("cache_hit")
                return parsed

        for source in sources:
            try:
                payload = source.fetch()
            except GatewayError as exc:
                log.warning("payload_malformed", source=source.name, error=exc.message)
                payload = None
            if source.paced:
                self.scheduler.pause_call(source.role)
            if is_empty_payload(payload):
                continue
            try:
                parsed = parser(payload)
            except GatewayError as exc:
                log.warning("payload_malformed", source=source.name, error=exc.message)
                continue
            if parsed is None:
                continue
            self._store(ticker, group, payload)
            log.debug("fetched", source=source.name)
            return parsed
        return None

    def _store(self, ticker: Ticker, group: FieldGroup, payload: Any) -> None:
        try:
            self.cache.put(ticker.symbol, group, payload)
        except GatewayError as exc:
            self._logger.warning(
                "cache_write_failed",
                ticker=ticker.symbol,
                field_group=group.value,
                error=exc.message,
            )

    # ----------------------------------------------------------------- peers

    def compare_peers(
        self,
        ticker: str,
        peers: list[str] | None = None,
        stock_name: str | None = None,
    ) -> PeerComparison:
        """Snapshot ``ticker`` and its peers, then rank them per metric.

        When ``peers`` is not given, the main snapshot's peer list is used.
        """
        state = RateLimitState()
        main_ticker = Ticker(ticker).symbol
        errors: list[str] = []

        main = self._safe_snapshot(
            main_ticker, state, stock_name, self._stored_hint(main_ticker), errors,
        )
        peer_list = [p.strip().upper() for p in peers] if peers is not None else list(main.peers)
        peer_list = [p for p in dict.fromkeys(peer_list) if p and p != main_ticker]
        peer_list = peer_list[: self.config.peer_limit]

        snapshots = [main]
        for p in peer_list:
            self.scheduler.pause_ticker()
            snapshots.append(self._safe_snapshot(p, state, None, self._stored_hint(p), errors))

        return PeerComparison(
            ticker=main_ticker,
            snapshots=tuple(snapshots),
            rankings=rank_peers(snapshots, PEER_METRICS),
            valuation_scores={
                s.ticker: valuation_score(s.fundamentals.pe_ratio, s.fundamentals.ev_ebitda)
                for s in snapshots
            },
            errors=tuple(errors),
            rate_limited=state,
        )

    def _stored_hint(self, ticker: str) -> str | None:
        if self.holdings is None:
            return None
        return self.holdings.provider_symbol_hint(ticker)

    def _safe_snapshot(
        self,
        ticker: str,
        state: RateLimitState,
        stock_name: str | None,
        hint: str | None,
        errors: list[str],
        force_resolve: bool = False,
    ) -> Snapshot:
        """Per-ticker error boundary: failures become ``"<ticker>: <msg>"``."""
        try:
            return self._build_snapshot(
                Ticker(ticker), state, stock_name, hint, force_resolve=force_resolve,
            )
        except Exception as exc:
            self._logger.exception("snapshot_failed", ticker=ticker)
            message = exc.message if isinstance(exc, GatewayError) else str(exc)
            errors.append(f"{ticker}: {message}")
            return Snapshot(ticker=ticker, stock_name=stock_name, error=message)

    # ----------------------------------------------------------------- cache

    def invalidate(self, ticker: str) -> int:
        """Drop every cached entry for ``ticker``.

        Raises:
            GatewayError: BAD_REQUEST for an invalid ticker.
        """
        symbol = Ticker(ticker).symbol
        removed = self.cache.invalidate(symbol)
        self._logger.info("cache_invalidated", ticker=symbol, removed=removed)
        return removed

    def purge_expired(self) -> int:
        return self.cache.purge_expired()

    def clear_all_cache(self) -> None:
        self.cache.clear_all()
