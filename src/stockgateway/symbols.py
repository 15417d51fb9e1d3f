"""Foreign ticker -> primary-provider symbol resolution.

The primary provider's free tier only covers US listings, so a ticker
like ``SAP.DE`` is mapped to its US-traded equivalent (``SAP``, an ADR
``...Y`` or an OTC ``...F`` line) before any primary-provider call.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

import structlog

from stockgateway.errors import GatewayError
from stockgateway.fetch import DelayScheduler, NoDelayScheduler
from stockgateway.models.enums import ProviderRole
from stockgateway.models.payloads import YahooChart, YahooSearchQuote
from stockgateway.models.request import RateLimitState
from stockgateway.models.ticker import Ticker
from stockgateway.providers.yahoo import YahooProvider

logger = structlog.get_logger(__name__)

# Yahoo exchange codes for US venues (NYSE, Nasdaq tiers, AMEX, Arca, OTC).
DOMESTIC_EXCHANGES = frozenset({
    "NYQ", "NYS", "NMS", "NGM", "NCM", "NAS", "ASE", "PCX", "BTS",
    "PNK", "OQB", "OQX", "OEM", "OBB", "OTC",
})

PATTERN_SUFFIXES = ("Y", "F")

_TRAILING_DIGITS = re.compile(r"\d+$")


@dataclass(frozen=True)
class SymbolResolution:
    """Resolved primary-provider symbol.

    ``chart`` is the secondary 1d chart fetched while resolving, if any,
    so the caller need not fetch it again.
    """

    symbol: str
    source: str  # domestic | hint | remembered | name_search | pattern | fallback
    chart: YahooChart | None = None


def is_domestic_listing(quote: YahooSearchQuote) -> bool:
    return (
        quote.quote_type == "EQUITY"
        and quote.exchange in DOMESTIC_EXCHANGES
        and "." not in quote.symbol
    )


def pattern_candidates(ticker: Ticker) -> list[str]:
    """``SAP.DE`` -> ``SAPY``, ``SAPF``; ``0700.HK`` has no letters left."""
    stem = _TRAILING_DIGITS.sub("", ticker.base_symbol)
    if not stem:
        return []
    return [stem + s for s in PATTERN_SUFFIXES]


class SymbolResolver:
    """Resolve canonical tickers to primary-provider symbols.

    Never raises: any lookup failure falls through to the next strategy
    and finally to the ticker itself. Successful resolutions are kept in
    ``mappings`` and reused until replaced with ``force=True``. Every
    secondary call is followed by ``scheduler.pause_call``.
    """

    def __init__(
        self,
        yahoo: YahooProvider | None,
        mappings: dict[str, str] | None = None,
        scheduler: DelayScheduler | None = None,
    ) -> None:
        self.yahoo = yahoo
        self.mappings: dict[str, str] = dict(mappings or {})
        self.scheduler = scheduler or NoDelayScheduler()
        self._logger = logger.bind(component="symbol_resolver")

    def resolve(
        self,
        ticker: Ticker | str,
        state: RateLimitState,
        hint: str | None = None,
        force: bool = False,
    ) -> SymbolResolution:
        if not isinstance(ticker, Ticker):
            ticker = Ticker(ticker)
        if not ticker.is_foreign:
            return SymbolResolution(ticker.symbol, "domestic")

        if hint and hint.strip():
            symbol = hint.strip().upper()
            self._remember(ticker, symbol, force=True)
            return SymbolResolution(symbol, "hint")

        known = self.mappings.get(ticker.symbol)
        if known and not force:
            return SymbolResolution(known, "remembered")

        chart = self._chart(ticker, state)
        strategies: tuple[tuple[str, Callable[[], str | None]], ...] = (
            ("name_search", lambda: self._by_company_name(chart, state)),
            ("pattern", lambda: self._by_pattern(ticker, state)),
        )
        for source, strategy in strategies:
            try:
                symbol = strategy()
            except GatewayError as exc:
                self._logger.info(
                    "symbol_strategy_failed",
                    ticker=ticker.symbol,
                    strategy=source,
                    error=exc.message,
                )
                symbol = None
            if symbol:
                self._remember(ticker, symbol, force=force)
                self._logger.info(
                    "symbol_resolved", ticker=ticker.symbol, symbol=symbol, source=source,
                )
                return SymbolResolution(symbol, source, chart)

        return SymbolResolution(ticker.symbol, "fallback", chart)

    def _remember(self, ticker: Ticker, symbol: str, force: bool) -> None:
        if force or ticker.symbol not in self.mappings:
            self.mappings[ticker.symbol] = symbol

    def _chart(self, ticker: Ticker, state: RateLimitState) -> YahooChart | None:
        """The ticker's 1d chart; its metadata carries the display name."""
        if self.yahoo is None:
            return None
        data = self.yahoo.chart(ticker.symbol, state)
        self.scheduler.pause_call(ProviderRole.SECONDARY)
        if data is None:
            return None
        try:
            return YahooChart.from_json(data)
        except GatewayError as exc:
            self._logger.info(
                "symbol_strategy_failed",
                ticker=ticker.symbol,
                strategy="name_search",
                error=exc.message,
            )
            return None

    def _search(self, query: str, state: RateLimitState) -> list[YahooSearchQuote]:
        if self.yahoo is None:
            return []
        data = self.yahoo.search(query, state)
        self.scheduler.pause_call(ProviderRole.SECONDARY)
        if data is None:
            return []
        return YahooSearchQuote.from_json_list(data)

    def _by_company_name(self, chart: YahooChart | None, state: RateLimitState) -> str | None:
        name = chart.display_name if chart is not None else None
        if not name:
            return None
        for quote in self._search(name, state):
            if is_domestic_listing(quote):
                return quote.symbol
        return None

    def _by_pattern(self, ticker: Ticker, state: RateLimitState) -> str | None:
        for candidate in pattern_candidates(ticker):
            for quote in self._search(candidate, state):
                if quote.symbol == candidate and is_domestic_listing(quote):
                    return candidate
        return None
