"""Tests for data models and provider payload records."""

import math

import pytest

from stockgateway.errors import GatewayError, GatewayErrorCode
from stockgateway.models.enums import FieldGroup, ProviderRole
from stockgateway.models.payloads import (
    AlphaVantageOverview,
    FinnhubInsiderMonth,
    FinnhubMetrics,
    FinnhubProfile,
    FinnhubQuote,
    FinnhubRecommendation,
    YahooChart,
    YahooSearchQuote,
    finnhub_peer_list,
)
from stockgateway.models.request import GatewayRequest, GatewayResponse, RateLimitState
from stockgateway.models.snapshot import (
    FundamentalMetrics,
    InsiderMonth,
    InsiderSentiment,
    PriceData,
    Snapshot,
    to_camel,
)
from stockgateway.models.ticker import Ticker


class TestTicker:
    def test_normalized(self):
        assert Ticker(" aapl ").symbol == "AAPL"

    @pytest.mark.parametrize("symbol", ["^GSPC", "EURUSD=X", "BRK-B", "0700.HK"])
    def test_accepted_symbols(self, symbol):
        assert Ticker(symbol).symbol == symbol

    @pytest.mark.parametrize("symbol", ["..", ".", "../X", "AAPL/..", "A B", "", "C:\\X", "\x00"])
    def test_rejects_symbols_that_are_not_tickers(self, symbol):
        with pytest.raises(GatewayError) as exc_info:
            Ticker(symbol)
        assert exc_info.value.code is GatewayErrorCode.BAD_REQUEST

    def test_domestic(self):
        t = Ticker("BRK-B")
        assert not t.is_foreign
        assert t.exchange_suffix is None
        assert t.base_symbol == "BRK-B"

    @pytest.mark.parametrize("symbol,suffix,base", [
        ("SAP.DE", "DE", "SAP"),
        ("LLOY.L", "L", "LLOY"),
        ("0700.HK", "HK", "0700"),
    ])
    def test_foreign(self, symbol, suffix, base):
        t = Ticker(symbol)
        assert t.is_foreign
        assert t.exchange_suffix == suffix
        assert t.base_symbol == base

    def test_variant_defaults_to_canonical(self):
        assert Ticker("SAP.DE").variant(ProviderRole.PRIMARY) == "SAP.DE"

    def test_variant_not_overwritten_unless_forced(self):
        t = Ticker("SAP.DE")
        assert t.with_variant(ProviderRole.PRIMARY, "sap") is True
        assert t.with_variant(ProviderRole.PRIMARY, "SAPY") is False
        assert t.variant(ProviderRole.PRIMARY) == "SAP"
        assert t.with_variant(ProviderRole.PRIMARY, "SAPY", force=True) is True
        assert t.variant(ProviderRole.PRIMARY) == "SAPY"

    def test_identity_ignores_variants(self):
        a = Ticker("SAP.DE")
        a.with_variant(ProviderRole.PRIMARY, "SAP")
        assert a == Ticker("sap.de")
        assert hash(a) == hash(Ticker("SAP.DE"))

    def test_frozen(self):
        t = Ticker("AAPL")
        with pytest.raises(AttributeError):
            t.symbol = "MSFT"  # type: ignore[misc]


class TestFieldGroup:
    def test_quote_not_cacheable(self):
        assert not FieldGroup.QUOTE.cacheable
        assert FieldGroup.QUOTE.default_ttl is None

    def test_ttls(self):
        assert FieldGroup.PEERS.default_ttl.days == 30
        assert FieldGroup.DESCRIPTION.default_ttl.days == 90
        assert FieldGroup.METRICS.default_ttl.total_seconds() == 24 * 3600


class TestGatewayRequest:
    def test_camel_case(self):
        req = GatewayRequest.from_dict({
            "ticker": " sap.de ",
            "stockName": "SAP",
            "providerSymbolHint": "SAP",
            "forceRefresh": True,
            "refreshTickers": ["sap.de", " ", "msft"],
            "portfolioId": "p1",
        })
        assert req.ticker == "SAP.DE"
        assert req.stock_name == "SAP"
        assert req.provider_symbol_hint == "SAP"
        assert req.force_refresh is True
        assert req.refresh_tickers == ("SAP.DE", "MSFT")
        assert req.portfolio_id == "p1"

    def test_snake_case_and_defaults(self):
        req = GatewayRequest.from_dict({"portfolio_id": "p2", "unknown": 1})
        assert req.ticker is None
        assert req.force_refresh is False
        assert req.refresh_tickers == ()
        assert req.portfolio_id == "p2"

    def test_blank_ticker_is_none(self):
        assert GatewayRequest.from_dict({"ticker": "  "}).ticker is None

    @pytest.mark.parametrize("body", [
        {"ticker": 5},
        {"forceRefresh": "yes"},
        {"refreshTickers": "AAPL"},
        {"refreshTickers": [1]},
        {"refreshTickers": [".."]},
        {"refreshTickers": ["AAPL", "../x"]},
        {"ticker": "../etc"},
        ["AAPL"],
    ])
    def test_invalid(self, body):
        with pytest.raises(GatewayError) as exc_info:
            GatewayRequest.from_dict(body)
        assert exc_info.value.code is GatewayErrorCode.BAD_REQUEST


class TestGatewayResponse:
    def test_rate_limited_only_when_flagged(self):
        state = RateLimitState()
        resp = GatewayResponse(data=[Snapshot(ticker="AAPL")], rate_limited=state)
        assert set(resp.to_dict()) == {"data", "errors"}

        state.mark(ProviderRole.TERTIARY)
        out = resp.to_dict()
        assert out["rateLimited"] == {"primary": False, "secondary": False, "tertiary": True}

    def test_rate_limit_state(self):
        state = RateLimitState()
        assert not state.any
        state.mark(ProviderRole.SECONDARY)
        assert state.is_limited(ProviderRole.SECONDARY)
        assert not state.is_limited(ProviderRole.PRIMARY)
        assert state.any


class TestSnapshot:
    def test_metric_lookup(self):
        snap = Snapshot(
            ticker="AAPL",
            price=PriceData(current=10.0),
            fundamentals=FundamentalMetrics(pe_ratio=12.0),
            consensus_score=1.2,
        )
        assert snap.metric("pe_ratio") == 12.0
        assert snap.metric("current") == 10.0
        assert snap.metric("consensus_score") == 1.2
        with pytest.raises(KeyError):
            snap.metric("nope")

    def test_to_dict_lists(self):
        out = Snapshot(ticker="AAPL", peers=("MSFT",)).to_dict()
        assert out["peers"] == ["MSFT"]
        assert out["earnings"] == []
        assert out["price"]["current"] is None

    def test_to_dict_keys_are_camel_case(self):
        snap = Snapshot(
            ticker="AAPL",
            stock_name="Apple",
            price=PriceData(fifty_two_week_high=199.6),
            fundamentals=FundamentalMetrics(pe_ratio=29.5, return_1y=12.0),
            insider_sentiment=InsiderSentiment(months=(InsiderMonth(2024, 1, mspr=-10.0),)),
        )
        out = snap.to_dict()
        assert out["stockName"] == "Apple"
        assert out["price"]["fiftyTwoWeekHigh"] == 199.6
        assert out["fundamentals"]["peRatio"] == 29.5
        assert out["fundamentals"]["return1y"] == 12.0
        assert out["insiderSentiment"]["months"] == [
            {"year": 2024, "month": 1, "change": None, "mspr": -10.0},
        ]
        assert not any("_" in key for key in out)

    def test_to_camel(self):
        assert to_camel("consensus_score") == "consensusScore"
        assert to_camel("ticker") == "ticker"


class TestFinnhubPayloads:
    def test_quote(self):
        q = FinnhubQuote.from_json({"c": 10, "d": "0.5", "dp": None, "pc": 9.5})
        assert q.current == 10.0
        assert q.change == 0.5
        assert q.change_percent is None
        assert q.previous_close == 9.5

    def test_quote_wrong_shape(self):
        with pytest.raises(GatewayError) as exc_info:
            FinnhubQuote.from_json(["c", 10])
        assert exc_info.value.code is GatewayErrorCode.MALFORMED_PAYLOAD

    def test_recommendation_list(self):
        rows = FinnhubRecommendation.from_json_list([
            {"period": "2024-06-01", "strongBuy": 5, "buy": "3", "hold": None},
        ])
        assert rows[0].strong_buy == 5
        assert rows[0].buy == 3
        assert rows[0].hold == 0

    def test_recommendation_entry_wrong_shape(self):
        with pytest.raises(GatewayError):
            FinnhubRecommendation.from_json_list(["oops"])

    def test_metrics_value_fallback(self):
        m = FinnhubMetrics.from_json({"metric": {"peBasicExclExtraTTM": None, "peTTM": 21.0, "x": math.nan}})
        assert m.value("peBasicExclExtraTTM", "peTTM") == 21.0
        assert m.value("x") is None

    def test_profile_blank_fields(self):
        p = FinnhubProfile.from_json({"name": "Apple Inc", "finnhubIndustry": " ", "marketCapitalization": 100})
        assert p.name == "Apple Inc"
        assert p.industry is None
        assert p.market_cap == 100.0

    def test_insider_sorted_oldest_first(self):
        rows = FinnhubInsiderMonth.from_json({"data": [
            {"year": 2024, "month": 3, "change": 1, "mspr": 1},
            {"year": 2023, "month": 12, "change": 2, "mspr": 2},
        ]})
        assert [(r.year, r.month) for r in rows] == [(2023, 12), (2024, 3)]

    def test_peer_list(self):
        assert finnhub_peer_list(["msft", "", 3, "GOOGL"]) == ["MSFT", "GOOGL"]
        with pytest.raises(GatewayError):
            finnhub_peer_list({"peers": []})


class TestYahooPayloads:
    def test_chart(self):
        chart = YahooChart.from_json({"chart": {"result": [{
            "meta": {"regularMarketPrice": 100.0, "previousClose": 98.0, "shortName": "Short"},
            "indicators": {"quote": [{"high": [1.0, None, 3.0], "low": [0.5, 0.7]}]},
        }]}})
        assert chart.regular_market_price == 100.0
        assert chart.previous_close == 98.0
        assert chart.display_name == "Short"
        assert chart.highs == (1.0, 3.0)

    def test_chart_no_result(self):
        assert YahooChart.from_json({"chart": {"result": None, "error": {"code": "Not Found"}}}) is None

    def test_search(self):
        quotes = YahooSearchQuote.from_json_list({"quotes": [
            {"symbol": "sap", "quoteType": "EQUITY", "exchange": "NYQ", "longname": "SAP SE"},
            {"quoteType": "EQUITY"},
            "junk",
        ]})
        assert len(quotes) == 1
        assert quotes[0].symbol == "SAP"
        assert quotes[0].long_name == "SAP SE"


class TestAlphaVantagePayloads:
    def test_overview(self):
        ov = AlphaVantageOverview.from_json({"Symbol": "AAPL", "Description": "Phones.", "Sector": "None"})
        assert ov.description == "Phones."
        assert ov.sector is None

    def test_empty_overview(self):
        assert AlphaVantageOverview.from_json({}) is None
