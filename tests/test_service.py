"""Tests for the JSON request entry point and the env factory."""

import json

import pytest

from conftest import FakeResponse, aapl_routes
from stockgateway import create_gateway_from_env
from stockgateway.cache import MemoryCache, NoCache, ParquetCache
from stockgateway.errors import GatewayError, GatewayErrorCode
from stockgateway.holdings import Holding, InMemoryHoldingsStore
from stockgateway.service import handle_request


class TestHandleRequest:
    def test_dict_body(self, make_gateway):
        gw = make_gateway(aapl_routes())
        out = handle_request(gw, {"ticker": "aapl", "stockName": "Apple"})
        assert out["errors"] == []
        assert out["data"][0]["ticker"] == "AAPL"
        assert out["data"][0]["stockName"] == "Apple"
        assert out["data"][0]["consensusScore"] == 1.3
        assert out["data"][0]["recommendationKey"] == "strong_buy"
        json.dumps(out)

    def test_str_and_bytes_body(self, make_gateway):
        gw = make_gateway(aapl_routes())
        body = json.dumps({"ticker": "AAPL"})
        assert handle_request(gw, body)["data"][0]["ticker"] == "AAPL"
        assert handle_request(gw, body.encode())["data"][0]["ticker"] == "AAPL"

    def test_rate_limited_flag(self, make_gateway):
        gw = make_gateway({**aapl_routes(), "function=OVERVIEW&symbol=AAPL": FakeResponse({"Note": "slow down"})})
        out = handle_request(gw, {"ticker": "AAPL"})
        assert out["rateLimited"] == {"primary": False, "secondary": False, "tertiary": True}
        assert out["data"][0]["description"] is None

    @pytest.mark.parametrize("body", ["{not json", b"\xff\xfe", '["AAPL"]', {"forceRefresh": 1}])
    def test_malformed_request(self, make_gateway, body):
        gw = make_gateway(aapl_routes())
        out = handle_request(gw, body)
        assert set(out) == {"error"}

    def test_refresh_tickers_cannot_leave_cache_dir(self, make_gateway, tmp_path, clock):
        keep = tmp_path / "precious" / "keep.txt"
        keep.parent.mkdir()
        keep.write_text("x")
        gw = make_gateway(aapl_routes(), cache=ParquetCache(tmp_path / "cache", clock=clock))
        out = handle_request(gw, {"ticker": "AAPL", "forceRefresh": True, "refreshTickers": [".."]})
        assert set(out) == {"error"}
        assert keep.exists()
        assert (tmp_path / "cache").is_dir()

    def test_empty_body_without_holdings(self, make_gateway):
        gw = make_gateway(aapl_routes())
        assert "error" in handle_request(gw, None)
        assert "error" in handle_request(gw, "")

    def test_empty_body_with_holdings(self, make_gateway):
        gw = make_gateway(aapl_routes(), holdings=InMemoryHoldingsStore([Holding("AAPL")]))
        out = handle_request(gw, "")
        assert [d["ticker"] for d in out["data"]] == ["AAPL"]

    def test_other_gateway_errors_propagate(self, make_gateway, monkeypatch):
        gw = make_gateway(aapl_routes())

        def broken(request):
            raise GatewayError("disk gone", code=GatewayErrorCode.CACHE_ERROR)

        monkeypatch.setattr(gw, "handle", broken)
        with pytest.raises(GatewayError):
            handle_request(gw, {"ticker": "AAPL"})


class TestCreateGatewayFromEnv:
    @pytest.fixture(autouse=True)
    def _env(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        for name in (
            "ALPHA_VANTAGE_API_KEY",
            "STOCKGATEWAY_CACHE",
            "STOCKGATEWAY_CACHE_DIR",
            "STOCKGATEWAY_INTER_CALL_DELAY",
            "STOCKGATEWAY_INTER_TICKER_DELAY",
            "STOCKGATEWAY_LOG_LEVEL",
        ):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("FINNHUB_API_KEY", "fh-env")

    def test_defaults(self, tmp_path):
        gw = create_gateway_from_env()
        assert gw.finnhub.api_key == "fh-env"
        assert gw.alphavantage is None
        assert isinstance(gw.cache, ParquetCache)
        assert gw.config.inter_call_delay == 0.25
        assert gw.config.inter_ticker_delay == 1.0

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("STOCKGATEWAY_CACHE", "memory")
        monkeypatch.setenv("STOCKGATEWAY_INTER_CALL_DELAY", "0")
        monkeypatch.setenv("ALPHA_VANTAGE_API_KEY", "av-env")
        gw = create_gateway_from_env()
        assert isinstance(gw.cache, MemoryCache)
        assert gw.config.inter_call_delay == 0.0
        assert gw.alphavantage.api_key == "av-env"

    def test_no_cache(self, monkeypatch):
        monkeypatch.setenv("STOCKGATEWAY_CACHE", "none")
        assert isinstance(create_gateway_from_env().cache, NoCache)

    def test_dotenv_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv("FINNHUB_API_KEY")
        (tmp_path / ".env").write_text("FINNHUB_API_KEY=fh-dotenv\n")
        gw = create_gateway_from_env()
        assert gw.finnhub.api_key == "fh-dotenv"
