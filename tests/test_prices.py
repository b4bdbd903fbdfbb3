"""Tests for tradecore.market.prices: USDT price lookup and caching."""

import httpx
import pytest

from tradecore.errors import SourceFetchFailure
from tradecore.market.prices import PriceService
from tradecore.utils.cache import TTLCache

URL = "https://api.binance.com/api/v3/ticker/price"

TICKERS = [
    {"symbol": "BTCUSDT", "price": "43000.50"},
    {"symbol": "ETHUSDT", "price": "2300.10"},
    {"symbol": "ETHBTC", "price": "0.053"},
    {"symbol": "DEADUSDT", "price": "0.00000000"},
    {"symbol": "BADUSDT", "price": "n/a"},
]


# ── Helpers ──────────────────────────────────────────────────────────────


def _response(status: int, payload=None) -> httpx.Response:
    return httpx.Response(status, json=payload, request=httpx.Request("GET", URL))


@pytest.fixture
def no_sleep(monkeypatch):
    delays: list[float] = []

    async def _sleep(delay):
        delays.append(delay)

    monkeypatch.setattr("tradecore.market.prices.asyncio.sleep", _sleep)
    return delays


@pytest.fixture
def scripted_get(monkeypatch):
    """Replace ``httpx.AsyncClient.get`` with a scripted response queue."""
    script: list = []
    calls: list[str] = []

    async def _get(self, url, **kwargs):
        calls.append(url)
        outcome = script.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(httpx.AsyncClient, "get", _get)
    return script, calls


# ── Tests ────────────────────────────────────────────────────────────────


class TestPriceService:
    @pytest.mark.asyncio
    async def test_keeps_positive_usdt_pairs(self, scripted_get):
        script, _ = scripted_get
        script.append(_response(200, TICKERS))

        prices = await PriceService(TTLCache()).get_usdt_prices()

        assert prices == {"BTC": 43000.50, "ETH": 2300.10}

    @pytest.mark.asyncio
    async def test_second_lookup_served_from_cache(self, scripted_get):
        script, calls = scripted_get
        script.append(_response(200, TICKERS))
        service = PriceService(TTLCache())

        assert await service.get_usdt_price("BTC") == 43000.50
        assert await service.get_usdt_price("ETH") == 2300.10
        assert await service.get_usdt_price("DOGE") is None
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_retries_transient_status(self, scripted_get, no_sleep):
        script, calls = scripted_get
        script.extend([_response(503), _response(429), _response(200, TICKERS)])

        prices = await PriceService(TTLCache()).get_usdt_prices()

        assert prices["BTC"] == 43000.50
        assert len(calls) == 3
        assert no_sleep == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_retries_transport_error(self, scripted_get, no_sleep):
        script, _ = scripted_get
        script.extend([httpx.ConnectError("refused"), _response(200, TICKERS)])

        prices = await PriceService(TTLCache()).get_usdt_prices()

        assert prices["ETH"] == 2300.10
        assert no_sleep == [2.0]

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise(self, scripted_get, no_sleep):
        script, calls = scripted_get
        script.extend([_response(502), _response(502), _response(502)])

        with pytest.raises(SourceFetchFailure, match="unavailable"):
            await PriceService(TTLCache()).get_usdt_prices()
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, scripted_get, no_sleep):
        script, calls = scripted_get
        script.append(_response(403, {"msg": "forbidden"}))

        with pytest.raises(SourceFetchFailure, match="403"):
            await PriceService(TTLCache()).get_usdt_prices()
        assert len(calls) == 1
        assert no_sleep == []

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self, scripted_get, no_sleep):
        script, calls = scripted_get
        script.extend([_response(403), _response(200, TICKERS)])
        service = PriceService(TTLCache())

        with pytest.raises(SourceFetchFailure):
            await service.get_usdt_prices()
        assert (await service.get_usdt_prices())["BTC"] == 43000.50
        assert len(calls) == 2
