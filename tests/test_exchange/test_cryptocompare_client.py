"""Tests for CryptoCompare message parsing and the REST OHLCV client.

HTTP is served by httpx.MockTransport; no real API calls.
"""

import httpx
import pytest

from cryptodp.config import DataSourceSettings
from cryptodp.exceptions import MarketDataError
from cryptodp.exchange.cryptocompare_client import (
    CryptoCompareClient,
    build_subscribe_message,
    parse_trade_message,
    subscription_channels,
)
from cryptodp.models import TradeSide

HISTOMINUTE_OK = {
    "Response": "Success",
    "Data": {
        "Data": [
            {"time": 1700000000, "open": 100.0, "high": 102.0, "low": 99.0, "close": 101.0,
             "volumefrom": 12.0, "volumeto": 1210.0},
            {"time": 1700000060, "open": 101.0, "high": 103.5, "low": 100.5, "close": 103.0,
             "volumefrom": 10.0, "volumeto": 1025.5},
        ]
    },
}


def _client(handler) -> CryptoCompareClient:
    settings = DataSourceSettings(api_key="k")  # type: ignore[arg-type]
    http = httpx.AsyncClient(
        base_url=settings.rest_url, transport=httpx.MockTransport(handler)
    )
    return CryptoCompareClient(settings, http_client=http)


class TestSubscription:
    def test_channels(self) -> None:
        assert subscription_channels("BTC", "USD") == ["5~CCCAGG~BTC~USD", "2~Binance~BTC~USD"]

    def test_subscribe_message(self) -> None:
        message = build_subscribe_message("ETH", "USD", api_key="secret")

        assert message["action"] == "SubAdd"
        assert message["subs"] == ["5~CCCAGG~ETH~USD", "2~Binance~ETH~USD"]
        assert message["api_key"] == "secret"

    def test_subscribe_message_without_key(self) -> None:
        assert "api_key" not in build_subscribe_message("ETH", "USD")


class TestParseTradeMessage:
    def test_buy_trade(self) -> None:
        tick = parse_trade_message(
            {"TYPE": "5", "FSYM": "BTC", "P": 43000.5, "Q": 0.25, "TS": 1700000000, "F": "1"}
        )

        assert tick is not None
        assert tick.symbol == "BTC"
        assert tick.price == 43000.5
        assert tick.volume == 0.25
        assert tick.side == TradeSide.BUY
        assert tick.timestamp == 1700000000 * 1000

    def test_other_flag_is_sell(self) -> None:
        tick = parse_trade_message({"TYPE": "5", "FSYM": "ETH", "P": 1, "Q": 1, "TS": 1, "F": "2"})

        assert tick is not None
        assert tick.side == TradeSide.SELL

    def test_non_trade_is_none(self) -> None:
        assert parse_trade_message({"TYPE": "2", "FROMSYMBOL": "BTC", "PRICE": 1}) is None
        assert parse_trade_message({"TYPE": "20", "MESSAGE": "STREAMERWELCOME"}) is None

    def test_malformed_trade_raises(self) -> None:
        with pytest.raises(MarketDataError):
            parse_trade_message({"TYPE": "5", "FSYM": "BTC", "P": "not-a-number", "TS": 1})
        with pytest.raises(MarketDataError):
            parse_trade_message({"TYPE": "5", "P": 1.0, "TS": 1})


class TestFetchLatestOhlcv:
    @pytest.mark.asyncio
    async def test_latest_bar(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=HISTOMINUTE_OK)

        client = _client(handler)
        await client.connect()

        point = await client.fetch_latest_ohlcv("BTC")

        assert point is not None
        assert point.symbol == "BTC"
        assert point.timestamp == 1700000060 * 1000
        assert point.close == 103.0
        assert point.volume == 1025.5  # quote-currency volume
        assert point.exchange == "CCCAGG"

        request = seen[0]
        assert request.url.path.endswith("/v2/histominute")
        assert request.url.params["fsym"] == "BTC"
        assert request.url.params["tsym"] == "USD"
        assert request.url.params["limit"] == "1"
        assert request.url.params["api_key"] == "k"

    @pytest.mark.asyncio
    async def test_empty_data_is_none(self) -> None:
        client = _client(lambda r: httpx.Response(200, json={"Response": "Success", "Data": {"Data": []}}))
        await client.connect()

        assert await client.fetch_latest_ohlcv("BTC") is None

    @pytest.mark.asyncio
    async def test_api_error_raises(self) -> None:
        client = _client(
            lambda r: httpx.Response(200, json={"Response": "Error", "Message": "rate limit"})
        )
        await client.connect()

        with pytest.raises(MarketDataError, match="rate limit"):
            await client.fetch_latest_ohlcv("BTC")

    @pytest.mark.asyncio
    async def test_http_error_raises(self) -> None:
        client = _client(lambda r: httpx.Response(500))
        await client.connect()

        with pytest.raises(httpx.HTTPStatusError):
            await client.fetch_latest_ohlcv("BTC")

    @pytest.mark.asyncio
    async def test_requires_connect(self) -> None:
        client = CryptoCompareClient(DataSourceSettings())

        with pytest.raises(RuntimeError):
            await client.fetch_latest_ohlcv("BTC")
