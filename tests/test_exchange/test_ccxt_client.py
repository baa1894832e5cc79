"""Tests for the ccxt OHLCV client with a mocked exchange."""

from unittest.mock import AsyncMock

import pytest

from cryptodp.config import DataSourceSettings
from cryptodp.exceptions import MarketDataError
from cryptodp.exchange import create_market_data_client
from cryptodp.exchange.ccxt_client import CcxtMarketDataClient
from cryptodp.exchange.cryptocompare_client import CryptoCompareClient


@pytest.fixture
def mock_exchange() -> AsyncMock:
    exchange = AsyncMock()
    exchange.fetch_ohlcv = AsyncMock(
        return_value=[[1700000000000, 100.0, 101.0, 99.5, 100.5, 12.5]]
    )
    return exchange


class TestCcxtMarketDataClient:
    @pytest.mark.asyncio
    async def test_fetch_latest(self, mock_exchange) -> None:
        client = CcxtMarketDataClient(DataSourceSettings(rest_provider="ccxt"), exchange=mock_exchange)

        point = await client.fetch_latest_ohlcv("BTC")

        mock_exchange.fetch_ohlcv.assert_awaited_once_with("BTC/USDT", timeframe="1m", limit=1)
        assert point is not None
        assert point.symbol == "BTC"
        assert point.timestamp == 1700000000000
        assert point.close == 100.5
        assert point.volume == 12.5
        assert point.exchange == "binance"

    @pytest.mark.asyncio
    async def test_empty_is_none(self, mock_exchange) -> None:
        mock_exchange.fetch_ohlcv.return_value = []
        client = CcxtMarketDataClient(DataSourceSettings(), exchange=mock_exchange)

        assert await client.fetch_latest_ohlcv("ETH") is None

    @pytest.mark.asyncio
    async def test_incomplete_row_raises(self, mock_exchange) -> None:
        mock_exchange.fetch_ohlcv.return_value = [[1700000000000, 100.0, None, 99.0, 100.0, 1.0]]
        client = CcxtMarketDataClient(DataSourceSettings(), exchange=mock_exchange)

        with pytest.raises(MarketDataError):
            await client.fetch_latest_ohlcv("ETH")

    @pytest.mark.asyncio
    async def test_connect_and_close(self, mock_exchange) -> None:
        client = CcxtMarketDataClient(DataSourceSettings(), exchange=mock_exchange)

        await client.connect()
        await client.close()

        mock_exchange.load_markets.assert_awaited_once()
        mock_exchange.close.assert_awaited_once()

    def test_unknown_exchange(self) -> None:
        with pytest.raises(ValueError):
            CcxtMarketDataClient(DataSourceSettings(ccxt_exchange="no_such_exchange"))


class TestFactory:
    def test_default_is_cryptocompare(self) -> None:
        assert isinstance(create_market_data_client(DataSourceSettings()), CryptoCompareClient)

    @pytest.mark.asyncio
    async def test_ccxt_selected(self) -> None:
        client = create_market_data_client(DataSourceSettings(rest_provider="ccxt"))

        assert isinstance(client, CcxtMarketDataClient)
        await client.close()
