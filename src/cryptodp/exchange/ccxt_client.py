"""Exchange OHLCV client via ccxt async.

Alternative pull-side provider for deployments without a CryptoCompare
key. Symbols are tracked as bare base assets ("BTC") and mapped to the
exchange's unified market symbol ("BTC/USDT").
"""

import ccxt.async_support as ccxt_async

from cryptodp.config import DataSourceSettings
from cryptodp.exceptions import MarketDataError
from cryptodp.exchange.client import MarketDataClient
from cryptodp.logging import get_logger
from cryptodp.models import PricePoint

logger = get_logger(__name__)


class CcxtMarketDataClient(MarketDataClient):
    """Concrete OHLCV client using a ccxt exchange's public endpoints."""

    def __init__(self, settings: DataSourceSettings, exchange: object | None = None) -> None:
        self._settings = settings
        if exchange is None:
            exchange_cls = getattr(ccxt_async, settings.ccxt_exchange, None)
            if exchange_cls is None:
                raise ValueError(f"Unknown ccxt exchange: {settings.ccxt_exchange}")
            exchange = exchange_cls({"enableRateLimit": True})
        self._exchange = exchange

    def market_symbol(self, symbol: str) -> str:
        return f"{symbol}/{self._settings.ccxt_quote}"

    async def connect(self) -> None:
        logger.info("connecting_to_exchange", exchange=self._settings.ccxt_exchange)
        await self._exchange.load_markets()
        logger.info("exchange_connected", exchange=self._settings.ccxt_exchange)

    async def close(self) -> None:
        """Clean up ccxt async resources. Must be called to avoid session leaks."""
        await self._exchange.close()
        logger.info("exchange_connection_closed", exchange=self._settings.ccxt_exchange)

    async def fetch_latest_ohlcv(self, symbol: str) -> PricePoint | None:
        rows = await self._exchange.fetch_ohlcv(
            self.market_symbol(symbol),
            timeframe=self._settings.ccxt_timeframe,
            limit=1,
        )
        if not rows:
            return None

        row = rows[-1]
        if len(row) < 6 or any(v is None for v in row[:6]):
            raise MarketDataError(f"incomplete OHLCV row for {symbol}: {row}")

        return PricePoint(
            symbol=symbol,
            timestamp=int(row[0]),
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]),
            exchange=self._settings.ccxt_exchange,
        )
