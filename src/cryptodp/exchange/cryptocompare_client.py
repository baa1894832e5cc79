"""CryptoCompare market data client (REST via httpx, streaming message parsing).

REST: ``/v2/histominute`` with ``limit=1`` returns the latest closed minute
bars. Volume is taken from ``volumeto`` (quote-currency volume).

Streaming: the v2 WebSocket delivers JSON messages tagged by ``TYPE``.
Type "5" is an aggregate trade; type "2" is a per-exchange ticker.
"""

from typing import Any

import httpx

from cryptodp.config import DataSourceSettings
from cryptodp.exceptions import MarketDataError
from cryptodp.exchange.client import MarketDataClient
from cryptodp.logging import get_logger
from cryptodp.models import PricePoint, Tick, TradeSide

logger = get_logger(__name__)

AGGREGATE_EXCHANGE = "CCCAGG"
TICKER_EXCHANGE = "Binance"

MESSAGE_TYPE_TICKER = "2"
MESSAGE_TYPE_TRADE = "5"


def subscription_channels(symbol: str, quote: str) -> list[str]:
    """Trade and ticker channel ids for one symbol."""
    return [
        f"{MESSAGE_TYPE_TRADE}~{AGGREGATE_EXCHANGE}~{symbol}~{quote}",
        f"{MESSAGE_TYPE_TICKER}~{TICKER_EXCHANGE}~{symbol}~{quote}",
    ]


def build_subscribe_message(symbol: str, quote: str, api_key: str = "") -> dict[str, Any]:
    """Build the SubAdd message sent after the socket opens."""
    message: dict[str, Any] = {
        "action": "SubAdd",
        "subs": subscription_channels(symbol, quote),
    }
    if api_key:
        message["api_key"] = api_key
    return message


def parse_trade_message(message: dict[str, Any]) -> Tick | None:
    """Convert a streaming trade message into a Tick.

    Returns None for any message that is not a trade. Trade timestamps
    arrive in seconds and are converted to milliseconds. Flag "1" marks a
    buy, anything else a sell.
    """
    if str(message.get("TYPE")) != MESSAGE_TYPE_TRADE:
        return None
    try:
        return Tick(
            symbol=message["FSYM"],
            price=float(message["P"]),
            volume=float(message.get("Q", 0.0)),
            side=TradeSide.BUY if str(message.get("F")) == "1" else TradeSide.SELL,
            timestamp=int(message["TS"]) * 1000,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise MarketDataError(f"malformed trade message: {e}") from e


class CryptoCompareClient(MarketDataClient):
    """Latest-minute OHLCV from the CryptoCompare REST API."""

    def __init__(
        self,
        settings: DataSourceSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._client = http_client
        self._owns_client = http_client is None

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.rest_url,
                timeout=self._settings.request_timeout,
            )
        logger.info("cryptocompare_client_ready", base_url=self._settings.rest_url)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch_latest_ohlcv(self, symbol: str) -> PricePoint | None:
        if self._client is None:
            raise RuntimeError("Client not connected. Call connect() first.")

        params: dict[str, str] = {
            "fsym": symbol,
            "tsym": self._settings.quote,
            "limit": "1",
            "aggregate": "1",
        }
        api_key = self._settings.api_key.get_secret_value()
        if api_key:
            params["api_key"] = api_key

        response = await self._client.get("/v2/histominute", params=params)
        response.raise_for_status()
        payload = response.json()

        if payload.get("Response") != "Success":
            raise MarketDataError(
                f"CryptoCompare error for {symbol}: {payload.get('Message', 'unknown')}"
            )

        bars = (payload.get("Data") or {}).get("Data") or []
        if not bars:
            return None

        latest = bars[-1]
        return PricePoint(
            symbol=symbol,
            timestamp=int(latest["time"]) * 1000,
            open=float(latest["open"]),
            high=float(latest["high"]),
            low=float(latest["low"]),
            close=float(latest["close"]),
            volume=float(latest["volumeto"]),
            exchange=AGGREGATE_EXCHANGE,
        )
