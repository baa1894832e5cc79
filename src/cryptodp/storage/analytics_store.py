"""Columnar analytics store on ClickHouse, reached over its HTTP interface.

Rows are sent as ``INSERT ... FORMAT JSONEachRow`` with one JSON object per
line. Tables (``ohlcv_historical``, ``market_analysis_historical``,
``trading_signals_archive``) are provisioned out of band, together with the
aggregating views (``ohlcv_daily``, ``agent_performance_summary``,
``symbol_volatility``) the read methods query.
"""

import json
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

import httpx

from cryptodp.config import AnalyticsStoreSettings
from cryptodp.logging import get_logger
from cryptodp.models import Analysis, PricePoint, Signal
from cryptodp.storage.sink import RecordSink

logger = get_logger(__name__)

OHLCV_TABLE = "ohlcv_historical"
ANALYSIS_TABLE = "market_analysis_historical"
SIGNALS_TABLE = "trading_signals_archive"

DAILY_OHLCV_VIEW = "ohlcv_daily"
AGENT_PERFORMANCE_VIEW = "agent_performance_summary"
VOLATILITY_VIEW = "symbol_volatility"


def format_timestamp(ms: int) -> str:
    """Unix ms -> ``YYYY-MM-DD HH:MM:SS.fff`` (UTC), the DateTime64(3) text form."""
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%d %H:%M:%S.") + f"{ms % 1000:03d}"


class AnalyticsStore(RecordSink):
    """ClickHouse HTTP sink for long-horizon analytics."""

    name = "analytics_store"

    def __init__(
        self,
        settings: AnalyticsStoreSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._client = http_client
        self._owns_client = http_client is None

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.url,
                timeout=self._settings.timeout,
                headers={
                    "X-ClickHouse-User": self._settings.username,
                    "X-ClickHouse-Key": self._settings.password.get_secret_value(),
                    "X-ClickHouse-Database": self._settings.database,
                },
            )
        logger.info(
            "analytics_store_connected",
            url=self._settings.url,
            database=self._settings.database,
        )

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
            logger.info("analytics_store_closed")

    async def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            response = await self._client.get("/ping")
        except httpx.HTTPError:
            return False
        return response.status_code == 200

    async def _insert(self, table: str, rows: list[dict[str, Any]]) -> None:
        if self._client is None:
            raise RuntimeError("Analytics store not connected. Call connect() first.")
        body = "\n".join(json.dumps(row, separators=(",", ":")) for row in rows)
        response = await self._client.post(
            "/",
            params={"query": f"INSERT INTO {self._settings.database}.{table} FORMAT JSONEachRow"},
            content=body.encode(),
        )
        response.raise_for_status()
        logger.debug("analytics_rows_inserted", table=table, rows=len(rows))

    async def insert_ohlcv(self, point: PricePoint) -> None:
        await self._insert(
            OHLCV_TABLE,
            [
                {
                    "timestamp": format_timestamp(point.timestamp),
                    "symbol": point.symbol,
                    "exchange": point.exchange or "unknown",
                    "open": point.open,
                    "high": point.high,
                    "low": point.low,
                    "close": point.close,
                    "volume": point.volume,
                }
            ],
        )

    async def insert_analysis(self, analysis: Analysis) -> None:
        await self._insert(
            ANALYSIS_TABLE,
            [
                {
                    "timestamp": format_timestamp(analysis.timestamp),
                    "symbol": analysis.symbol,
                    "agent_id": analysis.agent_id,
                    "trend": analysis.trend.value,
                    "pattern": analysis.pattern or "",
                    "indicators": json.dumps([asdict(i) for i in analysis.indicators]),
                    "ai_analysis": analysis.narrative,
                    "signal_strength": 0,
                    "confidence": 0,
                }
            ],
        )

    async def insert_signal(self, signal: Signal) -> None:
        await self._insert(
            SIGNALS_TABLE,
            [
                {
                    "timestamp": format_timestamp(signal.timestamp),
                    "agent_id": signal.agent_id,
                    "symbol": signal.symbol,
                    "signal_type": signal.action.value,
                    "strength": signal.strength,
                    "confidence": signal.confidence,
                    "reasoning": signal.reasoning,
                    "metadata": json.dumps(signal.metadata, default=str),
                    "price_at_signal": float(signal.metadata.get("price_at_signal", 0.0)),
                }
            ],
        )

    # ──────────────────────────────────────────────
    # Read methods (aggregating views over the historical tables)
    # ──────────────────────────────────────────────

    async def _select(self, query: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        """Run a parameterised SELECT; ``{name:Type}`` placeholders bind ``param_<name>``."""
        if self._client is None:
            raise RuntimeError("Analytics store not connected. Call connect() first.")
        response = await self._client.post(
            "/",
            params={f"param_{name}": value for name, value in params.items()},
            content=f"{query} FORMAT JSONEachRow".encode(),
        )
        response.raise_for_status()
        return [json.loads(line) for line in response.text.splitlines() if line.strip()]

    async def get_symbol_volatility(self, symbol: str, hours: int = 24) -> list[dict[str, Any]]:
        """Hourly price volatility for ``symbol``, newest hour first."""
        return await self._select(
            "SELECT hour, symbol, avg_price, price_volatility, period_high, period_low, "
            "total_volume, volatility_ratio "
            f"FROM {self._settings.database}.{VOLATILITY_VIEW} "
            "WHERE symbol = {symbol:String} AND hour >= now() - INTERVAL {hours:UInt32} HOUR "
            "ORDER BY hour DESC",
            {"symbol": symbol, "hours": hours},
        )

    async def get_agent_performance(self, agent_id: str, hours: int = 24) -> list[dict[str, Any]]:
        """Hourly accuracy and signal counts for one agent, newest hour first."""
        return await self._select(
            "SELECT hour, agent_id, avg_accuracy, avg_response_time_ms, total_signals, "
            "correct_predictions, success_rate "
            f"FROM {self._settings.database}.{AGENT_PERFORMANCE_VIEW} "
            "WHERE agent_id = {agent_id:String} AND hour >= now() - INTERVAL {hours:UInt32} HOUR "
            "ORDER BY hour DESC",
            {"agent_id": agent_id, "hours": hours},
        )

    async def get_daily_ohlcv(self, symbol: str, days: int = 30) -> list[dict[str, Any]]:
        """Daily bars rolled up from ``ohlcv_historical``, newest day first."""
        return await self._select(
            "SELECT day, symbol, exchange, open, high, low, close, volume, tick_count "
            f"FROM {self._settings.database}.{DAILY_OHLCV_VIEW} "
            "WHERE symbol = {symbol:String} AND day >= today() - {days:UInt32} "
            "ORDER BY day DESC",
            {"symbol": symbol, "days": days},
        )
