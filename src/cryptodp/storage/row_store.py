"""Async SQLite row store for recent market data, analyses and signals.

Uses aiosqlite with WAL mode for concurrent read/write performance. This
is the point-lookup / time-window sink: the agent and dashboards read the
latest bars and recent signals from here.

OHLCV rows are unique per (time, symbol, exchange); re-ingesting the same
bar overwrites its values.
"""

import json
import os
from dataclasses import asdict
from typing import Self

import aiosqlite

from cryptodp.logging import get_logger
from cryptodp.models import Analysis, PricePoint, Signal, SignalAction, now_ms
from cryptodp.storage.sink import RecordSink

logger = get_logger(__name__)

SCHEMA_VERSION = 1

_HOUR_MS = 60 * 60 * 1000

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS ohlcv (
    time_ms INTEGER NOT NULL,
    symbol TEXT NOT NULL,
    exchange TEXT NOT NULL,
    open REAL NOT NULL,
    high REAL NOT NULL,
    low REAL NOT NULL,
    close REAL NOT NULL,
    volume REAL NOT NULL,
    PRIMARY KEY (time_ms, symbol, exchange)
);

CREATE TABLE IF NOT EXISTS signals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    time_ms INTEGER NOT NULL,
    agent_id TEXT NOT NULL,
    signal_type TEXT NOT NULL CHECK (signal_type IN ('buy', 'sell', 'hold', 'alert')),
    symbol TEXT NOT NULL,
    strength REAL NOT NULL CHECK (strength >= 0 AND strength <= 1),
    confidence REAL NOT NULL CHECK (confidence >= 0 AND confidence <= 1),
    reasoning TEXT,
    metadata TEXT
);

CREATE TABLE IF NOT EXISTS market_analysis (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    time_ms INTEGER NOT NULL,
    symbol TEXT NOT NULL,
    agent_id TEXT NOT NULL,
    trend TEXT CHECK (trend IN ('up', 'down', 'sideways')),
    pattern TEXT,
    indicators TEXT,
    ai_analysis TEXT
);
"""

_CREATE_INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_ohlcv_symbol_time
    ON ohlcv(symbol, time_ms DESC);

CREATE INDEX IF NOT EXISTS idx_signals_symbol_time
    ON signals(symbol, time_ms DESC);

CREATE INDEX IF NOT EXISTS idx_signals_agent_time
    ON signals(agent_id, time_ms DESC);

CREATE INDEX IF NOT EXISTS idx_analysis_symbol_time
    ON market_analysis(symbol, time_ms DESC);
"""


class RowStore(RecordSink):
    """Async SQLite sink with typed read/write methods.

    Usage:
        async with RowStore("data/cryptodb.sqlite") as store:
            await store.insert_ohlcv(point)
            bars = await store.get_latest_ohlcv("BTC", limit=50)
    """

    name = "row_store"

    def __init__(self, db_path: str = "data/cryptodb.sqlite") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """Access the raw aiosqlite connection.

        Raises RuntimeError if not connected.
        """
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    async def connect(self) -> None:
        """Open the connection, configure pragmas, and create the schema."""
        db_dir = os.path.dirname(self._db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")

        await self._create_tables()
        await self._ensure_schema_version()

        logger.info("row_store_connected", db_path=self._db_path)

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("row_store_closed", db_path=self._db_path)

    async def ping(self) -> bool:
        if self._connection is None:
            return False
        try:
            cursor = await self._connection.execute("SELECT 1")
            row = await cursor.fetchone()
        except aiosqlite.Error:
            return False
        return row is not None and row[0] == 1

    async def _create_tables(self) -> None:
        assert self._connection is not None
        await self._connection.executescript(_CREATE_TABLES_SQL)
        await self._connection.executescript(_CREATE_INDEXES_SQL)
        await self._connection.commit()

    async def _ensure_schema_version(self) -> None:
        assert self._connection is not None
        cursor = await self._connection.execute("SELECT version FROM schema_version LIMIT 1")
        row = await cursor.fetchone()
        if row is None:
            await self._connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            await self._connection.commit()
            logger.info("schema_version_set", version=SCHEMA_VERSION)

    # ──────────────────────────────────────────────
    # Write methods
    # ──────────────────────────────────────────────

    async def insert_ohlcv(self, point: PricePoint) -> None:
        await self.db.execute(
            "INSERT INTO ohlcv (time_ms, symbol, exchange, open, high, low, close, volume) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT (time_ms, symbol, exchange) DO UPDATE SET "
            "open = excluded.open, high = excluded.high, low = excluded.low, "
            "close = excluded.close, volume = excluded.volume",
            (
                point.timestamp,
                point.symbol,
                point.exchange,
                point.open,
                point.high,
                point.low,
                point.close,
                point.volume,
            ),
        )
        await self.db.commit()

    async def insert_signal(self, signal: Signal) -> None:
        await self.db.execute(
            "INSERT INTO signals "
            "(time_ms, agent_id, signal_type, symbol, strength, confidence, reasoning, metadata) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                signal.timestamp,
                signal.agent_id,
                signal.action.value,
                signal.symbol,
                signal.strength,
                signal.confidence,
                signal.reasoning,
                json.dumps(signal.metadata, default=str),
            ),
        )
        await self.db.commit()

    async def insert_analysis(self, analysis: Analysis) -> None:
        await self.db.execute(
            "INSERT INTO market_analysis "
            "(time_ms, symbol, agent_id, trend, pattern, indicators, ai_analysis) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                analysis.timestamp,
                analysis.symbol,
                analysis.agent_id,
                analysis.trend.value,
                analysis.pattern,
                json.dumps([asdict(i) for i in analysis.indicators]),
                analysis.narrative,
            ),
        )
        await self.db.commit()

    # ──────────────────────────────────────────────
    # Read methods
    # ──────────────────────────────────────────────

    async def get_latest_ohlcv(self, symbol: str, limit: int = 100) -> list[PricePoint]:
        """Most recent bars for ``symbol``, newest first."""
        cursor = await self.db.execute(
            "SELECT time_ms, symbol, exchange, open, high, low, close, volume "
            "FROM ohlcv WHERE symbol = ? ORDER BY time_ms DESC LIMIT ?",
            (symbol, limit),
        )
        rows = await cursor.fetchall()
        return [
            PricePoint(
                symbol=row[1],
                timestamp=row[0],
                exchange=row[2],
                open=row[3],
                high=row[4],
                low=row[5],
                close=row[6],
                volume=row[7],
            )
            for row in rows
        ]

    async def get_recent_signals(
        self,
        symbol: str,
        hours: float = 24,
        now: int | None = None,
    ) -> list[Signal]:
        """Signals for ``symbol`` within the last ``hours``, newest first."""
        since = (now if now is not None else now_ms()) - int(hours * _HOUR_MS)
        cursor = await self.db.execute(
            "SELECT agent_id, signal_type, symbol, strength, confidence, reasoning, "
            "metadata, time_ms FROM signals "
            "WHERE symbol = ? AND time_ms >= ? ORDER BY time_ms DESC",
            (symbol, since),
        )
        rows = await cursor.fetchall()
        return [
            Signal(
                agent_id=row[0],
                action=SignalAction(row[1]),
                symbol=row[2],
                strength=row[3],
                confidence=row[4],
                reasoning=row[5] or "",
                metadata=json.loads(row[6]) if row[6] else {},
                timestamp=row[7],
            )
            for row in rows
        ]

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
