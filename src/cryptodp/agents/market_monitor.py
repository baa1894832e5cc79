"""Market monitoring agent -- consumes market data and emits analyses and signals.

Each cycle per symbol:
  1. WINDOW: PricePoints from the market-data topic fill a bounded window
  2. INDICATORS: SMA_20, RSI_14 and Volume_Ratio over the window
  3. TREND/PATTERN: short-term trend and triangle detection
  4. NARRATIVE: market context sent to the text generation service
  5. SIGNAL: rule-based action gated on minimum strength
  6. EMIT: analysis and signal persisted and published concurrently

A narrative failure does not abort the cycle: the analysis is still
persisted and published with an empty narrative, and no signal is derived
for that cycle. A trade tick moving more than the configured threshold
away from the last close triggers an immediate analysis of its symbol.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any

import structlog

from cryptodp.analysis.context import build_analysis_prompt, build_market_context
from cryptodp.analysis.indicators import compute_indicators
from cryptodp.analysis.signals import generate_signal
from cryptodp.analysis.trend import classify_trend, detect_pattern
from cryptodp.analysis.window import RollingWindowManager
from cryptodp.bus.client import BusMessage, MessageBus
from cryptodp.bus.codec import decode_market_data
from cryptodp.bus.partition import partition_for_symbol
from cryptodp.config import AnalysisSettings, BusSettings, LLMSettings
from cryptodp.exceptions import LLMGenerationError
from cryptodp.logging import get_logger
from cryptodp.models import Analysis, PricePoint, Signal, Tick, now_ms

if TYPE_CHECKING:
    from cryptodp.llm.client import TextGenerator
    from cryptodp.storage.manager import DatabaseManager

logger = get_logger(__name__)


class MarketMonitoringAgent:
    """Watches the market-data topic and produces per-symbol analyses.

    Args:
        agent_id: Unique agent identifier, stamped on every output.
        bus: Shared, already connected message bus.
        bus_settings: Topic names and partition counts.
        analysis_settings: Window size, thresholds and gates.
        llm_settings: Sampling parameters for narrative generation.
        text_generator: Narrative service.
        db_manager: Optional persistence fan-out.
        update_interval: Seconds between periodic analysis cycles.
    """

    def __init__(
        self,
        agent_id: str,
        bus: MessageBus,
        bus_settings: BusSettings,
        analysis_settings: AnalysisSettings,
        llm_settings: LLMSettings,
        text_generator: TextGenerator,
        db_manager: DatabaseManager | None = None,
        update_interval: float = 5.0,
    ) -> None:
        self.agent_id = agent_id
        self._bus = bus
        self._bus_settings = bus_settings
        self._settings = analysis_settings
        self._llm_settings = llm_settings
        self._text_generator = text_generator
        self._db_manager = db_manager
        self._update_interval = update_interval

        self._windows = RollingWindowManager(cap=analysis_settings.window_size)
        self._symbol_locks: dict[str, asyncio.Lock] = {}
        self._running = False
        self._tasks: list[asyncio.Task] = []  # type: ignore[type-arg]

        self.price_points_processed = 0
        self.ticks_processed = 0
        self.decode_errors = 0
        self.analyses_completed = 0
        self.signals_generated = 0
        self.narrative_failures = 0
        self.emit_failures = 0
        self.last_analysis_at: int | None = None

    @property
    def windows(self) -> RollingWindowManager:
        return self._windows

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def consumer_group(self) -> str:
        return f"{self._bus_settings.client_id}-{self.agent_id}"

    async def start(self) -> None:
        if self._running:
            logger.warning("agent_already_running", agent_id=self.agent_id)
            return
        self._running = True
        self._tasks = [
            asyncio.create_task(self._consume_loop()),
            asyncio.create_task(self._periodic_loop()),
        ]
        logger.info(
            "agent_started",
            agent_id=self.agent_id,
            update_interval=self._update_interval,
            group_id=self.consumer_group,
        )

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("agent_stopped", agent_id=self.agent_id)

    # ──────────────────────────────────────────────
    # Ingest
    # ──────────────────────────────────────────────

    async def _consume_loop(self) -> None:
        structlog.contextvars.bind_contextvars(agent_id=self.agent_id)
        topic = self._bus_settings.market_data_topic
        while self._running:
            try:
                async for message in self._bus.subscribe(topic, self.consumer_group):
                    await self.handle_message(message)
                    if not self._running:
                        break
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("agent_consume_error", agent_id=self.agent_id, exc_info=True)
                if self._running:
                    await asyncio.sleep(1.0)

    async def handle_message(self, message: BusMessage) -> None:
        """Route one market-data message. Malformed payloads are logged and skipped."""
        try:
            record = decode_market_data(message.value)
        except (ValueError, KeyError, TypeError) as e:
            self.decode_errors += 1
            logger.warning(
                "market_data_decode_failed",
                agent_id=self.agent_id,
                key=message.key,
                error=str(e),
            )
            return

        if isinstance(record, PricePoint):
            self.handle_price_point(record)
        elif isinstance(record, Tick):
            await self.handle_tick(record)

    def handle_price_point(self, point: PricePoint) -> None:
        self._windows.append(point)
        self.price_points_processed += 1

    async def handle_tick(self, tick: Tick) -> Analysis | None:
        """Run an immediate analysis when the tick moved past the threshold.

        Ticks never enter the window; they only compare against its last close.
        """
        self.ticks_processed += 1
        last_close = self._windows.last_close(tick.symbol)
        if not last_close:
            return None

        move = abs(tick.price - last_close) / last_close
        if move <= self._settings.tick_move_threshold:
            return None

        logger.info(
            "significant_price_move",
            agent_id=self.agent_id,
            symbol=tick.symbol,
            price=tick.price,
            last_close=last_close,
            move_pct=round(move * 100, 3),
        )
        return await self.analyze_symbol(tick.symbol)

    # ──────────────────────────────────────────────
    # Analysis
    # ──────────────────────────────────────────────

    async def _periodic_loop(self) -> None:
        structlog.contextvars.bind_contextvars(agent_id=self.agent_id)
        while self._running:
            try:
                await self.run_analysis_cycle()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("agent_cycle_error", agent_id=self.agent_id, exc_info=True)
            if self._running:
                await asyncio.sleep(self._update_interval)

    async def run_analysis_cycle(self) -> dict[str, Analysis | None]:
        """Analyse every tracked symbol concurrently.

        A failure for one symbol is logged and reported as None; it never
        prevents the other symbols from completing.
        """
        symbols = self._windows.symbols()
        results = await asyncio.gather(
            *(self.analyze_symbol(symbol) for symbol in symbols),
            return_exceptions=True,
        )
        outcome: dict[str, Analysis | None] = {}
        for symbol, result in zip(symbols, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error(
                    "symbol_analysis_failed",
                    agent_id=self.agent_id,
                    symbol=symbol,
                    error=str(result),
                )
                outcome[symbol] = None
            else:
                outcome[symbol] = result
        return outcome

    def _lock_for(self, symbol: str) -> asyncio.Lock:
        lock = self._symbol_locks.get(symbol)
        if lock is None:
            lock = asyncio.Lock()
            self._symbol_locks[symbol] = lock
        return lock

    async def analyze_symbol(self, symbol: str) -> Analysis | None:
        """Run one full analysis cycle for ``symbol``.

        Returns None without side effects when the window holds fewer than
        ``min_analysis_points`` points.
        """
        async with self._lock_for(symbol):
            window = self._windows.window(symbol)
            if len(window) < self._settings.min_analysis_points:
                logger.debug(
                    "insufficient_data_for_analysis",
                    agent_id=self.agent_id,
                    symbol=symbol,
                    points=len(window),
                )
                return None

            timestamp = now_ms()
            indicators = compute_indicators(window, timestamp)
            trend = classify_trend(window)
            pattern = detect_pattern(window)

            narrative: str | None
            try:
                narrative = await self._generate_narrative(symbol, window, indicators)
            except LLMGenerationError as e:
                self.narrative_failures += 1
                logger.warning(
                    "narrative_generation_failed",
                    agent_id=self.agent_id,
                    symbol=symbol,
                    error=str(e),
                )
                narrative = None

            analysis = Analysis(
                symbol=symbol,
                timestamp=timestamp,
                indicators=indicators,
                trend=trend,
                agent_id=self.agent_id,
                narrative=narrative or "",
                pattern=pattern,
            )

            signal: Signal | None = None
            if narrative is not None:
                signal = generate_signal(
                    self.agent_id,
                    symbol,
                    indicators,
                    trend,
                    narrative,
                    min_strength=self._settings.min_signal_strength,
                    narrative_max_chars=self._settings.narrative_max_chars,
                    timestamp=timestamp,
                )
                if signal is not None:
                    signal.metadata["price_at_signal"] = window[-1].close

            await self._emit(analysis, signal)

            self.analyses_completed += 1
            self.last_analysis_at = timestamp
            if signal is not None:
                self.signals_generated += 1
                logger.info(
                    "signal_generated",
                    agent_id=self.agent_id,
                    symbol=symbol,
                    action=signal.action.value,
                    strength=signal.strength,
                    confidence=signal.confidence,
                )
            logger.debug(
                "analysis_completed",
                agent_id=self.agent_id,
                symbol=symbol,
                trend=trend.value,
                pattern=pattern,
                indicators=len(indicators),
            )
            return analysis

    async def _generate_narrative(self, symbol, window, indicators) -> str:  # type: ignore[no-untyped-def]
        try:
            context = build_market_context(symbol, window, indicators)
        except ValueError as e:
            raise LLMGenerationError(str(e)) from e
        prompt = build_analysis_prompt(symbol, context)
        return await self._text_generator.generate(
            prompt,
            temperature=self._llm_settings.temperature,
            max_tokens=self._llm_settings.max_tokens,
        )

    # ──────────────────────────────────────────────
    # Emit
    # ──────────────────────────────────────────────

    async def _emit(self, analysis: Analysis, signal: Signal | None) -> None:
        """Persist and publish the outputs concurrently; each failure is logged alone."""
        symbol = analysis.symbol
        operations: list[tuple[str, Awaitable[None]]] = [
            (
                "publish_analysis",
                self._bus.publish(
                    self._bus_settings.analysis_topic,
                    key=symbol,
                    record=analysis,
                    timestamp_ms=analysis.timestamp,
                    partition=partition_for_symbol(
                        symbol, self._bus_settings.analysis_partitions
                    ),
                ),
            ),
        ]
        if self._db_manager is not None:
            operations.append(("persist_analysis", self._db_manager.insert_analysis(analysis)))

        if signal is not None:
            # Keyed by producing agent; the producer's key hash picks the partition
            operations.append(
                (
                    "publish_signal",
                    self._bus.publish(
                        self._bus_settings.signals_topic,
                        key=signal.agent_id,
                        record=signal,
                        timestamp_ms=signal.timestamp,
                    ),
                )
            )
            if self._db_manager is not None:
                operations.append(("persist_signal", self._db_manager.insert_signal(signal)))

        results = await asyncio.gather(
            *(op for _, op in operations), return_exceptions=True
        )
        for (name, _), result in zip(operations, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                self.emit_failures += 1
                logger.error(
                    "agent_emit_failed",
                    agent_id=self.agent_id,
                    symbol=symbol,
                    operation=name,
                    error=str(result),
                )

    def get_stats(self) -> dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "running": self._running,
            "symbols": {s: self._windows.size(s) for s in self._windows.symbols()},
            "price_points_processed": self.price_points_processed,
            "ticks_processed": self.ticks_processed,
            "decode_errors": self.decode_errors,
            "analyses_completed": self.analyses_completed,
            "signals_generated": self.signals_generated,
            "narrative_failures": self.narrative_failures,
            "emit_failures": self.emit_failures,
            "last_analysis_at": self.last_analysis_at,
        }
