"""Crypto data streamer -- provider feeds republished onto the market-data topic.

Two ingestion paths run side by side:
- One WebSocket per symbol delivering trade ticks (push).
- A REST polling loop fetching the latest OHLCV bar per symbol (pull).

Every record is published keyed by symbol and routed to the symbol's hash
partition, so consumers see each symbol's records in publish order.
Publish failures are logged and the record is dropped; the next tick or
poll supersedes it.
"""

from __future__ import annotations

import asyncio
import json
import random
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import websockets

from cryptodp.bus import default_topics
from cryptodp.bus.client import MessageBus
from cryptodp.bus.partition import partition_for_symbol
from cryptodp.config import BusSettings, DataSourceSettings, StreamerSettings
from cryptodp.exchange.cryptocompare_client import (
    MESSAGE_TYPE_TICKER,
    build_subscribe_message,
    parse_trade_message,
)
from cryptodp.logging import get_logger
from cryptodp.models import PricePoint, Tick
from cryptodp.streaming.reconnect import (
    ConnectionState,
    ConnectionStateMachine,
    ReconnectPolicy,
)

if TYPE_CHECKING:
    from cryptodp.exchange.client import MarketDataClient
    from cryptodp.storage.manager import DatabaseManager

logger = get_logger(__name__)

TickHandler = Callable[[Tick], Awaitable[None]]


class SymbolStream:
    """WebSocket connection for one symbol, reconnecting until stopped.

    Args:
        symbol: Base asset to subscribe to (e.g. "BTC").
        settings: Data source settings (URL, quote, API key).
        policy: Reconnect delay policy.
        on_tick: Coroutine called for every parsed trade tick.
        connect: WebSocket connect factory, returning an async context manager.
    """

    def __init__(
        self,
        symbol: str,
        settings: DataSourceSettings,
        policy: ReconnectPolicy,
        on_tick: TickHandler,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self.symbol = symbol
        self._settings = settings
        self._policy = policy
        self._on_tick = on_tick
        self._connect = connect
        self._machine = ConnectionStateMachine()
        self._attempt = 0
        self._stopping = False
        self._socket: Any = None
        self.connect_count = 0
        self.ticks_received = 0

    @property
    def state(self) -> ConnectionState:
        return self._machine.state

    @property
    def state_history(self) -> list[ConnectionState]:
        return self._machine.history

    async def run(self) -> None:
        """Connect, subscribe, pump messages; on error or close wait and retry."""
        try:
            while not self._stopping:
                self._machine.transition_to(ConnectionState.CONNECTING)
                try:
                    async with self._connect(self._settings.ws_url, ping_interval=20) as ws:
                        if self._stopping:
                            break
                        self._socket = ws
                        self._machine.transition_to(ConnectionState.CONNECTED)
                        self._attempt = 0
                        self.connect_count += 1
                        await ws.send(
                            json.dumps(
                                build_subscribe_message(
                                    self.symbol,
                                    self._settings.quote,
                                    self._settings.api_key.get_secret_value(),
                                )
                            )
                        )
                        logger.info("ws_connected", symbol=self.symbol)
                        async for raw in ws:
                            await self._handle_raw(raw)
                    logger.warning("ws_closed", symbol=self.symbol)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.warning("ws_error", symbol=self.symbol, error=str(e))
                finally:
                    self._socket = None

                if self._stopping:
                    break

                self._machine.transition_to(ConnectionState.RECONNECT_WAIT)
                delay = self._policy.delay_for(self._attempt)
                self._attempt += 1
                logger.info(
                    "ws_reconnect_scheduled",
                    symbol=self.symbol,
                    attempt=self._attempt,
                    delay=round(delay, 2),
                )
                await asyncio.sleep(delay)
        finally:
            if self._stopping:
                self._machine.transition_to(ConnectionState.STOPPED)

    async def stop(self) -> None:
        """Enter STOPPED and close the socket if one is open."""
        self._stopping = True
        self._machine.transition_to(ConnectionState.STOPPED)
        socket = self._socket
        if socket is not None:
            await socket.close()

    async def _handle_raw(self, raw: str | bytes) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            logger.warning("ws_message_not_json", symbol=self.symbol)
            return
        if not isinstance(message, dict):
            return

        msg_type = str(message.get("TYPE"))
        if msg_type == MESSAGE_TYPE_TICKER:
            logger.debug("ws_ticker_update", symbol=self.symbol)
            return

        try:
            tick = parse_trade_message(message)
        except Exception as e:
            logger.warning("ws_trade_parse_failed", symbol=self.symbol, error=str(e))
            return
        if tick is None:
            logger.debug("ws_message_ignored", symbol=self.symbol, type=msg_type)
            return

        self.ticks_received += 1
        await self._on_tick(tick)


class CryptoDataStreamer:
    """Republishes provider market data onto the bus.

    The bus is shared and owned by the caller: the streamer ensures topics
    exist but never connects or closes it.

    Args:
        bus: Connected message bus.
        bus_settings: Topic names and partition counts.
        datasource_settings: Symbols, URLs and which ingestion paths are on.
        streamer_settings: Reconnect policy settings.
        market_data_client: REST OHLCV provider. None disables polling.
        db_manager: Optional persistence fan-out for ingested PricePoints.
        connect: WebSocket connect factory (injectable for tests).
        rng: Random source for reconnect jitter.
    """

    def __init__(
        self,
        bus: MessageBus,
        bus_settings: BusSettings,
        datasource_settings: DataSourceSettings,
        streamer_settings: StreamerSettings,
        market_data_client: MarketDataClient | None = None,
        db_manager: DatabaseManager | None = None,
        connect: Callable[..., Any] = websockets.connect,
        rng: random.Random | None = None,
    ) -> None:
        self._bus = bus
        self._bus_settings = bus_settings
        self._ds = datasource_settings
        self._streamer_settings = streamer_settings
        self._client = market_data_client
        self._db_manager = db_manager
        self._connect = connect
        self._rng = rng or random.Random()
        self._streams: dict[str, SymbolStream] = {}
        self._tasks: list[asyncio.Task] = []  # type: ignore[type-arg]
        self._running = False
        self.ohlcv_published = 0
        self.ticks_published = 0
        self.publish_failures = 0

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            logger.warning("streamer_already_running")
            return

        logger.info("streamer_starting", symbols=self._ds.symbols)
        await self._bus.ensure_topics(default_topics(self._bus_settings))
        self._running = True

        if self._ds.ws_enabled:
            for symbol in self._ds.symbols:
                stream = SymbolStream(
                    symbol=symbol,
                    settings=self._ds,
                    policy=ReconnectPolicy.from_settings(self._streamer_settings, self._rng),
                    on_tick=self.publish_tick,
                    connect=self._connect,
                )
                self._streams[symbol] = stream
                self._tasks.append(asyncio.create_task(stream.run()))

        if self._ds.rest_enabled and self._client is not None:
            await self._client.connect()
            self._tasks.append(asyncio.create_task(self._poll_loop()))
            logger.info("rest_polling_started", interval=self._ds.poll_interval)

        logger.info(
            "streamer_started",
            websockets=len(self._streams),
            rest_polling=self._ds.rest_enabled and self._client is not None,
        )

    async def stop(self) -> None:
        if not self._running:
            return
        logger.info("streamer_stopping")
        self._running = False

        for stream in self._streams.values():
            try:
                await stream.stop()
            except Exception as e:
                logger.warning("ws_close_failed", symbol=stream.symbol, error=str(e))

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        if self._client is not None and self._ds.rest_enabled:
            await self._client.close()

        logger.info("streamer_stopped")

    async def _poll_loop(self) -> None:
        while self._running:
            await self.poll_once()
            if self._running:
                await asyncio.sleep(self._ds.poll_interval)

    async def poll_once(self) -> None:
        """Fetch and publish the latest bar for every symbol.

        A failure for one symbol is logged and does not affect the others.
        """
        if self._client is None:
            return
        for symbol in self._ds.symbols:
            try:
                point = await self._client.fetch_latest_ohlcv(symbol)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("ohlcv_fetch_failed", symbol=symbol, error=str(e))
                continue
            if point is not None:
                await self.publish_price_point(point)

    def _partition(self, symbol: str) -> int:
        return partition_for_symbol(symbol, self._bus_settings.market_data_partitions)

    async def publish_price_point(self, point: PricePoint) -> None:
        try:
            await self._bus.publish(
                self._bus_settings.market_data_topic,
                key=point.symbol,
                record=point,
                timestamp_ms=point.timestamp,
                partition=self._partition(point.symbol),
            )
            self.ohlcv_published += 1
            logger.debug("ohlcv_published", symbol=point.symbol, close=point.close)
        except Exception as e:
            self.publish_failures += 1
            logger.error("ohlcv_publish_failed", symbol=point.symbol, error=str(e))

        if self._db_manager is not None:
            try:
                await self._db_manager.insert_ohlcv(point)
            except Exception as e:
                logger.error("ohlcv_persist_failed", symbol=point.symbol, error=str(e))

    async def publish_tick(self, tick: Tick) -> None:
        try:
            await self._bus.publish(
                self._bus_settings.market_data_topic,
                key=tick.symbol,
                record=tick,
                timestamp_ms=tick.timestamp,
                partition=self._partition(tick.symbol),
            )
            self.ticks_published += 1
            logger.debug("tick_published", symbol=tick.symbol, price=tick.price)
        except Exception as e:
            self.publish_failures += 1
            logger.error("tick_publish_failed", symbol=tick.symbol, error=str(e))

    def connection_states(self) -> dict[str, str]:
        return {symbol: stream.state.value for symbol, stream in self._streams.items()}

    def get_stats(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "symbols": list(self._ds.symbols),
            "connections": self.connection_states(),
            "ohlcv_published": self.ohlcv_published,
            "ticks_published": self.ticks_published,
            "publish_failures": self.publish_failures,
        }
