"""Platform orchestrator -- validates config and runs every component.

Startup order:
  1. Validate settings (fatal on any error)
  2. Connect persistence sinks
  3. Connect the message bus
  4. Start the streamer (topics ensured, WebSockets and REST polling)
  5. Start enabled market-monitor agents

Shutdown runs in reverse. One agent failing to start is logged and does
not prevent the others from running.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import websockets

from cryptodp.agents.market_monitor import MarketMonitoringAgent
from cryptodp.config import AgentSettings, AppSettings, validate_settings
from cryptodp.exceptions import ConfigurationError
from cryptodp.logging import get_logger
from cryptodp.streaming.streamer import CryptoDataStreamer

if TYPE_CHECKING:
    from cryptodp.bus.client import MessageBus
    from cryptodp.exchange.client import MarketDataClient
    from cryptodp.llm.client import TextGenerator
    from cryptodp.storage.manager import DatabaseManager

logger = get_logger(__name__)


class Platform:
    """Top-level lifecycle owner for bus, sinks, streamer and agents.

    Args:
        settings: Application-wide settings.
        bus: Message bus client (not yet connected).
        db_manager: Persistence fan-out (not yet connected).
        market_data_client: REST OHLCV provider, or None for WebSocket-only.
        text_generator: Narrative service shared by all agents.
        connect: WebSocket connect factory passed to the streamer.
    """

    def __init__(
        self,
        settings: AppSettings,
        bus: MessageBus,
        db_manager: DatabaseManager,
        market_data_client: MarketDataClient | None,
        text_generator: TextGenerator,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self._settings = settings
        self._bus = bus
        self._db_manager = db_manager
        self._market_data_client = market_data_client
        self._text_generator = text_generator
        self._connect = connect

        self._streamer: CryptoDataStreamer | None = None
        self._agents: list[MarketMonitoringAgent] = []
        self._db_connected = False
        self._running = False
        self._stopped = asyncio.Event()
        self._started_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def agents(self) -> list[MarketMonitoringAgent]:
        return list(self._agents)

    @property
    def streamer(self) -> CryptoDataStreamer | None:
        return self._streamer

    async def start(self) -> None:
        """Validate settings and start every component.

        Raises:
            ConfigurationError: settings are invalid. Nothing is started.

        Any other startup failure closes whatever was already opened before
        the error propagates.
        """
        if self._running:
            logger.warning("platform_already_running")
            return

        errors = validate_settings(self._settings)
        if errors:
            for error in errors:
                logger.error("configuration_error", error=error)
            raise ConfigurationError(errors)

        logger.info(
            "platform_starting",
            environment=self._settings.environment,
            symbols=self._settings.datasource.symbols,
        )

        try:
            await self._db_manager.connect()
            self._db_connected = True
            await self._bus.connect()

            self._streamer = CryptoDataStreamer(
                bus=self._bus,
                bus_settings=self._settings.bus,
                datasource_settings=self._settings.datasource,
                streamer_settings=self._settings.streamer,
                market_data_client=self._market_data_client,
                db_manager=self._db_manager,
                connect=self._connect,
            )
            await self._streamer.start()
        except Exception:
            logger.error("platform_start_failed", exc_info=True)
            # Sinks may be half-open when connect() itself failed
            self._db_connected = True
            await self.stop()
            raise

        for agent_settings in self._settings.agents:
            await self._start_agent(agent_settings)

        self._running = True
        self._stopped.clear()
        self._started_at = datetime.now(timezone.utc)
        logger.info("platform_started", agents=[a.agent_id for a in self._agents])

    async def _start_agent(self, agent_settings: AgentSettings) -> None:
        if not agent_settings.enabled:
            logger.info("agent_disabled", agent_id=agent_settings.id)
            return
        if agent_settings.type != "market_monitor":
            logger.warning(
                "agent_type_not_implemented",
                agent_id=agent_settings.id,
                type=agent_settings.type,
            )
            return

        try:
            agent = MarketMonitoringAgent(
                agent_id=agent_settings.id,
                bus=self._bus,
                bus_settings=self._settings.bus,
                analysis_settings=self._settings.analysis,
                llm_settings=self._settings.llm,
                text_generator=self._text_generator,
                db_manager=self._db_manager,
                update_interval=agent_settings.update_interval,
            )
            await agent.start()
        except Exception as e:
            logger.error("agent_start_failed", agent_id=agent_settings.id, error=str(e))
            return
        self._agents.append(agent)

    async def stop(self) -> None:
        """Stop agents, streamer, bus and sinks, in that order."""
        logger.info("platform_stopping")
        self._running = False

        for agent in reversed(self._agents):
            try:
                await agent.stop()
            except Exception as e:
                logger.error("agent_stop_failed", agent_id=agent.agent_id, error=str(e))
        self._agents.clear()

        if self._streamer is not None:
            try:
                await self._streamer.stop()
            except Exception as e:
                logger.error("streamer_stop_failed", error=str(e))
            self._streamer = None

        try:
            await self._bus.close()
        except Exception as e:
            logger.error("bus_close_failed", error=str(e))

        if self._db_connected:
            await self._db_manager.close()
            self._db_connected = False

        try:
            await self._text_generator.close()
        except Exception as e:
            logger.error("text_generator_close_failed", error=str(e))

        self._stopped.set()
        logger.info("platform_stopped")

    async def wait_stopped(self) -> None:
        await self._stopped.wait()

    async def health_check(self) -> dict[str, Any]:
        """Report healthy only when every component is up.

        Returns:
            Dict with: status ("healthy"/"unhealthy"), timestamp, issues, stats.
        """
        issues: list[str] = []
        if not self._running:
            issues.append("Platform is not running")
        if not self._db_connected:
            issues.append("Database connections not established")
        else:
            for sink, ok in (await self._db_manager.ping()).items():
                if not ok:
                    issues.append(f"Sink {sink} is not responding")
        if not self._bus.is_connected:
            issues.append("Message bus is not connected")
        if self._streamer is None or not self._streamer.is_running:
            issues.append("Data streaming not active")
        if not self._agents:
            issues.append("No agents are running")

        return {
            "status": "healthy" if not issues else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "issues": issues,
            "stats": self.get_stats(),
        }

    def get_stats(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "environment": self._settings.environment,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "agents": [agent.get_stats() for agent in self._agents],
            "streaming": {
                "active": self._streamer is not None and self._streamer.is_running,
                "brokers": self._settings.bus.brokers,
                **(self._streamer.get_stats() if self._streamer is not None else {}),
            },
            "storage": {
                "sinks": [sink.name for sink in self._db_manager.sinks],
                "writes": self._db_manager.writes,
                "write_failures": self._db_manager.write_failures,
            },
        }
