"""Entry point for the crypto data platform.

Wires all components together, optionally serves the health endpoint, and
starts the platform. When the health endpoint is enabled (default), the
platform and the FastAPI app share a single asyncio event loop via
uvicorn's programmatic API and FastAPI's lifespan context manager.

SIGINT/SIGTERM trigger a graceful stop.

Component wiring order (in _build_components):
1. KafkaBus (message bus)
2. DatabaseManager (row store + analytics store)
3. MarketDataClient (REST OHLCV provider, when REST polling is enabled)
4. TextGenerator (narrative service)
5. Platform (streamer and agents are created on start)
"""

import asyncio
import signal
import sys
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from cryptodp.bus.kafka import KafkaBus
from cryptodp.config import AppSettings, validate_settings
from cryptodp.exchange import create_market_data_client
from cryptodp.llm import create_text_generator
from cryptodp.logging import get_logger, setup_logging
from cryptodp.orchestrator import Platform
from cryptodp.storage import create_database_manager


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build the dependency graph. Nothing is connected here."""
    bus = KafkaBus(settings.bus)
    db_manager = create_database_manager(settings)
    market_data_client = (
        create_market_data_client(settings.datasource)
        if settings.datasource.rest_enabled
        else None
    )
    text_generator = create_text_generator(settings.llm)

    platform = Platform(
        settings=settings,
        bus=bus,
        db_manager=db_manager,
        market_data_client=market_data_client,
        text_generator=text_generator,
    )
    return {
        "bus": bus,
        "db_manager": db_manager,
        "market_data_client": market_data_client,
        "text_generator": text_generator,
        "platform": platform,
    }


def _setup_signal_handlers(platform: Platform, server: uvicorn.Server | None = None) -> None:
    """Register SIGINT/SIGTERM for graceful shutdown.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("cryptodp.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        if server is not None:
            # Lifespan shutdown stops the platform
            server.should_exit = True
        else:
            asyncio.create_task(platform.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the platform with the server and stop it on server shutdown."""
    logger = get_logger("cryptodp.main")
    platform: Platform = app.state.platform

    _setup_signal_handlers(platform, getattr(app.state, "server", None))
    await platform.start()
    logger.info("lifespan_started")

    yield

    await platform.stop()
    logger.info("crypto_data_platform_stopped")


async def run() -> None:
    """Run the platform, with or without the health endpoint."""
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("cryptodp.main")

    errors = validate_settings(settings)
    if errors:
        for error in errors:
            logger.error("configuration_error", error=error)
        sys.exit(1)

    components = _build_components(settings)
    platform: Platform = components["platform"]

    if settings.health.enabled:
        from cryptodp.health.app import create_health_app

        app = create_health_app(lifespan=lifespan)
        app.state.platform = platform

        logger.info(
            "starting_with_health_endpoint",
            host=settings.health.host,
            port=settings.health.port,
            environment=settings.environment,
        )

        config = uvicorn.Config(
            app,
            host=settings.health.host,
            port=settings.health.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        app.state.server = server
        await server.serve()
    else:
        _setup_signal_handlers(platform)
        logger.info("starting_without_health_endpoint", environment=settings.environment)
        await platform.start()
        await platform.wait_stopped()
        logger.info("crypto_data_platform_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
