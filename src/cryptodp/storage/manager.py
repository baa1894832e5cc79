"""Fan-out writer across all configured persistence sinks.

Each write goes to every sink concurrently. There is no transaction across
sinks: when one fails, the others keep their copy and the caller gets a
SinkWriteError naming only the sinks that failed.
"""

import asyncio
from collections.abc import Awaitable, Callable

from cryptodp.exceptions import SinkWriteError
from cryptodp.logging import get_logger
from cryptodp.models import Analysis, PricePoint, Signal
from cryptodp.storage.sink import RecordSink

logger = get_logger(__name__)


class DatabaseManager:
    """Dual-write coordinator for the row and analytics stores."""

    def __init__(self, sinks: list[RecordSink]) -> None:
        self._sinks = list(sinks)
        self.writes = 0
        self.write_failures = 0

    @property
    def sinks(self) -> list[RecordSink]:
        return list(self._sinks)

    async def connect(self) -> None:
        for sink in self._sinks:
            await sink.connect()
        logger.info("database_manager_connected", sinks=[s.name for s in self._sinks])

    async def close(self) -> None:
        for sink in reversed(self._sinks):
            try:
                await sink.close()
            except Exception as e:
                logger.warning("sink_close_failed", sink=sink.name, error=str(e))

    async def ping(self) -> dict[str, bool]:
        results = await asyncio.gather(
            *(sink.ping() for sink in self._sinks), return_exceptions=True
        )
        return {
            sink.name: result is True for sink, result in zip(self._sinks, results)
        }

    async def _write_all(
        self,
        kind: str,
        write: Callable[[RecordSink], Awaitable[None]],
    ) -> None:
        results = await asyncio.gather(
            *(write(sink) for sink in self._sinks), return_exceptions=True
        )
        failed: dict[str, BaseException] = {}
        for sink, result in zip(self._sinks, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                failed[sink.name] = result

        self.writes += 1
        if failed:
            self.write_failures += 1
            logger.error("sink_write_failed", kind=kind, sinks=list(failed))
            raise SinkWriteError(failed)

    async def insert_ohlcv(self, point: PricePoint) -> None:
        await self._write_all("ohlcv", lambda sink: sink.insert_ohlcv(point))

    async def insert_analysis(self, analysis: Analysis) -> None:
        await self._write_all("analysis", lambda sink: sink.insert_analysis(analysis))

    async def insert_signal(self, signal: Signal) -> None:
        await self._write_all("signal", lambda sink: sink.insert_signal(signal))
