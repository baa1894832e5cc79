"""Abstract persistence sink interface.

Every sink accepts the same three record kinds so DatabaseManager can fan
a write out to all of them without knowing the backend.
"""

from abc import ABC, abstractmethod

from cryptodp.models import Analysis, PricePoint, Signal


class RecordSink(ABC):
    """A store that accepts OHLCV bars, analyses and signals."""

    name: str = "sink"

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the backend answers a trivial query."""
        ...

    @abstractmethod
    async def insert_ohlcv(self, point: PricePoint) -> None:
        ...

    @abstractmethod
    async def insert_analysis(self, analysis: Analysis) -> None:
        ...

    @abstractmethod
    async def insert_signal(self, signal: Signal) -> None:
        ...
