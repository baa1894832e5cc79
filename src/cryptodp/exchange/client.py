"""Abstract market data client interface.

The streamer depends only on this interface; provider-specific request
and response handling stays in the concrete implementations.
"""

from abc import ABC, abstractmethod

from cryptodp.models import PricePoint


class MarketDataClient(ABC):
    """Pull-side market data provider (latest OHLCV bar per symbol)."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the underlying HTTP/exchange client."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...

    @abstractmethod
    async def fetch_latest_ohlcv(self, symbol: str) -> PricePoint | None:
        """Return the most recent OHLCV bar for ``symbol``.

        Returns None when the provider has no bar for the symbol. Raises
        MarketDataError (or the transport's own error) on failure.
        """
        ...
