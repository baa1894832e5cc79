"""Per-symbol bounded rolling window of OHLCV bars.

The window map is owned exclusively by RollingWindowManager. Callers get
copies back, never the underlying deques, so the only way to mutate a
window is ``append``.
"""

from collections import deque

from cryptodp.models import PricePoint

#: Default number of bars retained per symbol.
DEFAULT_WINDOW_CAP = 100


class RollingWindowManager:
    """Maintains a FIFO-evicted sequence of PricePoints per symbol.

    Args:
        cap: Maximum number of points retained per symbol. Appending beyond
            the cap evicts the oldest point.
    """

    def __init__(self, cap: int = DEFAULT_WINDOW_CAP) -> None:
        if cap < 1:
            raise ValueError(f"cap must be >= 1, got {cap}")
        self._cap = cap
        self._windows: dict[str, deque[PricePoint]] = {}

    @property
    def cap(self) -> int:
        return self._cap

    def append(self, point: PricePoint) -> None:
        """Append a point to its symbol's window, evicting the oldest on overflow."""
        window = self._windows.get(point.symbol)
        if window is None:
            window = deque(maxlen=self._cap)
            self._windows[point.symbol] = window
        window.append(point)

    def latest(self, symbol: str, n: int) -> list[PricePoint]:
        """Return the last ``n`` points, oldest first.

        Returns an empty list when fewer than ``n`` points exist.
        """
        window = self._windows.get(symbol)
        if window is None or n <= 0 or len(window) < n:
            return []
        return list(window)[-n:]

    def window(self, symbol: str) -> list[PricePoint]:
        """Return a copy of the full window for a symbol (oldest first)."""
        return list(self._windows.get(symbol, ()))

    def last_close(self, symbol: str) -> float | None:
        """Return the close of the most recent point, or None if empty."""
        window = self._windows.get(symbol)
        if not window:
            return None
        return window[-1].close

    def size(self, symbol: str) -> int:
        return len(self._windows.get(symbol, ()))

    def symbols(self) -> list[str]:
        """Symbols with at least one point, in first-seen order."""
        return [s for s, w in self._windows.items() if w]

    def total_points(self) -> int:
        return sum(len(w) for w in self._windows.values())
