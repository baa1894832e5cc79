"""Shared data models for the crypto data platform.

Prices and volumes are floats (the provider delivers JSON numbers, and
Python floats survive a JSON round-trip unchanged). Timestamps are Unix
milliseconds.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def now_ms() -> int:
    """Current wall-clock time in Unix milliseconds."""
    return int(time.time() * 1000)


class TradeSide(str, Enum):
    """Aggressor side of a trade tick."""

    BUY = "buy"
    SELL = "sell"


class IndicatorSignal(str, Enum):
    """Categorical reading of a single indicator."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class Trend(str, Enum):
    """Short-term price trend classification."""

    UP = "up"
    DOWN = "down"
    SIDEWAYS = "sideways"


class SignalAction(str, Enum):
    """Recommended action carried by a Signal."""

    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"
    ALERT = "alert"


@dataclass(frozen=True)
class PricePoint:
    """One OHLCV bar for a symbol. Immutable once ingested."""

    symbol: str
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    exchange: str = "unknown"


@dataclass(frozen=True)
class Tick:
    """A single trade event. Used only to detect abrupt moves."""

    symbol: str
    price: float
    volume: float
    side: TradeSide
    timestamp: int


@dataclass
class Indicator:
    """A derived technical indicator value."""

    name: str
    value: float
    signal: IndicatorSignal
    timestamp: int


@dataclass
class Analysis:
    """Result of one analysis cycle for one symbol.

    ``narrative`` is empty when text generation failed for the cycle;
    indicators, trend and pattern are still valid in that case.
    """

    symbol: str
    timestamp: int
    indicators: list[Indicator]
    trend: Trend
    agent_id: str
    narrative: str = ""
    pattern: str | None = None


@dataclass
class Signal:
    """An actionable recommendation produced by an agent."""

    agent_id: str
    action: SignalAction
    symbol: str
    strength: float  # clamped to [0, 1]
    confidence: float  # clamped to [0, 1]
    reasoning: str
    timestamp: int = field(default_factory=now_ms)
    metadata: dict[str, Any] = field(default_factory=dict)
