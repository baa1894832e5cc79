"""Technical indicator computation over a rolling window.

Three independent indicators are computed from the same window:
- SMA_20: simple moving average of the last 20 closes
- RSI_14: Wilder-smoothed relative strength index
- Volume_Ratio: latest volume relative to the recent average

Each indicator is omitted when the window is too short for it. A partial
result is valid output, not an error.
"""

from collections.abc import Sequence

from cryptodp.models import Indicator, IndicatorSignal, PricePoint, now_ms

SMA_NAME = "SMA_20"
RSI_NAME = "RSI_14"
VOLUME_RATIO_NAME = "Volume_Ratio"

SMA_PERIOD = 20
RSI_PERIOD = 14
VOLUME_PERIOD = 20

#: Below this many points no indicator is computed at all.
MIN_INDICATOR_POINTS = 14

RSI_OVERBOUGHT = 70.0
RSI_OVERSOLD = 30.0
VOLUME_HIGH = 1.5
VOLUME_LOW = 0.5


def simple_moving_average(values: Sequence[float], period: int = SMA_PERIOD) -> float | None:
    """Arithmetic mean of the last ``period`` values, or None if too few."""
    if period <= 0 or len(values) < period:
        return None
    window = values[-period:]
    return sum(window) / period


def relative_strength_index(closes: Sequence[float], period: int = RSI_PERIOD) -> float | None:
    """Relative Strength Index with Wilder smoothing.

    The first ``period`` differences seed the average gain and loss as plain
    means. Every later difference is folded in with weight ``1/period``:

        avg = (avg * (period - 1) + current) / period

    Returns None with fewer than ``period + 1`` closes. Returns 100 when the
    average loss is zero (including a perfectly flat series).
    """
    if period <= 0 or len(closes) < period + 1:
        return None

    gains = 0.0
    losses = 0.0
    for i in range(1, period + 1):
        change = closes[i] - closes[i - 1]
        if change > 0:
            gains += change
        else:
            losses -= change

    avg_gain = gains / period
    avg_loss = losses / period

    for i in range(period + 1, len(closes)):
        change = closes[i] - closes[i - 1]
        gain = change if change > 0 else 0.0
        loss = -change if change < 0 else 0.0
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    rsi = 100.0 - (100.0 / (1.0 + rs))
    return min(max(rsi, 0.0), 100.0)


def volume_ratio(volumes: Sequence[float], period: int = VOLUME_PERIOD) -> float | None:
    """Latest volume divided by the mean of the last ``period`` volumes.

    Uses however many volumes are available when fewer than ``period``
    exist. Returns None for empty input or a zero average.
    """
    if not volumes or period <= 0:
        return None
    window = volumes[-period:]
    average = sum(window) / len(window)
    if average == 0:
        return None
    return volumes[-1] / average


def _sma_signal(latest_close: float, sma: float) -> IndicatorSignal:
    return IndicatorSignal.BULLISH if latest_close > sma else IndicatorSignal.BEARISH


def _rsi_signal(rsi: float) -> IndicatorSignal:
    if rsi > RSI_OVERBOUGHT:
        return IndicatorSignal.BEARISH
    if rsi < RSI_OVERSOLD:
        return IndicatorSignal.BULLISH
    return IndicatorSignal.NEUTRAL


def _volume_signal(ratio: float) -> IndicatorSignal:
    if ratio > VOLUME_HIGH:
        return IndicatorSignal.BULLISH
    if ratio < VOLUME_LOW:
        return IndicatorSignal.BEARISH
    return IndicatorSignal.NEUTRAL


def compute_indicators(
    window: Sequence[PricePoint],
    timestamp: int | None = None,
) -> list[Indicator]:
    """Compute the fixed indicator set for a window (oldest point first).

    Args:
        window: Rolling window of PricePoints for one symbol.
        timestamp: Timestamp stamped on each indicator. Defaults to now.

    Returns:
        Indicators that had sufficient data, in SMA, RSI, volume order.
        Empty when the window has fewer than MIN_INDICATOR_POINTS points.
    """
    if len(window) < MIN_INDICATOR_POINTS:
        return []

    ts = timestamp if timestamp is not None else now_ms()
    closes = [p.close for p in window]
    volumes = [p.volume for p in window]
    indicators: list[Indicator] = []

    sma = simple_moving_average(closes, SMA_PERIOD)
    if sma is not None:
        indicators.append(
            Indicator(name=SMA_NAME, value=sma, signal=_sma_signal(closes[-1], sma), timestamp=ts)
        )

    rsi = relative_strength_index(closes, RSI_PERIOD)
    if rsi is not None:
        indicators.append(
            Indicator(name=RSI_NAME, value=rsi, signal=_rsi_signal(rsi), timestamp=ts)
        )

    ratio = volume_ratio(volumes, VOLUME_PERIOD)
    if ratio is not None:
        indicators.append(
            Indicator(
                name=VOLUME_RATIO_NAME,
                value=ratio,
                signal=_volume_signal(ratio),
                timestamp=ts,
            )
        )

    return indicators


def find_indicator(indicators: Sequence[Indicator], name: str) -> Indicator | None:
    """Return the first indicator with the given name, or None."""
    return next((ind for ind in indicators if ind.name == name), None)
