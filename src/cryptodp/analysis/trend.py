"""Short-term trend classification and triangle pattern detection."""

from collections.abc import Sequence

from cryptodp.models import PricePoint, Trend

TREND_LOOKBACK = 5
TREND_THRESHOLD = 0.01  # 1%

PATTERN_LOOKBACK = 10
ASCENDING_TRIANGLE = "ascending_triangle"
DESCENDING_TRIANGLE = "descending_triangle"

_SLOPE_TRENDING = 0.001
_SLOPE_FLAT = 0.0005


def classify_trend(window: Sequence[PricePoint]) -> Trend:
    """Classify the trend from the close TREND_LOOKBACK points back to the latest.

    A relative change above +1% is UP, below -1% is DOWN, anything else is
    SIDEWAYS. Fewer than TREND_LOOKBACK points defaults to SIDEWAYS.
    """
    if len(window) < TREND_LOOKBACK:
        return Trend.SIDEWAYS

    first = window[-TREND_LOOKBACK].close
    last = window[-1].close
    if first == 0:
        return Trend.SIDEWAYS

    change = (last - first) / first
    if change > TREND_THRESHOLD:
        return Trend.UP
    if change < -TREND_THRESHOLD:
        return Trend.DOWN
    return Trend.SIDEWAYS


def least_squares_slope(values: Sequence[float]) -> float:
    """Ordinary least squares slope of ``values`` against their index.

    slope = (n*Sxy - Sx*Sy) / (n*Sxx - Sx^2), with x = 0..n-1.
    Returns 0.0 for fewer than two values.
    """
    n = len(values)
    if n < 2:
        return 0.0

    sum_x = n * (n - 1) / 2
    sum_y = sum(values)
    sum_xy = sum(i * v for i, v in enumerate(values))
    sum_x2 = n * (n - 1) * (2 * n - 1) / 6

    return (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)


def detect_pattern(window: Sequence[PricePoint]) -> str | None:
    """Tag an ascending or descending triangle over the last PATTERN_LOOKBACK bars.

    Ascending: lows rising (slope > 0.001) under flat highs (|slope| < 0.0005).
    Descending: highs falling (slope < -0.001) over flat lows.
    """
    if len(window) < PATTERN_LOOKBACK:
        return None

    recent = window[-PATTERN_LOOKBACK:]
    highs_slope = least_squares_slope([p.high for p in recent])
    lows_slope = least_squares_slope([p.low for p in recent])

    if lows_slope > _SLOPE_TRENDING and abs(highs_slope) < _SLOPE_FLAT:
        return ASCENDING_TRIANGLE
    if highs_slope < -_SLOPE_TRENDING and abs(lows_slope) < _SLOPE_FLAT:
        return DESCENDING_TRIANGLE
    return None
