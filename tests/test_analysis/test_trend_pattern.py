"""Tests for trend classification, OLS slope and triangle detection."""

import pytest

from cryptodp.analysis.trend import (
    ASCENDING_TRIANGLE,
    DESCENDING_TRIANGLE,
    classify_trend,
    detect_pattern,
    least_squares_slope,
)
from cryptodp.models import Trend


class TestClassifyTrend:
    def test_up_above_one_percent(self, make_series) -> None:
        window = make_series([100.0, 100.5, 101.0, 101.5, 102.0])

        assert classify_trend(window) == Trend.UP

    def test_down_below_minus_one_percent(self, make_series) -> None:
        window = make_series([100.0, 99.5, 99.0, 98.5, 98.0])

        assert classify_trend(window) == Trend.DOWN

    def test_sideways_within_band(self, make_series) -> None:
        window = make_series([100.0, 100.2, 100.4, 100.6, 100.9])

        assert classify_trend(window) == Trend.SIDEWAYS

    def test_compares_fifth_from_last(self, make_series) -> None:
        """Only window[-5] and window[-1] matter, not the first point."""
        window = make_series([50.0, 100.0, 100.1, 100.2, 100.3, 100.4])

        assert classify_trend(window) == Trend.SIDEWAYS

    def test_short_window_is_sideways(self, make_series) -> None:
        assert classify_trend(make_series([100.0, 200.0])) == Trend.SIDEWAYS

    def test_zero_reference_close(self, make_series) -> None:
        window = make_series([0.0, 1.0, 2.0, 3.0, 4.0])

        assert classify_trend(window) == Trend.SIDEWAYS


class TestLeastSquaresSlope:
    def test_linear_series(self) -> None:
        assert least_squares_slope([1.0, 3.0, 5.0, 7.0]) == pytest.approx(2.0)

    def test_constant_series(self) -> None:
        assert least_squares_slope([5.0] * 10) == pytest.approx(0.0)

    def test_too_short(self) -> None:
        assert least_squares_slope([1.0]) == 0.0


class TestDetectPattern:
    def test_ascending_triangle(self, make_series) -> None:
        closes = [95.0] * 10
        window = make_series(
            closes,
            highs=[100.0] * 10,
            lows=[90.0 + i for i in range(10)],
        )

        assert detect_pattern(window) == ASCENDING_TRIANGLE

    def test_descending_triangle(self, make_series) -> None:
        closes = [95.0] * 10
        window = make_series(
            closes,
            highs=[110.0 - i for i in range(10)],
            lows=[90.0] * 10,
        )

        assert detect_pattern(window) == DESCENDING_TRIANGLE

    def test_parallel_channel_is_none(self, make_series) -> None:
        window = make_series([100.0 + i for i in range(10)])

        assert detect_pattern(window) is None

    def test_needs_ten_bars(self, make_series) -> None:
        window = make_series(
            [95.0] * 9,
            highs=[100.0] * 9,
            lows=[90.0 + i for i in range(9)],
        )

        assert detect_pattern(window) is None

    def test_uses_last_ten_bars_only(self, make_series) -> None:
        """Older bars outside the lookback do not affect the result."""
        highs = [500.0 - 30 * i for i in range(5)] + [100.0] * 10
        lows = [10.0] * 5 + [90.0 + i for i in range(10)]
        window = make_series([95.0] * 15, highs=highs, lows=lows)

        assert detect_pattern(window) == ASCENDING_TRIANGLE
