"""Market analysis: rolling windows, technical indicators, trend/pattern
classification and signal derivation. Everything here is pure and
synchronous; I/O lives in the agent layer.
"""

from cryptodp.analysis.context import build_analysis_prompt, build_market_context
from cryptodp.analysis.indicators import (
    compute_indicators,
    relative_strength_index,
    simple_moving_average,
    volume_ratio,
)
from cryptodp.analysis.signals import clamp_unit, generate_signal
from cryptodp.analysis.trend import classify_trend, detect_pattern, least_squares_slope
from cryptodp.analysis.window import RollingWindowManager

__all__ = [
    "RollingWindowManager",
    "build_analysis_prompt",
    "build_market_context",
    "clamp_unit",
    "classify_trend",
    "compute_indicators",
    "detect_pattern",
    "generate_signal",
    "least_squares_slope",
    "relative_strength_index",
    "simple_moving_average",
    "volume_ratio",
]
