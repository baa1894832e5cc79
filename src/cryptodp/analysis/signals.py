"""Trading signal derivation from indicators and trend.

Rules:
- RSI < 30 and trend not DOWN  -> BUY candidate
- RSI > 70 and trend not UP    -> SELL candidate
- otherwise HOLD at strength 0.5, which never clears the emission gate
- Volume_Ratio > 1.5 multiplies confidence by the volume boost
- strength and confidence are clamped to [0, 1]
- nothing is emitted below ``min_strength``
"""

from collections.abc import Sequence

from cryptodp.analysis.indicators import (
    RSI_NAME,
    RSI_OVERBOUGHT,
    RSI_OVERSOLD,
    SMA_NAME,
    VOLUME_HIGH,
    VOLUME_RATIO_NAME,
    find_indicator,
)
from cryptodp.models import Indicator, Signal, SignalAction, Trend, now_ms

HOLD_STRENGTH = 0.5
HOLD_CONFIDENCE = 0.5
DEFAULT_MIN_STRENGTH = 0.6
DEFAULT_NARRATIVE_MAX_CHARS = 500


def clamp_unit(value: float) -> float:
    """Clamp a score to the closed interval [0, 1]."""
    return min(max(value, 0.0), 1.0)


def generate_signal(
    agent_id: str,
    symbol: str,
    indicators: Sequence[Indicator],
    trend: Trend,
    narrative: str,
    *,
    min_strength: float = DEFAULT_MIN_STRENGTH,
    narrative_max_chars: int = DEFAULT_NARRATIVE_MAX_CHARS,
    base_strength: float = 0.7,
    base_confidence: float = 0.8,
    volume_boost: float = 1.2,
    timestamp: int | None = None,
) -> Signal | None:
    """Turn indicators and trend into a Signal, or None when nothing clears the gate.

    Args:
        agent_id: Producing agent identifier.
        symbol: Symbol the indicators were computed for.
        indicators: Output of compute_indicators for this cycle.
        trend: Output of classify_trend for this cycle.
        narrative: Generated commentary; truncated into metadata.
        min_strength: Emission gate. Signals below it are suppressed.
        narrative_max_chars: Truncation length for the stored narrative.
        base_strength: Strength assigned to a BUY/SELL candidate.
        base_confidence: Confidence assigned to a BUY/SELL candidate.
        volume_boost: Confidence multiplier on high relative volume.
        timestamp: Signal timestamp, defaults to now.

    Returns:
        A Signal with clamped strength/confidence, or None.
    """
    rsi = find_indicator(indicators, RSI_NAME)
    volume = find_indicator(indicators, VOLUME_RATIO_NAME)

    action = SignalAction.HOLD
    strength = HOLD_STRENGTH
    confidence = HOLD_CONFIDENCE
    reasoning = "No clear signal detected"

    if rsi is not None:
        if rsi.value < RSI_OVERSOLD and trend != Trend.DOWN:
            action = SignalAction.BUY
            strength = base_strength
            confidence = base_confidence
            reasoning = f"RSI oversold ({rsi.value:.1f}) with {trend.value} trend"
        elif rsi.value > RSI_OVERBOUGHT and trend != Trend.UP:
            action = SignalAction.SELL
            strength = base_strength
            confidence = base_confidence
            reasoning = f"RSI overbought ({rsi.value:.1f}) with {trend.value} trend"

    if volume is not None and volume.value > VOLUME_HIGH:
        confidence *= volume_boost
        reasoning += f", high volume confirmation ({volume.value:.1f}x avg)"

    strength = clamp_unit(strength)
    confidence = clamp_unit(confidence)

    if strength < min_strength:
        return None

    sma = find_indicator(indicators, SMA_NAME)
    metadata = {
        "indicators": [
            {"name": ind.name, "value": ind.value, "signal": ind.signal.value}
            for ind in indicators
        ],
        "trend": trend.value,
        "narrative": narrative[:narrative_max_chars],
    }
    if sma is not None:
        metadata["sma_20"] = sma.value

    return Signal(
        agent_id=agent_id,
        action=action,
        symbol=symbol,
        strength=strength,
        confidence=confidence,
        reasoning=reasoning,
        timestamp=timestamp if timestamp is not None else now_ms(),
        metadata=metadata,
    )
