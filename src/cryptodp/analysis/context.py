"""Market context and prompt construction for narrative generation."""

from collections.abc import Sequence

from cryptodp.models import Indicator, PricePoint

_RANGE_LOOKBACK = 20
_RECENT_BARS = 5


def build_market_context(
    symbol: str,
    window: Sequence[PricePoint],
    indicators: Sequence[Indicator],
) -> str:
    """Summarise the window as plain text for the text generation service.

    Requires at least two points (the change vs previous bar is reported).
    """
    if len(window) < 2:
        raise ValueError("market context needs at least two points")

    latest = window[-1]
    previous = window[-2]
    change_pct = (
        (latest.close - previous.close) / previous.close * 100 if previous.close else 0.0
    )

    recent = window[-_RANGE_LOOKBACK:]
    avg_volume = sum(p.volume for p in recent) / len(recent)
    highest = max(p.high for p in recent)
    lowest = min(p.low for p in recent)

    indicator_lines = "\n".join(
        f"- {ind.name}: {ind.value:.4f} ({ind.signal.value})" for ind in indicators
    ) or "- none (insufficient data)"

    bar_lines = "\n".join(
        f"{i}. O:{p.open:.2f} H:{p.high:.2f} L:{p.low:.2f} C:{p.close:.2f} V:{p.volume:.0f}"
        for i, p in enumerate(window[-_RECENT_BARS:], 1)
    )

    return (
        f"Market Data Summary for {symbol}:\n\n"
        f"Current Price: ${latest.close:.2f}\n"
        f"Price Change: {change_pct:.2f}% from previous period\n"
        f"Volume: {latest.volume:.2f} (Avg: {avg_volume:.2f})\n"
        f"Trading Range ({len(recent)} periods): ${lowest:.2f} - ${highest:.2f}\n\n"
        f"Technical Indicators:\n{indicator_lines}\n\n"
        f"Recent Price Action:\n{bar_lines}"
    )


def build_analysis_prompt(symbol: str, market_context: str) -> str:
    """Wrap a market context in the analysis instructions."""
    return (
        f"Analyze this cryptocurrency market data for {symbol}:\n\n"
        f"{market_context}\n\n"
        "Please provide a comprehensive market analysis including:\n"
        "1. Current market sentiment (bullish/bearish/neutral)\n"
        "2. Key technical levels (support/resistance)\n"
        "3. Volume analysis and liquidity assessment\n"
        "4. Short-term price prediction (next 1-4 hours)\n"
        "5. Risk factors and potential catalysts\n"
        "6. Trading recommendation with reasoning\n\n"
        "Keep the analysis concise but actionable for algorithmic trading decisions."
    )
