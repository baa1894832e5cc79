"""Analysis agents consuming the market-data topic."""

from cryptodp.agents.market_monitor import MarketMonitoringAgent

__all__ = ["MarketMonitoringAgent"]
