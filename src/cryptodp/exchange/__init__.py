"""Market data provider layer -- REST OHLCV pull and streaming trade parsing."""

from cryptodp.config import DataSourceSettings
from cryptodp.exchange.client import MarketDataClient
from cryptodp.exchange.cryptocompare_client import CryptoCompareClient, parse_trade_message


def create_market_data_client(settings: DataSourceSettings) -> MarketDataClient:
    """Build the REST provider selected by ``settings.rest_provider``."""
    if settings.rest_provider == "ccxt":
        from cryptodp.exchange.ccxt_client import CcxtMarketDataClient

        return CcxtMarketDataClient(settings)
    return CryptoCompareClient(settings)


__all__ = [
    "CryptoCompareClient",
    "MarketDataClient",
    "create_market_data_client",
    "parse_trade_message",
]
