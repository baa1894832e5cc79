"""Shared test fixtures for the crypto data platform."""

from collections.abc import Callable, Sequence

import pytest

from cryptodp.config import (
    AnalysisSettings,
    AnalyticsStoreSettings,
    AppSettings,
    BusSettings,
    DataSourceSettings,
    HealthSettings,
    LLMSettings,
    RowStoreSettings,
    StreamerSettings,
)
from cryptodp.models import PricePoint

BASE_TS = 1_700_000_000_000
MINUTE_MS = 60_000


@pytest.fixture
def mock_settings(tmp_path) -> AppSettings:
    """Return AppSettings with test defaults (dummy API key, temp SQLite, no ClickHouse)."""
    return AppSettings(
        log_level="DEBUG",
        bus=BusSettings(brokers=["localhost:19092"]),
        datasource=DataSourceSettings(
            symbols=["BTC", "ETH"],
            api_key="test-api-key",  # type: ignore[arg-type]
            poll_interval=0.01,
        ),
        streamer=StreamerSettings(reconnect_strategy="fixed", reconnect_base_delay=0.01),
        analysis=AnalysisSettings(),
        llm=LLMSettings(),
        rowstore=RowStoreSettings(db_path=str(tmp_path / "test.sqlite")),
        analytics=AnalyticsStoreSettings(enabled=False),
        health=HealthSettings(enabled=False),
    )


@pytest.fixture
def make_series() -> Callable[..., list[PricePoint]]:
    """Factory building a PricePoint series from closes (and optional volumes).

    Highs/lows sit 1 above/below the close unless given explicitly.
    """

    def _make(
        closes: Sequence[float],
        symbol: str = "BTC",
        volumes: Sequence[float] | None = None,
        highs: Sequence[float] | None = None,
        lows: Sequence[float] | None = None,
    ) -> list[PricePoint]:
        points = []
        for i, close in enumerate(closes):
            points.append(
                PricePoint(
                    symbol=symbol,
                    timestamp=BASE_TS + i * MINUTE_MS,
                    open=close,
                    high=highs[i] if highs is not None else close + 1,
                    low=lows[i] if lows is not None else close - 1,
                    close=close,
                    volume=volumes[i] if volumes is not None else 1000.0,
                    exchange="CCCAGG",
                )
            )
        return points

    return _make
