"""Tests for JSON record encoding on the bus."""

import json

import pytest

from cryptodp.bus.codec import (
    decode_analysis,
    decode_market_data,
    decode_signal,
    encode_record,
)
from cryptodp.models import (
    Analysis,
    Indicator,
    IndicatorSignal,
    PricePoint,
    Signal,
    SignalAction,
    Tick,
    TradeSide,
    Trend,
)


class TestMarketData:
    def test_price_point_round_trip_is_exact(self) -> None:
        point = PricePoint(
            symbol="BTC",
            timestamp=1_700_000_000_000,
            open=43251.123456789,
            high=43300.1,
            low=43111.000000001,
            close=43299.99,
            volume=0.1 + 0.2,
            exchange="CCCAGG",
        )

        assert decode_market_data(encode_record(point)) == point

    def test_tick_is_disambiguated(self) -> None:
        tick = Tick(symbol="ETH", price=2250.5, volume=1.5, side=TradeSide.BUY, timestamp=5)

        decoded = decode_market_data(encode_record(tick))

        assert isinstance(decoded, Tick)
        assert decoded == tick

    def test_enum_serialized_as_value(self) -> None:
        tick = Tick(symbol="ETH", price=1.0, volume=1.0, side=TradeSide.SELL, timestamp=5)

        assert json.loads(encode_record(tick))["side"] == "sell"

    def test_missing_exchange_defaults(self) -> None:
        payload = json.dumps(
            {"symbol": "BTC", "timestamp": 1, "open": 1, "high": 2, "low": 0.5, "close": 1.5, "volume": 3}
        )

        decoded = decode_market_data(payload)

        assert isinstance(decoded, PricePoint)
        assert decoded.exchange == "unknown"

    def test_unrecognised_object_is_none(self) -> None:
        assert decode_market_data(b'{"hello": "world"}') is None
        assert decode_market_data(b"[1, 2]") is None

    def test_malformed_payload_raises(self) -> None:
        with pytest.raises(ValueError):
            decode_market_data(b"not json")
        with pytest.raises(KeyError):
            decode_market_data(b'{"open": 1, "close": 2}')


class TestAnalysisAndSignal:
    def test_signal_round_trip(self) -> None:
        signal = Signal(
            agent_id="market-monitor-1",
            action=SignalAction.BUY,
            symbol="BTC",
            strength=0.7,
            confidence=0.96,
            reasoning="RSI oversold",
            timestamp=10,
            metadata={"trend": "up", "sma_20": 101.5},
        )

        assert decode_signal(encode_record(signal)) == signal

    def test_analysis_round_trip(self) -> None:
        analysis = Analysis(
            symbol="SOL",
            timestamp=20,
            indicators=[
                Indicator(name="RSI_14", value=55.5, signal=IndicatorSignal.NEUTRAL, timestamp=20)
            ],
            trend=Trend.SIDEWAYS,
            agent_id="market-monitor-1",
            narrative="",
            pattern="ascending_triangle",
        )

        assert decode_analysis(encode_record(analysis)) == analysis
