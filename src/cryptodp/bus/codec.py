"""JSON encoding of bus records.

Market-data payloads are untagged: a PricePoint is recognised by its
open/close fields and a Tick by its price/side fields.
"""

import json
from dataclasses import asdict
from typing import Any

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

Record = PricePoint | Tick | Analysis | Signal


def record_to_dict(record: Record) -> dict[str, Any]:
    """Convert a record to a JSON-safe dict (enums become their values)."""
    return json.loads(encode_record(record))


def encode_record(record: Record) -> bytes:
    """Serialize a record dataclass to UTF-8 JSON bytes."""
    return json.dumps(asdict(record), separators=(",", ":")).encode("utf-8")


def _load(payload: bytes | str) -> Any:
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8")
    return json.loads(payload)


def price_point_from_dict(data: dict[str, Any]) -> PricePoint:
    return PricePoint(
        symbol=data["symbol"],
        timestamp=int(data["timestamp"]),
        open=float(data["open"]),
        high=float(data["high"]),
        low=float(data["low"]),
        close=float(data["close"]),
        volume=float(data["volume"]),
        exchange=data.get("exchange") or "unknown",
    )


def tick_from_dict(data: dict[str, Any]) -> Tick:
    return Tick(
        symbol=data["symbol"],
        price=float(data["price"]),
        volume=float(data.get("volume", 0.0)),
        side=TradeSide(data["side"]),
        timestamp=int(data["timestamp"]),
    )


def decode_market_data(payload: bytes | str) -> PricePoint | Tick | None:
    """Decode a market-data payload into a PricePoint or Tick.

    Returns None for a well-formed JSON object that is neither.
    Raises ValueError (including json.JSONDecodeError) or KeyError on
    malformed payloads.
    """
    data = _load(payload)
    if not isinstance(data, dict):
        return None
    if "open" in data and "close" in data:
        return price_point_from_dict(data)
    if "price" in data and "side" in data:
        return tick_from_dict(data)
    return None


def decode_signal(payload: bytes | str) -> Signal:
    data = _load(payload)
    return Signal(
        agent_id=data["agent_id"],
        action=SignalAction(data["action"]),
        symbol=data["symbol"],
        strength=float(data["strength"]),
        confidence=float(data["confidence"]),
        reasoning=data["reasoning"],
        timestamp=int(data["timestamp"]),
        metadata=data.get("metadata") or {},
    )


def decode_analysis(payload: bytes | str) -> Analysis:
    data = _load(payload)
    return Analysis(
        symbol=data["symbol"],
        timestamp=int(data["timestamp"]),
        indicators=[
            Indicator(
                name=ind["name"],
                value=float(ind["value"]),
                signal=IndicatorSignal(ind["signal"]),
                timestamp=int(ind["timestamp"]),
            )
            for ind in data.get("indicators", [])
        ],
        trend=Trend(data["trend"]),
        agent_id=data["agent_id"],
        narrative=data.get("narrative", ""),
        pattern=data.get("pattern"),
    )
