"""Message bus layer -- topic layout, symbol partitioning and record codec."""

from cryptodp.bus.client import BusMessage, MessageBus, TopicSpec
from cryptodp.bus.codec import decode_analysis, decode_market_data, decode_signal, encode_record
from cryptodp.bus.partition import partition_for_symbol, symbol_hash
from cryptodp.config import BusSettings


def default_topics(settings: BusSettings) -> list[TopicSpec]:
    """Topic layout for market data, signals and analysis."""
    return [
        TopicSpec(
            name=settings.market_data_topic,
            partitions=settings.market_data_partitions,
            retention_ms=settings.market_data_retention_ms,
            replication_factor=settings.replication_factor,
            extra_config={"compression.type": "snappy"},
        ),
        TopicSpec(
            name=settings.signals_topic,
            partitions=settings.signals_partitions,
            retention_ms=settings.signals_retention_ms,
            replication_factor=settings.replication_factor,
        ),
        TopicSpec(
            name=settings.analysis_topic,
            partitions=settings.analysis_partitions,
            retention_ms=settings.analysis_retention_ms,
            replication_factor=settings.replication_factor,
        ),
    ]


__all__ = [
    "BusMessage",
    "MessageBus",
    "TopicSpec",
    "decode_analysis",
    "decode_market_data",
    "decode_signal",
    "default_topics",
    "encode_record",
    "partition_for_symbol",
    "symbol_hash",
]
