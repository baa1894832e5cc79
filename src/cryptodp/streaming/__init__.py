"""Streaming ingest -- provider WebSockets and REST polling onto the bus."""

from cryptodp.streaming.reconnect import ConnectionState, ConnectionStateMachine, ReconnectPolicy
from cryptodp.streaming.streamer import CryptoDataStreamer, SymbolStream

__all__ = [
    "ConnectionState",
    "ConnectionStateMachine",
    "CryptoDataStreamer",
    "ReconnectPolicy",
    "SymbolStream",
]
