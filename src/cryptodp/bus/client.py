"""Abstract message bus interface.

Streaming and agent code depends only on this interface, keeping the
Kafka-specific client details in the concrete implementation.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from cryptodp.bus.codec import Record


@dataclass
class TopicSpec:
    """Topic to create on startup if missing."""

    name: str
    partitions: int
    retention_ms: int
    replication_factor: int = 1
    extra_config: dict[str, str] = field(default_factory=dict)


@dataclass
class BusMessage:
    """A consumed message."""

    topic: str
    key: str | None
    value: bytes
    partition: int = 0
    offset: int = 0
    timestamp_ms: int | None = None


class MessageBus(ABC):
    """Abstract base class for Kafka-compatible message bus clients."""

    @abstractmethod
    async def connect(self) -> None:
        """Start the producer side."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Stop the producer and any open consumers. In-flight sends may be lost."""
        ...

    @abstractmethod
    async def ensure_topics(self, topics: list[TopicSpec]) -> None:
        """Create the given topics if they do not already exist."""
        ...

    @abstractmethod
    async def publish(
        self,
        topic: str,
        key: str,
        record: Record,
        timestamp_ms: int | None = None,
        partition: int | None = None,
    ) -> None:
        """Publish one record. Raises BusPublishError on failure."""
        ...

    @abstractmethod
    def subscribe(self, topic: str, group_id: str) -> AsyncIterator[BusMessage]:
        """Consume new messages from a topic as a consumer-group member."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...
