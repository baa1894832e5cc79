"""Kafka/Redpanda message bus implementation via aiokafka."""

from collections.abc import AsyncIterator

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer
from aiokafka.admin import AIOKafkaAdminClient, NewTopic
from aiokafka.errors import KafkaError, TopicAlreadyExistsError

from cryptodp.bus.client import BusMessage, MessageBus, TopicSpec
from cryptodp.bus.codec import Record, encode_record
from cryptodp.config import BusSettings
from cryptodp.exceptions import BusPublishError
from cryptodp.logging import get_logger

logger = get_logger(__name__)


class KafkaBus(MessageBus):
    """Concrete message bus backed by aiokafka.

    One producer is shared by every publisher in the process. Each
    ``subscribe`` call owns its own consumer and stops it when the
    iteration ends or is cancelled.
    """

    def __init__(self, settings: BusSettings, client_id: str | None = None) -> None:
        self._settings = settings
        self._client_id = client_id or settings.client_id
        self._bootstrap = ",".join(settings.brokers)
        self._producer: AIOKafkaProducer | None = None
        self._consumers: set[AIOKafkaConsumer] = set()

    @property
    def is_connected(self) -> bool:
        return self._producer is not None

    async def connect(self) -> None:
        if self._producer is not None:
            return
        logger.info("connecting_to_bus", brokers=self._settings.brokers)
        producer = AIOKafkaProducer(
            bootstrap_servers=self._bootstrap,
            client_id=self._client_id,
        )
        await producer.start()
        self._producer = producer
        logger.info("bus_connected", client_id=self._client_id)

    async def close(self) -> None:
        for consumer in list(self._consumers):
            await consumer.stop()
        self._consumers.clear()
        if self._producer is not None:
            await self._producer.stop()
            self._producer = None
            logger.info("bus_connection_closed", client_id=self._client_id)

    async def ensure_topics(self, topics: list[TopicSpec]) -> None:
        """Create topics, treating "already exists" as success."""
        admin = AIOKafkaAdminClient(
            bootstrap_servers=self._bootstrap,
            client_id=f"{self._client_id}-admin",
        )
        await admin.start()
        try:
            new_topics = [
                NewTopic(
                    name=topic.name,
                    num_partitions=topic.partitions,
                    replication_factor=topic.replication_factor,
                    topic_configs={"retention.ms": str(topic.retention_ms), **topic.extra_config},
                )
                for topic in topics
            ]
            await admin.create_topics(new_topics)
            logger.info("bus_topics_created", topics=[t.name for t in topics])
        except TopicAlreadyExistsError:
            logger.info("bus_topics_already_exist", topics=[t.name for t in topics])
        except KafkaError as e:
            logger.warning("bus_topic_creation_failed", error=str(e))
        finally:
            await admin.close()

    async def publish(
        self,
        topic: str,
        key: str,
        record: Record,
        timestamp_ms: int | None = None,
        partition: int | None = None,
    ) -> None:
        if self._producer is None:
            raise BusPublishError("Bus not connected. Call connect() first.")
        try:
            await self._producer.send_and_wait(
                topic,
                value=encode_record(record),
                key=key.encode("utf-8"),
                partition=partition,
                timestamp_ms=timestamp_ms,
            )
        except KafkaError as e:
            raise BusPublishError(f"publish to {topic} failed: {e}") from e

    async def subscribe(self, topic: str, group_id: str) -> AsyncIterator[BusMessage]:
        consumer = AIOKafkaConsumer(
            topic,
            bootstrap_servers=self._bootstrap,
            client_id=self._client_id,
            group_id=group_id,
            auto_offset_reset="latest",
        )
        await consumer.start()
        self._consumers.add(consumer)
        logger.info("bus_subscribed", topic=topic, group_id=group_id)
        try:
            async for msg in consumer:
                yield BusMessage(
                    topic=msg.topic,
                    key=msg.key.decode("utf-8") if msg.key is not None else None,
                    value=msg.value,
                    partition=msg.partition,
                    offset=msg.offset,
                    timestamp_ms=msg.timestamp,
                )
        finally:
            if consumer in self._consumers:
                self._consumers.discard(consumer)
                await consumer.stop()
