"""Bounded, group-less Kafka consumer for inspecting a topic."""

import asyncio
import logging

from aiokafka import AIOKafkaConsumer
from aiokafka.errors import KafkaError
from aiokafka.structs import TopicPartition

from avrodesk.kafka.security import build_kafka_security_config
from avrodesk.kafka.types import FetchResult, RawRecord, from_consumer_record
from config.config import KafkaConfig
from core.errors.exceptions import BrokerError

logger = logging.getLogger(__name__)

FETCH_MAX_MESSAGES = 10
FETCH_TIMEOUT_SECONDS = 5.0
# Once records have arrived, a poll this long with nothing new ends the fetch
IDLE_POLL_SECONDS = 0.5


class TopicConsumer:
    """Reads a topic from the beginning of every partition.

    No consumer group is joined and no offsets are committed. Successive
    fetches continue from where the previous one stopped.
    """

    def __init__(self, config: KafkaConfig, topic: str):
        self.config = config
        self.topic = topic
        self._consumer: AIOKafkaConsumer | None = None
        self._running = False
        self._fetching = False

    def _build_kafka_config(self) -> dict:
        kafka_consumer_config = {
            "bootstrap_servers": self.config.bootstrap_servers,
            "client_id": self.config.client_id,
            "group_id": None,
            "enable_auto_commit": False,
            "auto_offset_reset": "earliest",
            "request_timeout_ms": self.config.request_timeout_ms,
            "metadata_max_age_ms": self.config.metadata_max_age_ms,
            "connections_max_idle_ms": self.config.connections_max_idle_ms,
        }
        kafka_consumer_config.update(build_kafka_security_config(self.config))
        return kafka_consumer_config

    async def open(self) -> None:
        """Connect, assign every partition of the topic and seek to the start.

        Raises:
            BrokerError: if Kafka is unreachable or the topic does not exist
        """
        if self._running:
            logger.warning("Consumer already running, ignoring duplicate open call")
            return
        if not self.config.is_configured:
            raise BrokerError("Kafka is not configured for this profile")

        logger.info("Opening consumer", extra={"message_topic": self.topic})
        consumer = AIOKafkaConsumer(**self._build_kafka_config())
        try:
            await consumer.start()
            await consumer.topics()
            partitions = consumer.partitions_for_topic(self.topic)
            if not partitions:
                raise BrokerError(f"Topic '{self.topic}' not found")
            assignment = [TopicPartition(self.topic, p) for p in sorted(partitions)]
            consumer.assign(assignment)
            await consumer.seek_to_beginning(*assignment)
        except KafkaError as e:
            await consumer.stop()
            raise BrokerError(f"Cannot open consumer for '{self.topic}': {e}", cause=e) from e
        except (BrokerError, asyncio.CancelledError):
            await consumer.stop()
            raise

        self._consumer = consumer
        self._running = True
        logger.info(
            "Consumer opened",
            extra={"message_topic": self.topic, "message_count": len(assignment)},
        )

    async def fetch(
        self,
        max_count: int = FETCH_MAX_MESSAGES,
        timeout: float = FETCH_TIMEOUT_SECONDS,
    ) -> FetchResult:
        """Read at most max_count records within timeout seconds.

        Stops early when a poll returns nothing. A short batch is not an
        error; only a failure before any record arrived is raised.
        """
        if not self._running or self._consumer is None:
            raise BrokerError("Consumer is not open")
        if self._fetching:
            raise BrokerError("A fetch is already in progress on this consumer")

        self._fetching = True
        try:
            return await self._fetch(max_count, timeout)
        finally:
            self._fetching = False

    async def _fetch(self, max_count: int, timeout: float) -> FetchResult:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        records: list[RawRecord] = []
        timed_out = False

        while len(records) < max_count:
            remaining = deadline - loop.time()
            if remaining <= 0:
                timed_out = True
                break
            wait = min(remaining, IDLE_POLL_SECONDS) if records else remaining
            try:
                batch = await self._consumer.getmany(
                    timeout_ms=int(wait * 1000),
                    max_records=max_count - len(records),
                )
            except KafkaError as e:
                if not records:
                    raise BrokerError(f"Fetch from '{self.topic}' failed: {e}", cause=e) from e
                logger.warning(
                    "Fetch interrupted, returning partial batch",
                    extra={"message_topic": self.topic, "message_count": len(records), "error": str(e)},
                )
                break

            polled = [from_consumer_record(r) for rs in batch.values() for r in rs]
            if not polled:
                timed_out = not records or loop.time() >= deadline
                break
            polled.sort(key=lambda r: (r.timestamp, r.partition, r.offset))
            records.extend(polled[: max_count - len(records)])

        logger.info(
            "Fetched messages",
            extra={"message_topic": self.topic, "message_count": len(records)},
        )
        return FetchResult(records=tuple(records), timed_out=timed_out)

    async def close(self) -> None:
        if self._consumer is None:
            return

        logger.info("Closing consumer", extra={"message_topic": self.topic})
        try:
            await self._consumer.stop()
        except KafkaError as e:
            logger.error(
                "Error closing consumer",
                extra={"message_topic": self.topic, "error": str(e)},
                exc_info=True,
            )
        finally:
            self._consumer = None
            self._running = False
