"""Kafka producer publishing framed Avro payloads."""

import asyncio
import logging

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from avrodesk.avro.codec import frame
from avrodesk.kafka.security import build_kafka_security_config
from avrodesk.kafka.types import ProduceResult
from config.config import KafkaConfig
from core.errors.exceptions import BrokerError

logger = logging.getLogger(__name__)

PUBLISH_TIMEOUT_SECONDS = 10.0


class MessageProducer:
    """Async producer started on first publish and stopped on shutdown."""

    def __init__(self, config: KafkaConfig):
        self.config = config
        self._producer: AIOKafkaProducer | None = None
        self._started = False

    async def start(self) -> None:
        if self._started:
            logger.warning("Producer already started, ignoring duplicate start call")
            return
        if not self.config.is_configured:
            raise BrokerError("Kafka is not configured for this profile")

        logger.info("Starting message producer")

        kafka_producer_config = {
            "bootstrap_servers": self.config.bootstrap_servers,
            "client_id": self.config.client_id,
            "request_timeout_ms": self.config.request_timeout_ms,
            "metadata_max_age_ms": self.config.metadata_max_age_ms,
            "connections_max_idle_ms": self.config.connections_max_idle_ms,
            "acks": "all",
        }
        kafka_producer_config.update(build_kafka_security_config(self.config))

        producer = AIOKafkaProducer(**kafka_producer_config)
        try:
            await producer.start()
        except KafkaError as e:
            await producer.stop()
            raise BrokerError(f"Cannot connect to Kafka: {e}", cause=e) from e
        except asyncio.CancelledError:
            await producer.stop()
            raise

        self._producer = producer
        self._started = True
        logger.info(
            "Message producer started successfully",
            extra={"bootstrap_servers": self.config.bootstrap_servers},
        )

    async def stop(self) -> None:
        if self._producer is None:
            logger.debug("Producer already stopped")
            return

        logger.info("Stopping message producer")
        try:
            if self._started:
                await self._producer.flush()
            await self._producer.stop()
            logger.info("Message producer stopped successfully")
        except KafkaError as e:
            logger.error(
                "Error stopping message producer",
                extra={"error": str(e)},
                exc_info=True,
            )
        finally:
            self._producer = None
            self._started = False

    async def _start_and_send(self, topic: str, value: bytes, key: bytes | None):
        if not self._started:
            await self.start()
        if self._producer is None:
            raise RuntimeError("Producer not started. Call start() first.")
        return await self._producer.send_and_wait(topic, value=value, key=key)

    async def publish(
        self,
        topic: str,
        schema_id: int,
        key: str | None,
        payload: bytes,
        timeout: float = PUBLISH_TIMEOUT_SECONDS,
    ) -> ProduceResult:
        """Frame and publish an encoded payload, waiting for the broker ack.

        The timeout covers connecting on the first publish as well as the
        send itself.

        Raises:
            BrokerError: on connection failure, broker rejection or timeout
        """
        value = frame(schema_id, payload)
        key_bytes = key.encode("utf-8") if key else None

        try:
            metadata = await asyncio.wait_for(
                self._start_and_send(topic, value, key_bytes),
                timeout=timeout,
            )
        except TimeoutError as e:
            logger.error(
                "Publish timed out",
                extra={"message_topic": topic, "timeout_seconds": timeout},
            )
            raise BrokerError(f"Publish to '{topic}' timed out after {timeout:.0f}s", cause=e) from e
        except KafkaError as e:
            logger.error(
                "Failed to publish message",
                extra={"message_topic": topic, "schema_id": schema_id, "error": str(e)},
                exc_info=True,
            )
            raise BrokerError(f"Publish to '{topic}' failed: {e}", cause=e) from e

        result = ProduceResult(topic=metadata.topic, partition=metadata.partition, offset=metadata.offset)
        logger.info(
            "Message published",
            extra={
                "message_topic": result.topic,
                "message_partition": result.partition,
                "message_offset": result.offset,
                "schema_id": schema_id,
                "payload_bytes": len(value),
            },
        )
        return result
