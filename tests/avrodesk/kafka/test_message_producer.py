"""
Tests for the message producer.

AIOKafkaProducer is patched so that no broker is needed.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiokafka.errors import KafkaConnectionError, KafkaTimeoutError

from avrodesk.kafka.producer import MessageProducer
from avrodesk.kafka.types import ProduceResult
from config.config import KafkaConfig
from core.errors.exceptions import BrokerError


@pytest.fixture
def kafka_config():
    return KafkaConfig(bootstrap_servers="localhost:9092")


@pytest.fixture
def mock_aiokafka_producer():
    producer = MagicMock()
    producer.start = AsyncMock()
    producer.stop = AsyncMock()
    producer.flush = AsyncMock()
    metadata = MagicMock(topic="orders", partition=2, offset=17)
    producer.send_and_wait = AsyncMock(return_value=metadata)
    return producer


@pytest.fixture
def patched_producer(mock_aiokafka_producer):
    with patch(
        "avrodesk.kafka.producer.AIOKafkaProducer", return_value=mock_aiokafka_producer
    ) as factory:
        yield factory


class TestPublish:
    async def test_frames_payload_and_returns_metadata(
        self, kafka_config, mock_aiokafka_producer, patched_producer
    ):
        producer = MessageProducer(kafka_config)

        result = await producer.publish("orders", 5, "order-1", b"\x01\x02\x03")

        assert result == ProduceResult(topic="orders", partition=2, offset=17)
        mock_aiokafka_producer.send_and_wait.assert_awaited_once_with(
            "orders",
            value=b"\x00\x00\x00\x00\x05\x01\x02\x03",
            key=b"order-1",
        )

    async def test_empty_key_is_sent_as_none(
        self, kafka_config, mock_aiokafka_producer, patched_producer
    ):
        producer = MessageProducer(kafka_config)
        await producer.publish("orders", 5, "", b"")
        assert mock_aiokafka_producer.send_and_wait.call_args.kwargs["key"] is None

    async def test_starts_once(self, kafka_config, mock_aiokafka_producer, patched_producer):
        producer = MessageProducer(kafka_config)
        await producer.publish("orders", 5, None, b"")
        await producer.publish("orders", 5, None, b"")
        patched_producer.assert_called_once()
        assert patched_producer.call_args.kwargs["acks"] == "all"
        mock_aiokafka_producer.start.assert_awaited_once()

    async def test_broker_rejection(self, kafka_config, mock_aiokafka_producer, patched_producer):
        mock_aiokafka_producer.send_and_wait.side_effect = KafkaTimeoutError()
        producer = MessageProducer(kafka_config)
        with pytest.raises(BrokerError, match="Publish to 'orders' failed"):
            await producer.publish("orders", 5, None, b"")

    async def test_timeout(self, kafka_config, mock_aiokafka_producer, patched_producer):
        async def never_acked(*args, **kwargs):
            await asyncio.sleep(10)

        mock_aiokafka_producer.send_and_wait.side_effect = never_acked
        producer = MessageProducer(kafka_config)
        with pytest.raises(BrokerError, match="timed out"):
            await producer.publish("orders", 5, None, b"", timeout=0.01)

    async def test_timeout_covers_first_connect(
        self, kafka_config, mock_aiokafka_producer, patched_producer
    ):
        async def slow_connect():
            await asyncio.sleep(10)

        mock_aiokafka_producer.start.side_effect = slow_connect
        producer = MessageProducer(kafka_config)
        loop = asyncio.get_running_loop()
        started_at = loop.time()

        with pytest.raises(BrokerError, match="timed out"):
            await producer.publish("orders", 5, None, b"", timeout=0.05)

        assert loop.time() - started_at < 1.0
        mock_aiokafka_producer.send_and_wait.assert_not_awaited()
        mock_aiokafka_producer.stop.assert_awaited_once()

        # The next publish connects again
        mock_aiokafka_producer.start.side_effect = None
        result = await producer.publish("orders", 5, None, b"")
        assert result.offset == 17

    async def test_connection_failure(self, kafka_config, mock_aiokafka_producer, patched_producer):
        mock_aiokafka_producer.start.side_effect = KafkaConnectionError("no brokers")
        producer = MessageProducer(kafka_config)
        with pytest.raises(BrokerError, match="Cannot connect to Kafka"):
            await producer.publish("orders", 5, None, b"")
        mock_aiokafka_producer.stop.assert_awaited_once()

    async def test_requires_kafka_configuration(self):
        producer = MessageProducer(KafkaConfig())
        with pytest.raises(BrokerError, match="not configured"):
            await producer.publish("orders", 5, None, b"")


class TestStop:
    async def test_stop_flushes(self, kafka_config, mock_aiokafka_producer, patched_producer):
        producer = MessageProducer(kafka_config)
        await producer.start()
        await producer.stop()
        mock_aiokafka_producer.flush.assert_awaited_once()
        mock_aiokafka_producer.stop.assert_awaited_once()

    async def test_stop_without_start(self, kafka_config):
        await MessageProducer(kafka_config).stop()
