"""Kafka gateways: producer, consumer and message types."""

from avrodesk.kafka.consumer import FETCH_MAX_MESSAGES, FETCH_TIMEOUT_SECONDS, TopicConsumer
from avrodesk.kafka.producer import PUBLISH_TIMEOUT_SECONDS, MessageProducer
from avrodesk.kafka.types import (
    ConsumedMessage,
    FetchResult,
    ProduceResult,
    RawRecord,
    subject_to_topic,
    to_consumed_message,
)

__all__ = [
    "MessageProducer",
    "TopicConsumer",
    "ConsumedMessage",
    "FetchResult",
    "ProduceResult",
    "RawRecord",
    "subject_to_topic",
    "to_consumed_message",
    "FETCH_MAX_MESSAGES",
    "FETCH_TIMEOUT_SECONDS",
    "PUBLISH_TIMEOUT_SECONDS",
]
