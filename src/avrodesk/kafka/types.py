"""Message types exchanged with the Kafka gateways."""

from dataclasses import dataclass
from datetime import UTC, datetime

from avrodesk.avro.codec import decode_message, unframe
from avrodesk.avro.schema import CompiledSchema
from core.errors.exceptions import PayloadValidationError

__all__ = [
    "RawRecord",
    "ProduceResult",
    "FetchResult",
    "ConsumedMessage",
    "from_consumer_record",
    "to_consumed_message",
    "subject_to_topic",
]


@dataclass(frozen=True)
class RawRecord:
    """Undecoded record read from a topic."""

    topic: str
    partition: int
    offset: int
    timestamp: int
    key: bytes | None = None
    value: bytes | None = None


@dataclass(frozen=True)
class ProduceResult:
    """Confirmation of a published message."""

    topic: str
    partition: int
    offset: int


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one bounded fetch.

    timed_out is set when the deadline passed before max_count records
    arrived; a timed-out result with records is still a success.
    """

    records: tuple[RawRecord, ...]
    timed_out: bool = False


@dataclass(frozen=True)
class ConsumedMessage:
    """A record prepared for display."""

    key: str
    value: str
    partition: int
    offset: int
    timestamp: datetime | None
    schema_id: int | None = None
    decode_error: str | None = None


def from_consumer_record(record) -> RawRecord:
    """Convert aiokafka ConsumerRecord to RawRecord."""
    return RawRecord(
        topic=record.topic,
        partition=record.partition,
        offset=record.offset,
        timestamp=record.timestamp,
        key=record.key,
        value=record.value,
    )


def to_consumed_message(
    record: RawRecord,
    compiled: CompiledSchema | None,
    expected_schema_id: int | None = None,
) -> ConsumedMessage:
    """Decode a raw record's value with the schema being viewed.

    Avro binary is not self-describing, so when expected_schema_id is given
    a record framed with any other id is not decoded. Records that are not
    framed, were written with another schema, or do not decode are shown
    as text with the reason in decode_error.
    """
    raw = record.value or b""
    schema_id: int | None = None
    decode_error: str | None = None
    try:
        schema_id, _ = unframe(raw)
        if compiled is None:
            raise PayloadValidationError("no Avro schema to decode with")
        if expected_schema_id is not None and schema_id != expected_schema_id:
            raise PayloadValidationError(
                f"written with schema id {schema_id}, viewing schema id {expected_schema_id}"
            )
        value = decode_message(compiled, raw)
    except PayloadValidationError as e:
        decode_error = e.message
        value = raw.decode("utf-8", errors="replace")

    timestamp = (
        datetime.fromtimestamp(record.timestamp / 1000, tz=UTC)
        if record.timestamp is not None and record.timestamp >= 0
        else None
    )
    return ConsumedMessage(
        key=(record.key or b"").decode("utf-8", errors="replace"),
        value=value,
        partition=record.partition,
        offset=record.offset,
        timestamp=timestamp,
        schema_id=schema_id,
        decode_error=decode_error,
    )


def subject_to_topic(subject: str) -> str:
    """Topic for a subject: strip a trailing -value or -key."""
    for suffix in ("-value", "-key"):
        if subject.endswith(suffix):
            return subject[: -len(suffix)]
    return subject
