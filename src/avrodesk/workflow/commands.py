"""Background work requested by the workflow engine.

Commands are plain data; the runner executes them and answers each with
exactly one outcome event (CloseConsumer has none).
"""

from dataclasses import dataclass
from typing import Union

from avrodesk.avro.schema import CompiledSchema
from avrodesk.kafka.consumer import FETCH_MAX_MESSAGES, FETCH_TIMEOUT_SECONDS
from avrodesk.kafka.producer import PUBLISH_TIMEOUT_SECONDS


@dataclass(frozen=True)
class LoadSubjects:
    pass


@dataclass(frozen=True)
class FetchSchema:
    token: int
    subject: str


@dataclass(frozen=True)
class Publish:
    token: int
    topic: str
    schema_id: int
    key: str | None
    payload: bytes
    timeout: float = PUBLISH_TIMEOUT_SECONDS


@dataclass(frozen=True)
class OpenConsumer:
    consumer_id: int
    topic: str
    # Schema used to decode records fetched through this consumer
    compiled: CompiledSchema | None = None
    # Registry id of that schema; records framed with another id are not decoded
    schema_id: int | None = None


@dataclass(frozen=True)
class FetchMessages:
    consumer_id: int
    token: int
    max_count: int = FETCH_MAX_MESSAGES
    timeout: float = FETCH_TIMEOUT_SECONDS


@dataclass(frozen=True)
class CloseConsumer:
    consumer_id: int


@dataclass(frozen=True)
class SaveDraftFile:
    topic: str
    schema_id: int
    payload: str
    name: str | None = None


@dataclass(frozen=True)
class ListDrafts:
    token: int
    topic: str


@dataclass(frozen=True)
class LoadDraftFile:
    token: int
    topic: str
    name: str


@dataclass(frozen=True)
class OpenEditor:
    token: int
    text: str


@dataclass(frozen=True)
class CopyText:
    what: str
    text: str


Command = Union[
    LoadSubjects,
    FetchSchema,
    Publish,
    OpenConsumer,
    FetchMessages,
    CloseConsumer,
    SaveDraftFile,
    ListDrafts,
    LoadDraftFile,
    OpenEditor,
    CopyText,
]
