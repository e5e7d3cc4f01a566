"""Events consumed by the workflow engine.

KeyPressed comes from the terminal; every other event is the typed outcome
of a command. Outcomes carry either a result or an error, never both, and
the tag (token or consumer id) of the request they answer.
"""

from dataclasses import dataclass
from typing import Union

from avrodesk.drafts import SavedDraft
from avrodesk.kafka.types import ConsumedMessage, ProduceResult
from avrodesk.workflow.state import SchemaContext
from core.errors.exceptions import AvrodeskError


@dataclass(frozen=True)
class KeyPressed:
    key: str


@dataclass(frozen=True)
class SubjectsLoaded:
    subjects: tuple[str, ...] = ()
    error: AvrodeskError | None = None


@dataclass(frozen=True)
class SchemaFetched:
    token: int
    subject: str
    context: SchemaContext | None = None
    error: AvrodeskError | None = None


@dataclass(frozen=True)
class Published:
    token: int
    result: ProduceResult | None = None
    error: AvrodeskError | None = None


@dataclass(frozen=True)
class ConsumerOpened:
    consumer_id: int
    error: AvrodeskError | None = None


@dataclass(frozen=True)
class MessagesFetched:
    consumer_id: int
    token: int
    messages: tuple[ConsumedMessage, ...] = ()
    timed_out: bool = False
    error: AvrodeskError | None = None


@dataclass(frozen=True)
class DraftSaved:
    path: str | None = None
    error: AvrodeskError | None = None


@dataclass(frozen=True)
class DraftsListed:
    token: int
    names: tuple[str, ...] = ()
    error: AvrodeskError | None = None


@dataclass(frozen=True)
class DraftLoaded:
    token: int
    draft: SavedDraft | None = None
    error: AvrodeskError | None = None


@dataclass(frozen=True)
class EditorClosed:
    token: int
    text: str | None = None
    error: AvrodeskError | None = None


@dataclass(frozen=True)
class Copied:
    what: str
    error: AvrodeskError | None = None


Event = Union[
    KeyPressed,
    SubjectsLoaded,
    SchemaFetched,
    Published,
    ConsumerOpened,
    MessagesFetched,
    DraftSaved,
    DraftsListed,
    DraftLoaded,
    EditorClosed,
    Copied,
]
