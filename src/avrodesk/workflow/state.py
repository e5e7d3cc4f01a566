"""Session state: one mode variant plus the data every mode shares.

Modes are frozen dataclasses forming a tagged union; each carries only
the data that is meaningful while it is active, so a draft cannot exist
outside the sending workflow and a consumed-message buffer cannot outlive
Consuming mode.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Union

from avrodesk.avro.schema import CompiledSchema, compile_schema
from avrodesk.kafka.types import ConsumedMessage, subject_to_topic
from avrodesk.registry.models import SchemaVersion
from avrodesk.workflow.textbuffer import TextBuffer
from core.errors.exceptions import SchemaError

PAGE_SIZE = 10


class Pane(Enum):
    SUBJECTS = "subjects"
    DETAIL = "detail"


class DraftField(Enum):
    BODY = "body"
    KEY = "key"


class StatusLevel(Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Status:
    text: str = ""
    level: StatusLevel = StatusLevel.INFO

    @classmethod
    def info(cls, text: str) -> "Status":
        return cls(text, StatusLevel.INFO)

    @classmethod
    def success(cls, text: str) -> "Status":
        return cls(text, StatusLevel.SUCCESS)

    @classmethod
    def error(cls, text: str) -> "Status":
        return cls(text, StatusLevel.ERROR)


@dataclass(frozen=True)
class SchemaContext:
    """Registry metadata and compiled schema for the selected subject."""

    subject: str
    version: int
    schema_id: int
    schema_type: str
    raw: str
    pretty: str
    compiled: CompiledSchema | None = None
    compile_error: str | None = None

    @property
    def topic(self) -> str:
        return subject_to_topic(self.subject)

    @property
    def usable(self) -> bool:
        """True when payloads can be drafted and decoded with this schema."""
        return self.compiled is not None

    @property
    def unusable_reason(self) -> str:
        if self.compile_error:
            return f"Schema cannot be used: {self.compile_error}"
        return f"{self.schema_type} schemas cannot be drafted or consumed (Avro only)"

    @classmethod
    def from_version(cls, version: SchemaVersion) -> "SchemaContext":
        """Build a context, compiling the schema when it is Avro."""
        compiled = None
        compile_error = None
        pretty = version.schema_text
        if version.is_avro:
            try:
                compiled = compile_schema(version.schema_text)
                pretty = compiled.pretty
            except SchemaError as e:
                compile_error = e.message
        return cls(
            subject=version.subject,
            version=version.version,
            schema_id=version.id,
            schema_type=version.schema_type,
            raw=version.schema_text,
            pretty=pretty,
            compiled=compiled,
            compile_error=compile_error,
        )


@dataclass(frozen=True)
class Draft:
    """Candidate payload, optional message key and which of the two has focus."""

    body: TextBuffer
    key: TextBuffer = field(default_factory=lambda: TextBuffer(multiline=False))
    focus: DraftField = DraftField.BODY

    @classmethod
    def from_text(cls, text: str) -> "Draft":
        return cls(body=TextBuffer.from_text(text))

    @property
    def message_key(self) -> str | None:
        return self.key.text.strip() or None


@dataclass(frozen=True)
class SubjectBrowser:
    """Subject list with a case-insensitive substring filter and a selection."""

    subjects: tuple[str, ...] = ()
    filter: str = ""
    index: int = 0

    @property
    def filtered(self) -> tuple[str, ...]:
        if not self.filter:
            return self.subjects
        needle = self.filter.lower()
        return tuple(s for s in self.subjects if needle in s.lower())

    @property
    def selected(self) -> str | None:
        visible = self.filtered
        return visible[self.index] if 0 <= self.index < len(visible) else None

    def with_filter(self, text: str) -> "SubjectBrowser":
        return replace(self, filter=text, index=0)

    def move(self, delta: int) -> "SubjectBrowser":
        count = len(self.filtered)
        if count == 0:
            return replace(self, index=0)
        return replace(self, index=max(0, min(count - 1, self.index + delta)))


# =============================================================================
# Modes
# =============================================================================


@dataclass(frozen=True)
class Loading:
    """Waiting for the initial subject list."""


@dataclass(frozen=True)
class Browsing:
    """Subject list shown, no schema selected yet."""


@dataclass(frozen=True)
class Viewing:
    context: SchemaContext
    scroll: int = 0


@dataclass(frozen=True)
class Searching:
    """Live filter editing; resume is the Browsing or Viewing mode to return to."""

    resume: Union[Browsing, Viewing]


@dataclass(frozen=True)
class SendDraft:
    context: SchemaContext
    draft: Draft
    # Token of an outstanding editor run or draft load whose result replaces the body
    pending: int | None = None


@dataclass(frozen=True)
class Sending:
    context: SchemaContext
    draft: Draft
    token: int


@dataclass(frozen=True)
class SaveDraft:
    context: SchemaContext
    draft: Draft
    name: TextBuffer = field(default_factory=lambda: TextBuffer(multiline=False))


@dataclass(frozen=True)
class LoadDraft:
    context: SchemaContext
    draft: Draft
    token: int
    # None while the listing is outstanding
    names: tuple[str, ...] | None = None
    index: int = 0


@dataclass(frozen=True)
class Consuming:
    context: SchemaContext
    consumer_id: int
    ready: bool = False
    messages: tuple[ConsumedMessage, ...] = ()
    index: int = 0
    fetch_token: int | None = None

    @property
    def fetching(self) -> bool:
        return self.fetch_token is not None

    @property
    def current(self) -> ConsumedMessage | None:
        if 0 <= self.index < len(self.messages):
            return self.messages[self.index]
        return None


Mode = Union[
    Loading,
    Browsing,
    Searching,
    Viewing,
    SendDraft,
    Sending,
    SaveDraft,
    LoadDraft,
    Consuming,
]


@dataclass(frozen=True)
class PendingFetch:
    subject: str
    token: int


@dataclass(frozen=True)
class Session:
    """Everything the engine owns between two events."""

    mode: Mode = field(default_factory=Loading)
    browser: SubjectBrowser = field(default_factory=SubjectBrowser)
    focus: Pane = Pane.SUBJECTS
    status: Status = field(default_factory=Status)
    pending_fetch: PendingFetch | None = None
    kafka_enabled: bool = True
    profile_name: str = ""
    next_token: int = 1
    quit: bool = False

    def issue_token(self) -> tuple["Session", int]:
        return replace(self, next_token=self.next_token + 1), self.next_token

    @property
    def context(self) -> SchemaContext | None:
        mode = self.mode.resume if isinstance(self.mode, Searching) else self.mode
        return getattr(mode, "context", None)
