"""Saved drafts: JSON files per topic under ~/.config/avrodesk/events."""

import json
import logging
import os
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from core.errors.exceptions import DraftStoreError

logger = logging.getLogger(__name__)

DEFAULT_DRAFTS_DIR = Path.home() / ".config" / "avrodesk" / "events"
TIMESTAMP_NAME_FORMAT = "%Y-%m-%d_%H-%M-%S"


class SavedDraft(BaseModel):
    """A persisted draft payload.

    Attributes:
        topic: Topic the draft was written for
        schema_id: Registry schema id at the time of saving
        payload: Draft JSON text, exactly as edited
        timestamp: When the draft was saved
        name: File name the draft was stored under
    """

    topic: str
    schema_id: int = Field(..., ge=0)
    payload: str
    timestamp: datetime
    name: str


def _safe_component(value: str, what: str) -> str:
    if not value or value in (".", "..") or "/" in value or "\\" in value or "\x00" in value:
        raise DraftStoreError(f"invalid {what}: {value!r}")
    return value


class DraftStore:
    """File-backed draft persistence, one directory per topic."""

    def __init__(self, base_dir: Path | None = None):
        self.base_dir = base_dir or DEFAULT_DRAFTS_DIR

    def _topic_dir(self, topic: str) -> Path:
        return self.base_dir / _safe_component(topic, "topic")

    def save(self, topic: str, schema_id: int, payload: str, name: str | None = None) -> Path:
        """Write a draft and return its path.

        The name defaults to the current timestamp; ".json" is appended when
        missing and "_N" is added before it when the file already exists.
        """
        topic_dir = self._topic_dir(topic)
        filename = _safe_component(name.strip(), "draft name") if name and name.strip() else (
            datetime.now().strftime(TIMESTAMP_NAME_FORMAT)
        )
        if not filename.endswith(".json"):
            filename += ".json"

        try:
            topic_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
            path = topic_dir / filename
            stem = filename[: -len(".json")]
            counter = 1
            while path.exists():
                path = topic_dir / f"{stem}_{counter}.json"
                counter += 1

            draft = SavedDraft(
                topic=topic,
                schema_id=schema_id,
                payload=payload,
                timestamp=datetime.now().astimezone(),
                name=path.name,
            )
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(draft.model_dump_json(indent=2))
        except OSError as e:
            raise DraftStoreError(f"cannot save draft: {e}", cause=e) from e

        logger.info("Saved draft", extra={"path": str(path), "message_topic": topic})
        return path

    def list(self, topic: str) -> list[str]:
        """Draft file names for a topic, newest first."""
        topic_dir = self._topic_dir(topic)
        if not topic_dir.is_dir():
            return []
        try:
            files = [p for p in topic_dir.iterdir() if p.is_file() and p.suffix == ".json"]
            files.sort(key=lambda p: p.stat().st_mtime, reverse=True)
        except OSError as e:
            raise DraftStoreError(f"cannot list drafts: {e}", cause=e) from e
        return [p.name for p in files]

    def load(self, topic: str, name: str) -> SavedDraft:
        path = self._topic_dir(topic) / _safe_component(name, "draft name")
        try:
            return SavedDraft.model_validate_json(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise DraftStoreError(f"cannot read draft {name!r}: {e}", cause=e) from e
        except ValidationError as e:
            raise DraftStoreError(f"draft {name!r} is not a valid draft file", cause=e) from e
