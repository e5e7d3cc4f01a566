"""Context variables for structured logging."""

from contextvars import ContextVar
from typing import Dict, Optional

_session_id: ContextVar[str] = ContextVar("session_id", default="")
_profile: ContextVar[str] = ContextVar("profile", default="")
_subject: ContextVar[str] = ContextVar("subject", default="")
_topic: ContextVar[str] = ContextVar("topic", default="")


def set_log_context(
    session_id: Optional[str] = None,
    profile: Optional[str] = None,
    subject: Optional[str] = None,
    topic: Optional[str] = None,
) -> None:
    if session_id is not None:
        _session_id.set(session_id)
    if profile is not None:
        _profile.set(profile)
    if subject is not None:
        _subject.set(subject)
    if topic is not None:
        _topic.set(topic)


def get_log_context() -> Dict[str, str]:
    return {
        "session_id": _session_id.get(),
        "profile": _profile.get(),
        "subject": _subject.get(),
        "topic": _topic.get(),
    }


def clear_log_context() -> None:
    _session_id.set("")
    _profile.set("")
    _subject.set("")
    _topic.set("")
