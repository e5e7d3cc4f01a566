"""Workflow engine: the only place session state changes.

step() is a pure function from (session, event) to (session, commands).
Key presses are dispatched by the active mode; outcome events are matched
against the token or consumer id they answer and discarded when the mode
that requested them is gone. Nothing here blocks or touches the network.
"""

import logging
from dataclasses import replace
from typing import Callable

from avrodesk.avro.codec import validate_and_encode
from avrodesk.avro.template import render_template
from avrodesk.workflow.commands import (
    CloseConsumer,
    Command,
    CopyText,
    FetchMessages,
    FetchSchema,
    ListDrafts,
    LoadDraftFile,
    LoadSubjects,
    OpenConsumer,
    OpenEditor,
    Publish,
    SaveDraftFile,
)
from avrodesk.workflow.events import (
    ConsumerOpened,
    Copied,
    DraftLoaded,
    DraftSaved,
    DraftsListed,
    EditorClosed,
    Event,
    KeyPressed,
    MessagesFetched,
    Published,
    SchemaFetched,
    SubjectsLoaded,
)
from avrodesk.workflow.state import (
    PAGE_SIZE,
    Browsing,
    Consuming,
    Draft,
    DraftField,
    LoadDraft,
    Loading,
    Pane,
    PendingFetch,
    SaveDraft,
    SchemaContext,
    Searching,
    SendDraft,
    Sending,
    Session,
    Status,
    Viewing,
)
from avrodesk.workflow.textbuffer import TextBuffer, edit
from core.errors.exceptions import PayloadValidationError, SchemaError
from core.logging.utilities import log_with_context

logger = logging.getLogger(__name__)

Transition = tuple[Session, list[Command]]

QUIT_KEYS = frozenset({"q", "ctrl+c"})
FETCH_KEYS = frozenset({"enter", "ctrl+m", "f"})
NAVIGATION = {
    "up": -1,
    "k": -1,
    "down": 1,
    "j": 1,
    "pgup": -PAGE_SIZE,
    "ctrl+u": -PAGE_SIZE,
    "pgdown": PAGE_SIZE,
    "ctrl+d": PAGE_SIZE,
}


def _unchanged(session: Session) -> Transition:
    return session, []


def _discard(session: Session, event: Event) -> Transition:
    log_with_context(
        logger,
        logging.DEBUG,
        "Discarded stale completion",
        event=type(event).__name__,
        mode=type(session.mode).__name__,
        token=getattr(event, "token", getattr(event, "consumer_id", None)),
    )
    return session, []


def _quit(session: Session) -> Transition:
    return replace(session, quit=True), []


def _with_status(session: Session, status: Status, **changes) -> Transition:
    return replace(session, status=status, **changes), []


# =============================================================================
# Shared key handling
# =============================================================================


def _global_key(session: Session, key: str) -> Transition | None:
    """Keys available while Loading, Browsing and Viewing; None if unhandled."""
    if key in QUIT_KEYS:
        return _quit(session)
    if isinstance(session.mode, Loading):
        return None
    if key == "/":
        return replace(session, mode=Searching(resume=session.mode)), []
    if key == "tab":
        focus = Pane.DETAIL if session.focus is Pane.SUBJECTS else Pane.SUBJECTS
        return replace(session, focus=focus), []
    if key == "y":
        return _copy_selection(session)
    return None


def _copy_selection(session: Session) -> Transition:
    mode = session.mode
    if isinstance(mode, Viewing):
        return session, [CopyText("schema", mode.context.pretty)]
    subject = session.browser.selected
    if subject is None:
        return _with_status(session, Status.error("Nothing to copy"))
    return session, [CopyText("subject name", subject)]


def _subject_list_key(session: Session, key: str) -> Transition:
    browser = session.browser
    if key in NAVIGATION:
        return replace(session, browser=browser.move(NAVIGATION[key])), []
    if key in ("home", "g"):
        return replace(session, browser=replace(browser, index=0)), []
    if key in ("end", "G"):
        return replace(session, browser=browser.move(len(browser.filtered))), []
    if key in ("enter", "ctrl+m"):
        return _select_subject(session)
    return _unchanged(session)


def _select_subject(session: Session) -> Transition:
    subject = session.browser.selected
    if subject is None:
        return _unchanged(session)
    session, token = session.issue_token()
    session = replace(
        session,
        pending_fetch=PendingFetch(subject, token),
        status=Status.info(f"Loading schema for '{subject}'..."),
    )
    return session, [FetchSchema(token, subject)]


# =============================================================================
# Key handling per mode
# =============================================================================


def _loading_key(session: Session, key: str) -> Transition:
    return _global_key(session, key) or _unchanged(session)


def _browsing_key(session: Session, key: str) -> Transition:
    handled = _global_key(session, key)
    if handled is not None:
        return handled
    return _subject_list_key(session, key)


def _viewing_key(session: Session, key: str) -> Transition:
    handled = _global_key(session, key)
    if handled is not None:
        return handled

    mode: Viewing = session.mode
    if key in ("e", "s"):
        return _enter_send_draft(session, mode.context)
    if key == "E":
        session, commands = _enter_send_draft(session, mode.context)
        if isinstance(session.mode, SendDraft):
            return _open_editor(session)
        return session, commands
    if key == "c":
        return _enter_consuming(session, mode.context)

    if session.focus is Pane.DETAIL:
        last = max(0, len(mode.context.pretty.splitlines()) - 1)
        if key in NAVIGATION:
            scroll = max(0, min(last, mode.scroll + NAVIGATION[key]))
        elif key in ("home", "g"):
            scroll = 0
        elif key in ("end", "G"):
            scroll = last
        else:
            return _unchanged(session)
        return replace(session, mode=replace(mode, scroll=scroll)), []

    return _subject_list_key(session, key)


def _searching_key(session: Session, key: str) -> Transition:
    mode: Searching = session.mode
    browser = session.browser
    if key == "ctrl+c":
        return _quit(session)
    if key == "esc":
        return replace(session, mode=mode.resume, browser=browser.with_filter("")), []
    if key in ("enter", "ctrl+m"):
        count = len(browser.filtered)
        return _with_status(
            session,
            Status.info(f"Filter '{browser.filter}': {count} matching subjects"),
            mode=mode.resume,
        )
    if key in ("up", "down"):
        return replace(session, browser=browser.move(NAVIGATION[key])), []
    if key == "backspace":
        return replace(session, browser=browser.with_filter(browser.filter[:-1])), []
    if key == "space":
        key = " "
    if len(key) == 1 and key.isprintable():
        return replace(session, browser=browser.with_filter(browser.filter + key)), []
    return _unchanged(session)


def _send_draft_key(session: Session, key: str) -> Transition:
    mode: SendDraft = session.mode
    context, draft = mode.context, mode.draft

    if key == "ctrl+c":
        return _quit(session)
    if key == "esc":
        return _with_status(session, Status(), mode=Viewing(context))
    if key == "ctrl+s":
        return _submit(session)
    if key == "ctrl+n":
        return _with_status(
            session,
            Status.info("Draft name (empty for a timestamp), enter to save, esc to cancel"),
            mode=SaveDraft(context, draft),
        )
    if key == "ctrl+o":
        session, token = session.issue_token()
        session = replace(
            session,
            mode=LoadDraft(context, draft, token),
            status=Status.info(f"Listing saved drafts for '{context.topic}'..."),
        )
        return session, [ListDrafts(token, context.topic)]
    if key == "ctrl+e":
        return _open_editor(session)
    if key == "ctrl+y":
        return session, [CopyText("draft", draft.body.text)]
    if key == "ctrl+r":
        try:
            text = render_template(context.compiled)
        except SchemaError as e:
            return _with_status(session, Status.error(f"Cannot generate template: {e.message}"))
        fresh = replace(mode, draft=replace(draft, body=TextBuffer.from_text(text)), pending=None)
        return _with_status(session, Status.info("Draft reset to template"), mode=fresh)
    if key in ("tab", "shift+tab"):
        focus = DraftField.KEY if draft.focus is DraftField.BODY else DraftField.BODY
        return replace(session, mode=replace(mode, draft=replace(draft, focus=focus))), []

    if draft.focus is DraftField.KEY:
        draft = replace(draft, key=edit(draft.key, key))
    else:
        draft = replace(draft, body=edit(draft.body, key))
    return replace(session, mode=replace(mode, draft=draft)), []


def _sending_key(session: Session, key: str) -> Transition:
    return _unchanged(session)


def _save_draft_key(session: Session, key: str) -> Transition:
    mode: SaveDraft = session.mode
    if key == "ctrl+c":
        return _quit(session)
    if key == "esc":
        return _with_status(
            session, Status.info("Save cancelled"), mode=SendDraft(mode.context, mode.draft)
        )
    if key in ("enter", "ctrl+m"):
        command = SaveDraftFile(
            topic=mode.context.topic,
            schema_id=mode.context.schema_id,
            payload=mode.draft.body.text,
            name=mode.name.text.strip() or None,
        )
        session = replace(
            session,
            mode=SendDraft(mode.context, mode.draft),
            status=Status.info("Saving draft..."),
        )
        return session, [command]
    return replace(session, mode=replace(mode, name=edit(mode.name, key))), []


def _load_draft_key(session: Session, key: str) -> Transition:
    mode: LoadDraft = session.mode
    if key == "ctrl+c":
        return _quit(session)
    if key in ("esc", "q"):
        return _with_status(session, Status(), mode=SendDraft(mode.context, mode.draft))
    if not mode.names:
        return _unchanged(session)
    if key in ("up", "k", "down", "j"):
        index = max(0, min(len(mode.names) - 1, mode.index + NAVIGATION[key]))
        return replace(session, mode=replace(mode, index=index)), []
    if key in ("enter", "ctrl+m"):
        name = mode.names[mode.index]
        session, token = session.issue_token()
        session = replace(
            session,
            mode=SendDraft(mode.context, mode.draft, pending=token),
            status=Status.info(f"Loading draft '{name}'..."),
        )
        return session, [LoadDraftFile(token, mode.context.topic, name)]
    return _unchanged(session)


def _consuming_key(session: Session, key: str) -> Transition:
    mode: Consuming = session.mode
    if key == "ctrl+c":
        return _quit(session)
    if key == "esc":
        session = replace(session, mode=Viewing(mode.context), status=Status())
        return session, [CloseConsumer(mode.consumer_id)]
    if key in FETCH_KEYS:
        if not mode.ready:
            return _with_status(session, Status.info("Consumer is still connecting..."))
        if mode.fetching:
            return _with_status(session, Status.info("Fetch already in progress..."))
        session, token = session.issue_token()
        session = replace(
            session,
            mode=replace(mode, fetch_token=token),
            status=Status.info(f"Fetching messages from '{mode.context.topic}'..."),
        )
        return session, [FetchMessages(mode.consumer_id, token)]
    if key in ("up", "k", "down", "j") and mode.messages:
        index = max(0, min(len(mode.messages) - 1, mode.index + NAVIGATION[key]))
        return replace(session, mode=replace(mode, index=index)), []
    if key == "y" and mode.current is not None:
        return session, [CopyText("message", mode.current.value)]
    return _unchanged(session)


_KEY_HANDLERS: dict[type, Callable[[Session, str], Transition]] = {
    Loading: _loading_key,
    Browsing: _browsing_key,
    Viewing: _viewing_key,
    Searching: _searching_key,
    SendDraft: _send_draft_key,
    Sending: _sending_key,
    SaveDraft: _save_draft_key,
    LoadDraft: _load_draft_key,
    Consuming: _consuming_key,
}


# =============================================================================
# Mode entry
# =============================================================================


def _enter_send_draft(session: Session, context: SchemaContext) -> Transition:
    if not context.usable:
        return _with_status(session, Status.error(context.unusable_reason))
    try:
        text = render_template(context.compiled)
    except SchemaError as e:
        return _with_status(session, Status.error(f"Cannot generate template: {e.message}"))
    return _with_status(
        session,
        Status.info(f"Target topic '{context.topic}': ctrl+s send, esc cancel"),
        mode=SendDraft(context, Draft.from_text(text)),
        pending_fetch=None,
    )


def _open_editor(session: Session) -> Transition:
    mode: SendDraft = session.mode
    session, token = session.issue_token()
    session = replace(
        session,
        mode=replace(mode, pending=token),
        status=Status.info("Waiting for external editor..."),
    )
    return session, [OpenEditor(token, mode.draft.body.text)]


def _enter_consuming(session: Session, context: SchemaContext) -> Transition:
    if not context.usable:
        return _with_status(session, Status.error(context.unusable_reason))
    if not session.kafka_enabled:
        return _with_status(
            session, Status.error("Kafka is not configured for this profile")
        )
    session, consumer_id = session.issue_token()
    session = replace(
        session,
        mode=Consuming(context, consumer_id),
        pending_fetch=None,
        status=Status.info(f"Connecting to topic '{context.topic}'..."),
    )
    return session, [
        OpenConsumer(consumer_id, context.topic, context.compiled, context.schema_id)
    ]


def _submit(session: Session) -> Transition:
    mode: SendDraft = session.mode
    context, draft = mode.context, mode.draft
    try:
        payload = validate_and_encode(context.compiled, draft.body.text)
    except PayloadValidationError as e:
        return _with_status(session, Status.error(e.message))

    session, token = session.issue_token()
    session = replace(
        session,
        mode=Sending(context, draft, token),
        status=Status.info(f"Publishing to '{context.topic}'..."),
    )
    return session, [
        Publish(
            token=token,
            topic=context.topic,
            schema_id=context.schema_id,
            key=draft.message_key,
            payload=payload,
        )
    ]


# =============================================================================
# Outcome events
# =============================================================================


def _on_key(session: Session, event: KeyPressed) -> Transition:
    return _KEY_HANDLERS[type(session.mode)](session, event.key)


def _on_subjects_loaded(session: Session, event: SubjectsLoaded) -> Transition:
    mode = Browsing() if isinstance(session.mode, Loading) else session.mode
    if event.error is not None:
        return _with_status(
            session, Status.error(f"Failed to load subjects: {event.error.message}"), mode=mode
        )
    browser = replace(session.browser, subjects=tuple(event.subjects)).move(0)
    return _with_status(
        session,
        Status.info(f"{len(event.subjects)} subjects"),
        mode=mode,
        browser=browser,
    )


def _on_schema_fetched(session: Session, event: SchemaFetched) -> Transition:
    pending = session.pending_fetch
    if pending is None or pending.token != event.token:
        return _discard(session, event)
    session = replace(session, pending_fetch=None)

    if event.error is not None:
        return _with_status(
            session,
            Status.error(f"Failed to load schema for '{event.subject}': {event.error.message}"),
        )

    context = event.context
    mode = session.mode
    if isinstance(mode, Searching):
        mode = replace(mode, resume=Viewing(context))
    elif isinstance(mode, (Browsing, Viewing)):
        mode = Viewing(context)
    else:
        return _discard(session, event)

    if context.usable:
        status = Status.info(
            f"{context.subject} v{context.version} (id {context.schema_id}): "
            "e draft, E editor, c consume"
        )
    else:
        status = Status.error(context.unusable_reason)
    return _with_status(session, status, mode=mode)


def _on_published(session: Session, event: Published) -> Transition:
    mode = session.mode
    if not isinstance(mode, Sending) or mode.token != event.token:
        return _discard(session, event)
    if event.error is not None:
        return _with_status(
            session,
            Status.error(f"Publish failed: {event.error.message}"),
            mode=SendDraft(mode.context, mode.draft),
        )
    result = event.result
    return _with_status(
        session,
        Status.success(
            f"SUCCESS: Message produced to topic '{result.topic}' "
            f"(partition {result.partition}, offset {result.offset})"
        ),
        mode=Viewing(mode.context),
    )


def _on_consumer_opened(session: Session, event: ConsumerOpened) -> Transition:
    mode = session.mode
    if not isinstance(mode, Consuming) or mode.consumer_id != event.consumer_id:
        session, _ = _discard(session, event)
        if event.error is None:
            return session, [CloseConsumer(event.consumer_id)]
        return session, []
    if event.error is not None:
        return _with_status(
            session,
            Status.error(f"Cannot consume '{mode.context.topic}': {event.error.message}"),
            mode=Viewing(mode.context),
        )
    return _with_status(
        session,
        Status.info(f"Connected to '{mode.context.topic}': enter or f to fetch, esc to leave"),
        mode=replace(mode, ready=True),
    )


def _on_messages_fetched(session: Session, event: MessagesFetched) -> Transition:
    mode = session.mode
    if (
        not isinstance(mode, Consuming)
        or mode.consumer_id != event.consumer_id
        or mode.fetch_token != event.token
    ):
        return _discard(session, event)

    mode = replace(mode, fetch_token=None)
    if event.error is not None:
        status = Status.error(f"Fetch failed: {event.error.message}")
    elif not event.messages:
        status = Status.info(
            "No messages (timed out waiting for records)" if event.timed_out else "No messages"
        )
    else:
        mode = replace(mode, messages=tuple(event.messages), index=0)
        status = Status.success(
            f"Fetched {len(event.messages)} message(s) from '{mode.context.topic}'"
        )
    return _with_status(session, status, mode=mode)


def _on_draft_saved(session: Session, event: DraftSaved) -> Transition:
    if event.error is not None:
        return _with_status(session, Status.error(f"Save failed: {event.error.message}"))
    return _with_status(session, Status.success(f"Draft saved to {event.path}"))


def _on_drafts_listed(session: Session, event: DraftsListed) -> Transition:
    mode = session.mode
    if not isinstance(mode, LoadDraft) or mode.token != event.token:
        return _discard(session, event)
    if event.error is not None:
        return _with_status(
            session,
            Status.error(f"Cannot list drafts: {event.error.message}"),
            mode=SendDraft(mode.context, mode.draft),
        )
    if not event.names:
        status = Status.info(f"No saved drafts for '{mode.context.topic}'")
    else:
        status = Status.info("Select a draft: enter to load, esc to cancel")
    return _with_status(session, status, mode=replace(mode, names=tuple(event.names), index=0))


def _on_draft_loaded(session: Session, event: DraftLoaded) -> Transition:
    mode = session.mode
    if not isinstance(mode, SendDraft) or mode.pending != event.token:
        return _discard(session, event)
    if event.error is not None:
        return _with_status(
            session,
            Status.error(f"Cannot load draft: {event.error.message}"),
            mode=replace(mode, pending=None),
        )
    saved = event.draft
    draft = replace(mode.draft, body=TextBuffer.from_text(saved.payload), focus=DraftField.BODY)
    text = f"Loaded draft '{saved.name}'"
    if saved.schema_id != mode.context.schema_id:
        text += f" (saved with schema id {saved.schema_id})"
    return _with_status(
        session, Status.success(text), mode=replace(mode, draft=draft, pending=None)
    )


def _on_editor_closed(session: Session, event: EditorClosed) -> Transition:
    mode = session.mode
    if not isinstance(mode, SendDraft) or mode.pending != event.token:
        return _discard(session, event)
    if event.error is not None:
        return _with_status(
            session,
            Status.error(f"Editor failed: {event.error.message}"),
            mode=replace(mode, pending=None),
        )
    draft = replace(mode.draft, body=TextBuffer.from_text(event.text), focus=DraftField.BODY)
    return _with_status(
        session,
        Status.info("Draft updated from editor: ctrl+s to send"),
        mode=replace(mode, draft=draft, pending=None),
    )


def _on_copied(session: Session, event: Copied) -> Transition:
    if event.error is not None:
        return _with_status(session, Status.error(f"Copy failed: {event.error.message}"))
    return _with_status(session, Status.success(f"Copied {event.what} to clipboard"))


_EVENT_HANDLERS: dict[type, Callable[[Session, Event], Transition]] = {
    KeyPressed: _on_key,
    SubjectsLoaded: _on_subjects_loaded,
    SchemaFetched: _on_schema_fetched,
    Published: _on_published,
    ConsumerOpened: _on_consumer_opened,
    MessagesFetched: _on_messages_fetched,
    DraftSaved: _on_draft_saved,
    DraftsListed: _on_drafts_listed,
    DraftLoaded: _on_draft_loaded,
    EditorClosed: _on_editor_closed,
    Copied: _on_copied,
}


def step(session: Session, event: Event) -> Transition:
    """Apply one event to the session.

    Returns:
        The next session and the commands to run, in order.
    """
    handler = _EVENT_HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"unsupported event {type(event).__name__}")
    return handler(session, event)


class WorkflowEngine:
    """Holds the current session and applies events to it one at a time."""

    def __init__(self, session: Session | None = None):
        self.session = session or Session()

    def start(self) -> list[Command]:
        self.session = replace(
            self.session, mode=Loading(), status=Status.info("Loading subjects...")
        )
        return [LoadSubjects()]

    def handle(self, event: Event) -> list[Command]:
        before = type(self.session.mode)
        self.session, commands = step(self.session, event)
        after = type(self.session.mode)
        if before is not after:
            log_with_context(
                logger,
                logging.DEBUG,
                "Mode changed",
                mode=after.__name__,
                event=type(event).__name__,
            )
        return commands
