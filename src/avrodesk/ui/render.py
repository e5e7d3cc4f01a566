"""Session to rich renderables.

Rendering is a pure function of the session and the screen height; the
app calls render_screen() after every event and hands the result to Live.
"""

from rich import box
from rich.console import Group, RenderableType
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from avrodesk.ui.styles import DEFAULT_THEME, Theme
from avrodesk.workflow.state import (
    Browsing,
    Consuming,
    DraftField,
    LoadDraft,
    Loading,
    Pane,
    SaveDraft,
    Searching,
    SendDraft,
    Sending,
    Session,
    Viewing,
)
from avrodesk.workflow.textbuffer import TextBuffer

HEADER_ROWS = 1
STATUS_ROWS = 3
FOOTER_ROWS = 1
PANEL_CHROME = 2

KEY_HINTS = {
    Loading: "q quit",
    Browsing: "j/k move  enter select  / filter  y copy name  tab focus  q quit",
    Searching: "type to filter  enter keep  esc clear",
    Viewing: "e draft  E editor  c consume  y copy schema  / filter  tab focus  q quit",
    SendDraft: "ctrl+s send  ctrl+e editor  ctrl+n save  ctrl+o load  "
    "ctrl+y copy  ctrl+r reset  tab key/body  esc back",
    Sending: "publishing...",
    SaveDraft: "enter save  esc cancel",
    LoadDraft: "j/k move  enter load  esc cancel",
    Consuming: "enter/f fetch  j/k move  y copy value  esc back",
}


def _window(count: int, index: int, size: int) -> tuple[int, int]:
    """Slice of a list of count rows that keeps index visible."""
    size = max(1, size)
    if count <= size:
        return 0, count
    start = max(0, min(index - size // 2, count - size))
    return start, start + size


def _buffer_text(buffer: TextBuffer, rows: int, theme: Theme, show_cursor: bool) -> Text:
    start, end = _window(len(buffer.lines), buffer.row, rows)
    text = Text()
    for row in range(start, end):
        line = buffer.lines[row]
        if show_cursor and row == buffer.row:
            text.append(line[: buffer.col])
            text.append(line[buffer.col : buffer.col + 1] or " ", style=theme.cursor)
            text.append(line[buffer.col + 1 :])
        else:
            text.append(line)
        if row < end - 1:
            text.append("\n")
    return text


# =============================================================================
# Panels
# =============================================================================


def _subjects_panel(session: Session, rows: int, theme: Theme) -> Panel:
    browser = session.browser
    visible = browser.filtered
    start, end = _window(len(visible), browser.index, rows)

    text = Text(no_wrap=True, overflow="ellipsis")
    if isinstance(session.mode, Loading):
        text.append("Loading...", style=theme.muted)
    elif not visible:
        text.append("No matching subjects", style=theme.muted)
    for i in range(start, end):
        style = theme.selected if i == browser.index else ""
        text.append(visible[i], style=style)
        if i < end - 1:
            text.append("\n")

    if isinstance(session.mode, Searching):
        title = f"/{browser.filter}_"
    elif browser.filter:
        title = f"Subjects [{len(visible)}/{len(browser.subjects)}] /{browser.filter}"
    else:
        title = f"Subjects [{len(browser.subjects)}]"

    active = session.focus is Pane.SUBJECTS or isinstance(session.mode, Searching)
    return Panel(
        text,
        title=Text(title),
        title_align="left",
        border_style=theme.border_active if active else theme.border,
        box=box.ROUNDED,
    )


def _viewing_body(mode: Viewing, rows: int, theme: Theme) -> RenderableType:
    context = mode.context
    meta = Text()
    meta.append(f"{context.subject}", style=theme.accent)
    meta.append(
        f"  v{context.version}  id {context.schema_id}  {context.schema_type}"
        f"  topic {context.topic}",
        style=theme.muted,
    )
    lines = context.pretty.splitlines()
    shown = lines[mode.scroll : mode.scroll + max(1, rows - 2)]
    return Group(meta, Text(""), Text("\n".join(shown), no_wrap=True, overflow="ellipsis"))


def _draft_body(mode, rows: int, theme: Theme, editable: bool) -> RenderableType:
    context, draft = mode.context, mode.draft
    target = Text()
    target.append("Topic ", style=theme.muted)
    target.append(context.topic, style=theme.accent)
    target.append(f"  schema id {context.schema_id}", style=theme.muted)

    key_line = Text()
    key_line.append("Key: ", style=theme.key_hint if draft.focus is DraftField.KEY else theme.muted)
    key_line.append_text(
        _buffer_text(draft.key, 1, theme, editable and draft.focus is DraftField.KEY)
    )

    parts: list[RenderableType] = [target, key_line, Text("")]
    if isinstance(mode, SaveDraft):
        prompt = Text()
        prompt.append("Save as: ", style=theme.key_hint)
        prompt.append_text(_buffer_text(mode.name, 1, theme, True))
        parts.append(prompt)
        parts.append(Text(""))

    body_rows = max(1, rows - len(parts))
    parts.append(
        _buffer_text(draft.body, body_rows, theme, editable and draft.focus is DraftField.BODY)
    )
    return Group(*parts)


def _load_draft_body(mode: LoadDraft, rows: int, theme: Theme) -> RenderableType:
    if mode.names is None:
        return Text("Listing saved drafts...", style=theme.muted)
    if not mode.names:
        return Text(f"No saved drafts for '{mode.context.topic}'", style=theme.muted)
    start, end = _window(len(mode.names), mode.index, rows)
    text = Text(no_wrap=True)
    for i in range(start, end):
        text.append(mode.names[i], style=theme.selected if i == mode.index else "")
        if i < end - 1:
            text.append("\n")
    return text


def _consuming_body(mode: Consuming, rows: int, theme: Theme) -> RenderableType:
    if not mode.ready:
        return Text(f"Connecting to '{mode.context.topic}'...", style=theme.muted)
    if not mode.messages:
        hint = "Fetching..." if mode.fetching else "Press enter or f to fetch messages"
        return Text(hint, style=theme.muted)

    table = Table(box=box.SIMPLE, expand=True, pad_edge=False)
    table.add_column("#", justify="right", style=theme.muted)
    table.add_column("Partition", justify="right")
    table.add_column("Offset", justify="right")
    table.add_column("Key")
    table.add_column("Timestamp")
    list_rows = min(len(mode.messages), max(1, rows // 3))
    start, end = _window(len(mode.messages), mode.index, list_rows)
    for i in range(start, end):
        message = mode.messages[i]
        table.add_row(
            str(i + 1),
            str(message.partition),
            str(message.offset),
            message.key or "-",
            message.timestamp.isoformat(timespec="seconds") if message.timestamp else "-",
            style=theme.selected if i == mode.index else None,
        )

    current = mode.current
    parts: list[RenderableType] = [table]
    if current.decode_error:
        parts.append(Text(f"Not decoded: {current.decode_error}", style=theme.decode_error))
    value_rows = max(1, rows - list_rows - 5)
    parts.append(Text("\n".join(current.value.splitlines()[:value_rows])))
    return Group(*parts)


def _detail_panel(session: Session, rows: int, theme: Theme) -> Panel:
    mode = session.mode.resume if isinstance(session.mode, Searching) else session.mode
    title = "Schema"
    if isinstance(mode, Viewing):
        body = _viewing_body(mode, rows, theme)
    elif isinstance(mode, (SendDraft, SaveDraft)):
        title = "Draft"
        body = _draft_body(mode, rows, theme, editable=isinstance(mode, SendDraft))
    elif isinstance(mode, Sending):
        title = "Draft (publishing)"
        body = _draft_body(mode, rows, theme, editable=False)
    elif isinstance(mode, LoadDraft):
        title = "Saved drafts"
        body = _load_draft_body(mode, rows, theme)
    elif isinstance(mode, Consuming):
        title = f"Messages [{len(mode.messages)}] {mode.context.topic}"
        body = _consuming_body(mode, rows, theme)
    elif isinstance(mode, Loading):
        body = Text("Loading subjects...", style=theme.muted)
    else:
        body = Text("Select a subject and press enter", style=theme.muted)

    active = session.focus is Pane.DETAIL or not isinstance(mode, (Browsing, Viewing))
    return Panel(
        body,
        title=Text(title),
        title_align="left",
        border_style=theme.border_active if active else theme.border,
        box=box.ROUNDED,
    )


def _header(session: Session, theme: Theme) -> Text:
    text = Text(" avrodesk", style=theme.header)
    if session.profile_name:
        text.append(f"  [{session.profile_name}]", style=theme.header)
    if not session.kafka_enabled:
        text.append("  Kafka: not configured", style=theme.header)
    mode = type(session.mode).__name__
    text.append(f"  {mode}", style=theme.header)
    return text


def render_screen(session: Session, height: int, theme: Theme = DEFAULT_THEME) -> Layout:
    """Full-screen layout for the current session."""
    rows = max(1, height - HEADER_ROWS - STATUS_ROWS - FOOTER_ROWS - PANEL_CHROME)

    layout = Layout(name="root")
    layout.split_column(
        Layout(name="header", size=HEADER_ROWS),
        Layout(name="body", ratio=1),
        Layout(name="status", size=STATUS_ROWS),
        Layout(name="footer", size=FOOTER_ROWS),
    )
    layout["body"].split_row(
        Layout(name="subjects", ratio=1),
        Layout(name="detail", ratio=2),
    )

    layout["header"].update(_header(session, theme))
    layout["subjects"].update(_subjects_panel(session, rows, theme))
    layout["detail"].update(_detail_panel(session, rows, theme))
    layout["status"].update(
        Panel(
            Text(session.status.text, style=theme.status(session.status.level)),
            box=box.SIMPLE,
        )
    )
    layout["footer"].update(Text(KEY_HINTS[type(session.mode)], style=theme.key_hint))
    return layout
