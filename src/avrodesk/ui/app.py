"""Full-screen terminal application."""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.live import Live

from avrodesk.drafts import DraftStore
from avrodesk.editor import open_in_editor
from avrodesk.registry.client import SchemaRegistryClient
from avrodesk.ui.keys import KeyReader
from avrodesk.ui.render import render_screen
from avrodesk.ui.styles import DEFAULT_THEME, Theme
from avrodesk.workflow.engine import WorkflowEngine
from avrodesk.workflow.events import KeyPressed
from avrodesk.workflow.runner import CommandRunner, run_session
from avrodesk.workflow.state import Session
from config.config import Profile
from core.logging.context import set_log_context

logger = logging.getLogger(__name__)


class AvrodeskApp:
    """Wires the engine, the command runner, the key reader and the screen.

    Args:
        profile: Connection profile to run with
        console: Console to draw on, a new one by default
        drafts_dir: Override for the saved-drafts directory
        theme: Screen colours
    """

    def __init__(
        self,
        profile: Profile,
        console: Optional[Console] = None,
        drafts_dir: Optional[Path] = None,
        theme: Theme = DEFAULT_THEME,
    ):
        self.profile = profile
        self.console = console or Console()
        self.drafts_dir = drafts_dir
        self.theme = theme
        self._live: Optional[Live] = None
        self._reader: Optional[KeyReader] = None
        self._engine: Optional[WorkflowEngine] = None

    def _refresh(self, session: Session) -> None:
        if self._live is not None:
            self._live.update(
                render_screen(session, self.console.size.height, self.theme),
                refresh=True,
            )

    async def _edit(self, text: str) -> str:
        """Hand the terminal to the external editor, then take it back."""
        self._reader.stop()
        self._live.stop()
        try:
            return await asyncio.to_thread(open_in_editor, text)
        finally:
            self._live.start(refresh=True)
            self._reader.start()

    async def run(self) -> Session:
        set_log_context(profile=self.profile.key)
        logger.info(
            "Starting session",
            extra={
                "api_endpoint": self.profile.schema_registry.url,
                "bootstrap_servers": self.profile.kafka.bootstrap_servers or None,
            },
        )

        registry = SchemaRegistryClient(self.profile.schema_registry)
        runner = CommandRunner(
            registry=registry,
            kafka_config=self.profile.kafka,
            drafts=DraftStore(self.drafts_dir),
            editor=self._edit,
        )
        self._engine = WorkflowEngine(
            Session(
                kafka_enabled=self.profile.kafka.is_configured,
                profile_name=self.profile.display_name,
            )
        )
        self._reader = KeyReader(lambda key: runner.events.put_nowait(KeyPressed(key)))

        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGWINCH, lambda: self._refresh(self._engine.session))

        self._live = Live(
            console=self.console,
            screen=True,
            auto_refresh=False,
            redirect_stdout=False,
            redirect_stderr=False,
        )
        try:
            with self._live:
                self._reader.start()
                try:
                    session = await run_session(self._engine, runner, self._refresh)
                finally:
                    self._reader.stop()
        finally:
            loop.remove_signal_handler(signal.SIGWINCH)
            await runner.close()
            self._live = None

        logger.info("Session ended")
        return session
