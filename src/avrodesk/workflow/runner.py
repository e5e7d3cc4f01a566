"""Command execution and the single-consumer event loop.

Every command runs as its own asyncio task and answers with one outcome
event posted to the runner's queue. The event loop in run_session() is
the only reader of that queue, so the engine sees events strictly one at
a time and the terminal stays responsive while registry and broker calls
are in flight.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

from avrodesk.avro.schema import CompiledSchema
from avrodesk.clipboard import copy_to_clipboard
from avrodesk.drafts import DraftStore
from avrodesk.editor import open_in_editor
from avrodesk.kafka.consumer import TopicConsumer
from avrodesk.kafka.producer import MessageProducer
from avrodesk.kafka.types import to_consumed_message
from avrodesk.registry.client import SchemaRegistryClient
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
from avrodesk.workflow.engine import WorkflowEngine
from avrodesk.workflow.events import (
    ConsumerOpened,
    Copied,
    DraftLoaded,
    DraftSaved,
    DraftsListed,
    EditorClosed,
    Event,
    MessagesFetched,
    Published,
    SchemaFetched,
    SubjectsLoaded,
)
from avrodesk.workflow.state import SchemaContext, Session
from config.config import KafkaConfig
from core.errors.exceptions import AvrodeskError, BrokerError, wrap_exception
from core.logging.context import set_log_context
from core.logging.utilities import log_exception, log_with_context

logger = logging.getLogger(__name__)

EditorHook = Callable[[str], Awaitable[str]]


async def _editor_in_thread(text: str) -> str:
    return await asyncio.to_thread(open_in_editor, text)


class TaskManager:
    """Track background tasks so they can be cancelled together."""

    def __init__(self):
        self.tasks: Set[asyncio.Task] = set()

    def create_task(self, coro, name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Cancel all outstanding tasks and wait for them to finish."""
        if not self.tasks:
            return

        logger.info("Cancelling %d background tasks", len(self.tasks))
        for task in self.tasks:
            if not task.done():
                task.cancel()

        try:
            await asyncio.wait_for(
                asyncio.gather(*self.tasks, return_exceptions=True),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Task shutdown timed out after %ss", timeout)


class _ConsumerHandle:
    def __init__(
        self,
        consumer: TopicConsumer,
        compiled: CompiledSchema | None,
        schema_id: int | None = None,
    ):
        self.consumer = consumer
        self.compiled = compiled
        self.schema_id = schema_id


class CommandRunner:
    """Runs engine commands against the registry, the broker and local files.

    Args:
        registry: Schema registry client
        kafka_config: Broker settings used for producer and consumers
        drafts: Draft file store
        editor: Async hook returning the edited text; the terminal app
            supplies one that releases the screen while the editor runs
        copy: Clipboard writer, run in a worker thread
        producer: Optional producer, created from kafka_config otherwise
    """

    def __init__(
        self,
        registry: SchemaRegistryClient,
        kafka_config: KafkaConfig,
        drafts: DraftStore,
        editor: EditorHook = _editor_in_thread,
        copy: Callable[[str], None] = copy_to_clipboard,
        producer: MessageProducer | None = None,
    ):
        self.registry = registry
        self.kafka_config = kafka_config
        self.drafts = drafts
        self.editor = editor
        self.copy = copy
        self.producer = producer or MessageProducer(kafka_config)
        self.events: asyncio.Queue[Event] = asyncio.Queue()
        self._tasks = TaskManager()
        self._consumers: dict[int, _ConsumerHandle] = {}
        self._handlers = {
            LoadSubjects: self._load_subjects,
            FetchSchema: self._fetch_schema,
            Publish: self._publish,
            OpenConsumer: self._open_consumer,
            FetchMessages: self._fetch_messages,
            CloseConsumer: self._close_consumer,
            SaveDraftFile: self._save_draft,
            ListDrafts: self._list_drafts,
            LoadDraftFile: self._load_draft,
            OpenEditor: self._open_editor,
            CopyText: self._copy_text,
        }

    def submit(self, command: Command) -> asyncio.Task:
        """Start a command in the background."""
        handler = self._handlers[type(command)]
        return self._tasks.create_task(
            self._execute(handler, command), name=type(command).__name__
        )

    async def _execute(self, handler, command: Command) -> None:
        event = await handler(command)
        if event is not None:
            await self.events.put(event)

    @staticmethod
    def _failure(exc: Exception, msg: str, **context) -> AvrodeskError:
        error = wrap_exception(exc, context=dict(context))
        log_exception(logger, error, msg, include_traceback=False, **context)
        return error

    # -------------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------------

    async def _load_subjects(self, command: LoadSubjects) -> Event:
        try:
            subjects = await self.registry.list_subjects()
        except Exception as e:
            return SubjectsLoaded(error=self._failure(e, "Failed to list subjects"))
        return SubjectsLoaded(subjects=tuple(subjects))

    async def _fetch_schema(self, command: FetchSchema) -> Event:
        try:
            version = await self.registry.get_latest_schema(command.subject)
            context = SchemaContext.from_version(version)
        except Exception as e:
            error = self._failure(e, "Failed to fetch schema", token=command.token)
            return SchemaFetched(command.token, command.subject, error=error)
        log_with_context(
            logger,
            logging.INFO,
            "Fetched schema",
            schema_id=context.schema_id,
            version=context.version,
            token=command.token,
        )
        return SchemaFetched(command.token, command.subject, context=context)

    # -------------------------------------------------------------------------
    # Broker
    # -------------------------------------------------------------------------

    async def _publish(self, command: Publish) -> Event:
        try:
            result = await self.producer.publish(
                command.topic,
                command.schema_id,
                command.key,
                command.payload,
                timeout=command.timeout,
            )
        except Exception as e:
            error = self._failure(
                e, "Publish failed", message_topic=command.topic, token=command.token
            )
            return Published(command.token, error=error)
        log_with_context(
            logger,
            logging.INFO,
            "Message published",
            message_topic=result.topic,
            message_partition=result.partition,
            message_offset=result.offset,
            payload_bytes=len(command.payload),
        )
        return Published(command.token, result=result)

    async def _open_consumer(self, command: OpenConsumer) -> Event:
        consumer = TopicConsumer(self.kafka_config, command.topic)
        handle = _ConsumerHandle(consumer, command.compiled, command.schema_id)
        self._consumers[command.consumer_id] = handle
        try:
            await consumer.open()
        except Exception as e:
            if self._consumers.get(command.consumer_id) is handle:
                del self._consumers[command.consumer_id]
            await consumer.close()
            error = self._failure(e, "Failed to open consumer", message_topic=command.topic)
            return ConsumerOpened(command.consumer_id, error=error)

        # CloseConsumer arrived while connecting and found nothing to stop yet
        if self._consumers.get(command.consumer_id) is not handle:
            log_with_context(
                logger,
                logging.INFO,
                "Consumer closed while opening, stopping it",
                message_topic=command.topic,
                token=command.consumer_id,
            )
            await consumer.close()
        return ConsumerOpened(command.consumer_id)

    async def _fetch_messages(self, command: FetchMessages) -> Event:
        handle = self._consumers.get(command.consumer_id)
        try:
            if handle is None:
                raise BrokerError(f"Consumer {command.consumer_id} is not open")
            result = await handle.consumer.fetch(command.max_count, command.timeout)
            messages = tuple(
                to_consumed_message(record, handle.compiled, handle.schema_id)
                for record in result.records
            )
        except Exception as e:
            error = self._failure(e, "Fetch failed", token=command.token)
            return MessagesFetched(command.consumer_id, command.token, error=error)
        return MessagesFetched(
            command.consumer_id,
            command.token,
            messages=messages,
            timed_out=result.timed_out,
        )

    async def _close_consumer(self, command: CloseConsumer) -> None:
        handle = self._consumers.pop(command.consumer_id, None)
        if handle is not None:
            await handle.consumer.close()
        return None

    # -------------------------------------------------------------------------
    # Local side effects
    # -------------------------------------------------------------------------

    async def _save_draft(self, command: SaveDraftFile) -> Event:
        try:
            path = await asyncio.to_thread(
                self.drafts.save,
                command.topic,
                command.schema_id,
                command.payload,
                command.name,
            )
        except Exception as e:
            return DraftSaved(error=self._failure(e, "Failed to save draft"))
        return DraftSaved(path=str(path))

    async def _list_drafts(self, command: ListDrafts) -> Event:
        try:
            names = await asyncio.to_thread(self.drafts.list, command.topic)
        except Exception as e:
            error = self._failure(e, "Failed to list drafts", token=command.token)
            return DraftsListed(command.token, error=error)
        return DraftsListed(command.token, names=tuple(names))

    async def _load_draft(self, command: LoadDraftFile) -> Event:
        try:
            draft = await asyncio.to_thread(self.drafts.load, command.topic, command.name)
        except Exception as e:
            error = self._failure(e, "Failed to load draft", token=command.token)
            return DraftLoaded(command.token, error=error)
        return DraftLoaded(command.token, draft=draft)

    async def _open_editor(self, command: OpenEditor) -> Event:
        try:
            text = await self.editor(command.text)
        except Exception as e:
            error = self._failure(e, "Editor failed", token=command.token)
            return EditorClosed(command.token, error=error)
        return EditorClosed(command.token, text=text)

    async def _copy_text(self, command: CopyText) -> Event:
        try:
            await asyncio.to_thread(self.copy, command.text)
        except Exception as e:
            return Copied(command.what, error=self._failure(e, "Copy failed"))
        return Copied(command.what)

    async def close(self) -> None:
        """Cancel outstanding work, then release consumers, producer and session."""
        await self._tasks.shutdown()
        for consumer_id in list(self._consumers):
            await self._close_consumer(CloseConsumer(consumer_id))
        await self.producer.stop()
        await self.registry.close()


def _update_log_context(session: Session) -> None:
    context = session.context
    set_log_context(
        subject=context.subject if context else "",
        topic=context.topic if context else "",
    )


async def run_session(
    engine: WorkflowEngine,
    runner: CommandRunner,
    on_change: Callable[[Session], None] | None = None,
) -> Session:
    """Feed outcome and key events to the engine until it asks to quit.

    Keys are posted to runner.events by the terminal reader, so the engine
    sees keys and outcomes in one arrival order.
    """
    for command in engine.start():
        runner.submit(command)
    if on_change is not None:
        on_change(engine.session)

    while not engine.session.quit:
        event = await runner.events.get()
        commands = engine.handle(event)
        # Tasks copy the context at creation, so update it before submitting
        _update_log_context(engine.session)
        for command in commands:
            runner.submit(command)
        if on_change is not None:
            on_change(engine.session)

    return engine.session
