from __future__ import annotations

import asyncio
import logging

from common.events import EventCallback, EventEmitter
from parley.config import ChatConfig
from parley.gateway import CompletionGateway, Gateway
from parley.models import ChatState, Message, Session
from parley.orchestrator import SendOrchestrator, SubmitResult
from parley.storage import FileStore, KeyValueStore
from parley.store import SessionStore

logger = logging.getLogger(__name__)


class ChatRuntime:
    """Wires the session store, gateway and orchestrator for one process."""

    def __init__(
        self,
        config: ChatConfig | None = None,
        storage: KeyValueStore | None = None,
        gateway: Gateway | None = None,
        on_event: EventCallback = None,
    ):
        self.config = config or ChatConfig()
        self.storage = storage if storage is not None else FileStore(self.config.data_dir)
        self.emitter = EventEmitter(on_event)
        self.store = SessionStore.open(self.storage, emitter=self.emitter)
        self.gateway = gateway or CompletionGateway(self.config)
        self.orchestrator = SendOrchestrator(
            self.store,
            self.gateway,
            max_length=self.config.max_message_length,
            system_prompt=self.config.system_prompt,
            emitter=self.emitter,
        )
        self._tasks: set[asyncio.Task] = set()

    @property
    def active_session(self) -> Session:
        return self.store.active_session

    def snapshot(self) -> ChatState:
        return self.store.snapshot()

    async def send(self, text: str, session_id: str | None = None) -> SubmitResult:
        return await self.orchestrator.submit(text, session_id=session_id)

    def send_in_background(self, text: str) -> asyncio.Task:
        # Captured now so a later /switch does not redirect the request.
        session_id = self.store.active_session_id
        task = asyncio.create_task(self.send(text, session_id=session_id))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background send failed: {error!r}", exc_info=error)

    async def drain(self) -> None:
        if self._tasks:
            logger.debug(f"Waiting for {len(self._tasks)} in-flight request(s)")
            await asyncio.gather(*list(self._tasks))

    async def run_prompt(self, text: str) -> Message | None:
        session_id = self.store.active_session_id
        result = await self.send(text, session_id=session_id)
        if not result.accepted:
            return None
        session = self.store.get_session(session_id)
        return session.messages[-1] if session else None
