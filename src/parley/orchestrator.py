from __future__ import annotations

import logging
import time
from enum import Enum

from common.events import (
    EventEmitter,
    InputRejectedEvent,
    RequestFinishedEvent,
    RequestStartedEvent,
)
from parley.config import MAX_MESSAGE_LENGTH, SYSTEM_PROMPT
from parley.context import build_context
from parley.errors import SessionNotFoundError
from parley.gateway import ErrorKind, Gateway, GatewayError
from parley.models import Sender
from parley.store import SessionStore

logger = logging.getLogger(__name__)

APOLOGY = "I encountered an error. Please try again later."


class SubmitResult(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    EMPTY = "empty"
    BUSY = "busy"
    TOO_LONG = "too_long"
    NO_SESSION = "no_session"

    @property
    def accepted(self) -> bool:
        return self in (SubmitResult.SENT, SubmitResult.FAILED)


class SendOrchestrator:
    """Optimistic send protocol: append the user turn, await the gateway, append the reply.

    Pending state is tracked per session, so a request keeps running (and its
    reply lands in the session it came from) when the user switches away.
    """

    def __init__(
        self,
        store: SessionStore,
        gateway: Gateway,
        *,
        max_length: int = MAX_MESSAGE_LENGTH,
        system_prompt: str = SYSTEM_PROMPT,
        emitter: EventEmitter | None = None,
    ):
        self.store = store
        self.gateway = gateway
        self.max_length = max_length
        self.system_prompt = system_prompt
        self.emitter = emitter or store.emitter
        self._pending: set[str] = set()
        self._drafts: dict[str, str] = {}
        self._notices: dict[str, str] = {}

    def _target(self, session_id: str | None) -> str:
        return session_id if session_id is not None else self.store.active_session_id

    def is_pending(self, session_id: str | None = None) -> bool:
        return self._target(session_id) in self._pending

    def pending_sessions(self) -> set[str]:
        return set(self._pending)

    def set_draft(self, text: str, session_id: str | None = None) -> None:
        target = self._target(session_id)
        self._drafts[target] = text
        if len(text) <= self.max_length:
            self._notices.pop(target, None)

    def draft(self, session_id: str | None = None) -> str:
        return self._drafts.get(self._target(session_id), "")

    def character_count(self, session_id: str | None = None) -> tuple[int, int]:
        return len(self.draft(session_id)), self.max_length

    def notice(self, session_id: str | None = None) -> str | None:
        return self._notices.get(self._target(session_id))

    def _reject(self, session_id: str, result: SubmitResult) -> SubmitResult:
        logger.debug(f"Rejected submit on {session_id}: {result.value}")
        self.emitter.emit(InputRejectedEvent(session_id=session_id, reason=result.value))
        return result

    async def submit(self, text: str | None = None, session_id: str | None = None) -> SubmitResult:
        target = self._target(session_id)
        if text is None:
            text = self.draft(target)

        if not text.strip():
            return self._reject(target, SubmitResult.EMPTY)
        session = self.store.get_session(target)
        if session is None:
            return self._reject(target, SubmitResult.NO_SESSION)
        if target in self._pending:
            return self._reject(target, SubmitResult.BUSY)
        if len(text) > self.max_length:
            self._notices[target] = (
                f"Message is too long ({len(text)}/{self.max_length} characters)"
            )
            return self._reject(target, SubmitResult.TOO_LONG)

        context = build_context(session, text, self.system_prompt)
        self.store.append_message(target, text, Sender.USER)
        self._drafts.pop(target, None)
        self._notices.pop(target, None)
        self._pending.add(target)
        self.emitter.emit(RequestStartedEvent(session_id=target, context_size=len(context)))

        started = time.monotonic()
        try:
            try:
                reply = await self.gateway.send(context)
            except GatewayError as e:
                logger.warning(f"Request for session {target} failed ({e.kind.value}): {e}")
                self._deliver(target, APOLOGY, error_kind=e.kind.value)
                self._finished(target, started, error_kind=e.kind.value)
                return SubmitResult.FAILED
            except Exception as e:
                logger.exception(f"Unexpected failure sending for session {target}: {e}")
                kind = ErrorKind.TRANSPORT.value
                self._deliver(target, APOLOGY, error_kind=kind)
                self._finished(target, started, error_kind=kind)
                return SubmitResult.FAILED
            self._deliver(target, reply)
            self._finished(target, started)
            return SubmitResult.SENT
        finally:
            self._pending.discard(target)

    def _deliver(self, session_id: str, text: str, error_kind: str | None = None) -> None:
        try:
            self.store.append_message(
                session_id,
                text,
                Sender.BOT,
                error=error_kind is not None,
                error_kind=error_kind,
            )
        except SessionNotFoundError:
            logger.info(f"Session {session_id} was deleted before its reply arrived; dropping it")

    def _finished(self, session_id: str, started: float, error_kind: str | None = None) -> None:
        self.emitter.emit(
            RequestFinishedEvent(
                session_id=session_id,
                success=error_kind is None,
                duration_ms=int((time.monotonic() - started) * 1000),
                error_kind=error_kind,
            )
        )
