from __future__ import annotations

import logging

from common.events import EventEmitter, MessageAppendedEvent, StateChangedEvent
from common.ids import generate_id
from parley import codec
from parley.errors import SessionNotFoundError
from parley.models import (
    DEFAULT_SESSION_ID,
    UNTITLED,
    ChatState,
    Message,
    Sender,
    Session,
    bootstrap_state,
    derive_title,
    new_session,
)
from parley.storage import KeyValueStore, MemoryStore

logger = logging.getLogger(__name__)


class SessionStore:
    """Owns the ordered sessions and the active pointer.

    Every mutation is written through to ``storage`` before the call returns,
    and reads for rendering go through :meth:`snapshot`.
    """

    def __init__(
        self,
        storage: KeyValueStore | None = None,
        state: ChatState | None = None,
        emitter: EventEmitter | None = None,
    ):
        self.storage = storage if storage is not None else MemoryStore()
        self.emitter = emitter or EventEmitter()
        state = state or bootstrap_state()
        self._sessions: dict[str, Session] = {s.id: s for s in state.sessions}
        self._active_id = state.active_session_id
        if not self._sessions:
            self._install_default()
        self._active_id = codec.resolve_active(tuple(self._sessions.values()), self._active_id)
        self._commit("open")

    @classmethod
    def open(cls, storage: KeyValueStore, emitter: EventEmitter | None = None) -> "SessionStore":
        return cls(storage=storage, state=codec.load(storage), emitter=emitter)

    # -- reads ------------------------------------------------------------

    @property
    def active_session_id(self) -> str:
        return self._active_id

    @property
    def active_session(self) -> Session:
        return self._sessions[self._active_id]

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    def snapshot(self) -> ChatState:
        return ChatState(sessions=tuple(self._sessions.values()), active_session_id=self._active_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    # -- mutations --------------------------------------------------------

    def create_session(self) -> str:
        session_id = generate_id()
        while session_id in self._sessions:
            session_id = str(int(session_id) + 1)
        self._sessions[session_id] = new_session(session_id)
        self._active_id = session_id
        logger.debug(f"Created session {session_id}")
        self._commit("create", session_id)
        return session_id

    def delete_session(self, session_id: str) -> bool:
        if session_id == DEFAULT_SESSION_ID:
            logger.info("Refusing to delete the default session")
            return False
        if session_id not in self._sessions:
            return False

        del self._sessions[session_id]
        if not self._sessions:
            self._install_default()
        if session_id == self._active_id:
            self._active_id = next(iter(self._sessions))
        logger.debug(f"Deleted session {session_id}; active is now {self._active_id}")
        self._commit("delete", session_id)
        return True

    def rename_session(self, session_id: str, title: str) -> bool:
        session = self._sessions.get(session_id)
        if session is None:
            return False
        title = (title or "").strip() or UNTITLED
        self._sessions[session_id] = session.model_copy(update={"title": title, "auto_title": False})
        self._commit("rename", session_id)
        return True

    def select_session(self, session_id: str) -> bool:
        if session_id not in self._sessions:
            logger.debug(f"Ignoring selection of unknown session {session_id}")
            return False
        self._active_id = session_id
        self._commit("select", session_id)
        return True

    def append_message(
        self,
        session_id: str,
        text: str,
        sender: Sender,
        *,
        error: bool = False,
        error_kind: str | None = None,
    ) -> Message:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        message = Message(
            id=session.last_message_id + 1,
            text=text,
            sender=sender,
            error=error,
            error_kind=error_kind,
        )
        update: dict = {"messages": session.messages + (message,)}
        if sender is Sender.USER and session.auto_title and not session.has_user_message:
            update["title"] = derive_title(text)
            update["auto_title"] = False
        self._sessions[session_id] = session.model_copy(update=update)
        self._commit("append", session_id)

        self.emitter.emit(
            MessageAppendedEvent(
                session_id=session_id,
                message_id=message.id,
                sender=message.sender.value,
                text=message.text,
                error=message.error,
            )
        )
        return message

    # -- internals --------------------------------------------------------

    def _install_default(self) -> None:
        self._sessions[DEFAULT_SESSION_ID] = new_session(DEFAULT_SESSION_ID)

    def _commit(self, reason: str, session_id: str | None = None) -> None:
        codec.save(self.storage, self.snapshot())
        self.emitter.emit(StateChangedEvent(reason=reason, session_id=session_id))
