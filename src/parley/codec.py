import json
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from parley.models import DEFAULT_SESSION_ID, ChatState, Session, bootstrap_state
from parley.storage import KeyValueStore

logger = logging.getLogger(__name__)

SESSIONS_KEY = "chat-sessions"
ACTIVE_SESSION_KEY = "active-session"

_sessions_adapter = TypeAdapter(tuple[Session, ...])


class CorruptStateError(ValueError):
    pass


def _check_sessions(sessions: tuple[Session, ...]) -> None:
    if not sessions:
        raise CorruptStateError("no sessions")
    seen: set[str] = set()
    for session in sessions:
        if session.id in seen:
            raise CorruptStateError(f"duplicate session id {session.id!r}")
        seen.add(session.id)
        ids = [m.id for m in session.messages]
        if any(b <= a for a, b in zip(ids, ids[1:])):
            raise CorruptStateError(f"message ids out of order in session {session.id!r}")


def resolve_active(sessions: tuple[Session, ...], active_id: str | None) -> str:
    """Keep ``active_id`` if it names a session, else fall back to default, then first."""
    ids = [s.id for s in sessions]
    if active_id in ids:
        return active_id
    if DEFAULT_SESSION_ID in ids:
        return DEFAULT_SESSION_ID
    return ids[0]


def _dump_sessions(sessions: tuple[Session, ...]) -> list[dict]:
    return _sessions_adapter.dump_python(sessions, mode="json")


def _parse(text: str | None, source: str) -> Any:
    if not text or not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Discarding unreadable {source}: {e}")
        return None


def _decode(raw_sessions: Any, active_id: Any, source: str) -> ChatState:
    try:
        sessions = _sessions_adapter.validate_python(raw_sessions)
        _check_sessions(sessions)
    except (ValidationError, CorruptStateError) as e:
        logger.warning(f"Discarding unreadable {source}: {e}")
        return bootstrap_state()
    if not isinstance(active_id, str) or not active_id.strip():
        active_id = None
    return ChatState(sessions=sessions, active_session_id=resolve_active(sessions, active_id))


def serialize(state: ChatState) -> str:
    return json.dumps(
        {"sessions": _dump_sessions(state.sessions), "active_session_id": state.active_session_id}
    )


def deserialize(text: str | None) -> ChatState:
    payload = _parse(text, "chat state")
    if not isinstance(payload, dict):
        if payload is not None:
            logger.warning("Discarding chat state that is not a JSON object")
        return bootstrap_state()
    return _decode(payload.get("sessions"), payload.get("active_session_id"), "chat state")


def save(storage: KeyValueStore, state: ChatState) -> None:
    storage.set(SESSIONS_KEY, json.dumps(_dump_sessions(state.sessions)))
    storage.set(ACTIVE_SESSION_KEY, state.active_session_id)


def load(storage: KeyValueStore) -> ChatState:
    raw = _parse(storage.get(SESSIONS_KEY), f"{SESSIONS_KEY!r} slot")
    if raw is None:
        return bootstrap_state()
    active_id = (storage.get(ACTIVE_SESSION_KEY) or "").strip() or None
    return _decode(raw, active_id, f"{SESSIONS_KEY!r} slot")
