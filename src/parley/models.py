from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SESSION_ID = "default"
NEW_SESSION_TITLE = "New Chat"
UNTITLED = "Untitled"
GREETING = "Hello! I'm your AI assistant. How can I help you? 👋"
TITLE_LENGTH = 20
TITLE_SUFFIX = "..."


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Sender(str, Enum):
    USER = "user"
    BOT = "bot"


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1)
    text: str
    sender: Sender
    timestamp: datetime = Field(default_factory=utc_now)
    error: bool = False
    error_kind: str | None = None


class Session(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str
    messages: tuple[Message, ...] = Field(min_length=1)
    auto_title: bool = True

    @property
    def last_message_id(self) -> int:
        return self.messages[-1].id

    @property
    def has_user_message(self) -> bool:
        return any(m.sender is Sender.USER for m in self.messages)


class ChatState(BaseModel):
    """Read-only view of every session plus the active pointer."""

    model_config = ConfigDict(frozen=True)

    sessions: tuple[Session, ...]
    active_session_id: str

    def get(self, session_id: str) -> Session | None:
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None

    @property
    def active_session(self) -> Session:
        session = self.get(self.active_session_id)
        if session is None:
            raise LookupError(f"active session {self.active_session_id!r} is missing")
        return session


def derive_title(text: str) -> str:
    if len(text) > TITLE_LENGTH:
        return text[:TITLE_LENGTH] + TITLE_SUFFIX
    return text


def new_session(session_id: str, title: str = NEW_SESSION_TITLE) -> Session:
    greeting = Message(id=1, text=GREETING, sender=Sender.BOT)
    return Session(id=session_id, title=title, messages=(greeting,))


def bootstrap_state() -> ChatState:
    return ChatState(
        sessions=(new_session(DEFAULT_SESSION_ID),),
        active_session_id=DEFAULT_SESSION_ID,
    )
