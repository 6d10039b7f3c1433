from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, TypeAlias


@dataclass(frozen=True, slots=True)
class StateChangedEvent:
    reason: str
    session_id: str | None = None


@dataclass(frozen=True, slots=True)
class MessageAppendedEvent:
    session_id: str
    message_id: int
    sender: str
    text: str = ""
    error: bool = False


@dataclass(frozen=True, slots=True)
class RequestStartedEvent:
    session_id: str
    context_size: int


@dataclass(frozen=True, slots=True)
class RequestFinishedEvent:
    session_id: str
    success: bool
    duration_ms: int | None = None
    error_kind: str | None = None


@dataclass(frozen=True, slots=True)
class InputRejectedEvent:
    session_id: str | None
    reason: str


Event: TypeAlias = (
    StateChangedEvent
    | MessageAppendedEvent
    | RequestStartedEvent
    | RequestFinishedEvent
    | InputRejectedEvent
)
EventCallback: TypeAlias = Callable[[Event], None] | None


class EventEmitter:
    def __init__(self, callback: EventCallback = None):
        self._callback = callback

    def emit(self, event: Event) -> None:
        if self._callback is not None:
            self._callback(event)
