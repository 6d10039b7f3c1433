from parley.models import ChatState, Message, Sender, Session
from parley.orchestrator import SendOrchestrator, SubmitResult
from parley.store import SessionStore

__all__ = [
    "ChatState",
    "Message",
    "Sender",
    "Session",
    "SendOrchestrator",
    "SessionStore",
    "SubmitResult",
]
