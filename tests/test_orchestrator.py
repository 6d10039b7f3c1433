import asyncio

import pytest

from common.events import EventEmitter, RequestFinishedEvent, RequestStartedEvent
from parley.config import SYSTEM_PROMPT
from parley.gateway import FALLBACK_REPLY, ErrorKind, GatewayError
from parley.models import DEFAULT_SESSION_ID, Sender
from parley.orchestrator import APOLOGY, SendOrchestrator, SubmitResult
from parley.storage import MemoryStore
from parley.store import SessionStore


async def _started(orchestrator: SendOrchestrator, text: str | None, session_id: str | None = None):
    task = asyncio.create_task(orchestrator.submit(text, session_id=session_id))
    await asyncio.sleep(0)
    return task


@pytest.mark.asyncio
async def test_successful_submit_appends_user_and_bot(store, gateway):
    gateway.reply = "Quicksort picks a pivot."
    orchestrator = SendOrchestrator(store, gateway)

    result = await orchestrator.submit("Explain quicksort in one sentence please")

    assert result is SubmitResult.SENT
    session = store.active_session
    assert [(m.id, m.sender) for m in session.messages] == [
        (1, Sender.BOT),
        (2, Sender.USER),
        (3, Sender.BOT),
    ]
    assert session.messages[-1].text == "Quicksort picks a pivot."
    assert session.messages[-1].error is False
    assert session.title == "Explain quicksort in..."
    assert orchestrator.is_pending() is False


@pytest.mark.asyncio
async def test_context_is_built_before_user_message_is_appended(store, gateway):
    orchestrator = SendOrchestrator(store, gateway)

    await orchestrator.submit("hi")

    context = gateway.calls[0]
    assert context[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert context[-1] == {"role": "user", "content": "hi"}
    assert [m["role"] for m in context] == ["system", "assistant", "user"]


@pytest.mark.asyncio
async def test_short_text_becomes_title(store, gateway):
    sid = store.create_session()
    orchestrator = SendOrchestrator(store, gateway)

    await orchestrator.submit("hi")

    assert store.get_session(sid).title == "hi"


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
async def test_empty_submit_is_noop(store, gateway, text):
    orchestrator = SendOrchestrator(store, gateway)
    before = store.snapshot()

    result = await orchestrator.submit(text)

    assert result is SubmitResult.EMPTY
    assert store.snapshot() == before
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_too_long_submit_is_rejected_with_notice(store, gateway):
    orchestrator = SendOrchestrator(store, gateway)
    before = store.snapshot()

    result = await orchestrator.submit("x" * 1001)

    assert result is SubmitResult.TOO_LONG
    assert store.snapshot() == before
    assert gateway.calls == []
    assert "1001/1000" in orchestrator.notice()

    orchestrator.set_draft("short now")
    assert orchestrator.notice() is None


@pytest.mark.asyncio
async def test_exactly_max_length_is_accepted(store, gateway):
    orchestrator = SendOrchestrator(store, gateway)
    assert await orchestrator.submit("x" * 1000) is SubmitResult.SENT


@pytest.mark.asyncio
async def test_submit_unknown_session(store, gateway):
    orchestrator = SendOrchestrator(store, gateway)
    assert await orchestrator.submit("hi", session_id="nope") is SubmitResult.NO_SESSION
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_gateway_failure_appends_error_message(store, make_gateway):
    gateway = make_gateway(error=GatewayError(ErrorKind.UPSTREAM_STATUS, "HTTP 502"))
    orchestrator = SendOrchestrator(store, gateway)

    result = await orchestrator.submit("hello")

    assert result is SubmitResult.FAILED
    messages = store.active_session.messages
    assert len(messages) == 3
    user, bot = messages[1], messages[2]
    assert (user.sender, user.text, user.error) == (Sender.USER, "hello", False)
    assert bot.sender is Sender.BOT
    assert bot.error is True
    assert bot.text == APOLOGY
    assert bot.error_kind == "upstream_status"
    assert "502" not in bot.text
    assert orchestrator.is_pending() is False


@pytest.mark.asyncio
async def test_fallback_reply_is_not_an_error(store, make_gateway):
    gateway = make_gateway(reply=FALLBACK_REPLY)
    orchestrator = SendOrchestrator(store, gateway)

    await orchestrator.submit("hello")

    assert store.active_session.messages[-1].error is False


@pytest.mark.asyncio
async def test_unexpected_gateway_exception_becomes_error_reply(store, make_gateway):
    gateway = make_gateway(error=ValueError("bug"))
    orchestrator = SendOrchestrator(store, gateway)

    result = await orchestrator.submit("hello")

    assert result is SubmitResult.FAILED
    user, bot = store.active_session.messages[1:]
    assert (user.sender, user.text) == (Sender.USER, "hello")
    assert bot.sender is Sender.BOT
    assert (bot.text, bot.error, bot.error_kind) == (APOLOGY, True, ErrorKind.TRANSPORT.value)
    assert orchestrator.is_pending() is False


@pytest.mark.asyncio
async def test_submit_while_pending_is_noop(store, controlled_gateway):
    orchestrator = SendOrchestrator(store, controlled_gateway)

    first = await _started(orchestrator, "first")
    assert orchestrator.is_pending() is True
    before = store.snapshot()

    second = await orchestrator.submit("second")

    assert second is SubmitResult.BUSY
    assert store.snapshot() == before
    assert len(controlled_gateway.calls) == 1

    controlled_gateway.resolve(0, "reply")
    assert await first is SubmitResult.SENT
    assert orchestrator.is_pending() is False
    assert [m.text for m in store.active_session.messages[1:]] == ["first", "reply"]


@pytest.mark.asyncio
async def test_user_message_is_visible_while_pending(store, controlled_gateway):
    orchestrator = SendOrchestrator(store, controlled_gateway)
    orchestrator.set_draft("draft text")
    assert orchestrator.character_count() == (10, 1000)

    task = await _started(orchestrator, None)

    assert store.active_session.messages[-1].text == "draft text"
    assert orchestrator.draft() == ""
    assert orchestrator.character_count() == (0, 1000)
    controlled_gateway.resolve(0, "ok")
    await task


@pytest.mark.asyncio
async def test_interleaved_sessions_resolve_independently(controlled_gateway):
    store = SessionStore(MemoryStore())
    a = store.create_session()
    orchestrator = SendOrchestrator(store, controlled_gateway)

    task_a = await _started(orchestrator, "question for A")
    assert orchestrator.is_pending(a)

    b = store.create_session()
    store.select_session(b)
    assert orchestrator.is_pending(b) is False
    task_b = await _started(orchestrator, "question for B")
    assert orchestrator.pending_sessions() == {a, b}

    controlled_gateway.resolve(1, "answer for B")
    assert await task_b is SubmitResult.SENT

    assert [m.text for m in store.get_session(b).messages[1:]] == ["question for B", "answer for B"]
    assert [m.text for m in store.get_session(a).messages[1:]] == ["question for A"]
    assert orchestrator.is_pending(a) is True

    controlled_gateway.resolve(0, "answer for A")
    assert await task_a is SubmitResult.SENT
    assert [m.text for m in store.get_session(a).messages[1:]] == ["question for A", "answer for A"]
    assert [m.id for m in store.get_session(a).messages] == [1, 2, 3]
    assert [m.id for m in store.get_session(b).messages] == [1, 2, 3]


@pytest.mark.asyncio
async def test_reply_lands_in_origin_session_after_switch(store, controlled_gateway):
    # No cancellation on session switch: the reply still goes to where it was asked.
    origin = store.create_session()
    orchestrator = SendOrchestrator(store, controlled_gateway)
    task = await _started(orchestrator, "hello")

    store.select_session(DEFAULT_SESSION_ID)
    controlled_gateway.resolve(0, "late reply")
    await task

    assert store.active_session_id == DEFAULT_SESSION_ID
    assert store.get_session(origin).messages[-1].text == "late reply"
    assert len(store.get_session(DEFAULT_SESSION_ID).messages) == 1


@pytest.mark.asyncio
async def test_reply_for_deleted_session_is_dropped(store, controlled_gateway):
    doomed = store.create_session()
    orchestrator = SendOrchestrator(store, controlled_gateway)
    task = await _started(orchestrator, "hello")

    store.delete_session(doomed)
    controlled_gateway.resolve(0, "nobody listens")

    assert await task is SubmitResult.SENT
    assert doomed not in store
    assert orchestrator.is_pending(doomed) is False


@pytest.mark.asyncio
async def test_failure_after_switch_marks_origin_session(store, controlled_gateway):
    origin = store.create_session()
    orchestrator = SendOrchestrator(store, controlled_gateway)
    task = await _started(orchestrator, "hello")

    store.select_session(DEFAULT_SESSION_ID)
    controlled_gateway.fail(0, GatewayError(ErrorKind.TIMEOUT))

    assert await task is SubmitResult.FAILED
    last = store.get_session(origin).messages[-1]
    assert last.error is True
    assert last.error_kind == "timeout"


@pytest.mark.asyncio
async def test_request_events_are_emitted(storage, gateway):
    events = []
    store = SessionStore(storage, emitter=EventEmitter(events.append))
    orchestrator = SendOrchestrator(store, gateway)

    await orchestrator.submit("hi")

    started = [e for e in events if isinstance(e, RequestStartedEvent)]
    finished = [e for e in events if isinstance(e, RequestFinishedEvent)]
    assert started == [RequestStartedEvent(session_id=DEFAULT_SESSION_ID, context_size=3)]
    assert len(finished) == 1
    assert finished[0].success is True
    assert finished[0].error_kind is None
