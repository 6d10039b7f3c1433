from parley.config import SYSTEM_PROMPT
from parley.context import build_context
from parley.models import Message, Sender, Session, new_session


def test_context_for_fresh_session():
    session = new_session("s1")

    context = build_context(session, "hello")

    assert context == [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "assistant", "content": session.messages[0].text},
        {"role": "user", "content": "hello"},
    ]


def test_context_maps_roles_and_keeps_error_replies():
    session = Session(
        id="s1",
        title="t",
        messages=(
            Message(id=1, text="greeting", sender=Sender.BOT),
            Message(id=2, text="question", sender=Sender.USER),
            Message(id=3, text="sorry", sender=Sender.BOT, error=True, error_kind="transport"),
        ),
    )

    context = build_context(session, "again?", system_prompt="be brief")

    assert [m["role"] for m in context] == ["system", "assistant", "user", "assistant", "user"]
    assert context[0]["content"] == "be brief"
    assert context[3]["content"] == "sorry"
    assert context[-1] == {"role": "user", "content": "again?"}


def test_context_sends_full_history():
    messages = [Message(id=1, text="greeting", sender=Sender.BOT)]
    for i in range(2, 202):
        messages.append(Message(id=i, text=f"m{i}", sender=Sender.USER if i % 2 else Sender.BOT))
    session = Session(id="s1", title="t", messages=tuple(messages))

    context = build_context(session, "next")

    assert len(context) == len(messages) + 2
