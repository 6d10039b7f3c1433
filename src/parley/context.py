from parley.config import SYSTEM_PROMPT
from parley.models import Sender, Session

_ROLES = {Sender.USER: "user", Sender.BOT: "assistant"}


def build_context(
    session: Session, new_user_text: str, system_prompt: str = SYSTEM_PROMPT
) -> list[dict]:
    # Full history every time; error replies stay in the context.
    messages = [{"role": "system", "content": system_prompt}]
    messages.extend({"role": _ROLES[m.sender], "content": m.text} for m in session.messages)
    messages.append({"role": "user", "content": new_user_text})
    return messages
