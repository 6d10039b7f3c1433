import asyncio

from common.events import Event, InputRejectedEvent, MessageAppendedEvent
from parley.orchestrator import SubmitResult
from parley.runtime.builtins import BuiltinCommands
from parley.runtime.router import InputRouter

_REJECTION_HINTS = {
    SubmitResult.BUSY.value: "⏳ Still waiting for the previous reply in this session",
    SubmitResult.NO_SESSION.value: "❌ That session no longer exists",
}


def print_event(event: Event) -> None:
    if isinstance(event, MessageAppendedEvent) and event.sender == "bot":
        prefix = "⚠️ " if event.error else "🤖 "
        print(f"\n{prefix}[{event.session_id}] {event.text}")
    elif isinstance(event, InputRejectedEvent) and event.reason in _REJECTION_HINTS:
        print(_REJECTION_HINTS[event.reason])


class ChatREPL:
    def __init__(self, runtime):
        self.runtime = runtime
        self.builtins = BuiltinCommands(runtime)
        self.router = InputRouter(runtime, self.builtins)

    async def _read_line(self) -> str:
        return await asyncio.to_thread(input, "\n> ")

    async def run(self) -> None:
        session = self.runtime.active_session
        print(f"🤖 parley started (model: {self.runtime.config.model})")
        print(f"Session: {session.title} [{session.id}]")
        print("Commands: /help for all commands")
        print()
        print(session.messages[-1].text)

        try:
            while True:
                try:
                    user_input = (await self._read_line()).strip()
                except EOFError:
                    break

                if not user_input:
                    continue

                route = self.router.route(user_input)
                if route.kind == "builtin":
                    if not self.builtins.handle(route.name, route.args):
                        break
                    continue
                if route.kind == "rejected":
                    print(f"❌ {route.reason}")
                    continue
                if route.kind == "unknown":
                    print(f"Unknown command: /{route.name}. Type /help for available commands.")
                    continue

                self.runtime.send_in_background(route.args)
        except KeyboardInterrupt:
            print("\n\n⚠️  Interrupted")
        await self.runtime.drain()
