from parley.config import resolve_model_alias
from parley.models import Sender


class BuiltinCommands:
    def __init__(self, runtime):
        self.runtime = runtime
        self._handlers = {
            "quit": self.cmd_quit,
            "exit": self.cmd_quit,
            "new": self.cmd_new,
            "sessions": self.cmd_sessions,
            "switch": self.cmd_switch,
            "rename": self.cmd_rename,
            "delete": self.cmd_delete,
            "history": self.cmd_history,
            "model": self.cmd_model,
            "help": self.cmd_help,
        }

    def list_commands(self) -> list[str]:
        return sorted(self._handlers.keys())

    def has_command(self, name: str) -> bool:
        return name in self._handlers

    def handle(self, name: str, args: str) -> bool:
        handler = self._handlers.get(name)
        if not handler:
            return True
        return handler(args)

    def cmd_quit(self, args: str) -> bool:
        print("👋 Goodbye!")
        return False

    def cmd_new(self, args: str) -> bool:
        session_id = self.runtime.store.create_session()
        print(f"✅ Started session {session_id}")
        print(self.runtime.store.get_session(session_id).messages[0].text)
        return True

    def cmd_sessions(self, args: str) -> bool:
        state = self.runtime.snapshot()
        print("Sessions:")
        for session in state.sessions:
            marker = "*" if session.id == state.active_session_id else " "
            busy = " (waiting for reply)" if self.runtime.orchestrator.is_pending(session.id) else ""
            print(f" {marker} {session.id} - {session.title}{busy}")
        return True

    def cmd_switch(self, args: str) -> bool:
        if not args:
            print("Usage: /switch <id>")
            return True
        if self.runtime.store.select_session(args.strip()):
            print(f"✅ Switched to {self.runtime.active_session.title}")
        else:
            print(f"❌ Session {args} not found")
        return True

    def cmd_rename(self, args: str) -> bool:
        store = self.runtime.store
        store.rename_session(store.active_session_id, args)
        print(f"✅ Renamed to {store.active_session.title}")
        return True

    def cmd_delete(self, args: str) -> bool:
        store = self.runtime.store
        target = args.strip() or store.active_session_id
        if store.delete_session(target):
            print(f"✅ Deleted {target}; active session is {store.active_session_id}")
        else:
            print(f"❌ Session {target} cannot be deleted")
        return True

    def cmd_history(self, args: str) -> bool:
        session = self.runtime.active_session
        print(f"— {session.title} —")
        for message in session.messages:
            who = "you" if message.sender is Sender.USER else "bot"
            flag = " ⚠️" if message.error else ""
            print(f"[{message.id}] {who}{flag}: {message.text}")
        return True

    def cmd_model(self, args: str) -> bool:
        if not args:
            print(f"Current model: {self.runtime.config.model}")
            return True
        self.runtime.config.model = resolve_model_alias(args.strip())
        print(f"✅ Switched to model: {self.runtime.config.model}")
        return True

    def cmd_help(self, args: str) -> bool:
        print("\nCommands:")
        for name in self.list_commands():
            print(f"  /{name}")
        print()
        return True
