from dataclasses import dataclass

# Commands whose argument, when given, must name an existing session.
SESSION_COMMANDS = frozenset({"switch", "delete"})


@dataclass(frozen=True)
class Route:
    """Where a line of REPL input goes: ``prompt``, ``builtin``, ``unknown`` or ``rejected``."""

    kind: str
    name: str | None = None
    args: str = ""
    reason: str | None = None


class InputRouter:
    def __init__(self, runtime, builtins):
        self.runtime = runtime
        self.builtins = builtins

    def route(self, user_input: str) -> Route:
        if not user_input.startswith("/"):
            return self._route_prompt(user_input)

        parts = user_input.split(maxsplit=1)
        cmd = parts[0].lstrip("/").lower()
        args = parts[1].strip() if len(parts) > 1 else ""

        if not self.builtins.has_command(cmd):
            return Route(kind="unknown", name=cmd, args=args)
        if cmd in SESSION_COMMANDS and args and args not in self.runtime.store:
            return Route(kind="rejected", name=cmd, args=args, reason=f"Session {args} not found")
        return Route(kind="builtin", name=cmd, args=args)

    def _route_prompt(self, text: str) -> Route:
        limit = self.runtime.orchestrator.max_length
        if len(text) > limit:
            return Route(
                kind="rejected",
                args=text,
                reason=f"Message is too long [{len(text)}/{limit}]",
            )
        return Route(kind="prompt", args=text)
