from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv

from parley.config import ChatConfig
from parley.errors import ConfigError
from parley.runtime.repl import ChatREPL, print_event
from parley.runtime.runtime import ChatRuntime
from parley.storage import FileStore
from parley.store import SessionStore


def main() -> int:
    load_dotenv()
    return _main(sys.argv[1:])


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="parley", description="parley - multi-session chat")
    parser.add_argument("--data-dir", default=None, help="Where chat sessions are stored")
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=False)

    chat = subparsers.add_parser("chat", help="Start interactive chat (default)")
    chat.add_argument(
        "--model",
        default=None,
        help="Model to use (supports aliases: deepseek, 4o, 4o-mini, sonnet, flash)",
    )
    chat.add_argument("--message", "-m", help="Single prompt (non-interactive)")
    chat.add_argument("--session", default=None, help="Session id to select before chatting")

    sessions = subparsers.add_parser("sessions", help="List/show/delete stored sessions")
    sessions_sub = sessions.add_subparsers(dest="sessions_cmd", required=False)
    sessions_sub.add_parser("list", help="List sessions")
    sessions_show = sessions_sub.add_parser("show", help="Print a session as JSON")
    sessions_show.add_argument("session_id")
    sessions_delete = sessions_sub.add_parser("delete", help="Delete a session")
    sessions_delete.add_argument("session_id")

    return parser


def _main(argv: list[str]) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(bool(args.verbose))

    try:
        config = ChatConfig.from_env(
            model=getattr(args, "model", None),
            data_dir=args.data_dir,
        )
        config.validate()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    cmd = args.command or "chat"
    if cmd == "chat":
        return _cmd_chat(
            config,
            message=getattr(args, "message", None),
            session_id=getattr(args, "session", None),
        )
    if cmd == "sessions":
        return _cmd_sessions(config, args)

    parser.print_help(sys.stderr)
    return 2


def _cmd_chat(config: ChatConfig, *, message: str | None, session_id: str | None) -> int:
    if message:
        runtime = ChatRuntime(config)
        if session_id and not runtime.store.select_session(session_id):
            print(f"Error: Session {session_id} not found", file=sys.stderr)
            return 1
        reply = asyncio.run(runtime.run_prompt(message))
        if reply is None:
            notice = runtime.orchestrator.notice() or "Message was not sent"
            print(f"Error: {notice}", file=sys.stderr)
            return 1
        print(reply.text)
        return 1 if reply.error else 0

    runtime = ChatRuntime(config, on_event=print_event)
    if session_id and not runtime.store.select_session(session_id):
        print(f"Error: Session {session_id} not found", file=sys.stderr)
        return 1
    asyncio.run(ChatREPL(runtime).run())
    return 0


def _cmd_sessions(config: ChatConfig, args) -> int:
    store = SessionStore.open(FileStore(config.data_dir))
    sub = args.sessions_cmd or "list"

    if sub == "list":
        state = store.snapshot()
        print(f"{'':<2}{'ID':<16} {'Messages':<9} {'Updated':<20} {'Title'}")
        for session in state.sessions:
            marker = "*" if session.id == state.active_session_id else ""
            updated = session.messages[-1].timestamp.strftime("%Y-%m-%dT%H:%M:%SZ")
            print(f"{marker:<2}{session.id:<16} {len(session.messages):<9} {updated:<20} {session.title}")
        return 0

    if sub == "show":
        session = store.get_session(args.session_id)
        if session is None:
            print(f"Error: Session {args.session_id} not found", file=sys.stderr)
            return 1
        print(json.dumps(session.model_dump(mode="json"), indent=2, ensure_ascii=False))
        return 0

    if sub == "delete":
        if not store.delete_session(args.session_id):
            print(f"Error: Session {args.session_id} cannot be deleted", file=sys.stderr)
            return 1
        print(f"Deleted {args.session_id}")
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
