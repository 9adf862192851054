from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any

from .configs import DEFAULT_DB_PATH, build_orchestrator, load_config_from_env
from .core.session import SessionManager
from .errors import InvalidRequestError, MnemochatError, UnauthorizedError
from .store.sqlite_vec_store import SQLiteVecChatStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mnemochat")
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument(
        "--user",
        default=os.environ.get("MNEMOCHAT_USER_ID"),
        help="User id to act as (default: $MNEMOCHAT_USER_ID)",
    )
    parser.add_argument(
        "--db",
        default=os.environ.get("MNEMOCHAT_DB_PATH", DEFAULT_DB_PATH),
        help="SQLite database path (default: $MNEMOCHAT_DB_PATH or %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    sub = parser.add_subparsers(dest="command")

    chat = sub.add_parser("chat", help="Send one message and print the reply")
    chat.add_argument("message")
    chat.add_argument("--session", dest="session_id", default=None)
    chat.add_argument("--system-prompt", dest="system_prompt", default=None)

    sessions = sub.add_parser("sessions", help="List sessions, most recently updated first")
    sessions.add_argument("--limit", type=int, default=50)

    rename = sub.add_parser("rename", help="Set a session title")
    rename.add_argument("session_id")
    rename.add_argument("title")

    delete = sub.add_parser("delete", help="Delete a session and its messages")
    delete.add_argument("session_id")

    memories = sub.add_parser("memories", help="List semantic memory entries")
    memories.add_argument("--limit", type=int, default=50)

    return parser


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


async def _run(args: argparse.Namespace) -> Any:
    if not args.user:
        raise UnauthorizedError("A user id is required (--user or MNEMOCHAT_USER_ID)")

    store = SQLiteVecChatStore(args.db)
    await store.initialize()
    try:
        if args.command == "chat":
            orchestrator = build_orchestrator(store, config=load_config_from_env())
            response = await orchestrator.chat(
                args.user,
                args.message,
                session_id=args.session_id,
                system_prompt=args.system_prompt,
            )
            return response.to_payload()

        sessions = SessionManager(store)
        if args.command == "sessions":
            summaries = await sessions.list_sessions(args.user, args.limit)
            return [summary.model_dump(mode="json") for summary in summaries]
        if args.command == "rename":
            session = await sessions.rename(args.user, args.session_id, args.title)
            return session.model_dump(mode="json")
        if args.command == "delete":
            deleted = await sessions.delete(args.user, args.session_id)
            return {"session_id": args.session_id, "deleted": deleted}
        if args.command == "memories":
            entries = await store.list_memories(args.user, args.limit)
            return [entry.model_dump(mode="json", exclude={"embedding"}) for entry in entries]
        raise InvalidRequestError(f"Unknown command: {args.command}")
    finally:
        await store.close()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from importlib.metadata import PackageNotFoundError, version

        try:
            print(version("mnemochat"))
        except PackageNotFoundError:
            print("mnemochat")
        return 0

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        result = asyncio.run(_run(args))
    except MnemochatError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(json.dumps({"error": type(e).__name__, "message": str(e)}), file=sys.stderr)
        return 1

    _print_json(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
