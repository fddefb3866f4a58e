#!/usr/bin/env python3
"""
TODOSYNC - CLI Interface
========================
Command-line client for the todo backend. Keeps working from a local
snapshot when the backend is unreachable.

Usage:
    todosync list
    todosync add "buy milk"
    todosync toggle 3
    todosync rename 3 "buy oat milk"
    todosync up 3
    todosync archive
    todosync archived
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import Settings
from .dispatcher import TodoDispatcher
from .remote import HttpRemoteStore, RemoteStore
from .schema import CommandOutcome, Todo
from .store import TodoStore

SUCCESSFUL_OUTCOMES = {CommandOutcome.CONFIRMED, CommandOutcome.NOOP, CommandOutcome.KEPT_LOCAL}

OUTCOME_ICONS = {
    CommandOutcome.CONFIRMED: "✅",
    CommandOutcome.KEPT_LOCAL: "💾",
    CommandOutcome.NOOP: "⏭️",
    CommandOutcome.ROLLED_BACK: "↩️",
    CommandOutcome.PARTIAL: "⚠️",
    CommandOutcome.FAILED: "❌",
    CommandOutcome.REJECTED: "⛔",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="todosync",
        description="TODOSYNC - offline-tolerant todo client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  todosync list                     Show active todos
  todosync add "buy milk"           Add a todo (kept locally if offline)
  todosync toggle 3                 Flip completed on todo 3
  todosync rename 3 "oat milk"      Rename todo 3
  todosync up 3 / down 3            Change priority of todo 3
  todosync delete 3                 Delete todo 3
  todosync archive                  Archive completed todos
  todosync archived                 Show archived todos
  todosync complete-all             Mark every todo completed
  todosync ping                     Check the backend is reachable
        """
    )
    parser.add_argument("--base-url", help="Backend URL (default: $TODOSYNC_BASE_URL)")
    parser.add_argument("--snapshot", type=Path, help="Snapshot file (default: $TODOSYNC_SNAPSHOT_PATH)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    list_parser = subparsers.add_parser("list", help="Show active todos")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    add_parser = subparsers.add_parser("add", help="Add a todo")
    add_parser.add_argument("title", help="Title (max 22 characters)")

    for name, help_text in (
        ("toggle", "Toggle completed"),
        ("delete", "Delete a todo"),
        ("up", "Increase priority"),
        ("down", "Decrease priority"),
    ):
        item_parser = subparsers.add_parser(name, help=help_text)
        item_parser.add_argument("todo_id", type=int, help="Todo ID")

    rename_parser = subparsers.add_parser("rename", help="Rename a todo")
    rename_parser.add_argument("todo_id", type=int, help="Todo ID")
    rename_parser.add_argument("title", help="New title (max 22 characters)")

    subparsers.add_parser("clear", help="Remove all active todos")
    subparsers.add_parser("archive", help="Archive completed todos")

    archived_parser = subparsers.add_parser("archived", help="Show archived todos")
    archived_parser.add_argument("--json", action="store_true", help="Output as JSON")

    complete_all_parser = subparsers.add_parser("complete-all", help="Mark all todos completed")
    complete_all_parser.add_argument("--concurrent", action="store_true", help="Send toggles concurrently")

    subparsers.add_parser("ping", help="Check the backend is reachable")

    return parser


def format_todos(todos: List[Todo], heading: str) -> str:
    lines = [
        f"📋 {heading}",
        f"Total Todos: {len(todos)}",
        "-" * 40,
    ]
    for todo in todos:
        mark = "✅" if todo.completed else "⬜"
        lines.append(f"  {mark} {todo.priority:>2}. {todo.title}  [{todo.id}]")
    return "\n".join(lines)


def _dump(todos: List[Todo]) -> str:
    return json.dumps([todo.model_dump(mode='json') for todo in todos], indent=2)


async def run_command(args: argparse.Namespace, settings: Settings, remote: RemoteStore) -> int:
    """Execute one parsed command against the remote store"""
    if args.command == "ping":
        text = await TodoDispatcher(TodoStore(), remote).ping()
        if text is None:
            print(f"❌ Unreachable: {settings.base_url}")
            return 1
        print(f"✅ {settings.base_url}: {text}")
        return 0

    if args.command == "archived":
        archived = await TodoDispatcher(TodoStore(), remote).fetch_archived()
        print(_dump(archived) if args.json else format_todos(archived, "Archived Todos"))
        return 0

    store = TodoStore()
    store.load_snapshot(settings.snapshot_path)
    dispatcher = TodoDispatcher(store, remote, mark_all_concurrent=settings.mark_all_concurrent)

    if await dispatcher.fetch_active() is CommandOutcome.FAILED:
        print("⚠️ Backend unreachable, working from local snapshot", file=sys.stderr)

    if args.command == "list":
        outcome = CommandOutcome.CONFIRMED
    elif args.command == "add":
        outcome = await dispatcher.add(args.title)
    elif args.command == "toggle":
        outcome = await dispatcher.toggle_completed(args.todo_id)
    elif args.command == "rename":
        outcome = await dispatcher.rename(args.todo_id, args.title)
    elif args.command == "delete":
        outcome = await dispatcher.delete(args.todo_id)
    elif args.command == "up":
        outcome = await dispatcher.reprioritize_up(args.todo_id)
    elif args.command == "down":
        outcome = await dispatcher.reprioritize_down(args.todo_id)
    elif args.command == "clear":
        outcome = await dispatcher.clear_all()
    elif args.command == "archive":
        outcome = await dispatcher.archive_completed()
    elif args.command == "complete-all":
        outcome = await dispatcher.mark_all_completed(concurrent=args.concurrent or None)
    else:
        raise ValueError(f"Unknown command: {args.command}")

    store.save_snapshot(settings.snapshot_path)

    if args.command == "list" and args.json:
        print(_dump(store.get_all()))
    else:
        if args.command != "list":
            print(f"{OUTCOME_ICONS[outcome]} {args.command}: {outcome.value}")
        print(format_todos(store.get_all(), "Todo List"))

    return 0 if outcome in SUCCESSFUL_OUTCOMES else 1


async def _main(args: argparse.Namespace, settings: Settings) -> int:
    async with HttpRemoteStore(settings.base_url, timeout_seconds=settings.timeout_seconds) as remote:
        return await run_command(args, settings, remote)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        settings = Settings.from_env(base_url=args.base_url, snapshot_path=args.snapshot)
    except ValueError as e:
        print(f"❌ {e}")
        return 1

    logging.basicConfig(level=settings.log_level)
    return asyncio.run(_main(args, settings))


if __name__ == "__main__":
    sys.exit(main())
