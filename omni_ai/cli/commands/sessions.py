"""
Session mapping commands for the omni-ai CLI.
"""

from argparse import ArgumentParser, Namespace
import json
from typing import TYPE_CHECKING, ClassVar, Optional

from ...config import Settings
from ...sessions import get_session_store
from ..base import Command, CommandGroup

if TYPE_CHECKING:
    from ...chat import ChatSession
    from ...sessions import SessionStore


def _store_and_resource(
    args: Namespace, chat: Optional["ChatSession"]
) -> tuple["SessionStore", str]:
    """Store to read from and the resource to scope to (``--resource`` wins)."""
    if chat is not None:
        return chat.store, args.resource or chat.resource_id
    settings = getattr(args, "settings", None) or Settings.from_env()
    return get_session_store(settings.session_db), args.resource or settings.resource_id


def _add_resource_argument(parser: ArgumentParser) -> None:
    parser.add_argument("--resource", help="Resource (user) id; defaults to OMNI_AI_RESOURCE_ID")


class ListSessionsCommand(Command):
    name = "list"
    aliases: ClassVar[list[str]] = ["ls"]
    description = "List sessions, most recently used first"
    requires_client = False

    def add_arguments(self, parser: ArgumentParser) -> None:
        _add_resource_argument(parser)
        parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    def execute(self, args: Namespace, chat: Optional["ChatSession"] = None) -> int:
        store, resource_id = _store_and_resource(args, chat)
        sessions = store.list_sessions(resource_id)

        if args.json:
            payload = {"sessions": [s.to_dict() for s in sessions], "count": len(sessions)}
            print(json.dumps(payload, indent=2))
            return 0

        if not sessions:
            print(f"No sessions for {resource_id}")
            return 0

        print(f"\n🧵 Sessions for {resource_id} ({len(sessions)})")
        print("=" * 60)
        for mapping in sessions:
            print(f"   {mapping.thread_id:<24} {mapping.session_id:<38} {mapping.updated_at}")
        print()
        return 0


class ShowSessionCommand(Command):
    name = "show"
    description = "Show the session stored for a thread"
    requires_client = False

    def add_arguments(self, parser: ArgumentParser) -> None:
        parser.add_argument("thread_id", help="Thread id")
        _add_resource_argument(parser)

    def execute(self, args: Namespace, chat: Optional["ChatSession"] = None) -> int:
        store, resource_id = _store_and_resource(args, chat)
        mapping = store.get_session_metadata(args.thread_id, resource_id)
        if mapping is None:
            print(f"❌ Session not found for thread {args.thread_id}")
            return 1
        print(json.dumps(mapping.to_dict(), indent=2))
        return 0


class DeleteSessionCommand(Command):
    name = "delete"
    aliases: ClassVar[list[str]] = ["rm"]
    description = "Delete the session stored for a thread"
    requires_client = False

    def add_arguments(self, parser: ArgumentParser) -> None:
        parser.add_argument("thread_id", help="Thread id")
        _add_resource_argument(parser)

    def execute(self, args: Namespace, chat: Optional["ChatSession"] = None) -> int:
        store, resource_id = _store_and_resource(args, chat)
        store.delete_session(args.thread_id, resource_id)
        print(f"🗑️  Deleted session: {args.thread_id} ({resource_id})")
        return 0


class SessionsCommandGroup(CommandGroup):
    """Inspect the thread -> upstream session mappings kept by the session store."""

    name = "sessions"
    aliases: ClassVar[list[str]] = ["s"]
    description = "Inspect and delete thread → session mappings"
    requires_client = False
    subcommand_classes = (ListSessionsCommand, ShowSessionCommand, DeleteSessionCommand)
