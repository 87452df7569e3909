"""
Conversation commands for the omni-ai CLI.

``chat`` sends a message on a thread (resuming its session); ``fork`` branches
a new thread off an existing one.
"""

from argparse import ArgumentParser, Namespace
from typing import TYPE_CHECKING, ClassVar, Optional

from ...exceptions import OmniError
from ..base import Command
from ..display import DISPLAY_FORMATS, create_display
from ..util import render_stream

if TYPE_CHECKING:
    from ...chat import ChatSession


def _add_display_arguments(parser: ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        choices=DISPLAY_FORMATS,
        default="verbose",
        help="Output format (default: verbose)",
    )
    parser.add_argument(
        "--hide-planning",
        action="store_true",
        help="Hide planning sentences (\"Let me check...\") from the response",
    )


class ChatCommand(Command):
    """Send a message to the investigation agent."""

    name = "chat"
    aliases: ClassVar[list[str]] = ["c"]
    description = "Send a message on a conversation thread"
    requires_client = True
    top_level: ClassVar[bool] = True

    def add_arguments(self, parser: ArgumentParser) -> None:
        parser.add_argument("message", help="Message to send")
        parser.add_argument(
            "--thread", default="default", help="Thread id to continue (default: default)"
        )
        parser.add_argument(
            "--new", action="store_true", help="Forget the thread's session and start fresh"
        )
        _add_display_arguments(parser)

    def execute(self, args: Namespace, chat: Optional["ChatSession"] = None) -> int:
        if not chat:
            print("❌ Agent runtime not configured")
            return 1

        try:
            if args.new:
                chat.clear(args.thread)
            stream = chat.send(args.message, thread_id=args.thread)
            display = create_display(
                args.format, hide_planning=args.hide_planning, prompt=args.message
            )
            return render_stream(stream, display)
        except OmniError as e:
            print(f"❌ {e.message}")
            return 1


class ForkCommand(Command):
    """Branch a new thread from an existing one."""

    name = "fork"
    description = "Fork a conversation thread and send a message on the branch"
    requires_client = True
    top_level: ClassVar[bool] = True

    def add_arguments(self, parser: ArgumentParser) -> None:
        parser.add_argument("message", help="Message to send on the new branch")
        parser.add_argument(
            "--from", dest="from_thread", required=True, help="Thread id to fork from"
        )
        parser.add_argument("--thread", help="Thread id for the branch (default: fork-<ms>)")
        _add_display_arguments(parser)

    def execute(self, args: Namespace, chat: Optional["ChatSession"] = None) -> int:
        if not chat:
            print("❌ Agent runtime not configured")
            return 1

        try:
            stream = chat.fork(args.message, args.from_thread, thread_id=args.thread)
            print(f"🔀 Forked {args.from_thread} → {stream.thread_id}")
            display = create_display(
                args.format, hide_planning=args.hide_planning, prompt=args.message
            )
            return render_stream(stream, display)
        except OmniError as e:
            print(f"❌ {e.message}")
            return 1
