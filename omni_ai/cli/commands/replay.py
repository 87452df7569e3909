"""
Offline replay of captured agent streams.

Reads a JSON Lines file of raw chunks (one per line, or SSE ``data:`` lines)
and renders it exactly as a live turn would be rendered.
"""

from argparse import ArgumentParser, Namespace
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from ..._streaming import TurnStream
from ...sse import parse_sse_frame
from ..base import Command
from ..display import DISPLAY_FORMATS, create_display
from ..util import render_stream

if TYPE_CHECKING:
    from ...chat import ChatSession

logger = logging.getLogger(__name__)


def load_raw_chunks(path: Path) -> list[Any]:
    """Load raw chunks from a JSONL or SSE capture file; undecodable lines are skipped."""
    chunks: list[Any] = []
    for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("data:"):
            payload = parse_sse_frame(stripped)
            if payload is not None:
                chunks.append(payload)
            continue
        try:
            chunks.append(json.loads(stripped))
        except json.JSONDecodeError:
            logger.warning("Skipping undecodable line %d in %s", lineno, path)
    return chunks


class ReplayCommand(Command):
    """Interpret a captured raw chunk stream."""

    name = "replay"
    description = "Replay a captured raw chunk stream (JSONL or SSE) through the interpreter"
    requires_client = False
    top_level: ClassVar[bool] = True

    def add_arguments(self, parser: ArgumentParser) -> None:
        parser.add_argument("file", help="Path to the capture file")
        parser.add_argument(
            "--no-drain",
            action="store_true",
            help="Interpret each raw chunk once (first fragment only) instead of draining",
        )
        parser.add_argument(
            "--format",
            choices=DISPLAY_FORMATS,
            default="json",
            help="Output format (default: json)",
        )

    def execute(self, args: Namespace, chat: Optional["ChatSession"] = None) -> int:
        path = Path(args.file)
        if not path.is_file():
            print(f"❌ File not found: {path}")
            return 1

        stream = TurnStream(load_raw_chunks(path), drain=not args.no_drain)
        return render_stream(stream, create_display(args.format))
