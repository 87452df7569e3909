"""
CLI process helpers: Ctrl-C/SIGTERM handling and driving a turn through a display.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
import contextlib
import signal
import sys
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .._streaming import TurnStream
    from .display import StreamDisplay

CANCELLED_EXIT = 130  # 128 + SIGINT


def _announce_cancel() -> None:
    sys.stderr.write("\n✖ Cancelled by user\n")
    sys.stderr.flush()


def _raise_interrupt(_signum: int, _frame: Any) -> None:
    raise KeyboardInterrupt


@contextlib.contextmanager
def _sigterm_as_interrupt() -> Iterator[None]:
    """Treat SIGTERM like Ctrl-C for the duration of the block."""
    previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


@contextlib.contextmanager
def _quiet_interrupts() -> Iterator[None]:
    """Replace the KeyboardInterrupt traceback with a one-line notice."""
    original = sys.excepthook

    def hook(exc_type: type[BaseException], exc: BaseException, tb: Any) -> Any:
        if issubclass(exc_type, KeyboardInterrupt):
            _announce_cancel()
            sys.exit(CANCELLED_EXIT)
        return original(exc_type, exc, tb)

    sys.excepthook = hook
    try:
        yield
    finally:
        sys.excepthook = original


def graceful_main(fn: Callable[[list[str]], int], argv: list[str]) -> int:
    """Run ``fn(argv)``; Ctrl-C or SIGTERM exits with 130 instead of a traceback."""
    try:
        with _sigterm_as_interrupt(), _quiet_interrupts():
            return int(fn(argv) or 0)
    except KeyboardInterrupt:
        _announce_cancel()
        return CANCELLED_EXIT


def render_stream(stream: TurnStream, display: StreamDisplay) -> int:
    """
    Drive a turn stream through a display.

    Returns:
        0 when the turn completed cleanly, 1 when the agent reported errors
    """
    display.start()
    try:
        with stream:
            for chunk in stream:
                display.on_chunk(chunk)
    finally:
        display.finish()
    return 1 if stream.has_errors() else 0
