"""TurnStream context manager driving one StreamParser over an upstream chunk stream."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
import logging
from typing import TYPE_CHECKING, Any

from .sse import iter_sse_payloads
from .streaming import (
    ErrorChunk,
    ParsedChunk,
    StreamParser,
    SystemChunk,
    SystemSubtype,
    ToolUseChunk,
    hint_from_chunk,
)

if TYPE_CHECKING:
    import requests

logger = logging.getLogger(__name__)

_FRAGMENT_ORDER = ("tool_result", "text", "tool_use")


def split_assistant_message(raw: object) -> list[object]:
    """Expand a multi-fragment assistant chunk into one chunk per parser call.

    Each tool result and each tool use gets its own chunk; all text fragments
    stay together in a single chunk. Chunks come out in the order the parser
    would pick them (tool results, text, tool uses). Anything else is returned
    unchanged as a one-element list.
    """
    if not isinstance(raw, Mapping) or raw.get("type") != "assistant":
        return [raw]
    message = raw.get("message")
    if not isinstance(message, Mapping):
        return [raw]
    content = message.get("content")
    if not isinstance(content, list) or len(content) <= 1:
        return [raw]

    groups: list[list[Any]] = []
    for fragment_type in _FRAGMENT_ORDER:
        matching = [
            fragment
            for fragment in content
            if isinstance(fragment, Mapping) and fragment.get("type") == fragment_type
        ]
        if not matching:
            continue
        if fragment_type == "text":
            groups.append(matching)
        else:
            groups.extend([fragment] for fragment in matching)

    if len(groups) <= 1:
        return [raw]
    return [{**raw, "message": {**message, "content": group}} for group in groups]


class TurnStream:
    """Iterable stream of parsed chunks for one conversational turn.

    Usage:
        with client.stream("Why are checkout requests failing?") as stream:
            for chunk in stream:
                print(chunk.type, chunk.to_dict())
        print(stream.text)  # full accumulated text
        print(stream.session_id)  # upstream session to resume next turn
    """

    def __init__(
        self,
        chunks: Iterable[Any],
        *,
        response: requests.Response | None = None,
        drain: bool = True,
        on_chunk: Callable[[Any], None] | None = None,
        on_event: Callable[[ParsedChunk], None] | None = None,
        thread_id: str | None = None,
    ):
        self._chunks = chunks
        self._response = response
        self._drain = drain
        self._on_chunk = on_chunk
        self._on_event = on_event
        self._parser = StreamParser()
        self._closed = False

        self.thread_id = thread_id
        self.session_id: str | None = None
        self.hint: str | None = None
        self.errors: list[str] = []
        self.raw_chunks: list[Any] = []

    @classmethod
    def from_response(cls, response: requests.Response, **kwargs: Any) -> TurnStream:
        """Build a stream that decodes SSE frames from an HTTP response."""
        return cls(iter_sse_payloads(response), response=response, **kwargs)

    def _close(self) -> None:
        """Close the underlying response (idempotent)."""
        if not self._closed:
            self._closed = True
            if self._response is not None:
                self._response.close()

    def _track(self, chunk: ParsedChunk) -> None:
        if isinstance(chunk, SystemChunk):
            if chunk.subtype == SystemSubtype.INIT.value and chunk.session_id:
                if self.session_id is None:
                    self.session_id = chunk.session_id
                    logger.debug("Captured upstream session id %s", chunk.session_id)
            if chunk.subtype == SystemSubtype.COMPLETE.value:
                self.hint = None
                return
        elif isinstance(chunk, ErrorChunk):
            self.errors.append(chunk.message)

        hint = hint_from_chunk(chunk)
        if hint is not None:
            self.hint = hint

    def __iter__(self) -> Iterator[ParsedChunk]:
        try:
            for raw in self._chunks:
                self.raw_chunks.append(raw)
                if self._on_chunk is not None:
                    self._on_chunk(raw)

                pieces = split_assistant_message(raw) if self._drain else [raw]
                for piece in pieces:
                    chunk = self._parser.interpret(piece)
                    if chunk is None:
                        continue
                    self._track(chunk)
                    if self._on_event is not None:
                        self._on_event(chunk)
                    yield chunk
        finally:
            self._close()

    def __enter__(self) -> TurnStream:
        return self

    def __exit__(self, *_: object) -> None:
        self._close()

    @property
    def text(self) -> str:
        """Full accumulated assistant text after iteration."""
        return self._parser.get_accumulated_text()

    @property
    def tool_calls(self) -> list[ToolUseChunk]:
        """Tool calls announced during the turn, in order."""
        return self._parser.get_active_tool_calls()

    def has_errors(self) -> bool:
        """Check if the upstream stream reported any error."""
        return len(self.errors) > 0
