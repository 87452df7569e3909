"""
Agent stream interpreter.

Turns the raw chunks emitted by the agent runtime (system/init, assistant
messages with interleaved text, tool-use and tool-result fragments, thinking,
errors and the final result) into a small closed set of typed chunks that a
UI can render directly.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

UNKNOWN_TOOL_NAME = "unknown"
RESPONSE_COMPLETE_MESSAGE = "Response complete"

_MCP_PREFIX_PATTERN = re.compile(r"^mcp__[^_]+__")


class ParsedChunkType(str, Enum):
    """Parsed chunk types surfaced to the UI."""

    TEXT = "text"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    SYSTEM = "system"
    THINKING = "thinking"
    ERROR = "error"


class SystemSubtype(str, Enum):
    """Lifecycle signals carried by system chunks."""

    INIT = "init"
    STATUS = "status"
    COMPLETE = "complete"


@dataclass
class ParsedChunk:
    """Base class for all parsed chunks."""

    type: ParsedChunkType
    raw: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase wire shape used by the browser client."""
        return {"type": self.type.value}


@dataclass
class TextChunk(ParsedChunk):
    """Assistant text delta plus everything streamed so far."""

    content: str
    accumulated_text: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "content": self.content,
            "accumulatedText": self.accumulated_text,
        }


@dataclass
class ToolUseChunk(ParsedChunk):
    """Newly announced tool invocation."""

    id: str | None
    name: str | None
    display_name: str | None
    input: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "id": self.id,
            "name": self.name,
            "displayName": self.display_name,
            "input": self.input,
        }


@dataclass
class ToolResultChunk(ParsedChunk):
    """Outcome of a previously announced tool invocation."""

    tool_use_id: str | None
    name: str
    result: Any = None
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "toolUseId": self.tool_use_id,
            "name": self.name,
            "result": self.result,
            "isError": self.is_error,
        }


@dataclass
class SystemChunk(ParsedChunk):
    """Lifecycle or status signal (init, status, complete)."""

    subtype: str
    message: str | None = None
    session_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value, "subtype": self.subtype}
        if self.message is not None:
            data["message"] = self.message
        if self.session_id is not None:
            data["sessionId"] = self.session_id
        return data


@dataclass
class ThinkingChunk(ParsedChunk):
    """Internal reasoning text, kept apart from the answer text."""

    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "content": self.content}


@dataclass
class ErrorChunk(ParsedChunk):
    """Failure reported by the upstream stream."""

    message: str
    details: Any = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value, "message": self.message}
        if self.details is not None:
            data["details"] = self.details
        return data


def clean_tool_name(name: str | None) -> str | None:
    """Strip the ``mcp__<server>__`` prefix from a tool name.

    ``mcp__omni-api__discover_datasets`` becomes ``discover_datasets``.
    """
    if not isinstance(name, str):
        return name
    return _MCP_PREFIX_PATTERN.sub("", name)


def _tool_key(tool_use_id: object) -> str | None:
    """Key a tool call by its id; ids that are neither strings nor integers are never matched."""
    if isinstance(tool_use_id, bool) or not isinstance(tool_use_id, (str, int)):
        return None
    return str(tool_use_id)


def _first_present(data: Mapping[str, Any], *keys: str) -> Any:
    """Return the first truthy value among ``keys``."""
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return None


class StreamParser:
    """
    Stateful interpreter for one streamed agent response.

    Maintains the running assistant text and every tool call announced so far,
    so that tool results arriving in later chunks can be matched back to the
    tool use that opened them. Emits at most one parsed chunk per call; inside
    an assistant message tool results win over text, and text wins over tool
    uses. Feed the remaining fragments again to drain a multi-fragment message.
    """

    def __init__(self) -> None:
        self._accumulated_text = ""
        self._active_tool_calls: dict[str, ToolUseChunk] = {}

    def interpret(self, raw: object) -> ParsedChunk | None:
        """Interpret one raw chunk. Never raises; malformed input yields ``None``."""
        if not isinstance(raw, Mapping):
            return None

        data = dict(raw)
        chunk_type = data.get("type")

        if chunk_type == "system":
            return self._parse_system(data)

        if chunk_type == "assistant":
            message = data.get("message")
            if isinstance(message, Mapping) and message.get("content"):
                return self._parse_assistant(data, message["content"])
            return None

        if chunk_type == "tool_result":
            return self._parse_tool_result(data)

        if chunk_type == "result":
            return SystemChunk(
                type=ParsedChunkType.SYSTEM,
                raw=data,
                subtype=SystemSubtype.COMPLETE.value,
                message=RESPONSE_COMPLETE_MESSAGE,
            )

        if chunk_type == "thinking":
            return ThinkingChunk(
                type=ParsedChunkType.THINKING,
                raw=data,
                content=_first_present(data, "thinking", "content") or "",
            )

        if chunk_type == "error":
            return self._parse_error(data)

        logger.debug("Skipping unrecognized chunk type: %r", chunk_type)
        return None

    def _parse_error(self, data: dict[str, Any]) -> ErrorChunk:
        error = data.get("error")
        details = data.get("details")
        if isinstance(error, Mapping):
            # {"error": {"message": ..., "type": ...}}: keep the object as details
            message = error.get("message") or data.get("message")
            if details is None:
                details = dict(error)
        else:
            message = _first_present(data, "error", "message")
        return ErrorChunk(
            type=ParsedChunkType.ERROR,
            raw=data,
            message=str(message) if message else "Unknown error",
            details=details,
        )

    def _parse_system(self, data: dict[str, Any]) -> SystemChunk:
        return SystemChunk(
            type=ParsedChunkType.SYSTEM,
            raw=data,
            subtype=data.get("subtype") or SystemSubtype.STATUS.value,
            message=data.get("message"),
            session_id=data.get("session_id"),
        )

    def _parse_assistant(self, data: dict[str, Any], content: object) -> ParsedChunk | None:
        if not isinstance(content, list):
            return None
        fragments = [fragment for fragment in content if isinstance(fragment, Mapping)]

        # Tool results close out earlier tool uses, so they go first.
        tool_results = [f for f in fragments if f.get("type") == "tool_result"]
        if tool_results:
            fragment = tool_results[0]
            tool_use_id = fragment.get("tool_use_id")
            return ToolResultChunk(
                type=ParsedChunkType.TOOL_RESULT,
                raw=data,
                tool_use_id=tool_use_id,
                name=self._resolve_tool_name(tool_use_id),
                result=fragment.get("content"),
                is_error=bool(fragment.get("is_error") or False),
            )

        text_parts = [f for f in fragments if f.get("type") == "text"]
        if text_parts:
            new_text = "".join(str(f.get("text") or "") for f in text_parts)
            self._accumulated_text += new_text
            return TextChunk(
                type=ParsedChunkType.TEXT,
                raw=data,
                content=new_text,
                accumulated_text=self._accumulated_text,
            )

        tool_uses = [f for f in fragments if f.get("type") == "tool_use"]
        if tool_uses:
            fragment = tool_uses[0]
            tool_use = ToolUseChunk(
                type=ParsedChunkType.TOOL_USE,
                raw=data,
                id=fragment.get("id"),
                name=fragment.get("name"),
                display_name=clean_tool_name(fragment.get("name")),
                input=fragment.get("input"),
            )
            key = _tool_key(tool_use.id)
            if key is not None:
                self._active_tool_calls[key] = tool_use
            return tool_use

        return None

    def _parse_tool_result(self, data: dict[str, Any]) -> ToolResultChunk:
        tool_use_id = _first_present(data, "tool_use_id", "toolUseId", "id")
        return ToolResultChunk(
            type=ParsedChunkType.TOOL_RESULT,
            raw=data,
            tool_use_id=tool_use_id,
            name=self._resolve_tool_name(tool_use_id),
            result=_first_present(data, "result", "content"),
            is_error=bool(data.get("is_error") or data.get("isError") or False),
        )

    def _resolve_tool_name(self, tool_use_id: object) -> str:
        key = _tool_key(tool_use_id)
        tool_call = self._active_tool_calls.get(key) if key is not None else None
        if tool_call is None or not tool_call.display_name:
            logger.debug("No tool use registered for tool result %r", tool_use_id)
            return UNKNOWN_TOOL_NAME
        return tool_call.display_name

    def get_accumulated_text(self) -> str:
        """Get all assistant text streamed so far."""
        return self._accumulated_text

    def get_active_tool_calls(self) -> list[ToolUseChunk]:
        """Get announced tool calls in the order they were seen."""
        return list(self._active_tool_calls.values())

    def reset(self) -> None:
        """Clear accumulated text and tool calls before a new turn."""
        self._accumulated_text = ""
        self._active_tool_calls.clear()


def hint_from_chunk(chunk: ParsedChunk | None) -> str | None:
    """
    Map a parsed chunk to a short "what is happening now" status line.

    Returns ``None`` when the chunk should clear (or not set) the indicator.
    """
    if isinstance(chunk, SystemChunk):
        if chunk.subtype == SystemSubtype.INIT.value:
            return "Agent initialized, processing query..."
        if chunk.subtype == SystemSubtype.COMPLETE.value:
            return None
        return chunk.message or None

    if isinstance(chunk, ToolUseChunk):
        return f"Calling tool: {chunk.display_name}"

    if isinstance(chunk, ThinkingChunk):
        return "Thinking..."

    if isinstance(chunk, ErrorChunk):
        return f"Error: {chunk.message}"

    return None
