"""
Server-Sent Events framing.

Encodes parsed (or raw) chunks as ``data: <json>\\n\\n`` frames for the browser
client, and decodes the SSE stream the agent runtime sends back.
"""

from collections.abc import Iterable, Iterator, Mapping
import json
import logging
from typing import Any

from .streaming import ParsedChunk

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


def encode_sse(payload: ParsedChunk | Mapping[str, Any]) -> str:
    """Frame a chunk as a single SSE ``data:`` event."""
    data = payload.to_dict() if isinstance(payload, ParsedChunk) else dict(payload)
    return f"data: {json.dumps(data, default=str)}\n\n"


def _data_field(lines: Iterable[str]) -> str:
    """Join the ``data:`` fields of one event; other fields and comments are dropped."""
    values = []
    for line in lines:
        field, sep, value = line.partition(":")
        if field == "data" and sep:
            values.append(value[1:] if value.startswith(" ") else value)
    return "\n".join(values).strip()


def parse_sse_frame(frame: str) -> dict[str, Any] | None:
    """
    Decode one SSE event into its JSON object.

    Comments, ``[DONE]``, undecodable JSON and non-object payloads give None.
    """
    payload = _data_field(frame.splitlines()) if frame else ""
    if not payload or payload == DONE_SENTINEL:
        return None

    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning("Dropping SSE event with invalid JSON: %s", payload[:200])
        return None
    if not isinstance(data, dict):
        logger.debug("Dropping non-object SSE payload: %s", payload[:200])
        return None
    return data


def iter_sse_payloads(response: Any, decode_unicode: bool = True) -> Iterator[dict[str, Any]]:
    """
    Yield the JSON object of every event in a streaming ``requests`` response.

    Args:
        response: Response opened with ``stream=True``
        decode_unicode: Ask requests to decode lines (SSE is always UTF-8)
    """
    if decode_unicode:
        # requests assumes ISO-8859-1 for text/* responses without a charset
        response.encoding = "utf-8"

    event: list[str] = []
    for raw_line in response.iter_lines(decode_unicode=decode_unicode):
        line = raw_line
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        if line:
            event.append(line)
            continue
        # A blank line dispatches the event
        if event:
            payload = parse_sse_frame("\n".join(event))
            event = []
            if payload is not None:
                yield payload

    # Stream closed mid-event
    if event:
        payload = parse_sse_frame("\n".join(event))
        if payload is not None:
            yield payload
