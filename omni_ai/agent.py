"""
Agent runtime client.

Sends a prompt plus query options to the hosted agent runtime and exposes the
raw chunk stream it answers with, either interpreted (``stream``), raw
(``iter_chunks``, ``stream_query``) or fully collected (``query``).
"""

from __future__ import annotations

from collections.abc import Callable, Generator
import logging
from typing import Any

from ._http import HTTPClient
from ._streaming import TurnStream
from ._types import QueryOptions, QueryResult
from .config import Settings
from .exceptions import ValidationError
from .sse import iter_sse_payloads
from .streaming import ParsedChunk

logger = logging.getLogger(__name__)

QUERY_PATH = "/query"


def _validate_prompt(prompt: str) -> None:
    if not prompt or not prompt.strip():
        raise ValidationError("Message is required", status_code=400)


class AgentClient:
    """Client for the agent runtime's streaming query endpoint.

    Usage:
        client = AgentClient(api_key="sk-...")
        with client.stream("Why are checkout requests failing?") as stream:
            for chunk in stream:
                print(chunk.type, chunk.to_dict())
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: int | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or Settings.from_env()
        if api_key:
            settings.api_key = api_key
        self.settings = settings
        self._http = HTTPClient(
            api_key=settings.require_api_key(),
            base_url=base_url or settings.base_url,
            timeout=timeout or settings.timeout,
        )

    def _open(self, prompt: str, options: QueryOptions | None) -> Any:
        _validate_prompt(prompt)
        options = options or QueryOptions()
        if options.session_id:
            logger.debug("Resuming upstream session %s", options.session_id)
        return self._http.stream("POST", QUERY_PATH, json=options.to_body(prompt))

    def stream(
        self,
        prompt: str,
        options: QueryOptions | None = None,
        *,
        drain: bool = True,
        on_chunk: Callable[[Any], None] | None = None,
        on_event: Callable[[ParsedChunk], None] | None = None,
        thread_id: str | None = None,
    ) -> TurnStream:
        """Run a query and return an iterable TurnStream of parsed chunks."""
        resp = self._open(prompt, options)
        return TurnStream.from_response(
            resp, drain=drain, on_chunk=on_chunk, on_event=on_event, thread_id=thread_id
        )

    def iter_chunks(
        self, prompt: str, options: QueryOptions | None = None
    ) -> Generator[dict[str, Any], None, None]:
        """Yield raw chunks exactly as the runtime sends them."""
        resp = self._open(prompt, options)
        try:
            yield from iter_sse_payloads(resp)
        finally:
            resp.close()

    def stream_query(
        self,
        prompt: str,
        on_chunk: Callable[[dict[str, Any]], None],
        options: QueryOptions | None = None,
    ) -> None:
        """Invoke ``on_chunk`` for every raw chunk as it arrives."""
        for chunk in self.iter_chunks(prompt, options):
            on_chunk(chunk)

    def query(self, prompt: str, options: QueryOptions | None = None) -> QueryResult:
        """Run a query to completion and collect every chunk."""
        options = options or QueryOptions()
        with self.stream(prompt, options) as stream:
            for _chunk in stream:
                pass

        chunks = list(stream.raw_chunks)
        return QueryResult(
            chunks=chunks,
            final_message=chunks[-1] if chunks else None,
            session_id=stream.session_id or options.session_id,
            text=stream.text,
        )

    def close(self) -> None:
        self._http.close()
