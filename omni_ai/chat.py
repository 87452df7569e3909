"""
ChatSession class for threaded agent conversations.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
import logging
import time
from typing import TYPE_CHECKING

from ._types import QueryOptions, ToolPolicy
from .config import DEFAULT_RESOURCE_ID, mcp_servers
from .exceptions import SessionNotFoundError, ValidationError
from .streaming import ParsedChunk, SystemChunk, SystemSubtype

if TYPE_CHECKING:
    from ._streaming import TurnStream
    from .agent import AgentClient
    from .sessions import SessionStore

logger = logging.getLogger(__name__)


def new_fork_thread_id() -> str:
    """Thread id for a fork when the caller doesn't pick one."""
    return f"fork-{int(time.time() * 1000)}"


class ChatSession:
    """Conversation threads backed by resumable agent sessions."""

    def __init__(
        self,
        client: AgentClient,
        store: SessionStore,
        resource_id: str = DEFAULT_RESOURCE_ID,
        options: QueryOptions | None = None,
    ):
        """
        Initialize a ChatSession.

        Args:
            client: AgentClient used to run each turn
            store: SessionStore holding thread -> session mappings
            resource_id: Owner of the threads (user id)
            options: Base query options applied to every turn (default: omni-api
                tools only, with the omni-api MCP server attached)
        """
        self.client = client
        self.store = store
        self.resource_id = resource_id
        self.options = options or QueryOptions(tool_policy=ToolPolicy(), mcp_servers=mcp_servers())

    def _session_saver(self, thread_id: str) -> Callable[[ParsedChunk], None]:
        def _save(chunk: ParsedChunk) -> None:
            if (
                isinstance(chunk, SystemChunk)
                and chunk.subtype == SystemSubtype.INIT.value
                and chunk.session_id
            ):
                self.store.save_session_id(thread_id, self.resource_id, chunk.session_id)

        return _save

    def _run(self, message: str, thread_id: str, session_id: str | None) -> TurnStream:
        if not message or not message.strip():
            raise ValidationError("Message is required", status_code=400)

        options = replace(self.options, session_id=session_id)
        return self.client.stream(
            message, options, on_event=self._session_saver(thread_id), thread_id=thread_id
        )

    def send(self, message: str, thread_id: str = "default") -> TurnStream:
        """
        Send a message on a thread, resuming its stored session if any.

        The session announced by the runtime's init chunk is saved for the
        thread while the returned stream is iterated.
        """
        session_id = self.store.get_session_id(thread_id, self.resource_id)
        logger.debug("Thread %s resumes session %s", thread_id, session_id or "(new)")
        return self._run(message, thread_id, session_id)

    def fork(
        self, message: str, from_thread_id: str, thread_id: str | None = None
    ) -> TurnStream:
        """
        Branch a new thread off an existing one.

        Raises:
            SessionNotFoundError: if ``from_thread_id`` has no stored session
        """
        if not from_thread_id:
            raise ValidationError("forkFromThreadId is required", status_code=400)

        parent_session_id = self.store.get_session_id(from_thread_id, self.resource_id)
        if not parent_session_id:
            raise SessionNotFoundError(from_thread_id, self.resource_id)

        new_thread_id = thread_id or new_fork_thread_id()
        logger.info(
            "Forking %s -> %s (parent session %s)", from_thread_id, new_thread_id, parent_session_id
        )
        return self._run(message, new_thread_id, parent_session_id)

    def clear(self, thread_id: str) -> None:
        """
        Forget the thread's session so the next message starts fresh.
        """
        self.store.delete_session(thread_id, self.resource_id)

    def __repr__(self) -> str:
        return f"<ChatSession resource_id={self.resource_id}>"
