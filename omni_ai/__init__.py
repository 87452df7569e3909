"""
omni-ai - Python core for the omni-ai investigation assistant.

Interprets the agent runtime's streamed chunks into typed UI events, and
carries the client, session store and CLI around that interpreter.
"""

__version__ = "0.1.0"

from ._streaming import TurnStream, split_assistant_message
from ._types import QueryOptions, QueryResult, SessionMapping, ToolPolicy
from .agent import AgentClient
from .chat import ChatSession
from .exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    OmniError,
    PermissionDeniedError,
    RateLimitError,
    SessionNotFoundError,
    ValidationError,
)
from .sessions import SessionStore, get_session_store
from .streaming import (
    ErrorChunk,
    ParsedChunk,
    ParsedChunkType,
    StreamParser,
    SystemChunk,
    TextChunk,
    ThinkingChunk,
    ToolResultChunk,
    ToolUseChunk,
    hint_from_chunk,
)

__all__ = [
    "APIError",
    # Main client
    "AgentClient",
    "AuthenticationError",
    "ChatSession",
    "ConfigurationError",
    "ConflictError",
    # Parsed chunks
    "ErrorChunk",
    "NotFoundError",
    "OmniError",
    "ParsedChunk",
    "ParsedChunkType",
    "PermissionDeniedError",
    "QueryOptions",
    "QueryResult",
    "RateLimitError",
    "SessionMapping",
    "SessionNotFoundError",
    "SessionStore",
    # Interpreter
    "StreamParser",
    "SystemChunk",
    "TextChunk",
    "ThinkingChunk",
    "ToolPolicy",
    "ToolResultChunk",
    "ToolUseChunk",
    "TurnStream",
    "ValidationError",
    "get_session_store",
    "hint_from_chunk",
    "split_assistant_message",
]
