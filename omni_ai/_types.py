"""Dataclass models for agent queries, the tool policy and session mappings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

OMNI_API_TOOL_PREFIX = "mcp__omni-api__"
DEFAULT_SYSTEM_PROMPT: dict[str, str] = {"type": "preset", "preset": "claude_code"}
DEFAULT_MAX_TURNS = 10


@dataclass
class ToolPolicy:
    """Tool allow-list the runtime enforces: names starting with ``allowed_prefixes`` run."""

    allowed_prefixes: tuple[str, ...] = (OMNI_API_TOOL_PREFIX,)
    deny_message: str = "Only omni-api tools are allowed"

    def to_dict(self) -> dict[str, Any]:
        return {"allowPrefixes": list(self.allowed_prefixes), "denyMessage": self.deny_message}


@dataclass
class QueryOptions:
    """Options for one agent query."""

    system_prompt: str | dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SYSTEM_PROMPT))
    max_turns: int = DEFAULT_MAX_TURNS
    allowed_tools: list[str] | None = None
    session_id: str | None = None
    tool_policy: ToolPolicy | None = None
    agents: dict[str, Any] | None = None
    mcp_servers: dict[str, Any] | None = None

    def to_body(self, prompt: str) -> dict[str, Any]:
        """Build the request body sent to the agent runtime."""
        options: dict[str, Any] = {
            "systemPrompt": self.system_prompt,
            "maxTurns": self.max_turns,
        }
        if self.allowed_tools is not None:
            options["allowedTools"] = self.allowed_tools
        if self.session_id:
            options["resume"] = self.session_id
        if self.tool_policy is not None:
            options["toolPolicy"] = self.tool_policy.to_dict()
        if self.agents is not None:
            options["agents"] = self.agents
        if self.mcp_servers is not None:
            options["mcpServers"] = self.mcp_servers
        return {"prompt": prompt, "options": options}


@dataclass
class QueryResult:
    """Everything a non-streaming query produced."""

    chunks: list[dict[str, Any]]
    final_message: dict[str, Any] | None
    session_id: str | None = None
    text: str = ""


@dataclass
class SessionMapping:
    """Mapping from a local thread to an upstream agent session."""

    thread_id: str
    resource_id: str
    session_id: str
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: Any) -> SessionMapping:
        return cls(
            thread_id=row["threadId"],
            resource_id=row["resourceId"],
            session_id=row["sessionId"],
            created_at=row["createdAt"] or "",
            updated_at=row["updatedAt"] or "",
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "threadId": self.thread_id,
            "resourceId": self.resource_id,
            "sessionId": self.session_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
