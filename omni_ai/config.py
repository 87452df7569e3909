"""
Runtime configuration for omni-ai.

Settings come from environment variables. The omni-api MCP server location is
resolved the same way the desktop bundle does it: explicit override first,
then the bundled copy in production, then a sibling development checkout.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Any

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:8787"
DEFAULT_TIMEOUT = 300
DEFAULT_RESOURCE_ID = "default-user"
DEFAULT_SESSION_DB = Path(".omni-ai") / "sessions.db"

MCP_SERVER_NAME = "omni-api"
_BUNDLED_MCP_PATH = Path("bundled-mcp") / "omni-api-mcp" / "dist" / "index.js"
_DEV_MCP_PATH = Path("..") / "omni-api-mcp" / "dist" / "index.js"

# Only these variables reach the MCP server; the client's own credentials never do
MCP_ENV_PREFIXES = ("OMNI_API_",)
MCP_ENV_NAMES = frozenset({"NODE_ENV"})


@dataclass
class Settings:
    """Resolved runtime settings."""

    api_key: str | None
    base_url: str = DEFAULT_BASE_URL
    timeout: int = DEFAULT_TIMEOUT
    session_db: Path = DEFAULT_SESSION_DB
    resource_id: str = DEFAULT_RESOURCE_ID

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        timeout_raw = env.get("OMNI_AI_TIMEOUT")
        try:
            timeout = int(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
        except ValueError as e:
            raise ConfigurationError(
                f"OMNI_AI_TIMEOUT must be an integer, got {timeout_raw!r}"
            ) from e

        return cls(
            api_key=env.get("OMNI_AI_API_KEY") or env.get("ANTHROPIC_API_KEY"),
            base_url=env.get("OMNI_AI_BASE_URL") or DEFAULT_BASE_URL,
            timeout=timeout,
            session_db=Path(env.get("OMNI_AI_SESSION_DB") or DEFAULT_SESSION_DB),
            resource_id=env.get("OMNI_AI_RESOURCE_ID") or DEFAULT_RESOURCE_ID,
        )

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError(
                "No API key provided. Pass api_key= or set OMNI_AI_API_KEY "
                "(or ANTHROPIC_API_KEY) env var."
            )
        return self.api_key


def _is_production(env: Mapping[str, str]) -> bool:
    return (env.get("OMNI_AI_ENV") or env.get("NODE_ENV")) == "production"


def resolve_mcp_server_path(
    environ: Mapping[str, str] | None = None, cwd: Path | None = None
) -> str:
    """Locate the omni-api MCP server entry point."""
    env = os.environ if environ is None else environ
    base = cwd or Path.cwd()

    custom = env.get("OMNI_API_MCP_PATH")
    if custom:
        logger.info("Using custom OMNI_API_MCP_PATH: %s", custom)
        return custom

    if _is_production(env):
        bundled = str(base / _BUNDLED_MCP_PATH)
        logger.info("Production mode: using bundled MCP at %s", bundled)
        return bundled

    dev = str(base / _DEV_MCP_PATH)
    logger.info("Development mode: using sibling directory at %s", dev)
    return dev


def mcp_server_env(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Environment forwarded to the omni-api MCP server process."""
    env = os.environ if environ is None else environ
    return {
        name: value
        for name, value in env.items()
        if name in MCP_ENV_NAMES or name.startswith(MCP_ENV_PREFIXES)
    }


def mcp_servers(
    environ: Mapping[str, str] | None = None, cwd: Path | None = None
) -> dict[str, Any]:
    """
    MCP servers made available to the agent runtime (stdio transport).

    The mapping is sent in the query body, so its ``env`` carries only the
    allow-listed variables from ``mcp_server_env``.
    """
    env = os.environ if environ is None else environ
    return {
        MCP_SERVER_NAME: {
            "type": "stdio",
            "command": "node",
            "args": [resolve_mcp_server_path(env, cwd)],
            "env": mcp_server_env(env),
        }
    }
