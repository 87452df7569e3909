"""
Root pytest configuration and fixtures for omni-ai.

Provides common fixtures for the test suite.
"""

from pathlib import Path
import sys

import pytest
import responses

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

_ENV_VARS = (
    "OMNI_AI_API_KEY",
    "ANTHROPIC_API_KEY",
    "OMNI_AI_BASE_URL",
    "OMNI_AI_TIMEOUT",
    "OMNI_AI_SESSION_DB",
    "OMNI_AI_RESOURCE_ID",
    "OMNI_AI_ENV",
    "NODE_ENV",
    "OMNI_API_MCP_PATH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's shell configuration out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def api_key():
    """Test API key."""
    return "test-api-key-12345"


@pytest.fixture
def base_url():
    """Test base URL."""
    return "https://agent.test.omni.local"


@pytest.fixture
def mock_requests():
    """Mock requests library."""
    with responses.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def session_db(tmp_path):
    """Path for a throwaway session database."""
    return tmp_path / "state" / "sessions.db"

