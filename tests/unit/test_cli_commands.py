"""Tests for CLI commands, the command registry and the entry point."""

import json

import pytest
import responses

from omni_ai import sessions as sessions_module
from omni_ai.cli.base import Command, CommandGroup
from omni_ai.cli.commands.chat import ChatCommand, ForkCommand
from omni_ai.cli.commands.replay import ReplayCommand, load_raw_chunks
from omni_ai.cli.commands.sessions import SessionsCommandGroup
from omni_ai.cli.main import _real_main
from omni_ai.cli.registry import CommandRegistry
from omni_ai.cli.util import CANCELLED_EXIT, graceful_main
from omni_ai.sessions import SessionStore
from omni_ai.sse import parse_sse_frame
from tests.utils.chunks import (
    init_chunk,
    result_chunk,
    sse_body,
    text_chunk,
    tool_result_chunk,
    tool_use_chunk,
)

BASE = "https://agent.test.omni.local"

MULTI_FRAGMENT = {
    "type": "assistant",
    "message": {
        "content": [
            {"type": "text", "text": "Checking."},
            {"type": "tool_use", "id": "t1", "name": "mcp__omni-api__get_system_health"},
        ]
    },
}


@pytest.fixture
def cli_env(monkeypatch, session_db):
    """Point the CLI at a throwaway database and reset the store singleton."""
    monkeypatch.setenv("OMNI_AI_SESSION_DB", str(session_db))
    monkeypatch.setenv("OMNI_AI_RESOURCE_ID", "user-1")
    monkeypatch.setattr(sessions_module, "_store", None)
    yield session_db
    if sessions_module._store is not None:
        sessions_module._store.close()


def _json_lines(output):
    return [json.loads(line) for line in output.strip().splitlines() if line.startswith("{")]


class TestCommandRegistry:
    def test_discovery(self):
        registry = CommandRegistry()
        registry.discover()

        names = sorted(cmd.name for cmd in registry.commands)
        assert names == ["chat", "fork", "replay", "sessions"]
        assert isinstance(registry.get("c"), ChatCommand)
        assert isinstance(registry.get("s"), SessionsCommandGroup)
        assert "list" not in registry

    def test_discovery_is_repeatable(self):
        registry = CommandRegistry()
        registry.discover()
        registry.discover()
        assert len(registry.commands) == 4

    def test_duplicate_registration(self):
        registry = CommandRegistry()
        registry.register(ReplayCommand())
        with pytest.raises(ValueError, match="already registered"):
            registry.register(ReplayCommand())

    def test_unknown_command(self):
        with pytest.raises(KeyError):
            CommandRegistry().get("nope")

    def test_rejects_non_commands(self):
        with pytest.raises(TypeError):
            CommandRegistry().register(object())

    def test_command_requires_name(self):
        with pytest.raises(ValueError, match="must define a 'name'"):

            class Nameless(Command):
                description = "no name"

                def add_arguments(self, parser):
                    pass

                def execute(self, args, chat=None):
                    return 0

    def test_group_metadata(self):
        group = SessionsCommandGroup()
        assert isinstance(group, CommandGroup)
        assert [c.name for c in group.subcommands] == ["list", "show", "delete"]
        assert group.names == ["sessions", "s"]
        assert group.requires_client is False
        assert ForkCommand.requires_client is True


class TestLoadRawChunks:
    def test_jsonl_and_sse_lines(self, tmp_path, caplog):
        path = tmp_path / "capture.jsonl"
        path.write_text(
            "\n".join(
                [
                    json.dumps(init_chunk("s1")),
                    "",
                    "not json",
                    f"data: {json.dumps(text_chunk('hi'))}",
                    "data: [DONE]",
                    json.dumps(result_chunk()),
                ]
            ),
            encoding="utf-8",
        )
        assert load_raw_chunks(path) == [init_chunk("s1"), text_chunk("hi"), result_chunk()]
        assert "Skipping undecodable line 3" in caplog.text


class TestReplayCommand:
    def _capture(self, tmp_path, *raws):
        path = tmp_path / "turn.jsonl"
        path.write_text("\n".join(json.dumps(raw) for raw in raws), encoding="utf-8")
        return path

    def test_replay_json(self, tmp_path, cli_env, capsys):
        path = self._capture(
            tmp_path,
            init_chunk("s1"),
            tool_use_chunk("t1", "mcp__omni-api__discover_datasets"),
            tool_result_chunk("t1", {"total": 3}),
            text_chunk("Found 3 datasets."),
            result_chunk(),
        )
        assert _real_main(["replay", str(path)]) == 0

        chunks = _json_lines(capsys.readouterr().out)
        assert [c["type"] for c in chunks] == [
            "system",
            "tool_use",
            "tool_result",
            "text",
            "system",
        ]
        assert chunks[2]["name"] == "discover_datasets"

    def test_replay_drains_by_default(self, tmp_path, cli_env, capsys):
        path = self._capture(tmp_path, MULTI_FRAGMENT)
        assert _real_main(["replay", str(path)]) == 0
        assert [c["type"] for c in _json_lines(capsys.readouterr().out)] == ["text", "tool_use"]

    def test_replay_no_drain(self, tmp_path, cli_env, capsys):
        path = self._capture(tmp_path, MULTI_FRAGMENT)
        assert _real_main(["replay", str(path), "--no-drain"]) == 0
        assert [c["type"] for c in _json_lines(capsys.readouterr().out)] == ["text"]

    def test_replay_sse_frames(self, tmp_path, cli_env, capsys):
        path = self._capture(
            tmp_path,
            init_chunk("s1"),
            tool_use_chunk("t1", "mcp__omni-api__discover_datasets"),
            text_chunk("Found 3 datasets."),
            result_chunk(),
        )
        assert _real_main(["replay", str(path), "--format", "sse"]) == 0

        out = capsys.readouterr().out
        frames = [frame for frame in out.split("\n\n") if frame.strip()]
        assert all(frame.startswith("data: ") for frame in frames)
        payloads = [parse_sse_frame(frame) for frame in frames]
        assert [p["type"] for p in payloads] == ["system", "tool_use", "text", "system"]
        assert payloads[1]["displayName"] == "discover_datasets"
        assert payloads[2]["accumulatedText"] == "Found 3 datasets."

    def test_replay_error_exit_code(self, tmp_path, cli_env):
        path = self._capture(tmp_path, {"type": "error", "error": "Overloaded"})
        assert _real_main(["replay", str(path)]) == 1

    def test_replay_missing_file(self, tmp_path, cli_env, capsys):
        assert _real_main(["replay", str(tmp_path / "missing.jsonl")]) == 1
        assert "File not found" in capsys.readouterr().out


class TestSessionsCommands:
    def _seed(self, session_db):
        with SessionStore(session_db) as store:
            store.save_session_id("default", "user-1", "sess-a")
            store.save_session_id("inc-42", "user-1", "sess-b")
            store.save_session_id("default", "user-2", "sess-c")

    def test_list_json(self, cli_env, capsys):
        self._seed(cli_env)
        assert _real_main(["sessions", "list", "--json"]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["count"] == 2
        assert sorted(s["threadId"] for s in payload["sessions"]) == ["default", "inc-42"]

    def test_list_other_resource(self, cli_env, capsys):
        self._seed(cli_env)
        assert _real_main(["sessions", "ls", "--resource", "user-2", "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert [s["sessionId"] for s in payload["sessions"]] == ["sess-c"]

    def test_list_empty(self, cli_env, capsys):
        assert _real_main(["sessions", "list"]) == 0
        assert "No sessions for user-1" in capsys.readouterr().out

    def test_global_resource_flag(self, cli_env, capsys):
        self._seed(cli_env)
        assert _real_main(["--resource", "user-2", "sessions", "list", "--json"]) == 0
        assert json.loads(capsys.readouterr().out)["count"] == 1

    def test_show(self, cli_env, capsys):
        self._seed(cli_env)
        assert _real_main(["sessions", "show", "inc-42"]) == 0
        assert json.loads(capsys.readouterr().out)["sessionId"] == "sess-b"

    def test_show_missing(self, cli_env, capsys):
        assert _real_main(["sessions", "show", "nope"]) == 1
        assert "Session not found" in capsys.readouterr().out

    def test_delete(self, cli_env, capsys):
        self._seed(cli_env)
        assert _real_main(["sessions", "rm", "inc-42"]) == 0
        with SessionStore(cli_env) as store:
            assert store.get_session_id("inc-42", "user-1") is None
            assert store.get_session_id("default", "user-1") == "sess-a"

    def test_missing_subcommand(self, cli_env, capsys):
        assert _real_main(["sessions"]) == 1
        assert "No subcommand specified" in capsys.readouterr().out


class TestChatCommands:
    @pytest.fixture
    def agent_env(self, cli_env, monkeypatch, api_key):
        monkeypatch.setenv("OMNI_AI_API_KEY", api_key)
        monkeypatch.setenv("OMNI_AI_BASE_URL", BASE)
        return cli_env

    def test_chat_without_api_key_exits(self, cli_env, capsys):
        with pytest.raises(SystemExit) as exc_info:
            _real_main(["chat", "hello"])
        assert exc_info.value.code == 1
        assert "No API key provided" in capsys.readouterr().out

    @responses.activate
    def test_chat_saves_session(self, agent_env, capsys):
        responses.add(
            responses.POST,
            f"{BASE}/query",
            body=sse_body(init_chunk("sess-1"), text_chunk("All healthy."), result_chunk()),
        )
        assert _real_main(["chat", "Is checkout healthy?", "--format", "json"]) == 0

        chunks = _json_lines(capsys.readouterr().out)
        assert chunks[1] == {
            "type": "text",
            "content": "All healthy.",
            "accumulatedText": "All healthy.",
        }
        with SessionStore(agent_env) as store:
            assert store.get_session_id("default", "user-1") == "sess-1"

    @responses.activate
    def test_chat_new_clears_thread(self, agent_env):
        with SessionStore(agent_env) as store:
            store.save_session_id("inc-42", "user-1", "sess-old")
        responses.add(responses.POST, f"{BASE}/query", body=sse_body(result_chunk()))

        assert _real_main(["chat", "Start over", "--thread", "inc-42", "--new"]) == 0
        body = json.loads(responses.calls[0].request.body)
        assert "resume" not in body["options"]

    @responses.activate
    def test_chat_http_error(self, agent_env, capsys):
        responses.add(responses.POST, f"{BASE}/query", json={"error": "Bad key"}, status=401)
        assert _real_main(["chat", "hi", "--format", "compact"]) == 1
        assert "❌ Bad key" in capsys.readouterr().out

    @responses.activate
    def test_fork(self, agent_env, capsys):
        with SessionStore(agent_env) as store:
            store.save_session_id("main", "user-1", "sess-parent")
        responses.add(
            responses.POST,
            f"{BASE}/query",
            body=sse_body(init_chunk("sess-branch"), result_chunk()),
        )

        code = _real_main(
            ["fork", "Try another angle", "--from", "main", "--thread", "alt", "--format", "json"]
        )
        assert code == 0
        assert "Forked main → alt" in capsys.readouterr().out
        assert json.loads(responses.calls[0].request.body)["options"]["resume"] == "sess-parent"
        with SessionStore(agent_env) as store:
            assert store.get_session_id("alt", "user-1") == "sess-branch"

    def test_fork_unknown_thread(self, agent_env, capsys):
        assert _real_main(["fork", "hi", "--from", "ghost"]) == 1
        assert "Parent session not found for thread 'ghost'" in capsys.readouterr().out


class TestEntryPoint:
    def test_no_command_prints_help(self, cli_env, capsys):
        assert _real_main([]) == 0
        assert "omni-ai" in capsys.readouterr().out

    def test_invalid_timeout(self, cli_env, monkeypatch, capsys):
        monkeypatch.setenv("OMNI_AI_TIMEOUT", "soon")
        assert _real_main(["sessions", "list"]) == 1
        assert "OMNI_AI_TIMEOUT" in capsys.readouterr().out

    def test_graceful_main_ctrl_c(self, capsys):
        def interrupted(argv):
            raise KeyboardInterrupt

        assert graceful_main(interrupted, []) == CANCELLED_EXIT
        assert "Cancelled by user" in capsys.readouterr().err

    def test_graceful_main_passes_exit_code(self):
        assert graceful_main(lambda argv: len(argv), ["a", "b"]) == 2
