import io
import json

import pytest
from rich.console import Console

from omni_ai.cli.display import (
    CompactDisplay,
    JsonDisplay,
    SseDisplay,
    VerboseDisplay,
    _render_checkboxes,
    create_display,
    response_panel,
    summarize_tool_result,
)
from omni_ai.streaming import StreamParser
from tests.utils.chunks import (
    init_chunk,
    result_chunk,
    text_chunk,
    tool_result_chunk,
    tool_use_chunk,
)


def _console():
    # Route output to in-memory buffer so Rich doesn't touch the real terminal.
    return Console(file=io.StringIO(), force_terminal=False, color_system=None, width=120)


def _parsed(*raws):
    parser = StreamParser()
    return [parser.interpret(raw) for raw in raws]


@pytest.fixture
def progress_tracker(monkeypatch):
    active_instances = {"count": 0, "descriptions": []}

    class DummyProgress:
        def __init__(self, *args, **kwargs):
            self.started = False

        def start(self) -> None:
            if self.started:
                raise RuntimeError("progress already started")
            if active_instances["count"]:
                raise RuntimeError("another progress is already active")
            self.started = True
            active_instances["count"] += 1

        def add_task(self, description, *args, **kwargs):
            active_instances["descriptions"].append(description)
            return "dummy-task"

        def stop(self) -> None:
            if self.started:
                self.started = False
                active_instances["count"] = max(0, active_instances["count"] - 1)

    monkeypatch.setattr("omni_ai.cli.display.Progress", DummyProgress)
    return active_instances


def test_verbose_display_prevents_overlapping_progress(progress_tracker):
    """Ensure VerboseDisplay stops an active spinner before starting a new one."""
    display = VerboseDisplay(console=_console())
    first_tool, second_tool = _parsed(
        tool_use_chunk("call-1", "mcp__omni-api__build_query", {"intent": "errors"}),
        tool_use_chunk("call-2", "mcp__omni-api__call_graphql", {"service": "catalog"}),
    )

    display.on_chunk(first_tool)
    assert progress_tracker["count"] == 1

    # Starting the next tool must stop the first spinner.
    display.on_chunk(second_tool)
    assert progress_tracker["count"] == 1
    assert progress_tracker["descriptions"] == [
        '• Building API query for "errors"...',
        "◆ Querying catalog GraphQL endpoint...",
    ]

    display.finish()
    assert progress_tracker["count"] == 0


def test_verbose_display_renders_turn(progress_tracker):
    console = _console()
    display = VerboseDisplay(console=console)
    chunks = _parsed(
        init_chunk("s1"),
        tool_use_chunk("t1", "mcp__omni-api__discover_datasets"),
        tool_result_chunk("t1", {"total": 3}),
        text_chunk("Found **3** datasets."),
        result_chunk(),
    )

    display.start()
    for chunk in chunks:
        display.on_chunk(chunk)
    display.finish()

    output = console.file.getvalue()
    assert "Agent initialized, processing query..." in output
    assert "Calling tool: discover_datasets" in output
    assert "Completed tool: discover_datasets" in output
    assert '"total": 3' in output
    assert "Response" in output
    assert "Session: s1" in output
    assert display.hint is None
    assert progress_tracker["count"] == 0


def test_verbose_display_tool_failure_and_error(progress_tracker):
    console = _console()
    display = VerboseDisplay(console=console)
    for chunk in _parsed(
        tool_use_chunk("t1", "mcp__omni-api__call_rest_api"),
        tool_result_chunk("t1", "connection refused [bold]", is_error=True),
        {"type": "error", "error": "Agent crashed [red]"},
    ):
        display.on_chunk(chunk)
    display.finish()

    output = console.file.getvalue()
    assert "Tool failed: call_rest_api" in output
    assert "connection refused [bold]" in output
    assert "Agent crashed [red]" in output
    assert display.hint == "Error: Agent crashed [red]"


def test_verbose_display_shows_gist_and_call_details(progress_tracker):
    console = _console()
    display = VerboseDisplay(console=console, prompt="Why are checkout requests failing?")
    (call,) = _parsed(
        tool_use_chunk(
            "t1",
            "mcp__omni-api__call_rest_api",
            {"service": "checkout", "method": "POST", "path": "/v1/orders"},
        )
    )

    display.start()
    display.on_chunk(call)
    display.finish()

    output = console.file.getvalue()
    assert "🧭 Analyzing error patterns and investigating root cause" in output
    assert "POST /v1/orders" in output
    assert progress_tracker["descriptions"] == ["🔌 Calling checkout POST /v1/orders..."]


def test_verbose_display_without_prompt_prints_no_gist():
    console = _console()
    VerboseDisplay(console=console).start()
    assert console.file.getvalue() == ""


def test_summarize_tool_result():
    formatted = summarize_tool_result({"blob": "x" * 1000})
    assert len(formatted) == 500
    assert formatted.endswith("...")

    listed = summarize_tool_result(list(range(8)))
    assert listed.startswith("List with 8 items (showing first 5)")

    text_blocks = summarize_tool_result([{"type": "text", "text": "a"}, {"text": "b"}])
    assert text_blocks == "a\nb"


def test_compact_display_hides_planning():
    console = _console()
    display = CompactDisplay(console=console, hide_planning=True)
    for chunk in _parsed(
        text_chunk("Let me check the logs."),
        text_chunk(" Errors spiked at 10:02."),
    ):
        display.on_chunk(chunk)
    display.finish()

    assert display.get_final_text() == " Errors spiked at 10:02."
    assert "Let me check" not in console.file.getvalue()


def test_compact_display_shows_everything_by_default():
    display = CompactDisplay(console=_console())
    for chunk in _parsed(text_chunk("Let me check."), text_chunk(" Done.")):
        display.on_chunk(chunk)
    assert display.get_final_text() == "Let me check. Done."


def test_json_display_emits_wire_chunks():
    console = _console()
    display = JsonDisplay(console=console)
    for chunk in _parsed(init_chunk("s1"), text_chunk("Hi"), result_chunk()):
        display.on_chunk(chunk)

    lines = console.file.getvalue().strip().splitlines()
    assert [json.loads(line) for line in lines] == [
        {"type": "system", "subtype": "init", "sessionId": "s1"},
        {"type": "text", "content": "Hi", "accumulatedText": "Hi"},
        {"type": "system", "subtype": "complete", "message": "Response complete"},
    ]
    assert display.get_final_text() == "Hi"


def test_sse_display_emits_framed_events():
    console = _console()
    display = SseDisplay(console=console)
    for chunk in _parsed(init_chunk("s1"), text_chunk("Hi")):
        display.on_chunk(chunk)

    assert console.file.getvalue() == (
        'data: {"type": "system", "subtype": "init", "sessionId": "s1"}\n\n'
        'data: {"type": "text", "content": "Hi", "accumulatedText": "Hi"}\n\n'
    )
    assert display.get_final_text() == "Hi"


def test_create_display():
    assert isinstance(create_display("compact"), CompactDisplay)
    assert isinstance(create_display("json"), JsonDisplay)
    assert isinstance(create_display("sse"), SseDisplay)
    assert create_display("verbose", prompt="hi").prompt == "hi"
    assert isinstance(create_display("verbose"), VerboseDisplay)
    assert create_display("verbose", hide_planning=True).planning_filter is not None


def test_checkbox_rendering():
    assert _render_checkboxes("- [x] done\n- [ ] todo") == "- ☑ done\n- ☐ todo"


def test_response_panel_placeholder_for_blank_text():
    console = _console()
    console.print(response_panel("   "))
    assert "No response generated." in console.file.getvalue()
