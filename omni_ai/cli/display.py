"""
Terminal renderers for a streamed agent turn.

- VerboseDisplay: spinners while tools run, result panels, markdown answer
- CompactDisplay: the answer text only (plus errors)
- JsonDisplay: one wire-format JSON object per parsed chunk
- SseDisplay: the same chunks framed as Server-Sent Events for a browser client
"""

from abc import ABC, abstractmethod
import json
import re

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn
from rich.text import Text

from ..activity import (
    format_activity_description,
    format_activity_title,
    generate_planning_gist,
    get_activity_icon,
)
from ..planning import PlanningTextFilter
from ..sse import encode_sse
from ..streaming import (
    ErrorChunk,
    ParsedChunk,
    SystemChunk,
    SystemSubtype,
    TextChunk,
    ThinkingChunk,
    ToolResultChunk,
    ToolUseChunk,
    hint_from_chunk,
)

RESULT_PREVIEW_CHARS = 500
RESULT_PREVIEW_ITEMS = 5

DISPLAY_FORMATS = ("verbose", "compact", "json", "sse")

ACTIVITY_GLYPHS = {"web": "🌐", "api": "🔌", "graphql": "◆", "dot": "•"}


class StreamDisplay(ABC):
    """Renders parsed chunks as they arrive."""

    def __init__(self, console: Console | None = None, hide_planning: bool = False) -> None:
        self.console = console or Console()
        self.text_parts: list[str] = []
        self.planning_filter = PlanningTextFilter() if hide_planning else None

    def _visible_text(self, chunk: TextChunk) -> str:
        """Record a text delta and return the part to show."""
        text = self.planning_filter.feed(chunk.content) if self.planning_filter else chunk.content
        self.text_parts.append(text)
        return text

    def start(self) -> None:
        """Called once before the first chunk."""

    @abstractmethod
    def on_chunk(self, chunk: ParsedChunk) -> None:
        """Render one parsed chunk."""

    def finish(self) -> None:
        """Called once after the last chunk, also when the stream failed."""

    def get_final_text(self) -> str:
        """Answer text shown so far (planning sentences removed when hidden)."""
        return "".join(self.text_parts)


class CompactDisplay(StreamDisplay):
    def on_chunk(self, chunk: ParsedChunk) -> None:
        if isinstance(chunk, TextChunk):
            self.console.print(self._visible_text(chunk), end="", markup=False, highlight=False)
        elif isinstance(chunk, ErrorChunk):
            self.console.print()
            self.console.print(Text(f"❌ Error: {chunk.message}", style="red"))

    def finish(self) -> None:
        if self.get_final_text():
            self.console.print()


def _preview(text: str) -> str:
    if len(text) <= RESULT_PREVIEW_CHARS:
        return text
    return text[: RESULT_PREVIEW_CHARS - 3] + "..."


def summarize_tool_result(result: object) -> str:
    """Short printable preview of a tool result payload."""
    if isinstance(result, list):
        if result and all(isinstance(item, dict) and "text" in item for item in result):
            # MCP content blocks
            return _preview("\n".join(str(item["text"]) for item in result))
        if len(result) > RESULT_PREVIEW_ITEMS:
            head = json.dumps(result[:RESULT_PREVIEW_ITEMS], indent=2, default=str)
            shown = f"showing first {RESULT_PREVIEW_ITEMS}"
            return f"List with {len(result)} items ({shown}):\n{head}\n..."
        return json.dumps(result, indent=2, default=str)
    if isinstance(result, dict):
        return _preview(json.dumps(result, indent=2, default=str))
    return str(result)


class VerboseDisplay(StreamDisplay):
    """
    Rich terminal rendering of a whole investigation turn.

    The status hint follows ``hint_from_chunk``; one spinner runs per active
    tool call and is stopped before anything else is printed. Given the
    user's prompt, a one-line gist of the investigation is shown first.
    """

    def __init__(
        self,
        console: Console | None = None,
        hide_planning: bool = False,
        prompt: str | None = None,
    ) -> None:
        super().__init__(console=console, hide_planning=hide_planning)
        self.prompt = prompt
        self.progress: Progress | None = None
        self.task_id: TaskID | None = None
        self.current_tool_id: str | None = None
        self.hint: str | None = None
        self.session_id: str | None = None

    def start(self) -> None:
        if self.prompt:
            gist = generate_planning_gist(self.prompt)
            self.console.print(Text(f"🧭 {gist}", style="dim"))

    def _update_hint(self, chunk: ParsedChunk) -> None:
        hint = hint_from_chunk(chunk)
        completed = isinstance(chunk, SystemChunk) and chunk.subtype == SystemSubtype.COMPLETE.value
        if hint is not None or completed:
            self.hint = hint

    def on_chunk(self, chunk: ParsedChunk) -> None:
        self._update_hint(chunk)

        if isinstance(chunk, SystemChunk):
            self._on_system(chunk)
        elif isinstance(chunk, TextChunk):
            text = self._visible_text(chunk)
            if text:
                self._stop_progress()
                self.console.print(text, end="", style="white", markup=False, highlight=False)
        elif isinstance(chunk, ThinkingChunk):
            self._stop_progress()
            self.console.print("\n[dim cyan]🧠 Thinking...[/dim cyan]")
            if chunk.content:
                self.console.print(Text(chunk.content, style="dim italic cyan"))
        elif isinstance(chunk, ToolUseChunk):
            self._on_tool_use(chunk)
        elif isinstance(chunk, ToolResultChunk):
            self._on_tool_result(chunk)
        elif isinstance(chunk, ErrorChunk):
            self._stop_progress()
            error = Text(chunk.message, style="red")
            self.console.print(Panel(error, title="[red]❌ Error[/red]", border_style="red"))

    def _on_system(self, chunk: SystemChunk) -> None:
        if chunk.subtype == SystemSubtype.INIT.value:
            self.session_id = chunk.session_id
            self.console.print(Text(self.hint or "", style="dim"))
        elif chunk.subtype == SystemSubtype.COMPLETE.value:
            self._stop_progress()
        elif chunk.message:
            self.console.print(Text(chunk.message, style="dim"))

    def _on_tool_use(self, chunk: ToolUseChunk) -> None:
        self._stop_progress()
        self.current_tool_id = chunk.id
        tool = chunk.display_name or "Unknown tool"

        self.console.print()
        self.console.print(Text.assemble(("⚡ Calling tool: ", "bold cyan"), (tool, "yellow")))
        detail = format_activity_description(tool, chunk.input)
        if detail:
            self.console.print(Text(f"   {detail}", style="dim"))

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}", markup=False),
            console=self.console,
            transient=True,
        )
        self.progress.start()
        glyph = ACTIVITY_GLYPHS[get_activity_icon(tool)]
        self.task_id = self.progress.add_task(
            f"{glyph} {format_activity_title(tool, chunk.input)}...", total=None
        )

    def _on_tool_result(self, chunk: ToolResultChunk) -> None:
        self._stop_progress()
        if chunk.is_error:
            status, style = "❌ Tool failed: ", "red"
        else:
            status, style = "✅ Completed tool: ", "green"
        self.console.print(Text.assemble((status, style), (chunk.name, "yellow")))

        if chunk.result:
            self.console.print(
                Panel(
                    Text(summarize_tool_result(chunk.result)),
                    title=Text(f"Tool Result: {chunk.name}"),
                    border_style=style,
                    expand=False,
                )
            )
        self.current_tool_id = None

    def finish(self) -> None:
        self._stop_progress()

        answer = self.get_final_text()
        if answer.strip():
            self.console.print()
            self.console.print(response_panel(answer))
        elif answer:
            self.console.print()

        if self.session_id:
            self.console.print(Text(f"Session: {self.session_id}", style="dim"))

    def _stop_progress(self) -> None:
        """Stop the running spinner; Rich allows only one live display at a time."""
        if self.progress is not None:
            try:
                self.progress.stop()
            finally:
                self.progress = None
        self.task_id = None


class JsonDisplay(StreamDisplay):
    """Prints ``chunk.to_dict()`` as one JSON line per chunk."""

    def on_chunk(self, chunk: ParsedChunk) -> None:
        if isinstance(chunk, TextChunk):
            self.text_parts.append(chunk.content)
        self.console.print(
            json.dumps(chunk.to_dict(), default=str),
            markup=False,
            emoji=False,
            highlight=False,
            soft_wrap=True,
        )


class SseDisplay(StreamDisplay):
    """Prints every chunk as a ``data: <json>`` event, the framing the web client reads."""

    def on_chunk(self, chunk: ParsedChunk) -> None:
        if isinstance(chunk, TextChunk):
            self.text_parts.append(chunk.content)
        frame = encode_sse(chunk)
        # One event per frame; the blank line terminates it
        self.console.print(
            frame.rstrip("\n"), markup=False, emoji=False, highlight=False, soft_wrap=True
        )
        self.console.print()


_CHECKBOX_ITEM = re.compile(r"^(?P<bullet>\s*[-*]\s+)\[(?P<mark>[ xX])\]\s+", flags=re.MULTILINE)


def _render_checkboxes(text: str) -> str:
    """Turn GitHub task-list items into ballot box glyphs (Rich has no task lists)."""
    return _CHECKBOX_ITEM.sub(
        lambda m: f"{m['bullet']}{'☑' if m['mark'] in 'xX' else '☐'} ", text
    )


def response_panel(text: str) -> Panel:
    """Markdown answer panel; falls back to a placeholder for blank text."""
    markdown = _render_checkboxes(text)
    if not markdown.strip():
        return Panel("[dim]No response generated.[/dim]", border_style="cyan", expand=True)
    return Panel(
        Markdown(markdown, code_theme="monokai", justify="left"),
        title="[cyan]Response[/cyan]",
        border_style="cyan",
        expand=True,
    )


def create_display(
    format: str = "verbose",
    console: Console | None = None,
    hide_planning: bool = False,
    prompt: str | None = None,
) -> StreamDisplay:
    """
    Build the display for an output format.

    Args:
        format: One of DISPLAY_FORMATS; "verbose" is the default
        console: Console to render to (defaults to stdout)
        hide_planning: Drop planning sentences from the answer text (ignored for json and sse)
        prompt: User message, summarized above a verbose turn
    """
    if format == "json":
        return JsonDisplay(console=console)
    if format == "sse":
        return SseDisplay(console=console)
    if format == "compact":
        return CompactDisplay(console=console, hide_planning=hide_planning)
    return VerboseDisplay(console=console, hide_planning=hide_planning, prompt=prompt)
