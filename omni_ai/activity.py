"""
Activity formatting.

Turns tool names and inputs into short human-readable activity titles for
the "what is the agent doing" panel. Tool names arrive already cleaned
(no ``mcp__<server>__`` prefix).
"""

from typing import Any, Literal

ActivityIcon = Literal["web", "api", "graphql", "dot"]

_WEB_TOOLS = {"WebSearch", "WebFetch"}

_STATIC_TITLES = {
    "discover_datasets": "Discovering available services and datasets",
    "interpret_api_response": "Analyzing API response",
    "search_learned_patterns": "Searching for similar past queries",
    "save_api_pattern": "Saving successful query pattern",
    "get_service_stats": "Getting service statistics",
    "get_system_health": "Checking system health",
    "analyze_rest_response": "Analyzing REST response structure",
}


def get_activity_icon(tool_name: str) -> ActivityIcon:
    """Pick the icon shown next to an activity step."""
    if tool_name in _WEB_TOOLS:
        return "web"
    if tool_name == "call_rest_api":
        return "api"
    if tool_name == "call_graphql":
        return "graphql"
    return "dot"


def generate_planning_gist(user_message: str) -> str:
    """One-line gist of the investigation a user message kicks off."""
    lower = user_message.lower()
    if "error" in lower or "500" in lower or "fail" in lower:
        return "Analyzing error patterns and investigating root cause"
    if "data" in lower or "correlate" in lower:
        return "Correlating data across services to identify inconsistencies"
    if "status" in lower or "health" in lower:
        return "Checking service health and availability status"
    return "Analyzing request and planning investigation approach"


def _humanize(tool_name: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in tool_name.split("_"))


def _format_task(tool_input: dict[str, Any]) -> str:
    if tool_input.get("description"):
        return str(tool_input["description"])
    prompt = tool_input.get("prompt")
    if prompt:
        first_sentence = str(prompt).split(".")[0]
        return first_sentence[:60] + "..." if len(first_sentence) > 60 else first_sentence
    return "Planning sub-task"


def _format_omni_api_tool(tool_name: str, tool_input: dict[str, Any]) -> str:
    if tool_name in _STATIC_TITLES:
        return _STATIC_TITLES[tool_name]

    if tool_name == "build_query":
        intent = f' for "{tool_input["intent"]}"' if tool_input.get("intent") else ""
        return f"Building API query{intent}"

    if tool_name == "call_rest_api":
        service = tool_input.get("service") or "API"
        method = tool_input.get("method") or "GET"
        path = tool_input.get("path") or ""
        if path:
            return f"Calling {service} {method} {path}"
        return f"Calling {service} API"

    if tool_name == "call_graphql":
        return f"Querying {tool_input.get('service') or 'API'} GraphQL endpoint"

    if tool_name == "summarize_multi_api_results":
        results = tool_input.get("results")
        count = len(results) if isinstance(results, list) and results else "multiple"
        return f"Correlating data from {count} sources"

    if tool_name == "explore_rest_patterns":
        return f"Exploring {tool_input.get('resource') or 'endpoints'} endpoints"

    return _humanize(tool_name)


def format_activity_title(tool_name: str, tool_input: dict[str, Any] | None = None) -> str:
    """Human-readable title for one tool call."""
    tool_input = tool_input if isinstance(tool_input, dict) else {}

    if tool_name == "Task":
        return _format_task(tool_input)

    formatted = _format_omni_api_tool(tool_name, tool_input)
    if formatted != tool_name:
        return formatted

    if tool_name == "WebSearch":
        query = tool_input.get("query")
        return f'Searching the web for "{query}"' if query else "Searching the web"
    if tool_name == "WebFetch":
        return f"Fetching data from {tool_input.get('url') or 'website'}"
    return formatted


def format_activity_description(
    tool_name: str, tool_input: dict[str, Any] | None = None
) -> str | None:
    """Extra detail line for API calls and sub-tasks, or None."""
    tool_input = tool_input if isinstance(tool_input, dict) else {}

    if "call_rest_api" in tool_name or "call_graphql" in tool_name:
        if tool_input.get("service") and tool_input.get("path"):
            return f"{tool_input.get('method') or 'GET'} {tool_input['path']}"
        if tool_input.get("query"):
            return str(tool_input["query"])[:100]

    if tool_name == "Task" and tool_input.get("prompt"):
        return str(tool_input["prompt"])[:150]

    return None
