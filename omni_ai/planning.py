"""
Planning text filter.

Agents narrate their next step ("Let me check the error logs.") before
calling a tool. The terminal display can hide those sentences; this filter
removes them from a stream of text deltas, including sentences split across
several deltas.
"""

import logging
import re

logger = logging.getLogger(__name__)

PLANNING_PATTERNS = [
    re.compile(r"^I'll\s+(check|get|try|look|fetch|query|retrieve|search|explore|update)", re.I),
    re.compile(r"^Let me\s+(check|try|look|get|fetch|query|search|also|update|mark)", re.I),
    re.compile(r"^Now\s+(let me|I'll|that I|let's)", re.I),
    re.compile(r"^First,\s+(let me|I'll|I need)", re.I),
    re.compile(r"^To\s+(answer|help|investigate|find|continue)", re.I),
    re.compile(r"^Let me\s+also\s+(check|look|fetch|try|update)", re.I),
    re.compile(r"^Now that I\s+(understand|have|identified|see|know)", re.I),
    re.compile(r"^I should\s+(check|update|try|fetch)", re.I),
    re.compile(r"^Based on.*I (can|will|should|see)", re.I),
    re.compile(r"^Let's\s+(try|check|see|explore|get|fetch|update)", re.I),
    re.compile(r"^I need\s+to\s+(check|try|look|fetch|continue)", re.I),
    re.compile(r"^I apologize", re.I),
    re.compile(r"^The\s+(build_query|API|system)", re.I),
]

_SENTENCE_END = re.compile(r"[.!?]")


def is_planning_text(text: str) -> bool:
    """Whether ``text`` opens with a planning phrase."""
    stripped = text.strip()
    return any(pattern.search(stripped) for pattern in PLANNING_PATTERNS)


class PlanningTextFilter:
    """Stateful filter that drops planning sentences from streamed text."""

    def __init__(self) -> None:
        self.displayed_text = ""
        self._in_planning = False
        self._buffer = ""

    def feed(self, text: str) -> str:
        """Filter one text delta; returns the part that should be displayed."""
        filtered = self._filter(text)
        self.displayed_text += filtered
        return filtered

    def _filter(self, text: str) -> str:
        # Iterative: each pass consumes at most one planning sentence.
        while text:
            if self._in_planning:
                self._buffer += text
                match = _SENTENCE_END.search(self._buffer)
                if not match:
                    return ""
                logger.debug("Filtering planning (continued): %r", self._buffer[: match.end()][:60])
                text = self._buffer[match.end() :]
                self._in_planning = False
                self._buffer = ""
                if not text.strip():
                    return ""
                continue

            if not is_planning_text(text):
                return text

            match = _SENTENCE_END.search(text)
            if not match:
                logger.debug("Filtering planning (spans chunks): %r", text.strip()[:60])
                self._in_planning = True
                self._buffer = text
                return ""

            logger.debug("Filtering planning: %r", text[: match.end()][:60])
            text = text[match.end() :]
            if not text.strip():
                return ""
        return ""

    def reset(self) -> None:
        self.displayed_text = ""
        self._in_planning = False
        self._buffer = ""
