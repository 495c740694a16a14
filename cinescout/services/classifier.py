"""Map upstream research messages onto the client event vocabulary."""
from __future__ import annotations

from typing import Any

from cinescout.config import settings
from cinescout.models.events import ClientEvent
from cinescout.models.upstream import (
    AssistantTurn,
    FinalResult,
    TextBlock,
    ToolInvocation,
    ToolProgress,
    ToolSummary,
    UpstreamMessage,
)
from cinescout.services import streaming

SEARCH_TOOL_NAMES = frozenset({"web_search", "WebSearch"})
FETCH_TOOL_NAMES = frozenset({"web_fetch", "WebFetch"})
SEARCH_QUERY_FIELDS = ("query", "q")


def _first_text(tool_input: dict[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = tool_input.get(key)
        if value:
            return value if isinstance(value, str) else str(value)
    return ""


def _classify_block(block: ToolInvocation | TextBlock, thinking_max_chars: int) -> ClientEvent | None:
    if isinstance(block, ToolInvocation):
        if block.name in SEARCH_TOOL_NAMES:
            return streaming.search(_first_text(block.input, SEARCH_QUERY_FIELDS))
        if block.name in FETCH_TOOL_NAMES:
            return streaming.fetch(_first_text(block.input, ("url",)))
        return None

    # Long text is most likely the final report, which arrives again as a result.
    text = block.text.strip()
    if 0 < len(text) < thinking_max_chars:
        return streaming.thinking(text)
    return None


def classify(
    message: UpstreamMessage,
    *,
    thinking_max_chars: int | None = None,
) -> list[ClientEvent]:
    """Return the client events for one upstream message, in block order."""
    limit = settings.thinking_max_chars if thinking_max_chars is None else thinking_max_chars

    if isinstance(message, FinalResult):
        if message.success:
            return [streaming.result(message.result)]
        text = "; ".join(message.errors) or streaming.RESEARCH_ERROR_FALLBACK
        return [streaming.error(text)]

    if isinstance(message, AssistantTurn):
        events = []
        for block in message.blocks:
            event = _classify_block(block, limit)
            if event is not None:
                events.append(event)
        return events

    if isinstance(message, ToolSummary):
        return [streaming.summary(message.summary)] if message.summary else []

    if isinstance(message, ToolProgress):
        if not message.tool_name:
            return []
        return [streaming.tool_progress(message.tool_name, message.elapsed_seconds)]

    return []
