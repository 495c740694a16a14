from __future__ import annotations

from cinescout.models.events import ClientEvent, EventType

START_MESSAGE = "Starting deep research into your movie taste..."
RESEARCH_ERROR_FALLBACK = "Research encountered an error"
UNEXPECTED_ERROR_FALLBACK = "An unexpected error occurred"


def start(message: str = START_MESSAGE) -> ClientEvent:
    return ClientEvent(type=EventType.START, data={"message": message})


def search(query: str) -> ClientEvent:
    return ClientEvent(type=EventType.SEARCH, data={"query": query})


def fetch(url: str) -> ClientEvent:
    return ClientEvent(type=EventType.FETCH, data={"url": url})


def thinking(content: str) -> ClientEvent:
    return ClientEvent(type=EventType.THINKING, data={"content": content})


def summary(content: str) -> ClientEvent:
    return ClientEvent(type=EventType.SUMMARY, data={"content": content})


def tool_progress(tool_name: str, elapsed: float | None) -> ClientEvent:
    return ClientEvent(
        type=EventType.TOOL_PROGRESS,
        data={"toolName": tool_name, "elapsed": elapsed},
    )


def result(content: str) -> ClientEvent:
    """Emit the final research report, verbatim."""
    return ClientEvent(type=EventType.RESULT, data={"content": content})


def error(message: str) -> ClientEvent:
    return ClientEvent(type=EventType.ERROR, data={"message": message})


def done() -> ClientEvent:
    """Emit the terminal event; always the last event of a stream."""
    return ClientEvent(type=EventType.DONE)
