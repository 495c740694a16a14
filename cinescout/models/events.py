from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sse_starlette.sse import ServerSentEvent

FRAME_SEPARATOR = "\n"


class EventType(str, Enum):
    START = "start"
    SEARCH = "search"
    FETCH = "fetch"
    THINKING = "thinking"
    SUMMARY = "summary"
    TOOL_PROGRESS = "tool_progress"
    RESULT = "result"
    ERROR = "error"
    DONE = "done"


@dataclass(frozen=True)
class ClientEvent:
    """One normalized unit written to the client-facing stream."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.type.value, **self.data}

    def encode(self) -> bytes:
        return ServerSentEvent(
            data=json.dumps(self.to_payload()), sep=FRAME_SEPARATOR
        ).encode()


KEEPALIVE_FRAME: bytes = ServerSentEvent(comment="heartbeat", sep=FRAME_SEPARATOR).encode()


def decode_frame(frame: bytes | str) -> dict[str, Any] | None:
    """Return the JSON payload of a data frame, or None for comment frames."""
    text = frame.decode("utf-8") if isinstance(frame, bytes) else frame
    data_lines = [
        line[len("data:"):].lstrip(" ")
        for line in text.splitlines()
        if line.startswith("data:")
    ]
    if not data_lines:
        return None
    return json.loads("\n".join(data_lines))


def iter_payloads(body: bytes | str) -> list[dict[str, Any]]:
    """Split a raw SSE body into its data payloads, skipping comment frames."""
    text = body.decode("utf-8") if isinstance(body, bytes) else body
    payloads = []
    for chunk in text.split(FRAME_SEPARATOR * 2):
        payload = decode_frame(chunk)
        if payload is not None:
            payloads.append(payload)
    return payloads
