"""Typed view of the progress messages produced by the research process.

The research process emits loosely-shaped messages (plain dicts from a
runner, SDK objects, or the variants below). ``parse_upstream_message``
normalizes any of them into exactly one variant so that downstream code
matches on types instead of probing fields.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ToolInvocation:
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TextBlock:
    text: str


ContentBlock = ToolInvocation | TextBlock


@dataclass(frozen=True)
class AssistantTurn:
    blocks: tuple[ContentBlock, ...] = ()


@dataclass(frozen=True)
class ToolSummary:
    summary: str


@dataclass(frozen=True)
class ToolProgress:
    tool_name: str
    elapsed_seconds: float | None = None


@dataclass(frozen=True)
class FinalResult:
    success: bool
    result: str = ""
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class UnknownMessage:
    kind: str | None = None


UpstreamMessage = AssistantTurn | ToolSummary | ToolProgress | FinalResult | UnknownMessage

_VARIANTS = (AssistantTurn, ToolSummary, ToolProgress, FinalResult, UnknownMessage)

TOOL_USE_BLOCK_TYPES = ("tool_use", "server_tool_use")


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _parse_block(raw: Any) -> ContentBlock | None:
    block_type = _field(raw, "type")
    if block_type in TOOL_USE_BLOCK_TYPES:
        tool_input = _field(raw, "input")
        return ToolInvocation(
            name=_as_str(_field(raw, "name")),
            input=dict(tool_input) if isinstance(tool_input, dict) else {},
        )
    if block_type == "text":
        return TextBlock(text=_as_str(_field(raw, "text")))
    return None


def parse_content_blocks(content: Any) -> tuple[ContentBlock, ...]:
    """Keep tool invocations and text; drop tool results and anything else."""
    if not isinstance(content, (list, tuple)):
        return ()
    blocks = []
    for raw_block in content:
        block = _parse_block(raw_block)
        if block is not None:
            blocks.append(block)
    return tuple(blocks)


def _parse_assistant(raw: Any) -> AssistantTurn:
    message = _field(raw, "message")
    content = _field(message, "content") if message is not None else _field(raw, "content")
    return AssistantTurn(blocks=parse_content_blocks(content))


def _parse_result(raw: Any) -> FinalResult:
    if _field(raw, "subtype") == "success":
        return FinalResult(success=True, result=_as_str(_field(raw, "result")))
    errors = _field(raw, "errors")
    if not isinstance(errors, (list, tuple)):
        errors = ()
    return FinalResult(success=False, errors=tuple(str(e) for e in errors if e is not None))


def _parse_elapsed(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def parse_upstream_message(raw: Any) -> UpstreamMessage:
    """Normalize one raw upstream message. Never raises."""
    if isinstance(raw, _VARIANTS):
        return raw

    kind = _field(raw, "type")
    if not isinstance(kind, str):
        return UnknownMessage()

    if kind == "assistant":
        return _parse_assistant(raw)
    if kind == "result":
        return _parse_result(raw)
    if kind == "tool_use_summary":
        return ToolSummary(summary=_as_str(_field(raw, "summary")))
    if kind == "tool_progress":
        return ToolProgress(
            tool_name=_as_str(_field(raw, "tool_name")),
            elapsed_seconds=_parse_elapsed(_field(raw, "elapsed_time_seconds")),
        )
    return UnknownMessage(kind=kind)
