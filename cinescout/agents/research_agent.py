from __future__ import annotations

import time
from typing import Any, AsyncGenerator, Mapping, Sequence

import anthropic

from cinescout.config import settings
from cinescout.errors import UpstreamFailure
from cinescout.llm_client import client as llm_client, get_model
from cinescout.models.upstream import (
    AssistantTurn,
    ContentBlock,
    FinalResult,
    TextBlock,
    ToolInvocation,
    ToolProgress,
    ToolSummary,
    UpstreamMessage,
    parse_content_blocks,
)
from cinescout.services import logger as log_service
from cinescout.services.prompt_store import render_prompt

WEB_SEARCH_TOOL = "web_search"
WEB_FETCH_TOOL = "web_fetch"
WEB_FETCH_BETA = "web-fetch-2025-09-10"

MIN_PICKS = 8
MAX_PICKS = 12


def build_task_prompt(
    favorite_movies: Sequence[str],
    movie_preferences: Mapping[str, str | None],
) -> str:
    """Number each favorite and pair it with its preference note, if any."""
    entries = []
    for position, title in enumerate(favorite_movies, start=1):
        preference = (movie_preferences.get(title) or "").strip()
        if preference:
            entries.append(
                render_prompt(
                    "research.movie_with_preference",
                    position=position,
                    title=title,
                    preference=preference,
                )
            )
        else:
            entries.append(
                render_prompt(
                    "research.movie_without_preference",
                    position=position,
                    title=title,
                )
            )
    return render_prompt(
        "research.task_prompt",
        movies_context="\n\n".join(entries),
        min_picks=MIN_PICKS,
        max_picks=MAX_PICKS,
    )


def research_tools() -> list[dict[str, Any]]:
    """The only capabilities the research run gets: search and fetch."""
    return [
        {
            "type": "web_search_20250305",
            "name": WEB_SEARCH_TOOL,
            "max_uses": settings.web_search_max_uses,
        },
        {
            "type": "web_fetch_20250910",
            "name": WEB_FETCH_TOOL,
            "max_uses": settings.web_fetch_max_uses,
        },
    ]


def _summarize_tool_use(searches: int, fetches: int) -> str:
    parts = []
    if searches:
        parts.append(f"{searches} web search{'es' if searches != 1 else ''}")
    if fetches:
        parts.append(f"{fetches} page{'s' if fetches != 1 else ''} read")
    if not parts:
        return ""
    return "Research so far: " + ", ".join(parts)


def _report_start(blocks: Sequence[ContentBlock]) -> int:
    last_tool = -1
    for idx, block in enumerate(blocks):
        if isinstance(block, ToolInvocation):
            last_tool = idx
    return last_tool + 1


def _report_text(blocks: Sequence[ContentBlock]) -> str:
    """Text written after the last tool call of the final response."""
    tail = [b.text.strip() for b in blocks[_report_start(blocks):] if isinstance(b, TextBlock)]
    return "\n\n".join(text for text in tail if text)


def _final_result(stop_reason: str | None, report: str) -> FinalResult:
    if stop_reason in ("end_turn", "stop_sequence", "max_tokens") and report:
        return FinalResult(success=True, result=report)
    if stop_reason == "max_tokens":
        return FinalResult(success=False, errors=("Response truncated before any report was written",))
    if stop_reason in ("end_turn", "stop_sequence"):
        return FinalResult(success=False, errors=("Research finished without a report",))
    return FinalResult(success=False, errors=(f"Research stopped unexpectedly ({stop_reason})",))


class ResearchSession:
    """One research run against the Anthropic Messages API.

    ``messages()`` is a single-pass async generator of upstream messages:
    an ``AssistantTurn`` per API response, ``ToolProgress``/``ToolSummary``
    after responses that used tools, and a closing ``FinalResult``. The
    conversation lives only inside the generator; nothing is persisted.
    """

    name: str = "movie_research"

    def __init__(
        self,
        favorite_movies: Sequence[str],
        movie_preferences: Mapping[str, str | None] | None = None,
        *,
        model: str | None = None,
        max_turns: int | None = None,
        client: Any = None,
    ):
        self.favorite_movies = list(favorite_movies)
        self.movie_preferences = dict(movie_preferences or {})
        self.model = model or get_model()
        self.max_turns = max_turns or settings.research_max_turns
        self.client = client
        self._opened = False

    @property
    def task_prompt(self) -> str:
        return build_task_prompt(self.favorite_movies, self.movie_preferences)

    async def _create(self, active_client: Any, conversation: list[dict[str, Any]]) -> Any:
        t0 = time.monotonic()
        try:
            response = await active_client.beta.messages.create(
                model=self.model,
                max_tokens=settings.research_max_tokens,
                system=render_prompt(
                    "research.system_prompt", min_picks=MIN_PICKS, max_picks=MAX_PICKS
                ),
                messages=conversation,
                tools=research_tools(),
                betas=[WEB_FETCH_BETA],
            )
        except anthropic.APIError as e:
            log_service.log_llm_call(
                model=self.model,
                caller=self.name,
                duration_ms=int((time.monotonic() - t0) * 1000),
                error=str(e),
            )
            raise UpstreamFailure(f"Research service error: {e}") from e

        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=self.model,
            caller=self.name,
            input_tokens=getattr(usage, "input_tokens", 0) or 0,
            output_tokens=getattr(usage, "output_tokens", 0) or 0,
            duration_ms=int((time.monotonic() - t0) * 1000),
            stop_reason=getattr(response, "stop_reason", None),
        )
        return response

    async def messages(self) -> AsyncGenerator[UpstreamMessage, None]:
        if self._opened:
            raise RuntimeError("Research session can only be consumed once")
        self._opened = True

        active_client = self.client or llm_client()
        conversation: list[dict[str, Any]] = [{"role": "user", "content": self.task_prompt}]
        searches = 0
        fetches = 0

        for _ in range(self.max_turns):
            t0 = time.monotonic()
            response = await self._create(active_client, conversation)
            elapsed = round(time.monotonic() - t0, 1)

            blocks = parse_content_blocks(response.content)
            final = None
            if response.stop_reason != "pause_turn":
                final = _final_result(response.stop_reason, _report_text(blocks))
                # The report goes out once, as the result.
                if final.success:
                    blocks = blocks[:_report_start(blocks)]

            turn = AssistantTurn(blocks=blocks)
            yield turn

            used = [b.name for b in turn.blocks if isinstance(b, ToolInvocation)]
            for tool_name in dict.fromkeys(used):
                yield ToolProgress(tool_name=tool_name, elapsed_seconds=elapsed)
            if used:
                searches += used.count(WEB_SEARCH_TOOL)
                fetches += used.count(WEB_FETCH_TOOL)
                yield ToolSummary(summary=_summarize_tool_use(searches, fetches))

            # Server tools hand long turns back to us; resume with what we got.
            if final is None:
                conversation.append({"role": "assistant", "content": response.content})
                continue

            yield final
            return

        yield FinalResult(
            success=False,
            errors=(f"Reached maximum number of turns ({self.max_turns})",),
        )
