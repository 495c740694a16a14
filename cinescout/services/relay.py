"""Relay research progress from the upstream session to one client stream.

A ``RelayController`` owns one output channel for the lifetime of a request.
It writes ``start``, feeds every upstream message through the classifier,
keeps the connection warm with a ``KeepaliveScheduler`` and always finishes
with a single ``done`` event unless the client went away first. Cleanup
(timer cancelled, upstream closed, channel closed) runs exactly once on
every exit path.
"""
from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any, AsyncIterable, AsyncIterator
from uuid import uuid4

from loguru import logger

from cinescout.errors import TransportError
from cinescout.models.events import ClientEvent
from cinescout.models.upstream import FinalResult, parse_upstream_message
from cinescout.services import logger as log_service
from cinescout.services import streaming
from cinescout.services.channel import EventChannel
from cinescout.services.classifier import classify
from cinescout.services.keepalive import KeepaliveScheduler

# Relay tasks outlive the response generator that spawned them by a few
# awaits; keep a strong reference until they finish.
_background_tasks: set[asyncio.Task] = set()


class RelayState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    TERMINATED = "terminated"


class RelayController:
    def __init__(
        self,
        messages: AsyncIterable[Any],
        channel: EventChannel,
        *,
        keepalive_interval: float | None = None,
        thinking_max_chars: int | None = None,
        request_id: str | None = None,
    ):
        self.request_id = request_id or uuid4().hex[:12]
        self.state = RelayState.IDLE
        self.outcome: str | None = None
        self.emitted: list[ClientEvent] = []
        self._messages = messages
        self._channel = channel
        self._keepalive_interval = keepalive_interval
        self._thinking_max_chars = thinking_max_chars
        self._disconnected = False
        self._started_at = 0.0

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    async def _write(self, event: ClientEvent) -> bool:
        """Best-effort write; a closed channel silences all later writes."""
        if self._disconnected:
            return False
        try:
            await self._channel.send(event.encode())
        except TransportError:
            self._disconnected = True
            log_service.log_event(
                event_type="relay_client_gone",
                message="Output channel closed, dropping further events",
                request_id=self.request_id,
                dropped=event.type.value,
            )
            return False
        self.emitted.append(event)
        return True

    async def run(self) -> None:
        if self.state is not RelayState.IDLE:
            raise RuntimeError("Relay has already run")
        self.state = RelayState.STREAMING
        self._started_at = time.monotonic()
        log_service.log_event(
            event_type="relay_started",
            message="Recommendation stream opened",
            request_id=self.request_id,
        )

        try:
            await self._write(streaming.start())
            async with KeepaliveScheduler(self._channel, self._keepalive_interval):
                try:
                    await self._consume()
                except Exception as e:
                    logger.exception(f"Research stream failed [{self.request_id}]")
                    self.outcome = "error"
                    await self._write(
                        streaming.error(str(e) or streaming.UNEXPECTED_ERROR_FALLBACK)
                    )
                await self._write(streaming.done())
        except asyncio.CancelledError:
            self.outcome = "cancelled"
            raise
        finally:
            self._terminate()

    async def _consume(self) -> None:
        iterator = self._messages.__aiter__()
        try:
            async for raw in iterator:
                message = parse_upstream_message(raw)
                for event in classify(message, thinking_max_chars=self._thinking_max_chars):
                    await self._write(event)

                if isinstance(message, FinalResult):
                    self.outcome = "result" if message.success else "error"
                    return
                if self._disconnected:
                    self.outcome = "disconnected"
                    return
            self.outcome = "exhausted"
        finally:
            await self._close_upstream(iterator)

    async def _close_upstream(self, iterator: Any) -> None:
        aclose = getattr(iterator, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            log_service.log_event(
                event_type="relay_upstream_close_failed",
                message="Failed to close upstream session",
                request_id=self.request_id,
                error=str(e),
            )

    def _terminate(self) -> None:
        if self.state is RelayState.TERMINATED:
            return
        self.state = RelayState.TERMINATED
        self._channel.close()
        log_service.log_event(
            event_type="relay_terminated",
            message="Recommendation stream closed",
            request_id=self.request_id,
            outcome=self.outcome,
            events=len(self.emitted),
            client_disconnected=self._disconnected,
            runtime_ms=int((time.monotonic() - self._started_at) * 1000),
        )


def _report_task_failure(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.opt(exception=task.exception()).error("Relay task crashed")


async def relay_frames(
    messages: AsyncIterable[Any],
    *,
    keepalive_interval: float | None = None,
    thinking_max_chars: int | None = None,
    request_id: str | None = None,
) -> AsyncIterator[bytes]:
    """Run a relay in the background and yield its encoded frames.

    Closing this generator (client disconnect) closes the channel and
    cancels the relay, which in turn releases its keepalive timer.
    """
    channel = EventChannel()
    relay = RelayController(
        messages,
        channel,
        keepalive_interval=keepalive_interval,
        thinking_max_chars=thinking_max_chars,
        request_id=request_id,
    )
    task = asyncio.create_task(relay.run(), name=f"relay-{relay.request_id}")
    _background_tasks.add(task)
    task.add_done_callback(_report_task_failure)

    try:
        async for frame in channel.frames():
            yield frame
    finally:
        channel.close()
        if not task.done():
            task.cancel()
