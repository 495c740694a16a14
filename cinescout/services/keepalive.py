from __future__ import annotations

import asyncio
from typing import ClassVar

from loguru import logger

from cinescout.config import settings
from cinescout.errors import TransportError
from cinescout.models.events import KEEPALIVE_FRAME
from cinescout.services.channel import EventChannel


class KeepaliveScheduler:
    """Periodic heartbeat comment frames for one open stream.

    Used as an async context manager: the timer starts on enter and is
    cancelled on exit, whichever way the block is left.
    """

    _active: ClassVar[set[KeepaliveScheduler]] = set()

    def __init__(self, channel: EventChannel, interval: float | None = None):
        self.interval = settings.keepalive_interval_seconds if interval is None else interval
        self.beats = 0
        self._channel = channel
        self._task: asyncio.Task | None = None
        self._cancelled = False

    @classmethod
    def active_count(cls) -> int:
        """Number of timers started and not yet cancelled, across all streams."""
        return len(cls._active)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._cancelled

    def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("Keepalive scheduler already started")
        self._task = asyncio.create_task(self._beat(), name="keepalive")
        KeepaliveScheduler._active.add(self)

    async def _beat(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._channel.send(KEEPALIVE_FRAME)
            except TransportError:
                return
            self.beats += 1

    async def cancel(self) -> None:
        task = self._task
        if task is None or self._cancelled:
            return
        self._cancelled = True
        KeepaliveScheduler._active.discard(self)

        task.cancel()
        await asyncio.wait([task])
        if not task.cancelled() and task.exception() is not None:
            logger.opt(exception=task.exception()).warning("Keepalive timer failed")

    async def __aenter__(self) -> KeepaliveScheduler:
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cancel()
