from __future__ import annotations

import asyncio
from typing import AsyncIterator

from cinescout.errors import TransportError

_CLOSED = object()


class EventChannel:
    """Append-only frame buffer between a relay and the HTTP response body.

    The relay and the keepalive timer write encoded frames; the response
    generator drains them in order until the channel is closed.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, frame: bytes) -> None:
        if self._closed:
            raise TransportError("Output channel is closed")
        self._queue.put_nowait(frame)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def frames(self) -> AsyncIterator[bytes]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item
