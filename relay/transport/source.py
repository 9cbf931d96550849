"""
In-process event source.

An asyncio.Queue-backed inbound sequence. The webhook endpoint pushes
Telegram updates into it; tests push finite synthetic sequences and
close() it to end iteration.
"""
import asyncio
from typing import AsyncIterator, Iterable, Optional

from ..core.classifier import InboundEvent

_CLOSED = object()


class QueueEventSource:
    """Async iterator over events pushed by another task."""

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize)
        self._closed = False

    @classmethod
    def of(cls, events: Iterable[InboundEvent]) -> "QueueEventSource":
        """Finite source holding `events`, already closed."""
        source = cls()
        for event in events:
            source.push(event)
        source.close()
        return source

    def push(self, event: InboundEvent) -> bool:
        """Enqueue one event. False when the source is closed or full."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    def close(self):
        if not self._closed:
            self._closed = True
            # A full bounded queue gets no sentinel; the iterator also checks the flag
            if not self._queue.full():
                self._queue.put_nowait(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return self._queue.qsize()

    async def __aiter__(self) -> AsyncIterator[InboundEvent]:
        while True:
            if self._closed and self._queue.empty():
                return
            item: Optional[object] = await self._queue.get()
            if item is _CLOSED:
                return
            yield item
