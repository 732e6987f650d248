from __future__ import annotations

import asyncio
from typing import AsyncIterator

from reviewer.app.events.models import AnalysisEvent, TERMINAL_EVENT_TYPES
from reviewer.app.events.emitter import AnalysisEventEmitter


class MemoryQueueEventEmitter(AnalysisEventEmitter):
    """
    In-memory async event emitter suitable for NDJSON streaming.

    Properties:
    - single-consumer
    - non-blocking for the analysis execution path
    - deterministic ordering
    - terminates cleanly on a result or error event
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[AnalysisEvent | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def emit(self, event: AnalysisEvent) -> None:
        if self._closed:
            return

        try:
            await self._queue.put(event)
        except Exception:
            # Observability never breaks the analysis
            return

        if event.event_type in TERMINAL_EVENT_TYPES:
            await self.close()

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            await self._queue.put(None)

    async def stream(self) -> AsyncIterator[AnalysisEvent]:
        """
        Async generator yielding emitted events in order.
        """
        while True:
            event = await self._queue.get()
            if event is None:
                break
            yield event
