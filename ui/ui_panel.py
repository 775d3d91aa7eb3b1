import asyncio
from typing import AsyncIterator

from ui_schemas import RenderEvent


class RenderChannel:
    """
    Single-consumer, ordered channel of render events to the display surface.
    After dispose() every post is a silent no-op.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def post(self, event: RenderEvent) -> None:
        if self._disposed:
            return
        self._queue.put_nowait(event)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._queue.put_nowait(None)

    def drain(self) -> list[RenderEvent]:
        events: list[RenderEvent] = []
        while not self._queue.empty():
            event = self._queue.get_nowait()
            if event is not None:
                events.append(event)
        return events

    def __aiter__(self) -> AsyncIterator[RenderEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[RenderEvent]:
        while True:
            event = await self._queue.get()
            if event is None or self._disposed:
                return
            yield event
