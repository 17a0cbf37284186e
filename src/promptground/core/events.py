"""Event sinks that receive optimization progress."""

import asyncio
import inspect
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Union

from loguru import logger

from ..models import ProgressEvent

EventCallback = Callable[[ProgressEvent], Union[None, Awaitable[None]]]


class EventSink:
    """Receives progress events in emission order.

    Subclasses implement ``send``. Callers go through ``emit``, which never
    raises: a broken sink must not change the course of an optimization.
    """

    async def send(self, event: ProgressEvent) -> None:
        pass

    async def emit(self, event: ProgressEvent) -> None:
        try:
            await self.send(event)
        except Exception as e:
            logger.warning(f"Event sink {type(self).__name__} failed on {event.type}: {e}")


class NullSink(EventSink):
    """Discards every event."""


class ListSink(EventSink):
    """Collects events in memory."""

    def __init__(self) -> None:
        self.events: List[ProgressEvent] = []

    async def send(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> List[ProgressEvent]:
        return [event for event in self.events if event.type == event_type]


class CallbackSink(EventSink):
    """Forwards events to a sync or async callback."""

    def __init__(self, callback: EventCallback):
        self.callback = callback

    async def send(self, event: ProgressEvent) -> None:
        result = self.callback(event)
        if inspect.isawaitable(result):
            await result


class FanoutSink(EventSink):
    """Forwards each event to several sinks in order."""

    def __init__(self, *sinks: EventSink):
        self.sinks = [sink for sink in sinks if sink is not None]

    async def send(self, event: ProgressEvent) -> None:
        for sink in self.sinks:
            await sink.emit(event)


class QueueSink(EventSink):
    """Buffers events on an asyncio queue for a streaming consumer."""

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Optional[ProgressEvent]]" = asyncio.Queue()

    async def send(self, event: ProgressEvent) -> None:
        await self._queue.put(event)

    def close(self) -> None:
        """Signal the consumer that no more events will arrive."""
        self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event
