from __future__ import annotations

import asyncio
from collections import deque

from axel_server.events import TimestampedEvent
from axel_server.observability.logging import get_server_logger
from axel_server.observability.metrics import ServerMetrics, get_server_metrics

DEFAULT_BUS_CAPACITY = 100

logger = get_server_logger()


class EventBusClosedError(Exception):
    pass


class EventBus:
    """Multicast channel with a bounded history shared by every subscriber.

    Each subscriber keeps its own cursor into the history. Publishing never
    waits on subscribers; one that falls more than ``capacity`` events behind
    skips forward to the oldest retained event.
    """

    def __init__(self, capacity: int = DEFAULT_BUS_CAPACITY, metrics: ServerMetrics | None = None) -> None:
        self.capacity = capacity
        self.metrics = metrics or get_server_metrics()
        self._history: deque[TimestampedEvent] = deque(maxlen=capacity)
        self._next_seq = 0
        self._wakeup = asyncio.Event()
        self._subscriber_count = 0
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        return self._subscriber_count

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: TimestampedEvent) -> int:
        """Append to the history and wake waiting subscribers. Returns the receiver count."""
        self._history.append(event)
        self._next_seq += 1
        self._notify()
        return self._subscriber_count

    def subscription(self) -> Subscription:
        self._subscriber_count += 1
        self.metrics.sse_subscribers = self._subscriber_count
        return Subscription(self, self._next_seq)

    def close(self) -> None:
        self._closed = True
        self._notify()

    def _notify(self) -> None:
        wakeup = self._wakeup
        self._wakeup = asyncio.Event()
        wakeup.set()

    def _release(self) -> None:
        self._subscriber_count -= 1
        self.metrics.sse_subscribers = self._subscriber_count

    @property
    def _oldest_seq(self) -> int:
        return self._next_seq - len(self._history)


class Subscription:
    def __init__(self, bus: EventBus, cursor: int) -> None:
        self._bus = bus
        self._cursor = cursor
        self._closed = False
        self.skipped = 0

    def poll(self) -> TimestampedEvent | None:
        bus = self._bus
        oldest = bus._oldest_seq
        if self._cursor < oldest:
            missed = oldest - self._cursor
            self.skipped += missed
            self._cursor = oldest
            bus.metrics.sse_lagged_total += 1
            logger.warning("inbox_subscriber_lagged", extra={"outcome": f"skipped {missed}"})
        if self._cursor >= bus._next_seq:
            return None
        event = bus._history[self._cursor - oldest]
        self._cursor += 1
        return event

    async def recv(self) -> TimestampedEvent:
        while True:
            if self._closed:
                raise EventBusClosedError("subscription closed")
            event = self.poll()
            if event is not None:
                return event
            if self._bus.closed:
                raise EventBusClosedError("event bus closed")
            await self._bus._wakeup.wait()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._bus._release()

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> TimestampedEvent:
        try:
            return await self.recv()
        except EventBusClosedError:
            raise StopAsyncIteration from None


def stream_as_sse(event: TimestampedEvent) -> dict[str, str]:
    return {"data": event.to_json_line()}
