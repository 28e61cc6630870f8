"""
event_logger.py: append-only JSONL persistence for event envelopes

Handlers hand envelopes over with ``submit`` and never wait on the disk.
A single writer task owns the file handle, so lines never interleave:
- queue full: the envelope is dropped and counted
- serialization or write failure: logged, the loop keeps going
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import IO

from axel_server.events import TimestampedEvent
from axel_server.observability.logging import get_server_logger
from axel_server.observability.metrics import ServerMetrics, get_server_metrics

DEFAULT_QUEUE_CAPACITY = 1000

logger = get_server_logger()


class EventLoggerClosedError(RuntimeError):
    pass


def _open_append(path: Path) -> IO[str]:
    return path.open("a", encoding="utf-8")


def _write_line(handle: IO[str], line: str) -> None:
    handle.write(line)
    handle.write("\n")
    handle.flush()


class EventLogger:
    def __init__(
        self,
        path: Path,
        *,
        capacity: int = DEFAULT_QUEUE_CAPACITY,
        metrics: ServerMetrics | None = None,
    ) -> None:
        self.path = Path(path)
        self.capacity = capacity
        self.metrics = metrics or get_server_metrics()
        self._queue: asyncio.Queue[TimestampedEvent | None] = asyncio.Queue(maxsize=capacity)
        self._task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._closed

    async def start(self) -> None:
        """Create the log directory and spawn the writer. Directory errors propagate."""
        if self._task is not None:
            return
        await asyncio.to_thread(self.path.parent.mkdir, parents=True, exist_ok=True)
        self._task = asyncio.create_task(self._writer_loop())

    def submit(self, event: TimestampedEvent) -> bool:
        """Enqueue without blocking. Returns False when the envelope was dropped."""
        if not self.running:
            raise EventLoggerClosedError(f"event logger for {self.path} is not accepting events")
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.metrics.events_dropped_total += 1
            logger.warning(
                "event_dropped",
                extra={"event_kind": event.event_kind, "pane_id": event.correlation_id, "outcome": "queue_full"},
            )
            return False
        return True

    async def drain(self) -> None:
        """Wait until every envelope queued so far has been handled by the writer."""
        if self._task is None or self._task.done():
            return
        await self._queue.join()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._task is None:
            return
        if not self._task.done():
            await self._queue.put(None)
        await self._task

    async def _writer_loop(self) -> None:
        try:
            handle = await asyncio.to_thread(_open_append, self.path)
        except OSError as exc:
            self._closed = True
            logger.error("event_log_open_failed", extra={"path": str(self.path), "error": str(exc)})
            return

        try:
            while True:
                event = await self._queue.get()
                try:
                    if event is None:
                        return
                    await self._persist(handle, event)
                finally:
                    self._queue.task_done()
        finally:
            await asyncio.to_thread(handle.close)

    async def _persist(self, handle: IO[str], event: TimestampedEvent) -> None:
        try:
            line = event.to_json_line()
        except (TypeError, ValueError) as exc:
            logger.error(
                "event_serialize_failed",
                extra={"event_kind": event.event_kind, "pane_id": event.correlation_id, "error": str(exc)},
            )
            return

        try:
            await asyncio.to_thread(_write_line, handle, line)
        except OSError as exc:
            self.metrics.logger_write_errors_total += 1
            logger.error("event_write_failed", extra={"path": str(self.path), "error": str(exc)})
