"""
correlation.py: maps assistant session ids to the pane that reported them

Hook events carry both the pane (URL) and the assistant's session_id (body).
Legacy OTEL exports only carry the session id as a ``session.id`` attribute,
so they are routed through this table.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterator

from axel_server.events import OTEL_SENTINEL, OtelEventType

SESSION_ID_ATTRIBUTE = "session.id"

# Data point containers checked in this order for each metric.
_METRIC_DATA_KINDS = ("sum", "gauge", "histogram", "exponentialHistogram", "summary")


class AsyncRWLock:
    """Many concurrent readers or one writer. Waiting writers hold back new readers."""

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @property
    def readers(self) -> int:
        return self._readers

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer and self._writers_waiting == 0)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            except BaseException:
                self._writers_waiting -= 1
                self._cond.notify_all()
                raise
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class CorrelationTable:
    def __init__(self) -> None:
        self._lock = AsyncRWLock()
        self._panes: dict[str, str] = {}

    async def record(self, session_id: str, pane_id: str) -> None:
        async with self._lock.write():
            self._panes[session_id] = pane_id

    async def resolve(self, session_id: str) -> str | None:
        async with self._lock.read():
            return self._panes.get(session_id)

    async def snapshot(self) -> dict[str, str]:
        async with self._lock.read():
            return dict(self._panes)

    async def route(self, signal: OtelEventType, payload: Any) -> tuple[str, bool]:
        """Pick the correlation id for a legacy OTEL export.

        Returns ``(correlation_id, correlated)``; unmatched exports land in the
        ``otel`` bucket.
        """
        session_id = extract_otel_session_id(signal, payload)
        if session_id is None:
            return OTEL_SENTINEL, False
        pane_id = await self.resolve(session_id)
        if pane_id is None:
            return OTEL_SENTINEL, False
        return pane_id, True


def _items(container: Any, key: str) -> Iterator[Any]:
    if not isinstance(container, dict):
        return
    values = container.get(key)
    if isinstance(values, list):
        yield from values


def _attribute_value(value: Any) -> str | None:
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        string_value = value.get("stringValue")
        if isinstance(string_value, str) and string_value:
            return string_value
    return None


def _find_session_attribute(attributes: Iterator[Any]) -> str | None:
    for attribute in attributes:
        if isinstance(attribute, dict) and attribute.get("key") == SESSION_ID_ATTRIBUTE:
            return _attribute_value(attribute.get("value"))
    return None


def _metric_attribute_lists(payload: Any) -> Iterator[Iterator[Any]]:
    for resource in _items(payload, "resourceMetrics"):
        for scope in _items(resource, "scopeMetrics"):
            for metric in _items(scope, "metrics"):
                if not isinstance(metric, dict):
                    continue
                for kind in _METRIC_DATA_KINDS:
                    for point in _items(metric.get(kind), "dataPoints"):
                        yield _items(point, "attributes")
        yield _items(resource.get("resource") if isinstance(resource, dict) else None, "attributes")


def _log_attribute_lists(payload: Any) -> Iterator[Iterator[Any]]:
    for resource in _items(payload, "resourceLogs"):
        for scope in _items(resource, "scopeLogs"):
            for record in _items(scope, "logRecords"):
                yield _items(record, "attributes")
        yield _items(resource.get("resource") if isinstance(resource, dict) else None, "attributes")


def _trace_attribute_lists(payload: Any) -> Iterator[Iterator[Any]]:
    for resource in _items(payload, "resourceSpans"):
        for scope in _items(resource, "scopeSpans"):
            for span in _items(scope, "spans"):
                yield _items(span, "attributes")
        yield _items(resource.get("resource") if isinstance(resource, dict) else None, "attributes")


_WALKERS = {
    OtelEventType.METRICS: _metric_attribute_lists,
    OtelEventType.LOGS: _log_attribute_lists,
    OtelEventType.TRACES: _trace_attribute_lists,
}


def extract_otel_session_id(signal: OtelEventType, payload: Any) -> str | None:
    """First ``session.id`` attribute in an OTLP-JSON document, or None.

    Missing or oddly shaped levels are treated as "no match".
    """
    for attributes in _WALKERS[signal](payload):
        session_id = _find_session_attribute(attributes)
        if session_id is not None:
            return session_id
    return None
