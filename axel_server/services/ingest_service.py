from __future__ import annotations

from typing import Any

from axel_server.events import (
    UNKNOWN_HOOK,
    HookEvent,
    OtelEventType,
    OutboxResponse,
    TimestampedEvent,
    session_id_of,
)
from axel_server.observability.logging import get_server_logger
from axel_server.observability.metrics import ServerMetrics, get_server_metrics
from axel_server.services.correlation import CorrelationTable
from axel_server.services.event_logger import EventLogger
from axel_server.sse.event_bus import EventBus

logger = get_server_logger()


class IngestService:
    def __init__(
        self,
        *,
        event_logger: EventLogger,
        bus: EventBus,
        correlations: CorrelationTable,
        metrics: ServerMetrics | None = None,
    ) -> None:
        self.event_logger = event_logger
        self.bus = bus
        self.correlations = correlations
        self.metrics = metrics or get_server_metrics()

    def emit(self, event: TimestampedEvent) -> TimestampedEvent:
        """Persist then broadcast. Raises EventLoggerClosedError if the writer is gone."""
        self.event_logger.submit(event)
        self.bus.publish(event)
        self.metrics.increment_event(event.event_kind)
        return event

    async def ingest_hook(self, pane_id: str, payload: Any) -> TimestampedEvent:
        hook = HookEvent.from_payload(payload)
        event_kind = hook.event_type.value if hook is not None else UNKNOWN_HOOK

        session_id = session_id_of(payload)
        if session_id is not None:
            await self.correlations.record(session_id, pane_id)

        return self.emit(TimestampedEvent.now(event_kind, pane_id, payload))

    async def ingest_otel(self, signal: OtelEventType, payload: Any, pane_id: str | None = None) -> TimestampedEvent:
        if pane_id:
            correlation_id = pane_id
        else:
            correlation_id, correlated = await self.correlations.route(signal, payload)
            if not correlated:
                self.metrics.otel_uncorrelated_total += 1
                logger.debug("otel_uncorrelated", extra={"event_kind": signal.value})

        return self.emit(TimestampedEvent.now(signal.value, correlation_id, payload))

    def record_outbox(self, response: OutboxResponse) -> TimestampedEvent:
        return self.emit(
            TimestampedEvent.now(response.response_type.value, response.session_id, response.to_payload())
        )
