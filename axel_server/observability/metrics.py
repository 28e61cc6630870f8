from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(slots=True)
class ServerMetrics:
    events_total: Dict[str, int] = field(default_factory=dict)
    events_dropped_total: int = 0
    otel_uncorrelated_total: int = 0
    sse_lagged_total: int = 0
    sse_subscribers: int = 0
    outbox_delivered_total: int = 0
    outbox_failed_total: int = 0
    logger_write_errors_total: int = 0

    def increment_event(self, event_kind: str) -> None:
        self.events_total[event_kind] = self.events_total.get(event_kind, 0) + 1

    def reset(self) -> None:
        self.events_total.clear()
        self.events_dropped_total = 0
        self.otel_uncorrelated_total = 0
        self.sse_lagged_total = 0
        self.sse_subscribers = 0
        self.outbox_delivered_total = 0
        self.outbox_failed_total = 0
        self.logger_write_errors_total = 0

    def snapshot(self) -> dict:
        return {
            "events_total": dict(self.events_total),
            "events_dropped_total": self.events_dropped_total,
            "otel_uncorrelated_total": self.otel_uncorrelated_total,
            "sse_lagged_total": self.sse_lagged_total,
            "sse_subscribers": self.sse_subscribers,
            "outbox_delivered_total": self.outbox_delivered_total,
            "outbox_failed_total": self.outbox_failed_total,
            "logger_write_errors_total": self.logger_write_errors_total,
        }


_server_metrics = ServerMetrics()


def get_server_metrics() -> ServerMetrics:
    return _server_metrics
