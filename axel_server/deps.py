from __future__ import annotations

from axel_server.config import Settings
from axel_server.services.ingest_service import IngestService
from axel_server.services.outbox_service import OutboxService
from axel_server.sse.event_bus import EventBus

_settings: Settings | None = None
_ingest_service: IngestService | None = None
_outbox_service: OutboxService | None = None


def set_dependencies(
    settings: Settings,
    ingest_service: IngestService,
    outbox_service: OutboxService,
) -> None:
    global _settings, _ingest_service, _outbox_service
    _settings = settings
    _ingest_service = ingest_service
    _outbox_service = outbox_service


def clear_dependencies() -> None:
    global _settings, _ingest_service, _outbox_service
    _settings = None
    _ingest_service = None
    _outbox_service = None


def get_settings() -> Settings:
    if _settings is None:
        raise RuntimeError("Settings not initialized")
    return _settings


def get_ingest_service() -> IngestService:
    if _ingest_service is None:
        raise RuntimeError("IngestService not initialized")
    return _ingest_service


def get_outbox_service() -> OutboxService:
    if _outbox_service is None:
        raise RuntimeError("OutboxService not initialized")
    return _outbox_service


def get_event_bus() -> EventBus:
    return get_ingest_service().bus
