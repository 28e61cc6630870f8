from __future__ import annotations

import asyncio
import signal
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse

from axel_server.api import hooks, inbox, ops, otel, outbox
from axel_server.config import SERVER_VERSION, Settings, load_settings
from axel_server.deps import clear_dependencies, set_dependencies
from axel_server.errors import error_from_exception
from axel_server.observability.logging import get_server_logger
from axel_server.observability.metrics import get_server_metrics
from axel_server.services.correlation import CorrelationTable
from axel_server.services.event_logger import EventLogger
from axel_server.services.ingest_service import IngestService
from axel_server.services.outbox_service import OutboxService
from axel_server.services.watchdog import SessionWatchdog, ShutdownCoordinator
from axel_server.sse.event_bus import EventBus
from axel_server.trace import (
    REQUEST_ID_HEADER,
    normalize_request_id,
    reset_current_request_id,
    set_current_request_id,
)

logger = get_server_logger()


async def _close_streams_on_shutdown(coordinator: ShutdownCoordinator, bus: EventBus) -> None:
    await coordinator.wait()
    bus.close()


def create_app(settings: Settings | None = None, *, coordinator: ShutdownCoordinator | None = None) -> FastAPI:
    settings = settings or load_settings()
    coordinator = coordinator or ShutdownCoordinator()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        metrics = get_server_metrics()
        event_logger = EventLogger(settings.log_path, metrics=metrics)
        await event_logger.start()
        bus = EventBus(metrics=metrics)
        ingest_service = IngestService(
            event_logger=event_logger,
            bus=bus,
            correlations=CorrelationTable(),
            metrics=metrics,
        )
        outbox_service = OutboxService(session=settings.session, response_dir=settings.response_dir, metrics=metrics)
        set_dependencies(settings, ingest_service, outbox_service)
        app.state.ingest_service = ingest_service

        watchdog: SessionWatchdog | None = None
        if settings.session:
            watchdog = SessionWatchdog(
                settings.session,
                coordinator,
                interval_seconds=settings.watchdog_interval_seconds,
            )
            await watchdog.start()
        stream_closer = asyncio.create_task(_close_streams_on_shutdown(coordinator, bus))
        logger.info(
            "server_started",
            extra={"session_id": settings.session, "path": str(settings.log_path), "outcome": "ok"},
        )

        try:
            yield
        finally:
            stream_closer.cancel()
            await asyncio.gather(stream_closer, return_exceptions=True)
            if watchdog is not None:
                await watchdog.stop()
            bus.close()
            await event_logger.close()
            clear_dependencies()
            coordinator.mark_stopped()
            logger.info("server_stopped", extra={"outcome": coordinator.reason or "lifespan_exit"})

    app = FastAPI(title="Axel Event Server", version=SERVER_VERSION, lifespan=lifespan)
    app.state.coordinator = coordinator

    @app.middleware("http")
    async def request_middleware(request: Request, call_next):
        request_id = normalize_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        token = set_current_request_id(request_id)
        started = datetime.now(tz=timezone.utc)
        try:
            response = await call_next(request)
        except Exception as exc:  # noqa: BLE001
            response = _error_response(exc, request_id)
        finally:
            reset_current_request_id(token)
        duration_ms = int((datetime.now(tz=timezone.utc) - started).total_seconds() * 1000)
        logger.info(
            "http_request",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
                "status": response.status_code,
                "duration_ms": duration_ms,
                "outcome": "ok" if response.status_code < 400 else "error",
            },
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.exception_handler(Exception)
    async def exception_handler(request: Request, exc: Exception):
        return _error_response(exc, str(getattr(request.state, "request_id", "")))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return await exception_handler(request, exc)

    app.include_router(ops.router)
    app.include_router(hooks.router)
    app.include_router(otel.router)
    app.include_router(outbox.router)
    app.include_router(inbox.router)
    return app


def _error_response(exc: Exception, request_id: str) -> PlainTextResponse:
    reply = error_from_exception(exc)
    if reply.status_code >= 500:
        logger.error(
            "request_failed",
            extra={"request_id": request_id, "status": reply.status_code, "error": reply.cause or reply.code},
        )
    headers = {REQUEST_ID_HEADER: request_id} if request_id else None
    return PlainTextResponse(reply.message, status_code=reply.status_code, headers=headers)


class CoordinatedServer(uvicorn.Server):
    """uvicorn server whose exit is driven by a ShutdownCoordinator."""

    def __init__(self, config: uvicorn.Config, coordinator: ShutdownCoordinator) -> None:
        super().__init__(config)
        self.coordinator = coordinator
        self._loop: asyncio.AbstractEventLoop | None = None

    def handle_exit(self, sig: int, frame) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self.coordinator.request, f"signal:{signal.Signals(sig).name}")
        super().handle_exit(sig, frame)

    async def serve(self, sockets=None) -> None:
        self._loop = asyncio.get_running_loop()
        watcher = asyncio.create_task(self._exit_on_shutdown())
        try:
            await super().serve(sockets=sockets)
        finally:
            watcher.cancel()
            await asyncio.gather(watcher, return_exceptions=True)

    async def _exit_on_shutdown(self) -> None:
        await self.coordinator.wait()
        self.should_exit = True


async def run_server(settings: Settings) -> None:
    # Fatal before bind: the log directory has to exist.
    settings.log_path.parent.mkdir(parents=True, exist_ok=True)
    coordinator = ShutdownCoordinator()
    app = create_app(settings, coordinator=coordinator)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level="warning",
        timeout_graceful_shutdown=settings.shutdown_grace_seconds,
    )
    server = CoordinatedServer(config, coordinator)
    await server.serve()
    logger.info("event_server_shutdown", extra={"outcome": coordinator.reason or "exit"})


if __name__ == "__main__":
    asyncio.run(run_server(load_settings()))
