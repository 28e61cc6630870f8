from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from axel_server.deps import get_ingest_service
from axel_server.errors import invalid_payload
from axel_server.events import OtelEventType
from axel_server.services.ingest_service import IngestService

router = APIRouter(prefix="/v1", tags=["otel"])


async def _decode_json(request: Request) -> Any:
    try:
        return json.loads(await request.body())
    except ValueError as exc:
        raise invalid_payload("Invalid JSON request body", cause="json_decode") from exc


async def _ingest(
    signal: OtelEventType,
    request: Request,
    ingest_service: IngestService,
    pane_id: str | None = None,
) -> str:
    payload = await _decode_json(request)
    await ingest_service.ingest_otel(signal, payload, pane_id=pane_id)
    return "OK"


@router.post("/metrics", response_class=PlainTextResponse)
async def otel_metrics(request: Request, ingest_service=Depends(get_ingest_service)):
    return await _ingest(OtelEventType.METRICS, request, ingest_service)


@router.post("/traces", response_class=PlainTextResponse)
async def otel_traces(request: Request, ingest_service=Depends(get_ingest_service)):
    return await _ingest(OtelEventType.TRACES, request, ingest_service)


@router.post("/logs", response_class=PlainTextResponse)
async def otel_logs(request: Request, ingest_service=Depends(get_ingest_service)):
    return await _ingest(OtelEventType.LOGS, request, ingest_service)


@router.post("/metrics/{pane_id}", response_class=PlainTextResponse)
async def otel_pane_metrics(pane_id: str, request: Request, ingest_service=Depends(get_ingest_service)):
    return await _ingest(OtelEventType.METRICS, request, ingest_service, pane_id)


@router.post("/traces/{pane_id}", response_class=PlainTextResponse)
async def otel_pane_traces(pane_id: str, request: Request, ingest_service=Depends(get_ingest_service)):
    return await _ingest(OtelEventType.TRACES, request, ingest_service, pane_id)


@router.post("/logs/{pane_id}", response_class=PlainTextResponse)
async def otel_pane_logs(pane_id: str, request: Request, ingest_service=Depends(get_ingest_service)):
    return await _ingest(OtelEventType.LOGS, request, ingest_service, pane_id)
