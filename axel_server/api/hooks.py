from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from axel_server.deps import get_ingest_service

router = APIRouter(tags=["hooks"])


async def _read_hook_payload(request: Request) -> Any:
    """Hook bodies are never rejected: anything that is not JSON is kept as text."""
    body = await request.body()
    try:
        return json.loads(body)
    except ValueError:
        return body.decode("utf-8", errors="replace")


@router.post("/events/{pane_id}", response_class=PlainTextResponse)
async def hook_event(pane_id: str, request: Request, ingest_service=Depends(get_ingest_service)):
    payload = await _read_hook_payload(request)
    await ingest_service.ingest_hook(pane_id, payload)
    return "OK"
