from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from axel_server.deps import get_ingest_service, get_outbox_service
from axel_server.events import OutboxResponse

router = APIRouter(tags=["outbox"])


@router.post("/outbox", response_class=PlainTextResponse)
async def outbox(
    payload: OutboxResponse,
    ingest_service=Depends(get_ingest_service),
    outbox_service=Depends(get_outbox_service),
):
    # Recorded before delivery; a failed delivery does not undo the log entry.
    ingest_service.record_outbox(payload)
    await outbox_service.deliver(payload)
    return "OK"
