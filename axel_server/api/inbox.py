from __future__ import annotations

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from axel_server.deps import get_event_bus
from axel_server.sse.event_bus import EventBus, stream_as_sse

router = APIRouter(tags=["inbox"])

KEEPALIVE_SECONDS = 15


async def inbox_stream(bus: EventBus):
    # Subscribe on first iteration so a stream that never starts holds no slot.
    subscription = bus.subscription()
    try:
        async for event in subscription:
            yield stream_as_sse(event)
    finally:
        subscription.close()


@router.get("/inbox")
async def inbox(bus: EventBus = Depends(get_event_bus)):
    return EventSourceResponse(inbox_stream(bus), ping=KEEPALIVE_SECONDS)
