from __future__ import annotations

from fastapi import APIRouter, Depends

from axel_server.config import SERVER_VERSION, Settings
from axel_server.deps import get_settings
from axel_server.observability.metrics import get_server_metrics

router = APIRouter(tags=["ops"])


@router.get("/health")
async def health(settings: Settings = Depends(get_settings)):
    return {"ok": True, "version": SERVER_VERSION, "session": settings.session}


@router.get("/metrics")
async def metrics():
    return get_server_metrics().snapshot()
