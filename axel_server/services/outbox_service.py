"""
outbox_service.py: delivers controller responses to the assistant

With a monitored tmux session the text is typed into the pane, followed by
a separate Enter. Without one it is written to
``<response_dir>/response_<session_id>.txt`` for the assistant wrapper to pick up.
"""
from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from pathlib import Path

from axel_server.errors import AxelApiError
from axel_server.events import OutboxResponse
from axel_server.observability.logging import get_server_logger
from axel_server.observability.metrics import ServerMetrics, get_server_metrics
from axel_server.services import tmux
from axel_server.services.tmux import TmuxError

logger = get_server_logger()

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass(slots=True)
class Delivery:
    mode: str
    target: str


def _write_response_file(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _send_to_pane(target: str, text: str) -> None:
    tmux.inject_text(target, text)
    tmux.inject_enter(target)


class OutboxService:
    def __init__(self, *, session: str | None, response_dir: Path, metrics: ServerMetrics | None = None) -> None:
        self.session = session
        self.response_dir = Path(response_dir)
        self.metrics = metrics or get_server_metrics()

    def response_path(self, session_id: str) -> Path:
        safe = _UNSAFE_FILENAME_CHARS.sub("_", session_id).lstrip(".") or "_"
        return self.response_dir / f"response_{safe}.txt"

    async def deliver(self, response: OutboxResponse) -> Delivery:
        if self.session:
            target = response.pane_id or tmux.default_output_target(self.session)
            try:
                await asyncio.to_thread(_send_to_pane, target, response.response_text)
            except TmuxError as exc:
                self._failed(response, target, exc)
                raise AxelApiError(
                    code="E_DELIVERY",
                    message="Failed to send response to tmux",
                    status_code=500,
                    cause="tmux",
                ) from exc
            delivery = Delivery(mode="tmux", target=target)
        else:
            path = self.response_path(response.session_id)
            try:
                await asyncio.to_thread(_write_response_file, path, response.response_text)
            except OSError as exc:
                self._failed(response, str(path), exc)
                raise AxelApiError(
                    code="E_DELIVERY",
                    message="Failed to write response file",
                    status_code=500,
                    cause="response_file",
                ) from exc
            delivery = Delivery(mode="file", target=str(path))

        self.metrics.outbox_delivered_total += 1
        logger.info(
            "outbox_delivered",
            extra={"session_id": response.session_id, "target": delivery.target, "outcome": delivery.mode},
        )
        return delivery

    def _failed(self, response: OutboxResponse, target: str, exc: Exception) -> None:
        self.metrics.outbox_failed_total += 1
        logger.error(
            "outbox_delivery_failed",
            extra={"session_id": response.session_id, "target": target, "error": str(exc)},
        )
