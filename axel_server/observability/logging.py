from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from axel_server.trace import get_current_request_id

_EXTRA_KEYS = (
    "request_id",
    "pane_id",
    "session_id",
    "event_kind",
    "target",
    "path",
    "method",
    "status",
    "duration_ms",
    "outcome",
    "error",
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": record.levelname.lower(),
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "message": record.getMessage(),
        }

        for key in _EXTRA_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        if "request_id" not in payload:
            request_id = get_current_request_id()
            if request_id:
                payload["request_id"] = request_id

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def get_server_logger() -> logging.Logger:
    logger = logging.getLogger("axel.server")
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger
