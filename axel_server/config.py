from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

SERVER_VERSION = "0.1.0"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4318
DEFAULT_LOG_PATH = ".axel/events.jsonl"
DEFAULT_RESPONSE_DIR = ".axel"
DEFAULT_WATCHDOG_INTERVAL_SECONDS = 5.0
DEFAULT_SHUTDOWN_GRACE_SECONDS = 5


@dataclass(slots=True)
class Settings:
    host: str
    port: int
    session: str | None
    log_path: Path
    response_dir: Path
    watchdog_interval_seconds: float
    shutdown_grace_seconds: int

    def with_overrides(self, **overrides) -> Settings:
        values = {key: value for key, value in overrides.items() if value is not None}
        if "session" in values:
            values["session"] = _normalize_session(values["session"])
        if "log_path" in values:
            values["log_path"] = Path(values["log_path"])
        if "response_dir" in values:
            values["response_dir"] = Path(values["response_dir"])
        return replace(self, **values)


def _normalize_session(value: str | None) -> str | None:
    normalized = (value or "").strip()
    return normalized or None


def _parse_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def get_port() -> int:
    port = _parse_int(os.getenv("AXEL_SERVER_PORT"), DEFAULT_PORT)
    if port > 65535:
        return DEFAULT_PORT
    return port


def load_settings() -> Settings:
    return Settings(
        host=os.getenv("AXEL_SERVER_HOST", DEFAULT_HOST).strip() or DEFAULT_HOST,
        port=get_port(),
        session=_normalize_session(os.getenv("AXEL_SESSION")),
        log_path=Path(os.getenv("AXEL_LOG_PATH", DEFAULT_LOG_PATH)),
        response_dir=Path(os.getenv("AXEL_RESPONSE_DIR", DEFAULT_RESPONSE_DIR)),
        watchdog_interval_seconds=_parse_float(
            os.getenv("AXEL_WATCHDOG_INTERVAL_SECONDS"), DEFAULT_WATCHDOG_INTERVAL_SECONDS
        ),
        shutdown_grace_seconds=_parse_int(os.getenv("AXEL_SHUTDOWN_GRACE_SECONDS"), DEFAULT_SHUTDOWN_GRACE_SECONDS),
    )
