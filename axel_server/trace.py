from __future__ import annotations

import uuid
from contextvars import ContextVar, Token

REQUEST_ID_HEADER = "X-Request-Id"

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:16]}"


def normalize_request_id(candidate: str | None) -> str:
    value = (candidate or "").strip()
    if value:
        return value
    return generate_request_id()


def set_current_request_id(request_id: str) -> Token[str | None]:
    return _request_id_var.set(request_id)


def reset_current_request_id(token: Token[str | None]) -> None:
    _request_id_var.reset(token)


def get_current_request_id() -> str | None:
    return _request_id_var.get()
