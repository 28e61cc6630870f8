from __future__ import annotations

import asyncio
from dataclasses import dataclass

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from axel_server.services.event_logger import EventLoggerClosedError
from axel_server.services.tmux import TmuxError

DEFAULT_INTERNAL_MESSAGE = "Internal server error"


@dataclass(slots=True)
class AxelApiError(Exception):
    code: str
    message: str
    status_code: int
    cause: str | None = None


@dataclass(slots=True)
class ErrorReply:
    status_code: int
    code: str
    message: str
    cause: str | None = None


def invalid_payload(message: str, cause: str | None = None) -> AxelApiError:
    return AxelApiError(code="E_SCHEMA_INVALID", message=message, status_code=400, cause=cause)


def error_from_exception(exc: Exception) -> ErrorReply:
    if isinstance(exc, AxelApiError):
        return ErrorReply(exc.status_code, exc.code, exc.message, exc.cause)

    if isinstance(exc, (RequestValidationError, ValidationError)):
        return ErrorReply(400, "E_SCHEMA_INVALID", "Invalid payload", "request_validation_error")

    if isinstance(exc, HTTPException):
        code = "E_INTERNAL" if exc.status_code >= 500 else "E_REQUEST"
        return ErrorReply(exc.status_code, code, str(exc.detail), "http_exception")

    if isinstance(exc, EventLoggerClosedError):
        return ErrorReply(500, "E_PERSISTENCE", "Failed to log event", "event_logger_closed")

    if isinstance(exc, TmuxError):
        return ErrorReply(500, "E_DELIVERY", "Failed to send response to tmux", "tmux")

    if isinstance(exc, asyncio.TimeoutError):
        return ErrorReply(504, "E_TIMEOUT", "Operation timed out", "timeout")

    return ErrorReply(500, "E_INTERNAL", DEFAULT_INTERNAL_MESSAGE, exc.__class__.__name__)
