"""Event types for the axel event server.

Covers assistant hook events, OTEL telemetry signals and outbox responses
sent back by a controller, plus the envelope every one of them is wrapped
in before it is persisted and broadcast.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_HOOK = "unknown_hook"
OTEL_SENTINEL = "otel"

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class TimestampedEvent(BaseModel):
    """Envelope written to the JSONL log and pushed to inbox subscribers."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    event_kind: str
    correlation_id: str
    payload: Any = None

    @field_validator("correlation_id")
    @classmethod
    def _require_correlation_id(cls, value: str) -> str:
        if not value:
            raise ValueError("correlation_id must not be empty")
        return value

    @classmethod
    def now(cls, event_kind: str, correlation_id: str, payload: Any) -> TimestampedEvent:
        return cls(
            timestamp=datetime.now(tz=timezone.utc),
            event_kind=event_kind,
            correlation_id=correlation_id,
            payload=payload,
        )

    def to_json_line(self) -> str:
        return self.model_dump_json()


class HookEventType(str, Enum):
    PRE_TOOL_USE = "PreToolUse"
    POST_TOOL_USE = "PostToolUse"
    SESSION_START = "SessionStart"
    SESSION_END = "SessionEnd"
    STOP = "Stop"
    SUBAGENT_STOP = "SubagentStop"
    PERMISSION_REQUEST = "PermissionRequest"

    @property
    def snake_name(self) -> str:
        return _CAMEL_BOUNDARY.sub("_", self.value).lower()

    @classmethod
    def parse(cls, value: Any) -> HookEventType | None:
        """Accept both ``SessionStart`` and ``session_start`` spellings."""
        if not isinstance(value, str):
            return None
        for member in cls:
            if value == member.value or value == member.snake_name:
                return member
        return None


class HookEvent(BaseModel):
    event_type: HookEventType
    data: dict[str, Any]

    @classmethod
    def from_payload(cls, payload: Any) -> HookEvent | None:
        if not isinstance(payload, dict):
            return None
        # Claude Code reports the hook name as hook_event_name; our own senders use type.
        for key in ("type", "hook_event_name"):
            event_type = HookEventType.parse(payload.get(key))
            if event_type is not None:
                return cls(event_type=event_type, data=payload)
        return None

    @property
    def session_id(self) -> str | None:
        return session_id_of(self.data)


def session_id_of(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    value = payload.get("session_id")
    if isinstance(value, str) and value:
        return value
    return None


def hook_event_kind(payload: Any) -> str:
    event = HookEvent.from_payload(payload)
    if event is None:
        return UNKNOWN_HOOK
    return event.event_type.value


class OtelEventType(str, Enum):
    METRICS = "otel_metrics"
    TRACES = "otel_traces"
    LOGS = "otel_logs"

    @property
    def signal(self) -> str:
        return self.value.removeprefix("otel_")


class OutboxResponseType(str, Enum):
    PERMISSION_RESPONSE = "permission_response"
    QUESTION_RESPONSE = "question_response"


class OutboxResponse(BaseModel):
    """A controller decision to be typed into a live pane."""

    session_id: str = Field(min_length=1)
    response_type: OutboxResponseType
    response_text: str
    pane_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
