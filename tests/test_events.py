import pytest
from pydantic import ValidationError

from axel_server.events import (
    HookEvent,
    HookEventType,
    OtelEventType,
    OutboxResponse,
    OutboxResponseType,
    TimestampedEvent,
    hook_event_kind,
)


def test_hook_event_type_parses_both_spellings() -> None:
    assert HookEventType.parse("SubagentStop") is HookEventType.SUBAGENT_STOP
    assert HookEventType.parse("subagent_stop") is HookEventType.SUBAGENT_STOP
    assert HookEventType.parse("pre_tool_use") is HookEventType.PRE_TOOL_USE
    assert HookEventType.parse("subagentstop") is None
    assert HookEventType.parse(7) is None


def test_hook_event_kind_falls_back_to_unknown() -> None:
    assert hook_event_kind({"type": "Stop"}) == "Stop"
    assert hook_event_kind({"hook_event_name": "SessionEnd"}) == "SessionEnd"
    assert hook_event_kind({"type": "Bogus"}) == "unknown_hook"
    assert hook_event_kind(["Stop"]) == "unknown_hook"
    assert hook_event_kind("raw text") == "unknown_hook"


def test_hook_event_exposes_session_id() -> None:
    event = HookEvent.from_payload({"type": "SessionStart", "session_id": "abc"})
    assert event is not None
    assert event.session_id == "abc"
    assert HookEvent.from_payload({"type": "Stop", "session_id": 3}).session_id is None


def test_envelope_requires_correlation_id() -> None:
    with pytest.raises(ValidationError):
        TimestampedEvent.now("Stop", "", {})


def test_envelope_is_immutable() -> None:
    event = TimestampedEvent.now("Stop", "pane-1", {})
    with pytest.raises(ValidationError):
        event.correlation_id = "pane-2"


def test_envelope_timestamp_is_utc() -> None:
    event = TimestampedEvent.now("Stop", "pane-1", {})
    assert event.timestamp.utcoffset() is not None
    assert event.timestamp.utcoffset().total_seconds() == 0


def test_otel_kinds_serialize_with_prefix() -> None:
    assert [kind.value for kind in OtelEventType] == ["otel_metrics", "otel_traces", "otel_logs"]
    assert OtelEventType.TRACES.signal == "traces"


def test_outbox_payload_omits_missing_pane() -> None:
    response = OutboxResponse(session_id="abc", response_type="permission_response", response_text="y")

    assert response.response_type is OutboxResponseType.PERMISSION_RESPONSE
    assert response.to_payload() == {
        "session_id": "abc",
        "response_type": "permission_response",
        "response_text": "y",
    }
