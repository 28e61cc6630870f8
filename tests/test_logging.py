import json
import logging

from axel_server.observability.logging import JsonFormatter
from axel_server.trace import reset_current_request_id, set_current_request_id


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("axel.server", logging.INFO, __file__, 1, "event_logged", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_extra_keys() -> None:
    line = JsonFormatter().format(_record(pane_id="pane-1", event_kind="Stop"))
    payload = json.loads(line)

    assert payload["level"] == "info"
    assert payload["message"] == "event_logged"
    assert payload["pane_id"] == "pane-1"
    assert payload["event_kind"] == "Stop"
    assert "request_id" not in payload


def test_formatter_falls_back_to_current_request_id() -> None:
    token = set_current_request_id("req_current")
    try:
        implicit = json.loads(JsonFormatter().format(_record()))
        explicit = json.loads(JsonFormatter().format(_record(request_id="req_explicit")))
    finally:
        reset_current_request_id(token)

    assert implicit["request_id"] == "req_current"
    assert explicit["request_id"] == "req_explicit"
