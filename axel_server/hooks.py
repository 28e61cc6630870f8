"""Claude Code hook settings and OTEL exporter wiring.

Generates the ``.claude/settings.json`` hooks section that POSTs every hook
event to ``/events/{pane_id}``, and the environment that points an
assistant's OTEL exporter at ``/v1/{signal}/{pane_id}``.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from axel_server.events import HookEventType

HOOK_TIMEOUT_SECONDS = 5


def hook_endpoint(port: int, pane_id: str) -> str:
    return f"http://localhost:{port}/events/{pane_id}"


def otel_metrics_endpoint(port: int, pane_id: str) -> str:
    return f"http://localhost:{port}/v1/metrics/{pane_id}"


def otel_traces_endpoint(port: int, pane_id: str) -> str:
    return f"http://localhost:{port}/v1/traces/{pane_id}"


def otel_logs_endpoint(port: int, pane_id: str) -> str:
    return f"http://localhost:{port}/v1/logs/{pane_id}"


def generate_hooks_settings(port: int, pane_id: str) -> dict[str, Any]:
    curl_command = f"curl -s -X POST -H 'Content-Type: application/json' -d @- {hook_endpoint(port, pane_id)}"
    hooks = {
        hook_type.value: [
            {
                "matcher": "*",
                "hooks": [{"type": "command", "command": curl_command, "timeout": HOOK_TIMEOUT_SECONDS}],
            }
        ]
        for hook_type in HookEventType
    }
    return {"hooks": hooks}


def settings_path(workspace_dir: Path) -> Path:
    return Path(workspace_dir) / ".claude" / "settings.json"


def write_settings(settings: dict[str, Any], path: Path) -> Path:
    """Write hook settings, keeping every other key of an existing settings file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.exists():
        existing = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(existing, dict):
            raise ValueError(f"{path} does not contain a JSON object")
        if "hooks" in settings:
            existing["hooks"] = settings["hooks"]
        final_settings = existing
    else:
        final_settings = settings

    path.write_text(json.dumps(final_settings, indent=2) + "\n", encoding="utf-8")
    return path


def otel_env_vars(port: int, pane_id: str) -> dict[str, str]:
    return {
        "CLAUDE_CODE_ENABLE_TELEMETRY": "1",
        "OTEL_METRICS_EXPORTER": "otlp",
        "OTEL_LOGS_EXPORTER": "otlp",
        "OTEL_EXPORTER_OTLP_PROTOCOL": "http/json",
        "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT": otel_metrics_endpoint(port, pane_id),
        "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT": otel_traces_endpoint(port, pane_id),
        "OTEL_EXPORTER_OTLP_LOGS_ENDPOINT": otel_logs_endpoint(port, pane_id),
    }
