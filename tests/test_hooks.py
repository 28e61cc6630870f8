import json

from axel_server.cli import main
from axel_server.hooks import (
    generate_hooks_settings,
    otel_env_vars,
    otel_metrics_endpoint,
    settings_path,
    write_settings,
)

HOOK_NAMES = [
    "PreToolUse",
    "PostToolUse",
    "SessionStart",
    "SessionEnd",
    "Stop",
    "SubagentStop",
    "PermissionRequest",
]


def test_generate_hooks_settings_posts_every_hook_to_pane() -> None:
    settings = generate_hooks_settings(4318, "pane-1")

    assert sorted(settings["hooks"]) == sorted(HOOK_NAMES)
    matcher = settings["hooks"]["PreToolUse"][0]
    assert matcher["matcher"] == "*"
    hook = matcher["hooks"][0]
    assert hook["type"] == "command"
    assert hook["timeout"] == 5
    assert hook["command"].endswith("-d @- http://localhost:4318/events/pane-1")


def test_write_settings_creates_file(tmp_path) -> None:
    path = settings_path(tmp_path)
    write_settings(generate_hooks_settings(4318, "pane-1"), path)

    assert path == tmp_path / ".claude" / "settings.json"
    assert "hooks" in json.loads(path.read_text(encoding="utf-8"))


def test_write_settings_keeps_existing_keys(tmp_path) -> None:
    path = settings_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"model": "opus", "hooks": {"Stop": []}}), encoding="utf-8")

    write_settings(generate_hooks_settings(9000, "pane-2"), path)

    merged = json.loads(path.read_text(encoding="utf-8"))
    assert merged["model"] == "opus"
    assert sorted(merged["hooks"]) == sorted(HOOK_NAMES)


def test_otel_env_vars_point_at_pane_endpoints() -> None:
    env = otel_env_vars(4318, "pane-1")

    assert env["CLAUDE_CODE_ENABLE_TELEMETRY"] == "1"
    assert env["OTEL_EXPORTER_OTLP_PROTOCOL"] == "http/json"
    assert env["OTEL_EXPORTER_OTLP_METRICS_ENDPOINT"] == otel_metrics_endpoint(4318, "pane-1")
    assert env["OTEL_EXPORTER_OTLP_LOGS_ENDPOINT"] == "http://localhost:4318/v1/logs/pane-1"
    assert env["OTEL_EXPORTER_OTLP_TRACES_ENDPOINT"] == "http://localhost:4318/v1/traces/pane-1"


def test_cli_otel_env_prints_exports(capsys) -> None:
    assert main(["otel-env", "--port", "5000", "--pane-id", "pane-7"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert "export OTEL_EXPORTER_OTLP_METRICS_ENDPOINT=http://localhost:5000/v1/metrics/pane-7" in lines


def test_cli_hooks_writes_workspace_settings(tmp_path, capsys) -> None:
    assert main(["hooks", "--port", "5000", "--pane-id", "pane-7", "--workspace", str(tmp_path)]) == 0

    path = tmp_path / ".claude" / "settings.json"
    assert capsys.readouterr().out.strip() == str(path)
    command = json.loads(path.read_text(encoding="utf-8"))["hooks"]["Stop"][0]["hooks"][0]["command"]
    assert command.endswith("http://localhost:5000/events/pane-7")
