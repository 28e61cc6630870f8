from __future__ import annotations

import argparse
import asyncio
import shlex
import sys
from pathlib import Path
from typing import Optional

from axel_server.config import load_settings
from axel_server.hooks import generate_hooks_settings, otel_env_vars, settings_path, write_settings
from axel_server.main import run_server
from axel_server.observability.logging import get_server_logger

logger = get_server_logger()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="axel-server", description="axel event server")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the event server")
    serve.add_argument("--host", default=None, help="Bind host (default: 127.0.0.1)")
    serve.add_argument("-p", "--port", type=int, default=None, help="Bind port (default: 4318)")
    serve.add_argument("-s", "--session", default=None, help="tmux session to monitor for auto-shutdown")
    serve.add_argument("-l", "--log", default=None, help="JSONL event log path (default: .axel/events.jsonl)")
    serve.add_argument("--response-dir", default=None, help="Directory for response files when not in tmux")

    hooks = sub.add_parser("hooks", help="Write Claude hook settings for a pane")
    hooks.add_argument("-p", "--port", type=int, default=None)
    hooks.add_argument("--pane-id", required=True)
    hooks.add_argument("--workspace", default=".", help="Workspace directory (default: .)")

    otel = sub.add_parser("otel-env", help="Print OTEL exporter environment for a pane")
    otel.add_argument("-p", "--port", type=int, default=None)
    otel.add_argument("--pane-id", required=True)
    return parser


def _serve(args: argparse.Namespace) -> int:
    settings = load_settings().with_overrides(
        host=args.host,
        port=args.port,
        session=args.session,
        log_path=args.log,
        response_dir=args.response_dir,
    )
    try:
        asyncio.run(run_server(settings))
    except OSError as exc:
        logger.error("event_server_failed", extra={"error": str(exc)})
        return 1
    except KeyboardInterrupt:
        pass
    return 0


def _hooks(args: argparse.Namespace) -> int:
    port = args.port or load_settings().port
    path = write_settings(generate_hooks_settings(port, args.pane_id), settings_path(Path(args.workspace)))
    print(str(path))
    return 0


def _otel_env(args: argparse.Namespace) -> int:
    port = args.port or load_settings().port
    for key, value in otel_env_vars(port, args.pane_id).items():
        print(f"export {key}={shlex.quote(value)}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.command == "serve":
        return _serve(args)
    if args.command == "hooks":
        return _hooks(args)
    if args.command == "otel-env":
        return _otel_env(args)
    print(f"error: unknown command {args.command}", file=sys.stderr)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
