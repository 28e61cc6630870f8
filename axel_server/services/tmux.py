from __future__ import annotations

import subprocess
from typing import List, Tuple

TMUX_TIMEOUT_SECONDS = 3.0

# Exit codes reported when tmux could not be run at all.
_EXIT_TIMEOUT = 124
_EXIT_SPAWN_FAILED = 127


class TmuxError(RuntimeError):
    pass


def _run_tmux(args: List[str], *, timeout_s: float = TMUX_TIMEOUT_SECONDS) -> Tuple[int, str, str]:
    try:
        proc = subprocess.run(
            ["tmux", *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout_s,
            check=False,
        )
        return int(proc.returncode), (proc.stdout or ""), (proc.stderr or "")
    except subprocess.TimeoutExpired:
        return _EXIT_TIMEOUT, "", "tmux timeout"
    except OSError as exc:
        return _EXIT_SPAWN_FAILED, "", str(exc)


def session_exists(name: str) -> bool | None:
    """Whether the tmux session is alive. None means the check itself failed."""
    code, _, _ = _run_tmux(["has-session", "-t", name])
    if code == 0:
        return True
    if code in (_EXIT_TIMEOUT, _EXIT_SPAWN_FAILED):
        return None
    return False


def inject_text(target: str, text: str) -> None:
    # -l keeps tmux from reading key names like "Enter" or "C-c" out of the text;
    # "--" keeps text such as "-1" from being parsed as a flag.
    code, _, err = _run_tmux(["send-keys", "-t", target, "-l", "--", text])
    if code != 0:
        raise TmuxError(f"tmux send-keys -l to {target} failed: {err.strip() or code}")


def inject_enter(target: str) -> None:
    code, _, err = _run_tmux(["send-keys", "-t", target, "Enter"])
    if code != 0:
        raise TmuxError(f"tmux send-keys Enter to {target} failed: {err.strip() or code}")


def default_output_target(session: str) -> str:
    """Pane 0 of the first window runs the server; the assistant sits in pane 1."""
    return f"{session}:0.1"
