from __future__ import annotations

import asyncio
from typing import Callable

from axel_server.observability.logging import get_server_logger
from axel_server.services import tmux

logger = get_server_logger()

STATE_RUNNING = "running"
STATE_DRAINING = "draining"
STATE_STOPPED = "stopped"


class ShutdownCoordinator:
    """One stop signal fed by several producers (operator interrupt, session watchdog)."""

    def __init__(self) -> None:
        self._stop = asyncio.Event()
        self.state = STATE_RUNNING
        self.reason: str | None = None

    @property
    def requested(self) -> bool:
        return self._stop.is_set()

    def request(self, reason: str) -> bool:
        if self._stop.is_set():
            return False
        self.reason = reason
        self.state = STATE_DRAINING
        self._stop.set()
        logger.info("shutdown_requested", extra={"outcome": reason})
        return True

    async def wait(self) -> str:
        await self._stop.wait()
        return self.reason or ""

    def mark_stopped(self) -> None:
        self.state = STATE_STOPPED


class SessionWatchdog:
    def __init__(
        self,
        session: str,
        coordinator: ShutdownCoordinator,
        *,
        interval_seconds: float = 5.0,
        check: Callable[[str], bool | None] | None = None,
    ) -> None:
        self.session = session
        self.coordinator = coordinator
        self.interval_seconds = interval_seconds
        self._check = check
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._watch_loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def _watch_loop(self) -> None:
        check = self._check or tmux.session_exists
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                alive = await asyncio.to_thread(check, self.session)
            except Exception as exc:
                logger.warning("session_check_failed", extra={"session_id": self.session, "error": str(exc)})
                continue

            if alive is None:
                logger.warning("session_check_inconclusive", extra={"session_id": self.session})
                continue
            if not alive:
                logger.info("session_gone", extra={"session_id": self.session, "outcome": "shutdown"})
                self.coordinator.request(f"session_gone:{self.session}")
                return
