import asyncio
import time
from dataclasses import replace

import pytest
import uvicorn
from fastapi.testclient import TestClient

from axel_server.main import CoordinatedServer, create_app
from axel_server.services import tmux
from axel_server.services.watchdog import (
    STATE_DRAINING,
    STATE_RUNNING,
    STATE_STOPPED,
    SessionWatchdog,
    ShutdownCoordinator,
)


def test_first_shutdown_request_wins() -> None:
    async def run() -> ShutdownCoordinator:
        coordinator = ShutdownCoordinator()
        assert coordinator.state == STATE_RUNNING
        assert coordinator.request("signal:SIGINT") is True
        assert coordinator.request("session_gone:work") is False
        assert await coordinator.wait() == "signal:SIGINT"
        return coordinator

    coordinator = asyncio.run(run())
    assert coordinator.state == STATE_DRAINING


def test_missing_session_requests_shutdown() -> None:
    async def run() -> tuple[str, bool]:
        coordinator = ShutdownCoordinator()
        watchdog = SessionWatchdog("work", coordinator, interval_seconds=0.01, check=lambda session: False)
        await watchdog.start()
        reason = await asyncio.wait_for(coordinator.wait(), timeout=1)
        await asyncio.sleep(0)
        running = watchdog.running
        await watchdog.stop()
        return reason, running

    reason, running = asyncio.run(run())
    assert reason == "session_gone:work"
    assert running is False


def test_inconclusive_and_failing_checks_keep_watching() -> None:
    answers = [None, RuntimeError("tmux exploded"), True, False]
    seen: list[str] = []

    def check(session: str):
        seen.append(session)
        answer = answers[len(seen) - 1]
        if isinstance(answer, Exception):
            raise answer
        return answer

    async def run() -> str:
        coordinator = ShutdownCoordinator()
        watchdog = SessionWatchdog("work", coordinator, interval_seconds=0.01, check=check)
        await watchdog.start()
        reason = await asyncio.wait_for(coordinator.wait(), timeout=2)
        await watchdog.stop()
        return reason

    assert asyncio.run(run()) == "session_gone:work"
    assert seen == ["work"] * 4


def test_live_session_never_requests_shutdown() -> None:
    async def run() -> bool:
        coordinator = ShutdownCoordinator()
        watchdog = SessionWatchdog("work", coordinator, interval_seconds=0.01, check=lambda session: True)
        await watchdog.start()
        await asyncio.sleep(0.1)
        await watchdog.stop()
        return coordinator.requested

    assert asyncio.run(run()) is False


def test_session_exists_maps_tmux_exit_codes(monkeypatch: pytest.MonkeyPatch) -> None:
    for code, expected in ((0, True), (1, False), (124, None), (127, None)):
        monkeypatch.setattr(tmux, "_run_tmux", lambda args, code=code, **kwargs: (code, "", ""))
        assert tmux.session_exists("work") is expected


def test_app_watchdog_triggers_shutdown(settings, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(tmux, "session_exists", lambda session: False)
    settings = replace(settings, session="work", watchdog_interval_seconds=0.01)
    coordinator = ShutdownCoordinator()

    with TestClient(create_app(settings, coordinator=coordinator)) as client:
        deadline = time.monotonic() + 2
        while not coordinator.requested and time.monotonic() < deadline:
            time.sleep(0.01)
        assert coordinator.reason == "session_gone:work"
        assert client.get("/health").status_code == 200

    assert coordinator.state == STATE_STOPPED


def test_app_without_session_does_not_watch(settings, monkeypatch: pytest.MonkeyPatch) -> None:
    def fail(session: str):
        raise AssertionError("watchdog must not run without a session")

    monkeypatch.setattr(tmux, "session_exists", fail)
    settings = replace(settings, watchdog_interval_seconds=0.01)
    coordinator = ShutdownCoordinator()

    with TestClient(create_app(settings, coordinator=coordinator)):
        time.sleep(0.05)

    assert coordinator.requested is False


def test_server_stops_when_coordinator_fires(settings) -> None:
    async def run() -> ShutdownCoordinator:
        coordinator = ShutdownCoordinator()
        app = create_app(settings, coordinator=coordinator)
        config = uvicorn.Config(app, host="127.0.0.1", port=0, log_level="warning", timeout_graceful_shutdown=1)
        server = CoordinatedServer(config, coordinator)
        task = asyncio.create_task(server.serve())
        deadline = time.monotonic() + 5
        while not server.started and time.monotonic() < deadline:
            await asyncio.sleep(0.01)
        assert server.started
        coordinator.request("session_gone:test")
        await asyncio.wait_for(task, timeout=5)
        return coordinator

    coordinator = asyncio.run(run())
    assert coordinator.state == STATE_STOPPED
    assert settings.log_path.exists()
