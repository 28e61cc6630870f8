import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from axel_server.config import Settings  # noqa: E402
from axel_server.main import create_app  # noqa: E402
from axel_server.observability.metrics import get_server_metrics  # noqa: E402


@pytest.fixture(autouse=True)
def reset_metrics():
    get_server_metrics().reset()
    yield
    get_server_metrics().reset()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        host="127.0.0.1",
        port=4318,
        session=None,
        log_path=tmp_path / "logs" / "events.jsonl",
        response_dir=tmp_path / "responses",
        watchdog_interval_seconds=5.0,
        shutdown_grace_seconds=1,
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client
