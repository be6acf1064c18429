"""
Shared fixtures: in-memory transports for unit tests, isolated apps for API tests.
"""
import asyncio
import time
from typing import Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient

from camrelay.api.main import create_app
from camrelay.core.config import Settings
from camrelay.services.connection import ClientConnection
from camrelay.services.registry import ClientRegistry


class FakeTransport:
    """Records what the relay sends; can be told to fail or stall on send."""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.sent: list[str] = []
        self.closes: list[tuple[int, Optional[str]]] = []

    async def send_text(self, data: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("connection reset by peer")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        self.closes.append((code, reason))


@pytest.fixture
def registry() -> ClientRegistry:
    return ClientRegistry()


@pytest.fixture
def make_conn() -> Callable[..., ClientConnection]:
    counter = iter(range(1, 10_000))

    def factory(fail: bool = False, delay: float = 0.0) -> ClientConnection:
        return ClientConnection(FakeTransport(fail=fail, delay=delay), label=f"peer-{next(counter)}")

    return factory


@pytest.fixture
def app_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        CONFIG_FILE=str(tmp_path / "config.json"),
        UPLOAD_DIR=str(tmp_path / "uploads"),
        SEND_TIMEOUT_SEC=1.0,
    )


@pytest.fixture
def client(app_settings) -> Generator[TestClient, None, None]:
    with TestClient(create_app(app_settings)) as test_client:
        yield test_client


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll until predicate() is true; identification is not acknowledged on the wire."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
