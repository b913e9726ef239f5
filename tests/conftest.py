"""Shared test fixtures for request-cache.

Provides an isolated config environment, an output reset between tests, a
fake HTTP server backed by :class:`httpx.MockTransport`, a controllable
clock, and ready-made stores. These fixtures are discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable

import httpx
import pytest

from request_cache.cache import CacheStore
from request_cache.output import reset_output
from request_cache.transport import AsyncTransport, Transport


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeServer:
    """A request handler for :class:`httpx.MockTransport` that counts calls.

    Every response body carries the call number so tests can tell a fresh
    fetch from a replayed one.
    """

    def __init__(self, body: str = "hello", status_code: int = 200) -> None:
        self.body = body
        self.status_code = status_code
        self.requests: list[httpx.Request] = []
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
            n = len(self.requests)
        return httpx.Response(self.status_code, text=f"{self.body} #{n}")


class FakeClock:
    """A settable stand-in for :func:`time.time`."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_transport(handler: Callable[[httpx.Request], httpx.Response]) -> Transport:
    """Build a :class:`Transport` whose requests are answered by *handler*."""
    return Transport(client=httpx.Client(transport=httpx.MockTransport(handler)))


def make_async_transport(
    handler: Callable[[httpx.Request], httpx.Response],
) -> AsyncTransport:
    """Build an :class:`AsyncTransport` whose requests are answered by *handler*."""
    return AsyncTransport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time, which go stale once a CliRunner invocation ends.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME at
    subdirectories of tmp_path, clears REQUEST_CACHE_* variables and changes
    the working directory to tmp_path.
    """
    monkeypatch.setattr("request_cache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["REQUEST_CACHE_DB", "REQUEST_CACHE_TTL"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "cache" / "requests.db"


@pytest.fixture
def store(db_path: Path) -> CacheStore:
    """A file-backed store in tmp_path, closed after the test."""
    s = CacheStore.open(db_path)
    yield s
    s.close()


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport(server: FakeServer) -> Transport:
    """A :class:`Transport` answered by ``server``; its injected client is closed after the test."""
    client = httpx.Client(transport=httpx.MockTransport(server))
    yield Transport(client=client)
    client.close()
