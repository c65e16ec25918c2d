"""Shared fixtures: isolated settings, a fake clock and mock-transport HTTP clients."""
from __future__ import annotations

from typing import Any, Callable, Iterator

import httpx
import pytest

from shared.config import get_settings
from shared.utils.http_client import ResilientFetchClient

TEST_API_KEY = "RGAPI-test-key"
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture(autouse=True)
def settings_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Every test sees the same minimal valid environment and a fresh settings cache."""
    for name in ("RIOT_API_KEY", "DATABASE_URL", "RANKED_SEASON_START", "LW_RANKED_SEASON_START"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LW_RIOT_API_KEY", TEST_API_KEY)
    monkeypatch.setenv("LW_DATABASE_URL", TEST_DATABASE_URL)
    monkeypatch.setenv("LW_DATABASE_PASSWORD", "test-password")
    monkeypatch.setenv("LW_METRICS_ENABLED", "false")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class RecordingSleep:
    """Stands in for asyncio.sleep and records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


@pytest.fixture
def sleeps() -> RecordingSleep:
    return RecordingSleep()


class Recorder:
    """Collects the requests a MockTransport handler receives."""

    def __init__(self, handler: Handler) -> None:
        self._handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    @property
    def count(self) -> int:
        return len(self.requests)


@pytest.fixture
def make_client(sleeps: RecordingSleep) -> Callable[..., Any]:
    """
    Factory for started ResilientFetchClients over a MockTransport.

    Returns (client, recorder). The transport is in-memory, so nothing needs closing.
    """
    async def factory(handler: Handler, **kwargs: Any) -> tuple[ResilientFetchClient, Recorder]:
        recorder = Recorder(handler)
        kwargs.setdefault("retry_delay_s", 1.0)
        kwargs.setdefault("max_retries", 3)
        client = ResilientFetchClient(
            kwargs.pop("auth_token", TEST_API_KEY),
            sleep=sleeps,
            transport=httpx.MockTransport(recorder),
            **kwargs,
        )
        await client.start()
        return client, recorder

    return factory
