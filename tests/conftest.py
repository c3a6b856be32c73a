"""
Shared pytest fixtures.
"""
import asyncio
from typing import Any, Callable
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from bittrex_api.config import Settings
from bittrex_api.fetchers.base import RequestDispatcher
from bittrex_api.streaming.session import StreamSession
from bittrex_api.streaming.subscriptions import SubscriptionRegistry


def make_settings(**overrides: Any) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    values = {"api_key": "KEY", "api_secret": "SECRET"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeTransport:
    """In-memory stand-in for SignalRTransport."""

    def __init__(self, settings: Settings, headers: dict, handlers: Any):
        self.settings = settings
        self.headers = headers
        self.handlers = handlers
        self.calls: list[tuple] = []
        self.call_result: Any = True
        self.call_error: Exception | None = None
        self.starts = 0
        self.restarts = 0
        self.stopped = False

    async def start(self) -> None:
        self.starts += 1

    async def restart(self) -> None:
        self.restarts += 1

    async def stop(self) -> None:
        self.stopped = True

    async def call(self, hub: str, method: str, *args: Any) -> Any:
        self.calls.append((hub, method, args))
        if self.call_error is not None:
            raise self.call_error
        return self.call_result

    async def bind_and_connect(self) -> None:
        await self.handlers.on_bound()
        await self.handlers.on_connected()

    def methods(self) -> list[tuple]:
        return [(method, args) for _, method, args in self.calls]


class FakeTransportFactory:
    """Records every transport a session builds."""

    def __init__(self):
        self.created: list[FakeTransport] = []

    def __call__(self, settings: Settings, headers: dict, handlers: Any) -> FakeTransport:
        transport = FakeTransport(settings, headers, handlers)
        self.created.append(transport)
        return transport

    @property
    def latest(self) -> FakeTransport:
        return self.created[-1]


async def settle(session: StreamSession) -> None:
    """Wait for subscribe calls spawned by the session to finish."""
    for _ in range(3):
        pending = list(session._background)
        if not pending:
            return
        await asyncio.gather(*pending, return_exceptions=True)


def mock_http_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def transport_factory() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def registry() -> SubscriptionRegistry:
    return SubscriptionRegistry()


@pytest_asyncio.fixture
async def session(settings, registry, transport_factory):
    """Stream session with a fake transport and a stubbed bootstrap."""
    session = StreamSession(settings, registry, transport_factory=transport_factory)
    session.bootstrap = AsyncMock(return_value={"cookie": "cf=1", "User-Agent": "test-agent"})
    yield session
    await session.close()


@pytest_asyncio.fixture
async def make_dispatcher():
    """Factory for dispatchers backed by httpx.MockTransport."""
    created: list[RequestDispatcher] = []

    def _make(handler, **overrides) -> RequestDispatcher:
        dispatcher = RequestDispatcher(make_settings(**overrides), client=mock_http_client(handler))
        created.append(dispatcher)
        return dispatcher

    yield _make
    for dispatcher in created:
        await dispatcher.client.aclose()
