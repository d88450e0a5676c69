"""
Shared fixtures.

The provider is replaced by httpx.MockTransport: FakeUpstream records
every outbound request and answers from a queue of canned responses
(the last one repeats). Backoff waits go to FakeSleep, so retry tests
run instantly and can assert the exact delays.
"""
from __future__ import annotations

import logging
from typing import List, Union

import httpx
import pytest
from fastapi.testclient import TestClient

from cartesia_gateway.api.dependencies import (
    get_config,
    get_http_client,
    get_settings,
    get_sleep,
    get_voice_cache,
)
from cartesia_gateway.core.logging.context import set_configured
from cartesia_gateway.main import create_app

VOICE_ID = "a0e99841-438c-4a64-b679-ae501e7d6091"
API_VERSION = "2025-04-16"
AUTH = {"Authorization": "Bearer sk_test_key", "Cartesia-Version": API_VERSION}


class FakeUpstream:
    """Records requests, answers with queued responses or raises queued errors."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self._queue: List[Union[httpx.Response, Exception]] = [httpx.Response(200, content=b"ID3audio")]

    def respond(self, *items: Union[httpx.Response, Exception]) -> None:
        self._queue = list(items)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self._queue.pop(0) if len(self._queue) > 1 else self._queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler), follow_redirects=True)


class FakeSleep:
    def __init__(self):
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FailingCache:
    """Voice cache whose every operation raises."""

    def get(self, query):
        raise RuntimeError("cache down")

    def put(self, voices):
        raise RuntimeError("cache down")


@pytest.fixture(autouse=True)
def fresh_logging():
    """Handlers bind sys.stdout when created; rebuild them for every test."""
    yield
    logging.getLogger().handlers = []
    set_configured(False)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def app(upstream, fake_sleep):
    app = create_app()
    http = upstream.client()
    app.dependency_overrides[get_http_client] = lambda: http
    app.dependency_overrides[get_sleep] = lambda: fake_sleep
    yield app
    http.close()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def failing_cache_client(app):
    app.dependency_overrides[get_voice_cache] = lambda: FailingCache()
    with TestClient(app) as c:
        yield c


@pytest.fixture
def build_client(upstream, fake_sleep):
    """
    Client factory for tests that change the environment first.

    Settings and config are re-read from the environment on every call
    and the caches are cleared again afterwards.
    """
    opened = []

    def build() -> TestClient:
        get_settings.cache_clear()
        get_config.cache_clear()
        app = create_app()
        http = upstream.client()
        app.dependency_overrides[get_http_client] = lambda: http
        app.dependency_overrides[get_sleep] = lambda: fake_sleep
        c = TestClient(app)
        c.__enter__()
        opened.append((c, http))
        return c

    yield build
    for c, http in opened:
        c.__exit__(None, None, None)
        http.close()
    get_settings.cache_clear()
    get_config.cache_clear()
