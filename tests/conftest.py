"""Shared test fixtures for the wit_session test suite.

WHY: Most tests need a configuration with known tokens and a stub
network that records what was sent and answers with a canned response.
Centralizing them keeps every test module on the same fake tokens.

HOW: RecordingTransport wraps httpx.MockTransport and keeps every
request it received. The `stub_transport` fixture builds one from a
handler function; `json_transport` answers every request with a JSON
body and a given status.

RULES:
- No test ever reaches the real Wit.ai API
- Tokens are fixed strings so header assertions are exact
- WAIT_S bounds every wait() so a broken session fails instead of hanging
"""

from __future__ import annotations

from typing import Any, Callable, List

import httpx
import pytest

from wit_session.config import WitConfiguration

CLIENT_TOKEN = "CLIENTTOKEN0123456789ABCDEFGHIJK"
SERVER_TOKEN = "SERVERTOKEN0123456789ABCDEFGHIJK"
WAIT_S = 5.0


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it handled."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


class PartialBodyTransport(httpx.AsyncBaseTransport):
    """Transport that reads only the first body chunk, then answers or fails.

    Models a server that responds (or a connection that breaks) while the
    client is still streaming the request body.
    """

    def __init__(self, response: httpx.Response = None, error: Exception = None) -> None:
        self.response = response
        self.error = error
        self.received: List[bytes] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        async for chunk in request.stream:
            self.received.append(chunk)
            break
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def config():
    """Developer-context configuration with both tokens."""
    return WitConfiguration(
        client_access_token=CLIENT_TOKEN,
        server_access_token=SERVER_TOKEN,
    )


@pytest.fixture
def runtime_config():
    """Runtime configuration: client token only, no server token."""
    return WitConfiguration(client_access_token=CLIENT_TOKEN)


@pytest.fixture
def stub_transport():
    """Factory: stub_transport(handler) -> RecordingTransport."""
    return RecordingTransport


@pytest.fixture
def json_transport():
    """Factory: json_transport(body, status=200) answering every request."""

    def _make(body: Any, status: int = 200) -> RecordingTransport:
        return RecordingTransport(lambda request: httpx.Response(status, json=body))

    return _make


@pytest.fixture
def wit_env(monkeypatch):
    """Populate the environment the CLI reads its tokens from."""
    monkeypatch.setenv("WIT_CLIENT_ACCESS_TOKEN", CLIENT_TOKEN)
    monkeypatch.delenv("WIT_SERVER_ACCESS_TOKEN", raising=False)
    return monkeypatch
