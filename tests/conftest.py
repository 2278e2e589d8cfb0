"""
Shared test configuration and fixtures.
"""

import base64
from typing import Callable

import anyio
import httpx
import pytest
from cryptography.fernet import Fernet
from fastapi.testclient import TestClient
from starlette.requests import Request
from starlette.types import Receive

from podbean_auth.infrastructure.state_protection import FernetStateDataFormat
from podbean_auth.oauth.config import PodbeanAuthenticationOptions

APP_ID = "app-id"
APP_SECRET = "app-secret"
EXPECTED_BASIC_AUTH = "Basic " + base64.b64encode(b"app-id:app-secret").decode()

TOKEN_RESPONSE = {"access_token": "T", "refresh_token": "R", "expires_in": "3600"}
PODCAST_RESPONSE = {"podcast": {"name": "My Show"}}
DEBUG_TOKEN_RESPONSE = {"podcast_id": "42"}


def idle_receive() -> Receive:
    """Receive channel of a client that sent an empty body and stays connected."""
    sent = False

    async def receive():
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await anyio.sleep_forever()

    return receive


async def disconnected_receive():
    """Receive channel of a client that has already gone away."""
    return {"type": "http.disconnect"}


def make_request(
    path: str = "/",
    query: str = "",
    headers: dict[str, str] | None = None,
    cookies: dict[str, str] | None = None,
    scheme: str = "http",
    host: str = "testserver",
    receive: Receive | None = None,
) -> Request:
    """Build a bare Starlette request for driving the handler directly."""
    raw_headers = [(b"host", host.encode())]
    for key, value in (headers or {}).items():
        raw_headers.append((key.lower().encode(), value.encode()))
    if cookies:
        cookie_header = "; ".join(f"{k}={v}" for k, v in cookies.items())
        raw_headers.append((b"cookie", cookie_header.encode()))

    scope = {
        "type": "http",
        "method": "GET",
        "scheme": scheme,
        "path": path,
        "root_path": "",
        "query_string": query.encode(),
        "headers": raw_headers,
        "server": (host, 443 if scheme == "https" else 80),
        "client": ("127.0.0.1", 50000),
        "state": {},
        "session": {},
    }
    return Request(scope, receive or idle_receive())


@pytest.fixture
def state_format() -> FernetStateDataFormat:
    """State protector with a fresh key."""
    return FernetStateDataFormat(Fernet.generate_key().decode())


@pytest.fixture
def options(state_format) -> PodbeanAuthenticationOptions:
    """Options for a configured Podbean app."""
    return PodbeanAuthenticationOptions(
        app_id=APP_ID,
        app_secret=APP_SECRET,
        scope=["podcast_read", "episode_read"],
        state_data_format=state_format,
    )


@pytest.fixture
def podbean_calls() -> list[httpx.Request]:
    """Requests seen by the fake Podbean transport, in order."""
    return []


@pytest.fixture
def podbean_responses() -> dict[str, httpx.Response]:
    """
    Responses served by the fake Podbean transport, keyed by path.

    Tests override entries to simulate failures.
    """
    return {
        "/v1/oauth/token": httpx.Response(200, json=TOKEN_RESPONSE),
        "/v1/podcast": httpx.Response(200, json=PODCAST_RESPONSE),
        "/v1/oauth/debugToken": httpx.Response(200, json=DEBUG_TOKEN_RESPONSE),
    }


@pytest.fixture
def podbean_transport(podbean_calls, podbean_responses) -> httpx.MockTransport:
    """In-process stand-in for api.podbean.com."""

    def handler(request: httpx.Request) -> httpx.Response:
        podbean_calls.append(request)
        response = podbean_responses.get(request.url.path)
        if response is None:
            return httpx.Response(404)
        return response

    return httpx.MockTransport(handler)


@pytest.fixture
def make_client(podbean_transport) -> Callable[..., TestClient]:
    """Factory for a TestClient over a freshly built app."""
    from podbean_auth.main import create_app

    def _make(options: PodbeanAuthenticationOptions) -> TestClient:
        app = create_app(
            options=options,
            http_client=httpx.AsyncClient(transport=podbean_transport),
            session_secret_key="test-secret",
        )
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client, options) -> TestClient:
    """Test client for the app with default options."""
    return make_client(options)
