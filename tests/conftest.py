"""
Shared test fixtures and helpers for the Switchyard test suite.
"""

import asyncio
from typing import Dict, List, Optional

import httpx
import pytest

from switchyard.controller.metadata import MetadataRegistry
from switchyard.di import Container
from switchyard.http import Request, Response


PROMISE_DATA = "Here's your data"


# ============================================================================
# ASGI helpers
# ============================================================================


def make_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
) -> dict:
    """Build a minimal ASGI HTTP scope."""
    raw_headers = []
    for name, value in headers or ():
        raw_headers.append((name.encode("latin-1"), value.encode("latin-1")))
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "scheme": "http",
        "server": ("127.0.0.1", 8000),
        "client": ("127.0.0.1", 12345),
        "root_path": "",
    }


def make_receive(body: bytes = b"", *, chunks: Optional[List[bytes]] = None):
    """Create an ASGI receive callable from body bytes or a chunked list."""
    if chunks:
        messages = [
            {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
            for i, chunk in enumerate(chunks)
        ]
    else:
        messages = [{"type": "http.request", "body": body, "more_body": False}]

    idx = 0

    async def receive():
        nonlocal idx
        if idx < len(messages):
            msg = messages[idx]
            idx += 1
            return msg
        return {"type": "http.disconnect"}

    return receive


def make_request(method: str = "GET", path: str = "/", body: bytes = b"", container=None) -> Request:
    return Request(make_scope(method=method, path=path), body, container)


class ResponseCapture:
    """Captures what gets sent through ASGI ``send``."""

    def __init__(self):
        self.messages: list = []
        self.status: Optional[int] = None
        self.headers: Dict[str, str] = {}
        self.body = b""

    async def __call__(self, message: dict):
        self.messages.append(message)
        if message["type"] == "http.response.start":
            self.status = message["status"]
            for name, value in message.get("headers", []):
                self.headers[name.decode("latin-1").lower()] = value.decode("latin-1")
        elif message["type"] == "http.response.body":
            self.body += message.get("body", b"")

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")


def client_for(app) -> httpx.AsyncClient:
    """httpx client bound to an ASGI app."""
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


async def settle(rounds: int = 5) -> None:
    """Let scheduled callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def dispatch(app, request: Request, response: Optional[Response] = None, timeout: float = 1.0) -> Response:
    """Run ``app.handle`` and wait for the response to finish."""
    response = response or Response()
    app.handle(request, response)
    await asyncio.wait_for(response.wait(), timeout)
    return response


# ============================================================================
# Handlers shared by the async middleware scenarios
# ============================================================================


async def async_request(reject: bool) -> str:
    if reject:
        raise RuntimeError("Error")
    await asyncio.sleep(0.05)
    return PROMISE_DATA


def async_middleware(reject: bool):
    async def middleware(request, response, next):
        data = await async_request(reject)
        request.body = {"data": data}
        next()

    middleware.__qualname__ = f"async_middleware({reject})"
    return middleware


async def throwing_async_middleware(request, response, next):
    raise RuntimeError("Async Middleware error")


def sync_middleware(request, response, next):
    next()


def something_broke(err, request, response, next):
    response.status(500).send("Something broke!")


def error_config(app):
    app.use(something_broke)


class AsyncMiddleware:
    """Class middleware that either fails up front or behaves like async_middleware(False)."""

    def __init__(self, reject: bool):
        self.reject = reject

    async def handler(self, request, response, next):
        if self.reject:
            raise RuntimeError("rejected by AsyncMiddleware")
        await async_middleware(False)(request, response, next)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def registry():
    reg = MetadataRegistry()
    yield reg
    reg.reset()


@pytest.fixture
def container():
    return Container()
