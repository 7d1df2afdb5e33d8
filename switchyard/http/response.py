"""
Response - Mutable, write-once HTTP response shared along a handler chain.

Handlers write it imperatively (``res.status(201).send(...)``). The first
``send``/``json``/``end`` finishes the response; the application then waits
for that and flushes it over ASGI.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional
from http import HTTPStatus
import asyncio
import json

from ..faults import ResponseAlreadySentFault


def _json_default_serializer(o):
    """Default JSON serializer for non-standard types."""
    if isinstance(o, (set, tuple)):
        return list(o)
    if hasattr(o, "isoformat"):
        return o.isoformat()
    return str(o)


def dumps(value: Any) -> bytes:
    """Compact JSON encoding used for response bodies."""
    return json.dumps(
        value,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_json_default_serializer,
    ).encode("utf-8")


class Response:
    """
    HTTP response.

    Attributes:
        status_code: HTTP status (default 200)
        headers: Lower-cased header map
        body: Encoded body once finished
    """

    __slots__ = ("status_code", "headers", "body", "_finished", "_sent")

    def __init__(self):
        self.status_code = 200
        self.headers: Dict[str, str] = {}
        self.body = b""
        self._finished = asyncio.Event()
        self._sent = False

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    @property
    def headers_sent(self) -> bool:
        """True once a body has been written."""
        return self._sent

    def status(self, code: int) -> "Response":
        self.status_code = int(code)
        return self

    def set_header(self, name: str, value: str) -> "Response":
        if self._sent:
            raise ResponseAlreadySentFault("Cannot set headers after they are sent")
        self.headers[name.lower()] = str(value)
        return self

    def send(self, body: Any = None) -> "Response":
        """
        Write the body and finish the response.

        ``str`` is sent as HTML text, ``bytes`` as an octet stream,
        ``None`` as an empty body, anything else as JSON.
        """
        if body is None:
            return self._finish(b"", None)
        if isinstance(body, str):
            return self._finish(body.encode("utf-8"), "text/html; charset=utf-8")
        if isinstance(body, (bytes, bytearray, memoryview)):
            return self._finish(bytes(body), "application/octet-stream")
        return self.json(body)

    def json(self, value: Any) -> "Response":
        return self._finish(dumps(value), "application/json")

    def end(self) -> "Response":
        return self._finish(b"", None)

    def send_status(self, code: int) -> "Response":
        self.status(code)
        try:
            phrase = HTTPStatus(code).phrase
        except ValueError:
            phrase = str(code)
        return self.send(phrase)

    def _finish(self, body: bytes, content_type: Optional[str]) -> "Response":
        if self._sent:
            raise ResponseAlreadySentFault()
        if content_type and "content-type" not in self.headers:
            self.headers["content-type"] = content_type
        self.headers["content-length"] = str(len(body))
        self.body = body
        self._sent = True
        self._finished.set()
        return self

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    async def wait(self) -> None:
        """Wait until some handler has finished the response."""
        await self._finished.wait()

    def _prepare_headers(self) -> List[tuple]:
        return [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in self.headers.items()
        ]

    async def send_asgi(self, send: Callable[[dict], Awaitable[None]]) -> None:
        """Send the finished response via ASGI."""
        await send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": self._prepare_headers(),
        })
        await send({
            "type": "http.response.body",
            "body": self.body,
            "more_body": False,
        })

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}] sent={self._sent}>"
