"""
Request - Thin view over an ASGI HTTP scope.

The body is read once by the application and exposed as raw bytes. It is a
plain attribute, so middleware may replace it with whatever it derives.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, TYPE_CHECKING
from urllib.parse import parse_qs
import asyncio

if TYPE_CHECKING:
    from ..di import Container


class Request:
    """
    HTTP request seen by every handler in a chain.

    Attributes:
        scope: The ASGI scope
        body: Raw request body (reassignable by middleware)
        params: Path parameters of the matched route
        state: Per-request scratch space shared along the chain
        container: Request-scoped DI container, if the app has one
    """

    __slots__ = (
        "scope", "body", "params", "state", "container",
        "_headers", "_query", "_pending",
    )

    def __init__(
        self,
        scope: dict,
        body: bytes = b"",
        container: Optional["Container"] = None,
    ):
        self.scope = scope
        self.body: Any = body
        self.params: Dict[str, str] = {}
        self.state: Dict[str, Any] = {}
        self.container = container
        self._headers: Optional[Dict[str, str]] = None
        self._query: Optional[Dict[str, List[str]]] = None
        self._pending: Set[asyncio.Future] = set()

    @property
    def method(self) -> str:
        return self.scope.get("method", "GET").upper()

    @property
    def path(self) -> str:
        return self.scope.get("path", "/")

    @property
    def headers(self) -> Dict[str, str]:
        """Lower-cased header map (last value wins)."""
        if self._headers is None:
            self._headers = {
                name.decode("latin-1").lower(): value.decode("latin-1")
                for name, value in self.scope.get("headers", ())
            }
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    @property
    def query(self) -> Dict[str, List[str]]:
        if self._query is None:
            raw = self.scope.get("query_string", b"")
            if isinstance(raw, bytes):
                raw = raw.decode("latin-1")
            self._query = parse_qs(raw, keep_blank_values=True)
        return self._query

    def query_param(self, key: str, default: Optional[str] = None) -> Optional[str]:
        values = self.query.get(key)
        return values[0] if values else default

    def track(self, future: asyncio.Future) -> None:
        """Hold a strong reference to a scheduled handler until it settles."""
        self._pending.add(future)
        future.add_done_callback(self._pending.discard)

    @property
    def pending(self) -> int:
        """Number of scheduled handlers that have not settled yet."""
        return len(self._pending)

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.path}>"
