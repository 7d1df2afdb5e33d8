"""
Application - Express-style handler stack served over ASGI.

Handlers are plain callables ``(request, response, next)``; error handlers
take ``(error, request, response, next)`` and are recognised by arity.
Dispatch is continuation-driven: ``next()`` moves to the next matching
handler, ``next(err)`` skips ahead to the next matching error handler.

The host only guards *synchronous* raises. If a raw handler returns an
awaitable, it is scheduled so it runs, but its failure is merely logged as
unobserved and never reaches the error handlers. Controller routes built by
``switchyard.server`` are wrapped so that this never happens to them.
"""

from __future__ import annotations

from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Optional, TYPE_CHECKING
import asyncio
import inspect
import logging

from ..faults import Fault
from .paths import compile_path, match_path, normalize_path
from .request import Request
from .response import Response

if TYPE_CHECKING:
    from ..config import SwitchyardSettings
    from ..di import Container


logger = logging.getLogger("switchyard.http")

ALL_METHODS = "ALL"

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


def is_error_handler(handler: Callable[..., Any]) -> bool:
    """
    True if *handler* has the error-handler signature.

    A handler may also opt in explicitly with ``__error_handler__ = True``.
    """
    flag = getattr(handler, "__error_handler__", None)
    if flag is not None:
        return bool(flag)
    try:
        sig = inspect.signature(handler)
    except (TypeError, ValueError):
        return False
    positional = [p for p in sig.parameters.values() if p.kind in _POSITIONAL]
    return len(positional) == 4


def handler_name(handler: Any) -> str:
    name = getattr(handler, "name", None)
    if isinstance(name, str):
        return name
    return getattr(handler, "__qualname__", None) or type(handler).__name__


class Layer:
    """One mounted handler with its method and path filter."""

    __slots__ = ("handle", "method", "path", "is_error", "prefix", "name", "_pattern")

    def __init__(
        self,
        handle: Callable[..., Any],
        *,
        path: str = "/",
        method: Optional[str] = None,
        prefix: bool = False,
    ):
        self.handle = handle
        self.method = method.upper() if method else None
        self.path = normalize_path(path)
        self.prefix = prefix
        self.is_error = is_error_handler(handle)
        self.name = handler_name(handle)
        self._pattern = compile_path(self.path, prefix=prefix)

    def match(self, request: Request) -> Optional[Dict[str, str]]:
        if self.method not in (None, ALL_METHODS) and self.method != request.method:
            return None
        return match_path(self._pattern, request.path)

    def __repr__(self) -> str:
        return f"<Layer {self.method or '*'} {self.path} {self.name}>"


class Application:
    """
    ASGI application with an ordered handler stack.

    Example:
        app = Application()
        app.use(log_requests)
        app.route("GET", "/health", lambda req, res, next: res.send("ok"))
        app.use(on_error)          # (err, req, res, next)
    """

    def __init__(
        self,
        container: Optional["Container"] = None,
        *,
        settings: Optional["SwitchyardSettings"] = None,
    ):
        self.container = container
        self.settings = settings
        self._layers: List[Layer] = []

    @property
    def layers(self) -> List[Layer]:
        return list(self._layers)

    @property
    def debug(self) -> bool:
        return bool(self.settings and self.settings.debug)

    # ------------------------------------------------------------------
    # Mounting
    # ------------------------------------------------------------------

    def use(self, *handlers: Callable[..., Any], path: str = "/") -> "Application":
        """Mount middleware or error handlers for every method under *path*."""
        for handler in handlers:
            self._layers.append(Layer(handler, path=path, prefix=True))
        return self

    def route(self, method: str, path: str, *handlers: Callable[..., Any]) -> "Application":
        """Mount *handlers* in order for an exact (method, path) pair."""
        if not handlers:
            raise ValueError(f"route {method} {path} needs at least one handler")
        for handler in handlers:
            self._layers.append(Layer(handler, path=path, method=method))
        return self

    def reset(self, layers: Iterable[Layer] = ()) -> None:
        """Replace the handler stack with *layers* (empty by default)."""
        self._layers = list(layers)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, request: Request, response: Response) -> None:
        """Start dispatching *request*; returns as soon as the chain suspends."""
        _Dispatch(self, request, response).next()

    def _final(self, request: Request, response: Response, err: Optional[BaseException]) -> None:
        """Default stage reached when no handler answered."""
        if err is not None:
            level = err.log_level if isinstance(err, Fault) else logging.ERROR
            logger.log(
                level, "Unhandled error for %s %s: %r", request.method, request.path, err,
                exc_info=err if isinstance(err, BaseException) else None,
            )
        if response.headers_sent:
            return

        response.set_header("content-type", "text/plain; charset=utf-8")
        if err is not None:
            body = "Internal Server Error"
            if self.debug:
                body += f"\n\n{err!r}"
            response.status(500).send(body)
        else:
            response.status(404).send(f"Cannot {request.method} {request.path}")

    # ------------------------------------------------------------------
    # ASGI entry point
    # ------------------------------------------------------------------

    async def __call__(self, scope: dict, receive: Callable, send: Callable):
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)
        else:
            logger.warning("Unsupported ASGI scope type: %s", scope_type)
            if scope_type == "websocket":
                await send({"type": "websocket.close", "code": 1003})

    async def handle_http(self, scope: dict, receive: Callable, send: Callable):
        body = await self._read_body(receive)
        container = self.container.create_request_scope() if self.container is not None else None
        request = Request(scope, body, container)
        response = Response()

        self.handle(request, response)
        # No timeout: a handler that never settles keeps this request open.
        await response.wait()
        await response.send_asgi(send)

    async def handle_lifespan(self, scope: dict, receive: Callable, send: Callable):
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                logger.debug("Application startup (%d layers)", len(self._layers))
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                break

    @staticmethod
    async def _read_body(receive: Callable) -> bytes:
        chunks = []
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
            chunks.append(message.get("body", b""))
            if not message.get("more_body", False):
                break
        return b"".join(chunks)


class _Dispatch:
    """Walks the layer stack for one request."""

    __slots__ = ("app", "request", "response", "index")

    def __init__(self, app: Application, request: Request, response: Response):
        self.app = app
        self.request = request
        self.response = response
        self.index = 0

    def next(self, err: Optional[BaseException] = None) -> None:
        layers = self.app._layers
        while self.index < len(layers):
            layer = layers[self.index]
            self.index += 1

            if layer.is_error != (err is not None):
                continue
            params = layer.match(self.request)
            if params is None:
                continue

            self.request.params = params
            self._call(layer, err)
            return

        self.app._final(self.request, self.response, err)

    def _call(self, layer: Layer, err: Optional[BaseException]) -> None:
        try:
            if err is None:
                result = layer.handle(self.request, self.response, self.next)
            else:
                result = layer.handle(err, self.request, self.response, self.next)
        except Exception as exc:
            self.next(exc)
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self.request.track(task)
            task.add_done_callback(partial(_report_unobserved, layer.name))


def _report_unobserved(name: str, task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "Unobserved failure in handler %s; it never reached the error handlers",
            name, exc_info=(type(exc), exc, exc.__traceback__),
        )
