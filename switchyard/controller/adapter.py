"""
Middleware adapter.

Turns a ``MiddlewareRef`` into a host handler ``(request, response, next)``
whose failures, sync or async, always reach ``next(err)``.
"""

from __future__ import annotations

from typing import Any, Callable, Optional
import logging

from ..di import Container
from ..faults import MiddlewareFault
from ..http import Request, Response
from .guard import Continuation, run_guarded
from .metadata import FunctionMiddleware, MiddlewareRef, as_middleware_ref


logger = logging.getLogger("switchyard.adapter")


class MiddlewareAdapter:
    """
    Host-facing wrapper around one middleware reference.

    Class-based middleware is resolved per request, from the request-scoped
    container when the host provides one, otherwise from the build
    container. Resolution happens inside the guard, so a missing binding is
    forwarded like any other failure.
    """

    __slots__ = ("ref", "container", "label")

    def __init__(self, ref: MiddlewareRef, container: Optional[Container] = None, *, route: str = ""):
        self.ref = ref
        self.container = container
        self.label = f"middleware {ref.name}" + (f" on {route}" if route else "")

    @property
    def name(self) -> str:
        return self.ref.name

    def __call__(self, request: Request, response: Response, next: Callable[..., None]) -> None:
        cont = Continuation(next, self.label)
        run_guarded(lambda: self._invoke(request, response, cont), request, cont)

    def _invoke(self, request: Request, response: Response, cont: Continuation) -> Any:
        return self._target(request)(request, response, cont)

    def _target(self, request: Request) -> Callable[..., Any]:
        if isinstance(self.ref, FunctionMiddleware):
            return self.ref.func

        container = request.container if request.container is not None else self.container
        if container is None:
            raise MiddlewareFault(f"No container available to resolve {self.ref.name}")

        instance = container.resolve(self.ref.token)
        logger.debug("Resolved %s from %r", self.ref.name, container)
        handler = getattr(instance, "handler", None)
        if not callable(handler):
            raise MiddlewareFault(
                f"{self.ref.name} resolved to {type(instance).__name__}, which has no handler method"
            )
        return handler

    def __repr__(self) -> str:
        return f"<MiddlewareAdapter {self.label}>"


def adapt_middleware(
    middleware: Any,
    container: Optional[Container] = None,
    *,
    route: str = "",
) -> MiddlewareAdapter:
    """Wrap a raw middleware declaration (function, class, token or ref)."""
    return MiddlewareAdapter(as_middleware_ref(middleware), container, route=route)
