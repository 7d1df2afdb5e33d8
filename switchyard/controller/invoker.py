"""
Controller action invoker.

Resolves a fresh controller per request and calls one action on it under the
same guard as middleware. Also decides what happens once the action settled
without passing control on: a returned value is sent, and a silent
completion is handled by the configured policy.
"""

from __future__ import annotations

from functools import partial
from typing import Any, Callable, Optional
import logging

from ..config import SILENT_COMPLETION_POLICIES, ConfigError
from ..di import Container
from ..faults import ActionNotFoundFault
from ..http import Request, Response
from .guard import Continuation, run_guarded


logger = logging.getLogger("switchyard.invoker")


class ActionInvoker:
    """
    Host-facing handler for the last link of a route.

    Args:
        controller: Controller class (also its container token)
        action_name: Name of the method to call
        container: Build container, used when the request has no scope
        silent_completion: "hold" or "next"
        route: Human-readable route, used in log messages
    """

    __slots__ = ("controller", "action_name", "container", "silent_completion", "route")

    def __init__(
        self,
        controller: type,
        action_name: str,
        container: Optional[Container] = None,
        *,
        silent_completion: str = "hold",
        route: str = "",
    ):
        if silent_completion not in SILENT_COMPLETION_POLICIES:
            raise ConfigError(f"Unknown silent completion policy {silent_completion!r}")
        self.controller = controller
        self.action_name = action_name
        self.container = container
        self.silent_completion = silent_completion
        self.route = route

    @property
    def name(self) -> str:
        return f"{self.controller.__name__}.{self.action_name}"

    @property
    def label(self) -> str:
        return f"action {self.name}" + (f" on {self.route}" if self.route else "")

    def __call__(self, request: Request, response: Response, next: Callable[..., None]) -> None:
        cont = Continuation(next, self.label)
        run_guarded(
            lambda: self._invoke(request, response, cont),
            request,
            cont,
            on_result=partial(self._complete, response, cont),
        )

    def _invoke(self, request: Request, response: Response, cont: Continuation) -> Any:
        container = request.container if request.container is not None else self.container
        if container is None:
            instance = self.controller()
        else:
            instance = container.resolve(self.controller)

        action = getattr(instance, self.action_name, None)
        if not callable(action):
            raise ActionNotFoundFault(self.controller.__qualname__, self.action_name)
        return action(request, response, cont)

    def _complete(self, response: Response, cont: Continuation, value: Any) -> None:
        if cont.fired or response.headers_sent:
            return

        if value is not None:
            response.send(value)
            return

        logger.warning(
            "%s completed without sending a response or calling next()", self.label,
        )
        if self.silent_completion == "next":
            cont()

    def __repr__(self) -> str:
        return f"<ActionInvoker {self.label}>"
