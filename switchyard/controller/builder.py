"""
Route Builder - Compiles registered controllers into host routes.

For every method descriptor it produces one ``RouteRegistration`` whose
handler chain is: controller middleware (as declared), method middleware
(as declared), then the action invoker. Every link is already wrapped, so
the host only ever sees handlers that forward their failures.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import logging

from ..di import Container
from ..http import Application
from ..http.paths import join_paths
from .adapter import MiddlewareAdapter
from .invoker import ActionInvoker
from .metadata import ControllerDescriptor, MetadataRegistry, MethodDescriptor


logger = logging.getLogger("switchyard.builder")


@dataclass(frozen=True)
class RouteRegistration:
    """One compiled route, ready to mount on the host."""

    method: str
    path: str
    handlers: Tuple[Any, ...]
    controller: type
    action_name: str

    @property
    def label(self) -> str:
        return f"{self.method} {self.path}"

    def mount(self, app: Application) -> None:
        app.route(self.method, self.path, *self.handlers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "path": self.path,
            "controller": self.controller.__qualname__,
            "action": self.action_name,
            "handlers": [getattr(h, "name", repr(h)) for h in self.handlers],
        }


class RouteBuilder:
    """
    Compiles a ``MetadataRegistry`` snapshot into route registrations.

    Compiling does not mutate the registry; two compiles of the same state
    produce equivalent, independent handler chains.
    """

    def __init__(
        self,
        container: Optional[Container] = None,
        root_path: str = "",
        silent_completion: str = "hold",
    ):
        self.container = container
        self.root_path = root_path
        self.silent_completion = silent_completion

    def compile(self, registry: MetadataRegistry) -> List[RouteRegistration]:
        routes: List[RouteRegistration] = []
        seen: Dict[Tuple[str, str], RouteRegistration] = {}

        for controller in registry.controllers():
            for method in controller.methods:
                route = self.compile_method(controller, method)
                key = (route.method, route.path)
                first = seen.get(key)
                if first is not None:
                    logger.warning(
                        "Route %s is declared by both %s.%s and %s.%s; the first one wins",
                        route.label,
                        first.controller.__qualname__, first.action_name,
                        route.controller.__qualname__, route.action_name,
                    )
                else:
                    seen[key] = route
                routes.append(route)

        logger.debug("Compiled %d routes from %d controllers", len(routes), len(registry))
        return routes

    def compile_method(
        self,
        controller: ControllerDescriptor,
        method: MethodDescriptor,
    ) -> RouteRegistration:
        path = join_paths(self.root_path, controller.base_path, method.sub_path)
        label = f"{method.http_verb} {path}"

        handlers: List[Any] = [
            MiddlewareAdapter(ref, self.container, route=label)
            for ref in controller.middleware + method.middleware
        ]
        handlers.append(
            ActionInvoker(
                controller.target,
                method.action_name,
                self.container,
                silent_completion=self.silent_completion,
                route=label,
            )
        )

        return RouteRegistration(
            method=method.http_verb,
            path=path,
            handlers=tuple(handlers),
            controller=controller.target,
            action_name=method.action_name,
        )
