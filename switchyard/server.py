"""
SwitchyardServer - Assembles the host application from the registry.

Mount order is fixed:

1. the app-level configurator (``set_config``)
2. every compiled controller route
3. the error stage (``set_error_config`` and/or ``set_error_handler``)

so the error stage is always the terminal link for forwarded faults.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional
import logging

from .config import SwitchyardSettings
from .controller.builder import RouteBuilder, RouteRegistration
from .controller.metadata import MetadataRegistry
from .di import Container
from .http import Application, Layer, is_error_handler


Configurator = Callable[[Application], None]


class SwitchyardServer:
    """
    Builds an ``Application`` from a ``MetadataRegistry`` and a container.

    Example:
        server = SwitchyardServer(container, registry)
        server.set_error_config(lambda app: app.use(on_error))
        app = server.build()
    """

    def __init__(
        self,
        container: Optional[Container],
        registry: MetadataRegistry,
        *,
        settings: Optional[SwitchyardSettings] = None,
        application: Optional[Application] = None,
    ):
        self.container = container if container is not None else Container()
        self.registry = registry
        self.settings = settings or SwitchyardSettings()
        self.logger = logging.getLogger("switchyard.server")

        self._application = application
        self._base_layers: Optional[List[Layer]] = None
        self._config: Optional[Configurator] = None
        self._error_config: Optional[Configurator] = None
        self._error_handler: Optional[Callable[..., Any]] = None
        self._routes: List[RouteRegistration] = []

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_config(self, fn: Configurator) -> "SwitchyardServer":
        """Configurator applied to the application before any route."""
        self._config = fn
        return self

    def set_error_config(self, fn: Configurator) -> "SwitchyardServer":
        """Configurator applied after every route; mounts error handlers."""
        self._error_config = fn
        return self

    def set_error_handler(self, handler: Callable[..., Any]) -> "SwitchyardServer":
        """Mount a single ``(error, request, response, next)`` handler after every route."""
        if not is_error_handler(handler):
            raise TypeError(
                f"{handler!r} is not an error handler; expected (error, request, response, next)"
            )
        self._error_handler = handler
        return self

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self) -> Application:
        """Compile the registry and return a ready ASGI application."""
        app = self._application
        if app is None:
            app = Application(self.container, settings=self.settings)
        else:
            # Layers the caller mounted before the first build survive rebuilds.
            if self._base_layers is None:
                self._base_layers = app.layers
            app.reset(self._base_layers)
            if app.container is None:
                app.container = self.container
            if app.settings is None:
                app.settings = self.settings

        self._bind_controllers()
        builder = RouteBuilder(
            self.container,
            root_path=self.settings.root_path,
            silent_completion=self.settings.silent_completion,
        )
        routes = builder.compile(self.registry)

        if self._config is not None:
            self._config(app)

        for route in routes:
            route.mount(app)

        if self._error_config is not None:
            self._error_config(app)
        if self._error_handler is not None:
            app.use(self._error_handler)

        self._routes = routes
        self.logger.info(
            "Built application: %d controllers, %d routes", len(self.registry), len(routes),
        )
        return app

    def _bind_controllers(self) -> None:
        for controller in self.registry.controllers():
            if not self.container.is_bound(controller.target):
                self.container.bind(controller.target, scope="request")
                self.logger.debug("Auto-bound controller %s (request scope)", controller.name)

    # ------------------------------------------------------------------
    # Introspection & serving
    # ------------------------------------------------------------------

    @property
    def routes(self) -> List[RouteRegistration]:
        """Routes mounted by the last ``build()``."""
        return list(self._routes)

    def route_info(self) -> List[Dict[str, Any]]:
        return self.registry.route_info(self.settings.root_path)

    def reset(self) -> None:
        """Forget every registration; the next build starts from scratch."""
        self.registry.reset()
        self._routes = []

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """
        Build and serve the application with uvicorn.

        Args:
            host: Bind address (defaults to settings.host)
            port: Bind port (defaults to settings.port)
        """
        import uvicorn

        log_level = self.settings.log_level
        logging.basicConfig(
            level=getattr(logging, log_level.upper()),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        )

        app = self.build()
        host = host or self.settings.host
        port = port or self.settings.port
        self.logger.info("Starting uvicorn server on %s:%s", host, port)
        uvicorn.run(app, host=host, port=port, log_level=log_level)


def build(
    container: Optional[Container],
    registry: MetadataRegistry,
    error_handler: Optional[Callable[..., Any]] = None,
    *,
    settings: Optional[SwitchyardSettings] = None,
) -> Application:
    """
    Build an application in one call.

    Example:
        app = build(container, registry, on_error)
    """
    server = SwitchyardServer(container, registry, settings=settings)
    if error_handler is not None:
        server.set_error_handler(error_handler)
    return server.build()
