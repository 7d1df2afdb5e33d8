"""
Switchyard - metadata-driven controller routing with async-safe middleware.

Controllers, routes and middleware are declared on a ``MetadataRegistry``,
compiled into ordered handler chains, and mounted on an express-style ASGI
host. Every link is guarded so that a synchronous raise or a failed
awaitable reaches the error stage exactly once.
"""

__version__ = "0.1.0"

from .config import ConfigError, SettingsLoader, SwitchyardSettings
from .controller import (
    ALL, GET, POST, PUT, PATCH, DELETE, HEAD, OPTIONS,
    BaseMiddleware,
    ClassMiddleware,
    Controller,
    ControllerDescriptor,
    FunctionMiddleware,
    MetadataRegistry,
    MethodDescriptor,
    RouteBuilder,
    RouteRegistration,
    route,
)
from .di import Container
from .faults import (
    ActionNotFoundFault,
    Fault,
    FaultDomain,
    HandlerCancelledFault,
    MiddlewareFault,
    RegistrationFault,
    ResponseAlreadySentFault,
    Severity,
)
from .http import Application, Request, Response
from .server import SwitchyardServer, build

__all__ = [
    "__version__",
    # Server
    "SwitchyardServer",
    "build",
    # Controllers
    "MetadataRegistry",
    "ControllerDescriptor",
    "MethodDescriptor",
    "FunctionMiddleware",
    "ClassMiddleware",
    "Controller",
    "BaseMiddleware",
    "RouteBuilder",
    "RouteRegistration",
    "GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS", "ALL",
    "route",
    # Host
    "Application",
    "Request",
    "Response",
    # DI
    "Container",
    # Config
    "SwitchyardSettings",
    "SettingsLoader",
    "ConfigError",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "RegistrationFault",
    "MiddlewareFault",
    "ActionNotFoundFault",
    "HandlerCancelledFault",
    "ResponseAlreadySentFault",
]
