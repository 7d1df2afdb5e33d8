"""
Switchyard Controller System

Declarative controllers compiled into guarded handler chains.

Key Features:
- Registry-owned metadata: no module-level state, ``reset()`` per build
- Ordered chains: controller middleware, method middleware, action
- Exactly-once error forwarding for sync raises and failed awaitables

Example:
    from switchyard.controller import GET, MetadataRegistry

    registry = MetadataRegistry()

    @registry.controller("/users", audit)
    class UsersController:
        def __init__(self, repo: UserRepo):
            self.repo = repo

        @GET("/{id}", load_user)
        async def show(self, request, response, next):
            return await self.repo.get(request.params["id"])
"""

from .adapter import MiddlewareAdapter, adapt_middleware
from .base import BaseMiddleware, Controller
from .builder import RouteBuilder, RouteRegistration
from .decorators import (
    ALL, GET, POST, PUT, PATCH, DELETE,
    HEAD, OPTIONS,
    route,
    route_entries,
)
from .guard import Continuation, run_guarded
from .invoker import ActionInvoker
from .metadata import (
    ClassMiddleware,
    ControllerDescriptor,
    FunctionMiddleware,
    MetadataRegistry,
    MethodDescriptor,
    MiddlewareRef,
    as_middleware_ref,
)

__all__ = [
    # Base
    "Controller",
    "BaseMiddleware",

    # Decorators
    "GET", "POST", "PUT", "PATCH", "DELETE",
    "HEAD", "OPTIONS", "ALL",
    "route",
    "route_entries",

    # Metadata
    "ControllerDescriptor",
    "MethodDescriptor",
    "FunctionMiddleware",
    "ClassMiddleware",
    "MiddlewareRef",
    "MetadataRegistry",
    "as_middleware_ref",

    # Pipeline
    "Continuation",
    "run_guarded",
    "MiddlewareAdapter",
    "adapt_middleware",
    "ActionInvoker",
    "RouteBuilder",
    "RouteRegistration",
]
