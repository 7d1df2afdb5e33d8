"""
Switchyard dependency injection.

A small synchronous container exposing the ``resolve(token)`` capability the
route builder consumes, with constructor injection and explicit scopes:
singleton, app, request, transient.
"""

from .container import Container
from .providers import (
    ClassProvider,
    FactoryProvider,
    ProviderMeta,
    ResolveCtx,
    ValueProvider,
)
from .errors import (
    DIError,
    DependencyCycleError,
    ProviderConflictError,
    ProviderNotFoundError,
)

__all__ = [
    "Container",
    "ClassProvider",
    "FactoryProvider",
    "ValueProvider",
    "ProviderMeta",
    "ResolveCtx",
    "DIError",
    "DependencyCycleError",
    "ProviderConflictError",
    "ProviderNotFoundError",
]
