"""
Controller Metadata

Descriptors produced by registration calls, and the registry that owns them
for one build cycle.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union
import inspect

from ..faults import RegistrationFault
from ..http.paths import join_paths, normalize_path


# ============================================================================
# Middleware references
# ============================================================================

@dataclass(frozen=True)
class FunctionMiddleware:
    """A middleware callable ``(request, response, next)`` used as-is."""
    func: Callable[..., Any]

    @property
    def name(self) -> str:
        return getattr(self.func, "__qualname__", None) or repr(self.func)


@dataclass(frozen=True)
class ClassMiddleware:
    """
    A container token resolving to an object with a ``handler`` method.

    The token is usually the middleware class itself, but any token bound in
    the container works (e.g. a string identifier).
    """
    token: Any

    @property
    def name(self) -> str:
        if isinstance(self.token, type):
            return self.token.__qualname__
        return str(self.token)


MiddlewareRef = Union[FunctionMiddleware, ClassMiddleware]


def as_middleware_ref(obj: Any) -> MiddlewareRef:
    """
    Coerce a raw middleware declaration into a ``MiddlewareRef``.

    - refs pass through
    - classes and strings become ``ClassMiddleware``
    - any other callable becomes ``FunctionMiddleware``
    """
    if isinstance(obj, (FunctionMiddleware, ClassMiddleware)):
        return obj
    if isinstance(obj, type):
        if not callable(getattr(obj, "handler", None)):
            raise RegistrationFault(
                f"Middleware class {obj.__qualname__} must define a handler(request, response, next) method"
            )
        return ClassMiddleware(obj)
    if isinstance(obj, str):
        return ClassMiddleware(obj)
    if callable(obj):
        return FunctionMiddleware(obj)
    raise RegistrationFault(f"Cannot use {obj!r} as middleware")


def _refs(items: Any) -> Tuple[MiddlewareRef, ...]:
    return tuple(as_middleware_ref(m) for m in items or ())


# ============================================================================
# Descriptors
# ============================================================================

@dataclass(frozen=True)
class MethodDescriptor:
    """
    One routed action of a controller.

    Attributes:
        http_verb: GET, POST, ... or ALL
        sub_path: Path relative to the controller base path
        action_name: Name of the controller method invoked last
        middleware: Method-level middleware, in execution order
    """
    http_verb: str
    sub_path: str
    action_name: str
    middleware: Tuple[MiddlewareRef, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "http_verb", self.http_verb.upper())
        object.__setattr__(self, "sub_path", normalize_path(self.sub_path))
        object.__setattr__(self, "middleware", _refs(self.middleware))

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.http_verb, self.sub_path, self.action_name)


@dataclass
class ControllerDescriptor:
    """
    A controller class with its base path, shared middleware and routes.
    """
    target: type
    base_path: str = "/"
    middleware: Tuple[MiddlewareRef, ...] = ()
    methods: List[MethodDescriptor] = field(default_factory=list)

    def __post_init__(self):
        self.base_path = normalize_path(self.base_path)
        self.middleware = _refs(self.middleware)

    @property
    def name(self) -> str:
        return self.target.__qualname__


# ============================================================================
# Registry
# ============================================================================

class MetadataRegistry:
    """
    Owns controller descriptors for one build cycle.

    Call ``reset()`` before every independent build (e.g. per test case) so
    that registrations never leak from one cycle into the next.

    Example:
        registry = MetadataRegistry()

        @registry.controller("/users", audit)
        class UsersController:
            @GET("/{id}", load_user)
            def show(self, request, response, next):
                response.json(request.state["user"])
    """

    def __init__(self):
        self._controllers: Dict[type, ControllerDescriptor] = {}

    # ------------------------------------------------------------------
    # Registration calls
    # ------------------------------------------------------------------

    def register_controller(self, descriptor: ControllerDescriptor) -> type:
        """
        Register a controller; any methods already on the descriptor are
        registered too. Returns the registry key (the controller class).
        """
        key = descriptor.target
        if key in self._controllers:
            raise RegistrationFault(f"Controller {descriptor.name} is already registered")

        self._controllers[key] = replace(descriptor, methods=[])
        try:
            for method in descriptor.methods:
                self.register_method(key, method)
        except RegistrationFault:
            del self._controllers[key]
            raise
        return key

    def register_method(self, controller_key: type, descriptor: MethodDescriptor) -> None:
        controller = self._controllers.get(controller_key)
        if controller is None:
            raise RegistrationFault(
                f"Cannot register {descriptor.action_name}: controller "
                f"{getattr(controller_key, '__qualname__', controller_key)!r} is not registered"
            )
        if any(m.key == descriptor.key for m in controller.methods):
            verb, path, action = descriptor.key
            raise RegistrationFault(
                f"{controller.name}.{action} is already registered for {verb} {path}"
            )
        controller.methods.append(descriptor)

    def controller(self, base_path: str = "/", *middleware: Any) -> Callable[[type], type]:
        """
        Class decorator registering a controller and its routed methods.

        Routed methods are collected in definition order, inherited ones
        included.
        """
        def decorator(cls: type) -> type:
            self.register_class(cls, base_path, *middleware)
            return cls

        return decorator

    def register_class(self, cls: type, base_path: Optional[str] = None, *middleware: Any) -> type:
        """
        Register *cls*, falling back to its ``prefix`` and ``middleware``
        class attributes when no base path or middleware is given.
        """
        from .decorators import route_entries

        if not inspect.isclass(cls):
            raise RegistrationFault(f"Controllers must be classes, got {cls!r}")

        if base_path is None:
            base_path = getattr(cls, "prefix", "/") or "/"
        if not middleware:
            middleware = tuple(getattr(cls, "middleware", ()) or ())

        return self.register_controller(
            ControllerDescriptor(
                target=cls,
                base_path=base_path,
                middleware=middleware,
                methods=route_entries(cls),
            )
        )

    def reset(self) -> None:
        """Forget every registered controller and method."""
        self._controllers.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def controllers(self) -> Tuple[ControllerDescriptor, ...]:
        """Registered controllers in registration order."""
        return tuple(self._controllers.values())

    def get(self, controller_key: type) -> Optional[ControllerDescriptor]:
        return self._controllers.get(controller_key)

    def route_info(self, root_path: str = "") -> List[Dict[str, Any]]:
        """
        Describe every endpoint, grouped per controller.

        Returns:
            [{"controller": "Foo", "endpoints": [{"route": "GET /foo", "action": "index"}]}]
        """
        info = []
        for controller in self._controllers.values():
            endpoints = [
                {
                    "route": f"{m.http_verb} {join_paths(root_path, controller.base_path, m.sub_path)}",
                    "action": m.action_name,
                    "middleware": [r.name for r in controller.middleware + m.middleware],
                }
                for m in controller.methods
            ]
            info.append({"controller": controller.name, "endpoints": endpoints})
        return info

    def __len__(self) -> int:
        return len(self._controllers)

    def __contains__(self, controller_key: object) -> bool:
        return controller_key in self._controllers

    def __iter__(self) -> Iterator[ControllerDescriptor]:
        return iter(self.controllers())
