"""
Controller Method Decorators

HTTP method decorators for controller methods.
Attach metadata without import-time side effects; the registry reads it when
the controller class is registered.
"""

from typing import Any, Callable, List, Optional, TypeVar, Union

from .metadata import MethodDescriptor, as_middleware_ref


F = TypeVar('F', bound=Callable[..., Any])

ROUTE_METADATA_ATTR = "__route_metadata__"


class RouteDecorator:
    """
    Base route decorator.

    Attaches metadata to controller methods for registration-time extraction.
    """

    method: Optional[str] = None

    def __init__(self, path: str = "/", *middleware: Any):
        """
        Args:
            path: Path relative to the controller base path
            middleware: Method-level middleware, run after the controller's
        """
        self.path = path
        self.middleware = tuple(as_middleware_ref(m) for m in middleware)

    def __call__(self, func: F) -> F:
        if not hasattr(func, ROUTE_METADATA_ATTR):
            setattr(func, ROUTE_METADATA_ATTR, [])

        getattr(func, ROUTE_METADATA_ATTR).append({
            'http_method': self.method,
            'path': self.path,
            'middleware': self.middleware,
            'func_name': func.__name__,
        })
        return func


class GET(RouteDecorator):
    """GET request decorator."""
    method = 'GET'


class POST(RouteDecorator):
    """POST request decorator."""
    method = 'POST'


class PUT(RouteDecorator):
    """PUT request decorator."""
    method = 'PUT'


class PATCH(RouteDecorator):
    """PATCH request decorator."""
    method = 'PATCH'


class DELETE(RouteDecorator):
    """DELETE request decorator."""
    method = 'DELETE'


class HEAD(RouteDecorator):
    """HEAD request decorator."""
    method = 'HEAD'


class OPTIONS(RouteDecorator):
    """OPTIONS request decorator."""
    method = 'OPTIONS'


class ALL(RouteDecorator):
    """Matches every HTTP method."""
    method = 'ALL'


_DECORATORS = {
    cls.method: cls
    for cls in (GET, POST, PUT, PATCH, DELETE, HEAD, OPTIONS, ALL)
}


def route(
    method: Union[str, List[str]],
    path: str = "/",
    *middleware: Any,
) -> Callable[[F], F]:
    """
    Generic route decorator.

    Example:
        @route(["GET", "POST"], "/items", audit)
        def items(self, request, response, next):
            ...
    """
    methods = [method] if isinstance(method, str) else method

    def decorator(func: F) -> F:
        for http_method in methods:
            decorator_cls = _DECORATORS.get(http_method.upper())
            if decorator_cls is None:
                raise ValueError(f"Unsupported HTTP method: {http_method}")
            func = decorator_cls(path, *middleware)(func)
        return func

    return decorator


def route_entries(cls: type) -> List[MethodDescriptor]:
    """Collect MethodDescriptors from *cls* in definition order (MRO-aware)."""
    members = {}
    for klass in reversed(cls.__mro__):
        for name, attr in vars(klass).items():
            members[name] = attr

    entries = []
    for name, attr in members.items():
        func = getattr(attr, "__func__", attr)
        for meta in getattr(func, ROUTE_METADATA_ATTR, ()):
            entries.append(MethodDescriptor(
                http_verb=meta['http_method'],
                sub_path=meta['path'],
                action_name=name,
                middleware=meta['middleware'],
            ))
    return entries
