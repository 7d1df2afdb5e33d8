"""
Provider implementations for different instantiation strategies.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Type, TypeVar, get_type_hints
import inspect

from .errors import DIError


T = TypeVar("T")

SCOPES = frozenset(("singleton", "app", "request", "transient"))


def token_name(token: Any) -> str:
    """Readable name for a token, used in diagnostics."""
    if isinstance(token, str):
        return token
    if isinstance(token, type):
        return f"{token.__module__}.{token.__qualname__}"
    return repr(token)


@dataclass(frozen=True, slots=True)
class ProviderMeta:
    """Compact provider metadata."""
    name: str
    token: Any
    scope: str
    tags: tuple[str, ...] = field(default_factory=tuple)


class ResolveCtx:
    """
    Context for one resolution.

    Tracks the resolution stack for cycle detection and diagnostics.
    """
    __slots__ = ("container", "stack")

    def __init__(self, container: Any):
        self.container = container
        self.stack: list = []

    def push(self, key: tuple) -> None:
        self.stack.append(key)

    def pop(self) -> None:
        self.stack.pop()

    def in_cycle(self, key: tuple) -> bool:
        return key in self.stack

    def get_trace(self) -> list[str]:
        return [token_name(key[0]) for key in self.stack]


def _check_scope(scope: str) -> str:
    if scope not in SCOPES:
        raise DIError(f"Unknown scope '{scope}' (expected one of {sorted(SCOPES)})")
    return scope


def _extract_dependencies(target: Callable, owner: str) -> Dict[str, Dict[str, Any]]:
    """
    Extract injectable parameters from a callable's signature.

    Returns:
        Dict mapping parameter names to {"token", "optional", "default"}
    """
    deps: Dict[str, Dict[str, Any]] = {}

    try:
        sig = inspect.signature(target)
    except (TypeError, ValueError):
        return deps

    try:
        type_hints = get_type_hints(target)
    except Exception:
        type_hints = {}

    for param_name, param in sig.parameters.items():
        if param_name in ("self", "cls"):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        annotation = type_hints.get(param_name, param.annotation)
        has_default = param.default is not inspect.Parameter.empty

        if annotation is inspect.Parameter.empty:
            if has_default:
                continue
            raise DIError(
                f"Missing type annotation for parameter '{param_name}' in {owner}"
            )

        deps[param_name] = {
            "token": annotation,
            "optional": has_default,
            "default": param.default,
        }

    return deps


class ClassProvider:
    """
    Provider that instantiates a class by resolving constructor dependencies.
    """

    __slots__ = ("_meta", "_cls", "_dependencies")

    def __init__(
        self,
        cls: Type[T],
        scope: str = "transient",
        token: Any = None,
        tags: tuple[str, ...] = (),
    ):
        self._cls = cls
        if cls.__init__ is object.__init__:
            self._dependencies = {}
        else:
            self._dependencies = _extract_dependencies(cls.__init__, f"{cls.__qualname__}.__init__")
        self._meta = ProviderMeta(
            name=cls.__name__,
            token=token if token is not None else cls,
            scope=_check_scope(scope),
            tags=tags,
        )

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    @property
    def cls(self) -> type:
        return self._cls

    def instantiate(self, ctx: ResolveCtx) -> Any:
        kwargs = {}
        for name, dep in self._dependencies.items():
            value = ctx.container._resolve(dep["token"], None, dep["optional"], ctx)
            if value is None and dep["optional"]:
                value = dep["default"]
            kwargs[name] = value
        return self._cls(**kwargs)


class FactoryProvider:
    """
    Provider that calls a factory function to produce instances.

    Factory parameters with annotations are resolved from the container.
    """

    __slots__ = ("_meta", "_factory", "_dependencies")

    def __init__(
        self,
        factory: Callable[..., Any],
        token: Any,
        scope: str = "transient",
        name: Optional[str] = None,
        tags: tuple[str, ...] = (),
    ):
        if inspect.iscoroutinefunction(factory):
            raise DIError(f"Factory {factory.__qualname__} must be synchronous")
        self._factory = factory
        self._dependencies = _extract_dependencies(factory, factory.__qualname__)
        self._meta = ProviderMeta(
            name=name or getattr(factory, "__name__", "factory"),
            token=token,
            scope=_check_scope(scope),
            tags=tags,
        )

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    def instantiate(self, ctx: ResolveCtx) -> Any:
        kwargs = {}
        for name, dep in self._dependencies.items():
            value = ctx.container._resolve(dep["token"], None, dep["optional"], ctx)
            if value is None and dep["optional"]:
                value = dep["default"]
            kwargs[name] = value
        return self._factory(**kwargs)


class ValueProvider:
    """Provider that returns a pre-bound constant value."""

    __slots__ = ("_meta", "_value")

    def __init__(
        self,
        value: Any,
        token: Any,
        name: Optional[str] = None,
        tags: tuple[str, ...] = (),
    ):
        self._value = value
        self._meta = ProviderMeta(
            name=name or f"{token_name(token)}_value",
            token=token,
            scope="singleton",
            tags=tags,
        )

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    def instantiate(self, ctx: ResolveCtx) -> Any:
        return self._value
