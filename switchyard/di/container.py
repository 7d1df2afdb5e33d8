"""
DI Container - manages provider instances and scopes.

Scopes:
- singleton / app: one instance, cached in the root container
- request: one instance per request-scoped child container
- transient: a fresh instance on every resolve
"""

from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from .errors import DependencyCycleError, ProviderConflictError, ProviderNotFoundError
from .providers import (
    ClassProvider,
    FactoryProvider,
    ResolveCtx,
    ValueProvider,
    token_name,
)


T = TypeVar("T")

_ROOT_SCOPES = frozenset(("singleton", "app"))


class Container:
    """
    DI Container.

    Providers are keyed by the token object itself (a class or a string) plus
    an optional tag. Request-scoped children share the provider table with
    their parent and keep their own instance cache.
    """

    __slots__ = ("_providers", "_cache", "_scope", "_parent")

    def __init__(self, scope: str = "app", parent: Optional["Container"] = None):
        self._providers: Dict[tuple, Any] = {}
        self._cache: Dict[tuple, Any] = {}
        self._scope = scope
        self._parent = parent

    @property
    def scope(self) -> str:
        return self._scope

    @property
    def parent(self) -> Optional["Container"]:
        return self._parent

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, provider: Any, tag: Optional[str] = None) -> None:
        """
        Register a provider.

        Registering the same provider twice is a no-op; registering a
        different provider under an existing token raises.
        """
        key = (provider.meta.token, tag)
        existing = self._providers.get(key)
        if existing is not None:
            if existing is provider:
                return
            raise ProviderConflictError(token_name(provider.meta.token), tag, existing)
        self._providers[key] = provider

    def bind(
        self,
        token: Any,
        implementation: Optional[type] = None,
        *,
        scope: str = "transient",
        tag: Optional[str] = None,
    ) -> None:
        """
        Bind a token to a class.

        Example:
            container.bind(UserRepository, SqlUserRepository, scope="singleton")
            container.bind(AuditMiddleware)
        """
        cls = implementation if implementation is not None else token
        if not isinstance(cls, type):
            raise TypeError(f"Cannot bind {token_name(token)}: implementation must be a class")
        self.register(ClassProvider(cls, scope=scope, token=token), tag=tag)

    def bind_value(self, token: Any, value: Any, *, tag: Optional[str] = None) -> None:
        """Bind a token to a pre-built instance."""
        self.register(ValueProvider(value, token=token), tag=tag)

    def bind_factory(
        self,
        token: Any,
        factory: Callable[..., Any],
        *,
        scope: str = "transient",
        tag: Optional[str] = None,
    ) -> None:
        """Bind a token to a synchronous factory."""
        self.register(FactoryProvider(factory, token=token, scope=scope), tag=tag)

    def unbind(self, token: Any, tag: Optional[str] = None) -> None:
        """Remove a binding and any cached instance for it."""
        key = (token, tag)
        if key not in self._providers:
            self._raise_not_found(token, tag)
        del self._providers[key]
        self._cache.pop(key, None)

    def is_bound(self, token: Any, tag: Optional[str] = None) -> bool:
        """Check if a provider is registered for the token."""
        return self._lookup_provider(token, tag) is not None

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(
        self,
        token: Type[T] | str,
        *,
        tag: Optional[str] = None,
        optional: bool = False,
    ) -> T:
        """
        Resolve a dependency.

        Raises:
            ProviderNotFoundError: If no provider is found and not optional
            DependencyCycleError: If constructor dependencies form a cycle
        """
        return self._resolve(token, tag, optional, ResolveCtx(self))

    def _resolve(self, token: Any, tag: Optional[str], optional: bool, ctx: ResolveCtx) -> Any:
        key = (token, tag)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        provider = self._lookup_provider(token, tag)
        if provider is None:
            if optional:
                return None
            self._raise_not_found(token, tag)

        scope = provider.meta.scope
        if scope in _ROOT_SCOPES and self._parent is not None:
            return self._parent._resolve(token, tag, optional, ctx)

        if ctx.in_cycle(key):
            trace = ctx.get_trace()
            trace.append(token_name(token))
            raise DependencyCycleError(trace)

        ctx.push(key)
        try:
            instance = provider.instantiate(_child_ctx(ctx, self))
        finally:
            ctx.pop()

        # Outside a request scope a request-scoped provider behaves as transient.
        if scope in _ROOT_SCOPES or (scope == "request" and self._scope == "request"):
            self._cache[key] = instance
        return instance

    def create_request_scope(self) -> "Container":
        """Create a request-scoped child container (cheap)."""
        child = Container.__new__(Container)
        child._providers = self._providers
        child._cache = {}
        child._scope = "request"
        child._parent = self
        return child

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lookup_provider(self, token: Any, tag: Optional[str]) -> Optional[Any]:
        provider = self._providers.get((token, tag))
        if provider is not None:
            return provider
        if self._parent is not None:
            return self._parent._lookup_provider(token, tag)
        return None

    def _raise_not_found(self, token: Any, tag: Optional[str]) -> None:
        name = token_name(token)
        short = name.rsplit(".", 1)[-1]
        candidates: List[str] = [
            token_name(t) for (t, _tag) in self._providers if short in token_name(t)
        ]
        raise ProviderNotFoundError(token=name, tag=tag, candidates=candidates)

    def __repr__(self) -> str:
        return f"<Container scope={self._scope} providers={len(self._providers)}>"


def _child_ctx(ctx: ResolveCtx, container: Container) -> ResolveCtx:
    """Share the resolution stack while pointing dependencies at *container*."""
    if ctx.container is container:
        return ctx
    child = ResolveCtx(container)
    child.stack = ctx.stack
    return child
