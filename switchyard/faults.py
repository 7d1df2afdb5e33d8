"""
Switchyard faults - Core types and fault taxonomy.

Defines:
- Fault base class (structured fault objects)
- FaultDomain (explicit fault domains)
- Severity levels
- The concrete faults raised by registration, dispatch and the host layer
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional
import logging


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines the logging level used when a fault is reported.
    """
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


# Standard Domains
FaultDomain.CONFIG = FaultDomain("config", "Configuration errors")
FaultDomain.REGISTRY = FaultDomain("registry", "Controller metadata registration errors")
FaultDomain.DI = FaultDomain("di", "Dependency injection errors")
FaultDomain.ROUTING = FaultDomain("routing", "Route compilation and matching errors")
FaultDomain.FLOW = FaultDomain("flow", "Handler execution errors")
FaultDomain.IO = FaultDomain("io", "Response I/O errors")


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: Severity.FATAL,
    FaultDomain.REGISTRY: Severity.FATAL,
    FaultDomain.DI: Severity.ERROR,
    FaultDomain.ROUTING: Severity.ERROR,
    FaultDomain.FLOW: Severity.ERROR,
    FaultDomain.IO: Severity.WARN,
}

SEVERITY_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.FATAL: logging.CRITICAL,
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    Attributes:
        code: Stable machine-readable identifier (e.g., "DUPLICATE_CONTROLLER")
        message: Human-readable summary
        domain: Fault domain (REGISTRY, ROUTING, FLOW, ...)
        severity: Fault severity
        public: Whether safe to expose to client
        metadata: Additional context data

    Subclasses may declare ``code`` and ``domain`` as class attributes and
    only pass a message.
    """

    code: Optional[str] = None
    domain: Optional[FaultDomain] = None

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.code = code if code is not None else type(self).code
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else type(self).domain

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        self.severity = severity or DOMAIN_DEFAULTS.get(self.domain, Severity.ERROR)
        self.public = public
        self.metadata = metadata or {}

    @property
    def log_level(self) -> int:
        """Logging level matching this fault's severity."""
        return SEVERITY_LOG_LEVELS.get(self.severity, logging.ERROR)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"Fault(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value}, public={self.public})"
        )


# ============================================================================
# Concrete faults
# ============================================================================

class RegistrationFault(Fault):
    """Invalid or conflicting controller/method registration."""
    code = "REGISTRATION_INVALID"
    domain = FaultDomain.REGISTRY

    def __init__(self, message: str, **kwargs):
        super().__init__(message=message, **kwargs)


class MiddlewareFault(Fault):
    """A class-based middleware resolved to something without a handler."""
    code = "MIDDLEWARE_INVALID"
    domain = FaultDomain.FLOW

    def __init__(self, message: str, **kwargs):
        super().__init__(message=message, **kwargs)


class ActionNotFoundFault(Fault):
    """The controller instance has no callable attribute for the action."""
    code = "ACTION_NOT_FOUND"
    domain = FaultDomain.ROUTING

    def __init__(self, controller: str, action: str):
        super().__init__(
            message=f"Controller {controller} has no action '{action}'",
            metadata={"controller": controller, "action": action},
        )


class HandlerCancelledFault(Fault):
    """A handler's pending result was cancelled before it settled."""
    code = "HANDLER_CANCELLED"
    domain = FaultDomain.FLOW

    def __init__(self, handler: str):
        super().__init__(
            message=f"Pending result of {handler} was cancelled",
            metadata={"handler": handler},
        )


class ResponseAlreadySentFault(Fault):
    """A response body was written twice."""
    code = "RESPONSE_ALREADY_SENT"
    domain = FaultDomain.IO

    def __init__(self, message: str = "Cannot send a response after it has been sent"):
        super().__init__(message=message)


__all__ = [
    "Severity",
    "FaultDomain",
    "Fault",
    "RegistrationFault",
    "MiddlewareFault",
    "ActionNotFoundFault",
    "HandlerCancelledFault",
    "ResponseAlreadySentFault",
]
