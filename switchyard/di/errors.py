"""
DI-specific error types with rich diagnostics.
"""

from typing import Any, List, Optional


class DIError(Exception):
    """Base exception for DI errors."""
    pass


class ProviderNotFoundError(DIError):
    """Provider not found for requested token."""

    def __init__(
        self,
        token: str,
        tag: Optional[str] = None,
        candidates: Optional[List[str]] = None,
    ):
        self.token = token
        self.tag = tag
        self.candidates = candidates or []

        msg = f"No provider found for token={token}"
        if tag:
            msg += f" (tag={tag})"

        if self.candidates:
            msg += "\n\nCandidates found:"
            for candidate in self.candidates:
                msg += f"\n  - {candidate}"

        msg += "\n\nSuggested fixes:"
        msg += f"\n  - Register a provider for {token}"
        msg += "\n  - Use container.bind_value(...) for pre-built instances"

        super().__init__(msg)


class DependencyCycleError(DIError):
    """Circular dependency detected."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle

        msg = "Detected dependency cycle:"
        for i, token in enumerate(cycle):
            arrow = " -> " if i < len(cycle) - 1 else ""
            msg += f"\n  {token}{arrow}"

        msg += "\n\nSuggested fixes:"
        msg += "\n  - Extract interface to decouple directionally"
        msg += "\n  - Use bind_factory(...) to defer construction"

        super().__init__(msg)


class ProviderConflictError(DIError):
    """A different provider is already registered under the same token."""

    def __init__(self, token: str, tag: Optional[str], existing: Any):
        self.token = token
        self.tag = tag
        self.existing = existing
        super().__init__(
            f"Provider for {token} (tag={tag}) already registered: {existing.meta.name}"
        )
