"""Unified exception hierarchy for accesscore.

All errors raised by the authorization core inherit from AccessCoreError.
This module provides:
- Base exception hierarchy with stable error codes
- Claim validation errors raised by the claim codec
- ErrorRegistry for mapping codes back to exception classes

Authorization denial is NOT an error: ``decide()`` returns a Decision with
``granted=False``. Only malformed input and broken configuration raise.

Usage:
    from accesscore.exceptions import (
        AccessCoreError,
        ClaimValidationError,
        UnknownResourceError,
    )

    try:
        claim = decode_claim(raw)
    except ClaimValidationError as e:
        return {"error": e.code, "message": e.message}
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "AccessCoreError",
    "ConfigurationError",
    "CacheBackendError",
    # Claim codec
    "ClaimValidationError",
    "InvalidFormatError",
    "UnknownResourceError",
    "UnknownActionError",
    "UnknownScopeError",
    "InvalidResourceError",
    "InvalidActionError",
    "InvalidScopeError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
]

logger = logging.getLogger(__name__)


# ---- Exception Hierarchy ----------------------------------------------------


class AccessCoreError(Exception):
    """Base exception for the authorization core.

    Attributes:
        code: Stable error code string (e.g. "UNKNOWN_SCOPE").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(AccessCoreError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"


class CacheBackendError(AccessCoreError):
    """Remote decision cache backend failure."""

    code: str = "CACHE_BACKEND_ERROR"


class ClaimValidationError(AccessCoreError):
    """A permission claim or one of its parts failed validation."""

    code: str = "CLAIM_VALIDATION_ERROR"
    message: str = "Invalid permission claim"


class InvalidFormatError(ClaimValidationError):
    """Claim string is not ``resource:action:scope``."""

    code: str = "INVALID_FORMAT"
    message: str = "Permission claim must be in format 'resource:action:scope'"


class UnknownResourceError(ClaimValidationError):
    """Resource segment is not a known ResourceType."""

    code: str = "UNKNOWN_RESOURCE"


class UnknownActionError(ClaimValidationError):
    """Action segment is not a known ActionType."""

    code: str = "UNKNOWN_ACTION"


class UnknownScopeError(ClaimValidationError):
    """Scope segment is not a known ScopeType."""

    code: str = "UNKNOWN_SCOPE"


class InvalidResourceError(UnknownResourceError):
    """Resource argument passed to ``encode_claim`` is not a ResourceType."""

    code: str = "INVALID_RESOURCE"


class InvalidActionError(UnknownActionError):
    """Action argument passed to ``encode_claim`` is not an ActionType."""

    code: str = "INVALID_ACTION"


class InvalidScopeError(UnknownScopeError):
    """Scope argument passed to ``encode_claim`` is not a ScopeType."""

    code: str = "INVALID_SCOPE"


# ---- Error Registry ---------------------------------------------------------

_E = TypeVar("_E", bound=type[AccessCoreError])


class ErrorRegistry:
    """Registry for mapping stable error codes to exception classes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[AccessCoreError]] = {}

    def register(self, code: str, error_cls: type[AccessCoreError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[AccessCoreError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[AccessCoreError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("ROLE_LOOKUP_ERROR")
        class RoleLookupError(AccessCoreError):
            code = "ROLE_LOOKUP_ERROR"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


# Register base errors
for _cls in (
    AccessCoreError,
    ConfigurationError,
    CacheBackendError,
    ClaimValidationError,
    InvalidFormatError,
    UnknownResourceError,
    UnknownActionError,
    UnknownScopeError,
    InvalidResourceError,
    InvalidActionError,
    InvalidScopeError,
):
    error_registry.register(_cls.code, _cls)
