"""Permission claim codec.

A claim is the triple ``resource:action:scope``, e.g. ``service:configure:all``.
The string form is canonical and must stay bit-exact: lowercase tokens,
exactly two colons, no surrounding whitespace.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from ..exceptions import (
    InvalidActionError,
    InvalidFormatError,
    InvalidResourceError,
    InvalidScopeError,
    UnknownActionError,
    UnknownResourceError,
    UnknownScopeError,
)
from .constants import RESOURCE_DEFINITIONS, ActionType, ResourceType, ScopeType

logger = logging.getLogger(__name__)

CLAIM_SEPARATOR = ":"


@dataclass(frozen=True)
class PermissionClaim:
    """One grantable capability: (resource, action, scope).

    Hashable and immutable, so claims can live in sets and serve as cache keys.
    Build with :func:`encode_claim` or :func:`decode_claim` rather than
    directly, so that the parts are validated.
    """

    resource: ResourceType
    action: ActionType
    scope: ScopeType

    def __str__(self) -> str:
        return CLAIM_SEPARATOR.join((self.resource.value, self.action.value, self.scope.value))

    @classmethod
    def parse(cls, claim: str) -> PermissionClaim:
        return decode_claim(claim)

    def as_tuple(self) -> tuple[str, str, str]:
        return (self.resource.value, self.action.value, self.scope.value)


ClaimLike = Union[PermissionClaim, str]


def coerce_part(enum_cls, value, error_cls, kind: str):
    """``enum_cls(value)``, raising ``error_cls`` with the segment in ``details`` on failure."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise error_cls(f"{kind}: {value}", segment=value) from None


def encode_claim(
    resource: ResourceType | str,
    action: ActionType | str,
    scope: ScopeType | str,
) -> PermissionClaim:
    """Build a validated claim from its three parts.

    Args:
        resource: A ResourceType or its string value.
        action: An ActionType or its string value.
        scope: A ScopeType or its string value.

    Returns:
        PermissionClaim.

    Raises:
        InvalidResourceError / InvalidActionError / InvalidScopeError:
            if a part is outside its enumeration.

    A scope that is not among the resource's default scopes (and is not
    ``none``) only produces a warning log; the claim is still returned.

    Example::

        str(encode_claim("member", "view", "all"))  # "member:view:all"
    """
    resource_t = coerce_part(ResourceType, resource, InvalidResourceError, "Invalid resource type")
    action_t = coerce_part(ActionType, action, InvalidActionError, "Invalid action")
    scope_t = coerce_part(ScopeType, scope, InvalidScopeError, "Invalid scope")

    definition = RESOURCE_DEFINITIONS[resource_t]
    if scope_t is not ScopeType.NONE and scope_t not in definition.default_scopes:
        logger.warning(
            "Scope '%s' is not typically used with resource '%s'",
            scope_t.value,
            resource_t.value,
        )

    return PermissionClaim(resource_t, action_t, scope_t)


def decode_claim(claim: str) -> PermissionClaim:
    """Parse a canonical ``resource:action:scope`` string.

    Raises:
        InvalidFormatError: not a string, or not exactly three non-empty
            colon-delimited segments.
        UnknownResourceError / UnknownActionError / UnknownScopeError:
            a segment is not in its enumeration; ``details["segment"]``
            names it.

    Example::

        decode_claim("billing:view:all")
        decode_claim("foo")               # InvalidFormatError
        decode_claim("bad:view:all")      # UnknownResourceError
    """
    if not claim or not isinstance(claim, str):
        raise InvalidFormatError("Permission claim is required", claim=claim)

    parts = claim.split(CLAIM_SEPARATOR)
    if len(parts) != 3 or not all(parts):
        raise InvalidFormatError(claim=claim)

    resource, action, scope = parts
    return PermissionClaim(
        coerce_part(ResourceType, resource, UnknownResourceError, "Unknown resource type"),
        coerce_part(ActionType, action, UnknownActionError, "Unknown action"),
        coerce_part(ScopeType, scope, UnknownScopeError, "Unknown scope"),
    )


def to_claim(value: ClaimLike) -> PermissionClaim:
    """Accept either a PermissionClaim or its canonical string."""
    if isinstance(value, PermissionClaim):
        return value
    return decode_claim(value)


__all__ = [
    "CLAIM_SEPARATOR",
    "ClaimLike",
    "PermissionClaim",
    "coerce_part",
    "decode_claim",
    "encode_claim",
    "to_claim",
]
