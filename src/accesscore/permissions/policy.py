"""Scope breadth and risk classification for permission claims.

Provides:
- ``scope_breadth()`` — fixed total order of scopes, none (0) .. all (6).
- ``is_stronger()`` — compare two claims on the same resource.
- ``risk_of()`` — risk band of an access (resource, action, scope).
- ``change_risk()`` — risk band of granting/revoking a claim.
- ``sort_by_risk()`` — order claims by action risk, highest first.

All lookups go through the static tables in :mod:`.constants`.
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..exceptions import UnknownActionError, UnknownResourceError, UnknownScopeError
from .claims import ClaimLike, PermissionClaim, coerce_part, to_claim
from .constants import (
    ACTION_DEFINITIONS,
    RESOURCE_DEFINITIONS,
    SCOPE_DEFINITIONS,
    ActionType,
    ResourceType,
    RiskLevel,
    ScopeType,
)

# Scope breadth bands for risk: breadth >= 5 is high, >= 3 medium, else low
HIGH_RISK_BREADTH = 5
MEDIUM_RISK_BREADTH = 3


def scope_breadth(scope: ScopeType | str) -> int:
    """Rank of a scope by reach: none=0 < owned < assigned < district
    < department < region < all=6."""
    return SCOPE_DEFINITIONS[coerce_part(ScopeType, scope, UnknownScopeError, "Unknown scope")].level


def action_risk(action: ActionType | str) -> RiskLevel:
    return ACTION_DEFINITIONS[coerce_part(ActionType, action, UnknownActionError, "Unknown action")].risk_level


def resource_risk(resource: ResourceType | str) -> RiskLevel:
    resource_t = coerce_part(ResourceType, resource, UnknownResourceError, "Unknown resource type")
    return RESOURCE_DEFINITIONS[resource_t].risk_level


def scope_risk(scope: ScopeType | str) -> RiskLevel:
    breadth = scope_breadth(scope)
    if breadth >= HIGH_RISK_BREADTH:
        return RiskLevel.HIGH
    if breadth >= MEDIUM_RISK_BREADTH:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def max_risk(*levels: RiskLevel) -> RiskLevel:
    return max(levels, key=lambda level: level.rank)


def is_stronger(claim_a: ClaimLike, claim_b: ClaimLike) -> bool:
    """Whether ``claim_a`` is a stronger grant than ``claim_b``.

    - Different resources: not comparable, returns False.
    - Different actions: the riskier action wins.
    - Same action: the broader scope wins.

    Example::

        is_stronger("member:view:all", "member:view:assigned")  # True
        is_stronger("member:view:all", "service:view:all")      # False
    """
    a = to_claim(claim_a)
    b = to_claim(claim_b)

    if a.resource is not b.resource:
        return False

    if a.action is not b.action:
        return action_risk(a.action).rank > action_risk(b.action).rank

    return scope_breadth(a.scope) > scope_breadth(b.scope)


def risk_of(
    resource: ResourceType | str,
    action: ActionType | str,
    scope: ScopeType | str,
) -> RiskLevel:
    """Risk of an access: max of resource risk, action risk, and scope band.

    Example::

        risk_of("contact", "view", "owned")     # RiskLevel.LOW
        risk_of("contact", "view", "region")    # RiskLevel.HIGH (scope band)
        risk_of("billing", "view", "owned")     # RiskLevel.CRITICAL (resource)
    """
    return max_risk(resource_risk(resource), action_risk(action), scope_risk(scope))


def claim_risk(claim: ClaimLike) -> RiskLevel:
    c = to_claim(claim)
    return risk_of(c.resource, c.action, c.scope)


def change_risk(permission: Optional[ClaimLike] = None) -> RiskLevel:
    """Risk of a permission change (grant/revoke/modify).

    Max of the claim's resource and action risk; scope is not considered.
    Changes without a specific claim (e.g. role metadata edits) are medium.
    """
    if permission is None:
        return RiskLevel.MEDIUM
    c = to_claim(permission)
    return max_risk(resource_risk(c.resource), action_risk(c.action))


def sort_by_risk(claims: Iterable[ClaimLike]) -> list[PermissionClaim]:
    """Claims ordered by action risk, highest first; ties by claim string."""
    parsed = [to_claim(c) for c in claims]
    return sorted(parsed, key=lambda c: (-action_risk(c.action).rank, str(c)))


__all__ = [
    "HIGH_RISK_BREADTH",
    "MEDIUM_RISK_BREADTH",
    "action_risk",
    "change_risk",
    "claim_risk",
    "is_stronger",
    "max_risk",
    "resource_risk",
    "risk_of",
    "scope_breadth",
    "scope_risk",
    "sort_by_risk",
]
