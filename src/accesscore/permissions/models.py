"""Role and principal snapshots consumed by the decision engine.

Both are frozen: the engine only ever reads them. Role storage and user
storage belong to the caller, which hands the engine an immutable snapshot
per decision.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from .claims import ClaimLike, PermissionClaim, to_claim
from .constants import OrganizationalLevel

logger = logging.getLogger(__name__)


def _claims(values: Iterable[ClaimLike] | None) -> frozenset[PermissionClaim]:
    if not values:
        return frozenset()
    if isinstance(values, (str, PermissionClaim)):
        values = (values,)
    return frozenset(to_claim(v) for v in values)


def _ids(values: Iterable[str] | None) -> tuple[str, ...]:
    if not values:
        return ()
    if isinstance(values, str):
        return (values,)
    return tuple(values)


@dataclass(frozen=True)
class Role:
    """A named bundle of permission claims.

    - id: Stable identifier referenced by principals and ``inherits_from``.
    - name / description / level: Display metadata.
    - permissions: Direct grants (claim strings are parsed on construction).
    - inherits_from: Parent role ids whose permissions this role includes.
      The inheritance graph may contain cycles.
    - is_active: Inactive roles contribute nothing, not even via inheritance.
    """

    id: str
    name: str = ""
    description: str = ""
    level: Optional[OrganizationalLevel] = None
    permissions: frozenset[PermissionClaim] = frozenset()
    inherits_from: tuple[str, ...] = ()
    is_active: bool = True
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "permissions", _claims(self.permissions))
        object.__setattr__(self, "inherits_from", _ids(self.inherits_from))
        if self.level is not None and not isinstance(self.level, OrganizationalLevel):
            object.__setattr__(self, "level", OrganizationalLevel(self.level))
        if not self.name:
            object.__setattr__(self, "name", self.id)

    def grants(self, claim: ClaimLike) -> bool:
        """Direct grant check only; inheritance is resolved elsewhere."""
        return to_claim(claim) in self.permissions


@dataclass(frozen=True)
class AuthorizedUser:
    """An authenticated principal.

    - roles: Role ids held by the principal.
    - direct_permissions: Grants independent of any role.
    - is_active: An inactive principal is denied everything.
    """

    id: str
    name: str = ""
    email: str = ""
    roles: tuple[str, ...] = ()
    direct_permissions: frozenset[PermissionClaim] = frozenset()
    is_active: bool = True
    profile: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "roles", _ids(self.roles))
        object.__setattr__(self, "direct_permissions", _claims(self.direct_permissions))


Principal = AuthorizedUser

RoleLookup = Callable[[str], Optional[Role]]
RoleSource = Union[Iterable[Role], Mapping[str, Role], RoleLookup]


def as_role_lookup(roles: RoleSource) -> RoleLookup:
    """Normalize a role collection, mapping, or lookup callable to ``id -> Role``.

    A lookup that raises is treated as "role not found" for that id; the
    error is logged and the decision continues with what is reachable.
    """
    if isinstance(roles, Mapping):
        raw = roles.get
    elif callable(roles):
        raw = roles
    else:
        index: dict[str, Role] = {}
        for role in roles:
            # First definition wins on duplicate ids
            index.setdefault(role.id, role)
        raw = index.get

    def lookup(role_id: str) -> Optional[Role]:
        try:
            return raw(role_id)
        except Exception:
            logger.exception("Role lookup failed for role '%s'", role_id)
            return None

    return lookup


__all__ = [
    "AuthorizedUser",
    "Principal",
    "Role",
    "RoleLookup",
    "RoleSource",
    "as_role_lookup",
]
