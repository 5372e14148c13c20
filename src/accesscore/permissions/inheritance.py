"""Role inheritance resolution and default role templates.

Provides:
- ``RoleResolver`` — transitive permission closure over ``inherits_from``.
- ``role_effective_permissions()`` / ``role_has_permission()`` — one-shot helpers.
- ``DEFAULT_ROLES`` — reference role templates.

The inheritance graph is addressed by role id and may contain cycles.
Each resolution keeps its own traversal state, so resolving never marks
or mutates a Role and concurrent resolutions cannot interfere.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

from .claims import ClaimLike, PermissionClaim, to_claim
from .constants import OrganizationalLevel
from .models import Role, RoleSource, as_role_lookup

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleResolution:
    """Outcome of resolving one role.

    - permissions: Union of direct grants of every active role reached.
    - visited: Ids of the active roles that contributed, in visit order.
    - cycles: ``(from_id, to_id)`` edges that closed a cycle and were pruned.
    """

    role_id: str
    permissions: frozenset[PermissionClaim]
    visited: tuple[str, ...] = ()
    cycles: tuple[tuple[str, str], ...] = ()

    @property
    def has_cycle(self) -> bool:
        return bool(self.cycles)


class RoleResolver:
    """Resolves effective permissions of roles against one role snapshot.

    Args:
        roles: Role collection, ``{id: Role}`` mapping, or lookup callable.
        enable_inheritance: When False, a role resolves to exactly its
            direct permissions and ``inherits_from`` is ignored.

    Example::

        resolver = RoleResolver([director, specialist])
        resolver.effective_permissions(director)
    """

    def __init__(self, roles: RoleSource, *, enable_inheritance: bool = True) -> None:
        self._lookup = as_role_lookup(roles)
        self._enable_inheritance = enable_inheritance

    def lookup(self, role_id: str) -> Role | None:
        return self._lookup(role_id)

    def resolve(self, role: Role) -> RoleResolution:
        """Depth-first closure from ``role``.

        Roles on the current path are "open"; an edge back to an open role
        is a cycle and is pruned without failing. Roles already finished
        through another branch are skipped, since their permissions are
        already in the result. Inactive roles prune their whole subtree.
        """
        if not role.is_active:
            return RoleResolution(role_id=role.id, permissions=frozenset())

        permissions: set[PermissionClaim] = set()
        visited: list[str] = []
        cycles: list[tuple[str, str]] = []
        open_ids: set[str] = set()
        done_ids: set[str] = set()

        # Explicit stack of (role, remaining parent ids); depth is unbounded
        stack: list[tuple[Role, Iterator[str]]] = []

        def enter(current: Role) -> None:
            open_ids.add(current.id)
            visited.append(current.id)
            permissions.update(current.permissions)
            parents = current.inherits_from if self._enable_inheritance else ()
            stack.append((current, iter(parents)))

        enter(role)
        while stack:
            current, parents = stack[-1]
            parent_id = next(parents, None)
            if parent_id is None:
                stack.pop()
                open_ids.discard(current.id)
                done_ids.add(current.id)
                continue
            if parent_id in open_ids:
                logger.warning(
                    "Circular role inheritance detected: %s -> %s",
                    current.id,
                    parent_id,
                )
                cycles.append((current.id, parent_id))
                continue
            if parent_id in done_ids:
                continue
            parent = self._lookup(parent_id)
            if parent is None:
                logger.debug("Role '%s' inherits from unknown role '%s'", current.id, parent_id)
                continue
            if not parent.is_active:
                done_ids.add(parent_id)
                continue
            enter(parent)

        return RoleResolution(
            role_id=role.id,
            permissions=frozenset(permissions),
            visited=tuple(visited),
            cycles=tuple(cycles),
        )

    def effective_permissions(self, role: Role) -> frozenset[PermissionClaim]:
        return self.resolve(role).permissions

    def has_permission(self, role: Role, claim: ClaimLike) -> bool:
        return to_claim(claim) in self.effective_permissions(role)


def role_effective_permissions(
    role: Role,
    all_roles: RoleSource,
    *,
    enable_inheritance: bool = True,
) -> frozenset[PermissionClaim]:
    """Effective permissions of ``role`` (direct + inherited).

    Example::

        >>> a = Role("a", permissions=["member:view:all"], inherits_from=["b"])
        >>> b = Role("b", permissions=["service:view:all"], inherits_from=["a"])
        >>> sorted(map(str, role_effective_permissions(a, [a, b])))
        ['member:view:all', 'service:view:all']
    """
    return RoleResolver(all_roles, enable_inheritance=enable_inheritance).effective_permissions(role)


def role_has_permission(
    role: Role,
    claim: ClaimLike,
    all_roles: RoleSource,
    *,
    enable_inheritance: bool = True,
) -> bool:
    return RoleResolver(all_roles, enable_inheritance=enable_inheritance).has_permission(role, claim)


# ── Default Role Templates ──────────────────────────────

DEFAULT_ROLES: tuple[Role, ...] = (
    Role(
        id="executive-director",
        name="Executive Director",
        description="Full administrative access to all systems and services",
        level=OrganizationalLevel.EXECUTIVE,
        permissions=(
            "employee:view:all",
            "employee:create:all",
            "employee:update:all",
            "employee:delete:all",
            "member:view:all",
            "member:create:all",
            "member:update:all",
            "member:delete:all",
            "service:view:all",
            "service:create:all",
            "service:update:all",
            "service:configure:all",
            "service:provision:all",
            "application:view:all",
            "application:create:all",
            "application:update:all",
            "application:configure:all",
            "billing:view:all",
            "billing:update:all",
            "report:view:all",
            "report:create:all",
            "equipment:view:all",
            "equipment:update:all",
        ),
    ),
    Role(
        id="technology-director",
        name="Technology Director",
        description="Manages technical services and infrastructure",
        level=OrganizationalLevel.DIRECTOR,
        permissions=(
            "employee:view:department",
            "employee:update:department",
            "member:view:all",
            "member:update:assigned",
            "service:view:all",
            "service:update:all",
            "service:configure:all",
            "service:provision:assigned",
            "application:view:all",
            "application:update:all",
            "application:configure:assigned",
            "equipment:view:all",
            "equipment:update:assigned",
            "report:view:department",
        ),
    ),
    Role(
        id="service-specialist",
        name="Service Specialist",
        description="Handles specific service areas and member support",
        level=OrganizationalLevel.SPECIALIST,
        permissions=(
            "member:view:assigned",
            "member:update:assigned",
            "service:view:assigned",
            "service:update:assigned",
            "application:view:assigned",
            "application:update:assigned",
            "user:view:assigned",
            "feedback:view:all",
            "feedback:update:assigned",
            "equipment:view:assigned",
        ),
    ),
    Role(
        id="support-staff",
        name="Support Staff",
        description="Provides technical support and assistance",
        level=OrganizationalLevel.SUPPORT,
        permissions=(
            "member:view:assigned",
            "user:view:assigned",
            "feedback:view:all",
            "feedback:update:all",
            "service:view:assigned",
            "application:view:assigned",
        ),
    ),
    Role(
        id="helpdesk-specialist",
        name="Help Desk Specialist",
        description="First-line support and ticket management",
        level=OrganizationalLevel.HELPDESK,
        permissions=(
            "user:view:all",
            "feedback:view:all",
            "feedback:update:all",
            "service:view:assigned",
        ),
    ),
)


__all__ = [
    "DEFAULT_ROLES",
    "RoleResolution",
    "RoleResolver",
    "role_effective_permissions",
    "role_has_permission",
]
