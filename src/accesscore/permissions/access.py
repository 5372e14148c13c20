"""Access decision engine.

Answers "may this principal perform this action on this resource at this
scope?" and enumerates what a principal may do. Used by request
middleware, UI guards, and reporting collaborators.

Decision order (first applicable outcome wins):
1. No principal → denied ("not authenticated").
2. Inactive principal → denied ("account inactive").
3. Encode the claim; validation errors propagate to the caller.
4. Live cache entry → cached verdict.
5. Claim in the principal's direct permissions → granted.
6. Claim in the effective permissions of an active held role → granted,
   reason names the role. Otherwise denied ("insufficient permissions").
7. Store the verdict in the cache.

Every decision is offered to the audit sink, best effort.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..config import AccessConfig
from ..exceptions import CacheBackendError, ClaimValidationError, ConfigurationError
from .audit import ANONYMOUS, AuditEvent, AuditSink, LoggingAuditSink, emit_audit_event
from .cache import CacheStats, DecisionCache, DecisionCacheBackend, RedisDecisionCache
from .claims import PermissionClaim, encode_claim
from .constants import ActionType, ResourceType, RiskLevel, ScopeType
from .inheritance import RoleResolver
from .models import AuthorizedUser, Role, RoleSource
from .policy import claim_risk, risk_of
from .policy import sort_by_risk as order_by_risk

logger = logging.getLogger(__name__)


class ReasonCode(str, Enum):
    """Machine-readable decision reason."""

    GRANTED_DIRECT = "GRANTED_DIRECT"
    GRANTED_ROLE = "GRANTED_ROLE"
    GRANTED_CACHED = "GRANTED_CACHED"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"


REASON_NOT_AUTHENTICATED = "not authenticated"
REASON_ACCOUNT_INACTIVE = "account inactive"
REASON_DIRECT_PERMISSION = "direct permission"
REASON_INSUFFICIENT = "insufficient permissions"
REASON_CACHED = "cached decision"


@dataclass(frozen=True)
class Decision:
    """Outcome of a single access check. Denial is data, not an exception.

    - reason: Human-readable reason ("direct permission", "role: Support Staff", ...).
    - reason_code: Machine-readable ReasonCode.
    - required_claim: The exact claim string that was checked.
    - source: Role id that granted access, if granted by a role.
    - cached: Whether the verdict came from the decision cache.
    """

    granted: bool
    reason: str
    reason_code: ReasonCode
    required_claim: str = ""
    source: Optional[str] = None
    cached: bool = False

    def __bool__(self) -> bool:
        return self.granted

    @property
    def message(self) -> str:
        """User-facing message, e.g. ``insufficient permissions: service:configure:all``."""
        if not self.granted and self.required_claim:
            return f"{self.reason}: {self.required_claim}"
        return self.reason


@dataclass
class DecisionOptions:
    """Per-call switches.

    - use_cache: Read and write the decision cache (also gated by config).
    - log_access: Offer the decision to the audit sink (also gated by config).
    - context: Free-form audit context (request id, path, ip, ...).
    """

    use_cache: bool = True
    log_access: bool = True
    context: dict[str, Any] = field(default_factory=dict)


class AccessEngine:
    """Permission resolution core.

    The engine itself holds no role or user state; both arrive per call as
    an immutable snapshot. The only shared mutable state is the decision
    cache, which is safe for concurrent use.

    Args:
        config: AccessConfig (feature flags, cache TTL). Defaults apply if None.
        cache: Decision cache backend. Defaults to RedisDecisionCache when
            ``config.redis_url`` is set, otherwise an in-memory DecisionCache.
        audit_sink: Receiver of AuditEvents. Defaults to LoggingAuditSink.

    Example::

        engine = AccessEngine()
        decision = engine.decide(user, "service", "configure", "all", roles)
        if not decision:
            raise PermissionError(decision.message)
    """

    def __init__(
        self,
        config: AccessConfig | None = None,
        *,
        cache: DecisionCacheBackend | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self._config = config or AccessConfig()
        if cache is None:
            cache = self._default_cache(self._config)
        self._cache: DecisionCacheBackend = cache
        self._audit_sink: AuditSink = audit_sink if audit_sink is not None else LoggingAuditSink()

    @property
    def config(self) -> AccessConfig:
        return self._config

    @property
    def cache(self) -> DecisionCacheBackend:
        return self._cache

    @staticmethod
    def _default_cache(config: AccessConfig) -> DecisionCacheBackend:
        """Redis-backed when ``config.redis_url`` is set, in-memory otherwise."""
        if not config.redis_url:
            return DecisionCache(ttl_seconds=config.cache_ttl_seconds)
        try:
            cache = RedisDecisionCache.from_url(config.redis_url, ttl_seconds=config.cache_ttl_seconds)
        except ImportError as e:
            raise ConfigurationError(
                "redis_url is set but the redis package is not installed (pip install accesscore[redis])"
            ) from e
        logger.info("Using Redis decision cache")
        return cache

    def _resolver(self, roles: RoleSource) -> RoleResolver:
        return RoleResolver(roles, enable_inheritance=self._config.enable_role_inheritance)

    # ── Decisions ───────────────────────────────────────

    def decide(
        self,
        principal: AuthorizedUser | None,
        resource: ResourceType | str,
        action: ActionType | str,
        scope: ScopeType | str,
        roles: RoleSource,
        options: DecisionOptions | None = None,
    ) -> Decision:
        """Decide one access request.

        Args:
            principal: The authenticated user, or None.
            resource / action / scope: Parts of the required claim.
            roles: Role snapshot (collection, ``{id: Role}``, or lookup callable).
            options: Per-call switches.

        Returns:
            Decision.

        Raises:
            ClaimValidationError: if resource, action, or scope is invalid.
        """
        options = options or DecisionOptions()
        start = time.perf_counter()

        if principal is None:
            decision = Decision(False, REASON_NOT_AUTHENTICATED, ReasonCode.NOT_AUTHENTICATED)
            self._audit(None, _part(resource), _part(action), _part(scope), decision, options)
            return decision

        if not principal.is_active:
            decision = Decision(False, REASON_ACCOUNT_INACTIVE, ReasonCode.ACCOUNT_INACTIVE)
            self._audit(principal, _part(resource), _part(action), _part(scope), decision, options)
            return decision

        claim = encode_claim(resource, action, scope)
        use_cache = self._config.cache_enabled and options.use_cache

        cached = self._cache_get(principal.id, claim) if use_cache else None
        if cached is not None:
            if cached:
                decision = Decision(True, REASON_CACHED, ReasonCode.GRANTED_CACHED, str(claim), cached=True)
            else:
                decision = Decision(
                    False, REASON_INSUFFICIENT, ReasonCode.INSUFFICIENT_PERMISSIONS, str(claim), cached=True
                )
            self._audit(principal, *claim.as_tuple(), decision, options, claim=claim)
            return decision

        decision = self._evaluate(principal, claim, roles)

        if use_cache:
            self._cache_put(principal.id, claim, decision.granted)

        self._audit(principal, *claim.as_tuple(), decision, options, claim=claim)

        duration_ms = (time.perf_counter() - start) * 1000
        if duration_ms > self._config.slow_check_ms:
            logger.warning("Slow permission check: %.2fms for %s", duration_ms, claim)

        return decision

    def _evaluate(self, principal: AuthorizedUser, claim: PermissionClaim, roles: RoleSource) -> Decision:
        if claim in principal.direct_permissions:
            return Decision(True, REASON_DIRECT_PERMISSION, ReasonCode.GRANTED_DIRECT, str(claim))

        resolver = self._resolver(roles)
        for role in self._active_roles(principal, resolver):
            if claim in resolver.effective_permissions(role):
                return Decision(True, f"role: {role.name}", ReasonCode.GRANTED_ROLE, str(claim), source=role.id)

        return Decision(False, REASON_INSUFFICIENT, ReasonCode.INSUFFICIENT_PERMISSIONS, str(claim))

    @staticmethod
    def _active_roles(principal: AuthorizedUser, resolver: RoleResolver) -> list[Role]:
        active = []
        for role_id in principal.roles:
            role = resolver.lookup(role_id)
            if role is None:
                logger.debug("Principal '%s' holds unknown role '%s'", principal.id, role_id)
                continue
            if role.is_active:
                active.append(role)
        return active

    def has_permission(
        self,
        principal: AuthorizedUser | None,
        resource: ResourceType | str,
        action: ActionType | str,
        scope: ScopeType | str,
        roles: RoleSource,
        options: DecisionOptions | None = None,
    ) -> bool:
        return self.decide(principal, resource, action, scope, roles, options).granted

    # ── Enumeration ─────────────────────────────────────

    def effective_permissions(
        self,
        principal: AuthorizedUser,
        roles: RoleSource,
        *,
        sort_by_risk: bool = False,
    ) -> frozenset[PermissionClaim] | list[PermissionClaim]:
        """Everything ``principal`` may do: direct grants plus role closure.

        An inactive principal has no effective permissions.

        Args:
            sort_by_risk: Return a list ordered by action risk (highest first)
                instead of a frozenset.
        """
        if not principal.is_active:
            return [] if sort_by_risk else frozenset()

        resolver = self._resolver(roles)
        permissions: set[PermissionClaim] = set(principal.direct_permissions)
        for role in self._active_roles(principal, resolver):
            permissions.update(resolver.effective_permissions(role))

        if sort_by_risk:
            return order_by_risk(permissions)
        return frozenset(permissions)

    def role_effective_permissions(self, role: Role, roles: RoleSource) -> frozenset[PermissionClaim]:
        return self._resolver(roles).effective_permissions(role)

    # ── Cache ───────────────────────────────────────────

    def invalidate_cache(self, principal_id: Optional[str] = None) -> int:
        """Drop cached decisions for one principal, or all of them.

        Must be called after any change to a role's permissions, a user's
        direct grants, or a user's role memberships.

        Raises:
            CacheBackendError: if a remote cache could not be cleared.
        """
        try:
            return self._cache.invalidate(principal_id)
        except CacheBackendError as e:
            logger.error("Decision cache invalidation failed (principal=%s): %s", principal_id or "*", e)
            raise

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    def _cache_get(self, principal_id: str, claim: PermissionClaim) -> Optional[bool]:
        try:
            return self._cache.get(principal_id, claim)
        except CacheBackendError as e:
            logger.warning("Decision cache unavailable, recomputing: %s", e)
            return None

    def _cache_put(self, principal_id: str, claim: PermissionClaim, granted: bool) -> None:
        try:
            self._cache.put(principal_id, claim, granted)
        except CacheBackendError as e:
            logger.warning("Decision cache store skipped: %s", e)

    # ── Audit ───────────────────────────────────────────

    def _audit(
        self,
        principal: AuthorizedUser | None,
        resource: str,
        action: str,
        scope: str,
        decision: Decision,
        options: DecisionOptions,
        *,
        claim: PermissionClaim | None = None,
    ) -> None:
        if not (options.log_access and self._config.enable_audit_logging):
            return
        try:
            event = AuditEvent(
                principal_id=principal.id if principal else ANONYMOUS,
                resource=resource,
                action=action,
                scope=scope,
                granted=decision.granted,
                reason=decision.reason,
                reason_code=decision.reason_code.value,
                risk_level=claim_risk(claim) if claim else _risk_or_low(resource, action, scope),
                cached=decision.cached,
                context=dict(options.context),
            )
        except Exception:
            logger.exception("Error building audit event for %s:%s:%s", resource, action, scope)
            return
        emit_audit_event(self._audit_sink, event)


def _part(value: Any) -> str:
    """String form of a claim part as given by the caller (enum or raw)."""
    return value.value if isinstance(value, Enum) else str(value)


def _risk_or_low(resource: str, action: str, scope: str) -> RiskLevel:
    # Unvalidated triple (early denial); unknown parts rate as low
    try:
        return risk_of(resource, action, scope)
    except ClaimValidationError:
        return RiskLevel.LOW


# ── Module-level API (singleton engine) ─────────────────

_engine: AccessEngine | None = None


def get_access_engine(config: AccessConfig | None = None) -> AccessEngine:
    """Get or create the singleton AccessEngine.

    Args:
        config: Configuration (used only on first call).
    """
    global _engine
    if _engine is None:
        _engine = AccessEngine(config)
    return _engine


def reset_access_engine() -> None:
    """Reset the singleton (for testing)."""
    global _engine
    _engine = None


def decide(
    principal: AuthorizedUser | None,
    resource: ResourceType | str,
    action: ActionType | str,
    scope: ScopeType | str,
    roles: RoleSource,
    options: DecisionOptions | None = None,
) -> Decision:
    """Decide an access request with the singleton engine."""
    return get_access_engine().decide(principal, resource, action, scope, roles, options)


def has_permission(
    principal: AuthorizedUser | None,
    resource: ResourceType | str,
    action: ActionType | str,
    scope: ScopeType | str,
    roles: RoleSource,
    options: DecisionOptions | None = None,
) -> bool:
    return get_access_engine().has_permission(principal, resource, action, scope, roles, options)


def effective_permissions(
    principal: AuthorizedUser,
    roles: RoleSource,
    *,
    sort_by_risk: bool = False,
) -> frozenset[PermissionClaim] | list[PermissionClaim]:
    return get_access_engine().effective_permissions(principal, roles, sort_by_risk=sort_by_risk)


def invalidate_cache(principal_id: Optional[str] = None) -> int:
    return get_access_engine().invalidate_cache(principal_id)


def cache_stats() -> CacheStats:
    return get_access_engine().cache_stats()


__all__ = [
    "AccessEngine",
    "Decision",
    "DecisionOptions",
    "ReasonCode",
    "cache_stats",
    "decide",
    "effective_permissions",
    "get_access_engine",
    "has_permission",
    "invalidate_cache",
    "reset_access_engine",
]
