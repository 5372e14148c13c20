"""Permission resolution core.

Defines:
- Claim vocabulary: ResourceType, ActionType, ScopeType + metadata tables
- PermissionClaim codec: encode_claim() / decode_claim()
- Role / AuthorizedUser snapshots
- Role inheritance resolution with cycle detection
- Scope breadth and risk comparison
- AccessEngine: decide(), effective_permissions(), decision cache, audit hooks
"""

from .access import (
    AccessEngine,
    Decision,
    DecisionOptions,
    ReasonCode,
    cache_stats,
    decide,
    effective_permissions,
    get_access_engine,
    has_permission,
    invalidate_cache,
    reset_access_engine,
)
from .audit import (
    AuditEvent,
    AuditSink,
    InMemoryAuditSink,
    LoggingAuditSink,
    PermissionChangeEvent,
    emit_audit_event,
    record_permission_change,
)
from .cache import CacheStats, DecisionCache, RedisDecisionCache
from .claims import PermissionClaim, decode_claim, encode_claim
from .constants import (
    ACTION_DEFINITIONS,
    ORGANIZATIONAL_LEVELS,
    RESOURCE_DEFINITIONS,
    SCOPE_DEFINITIONS,
    ActionCategory,
    ActionType,
    OrganizationalLevel,
    ResourceType,
    RiskLevel,
    ScopeType,
)
from .inheritance import (
    DEFAULT_ROLES,
    RoleResolution,
    RoleResolver,
    role_effective_permissions,
    role_has_permission,
)
from .models import AuthorizedUser, Principal, Role
from .policy import (
    change_risk,
    is_stronger,
    risk_of,
    scope_breadth,
    sort_by_risk,
)
from .validation import ValidationIssue, validate_claim, validate_role

__all__ = [
    "ACTION_DEFINITIONS",
    "DEFAULT_ROLES",
    "ORGANIZATIONAL_LEVELS",
    "RESOURCE_DEFINITIONS",
    "SCOPE_DEFINITIONS",
    "AccessEngine",
    "ActionCategory",
    "ActionType",
    "AuditEvent",
    "AuditSink",
    "AuthorizedUser",
    "CacheStats",
    "Decision",
    "DecisionCache",
    "DecisionOptions",
    "InMemoryAuditSink",
    "LoggingAuditSink",
    "OrganizationalLevel",
    "PermissionChangeEvent",
    "PermissionClaim",
    "Principal",
    "ReasonCode",
    "RedisDecisionCache",
    "ResourceType",
    "RiskLevel",
    "Role",
    "RoleResolution",
    "RoleResolver",
    "ScopeType",
    "ValidationIssue",
    "cache_stats",
    "change_risk",
    "decide",
    "decode_claim",
    "effective_permissions",
    "emit_audit_event",
    "encode_claim",
    "get_access_engine",
    "has_permission",
    "invalidate_cache",
    "is_stronger",
    "record_permission_change",
    "reset_access_engine",
    "risk_of",
    "role_effective_permissions",
    "role_has_permission",
    "scope_breadth",
    "sort_by_risk",
    "validate_claim",
    "validate_role",
]
