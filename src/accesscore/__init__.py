from .config import AccessConfig, Environment, LogLevel, load_access_config_from_env
from .exceptions import (
    AccessCoreError,
    CacheBackendError,
    ClaimValidationError,
    ConfigurationError,
    InvalidActionError,
    InvalidFormatError,
    InvalidResourceError,
    InvalidScopeError,
    UnknownActionError,
    UnknownResourceError,
    UnknownScopeError,
)
from .logging import (
    AccessLogFormatter,
    AccessLoggerAdapter,
    get_access_logger,
    redact_secrets,
    safe_log_value,
    safe_preview,
    setup_logging,
)
from .permissions import (
    DEFAULT_ROLES,
    AccessEngine,
    ActionType,
    AuditEvent,
    AuthorizedUser,
    Decision,
    DecisionCache,
    DecisionOptions,
    InMemoryAuditSink,
    LoggingAuditSink,
    PermissionChangeEvent,
    PermissionClaim,
    Principal,
    ReasonCode,
    RedisDecisionCache,
    ResourceType,
    RiskLevel,
    Role,
    ScopeType,
    cache_stats,
    decide,
    decode_claim,
    effective_permissions,
    encode_claim,
    get_access_engine,
    has_permission,
    invalidate_cache,
    is_stronger,
    record_permission_change,
    reset_access_engine,
    risk_of,
    role_effective_permissions,
    scope_breadth,
    validate_claim,
    validate_role,
)

__all__ = [
    'AccessConfig',
    'Environment',
    'LogLevel',
    'load_access_config_from_env',
    'AccessCoreError',
    'CacheBackendError',
    'ClaimValidationError',
    'ConfigurationError',
    'InvalidActionError',
    'InvalidFormatError',
    'InvalidResourceError',
    'InvalidScopeError',
    'UnknownActionError',
    'UnknownResourceError',
    'UnknownScopeError',
    'AccessLogFormatter',
    'AccessLoggerAdapter',
    'get_access_logger',
    'redact_secrets',
    'safe_log_value',
    'safe_preview',
    'setup_logging',
    'DEFAULT_ROLES',
    'AccessEngine',
    'ActionType',
    'AuditEvent',
    'AuthorizedUser',
    'Decision',
    'DecisionCache',
    'DecisionOptions',
    'InMemoryAuditSink',
    'LoggingAuditSink',
    'PermissionChangeEvent',
    'PermissionClaim',
    'Principal',
    'ReasonCode',
    'RedisDecisionCache',
    'ResourceType',
    'RiskLevel',
    'Role',
    'ScopeType',
    'cache_stats',
    'decide',
    'decode_claim',
    'effective_permissions',
    'encode_claim',
    'get_access_engine',
    'has_permission',
    'invalidate_cache',
    'is_stronger',
    'record_permission_change',
    'reset_access_engine',
    'risk_of',
    'role_effective_permissions',
    'scope_breadth',
    'validate_claim',
    'validate_role',
]
