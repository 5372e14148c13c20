"""Configuration contract for the accesscore authorization engine.

This module provides a Pydantic-validated configuration model holding the
feature flags and tunables of the permission resolution core (role
inheritance, audit logging, decision cache TTL, logging).

RULE: environment variables are read ONLY in load_access_config_from_env().
Everything else receives an AccessConfig instance.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Environment(str, Enum):
    """Deployment environment, used for audit metadata and defaults."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class AccessConfig(BaseModel):
    """Configuration for the authorization core.

    Environment variables (see load_access_config_from_env):
        ACCESS_LOG_LEVEL          — logging level
        ACCESS_LOG_JSON           — JSON log output
        ACCESS_ENVIRONMENT        — development | staging | production
        ACCESS_ROLE_INHERITANCE   — follow role ``inherits_from`` edges
        ACCESS_AUDIT_LOGGING      — emit audit events
        ACCESS_CACHE_ENABLED      — memoize decisions
        ACCESS_CACHE_TTL_SECONDS  — decision cache TTL
        ACCESS_SLOW_CHECK_MS      — slow decision warning threshold
        REDIS_URL                 — optional shared decision cache
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level for the engine",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Deployment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment",
    )
    version: str = Field(
        default="1.0.0",
        description="Engine version recorded in audit metadata",
    )

    # Feature flags
    enable_role_inheritance: bool = Field(
        default=True,
        description="Resolve permissions through role inherits_from edges",
    )
    enable_audit_logging: bool = Field(
        default=True,
        description="Emit access and permission-change audit events",
    )

    # Decision cache
    cache_enabled: bool = Field(
        default=True,
        description="Memoize decisions per (principal, claim)",
    )
    cache_ttl_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Decision cache TTL in seconds (5 minutes)",
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis URL for a shared decision cache (e.g., redis://localhost:6379/0)",
    )

    # Diagnostics
    slow_check_ms: float = Field(
        default=100.0,
        ge=0,
        description="Decisions slower than this are logged as warnings",
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate Redis URL format."""
        if v is None:
            return v
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Redis URL must start with redis://, rediss://, or unix://")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str | Environment) -> Environment:
        if isinstance(v, Environment):
            return v
        try:
            return Environment(str(v).lower())
        except ValueError:
            raise ValueError(f"Invalid environment: {v}. Must be one of {[e.value for e in Environment]}")

    model_config = {
        "extra": "forbid",  # Prevent accidental extra fields
    }


_TRUTHY = ("true", "1", "yes", "on")


def _env_flag(name: str, default: bool) -> bool:
    import os

    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in _TRUTHY


def load_access_config_from_env() -> AccessConfig:
    """Load configuration from environment variables.

    This is the ONLY place where os.getenv is allowed.

    Audit logging defaults off in development and on elsewhere; an explicit
    ACCESS_AUDIT_LOGGING always wins.

    Returns:
        AccessConfig instance with values from environment or defaults.
    """
    import os

    environment = os.getenv("ACCESS_ENVIRONMENT", Environment.DEVELOPMENT.value)
    audit_default = environment.lower() != Environment.DEVELOPMENT.value

    return AccessConfig(
        log_level=os.getenv("ACCESS_LOG_LEVEL", "INFO"),
        log_json=_env_flag("ACCESS_LOG_JSON", False),
        environment=environment,
        enable_role_inheritance=_env_flag("ACCESS_ROLE_INHERITANCE", True),
        enable_audit_logging=_env_flag("ACCESS_AUDIT_LOGGING", audit_default),
        cache_enabled=_env_flag("ACCESS_CACHE_ENABLED", True),
        cache_ttl_seconds=float(os.getenv("ACCESS_CACHE_TTL_SECONDS", "300")),
        slow_check_ms=float(os.getenv("ACCESS_SLOW_CHECK_MS", "100")),
        redis_url=os.getenv("REDIS_URL"),
    )


__all__ = [
    "AccessConfig",
    "Environment",
    "LogLevel",
    "load_access_config_from_env",
]
