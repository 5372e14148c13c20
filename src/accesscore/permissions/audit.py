"""Audit side channel for access decisions and permission changes.

Provides:
- ``AuditEvent`` — one access decision.
- ``PermissionChangeEvent`` — a grant / revoke / modify performed by an admin.
- ``AuditSink`` — the ``record(event)`` contract consumed by the engine.
- ``LoggingAuditSink`` / ``InMemoryAuditSink`` — stock sinks.
- ``emit_audit_event()`` — best-effort delivery that never raises.
- ``record_permission_change()`` — build and emit a change event.

Storage of audit records is the sink's business. The core treats sinks as
fire-and-forget: a failing sink is logged and never changes a decision.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from datetime import datetime, timezone
from typing import Any, Literal, Optional, Protocol, Union

from pydantic import BaseModel, Field

from ..config import AccessConfig
from ..logging import safe_log_value
from .claims import ClaimLike
from .constants import RiskLevel
from .policy import change_risk

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"

ChangeType = Literal["grant", "revoke", "modify"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """A single access decision.

    Unknown or caller-specific fields go into ``context`` (request id,
    path, user agent, ...), never as new attributes.
    """

    model_config = {"frozen": True}

    timestamp: datetime = Field(default_factory=_utcnow)
    principal_id: str = ANONYMOUS
    resource: str
    action: str
    scope: str
    granted: bool
    reason: str
    reason_code: str = ""
    risk_level: RiskLevel = RiskLevel.LOW
    cached: bool = False
    context: dict[str, Any] = Field(default_factory=dict)

    @property
    def claim(self) -> str:
        return f"{self.resource}:{self.action}:{self.scope}"


class PermissionChangeEvent(BaseModel):
    """An administrative change to roles or grants."""

    model_config = {"frozen": True}

    id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    actor_id: str
    change: ChangeType
    role_id: Optional[str] = None
    target_user_id: Optional[str] = None
    permission: Optional[str] = None
    previous_state: Any = None
    new_state: Any = None
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    session_id: Optional[str] = None
    risk_level: RiskLevel = RiskLevel.MEDIUM
    metadata: dict[str, Any] = Field(default_factory=dict)


AnyAuditEvent = Union[AuditEvent, PermissionChangeEvent]


class AuditSink(Protocol):
    """Consumer of audit events. ``record`` should not raise."""

    def record(self, event: AnyAuditEvent) -> None: ...


class LoggingAuditSink:
    """Writes audit events to the ``accesscore.audit`` logger.

    Denials and permission changes go out at WARNING/INFO, grants at DEBUG
    to keep routine traffic quiet.
    """

    def __init__(self, logger_name: str = "accesscore.audit") -> None:
        self._logger = logging.getLogger(logger_name)

    def record(self, event: AnyAuditEvent) -> None:
        if isinstance(event, PermissionChangeEvent):
            self._logger.info(
                "Permission %s by %s: %s",
                event.change,
                event.actor_id,
                event.permission or event.role_id or "-",
                extra={
                    "principal_id": event.actor_id,
                    "audit_id": event.id,
                    "risk_level": event.risk_level.value,
                },
            )
            return

        extra = {
            "principal_id": event.principal_id,
            "claim": event.claim,
            "risk_level": event.risk_level.value,
            "reason_code": event.reason_code,
        }
        if event.context:
            extra["audit_context"] = safe_log_value(event.context)
        if event.granted:
            self._logger.debug("Access granted: %s", event.reason, extra=extra)
        else:
            self._logger.warning("Access denied: %s", event.reason, extra=extra)


class InMemoryAuditSink:
    """Keeps events in a list. Thread-safe; intended for tests and tooling."""

    def __init__(self) -> None:
        self._events: list[AnyAuditEvent] = []
        self._lock = threading.Lock()

    def record(self, event: AnyAuditEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[AnyAuditEvent]:
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


def emit_audit_event(sink: Optional[AuditSink], event: AnyAuditEvent) -> bool:
    """Deliver ``event`` to ``sink``; swallow and log any sink failure.

    Returns:
        True if the sink accepted the event.
    """
    if sink is None:
        return False
    try:
        sink.record(event)
    except Exception:
        logger.exception("Audit sink %s failed to record %s", type(sink).__name__, type(event).__name__)
        return False
    return True


def generate_audit_id(environment: str = "development") -> str:
    """``<ENV initial>_audit_<epoch millis>_<random>``, e.g. ``P_audit_1718000000000_k3j9x0a1b``."""
    prefix = (environment[:1] or "D").upper()
    return f"{prefix}_audit_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


def record_permission_change(
    actor_id: str,
    change: ChangeType,
    *,
    sink: Optional[AuditSink] = None,
    config: Optional[AccessConfig] = None,
    role_id: Optional[str] = None,
    target_user_id: Optional[str] = None,
    permission: Optional[ClaimLike] = None,
    previous_state: Any = None,
    new_state: Any = None,
    reason: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    session_id: Optional[str] = None,
) -> bool:
    """Record an administrative permission change.

    Called by role/user management after a write (alongside
    ``invalidate_cache``). Never raises.

    Returns:
        True when the event was recorded or audit logging is disabled,
        False when the event could not be built or delivered.

    Example::

        record_permission_change(
            "admin-1", "grant",
            role_id="support-staff",
            permission="feedback:update:all",
            reason="Ticket backlog",
        )
    """
    config = config or AccessConfig()
    if not config.enable_audit_logging:
        return True

    try:
        event = PermissionChangeEvent(
            id=generate_audit_id(config.environment.value),
            actor_id=actor_id,
            change=change,
            role_id=role_id,
            target_user_id=target_user_id,
            permission=str(permission) if permission is not None else None,
            previous_state=previous_state,
            new_state=new_state,
            reason=reason,
            ip_address=ip_address,
            user_agent=user_agent,
            session_id=session_id,
            risk_level=change_risk(permission),
            metadata={
                "automated_action": False,
                "version": config.version,
                "environment": config.environment.value,
            },
        )
    except Exception:
        logger.exception("Error building permission change event for actor '%s'", actor_id)
        return False

    return emit_audit_event(sink or LoggingAuditSink(), event)


__all__ = [
    "ANONYMOUS",
    "AnyAuditEvent",
    "AuditEvent",
    "AuditSink",
    "ChangeType",
    "InMemoryAuditSink",
    "LoggingAuditSink",
    "PermissionChangeEvent",
    "emit_audit_event",
    "generate_audit_id",
    "record_permission_change",
]
