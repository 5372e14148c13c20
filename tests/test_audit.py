"""Tests for audit events and sinks."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from accesscore import AccessConfig, AuditEvent, InMemoryAuditSink, LoggingAuditSink, RiskLevel
from accesscore.permissions.audit import emit_audit_event, generate_audit_id, record_permission_change


def _event(**overrides) -> AuditEvent:
    data = {
        "principal_id": "u-1",
        "resource": "billing",
        "action": "view",
        "scope": "all",
        "granted": False,
        "reason": "insufficient permissions",
        "reason_code": "INSUFFICIENT_PERMISSIONS",
    }
    data.update(overrides)
    return AuditEvent(**data)


class TestAuditEvent:
    """Tests for the AuditEvent model."""

    def test_claim_property(self) -> None:
        """Test the claim string is assembled from its parts."""
        assert _event().claim == "billing:view:all"

    def test_defaults(self) -> None:
        """Test timestamp, risk and context defaults."""
        event = AuditEvent(resource="member", action="view", scope="all", granted=True, reason="direct permission")
        assert event.principal_id == "anonymous"
        assert event.risk_level is RiskLevel.LOW
        assert event.context == {}
        assert event.timestamp.tzinfo is not None

    def test_frozen(self) -> None:
        """Test that events cannot be modified after creation."""
        event = _event()
        with pytest.raises(Exception):  # Pydantic validation error
            event.granted = True  # type: ignore[misc]


class TestEmitAuditEvent:
    """Tests for best-effort delivery."""

    def test_delivers(self) -> None:
        """Test a working sink receives the event."""
        sink = InMemoryAuditSink()
        assert emit_audit_event(sink, _event()) is True
        assert len(sink.events) == 1

    def test_no_sink(self) -> None:
        """Test a missing sink is a no-op."""
        assert emit_audit_event(None, _event()) is False

    def test_sink_failure_swallowed(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test a raising sink is logged, not propagated."""
        sink = MagicMock()
        sink.record.side_effect = OSError("disk full")
        with caplog.at_level(logging.ERROR):
            assert emit_audit_event(sink, _event()) is False
        assert "failed to record" in caplog.text

    def test_in_memory_clear(self) -> None:
        sink = InMemoryAuditSink()
        sink.record(_event())
        sink.clear()
        assert sink.events == []


class TestLoggingAuditSink:
    """Tests for the logger-backed sink."""

    def test_denial_logged_as_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test denials reach the audit logger at WARNING."""
        with caplog.at_level(logging.WARNING, logger="accesscore.audit"):
            LoggingAuditSink().record(_event())
        record = caplog.records[0]
        assert record.levelno == logging.WARNING
        assert record.claim == "billing:view:all"
        assert record.principal_id == "u-1"

    def test_grant_logged_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test grants stay below INFO."""
        with caplog.at_level(logging.INFO, logger="accesscore.audit"):
            LoggingAuditSink().record(_event(granted=True, reason="direct permission"))
        assert caplog.records == []

    def test_context_is_redacted(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test secrets in the audit context do not reach the log."""
        with caplog.at_level(logging.WARNING, logger="accesscore.audit"):
            LoggingAuditSink().record(_event(context={"header": "Bearer abc123def456"}))
        assert "abc123def456" not in caplog.records[0].audit_context


class TestGenerateAuditId:
    """Tests for audit id generation."""

    def test_format(self) -> None:
        """Test the environment prefix and id layout."""
        audit_id = generate_audit_id("production")
        prefix, kind, millis, suffix = audit_id.split("_")
        assert prefix == "P"
        assert kind == "audit"
        assert millis.isdigit()
        assert len(suffix) == 9

    def test_unique(self) -> None:
        assert generate_audit_id() != generate_audit_id()


class TestRecordPermissionChange:
    """Tests for permission change auditing."""

    def test_records_event(self) -> None:
        """Test a grant is recorded with risk and metadata."""
        sink = InMemoryAuditSink()
        config = AccessConfig(environment="staging", version="2.1.0")
        ok = record_permission_change(
            "admin-1",
            "grant",
            sink=sink,
            config=config,
            role_id="support-staff",
            permission="billing:update:all",
            reason="Quarter close",
        )
        assert ok is True
        event = sink.events[0]
        assert event.id.startswith("S_audit_")
        assert event.actor_id == "admin-1"
        assert event.permission == "billing:update:all"
        assert event.risk_level is RiskLevel.CRITICAL
        assert event.metadata == {"automated_action": False, "version": "2.1.0", "environment": "staging"}

    def test_without_permission_is_medium(self) -> None:
        """Test role-level changes without a claim rate medium."""
        sink = InMemoryAuditSink()
        record_permission_change("admin-1", "modify", sink=sink, role_id="support-staff")
        assert sink.events[0].risk_level is RiskLevel.MEDIUM

    def test_disabled(self) -> None:
        """Test nothing is recorded when audit logging is off."""
        sink = MagicMock()
        config = AccessConfig(enable_audit_logging=False)
        assert record_permission_change("admin-1", "revoke", sink=sink, config=config) is True
        sink.record.assert_not_called()

    def test_invalid_permission_returns_false(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test a bad claim is logged and reported, never raised."""
        sink = InMemoryAuditSink()
        with caplog.at_level(logging.ERROR):
            assert record_permission_change("admin-1", "grant", sink=sink, permission="nope") is False
        assert sink.events == []

    def test_invalid_change_type_returns_false(self) -> None:
        sink = InMemoryAuditSink()
        assert record_permission_change("admin-1", "explode", sink=sink) is False  # type: ignore[arg-type]

    def test_failing_sink_returns_false(self) -> None:
        sink = MagicMock()
        sink.record.side_effect = RuntimeError("down")
        assert record_permission_change("admin-1", "grant", sink=sink, permission="member:view:all") is False
