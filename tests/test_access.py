"""Tests for the access decision engine."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pytest

from accesscore import (
    DEFAULT_ROLES,
    AccessConfig,
    AccessEngine,
    ActionType,
    AuthorizedUser,
    CacheBackendError,
    ClaimValidationError,
    ConfigurationError,
    DecisionCache,
    DecisionOptions,
    InMemoryAuditSink,
    ReasonCode,
    ResourceType,
    RiskLevel,
    Role,
    ScopeType,
    UnknownResourceError,
    UnknownScopeError,
    decide,
    effective_permissions,
    get_access_engine,
    has_permission,
    invalidate_cache,
    reset_access_engine,
)


@pytest.fixture(autouse=True)
def _reset_engine():
    reset_access_engine()
    yield
    reset_access_engine()


@pytest.fixture
def sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def engine(clock, sink: InMemoryAuditSink) -> AccessEngine:
    return AccessEngine(AccessConfig(), cache=DecisionCache(ttl_seconds=300, clock=clock), audit_sink=sink)


TECH_DIRECTOR = Role("tech-director", name="Technology Director", permissions=["service:configure:all"])


class TestEarlyDenials:
    """Missing and inactive principals."""

    def test_no_principal(self, engine: AccessEngine, sink: InMemoryAuditSink) -> None:
        """No principal is denied as not authenticated and audited as anonymous."""
        decision = engine.decide(None, "member", "view", "all", [])
        assert not decision.granted
        assert decision.reason == "not authenticated"
        assert decision.reason_code is ReasonCode.NOT_AUTHENTICATED
        assert sink.events[0].principal_id == "anonymous"

    def test_inactive_principal_denied_despite_grants(self, engine: AccessEngine) -> None:
        user = AuthorizedUser("u-1", direct_permissions=["member:view:all"], is_active=False)
        decision = engine.decide(user, "member", "view", "all", [])
        assert not decision.granted
        assert decision.reason == "account inactive"
        assert decision.reason_code is ReasonCode.ACCOUNT_INACTIVE

    def test_inactive_principal_is_checked_before_claim_validation(self, engine: AccessEngine) -> None:
        user = AuthorizedUser("u-1", is_active=False)
        decision = engine.decide(user, "spaceship", "view", "all", [])
        assert decision.reason_code is ReasonCode.ACCOUNT_INACTIVE


class TestValidation:
    """Invalid claim parts propagate as errors, never as denials."""

    def test_unknown_resource_raises(self, engine: AccessEngine, sink: InMemoryAuditSink) -> None:
        user = AuthorizedUser("u-1")
        with pytest.raises(UnknownResourceError):
            engine.decide(user, "spaceship", "view", "all", [])
        assert sink.events == []

    def test_unknown_scope_raises(self, engine: AccessEngine) -> None:
        user = AuthorizedUser("u-1")
        with pytest.raises(ClaimValidationError):
            engine.decide(user, "member", "view", "galaxy", [])
        with pytest.raises(UnknownScopeError):
            engine.decide(user, "member", "view", "galaxy", [])

    def test_invalid_request_does_not_touch_cache(self, engine: AccessEngine) -> None:
        user = AuthorizedUser("u-1")
        with pytest.raises(ClaimValidationError):
            engine.decide(user, "member", "teleport", "all", [])
        assert engine.cache_stats().size == 0


class TestGrants:
    """Direct and role-based grants."""

    def test_role_grant_names_role(self, engine: AccessEngine) -> None:
        """A role holding the claim grants access and the reason names it."""
        user = AuthorizedUser("u-1", roles=["tech-director"])
        decision = engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR])
        assert decision.granted
        assert "Technology Director" in decision.reason
        assert decision.reason_code is ReasonCode.GRANTED_ROLE
        assert decision.source == "tech-director"
        assert decision.required_claim == "service:configure:all"

    def test_helpdesk_denied_billing(self, engine: AccessEngine) -> None:
        user = AuthorizedUser("u-2", roles=["helpdesk-specialist"])
        decision = engine.decide(user, "billing", "view", "all", DEFAULT_ROLES)
        assert not decision
        assert decision.reason == "insufficient permissions"
        assert decision.required_claim == "billing:view:all"
        assert decision.message == "insufficient permissions: billing:view:all"

    def test_direct_permission_takes_precedence(self, engine: AccessEngine) -> None:
        user = AuthorizedUser("u-1", roles=["tech-director"], direct_permissions=["service:configure:all"])
        decision = engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR])
        assert decision.granted
        assert decision.reason == "direct permission"
        assert decision.source is None

    def test_enum_parts_accepted(self, engine: AccessEngine) -> None:
        user = AuthorizedUser("u-1", roles=["tech-director"])
        assert engine.decide(
            user, ResourceType.SERVICE, ActionType.CONFIGURE, ScopeType.ALL, [TECH_DIRECTOR]
        ).granted

    def test_inactive_role_grants_nothing(self, engine: AccessEngine) -> None:
        role = Role("off", permissions=["service:configure:all"], is_active=False)
        user = AuthorizedUser("u-1", roles=["off"])
        assert not engine.decide(user, "service", "configure", "all", [role]).granted

    def test_unknown_role_id_ignored(self, engine: AccessEngine) -> None:
        user = AuthorizedUser("u-1", roles=["ghost", "tech-director"])
        assert engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR]).granted

    def test_inherited_grant(self, engine: AccessEngine) -> None:
        base = Role("base", name="Base", permissions=["report:view:all"])
        child = Role("child", name="Child", inherits_from=["base"])
        user = AuthorizedUser("u-1", roles=["child"])
        decision = engine.decide(user, "report", "view", "all", [base, child])
        assert decision.granted
        assert decision.source == "child"

    def test_cyclic_roles_terminate(self, engine: AccessEngine) -> None:
        a = Role("A", permissions=["member:view:all"], inherits_from=["B"])
        b = Role("B", permissions=["service:view:all"], inherits_from=["A"])
        user = AuthorizedUser("u-1", roles=["A"])
        assert engine.decide(user, "service", "view", "all", [a, b]).granted

    def test_deep_inheritance_chain(self, engine: AccessEngine) -> None:
        """A grant at the end of a 2000-role chain reaches the principal."""
        roles = [Role(f"r{i}", inherits_from=[f"r{i + 1}"]) for i in range(2000)]
        roles.append(Role("r2000", permissions=["member:view:all"]))
        user = AuthorizedUser("u-1", roles=["r0"])
        decision = engine.decide(user, "member", "view", "all", roles)
        assert decision.granted
        assert decision.source == "r0"

    def test_inheritance_disabled_by_config(self, sink: InMemoryAuditSink) -> None:
        engine = AccessEngine(AccessConfig(enable_role_inheritance=False), audit_sink=sink)
        base = Role("base", permissions=["report:view:all"])
        child = Role("child", inherits_from=["base"])
        user = AuthorizedUser("u-1", roles=["child"])
        assert not engine.decide(user, "report", "view", "all", [base, child]).granted

    def test_has_permission(self, engine: AccessEngine) -> None:
        user = AuthorizedUser("u-1", roles=["tech-director"])
        assert engine.has_permission(user, "service", "configure", "all", [TECH_DIRECTOR]) is True
        assert engine.has_permission(user, "service", "configure", "assigned", [TECH_DIRECTOR]) is False


class TestDecisionCache:
    """Cached verdicts and TTL expiry."""

    def test_cached_denial_until_ttl(self, engine: AccessEngine, clock) -> None:
        """A cached denial is served until the TTL elapses, then recomputed."""
        user = AuthorizedUser("u-1", roles=["tech-director"])
        first = engine.decide(user, "service", "configure", "all", [])
        assert not first.granted
        assert not first.cached

        clock.advance(299)
        second = engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR])
        assert not second.granted
        assert second.cached
        assert second.reason == "insufficient permissions"

        clock.advance(1)
        third = engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR])
        assert third.granted
        assert not third.cached

    def test_cached_grant(self, engine: AccessEngine) -> None:
        user = AuthorizedUser("u-1", roles=["tech-director"])
        engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR])
        decision = engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR])
        assert decision.granted
        assert decision.cached
        assert decision.reason_code is ReasonCode.GRANTED_CACHED

    def test_invalidate_forces_recompute(self, engine: AccessEngine) -> None:
        user = AuthorizedUser("u-1", roles=["tech-director"])
        engine.decide(user, "service", "configure", "all", [])
        assert engine.invalidate_cache("u-1") == 1
        assert engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR]).granted

    def test_use_cache_option(self, engine: AccessEngine) -> None:
        user = AuthorizedUser("u-1", roles=["tech-director"])
        no_cache = DecisionOptions(use_cache=False)
        engine.decide(user, "service", "configure", "all", [], no_cache)
        assert engine.cache_stats().size == 0
        assert engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR], no_cache).granted

    def test_cache_disabled_by_config(self, sink: InMemoryAuditSink) -> None:
        engine = AccessEngine(AccessConfig(cache_enabled=False), audit_sink=sink)
        user = AuthorizedUser("u-1", roles=["tech-director"])
        engine.decide(user, "service", "configure", "all", [])
        assert engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR]).granted

    def test_early_denials_not_cached(self, engine: AccessEngine) -> None:
        engine.decide(None, "member", "view", "all", [])
        engine.decide(AuthorizedUser("u-1", is_active=False), "member", "view", "all", [])
        assert engine.cache_stats().size == 0

    def test_backend_failure_is_a_miss(self, sink: InMemoryAuditSink, caplog: pytest.LogCaptureFixture) -> None:
        cache = MagicMock()
        cache.get.side_effect = CacheBackendError("down")
        cache.put.side_effect = CacheBackendError("down")
        engine = AccessEngine(AccessConfig(), cache=cache, audit_sink=sink)
        user = AuthorizedUser("u-1", roles=["tech-director"])
        with caplog.at_level(logging.WARNING, logger="accesscore.permissions.access"):
            decision = engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR])
        assert decision.granted
        assert "Decision cache unavailable" in caplog.text

    def test_invalidate_backend_failure_raises(self, sink: InMemoryAuditSink) -> None:
        cache = MagicMock()
        cache.invalidate.side_effect = CacheBackendError("down")
        engine = AccessEngine(AccessConfig(), cache=cache, audit_sink=sink)
        with pytest.raises(CacheBackendError):
            engine.invalidate_cache()

    def test_redis_url_selects_redis_cache(self, sink: InMemoryAuditSink) -> None:
        """A configured redis_url backs the engine with a shared cache."""
        redis_cache = MagicMock()
        config = AccessConfig(redis_url="redis://localhost:6379/0", cache_ttl_seconds=60)
        with patch("accesscore.permissions.access.RedisDecisionCache.from_url", return_value=redis_cache) as from_url:
            engine = AccessEngine(config, audit_sink=sink)
        from_url.assert_called_once_with("redis://localhost:6379/0", ttl_seconds=60)
        assert engine.cache is redis_cache

    def test_redis_url_without_redis_package(self, sink: InMemoryAuditSink) -> None:
        config = AccessConfig(redis_url="redis://localhost:6379/0")
        with patch("accesscore.permissions.access.RedisDecisionCache.from_url", side_effect=ImportError("redis")):
            with pytest.raises(ConfigurationError):
                AccessEngine(config, audit_sink=sink)

    def test_in_memory_cache_by_default(self) -> None:
        assert isinstance(AccessEngine(AccessConfig()).cache, DecisionCache)

    def test_concurrent_decisions(self, engine: AccessEngine) -> None:
        users = [AuthorizedUser(f"u-{i}", roles=["tech-director"]) for i in range(20)]

        def check(user: AuthorizedUser) -> bool:
            return engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR]).granted

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(check, users * 5))
        assert all(results)
        assert engine.cache_stats().size == 20


class TestAuditing:
    """Audit events accompany decisions without affecting them."""

    def test_every_decision_is_audited(self, engine: AccessEngine, sink: InMemoryAuditSink) -> None:
        user = AuthorizedUser("u-1", roles=["tech-director"])
        engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR], DecisionOptions(context={"path": "/x"}))
        engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR])
        first, second = sink.events
        assert first.claim == "service:configure:all"
        assert first.granted and not first.cached
        assert first.context == {"path": "/x"}
        assert first.reason_code == "GRANTED_ROLE"
        assert second.cached

    def test_audit_event_risk_level(self, engine: AccessEngine, sink: InMemoryAuditSink) -> None:
        user = AuthorizedUser("u-2", roles=["helpdesk-specialist"])
        engine.decide(user, "billing", "view", "all", DEFAULT_ROLES)
        assert sink.events[0].risk_level is RiskLevel.CRITICAL
        assert not sink.events[0].granted

    def test_failing_sink_does_not_change_decision(self, caplog: pytest.LogCaptureFixture) -> None:
        sink = MagicMock()
        sink.record.side_effect = RuntimeError("disk full")
        engine = AccessEngine(AccessConfig(), audit_sink=sink)
        user = AuthorizedUser("u-1", roles=["tech-director"])
        with caplog.at_level(logging.ERROR):
            decision = engine.decide(user, "service", "configure", "all", [TECH_DIRECTOR])
        assert decision.granted
        sink.record.assert_called_once()
        assert "Audit sink" in caplog.text

    def test_audit_disabled_by_config(self) -> None:
        sink = MagicMock()
        engine = AccessEngine(AccessConfig(enable_audit_logging=False), audit_sink=sink)
        engine.decide(AuthorizedUser("u-1"), "member", "view", "all", [])
        sink.record.assert_not_called()

    def test_log_access_option(self, engine: AccessEngine, sink: InMemoryAuditSink) -> None:
        engine.decide(AuthorizedUser("u-1"), "member", "view", "all", [], DecisionOptions(log_access=False))
        assert sink.events == []

    def test_slow_check_warning(self, sink: InMemoryAuditSink, caplog: pytest.LogCaptureFixture) -> None:
        engine = AccessEngine(AccessConfig(slow_check_ms=0), audit_sink=sink)
        with caplog.at_level(logging.WARNING, logger="accesscore.permissions.access"):
            engine.decide(AuthorizedUser("u-1"), "member", "view", "all", [])
        assert "Slow permission check" in caplog.text


class TestEffectivePermissions:
    """Enumeration of everything a principal may do."""

    def test_union_of_direct_and_roles(self, engine: AccessEngine) -> None:
        base = Role("base", permissions=["report:view:all"])
        child = Role("child", permissions=["employee:delete:all"], inherits_from=["base"])
        user = AuthorizedUser("u-1", roles=["child"], direct_permissions=["member:view:all"])
        result = engine.effective_permissions(user, [base, child])
        assert {str(c) for c in result} == {"report:view:all", "employee:delete:all", "member:view:all"}

    def test_sorted_by_risk(self, engine: AccessEngine) -> None:
        role = Role("r", permissions=["member:view:all", "employee:delete:all", "service:configure:all"])
        user = AuthorizedUser("u-1", roles=["r"])
        result = engine.effective_permissions(user, [role], sort_by_risk=True)
        assert [str(c) for c in result] == ["employee:delete:all", "service:configure:all", "member:view:all"]

    def test_inactive_principal_has_none(self, engine: AccessEngine) -> None:
        user = AuthorizedUser("u-1", roles=["tech-director"], direct_permissions=["member:view:all"], is_active=False)
        assert engine.effective_permissions(user, [TECH_DIRECTOR]) == frozenset()
        assert engine.effective_permissions(user, [TECH_DIRECTOR], sort_by_risk=True) == []

    def test_role_effective_permissions(self, engine: AccessEngine) -> None:
        a = Role("A", permissions=["member:view:all"], inherits_from=["B"])
        b = Role("B", permissions=["service:view:all"], inherits_from=["A"])
        assert len(engine.role_effective_permissions(a, [a, b])) == 2


class TestModuleLevelApi:
    """Singleton engine helpers."""

    def test_singleton(self) -> None:
        assert get_access_engine() is get_access_engine()

    def test_reset(self) -> None:
        first = get_access_engine()
        reset_access_engine()
        assert get_access_engine() is not first

    def test_helpers_use_singleton(self) -> None:
        user = AuthorizedUser("u-1", roles=["tech-director"])
        assert decide(user, "service", "configure", "all", [TECH_DIRECTOR]).granted
        assert has_permission(user, "service", "configure", "all", [TECH_DIRECTOR])
        assert len(effective_permissions(user, [TECH_DIRECTOR])) == 1
        assert invalidate_cache("u-1") == 1
