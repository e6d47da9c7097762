"""
Unit tests for the entitlement engine and plan catalog.
"""

from datetime import timedelta

import pytest

from service_entitlements.app.plans.catalog import (
    BUSINESS, ENTERPRISE, PROFESSIONAL, STARTER, default_plans,
)
from service_entitlements.app.plans.engine import EntitlementEngine
from shared.contracts import (
    UNLIMITED, FeatureName, LimitName, Subscription, SubscriptionStatus, utcnow,
)
from shared.errors import DataIntegrityError, NoActiveSubscription, UnknownFeature, UnknownLimit
from shared.test_helpers import InMemoryPlanCache, InMemoryPlanStore


def subscribe(store: InMemoryPlanStore, tenant_id: str, plan_name: str,
              status: SubscriptionStatus = SubscriptionStatus.ACTIVE) -> Subscription:
    plan = next(p for p in store.plans.values() if p.name == plan_name)
    subscription = Subscription(
        tenant_id=tenant_id,
        plan_id=plan.id,
        status=status,
        current_period_end=utcnow() + timedelta(days=30),
    )
    store.subscriptions[tenant_id] = subscription
    return subscription


class TestPlanCatalog:
    """The canonical tiers."""

    def test_four_canonical_tiers(self):
        plans = default_plans()
        assert [p.name for p in plans] == [STARTER, PROFESSIONAL, BUSINESS, ENTERPRISE]

    def test_every_tier_defines_every_limit(self):
        for plan in default_plans():
            assert set(plan.limits) == set(LimitName)

    def test_starter_limits(self):
        starter = next(p for p in default_plans() if p.name == STARTER)
        assert starter.limits[LimitName.MAX_STUDENTS] == 100
        assert starter.limits[LimitName.MAX_SMS] == 0
        assert starter.trial_days == 30
        assert starter.features[FeatureName.MESSAGING] is False
        assert starter.features[FeatureName.REPORTS] is True

    def test_business_storage_is_the_only_finite_limit(self):
        business = next(p for p in default_plans() if p.name == BUSINESS)
        finite = {name for name, value in business.limits.items() if value != UNLIMITED}
        assert finite == {LimitName.MAX_STORAGE_MB}

    def test_enterprise_enables_everything(self):
        enterprise = next(p for p in default_plans() if p.name == ENTERPRISE)
        assert all(enterprise.features[f] for f in FeatureName)
        assert all(v == UNLIMITED for v in enterprise.limits.values())


class TestEntitlementEngine:
    """Test cases for EntitlementEngine."""

    @pytest.fixture
    def store(self):
        return InMemoryPlanStore(default_plans())

    @pytest.fixture
    def engine(self, store):
        return EntitlementEngine(store)

    @pytest.mark.asyncio
    async def test_resolve_plan_returns_plan_limits(self, store, engine):
        subscribe(store, "school-1", STARTER)

        plan_limits = await engine.resolve_plan("school-1")

        assert plan_limits.plan_name == STARTER
        assert plan_limits.limits[LimitName.MAX_STUDENTS] == 100

    @pytest.mark.asyncio
    async def test_resolve_without_subscription_raises(self, engine):
        with pytest.raises(NoActiveSubscription):
            await engine.resolve_plan("school-unknown")

    @pytest.mark.asyncio
    async def test_missing_plan_row_is_integrity_error(self, store, engine):
        store.subscriptions["school-1"] = Subscription(
            tenant_id="school-1",
            plan_id="plan-gone",
            current_period_end=utcnow() + timedelta(days=1),
        )

        with pytest.raises(DataIntegrityError):
            await engine.resolve("school-1")

    @pytest.mark.asyncio
    async def test_resolve_reports_subscription_activity(self, store, engine):
        subscribe(store, "school-1", STARTER, status=SubscriptionStatus.CANCELED)

        entitlement = await engine.resolve("school-1")

        assert entitlement.subscription_status is SubscriptionStatus.CANCELED
        assert entitlement.subscription_active is False

    @pytest.mark.asyncio
    async def test_plan_change_is_visible_on_next_resolution(self, store, engine):
        subscribe(store, "school-1", STARTER)
        assert (await engine.resolve_plan("school-1")).plan_name == STARTER

        store.set_plan_directly("school-1", "plan-professional")

        assert (await engine.resolve_plan("school-1")).plan_name == PROFESSIONAL

    @pytest.mark.asyncio
    async def test_plan_rows_come_from_cache(self, store):
        cache = InMemoryPlanCache()
        engine = EntitlementEngine(store, cache=cache)
        subscribe(store, "school-1", STARTER)

        await engine.resolve_plan("school-1")
        await engine.resolve_plan("school-1")

        assert cache.misses == 1
        assert cache.hits == 1

    @pytest.mark.asyncio
    async def test_has_feature(self, store, engine):
        subscribe(store, "school-1", STARTER)
        plan_limits = await engine.resolve_plan("school-1")

        assert engine.has_feature(plan_limits, "reports") is True
        assert engine.has_feature(plan_limits, FeatureName.MESSAGING) is False

    @pytest.mark.asyncio
    async def test_unknown_feature_raises_in_strict_mode(self, store, engine):
        subscribe(store, "school-1", STARTER)
        plan_limits = await engine.resolve_plan("school-1")

        with pytest.raises(UnknownFeature):
            engine.has_feature(plan_limits, "teleportation")

    @pytest.mark.asyncio
    async def test_unknown_feature_denies_in_lenient_mode(self, store):
        engine = EntitlementEngine(store, strict_features=False)
        subscribe(store, "school-1", ENTERPRISE)
        plan_limits = await engine.resolve_plan("school-1")

        assert engine.has_feature(plan_limits, "teleportation") is False

    @pytest.mark.asyncio
    async def test_limit_usage_at_boundary(self, store, engine):
        subscribe(store, "school-1", STARTER)
        plan_limits = await engine.resolve_plan("school-1")

        below = engine.limit_usage(plan_limits, "maxStudents", 99)
        at = engine.limit_usage(plan_limits, "maxStudents", 100)

        assert below.over_limit is False
        assert below.approaching is True
        assert at.over_limit is True
        assert at.percentage == 100.0

    @pytest.mark.asyncio
    async def test_unknown_limit_raises(self, store, engine):
        subscribe(store, "school-1", STARTER)
        plan_limits = await engine.resolve_plan("school-1")

        with pytest.raises(UnknownLimit):
            engine.limit_usage(plan_limits, "maxBuses", 1)

    @pytest.mark.asyncio
    async def test_usage_report(self, store, engine):
        subscribe(store, "school-1", BUSINESS)
        plan_limits = await engine.resolve_plan("school-1")

        report = engine.usage_report(plan_limits, {"maxStudents": 10000, "maxStorageMB": 51200})

        students, storage = report
        assert students.max_value == UNLIMITED
        assert students.percentage == 0.0
        assert students.over_limit is False
        assert storage.percentage == 50.0
