"""
Unit tests for the shared gating primitives.
"""

from datetime import timedelta

import pytest

from shared import gating
from shared.contracts import (
    UNLIMITED, EffectivePermissions, FeatureName, Grant, LimitName, PlanLimits, Role,
    Subscription, SubscriptionStatus, utcnow,
)
from shared.errors import CrossTenantAccessDenied, UnknownFeature, UnknownLimit, ValidationError
from shared.test_helpers import SchoolDataFactory


@pytest.fixture
def plan_limits():
    limits = {name: 10 for name in LimitName}
    limits[LimitName.MAX_STUDENTS] = 100
    limits[LimitName.MAX_SMS] = 0
    limits[LimitName.MAX_CAMPUSES] = UNLIMITED
    return PlanLimits(
        plan_id="plan-test",
        plan_name="TEST",
        display_name="Test",
        limits=limits,
        features={FeatureName.REPORTS: True, FeatureName.SMS: False},
    )


class TestFeatures:

    def test_enabled_and_disabled(self, plan_limits):
        assert gating.has_feature(plan_limits, "reports") is True
        assert gating.has_feature(plan_limits, FeatureName.SMS) is False

    def test_known_feature_missing_from_row_is_false(self, plan_limits):
        assert gating.has_feature(plan_limits, FeatureName.API) is False

    def test_unknown_feature_raises(self, plan_limits):
        with pytest.raises(UnknownFeature) as exc_info:
            gating.has_feature(plan_limits, "telepathy")
        assert exc_info.value.status_code == 422

    def test_additional_features(self, plan_limits):
        target = plan_limits.model_copy(update={"features": {
            FeatureName.REPORTS: True, FeatureName.SMS: True, FeatureName.API: True,
        }})
        assert gating.additional_features(plan_limits, target) == [FeatureName.API, FeatureName.SMS]


class TestLimits:

    @pytest.mark.parametrize("usage,expected", [(0, False), (99, False), (100, True), (150, True)])
    def test_finite_limit_boundary(self, plan_limits, usage, expected):
        assert gating.is_over_limit(plan_limits, "maxStudents", usage) is expected

    def test_unlimited_is_never_over(self, plan_limits):
        assert gating.is_over_limit(plan_limits, LimitName.MAX_CAMPUSES, 10 ** 9) is False
        assert gating.usage_percentage(plan_limits, LimitName.MAX_CAMPUSES, 10 ** 9) == 0.0

    def test_zero_limit(self, plan_limits):
        assert gating.is_over_limit(plan_limits, "maxSMS", 0) is True
        assert gating.usage_percentage(plan_limits, "maxSMS", 0) == 100.0

    def test_percentage_is_clamped(self, plan_limits):
        assert gating.usage_percentage(plan_limits, "maxStudents", 50) == 50.0
        assert gating.usage_percentage(plan_limits, "maxStudents", 250) == 100.0

    def test_approaching(self, plan_limits):
        assert gating.is_approaching_limit(plan_limits, "maxStudents", 79) is False
        assert gating.is_approaching_limit(plan_limits, "maxStudents", 80) is True
        assert gating.is_approaching_limit(plan_limits, "maxStudents", 100) is False

    def test_unknown_limit(self, plan_limits):
        with pytest.raises(UnknownLimit):
            gating.is_over_limit(plan_limits, "maxBuses", 1)

    def test_negative_usage(self, plan_limits):
        with pytest.raises(ValidationError):
            gating.usage_percentage(plan_limits, "maxStudents", -1)

    def test_admission_needs_live_subscription(self, plan_limits):
        assert gating.admits(plan_limits, True, "maxStudents", 99) is True
        assert gating.admits(plan_limits, True, "maxStudents", 100) is False
        assert gating.admits(plan_limits, False, "maxStudents", 0) is False
        assert gating.admits(plan_limits, False, LimitName.MAX_CAMPUSES, 0) is False

    def test_admission_still_validates_limit_name(self, plan_limits):
        with pytest.raises(UnknownLimit):
            gating.admits(plan_limits, False, "maxBuses", 1)


class TestSubscriptionActivity:

    def subscription(self, status, period_days=10, trial_days=None):
        now = utcnow()
        return Subscription(
            tenant_id="school-1",
            plan_id="plan-test",
            status=status,
            current_period_end=now + timedelta(days=period_days),
            trial_ends_at=now + timedelta(days=trial_days) if trial_days is not None else None,
        )

    def test_active(self):
        assert gating.is_subscription_active(self.subscription(SubscriptionStatus.ACTIVE)) is True

    @pytest.mark.parametrize("status", [
        SubscriptionStatus.PAST_DUE, SubscriptionStatus.CANCELED, SubscriptionStatus.UNPAID,
    ])
    def test_lapsed_statuses(self, status):
        assert gating.is_subscription_active(self.subscription(status)) is False

    def test_expired_trial(self):
        assert gating.is_subscription_active(
            self.subscription(SubscriptionStatus.TRIAL, trial_days=-1)
        ) is False

    def test_period_over(self):
        assert gating.is_subscription_active(
            self.subscription(SubscriptionStatus.PAST_DUE, period_days=-1)
        ) is False


class TestPermissions:

    def test_all_access_short_circuits(self):
        effective = EffectivePermissions.for_principal(SchoolDataFactory.school_admin())
        assert gating.has_permission(effective, "anything", "at-all") is True
        assert gating.has_any_permission(effective, "new-category") is True

    def test_grant_membership(self):
        principal = SchoolDataFactory.staff(Role.ASSISTANT)
        effective = EffectivePermissions(
            user_id=principal.user_id,
            role=principal.role,
            tenant_id=principal.tenant_id,
            grants=frozenset({Grant(category="grades", action="view")}),
        )
        assert gating.has_permission(effective, "grades", "view") is True
        assert gating.has_permission(effective, "grades", "edit") is False
        assert gating.has_any_permission(effective, "grades") is True
        assert gating.has_any_permission(effective, "finance") is False

    def test_all_access_carries_no_grants(self):
        with pytest.raises(ValueError):
            EffectivePermissions(
                user_id="u1",
                role=Role.SCHOOL_ADMIN,
                tenant_id="school-1",
                all_access=True,
                grants=frozenset({Grant(category="grades", action="view")}),
            )


class TestTenantGuard:

    def test_other_tenant(self):
        with pytest.raises(CrossTenantAccessDenied):
            gating.ensure_same_tenant(SchoolDataFactory.school_admin("school-1"), "school-2")

    def test_role_does_not_bypass_guard(self):
        with pytest.raises(CrossTenantAccessDenied):
            gating.ensure_same_tenant(SchoolDataFactory.school_admin("school-1"), None)

    def test_super_admin(self):
        gating.ensure_same_tenant(SchoolDataFactory.super_admin(), "school-2")
