"""
Gating primitives shared by server-side enforcement and UI gating.

Both the services (hard enforcement) and the gateway (soft UI hiding) decide
through these functions; no other module restates the rules.
"""

from datetime import datetime
from typing import List, Optional, Union

from .contracts import (
    UNLIMITED, EffectivePermissions, FeatureName, Grant, LimitName, PlanLimits,
    Principal, Role, Subscription, SubscriptionStatus, utcnow,
)
from .errors import CrossTenantAccessDenied, UnknownFeature, UnknownLimit, ValidationError


Number = Union[int, float]

# Only TRIAL and ACTIVE subscriptions admit new records
INACTIVE_STATUSES = frozenset({
    SubscriptionStatus.PAST_DUE, SubscriptionStatus.CANCELED, SubscriptionStatus.UNPAID,
})


def parse_feature(feature: Union[str, FeatureName]) -> FeatureName:
    try:
        return FeatureName(feature)
    except ValueError:
        raise UnknownFeature(str(feature))


def parse_limit(limit: Union[str, LimitName]) -> LimitName:
    try:
        return LimitName(limit)
    except ValueError:
        raise UnknownLimit(str(limit))


def has_feature(plan_limits: PlanLimits, feature: Union[str, FeatureName]) -> bool:
    """True iff the plan enables ``feature``. Unknown names raise UnknownFeature."""
    return plan_limits.features.get(parse_feature(feature), False) is True


def _finite_limit(plan_limits: PlanLimits, limit: Union[str, LimitName], usage: Number) -> Optional[int]:
    if usage < 0:
        raise ValidationError("Usage must be non-negative", details={"usage": usage})
    value = plan_limits.limits.get(parse_limit(limit), 0)
    if value == UNLIMITED:
        return None
    return value


def is_over_limit(plan_limits: PlanLimits, limit: Union[str, LimitName], usage: Number) -> bool:
    """True iff ``usage`` has reached a finite limit; never for UNLIMITED."""
    value = _finite_limit(plan_limits, limit, usage)
    if value is None:
        return False
    return usage >= value


def usage_percentage(plan_limits: PlanLimits, limit: Union[str, LimitName], usage: Number) -> float:
    """Share of the limit in use, clamped to [0, 100]; 0 for UNLIMITED."""
    value = _finite_limit(plan_limits, limit, usage)
    if value is None:
        return 0.0
    if value == 0:
        return 100.0
    return min(100.0, usage / value * 100)


def admits(plan_limits: PlanLimits, subscription_active: bool, limit: Union[str, LimitName],
           usage: Number) -> bool:
    """True iff one more item may be added: live subscription and usage under the limit."""
    over = is_over_limit(plan_limits, limit, usage)
    return subscription_active and not over


def is_approaching_limit(plan_limits: PlanLimits, limit: Union[str, LimitName], usage: Number,
                         threshold: float = 80.0) -> bool:
    percentage = usage_percentage(plan_limits, limit, usage)
    return threshold <= percentage < 100.0


def additional_features(current: PlanLimits, target: PlanLimits) -> List[FeatureName]:
    """Features the target plan enables that the current one does not."""
    return [
        feature for feature in FeatureName
        if target.features.get(feature, False) and not current.features.get(feature, False)
    ]


def is_subscription_active(subscription: Subscription, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()

    if subscription.status in INACTIVE_STATUSES:
        return False

    if (subscription.status is SubscriptionStatus.TRIAL
            and subscription.trial_ends_at is not None
            and subscription.trial_ends_at < now):
        return False

    return subscription.current_period_end >= now


def has_permission(effective: EffectivePermissions, category: str, action: str) -> bool:
    if effective.all_access:
        return True
    return Grant(category=category, action=action) in effective.grants


def has_any_permission(effective: EffectivePermissions, category: str) -> bool:
    if effective.all_access:
        return True
    return any(grant.category == category for grant in effective.grants)


def ensure_same_tenant(principal: Principal, resource_tenant_id: Optional[str]) -> None:
    """Raise CrossTenantAccessDenied unless the resource is in the caller's tenant."""
    if principal.role is Role.SUPER_ADMIN:
        return
    if resource_tenant_id is None or resource_tenant_id != principal.tenant_id:
        raise CrossTenantAccessDenied()
