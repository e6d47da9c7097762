"""
Entitlement evaluation engine.

Resolution reads the tenant's subscription on every call; only plan rows
may come from the catalog cache. The checks themselves are the shared
gating primitives, so UI clients reach the same decisions.
"""

from typing import Dict, List, Optional, Union

from shared import gating
from shared.contracts import (
    Entitlement, FeatureName, LimitName, Plan, PlanLimits, utcnow,
)
from shared.errors import DataIntegrityError, NoActiveSubscription, UnknownFeature
from shared.logging import get_logger

from .models import AdmissionState, LimitCheckResponse, LimitUsage


class EntitlementEngine:
    """Entitlement resolution and admission checks."""

    def __init__(self, store, cache=None, strict_features: bool = True,
                 approaching_threshold: float = 80.0):
        self.store = store
        self.cache = cache
        self.strict_features = strict_features
        self.approaching_threshold = approaching_threshold
        self.logger = get_logger("entitlements.engine")

    async def load_plan(self, plan_id: str) -> Optional[Plan]:
        """Catalog lookup, served from the short-lived cache when possible."""
        if self.cache is not None:
            plan = await self.cache.get_plan(plan_id)
            if plan is not None:
                return plan

        plan = await self.store.get_plan(plan_id)

        if plan is not None and self.cache is not None:
            await self.cache.set_plan(plan)

        return plan

    async def resolve(self, tenant_id: str) -> Entitlement:
        """Current entitlement of a tenant; raises NoActiveSubscription."""
        subscription = await self.store.get_subscription(tenant_id)
        if subscription is None:
            raise NoActiveSubscription(tenant_id)

        plan = await self.load_plan(subscription.plan_id)
        if plan is None:
            self.logger.error(
                "Subscription references a missing plan",
                tenant_id=tenant_id,
                plan_id=subscription.plan_id
            )
            raise DataIntegrityError(
                "Subscription references a missing plan",
                details={"tenant_id": tenant_id, "plan_id": subscription.plan_id}
            )

        return Entitlement(
            tenant_id=tenant_id,
            plan=plan.to_limits(),
            subscription_status=subscription.status,
            subscription_active=gating.is_subscription_active(subscription, utcnow()),
            current_period_end=subscription.current_period_end,
            trial_ends_at=subscription.trial_ends_at,
        )

    async def resolve_plan(self, tenant_id: str) -> PlanLimits:
        entitlement = await self.resolve(tenant_id)
        return entitlement.plan

    def has_feature(self, plan_limits: PlanLimits, feature: Union[str, FeatureName]) -> bool:
        """Feature lookup; unknown names raise in strict mode, else log and deny."""
        try:
            return gating.has_feature(plan_limits, feature)
        except UnknownFeature:
            if self.strict_features:
                raise
            self.logger.warning(
                "Unknown feature checked, denying",
                feature=str(feature),
                plan=plan_limits.plan_name
            )
            return False

    def is_over_limit(self, plan_limits: PlanLimits, limit: Union[str, LimitName], usage: int) -> bool:
        return gating.is_over_limit(plan_limits, limit, usage)

    def usage_percentage(self, plan_limits: PlanLimits, limit: Union[str, LimitName], usage: int) -> float:
        return gating.usage_percentage(plan_limits, limit, usage)

    def limit_usage(self, plan_limits: PlanLimits, limit: Union[str, LimitName], usage: int) -> LimitUsage:
        name = gating.parse_limit(limit)
        return LimitUsage(
            limit=name,
            usage=usage,
            max_value=plan_limits.limits.get(name, 0),
            percentage=round(gating.usage_percentage(plan_limits, name, usage), 2),
            over_limit=gating.is_over_limit(plan_limits, name, usage),
            approaching=gating.is_approaching_limit(
                plan_limits, name, usage, self.approaching_threshold
            ),
        )

    def admission(self, entitlement: Entitlement, limit: Union[str, LimitName], usage: int) -> LimitCheckResponse:
        """May the tenant add one more item? A missing or lapsed subscription never admits."""
        name = gating.parse_limit(limit)
        if entitlement.plan is None:
            return LimitCheckResponse(
                tenant_id=entitlement.tenant_id,
                limit=name,
                usage=usage,
                allowed=False,
                state=AdmissionState.NO_SUBSCRIPTION
            )

        allowed = gating.admits(entitlement.plan, entitlement.subscription_active, name, usage)
        usage_row = self.limit_usage(entitlement.plan, name, usage)
        if allowed:
            state = AdmissionState.ALLOWED
        elif not entitlement.subscription_active:
            state = AdmissionState.SUBSCRIPTION_INACTIVE
        else:
            state = AdmissionState.OVER_LIMIT

        return LimitCheckResponse(
            **usage_row.model_dump(),
            tenant_id=entitlement.tenant_id,
            allowed=allowed,
            state=state,
            plan_name=entitlement.plan.plan_name,
            subscription_status=entitlement.subscription_status
        )

    def usage_report(self, plan_limits: PlanLimits, usage: Dict[str, int]) -> List[LimitUsage]:
        return [
            self.limit_usage(plan_limits, limit, count)
            for limit, count in usage.items()
        ]
