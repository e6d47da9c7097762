"""
Entitlements service for Schooly Access Layer.
"""

from typing import Dict, List, Optional

from fastapi import Depends, Query

from shared import gating
from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.contracts import Entitlement, EntitlementState, Plan, Principal, Role, Subscription
from shared.errors import InsufficientPermission, NoActiveSubscription, SchoolyException, UnknownFeature

from .cache.redis_cache import RedisPlanCache
from .persistence.postgres import PostgreSQLPlanStore
from .plans.admin import PlanAdministration
from .plans.catalog import default_plans
from .plans.engine import EntitlementEngine
from .plans.models import (
    BillingEvent, BillingEventResponse, FeatureCheckResponse, FeatureState,
    LimitCheckRequest, LimitCheckResponse, PlanChangeRequest, PlanChangeResponse,
    PlanCreateRequest, PlanUpdateRequest, TrialStartRequest, UsageReportRequest,
    UsageReportResponse,
)
from .subscriptions.manager import SubscriptionManager


def require_super_admin(principal: Principal) -> None:
    if principal.role is not Role.SUPER_ADMIN:
        raise InsufficientPermission("plans", "manage")


def require_subscription_admin(principal: Principal, tenant_id: str) -> None:
    """Subscription mutations: SUPER_ADMIN, or SCHOOL_ADMIN of the same school."""
    gating.ensure_same_tenant(principal, tenant_id)
    if not principal.role.is_full_admin:
        raise InsufficientPermission("subscriptions", "manage")


class EntitlementsService(BaseService):
    """Entitlements service implementation."""

    def __init__(self, store=None, cache=None, config: Optional[ServiceConfig] = None):
        config = config or get_config("entitlements", 8011)
        super().__init__("entitlements", 8011, config)

        self.store = store or PostgreSQLPlanStore(self.config.postgres_dsn)
        if cache is None and self.config.plan_cache_enabled:
            cache = RedisPlanCache(self.config.redis_url, self.config.plan_cache_ttl_seconds)
        self.cache = cache

        self.engine = EntitlementEngine(
            self.store,
            cache=self.cache,
            strict_features=self.config.strict_features,
            approaching_threshold=self.config.approaching_limit_threshold
        )
        self.subscriptions = SubscriptionManager(
            self.store, self.engine, default_trial_plan=self.config.default_trial_plan
        )
        self.plans = PlanAdministration(self.store, cache=self.cache)

        self._setup_entitlements_routes()

    def _record_check(self, check: str, outcome: str):
        self.metrics.increment_counter("entitlement_checks_total", check=check, outcome=outcome)

    def _setup_entitlements_routes(self):
        """Set up entitlements-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "entitlements",
                "message": "Schooly Access Layer - Entitlements Service",
                "version": "1.0.0",
                "capabilities": ["plans", "subscriptions", "limits", "features"]
            }

        @self.app.get("/entitlement/{tenant_id}", response_model=Entitlement)
        async def get_entitlement(tenant_id: str, principal: Principal = Depends(self.current_principal)):
            """Current entitlement; a school without subscription gets a typed state."""
            gating.ensure_same_tenant(principal, tenant_id)
            try:
                entitlement = await self.with_retry(self.engine.resolve, tenant_id)
            except NoActiveSubscription:
                self._record_check("entitlement", "no_subscription")
                return Entitlement.no_subscription(tenant_id)

            self._record_check("entitlement", "resolved")
            return entitlement

        @self.app.get("/entitlement/{tenant_id}/features/{feature}", response_model=FeatureCheckResponse)
        async def check_feature(tenant_id: str, feature: str,
                                principal: Principal = Depends(self.current_principal)):
            gating.ensure_same_tenant(principal, tenant_id)
            try:
                plan_limits = await self.with_retry(self.engine.resolve_plan, tenant_id)
            except NoActiveSubscription:
                self._record_check("feature", "no_subscription")
                return FeatureCheckResponse(
                    tenant_id=tenant_id,
                    feature=feature,
                    enabled=False,
                    state=FeatureState.NO_SUBSCRIPTION
                )

            try:
                gating.parse_feature(feature)
            except UnknownFeature:
                self.logger.warning("Unknown feature requested", feature=feature, tenant_id=tenant_id)
                self._record_check("feature", "unknown")
                return FeatureCheckResponse(
                    tenant_id=tenant_id,
                    feature=feature,
                    enabled=False,
                    state=FeatureState.UNKNOWN_FEATURE,
                    plan_name=plan_limits.plan_name
                )

            enabled = self.engine.has_feature(plan_limits, feature)
            self._record_check("feature", "enabled" if enabled else "disabled")
            return FeatureCheckResponse(
                tenant_id=tenant_id,
                feature=feature,
                enabled=enabled,
                state=FeatureState.ENABLED if enabled else FeatureState.DISABLED,
                plan_name=plan_limits.plan_name
            )

        @self.app.post("/entitlement/{tenant_id}/limits/check", response_model=LimitCheckResponse)
        async def check_limit(tenant_id: str, request: LimitCheckRequest,
                              principal: Principal = Depends(self.current_principal)):
            """Admission check before adding one more item."""
            gating.ensure_same_tenant(principal, tenant_id)
            limit = gating.parse_limit(request.limit)
            try:
                entitlement = await self.with_retry(self.engine.resolve, tenant_id)
            except NoActiveSubscription:
                entitlement = Entitlement.no_subscription(tenant_id)

            result = self.engine.admission(entitlement, limit, request.usage)
            self._record_check("limit", result.state.value)

            if not result.allowed:
                self.logger.info(
                    "Admission refused",
                    tenant_id=tenant_id,
                    limit=limit.value,
                    usage=request.usage,
                    state=result.state.value,
                    plan=result.plan_name
                )
            return result

        @self.app.post("/entitlement/{tenant_id}/usage", response_model=UsageReportResponse)
        async def usage_report(tenant_id: str, request: UsageReportRequest,
                               principal: Principal = Depends(self.current_principal)):
            gating.ensure_same_tenant(principal, tenant_id)
            for name in request.usage:
                gating.parse_limit(name)
            try:
                entitlement = await self.with_retry(self.engine.resolve, tenant_id)
            except NoActiveSubscription:
                return UsageReportResponse(tenant_id=tenant_id, state=EntitlementState.NO_SUBSCRIPTION)

            return UsageReportResponse(
                tenant_id=tenant_id,
                plan_name=entitlement.plan.plan_name,
                subscription_active=entitlement.subscription_active,
                limits=self.engine.usage_report(entitlement.plan, request.usage)
            )

        @self.app.post("/subscriptions/{tenant_id}/trial", response_model=Subscription, status_code=201)
        async def start_trial(tenant_id: str, request: TrialStartRequest,
                              principal: Principal = Depends(self.current_principal)):
            """Onboard a school on its trial plan."""
            require_subscription_admin(principal, tenant_id)
            subscription = await self.subscriptions.start_trial(tenant_id, request.plan_name)
            self.metrics.increment_counter("subscription_changes_total", kind="trial", result="created")
            return subscription

        @self.app.post("/subscriptions/{tenant_id}/plan", response_model=PlanChangeResponse)
        async def change_plan(tenant_id: str, request: PlanChangeRequest,
                              principal: Principal = Depends(self.current_principal)):
            """Upgrade or downgrade a school's plan."""
            require_subscription_admin(principal, tenant_id)
            try:
                result = await self.subscriptions.change_plan(
                    tenant_id,
                    plan_id=request.plan_id,
                    plan_name=request.plan_name,
                    expected_plan_id=request.expected_plan_id
                )
            except SchoolyException:
                self.metrics.increment_counter("subscription_changes_total", kind="plan", result="failed")
                raise

            self.metrics.increment_counter(
                "subscription_changes_total",
                kind="plan",
                result="changed" if result.changed else "unchanged"
            )
            return result

        @self.app.post("/billing/events", response_model=BillingEventResponse)
        async def billing_event(event: BillingEvent, principal: Principal = Depends(self.current_principal)):
            """Payment provider webhook, relayed with a platform session."""
            require_super_admin(principal)
            applied = await self.subscriptions.apply_subscription_status(
                event.tenant_id, event.status, event.effective_at
            )
            self.metrics.increment_counter(
                "subscription_changes_total",
                kind="status",
                result="applied" if applied else "ignored"
            )
            return BillingEventResponse(tenant_id=event.tenant_id, applied=applied)

        @self.app.get("/plans", response_model=List[Plan])
        async def list_plans(include_inactive: bool = Query(False, description="Include retired plans"),
                             principal: Principal = Depends(self.current_principal)):
            if include_inactive:
                require_super_admin(principal)
            return await self.with_retry(self.store.list_plans, include_inactive=include_inactive)

        @self.app.post("/plans", response_model=Plan, status_code=201)
        async def create_plan(request: PlanCreateRequest, principal: Principal = Depends(self.current_principal)):
            require_super_admin(principal)
            return await self.plans.create_plan(request)

        @self.app.put("/plans/{plan_id}", response_model=Plan)
        async def update_plan(plan_id: str, request: PlanUpdateRequest,
                              principal: Principal = Depends(self.current_principal)):
            require_super_admin(principal)
            return await self.plans.update_plan(plan_id, request)

        @self.app.delete("/plans/{plan_id}", response_model=Plan)
        async def deactivate_plan(plan_id: str, principal: Principal = Depends(self.current_principal)):
            """Retire a plan; existing subscriptions keep it."""
            require_super_admin(principal)
            return await self.plans.deactivate_plan(plan_id)

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check entitlements service dependencies."""
        dependencies = {"postgres": "ok" if await self.store.health_check() else "error"}
        if self.cache is not None:
            dependencies["redis"] = "ok" if await self.cache.health_check() else "error"
        return dependencies

    async def start(self):
        """Start entitlements service components."""
        await self.store.start()
        created = await self.store.seed_plans(default_plans())
        if self.cache is not None:
            await self.cache.start()

        self.logger.info("Entitlements service started", seeded_plans=created)

    async def stop(self):
        """Stop entitlements service components."""
        await self.store.stop()
        if self.cache is not None:
            await self.cache.stop()

        self.logger.info("Entitlements service stopped")


def create_app():
    """Create entitlements service application."""
    service = EntitlementsService()
    return service.app


if __name__ == "__main__":
    service = EntitlementsService()
    service.run()
