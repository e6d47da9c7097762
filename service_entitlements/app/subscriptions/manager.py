"""
Subscription lifecycle manager.
"""

from datetime import datetime, timedelta
from typing import Optional

from shared import gating
from shared.contracts import Plan, Subscription, SubscriptionStatus, utcnow
from shared.errors import (
    ConcurrentModification, NoActiveSubscription, NotFoundError, ValidationError,
)
from shared.logging import get_logger

from ..plans.engine import EntitlementEngine
from ..plans.models import PlanChangeResponse


class SubscriptionManager:
    """Trial onboarding, plan changes and billing status transitions."""

    def __init__(self, store, engine: EntitlementEngine, default_trial_plan: str = "STARTER"):
        self.store = store
        self.engine = engine
        self.default_trial_plan = default_trial_plan
        self.logger = get_logger("entitlements.subscriptions")

    async def _offered_plan(self, plan_id: Optional[str] = None, plan_name: Optional[str] = None) -> Plan:
        """A plan that may become the target of a subscription."""
        if plan_id:
            plan = await self.store.get_plan(plan_id)
        else:
            plan = await self.store.get_plan_by_name((plan_name or "").strip().upper())

        if plan is None:
            raise NotFoundError("Plan not found", details={"plan_id": plan_id, "plan_name": plan_name})

        if not plan.is_active:
            raise ValidationError("Plan is no longer offered", details={"plan_id": plan.id})

        return plan

    async def start_trial(self, tenant_id: str, plan_name: Optional[str] = None) -> Subscription:
        """Create the onboarding subscription of a new school."""
        if await self.store.get_subscription(tenant_id) is not None:
            raise ValidationError("School already has a subscription", details={"tenant_id": tenant_id})

        plan = await self._offered_plan(plan_name=plan_name or self.default_trial_plan)

        now = utcnow()
        trial_ends_at = now + timedelta(days=plan.trial_days) if plan.trial_days else None

        subscription = await self.store.create_subscription(Subscription(
            tenant_id=tenant_id,
            plan_id=plan.id,
            status=SubscriptionStatus.TRIAL,
            current_period_end=trial_ends_at or now + plan.interval.period,
            trial_ends_at=trial_ends_at,
        ))

        self.logger.info(
            "Trial started",
            tenant_id=tenant_id,
            plan=plan.name,
            trial_ends_at=trial_ends_at.isoformat() if trial_ends_at else None
        )
        return subscription

    async def change_plan(self, tenant_id: str, plan_id: Optional[str] = None,
                          plan_name: Optional[str] = None,
                          expected_plan_id: Optional[str] = None) -> PlanChangeResponse:
        """Replace the plan reference with a conditional update.

        A caller-supplied ``expected_plan_id`` is checked once. Without one
        the current plan is re-read and the update retried a single time.
        """
        target = await self._offered_plan(plan_id=plan_id, plan_name=plan_name)
        attempts = 1 if expected_plan_id else 2

        for attempt in range(1, attempts + 1):
            current = await self.store.get_subscription(tenant_id)
            if current is None:
                raise NoActiveSubscription(tenant_id)

            precondition = expected_plan_id or current.plan_id

            if current.plan_id == target.id and precondition == current.plan_id:
                return PlanChangeResponse(
                    subscription=current,
                    previous_plan_id=current.plan_id,
                    changed=False,
                )

            try:
                updated = await self.store.replace_plan(tenant_id, precondition, target.id)
            except ConcurrentModification:
                if attempt == attempts:
                    self.logger.warning(
                        "Plan change lost a concurrent update",
                        tenant_id=tenant_id,
                        expected_plan_id=precondition,
                        target_plan_id=target.id
                    )
                    raise ConcurrentModification(
                        details={"tenant_id": tenant_id, "target_plan_id": target.id}
                    )
                self.logger.info("Plan changed concurrently, retrying", tenant_id=tenant_id)
                continue

            previous = await self.engine.load_plan(precondition)
            added = (
                gating.additional_features(previous.to_limits(), target.to_limits())
                if previous is not None else []
            )

            self.logger.info(
                "Plan changed",
                tenant_id=tenant_id,
                previous_plan_id=precondition,
                plan=target.name
            )
            return PlanChangeResponse(
                subscription=updated,
                previous_plan_id=precondition,
                changed=True,
                added_features=added,
            )

        raise ConcurrentModification(details={"tenant_id": tenant_id})

    async def apply_subscription_status(self, tenant_id: str, status: SubscriptionStatus,
                                        effective_at: datetime) -> bool:
        """Idempotent billing event entry point; returns whether the row changed."""
        applied = await self.store.apply_status(tenant_id, status, effective_at)

        if applied:
            self.logger.info(
                "Subscription status applied",
                tenant_id=tenant_id,
                status=status.value,
                effective_at=effective_at.isoformat()
            )
        else:
            self.logger.info(
                "Billing event already applied or superseded",
                tenant_id=tenant_id,
                status=status.value,
                effective_at=effective_at.isoformat()
            )
        return applied
