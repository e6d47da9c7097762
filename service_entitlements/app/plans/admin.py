"""
Plan catalog administration.
"""

import pydantic

from shared.contracts import Plan, utcnow
from shared.errors import NotFoundError, ValidationError
from shared.logging import get_logger

from .models import PlanCreateRequest, PlanUpdateRequest


class PlanAdministration:
    """Create, edit and retire plan rows."""

    def __init__(self, store, cache=None):
        self.store = store
        self.cache = cache
        self.logger = get_logger("entitlements.plans")

    async def _existing(self, plan_id: str) -> Plan:
        plan = await self.store.get_plan(plan_id)
        if plan is None:
            raise NotFoundError("Plan not found", details={"plan_id": plan_id})
        return plan

    async def _save(self, plan: Plan) -> Plan:
        saved = await self.store.save_plan(plan)
        if self.cache is not None:
            await self.cache.invalidate_plan(plan.id)
        return saved

    async def create_plan(self, request: PlanCreateRequest) -> Plan:
        try:
            plan = Plan(**request.model_dump())
        except pydantic.ValidationError as e:
            raise ValidationError("Invalid plan", details={"error": str(e)})

        if await self.store.get_plan_by_name(plan.name) is not None:
            raise ValidationError("Plan name already exists", details={"name": plan.name})

        saved = await self._save(plan)
        self.logger.info("Plan created", plan_id=saved.id, name=saved.name)
        return saved

    async def update_plan(self, plan_id: str, request: PlanUpdateRequest) -> Plan:
        existing = await self._existing(plan_id)
        changes = request.model_dump(exclude_none=True)
        # Partial limit and feature maps are merged into the existing row
        for key in ("limits", "features"):
            if key in changes:
                changes[key] = {**getattr(existing, key), **changes[key]}

        try:
            plan = Plan(**{**existing.model_dump(), **changes, "updated_at": utcnow()})
        except pydantic.ValidationError as e:
            raise ValidationError("Invalid plan", details={"error": str(e)})

        saved = await self._save(plan)
        self.logger.info("Plan updated", plan_id=plan_id, fields=sorted(changes))
        return saved

    async def deactivate_plan(self, plan_id: str) -> Plan:
        """Retire a plan. Subscriptions already on it keep resolving."""
        existing = await self._existing(plan_id)
        if not existing.is_active:
            return existing

        saved = await self._save(existing.model_copy(update={"is_active": False, "updated_at": utcnow()}))
        self.logger.info("Plan deactivated", plan_id=plan_id, name=saved.name)
        return saved
