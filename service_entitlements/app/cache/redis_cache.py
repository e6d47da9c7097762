"""
Redis caching layer for the plan catalog.
"""

from typing import Optional

import pydantic
import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.contracts import Plan
from shared.errors import SchoolyException
from shared.logging import get_logger


class RedisPlanCache:
    """Short-lived cache of plan rows.

    Cache failures degrade to a miss; the store stays the source of truth.
    """

    PLAN_PREFIX = "plan:"

    def __init__(self, redis_url: str, ttl_seconds: int = 60):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("entitlements.cache.redis")
        self.redis: Optional[redis.Redis] = None

    async def start(self):
        """Start the Redis cache."""
        try:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30
            )

            await self.redis.ping()

            self.logger.info("Redis cache started", ttl_seconds=self.ttl_seconds)

        except (RedisError, OSError) as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise SchoolyException("REDIS_START_FAILED", str(e))

    async def stop(self):
        """Stop the Redis cache."""
        if self.redis:
            await self.redis.aclose()
            self.logger.info("Redis cache stopped")

    def _plan_key(self, plan_id: str) -> str:
        return f"{self.PLAN_PREFIX}{plan_id}"

    async def get_plan(self, plan_id: str) -> Optional[Plan]:
        if self.redis is None:
            return None
        try:
            cached = await self.redis.get(self._plan_key(plan_id))
            if not cached:
                return None
            self.logger.debug("Cache hit for plan", plan_id=plan_id)
            return Plan.model_validate_json(cached)
        except (RedisError, pydantic.ValidationError) as e:
            self.logger.warning("Error reading cached plan", plan_id=plan_id, error=str(e))
            return None

    async def set_plan(self, plan: Plan) -> bool:
        if self.redis is None:
            return False
        try:
            await self.redis.setex(self._plan_key(plan.id), self.ttl_seconds, plan.model_dump_json())
            return True
        except RedisError as e:
            self.logger.warning("Error caching plan", plan_id=plan.id, error=str(e))
            return False

    async def invalidate_plan(self, plan_id: str) -> bool:
        if self.redis is None:
            return False
        try:
            removed = await self.redis.delete(self._plan_key(plan_id))
            self.logger.info("Invalidated cached plan", plan_id=plan_id, removed=removed)
            return bool(removed)
        except RedisError as e:
            self.logger.warning("Error invalidating cached plan", plan_id=plan_id, error=str(e))
            return False

    async def health_check(self) -> bool:
        """Check Redis health."""
        if self.redis is None:
            return False
        try:
            await self.redis.ping()
            return True
        except (RedisError, OSError):
            return False
