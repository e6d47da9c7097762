"""
PostgreSQL persistence layer for Entitlements Service.
"""

import asyncio
import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import asyncpg
from shared.contracts import Plan, Subscription, SubscriptionStatus, utcnow
from shared.errors import (
    ConcurrentModification, DataUnavailable, NoActiveSubscription, SchoolyException, ValidationError,
)
from shared.logging import get_logger


TRANSIENT_ERRORS = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.InterfaceError,
    asyncpg.exceptions.TooManyConnectionsError,
    OSError,
    asyncio.TimeoutError,
)


class PostgreSQLPlanStore:
    """Plans and subscriptions in PostgreSQL."""

    def __init__(self, dsn: str):
        self.dsn = dsn
        self.logger = get_logger("entitlements.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
                command_timeout=30
            )

            await self._create_tables()

            self.logger.info("PostgreSQL persistence started")

        except TRANSIENT_ERRORS as e:
            self.logger.error("Failed to start PostgreSQL persistence", error=str(e))
            raise SchoolyException("POSTGRES_START_FAILED", str(e))

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL persistence stopped")

    async def _create_tables(self):
        """Create database tables."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS plans (
                    id VARCHAR(255) PRIMARY KEY,
                    name VARCHAR(64) NOT NULL UNIQUE,
                    display_name VARCHAR(255) NOT NULL,
                    description TEXT,
                    price NUMERIC(12, 2) NOT NULL DEFAULT 0,
                    currency VARCHAR(8) NOT NULL DEFAULT 'XOF',
                    interval VARCHAR(16) NOT NULL DEFAULT 'monthly',
                    trial_days INTEGER NOT NULL DEFAULT 0,
                    limits JSONB NOT NULL,
                    features JSONB NOT NULL DEFAULT '{}',
                    is_active BOOLEAN NOT NULL DEFAULT TRUE,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS subscriptions (
                    id VARCHAR(255) PRIMARY KEY,
                    tenant_id VARCHAR(255) NOT NULL UNIQUE,
                    plan_id VARCHAR(255) NOT NULL REFERENCES plans(id),
                    status VARCHAR(16) NOT NULL,
                    current_period_end TIMESTAMP WITH TIME ZONE NOT NULL,
                    trial_ends_at TIMESTAMP WITH TIME ZONE,
                    status_effective_at TIMESTAMP WITH TIME ZONE,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_subscriptions_plan ON subscriptions(plan_id);
            """)

    async def _fetchrow(self, query: str, *args) -> Optional[asyncpg.Record]:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchrow(query, *args)
        except TRANSIENT_ERRORS as e:
            self.logger.warning("PostgreSQL unavailable", error=str(e))
            raise DataUnavailable(details={"error": str(e)})

    async def _fetch(self, query: str, *args) -> List[asyncpg.Record]:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetch(query, *args)
        except TRANSIENT_ERRORS as e:
            self.logger.warning("PostgreSQL unavailable", error=str(e))
            raise DataUnavailable(details={"error": str(e)})

    @staticmethod
    def _plan_from_row(row: asyncpg.Record) -> Plan:
        data: Dict[str, Any] = dict(row)
        for key in ("limits", "features"):
            if isinstance(data[key], str):
                data[key] = json.loads(data[key])
        return Plan(**data)

    @staticmethod
    def _subscription_from_row(row: asyncpg.Record) -> Subscription:
        return Subscription(**dict(row))

    async def get_plan(self, plan_id: str) -> Optional[Plan]:
        row = await self._fetchrow("SELECT * FROM plans WHERE id = $1", plan_id)
        return self._plan_from_row(row) if row else None

    async def get_plan_by_name(self, name: str) -> Optional[Plan]:
        row = await self._fetchrow("SELECT * FROM plans WHERE name = $1", name)
        return self._plan_from_row(row) if row else None

    async def list_plans(self, include_inactive: bool = False) -> List[Plan]:
        if include_inactive:
            rows = await self._fetch("SELECT * FROM plans ORDER BY price, name")
        else:
            rows = await self._fetch("SELECT * FROM plans WHERE is_active ORDER BY price, name")
        return [self._plan_from_row(row) for row in rows]

    async def save_plan(self, plan: Plan) -> Plan:
        """Insert or replace a plan row."""
        data = plan.model_dump(mode="json")
        row = await self._fetchrow("""
            INSERT INTO plans (
                id, name, display_name, description, price, currency, interval,
                trial_days, limits, features, is_active, created_at, updated_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9::jsonb, $10::jsonb, $11, $12, $13)
            ON CONFLICT (id) DO UPDATE SET
                name = EXCLUDED.name,
                display_name = EXCLUDED.display_name,
                description = EXCLUDED.description,
                price = EXCLUDED.price,
                currency = EXCLUDED.currency,
                interval = EXCLUDED.interval,
                trial_days = EXCLUDED.trial_days,
                limits = EXCLUDED.limits,
                features = EXCLUDED.features,
                is_active = EXCLUDED.is_active,
                updated_at = EXCLUDED.updated_at
            RETURNING *
        """,
            plan.id, plan.name, plan.display_name, plan.description, plan.price,
            plan.currency, plan.interval.value, plan.trial_days,
            json.dumps(data["limits"]), json.dumps(data["features"]),
            plan.is_active, plan.created_at, plan.updated_at
        )
        return self._plan_from_row(row)

    async def seed_plans(self, plans: Iterable[Plan]) -> int:
        """Insert seed plans whose name is not in the catalog yet."""
        created = 0
        for plan in plans:
            if await self.get_plan_by_name(plan.name) is None:
                await self.save_plan(plan)
                created += 1
        if created:
            self.logger.info("Seeded plan catalog", created=created)
        return created

    async def get_subscription(self, tenant_id: str) -> Optional[Subscription]:
        row = await self._fetchrow("SELECT * FROM subscriptions WHERE tenant_id = $1", tenant_id)
        return self._subscription_from_row(row) if row else None

    async def create_subscription(self, subscription: Subscription) -> Subscription:
        row = await self._fetchrow("""
            INSERT INTO subscriptions (
                id, tenant_id, plan_id, status, current_period_end, trial_ends_at,
                status_effective_at, created_at, updated_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            ON CONFLICT (tenant_id) DO NOTHING
            RETURNING *
        """,
            subscription.id, subscription.tenant_id, subscription.plan_id,
            subscription.status.value, subscription.current_period_end,
            subscription.trial_ends_at, subscription.status_effective_at,
            subscription.created_at, subscription.updated_at
        )
        if row is None:
            raise ValidationError(
                "School already has a subscription",
                details={"tenant_id": subscription.tenant_id}
            )
        return self._subscription_from_row(row)

    async def replace_plan(self, tenant_id: str, expected_plan_id: str, new_plan_id: str) -> Subscription:
        """Conditionally swap the plan reference; the precondition is the current plan id."""
        row = await self._fetchrow("""
            UPDATE subscriptions
            SET plan_id = $3, updated_at = $4
            WHERE tenant_id = $1 AND plan_id = $2
            RETURNING *
        """, tenant_id, expected_plan_id, new_plan_id, utcnow())

        if row is not None:
            return self._subscription_from_row(row)

        if await self.get_subscription(tenant_id) is None:
            raise NoActiveSubscription(tenant_id)

        raise ConcurrentModification(
            details={"tenant_id": tenant_id, "expected_plan_id": expected_plan_id}
        )

    async def apply_status(self, tenant_id: str, status: SubscriptionStatus, effective_at: datetime) -> bool:
        """Apply a billing status unless an event at or after ``effective_at`` already was."""
        row = await self._fetchrow("""
            UPDATE subscriptions
            SET status = $2, status_effective_at = $3, updated_at = $4
            WHERE tenant_id = $1
              AND (status_effective_at IS NULL OR status_effective_at < $3)
            RETURNING id
        """, tenant_id, status.value, effective_at, utcnow())

        if row is not None:
            return True

        if await self.get_subscription(tenant_id) is None:
            raise NoActiveSubscription(tenant_id)

        return False

    async def health_check(self) -> bool:
        """Check database connectivity."""
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except TRANSIENT_ERRORS as e:
            self.logger.error("Health check failed", error=str(e))
            return False
