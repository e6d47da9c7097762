"""
PostgreSQL persistence layer for Auth Service.
"""

import asyncio
from typing import Iterable, List, Optional

import asyncpg
from shared.contracts import Permission, UserAccount, UserPermissionGrant
from shared.errors import DataUnavailable, SchoolyException, ValidationError
from shared.logging import get_logger


TRANSIENT_ERRORS = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.InterfaceError,
    asyncpg.exceptions.TooManyConnectionsError,
    OSError,
    asyncio.TimeoutError,
)


class PostgreSQLPermissionStore:
    """Users, permissions and grants in PostgreSQL."""

    def __init__(self, dsn: str):
        self.dsn = dsn
        self.logger = get_logger("auth.persistence.postgres")
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
            # Rows are owned by the identity provider; this service only reads them
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id VARCHAR(255) PRIMARY KEY,
                    role VARCHAR(32) NOT NULL,
                    tenant_id VARCHAR(255),
                    display_name VARCHAR(255)
                );
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS permissions (
                    id VARCHAR(255) PRIMARY KEY,
                    category VARCHAR(64) NOT NULL,
                    name VARCHAR(64) NOT NULL,
                    description TEXT,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    UNIQUE (category, name)
                );
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS user_permissions (
                    user_id VARCHAR(255) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    permission_id VARCHAR(255) NOT NULL REFERENCES permissions(id) ON DELETE CASCADE,
                    granted_by VARCHAR(255),
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    PRIMARY KEY (user_id, permission_id)
                );
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_users_tenant ON users(tenant_id);
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

    async def get_user(self, user_id: str) -> Optional[UserAccount]:
        row = await self._fetchrow(
            "SELECT id AS user_id, role, tenant_id, display_name FROM users WHERE id = $1",
            user_id
        )
        return UserAccount(**dict(row)) if row else None

    async def get_permission(self, permission_id: str) -> Optional[Permission]:
        row = await self._fetchrow("SELECT * FROM permissions WHERE id = $1", permission_id)
        return Permission(**dict(row)) if row else None

    async def get_permission_by_key(self, category: str, name: str) -> Optional[Permission]:
        row = await self._fetchrow(
            "SELECT * FROM permissions WHERE category = $1 AND name = $2",
            category, name
        )
        return Permission(**dict(row)) if row else None

    async def list_permissions(self) -> List[Permission]:
        rows = await self._fetch("SELECT * FROM permissions ORDER BY category, name")
        return [Permission(**dict(row)) for row in rows]

    async def create_permission(self, permission: Permission) -> Permission:
        row = await self._fetchrow("""
            INSERT INTO permissions (id, category, name, description, created_at)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT DO NOTHING
            RETURNING *
        """, permission.id, permission.category, permission.name,
            permission.description, permission.created_at)
        if row is None:
            raise ValidationError("Permission already exists", details={"permission": permission.key})
        return Permission(**dict(row))

    async def seed_permissions(self, permissions: Iterable[Permission]) -> int:
        """Insert catalog rows whose (category, name) is not present yet."""
        created = 0
        for permission in permissions:
            if await self.get_permission_by_key(permission.category, permission.name) is None:
                await self.create_permission(permission)
                created += 1
        if created:
            self.logger.info("Seeded permission catalog", created=created)
        return created

    async def permissions_for_user(self, user_id: str) -> List[Permission]:
        rows = await self._fetch("""
            SELECT p.* FROM permissions p
            JOIN user_permissions up ON up.permission_id = p.id
            WHERE up.user_id = $1
            ORDER BY p.category, p.name
        """, user_id)
        return [Permission(**dict(row)) for row in rows]

    async def add_grant(self, grant: UserPermissionGrant) -> bool:
        row = await self._fetchrow("""
            INSERT INTO user_permissions (user_id, permission_id, granted_by, created_at)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (user_id, permission_id) DO NOTHING
            RETURNING user_id
        """, grant.user_id, grant.permission_id, grant.granted_by, grant.created_at)
        return row is not None

    async def remove_grant(self, user_id: str, permission_id: str) -> bool:
        row = await self._fetchrow("""
            DELETE FROM user_permissions
            WHERE user_id = $1 AND permission_id = $2
            RETURNING user_id
        """, user_id, permission_id)
        return row is not None

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
