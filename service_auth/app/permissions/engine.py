"""
Authorization engine.

Admin roles hold the all-access marker and never consult grant rows. Every
other role may do exactly what its grant rows say; there is no inheritance
and no wildcard.
"""

from typing import List, Optional

import pydantic

from shared import gating
from shared.contracts import (
    EffectivePermissions, Permission, Principal, Role, UserAccount, UserPermissionGrant,
)
from shared.errors import CrossTenantAccessDenied, InsufficientPermission, NotFoundError, ValidationError
from shared.logging import get_logger


class AuthorizationEngine:
    """Effective permissions, checks and grant management."""

    def __init__(self, store):
        self.store = store
        self.logger = get_logger("auth.engine")

    async def effective_permissions(self, principal: Principal) -> EffectivePermissions:
        if principal.role.is_full_admin:
            return EffectivePermissions.for_principal(principal)

        permissions = await self.store.permissions_for_user(principal.user_id)
        return EffectivePermissions.for_principal(principal, permissions)

    async def has_permission(self, principal: Principal, category: str, action: str) -> bool:
        effective = await self.effective_permissions(principal)
        return gating.has_permission(effective, category, action)

    async def has_any_permission(self, principal: Principal, category: str) -> bool:
        effective = await self.effective_permissions(principal)
        return gating.has_any_permission(effective, category)

    async def require_permission(self, principal: Principal, category: str, action: str) -> None:
        """Raise InsufficientPermission unless ``principal`` may do (category, action)."""
        if not await self.has_permission(principal, category, action):
            self.logger.info(
                "Permission denied",
                user_id=principal.user_id,
                category=category,
                action=action
            )
            raise InsufficientPermission(category, action)

    def ensure_tenant_access(self, principal: Principal, resource_tenant_id: Optional[str]) -> None:
        try:
            gating.ensure_same_tenant(principal, resource_tenant_id)
        except CrossTenantAccessDenied:
            self.logger.warning(
                "Cross-tenant access denied",
                user_id=principal.user_id,
                tenant_id=principal.tenant_id,
                resource_tenant_id=resource_tenant_id
            )
            raise

    async def load_user(self, actor: Principal, user_id: str) -> UserAccount:
        """User row visible to ``actor``.

        Outside SUPER_ADMIN a missing id is denied exactly like a user of
        another school, so ids in other tenants cannot be discovered.
        """
        user = await self.store.get_user(user_id)
        if user is None:
            if actor.role is Role.SUPER_ADMIN:
                raise NotFoundError("User not found", details={"user_id": user_id})
            self.ensure_tenant_access(actor, None)
        elif actor.role is not Role.SUPER_ADMIN:
            self.ensure_tenant_access(actor, user.tenant_id)
        return user

    async def permissions_for_user(self, actor: Principal, user_id: str) -> EffectivePermissions:
        """Effective permissions of another user, as visible to ``actor``.

        SUPER_ADMIN reads anyone, SCHOOL_ADMIN the users of its school, and
        every other role only itself.
        """
        target = await self.load_user(actor, user_id)
        if actor.role not in (Role.SUPER_ADMIN, Role.SCHOOL_ADMIN) and actor.user_id != target.user_id:
            raise InsufficientPermission("permissions", "view")

        # Stored roles outside the closed set surface as DataIntegrityError
        target_principal = target.principal()
        return await self.effective_permissions(target_principal)

    async def _grant_target(self, actor: Principal, user_id: str, permission_id: str):
        if not actor.role.is_full_admin:
            raise InsufficientPermission("settings", "permissions")

        target = await self.load_user(actor, user_id)

        if target.principal().role.is_full_admin:
            raise ValidationError(
                "Administrators already hold every permission",
                details={"user_id": user_id}
            )

        permission = await self.store.get_permission(permission_id)
        if permission is None:
            raise NotFoundError("Permission not found", details={"permission_id": permission_id})

        return target, permission

    async def grant(self, actor: Principal, user_id: str, permission_id: str) -> bool:
        """Grant a permission; returns False when the grant already existed."""
        target, permission = await self._grant_target(actor, user_id, permission_id)
        created = await self.store.add_grant(UserPermissionGrant(
            user_id=target.user_id,
            permission_id=permission.id,
            granted_by=actor.user_id,
        ))
        self.logger.info(
            "Permission granted" if created else "Permission already granted",
            user_id=user_id,
            permission=permission.key,
            granted_by=actor.user_id
        )
        return created

    async def revoke(self, actor: Principal, user_id: str, permission_id: str) -> bool:
        """Revoke a permission; returns False when there was nothing to revoke."""
        target, permission = await self._grant_target(actor, user_id, permission_id)
        removed = await self.store.remove_grant(target.user_id, permission.id)
        self.logger.info(
            "Permission revoked" if removed else "Permission was not granted",
            user_id=user_id,
            permission=permission.key,
            revoked_by=actor.user_id
        )
        return removed

    async def list_permissions(self, actor: Principal) -> List[Permission]:
        if not actor.role.is_full_admin:
            raise InsufficientPermission("settings", "permissions")
        return await self.store.list_permissions()

    async def create_permission(self, actor: Principal, category: str, name: str,
                                description: Optional[str] = None) -> Permission:
        if actor.role is not Role.SUPER_ADMIN:
            raise InsufficientPermission("settings", "permissions")

        try:
            permission = Permission(category=category, name=name, description=description)
        except pydantic.ValidationError as e:
            raise ValidationError("Invalid permission", details={"error": str(e)})

        if await self.store.get_permission_by_key(permission.category, permission.name) is not None:
            raise ValidationError("Permission already exists", details={"permission": permission.key})

        created = await self.store.create_permission(permission)
        self.logger.info("Permission created", permission=created.key, created_by=actor.user_id)
        return created
