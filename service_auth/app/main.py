"""
Auth service for Schooly Access Layer.
"""

from typing import Dict, List, Optional

from fastapi import Depends

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.contracts import EffectivePermissions, Permission, Principal
from shared.errors import AuthorizationError

from .permissions.catalog import default_permissions
from .permissions.engine import AuthorizationEngine
from .permissions.models import (
    GrantChangeResponse, GrantRequest, PermissionCheckRequest, PermissionCheckResponse,
    PermissionCreateRequest, TokenVerificationRequest, TokenVerificationResponse,
)
from .persistence.postgres import PostgreSQLPermissionStore
from .validation.token_validator import TokenValidator


class AuthService(BaseService):
    """Auth service implementation."""

    def __init__(self, store=None, config: Optional[ServiceConfig] = None):
        config = config or get_config("auth", 8010)
        super().__init__("auth", 8010, config)

        self.store = store or PostgreSQLPermissionStore(self.config.postgres_dsn)
        self.engine = AuthorizationEngine(self.store)
        self.token_validator = TokenValidator(self.sessions)

        self._setup_auth_routes()

    def _record_decision(self, allowed: bool):
        self.metrics.increment_counter(
            "authorization_decisions_total",
            outcome="allowed" if allowed else "denied"
        )

    def _setup_auth_routes(self):
        """Set up auth-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "auth",
                "message": "Schooly Access Layer - Auth Service",
                "version": "1.0.0"
            }

        @self.app.post("/auth/verify", response_model=TokenVerificationResponse)
        async def verify_token(request: TokenVerificationRequest):
            """Token verification endpoint."""
            return self.token_validator.verify_token(request.token)

        @self.app.get("/authorization/me", response_model=EffectivePermissions)
        async def my_permissions(principal: Principal = Depends(self.current_principal)):
            """Effective permissions of the session user."""
            return await self.with_retry(self.engine.effective_permissions, principal)

        @self.app.post("/authorization/check", response_model=PermissionCheckResponse)
        async def check_permission(request: PermissionCheckRequest,
                                   principal: Principal = Depends(self.current_principal)):
            if request.action is None:
                allowed = await self.with_retry(self.engine.has_any_permission, principal, request.category)
            else:
                allowed = await self.with_retry(
                    self.engine.has_permission, principal, request.category, request.action
                )

            self._record_decision(allowed)
            return PermissionCheckResponse(
                user_id=principal.user_id,
                category=request.category,
                action=request.action,
                allowed=allowed
            )

        @self.app.get("/authorization/{user_id}", response_model=EffectivePermissions)
        async def user_permissions(user_id: str, principal: Principal = Depends(self.current_principal)):
            """Effective permission set of a user, or the all-access marker."""
            try:
                return await self.with_retry(self.engine.permissions_for_user, principal, user_id)
            except AuthorizationError:
                self._record_decision(False)
                raise

        @self.app.post("/authorization/{user_id}/grants", response_model=GrantChangeResponse)
        async def grant_permission(user_id: str, request: GrantRequest,
                                   principal: Principal = Depends(self.current_principal)):
            changed = await self.engine.grant(principal, user_id, request.permission_id)
            if changed:
                self.metrics.increment_counter("permission_grant_changes_total", kind="grant")
            return GrantChangeResponse(user_id=user_id, permission_id=request.permission_id, changed=changed)

        @self.app.delete("/authorization/{user_id}/grants/{permission_id}", response_model=GrantChangeResponse)
        async def revoke_permission(user_id: str, permission_id: str,
                                    principal: Principal = Depends(self.current_principal)):
            changed = await self.engine.revoke(principal, user_id, permission_id)
            if changed:
                self.metrics.increment_counter("permission_grant_changes_total", kind="revoke")
            return GrantChangeResponse(user_id=user_id, permission_id=permission_id, changed=changed)

        @self.app.get("/permissions", response_model=List[Permission])
        async def list_permissions(principal: Principal = Depends(self.current_principal)):
            return await self.with_retry(self.engine.list_permissions, principal)

        @self.app.post("/permissions", response_model=Permission, status_code=201)
        async def create_permission(request: PermissionCreateRequest,
                                    principal: Principal = Depends(self.current_principal)):
            """Add a permission to the global catalog (SUPER_ADMIN)."""
            return await self.engine.create_permission(
                principal, request.category, request.name, request.description
            )

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check auth dependencies."""
        return {"postgres": "ok" if await self.store.health_check() else "error"}

    async def start(self):
        """Start auth service components."""
        await self.store.start()
        created = await self.store.seed_permissions(default_permissions())
        self.logger.info("Auth service started", seeded_permissions=created)

    async def stop(self):
        """Stop auth service components."""
        await self.store.stop()
        self.logger.info("Auth service stopped")


def create_app():
    """Create FastAPI application."""
    service = AuthService()
    return service.app


if __name__ == "__main__":
    service = AuthService()
    service.run()
