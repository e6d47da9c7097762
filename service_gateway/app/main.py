"""
API Gateway service for Schooly Access Layer.
"""

import asyncio
from typing import Dict, Optional, Tuple

from fastapi import Depends, Header, Query

from shared import gating
from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.contracts import Principal
from shared.errors import ValidationError

from .adapters.authorization_client import AuthorizationClient
from .adapters.entitlements_client import EntitlementsClient
from .domain.gates import UiGates, build_ui_gates


class GatewayService(BaseService):
    """API Gateway service implementation."""

    def __init__(self, entitlements_client: Optional[EntitlementsClient] = None,
                 authorization_client: Optional[AuthorizationClient] = None,
                 config: Optional[ServiceConfig] = None):
        config = config or get_config("gateway", 8000)
        super().__init__("gateway", 8000, config)

        self.entitlements_client = entitlements_client or EntitlementsClient(
            self.config.entitlements_service_url,
            retry_config=self.retry_config,
            metrics=self.metrics
        )
        self.authorization_client = authorization_client or AuthorizationClient(
            self.config.auth_service_url,
            retry_config=self.retry_config,
            metrics=self.metrics
        )

        self._setup_gateway_routes()

    async def session(self, authorization: Optional[str] = Header(None)) -> Tuple[Principal, str]:
        """Session principal plus the raw token forwarded to upstream services."""
        principal = await self.current_principal(authorization)
        return principal, authorization[7:]

    def _setup_gateway_routes(self):
        """Set up gateway-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "gateway",
                "message": "Schooly Access Layer - API Gateway",
                "version": "1.0.0"
            }

        @self.app.get("/gates", response_model=UiGates)
        async def ui_gates(tenant_id: Optional[str] = Query(None, description="SUPER_ADMIN only"),
                           session: Tuple[Principal, str] = Depends(self.session)):
            """Navigation and feature gates for the session user in its school."""
            principal, token = session
            target_tenant = tenant_id or principal.tenant_id
            if target_tenant is None:
                raise ValidationError("tenant_id is required", details={"field": "tenant_id"})
            gating.ensure_same_tenant(principal, target_tenant)

            # Both calls run to completion before the first failure is raised
            results = await asyncio.gather(
                self.authorization_client.get_effective_permissions(principal.user_id, token),
                self.entitlements_client.get_entitlement(target_tenant, token),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result
            effective, entitlement = results

            gates = build_ui_gates(effective, entitlement)
            self.logger.debug(
                "UI gates computed",
                tenant_id=target_tenant,
                visible=[gate.category for gate in gates.navigation if gate.visible]
            )
            return gates

    async def _check_dependencies(self) -> Dict[str, str]:
        """The gateway holds no store; upstreams report their own health."""
        return {}


def create_app():
    """Create FastAPI application."""
    service = GatewayService()
    return service.app


if __name__ == "__main__":
    service = GatewayService()
    service.run()
