"""
Entitlements service client for Gateway.
"""

from shared.contracts import Entitlement

from .service_client import ServiceClient


class EntitlementsClient(ServiceClient):
    """Client for communicating with Entitlements service."""

    upstream = "entitlements"

    async def get_entitlement(self, tenant_id: str, token: str) -> Entitlement:
        """Tenant entitlement; a school without subscription is a typed state, not an error."""
        data = await self.request("GET", f"/entitlement/{tenant_id}", token)
        return Entitlement.model_validate(data)
