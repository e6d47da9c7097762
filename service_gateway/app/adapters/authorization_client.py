"""
Auth service client for Gateway.
"""

from shared.contracts import EffectivePermissions

from .service_client import ServiceClient


class AuthorizationClient(ServiceClient):
    """Client for the Auth service's authorization API."""

    upstream = "auth"

    async def get_effective_permissions(self, user_id: str, token: str) -> EffectivePermissions:
        data = await self.request("GET", f"/authorization/{user_id}", token)
        return EffectivePermissions.model_validate(data)
