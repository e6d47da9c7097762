"""
Unit tests for Gateway service clients.
"""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from service_gateway.app.adapters.authorization_client import AuthorizationClient
from service_gateway.app.adapters.entitlements_client import EntitlementsClient
from shared.contracts import EntitlementState
from shared.errors import CrossTenantAccessDenied, DataUnavailable, Unauthenticated
from shared.retry import RetryConfig


FAST_RETRY = RetryConfig(max_attempts=3, base_delay=0.0, jitter=False)


def http_response(status_code: int, body: dict) -> httpx.Response:
    return httpx.Response(
        status_code=status_code,
        content=json.dumps(body),
        request=httpx.Request("GET", "http://upstream")
    )


class TestEntitlementsClient:
    """Test cases for EntitlementsClient."""

    @pytest.fixture
    def client(self):
        return EntitlementsClient("http://localhost:8011", retry_config=FAST_RETRY)

    @pytest.mark.asyncio
    async def test_get_entitlement(self, client):
        body = {"tenant_id": "school-1", "state": "no_subscription"}

        with patch("httpx.AsyncClient") as mock_client:
            request = AsyncMock(return_value=http_response(200, body))
            mock_client.return_value.__aenter__.return_value.request = request

            entitlement = await client.get_entitlement("school-1", "tok")

        assert entitlement.state is EntitlementState.NO_SUBSCRIPTION
        method, url = request.call_args.args
        assert (method, url) == ("GET", "http://localhost:8011/entitlement/school-1")
        assert request.call_args.kwargs["headers"]["Authorization"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self, client):
        body = {"tenant_id": "school-1", "state": "no_subscription"}

        with patch("httpx.AsyncClient") as mock_client:
            request = AsyncMock(side_effect=[
                httpx.ConnectError("refused"),
                http_response(503, {}),
                http_response(200, body),
            ])
            mock_client.return_value.__aenter__.return_value.request = request

            await client.get_entitlement("school-1", "tok")

        assert request.await_count == 3

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_data_unavailable(self, client):
        with patch("httpx.AsyncClient") as mock_client:
            request = AsyncMock(side_effect=httpx.ConnectError("refused"))
            mock_client.return_value.__aenter__.return_value.request = request

            with pytest.raises(DataUnavailable):
                await client.get_entitlement("school-1", "tok")

        assert request.await_count == 3

    @pytest.mark.asyncio
    async def test_cross_tenant_answer_is_not_retried(self, client):
        body = {"code": "CROSS_TENANT_ACCESS_DENIED", "message": "Access denied", "details": {}}

        with patch("httpx.AsyncClient") as mock_client:
            request = AsyncMock(return_value=http_response(403, body))
            mock_client.return_value.__aenter__.return_value.request = request

            with pytest.raises(CrossTenantAccessDenied):
                await client.get_entitlement("school-2", "tok")

        assert request.await_count == 1


class TestAuthorizationClient:
    """Test cases for AuthorizationClient."""

    @pytest.fixture
    def client(self):
        return AuthorizationClient("http://localhost:8010", retry_config=FAST_RETRY)

    @pytest.mark.asyncio
    async def test_get_effective_permissions(self, client):
        body = {
            "user_id": "u1",
            "role": "TEACHER",
            "tenant_id": "school-1",
            "all_access": False,
            "grants": [{"category": "grades", "action": "view"}],
        }

        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=http_response(200, body)
            )

            effective = await client.get_effective_permissions("u1", "tok")

        assert effective.all_access is False
        assert {(g.category, g.action) for g in effective.grants} == {("grades", "view")}

    @pytest.mark.asyncio
    async def test_unauthenticated(self, client):
        body = {"code": "UNAUTHENTICATED", "message": "Invalid or expired session", "details": {}}

        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=http_response(401, body)
            )

            with pytest.raises(Unauthenticated):
                await client.get_effective_permissions("u1", "tok")
