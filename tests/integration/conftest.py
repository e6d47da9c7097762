"""
In-process wiring of the three services for integration tests.

The gateway's real HTTP clients reach the entitlements and auth apps through
an ASGI transport instead of the network.
"""

from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from service_auth.app.main import AuthService
from service_entitlements.app.main import EntitlementsService
from service_gateway.app.main import GatewayService
from shared.contracts import Role
from shared.test_helpers import (
    InMemoryPermissionStore, InMemoryPlanStore, SchoolDataFactory, make_config,
)


RealAsyncClient = httpx.AsyncClient


class ServiceRouter(httpx.AsyncBaseTransport):
    """Dispatches requests to in-process apps by host name."""

    def __init__(self, apps):
        self.transports = {host: httpx.ASGITransport(app=app) for host, app in apps.items()}

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self.transports[request.url.host].handle_async_request(request)


@pytest.fixture
def users():
    return [
        SchoolDataFactory.school_admin("school-1"),
        SchoolDataFactory.staff(Role.TEACHER, "school-1"),
        SchoolDataFactory.school_admin("school-2"),
        SchoolDataFactory.staff(Role.PARENT, "school-2"),
    ]


@pytest.fixture
def plan_store():
    return InMemoryPlanStore()


@pytest.fixture
def permission_store(users):
    return InMemoryPermissionStore(users=[SchoolDataFactory.account(user) for user in users])


@pytest.fixture
def entitlements(plan_store):
    service = EntitlementsService(store=plan_store, config=make_config("entitlements", 8011))
    with TestClient(service.app) as client:
        yield client


@pytest.fixture
def auth(permission_store):
    service = AuthService(store=permission_store, config=make_config("auth", 8010))
    with TestClient(service.app) as client:
        yield client


@pytest.fixture
def gateway(entitlements, auth):
    router = ServiceRouter({"entitlements": entitlements.app, "auth": auth.app})

    def async_client(**kwargs):
        return RealAsyncClient(transport=router, **kwargs)

    service = GatewayService(config=make_config(
        "gateway", 8000,
        entitlements_service_url="http://entitlements",
        auth_service_url="http://auth",
        data_retry_attempts=1,
    ))
    with patch.object(httpx, "AsyncClient", new=async_client):
        with TestClient(service.app) as client:
            yield client
