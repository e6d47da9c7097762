"""
Unit tests for Auth main service.
"""

import pytest
from fastapi.testclient import TestClient

from service_auth.app.main import AuthService
from shared.contracts import Principal, Role
from shared.session import issue_token
from shared.test_helpers import (
    TEST_SECRET, InMemoryPermissionStore, MockTokenGenerator, SchoolDataFactory, make_config,
)


tokens = MockTokenGenerator()

root = SchoolDataFactory.super_admin()
admin = SchoolDataFactory.school_admin("school-1")
teacher = SchoolDataFactory.staff(Role.TEACHER, "school-1")
foreign_teacher = SchoolDataFactory.staff(Role.TEACHER, "school-2")


class TestAuthService:
    """Test cases for AuthService."""

    @pytest.fixture
    def store(self):
        return InMemoryPermissionStore(
            users=[SchoolDataFactory.account(p) for p in (root, admin, teacher, foreign_teacher)]
        )

    @pytest.fixture
    def client(self, store):
        service = AuthService(store=store, config=make_config("auth", 8010))
        with TestClient(service.app) as client:
            yield client

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "auth"

    def test_startup_seeds_permissions(self, client, store):
        assert "perm-students-view" in store.permissions

    def test_health_endpoint(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["dependencies"]["postgres"] == "ok"

    def test_verify_token(self, client):
        response = client.post("/auth/verify", json={"token": tokens.token_for(teacher)})
        data = response.json()
        assert data["valid"] is True
        assert data["principal"] == {"user_id": teacher.user_id, "role": "TEACHER", "tenant_id": "school-1"}

    def test_verify_expired_token(self, client):
        response = client.post("/auth/verify", json={"token": tokens.token_for(teacher, expires_in=-60)})
        data = response.json()
        assert data["valid"] is False
        assert data["principal"] is None

    def test_unknown_role_claim_is_integrity_error(self, client):
        forged = issue_token(teacher, TEST_SECRET, extra_claims={"role": "JANITOR"})

        response = client.get("/authorization/me", headers={"Authorization": f"Bearer {forged}"})

        assert response.status_code == 500
        assert response.json()["code"] == "DATA_INTEGRITY_ERROR"

    def test_me_for_admin_is_all_access(self, client):
        response = client.get("/authorization/me", headers=tokens.headers(admin))
        assert response.status_code == 200
        data = response.json()
        assert data["all_access"] is True
        assert data["grants"] == []

    def test_me_requires_session(self, client):
        response = client.get("/authorization/me")
        assert response.status_code == 401

    def test_grant_check_revoke(self, client):
        admin_headers = tokens.headers(admin)
        teacher_headers = tokens.headers(teacher)
        check = {"category": "attendance", "action": "create"}

        assert client.post("/authorization/check", json=check, headers=teacher_headers).json()["allowed"] is False

        granted = client.post(
            f"/authorization/{teacher.user_id}/grants",
            json={"permission_id": "perm-attendance-create"},
            headers=admin_headers
        )
        assert granted.json()["changed"] is True
        assert client.post("/authorization/check", json=check, headers=teacher_headers).json()["allowed"] is True

        me = client.get("/authorization/me", headers=teacher_headers).json()
        assert me["grants"] == [{"category": "attendance", "action": "create"}]

        revoked = client.delete(
            f"/authorization/{teacher.user_id}/grants/perm-attendance-create",
            headers=admin_headers
        )
        assert revoked.json()["changed"] is True
        assert client.post("/authorization/check", json=check, headers=teacher_headers).json()["allowed"] is False

    def test_check_any_action_in_category(self, client):
        client.post(
            f"/authorization/{teacher.user_id}/grants",
            json={"permission_id": "perm-homework-view"},
            headers=tokens.headers(admin)
        )

        response = client.post(
            "/authorization/check",
            json={"category": "homework"},
            headers=tokens.headers(teacher)
        )

        assert response.json()["allowed"] is True

    def test_user_permissions_cross_tenant(self, client):
        response = client.get(f"/authorization/{foreign_teacher.user_id}", headers=tokens.headers(admin))
        assert response.status_code == 403
        assert response.json()["message"] == "Access denied"

    def test_user_permissions_missing_user(self, client):
        response = client.get("/authorization/ghost", headers=tokens.headers(root))
        assert response.status_code == 404

    def test_missing_and_foreign_users_are_indistinguishable(self, client):
        headers = tokens.headers(admin)
        body = {"permission_id": "perm-grades-view"}
        responses = [
            client.get(f"/authorization/{foreign_teacher.user_id}", headers=headers),
            client.get("/authorization/ghost", headers=headers),
            client.post(f"/authorization/{foreign_teacher.user_id}/grants", json=body, headers=headers),
            client.post("/authorization/ghost/grants", json=body, headers=headers),
            client.delete(f"/authorization/{foreign_teacher.user_id}/grants/perm-grades-view", headers=headers),
            client.delete("/authorization/ghost/grants/perm-grades-view", headers=headers),
        ]

        assert {r.status_code for r in responses} == {403}
        assert {r.json()["code"] for r in responses} == {"CROSS_TENANT_ACCESS_DENIED"}
        assert all(r.json()["details"] == {} for r in responses)

    def test_cross_tenant_grant(self, client):
        response = client.post(
            f"/authorization/{foreign_teacher.user_id}/grants",
            json={"permission_id": "perm-grades-view"},
            headers=tokens.headers(admin)
        )
        assert response.status_code == 403
        assert response.json()["code"] == "CROSS_TENANT_ACCESS_DENIED"

    def test_list_permissions(self, client):
        assert client.get("/permissions", headers=tokens.headers(admin)).status_code == 200
        assert client.get("/permissions", headers=tokens.headers(teacher)).status_code == 403

    def test_create_permission(self, client):
        body = {"category": "library", "name": "borrow", "description": "Borrow books"}

        denied = client.post("/permissions", json=body, headers=tokens.headers(admin))
        created = client.post("/permissions", json=body, headers=tokens.headers(root))
        duplicate = client.post("/permissions", json=body, headers=tokens.headers(root))

        assert denied.status_code == 403
        assert created.status_code == 201
        assert created.json()["category"] == "library"
        assert duplicate.status_code == 400

    def test_decision_metrics(self, client):
        client.post("/authorization/check", json={"category": "grades", "action": "view"},
                    headers=tokens.headers(teacher))
        body = client.get("/metrics").text
        assert 'authorization_decisions_total{outcome="denied"} 1.0' in body


def test_principal_requires_tenant_for_school_roles():
    with pytest.raises(ValueError):
        Principal(user_id="u1", role=Role.TEACHER)
