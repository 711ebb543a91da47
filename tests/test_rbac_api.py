"""HTTP tests for the permission-gated user, role, permission and admin routes."""

from datetime import timedelta

import pytest

from authapi.core.timeutils import utcnow
from authapi.db.seeds.seed_roles import default_permission_names
from authapi.models.audit_log import AuditLog
from authapi.models.token import TokenType
from authapi.models.user import User
from authapi.repositories.role_repository import role_repository
from conftest import bearer


@pytest.fixture
def access_for(container):
    """Mint an access token for a stored user without going through login."""

    def _access_for(user):
        expires = utcnow() + timedelta(minutes=5)
        return bearer(container.token_service.generate_token(user.id, TokenType.ACCESS, expires))

    return _access_for


@pytest.fixture
def admin(make_user, make_role):
    role = make_role("Admin", default_permission_names())
    return make_user("admin@example.com", name="Admin", role_id=role.id)


@pytest.fixture
def member(make_user, make_role):
    role = make_role("Default", [])
    return make_user("member@example.com", name="Member", role_id=role.id)


class TestUsersRoutes:

    def test_admin_lists_users(self, client, admin, member, access_for):
        response = client.get("/users", headers=access_for(admin))
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert {u["email"] for u in data["users"]} == {"admin@example.com", "member@example.com"}

    def test_member_cannot_list_users(self, client, member, access_for):
        response = client.get("/users", headers=access_for(member))
        assert response.status_code == 403
        assert response.json() == {
            "status": 403,
            "detail": "Forbidden. You do not have the required rights to access this resource.",
        }

    def test_unauthenticated(self, client):
        assert client.get("/users").status_code == 401

    def test_member_reads_own_record_only(self, client, admin, member, access_for):
        own = client.get(f"/users/{member.id}", headers=access_for(member))
        assert own.status_code == 200
        assert own.json()["email"] == "member@example.com"

        other = client.get(f"/users/{admin.id}", headers=access_for(member))
        assert other.status_code == 403

    def test_missing_user(self, client, admin, access_for):
        response = client.get("/users/9999", headers=access_for(admin))
        assert response.status_code == 404
        assert response.json()["detail"] == "User not found."

    def test_member_updates_own_profile(self, client, db, member, access_for):
        response = client.patch(
            f"/users/{member.id}", headers=access_for(member), json={"name": "Renamed"}
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"

        entry = db.query(AuditLog).filter(AuditLog.action == "user.updated").one()
        assert entry.actor_id == member.id
        assert "Renamed" in entry.new_value_json

    def test_member_cannot_change_own_role(self, client, db, admin, member, access_for):
        response = client.patch(
            f"/users/{member.id}", headers=access_for(member), json={"roleId": admin.role_id}
        )
        assert response.status_code == 403
        db.refresh(member)
        assert member.role_id != admin.role_id

    def test_admin_changes_role(self, client, db, admin, member, access_for):
        response = client.patch(
            f"/users/{member.id}", headers=access_for(admin), json={"roleId": admin.role_id}
        )
        assert response.status_code == 200
        assert response.json()["role_id"] == admin.role_id

    def test_update_to_taken_email(self, client, admin, member, access_for):
        response = client.patch(
            f"/users/{member.id}", headers=access_for(member), json={"email": "admin@example.com"}
        )
        assert response.status_code == 409

    def test_password_change_is_not_audited_in_clear(self, client, db, member, access_for):
        client.patch(f"/users/{member.id}", headers=access_for(member), json={"password": "Another123"})
        entry = db.query(AuditLog).filter(AuditLog.action == "user.updated").one()
        assert "Another123" not in (entry.new_value_json or "")

    def test_admin_deletes_user(self, client, db, admin, member, access_for):
        response = client.delete(f"/users/{member.id}", headers=access_for(admin))
        assert response.status_code == 200
        assert db.get(User, member.id) is None

    def test_member_cannot_delete_others(self, client, admin, member, access_for):
        assert client.delete(f"/users/{admin.id}", headers=access_for(member)).status_code == 403

    def test_inactive_role_loses_rights(self, client, db, admin, access_for):
        role = role_repository.get_role(db, admin.role_id)
        role_repository.update_role(db, role, None, is_active=False)
        assert client.get("/users", headers=access_for(admin)).status_code == 403


class TestRolesRoutes:

    def test_create_and_get_role(self, client, db, admin, access_for):
        permission_id = role_repository.get_permission_by_name(db, "user-get").id
        response = client.post(
            "/roles",
            headers=access_for(admin),
            json={"name": "Support", "permissionIds": [permission_id]},
        )
        assert response.status_code == 201
        role = response.json()
        assert [p["name"] for p in role["permissions"]] == ["user-get"]

        fetched = client.get(f"/roles/{role['id']}", headers=access_for(admin))
        assert fetched.json()["name"] == "Support"

    def test_invalid_role_name(self, client, admin, access_for):
        response = client.post("/roles", headers=access_for(admin), json={"name": "support-team"})
        assert response.status_code == 400

    def test_unknown_permission_id(self, client, admin, access_for):
        response = client.post(
            "/roles", headers=access_for(admin), json={"name": "Support", "permissionIds": [9999]}
        )
        assert response.status_code == 400

    def test_update_role_permissions(self, client, db, admin, member, access_for):
        permission_id = role_repository.get_permission_by_name(db, "user-get").id
        response = client.patch(
            f"/roles/{member.role_id}",
            headers=access_for(admin),
            json={"permissionIds": [permission_id]},
        )
        assert response.status_code == 200
        # The member's role now grants user-get
        assert client.get("/users", headers=access_for(member)).status_code == 200

    def test_delete_role_in_use(self, client, admin, member, access_for):
        response = client.delete(f"/roles/{member.role_id}", headers=access_for(admin))
        assert response.status_code == 409

    def test_member_cannot_manage_roles(self, client, member, access_for):
        assert client.get("/roles", headers=access_for(member)).status_code == 403
        assert client.post("/roles", headers=access_for(member), json={"name": "Sneaky"}).status_code == 403


class TestPermissionsRoutes:

    def test_create_list_and_filter(self, client, admin, access_for):
        response = client.post(
            "/permissions", headers=access_for(admin), json={"name": "report-get", "isActive": False}
        )
        assert response.status_code == 201
        assert response.json()["is_active"] is False

        inactive = client.get("/permissions", headers=access_for(admin), params={"isActive": "false"})
        assert [p["name"] for p in inactive.json()["permissions"]] == ["report-get"]

    def test_invalid_permission_name(self, client, admin, access_for):
        response = client.post("/permissions", headers=access_for(admin), json={"name": "Report Get"})
        assert response.status_code == 400

    def test_duplicate_permission(self, client, admin, access_for):
        response = client.post("/permissions", headers=access_for(admin), json={"name": "user-get"})
        assert response.status_code == 409

    def test_deactivating_a_permission_revokes_it(self, client, db, admin, access_for):
        permission_id = role_repository.get_permission_by_name(db, "user-get").id
        response = client.patch(
            f"/permissions/{permission_id}", headers=access_for(admin), json={"isActive": False}
        )
        assert response.status_code == 200
        assert client.get("/users", headers=access_for(admin)).status_code == 403

    def test_delete_permission(self, client, db, admin, access_for):
        permission_id = role_repository.get_permission_by_name(db, "audit-delete").id
        assert client.delete(f"/permissions/{permission_id}", headers=access_for(admin)).status_code == 200
        assert client.get(f"/permissions/{permission_id}", headers=access_for(admin)).status_code == 404


class TestAdminRoutes:

    def test_audit_log(self, client, admin, member, access_for):
        client.patch(f"/users/{member.id}", headers=access_for(member), json={"name": "Renamed"})
        response = client.get("/admin/audit", headers=access_for(admin), params={"action": "user.updated"})
        assert response.status_code == 200
        assert response.json()["total"] == 1

    def test_health(self, client, admin, access_for):
        response = client.get("/admin/health", headers=access_for(admin))
        assert response.status_code == 200
        assert response.json()["services"]["database"] == "ok"

    def test_member_cannot_read_audit(self, client, member, access_for):
        assert client.get("/admin/audit", headers=access_for(member)).status_code == 403
