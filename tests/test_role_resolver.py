"""Role resolution, the permission check, and the role cache."""

import pytest

from authapi.core.exceptions import ResourceConflictError, ResourceNotFoundError, ValidationError
from authapi.repositories.role_repository import role_repository
from authapi.services.role_service import (
    ROLE_CACHE_PREFIX,
    PermissionService,
    ResolvedPermission,
    ResolvedRole,
    RoleResolver,
    RoleService,
)
from conftest import MemoryCache


@pytest.fixture
def resolver(container):
    return container.role_resolver


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def cached_resolver(settings, cache):
    return RoleResolver(settings, cache)


def _role(is_active=True, *permissions):
    return ResolvedRole(
        id=1,
        name="Admin",
        is_active=is_active,
        permissions=[ResolvedPermission(id=i, name=n, is_active=a) for i, (n, a) in enumerate(permissions)],
    )


class TestResolve:

    def test_missing_role_reference(self, db, resolver):
        assert resolver.resolve(db, None) is None
        assert resolver.resolve(db, 999) is None

    def test_permissions_ordered_by_id(self, db, resolver, make_role):
        role = make_role("Admin", ["user-create", "user-get"])

        resolved = resolver.resolve(db, role.id)

        assert resolved.name == "Admin"
        assert resolved.is_active is True
        assert [p.name for p in resolved.permissions] == ["user-create", "user-get"]
        assert all(isinstance(p.id, int) for p in resolved.permissions)

    def test_inactive_permissions_are_still_listed(self, db, resolver, make_role):
        role = make_role("Editor", ["user-get", "user-modify"])
        permission = role_repository.get_permission_by_name(db, "user-modify")
        role_repository.update_permission(db, permission, None, is_active=False)

        resolved = resolver.resolve(db, role.id)

        assert [(p.name, p.is_active) for p in resolved.permissions] == [
            ("user-get", True),
            ("user-modify", False),
        ]

    def test_duplicate_permission_ids_collapse(self, db, resolver, make_role):
        role = make_role("Viewer", ["user-get"])
        permission_id = role_repository.get_permission_ids(db, role.id)[0]
        role_repository.set_role_permissions(db, role.id, [permission_id, permission_id])
        assert len(resolver.resolve(db, role.id).permissions) == 1


class TestHasRequiredRight:

    def test_any_listed_right_grants(self):
        role = _role(True, ("user-create", True), ("user-get", True))
        assert RoleResolver.has_required_right(role, ["user-get"])
        assert RoleResolver.has_required_right(role, ["role-get", "user-create"])
        assert not RoleResolver.has_required_right(role, ["role-get"])

    def test_inactive_permission_does_not_grant(self):
        role = _role(True, ("user-get", False))
        assert not RoleResolver.has_required_right(role, ["user-get"])

    def test_inactive_role_grants_nothing(self):
        role = _role(False, ("user-get", True))
        assert not RoleResolver.has_required_right(role, ["user-get"])

    def test_no_role(self):
        assert not RoleResolver.has_required_right(None, ["user-get"])


class TestIsAuthorized:

    def test_empty_rights_only_need_authentication(self, db, resolver, make_user):
        user = make_user()
        assert resolver.is_authorized(db, user, [])

    def test_role_grants(self, db, resolver, make_user, make_role):
        role = make_role("Support", ["user-get"])
        user = make_user(role_id=role.id)
        assert resolver.is_authorized(db, user, ["user-get"])
        assert not resolver.is_authorized(db, user, ["user-delete"])

    def test_self_access_override(self, db, resolver, make_user):
        alice = make_user("alice@example.com")
        bob = make_user("bob@example.com")
        assert resolver.is_authorized(db, alice, ["user-get"], target_user_id=alice.id)
        assert not resolver.is_authorized(db, alice, ["user-get"], target_user_id=bob.id)
        assert not resolver.is_authorized(db, alice, ["user-get"])


class TestRoleCache:

    def test_second_resolve_is_served_from_cache(self, db, cached_resolver, cache, make_role):
        role = make_role("Admin", ["user-get"])
        cached_resolver.resolve(db, role.id)
        assert f"{ROLE_CACHE_PREFIX}{role.id}" in cache.store

        # Edit behind the resolver's back: the cached copy still answers
        role_repository.update_role(db, role, None, name="Renamed")
        assert cached_resolver.resolve(db, role.id).name == "Admin"

        cached_resolver.invalidate(role.id)
        assert cached_resolver.resolve(db, role.id).name == "Renamed"

    def test_role_update_invalidates(self, db, cached_resolver, make_role):
        role = make_role("Admin", ["user-get"])
        service = RoleService(cached_resolver)
        cached_resolver.resolve(db, role.id)

        updated = service.update(db, None, role.id, is_active=False)

        assert updated.is_active is False
        assert cached_resolver.resolve(db, role.id).is_active is False

    def test_permission_update_invalidates_every_role(self, db, cached_resolver, cache, make_role):
        first = make_role("Admin", ["user-get"])
        second = make_role("Support", ["user-get"])
        cached_resolver.resolve(db, first.id)
        cached_resolver.resolve(db, second.id)

        permission = role_repository.get_permission_by_name(db, "user-get")
        PermissionService(cached_resolver).update(db, None, permission.id, is_active=False)

        assert cache.store == {}
        assert cached_resolver.resolve(db, second.id).permissions[0].is_active is False


class TestRoleService:

    @pytest.fixture
    def service(self, container):
        return container.role_service

    def test_create_with_permissions(self, db, service, make_role):
        make_role("Seed", ["user-get", "role-get"])
        ids = [role_repository.get_permission_by_name(db, n).id for n in ("role-get", "user-get")]

        resolved = service.create(db, None, "Auditor", permission_ids=ids)

        assert {p.name for p in resolved.permissions} == {"role-get", "user-get"}

    def test_duplicate_name(self, db, service, make_role):
        make_role("Admin", [])
        with pytest.raises(ResourceConflictError):
            service.create(db, None, "Admin")

    def test_unknown_permission_ids(self, db, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create(db, None, "Ghost", permission_ids=[404])
        assert "404" in exc_info.value.message
        assert role_repository.get_role_by_name(db, "Ghost") is None

    def test_delete_role_in_use(self, db, service, make_role, make_user):
        role = make_role("Member", [])
        make_user(role_id=role.id)
        with pytest.raises(ResourceConflictError):
            service.delete(db, role.id)

    def test_delete_unused_role(self, db, service, make_role):
        role = make_role("Temp", ["user-get"])
        service.delete(db, role.id)
        with pytest.raises(ResourceNotFoundError):
            service.get(db, role.id)
