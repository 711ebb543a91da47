"""Seed scripts and the authapi CLI."""

from datetime import timedelta

from typer.testing import CliRunner

from authapi.cli import app
from authapi.core.timeutils import utcnow
from authapi.db.seeds.seed_roles import default_permission_names, seed_permissions, seed_roles
from authapi.db.seeds.seed_super_admin import seed_super_admin
from authapi.models.role import Permission, Role
from authapi.models.token import Token, TokenType
from authapi.models.user import User
from authapi.repositories.token_repository import token_repository

runner = CliRunner()


class TestSeeds:

    def test_seeding_is_idempotent(self, db, settings):
        for _ in range(2):
            seed_permissions(db)
            seed_roles(db)
            seed_super_admin(db)

        assert db.query(Permission).count() == len(default_permission_names())
        assert {r.name for r in db.query(Role)} == {settings.ADMIN_ROLE_NAME, settings.DEFAULT_ROLE_NAME}
        assert db.query(User).count() == 1

    def test_super_admin_holds_every_permission(self, db, container, settings):
        seed_permissions(db)
        seed_roles(db)
        seed_super_admin(db)

        admin = db.query(User).one()
        assert admin.is_email_verified is True
        role = container.role_resolver.resolve(db, admin.role_id)
        assert {p.name for p in role.permissions} == set(default_permission_names())

        result = container.auth_service.login(db, settings.SUPER_ADMIN_EMAIL, settings.SUPER_ADMIN_PASSWORD)
        assert result.role.name == settings.ADMIN_ROLE_NAME

    def test_super_admin_needs_admin_role(self, db):
        seed_super_admin(db)
        assert db.query(User).count() == 0


class TestCli:

    def test_db_seed(self, db):
        result = runner.invoke(app, ["db", "seed"])
        assert result.exit_code == 0, result.output
        assert "All seeds applied" in result.output
        db.expire_all()
        assert db.query(User).count() == 1

    def test_tokens_purge(self, db, make_user):
        user = make_user()
        token_repository.create(db, "stale", user.id, TokenType.VERIFY_EMAIL, utcnow() - timedelta(minutes=1))

        result = runner.invoke(app, ["tokens", "purge"])

        assert result.exit_code == 0, result.output
        assert "Removed 1 expired tokens" in result.output
        db.expire_all()
        assert db.query(Token).count() == 0
