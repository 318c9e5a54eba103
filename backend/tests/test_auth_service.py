# Overview: Pytest coverage for staff accounts and the first-run administrator bootstrap.

import pytest

from tablepos.errors import DuplicateNameError
from tablepos.models import User, UserRole
from tablepos.services import auth_service
from tablepos.services.auth_service import PasswordValidationError


class TestPasswords:
    @pytest.mark.parametrize("password", ["Short1!", "nouppercase1!", "NOLOWERCASE1!", "NoDigits!!", "NoSpecial12"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            auth_service.validate_password_strength(password)

    def test_hash_and_verify(self, app):
        with app.app_context():
            hashed = auth_service.hash_password("Secret123!")
        assert hashed.startswith("$2")
        assert auth_service.verify_password("Secret123!", hashed)
        assert not auth_service.verify_password("Secret123?", hashed)
        assert not auth_service.verify_password("Secret123!", "not-a-bcrypt-hash")


class TestUsers:
    def test_create_and_authenticate(self, db_session):
        user = auth_service.create_user(
            username="ana", password="Secret123!", full_name="Ana Diaz", role="cashier", email="ana@example.test",
        )
        assert user.role == UserRole.CASHIER

        assert auth_service.authenticate("ana", "wrong") is None
        logged_in = auth_service.authenticate("ana@example.test", "Secret123!")
        assert logged_in.id == user.id
        assert logged_in.last_login_at is not None

    def test_duplicate_username(self, db_session):
        auth_service.create_user(username="ana", password="Secret123!", full_name="Ana")
        with pytest.raises(DuplicateNameError):
            auth_service.create_user(username="ana", password="Secret123!", full_name="Other Ana")


class TestBootstrap:
    def test_default_admin_created_once(self, db_session):
        admin, created = auth_service.ensure_default_admin()
        assert created
        assert admin.role == UserRole.ADMIN
        assert admin.username == "admin"
        assert auth_service.verify_password("Password123!", admin.password_hash)

        again, created_again = auth_service.ensure_default_admin()
        assert not created_again
        assert again.id == admin.id
        assert db_session.query(User).count() == 1

    def test_existing_users_skip_bootstrap(self, db_session):
        auth_service.create_user(username="luis", password="Secret123!", full_name="Luis")
        user, created = auth_service.ensure_default_admin()
        assert not created
        assert user.username == "luis"

    def test_system_init_command_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()
        first = runner.invoke(args=["system", "init"])
        assert first.exit_code == 0
        assert "Created default administrator" in first.output

        second = runner.invoke(args=["system", "init"])
        assert second.exit_code == 0
        assert "skipping administrator" in second.output
        assert db_session.query(User).count() == 1
