"""
Tests for the administration CLI.
"""

import pytest
from typer.testing import CliRunner

from app.cli import cli
from models.user import User, UserRole
from utils.auth import verify_password

from tests.conftest import TestingSessionLocal, make_user

runner = CliRunner()


@pytest.fixture
def cli_db(db_session, monkeypatch):
    monkeypatch.setattr("app.cli.SessionLocal", TestingSessionLocal)
    return db_session


def create_superadmin(*args):
    return runner.invoke(cli, ["create-superadmin", *args])


class TestCreateSuperadmin:
    """The create-superadmin command."""

    def test_creates_account(self, cli_db):
        result = create_superadmin(
            "--name", "Root Admin",
            "--email", "Root@Example.com",
            "--password", "secret123",
            "--confirm-password", "secret123",
        )

        assert result.exit_code == 0, result.output
        assert "Super admin created" in result.output
        user = cli_db.query(User).filter(User.email == "Root@example.com").one()
        assert user.role == UserRole.SUPERADMIN
        assert user.is_active is True
        assert verify_password("secret123", user.hashed_password)

    def test_password_mismatch(self, cli_db):
        result = create_superadmin(
            "--name", "Root", "--email", "root@example.com",
            "--password", "secret123", "--confirm-password", "secret124",
        )
        assert result.exit_code == 1
        assert "Passwords do not match" in result.output
        assert cli_db.query(User).count() == 0

    def test_short_password(self, cli_db):
        result = create_superadmin(
            "--name", "Root", "--email", "root@example.com",
            "--password", "abc", "--confirm-password", "abc",
        )
        assert result.exit_code == 1
        assert "at least 6 characters" in result.output

    def test_invalid_email(self, cli_db):
        result = create_superadmin(
            "--name", "Root", "--email", "not-an-email",
            "--password", "secret123", "--confirm-password", "secret123",
        )
        assert result.exit_code == 1
        assert "Invalid email" in result.output

    def test_duplicate_email(self, cli_db):
        make_user(cli_db, "Existing", "root@example.com", UserRole.WAITER)
        result = create_superadmin(
            "--name", "Root", "--email", "root@example.com",
            "--password", "secret123", "--confirm-password", "secret123",
        )
        assert result.exit_code == 1
        assert "already exists" in result.output
        assert cli_db.query(User).count() == 1

    def test_prompts_for_missing_values(self, cli_db):
        result = runner.invoke(
            cli,
            ["create-superadmin"],
            input="Prompted Admin\nprompted@example.com\nsecret123\nsecret123\n",
        )
        assert result.exit_code == 0, result.output
        assert cli_db.query(User).filter(User.email == "prompted@example.com").count() == 1
