"""Tests for the operator command line."""

import pytest
from typer.testing import CliRunner

from identity_core import cli
from identity_core.core.database.db_session import DbSessionService
from identity_core.entities.user import Role, UserRepository
from identity_core.runtime.context import AppContext, _app_context, set_context

runner = CliRunner()


@pytest.fixture
def file_config(test_config, tmp_path, monkeypatch):
    test_config.database.url = f"sqlite:///{tmp_path / 'identity.db'}"
    token = set_context(AppContext(config=test_config))
    # Keep loguru sinks away from the runner's captured streams
    monkeypatch.setattr(cli, "configure_logging", lambda: None)
    yield test_config
    _app_context.reset(token)


def test_init_db_and_create_admin(file_config):
    result = runner.invoke(cli.app, ["init-db"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(
        cli.app,
        ["create-admin", "--email", "root@example.com", "--password", "long-enough"],
    )
    assert result.exit_code == 0, result.output
    assert "Administrator created" in result.output

    db = DbSessionService(file_config.database)
    with db.get_session() as session:
        user = UserRepository(session).find_by_email("root@example.com")
    db.dispose()
    assert user is not None
    assert user.role is Role.administrator


def test_create_admin_rejects_invalid_password(file_config):
    runner.invoke(cli.app, ["init-db"])

    result = runner.invoke(
        cli.app, ["create-admin", "--email", "root@example.com", "--password", "short"]
    )

    assert result.exit_code == 1
    assert "Failed to create administrator" in result.output


def test_sweep_sessions_reports_affected_users(file_config):
    runner.invoke(cli.app, ["init-db"])

    result = runner.invoke(cli.app, ["sweep-sessions", "--minutes", "5"])

    assert result.exit_code == 0, result.output
    assert "from 0 users" in result.output


def test_check_db_reports_reachable_database(file_config):
    result = runner.invoke(cli.app, ["check-db"])

    assert result.exit_code == 0, result.output
    assert "Database is reachable" in result.output


def test_check_db_fails_for_unreachable_database(file_config, tmp_path):
    file_config.database.url = f"sqlite:///{tmp_path / 'missing' / 'identity.db'}"

    result = runner.invoke(cli.app, ["check-db"])

    assert result.exit_code == 1
    assert "Database is not reachable" in result.output


def test_sweep_sessions_rejects_zero_minutes(file_config):
    runner.invoke(cli.app, ["init-db"])

    result = runner.invoke(cli.app, ["sweep-sessions", "--minutes", "0"])

    assert result.exit_code == 2
