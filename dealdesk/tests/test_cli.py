"""Tests for the dealdesk administration CLI."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from typer.testing import CliRunner

from dealdesk import cli
from dealdesk.database import enable_sqlite_foreign_keys


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture
def cli_db(tmp_path: Path, monkeypatch):
    """Point the CLI at a throwaway SQLite file; every command runs its own event loop."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}", poolclass=NullPool)
    enable_sqlite_foreign_keys(engine)
    monkeypatch.setattr(cli, "engine", engine)
    monkeypatch.setattr(
        cli,
        "async_session_factory",
        async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False),
    )
    return engine


class TestInitAndPlans:
    def test_init_seeds_plans(self, cli_runner, cli_db):
        result = cli_runner.invoke(cli.app, ["init"])
        assert result.exit_code == 0, result.output
        assert "3 plans available" in result.output

        result = cli_runner.invoke(cli.app, ["plans"])
        assert result.exit_code == 0
        assert "Plans" in result.output
        assert "start" in result.output


class TestOrganizationCommands:
    """create-org, set-plan and usage against one database."""

    def test_create_org_then_set_plan(self, cli_runner, cli_db):
        cli_runner.invoke(cli.app, ["init"])

        result = cli_runner.invoke(
            cli.app, ["create-org", "Acme Corp", "--owner-email", "boss@example.com"]
        )
        assert result.exit_code == 0, result.output
        assert "acme-corp" in result.output
        assert "Temporary password" in result.output

        result = cli_runner.invoke(cli.app, ["set-plan", "acme-corp", "pro"])
        assert result.exit_code == 0
        assert "pro" in result.output

        result = cli_runner.invoke(cli.app, ["usage", "acme-corp"])
        assert result.exit_code == 0
        assert "users" in result.output

    def test_existing_owner_gets_no_password(self, cli_runner, cli_db):
        cli_runner.invoke(cli.app, ["init"])
        cli_runner.invoke(cli.app, ["create-org", "First", "--owner-email", "boss@example.com"])

        result = cli_runner.invoke(
            cli.app, ["create-org", "Second", "--owner-email", "boss@example.com"]
        )
        assert result.exit_code == 0
        assert "Temporary password" not in result.output

    def test_unknown_plan_exits_non_zero(self, cli_runner, cli_db):
        cli_runner.invoke(cli.app, ["init"])
        cli_runner.invoke(cli.app, ["create-org", "Acme", "--owner-email", "boss@example.com"])

        result = cli_runner.invoke(cli.app, ["set-plan", "acme", "platinum"])
        assert result.exit_code == 1
        assert "not_found" in result.output

    def test_unknown_slug(self, cli_runner, cli_db):
        cli_runner.invoke(cli.app, ["init"])
        result = cli_runner.invoke(cli.app, ["usage", "ghost"])
        assert result.exit_code == 1
        assert "Organization not found" in result.output


class TestServe:
    def test_serve_runs_uvicorn(self, cli_runner):
        with patch("dealdesk.cli.uvicorn.run") as run:
            result = cli_runner.invoke(cli.app, ["serve", "--port", "9100"])

        assert result.exit_code == 0
        run.assert_called_once_with("dealdesk.app:app", host="127.0.0.1", port=9100, reload=False)
