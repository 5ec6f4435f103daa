"""Tests for the sqlift command line."""

import pytest
from typer.testing import CliRunner

from sqlift import main
from sqlift.database.models import Schema
from sqlift.errors import IntrospectionError

runner = CliRunner()
WIDE = {"COLUMNS": "200"}


@pytest.fixture
def introspect_calls(monkeypatch, sample_schema, clean_env):
    """Replace database access with the sample schema and record the calls."""
    calls = []

    def fake_introspect(database, settings, schema, table_filter):
        calls.append({"database": database, "schema": schema, "filter": table_filter})
        return sample_schema

    monkeypatch.setattr(main, "_introspect", fake_introspect)
    return calls


class TestGenerateCommand:
    """Test `sqlift generate`."""

    def test_library_output(self, introspect_calls, tmp_path):
        out = tmp_path / "db"
        result = runner.invoke(main.app, ["generate", "postgres", "python", "-o", str(out)], env=WIDE)

        assert result.exit_code == 0, result.output
        assert (out / "__init__.py").exists()
        assert (out / "users.py").exists()
        assert (out / "enums.py").exists()
        assert introspect_calls[0]["database"] == "postgres"
        assert introspect_calls[0]["schema"] == "public"

    def test_flat_output(self, introspect_calls, tmp_path):
        out = tmp_path / "db"
        result = runner.invoke(
            main.app,
            ["generate", "postgres", "python", "--mode", "flat", "--style", "class", "-o", str(out)],
            env=WIDE,
        )

        assert result.exit_code == 0, result.output
        source = (tmp_path / "db.py").read_text()
        assert "class UserRepository:" in source

    def test_default_output_directory(self, introspect_calls, clean_env):
        result = runner.invoke(main.app, ["generate", "postgres", "python"], env=WIDE)
        assert result.exit_code == 0, result.output
        assert (clean_env / "generated" / "__init__.py").exists()

    def test_dry_run_writes_nothing(self, introspect_calls, tmp_path):
        out = tmp_path / "db"
        result = runner.invoke(main.app, ["generate", "postgres", "python", "-o", str(out), "--dry-run"], env=WIDE)

        assert result.exit_code == 0, result.output
        assert "Dry run" in result.output
        assert not out.exists()

    def test_schema_and_table_filters(self, introspect_calls, tmp_path):
        result = runner.invoke(
            main.app,
            [
                "generate", "postgres", "python", "-o", str(tmp_path / "db"),
                "--schema", "billing", "--tables", "users, tags", "--exclude", "tags",
            ],
            env=WIDE,
        )

        assert result.exit_code == 0, result.output
        call = introspect_calls[0]
        assert call["schema"] == "billing"
        assert call["filter"].include == ["users", "tags"]
        assert call["filter"].exclude == ["tags"]

    def test_empty_schema_warns_and_succeeds(self, monkeypatch, clean_env):
        monkeypatch.setattr(main, "_introspect", lambda *args: Schema(name="empty"))
        result = runner.invoke(main.app, ["generate", "postgres", "python", "-s", "empty"], env=WIDE)

        assert result.exit_code == 0, result.output
        assert "No tables found in schema 'empty'" in result.output
        assert not (clean_env / "generated").exists()

    def test_unknown_language_fails_before_connecting(self, introspect_calls):
        result = runner.invoke(main.app, ["generate", "postgres", "rust"], env=WIDE)

        assert result.exit_code == 1
        assert "Unknown target language 'rust'" in result.output
        assert introspect_calls == []

    def test_reserved_language(self, introspect_calls):
        result = runner.invoke(main.app, ["generate", "postgres", "typescript"], env=WIDE)
        assert result.exit_code == 1
        assert "not implemented yet" in result.output

    def test_introspection_failure(self, monkeypatch, clean_env):
        def failing(database, settings, schema, table_filter):
            raise IntrospectionError(schema, "connection refused")

        monkeypatch.setattr(main, "_introspect", failing)
        result = runner.invoke(main.app, ["generate", "postgres", "python"], env=WIDE)

        assert result.exit_code == 1
        assert "connection refused" in result.output
        assert not (clean_env / "generated").exists()

    def test_unsupported_database(self, clean_env):
        result = runner.invoke(main.app, ["generate", "mysql", "python"], env=WIDE)
        assert result.exit_code == 1
        assert "Unsupported database 'mysql'" in result.output

    def test_missing_connection_settings(self, clean_env):
        result = runner.invoke(main.app, ["generate", "postgres", "python"], env=WIDE)
        assert result.exit_code == 1
        assert "Missing database connection settings" in result.output


class TestPlanCommand:
    """Test `sqlift plan`."""

    def test_plan_table(self, introspect_calls, clean_env):
        result = runner.invoke(main.app, ["plan", "postgres"], env=WIDE)

        assert result.exit_code == 0, result.output
        assert "get_by_slug" in result.output
        assert "upsert" in result.output
        assert "order_status" in result.output
        assert not (clean_env / "generated").exists()


class TestConfigCommand:
    """Test `sqlift config`."""

    def test_password_masked(self, clean_env, monkeypatch):
        monkeypatch.setenv("DB_NAME", "appdb")
        monkeypatch.setenv("DB_USER", "app")
        monkeypatch.setenv("DB_PASSWORD", "hunter2")

        result = runner.invoke(main.app, ["config"], env=WIDE)

        assert result.exit_code == 0, result.output
        assert "appdb" in result.output
        assert "****" in result.output
        assert "hunter2" not in result.output


class TestVersionCommand:
    def test_version(self):
        result = runner.invoke(main.app, ["version"])
        assert result.exit_code == 0
        assert main.__version__ in result.output
