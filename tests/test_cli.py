"""Tests for the promptvault command-line interface."""

import json

import pytest
from typer.testing import CliRunner

from promptvault.cli import app

runner = CliRunner()


@pytest.fixture
def project(temp_dir, monkeypatch):
    """Point the CLI at a fresh project directory."""
    monkeypatch.delenv("PROMPTVAULT_CONFIG", raising=False)
    monkeypatch.setenv("PROMPTVAULT_ROOT", str(temp_dir))
    return temp_dir


def _create_hello():
    return runner.invoke(app, ["create", "Greeting", "Hello", "-t", "Hi {{name}}!", "-p", "name"])


class TestCLI:
    """End-to-end CLI runs against a temp project."""

    def test_init(self, project):
        """init writes the config file and directories."""
        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert (project / "promptvault.json").is_file()
        assert (project / "prompts").is_dir()

    def test_create_and_render(self, project):
        """A created prompt renders with --set values."""
        created = _create_hello()
        assert created.exit_code == 0
        assert "Created prompt" in created.output

        result = runner.invoke(app, ["render", "Greeting", "Hello", "--set", "name=Ann"])
        assert result.exit_code == 0
        assert "Hi Ann!" in result.output

    def test_get_json(self, project):
        """--json prints the stored record."""
        _create_hello()

        result = runner.invoke(app, ["get", "Greeting", "Hello", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["version"] == "1.0.0"
        assert data["parameters"] == ["name"]

    def test_update_and_switch(self, project):
        """Updating bumps the version and switch brings back the old one."""
        _create_hello()

        updated = runner.invoke(app, ["update", "Greeting", "Hello", "-t", "Hello {{name}}, welcome!"])
        assert updated.exit_code == 0
        assert "version 1.0.1" in updated.output

        switched = runner.invoke(app, ["switch", "Greeting", "Hello", "1.0.0"])
        assert switched.exit_code == 0

        result = runner.invoke(app, ["render", "Greeting", "Hello", "--vars", '{"name": "Ann"}'])
        assert "Hi Ann!" in result.output

    def test_list_json(self, project):
        """list --json prints summaries."""
        _create_hello()

        result = runner.invoke(app, ["list", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == [{
            "category": "Greeting",
            "name": "Hello",
            "current_version": "1.0.0",
            "version_count": 1,
        }]

    def test_missing_prompt(self, project):
        """Errors exit with status 1."""
        result = runner.invoke(app, ["get", "Greeting", "Missing"])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_missing_parameter(self, project):
        """Rendering without a declared parameter fails."""
        _create_hello()

        result = runner.invoke(app, ["render", "Greeting", "Hello"])

        assert result.exit_code == 1
        assert "Missing required parameter: name" in result.output

    def test_delete(self, project):
        """delete --yes removes the prompt."""
        _create_hello()

        result = runner.invoke(app, ["delete", "Greeting", "Hello", "--yes"])
        assert result.exit_code == 0

        listed = runner.invoke(app, ["list", "--json"])
        assert json.loads(listed.stdout) == []

    def test_export_import(self, project, temp_dir, monkeypatch):
        """A category exported from one project imports into another."""
        _create_hello()
        export_path = temp_dir / "greeting.json"

        exported = runner.invoke(app, ["export", "Greeting", "-o", str(export_path)])
        assert exported.exit_code == 0
        assert export_path.is_file()

        other = temp_dir / "other"
        other.mkdir()
        monkeypatch.setenv("PROMPTVAULT_ROOT", str(other))

        imported = runner.invoke(app, ["import", str(export_path)])
        assert imported.exit_code == 0
        assert "Imported 1/1" in imported.output
        assert (other / "prompts" / "Greeting" / "Hello" / "manifest.json").is_file()

    def test_config_set(self, project):
        """config set persists JSON values."""
        result = runner.invoke(app, ["config", "set", "preferredModels", '["a", "b"]'])
        assert result.exit_code == 0

        data = json.loads((project / "promptvault.json").read_text())
        assert data["preferredModels"] == ["a", "b"]

        bad = runner.invoke(app, ["config", "set", "promptsDir", "5"])
        assert bad.exit_code == 1

    def test_rename(self, project):
        """rename moves a prompt to a new category and name."""
        _create_hello()

        result = runner.invoke(app, ["rename", "Greeting", "Hello", "Welcome", "Hi"])
        assert result.exit_code == 0

        listed = runner.invoke(app, ["list", "--json"])
        assert [(s["category"], s["name"]) for s in json.loads(listed.stdout)] == [("Welcome", "Hi")]

        again = runner.invoke(app, ["rename", "Greeting", "Hello", "Welcome", "Hi"])
        assert again.exit_code == 1
