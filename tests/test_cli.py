"""
CLI tests.

Runs the typer application against an in-memory GitLab API by swapping
the provider factory used by the commands.
"""

import json

import pytest
import yaml
from typer.testing import CliRunner

from fake_gitlab import API_TOKEN, FakeGitLab
from gitlab_runner_provider import cli
from gitlab_runner_provider.provider import GitLabProvider
from gitlab_runner_provider.utils.security import REDACTED

runner = CliRunner()


class TestCli:
    """Test CLI commands end to end."""

    @pytest.fixture(autouse=True)
    def setup_cli(self, tmp_path, monkeypatch):
        self.gitlab = FakeGitLab()
        self.config_path = tmp_path / "runners.yaml"
        self.state_path = tmp_path / "state.json"

        monkeypatch.setattr(
            cli,
            "GitLabProvider",
            lambda config: GitLabProvider(config, transport=self.gitlab.transport()),
        )
        monkeypatch.setenv("GITLAB_TOKEN", API_TOKEN)

        self.write_config([{
            "type": "gitlab_runner",
            "name": "docker",
            "config": {"registration_token": "abc123", "tags": ["docker", "shared"]},
        }])

    def write_config(self, resources):
        self.config_path.write_text(yaml.safe_dump({
            "provider": {"base_url": "https://gitlab.example.com"},
            "resources": resources,
        }))

    def invoke(self, *args, **kwargs):
        return runner.invoke(
            cli.app,
            list(args) + ["--config", str(self.config_path), "--state", str(self.state_path)],
            **kwargs
        )

    def test_plan(self):
        result = self.invoke("plan")

        assert result.exit_code == 0, result.output
        assert "+ gitlab_runner.docker (create)" in result.output
        assert "1 to create" in result.output
        assert self.gitlab.runners == {}

    def test_apply_auto_approve(self):
        result = self.invoke("apply", "--auto-approve")

        assert result.exit_code == 0, result.output
        assert "Apply complete. 1 resource(s) changed." in result.output
        assert self.gitlab.runners[42]["tag_list"] == ["docker", "shared"]

    def test_apply_requires_confirmation(self):
        result = self.invoke("apply", input="n\n")

        assert result.exit_code != 0
        assert self.gitlab.runners == {}

    def test_apply_with_confirmation(self):
        result = self.invoke("apply", input="y\n")

        assert result.exit_code == 0, result.output
        assert 42 in self.gitlab.runners

    def test_show_redacts_tokens(self):
        self.invoke("apply", "--auto-approve")

        result = runner.invoke(cli.app, ["show", "--state", str(self.state_path)])

        assert result.exit_code == 0, result.output
        shown = json.loads(result.output)
        attributes = shown["gitlab_runner.docker"]["attributes"]
        assert attributes["registration_token"] == REDACTED
        assert attributes["token"] == REDACTED
        assert attributes["tags"] == ["docker", "shared"]
        assert "abc123" not in result.output
        assert "glrt-42-secret" not in result.output

    def test_refresh_reports_cleared(self):
        self.invoke("apply", "--auto-approve")
        del self.gitlab.runners[42]

        result = self.invoke("refresh")

        assert result.exit_code == 0, result.output
        assert "gitlab_runner.docker: cleared" in result.output

    def test_destroy(self):
        self.invoke("apply", "--auto-approve")

        result = self.invoke("destroy", "--auto-approve")

        assert result.exit_code == 0, result.output
        assert self.gitlab.runners == {}

    def test_import_project_runner(self):
        runner_id = self.gitlab.add_runner()
        self.gitlab.project_runners[7] = [runner_id]

        result = self.invoke("import", "gitlab_project_enable_runner", "link", f"7:{runner_id}")

        assert result.exit_code == 0, result.output
        state = json.loads(self.state_path.read_text())
        assert state["resources"]["gitlab_project_enable_runner.link"]["id"] == "7:42"

    def test_import_malformed_id(self):
        result = self.invoke("import", "gitlab_project_enable_runner", "link", "742")

        assert result.exit_code == 1
        assert "unexpected format of ID" in result.output

    def test_api_errors_exit_nonzero(self):
        self.write_config([{
            "type": "gitlab_runner",
            "name": "docker",
            "config": {"registration_token": "invalid"},
        }])

        result = self.invoke("apply", "--auto-approve")

        assert result.exit_code == 1
        assert "403 Forbidden" in result.output

    def test_invalid_configuration(self):
        self.write_config([{
            "type": "gitlab_runner",
            "name": "docker",
            "config": {"registration_token": "abc123", "access_level": "everyone"},
        }])

        result = self.invoke("plan")

        assert result.exit_code == 1
        assert "access_level" in result.output

    def test_missing_configuration(self, tmp_path):
        result = runner.invoke(cli.app, ["plan", "--config", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
        assert "Configuration file not found" in result.output


class TestStaticCommands:
    """Test commands that need no GitLab connection."""

    def test_schema(self):
        result = runner.invoke(cli.app, ["schema", "gitlab_runner"])

        assert result.exit_code == 0, result.output
        schema = json.loads(result.output)["gitlab_runner"]
        assert "sensitive" in schema["registration_token"]["flags"]
        assert "force_new" in schema["registration_token"]["flags"]
        assert "computed" in schema["token"]["flags"]

    def test_schema_unknown_type(self):
        result = runner.invoke(cli.app, ["schema", "gitlab_user"])

        assert result.exit_code == 1

    def test_generate_config_round_trips(self, tmp_path):
        output = tmp_path / "sample.yaml"

        result = runner.invoke(cli.app, ["generate-config", "--output", str(output)])

        assert result.exit_code == 0, result.output
        deployment = cli.load_configuration(str(output))
        assert [d.address for d in deployment.resources] == [
            "gitlab_runner.docker",
            "gitlab_project_enable_runner.docker_on_app",
        ]
