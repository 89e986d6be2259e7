"""
Project runner association tests.

Covers enabling a runner on a project, confirming it by listing the
project's runners, and disabling it again.
"""

import pytest

from fake_gitlab import FakeGitLab
from gitlab_runner_provider.models.project_runner import ProjectRunnerConfig, ProjectRunnerState
from gitlab_runner_provider.resources import ProjectRunnerResource, ReadOutcome
from gitlab_runner_provider.utils.gitlab_client import GitLabAPIError, GitLabNotFoundError
from gitlab_runner_provider.utils.identifiers import IdentifierError


class TestProjectRunnerLifecycle:
    """Test the enable/check/disable lifecycle."""

    def setup_method(self):
        self.gitlab = FakeGitLab()
        self.resource = ProjectRunnerResource(self.gitlab.client())
        self.runner_id = self.gitlab.add_runner()

    def test_create_builds_composite_id(self):
        state = self.resource.create(ProjectRunnerConfig(project_id=7, runner_id=self.runner_id))

        assert self.runner_id == 42
        assert state.id == "7:42"
        assert state.project_id == 7
        assert state.runner_id == 42
        assert self.gitlab.project_runners[7] == [42]

    def test_create_confirms_with_listing(self):
        self.resource.create(ProjectRunnerConfig(project_id=7, runner_id=self.runner_id))

        methods = [(r.method, r.path) for r in self.gitlab.requests]
        assert methods == [
            ("POST", "/api/v4/projects/7/runners"),
            ("GET", "/api/v4/projects/7/runners"),
        ]

    def test_create_of_unknown_runner_fails(self):
        with pytest.raises(GitLabNotFoundError):
            self.resource.create(ProjectRunnerConfig(project_id=7, runner_id=999))

    def test_read_confirms_enabled_runner(self):
        other = self.gitlab.add_runner()
        self.gitlab.project_runners[7] = [other, self.runner_id]

        result = self.resource.read(ProjectRunnerState(id="7:42"))

        assert result.outcome == ReadOutcome.CONFIRMED
        assert result.state == ProjectRunnerState(id="7:42", project_id=7, runner_id=42)

    def test_read_clears_when_runner_is_absent(self):
        self.gitlab.project_runners[7] = [self.gitlab.add_runner()]

        result = self.resource.read(ProjectRunnerState(id="7:42", project_id=7, runner_id=42))

        assert result.outcome == ReadOutcome.CLEARED
        assert result.state is None

    def test_read_scans_every_page(self):
        gitlab = FakeGitLab(per_page=2)
        resource = ProjectRunnerResource(gitlab.client())
        runner_ids = [gitlab.add_runner() for _ in range(5)]
        gitlab.project_runners[7] = runner_ids

        result = resource.read(ProjectRunnerState(id=f"7:{runner_ids[-1]}"))

        assert result.outcome == ReadOutcome.CONFIRMED

    def test_read_surfaces_listing_errors(self):
        self.gitlab.fail("GET", "/api/v4/projects/7/runners", 403, {"message": "403 Forbidden"})

        with pytest.raises(GitLabAPIError, match="403 Forbidden"):
            self.resource.read(ProjectRunnerState(id="7:42"))

    def test_read_rejects_malformed_id(self):
        with pytest.raises(IdentifierError):
            self.resource.read(ProjectRunnerState(id="742"))

        assert self.gitlab.requests == []

    def test_delete_disables_runner(self):
        state = self.resource.create(ProjectRunnerConfig(project_id=7, runner_id=self.runner_id))

        self.resource.delete(state)

        assert self.gitlab.project_runners[7] == []
        assert self.resource.read(state).is_cleared

    def test_delete_surfaces_errors(self):
        with pytest.raises(GitLabNotFoundError):
            self.resource.delete(ProjectRunnerState(id="7:42"))

    def test_delete_rejects_malformed_id(self):
        with pytest.raises(IdentifierError, match="failed to get runner"):
            self.resource.delete(ProjectRunnerState(id="7:runner"))

    def test_update_is_not_supported(self):
        state = ProjectRunnerState(id="7:42", project_id=7, runner_id=42)

        with pytest.raises(Exception, match="does not support in-place updates"):
            self.resource.update(state, ProjectRunnerConfig(project_id=8, runner_id=42))

    def test_import(self):
        self.gitlab.project_runners[7] = [self.runner_id]

        skeleton = self.resource.import_state("7:42")
        result = self.resource.read(skeleton)

        assert result.state.project_id == 7
        assert result.state.runner_id == 42

    def test_schema_forces_replacement(self):
        for name in ("project_id", "runner_id"):
            attribute = self.resource.schema.get(name)
            assert attribute.required
            assert attribute.force_new
