"""
The ``gitlab_project_enable_runner`` resource.

Enables an existing runner on a project. The relation has no server-side
identifier, so its identity is the composite ``<project_id>:<runner_id>``
and its existence is checked by listing the project's runners.
"""

from ..models.project_runner import ProjectRunnerConfig, ProjectRunnerState
from ..utils.identifiers import IdentifierError, decode_project_runner_id, encode_project_runner_id
from .base import ReadResult, Resource, ResourceError
from .schema import Attribute, AttributeType, ResourceSchema

PROJECT_RUNNER_SCHEMA = ResourceSchema(attributes=[
    Attribute(name="project_id", type=AttributeType.INT, required=True, force_new=True,
              description="ID of the project to enable the runner on"),
    Attribute(name="runner_id", type=AttributeType.INT, required=True, force_new=True,
              description="ID of the runner to enable"),
])


class ProjectRunnerResource(Resource[ProjectRunnerConfig, ProjectRunnerState]):
    """Lifecycle controller for a runner enabled on a project."""

    type_name = "gitlab_project_enable_runner"
    schema = PROJECT_RUNNER_SCHEMA
    config_model = ProjectRunnerConfig
    state_model = ProjectRunnerState
    log_component = "project_runner_resource"

    def create(self, config: ProjectRunnerConfig) -> ProjectRunnerState:
        self.logger.debug(
            "Enabling runner on project",
            runner_id=config.runner_id,
            project_id=config.project_id
        )

        self.client.enable_project_runner(config.project_id, config.runner_id)

        state = ProjectRunnerState(
            id=encode_project_runner_id(config.project_id, config.runner_id),
            project_id=config.project_id,
            runner_id=config.runner_id,
        )

        result = self.read(state)
        if result.is_cleared:
            raise ResourceError(
                f"runner {config.runner_id} is not listed on project {config.project_id} after enabling it"
            )
        return result.state

    def read(self, state: ProjectRunnerState) -> ReadResult[ProjectRunnerState]:
        """
        Confirm the runner is still enabled on the project.

        The project's runners are scanned linearly; a missing runner clears
        the state instead of failing.
        """
        project_id, runner_id = self._decode(state)

        self.logger.debug("Checking runner is enabled on project", runner_id=runner_id, project_id=project_id)

        for runner in self.client.list_project_runners(project_id):
            if runner.get("id") == runner_id:
                return ReadResult.confirmed(ProjectRunnerState(
                    id=state.id,
                    project_id=project_id,
                    runner_id=runner_id,
                ))

        self.logger.warning(
            "Runner no longer enabled on project, clearing state",
            runner_id=runner_id,
            project_id=project_id
        )
        return ReadResult.cleared()

    def delete(self, state: ProjectRunnerState) -> None:
        project_id, runner_id = self._decode(state)

        self.logger.debug("Disabling runner on project", runner_id=runner_id, project_id=project_id)

        self.client.disable_project_runner(project_id, runner_id)

        self.logger.info("Runner disabled on project", runner_id=runner_id, project_id=project_id)

    def import_state(self, resource_id: str) -> ProjectRunnerState:
        """Associations are imported by their ``<project_id>:<runner_id>`` ID."""
        project_id, runner_id = decode_project_runner_id(resource_id)
        return ProjectRunnerState(id=resource_id, project_id=project_id, runner_id=runner_id)

    @staticmethod
    def _decode(state: ProjectRunnerState):
        if not state.id:
            raise IdentifierError("project runner state has no ID")
        return decode_project_runner_id(state.id)
