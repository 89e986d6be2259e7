"""
The ``gitlab_runner`` resource.

Registers a runner with a registration token, mirrors its declared and
server-reported attributes, updates mutable attributes and deregisters it.
"""

from typing import Any, Dict

from pydantic import SecretStr

from ..models.runner import (
    RunnerConfig,
    RunnerState,
    validate_access_level,
    validate_maximum_timeout,
)
from ..utils.gitlab_client import GitLabNotFoundError
from ..utils.identifiers import IdentifierError, parse_int_id
from .base import PartialCreateError, ReadResult, Resource, ResourceError
from .schema import Attribute, AttributeType, ResourceSchema

RUNNER_SCHEMA = ResourceSchema(attributes=[
    Attribute(name="registration_token", type=AttributeType.STRING, required=True,
              sensitive=True, force_new=True,
              description="Token used once to register the runner"),
    Attribute(name="token", type=AttributeType.STRING, computed=True, sensitive=True,
              description="Authentication token issued to the runner"),
    Attribute(name="runner_id", type=AttributeType.INT, computed=True),
    Attribute(name="description", type=AttributeType.STRING, optional=True, computed=True),
    Attribute(name="access_level", type=AttributeType.STRING, optional=True, computed=True,
              validate_func=validate_access_level,
              description="not_protected or ref_protected"),
    Attribute(name="locked", type=AttributeType.BOOL, optional=True, computed=True),
    Attribute(name="active", type=AttributeType.BOOL, optional=True, computed=True),
    Attribute(name="run_untagged", type=AttributeType.BOOL, optional=True, computed=True),
    Attribute(name="maximum_timeout", type=AttributeType.INT, optional=True, computed=True,
              validate_func=validate_maximum_timeout,
              description="Maximum job timeout in seconds, at least 600"),
    Attribute(name="tags", type=AttributeType.SET, optional=True, computed=True),
    Attribute(name="revision", type=AttributeType.STRING, computed=True),
    Attribute(name="version", type=AttributeType.STRING, computed=True),
    Attribute(name="ip_address", type=AttributeType.STRING, computed=True),
    Attribute(name="contacted_at", type=AttributeType.STRING, computed=True),
    Attribute(name="online", type=AttributeType.BOOL, computed=True),
    Attribute(name="status", type=AttributeType.STRING, computed=True,
              description="Status string reported by GitLab (online, offline, ...), not a boolean"),
    Attribute(name="architecture", type=AttributeType.STRING, computed=True),
    Attribute(name="name", type=AttributeType.STRING, computed=True),
    Attribute(name="is_shared", type=AttributeType.BOOL, computed=True),
    Attribute(name="projects", type=AttributeType.LIST, computed=True),
    Attribute(name="groups", type=AttributeType.LIST, computed=True),
])


class RunnerResource(Resource[RunnerConfig, RunnerState]):
    """Lifecycle controller for a single GitLab runner."""

    type_name = "gitlab_runner"
    schema = RUNNER_SCHEMA
    config_model = RunnerConfig
    state_model = RunnerState
    log_component = "runner_resource"

    def create(self, config: RunnerConfig) -> RunnerState:
        """
        Register the runner, then apply the remaining attributes.

        Registration does not accept every attribute (``access_level`` in
        particular), so creation always finishes with an update, which in
        turn reads back the full state.
        """
        self.logger.debug("Creating runner")

        registration = self.client.register_runner(
            config.registration_token.get_secret_value(),
            **self._register_options(config)
        )

        token = registration.get("token")
        state = RunnerState(
            id=str(registration["id"]),
            runner_id=registration["id"],
            registration_token=config.registration_token,
            token=SecretStr(token) if token else None,
        )

        self.logger.info("Runner registered", runner_id=state.runner_id)

        try:
            return self.update(state, config)
        except Exception as e:
            self.logger.error("Runner registered but not configured", runner_id=state.runner_id, error=str(e))
            raise PartialCreateError(
                f"runner {state.id} was registered but could not be configured: {e}", state, e
            ) from e

    def read(self, state: RunnerState) -> ReadResult[RunnerState]:
        """
        Replace every attribute with the server's current values.

        A runner the server no longer knows clears the state.
        """
        runner_id = self._runner_id(state)

        self.logger.debug("Reading runner", runner_id=runner_id)

        try:
            details = self.client.get_runner_details(runner_id)
        except GitLabNotFoundError:
            self.logger.warning("Runner not found, clearing state", runner_id=runner_id)
            return ReadResult.cleared()

        refreshed = RunnerState.from_api(
            details,
            registration_token=state.registration_token,
            token=state.token,
        )
        refreshed.id = state.id
        return ReadResult.confirmed(refreshed)

    def update(self, state: RunnerState, config: RunnerConfig) -> RunnerState:
        """Send every declared mutable attribute, then read back."""
        runner_id = self._runner_id(state)

        self.logger.debug("Updating runner", runner_id=runner_id)

        self.client.update_runner_details(runner_id, **self._update_options(config))

        current = state.model_copy(update={"registration_token": config.registration_token})
        result = self.read(current)
        if result.is_cleared:
            raise ResourceError(f"runner {runner_id} disappeared while being updated")
        return result.state

    def delete(self, state: RunnerState) -> None:
        """Remove the runner; every API error is surfaced."""
        runner_id = self._runner_id(state)

        self.logger.debug("Deleting runner", runner_id=runner_id)

        self.client.remove_runner(runner_id)

        self.logger.info("Runner removed", runner_id=runner_id)

    def import_state(self, resource_id: str) -> RunnerState:
        """Runners are imported by their numeric ID."""
        runner_id = parse_int_id(resource_id, "runner ID")
        return RunnerState(id=resource_id, runner_id=runner_id)

    @staticmethod
    def _runner_id(state: RunnerState) -> int:
        if not state.id:
            raise IdentifierError("runner state has no ID")
        return parse_int_id(state.id, "runner ID")

    @staticmethod
    def _register_options(config: RunnerConfig) -> Dict[str, Any]:
        return {
            "description": config.description,
            "run_untagged": config.run_untagged,
            "active": config.active,
            "locked": config.locked,
            "tags": config.tags,
            "maximum_timeout": config.maximum_timeout,
        }

    @classmethod
    def _update_options(cls, config: RunnerConfig) -> Dict[str, Any]:
        options = cls._register_options(config)
        options["access_level"] = config.access_level
        return options
