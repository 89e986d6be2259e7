"""
Common lifecycle contract for provider resources.

A resource translates declared configuration into GitLab API calls and
copies the API's answers back into a state model. Resources hold no state
of their own; the caller passes the state in and stores what comes back.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Generic, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel

from ..utils.gitlab_client import GitLabClient
from .schema import ResourceSchema

ConfigT = TypeVar("ConfigT", bound=BaseModel)
StateT = TypeVar("StateT", bound=BaseModel)


class ResourceError(Exception):
    """Raised when a lifecycle operation cannot complete."""
    pass


class PartialCreateError(ResourceError):
    """
    Raised when an entity was created but could not be finished.

    ``state`` identifies the entity that now exists on the server and
    ``cause`` is the error that interrupted creation.
    """

    def __init__(self, message: str, state: BaseModel, cause: Exception) -> None:
        super().__init__(message)
        self.state = state
        self.cause = cause


class ReadOutcome(str, Enum):
    """Result of refreshing a resource from the server."""

    CONFIRMED = "confirmed"  # entity exists, state refreshed
    CLEARED = "cleared"      # entity is gone, local identity dropped


class ReadResult(Generic[StateT]):
    """
    Outcome of a read, with the refreshed state when confirmed.

    Failures are not an outcome: they are raised.
    """

    def __init__(self, outcome: ReadOutcome, state: Optional[StateT] = None) -> None:
        if outcome == ReadOutcome.CONFIRMED and state is None:
            raise ValueError("a confirmed read must carry state")
        self.outcome = outcome
        self.state = state if outcome == ReadOutcome.CONFIRMED else None

    @classmethod
    def confirmed(cls, state: StateT) -> "ReadResult[StateT]":
        return cls(ReadOutcome.CONFIRMED, state)

    @classmethod
    def cleared(cls) -> "ReadResult[StateT]":
        return cls(ReadOutcome.CLEARED)

    @property
    def is_cleared(self) -> bool:
        return self.outcome == ReadOutcome.CLEARED

    def __repr__(self) -> str:
        return f"ReadResult(outcome={self.outcome.value!r})"


class Resource(ABC, Generic[ConfigT, StateT]):
    """
    Base class for resource controllers.

    Subclasses declare ``type_name``, ``schema``, ``config_model`` and
    ``state_model`` and implement the lifecycle methods.
    """

    type_name: str
    schema: ResourceSchema
    config_model: Type[ConfigT]
    state_model: Type[StateT]
    log_component: str = "resource"

    def __init__(self, client: GitLabClient, logger: Any = None) -> None:
        self.client = client
        self.logger = (logger or structlog.get_logger()).bind(component=self.log_component)

    def parse_config(self, raw: Dict[str, Any]) -> ConfigT:
        """Validate declared attribute values against the config model."""
        return self.config_model.model_validate(raw)

    def load_state(self, raw: Dict[str, Any]) -> StateT:
        """Rebuild a state model from persisted attributes."""
        return self.state_model.model_validate(raw)

    @abstractmethod
    def create(self, config: ConfigT) -> StateT:
        """Create the entity and return its refreshed state."""

    @abstractmethod
    def read(self, state: StateT) -> ReadResult[StateT]:
        """Refresh state from the server."""

    def update(self, state: StateT, config: ConfigT) -> StateT:
        """Apply changed attributes in place."""
        raise ResourceError(f"{self.type_name} does not support in-place updates")

    @abstractmethod
    def delete(self, state: StateT) -> None:
        """Remove the entity."""

    @abstractmethod
    def import_state(self, resource_id: str) -> StateT:
        """Build the minimal state needed to read an existing entity by ID."""
