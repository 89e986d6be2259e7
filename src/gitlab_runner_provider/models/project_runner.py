"""
Project runner association models.

The association has no attributes beyond the two identifiers it links,
and both force replacement when changed.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt


class ProjectRunnerConfig(BaseModel):
    """Declared configuration of a ``gitlab_project_enable_runner`` resource."""

    project_id: NonNegativeInt = Field(
        ...,
        description="ID of the project to enable the runner on"
    )
    runner_id: NonNegativeInt = Field(
        ...,
        description="ID of the runner to enable"
    )

    model_config = ConfigDict(extra="forbid")


class ProjectRunnerState(BaseModel):
    """Recorded state of a ``gitlab_project_enable_runner`` resource."""

    id: Optional[str] = None
    project_id: Optional[int] = None
    runner_id: Optional[int] = None

    model_config = ConfigDict(extra="forbid")
