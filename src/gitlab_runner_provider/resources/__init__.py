"""
Provider resources.

Each resource maps a declared attribute schema onto GitLab API calls and
exposes create, read, update, delete and import operations.
"""

from .base import PartialCreateError, ReadOutcome, ReadResult, Resource, ResourceError
from .project_runner import ProjectRunnerResource
from .runner import RunnerResource

__all__ = [
    "PartialCreateError",
    "ReadOutcome",
    "ReadResult",
    "Resource",
    "ResourceError",
    "ProjectRunnerResource",
    "RunnerResource",
]
