"""
GitLab Runner Provider.

Declarative management of GitLab CI/CD runners: registering runners,
keeping their attributes in sync, and enabling them on projects.

This package implements:
- The gitlab_runner and gitlab_project_enable_runner resources
- A GitLab REST API client for the runner endpoints
- A lifecycle controller with a local state file and a CLI
"""

__version__ = "0.1.0"

from .controllers.lifecycle import LifecycleController
from .provider import GitLabProvider
from .resources import ProjectRunnerResource, ReadOutcome, ReadResult, RunnerResource

__all__ = [
    "GitLabProvider",
    "LifecycleController",
    "ProjectRunnerResource",
    "ReadOutcome",
    "ReadResult",
    "RunnerResource",
]
