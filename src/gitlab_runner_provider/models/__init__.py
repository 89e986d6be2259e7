"""Data models for declared configuration, recorded state and settings."""

from .project_runner import ProjectRunnerConfig, ProjectRunnerState
from .provider import DeploymentConfiguration, ProviderConfiguration, ResourceDeclaration
from .runner import AccessLevel, RunnerConfig, RunnerGroup, RunnerProject, RunnerState

__all__ = [
    "AccessLevel",
    "DeploymentConfiguration",
    "ProjectRunnerConfig",
    "ProjectRunnerState",
    "ProviderConfiguration",
    "ResourceDeclaration",
    "RunnerConfig",
    "RunnerGroup",
    "RunnerProject",
    "RunnerState",
]
