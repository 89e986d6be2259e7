"""
Utility modules for GitLab Runner Provider.

This package contains the GitLab API client, identifier encoding,
attribute validation rules and security helpers.
"""

from .gitlab_client import GitLabAPIError, GitLabClient, GitLabError, GitLabNotFoundError
from .identifiers import IdentifierError, decode_project_runner_id, encode_project_runner_id
from .security import SecurityError, SecurityValidator

__all__ = [
    "GitLabAPIError",
    "GitLabClient",
    "GitLabError",
    "GitLabNotFoundError",
    "IdentifierError",
    "decode_project_runner_id",
    "encode_project_runner_id",
    "SecurityError",
    "SecurityValidator",
]
