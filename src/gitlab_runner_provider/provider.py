"""
GitLab provider: one shared API client and the resources built on it.
"""

from typing import Any, Dict, Optional

import httpx
import structlog

from .models.provider import ProviderConfiguration
from .resources import ProjectRunnerResource, Resource, RunnerResource
from .utils.gitlab_client import GitLabClient

RESOURCE_CLASSES = (RunnerResource, ProjectRunnerResource)


class GitLabProvider:
    """
    Registry of resource controllers sharing a single GitLab client.

    The client is only read by the resources, never reconfigured, so one
    provider serves every resource of a deployment.
    """

    def __init__(self,
                 config: ProviderConfiguration,
                 transport: Optional[httpx.BaseTransport] = None,
                 logger: Any = None) -> None:
        self.config = config
        self.logger = (logger or structlog.get_logger()).bind(component="provider")

        self.client = GitLabClient(
            base_url=config.base_url,
            token=config.token.get_secret_value() if config.token else None,
            ca_cert_path=config.ca_cert_path,
            tls_verify=config.tls_verify,
            timeout=config.timeout,
            transport=transport,
            logger=logger,
        )

        self.resources: Dict[str, Resource] = {
            cls.type_name: cls(self.client, logger=logger) for cls in RESOURCE_CLASSES
        }

    def resource(self, type_name: str) -> Resource:
        """Look up the controller for a resource type."""
        try:
            return self.resources[type_name]
        except KeyError:
            raise KeyError(f"unsupported resource type {type_name!r}") from None

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "GitLabProvider":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
