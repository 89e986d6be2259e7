"""
Provider and deployment configuration models.

A deployment file holds one ``provider`` block with the GitLab connection
settings and a list of resource declarations, each naming its resource
type, a local name and the declared configuration for that type.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, SecretStr, field_validator, model_validator

from ..utils.security import SecurityError, SecurityValidator

RESOURCE_TYPES = ("gitlab_runner", "gitlab_project_enable_runner")


class ProviderConfiguration(BaseModel):
    """
    GitLab server configuration and authentication.

    Contains connection details and authentication information
    for communicating with GitLab API.
    """

    base_url: str = Field(
        default="https://gitlab.com",
        description="GitLab server URL"
    )
    token: Optional[SecretStr] = Field(
        default=None,
        description="GitLab API token sent as PRIVATE-TOKEN"
    )
    ca_cert_path: Optional[str] = Field(
        default=None,
        description="Path to CA certificate for TLS verification"
    )
    tls_verify: bool = Field(
        default=True,
        description="Verify TLS certificates"
    )
    timeout: PositiveFloat = Field(
        default=30.0,
        description="Request timeout in seconds"
    )

    model_config = ConfigDict(extra="forbid")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate GitLab URL format."""
        try:
            return SecurityValidator().validate_url(v)
        except SecurityError as e:
            raise ValueError(str(e)) from e


class ResourceDeclaration(BaseModel):
    """A single declared resource."""

    type: str = Field(
        ...,
        description="Resource type"
    )
    name: str = Field(
        ...,
        description="Local name, unique per resource type"
    )
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Declared attribute values"
    )

    model_config = ConfigDict(extra="forbid")

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in RESOURCE_TYPES:
            raise ValueError(f"unsupported resource type {v!r}, expected one of {list(RESOURCE_TYPES)}")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not SecurityValidator().validate_resource_name(v):
            raise ValueError(f"invalid resource name {v!r}")
        return v

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"


class DeploymentConfiguration(BaseModel):
    """
    Main deployment configuration.

    Aggregates the provider settings and every declared resource.
    """

    provider: ProviderConfiguration = Field(
        default_factory=ProviderConfiguration,
        description="GitLab provider settings"
    )
    resources: List[ResourceDeclaration] = Field(
        default_factory=list,
        description="Declared resources"
    )

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_unique_addresses(self) -> "DeploymentConfiguration":
        """Reject duplicate resource addresses."""
        seen = set()
        for declaration in self.resources:
            if declaration.address in seen:
                raise ValueError(f"duplicate resource {declaration.address}")
            seen.add(declaration.address)
        return self
