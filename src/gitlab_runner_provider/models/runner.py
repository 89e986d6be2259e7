"""
GitLab runner models.

This module defines the declared configuration of a ``gitlab_runner``
resource and the state recorded for it after each read. Optional
configuration fields are tri-state: ``None`` means the caller did not
declare the field and the server default applies.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_serializer, field_validator

from ..utils.validation import int_at_least, string_in_slice

MINIMUM_TIMEOUT = 10 * 60


class AccessLevel(str, Enum):
    """Which refs a runner picks jobs up for."""

    NOT_PROTECTED = "not_protected"
    REF_PROTECTED = "ref_protected"


validate_access_level = string_in_slice([level.value for level in AccessLevel], ignore_case=True)
validate_maximum_timeout = int_at_least(MINIMUM_TIMEOUT)


class RunnerProject(BaseModel):
    """Summary of a project the runner is enabled on."""

    id: int
    name: Optional[str] = None
    name_with_namespace: Optional[str] = None
    path: Optional[str] = None
    path_with_namespace: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class RunnerGroup(BaseModel):
    """Summary of a group the runner is assigned to."""

    id: int
    name: Optional[str] = None
    web_url: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class RunnerConfig(BaseModel):
    """
    Declared configuration of a ``gitlab_runner`` resource.

    ``tags`` distinguishes three cases: ``None`` leaves the server's tags
    alone, an empty set clears them, anything else replaces them.
    """

    registration_token: SecretStr = Field(
        ...,
        description="Token used once to register the runner"
    )
    description: Optional[str] = Field(
        default=None,
        description="Free-form runner description"
    )
    access_level: Optional[AccessLevel] = Field(
        default=None,
        description="not_protected or ref_protected"
    )
    locked: Optional[bool] = Field(
        default=None,
        description="Lock the runner to its current projects"
    )
    active: Optional[bool] = Field(
        default=None,
        description="Whether the runner accepts jobs"
    )
    run_untagged: Optional[bool] = Field(
        default=None,
        description="Pick up jobs without tags"
    )
    maximum_timeout: Optional[int] = Field(
        default=None,
        description="Maximum job timeout in seconds"
    )
    tags: Optional[Set[str]] = Field(
        default=None,
        description="Runner tags used for job routing"
    )

    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    @field_validator("registration_token")
    @classmethod
    def validate_registration_token(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("registration_token must not be empty")
        return v

    @field_validator("access_level", mode="before")
    @classmethod
    def normalize_access_level(cls, v: Any) -> Any:
        if v is None:
            return v
        if isinstance(v, AccessLevel):
            return v
        return validate_access_level(v)

    @field_validator("maximum_timeout")
    @classmethod
    def check_maximum_timeout(cls, v: Optional[int]) -> Optional[int]:
        if v is None:
            return v
        return validate_maximum_timeout(v)


class RunnerState(BaseModel):
    """
    Recorded state of a ``gitlab_runner`` resource.

    Everything except ``id`` and ``registration_token`` is replaced
    wholesale from the server on every read.
    """

    id: Optional[str] = None
    runner_id: Optional[int] = None
    registration_token: Optional[SecretStr] = None
    token: Optional[SecretStr] = None
    description: Optional[str] = None
    access_level: Optional[str] = None
    locked: Optional[bool] = None
    active: Optional[bool] = None
    run_untagged: Optional[bool] = None
    maximum_timeout: Optional[int] = None
    tags: Set[str] = Field(default_factory=set)
    revision: Optional[str] = None
    version: Optional[str] = None
    ip_address: Optional[str] = None
    contacted_at: Optional[str] = None
    online: Optional[bool] = None
    status: Optional[str] = None
    architecture: Optional[str] = None
    name: Optional[str] = None
    is_shared: Optional[bool] = None
    projects: List[RunnerProject] = Field(default_factory=list)
    groups: List[RunnerGroup] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @field_serializer("registration_token", "token", when_used="json")
    def dump_secret(self, v: Optional[SecretStr]) -> Optional[str]:
        return v.get_secret_value() if v is not None else None

    @field_serializer("tags")
    def dump_tags(self, v: Set[str]) -> List[str]:
        return sorted(v)

    @classmethod
    def from_api(cls,
                 details: Dict[str, Any],
                 registration_token: Optional[SecretStr] = None,
                 token: Optional[SecretStr] = None) -> "RunnerState":
        """
        Build state from a runner details payload.

        ``token`` is only used when the payload does not carry one, since
        newer GitLab releases only return it at registration.
        """
        reported_token = details.get("token")
        return cls(
            id=str(details["id"]),
            runner_id=details["id"],
            registration_token=registration_token,
            token=SecretStr(reported_token) if reported_token else token,
            description=details.get("description"),
            access_level=details.get("access_level"),
            locked=details.get("locked"),
            active=_active_flag(details),
            run_untagged=details.get("run_untagged"),
            maximum_timeout=details.get("maximum_timeout"),
            tags=set(details.get("tag_list") or []),
            revision=details.get("revision"),
            version=details.get("version"),
            ip_address=details.get("ip_address"),
            contacted_at=details.get("contacted_at"),
            online=details.get("online"),
            status=details.get("status"),
            architecture=details.get("architecture"),
            name=details.get("name"),
            is_shared=details.get("is_shared"),
            projects=[RunnerProject.model_validate(p) for p in details.get("projects") or []],
            groups=[RunnerGroup.model_validate(g) for g in details.get("groups") or []],
        )


def _active_flag(details: Dict[str, Any]) -> Optional[bool]:
    # Newer GitLab releases report "paused" instead of "active"
    if details.get("active") is not None:
        return details["active"]
    if details.get("paused") is not None:
        return not details["paused"]
    return None
