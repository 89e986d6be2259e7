"""
Resource identifier encoding for GitLab Runner Provider.

Runners are identified by the decimal string of their integer ID. The
project/runner association has no identity of its own on the server, so it
is persisted as a composite identifier joining both integers.
"""

import re
from typing import Tuple

ID_SEPARATOR = ":"

_DECIMAL_PATTERN = re.compile(r"[0-9]+")


class IdentifierError(ValueError):
    """Raised when a stored resource identifier cannot be decoded."""
    pass


def build_two_part_id(first: str, second: str) -> str:
    """Join two identifier parts with the fixed separator."""
    return f"{first}{ID_SEPARATOR}{second}"


def parse_two_part_id(resource_id: str) -> Tuple[str, str]:
    """
    Split a composite identifier into its two parts.

    Args:
        resource_id: Identifier of the form ``<first>:<second>``

    Returns:
        Tuple of both parts

    Raises:
        IdentifierError: If the identifier does not contain exactly one separator
    """
    parts = resource_id.split(ID_SEPARATOR)
    if len(parts) != 2:
        raise IdentifierError(
            f"unexpected format of ID ({resource_id}), expected first{ID_SEPARATOR}second"
        )
    return parts[0], parts[1]


def parse_int_id(value: str, what: str = "ID") -> int:
    """Parse a decimal identifier, rejecting anything but plain digits."""
    if not _DECIMAL_PATTERN.fullmatch(value):
        raise IdentifierError(f"invalid {what} {value!r}: not a non-negative integer")
    return int(value)


def encode_project_runner_id(project_id: int, runner_id: int) -> str:
    """Encode a project/runner pair as ``<project_id>:<runner_id>``."""
    if project_id < 0 or runner_id < 0:
        raise IdentifierError("project and runner IDs must be non-negative")
    return build_two_part_id(str(project_id), str(runner_id))


def decode_project_runner_id(resource_id: str) -> Tuple[int, int]:
    """
    Decode a composite project/runner identifier.

    Raises:
        IdentifierError: If the separator is missing or either half is not an integer
    """
    project_part, runner_part = parse_two_part_id(resource_id)

    try:
        project_id = parse_int_id(project_part, "project ID")
    except IdentifierError as e:
        raise IdentifierError(f"failed to get project: {e}") from e

    try:
        runner_id = parse_int_id(runner_part, "runner ID")
    except IdentifierError as e:
        raise IdentifierError(f"failed to get runner: {e}") from e

    return project_id, runner_id
