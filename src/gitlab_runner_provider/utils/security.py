"""
Security utilities for GitLab Runner Provider.

This module validates connection settings and tokens before they reach
the HTTP layer, and redacts sensitive attributes so that tokens never
appear in displayed state, plans or log events.
"""

import re
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlparse

import structlog

REDACTED = "(sensitive value)"

_RESOURCE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


class SecurityError(ValueError):
    """Raised when security validation fails."""
    pass


class SecurityValidator:
    """
    Validator for provider connection settings and resource names.

    Methods raise ``SecurityError`` for invalid input and return the
    normalized value otherwise.
    """

    def __init__(self) -> None:
        """Initialize security validator."""
        self.logger = structlog.get_logger().bind(component="security_validator")

    def validate_url(self, url: str) -> str:
        """
        Validate and normalize a GitLab server URL.

        Plain HTTP is only accepted for localhost. The returned URL has no
        trailing slash, query or fragment.
        """
        if not url:
            raise SecurityError("GitLab URL is required")

        parsed = urlparse(url.strip())

        if not parsed.scheme:
            raise SecurityError("GitLab URL must include protocol")

        if parsed.scheme not in ["http", "https"]:
            raise SecurityError("GitLab URL must use HTTP or HTTPS")

        if not parsed.netloc:
            raise SecurityError("GitLab URL must include hostname")

        if parsed.scheme == "http" and parsed.hostname not in ("localhost", "127.0.0.1"):
            raise SecurityError("HTTP URLs only allowed for localhost")

        path = (parsed.path or "").rstrip("/")
        if path.endswith("/api/v4"):
            path = path[: -len("/api/v4")]

        return f"{parsed.scheme}://{parsed.netloc}{path}"

    def validate_token(self, token: Optional[str], token_type: str) -> str:
        """Validate authentication token format."""
        if not token:
            raise SecurityError(f"{token_type} token is required")

        if any(char in token for char in [" ", "\n", "\r", "\t"]):
            raise SecurityError(f"{token_type} token contains whitespace")

        if any(ord(char) < 32 for char in token):
            raise SecurityError(f"{token_type} token contains control characters")

        return token

    def validate_resource_name(self, name: str) -> bool:
        """Check that a declared resource name is usable in an address."""
        return bool(name) and len(name) <= 128 and bool(_RESOURCE_NAME_PATTERN.match(name))

    def redact_attributes(self,
                          attributes: Dict[str, Any],
                          sensitive: Iterable[str]) -> Dict[str, Any]:
        """
        Return a copy of ``attributes`` with sensitive values masked.

        Unset sensitive values stay ``None`` so the output still shows
        whether a secret is present.
        """
        sensitive_names = set(sensitive)
        redacted = {}
        for key, value in attributes.items():
            if key in sensitive_names and value not in (None, ""):
                redacted[key] = REDACTED
            else:
                redacted[key] = value
        return redacted
