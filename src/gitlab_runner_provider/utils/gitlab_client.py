"""
GitLab REST API client for GitLab Runner Provider.

This module wraps the subset of the GitLab v4 API the provider resources
need: runner registration and management, and enabling runners on
projects. Optional request fields left as ``None`` are omitted from the
request body so the server applies its own defaults.
"""

import ssl
from typing import Any, Dict, Iterable, List, Optional

import httpx
import structlog

from .security import SecurityValidator


class GitLabError(Exception):
    """Base class for GitLab client errors."""
    pass


class GitLabConfigurationError(GitLabError):
    """Raised when the client is configured with invalid settings."""
    pass


class GitLabAPIError(GitLabError):
    """Raised when the GitLab API answers with an error status."""

    def __init__(self, status_code: int, message: str, method: str = "", path: str = "") -> None:
        self.status_code = status_code
        self.message = message
        self.method = method
        self.path = path
        super().__init__(f"{method} {path}: {status_code} {message}".strip())


class GitLabNotFoundError(GitLabAPIError):
    """Raised when the requested GitLab object does not exist."""
    pass


class GitLabClient:
    """
    Synchronous GitLab API client.

    One instance is shared by every resource of a provider. It carries no
    per-resource state; each method issues exactly one request (or one
    request per page for listings) and either returns the decoded payload
    or raises.
    """

    API_PREFIX = "/api/v4"
    PER_PAGE = 100

    def __init__(self,
                 base_url: str,
                 token: Optional[str] = None,
                 ca_cert_path: Optional[str] = None,
                 tls_verify: bool = True,
                 timeout: float = 30.0,
                 transport: Optional[httpx.BaseTransport] = None,
                 logger: Any = None) -> None:
        """
        Initialize the GitLab client.

        Args:
            base_url: GitLab server URL
            token: Personal or project access token sent as PRIVATE-TOKEN
            ca_cert_path: Path to CA certificate for TLS verification
            tls_verify: Whether to verify TLS certificates
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used to fake the API in tests)
            logger: Structured logger instance

        Raises:
            GitLabConfigurationError: If the URL or token is invalid
        """
        self.logger = logger or structlog.get_logger()
        self.logger = self.logger.bind(component="gitlab_client")

        self.security_validator = SecurityValidator()

        try:
            self.base_url = self.security_validator.validate_url(base_url)
            self._token = self.security_validator.validate_token(token, "api") if token else None
        except ValueError as e:
            raise GitLabConfigurationError(str(e)) from e

        self.tls_verify = tls_verify
        self.ca_cert_path = ca_cert_path
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

        self.logger.info(
            "GitLab client initialized",
            url=self.base_url,
            tls_verify=self.tls_verify,
            has_token=bool(self._token)
        )

    def register_runner(self,
                        token: str,
                        description: Optional[str] = None,
                        run_untagged: Optional[bool] = None,
                        active: Optional[bool] = None,
                        locked: Optional[bool] = None,
                        tags: Optional[Iterable[str]] = None,
                        maximum_timeout: Optional[int] = None) -> Dict[str, Any]:
        """
        Register a new runner with a registration token.

        Returns:
            Registration response containing at least ``id`` and ``token``
        """
        data = self._compact({
            "token": token,
            "description": description,
            "run_untagged": run_untagged,
            "active": active,
            "locked": locked,
            "tag_list": self._tag_list(tags),
            "maximum_timeout": maximum_timeout,
        })
        self.logger.debug("Registering runner", fields=sorted(k for k in data if k != "token"))
        return self._request("POST", "/runners", json=data)

    def get_runner_details(self, runner_id: int) -> Dict[str, Any]:
        """Fetch the full record of a runner."""
        return self._request("GET", f"/runners/{runner_id}")

    def update_runner_details(self,
                              runner_id: int,
                              description: Optional[str] = None,
                              run_untagged: Optional[bool] = None,
                              active: Optional[bool] = None,
                              locked: Optional[bool] = None,
                              access_level: Optional[str] = None,
                              tags: Optional[Iterable[str]] = None,
                              maximum_timeout: Optional[int] = None) -> Dict[str, Any]:
        """Update the mutable attributes of a runner and return the updated record."""
        data = self._compact({
            "description": description,
            "run_untagged": run_untagged,
            "active": active,
            "locked": locked,
            "access_level": access_level,
            "tag_list": self._tag_list(tags),
            "maximum_timeout": maximum_timeout,
        })
        self.logger.debug("Updating runner", runner_id=runner_id, fields=sorted(data))
        return self._request("PUT", f"/runners/{runner_id}", json=data)

    def remove_runner(self, runner_id: int) -> None:
        """Delete a runner."""
        self._request("DELETE", f"/runners/{runner_id}")

    def enable_project_runner(self, project_id: int, runner_id: int) -> Dict[str, Any]:
        """Enable an existing runner on a project."""
        return self._request(
            "POST", f"/projects/{project_id}/runners", json={"runner_id": runner_id}
        )

    def list_project_runners(self, project_id: int) -> List[Dict[str, Any]]:
        """
        List every runner enabled on a project.

        Follows GitLab's ``X-Next-Page`` pagination header until the last
        page so the result is complete and in API order.
        """
        runners: List[Dict[str, Any]] = []
        page: Optional[str] = "1"

        while page:
            response = self._send(
                "GET",
                f"/projects/{project_id}/runners",
                params={"per_page": self.PER_PAGE, "page": page},
            )
            batch = self._decode(response)
            if not isinstance(batch, list):
                raise GitLabAPIError(
                    response.status_code,
                    "unexpected response format for runner listing",
                    "GET",
                    f"/projects/{project_id}/runners",
                )
            runners.extend(batch)
            page = response.headers.get("X-Next-Page") or None

        self.logger.debug("Listed project runners", project_id=project_id, count=len(runners))
        return runners

    def disable_project_runner(self, project_id: int, runner_id: int) -> None:
        """Disable a runner on a project."""
        self._request("DELETE", f"/projects/{project_id}/runners/{runner_id}")

    def _initialize_client(self) -> httpx.Client:
        """Build the underlying HTTP client on first use."""
        if self._transport is not None:
            verify: Any = self.tls_verify
        elif not self.tls_verify:
            verify = False
            self.logger.warning("TLS verification disabled - not recommended for production")
        elif self.ca_cert_path:
            verify = ssl.create_default_context(cafile=self.ca_cert_path)
        else:
            verify = True

        headers = {
            "User-Agent": "GitLab-Runner-Provider/0.1.0",
            "Accept": "application/json",
        }
        if self._token:
            headers["PRIVATE-TOKEN"] = self._token

        self._client = httpx.Client(
            base_url=self.base_url + self.API_PREFIX,
            headers=headers,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            verify=verify,
            transport=self._transport,
            follow_redirects=False,
        )
        return self._client

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request and raise on any non-success status."""
        client = self._client or self._initialize_client()

        response = client.request(method, path, **kwargs)

        self.logger.debug(
            "GitLab API request",
            method=method,
            path=path,
            status_code=response.status_code
        )

        if response.is_success:
            return response

        message = self._error_message(response)
        if response.status_code == 404:
            raise GitLabNotFoundError(response.status_code, message, method, path)
        raise GitLabAPIError(response.status_code, message, method, path)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        return self._decode(self._send(method, path, **kwargs))

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Extract GitLab's error message from a failed response."""
        try:
            body = response.json()
        except ValueError:
            return response.text[:200] or response.reason_phrase

        if isinstance(body, dict):
            for key in ("message", "error"):
                if body.get(key):
                    return str(body[key])
        return str(body)[:200]

    @staticmethod
    def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
        # None means "not declared"; everything else, including 0 and False, is sent
        return {key: value for key, value in data.items() if value is not None}

    @staticmethod
    def _tag_list(tags: Optional[Iterable[str]]) -> Optional[List[str]]:
        if tags is None:
            return None
        return sorted(set(tags))

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        if self._client:
            self._client.close()
            self._client = None
            self.logger.debug("GitLab client closed")

    def __enter__(self) -> "GitLabClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
