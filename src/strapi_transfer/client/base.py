"""Base HTTP client for Strapi API communication.

Holds everything that does not depend on the I/O model: URL building,
header construction, status-code to exception mapping and the retry
policy.
"""

import logging
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..auth.api_token import APITokenAuth
from ..exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    ServerError,
    StrapiError,
    ValidationError,
)
from ..exceptions import (
    ConnectionError as StrapiConnectionError,
)
from ..protocols import AuthProvider, ConfigProvider

logger = logging.getLogger(__name__)


class BaseClient:
    """Shared plumbing for the Strapi HTTP client.

    Not intended to be used directly - use SyncClient instead.
    """

    def __init__(self, config: ConfigProvider, auth: AuthProvider | None = None) -> None:
        """Initialize the base client.

        Args:
            config: Configuration provider (typically StrapiConfig)
            auth: Authentication provider (defaults to API token auth)

        Raises:
            ValueError: If the API token is empty
        """
        self.config = config
        self.base_url = config.get_base_url().rstrip("/")
        self.auth: AuthProvider = auth or APITokenAuth(config.get_api_token())

        if not self.auth.validate_token():
            raise ValueError("API token is required and cannot be empty")

        logger.info(f"Initialized Strapi client for {self.base_url}")

    def _get_headers(self, extra_headers: dict[str, str] | None = None) -> dict[str, str]:
        """Build JSON request headers with authentication."""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **self.auth.get_headers(),
        }
        if extra_headers:
            headers.update(extra_headers)
        return headers

    def _build_upload_headers(self) -> dict[str, str]:
        """Headers for multipart uploads; httpx sets the content type boundary."""
        return {"Accept": "application/json", **self.auth.get_headers()}

    def _build_url(self, endpoint: str) -> str:
        """Build the full URL for an endpoint.

        Args:
            endpoint: API endpoint path (e.g., "articles" or "/api/articles")

        Returns:
            Complete URL with the ``/api`` prefix
        """
        endpoint = endpoint.strip("/")
        if not endpoint.startswith("api/"):
            endpoint = f"api/{endpoint}"
        return f"{self.base_url}/{endpoint}"

    def _handle_error_response(self, response: httpx.Response) -> None:
        """Raise the StrapiError subclass matching an HTTP error response.

        Raises:
            StrapiError: Always
        """
        status_code = response.status_code

        try:
            error_data = response.json()
            error = error_data.get("error", {}) if isinstance(error_data, dict) else {}
            error_message = error.get("message") or response.text
            error_details = error.get("details") or {}
        except ValueError:
            error_message = response.text or f"HTTP {status_code}"
            error_details = {}

        if status_code == 401:
            raise AuthenticationError(
                f"Authentication failed: {error_message}", details=error_details
            )
        elif status_code == 403:
            raise AuthorizationError(
                f"Authorization failed: {error_message}", details=error_details
            )
        elif status_code == 404:
            raise NotFoundError(f"Resource not found: {error_message}", details=error_details)
        elif status_code == 400:
            raise ValidationError(f"Validation error: {error_message}", details=error_details)
        elif status_code == 409:
            raise ConflictError(f"Conflict: {error_message}", details=error_details)
        elif status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"Rate limit exceeded: {error_message}",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
                details=error_details,
            )
        elif 500 <= status_code < 600:
            raise ServerError(
                f"Server error: {error_message}",
                status_code=status_code,
                details=error_details,
            )
        raise StrapiError(
            f"Unexpected error (HTTP {status_code}): {error_message}",
            details=error_details,
        )

    def _create_retry_decorator(self) -> Any:
        """Create a tenacity retry decorator from the retry configuration."""
        retry_config = self.config.retry

        return retry(
            stop=stop_after_attempt(retry_config.max_attempts),
            wait=wait_exponential(
                multiplier=retry_config.exponential_base,
                min=retry_config.initial_wait,
                max=retry_config.max_wait,
            ),
            retry=retry_if_exception_type((ServerError, StrapiConnectionError)),
            reraise=True,
        )
