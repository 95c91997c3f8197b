"""Exception hierarchy for strapi-transfer.

Every error raised by the package derives from :class:`StrapiError`, so
callers can catch the whole family with a single ``except`` clause while
still being able to tell HTTP failures apart from transfer failures.
"""

from typing import Any


class StrapiError(Exception):
    """Base exception for all strapi-transfer errors.

    Attributes:
        message: Human-readable error message
        details: Additional structured context
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# HTTP errors


class AuthenticationError(StrapiError):
    """Raised on HTTP 401 (missing or invalid API token)."""


class AuthorizationError(StrapiError):
    """Raised on HTTP 403 (token lacks permission)."""


class NotFoundError(StrapiError):
    """Raised on HTTP 404."""


class ValidationError(StrapiError):
    """Raised on HTTP 400 (the server rejected the payload)."""


class ConflictError(StrapiError):
    """Raised on HTTP 409 and on conflicting store state during import."""


class RateLimitError(StrapiError):
    """Raised on HTTP 429."""

    def __init__(
        self,
        message: str,
        retry_after: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.retry_after = retry_after


class ServerError(StrapiError):
    """Raised on HTTP 5xx responses."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class ConnectionError(StrapiError):  # noqa: A001
    """Raised when the Strapi instance cannot be reached."""


class TimeoutError(StrapiError):  # noqa: A001
    """Raised when a request exceeds the configured timeout."""


# Configuration


class ConfigurationError(StrapiError):
    """Raised for invalid client settings or misconfigured content types.

    During a transfer this is fatal for the affected content type only.
    """


# Transfer errors


class ImportExportError(StrapiError):
    """Base class for import/export failures."""


class FormatError(ImportExportError):
    """Raised when a portable document cannot be read or written."""


class RelationError(ImportExportError):
    """Raised when a relation value cannot be turned into a document reference."""


class RelationNotFoundError(RelationError):
    """Raised when a relation target cannot be found or created.

    Attributes:
        search_details: What was searched (content type, field, value,
            locales and variations tried)
    """

    def __init__(
        self,
        message: str,
        search_details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=search_details)
        self.search_details = search_details or {}


class MediaError(StrapiError):
    """Raised when a media file cannot be uploaded, downloaded or resolved."""


class ImportInProgressError(ConflictError):
    """Raised when an import starts while another one still holds the lock."""

    def __init__(self, message: str = "An import is already in progress") -> None:
        super().__init__(message)
