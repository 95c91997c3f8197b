"""Protocol definitions for dependency injection.

The transfer engine never talks to Strapi directly: it reads schemas from a
:class:`SchemaRegistry`, reads and writes documents through a
:class:`DocumentStore` and resolves media through a :class:`FileResolver`.
In-memory and REST implementations live in :mod:`strapi_transfer.stores`,
and tests can pass their own objects as long as they match these shapes.
"""

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    import httpx

    from .models.config import RetryConfig
    from .models.portable import MediaDescriptor
    from .models.schema import ContentTypeSchema

DocumentStatus = Literal["draft", "published"]

# Populate specification: ``True`` or a nested mapping of field -> spec
PopulateSpec = bool | Mapping[str, Any]

# Fire-and-forget progress sink: (fraction in [0, 1], message)
ProgressCallback = Callable[[float, str], None]


@runtime_checkable
class SchemaRegistry(Protocol):
    """Lookup of content type and component schemas by UID."""

    def get_model(self, uid: str) -> "ContentTypeSchema | None":
        """Return the schema for a UID, or None when it is unknown."""
        ...


@runtime_checkable
class DocumentService(Protocol):
    """Document API of a single content type."""

    def find_first(
        self,
        *,
        filters: dict[str, Any] | None = None,
        status: DocumentStatus = "published",
        locale: str | None = None,
        populate: PopulateSpec | None = None,
    ) -> dict[str, Any] | None:
        ...

    def find_one(
        self,
        document_id: str,
        *,
        status: DocumentStatus = "published",
        locale: str | None = None,
        populate: PopulateSpec | None = None,
    ) -> dict[str, Any] | None:
        ...

    def find_many(
        self,
        *,
        filters: dict[str, Any] | None = None,
        status: DocumentStatus = "published",
        locale: str | None = None,
        populate: PopulateSpec | None = None,
        sort: str | list[str] | None = None,
    ) -> list[dict[str, Any]]:
        ...

    def create(
        self,
        *,
        data: dict[str, Any],
        status: DocumentStatus = "published",
        locale: str | None = None,
    ) -> dict[str, Any]:
        ...

    def update(
        self,
        document_id: str,
        *,
        data: dict[str, Any],
        status: DocumentStatus = "published",
        locale: str | None = None,
    ) -> dict[str, Any]:
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Entry point to the per-content-type document services."""

    def documents(self, uid: str) -> DocumentService:
        ...


@runtime_checkable
class FileResolver(Protocol):
    """Finds a media library file matching a descriptor, importing it if needed."""

    def find_or_import_file(
        self,
        descriptor: "MediaDescriptor",
        allowed_types: list[str] | None = None,
    ) -> dict[str, Any] | None:
        """Return the file record (with an ``id``) or None when it cannot be used."""
        ...


@runtime_checkable
class AuthProvider(Protocol):
    """Authentication provider for HTTP requests."""

    def get_headers(self) -> dict[str, str]:
        ...

    def validate_token(self) -> bool:
        ...


@runtime_checkable
class ConfigProvider(Protocol):
    """Configuration provider interface used by the HTTP client."""

    def get_base_url(self) -> str:
        ...

    def get_api_token(self) -> str:
        ...

    @property
    def timeout(self) -> float:
        ...

    @property
    def max_connections(self) -> int:
        ...

    @property
    def verify_ssl(self) -> bool:
        ...

    @property
    def retry(self) -> "RetryConfig":
        ...


@runtime_checkable
class HTTPClient(Protocol):
    """Subset of :class:`httpx.Client` the synchronous client relies on."""

    def request(self, method: str, url: str, **kwargs: Any) -> "httpx.Response":
        ...

    def stream(self, method: str, url: str, **kwargs: Any) -> Any:
        ...

    def post(self, url: str, **kwargs: Any) -> "httpx.Response":
        ...

    def close(self) -> None:
        ...
