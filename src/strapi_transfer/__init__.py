"""strapi-transfer: schema-driven import/export for Strapi v5 content.

This package moves content between Strapi instances (or into and out of
files) in a portable JSON format, including:
- Export of nested components, dynamic zones, media and relations
- Relation closure so exported documents are self-contained
- Validation before import and per-entry failure reporting
- Skip, update or warn policies for content that already exists
- A REST document store and an in-memory one for offline use
"""

from .__version__ import __version__
from .cache import InMemorySchemaCache, StaticSchemaRegistry
from .client import SyncClient
from .config_provider import ConfigFactory, create_config, load_config
from .exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    FormatError,
    ImportExportError,
    ImportInProgressError,
    MediaError,
    NotFoundError,
    RateLimitError,
    RelationError,
    RelationNotFoundError,
    ServerError,
    StrapiError,
    ValidationError,
)
from .export import (
    ExistingAction,
    ExportOptions,
    ImportLock,
    ImportOptions,
    ImportResult,
    RelationStrategy,
    RelationStrategyTable,
    StrapiExporter,
    StrapiImporter,
)
from .models import ContentTypeSchema, PortableDocument, PortableEntry, RetryConfig, StrapiConfig
from .protocols import (
    AuthProvider,
    ConfigProvider,
    DocumentService,
    DocumentStore,
    FileResolver,
    HTTPClient,
    SchemaRegistry,
)
from .stores import InMemoryDocumentStore, InMemoryMediaLibrary, RestDocumentStore

__all__ = [
    "__version__",
    # Client
    "SyncClient",
    # Configuration
    "StrapiConfig",
    "RetryConfig",
    "ConfigFactory",
    "create_config",
    "load_config",
    # Export/Import
    "StrapiExporter",
    "StrapiImporter",
    "ExportOptions",
    "ImportOptions",
    "ImportResult",
    "ExistingAction",
    "ImportLock",
    "RelationStrategy",
    "RelationStrategyTable",
    "PortableDocument",
    "PortableEntry",
    "ContentTypeSchema",
    # Stores and registries
    "InMemoryDocumentStore",
    "InMemoryMediaLibrary",
    "RestDocumentStore",
    "InMemorySchemaCache",
    "StaticSchemaRegistry",
    # Protocols (for dependency injection)
    "AuthProvider",
    "ConfigProvider",
    "DocumentService",
    "DocumentStore",
    "FileResolver",
    "HTTPClient",
    "SchemaRegistry",
    # Exceptions
    "StrapiError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "RateLimitError",
    "ServerError",
    "ConfigurationError",
    "ImportExportError",
    "ImportInProgressError",
    "FormatError",
    "RelationError",
    "RelationNotFoundError",
    "MediaError",
]
