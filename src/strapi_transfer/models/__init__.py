"""Data models for strapi-transfer."""

from .config import RetryConfig, StrapiConfig, TransferConfig
from .export_options import ExportOptions
from .import_options import (
    ExistingAction,
    ImportErrorLocation,
    ImportErrorRecord,
    ImportFailure,
    ImportOptions,
    ImportResult,
)
from .portable import (
    DEFAULT_LOCALE,
    PORTABLE_FORMAT_VERSION,
    MediaDescriptor,
    PortableDocument,
    PortableEntry,
)
from .schema import (
    AttributeKind,
    ComponentAttribute,
    ContentTypeKind,
    ContentTypeSchema,
    DynamicZoneAttribute,
    MediaAttribute,
    RelationAttribute,
    RelationCardinality,
    ScalarAttribute,
    is_component_attribute,
    is_dynamic_zone_attribute,
    is_media_attribute,
    is_relation_attribute,
)

__all__ = [
    "DEFAULT_LOCALE",
    "PORTABLE_FORMAT_VERSION",
    "AttributeKind",
    "ComponentAttribute",
    "ContentTypeKind",
    "ContentTypeSchema",
    "DynamicZoneAttribute",
    "ExistingAction",
    "ExportOptions",
    "ImportErrorLocation",
    "ImportErrorRecord",
    "ImportFailure",
    "ImportOptions",
    "ImportResult",
    "MediaAttribute",
    "MediaDescriptor",
    "PortableDocument",
    "PortableEntry",
    "RelationAttribute",
    "RelationCardinality",
    "RetryConfig",
    "ScalarAttribute",
    "StrapiConfig",
    "TransferConfig",
    "is_component_attribute",
    "is_dynamic_zone_attribute",
    "is_media_attribute",
    "is_relation_attribute",
]
