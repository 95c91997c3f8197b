"""Export and import of Strapi content in the portable format.

Exports flatten entries (components, dynamic zones, media and relations)
into a self-describing document keyed by content type, status and locale.
Imports validate such a document and merge it back into a store, resolving
relations by identifier value.
"""

from ..models.export_options import ExportOptions
from ..models.import_options import ExistingAction, ImportOptions, ImportResult
from .export_processor import ExportProcessor
from .exporter import WHOLE_DB, StrapiExporter
from .identifiers import get_identifier_field, validate_identifier_field
from .import_processor import ImportProcessor
from .importer import ImportLock, StrapiImporter
from .media_handler import MediaHandler
from .populate import PopulatePlanBuilder, build_populate_plan
from .relation_resolver import EntityResolver
from .strategies import RelationStrategy, RelationStrategyTable
from .validation import DocumentValidator

__all__ = [
    "WHOLE_DB",
    "DocumentValidator",
    "EntityResolver",
    "ExistingAction",
    "ExportOptions",
    "ExportProcessor",
    "ImportLock",
    "ImportOptions",
    "ImportProcessor",
    "ImportResult",
    "MediaHandler",
    "PopulatePlanBuilder",
    "RelationStrategy",
    "RelationStrategyTable",
    "StrapiExporter",
    "StrapiImporter",
    "build_populate_plan",
    "get_identifier_field",
    "validate_identifier_field",
]
