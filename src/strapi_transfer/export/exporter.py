"""Content export.

Exports one or more content types into a :class:`PortableDocument` and,
when asked to, follows relations outward so the output is self-contained.

Example:
    ```python
    from strapi_transfer import StrapiConfig, SyncClient
    from strapi_transfer.export import ExportOptions, StrapiExporter

    config = StrapiConfig(base_url="http://localhost:1337", api_token="token")

    with SyncClient(config) as client:
        exporter = StrapiExporter.for_client(client)
        document = exporter.export(
            ["api::article.article"],
            ExportOptions(export_relations=True),
        )
        exporter.save_to_file(document, "export.json")
    ```
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from ..cache.schema_cache import InMemorySchemaCache
from ..exceptions import ConfigurationError, FormatError, NotFoundError
from ..models.config import StrapiConfig
from ..models.export_options import ExportOptions
from ..models.portable import PortableDocument
from ..protocols import DocumentStore, SchemaRegistry
from ..stores.rest import RestDocumentStore
from ..utils.uid import ADMIN_USER_UID
from .export_context import ExportContext
from .export_processor import ExportProcessor
from .populate import PopulatePlanBuilder

if TYPE_CHECKING:
    from ..client.sync_client import SyncClient

logger = logging.getLogger(__name__)

WHOLE_DB = "custom:db"


class StrapiExporter:
    """Exports content from a document store into the portable format."""

    def __init__(
        self,
        store: DocumentStore,
        registry: SchemaRegistry,
        public_url: str = "",
    ) -> None:
        """Initialize the exporter.

        Args:
            store: Source document store
            registry: Schemas of the source
            public_url: Host prefix for relative media URLs
        """
        self.store = store
        self.registry = registry
        self.public_url = public_url
        self._plan_builder = PopulatePlanBuilder(registry)

    @classmethod
    def for_client(cls, client: SyncClient) -> StrapiExporter:
        """Exporter reading from a live instance over REST."""
        registry = InMemorySchemaCache(client)
        config = client.config
        if isinstance(config, StrapiConfig):
            store = RestDocumentStore(client, registry, config.transfer.page_size)
            return cls(store, registry, config.get_public_url())
        return cls(RestDocumentStore(client, registry), registry, client.base_url)

    def export(
        self,
        slugs: list[str] | str,
        options: ExportOptions | None = None,
    ) -> PortableDocument:
        """Export content types, optionally with their relation closure.

        Args:
            slugs: Content type UIDs, or ``"custom:db"`` for every API content type
            options: Export options

        Returns:
            The portable document

        Content types reached through relations or through ``"custom:db"``
        that are unknown or misconfigured are skipped with a warning.

        Raises:
            NotFoundError: If a requested content type is unknown
            ConfigurationError: If a requested content type's identifier field
                is unusable
        """
        options = options or ExportOptions()
        requested = [slugs] if isinstance(slugs, str) else list(slugs)
        uids = self._resolve_slugs(requested)
        context = ExportContext(options=options)
        processor = ExportProcessor(
            context, self.store, self.registry, self.public_url, self._plan_builder
        )

        logger.info(f"Exporting {', '.join(uids)}")
        for uid in uids:
            if uid in requested:
                processor.process_schema(uid)
            else:
                _process_isolated(processor, uid)

        pending = context.take_pending()
        passes = 0
        while pending and options.export_relations and passes < options.max_depth:
            passes += 1
            context.skip_relations = not options.deep_populate_relations
            context.skip_component_relations = not options.deep_populate_component_relations
            logger.debug(f"Relation pass {passes}: {pending}")

            for uid, document_ids in pending.items():
                context.document_ids = document_ids
                _process_isolated(processor, uid)
            pending = context.take_pending()

        if pending and options.export_relations and passes >= options.max_depth:
            logger.warning(
                f"Export relations loop limit reached ({options.max_depth} iterations). "
                "Some relations may not be fully exported."
            )

        context.exported.pop(ADMIN_USER_UID, None)
        document = PortableDocument(data=context.exported)
        logger.info(f"Exported {document.entry_count()} entries")
        return document

    def _resolve_slugs(self, requested: list[str]) -> list[str]:
        if WHOLE_DB not in requested:
            return requested
        content_type_uids = getattr(self.registry, "content_type_uids", None)
        if content_type_uids is None:
            raise FormatError("This schema registry cannot list content types")
        return content_type_uids()

    def export_to_json(self, slugs: list[str] | str, options: ExportOptions | None = None) -> str:
        return self.export(slugs, options).to_json()

    @staticmethod
    def save_to_file(document: PortableDocument, file_path: str | Path) -> None:
        """Write a document as tab-indented JSON."""
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(document.to_json(), encoding="utf-8")
        logger.info(f"Saved export to {path}")

    @staticmethod
    def load_from_file(file_path: str | Path) -> PortableDocument:
        """Read a document written by :meth:`save_to_file`.

        Raises:
            FileNotFoundError: If the file doesn't exist
            FormatError: If the file is not a valid portable document
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Export file not found: {file_path}")

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return PortableDocument.model_validate(raw)
        except json.JSONDecodeError as e:
            raise FormatError(f"Invalid JSON in export file: {e}") from e
        except PydanticValidationError as e:
            raise FormatError(f"Invalid export file structure: {e}") from e


def _process_isolated(processor: ExportProcessor, uid: str) -> None:
    """Export a content type the caller did not name, skipping it if unusable."""
    try:
        processor.process_schema(uid)
    except (ConfigurationError, NotFoundError) as e:
        logger.warning(f"Skipping {uid}: {e}")
