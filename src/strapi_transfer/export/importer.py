"""Main import orchestration.

Validates a portable document, then hands its entries to the
:class:`ImportProcessor`. Only one import may run at a time per
:class:`ImportLock`; the lock is injected so that several importers (or
several threads sharing one importer) can be serialized against the same
target. Importers built with ``for_client`` share one lock per base URL.

Example:
    ```python
    from strapi_transfer import StrapiConfig, SyncClient
    from strapi_transfer.export import ExistingAction, ImportOptions, StrapiImporter

    config = StrapiConfig(base_url="http://localhost:1337", api_token="token")

    with SyncClient(config) as client:
        importer = StrapiImporter.for_client(client)
        result = importer.import_file(
            "export.json",
            ImportOptions(existing_action=ExistingAction.UPDATE),
        )
        for failure in result.failures:
            print(failure.error)
    ```
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from ..cache.schema_cache import InMemorySchemaCache
from ..exceptions import FormatError, ImportInProgressError
from ..models.config import StrapiConfig
from ..models.import_options import ImportOptions, ImportResult
from ..models.portable import PORTABLE_FORMAT_VERSION, PortableDocument
from ..protocols import DocumentStore, FileResolver, ProgressCallback, SchemaRegistry
from ..stores.rest import RestDocumentStore
from .import_context import ImportContext
from .import_processor import ImportProcessor
from .media_handler import MediaHandler
from .strategies import RelationStrategyTable
from .validation import DocumentValidator

if TYPE_CHECKING:
    from ..client.sync_client import SyncClient

logger = logging.getLogger(__name__)

_TARGET_LOCKS: dict[str, ImportLock] = {}
_TARGET_LOCKS_GUARD = threading.Lock()


class ImportLock:
    """Non-blocking mutual exclusion for import runs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @classmethod
    def for_target(cls, target: str) -> ImportLock:
        """Lock shared by every importer of the same target in this process."""
        with _TARGET_LOCKS_GUARD:
            if target not in _TARGET_LOCKS:
                _TARGET_LOCKS[target] = cls()
            return _TARGET_LOCKS[target]

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    def acquire(self) -> None:
        """Take the lock or fail immediately.

        Raises:
            ImportInProgressError: If another import holds the lock
        """
        if not self._lock.acquire(blocking=False):
            raise ImportInProgressError()

    def release(self) -> None:
        self._lock.release()


class StrapiImporter:
    """Import portable documents into a document store.

    The import runs in two stages. A validation pass checks structure,
    required content and unique constraints and, when it finds anything,
    returns the errors without writing. The processing stage then imports
    entry by entry; problems with single entries or attributes are collected
    as failures and do not stop the run.
    """

    def __init__(
        self,
        store: DocumentStore,
        registry: SchemaRegistry,
        files: FileResolver | None = None,
        strategies: RelationStrategyTable | None = None,
        lock: ImportLock | None = None,
    ) -> None:
        """Initialize the importer.

        Args:
            store: Target document store
            registry: Schemas of the target
            files: Media library used to resolve media descriptors
            strategies: Relation lookup strategies for fuzzy mode
            lock: Shared lock; a private one is created when omitted
                (``for_client`` uses the lock of the target base URL)
        """
        self.store = store
        self.registry = registry
        self.files = files
        self.strategies = strategies or RelationStrategyTable.with_defaults()
        self.lock = lock or ImportLock()

    @classmethod
    def for_client(cls, client: SyncClient, lock: ImportLock | None = None) -> StrapiImporter:
        """Importer writing to a live instance over REST.

        Unless a lock is given, importers of the same base URL share one.
        """
        registry = InMemorySchemaCache(client)
        config = client.config
        page_size = config.transfer.page_size if isinstance(config, StrapiConfig) else 100
        store = RestDocumentStore(client, registry, page_size)
        lock = lock or ImportLock.for_target(client.base_url)
        return cls(store, registry, files=MediaHandler(client), lock=lock)

    def import_data(
        self,
        document: PortableDocument | dict[str, Any] | str,
        options: ImportOptions | None = None,
    ) -> ImportResult:
        """Import a portable document.

        Args:
            document: Parsed document, its dict form or its JSON text
            options: Import policy (defaults when None)

        Returns:
            ImportResult with failures, validation errors and counters

        Raises:
            ImportInProgressError: If another import holds the lock
            FormatError: If the document cannot be parsed or has another
                format version
        """
        options = options or ImportOptions()
        progress = _safe_progress(options.progress_callback or _log_progress)

        self.lock.acquire()
        try:
            progress(0.0, "Starting import")
            raw = self._raw(document)
            if not options.validate_before_import:
                _check_version(raw)

            if options.validate_before_import:
                errors = DocumentValidator(self.store, self.registry, options).validate(raw)
                if errors:
                    for error in errors:
                        logger.error(f"Validation failed: {error.error} ({error.data.path})")
                    return ImportResult(errors=errors)

            try:
                parsed = PortableDocument.model_validate(raw)
            except PydanticValidationError as e:
                raise FormatError(f"Invalid import document structure: {e}") from e

            context = ImportContext(options=options, import_data=parsed.data)
            processor = ImportProcessor(
                context, self.store, self.registry, self.files, self.strategies
            )
            logger.info(f"Starting import of {parsed.entry_count()} entries")
            result = processor.process(progress)

            progress(1.0, f"Import complete. Processed {parsed.entry_count()} entries.")
            logger.info(
                f"Import finished: {result.created} created, {result.updated} updated, "
                f"{result.skipped} skipped, {len(result.failures)} failures"
            )
            return result
        finally:
            self.lock.release()

    def import_file(
        self, file_path: str | Path, options: ImportOptions | None = None
    ) -> ImportResult:
        """Import a JSON document from disk.

        Raises:
            FileNotFoundError: If the file doesn't exist
            FormatError: If the file is not valid JSON
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Import file not found: {file_path}")
        return self.import_data(path.read_text(encoding="utf-8"), options)

    @staticmethod
    def _raw(document: PortableDocument | dict[str, Any] | str) -> Any:
        if isinstance(document, PortableDocument):
            return document.to_dict()
        if isinstance(document, str):
            try:
                return json.loads(document)
            except json.JSONDecodeError as e:
                raise FormatError(f"Invalid JSON in import document: {e}") from e
        return document


def _log_progress(fraction: float, message: str) -> None:
    logger.debug(f"Import progress {fraction:.0%}: {message}")


def _check_version(raw: Any) -> None:
    if not isinstance(raw, dict) or raw.get("version") != PORTABLE_FORMAT_VERSION:
        raise FormatError(f"Invalid file version. Expected version {PORTABLE_FORMAT_VERSION}.")


def _safe_progress(callback: ProgressCallback) -> ProgressCallback:
    """Wrap a progress sink so its errors never reach the import."""

    def report(fraction: float, message: str) -> None:
        try:
            callback(fraction, message)
        except Exception as e:
            logger.debug(f"Progress callback failed: {e}")

    return report
