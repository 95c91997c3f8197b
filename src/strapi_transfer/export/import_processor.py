"""Import-direction tree walker and per-entry state machine.

Each portable entry is written version by version (published first, then
draft). The first locale of a version decides between create, update, skip
and a duplicate warning; the remaining locales are written as updates of
the same document.

Locale objects are hydrated before they are written: relation values become
documentIds, media descriptors become file ids, and components and dynamic
zones are walked recursively. A failing attribute is recorded and nulled
out without losing the rest of the entry.
"""

from __future__ import annotations

import logging
from typing import Any

from ..exceptions import (
    ConfigurationError,
    ConflictError,
    ImportExportError,
    MediaError,
    NotFoundError,
    ValidationError,
)
from ..exceptions import ConnectionError as StrapiConnectionError
from ..exceptions import TimeoutError as StrapiTimeoutError
from ..models.import_options import ExistingAction, ImportOptions, ImportResult
from ..models.portable import (
    COMPONENT_KEY,
    DEFAULT_LOCALE,
    LocaleMap,
    PortableEntry,
    first_locale,
    store_locale,
)
from ..models.schema import (
    ComponentAttribute,
    ContentTypeSchema,
    DynamicZoneAttribute,
    MediaAttribute,
    RelationAttribute,
)
from ..protocols import (
    DocumentStatus,
    DocumentStore,
    FileResolver,
    ProgressCallback,
    SchemaRegistry,
)
from .identifiers import validate_identifier_field
from .import_context import ImportContext, PendingRelation
from .media_handler import coerce_media_descriptor
from .relation_resolver import DeferredRelation, EntityResolver
from .strategies import RelationStrategyTable

logger = logging.getLogger(__name__)

# Errors isolated at attribute level; anything else fails the whole entry
RECOVERABLE_ERRORS = (
    ImportExportError,
    ConflictError,
    ConfigurationError,
    MediaError,
    NotFoundError,
    ValidationError,
)
FATAL_ERRORS = (StrapiConnectionError, StrapiTimeoutError)


class ImportProcessor:
    """Writes the entries of an :class:`ImportContext` into a document store."""

    def __init__(
        self,
        context: ImportContext,
        store: DocumentStore,
        registry: SchemaRegistry,
        files: FileResolver | None = None,
        strategies: RelationStrategyTable | None = None,
    ) -> None:
        self.context = context
        self.store = store
        self.registry = registry
        self.files = files
        self.resolver = EntityResolver(
            context, store, registry, import_entry=self.import_entry, strategies=strategies
        )
        self._schemas: dict[str, tuple[ContentTypeSchema, str]] = {}
        self._draft_writes: dict[tuple[str, str, str | None], dict[str, Any]] = {}

    @property
    def options(self) -> ImportOptions:
        return self.context.options

    # Orchestration

    def process(self, progress: ProgressCallback | None = None) -> ImportResult:
        """Import every entry of the batch.

        Content types are prepared first (unknown models and unusable
        identifier fields fail that content type only), then entries are
        imported in document order. Entries already written as relation
        dependencies are not imported twice. Relations to entries that were
        still being imported when they were met (cycles) are written last.
        """
        report = progress or _no_progress
        import_data = self.context.import_data
        total = sum(len(entries) for entries in import_data.values())

        ready: list[str] = []
        for index, uid in enumerate(import_data):
            report(0.1 * index / max(len(import_data), 1), f"Preparing {uid}")
            if self._prepare_content_type(uid):
                ready.append(uid)

        processed = 0
        for uid, entries in import_data.items():
            if uid not in ready:
                processed += len(entries)
                continue

            _, id_field = self._schemas[uid]
            for entry in entries:
                processed += 1
                id_values = entry.identifier_values(id_field)
                if any(self.context.find_processed_record(uid, v) for v in id_values):
                    logger.debug(f"{uid} {id_values[0]!r} already imported in this batch")
                else:
                    self._import_guarded(uid, entry)
                report(0.1 + 0.9 * processed / max(total, 1), f"Imported {processed}/{total}")

        self._apply_pending_relations()

        return ImportResult(
            failures=list(self.context.failures),
            created=self.context.created,
            updated=self.context.updated,
            skipped=self.context.skipped,
        )

    def _prepare_content_type(self, uid: str) -> bool:
        try:
            self._schema(uid)
        except NotFoundError as e:
            logger.error(str(e))
            self.context.add_failure(str(e), uid)
            return False
        except ConfigurationError as e:
            logger.error(f"Skipping {uid}: {e}")
            self.context.add_failure(str(e), uid, e.details)
            return False
        return True

    def _schema(self, uid: str) -> tuple[ContentTypeSchema, str]:
        if uid not in self._schemas:
            schema = self.registry.get_model(uid)
            if schema is None:
                raise NotFoundError(f"Model {uid} not found")
            self._schemas[uid] = (schema, validate_identifier_field(schema))
        return self._schemas[uid]

    def _import_guarded(self, uid: str, entry: PortableEntry) -> None:
        try:
            self.import_entry(uid, entry)
        except FATAL_ERRORS:
            raise
        except Exception as e:
            logger.error(f"Failed to import {uid} entry: {e}")
            details = getattr(e, "details", None) or None
            self.context.add_failure(str(e) or "Unknown error", entry.to_dict(), details)

    # Entry state machine

    def import_entry(self, uid: str, entry: PortableEntry) -> str | None:
        """Import all versions of one entry and return its documentId."""
        schema, id_field = self._schema(uid)
        id_values = entry.identifier_values(id_field)

        # Versions and locales may carry different identifier values
        with self.context.importing(uid, *id_values):
            document_id: str | None = None
            if entry.published:
                document_id = self._import_version(
                    uid, schema, id_field, entry.published, "published", None
                )
            if entry.draft:
                document_id = self._import_version(
                    uid, schema, id_field, entry.draft, "draft", document_id
                )
        if document_id:
            self.context.record_aliases(uid, id_values, document_id)
        return document_id

    def _import_version(
        self,
        uid: str,
        schema: ContentTypeSchema,
        id_field: str,
        locale_map: LocaleMap,
        status: DocumentStatus,
        document_id: str | None,
    ) -> str | None:
        service = self.store.documents(uid)
        action = self.options.existing_action
        first = first_locale(locale_map)
        first_data = locale_map[first]
        id_value = first_data.get(id_field)
        wrote_first = False

        if document_id is None:
            filters = None if schema.is_single_type else {id_field: id_value}
            existing = service.find_first(filters=filters, status=status)

            if existing is None:
                document_id = self._write(
                    uid, schema, first_data, status, store_locale(first), id_value=id_value
                )
                if self.context.find_processed_record(uid, id_value) == document_id:
                    self.context.record_updated(uid, id_value, document_id)
                else:
                    self.context.record_created(uid, id_value, document_id)
                    logger.debug(f"Created {uid} {id_value!r} ({status})")
                wrote_first = True
            else:
                existing_id = existing["documentId"]
                if action is ExistingAction.WARN:
                    logger.warning(f"{uid} with {id_field}={id_value} already exists")
                    self.context.add_failure(
                        f"Entry with {id_field}={id_value} already exists", locale_map
                    )
                    return None

                if action is ExistingAction.SKIP and not self.context.was_created_in_this_import(
                    existing_id
                ):
                    # Other locales may still be added, see _should_write_locale
                    logger.info(f"Skipping existing {uid} {id_value!r}")
                    self.context.record_skipped(uid, id_value, existing_id)
                    document_id = existing_id
                else:
                    if status == "draft" and not self.options.allow_draft_on_published:
                        if service.find_one(existing_id, status="published"):
                            logger.warning(
                                f"Not applying draft onto published {uid} {id_value!r}"
                            )
                            self.context.add_failure(
                                "Cannot apply draft to existing published entry", locale_map
                            )
                            return None

                    document_id = self._write(
                        uid, schema, first_data, status, store_locale(first), existing_id
                    )
                    self.context.record_updated(uid, id_value, existing_id)
                    logger.debug(f"Updated {uid} {id_value!r} ({status})")
                    wrote_first = True

        for locale, locale_data in locale_map.items():
            if wrote_first and locale == first:
                continue
            if not self._should_write_locale(uid, document_id, locale):
                continue
            self._write(uid, schema, locale_data, status, store_locale(locale), document_id)
            logger.debug(f"Wrote locale {locale} of {uid} {document_id} ({status})")

        return document_id

    def _write(
        self,
        uid: str,
        schema: ContentTypeSchema,
        locale_data: dict[str, Any],
        status: DocumentStatus,
        locale: str | None,
        document_id: str | None = None,
        id_value: Any = None,
    ) -> str:
        """Create or update one locale of a document and queue its deferred relations.

        Without a ``document_id`` the document is created, unless resolving
        its relations already wrote an entity with the same identifier value.
        """
        deferred: dict[str, list[Any]] = {}
        data = self.sanitize(self.hydrate(locale_data, schema, locale, deferred), schema)
        if document_id is None:
            document_id = self.context.find_processed_record(uid, id_value)
            if document_id:
                logger.debug(f"{uid} {id_value!r} was written while resolving its relations")

        service = self.store.documents(uid)
        if document_id is None:
            document_id = str(service.create(data=data, status=status, locale=locale)["documentId"])
        else:
            service.update(document_id, data=data, status=status, locale=locale)
        if status == "draft":
            self._draft_writes[(uid, document_id, locale)] = data

        for key, values in deferred.items():
            attribute = schema.attributes[key]
            if key not in data or not isinstance(attribute, RelationAttribute):
                continue
            written = data[key]
            if not attribute.is_many and written:
                continue
            self.context.defer(
                PendingRelation(
                    uid=uid,
                    document_id=document_id,
                    status=status,
                    locale=locale,
                    field=key,
                    attribute=attribute,
                    data=data,
                    resolved=list(written) if isinstance(written, list) else [],
                    values=values,
                )
            )
        return document_id

    def _apply_pending_relations(self) -> None:
        """Write the relations whose targets were still being imported when first met.

        Published patches go first. Updating a published version republishes
        the draft row, so the draft written for the same locale is restored
        after each of them.
        """
        pending = self.context.take_pending_relations()
        while pending:
            pending.sort(key=lambda relation: relation.status != "published")
            for relation in pending:
                self._apply_pending_relation(relation)
            pending = self.context.take_pending_relations()

    def _apply_pending_relation(self, relation: PendingRelation) -> None:
        document_ids = list(relation.resolved)
        for value in relation.values:
            document_id = self._resolve_one(
                relation.field, value, relation.attribute, relation.locale
            )
            if document_id and document_id not in document_ids:
                document_ids.append(document_id)
        if not document_ids:
            return

        value = document_ids if relation.attribute.is_many else document_ids[0]
        relation.data[relation.field] = value
        service = self.store.documents(relation.uid)
        try:
            service.update(
                relation.document_id,
                data=relation.data,
                status=relation.status,
                locale=relation.locale,
            )
            draft = self._draft_writes.get((relation.uid, relation.document_id, relation.locale))
            if relation.status == "published" and draft is not None:
                service.update(
                    relation.document_id, data=draft, status="draft", locale=relation.locale
                )
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Failed to process relation in {relation.field}: {e}")
            self.context.add_failure(
                f"Failed to process relation in {relation.field}: {e}",
                {"value": relation.values, "attribute": relation.field},
            )
            return
        logger.debug(
            f"Linked {relation.field} of {relation.uid} {relation.document_id} "
            f"({relation.status})"
        )

    def _should_write_locale(self, uid: str, document_id: str, locale: str) -> bool:
        if self.options.existing_action is not ExistingAction.SKIP:
            return True
        if self.context.was_created_in_this_import(document_id):
            return True
        if not self.options.allow_locale_updates:
            logger.debug(f"Skipping locale {locale} of existing {uid} {document_id}")
            return False
        existing = self._existing_locales(uid, document_id)
        # The default key stands for whichever locale the store defaults to,
        # and that is the version fetched without a locale
        if locale in existing or (locale == DEFAULT_LOCALE and existing):
            logger.debug(f"Locale {locale} of {uid} {document_id} already exists")
            return False
        logger.info(f"Adding locale {locale} to existing {uid} {document_id}")
        return True

    def _existing_locales(self, uid: str, document_id: str) -> set[str]:
        """Locale codes of a document across both statuses; ``default`` when not localized."""
        service = self.store.documents(uid)
        locales: set[str] = set()
        for status in ("published", "draft"):
            version = service.find_one(
                document_id, status=status, populate={"localizations": True}
            )
            if not version:
                continue
            locales.add(version.get("locale") or DEFAULT_LOCALE)
            locales.update(
                loc["locale"] for loc in version.get("localizations") or [] if loc.get("locale")
            )
        return locales

    # Hydration

    def prepare(
        self, data: dict[str, Any], schema: ContentTypeSchema, locale: str | None = None
    ) -> dict[str, Any]:
        """Hydrate then sanitize one locale object for the store."""
        return self.sanitize(self.hydrate(data, schema, locale), schema)

    def hydrate(
        self,
        data: dict[str, Any],
        schema: ContentTypeSchema,
        locale: str | None = None,
        deferred: dict[str, list[Any]] | None = None,
    ) -> dict[str, Any]:
        """Return a copy of a locale object with references resolved.

        Relation values whose target entry is still being imported are
        collected per attribute in ``deferred`` when it is given, and recorded
        as failures otherwise.
        """
        processed = {key: value for key, value in data.items() if key != "localizations"}

        for key, attribute in schema.attributes.items():
            value = data.get(key)
            if value is None or key == "localizations":
                continue

            if isinstance(attribute, RelationAttribute):
                processed[key] = self._hydrate_relation(key, value, attribute, locale, deferred)
            elif isinstance(attribute, ComponentAttribute):
                try:
                    processed[key] = self._hydrate_component(value, attribute, locale)
                except RECOVERABLE_ERRORS as e:
                    self.context.add_failure(
                        f"Failed to process component in {key}: {e}",
                        {"value": value, "attribute": key},
                    )
                    processed[key] = None
            elif isinstance(attribute, DynamicZoneAttribute):
                processed[key] = self._hydrate_dynamic_zone(key, value, attribute, locale)
            elif isinstance(attribute, MediaAttribute):
                processed[key] = self._hydrate_media(key, value, attribute)

        return processed

    def _hydrate_relation(
        self,
        key: str,
        value: Any,
        attribute: RelationAttribute,
        locale: str | None,
        deferred: dict[str, list[Any]] | None = None,
    ) -> Any:
        if not isinstance(value, list):
            if attribute.is_many:
                value = [value]
            else:
                return self._resolve_one(key, value, attribute, locale, deferred)

        document_ids: list[str] = []
        seen: list[Any] = []
        for item in value:
            if item in seen:
                continue
            seen.append(item)
            document_id = self._resolve_one(key, item, attribute, locale, deferred)
            if document_id and document_id not in document_ids:
                document_ids.append(document_id)

        if attribute.is_many:
            return document_ids
        return document_ids[0] if document_ids else None

    def _resolve_one(
        self,
        key: str,
        value: Any,
        attribute: RelationAttribute,
        locale: str | None,
        deferred: dict[str, list[Any]] | None = None,
    ) -> str | None:
        try:
            return self.resolver.resolve(value, attribute, locale)
        except DeferredRelation as e:
            if deferred is not None:
                deferred.setdefault(key, []).append(value)
                return None
            # Components are written whole, there is no field to link later
            logger.warning(f"Failed to process relation in {key}: {e}")
            self.context.add_failure(
                f"Failed to process relation in {key}: {e}",
                {"value": value, "attribute": key},
            )
            return None
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Failed to process relation in {key}: {e}")
            self.context.add_failure(
                f"Failed to process relation in {key}: {e}",
                {"value": value, "attribute": key},
                getattr(e, "details", None) or None,
            )
            return None

    def _hydrate_component(
        self, value: Any, attribute: ComponentAttribute, locale: str | None
    ) -> Any:
        schema = self.registry.get_model(attribute.component)
        if schema is None:
            raise ConfigurationError(f"Component {attribute.component} not found")
        if attribute.repeatable:
            items = value if isinstance(value, list) else [value]
            return [self.prepare(item, schema, locale) for item in items if item]
        return self.prepare(value, schema, locale)

    def _hydrate_dynamic_zone(
        self,
        key: str,
        items: Any,
        attribute: DynamicZoneAttribute,
        locale: str | None,
    ) -> list[dict[str, Any]]:
        if not isinstance(items, list):
            self.context.add_failure(
                f"Failed to process dynamic zone in {key}: Dynamic zone must be an array",
                {"value": items, "attribute": key},
            )
            return []

        hydrated = []
        for item in items:
            component_uid = item.get(COMPONENT_KEY) if isinstance(item, dict) else None
            schema = self.registry.get_model(component_uid) if component_uid else None
            if schema is None or component_uid not in attribute.components:
                self.context.add_failure(
                    f"Unknown component '{component_uid}' in dynamic zone {key}",
                    {"value": item, "attribute": key},
                )
                continue
            hydrated.append({COMPONENT_KEY: component_uid, **self.prepare(item, schema, locale)})
        return hydrated

    def _hydrate_media(self, key: str, value: Any, attribute: MediaAttribute) -> Any:
        allowed_types = self.options.allowed_file_types or attribute.allowed_types
        if not attribute.multiple:
            return self._resolve_file(key, value, allowed_types)

        items = value if isinstance(value, list) else [value]
        file_ids = []
        for item in items:
            file_id = self._resolve_file(key, item, allowed_types)
            if file_id is not None:
                file_ids.append(file_id)
        return file_ids

    def _resolve_file(self, key: str, value: Any, allowed_types: list[str] | None) -> Any:
        if self.files is None:
            self.context.add_failure(
                f"Failed to process media in {key}: no file resolver configured",
                {"value": value, "attribute": key},
            )
            return None
        try:
            file = self.files.find_or_import_file(coerce_media_descriptor(value), allowed_types)
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Failed to process media in {key}: {e}")
            self.context.add_failure(
                f"Failed to process media in {key}: {e}", {"value": value, "attribute": key}
            )
            return None

        if file is None:
            logger.warning(f"Media in {key} not found or not allowed: {value}")
            self.context.add_failure(
                f"Failed to process media in {key}: file not found or type not allowed",
                {"value": value, "attribute": key},
            )
            return None
        return file["id"]

    @staticmethod
    def sanitize(data: dict[str, Any], schema: ContentTypeSchema) -> dict[str, Any]:
        """Drop keys the schema doesn't know or doesn't let clients write."""
        sanitized = {}
        for key, value in data.items():
            attribute = schema.get_attribute(key)
            if attribute is None or attribute.configurable is False:
                logger.debug(f"Removing field {key} from {schema.uid} data")
                continue
            sanitized[key] = value
        return sanitized


def _no_progress(fraction: float, message: str) -> None:
    pass
