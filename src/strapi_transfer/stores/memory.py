"""In-memory document store and media library.

A faithful-enough model of the Strapi v5 document service for offline
transfers and tests:

* every document has one row per ``(status, locale)``; creating or updating
  with ``status="published"`` writes the draft row and publishes a copy;
* ``locale=None`` means the default locale (``"*"`` matches every locale);
* relations are stored as documentIds, media as file ids, and both are
  only returned when requested through ``populate``;
* published rows are checked for required and unique fields.
"""

from __future__ import annotations

import copy
import itertools
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..exceptions import NotFoundError, ValidationError
from ..models.portable import COMPONENT_KEY, MediaDescriptor
from ..models.schema import (
    ComponentAttribute,
    ContentTypeSchema,
    DynamicZoneAttribute,
    MediaAttribute,
    RelationAttribute,
    is_special_attribute,
)
from ..operations.media import (
    filename_from_url,
    hash_from_filename,
    is_absolute_url,
    is_extension_allowed,
)
from ..protocols import DocumentStatus, PopulateSpec, SchemaRegistry
from .filters import matches

logger = logging.getLogger(__name__)

ALL_LOCALES = "*"
SYSTEM_FIELDS = ("id", "documentId", "locale", "createdAt", "updatedAt", "publishedAt")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class _Row:
    id: int
    document_id: str
    status: str
    locale: str | None
    data: dict[str, Any]
    created_at: str
    updated_at: str
    published_at: str | None = None

    def as_entry(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "documentId": self.document_id,
            **copy.deepcopy(self.data),
            "locale": self.locale,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "publishedAt": self.published_at,
        }


class InMemoryMediaLibrary:
    """Media library with the lookup order of the upload plugin import path.

    ``find_or_import_file`` looks a descriptor up by hash prefix, then by
    name, and finally "imports" an absolute URL as a new file record.
    """

    def __init__(self) -> None:
        self.files: dict[int, dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self.imported_urls: list[str] = []

    def add(self, name: str, url: str, hash: str | None = None, **extra: Any) -> dict[str, Any]:
        file_id = next(self._ids)
        timestamp = _now()
        record = {
            "id": file_id,
            "name": name,
            "hash": hash or hash_from_filename(filename_from_url(url) or name),
            "url": url,
            "caption": None,
            "alternativeText": None,
            "createdAt": timestamp,
            "updatedAt": timestamp,
            "publishedAt": timestamp,
            **extra,
        }
        self.files[file_id] = record
        return dict(record)

    def get(self, file_id: Any) -> dict[str, Any] | None:
        record = self.files.get(file_id) if isinstance(file_id, int) else None
        return dict(record) if record else None

    def find_or_import_file(
        self,
        descriptor: MediaDescriptor,
        allowed_types: list[str] | None = None,
    ) -> dict[str, Any] | None:
        found = self._find(descriptor)
        if found is None:
            if not descriptor.url or not is_absolute_url(descriptor.url):
                return None
            filename = filename_from_url(descriptor.url)
            if not is_extension_allowed(MediaDescriptor(name=filename).extension, allowed_types):
                logger.warning(f"Not importing {descriptor.url}: type not in {allowed_types}")
                return None
            self.imported_urls.append(descriptor.url)
            return self.add(
                descriptor.name or filename,
                f"/uploads/{filename}",
                hash=descriptor.hash or hash_from_filename(filename),
                caption=descriptor.caption,
                alternativeText=descriptor.alternative_text,
            )

        extension = MediaDescriptor(name=found.get("name"), url=found.get("url")).extension
        if not is_extension_allowed(extension, allowed_types):
            logger.warning(f"Media {found.get('name')} refused: type not in {allowed_types}")
            return None
        return found

    def _find(self, descriptor: MediaDescriptor) -> dict[str, Any] | None:
        if descriptor.hash:
            for record in self.files.values():
                if str(record.get("hash") or "").startswith(descriptor.hash):
                    return dict(record)
        if descriptor.name:
            for record in self.files.values():
                if record.get("name") == descriptor.name:
                    return dict(record)
        return None


@dataclass
class _Operation:
    action: str
    uid: str
    document_id: str
    status: str
    locale: str | None
    data: dict[str, Any] = field(default_factory=dict)


class InMemoryDocumentStore:
    """Document store kept in process memory.

    Example:
        >>> store = InMemoryDocumentStore(registry)
        >>> created = store.documents("api::tag.tag").create(data={"name": "python"})
        >>> store.documents("api::tag.tag").find_first(filters={"name": "python"})["documentId"]
        == created["documentId"]
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        *,
        default_locale: str = "en",
        media: InMemoryMediaLibrary | None = None,
    ) -> None:
        self.registry = registry
        self.default_locale = default_locale
        self.media = media or InMemoryMediaLibrary()
        self.operations: list[_Operation] = []
        self._rows: dict[str, list[_Row]] = {}
        self._row_ids = itertools.count(1)

    def documents(self, uid: str) -> InMemoryDocumentService:
        schema = self.registry.get_model(uid)
        if schema is None:
            raise NotFoundError(f"Model {uid} not found")
        return InMemoryDocumentService(self, schema)

    def count(self, uid: str, status: DocumentStatus | None = None) -> int:
        """Number of distinct documents of a content type (optionally with a status)."""
        rows = self._rows.get(uid, [])
        return len({row.document_id for row in rows if status is None or row.status == status})

    def created_count(self, uid: str | None = None) -> int:
        return sum(
            1
            for op in self.operations
            if op.action == "create" and (uid is None or op.uid == uid)
        )

    # Row access used by the services

    def _rows_for(self, uid: str) -> list[_Row]:
        return self._rows.setdefault(uid, [])

    def _next_row_id(self) -> int:
        return next(self._row_ids)


class InMemoryDocumentService:
    """Document API of one content type in an :class:`InMemoryDocumentStore`."""

    def __init__(self, store: InMemoryDocumentStore, schema: ContentTypeSchema) -> None:
        self._store = store
        self.schema = schema

    @property
    def uid(self) -> str:
        return self.schema.uid

    # Queries

    def find_many(
        self,
        *,
        filters: dict[str, Any] | None = None,
        status: DocumentStatus = "published",
        locale: str | None = None,
        populate: PopulateSpec | None = None,
        sort: str | list[str] | None = None,
    ) -> list[dict[str, Any]]:
        results = []
        for row in self._store._rows_for(self.uid):
            if row.status != status or not self._locale_matches(row, locale):
                continue
            if filters and not matches(self._render(row, True), filters):
                continue
            results.append(row)

        entries = [self._render(row, populate) for row in results]
        return _sorted(entries, sort)

    def find_first(
        self,
        *,
        filters: dict[str, Any] | None = None,
        status: DocumentStatus = "published",
        locale: str | None = None,
        populate: PopulateSpec | None = None,
    ) -> dict[str, Any] | None:
        found = self.find_many(filters=filters, status=status, locale=locale, populate=populate)
        return found[0] if found else None

    def find_one(
        self,
        document_id: str,
        *,
        status: DocumentStatus = "published",
        locale: str | None = None,
        populate: PopulateSpec | None = None,
    ) -> dict[str, Any] | None:
        row = self._find_row(document_id, status, locale)
        return self._render(row, populate) if row else None

    # Mutations

    def create(
        self,
        *,
        data: dict[str, Any],
        status: DocumentStatus = "published",
        locale: str | None = None,
    ) -> dict[str, Any]:
        document_id = uuid.uuid4().hex[:24]
        row_locale = self._row_locale(locale)
        stored = self._prepare_data(data)
        timestamp = _now()

        draft = _Row(
            id=self._store._next_row_id(),
            document_id=document_id,
            status="draft",
            locale=row_locale,
            data=stored,
            created_at=timestamp,
            updated_at=timestamp,
        )
        rows = [draft]
        if status == "published":
            rows.append(self._published_copy(draft, timestamp))
        self._check_constraints(rows)

        self._store._rows_for(self.uid).extend(rows)
        self._store.operations.append(
            _Operation("create", self.uid, document_id, status, row_locale, dict(data))
        )
        logger.debug(f"Created {self.uid} {document_id} ({status}, {row_locale})")
        return self._render(rows[-1], None)

    def update(
        self,
        document_id: str,
        *,
        data: dict[str, Any],
        status: DocumentStatus = "published",
        locale: str | None = None,
    ) -> dict[str, Any]:
        rows = self._store._rows_for(self.uid)
        if not any(row.document_id == document_id for row in rows):
            raise NotFoundError(f"Document {document_id} not found in {self.uid}")

        row_locale = self._row_locale(locale)
        timestamp = _now()
        changes = self._prepare_data(data)

        # A missing draft row means a new locale of an existing document
        draft = self._find_row(document_id, "draft", row_locale, exact=True)
        updated_draft = _Row(
            id=draft.id if draft else self._store._next_row_id(),
            document_id=document_id,
            status="draft",
            locale=row_locale,
            data={**(draft.data if draft else {}), **changes},
            created_at=draft.created_at if draft else timestamp,
            updated_at=timestamp,
        )
        replacements = [updated_draft]
        if status == "published":
            replacements.append(self._published_copy(updated_draft, timestamp))
        self._check_constraints(replacements)

        for replacement in replacements:
            existing = self._find_row(document_id, replacement.status, row_locale, exact=True)
            if existing is None:
                rows.append(replacement)
                continue
            replacement.id = existing.id
            replacement.created_at = existing.created_at
            rows[rows.index(existing)] = replacement

        self._store.operations.append(
            _Operation("update", self.uid, document_id, status, row_locale, dict(data))
        )
        logger.debug(f"Updated {self.uid} {document_id} ({status}, {row_locale})")
        return self._render(replacements[-1], None)

    # Internals

    def _row_locale(self, locale: str | None) -> str | None:
        if not self.schema.is_localized:
            return None
        return locale or self._store.default_locale

    def _locale_matches(self, row: _Row, locale: str | None) -> bool:
        if locale == ALL_LOCALES or not self.schema.is_localized:
            return True
        return row.locale == (locale or self._store.default_locale)

    def _find_row(
        self,
        document_id: str,
        status: str,
        locale: str | None,
        exact: bool = False,
    ) -> _Row | None:
        for row in self._store._rows_for(self.uid):
            if row.document_id != document_id or row.status != status:
                continue
            if exact and row.locale != locale:
                continue
            if not exact and not self._locale_matches(row, locale):
                continue
            return row
        return None

    def _published_copy(self, draft: _Row, timestamp: str) -> _Row:
        return _Row(
            id=self._store._next_row_id(),
            document_id=draft.document_id,
            status="published",
            locale=draft.locale,
            data=copy.deepcopy(draft.data),
            created_at=draft.created_at,
            updated_at=draft.updated_at,
            published_at=timestamp,
        )

    def _prepare_data(self, data: dict[str, Any]) -> dict[str, Any]:
        stored: dict[str, Any] = {}
        for key, value in data.items():
            if key in SYSTEM_FIELDS:
                continue
            attribute = self.schema.get_attribute(key)
            if attribute is None:
                raise ValidationError(f"Invalid key {key} for {self.uid}")
            stored[key] = _prepare_value(self._store, attribute, value)
        return stored

    def _check_constraints(self, rows: list[_Row]) -> None:
        for row in rows:
            if row.status != "published":
                continue
            for name, attribute in self.schema.attributes.items():
                value = row.data.get(name)
                if attribute.required and value in (None, "", []):
                    raise ValidationError(f"{name} must be defined", details={"path": [name]})
                if attribute.unique and value is not None:
                    for other in self._store._rows_for(self.uid):
                        if (
                            other.status == "published"
                            and other.document_id != row.document_id
                            and other.locale == row.locale
                            and other.data.get(name) == value
                        ):
                            raise ValidationError(
                                f"This attribute must be unique: {name}",
                                details={"path": [name], "value": value},
                            )

    def _render(self, row: _Row, populate: PopulateSpec | None) -> dict[str, Any]:
        entry = row.as_entry()
        rendered = _populate(self._store, self.schema, entry, populate, row.status, row.locale)
        if isinstance(populate, dict) and "localizations" in populate:
            sub = populate["localizations"]
            sub_populate = sub.get("populate", True) if isinstance(sub, dict) else sub
            rendered["localizations"] = [
                _populate(
                    self._store,
                    self.schema,
                    sibling.as_entry(),
                    sub_populate,
                    sibling.status,
                    sibling.locale,
                )
                for sibling in self._store._rows_for(self.uid)
                if sibling.document_id == row.document_id
                and sibling.status == row.status
                and sibling.locale != row.locale
            ]
        return rendered


def _prepare_value(store: InMemoryDocumentStore, attribute: Any, value: Any) -> Any:
    if value is None:
        return None
    if isinstance(attribute, RelationAttribute):
        return _prepare_relation(store, attribute, value)
    if isinstance(attribute, MediaAttribute):
        ids = value if isinstance(value, list) else [value]
        ids = [item["id"] if isinstance(item, dict) else item for item in ids]
        for file_id in ids:
            if store.media.get(file_id) is None:
                raise ValidationError(f"Media file {file_id} not found")
        return ids if attribute.multiple else (ids[0] if ids else None)
    if isinstance(attribute, ComponentAttribute):
        schema = store.registry.get_model(attribute.component)
        items = value if isinstance(value, list) else [value]
        prepared = [_prepare_component(store, schema, item) for item in items]
        return prepared if attribute.repeatable else prepared[0]
    if isinstance(attribute, DynamicZoneAttribute):
        items = []
        for item in value:
            component_uid = item.get(COMPONENT_KEY)
            if component_uid not in attribute.components:
                raise ValidationError(f"Invalid component {component_uid} in dynamic zone")
            schema = store.registry.get_model(component_uid)
            items.append(
                {COMPONENT_KEY: component_uid, **_prepare_component(store, schema, item)}
            )
        return items
    return copy.deepcopy(value)


def _prepare_relation(
    store: InMemoryDocumentStore, attribute: RelationAttribute, value: Any
) -> Any:
    if isinstance(value, dict):
        value = value.get("connect", value.get("set", []))
    ids = value if isinstance(value, list) else [value]
    ids = [item.get("documentId") if isinstance(item, dict) else item for item in ids]
    ids = [document_id for document_id in ids if document_id]
    target_rows = store._rows_for(attribute.target) if attribute.target else []
    known = {row.document_id for row in target_rows}
    for document_id in ids:
        if document_id not in known:
            raise ValidationError(
                f"Document with id \"{document_id}\", locale \"null\" not found",
                details={"target": attribute.target},
            )
    if attribute.is_many:
        return list(ids)
    return ids[0] if ids else None


def _prepare_component(
    store: InMemoryDocumentStore, schema: ContentTypeSchema | None, item: dict[str, Any]
) -> dict[str, Any]:
    if schema is None:
        raise ValidationError("Unknown component")
    prepared: dict[str, Any] = {}
    for key, value in item.items():
        if key in ("id", COMPONENT_KEY):
            continue
        attribute = schema.get_attribute(key)
        if attribute is None:
            raise ValidationError(f"Invalid key {key} for component {schema.uid}")
        prepared[key] = _prepare_value(store, attribute, value)
    return prepared


def _populate(
    store: InMemoryDocumentStore,
    schema: ContentTypeSchema,
    entry: dict[str, Any],
    populate: PopulateSpec | None,
    status: str,
    locale: str | None,
) -> dict[str, Any]:
    """Replace stored references with populated values, dropping unpopulated ones."""
    result = dict(entry)
    for name, attribute in schema.attributes.items():
        if not is_special_attribute(attribute):
            continue
        spec = _sub_spec(populate, name)
        if spec is None:
            result.pop(name, None)
            continue
        value = entry.get(name)
        if isinstance(attribute, RelationAttribute):
            result[name] = _populate_relation(store, attribute, value, status, locale)
        elif isinstance(attribute, MediaAttribute):
            result[name] = _populate_media(store, attribute, value)
        elif isinstance(attribute, ComponentAttribute):
            result[name] = _populate_component(store, attribute, value, spec, status, locale)
        elif isinstance(attribute, DynamicZoneAttribute):
            result[name] = _populate_dynamic_zone(store, value, spec, status, locale)
    return result


def _sub_spec(populate: PopulateSpec | None, name: str) -> PopulateSpec | None:
    if populate is True or populate == "*":
        return True
    if isinstance(populate, dict) and name in populate:
        spec = populate[name]
        return spec if spec not in (False, None) else None
    return None


def _nested(spec: PopulateSpec) -> PopulateSpec:
    if isinstance(spec, dict) and "populate" in spec:
        return spec["populate"]
    return True


def _populate_relation(
    store: InMemoryDocumentStore,
    attribute: RelationAttribute,
    value: Any,
    status: str,
    locale: str | None,
) -> Any:
    target = store.registry.get_model(attribute.target) if attribute.target else None
    if target is None:
        return [] if attribute.is_many else None

    def resolve(document_id: str) -> dict[str, Any] | None:
        candidates = [
            row for row in store._rows_for(target.uid) if row.document_id == document_id
        ]
        for wanted in (status, "published" if status == "draft" else "draft"):
            for row in candidates:
                if row.status == wanted and (not target.is_localized or row.locale == locale):
                    return _shallow(target, row)
            for row in candidates:
                if row.status == wanted:
                    return _shallow(target, row)
        return None

    if attribute.is_many:
        resolved = [resolve(document_id) for document_id in value or []]
        return [item for item in resolved if item is not None]
    return resolve(value) if value else None


def _shallow(schema: ContentTypeSchema, row: _Row) -> dict[str, Any]:
    entry = row.as_entry()
    for name, attribute in schema.attributes.items():
        if is_special_attribute(attribute):
            entry.pop(name, None)
    return entry


def _populate_media(store: InMemoryDocumentStore, attribute: MediaAttribute, value: Any) -> Any:
    if attribute.multiple:
        return [record for record in (store.media.get(i) for i in value or []) if record]
    return store.media.get(value) if value is not None else None


def _populate_component(
    store: InMemoryDocumentStore,
    attribute: ComponentAttribute,
    value: Any,
    spec: PopulateSpec,
    status: str,
    locale: str | None,
) -> Any:
    schema = store.registry.get_model(attribute.component)
    if schema is None or value is None:
        return [] if attribute.repeatable else None
    nested = _nested(spec)
    if attribute.repeatable:
        return [_populate(store, schema, item, nested, status, locale) for item in value]
    return _populate(store, schema, value, nested, status, locale)


def _populate_dynamic_zone(
    store: InMemoryDocumentStore,
    value: Any,
    spec: PopulateSpec,
    status: str,
    locale: str | None,
) -> list[dict[str, Any]]:
    fragments = spec.get("on", {}) if isinstance(spec, dict) else {}
    items = []
    for item in value or []:
        component_uid = item.get(COMPONENT_KEY)
        schema = store.registry.get_model(component_uid)
        if schema is None:
            continue
        nested = _nested(fragments[component_uid]) if component_uid in fragments else True
        items.append(_populate(store, schema, item, nested, status, locale))
    return items


def _sorted(entries: list[dict[str, Any]], sort: str | list[str] | None) -> list[dict[str, Any]]:
    if not sort:
        return entries
    keys = [sort] if isinstance(sort, str) else list(sort)
    for key in reversed(keys):
        field_name, _, direction = key.partition(":")
        entries = sorted(
            entries,
            key=lambda entry: (entry.get(field_name) is None, entry.get(field_name) or ""),
            reverse=direction.lower() == "desc",
        )
    return entries
