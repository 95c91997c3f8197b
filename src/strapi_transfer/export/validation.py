"""Pre-import validation of portable documents.

The validator walks a raw document before anything is written and reports
every problem it finds. It never raises for bad input: structural problems,
missing required content and unique-constraint clashes all come back as
:class:`ImportErrorRecord` items located by a dotted path such as
``api::article.article.published.default.title``.
"""

from __future__ import annotations

import logging
from typing import Any

from ..exceptions import ConfigurationError, ConflictError
from ..models.import_options import (
    ExistingAction,
    ImportErrorLocation,
    ImportErrorRecord,
    ImportOptions,
)
from ..models.portable import COMPONENT_KEY, PORTABLE_FORMAT_VERSION, store_locale
from ..models.schema import (
    ComponentAttribute,
    ContentTypeSchema,
    DynamicZoneAttribute,
    MediaAttribute,
    RelationAttribute,
)
from ..protocols import DocumentStore, SchemaRegistry
from .identifiers import get_identifier_field, validate_identifier_field

logger = logging.getLogger(__name__)

VERSION_KEYS = ("draft", "published")
# Fields the store adds to every entry; exported data may carry them
SYSTEM_FIELDS = frozenset(
    {
        "id",
        "documentId",
        "locale",
        "localizations",
        "createdAt",
        "updatedAt",
        "publishedAt",
        "createdBy",
        "updatedBy",
    }
)


def _is_absolute_url(url: str) -> bool:
    return url.startswith(("http://", "https://"))


class DocumentValidator:
    """Checks a raw portable document against schemas and store contents."""

    def __init__(
        self,
        store: DocumentStore,
        registry: SchemaRegistry,
        options: ImportOptions | None = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.options = options or ImportOptions()
        self._errors: list[ImportErrorRecord] = []
        self._data: dict[str, Any] = {}

    def validate(self, raw: Any) -> list[ImportErrorRecord]:
        """Return every validation error of a raw document (empty when valid)."""
        self._errors = []

        if not isinstance(raw, dict) or raw.get("version") != PORTABLE_FORMAT_VERSION:
            self._error(f"Invalid file version. Expected version {PORTABLE_FORMAT_VERSION}.")
            return self._errors

        data = raw.get("data")
        if not isinstance(data, dict):
            self._error("Invalid file structure. Expected data object.")
            return self._errors

        self._data = data
        for uid, entries in data.items():
            self._validate_content_type(uid, entries)

        logger.debug(f"Validation finished with {len(self._errors)} errors")
        return self._errors

    def _error(self, message: str, path: list[str] | None = None, entry: Any = None) -> None:
        self._errors.append(
            ImportErrorRecord(
                error=message,
                data=ImportErrorLocation(entry=entry, path=".".join(path or [])),
            )
        )

    # Content type level

    def _validate_content_type(self, uid: str, entries: Any) -> None:
        schema = self.registry.get_model(uid)
        if schema is None:
            self._error(f"Model {uid} not found", [uid])
            return

        try:
            validate_identifier_field(schema)
        except ConfigurationError as e:
            self._error(str(e), [uid])
            return

        if not isinstance(entries, list):
            self._error("Invalid file structure. Expected a list of entries.", [uid], entries)
            return

        seen_unique: dict[tuple[str, str | None], set[Any]] = {}
        for index, entry in enumerate(entries):
            if not self._validate_entry_shape(uid, index, entry):
                continue
            for status in VERSION_KEYS:
                for locale, data in (entry.get(status) or {}).items():
                    path = [uid, status, locale]
                    self._validate_structure(data, schema, path)
                    self._validate_content(data, schema, path)
                    if status == "published":
                        self._validate_unique(data, schema, locale, path, seen_unique)

    def _validate_entry_shape(self, uid: str, index: int, entry: Any) -> bool:
        path = [uid, str(index)]
        if not isinstance(entry, dict):
            self._error("Entry must be an object with draft and/or published versions", path, entry)
            return False

        valid = True
        unknown = [key for key in entry if key not in VERSION_KEYS]
        if unknown:
            self._error(f"Unknown version keys: {', '.join(unknown)}", path, entry)
            valid = False
        if not any(entry.get(key) for key in VERSION_KEYS):
            self._error("Entry has no draft or published version", path, entry)
            valid = False

        for status in VERSION_KEYS:
            locale_map = entry.get(status)
            if locale_map is None:
                continue
            if not isinstance(locale_map, dict) or not all(
                isinstance(data, dict) for data in locale_map.values()
            ):
                self._error("Version must map locales to objects", [*path, status], locale_map)
                valid = False
        return valid

    # Structure

    def _validate_structure(
        self,
        data: dict[str, Any],
        schema: ContentTypeSchema,
        path: list[str],
        in_dynamic_zone: bool = False,
    ) -> None:
        for key, value in data.items():
            if key in SYSTEM_FIELDS or (in_dynamic_zone and key == COMPONENT_KEY):
                continue
            if not schema.has_attribute(key):
                self._error(
                    f"Unknown field '{key}' found in data. This field does not exist in the model.",
                    [*path, key],
                    value,
                )

        for key, attribute in schema.attributes.items():
            value = data.get(key)
            if value is None:
                continue
            if isinstance(attribute, MediaAttribute):
                self._validate_media(value, [*path, key])
            elif isinstance(attribute, ComponentAttribute):
                component = self.registry.get_model(attribute.component)
                if component is None:
                    continue
                for item_path, item in _component_items(value, [*path, key]):
                    if isinstance(item, dict):
                        self._validate_structure(item, component, item_path)
            elif isinstance(attribute, DynamicZoneAttribute):
                self._validate_dynamic_zone(value, attribute, [*path, key])

    def _validate_media(self, value: Any, path: list[str]) -> None:
        if isinstance(value, list):
            for index, item in enumerate(value):
                self._validate_media(item, [*path, str(index)])
            return

        if isinstance(value, str):
            if not _is_absolute_url(value):
                self._error("Media URL must be absolute", path, value)
            return

        if isinstance(value, dict):
            url, hash_, name = value.get("url"), value.get("hash"), value.get("name")
            if not (url or hash_ or name):
                self._error("Media object must contain either url, hash, or name", path, value)
            elif url and not hash_ and not name and not _is_absolute_url(url):
                self._error(
                    "Media URL must be absolute when used as the only identifier", path, value
                )
            return

        self._error(f"Invalid media value type: {type(value).__name__}", path, value)

    def _validate_dynamic_zone(
        self, value: Any, attribute: DynamicZoneAttribute, path: list[str]
    ) -> None:
        if not isinstance(value, list):
            self._error("Dynamic zone must be an array", path, value)
            return

        for index, item in enumerate(value):
            item_path = [*path, str(index)]
            if not isinstance(item, dict):
                self._error("Dynamic zone item must be an object", item_path, item)
                continue
            component_uid = item.get(COMPONENT_KEY)
            if not component_uid:
                self._error("Dynamic zone item missing __component field", item_path, item)
                continue
            if component_uid not in attribute.components:
                self._error(
                    f"Invalid component type '{component_uid}'. "
                    f"Allowed types are: {', '.join(attribute.components)}",
                    [*item_path, COMPONENT_KEY],
                    component_uid,
                )
                continue
            component = self.registry.get_model(component_uid)
            if component is None:
                self._error(
                    f"Unknown component '{component_uid}' in dynamic zone", item_path, item
                )
                continue
            self._validate_structure(item, component, item_path, in_dynamic_zone=True)

    # Content

    def _validate_content(
        self,
        data: dict[str, Any],
        schema: ContentTypeSchema,
        path: list[str],
        component_uid: str | None = None,
    ) -> None:
        for key, attribute in schema.attributes.items():
            value = data.get(key)
            if attribute.required and value is None:
                suffix = f" in component '{component_uid}'" if component_uid else ""
                self._error(f"Required field '{key}' is missing{suffix}", [*path, key], data)
                continue
            if value is None:
                continue

            if isinstance(attribute, RelationAttribute) and attribute.required:
                self._validate_required_relation(value, attribute, [*path, key])
            elif isinstance(attribute, ComponentAttribute):
                component = self.registry.get_model(attribute.component)
                if component is None:
                    continue
                for item_path, item in _component_items(value, [*path, key]):
                    if isinstance(item, dict):
                        self._validate_content(item, component, item_path, component.uid)
            elif isinstance(attribute, DynamicZoneAttribute) and isinstance(value, list):
                for index, item in enumerate(value):
                    if not isinstance(item, dict) or not item.get(COMPONENT_KEY):
                        continue
                    component = self.registry.get_model(item[COMPONENT_KEY])
                    if component is not None:
                        self._validate_content(
                            item, component, [*path, key, str(index)], component.uid
                        )

    def _validate_required_relation(
        self, value: Any, attribute: RelationAttribute, path: list[str]
    ) -> None:
        target = self.registry.get_model(attribute.target) if attribute.target else None
        if target is None:
            self._error(f"Target model {attribute.target} not found", path, value)
            return
        id_field = get_identifier_field(target)

        for item in value if isinstance(value, list) else [value]:
            try:
                found = self._relation_exists(target, id_field, item)
            except ConflictError as e:
                self._error(str(e), path, value)
                continue
            if not found:
                self._error(
                    f"Related entity with {id_field}='{item}' not found in {target.uid}",
                    path,
                    value,
                )

    def _relation_exists(self, target: ContentTypeSchema, id_field: str, value: Any) -> bool:
        service = self.store.documents(target.uid)
        published = service.find_first(filters={id_field: value}, status="published")
        draft = service.find_first(filters={id_field: value}, status="draft")
        if published and draft and published["documentId"] != draft["documentId"]:
            raise ConflictError(
                f"Found conflicting published and draft versions for relation "
                f"{target.uid} with {id_field}='{value}'"
            )
        if published or draft:
            return True

        for entry in self._data.get(target.uid) or []:
            if not isinstance(entry, dict):
                continue
            for status in VERSION_KEYS:
                locale_map = entry.get(status) or {}
                if any(
                    isinstance(data, dict) and data.get(id_field) == value
                    for data in locale_map.values()
                ):
                    return True
        return False

    # Constraints

    def _validate_unique(
        self,
        data: dict[str, Any],
        schema: ContentTypeSchema,
        locale: str,
        path: list[str],
        seen: dict[tuple[str, str | None], set[Any]],
    ) -> None:
        id_field = get_identifier_field(schema)
        action = self.options.existing_action
        service = self.store.documents(schema.uid)
        target_locale = store_locale(locale) if schema.is_localized else None

        for key, attribute in schema.attributes.items():
            value = data.get(key)
            if not attribute.unique or value is None:
                continue

            # Unique values are scoped per locale
            seen_values = seen.setdefault((key, target_locale), set())
            if _hashable(value) in seen_values:
                self._error(
                    f"Duplicate value '{value}' for unique field '{key}'", [*path, key], data
                )
                continue
            seen_values.add(_hashable(value))

            existing = service.find_first(
                filters={key: value}, status="draft", locale=target_locale
            )
            if existing is None:
                continue
            if existing.get(id_field) != data.get(id_field):
                self._error(
                    f"Value '{value}' for unique field '{key}' already exists in database "
                    f"on a different record",
                    [*path, key],
                    data,
                )
            elif action is ExistingAction.WARN:
                self._error(
                    f"Value '{value}' for unique field '{key}' already exists in database",
                    [*path, key],
                    data,
                )
            else:
                logger.debug(f"{schema.uid} {key}={value!r} exists, will {action.value} it")


def _component_items(value: Any, path: list[str]) -> list[tuple[list[str], Any]]:
    if isinstance(value, list):
        return [([*path, str(index)], item) for index, item in enumerate(value)]
    return [(path, value)]


def _hashable(value: Any) -> Any:
    return value if isinstance(value, (str, int, float, bool)) else repr(value)
