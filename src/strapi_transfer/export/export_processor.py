"""Export-direction tree walker.

Turns store entries into portable locale objects: store ids are dropped,
relations become identifier values of their targets, components and
dynamic zones are inlined, and media become descriptors with absolute URLs.
Drafts are only kept where they differ from the published version.
"""

from __future__ import annotations

import logging
from typing import Any

from ..exceptions import NotFoundError
from ..models.portable import COMPONENT_KEY, DEFAULT_LOCALE, PortableEntry
from ..models.schema import (
    ComponentAttribute,
    ContentTypeKind,
    ContentTypeSchema,
    DynamicZoneAttribute,
    MediaAttribute,
    RelationAttribute,
)
from ..protocols import DocumentStore, PopulateSpec, SchemaRegistry
from ..utils.query import parse_search
from ..utils.uid import is_admin_user
from .export_context import ExportContext
from .identifiers import get_identifier_field, validate_identifier_field
from .media_handler import to_media_descriptor
from .populate import PopulatePlanBuilder

logger = logging.getLogger(__name__)

INTERNAL_FIELDS = ("documentId", "createdBy", "updatedBy")
VOLATILE_FIELDS = ("publishedAt",)


def versions_equal(
    first: dict[str, Any] | None,
    second: dict[str, Any] | None,
    exclude: tuple[str, ...] = VOLATILE_FIELDS,
) -> bool:
    """Deep equality of two locale objects, ignoring volatile fields."""
    if first is None or second is None:
        return first is second
    left = {key: value for key, value in first.items() if key not in exclude}
    right = {key: value for key, value in second.items() if key not in exclude}
    return left == right


class ExportProcessor:
    """Walks entries of one export run against their schemas."""

    def __init__(
        self,
        context: ExportContext,
        store: DocumentStore,
        registry: SchemaRegistry,
        public_url: str = "",
        plan_builder: PopulatePlanBuilder | None = None,
    ) -> None:
        self.context = context
        self.store = store
        self.registry = registry
        self.public_url = public_url
        self.plan_builder = plan_builder or PopulatePlanBuilder(registry)

    # Schema level

    def process_schema(self, uid: str) -> int:
        """Export every matching document of a content type.

        Returns:
            Number of entries appended to the output

        Raises:
            NotFoundError: If the model is unknown
            ConfigurationError: If the identifier field of a collection type is unusable
        """
        schema = self.registry.get_model(uid)
        if schema is None:
            raise NotFoundError(f"Model {uid} not found")
        if is_admin_user(uid):
            logger.debug(f"Skipping {uid}")
            return 0

        validate_identifier_field(schema)

        populate = self.plan_builder.build(uid, self.context.options.populate_depth)
        entries = self.context.entries_for(uid)
        query = self._build_query()
        full_populate = self._with_localizations(populate)

        draft_entries = self.store.documents(uid).find_many(
            status="draft", populate=full_populate, **query
        )
        logger.debug(f"Found {len(draft_entries)} draft entries for {uid}")

        added = 0
        for draft_entry in draft_entries:
            document_id = draft_entry["documentId"]
            published_entry = self.store.documents(uid).find_one(
                document_id, status="published", populate=full_populate
            )
            versions = self.group_by_locale(draft_entry, published_entry, schema)
            if versions.draft or versions.published:
                entries.append(versions)
                self.context.record_processed(uid, document_id)
                added += 1

        logger.info(f"Exported {added} entries of {uid}")
        return added

    def _build_query(self) -> dict[str, Any]:
        options = self.context.options
        # Relation passes export exactly the discovered documents
        expanding = self.context.document_ids is not None
        apply_search = options.apply_search and not expanding
        search = parse_search(options.search) if apply_search else {}

        filters = dict(search.get("filters") or {})
        document_ids = self.context.document_ids if expanding else options.document_ids
        if document_ids:
            filters["documentId"] = {"$in": list(document_ids)}

        query: dict[str, Any] = {"filters": filters or None}
        if apply_search and search.get("sort"):
            query["sort"] = search["sort"]
        return query

    def _with_localizations(self, populate: PopulateSpec) -> PopulateSpec:
        if not self.context.options.export_all_locales:
            return populate
        base = dict(populate) if isinstance(populate, dict) else {}
        return {**base, "localizations": {"populate": populate}}

    # Entry level

    def group_by_locale(
        self,
        draft_entry: dict[str, Any],
        published_entry: dict[str, Any] | None,
        schema: ContentTypeSchema,
    ) -> PortableEntry:
        """Group the versions of one document into a portable entry.

        The main entry goes under ``default`` and its localizations under
        their locale codes. A draft locale is dropped when it equals the
        published one.
        """
        export_all_locales = self.context.options.export_all_locales
        draft: dict[str, dict[str, Any]] = {}
        published: dict[str, dict[str, Any]] = {}

        draft_data = self._locale_object(draft_entry, schema)
        published_data = self._locale_object(published_entry, schema) if published_entry else None
        if published_data is None or not versions_equal(draft_data, published_data):
            draft[DEFAULT_LOCALE] = draft_data

        if export_all_locales:
            published_by_locale = {
                loc.get("locale"): loc for loc in (published_entry or {}).get("localizations") or []
            }
            for draft_localization in draft_entry.get("localizations") or []:
                locale = draft_localization.get("locale")
                if not locale:
                    continue
                localized = self._locale_object(draft_localization, schema)
                published_localization = published_by_locale.get(locale)
                published_localized = (
                    self._locale_object(published_localization, schema)
                    if published_localization
                    else None
                )
                if published_localized is None or not versions_equal(
                    localized, published_localized
                ):
                    draft[locale] = localized

        if published_entry:
            published[DEFAULT_LOCALE] = published_data or {}
            if export_all_locales:
                for localization in published_entry.get("localizations") or []:
                    locale = localization.get("locale")
                    if locale:
                        published[locale] = self._locale_object(localization, schema)

        return PortableEntry(draft=draft or None, published=published or None)

    def _locale_object(self, entry: dict[str, Any], schema: ContentTypeSchema) -> dict[str, Any]:
        processed = self.flatten(entry, schema, process_localizations=True)
        processed.pop("localizations", None)
        return processed

    def flatten(
        self,
        data: dict[str, Any] | None,
        schema: ContentTypeSchema,
        process_localizations: bool = True,
        skip_relations: bool | None = None,
    ) -> dict[str, Any] | None:
        """Flatten one entry (or component value) into a portable object.

        A failure while converting one attribute sets that key to None and
        leaves the rest of the entry intact.
        """
        if not data:
            return None

        processed = dict(data)
        if schema.kind is ContentTypeKind.COMPONENT or get_identifier_field(schema) != "id":
            processed.pop("id", None)
        for key in INTERNAL_FIELDS:
            processed.pop(key, None)

        localizations = processed.pop("localizations", None)
        if process_localizations and localizations:
            processed["localizations"] = [
                {
                    **(self.flatten(localization, schema, process_localizations=False) or {}),
                    "documentId": localization.get("documentId"),
                }
                for localization in localizations
            ]

        for key, attribute in schema.attributes.items():
            value = data.get(key)
            if value is None or key == "localizations":
                continue
            try:
                if isinstance(attribute, RelationAttribute):
                    processed[key] = self._relation(value, attribute, skip_relations)
                elif isinstance(attribute, ComponentAttribute):
                    if attribute.repeatable:
                        processed[key] = [
                            self._component(item, attribute.component) for item in value or []
                        ]
                    else:
                        processed[key] = self._component(value, attribute.component)
                elif isinstance(attribute, DynamicZoneAttribute):
                    processed[key] = self._dynamic_zone(value)
                elif isinstance(attribute, MediaAttribute):
                    processed[key] = self._media(value, attribute)
            except Exception as e:
                logger.error(f"Failed to process attribute {key} of {schema.uid}: {e}")
                processed[key] = None

        return processed

    def _relation(
        self,
        value: Any,
        attribute: RelationAttribute,
        skip_relations: bool | None,
    ) -> Any:
        if isinstance(value, list) and not value:
            return []

        target = self.registry.get_model(attribute.target) if attribute.target else None
        if target is None or is_admin_user(target.uid):
            return None

        id_field = get_identifier_field(target)
        skip = self.context.skip_relations if skip_relations is None else skip_relations

        def convert(item: dict[str, Any]) -> Any:
            if not skip:
                self.context.add_relation(target.uid, item.get("documentId"))
            return item.get(id_field)

        if attribute.is_many:
            if not isinstance(value, list):
                logger.warning(f"Expected array for many relation to {target.uid}")
                return []
            return [convert(item) for item in value]

        if isinstance(value, list):
            logger.warning(f"Expected single item for one relation to {target.uid}")
            return None
        return convert(value)

    def _component(self, item: dict[str, Any] | None, component_uid: str) -> dict[str, Any] | None:
        if not item:
            return None
        schema = self.registry.get_model(component_uid)
        if schema is None:
            return None
        return self.flatten(
            item,
            schema,
            process_localizations=self.context.options.export_all_locales,
            skip_relations=self.context.skip_component_relations,
        )

    def _dynamic_zone(self, items: Any) -> list[dict[str, Any]]:
        if not isinstance(items, list):
            return []

        result = []
        for item in items:
            component_uid = item.get(COMPONENT_KEY)
            schema = self.registry.get_model(component_uid) if component_uid else None
            if schema is None:
                logger.warning(f"Dropping dynamic zone item of unknown component {component_uid}")
                continue
            flattened = self.flatten(
                item,
                schema,
                process_localizations=self.context.options.export_all_locales,
                skip_relations=self.context.skip_component_relations,
            )
            result.append({COMPONENT_KEY: component_uid, **(flattened or {})})
        return result

    def _media(self, value: Any, attribute: MediaAttribute) -> Any:
        if attribute.multiple:
            if not isinstance(value, list):
                return []
            return [to_media_descriptor(item, self.public_url).to_dict() for item in value]
        return to_media_descriptor(value, self.public_url).to_dict()
