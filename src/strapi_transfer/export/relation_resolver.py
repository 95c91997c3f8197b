"""Resolution of relation values to documentIds.

A relation value in a portable document is the identifier value of its
target. :class:`EntityResolver` turns it back into a documentId of the
target store, trying in order:

1. documents already written in this batch;
2. an exact lookup on the target's identifier field, draft and published;
3. the same batch: a matching entry is imported first, recursively (an
   entry already being imported raises :class:`DeferredRelation` so the
   caller can link it afterwards);
4. fuzzy search on the target's search field (opt-in);
5. creation of a minimal target entity (opt-in);

and finally gives up with :class:`RelationNotFoundError`, or None when
missing relations are ignored.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from ..exceptions import ConflictError, RelationError, RelationNotFoundError, StrapiError
from ..models.import_options import ImportOptions
from ..models.portable import PortableEntry
from ..models.schema import ContentTypeSchema, RelationAttribute
from ..protocols import DocumentStatus, DocumentStore, SchemaRegistry
from ..utils.uid import slugify
from .identifiers import get_identifier_field
from .import_context import ImportContext
from .strategies import RelationStrategyTable

logger = logging.getLogger(__name__)

STATUSES: tuple[DocumentStatus, ...] = ("published", "draft")
AUTO_GENERATED_FIELDS = ("description", "content", "richText")
MAX_CODE_ATTEMPTS = 10

EntryImporter = Callable[[str, PortableEntry], "str | None"]


class DeferredRelation(RelationError):
    """The relation target is the batch entry currently being imported."""

    def __init__(self, target: str, value: Any) -> None:
        super().__init__(f"Import of {target} {value!r} is in progress")
        self.target = target
        self.value = value


class EntityResolver:
    """Resolves relation values against the store and the import batch."""

    def __init__(
        self,
        context: ImportContext,
        store: DocumentStore,
        registry: SchemaRegistry,
        import_entry: EntryImporter,
        strategies: RelationStrategyTable | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            context: Context of the running batch
            store: Target document store
            registry: Target schemas
            import_entry: Imports a batch entry and returns its documentId
            strategies: Search and auto-create strategies per content type
        """
        self.context = context
        self.store = store
        self.registry = registry
        self.import_entry = import_entry
        self.strategies = strategies or RelationStrategyTable.with_defaults()

    @property
    def options(self) -> ImportOptions:
        return self.context.options

    def resolve(
        self,
        value: Any,
        attribute: RelationAttribute,
        locale: str | None = None,
    ) -> str | None:
        """Resolve one relation value to a documentId.

        Raises:
            DeferredRelation: If the target entry is being imported higher up
                the call stack and must be linked once it exists
            RelationError: If the target model is unknown or cannot be created
            RelationNotFoundError: If nothing matches and missing relations
                are not ignored
            ConflictError: If the draft and published lookups disagree
        """
        if value is None or value == "":
            return None

        target = self.registry.get_model(attribute.target) if attribute.target else None
        if target is None:
            raise RelationError(f"Target model {attribute.target} not found")
        id_field = get_identifier_field(target)

        document_id = self.context.find_processed_record(target.uid, value)
        if document_id:
            logger.debug(f"Reusing {target.uid} {value!r} from this batch: {document_id}")
            return document_id

        document_id = self.find_in_store(target, id_field, value, locale)
        if document_id:
            return document_id

        if not self.options.disallow_new_relations:
            document_id = self._import_from_batch(target, id_field, value)
            if document_id:
                return document_id
            if self.context.is_importing(target.uid, value):
                logger.debug(f"Deferring relation to {target.uid} {value!r}: import in progress")
                raise DeferredRelation(target.uid, value)

        search_details = self._search_details(target, id_field, value, locale)
        if self.options.fuzzy_relations:
            document_id = self.fuzzy_find(target, id_field, value, locale)
            if document_id:
                return document_id

        if self.options.create_missing_entities and not self.options.disallow_new_relations:
            return self.create_missing(target, id_field, value, locale)

        if self.options.ignore_missing_relations:
            logger.debug(f"Ignoring missing {target.uid} {value!r}")
            return None

        field = search_details["search_field"]
        raise RelationNotFoundError(
            f"Related entity with {field}='{value}' not found in {target.uid}",
            search_details=search_details,
        )

    # Exact lookups

    def find_in_store(
        self,
        target: ContentTypeSchema,
        id_field: str,
        value: Any,
        locale: str | None = None,
    ) -> str | None:
        """Find a document by identifier value in both statuses.

        Raises:
            ConflictError: If the draft and published matches are different documents
        """
        service = self.store.documents(target.uid)
        found: dict[str, str] = {}
        for status in STATUSES:
            for search_locale in _locales(target, locale):
                match = service.find_first(
                    filters={id_field: value}, status=status, locale=search_locale
                )
                if match:
                    found[status] = match["documentId"]
                    break

        published, draft = found.get("published"), found.get("draft")
        if published and draft and published != draft:
            raise ConflictError(
                f"Conflicting draft and published documents for {target.uid} "
                f"with {id_field}='{value}'",
                details={"published": published, "draft": draft},
            )
        return published or draft

    def find_in_batch(self, uid: str, id_field: str, value: Any) -> PortableEntry | None:
        """Find the batch entry whose locale objects carry the identifier value."""
        for entry in self.context.import_data.get(uid, []):
            for locale_map in (entry.draft, entry.published):
                if locale_map and any(
                    data.get(id_field) == value for data in locale_map.values()
                ):
                    return entry
        return None

    def _import_from_batch(
        self, target: ContentTypeSchema, id_field: str, value: Any
    ) -> str | None:
        entry = self.find_in_batch(target.uid, id_field, value)
        if entry is None or self.context.is_importing(target.uid, value):
            return None
        logger.debug(f"Importing related {target.uid} {value!r} from the batch first")
        return self.import_entry(target.uid, entry)

    # Fuzzy mode

    def fuzzy_find(
        self,
        target: ContentTypeSchema,
        id_field: str,
        value: Any,
        locale: str | None = None,
    ) -> str | None:
        """Heuristic lookup on the target's search field.

        Tries an exact match per locale, a case-insensitive substring match,
        the strategy's spelling variations and finally a slug match.
        """
        if not isinstance(value, str) or not value.strip():
            return None
        name = value.strip()
        strategy = self.strategies.get(target.uid)
        field = self.strategies.search_field_for(target, id_field)

        attempts: list[dict[str, Any]] = [{field: name}, {field: {"$containsi": name}}]
        attempts += [{field: variation} for variation in strategy.variations_for(name)[1:]]
        if strategy.match_slug and target.has_attribute("slug"):
            attempts.append({"slug": slugify(name)})

        for filters in attempts:
            document_id = self._find_any(target, filters, locale)
            if document_id:
                logger.info(f"Matched {target.uid} {name!r} with {filters}")
                return document_id
        return None

    def _find_any(
        self, target: ContentTypeSchema, filters: dict[str, Any], locale: str | None
    ) -> str | None:
        service = self.store.documents(target.uid)
        for search_locale in _locales(target, locale):
            for status in STATUSES:
                match = service.find_first(filters=filters, status=status, locale=search_locale)
                if match:
                    return str(match["documentId"])
        return None

    def _search_details(
        self, target: ContentTypeSchema, id_field: str, value: Any, locale: str | None
    ) -> dict[str, Any]:
        strategy = self.strategies.get(target.uid)
        fuzzy = self.options.fuzzy_relations
        text = str(value).strip()
        return {
            "content_type": target.uid,
            "search_field": (
                self.strategies.search_field_for(target, id_field) if fuzzy else id_field
            ),
            "value": value,
            "is_localized": target.is_localized,
            "searched_locales": [loc or "default" for loc in _locales(target, locale)]
            if target.is_localized
            else ["non-localized"],
            "tried_variations": strategy.variations_for(text) if fuzzy else [text],
        }

    # Auto-creation

    def create_missing(
        self,
        target: ContentTypeSchema,
        id_field: str,
        value: Any,
        locale: str | None = None,
    ) -> str:
        """Create a minimal entity of the target type named after the value.

        Raises:
            RelationError: If the store rejects the entity
        """
        name = str(value).strip()
        label = self.strategies.label_for(target.uid)
        data = self.build_missing_entity(target, id_field, name)
        target_locale = locale if target.is_localized else None

        try:
            created = self.store.documents(target.uid).create(
                data=data, status="published", locale=target_locale
            )
        except StrapiError as e:
            raise RelationError(
                f"Failed to create {target.uid} with "
                f"{self.strategies.search_field_for(target, id_field)}=\"{name}\": {e}",
                details={"data": data},
            ) from e

        document_id = str(created["documentId"])
        self.context.record_created(target.uid, value, document_id)
        logger.info(f"Created missing {label} {name!r} ({document_id})")
        return document_id

    def build_missing_entity(
        self, target: ContentTypeSchema, id_field: str, name: str
    ) -> dict[str, Any]:
        strategy = self.strategies.get(target.uid)
        search_field = self.strategies.search_field_for(target, id_field)

        data: dict[str, Any] = {search_field: name}
        id_attribute = target.get_attribute(id_field)
        if id_attribute is not None:
            data[id_field] = slugify(name) if id_attribute.type == "uid" else name
        if target.has_attribute("slug"):
            data.setdefault("slug", slugify(name))
        for field in AUTO_GENERATED_FIELDS:
            if target.has_attribute(field):
                data[field] = f"Auto-generated: {name}"
        data.update(
            {
                key: value
                for key, value in strategy.render_defaults(name).items()
                if target.has_attribute(key)
            }
        )
        if strategy.code_field and target.has_attribute(strategy.code_field):
            data[strategy.code_field] = self._unique_code(target, strategy.code_field, name)
        return data

    def _unique_code(self, target: ContentTypeSchema, field: str, name: str) -> str:
        base = "".join(char for char in name if char.isalnum())[:3].upper()
        code = base or f"CTR{str(int(time.time() * 1000))[-4:]}"
        candidate = code
        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            if self._find_any(target, {field: candidate}, None) is None:
                break
            candidate = f"{code}{attempt}"
        return candidate


def _locales(target: ContentTypeSchema, locale: str | None) -> list[str | None]:
    """Locales to search: the default one, then the requested one."""
    if not target.is_localized:
        return [None]
    return list(dict.fromkeys([None, locale]))
