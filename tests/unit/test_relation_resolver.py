"""Tests for relation value resolution."""

from typing import Any
from unittest.mock import Mock

import pytest

from strapi_transfer import (
    ConflictError,
    ImportOptions,
    InMemoryDocumentStore,
    RelationError,
    RelationNotFoundError,
    StaticSchemaRegistry,
)
from strapi_transfer.export import EntityResolver
from strapi_transfer.export.import_context import ImportContext
from strapi_transfer.export.relation_resolver import DeferredRelation
from strapi_transfer.models.schema import RelationAttribute

from conftest import ARTICLE, CATEGORY, COUNTRY, PERSON, TAG, entry

TO_CATEGORY = RelationAttribute(relation="manyToOne", target=CATEGORY)
TO_TAGS = RelationAttribute(relation="manyToMany", target=TAG)
TO_COUNTRY = RelationAttribute(relation="manyToOne", target=COUNTRY)
TO_ARTICLE = RelationAttribute(relation="oneToOne", target=ARTICLE)


def make_resolver(
    store: InMemoryDocumentStore,
    registry: StaticSchemaRegistry,
    options: ImportOptions | None = None,
    import_data: dict[str, Any] | None = None,
    import_entry: Mock | None = None,
) -> EntityResolver:
    context = ImportContext(options=options or ImportOptions(), import_data=import_data or {})
    return EntityResolver(
        context, store, registry, import_entry=import_entry or Mock(return_value=None)
    )


class TestExactResolution:
    """Test lookups by identifier value."""

    def test_empty_value(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test that empty values resolve to nothing."""
        resolver = make_resolver(store, registry)

        assert resolver.resolve(None, TO_CATEGORY) is None
        assert resolver.resolve("", TO_CATEGORY) is None

    def test_reuses_batch_record(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test that documents written in this batch win over store lookups."""
        resolver = make_resolver(store, registry)
        resolver.context.record_created(CATEGORY, "Tech", "doc-in-batch")

        assert resolver.resolve("Tech", TO_CATEGORY) == "doc-in-batch"

    def test_finds_in_store(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test resolving a published document."""
        created = store.documents(CATEGORY).create(data={"name": "Tech"})

        assert make_resolver(store, registry).resolve("Tech", TO_CATEGORY) == created["documentId"]

    def test_finds_draft_only_document(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test that unpublished documents are relation targets too."""
        created = store.documents(CATEGORY).create(data={"name": "Tech"}, status="draft")

        assert make_resolver(store, registry).resolve("Tech", TO_CATEGORY) == created["documentId"]

    def test_draft_published_conflict(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test that a draft and a published match on different documents conflict."""
        service = store.documents(CATEGORY)
        service.create(data={"name": "Tech"}, status="draft")
        service.create(data={"name": "Tech"})

        with pytest.raises(ConflictError, match="Conflicting draft and published documents"):
            make_resolver(store, registry).resolve("Tech", TO_CATEGORY)

    def test_localized_target(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test that the requested locale is searched after the default one."""
        service = store.documents(ARTICLE)
        created = service.create(data={"title": "Hello"})
        service.update(created["documentId"], data={"title": "Bonjour"}, locale="fr")
        resolver = make_resolver(store, registry)

        assert resolver.resolve("Bonjour", TO_ARTICLE, "fr") == created["documentId"]
        with pytest.raises(RelationNotFoundError):
            resolver.resolve("Bonjour", TO_ARTICLE)

    def test_unknown_target(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test a relation pointing at a model the registry doesn't know."""
        attribute = RelationAttribute(relation="manyToOne", target="api::ghost.ghost")

        with pytest.raises(RelationError, match="Target model api::ghost.ghost not found"):
            make_resolver(store, registry).resolve("x", attribute)


class TestBatchResolution:
    """Test resolution against entries of the running batch."""

    def test_imports_batch_entry_first(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test that a matching batch entry is imported through the callback."""
        tech = entry(published={"default": {"name": "Tech"}})
        import_entry = Mock(return_value="doc-tech")
        resolver = make_resolver(
            store, registry, import_data={CATEGORY: [tech]}, import_entry=import_entry
        )

        assert resolver.resolve("Tech", TO_CATEGORY) == "doc-tech"
        import_entry.assert_called_once_with(CATEGORY, tech)

    def test_matches_any_locale_of_batch_entry(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test find_in_batch over draft and localized versions."""
        hello = entry(
            published={"default": {"title": "Hello"}, "fr": {"title": "Bonjour"}},
        )
        draft_only = entry(draft={"default": {"title": "Draft"}})
        resolver = make_resolver(store, registry, import_data={ARTICLE: [hello, draft_only]})

        assert resolver.find_in_batch(ARTICLE, "title", "Bonjour") is hello
        assert resolver.find_in_batch(ARTICLE, "title", "Draft") is draft_only
        assert resolver.find_in_batch(ARTICLE, "title", "Nope") is None

    def test_defers_entry_in_progress(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test that a relation back to an entry being imported is deferred."""
        friend = RelationAttribute(relation="manyToOne", target=PERSON)
        ann = entry(published={"default": {"name": "Ann"}})
        import_entry = Mock()
        resolver = make_resolver(
            store, registry, import_data={PERSON: [ann]}, import_entry=import_entry
        )

        with resolver.context.importing(PERSON, "Ann"):
            with pytest.raises(DeferredRelation) as excinfo:
                resolver.resolve("Ann", friend)
        import_entry.assert_not_called()
        assert excinfo.value.target == PERSON
        assert excinfo.value.value == "Ann"

    def test_in_progress_under_every_identifier(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test that an entry is guarded under its draft identifier too."""
        friend = RelationAttribute(relation="manyToOne", target=PERSON)
        ann = entry(
            published={"default": {"name": "Ann"}}, draft={"default": {"name": "Annie"}}
        )
        import_entry = Mock()
        resolver = make_resolver(
            store, registry, import_data={PERSON: [ann]}, import_entry=import_entry
        )

        with resolver.context.importing(PERSON, *ann.identifier_values("name")):
            with pytest.raises(DeferredRelation):
                resolver.resolve("Annie", friend)
        import_entry.assert_not_called()
        assert not resolver.context.in_progress

    def test_disallow_new_relations(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test that batch entries are not imported when new relations are disallowed."""
        import_entry = Mock()
        resolver = make_resolver(
            store,
            registry,
            options=ImportOptions(disallow_new_relations=True, create_missing_entities=True),
            import_data={CATEGORY: [entry(published={"default": {"name": "Tech"}})]},
            import_entry=import_entry,
        )

        with pytest.raises(RelationNotFoundError):
            resolver.resolve("Tech", TO_CATEGORY)
        import_entry.assert_not_called()
        assert store.count(CATEGORY) == 0


class TestFuzzyResolution:
    """Test fuzzy matching and auto-creation."""

    def test_case_insensitive_substring(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test the $containsi attempt on the search field."""
        created = store.documents(CATEGORY).create(data={"name": "Technology"})
        resolver = make_resolver(store, registry, ImportOptions(fuzzy_relations=True))

        assert resolver.resolve("tech", TO_CATEGORY) == created["documentId"]

    def test_no_fuzzy_by_default(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test that partial matches are not accepted outside fuzzy mode."""
        store.documents(CATEGORY).create(data={"name": "Technology"})

        with pytest.raises(RelationNotFoundError):
            make_resolver(store, registry).resolve("tech", TO_CATEGORY)

    def test_country_name_variations(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test matching a country through a localized synonym."""
        created = store.documents(COUNTRY).create(data={"name": "Germany", "code": "GER"})
        resolver = make_resolver(store, registry, ImportOptions(fuzzy_relations=True))

        assert resolver.resolve("Германия", TO_COUNTRY) == created["documentId"]

    def test_create_missing_category(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test auto-creating a category with the strategy defaults."""
        resolver = make_resolver(store, registry, ImportOptions(create_missing_entities=True))

        document_id = resolver.resolve("Tech", TO_CATEGORY)

        created = store.documents(CATEGORY).find_one(document_id)
        assert created["name"] == "Tech"
        assert created["description"] == "Auto-generated category: Tech"
        assert resolver.context.was_created_in_this_import(document_id)
        assert resolver.resolve("Tech", TO_CATEGORY) == document_id
        assert store.count(CATEGORY) == 1

    def test_create_missing_tag(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test auto-creating a many-relation target."""
        resolver = make_resolver(store, registry, ImportOptions(create_missing_entities=True))

        document_id = resolver.resolve("python", TO_TAGS)

        created = store.documents(TAG).find_one(document_id)
        assert created["description"] == "Auto-generated tag: python"

    def test_create_missing_country_code(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test that auto-created countries get a free unique code."""
        store.documents(COUNTRY).create(data={"name": "Germany", "code": "GER"})
        resolver = make_resolver(store, registry, ImportOptions(create_missing_entities=True))

        document_id = resolver.resolve("Gerona", TO_COUNTRY)

        assert store.documents(COUNTRY).find_one(document_id)["code"] == "GER1"

    def test_ignore_missing(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test that missing targets resolve to None when ignored."""
        resolver = make_resolver(store, registry, ImportOptions(ignore_missing_relations=True))

        assert resolver.resolve("Tech", TO_CATEGORY) is None

    def test_search_details(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test the search report attached to a not-found error."""
        with pytest.raises(RelationNotFoundError) as exc_info:
            make_resolver(store, registry).resolve("Tech", TO_CATEGORY)

        assert str(exc_info.value) == (
            "Related entity with name='Tech' not found in api::category.category"
        )
        assert exc_info.value.search_details == {
            "content_type": CATEGORY,
            "search_field": "name",
            "value": "Tech",
            "is_localized": False,
            "searched_locales": ["non-localized"],
            "tried_variations": ["Tech"],
        }

    def test_search_details_localized_fuzzy(
        self, store: InMemoryDocumentStore, registry: StaticSchemaRegistry
    ) -> None:
        """Test the search report for a localized target in fuzzy mode."""
        resolver = make_resolver(store, registry, ImportOptions(fuzzy_relations=True))

        with pytest.raises(RelationNotFoundError) as exc_info:
            resolver.resolve("Missing", TO_ARTICLE, "fr")

        details = exc_info.value.search_details
        assert details["search_field"] == "title"
        assert details["is_localized"] is True
        assert details["searched_locales"] == ["default", "fr"]
