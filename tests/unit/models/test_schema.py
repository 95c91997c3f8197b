"""Tests for content type schema parsing."""

from strapi_transfer import StaticSchemaRegistry
from strapi_transfer.models import (
    ComponentAttribute,
    ContentTypeKind,
    ContentTypeSchema,
    DynamicZoneAttribute,
    MediaAttribute,
    RelationAttribute,
    RelationCardinality,
    ScalarAttribute,
)

from conftest import ADMIN_USER, ARTICLE, CATEGORY, HOMEPAGE


class TestContentTypeSchema:
    """Test ContentTypeSchema.from_raw and its helpers."""

    def test_attributes_are_typed(self, registry: StaticSchemaRegistry) -> None:
        """Test that raw attribute dicts become the matching attribute classes."""
        schema = registry.get_model(ARTICLE)

        assert isinstance(schema.attributes["title"], ScalarAttribute)
        assert isinstance(schema.attributes["category"], RelationAttribute)
        assert isinstance(schema.attributes["seo"], ComponentAttribute)
        assert isinstance(schema.attributes["blocks"], DynamicZoneAttribute)
        assert isinstance(schema.attributes["cover"], MediaAttribute)

    def test_naming_and_flags(self, registry: StaticSchemaRegistry) -> None:
        """Test info, localization and kind accessors."""
        schema = registry.get_model(ARTICLE)

        assert schema.plural_name == "articles"
        assert schema.singular_name == "article"
        assert schema.is_localized is True
        assert schema.draft_and_publish is True
        assert schema.is_single_type is False
        assert registry.get_model(CATEGORY).is_localized is False
        assert registry.get_model(HOMEPAGE).is_single_type is True

    def test_relation_cardinality(self, registry: StaticSchemaRegistry) -> None:
        """Test to-one and to-many relation detection."""
        schema = registry.get_model(ARTICLE)

        assert schema.attributes["category"].cardinality is RelationCardinality.ONE
        assert schema.attributes["tags"].is_many is True
        assert schema.attributes["reviewer"].is_many is False

    def test_media_allowed_types_alias(self, registry: StaticSchemaRegistry) -> None:
        """Test that allowedTypes is read through its alias."""
        cover = registry.get_model(ARTICLE).attributes["cover"]
        assert cover.allowed_types == ["images"]
        assert cover.multiple is False

    def test_field_listing(self, registry: StaticSchemaRegistry) -> None:
        """Test relation, component and special field listings."""
        schema = registry.get_model(ARTICLE)

        assert schema.relation_fields() == ["category", "tags", "author", "reviewer"]
        assert schema.component_fields() == ["seo"]
        assert "blocks" in schema.special_fields()
        assert "title" not in schema.special_fields()

    def test_component_kind_inferred_from_category(self) -> None:
        """Test that a schema with a category but no kind is a component."""
        schema = ContentTypeSchema.from_raw(
            "shared.quote",
            {"category": "shared", "attributes": {"text": {"type": "text"}}},
        )
        assert schema.kind is ContentTypeKind.COMPONENT

    def test_flat_info_format(self) -> None:
        """Test names given at the top level of the schema."""
        schema = ContentTypeSchema.from_raw(
            "api::event.event",
            {
                "kind": "collectionType",
                "displayName": "Event",
                "singularName": "event",
                "pluralName": "events",
                "attributes": {},
            },
        )
        assert schema.display_name == "Event"
        assert schema.plural_name == "events"

    def test_configured_id_field(self) -> None:
        """Test reading the identifier field from plugin options."""
        schema = ContentTypeSchema.from_raw(
            "api::product.product",
            {
                "kind": "collectionType",
                "pluginOptions": {"import-export-entries": {"idField": "sku"}},
                "attributes": {"sku": {"type": "string", "required": True, "unique": True}},
            },
        )
        assert schema.configured_id_field == "sku"


class TestStaticSchemaRegistry:
    """Test the fixed-schema registry."""

    def test_unknown_uid(self, registry: StaticSchemaRegistry) -> None:
        """Test that unknown UIDs resolve to None."""
        assert registry.get_model("api::ghost.ghost") is None
        assert "api::ghost.ghost" not in registry

    def test_content_type_uids(self, registry: StaticSchemaRegistry) -> None:
        """Test that only API content types are listed."""
        uids = registry.content_type_uids()

        assert ARTICLE in uids
        assert HOMEPAGE in uids
        assert ADMIN_USER not in uids
        assert "shared.seo" not in uids

    def test_content_type_uids_with_plugins(self, registry: StaticSchemaRegistry) -> None:
        """Test including non-API content types."""
        assert ADMIN_USER in registry.content_type_uids(include_plugins=True)
