"""Tests for populate plan construction."""

from strapi_transfer import StaticSchemaRegistry
from strapi_transfer.export import PopulatePlanBuilder, build_populate_plan

from conftest import ARTICLE, CATEGORY, TREE


class TestPopulatePlanBuilder:
    """Test schema-driven populate plans."""

    def test_article_plan(self, registry: StaticSchemaRegistry) -> None:
        """Test relations, media, components and dynamic zones."""
        plan = PopulatePlanBuilder(registry).build(ARTICLE)

        assert plan["category"] is True
        assert plan["tags"] is True
        assert plan["cover"] is True
        assert plan["gallery"] is True
        assert plan["seo"] == {"populate": {"metaImage": True}}
        assert plan["blocks"] == {
            "on": {
                "blocks.hero": {"populate": {"image": True}},
                "blocks.text": {"populate": {"related": True}},
            }
        }
        assert "title" not in plan

    def test_scalar_only_schema(self, registry: StaticSchemaRegistry) -> None:
        """Test that a schema without special fields gets an empty plan."""
        assert PopulatePlanBuilder(registry).build(CATEGORY) == {}

    def test_recursive_component_is_bounded(self, registry: StaticSchemaRegistry) -> None:
        """Test that a self-nesting component stops at the depth limit."""
        plan = PopulatePlanBuilder(registry).build(TREE, max_depth=3)

        assert plan == {"root": {"populate": {"child": {"populate": {"child": True}}}}}

    def test_depth_exhausted(self, registry: StaticSchemaRegistry) -> None:
        """Test that a zero depth populates everything."""
        assert PopulatePlanBuilder(registry).build(ARTICLE, max_depth=0) is True

    def test_unknown_schema(self, registry: StaticSchemaRegistry) -> None:
        """Test that unknown UIDs populate everything."""
        assert PopulatePlanBuilder(registry).build("api::ghost.ghost") is True

    def test_memoized(self, registry: StaticSchemaRegistry) -> None:
        """Test that plans are cached per UID and depth."""
        builder = PopulatePlanBuilder(registry)

        first = builder.build(ARTICLE, 4)
        assert builder.build(ARTICLE, 4) is first
        assert builder.build(ARTICLE, 3) is not first

        builder.clear()
        assert builder.build(ARTICLE, 4) is not first

    def test_one_off_helper(self, registry: StaticSchemaRegistry) -> None:
        """Test build_populate_plan with a schema object."""
        schema = registry.get_model(TREE)
        assert build_populate_plan(schema, registry, 1) == {"root": True}
