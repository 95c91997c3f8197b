"""Tests for the lazily fetched schema cache."""

from collections.abc import Iterator

import httpx
import pytest
import respx

from strapi_transfer import InMemorySchemaCache, StrapiConfig, StrapiError, SyncClient
from strapi_transfer.models.schema import ContentTypeKind

BUILDER = "http://localhost:1337/api/content-type-builder"
ARTICLE_URL = f"{BUILDER}/content-types/api::article.article"

ARTICLE_PAYLOAD = {
    "data": {
        "uid": "api::article.article",
        "schema": {
            "kind": "collectionType",
            "displayName": "Article",
            "singularName": "article",
            "pluralName": "articles",
            "attributes": {
                "title": {"type": "string", "required": True},
                "seo": {"type": "component", "component": "shared.seo"},
            },
        },
    }
}


@pytest.fixture
def cache(strapi_config: StrapiConfig) -> Iterator[InMemorySchemaCache]:
    """Schema cache over a localhost client."""
    with SyncClient(strapi_config) as client:
        yield InMemorySchemaCache(client)


class TestInMemorySchemaCache:
    """Test schema fetching and caching."""

    @respx.mock
    def test_fetch_and_cache(self, cache: InMemorySchemaCache) -> None:
        """Test that a schema is fetched once and then served from memory."""
        route = respx.get(ARTICLE_URL).mock(
            return_value=httpx.Response(200, json=ARTICLE_PAYLOAD)
        )

        schema = cache.get_schema("api::article.article")
        again = cache.get_model("api::article.article")

        assert schema is again
        assert schema.plural_name == "articles"
        assert schema.display_name == "Article"
        assert schema.relation_fields() == []
        assert set(schema.attributes) == {"title", "seo"}
        assert route.call_count == 1
        assert cache.fetch_count == 1
        assert cache.cache_size == 1
        assert cache.has_schema("api::article.article")

    @respx.mock
    def test_component_endpoint(self, cache: InMemorySchemaCache) -> None:
        """Test that UIDs without a namespace are read from the components endpoint."""
        route = respx.get(f"{BUILDER}/components/shared.seo").mock(
            return_value=httpx.Response(
                200,
                json={
                    "data": {
                        "category": "shared",
                        "displayName": "Seo",
                        "attributes": {"metaTitle": {"type": "string"}},
                    }
                },
            )
        )

        schema = cache.get_model("shared.seo")

        assert route.called
        assert schema is not None
        assert schema.kind is ContentTypeKind.COMPONENT
        assert schema.display_name == "Seo"

    @respx.mock
    def test_unknown_uid(self, cache: InMemorySchemaCache) -> None:
        """Test that a 404 means the registry doesn't know the UID, remembered."""
        route = respx.get(f"{BUILDER}/content-types/api::ghost.ghost").mock(
            return_value=httpx.Response(404, json={"error": {"message": "Not Found"}})
        )

        assert cache.get_model("api::ghost.ghost") is None
        assert cache.get_model("api::ghost.ghost") is None
        assert route.call_count == 1
        assert cache.fetch_count == 0

    @respx.mock
    def test_unknown_uid_direct_access(self, cache: InMemorySchemaCache) -> None:
        """Test that direct access raises for missing schemas."""
        respx.get(f"{BUILDER}/content-types/api::ghost.ghost").mock(
            return_value=httpx.Response(404, json={"error": {"message": "Not Found"}})
        )

        with pytest.raises(StrapiError, match="Failed to fetch schema for api::ghost.ghost"):
            cache.get_schema("api::ghost.ghost")

    @respx.mock
    def test_server_error_propagates(self, cache: InMemorySchemaCache) -> None:
        """Test that errors other than 404 are not mistaken for unknown models."""
        respx.get(ARTICLE_URL).mock(
            return_value=httpx.Response(500, json={"error": {"message": "boom"}})
        )

        with pytest.raises(StrapiError, match="Failed to fetch schema"):
            cache.get_model("api::article.article")

    @respx.mock
    def test_empty_response(self, cache: InMemorySchemaCache) -> None:
        """Test a payload without a schema body."""
        respx.get(ARTICLE_URL).mock(return_value=httpx.Response(200, json={"data": {}}))

        with pytest.raises(StrapiError, match="empty response"):
            cache.get_schema("api::article.article")

    @respx.mock
    def test_clear_and_preload(self, cache: InMemorySchemaCache) -> None:
        """Test that clearing forgets schemas and preloading fetches them again."""
        route = respx.get(ARTICLE_URL).mock(
            return_value=httpx.Response(200, json=ARTICLE_PAYLOAD)
        )

        cache.preload(["api::article.article"])
        cache.clear()
        assert cache.cache_size == 0

        cache.preload(["api::article.article"])
        assert route.call_count == 2
        assert cache.has_schema("api::article.article")
