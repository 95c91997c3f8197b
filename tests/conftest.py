"""Pytest configuration and shared fixtures."""

from typing import Any

import pytest

from strapi_transfer import (
    InMemoryDocumentStore,
    RetryConfig,
    StaticSchemaRegistry,
    StrapiConfig,
    StrapiExporter,
    StrapiImporter,
)
from strapi_transfer.models.portable import PortableEntry

ARTICLE = "api::article.article"
CATEGORY = "api::category.category"
TAG = "api::tag.tag"
AUTHOR = "api::author.author"
PERSON = "api::person.person"
COUNTRY = "api::country.country"
REVIEW = "api::review.review"
HOMEPAGE = "api::homepage.homepage"
TREE = "api::tree.tree"
LOOSE = "api::loose.loose"
ADMIN_USER = "admin::user"


def _collection(singular: str, plural: str, attributes: dict[str, Any], **extra: Any) -> dict:
    return {
        "kind": "collectionType",
        "info": {
            "displayName": singular.title(),
            "singularName": singular,
            "pluralName": plural,
        },
        "options": {"draftAndPublish": True},
        "attributes": attributes,
        **extra,
    }


def _name_field() -> dict[str, Any]:
    return {"type": "string", "required": True, "unique": True}


SCHEMAS: dict[str, dict[str, Any]] = {
    ARTICLE: _collection(
        "article",
        "articles",
        {
            "title": {"type": "string", "required": True, "unique": True},
            "slug": {"type": "uid", "targetField": "title", "unique": True},
            "body": {"type": "text"},
            "category": {
                "type": "relation",
                "relation": "manyToOne",
                "target": CATEGORY,
            },
            "tags": {"type": "relation", "relation": "manyToMany", "target": TAG},
            "author": {"type": "relation", "relation": "manyToOne", "target": AUTHOR},
            "reviewer": {"type": "relation", "relation": "oneToOne", "target": ADMIN_USER},
            "seo": {"type": "component", "component": "shared.seo"},
            "blocks": {"type": "dynamiczone", "components": ["blocks.hero", "blocks.text"]},
            "cover": {"type": "media", "multiple": False, "allowedTypes": ["images"]},
            "gallery": {"type": "media", "multiple": True},
            "views": {"type": "integer", "configurable": False},
        },
        pluginOptions={"i18n": {"localized": True}},
    ),
    CATEGORY: _collection(
        "category",
        "categories",
        {"name": _name_field(), "description": {"type": "text"}},
    ),
    TAG: _collection("tag", "tags", {"name": _name_field(), "description": {"type": "text"}}),
    AUTHOR: _collection("author", "authors", {"name": _name_field(), "bio": {"type": "text"}}),
    PERSON: _collection(
        "person",
        "people",
        {
            "name": _name_field(),
            "friend": {"type": "relation", "relation": "manyToOne", "target": PERSON},
        },
    ),
    COUNTRY: _collection(
        "country",
        "countries",
        {"name": _name_field(), "code": {"type": "string", "unique": True}},
    ),
    REVIEW: _collection(
        "review",
        "reviews",
        {
            "title": {"type": "string", "required": True, "unique": True},
            "article": {
                "type": "relation",
                "relation": "manyToOne",
                "target": ARTICLE,
                "required": True,
            },
        },
    ),
    TREE: _collection(
        "tree",
        "trees",
        {"name": _name_field(), "root": {"type": "component", "component": "nested.node"}},
    ),
    LOOSE: _collection("loose", "looses", {"name": {"type": "string"}}),
    HOMEPAGE: {
        "kind": "singleType",
        "info": {"displayName": "Homepage", "singularName": "homepage", "pluralName": "homepages"},
        "attributes": {
            "headline": {"type": "string"},
            "featured": {"type": "relation", "relation": "oneToOne", "target": ARTICLE},
        },
    },
    ADMIN_USER: {
        "kind": "collectionType",
        "info": {"displayName": "User", "singularName": "user", "pluralName": "users"},
        "attributes": {"username": {"type": "string"}, "email": {"type": "email"}},
    },
    "shared.seo": {
        "category": "shared",
        "info": {"displayName": "Seo"},
        "attributes": {
            "metaTitle": {"type": "string", "required": True},
            "metaImage": {"type": "media", "allowedTypes": ["images"]},
        },
    },
    "blocks.hero": {
        "category": "blocks",
        "info": {"displayName": "Hero"},
        "attributes": {"heading": {"type": "string"}, "image": {"type": "media"}},
    },
    "blocks.text": {
        "category": "blocks",
        "info": {"displayName": "Text"},
        "attributes": {
            "body": {"type": "richtext"},
            "related": {"type": "relation", "relation": "oneToMany", "target": TAG},
        },
    },
    "nested.node": {
        "category": "nested",
        "info": {"displayName": "Node"},
        "attributes": {
            "label": {"type": "string"},
            "child": {"type": "component", "component": "nested.node"},
        },
    },
}


@pytest.fixture
def strapi_config() -> StrapiConfig:
    """Create a test Strapi configuration.

    Returns:
        Test configuration with mock values and a single attempt per request
    """
    return StrapiConfig(
        base_url="http://localhost:1337",
        api_token="test-token-12345678",
        retry=RetryConfig(max_attempts=1),
    )


@pytest.fixture
def registry() -> StaticSchemaRegistry:
    """Schema registry covering every attribute kind."""
    return StaticSchemaRegistry.from_dicts(SCHEMAS)


@pytest.fixture
def store(registry: StaticSchemaRegistry) -> InMemoryDocumentStore:
    """Empty in-memory target store."""
    return InMemoryDocumentStore(registry)


@pytest.fixture
def importer(store: InMemoryDocumentStore, registry: StaticSchemaRegistry) -> StrapiImporter:
    """Importer writing into the in-memory store, resolving media in its library."""
    return StrapiImporter(store, registry, files=store.media)


@pytest.fixture
def exporter(store: InMemoryDocumentStore, registry: StaticSchemaRegistry) -> StrapiExporter:
    """Exporter reading from the in-memory store."""
    return StrapiExporter(store, registry, public_url="https://cms.example.com")


def published(data: dict[str, Any], **locales: dict[str, Any]) -> dict[str, Any]:
    """Raw portable entry with only a published version."""
    return {"published": {"default": data, **locales}}


def document(data: dict[str, list[dict[str, Any]]]) -> dict[str, Any]:
    """Raw version 3 portable document."""
    return {"version": 3, "data": data}


def entry(**versions: dict[str, Any]) -> PortableEntry:
    return PortableEntry.model_validate(versions)
