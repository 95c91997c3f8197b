"""Schema registries.

Two :class:`~strapi_transfer.protocols.SchemaRegistry` implementations:

* :class:`StaticSchemaRegistry` holds schemas handed to it up front (a
  schema dump, fixtures, an offline transfer).
* :class:`InMemorySchemaCache` fetches schemas lazily from the
  content-type-builder API of a live instance and keeps them for the
  lifetime of the cache.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from ..exceptions import NotFoundError, StrapiError
from ..models.schema import ContentTypeKind, ContentTypeSchema
from ..utils.schema import unwrap_schema_payload
from ..utils.uid import is_api_content_type

if TYPE_CHECKING:
    from ..client.sync_client import SyncClient

logger = logging.getLogger(__name__)


def _is_component_uid(uid: str) -> bool:
    return "::" not in uid


class StaticSchemaRegistry:
    """Registry over a fixed set of schemas.

    Example:
        >>> registry = StaticSchemaRegistry.from_dicts({
        ...     "api::tag.tag": {
        ...         "kind": "collectionType",
        ...         "attributes": {"name": {"type": "string", "required": True, "unique": True}},
        ...     },
        ... })
        >>> registry.get_model("api::tag.tag").uid
        'api::tag.tag'
    """

    def __init__(self, schemas: Iterable[ContentTypeSchema] = ()) -> None:
        self._schemas: dict[str, ContentTypeSchema] = {}
        for schema in schemas:
            self.register(schema)

    @classmethod
    def from_dicts(cls, raw_schemas: dict[str, dict[str, Any]]) -> StaticSchemaRegistry:
        """Build a registry from ``{uid: raw schema}`` dictionaries."""
        return cls(ContentTypeSchema.from_raw(uid, raw) for uid, raw in raw_schemas.items())

    def register(self, schema: ContentTypeSchema) -> None:
        self._schemas[schema.uid] = schema

    def get_model(self, uid: str) -> ContentTypeSchema | None:
        return self._schemas.get(uid)

    def content_type_uids(self, include_plugins: bool = False) -> list[str]:
        """UIDs of registered content types (components excluded)."""
        return [
            uid
            for uid, schema in self._schemas.items()
            if schema.kind is not ContentTypeKind.COMPONENT
            and (include_plugins or is_api_content_type(uid))
        ]

    def __contains__(self, uid: object) -> bool:
        return uid in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)


class InMemorySchemaCache:
    """Lazily fetched, in-memory cache of content type and component schemas.

    Schemas are read from ``/api/content-type-builder/content-types/{uid}``
    and ``/api/content-type-builder/components/{uid}``; each UID is fetched at
    most once.
    """

    def __init__(self, client: SyncClient) -> None:
        self._client = client
        self._cache: dict[str, ContentTypeSchema] = {}
        self._missing: set[str] = set()
        self._fetch_count = 0

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    @property
    def fetch_count(self) -> int:
        """Number of API round trips made so far."""
        return self._fetch_count

    def get_schema(self, content_type: str) -> ContentTypeSchema:
        """Get a content type schema, fetching it on a cache miss.

        Raises:
            StrapiError: If the schema cannot be fetched
        """
        return self._get(content_type, "content-types")

    def get_component_schema(self, component_uid: str) -> ContentTypeSchema:
        """Get a component schema, fetching it on a cache miss.

        Raises:
            StrapiError: If the schema cannot be fetched
        """
        return self._get(component_uid, "components")

    def get_model(self, uid: str) -> ContentTypeSchema | None:
        """Registry lookup: the schema, or None when the instance doesn't know the UID."""
        if uid in self._cache:
            return self._cache[uid]
        if uid in self._missing:
            return None
        try:
            if _is_component_uid(uid):
                return self.get_component_schema(uid)
            return self.get_schema(uid)
        except StrapiError as e:
            if isinstance(e.__cause__, NotFoundError):
                logger.debug(f"Schema {uid} not found on the server")
                self._missing.add(uid)
                return None
            raise

    def has_schema(self, content_type: str) -> bool:
        return content_type in self._cache

    def preload(self, uids: Iterable[str]) -> None:
        for uid in uids:
            self.get_model(uid)

    def clear(self) -> None:
        self._cache.clear()
        self._missing.clear()
        logger.debug("Cleared schema cache")

    def _get(self, uid: str, collection: str) -> ContentTypeSchema:
        cached = self._cache.get(uid)
        if cached is not None:
            return cached

        try:
            payload = self._client.get(f"content-type-builder/{collection}/{uid}")
        except StrapiError as e:
            raise StrapiError(f"Failed to fetch schema for {uid}: {e}") from e
        self._fetch_count += 1

        schema = self._parse_schema_response(uid, payload)
        self._cache[uid] = schema
        logger.debug(f"Cached schema {uid} ({len(schema.attributes)} attributes)")
        return schema

    @staticmethod
    def _parse_schema_response(uid: str, payload: dict[str, Any]) -> ContentTypeSchema:
        raw = unwrap_schema_payload(payload)
        if not raw:
            raise StrapiError(f"Failed to fetch schema for {uid}: empty response")
        return ContentTypeSchema.from_raw(uid, raw)
