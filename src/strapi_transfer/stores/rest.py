"""Document store backed by the Strapi v5 REST API.

Maps the document service calls the transfer engine makes onto REST
endpoints:

* collection types: ``/api/{pluralName}`` and ``/api/{pluralName}/{documentId}``
* single types: ``/api/{singularName}``

``status`` and ``locale`` travel as query parameters, filters and populate
specs in bracket notation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..exceptions import NotFoundError, StrapiError
from ..models.schema import ContentTypeSchema
from ..operations.streaming import stream_documents
from ..protocols import DocumentStatus, PopulateSpec, SchemaRegistry
from ..utils.query import encode_query_params
from ..utils.uid import extract_model_name, uid_to_endpoint

if TYPE_CHECKING:
    from ..client.sync_client import SyncClient

logger = logging.getLogger(__name__)


class RestDocumentStore:
    """:class:`~strapi_transfer.protocols.DocumentStore` over a :class:`SyncClient`."""

    def __init__(self, client: SyncClient, registry: SchemaRegistry, page_size: int = 100) -> None:
        self.client = client
        self.registry = registry
        self.page_size = page_size

    def documents(self, uid: str) -> RestDocumentService:
        schema = self.registry.get_model(uid)
        if schema is None:
            raise NotFoundError(f"Model {uid} not found")
        return RestDocumentService(self.client, schema, self.page_size)


class RestDocumentService:
    """Document API of one content type, spoken over HTTP."""

    def __init__(self, client: SyncClient, schema: ContentTypeSchema, page_size: int = 100) -> None:
        self.client = client
        self.schema = schema
        self.page_size = page_size

    @property
    def endpoint(self) -> str:
        if self.schema.is_single_type:
            return self.schema.singular_name or extract_model_name(self.schema.uid)
        return self.schema.plural_name or uid_to_endpoint(self.schema.uid)

    def _document_endpoint(self, document_id: str) -> str:
        if self.schema.is_single_type:
            return self.endpoint
        return f"{self.endpoint}/{document_id}"

    @staticmethod
    def _query(
        status: DocumentStatus,
        locale: str | None,
        populate: PopulateSpec | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        query: dict[str, Any] = {"status": status, **extra}
        if locale:
            query["locale"] = locale
        if populate:
            query["populate"] = "*" if populate is True else dict(populate)
        return query

    def find_many(
        self,
        *,
        filters: dict[str, Any] | None = None,
        status: DocumentStatus = "published",
        locale: str | None = None,
        populate: PopulateSpec | None = None,
        sort: str | list[str] | None = None,
    ) -> list[dict[str, Any]]:
        query = self._query(status, locale, populate, filters=filters or None, sort=sort)
        return list(stream_documents(self.client, self.endpoint, query, self.page_size))

    def find_first(
        self,
        *,
        filters: dict[str, Any] | None = None,
        status: DocumentStatus = "published",
        locale: str | None = None,
        populate: PopulateSpec | None = None,
    ) -> dict[str, Any] | None:
        query = self._query(
            status,
            locale,
            populate,
            filters=filters or None,
            pagination={"page": 1, "pageSize": 1},
        )
        try:
            response = self.client.get(self.endpoint, params=encode_query_params(query))
        except NotFoundError:
            return None
        data = response.get("data") if isinstance(response, dict) else None
        if isinstance(data, list):
            return data[0] if data else None
        return data or None

    def find_one(
        self,
        document_id: str,
        *,
        status: DocumentStatus = "published",
        locale: str | None = None,
        populate: PopulateSpec | None = None,
    ) -> dict[str, Any] | None:
        query = self._query(status, locale, populate)
        try:
            response = self.client.get(
                self._document_endpoint(document_id), params=encode_query_params(query)
            )
        except NotFoundError:
            return None
        return (response or {}).get("data")

    def create(
        self,
        *,
        data: dict[str, Any],
        status: DocumentStatus = "published",
        locale: str | None = None,
    ) -> dict[str, Any]:
        params = encode_query_params(self._query(status, locale))
        if self.schema.is_single_type:
            response = self.client.put(self.endpoint, json={"data": data}, params=params)
        else:
            response = self.client.post(self.endpoint, json={"data": data}, params=params)
        return _unwrap(response, f"create {self.schema.uid}")

    def update(
        self,
        document_id: str,
        *,
        data: dict[str, Any],
        status: DocumentStatus = "published",
        locale: str | None = None,
    ) -> dict[str, Any]:
        params = encode_query_params(self._query(status, locale))
        response = self.client.put(
            self._document_endpoint(document_id), json={"data": data}, params=params
        )
        return _unwrap(response, f"update {self.schema.uid} {document_id}")


def _unwrap(response: Any, action: str) -> dict[str, Any]:
    data = response.get("data") if isinstance(response, dict) else None
    if not isinstance(data, dict):
        raise StrapiError(f"Unexpected response to {action}", details={"response": response})
    logger.debug(f"{action}: {data.get('documentId')}")
    return data
