"""Streaming pagination for large result sets.

Generators that page through a collection endpoint so exports of large
content types never hold more than one page of raw responses at a time.
"""

from collections.abc import Generator
from typing import TYPE_CHECKING, Any

from ..utils.query import encode_query_params

if TYPE_CHECKING:
    from ..client.sync_client import SyncClient


def stream_documents(
    client: "SyncClient",
    endpoint: str,
    query: dict[str, Any] | None = None,
    page_size: int = 100,
) -> Generator[dict[str, Any], None, None]:
    """Stream documents from a collection endpoint with automatic pagination.

    Args:
        client: SyncClient instance
        endpoint: API endpoint (e.g., "articles")
        query: Nested query object (filters, sort, populate, status, locale)
        page_size: Items per page

    Yields:
        Raw v5 document dicts one at a time

    Example:
        >>> with SyncClient(config) as client:
        ...     for article in stream_documents(client, "articles", {"status": "draft"}):
        ...         print(article["title"])
    """
    base_query = dict(query or {})
    base_query.pop("pagination", None)
    current_page = 1

    while True:
        params = encode_query_params(
            {**base_query, "pagination": {"page": current_page, "pageSize": page_size}}
        )
        response = client.get(endpoint, params=params)

        data = response.get("data") if isinstance(response, dict) else response
        if isinstance(data, dict):
            # Single types answer with one object
            yield data
            break
        yield from data or []

        meta = response.get("meta") if isinstance(response, dict) else None
        pagination = (meta or {}).get("pagination")
        if not pagination:
            break
        page_count = pagination.get("pageCount")
        if not page_count or current_page >= page_count:
            break
        current_page += 1
