"""Tests for streaming pagination."""

import httpx
import respx

from strapi_transfer import StrapiConfig, SyncClient
from strapi_transfer.operations.streaming import stream_documents

ARTICLES = "http://localhost:1337/api/articles"


def paged(ids: list[int], page: int, page_count: int) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "data": [{"id": i, "documentId": f"doc{i}"} for i in ids],
            "meta": {
                "pagination": {
                    "page": page,
                    "pageSize": 2,
                    "pageCount": page_count,
                    "total": 3,
                }
            },
        },
    )


@respx.mock
def test_stream_documents_single_page(strapi_config: StrapiConfig) -> None:
    """Test streaming with a single page of results."""
    route = respx.get(ARTICLES).mock(return_value=paged([1, 2], 1, 1))

    with SyncClient(strapi_config) as client:
        documents = list(stream_documents(client, "articles", page_size=2))

    assert [doc["id"] for doc in documents] == [1, 2]
    assert route.call_count == 1


@respx.mock
def test_stream_documents_multiple_pages(strapi_config: StrapiConfig) -> None:
    """Test that pages are requested until pageCount is reached."""
    route = respx.get(ARTICLES)
    route.side_effect = [paged([1, 2], 1, 2), paged([3], 2, 2)]

    with SyncClient(strapi_config) as client:
        documents = list(
            stream_documents(
                client,
                "articles",
                {"status": "draft", "pagination": {"page": 9}},
                page_size=2,
            )
        )

    assert [doc["documentId"] for doc in documents] == ["doc1", "doc2", "doc3"]
    assert route.call_count == 2
    params = route.calls[1].request.url.params
    assert params["pagination[page]"] == "2"
    assert params["pagination[pageSize]"] == "2"
    assert params["status"] == "draft"


@respx.mock
def test_stream_documents_is_lazy(strapi_config: StrapiConfig) -> None:
    """Test that later pages are only fetched when consumed."""
    route = respx.get(ARTICLES)
    route.side_effect = [paged([1, 2], 1, 2), paged([3], 2, 2)]

    with SyncClient(strapi_config) as client:
        stream = stream_documents(client, "articles", page_size=2)
        assert next(stream)["id"] == 1
        assert route.call_count == 1


@respx.mock
def test_stream_single_type(strapi_config: StrapiConfig) -> None:
    """Test that a single type's object is yielded once."""
    respx.get("http://localhost:1337/api/homepage").mock(
        return_value=httpx.Response(200, json={"data": {"documentId": "home"}, "meta": {}})
    )

    with SyncClient(strapi_config) as client:
        documents = list(stream_documents(client, "homepage"))

    assert documents == [{"documentId": "home"}]


@respx.mock
def test_stream_without_pagination_meta(strapi_config: StrapiConfig) -> None:
    """Test that responses without pagination meta end the stream."""
    route = respx.get(ARTICLES).mock(
        return_value=httpx.Response(200, json={"data": [{"id": 1}], "meta": {}})
    )

    with SyncClient(strapi_config) as client:
        documents = list(stream_documents(client, "articles"))

    assert documents == [{"id": 1}]
    assert route.call_count == 1


@respx.mock
def test_stream_empty_collection(strapi_config: StrapiConfig) -> None:
    """Test streaming an empty collection."""
    respx.get(ARTICLES).mock(return_value=paged([], 1, 0))

    with SyncClient(strapi_config) as client:
        assert list(stream_documents(client, "articles")) == []
