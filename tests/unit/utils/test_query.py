"""Tests for bracket-notation query helpers."""

import pytest

from strapi_transfer import FormatError
from strapi_transfer.utils.query import encode_query_params, parse_search


class TestEncodeQueryParams:
    """Test flattening nested queries."""

    def test_nested_filters(self) -> None:
        """Test operators nested under fields."""
        assert encode_query_params({"filters": {"title": {"$eq": "A"}}}) == {
            "filters[title][$eq]": "A"
        }

    def test_scalars(self) -> None:
        """Test booleans, numbers and dropped None values."""
        params = encode_query_params(
            {"populate": True, "status": None, "pagination": {"page": 2, "withCount": False}}
        )

        assert params == {
            "populate": "true",
            "pagination[page]": "2",
            "pagination[withCount]": "false",
        }

    def test_lists(self) -> None:
        """Test that lists get indexed keys, recursively."""
        params = encode_query_params(
            {
                "sort": ["title:asc", "id:desc"],
                "filters": {"$or": [{"name": "a"}, {"name": {"$in": ["b", "c"]}}]},
            }
        )

        assert params == {
            "sort[0]": "title:asc",
            "sort[1]": "id:desc",
            "filters[$or][0][name]": "a",
            "filters[$or][1][name][$in][0]": "b",
            "filters[$or][1][name][$in][1]": "c",
        }


class TestParseSearch:
    """Test parsing export search specifications."""

    def test_empty(self) -> None:
        """Test that missing searches mean no filtering."""
        assert parse_search(None) == {}
        assert parse_search("  ") == {}

    def test_dict_is_copied(self) -> None:
        """Test that dictionaries are returned as copies."""
        search = {"filters": {"title": "A"}}

        parsed = parse_search(search)

        assert parsed == search
        assert parsed is not search

    def test_json(self) -> None:
        """Test JSON object strings."""
        assert parse_search('{"filters": {"title": {"$eq": "A"}}}') == {
            "filters": {"title": {"$eq": "A"}}
        }

    def test_invalid_json(self) -> None:
        """Test that undecodable JSON is a format error."""
        with pytest.raises(FormatError, match="Invalid search JSON"):
            parse_search("{not json")

    def test_query_string(self) -> None:
        """Test bracket-notation query strings, indexed keys becoming lists."""
        parsed = parse_search(
            "?filters[title][$containsi]=news&sort[0]=title:asc&sort[1]=id:desc&populate=*"
        )

        assert parsed == {
            "filters": {"title": {"$containsi": "news"}},
            "sort": ["title:asc", "id:desc"],
            "populate": "*",
        }

    def test_query_string_is_decoded(self) -> None:
        """Test percent-encoded values."""
        assert parse_search("filters%5Btitle%5D=Hello%20World") == {
            "filters": {"title": "Hello World"}
        }
