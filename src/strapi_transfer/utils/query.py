"""Query string helpers for the Strapi REST API.

Strapi reads nested query objects in bracket notation
(``filters[title][$eq]=Hello``, ``populate[seo][populate][image]=true``).
These helpers convert between that notation and plain nested dicts.
"""

import json
import re
from typing import Any
from urllib.parse import parse_qsl

from ..exceptions import FormatError

_KEY_PART = re.compile(r"\[([^\]]*)\]")


def encode_query_params(params: dict[str, Any], prefix: str = "") -> dict[str, str]:
    """Flatten a nested query object into bracket-notation parameters.

    Args:
        params: Nested query (filters, populate, sort, pagination, ...)
        prefix: Key prefix used while recursing

    Returns:
        Flat mapping suitable for ``httpx`` ``params``

    Example:
        >>> encode_query_params({"filters": {"title": {"$eq": "A"}}, "populate": True})
        {'filters[title][$eq]': 'A', 'populate': 'true'}
    """
    flat: dict[str, str] = {}
    for key, value in params.items():
        full_key = f"{prefix}[{key}]" if prefix else str(key)
        flat.update(_encode_value(full_key, value))
    return flat


def _encode_value(key: str, value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return encode_query_params(value, key)
    if isinstance(value, (list, tuple, set)):
        flat: dict[str, str] = {}
        for index, item in enumerate(value):
            flat.update(_encode_value(f"{key}[{index}]", item))
        return flat
    if isinstance(value, bool):
        return {key: "true" if value else "false"}
    return {key: str(value)}


def parse_search(search: str | dict[str, Any] | None) -> dict[str, Any]:
    """Parse an export search specification.

    Accepts a dict, a JSON object string, or a Strapi query string such as
    ``filters[title][$containsi]=news&sort=title:asc``.

    Raises:
        FormatError: If a JSON search string cannot be decoded
    """
    if search is None:
        return {}
    if isinstance(search, dict):
        return dict(search)

    text = search.strip().lstrip("?")
    if not text:
        return {}
    if text.startswith("{"):
        try:
            return dict(json.loads(text))
        except json.JSONDecodeError as e:
            raise FormatError(f"Invalid search JSON: {e}") from e

    result: dict[str, Any] = {}
    for raw_key, raw_value in parse_qsl(text, keep_blank_values=True):
        head, _, _ = raw_key.partition("[")
        path = [head, *_KEY_PART.findall(raw_key)]
        _assign(result, path, raw_value)
    return _listify(result)


def _assign(target: dict[str, Any], path: list[str], value: str) -> None:
    node = target
    for part in path[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[path[-1]] = value


def _listify(node: Any) -> Any:
    """Turn ``{"0": a, "1": b}`` objects produced by indexed keys into lists."""
    if not isinstance(node, dict):
        return node
    converted = {key: _listify(value) for key, value in node.items()}
    if converted and all(key.isdigit() for key in converted):
        return [converted[key] for key in sorted(converted, key=int)]
    return converted
