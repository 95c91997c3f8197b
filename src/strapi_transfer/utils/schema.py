"""Schema utility functions.

Shared helpers for reading raw Strapi schema payloads, which come in
slightly different shapes depending on the endpoint that produced them.
"""

from typing import Any


def extract_info_from_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Extract the info dict from a schema, handling both v5 formats.

    Strapi v5 may return naming metadata in two places:
    1. Nested: ``schema.info.displayName``
    2. Flat: ``schema.displayName`` (content-type-builder responses)

    Args:
        schema: Schema dict from an API response or registry dump

    Returns:
        Info dict with displayName, singularName, pluralName, description
    """
    nested_info: dict[str, Any] = schema.get("info") or {}
    if nested_info.get("displayName") or nested_info.get("singularName"):
        return nested_info

    return {
        "displayName": schema.get("displayName", ""),
        "singularName": schema.get("singularName"),
        "pluralName": schema.get("pluralName"),
        "description": schema.get("description"),
    }


def unwrap_schema_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Return the schema body of a content-type-builder response.

    The endpoint answers either ``{"data": {"uid": ..., "schema": {...}}}`` or
    ``{"data": {...schema...}}``.
    """
    data: dict[str, Any] = payload.get("data") or {}
    schema = data.get("schema")
    if isinstance(schema, dict):
        return {"uid": data.get("uid"), **schema} if data.get("uid") else schema
    return data
