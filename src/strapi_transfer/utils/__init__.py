"""Utility functions for strapi-transfer."""

from .query import encode_query_params, parse_search
from .schema import extract_info_from_schema
from .uid import (
    ADMIN_USER_UID,
    extract_model_name,
    is_admin_user,
    is_api_content_type,
    slugify,
    uid_to_endpoint,
)

__all__ = [
    "ADMIN_USER_UID",
    "encode_query_params",
    "extract_info_from_schema",
    "extract_model_name",
    "is_admin_user",
    "is_api_content_type",
    "parse_search",
    "slugify",
    "uid_to_endpoint",
]
