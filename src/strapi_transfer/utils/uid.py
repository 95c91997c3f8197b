"""Content type UID helpers.

Strapi addresses schemas with UIDs such as ``api::article.article`` or
``plugin::users-permissions.user``; components use ``category.name``. These
helpers derive REST endpoints and human-oriented names from them.
"""

import re

ADMIN_USER_UID = "admin::user"

_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^\w\-]+")


def uid_to_endpoint(uid: str) -> str:
    """Convert a content type UID to its plural REST endpoint.

    Prefer the schema's ``pluralName`` when it is known; this is the fallback
    for schemas fetched without naming metadata.

    Examples:
        >>> uid_to_endpoint("api::article.article")
        'articles'
        >>> uid_to_endpoint("api::category.category")
        'categories'
        >>> uid_to_endpoint("api::class.class")
        'classes'
    """
    parts = uid.split("::")
    if len(parts) != 2:
        return uid

    name = extract_model_name(uid)
    if name.endswith("y") and not name.endswith(("ay", "ey", "oy", "uy")):
        return name[:-1] + "ies"
    if name.endswith(("s", "x", "z", "ch", "sh")):
        return name + "es"
    return name + "s"


def extract_model_name(uid: str) -> str:
    """Extract the model name from a UID.

    Examples:
        >>> extract_model_name("api::article.article")
        'article'
        >>> extract_model_name("plugin::users-permissions.user")
        'user'
        >>> extract_model_name("shared.seo")
        'seo'
    """
    _, _, rest = uid.rpartition("::")
    return rest.split(".")[-1]


def is_api_content_type(uid: str) -> bool:
    """Check whether a UID belongs to an application content type (not a plugin)."""
    return uid.startswith("api::")


def is_admin_user(uid: str | None) -> bool:
    return uid == ADMIN_USER_UID


def slugify(value: str) -> str:
    """Build a URL slug the way auto-created relation targets get them.

    Examples:
        >>> slugify("Hello World!")
        'hello-world'
        >>> slugify("  Data   Science ")
        'data-science'
    """
    slug = _WHITESPACE.sub("-", value.strip().lower())
    return _NON_SLUG.sub("", slug)
