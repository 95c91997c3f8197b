"""Identifier field resolution.

Entries are matched across instances by a human-meaningful unique field
rather than by their store ids. The field is either pinned through the
``import-export-entries`` plugin options of a schema or picked from the
conventional ``uid`` / ``name`` / ``title`` attributes.
"""

from ..exceptions import ConfigurationError
from ..models.schema import UNIQUE_CAPABLE_TYPES, ContentTypeSchema

CONVENTIONAL_ID_FIELDS = ("uid", "name", "title")
FALLBACK_ID_FIELD = "id"


def get_identifier_field(schema: ContentTypeSchema) -> str:
    """Return the identifier field of a schema.

    Examples:
        A schema with ``title`` and ``slug`` attributes and no configured
        field resolves to ``"title"``; one with none of the conventional
        attributes resolves to ``"id"``.
    """
    configured = schema.configured_id_field
    if configured:
        return configured

    for name in CONVENTIONAL_ID_FIELDS:
        if schema.has_attribute(name):
            return name
    return FALLBACK_ID_FIELD


def validate_identifier_field(schema: ContentTypeSchema) -> str:
    """Check that the identifier field can match entries reliably.

    Single types are exempt: they hold exactly one document.

    Returns:
        The identifier field name

    Raises:
        ConfigurationError: If the field is missing, of a type that can't be
            unique, or not both required and unique
    """
    id_field = get_identifier_field(schema)
    if schema.is_single_type:
        return id_field

    attribute = schema.get_attribute(id_field)
    if attribute is None:
        raise ConfigurationError(
            f"IdField not found in model: Field '{id_field}' is missing from model '{schema.uid}'",
            details={"uid": schema.uid, "field": id_field},
        )

    # uid attributes are unique by construction
    if attribute.type == "uid":
        if not attribute.required:
            raise ConfigurationError(
                f"IdField misconfigured in model: Field '{id_field}' in model '{schema.uid}' "
                f"must be both required and unique. Current settings - required: "
                f"{str(attribute.required).lower()}, unique: true",
                details={"uid": schema.uid, "field": id_field},
            )
        return id_field

    if attribute.type not in UNIQUE_CAPABLE_TYPES:
        raise ConfigurationError(
            f"IdField type not supported in model: Field '{id_field}' in model '{schema.uid}' "
            f"must have a unique option. Current settings - type: {attribute.type}",
            details={"uid": schema.uid, "field": id_field},
        )

    if not (attribute.required and attribute.unique):
        raise ConfigurationError(
            f"IdField misconfigured in model: Field '{id_field}' in model '{schema.uid}' "
            f"must be both required and unique. Current settings - required: "
            f"{str(attribute.required).lower()}, unique: {str(attribute.unique).lower()}",
            details={"uid": schema.uid, "field": id_field},
        )
    return id_field
