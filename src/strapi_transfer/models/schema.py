"""Content type schema models.

Strapi describes every content type and component as a bag of attribute
definitions keyed by a raw ``type`` string. The models below turn that bag
into a closed union of attribute classes so that the tree walkers can
dispatch on the class instead of probing dictionary shapes.
"""

from enum import Enum
from typing import Annotated, Any, ClassVar, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag

from ..utils.schema import extract_info_from_schema

IMPORT_EXPORT_PLUGIN = "import-export-entries"


class AttributeKind(str, Enum):
    """Attribute families the transfer engine treats differently."""

    RELATION = "relation"
    COMPONENT = "component"
    DYNAMIC_ZONE = "dynamiczone"
    MEDIA = "media"
    SCALAR = "scalar"


class RelationCardinality(str, Enum):
    """Whether a relation holds one target or a list of targets."""

    ONE = "one"
    MANY = "many"


class ContentTypeKind(str, Enum):
    """Strapi schema kinds."""

    COLLECTION_TYPE = "collectionType"
    SINGLE_TYPE = "singleType"
    COMPONENT = "component"


# Scalar types that can carry a unique constraint in Strapi
UNIQUE_CAPABLE_TYPES = frozenset(
    {
        "string",
        "text",
        "email",
        "uid",
        "integer",
        "biginteger",
        "float",
        "decimal",
        "date",
        "datetime",
        "time",
    }
)


class BaseAttribute(BaseModel):
    """Fields shared by every attribute definition."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    kind: ClassVar[AttributeKind] = AttributeKind.SCALAR

    type: str
    required: bool = False
    unique: bool = False
    configurable: bool | None = None
    private: bool = False


class RelationAttribute(BaseAttribute):
    """Relation to another content type."""

    kind: ClassVar[AttributeKind] = AttributeKind.RELATION

    type: str = "relation"
    relation: str = "oneToOne"
    target: str | None = None
    mapped_by: str | None = Field(default=None, alias="mappedBy")
    inversed_by: str | None = Field(default=None, alias="inversedBy")

    @property
    def cardinality(self) -> RelationCardinality:
        """Cardinality as seen from the owning side."""
        if self.relation.endswith("Many") or self.relation == "manyWay":
            return RelationCardinality.MANY
        return RelationCardinality.ONE

    @property
    def is_many(self) -> bool:
        return self.cardinality is RelationCardinality.MANY


class ComponentAttribute(BaseAttribute):
    """Embedded component, optionally repeatable."""

    kind: ClassVar[AttributeKind] = AttributeKind.COMPONENT

    type: str = "component"
    component: str
    repeatable: bool = False


class DynamicZoneAttribute(BaseAttribute):
    """Ordered list of heterogeneous components."""

    kind: ClassVar[AttributeKind] = AttributeKind.DYNAMIC_ZONE

    type: str = "dynamiczone"
    components: list[str] = Field(default_factory=list)


class MediaAttribute(BaseAttribute):
    """Reference to one or more media library files."""

    kind: ClassVar[AttributeKind] = AttributeKind.MEDIA

    type: str = "media"
    multiple: bool = False
    allowed_types: list[str] | None = Field(default=None, alias="allowedTypes")


class ScalarAttribute(BaseAttribute):
    """Any attribute stored as a plain value (string, number, json, ...)."""

    target_field: str | None = Field(default=None, alias="targetField")
    enum: list[str] | None = None
    default: Any = None


def _attribute_tag(value: Any) -> str:
    raw_type = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    if raw_type in ("relation", "component", "dynamiczone", "media"):
        return str(raw_type)
    return "scalar"


Attribute = Annotated[
    Union[
        Annotated[RelationAttribute, Tag("relation")],
        Annotated[ComponentAttribute, Tag("component")],
        Annotated[DynamicZoneAttribute, Tag("dynamiczone")],
        Annotated[MediaAttribute, Tag("media")],
        Annotated[ScalarAttribute, Tag("scalar")],
    ],
    Discriminator(_attribute_tag),
]


def is_relation_attribute(attribute: BaseAttribute) -> bool:
    return isinstance(attribute, RelationAttribute)


def is_component_attribute(attribute: BaseAttribute) -> bool:
    return isinstance(attribute, ComponentAttribute)


def is_dynamic_zone_attribute(attribute: BaseAttribute) -> bool:
    return isinstance(attribute, DynamicZoneAttribute)


def is_media_attribute(attribute: BaseAttribute) -> bool:
    return isinstance(attribute, MediaAttribute)


def is_special_attribute(attribute: BaseAttribute) -> bool:
    """Check whether an attribute needs populating to be read in full."""
    return attribute.kind is not AttributeKind.SCALAR


class SchemaInfo(BaseModel):
    """Naming metadata of a schema."""

    model_config = ConfigDict(populate_by_name=True)

    display_name: str = Field(default="", alias="displayName")
    singular_name: str | None = Field(default=None, alias="singularName")
    plural_name: str | None = Field(default=None, alias="pluralName")
    description: str | None = None


class ContentTypeSchema(BaseModel):
    """Schema of a content type or component.

    Example:
        >>> schema = ContentTypeSchema.from_raw(
        ...     "api::article.article",
        ...     {
        ...         "kind": "collectionType",
        ...         "info": {"displayName": "Article", "pluralName": "articles"},
        ...         "attributes": {
        ...             "title": {"type": "string", "required": True, "unique": True},
        ...             "category": {
        ...                 "type": "relation",
        ...                 "relation": "manyToOne",
        ...                 "target": "api::category.category",
        ...             },
        ...         },
        ...     },
        ... )
        >>> schema.relation_fields()
        ['category']
    """

    model_config = ConfigDict(populate_by_name=True)

    uid: str
    kind: ContentTypeKind = ContentTypeKind.COLLECTION_TYPE
    info: SchemaInfo = Field(default_factory=SchemaInfo)
    attributes: dict[str, Attribute] = Field(default_factory=dict)
    options: dict[str, Any] = Field(default_factory=dict)
    plugin_options: dict[str, Any] = Field(default_factory=dict, alias="pluginOptions")
    category: str | None = None

    @classmethod
    def from_raw(cls, uid: str, raw: dict[str, Any]) -> "ContentTypeSchema":
        """Build a schema from a registry or content-type-builder payload.

        Handles both the nested ``info`` block and the flat v5 format where
        the names live at the top level of the schema.

        Args:
            uid: Content type or component UID
            raw: Raw schema dictionary

        Returns:
            Parsed schema
        """
        kind = raw.get("kind") or (
            ContentTypeKind.COMPONENT if raw.get("category") else ContentTypeKind.COLLECTION_TYPE
        )
        return cls.model_validate(
            {
                "uid": raw.get("uid") or uid,
                "kind": kind,
                "info": extract_info_from_schema(raw),
                "attributes": raw.get("attributes", {}),
                "options": raw.get("options") or {},
                "pluginOptions": raw.get("pluginOptions") or {},
                "category": raw.get("category"),
            }
        )

    @property
    def display_name(self) -> str:
        return self.info.display_name

    @property
    def singular_name(self) -> str | None:
        return self.info.singular_name

    @property
    def plural_name(self) -> str | None:
        return self.info.plural_name

    @property
    def is_single_type(self) -> bool:
        return self.kind is ContentTypeKind.SINGLE_TYPE

    @property
    def draft_and_publish(self) -> bool:
        return self.options.get("draftAndPublish", True) is not False

    @property
    def is_localized(self) -> bool:
        i18n = self.plugin_options.get("i18n") or {}
        return bool(i18n.get("localized", False))

    @property
    def configured_id_field(self) -> str | None:
        """Identifier field pinned through the import-export plugin options."""
        plugin = self.plugin_options.get(IMPORT_EXPORT_PLUGIN) or {}
        id_field = plugin.get("idField")
        return id_field if isinstance(id_field, str) and id_field else None

    def get_attribute(self, name: str) -> BaseAttribute | None:
        return self.attributes.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def relation_fields(self) -> list[str]:
        return [name for name, attr in self.attributes.items() if is_relation_attribute(attr)]

    def component_fields(self) -> list[str]:
        return [name for name, attr in self.attributes.items() if is_component_attribute(attr)]

    def special_fields(self) -> list[str]:
        return [name for name, attr in self.attributes.items() if is_special_attribute(attr)]
