"""Relation lookup strategies.

When a relation value cannot be matched on the target's identifier field,
fuzzy mode searches a "display" field instead and may create the missing
target. Which field to search, how to label the target in messages and what
to fill into an auto-created entity is content-type specific; this table
holds those choices as data, keyed by content type UID, so callers can
override them without touching the resolver.

Example:
    >>> table = RelationStrategyTable.with_defaults()
    >>> table.register(
    ...     "api::city.city",
    ...     RelationStrategy(search_field="name", label="City", code_field="code"),
    ... )
    >>> table.get("api::city.city").search_field
    'name'
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..models.schema import ContentTypeSchema
from ..utils.uid import extract_model_name

DEFAULT_SEARCH_FIELD = "title"

# Localized synonyms tried when matching country names
COUNTRY_NAME_VARIATIONS: dict[str, list[str]] = {
    "China": ["Китай", "China", "People's Republic of China"],
    "Китай": ["China", "Китай", "People's Republic of China"],
    "Russia": ["Россия", "Russian Federation", "Russia"],
    "Russian Federation": ["Россия", "Russia", "Russian Federation"],
    "Россия": ["Russia", "Russian Federation", "Россия"],
    "USA": ["United States", "United States of America", "США", "USA"],
    "United States": ["USA", "United States of America", "США", "United States"],
    "United States of America": ["USA", "United States", "США", "United States of America"],
    "США": ["USA", "United States", "United States of America", "США"],
    "Germany": ["Германия", "Germany", "Deutschland"],
    "Германия": ["Germany", "Германия", "Deutschland"],
    "Kazakhstan": ["Казахстан", "Kazakhstan"],
    "Казахстан": ["Kazakhstan", "Казахстан"],
    "United Kingdom": ["UK", "Great Britain", "Britain", "Великобритания", "United Kingdom"],
    "UK": ["United Kingdom", "Great Britain", "Britain", "Великобритания", "UK"],
    "North Korea": ["DPRK", "Democratic People's Republic of Korea", "Северная Корея"],
    "South Korea": ["Korea", "Republic of Korea", "Южная Корея"],
    "Iran, Islamic Republic of": ["Iran", "Иран"],
    "Iran": ["Iran, Islamic Republic of", "Иран"],
    "Lao People's Democratic Republic": ["Laos", "Лаос"],
    "Palestinian Territory, Occupied": ["Palestine", "Палестина"],
}


class RelationStrategy(BaseModel):
    """How to find, and optionally create, targets of one content type.

    Attributes:
        search_field: Field matched against the relation value in fuzzy mode
        label: Human-readable name of the content type for messages
        defaults: Extra fields of auto-created entities; string values may
            use ``{name}``
        code_field: Field that receives a unique short code on creation
        variations: Alternative spellings tried for a value
        match_slug: Also try the slugified value against a ``slug`` field
    """

    model_config = ConfigDict(frozen=True)

    search_field: str = DEFAULT_SEARCH_FIELD
    label: str | None = None
    defaults: dict[str, Any] = Field(default_factory=dict)
    code_field: str | None = None
    variations: dict[str, list[str]] = Field(default_factory=dict)
    match_slug: bool = False

    def variations_for(self, value: str) -> list[str]:
        """The value followed by its known variations, without duplicates."""
        candidates = [value, *self.variations.get(value, [])]
        return list(dict.fromkeys(candidates))

    def render_defaults(self, name: str) -> dict[str, Any]:
        return {
            key: value.format(name=name) if isinstance(value, str) else value
            for key, value in self.defaults.items()
        }


def _title(label: str, **kwargs: Any) -> RelationStrategy:
    return RelationStrategy(search_field="title", label=label, **kwargs)


def _name(label: str, **kwargs: Any) -> RelationStrategy:
    return RelationStrategy(search_field="name", label=label, **kwargs)


DEFAULT_STRATEGIES: dict[str, RelationStrategy] = {
    "api::faq.faq": _title("FAQ", defaults={"richText": "Auto-generated FAQ: {name}"}),
    "api::faq-category.faq-category": _title(
        "FAQ Category",
        defaults={
            "richText": "Auto-generated FAQ Category: {name}",
            "iconName": "QuestionMarkIcon",
        },
    ),
    "api::modal.modal": _title("Modal", defaults={"showHeader": True, "isTitleCenter": False}),
    "api::card.card": _title("Card", defaults={"content": "Auto-generated card: {name}"}),
    "api::template.template": _name("Template", defaults={"dynamicZone": []}, match_slug=True),
    "api::country.country": _name(
        "Country", code_field="code", variations=COUNTRY_NAME_VARIATIONS
    ),
    "api::category.category": _title(
        "Category", defaults={"description": "Auto-generated category: {name}"}
    ),
    "api::tag.tag": _name("Tag", defaults={"description": "Auto-generated tag: {name}"}),
    "api::product.product": _title("Product"),
    "api::service.service": _title("Service"),
    "api::page.page": _title("Page"),
    "api::article.article": _title("Article"),
    "api::news.news": _title("News"),
    "api::blog.blog": _title("Blog"),
    "api::post.post": _title("Post"),
    "api::user.user": RelationStrategy(search_field="username", label="User"),
    "api::author.author": _name("Author"),
    "api::brand.brand": _name("Brand"),
    "api::manufacturer.manufacturer": _name("Manufacturer"),
}


class RelationStrategyTable:
    """Strategies keyed by content type UID, with a fallback strategy."""

    def __init__(
        self,
        strategies: Mapping[str, RelationStrategy] | None = None,
        fallback: RelationStrategy | None = None,
    ) -> None:
        self._strategies: dict[str, RelationStrategy] = dict(strategies or {})
        self.fallback = fallback or RelationStrategy()

    @classmethod
    def with_defaults(cls) -> "RelationStrategyTable":
        return cls(DEFAULT_STRATEGIES)

    def register(self, uid: str, strategy: RelationStrategy) -> None:
        self._strategies[uid] = strategy

    def get(self, uid: str) -> RelationStrategy:
        return self._strategies.get(uid, self.fallback)

    def __contains__(self, uid: object) -> bool:
        return uid in self._strategies

    def search_field_for(self, schema: ContentTypeSchema, id_field: str) -> str:
        """Search field of a schema, falling back to its identifier field."""
        field = self.get(schema.uid).search_field
        return field if schema.has_attribute(field) else id_field

    def label_for(self, uid: str) -> str:
        strategy = self._strategies.get(uid)
        if strategy and strategy.label:
            return strategy.label
        return extract_model_name(uid) or "Entity"
