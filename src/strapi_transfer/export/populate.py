"""Populate plans.

A populate plan tells the store which non-scalar fields to load so that a
whole entry graph can be read with one query::

    {
        "cover": True,
        "category": True,
        "seo": {"populate": {"image": True}},
        "blocks": {"on": {"blocks.hero": {"populate": {"image": True}}, "blocks.text": True}},
    }

Relations and media are populated shallowly. Components and dynamic zones
recurse with a decreasing depth limit, which bounds the walk on mutually
recursive component graphs.
"""

import logging
from typing import Any

from ..models.schema import (
    ComponentAttribute,
    ContentTypeSchema,
    DynamicZoneAttribute,
    MediaAttribute,
    RelationAttribute,
)
from ..protocols import PopulateSpec, SchemaRegistry

logger = logging.getLogger(__name__)

DEFAULT_POPULATE_DEPTH = 5


class PopulatePlanBuilder:
    """Builds populate plans, memoized per ``(uid, depth)``."""

    def __init__(self, registry: SchemaRegistry) -> None:
        self.registry = registry
        self._memo: dict[tuple[str, int], PopulateSpec] = {}

    def build(self, uid: str, max_depth: int = DEFAULT_POPULATE_DEPTH) -> PopulateSpec:
        """Plan for a content type or component.

        Returns ``True`` (populate everything) when the depth limit is spent
        or the schema is unknown, otherwise a mapping of field to sub plan.
        The mapping may be empty when the schema has no special fields.
        """
        if max_depth < 1:
            logger.debug(f"Populate depth exhausted at {uid}")
            return True

        key = (uid, max_depth)
        if key in self._memo:
            return self._memo[key]

        schema = self.registry.get_model(uid)
        if schema is None:
            logger.debug(f"No schema for {uid}, populating everything")
            return True

        plan: dict[str, Any] = {}
        for name, attribute in schema.attributes.items():
            if isinstance(attribute, (RelationAttribute, MediaAttribute)):
                plan[name] = True
            elif isinstance(attribute, ComponentAttribute):
                plan[name] = _wrap(self.build(attribute.component, max_depth - 1))
            elif isinstance(attribute, DynamicZoneAttribute):
                plan[name] = self._dynamic_zone(attribute, max_depth - 1)

        self._memo[key] = plan
        return plan

    def _dynamic_zone(self, attribute: DynamicZoneAttribute, depth: int) -> PopulateSpec:
        fragments = {
            component: _wrap(self.build(component, depth)) for component in attribute.components
        }
        if all(fragment is True for fragment in fragments.values()):
            return True
        return {"on": fragments}

    def clear(self) -> None:
        self._memo.clear()


def _wrap(sub_plan: PopulateSpec) -> PopulateSpec:
    if isinstance(sub_plan, dict) and sub_plan:
        return {"populate": sub_plan}
    return True


def build_populate_plan(
    schema: ContentTypeSchema | str,
    registry: SchemaRegistry,
    max_depth: int = DEFAULT_POPULATE_DEPTH,
) -> PopulateSpec:
    """One-off plan without keeping a builder around."""
    uid = schema if isinstance(schema, str) else schema.uid
    return PopulatePlanBuilder(registry).build(uid, max_depth)
