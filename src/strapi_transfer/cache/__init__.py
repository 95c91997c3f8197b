"""Schema registries and caches."""

from .schema_cache import InMemorySchemaCache, StaticSchemaRegistry

__all__ = ["InMemorySchemaCache", "StaticSchemaRegistry"]
