"""Portable document format (version 3).

The wire format exchanged between export and import::

    {
        "version": 3,
        "data": {
            "api::article.article": [
                {
                    "published": {"default": {...}, "fr": {...}},
                    "draft": {"default": {...}}
                }
            ]
        }
    }

Relations inside locale objects hold the target's identifier value, media
fields hold :class:`MediaDescriptor` dicts and dynamic-zone items carry a
``__component`` tag.
"""

import json
from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

PORTABLE_FORMAT_VERSION = 3
DEFAULT_LOCALE = "default"
COMPONENT_KEY = "__component"

LocaleMap = dict[str, dict[str, Any]]


def first_locale(locale_map: LocaleMap) -> str:
    """Locale that settles the existing-entity decision: ``default`` or the first key."""
    if DEFAULT_LOCALE in locale_map:
        return DEFAULT_LOCALE
    return next(iter(locale_map))


def store_locale(locale: str) -> str | None:
    """Translate a locale-map key into the store's locale argument."""
    return None if locale == DEFAULT_LOCALE else locale


class MediaDescriptor(BaseModel):
    """Store-independent description of a media file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: str | None = None
    name: str | None = None
    caption: str | None = None
    hash: str | None = None
    alternative_text: str | None = Field(default=None, alias="alternativeText")
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")
    published_at: str | None = Field(default=None, alias="publishedAt")

    @property
    def extension(self) -> str:
        """Lower-case file extension taken from the name or URL, with the dot."""
        source = self.name or self.url or ""
        source = source.split("?", 1)[0]
        _, dot, ext = source.rpartition(".")
        return f".{ext.lower()}" if dot and "/" not in ext else ""

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class PortableEntry(BaseModel):
    """All versions of one document, keyed by status then locale."""

    model_config = ConfigDict(extra="forbid")

    draft: LocaleMap | None = None
    published: LocaleMap | None = None

    def versions(self) -> Iterator[tuple[str, LocaleMap]]:
        """Yield ``(status, locale_map)`` pairs, published first."""
        if self.published:
            yield "published", self.published
        if self.draft:
            yield "draft", self.draft

    def locale_objects(self) -> Iterator[dict[str, Any]]:
        for _, locale_map in self.versions():
            yield from locale_map.values()

    def identifier_values(self, id_field: str | None) -> list[Any]:
        """Distinct identifier values carried by the entry.

        The value of the first locale of the first version comes first; the
        values of the other locales and of the draft follow when they differ.
        """
        if id_field is None:
            return [None]
        values: list[Any] = []
        for _, locale_map in self.versions():
            if locale_map:
                values.append(locale_map[first_locale(locale_map)].get(id_field))
                break
        for data in self.locale_objects():
            value = data.get(id_field)
            if value is not None and value not in values:
                values.append(value)
        return values or [None]

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class PortableDocument(BaseModel):
    """Top-level export document."""

    version: int = PORTABLE_FORMAT_VERSION
    data: dict[str, list[PortableEntry]] = Field(default_factory=dict)

    def entry_count(self) -> int:
        return sum(len(entries) for entries in self.data.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "data": {
                uid: [entry.to_dict() for entry in entries] for uid, entries in self.data.items()
            },
        }

    def to_json(self) -> str:
        """Serialize the document as tab-indented JSON."""
        return json.dumps(self.to_dict(), indent="\t", ensure_ascii=False, default=str)
