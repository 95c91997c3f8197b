"""Media descriptors and the HTTP file resolver.

Export turns media library records into :class:`MediaDescriptor` dicts with
absolute URLs; import hands them to a :class:`FileResolver`, which finds the
matching file in the target library or imports it from its URL.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..exceptions import MediaError, StrapiError
from ..models.portable import MediaDescriptor
from ..operations.media import (
    absolutize_media_url,
    filename_from_url,
    hash_from_filename,
    is_absolute_url,
    is_extension_allowed,
)
from ..utils.query import encode_query_params

if TYPE_CHECKING:
    from ..client.sync_client import SyncClient

logger = logging.getLogger(__name__)


def to_media_descriptor(file: dict[str, Any], public_url: str | None = None) -> MediaDescriptor:
    """Describe a media library record independently of the store it lives in."""
    return MediaDescriptor(
        url=absolutize_media_url(file.get("url"), public_url),
        name=file.get("name"),
        caption=file.get("caption"),
        hash=file.get("hash"),
        alternativeText=file.get("alternativeText"),
        createdAt=file.get("createdAt"),
        updatedAt=file.get("updatedAt"),
        publishedAt=file.get("publishedAt"),
    )


def coerce_media_descriptor(value: Any) -> MediaDescriptor:
    """Accept a descriptor dict or a bare URL string.

    Raises:
        MediaError: For any other value
    """
    if isinstance(value, MediaDescriptor):
        return value
    if isinstance(value, str):
        return MediaDescriptor(url=value)
    if isinstance(value, dict):
        return MediaDescriptor.model_validate(value)
    raise MediaError(
        f"Invalid data format '{type(value).__name__}' to import media. "
        "Only 'string' and 'object' are accepted."
    )


def file_extension(file: dict[str, Any]) -> str:
    ext = file.get("ext")
    if ext:
        return str(ext).lower()
    return MediaDescriptor(name=file.get("name"), url=file.get("url")).extension


class MediaHandler:
    """:class:`~strapi_transfer.protocols.FileResolver` backed by the upload API.

    Lookup order: an existing file whose hash starts with the descriptor's
    hash, then one with the same name, then a download of the absolute URL
    followed by an upload into the target library.
    """

    def __init__(self, client: SyncClient) -> None:
        self.client = client

    def find_or_import_file(
        self,
        descriptor: MediaDescriptor,
        allowed_types: list[str] | None = None,
    ) -> dict[str, Any] | None:
        found = self._find(descriptor)
        if found is None and descriptor.url and is_absolute_url(descriptor.url):
            filename = filename_from_url(descriptor.url)
            fallback = descriptor.model_copy(
                update={
                    "name": descriptor.name or filename,
                    "hash": descriptor.hash or hash_from_filename(filename),
                }
            )
            found = self._find(fallback) or self._import(fallback, allowed_types)
        elif found is None:
            logger.debug(f"Skipping media with relative URL {descriptor.url}")

        if found is None:
            return None
        if not is_extension_allowed(file_extension(found), allowed_types):
            logger.warning(f"Media {found.get('name')} refused: type not in {allowed_types}")
            return None
        return found

    def _find(self, descriptor: MediaDescriptor) -> dict[str, Any] | None:
        if descriptor.hash:
            files = self._list({"hash": {"$startsWith": descriptor.hash}})
            if files:
                return files[0]
        if descriptor.name:
            files = self._list({"name": descriptor.name})
            if files:
                return files[0]
        return None

    def _list(self, filters: dict[str, Any]) -> list[dict[str, Any]]:
        params = encode_query_params({"filters": filters, "pagination": {"limit": 1}})
        return self.client.list_media(params)

    def _import(
        self,
        descriptor: MediaDescriptor,
        allowed_types: list[str] | None,
    ) -> dict[str, Any] | None:
        if not is_extension_allowed(descriptor.extension, allowed_types):
            logger.warning(f"Not importing {descriptor.url}: type not in {allowed_types}")
            return None
        try:
            content = self.client.download_file(descriptor.url or "")
            uploaded = self.client.upload_bytes(
                content,
                filename_from_url(descriptor.url or ""),
                alternative_text=descriptor.alternative_text,
                caption=descriptor.caption,
                name=descriptor.name,
            )
        except StrapiError as e:
            raise MediaError(f"Failed to import media from {descriptor.url}: {e}") from e
        logger.info(f"Imported media {uploaded.get('name')} from {descriptor.url}")
        return uploaded
