"""Media helpers shared by the HTTP client, the stores and the transfer engine."""

import json
import mimetypes
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import urljoin, urlparse

# Strapi's allowedTypes groups for media attributes
MEDIA_TYPE_EXTENSIONS: dict[str, frozenset[str]] = {
    "images": frozenset(
        {".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp", ".avif", ".tiff", ".tif", ".ico", ".bmp"}
    ),
    "videos": frozenset({".mp4", ".mov", ".avi", ".mkv", ".webm", ".wmv", ".flv", ".mpeg"}),
    "audios": frozenset({".mp3", ".wav", ".ogg", ".flac", ".aac", ".m4a"}),
}


def build_upload_payload(
    content: bytes,
    filename: str,
    *,
    mime_type: str | None = None,
    alternative_text: str | None = None,
    caption: str | None = None,
    name: str | None = None,
) -> dict[str, Any]:
    """Build the multipart payload for ``POST /api/upload``.

    Args:
        content: File bytes
        filename: File name sent with the part
        mime_type: MIME type (guessed from the file name when omitted)
        alternative_text: Alt text for images
        caption: Caption text
        name: Display name stored in the media library

    Returns:
        Dictionary with a ``files`` part and an optional ``data`` form part
    """
    mime = mime_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
    payload: dict[str, Any] = {"files": (filename, content, mime)}

    file_info: dict[str, Any] = {}
    if alternative_text is not None:
        file_info["alternativeText"] = alternative_text
    if caption is not None:
        file_info["caption"] = caption
    if name is not None:
        file_info["name"] = name
    if file_info:
        # Nested objects travel as a JSON string in multipart forms
        payload["data"] = {"fileInfo": json.dumps(file_info)}

    return payload


def build_media_download_url(base_url: str, media_url: str) -> str:
    """Construct the full download URL for a media path.

    Example:
        >>> build_media_download_url("http://localhost:1337", "/uploads/image.jpg")
        'http://localhost:1337/uploads/image.jpg'
        >>> build_media_download_url("http://localhost:1337", "https://cdn.example.com/a.jpg")
        'https://cdn.example.com/a.jpg'
    """
    if is_absolute_url(media_url):
        return media_url
    return urljoin(base_url.rstrip("/") + "/", media_url.lstrip("/"))


def absolutize_media_url(url: str | None, public_url: str | None) -> str | None:
    """Prefix a relative ``/uploads/...`` path with the public host name."""
    if not url or not public_url or not url.startswith("/"):
        return url
    return f"{public_url.rstrip('/')}{url}"


def is_absolute_url(url: str | None) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def filename_from_url(url: str) -> str:
    """Last path segment of a URL, e.g. ``photo_abc123.jpg``."""
    return PurePosixPath(urlparse(url).path).name


def hash_from_filename(filename: str) -> str:
    """Strapi stores ``<hash><ext>``; strip the extension to get the hash."""
    return PurePosixPath(filename).stem


def is_extension_allowed(extension: str, allowed_types: list[str] | None) -> bool:
    """Check a file extension against a media attribute's ``allowedTypes``.

    ``None``, an empty list, ``any`` and ``files`` accept everything.

    Example:
        >>> is_extension_allowed(".png", ["images"])
        True
        >>> is_extension_allowed(".mp4", ["images", "audios"])
        False
    """
    if not allowed_types:
        return True
    extension = extension.lower()
    for group in allowed_types:
        if group in ("any", "files"):
            return True
        if extension in MEDIA_TYPE_EXTENSIONS.get(group, frozenset()):
            return True
    return False
