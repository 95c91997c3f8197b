"""Tests for media helpers."""

import json

import pytest

from strapi_transfer.operations.media import (
    absolutize_media_url,
    build_media_download_url,
    build_upload_payload,
    filename_from_url,
    hash_from_filename,
    is_absolute_url,
    is_extension_allowed,
)


class TestUploadPayload:
    """Test multipart payload construction."""

    def test_minimal(self) -> None:
        """Test a payload without file info."""
        payload = build_upload_payload(b"data", "photo.png")

        assert payload == {"files": ("photo.png", b"data", "image/png")}

    def test_unknown_mime(self) -> None:
        """Test the fallback MIME type."""
        payload = build_upload_payload(b"data", "blob.unknownext")

        assert payload["files"][2] == "application/octet-stream"

    def test_file_info(self) -> None:
        """Test that metadata travels as a JSON string."""
        payload = build_upload_payload(
            b"data",
            "photo.png",
            mime_type="image/x-custom",
            alternative_text="Alt",
            caption="Caption",
            name="Photo",
        )

        assert payload["files"][2] == "image/x-custom"
        assert json.loads(payload["data"]["fileInfo"]) == {
            "alternativeText": "Alt",
            "caption": "Caption",
            "name": "Photo",
        }


class TestUrls:
    """Test media URL helpers."""

    def test_download_url(self) -> None:
        """Test relative and absolute media URLs."""
        assert (
            build_media_download_url("http://localhost:1337/", "/uploads/a.jpg")
            == "http://localhost:1337/uploads/a.jpg"
        )
        assert (
            build_media_download_url("http://localhost:1337", "https://cdn.example.com/a.jpg")
            == "https://cdn.example.com/a.jpg"
        )

    def test_absolutize(self) -> None:
        """Test that only relative paths get the public URL."""
        assert (
            absolutize_media_url("/uploads/a.jpg", "https://cms.example.com/")
            == "https://cms.example.com/uploads/a.jpg"
        )
        assert absolutize_media_url("https://cdn.example.com/a.jpg", "https://x") == (
            "https://cdn.example.com/a.jpg"
        )
        assert absolutize_media_url("/uploads/a.jpg", None) == "/uploads/a.jpg"
        assert absolutize_media_url(None, "https://x") is None

    def test_is_absolute_url(self) -> None:
        """Test absolute URL detection."""
        assert is_absolute_url("https://cdn.example.com/a.jpg")
        assert not is_absolute_url("/uploads/a.jpg")
        assert not is_absolute_url("ftp://host/a.jpg")
        assert not is_absolute_url(None)

    def test_filename_and_hash(self) -> None:
        """Test that the stored hash is the filename stem."""
        filename = filename_from_url("https://cdn.example.com/uploads/photo_abc123.jpg?v=2")

        assert filename == "photo_abc123.jpg"
        assert hash_from_filename(filename) == "photo_abc123"


@pytest.mark.parametrize(
    ("extension", "allowed", "expected"),
    [
        (".png", None, True),
        (".png", [], True),
        (".exe", ["files"], True),
        (".exe", ["any"], True),
        (".PNG", ["images"], True),
        (".mp4", ["images", "audios"], False),
        (".mp4", ["videos"], True),
        (".mp3", ["audios"], True),
        ("", ["images"], False),
    ],
)
def test_is_extension_allowed(extension: str, allowed: list[str] | None, expected: bool) -> None:
    """Test allowedTypes groups."""
    assert is_extension_allowed(extension, allowed) is expected
