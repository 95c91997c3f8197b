"""Tests for media descriptors and the upload API file resolver."""

from collections.abc import Iterator

import httpx
import pytest
import respx

from strapi_transfer import MediaError, StrapiConfig, SyncClient
from strapi_transfer.export import MediaHandler
from strapi_transfer.export.media_handler import (
    coerce_media_descriptor,
    file_extension,
    to_media_descriptor,
)
from strapi_transfer.models.portable import MediaDescriptor

FILES = "http://localhost:1337/api/upload/files"
UPLOAD = "http://localhost:1337/api/upload"
CDN_PHOTO = "https://cdn.example.com/uploads/photo_abc.jpg"


@pytest.fixture
def handler(strapi_config: StrapiConfig) -> Iterator[MediaHandler]:
    """Media handler over a localhost client."""
    with SyncClient(strapi_config) as client:
        yield MediaHandler(client)


def listing(*files: dict) -> httpx.Response:
    return httpx.Response(200, json=list(files))


class TestDescriptors:
    """Test conversion between media records and descriptors."""

    def test_to_media_descriptor(self) -> None:
        """Test that relative URLs are made absolute with the public URL."""
        descriptor = to_media_descriptor(
            {
                "id": 3,
                "url": "/uploads/photo_abc.jpg",
                "name": "photo.jpg",
                "hash": "photo_abc",
                "alternativeText": "A photo",
                "mime": "image/jpeg",
            },
            public_url="https://cms.example.com/",
        )

        assert descriptor.to_dict() == {
            "url": "https://cms.example.com/uploads/photo_abc.jpg",
            "name": "photo.jpg",
            "caption": None,
            "hash": "photo_abc",
            "alternativeText": "A photo",
            "createdAt": None,
            "updatedAt": None,
            "publishedAt": None,
        }

    def test_coerce_media_descriptor(self) -> None:
        """Test the accepted input shapes."""
        assert coerce_media_descriptor(CDN_PHOTO).url == CDN_PHOTO
        assert coerce_media_descriptor({"name": "a.png", "extra": 1}).name == "a.png"
        descriptor = MediaDescriptor(hash="abc")
        assert coerce_media_descriptor(descriptor) is descriptor

    def test_coerce_invalid_value(self) -> None:
        """Test that other values are rejected."""
        with pytest.raises(MediaError, match="Invalid data format 'int' to import media"):
            coerce_media_descriptor(42)

    def test_file_extension(self) -> None:
        """Test that the stored extension wins over the name."""
        assert file_extension({"ext": ".PNG", "name": "a.jpg"}) == ".png"
        assert file_extension({"name": "clip.mp4"}) == ".mp4"
        assert file_extension({"url": "https://cdn.example.com/a.webp?w=10"}) == ".webp"


class TestMediaHandler:
    """Test the find-or-import lookup order."""

    @respx.mock
    def test_found_by_hash(self, handler: MediaHandler) -> None:
        """Test that a hash prefix match is used first."""
        route = respx.get(FILES).mock(return_value=listing({"id": 1, "ext": ".jpg"}))

        found = handler.find_or_import_file(
            MediaDescriptor(hash="photo_abc", name="photo.jpg"), ["images"]
        )

        assert found == {"id": 1, "ext": ".jpg"}
        assert route.call_count == 1
        params = route.calls.last.request.url.params
        assert params["filters[hash][$startsWith]"] == "photo_abc"
        assert params["pagination[limit]"] == "1"

    @respx.mock
    def test_found_by_name(self, handler: MediaHandler) -> None:
        """Test the name lookup after a hash miss."""
        route = respx.get(FILES)
        route.side_effect = [listing(), listing({"id": 2, "name": "photo.jpg"})]

        found = handler.find_or_import_file(MediaDescriptor(hash="photo_abc", name="photo.jpg"))

        assert found == {"id": 2, "name": "photo.jpg"}
        assert route.calls[1].request.url.params["filters[name]"] == "photo.jpg"

    @respx.mock
    def test_imports_from_url(self, handler: MediaHandler) -> None:
        """Test download and upload when the library has no match."""
        files = respx.get(FILES).mock(return_value=listing())
        download = respx.get(CDN_PHOTO).mock(return_value=httpx.Response(200, content=b"jpeg"))
        upload = respx.post(UPLOAD).mock(
            return_value=httpx.Response(200, json=[{"id": 9, "name": "photo.jpg", "ext": ".jpg"}])
        )

        found = handler.find_or_import_file(
            MediaDescriptor(url=CDN_PHOTO, name="photo.jpg"), ["images"]
        )

        assert found == {"id": 9, "name": "photo.jpg", "ext": ".jpg"}
        assert files.call_count == 3
        assert files.calls[1].request.url.params["filters[hash][$startsWith]"] == "photo_abc"
        assert download.called
        body = upload.calls.last.request.content
        assert b"photo_abc.jpg" in body
        assert b"fileInfo" in body

    @respx.mock
    def test_relative_url_not_found(self, handler: MediaHandler) -> None:
        """Test that relative URLs can't be imported."""
        route = respx.get(FILES).mock(return_value=listing())

        descriptor = MediaDescriptor(url="/uploads/a.jpg", name="a.jpg")

        assert handler.find_or_import_file(descriptor) is None
        assert route.call_count == 1

    @respx.mock
    def test_found_file_of_wrong_type(self, handler: MediaHandler) -> None:
        """Test that an existing file outside allowedTypes is refused."""
        respx.get(FILES).mock(return_value=listing({"id": 4, "name": "clip.mp4", "ext": ".mp4"}))

        assert handler.find_or_import_file(MediaDescriptor(name="clip.mp4"), ["images"]) is None

    @respx.mock
    def test_does_not_import_wrong_type(self, handler: MediaHandler) -> None:
        """Test that disallowed files are not downloaded."""
        respx.get(FILES).mock(return_value=listing())
        download = respx.get("https://cdn.example.com/clip.mp4")

        found = handler.find_or_import_file(
            MediaDescriptor(url="https://cdn.example.com/clip.mp4"), ["images"]
        )

        assert found is None
        assert not download.called

    @respx.mock
    def test_import_failure(self, handler: MediaHandler) -> None:
        """Test that transport failures surface as MediaError."""
        respx.get(FILES).mock(return_value=listing())
        respx.get(CDN_PHOTO).mock(return_value=httpx.Response(404, text="missing"))

        with pytest.raises(MediaError, match="Failed to import media from"):
            handler.find_or_import_file(MediaDescriptor(url=CDN_PHOTO))
