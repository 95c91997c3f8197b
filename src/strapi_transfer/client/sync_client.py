"""Synchronous HTTP client for the Strapi REST API.

Transfers are sequential by nature (relation resolution may create a
dependency mid-walk), so a blocking client is all the engine needs.
"""

import logging
from pathlib import Path
from typing import Any

import httpx

from ..exceptions import (
    ConnectionError as StrapiConnectionError,
)
from ..exceptions import (
    MediaError,
    StrapiError,
)
from ..exceptions import (
    TimeoutError as StrapiTimeoutError,
)
from ..operations.media import build_media_download_url, build_upload_payload
from ..protocols import AuthProvider, ConfigProvider, HTTPClient
from .base import BaseClient

logger = logging.getLogger(__name__)


class SyncClient(BaseClient):
    """Synchronous HTTP client for Strapi.

    Example:
        ```python
        from strapi_transfer import StrapiConfig, SyncClient

        config = StrapiConfig(base_url="http://localhost:1337", api_token="your-token")

        with SyncClient(config) as client:
            response = client.get("articles", params={"pagination[pageSize]": "10"})
        ```
    """

    def __init__(
        self,
        config: ConfigProvider,
        http_client: HTTPClient | None = None,
        auth: AuthProvider | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Configuration provider (typically StrapiConfig)
            http_client: HTTP client (defaults to an httpx.Client with pooling)
            auth: Authentication provider (defaults to API token auth)
        """
        super().__init__(config, auth=auth)

        self._client: HTTPClient | httpx.Client = http_client or self._create_default_http_client()
        self._owns_client = http_client is None
        self._send = self._create_retry_decorator()(self._send_once)

    def _create_default_http_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.config.timeout,
            verify=self.config.verify_ssl,
            limits=httpx.Limits(
                max_connections=self.config.max_connections,
                max_keepalive_connections=self.config.max_connections,
            ),
        )

    def __enter__(self) -> "SyncClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            self._client.close()
        logger.info("Closed synchronous Strapi client")

    def _send_once(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None,
        json: dict[str, Any] | None,
        headers: dict[str, str],
    ) -> httpx.Response:
        try:
            response = self._client.request(
                method=method,
                url=url,
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.ConnectError as e:
            raise StrapiConnectionError(f"Failed to connect to {self.base_url}: {e}") from e
        except httpx.TimeoutException as e:
            raise StrapiTimeoutError(
                f"Request timed out after {self.config.timeout}s: {e}"
            ) from e

        if not response.is_success:
            self._handle_error_response(response)
        return response

    def request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Make an HTTP request to the Strapi API.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            endpoint: API endpoint path
            params: URL query parameters
            json: JSON request body
            headers: Additional headers

        Returns:
            Decoded JSON body (``{}`` for empty responses)

        Raises:
            StrapiError: On API errors
            ConnectionError: On connection failures (after retries)
            TimeoutError: On request timeout
        """
        url = self._build_url(endpoint)
        logger.debug(f"{method} {url} params={params}")

        response = self._send(method, url, params, json, self._get_headers(headers))

        logger.debug(f"Response: {response.status_code}")
        if not response.content:
            return {}
        return response.json()

    def get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return self.request("GET", endpoint, params=params, headers=headers)

    def post(
        self,
        endpoint: str,
        json: dict[str, Any],
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return self.request("POST", endpoint, params=params, json=json, headers=headers)

    def put(
        self,
        endpoint: str,
        json: dict[str, Any],
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return self.request("PUT", endpoint, params=params, json=json, headers=headers)

    def delete(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return self.request("DELETE", endpoint, params=params, headers=headers)

    # Media operations

    def upload_bytes(
        self,
        content: bytes,
        filename: str,
        *,
        mime_type: str | None = None,
        alternative_text: str | None = None,
        caption: str | None = None,
        name: str | None = None,
    ) -> dict[str, Any]:
        """Upload in-memory file content to the media library.

        Returns:
            The created file record

        Raises:
            MediaError: On upload failure
        """
        payload = build_upload_payload(
            content,
            filename,
            mime_type=mime_type,
            alternative_text=alternative_text,
            caption=caption,
            name=name,
        )
        try:
            response = self._client.post(
                self._build_url("upload"),
                files={"files": payload["files"]},
                data=payload.get("data"),
                headers=self._build_upload_headers(),
            )
            if not response.is_success:
                self._handle_error_response(response)
        except (httpx.HTTPError, StrapiError) as e:
            raise MediaError(f"File upload failed: {e}") from e

        uploaded = response.json()
        # The upload endpoint answers with a list, one record per file
        if isinstance(uploaded, list):
            if not uploaded:
                raise MediaError("File upload failed: empty response")
            return dict(uploaded[0])
        return dict(uploaded)

    def upload_file(self, file_path: str | Path, **kwargs: Any) -> dict[str, Any]:
        """Upload a file from disk.

        Raises:
            FileNotFoundError: If the file doesn't exist
            MediaError: On upload failure
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")
        return self.upload_bytes(path.read_bytes(), path.name, **kwargs)

    def download_file(self, media_url: str, save_path: str | Path | None = None) -> bytes:
        """Download a media file (relative ``/uploads/...`` path or absolute URL).

        Raises:
            MediaError: On download failure
        """
        url = build_media_download_url(self.base_url, media_url)
        try:
            with self._client.stream("GET", url) as response:
                if not response.is_success:
                    response.read()
                    self._handle_error_response(response)
                content = b"".join(response.iter_bytes())
        except (httpx.HTTPError, StrapiError) as e:
            raise MediaError(f"File download failed: {e}") from e

        if save_path:
            Path(save_path).write_bytes(content)
            logger.info(f"Downloaded {len(content)} bytes to {save_path}")
        return content

    def list_media(self, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """List media library files matching query parameters."""
        files = self.get("upload/files", params=params)
        if isinstance(files, dict):
            # Some deployments wrap the list in a data envelope
            files = files.get("data") or files.get("results") or []
        return [dict(item) for item in files]
