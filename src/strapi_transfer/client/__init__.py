"""HTTP client for the Strapi REST API."""

from .base import BaseClient
from .sync_client import SyncClient

__all__ = ["BaseClient", "SyncClient"]
