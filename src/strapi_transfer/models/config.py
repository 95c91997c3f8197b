"""Configuration models.

Settings are read from keyword arguments, ``STRAPI_*`` environment
variables and ``.env`` files through pydantic-settings.
"""

from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RetryConfig(BaseSettings):
    """Retry policy for transient HTTP failures (5xx, connection errors)."""

    model_config = SettingsConfigDict(env_prefix="STRAPI_RETRY_", extra="ignore")

    max_attempts: int = Field(default=3, ge=1, le=20)
    initial_wait: float = Field(default=1.0, ge=0)
    max_wait: float = Field(default=30.0, ge=0)
    exponential_base: float = Field(default=2.0, gt=0)


class TransferConfig(BaseSettings):
    """Defaults for export/import runs against a live instance."""

    model_config = SettingsConfigDict(env_prefix="STRAPI_TRANSFER_", extra="ignore")

    public_url: str | None = Field(
        default=None,
        description="Prefix used to absolutize relative media URLs on export",
    )
    populate_depth: int = Field(default=5, ge=0, le=20)
    page_size: int = Field(default=100, ge=1, le=1000)


class StrapiConfig(BaseSettings):
    """Connection settings for a Strapi instance.

    Example:
        >>> config = StrapiConfig(
        ...     base_url="http://localhost:1337",
        ...     api_token="your-token",
        ... )
        >>> config.get_base_url()
        'http://localhost:1337'
    """

    model_config = SettingsConfigDict(
        env_prefix="STRAPI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str
    api_token: SecretStr
    api_version: Literal["auto", "v4", "v5"] = "auto"
    timeout: float = Field(default=30.0, gt=0)
    max_connections: int = Field(default=10, ge=1)
    verify_ssl: bool = True
    retry: RetryConfig = Field(default_factory=RetryConfig)
    transfer: TransferConfig = Field(default_factory=TransferConfig)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return value.rstrip("/")

    def get_base_url(self) -> str:
        return self.base_url

    def get_api_token(self) -> str:
        return self.api_token.get_secret_value()

    def get_public_url(self) -> str:
        """Public URL media paths are resolved against (defaults to base_url)."""
        return (self.transfer.public_url or self.base_url).rstrip("/")
