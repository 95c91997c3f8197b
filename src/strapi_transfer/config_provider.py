"""Configuration factory.

Builds :class:`StrapiConfig` instances from explicit values, dictionaries,
environment variables or ``.env`` files, converting pydantic validation
errors into :class:`ConfigurationError`.
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigurationError
from .models.config import RetryConfig, StrapiConfig, TransferConfig

logger = logging.getLogger(__name__)

DEFAULT_ENV_SEARCH_PATHS = (".env", ".env.local", "~/.config/strapi/.env")


def _invalid(error: PydanticValidationError) -> ConfigurationError:
    return ConfigurationError(
        f"Invalid configuration: {error}",
        details={"errors": error.errors(include_url=False)},
    )


class ConfigFactory:
    """Factory methods for creating configurations.

    Example:
        >>> config = ConfigFactory.from_env(search_paths=[".env.local", ".env"])
        >>> with SyncClient(config) as client:
        ...     exporter = StrapiExporter.for_client(client)
    """

    @staticmethod
    def create(
        base_url: str,
        api_token: str,
        *,
        retry: RetryConfig | dict[str, Any] | None = None,
        transfer: TransferConfig | dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> StrapiConfig:
        """Create a configuration from explicit values (no .env lookup).

        Raises:
            ConfigurationError: If a value fails validation
        """
        values: dict[str, Any] = {"base_url": base_url, "api_token": api_token, **kwargs}
        if retry is not None:
            values["retry"] = retry
        if transfer is not None:
            values["transfer"] = transfer
        try:
            return StrapiConfig(_env_file=None, **values)
        except PydanticValidationError as e:
            raise _invalid(e) from e

    @staticmethod
    def from_dict(config_dict: dict[str, Any]) -> StrapiConfig:
        """Create a configuration from a (possibly nested) dictionary."""
        try:
            return StrapiConfig(_env_file=None, **config_dict)
        except PydanticValidationError as e:
            raise _invalid(e) from e

    @staticmethod
    def from_environment_only() -> StrapiConfig:
        """Create a configuration from ``STRAPI_*`` environment variables only."""
        try:
            return StrapiConfig(_env_file=None)  # type: ignore[call-arg]
        except PydanticValidationError as e:
            raise _invalid(e) from e

    @staticmethod
    def from_env_file(env_file: str | Path, required: bool = False) -> StrapiConfig:
        """Create a configuration from a specific ``.env`` file.

        Environment variables still take precedence over file values.

        Args:
            env_file: Path to the file
            required: Fail when the file does not exist instead of falling
                back to environment variables

        Raises:
            ConfigurationError: If the file is required but missing, or
                values are invalid
        """
        path = Path(env_file).expanduser()
        if not path.is_file():
            if required:
                raise ConfigurationError(f".env file not found: {path}")
            logger.debug(f".env file {path} not found, using environment only")
            return ConfigFactory.from_environment_only()

        try:
            return StrapiConfig(_env_file=path)  # type: ignore[call-arg]
        except PydanticValidationError as e:
            raise _invalid(e) from e

    @staticmethod
    def from_env(
        search_paths: list[str] | None = None,
        required: bool = False,
    ) -> StrapiConfig:
        """Create a configuration from the first ``.env`` file found.

        Args:
            search_paths: Candidate files, first match wins
            required: Fail when none of the files exists

        Raises:
            ConfigurationError: If required and no file was found
        """
        paths = search_paths if search_paths is not None else list(DEFAULT_ENV_SEARCH_PATHS)
        for candidate in paths:
            path = Path(candidate).expanduser()
            if path.is_file():
                logger.info(f"Loading configuration from {path}")
                return ConfigFactory.from_env_file(path, required=True)

        if required:
            raise ConfigurationError(f"No .env file found in search paths: {', '.join(paths)}")
        return ConfigFactory.from_environment_only()

    @staticmethod
    def merge(*configs: StrapiConfig, base: StrapiConfig | None = None) -> StrapiConfig:
        """Merge configurations; later ones override explicitly set fields of earlier ones.

        Raises:
            ValueError: If no configuration is given
        """
        ordered = ([base] if base is not None else []) + list(configs)
        if not ordered:
            raise ValueError("At least one config is required to merge")

        merged: dict[str, Any] = {}
        for config in ordered:
            for field_name in config.model_fields_set:
                merged[field_name] = getattr(config, field_name)
        merged.setdefault("base_url", ordered[-1].base_url)
        merged.setdefault("api_token", ordered[-1].api_token)
        return ConfigFactory.from_dict(merged)


def load_config(env_file: str | Path | None = None, required: bool = False) -> StrapiConfig:
    """Load configuration from a given ``.env`` file or the default search paths."""
    if env_file is not None:
        return ConfigFactory.from_env_file(env_file, required=required)
    return ConfigFactory.from_env(required=required)


def create_config(base_url: str, api_token: str, **kwargs: Any) -> StrapiConfig:
    """Shortcut for :meth:`ConfigFactory.create`."""
    return ConfigFactory.create(base_url, api_token, **kwargs)
