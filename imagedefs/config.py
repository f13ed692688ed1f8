"""Configuration settings for imagedefs.

Uses pydantic-settings for config parsing from environment variables, the
repository config file and defaults. Configuration precedence:
env vars > config file > defaults.

Every recognized property is listed in CONFIG_KEYS under its camelCase
name, as it appears in the repository config file. The matching
environment variable is the upper-snake form of that name, for example
``imageBuildConfigFile`` is overridden by ``IMAGE_BUILD_CONFIG_FILE``.
"""

import json
import logging
import tempfile
from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

logger = logging.getLogger(__name__)

# camelCase property name -> Settings field name
CONFIG_KEYS: dict[str, str] = {
    "imageBuildConfigFile": "image_build_config_file",
    "definitionsDir": "definitions_dir",
    "containerRegistry": "container_registry",
    "containerRegistryPath": "container_registry_path",
    "stagingDir": "staging_dir",
    "filesToStage": "files_to_stage",
    "flattenBaseImage": "flatten_base_image",
    "commonDependencies": "common_dependencies",
    "poolKeys": "pool_keys",
    "poolUrlFallback": "pool_url_fallback",
    "logLevel": "log_level",
}


def env_var_name(property_name: str) -> str:
    """Convert a camelCase property name to its environment variable name.

    Args:
        property_name: Property name such as ``imageBuildConfigFile``.

    Returns:
        Upper-snake name such as ``IMAGE_BUILD_CONFIG_FILE``.
    """
    chars: list[str] = []
    for char in property_name:
        if "A" <= char <= "Z":
            chars.append("_")
        chars.append(char.upper())
    return "".join(chars)


def _default_staging_dir() -> Path:
    """Return the default staging root."""
    return Path(tempfile.gettempdir()) / "image-definitions"


class Settings(BaseSettings):
    """Application settings.

    Field names are the snake_case form of the CONFIG_KEYS properties, so
    with no env prefix each field reads the environment variable produced
    by env_var_name().
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
    )

    # Definition discovery
    image_build_config_file: str = Field(
        default="manifest.json",
        description="Manifest file name inside each definition directory",
    )
    definitions_dir: str = Field(
        default="src",
        description="Directory (relative to the repository) holding definitions",
    )

    # Registry
    container_registry: str = Field(
        default="docker.io",
        description="Default container registry host",
    )
    container_registry_path: str = Field(
        default="library",
        description="Default path inside the container registry",
    )

    # Staging
    staging_dir: Path = Field(
        default_factory=_default_staging_dir,
        description="Root directory for per-release staging copies",
    )
    files_to_stage: list[str] = Field(
        default_factory=list,
        description="Repository-relative paths copied into each staging folder",
    )

    # Build behaviour
    flatten_base_image: list[str] = Field(
        default_factory=list,
        description="Definitions whose base image should be flattened",
    )
    common_dependencies: dict[str, Any] | None = Field(
        default=None,
        description="Default dependency lists keyed by dependency type",
    )
    pool_keys: dict[str, str] = Field(
        default_factory=dict,
        description="Signing keys keyed by package pool URL",
    )
    pool_url_fallback: dict[str, str] = Field(
        default_factory=dict,
        description="Fallback package pool URL keyed by package",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Config file values arrive as init kwargs; env must win over them.
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a repository config file and map it onto Settings fields.

    Unknown properties are ignored; the repository config file may carry
    data for other tooling.

    Args:
        path: Path to the JSON config file.

    Returns:
        Keyword arguments for Settings.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the file is not a JSON object.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

    values: dict[str, Any] = {}
    for key, value in data.items():
        field_name = CONFIG_KEYS.get(key)
        if field_name is None:
            logger.debug("Ignoring unrecognized config property: %s", key)
            continue
        values[field_name] = value
    return values


def load_settings(config_file: Path | None = None) -> Settings:
    """Load settings, layering a config file under the environment.

    Args:
        config_file: Optional repository config file (JSON, camelCase keys).

    Returns:
        Settings instance.
    """
    if config_file is None or not config_file.exists():
        return Settings()
    logger.info("Loading configuration from %s", config_file)
    return Settings(**read_config_file(config_file))


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def get_config(
    property_name: str,
    default: Any = None,
    settings: Settings | None = None,
) -> Any:
    """Get a configuration value by its camelCase property name.

    Empty values fall back to ``default``.

    Args:
        property_name: Property name listed in CONFIG_KEYS.
        default: Value returned when the property is unset or empty.
        settings: Optional settings instance; uses default if not provided.

    Returns:
        The configured value or ``default``.

    Raises:
        KeyError: If the property is not a recognized configuration key.
    """
    field_name = CONFIG_KEYS.get(property_name)
    if field_name is None:
        raise KeyError(f"Unknown configuration property: {property_name}")
    if settings is None:
        settings = get_settings()
    value = getattr(settings, field_name)
    return value or default


def should_flatten_definition_base_image(
    definition_id: str, settings: Settings | None = None
) -> bool:
    """Return True if the definition's base image should be flattened."""
    return definition_id in get_config("flattenBaseImage", [], settings)


def get_default_dependencies(
    dependency_type: str, settings: Settings | None = None
) -> Any:
    """Return the common dependency list for a dependency type, if any."""
    common = get_config("commonDependencies", None, settings)
    return common.get(dependency_type) if common else None


def get_pool_key_for_pool_url(
    pool_url: str, settings: Settings | None = None
) -> str | None:
    """Return the signing key registered for a package pool URL."""
    pool_keys: dict[str, str] = get_config("poolKeys", {}, settings)
    return pool_keys.get(pool_url)


def get_fallback_pool_url(
    package: str, settings: Settings | None = None
) -> str | None:
    """Return the fallback pool URL for a package."""
    fallbacks: dict[str, str] = get_config("poolUrlFallback", {}, settings)
    pool_url = fallbacks.get(package)
    logger.info("Fallback pool URL for %s is %s", package, pool_url)
    return pool_url


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = [
    "CONFIG_KEYS",
    "Settings",
    "env_var_name",
    "get_config",
    "get_default_dependencies",
    "get_fallback_pool_url",
    "get_pool_key_for_pool_url",
    "get_settings",
    "load_settings",
    "print_settings_json",
    "read_config_file",
    "should_flatten_definition_base_image",
]
