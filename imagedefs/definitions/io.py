"""Definition manifest loading.

This module provides helpers for reading manifest files (JSON or YAML) and
for populating a DefinitionRegistry from a repository's definitions
directory.
"""

import json
import logging
import shutil
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from imagedefs.config import Settings, get_settings
from imagedefs.definitions.registry import DefinitionRegistry
from imagedefs.definitions.schema import ManifestSchema, parse_manifest_data
from imagedefs.errors import ManifestError

logger = logging.getLogger(__name__)

DEPRECATED_MARKER = ".deprecated"


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the content is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping, got {type(data).__name__}")
    return data


def load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file and return its contents as a dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the content is not an object.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def load_manifest(path: Path) -> ManifestSchema:
    """Load and validate a manifest file (YAML or JSON).

    File format is determined by extension (.yaml, .yml for YAML,
    .json for JSON).

    Args:
        path: Path to the manifest file.

    Returns:
        Validated ManifestSchema instance.

    Raises:
        FileNotFoundError: If the file does not exist.
        ManifestError: If the file cannot be parsed or validated, or has an
            unsupported extension.
    """
    suffix = path.suffix.lower()
    try:
        if suffix in (".yaml", ".yml"):
            data = load_yaml(path)
        elif suffix == ".json":
            data = load_json(path)
        else:
            raise ManifestError(
                f"Unsupported file extension '{suffix}'. Use .json, .yaml, or .yml",
                code="unsupported_format",
            )
        return parse_manifest_data(data)
    except ValidationError as e:
        raise ManifestError(
            f"Validation error in {path}: {e}", code="validation"
        ) from e
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ManifestError(f"Parse error in {path}: {e}", code="parse_error") from e
    except ValueError as e:
        raise ManifestError(f"{path}: {e}", code="parse_error") from e


def load_definitions(
    repo_path: Path,
    settings: Settings | None = None,
    prune_deprecated: bool = False,
) -> DefinitionRegistry:
    """Populate and freeze a registry from a repository's definitions.

    Every directory under ``<repo_path>/<definitions_dir>`` is a definition
    named after the directory. Directories carrying a ``.deprecated`` marker
    are left out of the registry.

    Args:
        repo_path: Repository root.
        settings: Optional settings; uses default if not provided.
        prune_deprecated: Also delete deprecated definition directories.
            Only use this on a staging copy.

    Returns:
        Frozen DefinitionRegistry.

    Raises:
        FileNotFoundError: If the definitions directory does not exist.
        ManifestError: If a manifest cannot be loaded.
    """
    if settings is None:
        settings = get_settings()

    repo_path = repo_path.resolve()
    definitions_path = repo_path / settings.definitions_dir
    if not definitions_path.is_dir():
        raise FileNotFoundError(f"Directory not found: {definitions_path}")

    registry = DefinitionRegistry()
    for definition_path in sorted(definitions_path.iterdir()):
        if not definition_path.is_dir():
            continue

        definition_id = definition_path.name
        if (definition_path / DEPRECATED_MARKER).exists():
            logger.info("Skipping deprecated definition %s", definition_id)
            if prune_deprecated:
                shutil.rmtree(definition_path)
            continue

        registry.add_definition_path(definition_id, definition_path, repo_path)
        manifest_path = definition_path / settings.image_build_config_file
        if manifest_path.exists():
            logger.debug("Loading manifest %s", manifest_path)
            registry.add_manifest(definition_id, load_manifest(manifest_path))

    registry.freeze()
    logger.info("Loaded %d definitions from %s", len(registry), definitions_path)
    return registry


__all__ = [
    "DEPRECATED_MARKER",
    "load_definitions",
    "load_json",
    "load_manifest",
    "load_yaml",
]
