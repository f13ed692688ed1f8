"""Definition management module.

This module handles:
- Validation of manifest content (schema)
- Reading manifests and populating the registry (io)
- The frozen in-memory registry and its accessors
"""

from imagedefs.definitions.io import load_definitions, load_manifest
from imagedefs.definitions.registry import DefinitionPath, DefinitionRegistry
from imagedefs.definitions.schema import (
    BuildSettingsSchema,
    DependenciesSchema,
    ManifestSchema,
    parse_manifest_data,
)

__all__ = [
    # Registry
    "DefinitionPath",
    "DefinitionRegistry",
    # Schema
    "BuildSettingsSchema",
    "DependenciesSchema",
    "ManifestSchema",
    "parse_manifest_data",
    # IO functions
    "load_definitions",
    "load_manifest",
]
