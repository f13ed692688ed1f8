"""Registry of loaded definitions.

The registry merges per-definition manifest data (build settings, variants,
dependencies, versions) during a load phase. freeze() ends that phase: it
fills computed fields, builds the reverse tag index, and makes the registry
read-only so it can be shared by any number of readers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from imagedefs.definitions.schema import (
    BuildSettingsSchema,
    DependenciesSchema,
    ManifestSchema,
)
from imagedefs.errors import DefinitionNotFoundError, RegistryFrozenError
from imagedefs.tags.lookup import TagIndex
from imagedefs.types import DEFAULT_ROOT_DISTRO

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class DefinitionPath:
    """Location of a definition directory."""

    path: Path
    relative_to_root_path: Path


class DefinitionRegistry:
    """In-memory store of definition settings keyed by definition id."""

    def __init__(self) -> None:
        self._build_settings: dict[str, BuildSettingsSchema] = {}
        self._variants: dict[str, list[str]] = {}
        self._dependencies: dict[str, DependenciesSchema] = {}
        self._versions: dict[str, str] = {}
        self._paths: dict[str, DefinitionPath] = {}
        self._tag_index: TagIndex | None = None

    @classmethod
    def from_manifests(
        cls, manifests: dict[str, ManifestSchema | dict[str, Any]]
    ) -> DefinitionRegistry:
        """Build and freeze a registry from manifests keyed by definition id.

        Args:
            manifests: Manifest models or raw manifest mappings.

        Returns:
            Frozen DefinitionRegistry.
        """
        registry = cls()
        for definition_id, manifest in manifests.items():
            if not isinstance(manifest, ManifestSchema):
                manifest = ManifestSchema.model_validate(manifest)
            registry.add_manifest(definition_id, manifest)
        registry.freeze()
        return registry

    @property
    def frozen(self) -> bool:
        """True once the load phase has ended."""
        return self._tag_index is not None

    @property
    def tag_index(self) -> TagIndex:
        """Reverse index from tags to definitions.

        Raises:
            RuntimeError: If the registry has not been frozen yet.
        """
        if self._tag_index is None:
            raise RuntimeError("Tag index is only available after freeze()")
        return self._tag_index

    def _check_mutable(self, definition_id: str) -> None:
        if self.frozen:
            raise RegistryFrozenError(definition_id)

    def add_manifest(self, definition_id: str, manifest: ManifestSchema) -> None:
        """Merge a definition's manifest into the registry.

        Sections absent from the manifest leave existing entries untouched.

        Raises:
            RegistryFrozenError: If the registry has been frozen.
        """
        self._check_mutable(definition_id)
        if manifest.variants:
            self._variants[definition_id] = list(manifest.variants)
        if manifest.build is not None:
            self._build_settings[definition_id] = manifest.build
        if manifest.dependencies is not None:
            self._dependencies[definition_id] = manifest.dependencies
        if manifest.version:
            self._versions[definition_id] = manifest.version

    def add_definition_path(
        self, definition_id: str, path: Path, repo_path: Path
    ) -> None:
        """Record where a definition lives on disk.

        Raises:
            RegistryFrozenError: If the registry has been frozen.
        """
        self._check_mutable(definition_id)
        self._paths[definition_id] = DefinitionPath(
            path=path, relative_to_root_path=path.relative_to(repo_path)
        )

    def freeze(self) -> None:
        """End the load phase.

        Computes each definition's ``image_variants`` and builds the reverse
        tag index. Calling freeze() twice is a no-op.
        """
        if self.frozen:
            return

        for definition_id in self._build_settings:
            dependencies = self._dependencies.get(definition_id)
            if dependencies is None or dependencies.image is None:
                continue
            variants = self._variants.get(definition_id)
            image = dependencies.image
            image_variants = (
                [image.replace("${VARIANT}", variant) for variant in variants]
                if variants
                else [image]
            )
            self._dependencies[definition_id] = dependencies.model_copy(
                update={"image_variants": image_variants}
            )

        self._tag_index = TagIndex.build(self)
        logger.debug(
            "Registry frozen with %d definitions and %d indexed tags",
            len(self._build_settings),
            len(self._tag_index),
        )

    def __contains__(self, definition_id: object) -> bool:
        return definition_id in self._build_settings

    def __len__(self) -> int:
        return len(self._build_settings)

    def get_definition_list(self) -> list[str]:
        """Return ids of all definitions with build settings, in load order."""
        return list(self._build_settings)

    def get_build_settings(self, definition_id: str) -> BuildSettingsSchema | None:
        """Return build settings, or None for an unknown definition."""
        return self._build_settings.get(definition_id)

    def require_build_settings(self, definition_id: str) -> BuildSettingsSchema:
        """Return build settings for a definition that must exist.

        Raises:
            DefinitionNotFoundError: If the definition is unknown.
        """
        settings = self._build_settings.get(definition_id)
        if settings is None:
            raise DefinitionNotFoundError(definition_id)
        return settings

    def get_variants(self, definition_id: str) -> list[str] | None:
        """Return declared variants, or None if the definition has none."""
        variants = self._variants.get(definition_id)
        return list(variants) if variants else None

    def get_version(self, definition_id: str) -> str | None:
        """Return the recorded semantic version, if any."""
        return self._versions.get(definition_id)

    def get_dependencies(self, definition_id: str) -> DependenciesSchema | None:
        """Return the definition's dependencies section, if any."""
        return self._dependencies.get(definition_id)

    def get_all_dependencies(self) -> dict[str, DependenciesSchema]:
        """Return dependencies for every definition that declares them."""
        return dict(self._dependencies)

    def get_definition_path(self, definition_id: str, relative: bool = False) -> Path:
        """Return the definition directory, absolute or repository-relative.

        Raises:
            DefinitionNotFoundError: If no path was recorded for the definition.
        """
        entry = self._paths.get(definition_id)
        if entry is None:
            raise DefinitionNotFoundError(definition_id)
        return entry.relative_to_root_path if relative else entry.path

    def get_all_definition_paths(self) -> dict[str, DefinitionPath]:
        """Return recorded paths keyed by definition id."""
        return dict(self._paths)

    def get_linux_distro(self, definition_id: str) -> str:
        """Return the definition's root distro, defaulting to debian.

        Raises:
            DefinitionNotFoundError: If the definition is unknown.
        """
        return (
            self.require_build_settings(definition_id).root_distro
            or DEFAULT_ROOT_DISTRO
        )

    def object_by_linux_distro(
        self, definition_id: str, objects_by_distro: dict[str, T]
    ) -> T | None:
        """Pick the entry of a distro-keyed mapping matching the definition."""
        return objects_by_distro.get(self.get_linux_distro(definition_id))


__all__ = ["DefinitionPath", "DefinitionRegistry"]
