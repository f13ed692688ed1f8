"""Pydantic models for definition manifest validation.

This module defines the Pydantic models for validating the parsed content of
a definition's manifest file. Manifest keys are camelCase; the models expose
snake_case attributes and accept either spelling on input.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from imagedefs.types import DEFAULT_ARCHITECTURE


class _ManifestModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class BuildSettingsSchema(_ManifestModel):
    """Schema for the ``build`` section of a manifest.

    Attributes:
        tags: Tag templates, e.g. ``python:${VERSION}-${VARIANT}``.
        parent: Parent definition id, or a mapping of variant to parent id
            (null for a variant without a parent).
        parent_variant: Parent variant to build on, or a mapping of child
            variant to parent variant. Defaults to the child's own variant.
        variant_tags: Extra tag templates per variant.
        architecture: Target platforms.
        versioned_tags_only: Never emit unversioned tags; dev tags are
            qualified with the definition id.
        latest: True to tag the first variant as latest, or the name of the
            variant to tag as latest.
        root_distro: Linux distribution family of the image.
        id_mismatch: Child variants carry a prefix ahead of the parent
            variant, separated by a dash (``3.10-bullseye`` -> ``bullseye``).
    """

    tags: list[str] | None = Field(default=None, description="Tag templates")
    parent: str | dict[str, str | None] | None = Field(
        default=None, description="Parent id or variant -> parent id mapping"
    )
    parent_variant: str | dict[str, str] | None = Field(
        default=None, description="Parent variant or variant -> variant mapping"
    )
    variant_tags: dict[str, list[str]] | None = Field(
        default=None, description="Additional tag templates per variant"
    )
    architecture: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ARCHITECTURE),
        description="Target platforms",
    )
    versioned_tags_only: bool = Field(default=False)
    latest: bool | str | None = Field(default=None)
    root_distro: str | None = Field(default=None)
    id_mismatch: bool = Field(default=False)

    @field_validator("parent")
    @classmethod
    def validate_parent(
        cls, v: str | dict[str, str | None] | None
    ) -> str | dict[str, str | None] | None:
        """Validate parent ids are non-empty.

        A mapping may set a variant to null: that variant has no parent.
        """
        if isinstance(v, dict):
            if not any(v.values()):
                raise ValueError("parent mapping must name at least one parent")
            for variant, parent_id in v.items():
                if not variant or parent_id == "":
                    raise ValueError("parent mapping entries must be non-empty")
        elif v is not None and not v.strip():
            raise ValueError("parent must be a non-empty string")
        return v

    @property
    def is_multi_parent(self) -> bool:
        """True if the parent is a variant -> parent id mapping."""
        return isinstance(self.parent, dict)

    def parent_ids(self) -> list[str]:
        """Return the distinct parent ids in declaration order."""
        if self.parent is None:
            return []
        if isinstance(self.parent, str):
            return [self.parent]
        return list(dict.fromkeys(p for p in self.parent.values() if p))


class DependenciesSchema(_ManifestModel):
    """Schema for the ``dependencies`` section of a manifest.

    Only ``image`` is interpreted; other keys (package lists and the like)
    are preserved as extra fields.

    Attributes:
        image: Base image reference; may contain ``${VARIANT}``.
        image_variants: Image references per variant, computed at load.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    image: str | None = Field(default=None, description="Base image reference")
    image_variants: list[str] = Field(default_factory=list)


class ManifestSchema(_ManifestModel):
    """Complete manifest schema for one definition.

    Attributes:
        variants: Ordered variant names.
        build: Build settings.
        dependencies: Image dependencies.
        version: Semantic version of the definition.
    """

    variants: list[str] | None = Field(default=None)
    build: BuildSettingsSchema | None = Field(default=None)
    dependencies: DependenciesSchema | None = Field(default=None)
    version: str | None = Field(default=None)

    @field_validator("variants")
    @classmethod
    def validate_variants(cls, v: list[str] | None) -> list[str] | None:
        """Validate variants are non-empty, unique strings."""
        if v is None:
            return v
        for variant in v:
            if not variant or not variant.strip():
                raise ValueError("variants must be non-empty strings")
        if len(set(v)) != len(v):
            raise ValueError("variants must be unique")
        return v


def parse_manifest_data(data: dict[str, Any]) -> ManifestSchema:
    """Validate parsed manifest data.

    Raises:
        pydantic.ValidationError: If data does not match the schema.
    """
    return ManifestSchema.model_validate(data)


__all__ = [
    "BuildSettingsSchema",
    "DependenciesSchema",
    "ManifestSchema",
    "parse_manifest_data",
]
