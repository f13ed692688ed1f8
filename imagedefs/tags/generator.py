"""Tag generation for definitions.

This module handles:
- Resolving a release (``v1.2.3``) or branch (``main``) to a version
- Rendering a definition's tag templates for one version and variant
- Semantic version expansion (X.Y.Z, X.Y, X, unversioned) and latest tags
- Resolving the tag of a definition's parent image
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from imagedefs.errors import InvalidVersionError, ParentVariantError
from imagedefs.tags.template import parse_template
from imagedefs.types import DEV_VERSION, NOVARIANT, VARIANT_PLACEHOLDERS, VersionPartHandling

if TYPE_CHECKING:
    from imagedefs.definitions.registry import DefinitionRegistry
    from imagedefs.definitions.schema import BuildSettingsSchema


def get_version_from_release(
    definitions: DefinitionRegistry, release: str, definition_id: str | None = None
) -> str:
    """Convert a release string or branch name into a version.

    Args:
        definitions: Loaded registry.
        release: A release such as ``v1.0.0`` or a branch such as ``main``.
        definition_id: Definition whose recorded version a release maps to.

    Returns:
        The definition's recorded version for a release, otherwise ``dev``.
        A definition without a recorded version is treated as ``dev``.
    """
    if len(release) > 1 and release[0] == "v" and release[1].isdigit():
        if definition_id is None:
            return DEV_VERSION
        return definitions.get_version(definition_id) or DEV_VERSION
    return DEV_VERSION


def major_from_release(
    definitions: DefinitionRegistry, release: str, definition_id: str | None = None
) -> str:
    """Return the major part of the version for a release, or ``dev``."""
    version = get_version_from_release(definitions, release, definition_id)
    if version == DEV_VERSION:
        return DEV_VERSION
    return version.split(".")[0]


def parent_variant_id(build: BuildSettingsSchema, variant: str) -> str:
    """Map a child variant to the parent variant it builds on.

    With ``id_mismatch`` set, a dashed variant such as ``3.10-bullseye``
    maps to the text after the first dash (``bullseye``).
    """
    if build.id_mismatch and "-" in variant:
        return variant.split("-", 1)[1]
    return variant


def get_tags_for_version(
    definitions: DefinitionRegistry,
    definition_id: str,
    version: str,
    registry: str,
    registry_path: str,
    variant: str | None = None,
) -> list[str] | None:
    """Render all tags of a definition for one version.

    Args:
        definitions: Loaded registry.
        definition_id: Definition to tag.
        version: Version text; ``dev`` and empty are allowed.
        registry: Registry host prefix.
        registry_path: Path inside the registry.
        variant: Variant to tag. Defaults to the first declared variant.
            ``${VARIANT}`` or ``$VARIANT`` selects every variant tag list.

    Returns:
        Fully-qualified tags in template order (not deduplicated), or None
        if the definition is unknown.
    """
    build = definitions.get_build_settings(definition_id)
    if build is None:
        return None

    # A dev tag shared by several definitions would collide; qualify it.
    if version == DEV_VERSION and build.versioned_tags_only:
        version = f"dev-{definition_id.replace('-', '')}"

    if not variant:
        variants = definitions.get_variants(definition_id)
        variant = variants[0] if variants else NOVARIANT

    templates = list(build.tags or [])
    if build.variant_tags:
        if variant in VARIANT_PLACEHOLDERS:
            for variant_templates in build.variant_tags.values():
                templates.extend(variant_templates)
        else:
            templates.extend(build.variant_tags.get(variant, []))

    render_variant = None if variant == NOVARIANT else variant
    tags: list[str] = []
    for source in templates:
        tag = parse_template(source).render(version, render_variant)
        if tag is not None:
            tags.append(f"{registry}/{registry_path}/{tag}")
    return tags


def get_latest_tag(
    definitions: DefinitionRegistry,
    definition_id: str,
    registry: str,
    registry_path: str,
) -> list[str] | None:
    """Return the deduplicated ``latest`` tags of a definition.

    Returns:
        One latest tag per distinct repository, or None if the definition
        is unknown.
    """
    build = definitions.get_build_settings(definition_id)
    if build is None:
        return None

    latest: list[str] = []
    for source in build.tags or []:
        tag = f"{registry}/{registry_path}/{parse_template(source).latest_form()}"
        if tag not in latest:
            latest.append(tag)
    return latest


def _semver_versions(
    version: str, handling: VersionPartHandling
) -> tuple[list[str], bool]:
    parts = version.split(".")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        raise InvalidVersionError(version)

    major = parts[0]
    major_minor = f"{parts[0]}.{parts[1]}"
    if handling in (VersionPartHandling.ALL_LATEST, VersionPartHandling.ALL):
        return [version, major_minor, major], True
    if handling is VersionPartHandling.FULL_ONLY:
        return [version], False
    if handling is VersionPartHandling.MAJOR_MINOR:
        return [major_minor], False
    return [major], False


def get_tag_list(
    definitions: DefinitionRegistry,
    definition_id: str,
    release: str,
    version_part_handling: VersionPartHandling | str | bool,
    registry: str,
    registry_path: str,
    variant: str | None = None,
) -> list[str] | None:
    """Generate the complete tag list of a definition for a release.

    version_part_handling modes:
        - True / "all-latest": X.Y.Z, X.Y, X, unversioned, latest
        - False / "all": X.Y.Z, X.Y, X, unversioned
        - "full-only": X.Y.Z
        - "major-minor": X.Y
        - "major": X

    Unversioned tags (``python:3`` next to ``python:1.2.3-3``) are skipped
    for ``versioned_tags_only`` definitions. A branch build gets only the
    dev tags.

    Returns:
        Tags in version order, or None if the definition is unknown.

    Raises:
        InvalidVersionError: If the release version is not X.Y.Z.
        ValueError: If version_part_handling is not a known mode.
    """
    build = definitions.get_build_settings(definition_id)
    if build is None:
        return None

    version = get_version_from_release(definitions, release, definition_id)
    if version == DEV_VERSION:
        return get_tags_for_version(
            definitions, definition_id, version, registry, registry_path, variant
        )

    handling = VersionPartHandling.coerce(version_part_handling)
    version_list, update_unversioned = _semver_versions(version, handling)
    update_latest = handling is VersionPartHandling.ALL_LATEST
    if update_unversioned and not build.versioned_tags_only:
        version_list.append("")

    tag_list: list[str] = []
    for tag_version in version_list:
        tag_list.extend(
            get_tags_for_version(
                definitions, definition_id, tag_version, registry, registry_path, variant
            )
            or []
        )

    # latest may be True (first variant is latest) or a specific variant name
    all_variants = definitions.get_variants(definition_id)
    current_variant = variant or (all_variants[0] if all_variants else None)
    latest = build.latest
    if (
        update_latest
        and latest
        and (
            not all_variants
            or current_variant == latest
            or (latest is True and current_variant == all_variants[0])
        )
    ):
        tag_list.extend(
            get_latest_tag(definitions, definition_id, registry, registry_path) or []
        )
    return tag_list


def get_parent_tag_for_version(
    definitions: DefinitionRegistry,
    definition_id: str,
    version: str,
    registry: str,
    registry_path: str,
    variant: str | None = None,
) -> str | None:
    """Return the tag of the image a definition builds on.

    Args:
        definitions: Loaded registry.
        definition_id: Child definition.
        version: Release or branch of the build; the parent's own version
            is looked up from it.
        registry: Registry host prefix.
        registry_path: Path inside the registry.
        variant: Child variant being built.

    Returns:
        First tag of the parent image, or None if the definition has no
        parent.

    Raises:
        DefinitionNotFoundError: If the definition is unknown.
        ParentVariantError: If the parent does not declare the variant the
            child builds on.
    """
    build = definitions.require_build_settings(definition_id)
    parent = build.parent
    if not parent:
        return None

    if isinstance(parent, dict):
        if variant:
            parent_id = parent.get(variant)
            if parent_id is None:
                raise ParentVariantError(variant, definition_id, list(parent))
        else:
            parent_id = build.parent_ids()[0]
    else:
        parent_id = parent

    parent_variant: str | None = None
    parent_variants = definitions.get_variants(parent_id)
    if parent_variants:
        declared = build.parent_variant
        if isinstance(declared, dict):
            parent_variant = (
                declared.get(variant) if variant else next(iter(declared.values()))
            )
        elif declared:
            parent_variant = declared
        elif variant:
            parent_variant = parent_variant_id(build, variant)
        if parent_variant is not None and parent_variant not in parent_variants:
            raise ParentVariantError(parent_variant, parent_id, parent_variants)

    parent_version = get_version_from_release(definitions, version, parent_id)
    tags = get_tags_for_version(
        definitions, parent_id, parent_version, registry, registry_path, parent_variant
    )
    return tags[0] if tags else None


__all__ = [
    "get_latest_tag",
    "get_parent_tag_for_version",
    "get_tag_list",
    "get_tags_for_version",
    "get_version_from_release",
    "major_from_release",
    "parent_variant_id",
]
