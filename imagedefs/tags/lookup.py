"""Reverse lookup from tags to definitions.

The index maps registry-independent tags (``ANY/ANY/<repo>:<tag>``) to the
definition and variant that produce them. It is built once, when the
registry is frozen, from the blank-version and dev-version tags of every
definition and variant.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from imagedefs.errors import TagFormatError
from imagedefs.tags.generator import get_tags_for_version
from imagedefs.types import DEV_VERSION, VARIANT_PLACEHOLDERS, TagMatch

if TYPE_CHECKING:
    from imagedefs.definitions.registry import DefinitionRegistry

logger = logging.getLogger(__name__)

ANY = "ANY"

_NUMERIC_PREFIX = re.compile(r"^\d+-")


def parse_tag(
    tag: str, registry: str | None = None, registry_path: str | None = None
) -> tuple[str, str]:
    """Split a tag into repository and tag part.

    The tag must have the form ``<registry>/<registry_path>/<repo>:<tag>``.
    A registry or registry path that is None or empty matches any
    non-empty text.

    Returns:
        Tuple of (repository, tag part).

    Raises:
        TagFormatError: If the tag does not have the expected form.
    """
    expected = f"{registry or '<registry>'}/{registry_path or '<path>'}/<repo>:<tag>"
    head, sep, tag_part = tag.rpartition(":")
    if not sep or not head or not tag_part or "/" in tag_part:
        raise TagFormatError(tag, expected)

    if registry and registry_path:
        prefix = f"{registry}/{registry_path}/"
        if not head.startswith(prefix) or len(head) == len(prefix):
            raise TagFormatError(tag, expected)
        return head[len(prefix) :], tag_part

    location, slash, repository = head.rpartition("/")
    if not slash or not repository:
        raise TagFormatError(tag, expected)
    if registry:
        matched = location.startswith(f"{registry}/") and len(location) > len(registry) + 1
    elif registry_path:
        suffix = f"/{registry_path}"
        matched = location.endswith(suffix) and len(location) > len(suffix)
    else:
        host, slash, path = location.rpartition("/")
        matched = bool(slash and host and path)
    if not matched:
        raise TagFormatError(tag, expected)
    return repository, tag_part


class TagIndex:
    """Read-only index of ``ANY/ANY/<repo>:<tag>`` keys to definitions."""

    def __init__(self, entries: dict[str, TagMatch] | None = None) -> None:
        self._entries: dict[str, TagMatch] = dict(entries or {})

    @classmethod
    def build(cls, definitions: DefinitionRegistry) -> TagIndex:
        """Index the blank and dev tags of every definition and variant.

        Placeholder variants are indexed first so that entries for concrete
        variants win where both render to the same tag.
        """
        entries: dict[str, TagMatch] = {}
        for definition_id in definitions.get_definition_list():
            build = definitions.get_build_settings(definition_id)
            if build is None or build.tags is None:
                continue
            variants = definitions.get_variants(definition_id)
            lookup_variants: list[str | None] = (
                [*VARIANT_PLACEHOLDERS, *variants] if variants else [None]
            )
            for variant in lookup_variants:
                for version in ("", DEV_VERSION):
                    tags = get_tags_for_version(
                        definitions, definition_id, version, ANY, ANY, variant
                    )
                    for tag in tags or []:
                        entries[tag] = TagMatch(id=definition_id, variant=variant)
        return cls(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> TagMatch | None:
        """Return the entry for an ``ANY/ANY/...`` key."""
        return self._entries.get(key)

    def get_definition_from_tag(
        self,
        tag: str,
        registry: str | None = None,
        registry_path: str | None = None,
    ) -> TagMatch | None:
        """Resolve a tag to the definition and variant that produce it.

        A leading ``<digits>-`` in the tag part is ignored on a second
        attempt, so ``python:3-bullseye`` resolves like ``python:bullseye``.

        Returns:
            TagMatch, or None if no definition produces the tag.

        Raises:
            TagFormatError: If the tag does not have the expected form.
        """
        repository, tag_part = parse_tag(tag, registry, registry_path)
        match = self._entries.get(f"{ANY}/{ANY}/{repository}:{tag_part}")
        if match is not None:
            return match
        stripped = _NUMERIC_PREFIX.sub("", tag_part, count=1)
        return self._entries.get(f"{ANY}/{ANY}/{repository}:{stripped}")


def get_definition_from_tag(
    definitions: DefinitionRegistry,
    tag: str,
    registry: str | None = None,
    registry_path: str | None = None,
) -> TagMatch | None:
    """Resolve a tag using the registry's tag index.

    Raises:
        TagFormatError: If the tag does not have the expected form.
    """
    return definitions.tag_index.get_definition_from_tag(tag, registry, registry_path)


def get_updated_tag(
    definitions: DefinitionRegistry,
    current_tag: str,
    current_registry: str,
    current_registry_path: str,
    updated_version: str,
    updated_registry: str | None = None,
    updated_registry_path: str | None = None,
    variant: str | None = None,
) -> str:
    """Rewrite a tag for a new version and, optionally, a new registry.

    Tags of known definitions are regenerated; the first generated tag is
    returned, or the current tag if nothing is generated. Unknown tags are
    rewritten textually: a ``dev-`` or ``<updated_version>-`` prefix of the
    tag part is replaced by ``<updated_version>-``.

    Raises:
        TagFormatError: If the tag does not have the expected form.
    """
    updated_registry = updated_registry or current_registry
    updated_registry_path = updated_registry_path or current_registry_path

    definition = get_definition_from_tag(
        definitions, current_tag, current_registry, current_registry_path
    )

    if definition is None:
        repository, tag_part = parse_tag(
            current_tag, current_registry, current_registry_path
        )
        for prefix in ("dev-", f"{updated_version}-"):
            if tag_part.startswith(prefix):
                tag_part = tag_part[len(prefix) :]
                break
        updated_tag = (
            f"{updated_registry}/{updated_registry_path}/{repository}:"
            f"{updated_version}-{tag_part}"
        )
        logger.info("Using pattern rewrite to update %s to %s", current_tag, updated_tag)
        return updated_tag

    if not variant:
        variant = definition.variant

    updated_tags = get_tags_for_version(
        definitions,
        definition.id,
        updated_version,
        updated_registry,
        updated_registry_path,
        variant,
    )
    if updated_tags:
        logger.info("Updating %s to %s", current_tag, updated_tags[0])
        return updated_tags[0]
    # Already fully versioned; nothing to regenerate.
    return current_tag


__all__ = [
    "ANY",
    "TagIndex",
    "get_definition_from_tag",
    "get_updated_tag",
    "parse_tag",
]
