"""Shared type definitions for imagedefs.

This module contains dataclasses, enums, and constants shared across
subpackages to avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum

# Sentinel used in place of a variant for definitions that declare none
NOVARIANT = "NOVARIANT"

# Placeholder tokens that stand for "every variant" in tag lookups
VARIANT_PLACEHOLDERS = ("${VARIANT}", "$VARIANT")

DEV_VERSION = "dev"

DEFAULT_ARCHITECTURE = ["linux/amd64"]
DEFAULT_ROOT_DISTRO = "debian"


class VersionPartHandling(str, Enum):
    """Which semantic version parts get their own tag.

    ``True`` and ``False`` are accepted as aliases for ALL_LATEST and ALL.
    """

    ALL_LATEST = "all-latest"
    ALL = "all"
    FULL_ONLY = "full-only"
    MAJOR_MINOR = "major-minor"
    MAJOR = "major"

    @classmethod
    def coerce(cls, value: "VersionPartHandling | str | bool") -> "VersionPartHandling":
        """Normalize a bool, string, or enum member to a member."""
        if value is True:
            return cls.ALL_LATEST
        if value is False:
            return cls.ALL
        return cls(value)


@dataclass(frozen=True)
class BuildItem:
    """One (definition, variant) pair in a build plan."""

    id: str
    variant: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        """Convert to dictionary for JSON serialization."""
        return {"id": self.id, "variant": self.variant}


@dataclass(frozen=True)
class TagMatch:
    """Result of resolving a tag back to its definition."""

    id: str
    variant: str | None = None


__all__ = [
    "DEFAULT_ARCHITECTURE",
    "DEFAULT_ROOT_DISTRO",
    "DEV_VERSION",
    "NOVARIANT",
    "VARIANT_PLACEHOLDERS",
    "BuildItem",
    "TagMatch",
    "VersionPartHandling",
]
