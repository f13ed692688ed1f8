"""Tests for reverse tag lookup and tag rewriting."""

import pytest

from imagedefs.definitions.registry import DefinitionRegistry
from imagedefs.errors import TagFormatError
from imagedefs.tags.generator import get_tags_for_version
from imagedefs.tags.lookup import (
    TagIndex,
    get_definition_from_tag,
    get_updated_tag,
    parse_tag,
)
from imagedefs.types import TagMatch


@pytest.fixture
def definitions() -> DefinitionRegistry:
    """Return a registry with variant and variant-less definitions."""
    return DefinitionRegistry.from_manifests(
        {
            "python": {
                "version": "1.2.3",
                "variants": ["bullseye", "buster"],
                "build": {"tags": ["python:${VERSION}-${VARIANT}"]},
            },
            "alpine": {
                "version": "0.1.0",
                "build": {"tags": ["alpine:${VERSION}-base"]},
            },
            "untagged": {"build": {}},
        }
    )


class TestParseTag:
    """Test parse_tag function."""

    def test_wildcard_registry(self) -> None:
        """Any registry and path should be accepted."""
        assert parse_tag("mcr.microsoft.com/devcontainers/python:3-bullseye") == (
            "python",
            "3-bullseye",
        )

    def test_exact_registry(self) -> None:
        """A given registry and path must match."""
        assert parse_tag("r/p/python:dev", "r", "p") == ("python", "dev")
        with pytest.raises(TagFormatError):
            parse_tag("r/other/python:dev", "r", "p")

    def test_registry_with_path_segments(self) -> None:
        """Paths may contain slashes when given explicitly."""
        assert parse_tag("ghcr.io/org/images/python:dev", "ghcr.io", "org/images") == (
            "python",
            "dev",
        )

    def test_registry_port(self) -> None:
        """A registry port must not be mistaken for the tag separator."""
        assert parse_tag("localhost:5000/p/python:dev") == ("python", "dev")

    def test_partial_wildcards(self) -> None:
        """Only the given half of the location is checked."""
        assert parse_tag("r/p/python:dev", registry="r") == ("python", "dev")
        assert parse_tag("r/p/python:dev", registry_path="p") == ("python", "dev")
        with pytest.raises(TagFormatError):
            parse_tag("r/p/python:dev", registry="x")

    def test_empty_strings_are_wildcards(self) -> None:
        """An empty registry or path matches like an omitted one."""
        assert parse_tag("r/p/python:dev", "", "") == ("python", "dev")
        assert parse_tag("r/p/python:dev", "", "p") == ("python", "dev")
        assert parse_tag("r/p/python:dev", "r", "") == ("python", "dev")
        with pytest.raises(TagFormatError):
            parse_tag("r/p/python:dev", "", "x")

    @pytest.mark.parametrize(
        "tag",
        ["python:dev", "r/p/python", "r/p/python:", "/p/python:dev", "r/p/:dev"],
    )
    def test_malformed(self, tag: str) -> None:
        """Tags without the full form are rejected."""
        with pytest.raises(TagFormatError) as exc_info:
            parse_tag(tag)
        assert exc_info.value.code == "tag_format"


class TestTagIndex:
    """Test TagIndex and get_definition_from_tag."""

    def test_index_keys(self, definitions) -> None:
        """Blank and dev tags are indexed under ANY/ANY."""
        index = definitions.tag_index

        assert index.get("ANY/ANY/python:bullseye") == TagMatch("python", "bullseye")
        assert index.get("ANY/ANY/python:dev-buster") == TagMatch("python", "buster")
        assert index.get("ANY/ANY/alpine:dev-base") == TagMatch("alpine", None)
        assert "ANY/ANY/alpine:base" in index

    def test_round_trip(self, definitions) -> None:
        """Blank and dev tags resolve back to their definition and variant."""
        for variant in ("bullseye", "buster"):
            for version in ("", "dev"):
                for tag in get_tags_for_version(
                    definitions, "python", version, "r", "p", variant
                ):
                    assert get_definition_from_tag(definitions, tag, "r", "p") == TagMatch(
                        "python", variant
                    )

    def test_numeric_prefix_ignored(self, definitions) -> None:
        """A leading major version resolves like the unversioned tag."""
        match = get_definition_from_tag(
            definitions, "mcr.microsoft.com/devcontainers/python:1-buster"
        )
        assert match == TagMatch("python", "buster")

    def test_unknown_tag(self, definitions) -> None:
        """Unknown tags are not found."""
        assert get_definition_from_tag(definitions, "r/p/node:dev") is None
        assert get_definition_from_tag(definitions, "r/p/python:1.2.3-buster") is None

    def test_malformed_tag(self, definitions) -> None:
        """Malformed tags are an error."""
        with pytest.raises(TagFormatError):
            get_definition_from_tag(definitions, "python")

    def test_empty_index(self) -> None:
        """An empty index finds nothing."""
        index = TagIndex()
        assert len(index) == 0
        assert index.get_definition_from_tag("r/p/python:dev") is None


class TestGetUpdatedTag:
    """Test get_updated_tag function."""

    def test_known_tag_regenerated(self, definitions) -> None:
        """Known tags are regenerated for the new version."""
        assert (
            get_updated_tag(definitions, "r/p/python:dev-bullseye", "r", "p", "1.2.3")
            == "r/p/python:1.2.3-bullseye"
        )

    def test_known_tag_new_registry(self, definitions) -> None:
        """The updated registry and path replace the current ones."""
        updated = get_updated_tag(
            definitions, "r/p/python:buster", "r", "p", "2.0.0", "ghcr.io", "org"
        )
        assert updated == "ghcr.io/org/python:2.0.0-buster"

    def test_explicit_variant(self, definitions) -> None:
        """An explicit variant wins over the one resolved from the tag."""
        updated = get_updated_tag(
            definitions, "r/p/python:dev-bullseye", "r", "p", "1.2.3", variant="buster"
        )
        assert updated == "r/p/python:1.2.3-buster"

    def test_unknown_tag_rewritten(self, definitions) -> None:
        """Unknown tags fall back to a textual rewrite."""
        assert (
            get_updated_tag(definitions, "r/p/node:dev-18", "r", "p", "1.0.0", "x", "y")
            == "x/y/node:1.0.0-18"
        )
        assert (
            get_updated_tag(definitions, "r/p/node:1.0.0-18", "r", "p", "1.0.0")
            == "r/p/node:1.0.0-18"
        )

    def test_variantless_definition_regenerated(self) -> None:
        """Dev tags of definitions without variants are regenerated."""
        definitions = DefinitionRegistry.from_manifests(
            {"base": {"build": {"tags": ["base:${VERSION}"]}}}
        )
        assert (
            get_updated_tag(definitions, "r/p/base:dev", "r", "p", "1.0.0")
            == "r/p/base:1.0.0"
        )

    def test_malformed_tag(self, definitions) -> None:
        """Malformed tags are an error."""
        with pytest.raises(TagFormatError):
            get_updated_tag(definitions, "node", "r", "p", "1.0.0")
