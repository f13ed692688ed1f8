"""Tests for the definition registry."""

from pathlib import Path

import pytest

from imagedefs.definitions.registry import DefinitionRegistry
from imagedefs.definitions.schema import ManifestSchema
from imagedefs.errors import DefinitionNotFoundError, RegistryFrozenError


@pytest.fixture
def manifests():
    """Return raw manifests keyed by definition id."""
    return {
        "base-debian": {
            "version": "1.0.0",
            "variants": ["bullseye", "buster"],
            "build": {"tags": ["base:${VERSION}-${VARIANT}"]},
            "dependencies": {"image": "debian:${VARIANT}"},
        },
        "base-alpine": {
            "version": "0.9.1",
            "build": {"tags": ["base:${VERSION}-alpine"], "rootDistro": "alpine"},
            "dependencies": {"image": "alpine:3.16"},
        },
        "docs-only": {"version": "0.1.0"},
    }


@pytest.fixture
def registry(manifests) -> DefinitionRegistry:
    """Return a frozen registry."""
    return DefinitionRegistry.from_manifests(manifests)


class TestDefinitionRegistry:
    """Test registry accessors."""

    def test_from_manifests_is_frozen(self, registry) -> None:
        """from_manifests should return a frozen registry."""
        assert registry.frozen is True
        assert len(registry.tag_index) > 0

    def test_definition_list_has_build_settings_only(self, registry) -> None:
        """Definitions without build settings are not listed."""
        assert registry.get_definition_list() == ["base-debian", "base-alpine"]
        assert "docs-only" not in registry
        assert len(registry) == 2

    def test_versions(self, registry) -> None:
        """Versions are recorded per definition."""
        assert registry.get_version("base-debian") == "1.0.0"
        assert registry.get_version("docs-only") == "0.1.0"
        assert registry.get_version("missing") is None

    def test_variants_are_copies(self, registry) -> None:
        """Callers cannot change stored variants."""
        variants = registry.get_variants("base-debian")
        assert variants == ["bullseye", "buster"]
        variants.append("jessie")
        assert registry.get_variants("base-debian") == ["bullseye", "buster"]
        assert registry.get_variants("base-alpine") is None

    def test_image_variants_computed_on_freeze(self, registry) -> None:
        """Image references are expanded per variant."""
        debian = registry.get_dependencies("base-debian")
        alpine = registry.get_dependencies("base-alpine")

        assert debian is not None
        assert debian.image_variants == ["debian:bullseye", "debian:buster"]
        assert alpine is not None
        assert alpine.image_variants == ["alpine:3.16"]
        assert set(registry.get_all_dependencies()) == {"base-debian", "base-alpine"}

    def test_build_settings_lookup(self, registry) -> None:
        """Unknown definitions are None or an error depending on the accessor."""
        assert registry.get_build_settings("missing") is None
        with pytest.raises(DefinitionNotFoundError) as exc_info:
            registry.require_build_settings("missing")
        assert exc_info.value.code == "definition_not_found"

    def test_linux_distro(self, registry) -> None:
        """Root distro defaults to debian."""
        assert registry.get_linux_distro("base-debian") == "debian"
        assert registry.get_linux_distro("base-alpine") == "alpine"
        packages = {"debian": "apt", "alpine": "apk"}
        assert registry.object_by_linux_distro("base-alpine", packages) == "apk"
        assert registry.object_by_linux_distro("base-debian", {}) is None


class TestRegistryLifecycle:
    """Test the load phase and freezing."""

    def test_tag_index_requires_freeze(self) -> None:
        """The tag index is only available once frozen."""
        registry = DefinitionRegistry()
        with pytest.raises(RuntimeError):
            _ = registry.tag_index

    def test_frozen_registry_rejects_changes(self, registry, tmp_path: Path) -> None:
        """Adding to a frozen registry should fail."""
        with pytest.raises(RegistryFrozenError):
            registry.add_manifest("new", ManifestSchema())
        with pytest.raises(RegistryFrozenError):
            registry.add_definition_path("new", tmp_path / "src" / "new", tmp_path)

    def test_manifest_sections_merge(self) -> None:
        """Later manifests only replace the sections they carry."""
        registry = DefinitionRegistry()
        registry.add_manifest(
            "node", ManifestSchema.model_validate({"variants": ["18"], "version": "1.0.0"})
        )
        registry.add_manifest(
            "node", ManifestSchema.model_validate({"build": {"tags": ["node:${VERSION}"]}})
        )
        registry.freeze()
        registry.freeze()

        assert registry.get_variants("node") == ["18"]
        assert registry.get_version("node") == "1.0.0"
        assert "node" in registry

    def test_definition_paths(self, tmp_path: Path) -> None:
        """Paths are available absolute and repository-relative."""
        registry = DefinitionRegistry()
        registry.add_definition_path("python", tmp_path / "src" / "python", tmp_path)
        registry.freeze()

        assert registry.get_definition_path("python") == tmp_path / "src" / "python"
        assert registry.get_definition_path("python", relative=True) == Path("src/python")
        assert set(registry.get_all_definition_paths()) == {"python"}
        with pytest.raises(DefinitionNotFoundError):
            registry.get_definition_path("node")
