"""Tests for manifest loading and registry population."""

import json
from pathlib import Path

import pytest
import yaml

from imagedefs.config import Settings
from imagedefs.definitions.io import DEPRECATED_MARKER, load_definitions, load_manifest
from imagedefs.errors import ManifestError


def _write_manifest(repo: Path, definition_id: str, data: dict) -> Path:
    definition_dir = repo / "src" / definition_id
    definition_dir.mkdir(parents=True, exist_ok=True)
    path = definition_dir / "manifest.json"
    path.write_text(json.dumps(data))
    return definition_dir


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """Create a repository with a parent, a child and a deprecated definition."""
    _write_manifest(
        tmp_path,
        "base",
        {
            "version": "1.0.0",
            "variants": ["stretch"],
            "build": {"tags": ["base:${VERSION}-${VARIANT}"]},
        },
    )
    _write_manifest(
        tmp_path,
        "child",
        {
            "version": "2.0.0",
            "variants": ["stretch"],
            "build": {"tags": ["child:${VERSION}-${VARIANT}"], "parent": "base"},
        },
    )
    old = _write_manifest(
        tmp_path, "old", {"version": "0.1.0", "build": {"tags": ["old:${VERSION}"]}}
    )
    (old / DEPRECATED_MARKER).touch()
    (tmp_path / "src" / "README.md").write_text("not a definition")
    return tmp_path


class TestLoadManifest:
    """Test load_manifest function."""

    def test_load_json(self, tmp_path: Path) -> None:
        """JSON manifests should load."""
        path = tmp_path / "manifest.json"
        path.write_text(json.dumps({"variants": ["a"], "build": {"tags": ["x:a"]}}))

        manifest = load_manifest(path)
        assert manifest.variants == ["a"]

    def test_load_yaml(self, tmp_path: Path) -> None:
        """YAML manifests should load."""
        path = tmp_path / "manifest.yaml"
        path.write_text(
            yaml.safe_dump({"version": "1.0.0", "build": {"parent": "base", "tags": []}})
        )

        manifest = load_manifest(path)
        assert manifest.version == "1.0.0"
        assert manifest.build is not None
        assert manifest.build.parent == "base"

    def test_unsupported_extension(self, tmp_path: Path) -> None:
        """Unknown extensions should be rejected."""
        path = tmp_path / "manifest.toml"
        path.write_text("")

        with pytest.raises(ManifestError) as exc_info:
            load_manifest(path)
        assert exc_info.value.code == "unsupported_format"

    def test_parse_error(self, tmp_path: Path) -> None:
        """Malformed JSON should be a parse error."""
        path = tmp_path / "manifest.json"
        path.write_text("{not json")

        with pytest.raises(ManifestError) as exc_info:
            load_manifest(path)
        assert exc_info.value.code == "parse_error"

    def test_validation_error(self, tmp_path: Path) -> None:
        """Schema violations should be validation errors."""
        path = tmp_path / "manifest.json"
        path.write_text(json.dumps({"variants": ["a", "a"]}))

        with pytest.raises(ManifestError) as exc_info:
            load_manifest(path)
        assert exc_info.value.code == "validation"

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file should raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_manifest(tmp_path / "manifest.json")


class TestLoadDefinitions:
    """Test load_definitions function."""

    def test_loads_and_freezes(self, repo: Path) -> None:
        """All active definitions should be loaded into a frozen registry."""
        registry = load_definitions(repo, Settings())

        assert registry.frozen is True
        assert registry.get_definition_list() == ["base", "child"]
        assert registry.get_version("child") == "2.0.0"
        assert registry.get_definition_path("child", relative=True) == Path("src/child")

    def test_deprecated_skipped_but_kept(self, repo: Path) -> None:
        """Deprecated definitions are not loaded and stay on disk by default."""
        registry = load_definitions(repo, Settings())

        assert "old" not in registry
        assert (repo / "src" / "old").exists()

    def test_prune_deprecated(self, repo: Path) -> None:
        """Pruning should delete deprecated definition directories."""
        load_definitions(repo, Settings(), prune_deprecated=True)
        assert not (repo / "src" / "old").exists()

    def test_custom_layout(self, tmp_path: Path) -> None:
        """Definitions dir and manifest name come from settings."""
        definition_dir = tmp_path / "containers" / "node"
        definition_dir.mkdir(parents=True)
        (definition_dir / "build.json").write_text(
            json.dumps({"build": {"tags": ["node:${VERSION}"]}})
        )
        settings = Settings(definitions_dir="containers", image_build_config_file="build.json")

        registry = load_definitions(tmp_path, settings)
        assert registry.get_definition_list() == ["node"]

    def test_missing_definitions_dir(self, tmp_path: Path) -> None:
        """A repository without a definitions directory is an error."""
        with pytest.raises(FileNotFoundError):
            load_definitions(tmp_path, Settings())

    def test_invalid_manifest_propagates(self, repo: Path) -> None:
        """A broken manifest should stop loading."""
        (repo / "src" / "child" / "manifest.json").write_text("{")
        with pytest.raises(ManifestError):
            load_definitions(repo, Settings())
