"""Per-release staging folders.

This module handles:
- Copying the configured repository files into a staging folder
- Keeping one staging folder per release for the lifetime of a StagingArea

Builds run from the staging copy so that load-time changes (such as removing
deprecated definitions) never touch the working tree.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

from imagedefs.errors import StagingError

logger = logging.getLogger(__name__)


def _validate_path_within_base(path: Path, base: Path, path_type: str) -> Path:
    """Validate that a path is contained within a base directory.

    Returns:
        The resolved path.

    Raises:
        StagingError: If path escapes base directory.
    """
    resolved_path = path.resolve()
    resolved_base = base.resolve()

    try:
        resolved_path.relative_to(resolved_base)
    except ValueError:
        raise StagingError(
            f"{path_type} path traversal detected: {path} resolves outside {base}",
            code="path_traversal",
        ) from None

    return resolved_path


def stage_path(source_root: Path, relative_path: str, staging_folder: Path) -> None:
    """Copy one repository file or directory into a staging folder.

    Args:
        source_root: Repository root.
        relative_path: Path of the file or directory, relative to source_root.
        staging_folder: Destination root; the relative layout is preserved.

    Raises:
        StagingError: If the source is missing, escapes the repository, or
            cannot be copied.
    """
    source = source_root / relative_path
    _validate_path_within_base(source, source_root, "source")
    dest = staging_folder / relative_path
    _validate_path_within_base(dest, staging_folder, "destination")

    if not source.exists():
        raise StagingError(f"Source not found: {source}", code="source_not_found")

    try:
        if source.is_dir():
            shutil.copytree(source, dest, dirs_exist_ok=True)
        else:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, dest)
    except OSError as e:
        raise StagingError(
            f"Failed to stage {source} -> {dest}: {e}", code="copy_error"
        ) from e


class StagingArea:
    """Creates and remembers one staging folder per release.

    Attributes:
        root: Directory under which release folders are created.
        source_root: Repository root that files are copied from.
        files_to_stage: Repository-relative paths copied into each folder.
    """

    def __init__(
        self,
        root: Path,
        source_root: Path,
        files_to_stage: Iterable[str] = (),
    ) -> None:
        self.root = root
        self.source_root = source_root
        self.files_to_stage = list(files_to_stage)
        self._folders: dict[str, Path] = {}

    def get_staging_folder(self, release: str) -> Path:
        """Return the staging folder for a release, creating it on first use.

        A new folder replaces anything left at its location by earlier runs.

        Raises:
            StagingError: If a file cannot be staged.
        """
        folder = self._folders.get(release)
        if folder is not None:
            return folder

        folder = self.root / release
        logger.info("Copying files to %s", folder)
        if folder.exists():
            shutil.rmtree(folder)
        folder.mkdir(parents=True)
        for relative_path in self.files_to_stage:
            logger.debug("Staging %s", relative_path)
            stage_path(self.source_root, relative_path, folder)

        self._folders[release] = folder
        return folder


__all__ = ["StagingArea", "stage_path"]
