"""Error types for imagedefs.

Each error carries a stable ``code`` for programmatic handling, alongside a
human-readable message.
"""


class ImageDefsError(Exception):
    """Base error for imagedefs operations."""

    def __init__(self, message: str, code: str = "imagedefs_error") -> None:
        super().__init__(message)
        self.code = code


class DefinitionNotFoundError(ImageDefsError):
    """Raised when a definition is not found."""

    def __init__(self, definition_id: str) -> None:
        super().__init__(
            f"Definition not found: {definition_id}", code="definition_not_found"
        )
        self.definition_id = definition_id


class RegistryFrozenError(ImageDefsError):
    """Raised when a frozen registry is modified."""

    def __init__(self, definition_id: str) -> None:
        super().__init__(
            f"Registry is frozen; cannot add definition: {definition_id}",
            code="registry_frozen",
        )
        self.definition_id = definition_id


class ManifestError(ImageDefsError):
    """Raised when a definition manifest cannot be loaded or validated."""

    def __init__(self, message: str, code: str = "manifest_error") -> None:
        super().__init__(message, code=code)


class InvalidVersionError(ImageDefsError):
    """Raised when a version is not in major.minor.patch form."""

    def __init__(self, version: str) -> None:
        super().__init__(f"Invalid version format in {version}.", code="invalid_version")
        self.version = version


class TagFormatError(ImageDefsError):
    """Raised when a tag does not have the <registry>/<path>/<repo>:<tag> shape."""

    def __init__(self, tag: str, expected: str) -> None:
        super().__init__(
            f"Tag {tag} does not match expected form {expected}",
            code="tag_format",
        )
        self.tag = tag


class ParentVariantError(ImageDefsError):
    """Raised when a parent does not declare the variant a child builds on."""

    def __init__(
        self, variant: str | None, parent_id: str, valid_variants: list[str]
    ) -> None:
        super().__init__(
            "Unable to determine variant for parent. "
            f"Variant {variant} is not in {parent_id} list: {', '.join(valid_variants)}",
            code="parent_variant",
        )
        self.variant = variant
        self.parent_id = parent_id
        self.valid_variants = valid_variants


class PageOutOfRangeError(ImageDefsError):
    """Raised when a requested build page does not exist."""

    def __init__(self, page: int, page_total: int) -> None:
        super().__init__(
            f"Page {page} is out of range (1-{page_total})", code="page_out_of_range"
        )
        self.page = page
        self.page_total = page_total


class StagingError(ImageDefsError):
    """Raised when staging files fails."""

    def __init__(self, message: str, code: str = "staging_error") -> None:
        super().__init__(message, code=code)


__all__ = [
    "DefinitionNotFoundError",
    "ImageDefsError",
    "InvalidVersionError",
    "ManifestError",
    "PageOutOfRangeError",
    "ParentVariantError",
    "RegistryFrozenError",
    "StagingError",
    "TagFormatError",
]
