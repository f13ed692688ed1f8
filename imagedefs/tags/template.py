"""Tag template grammar.

A tag template such as ``python:${VERSION}-${VARIANT}`` is parsed once into
typed segments (literal text, version placeholder, variant placeholder) and
rendered from those segments, so substitutions never interfere with one
another.

Rendering rules:
- An empty version directly after the ``:`` separator also drops the ``-``
  that follows it (``python:${VERSION}-3`` -> ``python:3``).
- A missing variant right after a ``-`` drops the placeholder with that
  ``-`` (``python:${VERSION}-${VARIANT}`` -> ``python:1.0.0``). Anywhere
  else it renders as ``NOVARIANT`` (``img:${VARIANT}`` -> ``img:NOVARIANT``).
- A render that ends in a bare ``:`` has no tag and yields None.
"""

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from imagedefs.types import NOVARIANT

_PLACEHOLDER_PATTERN = re.compile(r"\$\{VERSION\}|\$\{VARIANT\}|\$VARIANT")


class SegmentKind(str, Enum):
    """Kind of a template segment."""

    LITERAL = "literal"
    VERSION = "version"
    VARIANT = "variant"


@dataclass(frozen=True)
class Segment:
    """One piece of a parsed tag template."""

    kind: SegmentKind
    text: str = ""


@dataclass(frozen=True)
class TagTemplate:
    """A parsed tag template."""

    source: str
    segments: tuple[Segment, ...]

    @property
    def has_variant(self) -> bool:
        """True if the template contains a variant placeholder."""
        return any(s.kind is SegmentKind.VARIANT for s in self.segments)

    @property
    def repository(self) -> str:
        """Text before the first ``:``, e.g. ``python`` for ``python:${VERSION}``."""
        return self.source.split(":", 1)[0]

    def render(self, version: str, variant: str | None = None) -> str | None:
        """Render the template.

        Args:
            version: Version text; may be empty.
            variant: Variant name, or None when there is no variant.

        Returns:
            The rendered tag, or None if it ends in a bare ``:``.
        """
        pieces: list[str] = []
        drop_dash = False
        for segment in self.segments:
            if segment.kind is SegmentKind.LITERAL:
                text = segment.text
                if drop_dash and text.startswith("-"):
                    text = text[1:]
                drop_dash = False
                if text:
                    pieces.append(text)
            elif segment.kind is SegmentKind.VERSION:
                if version:
                    pieces.append(version)
                    drop_dash = False
                else:
                    drop_dash = bool(pieces) and pieces[-1].endswith(":")
            elif variant is not None:
                pieces.append(variant)
                drop_dash = False
            elif pieces and pieces[-1].endswith("-"):
                pieces[-1] = pieces[-1][:-1]
                drop_dash = False
            else:
                pieces.append(NOVARIANT)
                drop_dash = False

        rendered = "".join(pieces)
        if rendered.endswith(":"):
            return None
        return rendered

    def latest_form(self) -> str:
        """Return the template with everything after the first ``:`` set to ``latest``.

        A template with no ``:`` is all tag part, so it becomes ``latest``.
        """
        repository, sep, _ = self.source.partition(":")
        if not sep:
            return "latest"
        return f"{repository}:latest"


@lru_cache(maxsize=1024)
def parse_template(source: str) -> TagTemplate:
    """Parse a tag template string into segments.

    Args:
        source: Template text.

    Returns:
        Parsed TagTemplate.
    """
    segments: list[Segment] = []
    position = 0
    for match in _PLACEHOLDER_PATTERN.finditer(source):
        if match.start() > position:
            segments.append(
                Segment(SegmentKind.LITERAL, source[position : match.start()])
            )
        kind = SegmentKind.VERSION if match.group() == "${VERSION}" else SegmentKind.VARIANT
        segments.append(Segment(kind))
        position = match.end()
    if position < len(source):
        segments.append(Segment(SegmentKind.LITERAL, source[position:]))
    return TagTemplate(source=source, segments=tuple(segments))


__all__ = ["Segment", "SegmentKind", "TagTemplate", "parse_template"]
