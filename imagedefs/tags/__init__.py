"""Tag generation module.

This module handles:
- Parsing tag templates into typed segments
- Generating versioned, unversioned and latest tags
- Resolving tags back to definitions and rewriting them
"""

from imagedefs.tags.generator import (
    get_latest_tag,
    get_parent_tag_for_version,
    get_tag_list,
    get_tags_for_version,
    get_version_from_release,
    major_from_release,
)
from imagedefs.tags.lookup import (
    TagIndex,
    get_definition_from_tag,
    get_updated_tag,
    parse_tag,
)
from imagedefs.tags.template import TagTemplate, parse_template

__all__ = [
    # Templates
    "TagTemplate",
    "parse_template",
    # Generator
    "get_latest_tag",
    "get_parent_tag_for_version",
    "get_tag_list",
    "get_tags_for_version",
    "get_version_from_release",
    "major_from_release",
    # Lookup
    "TagIndex",
    "get_definition_from_tag",
    "get_updated_tag",
    "parse_tag",
]
