"""Build order planning.

This module handles:
- Bucketing definitions under their parent (including multi-parent merges)
- Chaining parent and child variants into build groups
- Paginating build groups across a fixed number of parallel jobs

Every planning call works on its own PlanningContext, so plans can be
computed repeatedly or concurrently against one frozen registry.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from imagedefs.errors import PageOutOfRangeError
from imagedefs.tags.generator import parent_variant_id
from imagedefs.types import BuildItem

if TYPE_CHECKING:
    from imagedefs.definitions.registry import DefinitionRegistry

logger = logging.getLogger(__name__)


@dataclass
class PlanningContext:
    """Intermediate state of one planning call.

    Attributes:
        parent_buckets: Bucket key -> member ids. Merged buckets share one
            list object; superseded keys map to None after pruning.
        dupe_buckets: Bucket keys superseded by a multi-parent merge.
        no_parent: Definitions without a parent that are not bucket keys.
        groups: Build groups in creation order.
        skip_parent_variants: Parent items already chained to a child.
    """

    parent_buckets: dict[str, list[str] | None] = field(default_factory=dict)
    dupe_buckets: list[str] = field(default_factory=list)
    no_parent: list[str] = field(default_factory=list)
    groups: list[list[BuildItem]] = field(default_factory=list)
    skip_parent_variants: list[BuildItem] = field(default_factory=list)

    def bucket(self, bucket_id: str) -> list[str]:
        """Return the bucket for an id, seeding it with the id itself."""
        members = self.parent_buckets.get(bucket_id)
        if members is None:
            members = [bucket_id]
            self.parent_buckets[bucket_id] = members
        return members

    def find_group(self, item: BuildItem) -> list[BuildItem] | None:
        """Return the first group containing an item, scanning in creation order."""
        for group in self.groups:
            if item in group:
                return group
        return None

    def add_group(self, items: list[BuildItem]) -> None:
        """Start a new group unless its first item is already planned."""
        if self.find_group(items[0]) is None:
            self.groups.append(items)

    def attach(self, parent_item: BuildItem, child_item: BuildItem) -> None:
        """Place a child in the group that builds its parent.

        The child joins the first group holding the parent. If the child
        already heads a group of its own descendants, that group is folded
        in behind the parent, so every item stays in exactly one group.
        """
        parent_group = self.find_group(parent_item)
        child_group = self.find_group(child_item)
        if parent_group is not None:
            if child_group is None:
                parent_group.append(child_item)
            elif child_group is not parent_group:
                parent_group.extend(m for m in child_group if m not in parent_group)
                self.groups = [g for g in self.groups if g is not child_group]
        elif child_group is not None:
            child_group.insert(0, parent_item)
        else:
            self.groups.append([parent_item, child_item])
        self.skip_parent_variants.append(parent_item)


def _grandparent_id(definitions: DefinitionRegistry, parent_id: str) -> str | None:
    parent_build = definitions.get_build_settings(parent_id)
    if parent_build is None:
        return None
    grandparents = parent_build.parent_ids()
    return grandparents[0] if grandparents else None


def _bucket_definition(
    definitions: DefinitionRegistry,
    context: PlanningContext,
    definition_id: str,
    parent_id: str,
) -> None:
    # Parents of parents are resolved one level deep only.
    grandparent_id = _grandparent_id(definitions, parent_id)
    if grandparent_id is not None:
        bucket = context.bucket(grandparent_id)
        if parent_id not in bucket:
            bucket.append(parent_id)
        parent_id = grandparent_id

    bucket = context.bucket(parent_id)
    if definition_id not in bucket:
        bucket.append(definition_id)


def _create_multi_parent_bucket(
    context: PlanningContext, parent_map: dict[str, str | None]
) -> str:
    parent_ids = [p for p in parent_map.values() if p]
    parent_id = parent_ids[0]
    first_bucket = context.bucket(parent_id)
    for current_parent_id in parent_ids:
        if current_parent_id == parent_id:
            continue
        current_bucket = context.parent_buckets.get(current_parent_id)
        if current_bucket is not None and current_parent_id not in context.dupe_buckets:
            for member in current_bucket:
                if member not in first_bucket:
                    first_bucket.append(member)
        elif current_parent_id not in first_bucket:
            first_bucket.append(current_parent_id)
        context.dupe_buckets.append(current_parent_id)
        context.parent_buckets[current_parent_id] = first_bucket
    return parent_id


def _bucket_definitions(
    definitions: DefinitionRegistry,
    context: PlanningContext,
    definitions_to_skip: Iterable[str],
) -> None:
    skip = set(definitions_to_skip)
    for definition_id in definitions.get_definition_list():
        if definition_id in skip:
            logger.info("Skipping %s.", definition_id)
            continue
        build = definitions.require_build_settings(definition_id)
        if not build.parent:
            context.no_parent.append(definition_id)
            continue
        if isinstance(build.parent, dict):
            parent_id = _create_multi_parent_bucket(context, build.parent)
        else:
            parent_id = build.parent
        _bucket_definition(definitions, context, definition_id, parent_id)

    for bucket_id in context.dupe_buckets:
        context.parent_buckets[bucket_id] = None
    # Bucket keys are planned through their bucket.
    context.no_parent = [
        d for d in context.no_parent if d not in context.parent_buckets
    ]


def _chain_definition(
    definitions: DefinitionRegistry,
    context: PlanningContext,
    bucket_id: str,
    definition_id: str,
) -> None:
    build = definitions.get_build_settings(definition_id)
    if build is None:
        return
    variants = definitions.get_variants(definition_id)
    parent = build.parent

    if not parent:
        # e.g. base-debian:stretch with no interdependent child variant
        if variants:
            for variant in variants:
                item = BuildItem(definition_id, variant)
                if item not in context.skip_parent_variants:
                    context.add_group([item])
        elif build.tags:
            context.add_group([BuildItem(definition_id)])
    elif isinstance(parent, str):
        # e.g. ruby:2.7-bullseye must build before jekyll:2.7-bullseye
        parent_variants = definitions.get_variants(parent) or []
        if variants:
            for variant in variants:
                variant_id = parent_variant_id(build, variant)
                if variant_id in parent_variants:
                    context.attach(
                        BuildItem(parent, variant_id), BuildItem(definition_id, variant)
                    )
                else:
                    context.add_group([BuildItem(definition_id, variant)])
        elif build.tags:
            context.attach(BuildItem(bucket_id), BuildItem(definition_id))
    else:
        for variant, parent_id in parent.items():
            parent_variants = (definitions.get_variants(parent_id) or []) if parent_id else []
            if variant in parent_variants:
                context.attach(
                    BuildItem(parent_id, variant), BuildItem(definition_id, variant)
                )
            elif parent_id:
                context.add_group([BuildItem(definition_id, variant)])
            elif build.tags:
                context.attach(BuildItem(bucket_id), BuildItem(definition_id))


def plan_build_groups(
    definitions: DefinitionRegistry,
    definitions_to_skip: Iterable[str] = (),
    context: PlanningContext | None = None,
) -> list[list[BuildItem]]:
    """Compute build groups so parents build before, and with, their children.

    Args:
        definitions: Loaded registry.
        definitions_to_skip: Definition ids left out of the plan.
        context: Empty context to plan into, for callers that want the
            buckets as well as the groups. A fresh one is used by default.

    Returns:
        Build groups in creation order.
    """
    if context is None:
        context = PlanningContext()
    _bucket_definitions(definitions, context, definitions_to_skip)

    processed: set[int] = set()
    for bucket_id, bucket in context.parent_buckets.items():
        if bucket is None or id(bucket) in processed:
            continue
        processed.add(id(bucket))
        # Children first, so the parent only gets groups for unclaimed variants.
        for definition_id in reversed(bucket):
            _chain_definition(definitions, context, bucket_id, definition_id)

    for definition_id in context.no_parent:
        build = definitions.require_build_settings(definition_id)
        variants = definitions.get_variants(definition_id)
        if variants:
            for variant in variants:
                context.add_group([BuildItem(definition_id, variant)])
        elif build.tags:
            context.add_group([BuildItem(definition_id)])

    return context.groups


def paginate(
    groups: list[list[BuildItem]], page_total: int
) -> list[list[BuildItem]]:
    """Spread build groups over exactly ``page_total`` pages.

    Groups beyond the last page are appended to it; missing pages are
    empty. The input is not modified.

    Raises:
        ValueError: If page_total is less than 1.
    """
    if page_total < 1:
        raise ValueError(f"page_total must be at least 1, got {page_total}")

    pages = [list(group) for group in groups]
    if len(pages) > page_total:
        logger.info(
            "Not enough pages for target page size. Adding excess definitions to last page."
        )
        last_page = pages[page_total - 1]
        for extra in pages[page_total:]:
            last_page.extend(extra)
        del pages[page_total:]
    elif len(pages) < page_total:
        pages.extend([] for _ in range(page_total - len(pages)))
    return pages


def plan_build_pages(
    definitions: DefinitionRegistry,
    page_total: int = 1,
    definitions_to_skip: Iterable[str] = (),
) -> list[list[BuildItem]]:
    """Plan build groups and paginate them into ``page_total`` pages."""
    groups = plan_build_groups(definitions, definitions_to_skip)
    logger.info(
        "Builds pagination needs at least %d pages to parallelize jobs efficiently.",
        len(groups),
    )
    return paginate(groups, page_total)


def get_sorted_definition_build_list(
    definitions: DefinitionRegistry,
    page: int = 1,
    page_total: int = 1,
    definitions_to_skip: Iterable[str] = (),
) -> list[BuildItem]:
    """Return one page of the build plan.

    Args:
        definitions: Loaded registry.
        page: 1-based page number.
        page_total: Number of pages to spread the plan over.
        definitions_to_skip: Definition ids left out of the plan.

    Returns:
        Build items of the requested page, in build order.

    Raises:
        PageOutOfRangeError: If page is not within 1..page_total.
        ValueError: If page_total is less than 1.
    """
    pages = plan_build_pages(definitions, page_total, definitions_to_skip)
    if not 1 <= page <= len(pages):
        raise PageOutOfRangeError(page, page_total)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Builds paginated as follows: %s",
            json.dumps(
                [[item.to_dict() for item in p] for p in pages], indent=4
            ),
        )
    logger.info("Processing page %d of %d.", page, page_total)
    return pages[page - 1]


__all__ = [
    "PlanningContext",
    "get_sorted_definition_build_list",
    "paginate",
    "plan_build_groups",
    "plan_build_pages",
]
