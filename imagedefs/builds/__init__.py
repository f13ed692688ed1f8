"""Build planning module.

This module handles:
- Ordering definitions and variants into dependency-respecting groups
- Paginating groups across parallel build jobs
- Per-release staging folders
"""

from imagedefs.builds.planner import (
    PlanningContext,
    get_sorted_definition_build_list,
    paginate,
    plan_build_groups,
    plan_build_pages,
)
from imagedefs.builds.staging import StagingArea, stage_path

__all__ = [
    "PlanningContext",
    "StagingArea",
    "get_sorted_definition_build_list",
    "paginate",
    "plan_build_groups",
    "plan_build_pages",
    "stage_path",
]
