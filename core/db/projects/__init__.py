"""
Project storage re-exports.
"""
from core.db.projects.projects_store import (
    PHASE_OPTIONS,
    PHASE_PLANNING,
    PHASE_CONSTRUCTION_STARTED,
    EDITABLE_FIELDS,
    normalize_project,
    has_coords,
    list_public_projects,
    list_all_projects,
    get_project,
    create_project,
    update_project,
    set_project_visibility,
    delete_project,
    project_counts,
    find_new_public_projects,
)

__all__ = [
    "PHASE_OPTIONS",
    "PHASE_PLANNING",
    "PHASE_CONSTRUCTION_STARTED",
    "EDITABLE_FIELDS",
    "normalize_project",
    "has_coords",
    "list_public_projects",
    "list_all_projects",
    "get_project",
    "create_project",
    "update_project",
    "set_project_visibility",
    "delete_project",
    "project_counts",
    "find_new_public_projects",
]
