"""
Single import point for storage helpers used by routes and workers.
"""
from core.db.base import get_conn, parse_iso, to_iso, utc_now
from core.db.schema import init_db, ensure_admin_from_env
from core.db.users import (
    create_session,
    create_user,
    delete_session,
    get_session,
    get_user_by_email,
    get_user_by_id,
    is_valid_email,
    password_problems,
    set_user_active,
    touch_session,
    update_user_password,
    verify_password,
)
from core.db.projects import (
    create_project,
    delete_project,
    find_new_public_projects,
    get_project,
    list_all_projects,
    list_public_projects,
    project_counts,
    set_project_visibility,
    update_project,
)
from core.db.watches import (
    create_watch,
    delete_watch,
    get_enabled_watches,
    get_watch,
    get_watches_for_user,
    mark_watch_sent,
    rename_watch,
    set_watch_enabled,
    set_watch_frequency,
)

__all__ = [
    "get_conn",
    "parse_iso",
    "to_iso",
    "utc_now",
    "init_db",
    "ensure_admin_from_env",
    "create_session",
    "create_user",
    "delete_session",
    "get_session",
    "get_user_by_email",
    "get_user_by_id",
    "is_valid_email",
    "password_problems",
    "set_user_active",
    "touch_session",
    "update_user_password",
    "verify_password",
    "create_project",
    "delete_project",
    "find_new_public_projects",
    "get_project",
    "list_all_projects",
    "list_public_projects",
    "project_counts",
    "set_project_visibility",
    "update_project",
    "create_watch",
    "delete_watch",
    "get_enabled_watches",
    "get_watch",
    "get_watches_for_user",
    "mark_watch_sent",
    "rename_watch",
    "set_watch_enabled",
    "set_watch_frequency",
]
