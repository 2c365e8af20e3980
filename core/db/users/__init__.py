"""
User-related storage helpers, split by responsibility.
"""
from core.db.users.auth import hash_password, is_valid_email, password_problems, verify_password
from core.db.users.user_store import (
    create_user,
    get_user_by_email,
    get_user_by_id,
    update_user_password,
    set_user_active,
    list_users,
)
from core.db.users.sessions import (
    create_session,
    delete_session,
    get_session,
    touch_session,
    SESSION_TIMEOUT_MINUTES,
)

__all__ = [
    "hash_password",
    "is_valid_email",
    "password_problems",
    "verify_password",
    "create_user",
    "get_user_by_email",
    "get_user_by_id",
    "update_user_password",
    "set_user_active",
    "list_users",
    "create_session",
    "delete_session",
    "get_session",
    "touch_session",
    "SESSION_TIMEOUT_MINUTES",
]
