"""
Saved searches belong to a user; only the digest job advances last_sent_at.
"""
from core.db.watches.watch_store import (
    FREQUENCIES,
    DEFAULT_FREQUENCY,
    create_watch,
    get_watches_for_user,
    get_enabled_watches,
    get_watch,
    rename_watch,
    set_watch_frequency,
    set_watch_enabled,
    delete_watch,
    mark_watch_sent,
)

__all__ = [
    "FREQUENCIES",
    "DEFAULT_FREQUENCY",
    "create_watch",
    "get_watches_for_user",
    "get_enabled_watches",
    "get_watch",
    "rename_watch",
    "set_watch_frequency",
    "set_watch_enabled",
    "delete_watch",
    "mark_watch_sent",
]
