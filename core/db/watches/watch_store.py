"""
Saved search ("hakuvahti") storage helpers.

Filters are stored as JSON text and validated into `ProjectFilters` on the way
out; callers never see the raw column.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from core.db.base import get_conn, to_iso, utc_now
from core.filters import ProjectFilters

FREQUENCIES = ("daily", "weekly")
DEFAULT_FREQUENCY = "weekly"

_COLUMNS = "id, user_id, name, filters, frequency, is_enabled, last_sent_at, created_at, updated_at"


def _to_watch(row) -> Dict:
    watch = dict(row)
    watch["filters"] = ProjectFilters.from_raw(watch.get("filters"))
    watch["is_enabled"] = bool(watch.get("is_enabled"))
    if watch.get("frequency") not in FREQUENCIES:
        watch["frequency"] = DEFAULT_FREQUENCY
    return watch


def create_watch(*, user_id: int, name: str, filters: ProjectFilters, frequency: str = DEFAULT_FREQUENCY) -> int:
    if frequency not in FREQUENCIES:
        raise ValueError(f"Unknown frequency: {frequency!r}")
    now = to_iso(utc_now())

    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO saved_searches (user_id, name, filters, frequency, is_enabled, last_sent_at, created_at, updated_at)
        VALUES (?, ?, ?, ?, 1, NULL, ?, ?)
        RETURNING id
        """,
        (user_id, name.strip(), filters.to_json(), frequency, now, now),
    )
    row = cur.fetchone()
    conn.commit()
    conn.close()
    return int(row["id"]) if row else 0


def get_watches_for_user(user_id: int) -> List[Dict]:
    """All watches owned by a user, newest first."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM saved_searches
        WHERE user_id = ?
        ORDER BY created_at DESC, id DESC
        """,
        (user_id,),
    )
    rows = cur.fetchall()
    conn.close()
    return [_to_watch(r) for r in rows]


def get_enabled_watches() -> List[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"SELECT {_COLUMNS} FROM saved_searches WHERE is_enabled = 1 ORDER BY id")
    rows = cur.fetchall()
    conn.close()
    return [_to_watch(r) for r in rows]


def get_watch(watch_id: int) -> Optional[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"SELECT {_COLUMNS} FROM saved_searches WHERE id = ?", (watch_id,))
    row = cur.fetchone()
    conn.close()
    return _to_watch(row) if row else None


def _update_owned(watch_id: int, user_id: int, assignments: str, params: tuple) -> bool:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"UPDATE saved_searches SET {assignments}, updated_at = ? WHERE id = ? AND user_id = ?",
        params + (to_iso(utc_now()), watch_id, user_id),
    )
    updated = cur.rowcount
    conn.commit()
    conn.close()
    return updated > 0


def rename_watch(watch_id: int, user_id: int, name: str) -> bool:
    name = (name or "").strip()
    if not name:
        raise ValueError("Watch name cannot be empty")
    return _update_owned(watch_id, user_id, "name = ?", (name,))


def set_watch_frequency(watch_id: int, user_id: int, frequency: str) -> bool:
    if frequency not in FREQUENCIES:
        raise ValueError(f"Unknown frequency: {frequency!r}")
    return _update_owned(watch_id, user_id, "frequency = ?", (frequency,))


def set_watch_enabled(watch_id: int, user_id: int, enabled: bool) -> bool:
    return _update_owned(watch_id, user_id, "is_enabled = ?", (1 if enabled else 0,))


def delete_watch(watch_id: int, user_id: int) -> bool:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute("DELETE FROM saved_searches WHERE id = ? AND user_id = ?", (watch_id, user_id))
    deleted = cur.rowcount
    conn.commit()
    conn.close()
    return deleted > 0


def mark_watch_sent(watch_id: int, sent_at: datetime, *, force: bool = False) -> bool:
    """
    Advance last_sent_at. The timestamp never moves backward: the row is only
    touched when it is unset or older than `sent_at`.

    `force` overwrites the column regardless, for rows whose stored value is not
    a readable timestamp and so cannot be compared.
    """
    stamp = to_iso(sent_at)
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        UPDATE saved_searches
        SET last_sent_at = ?
        WHERE id = ? AND (last_sent_at IS NULL OR last_sent_at < ? OR ?)
        """,
        (stamp, watch_id, stamp, bool(force)),
    )
    updated = cur.rowcount
    conn.commit()
    conn.close()
    return updated > 0


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
