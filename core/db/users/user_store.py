"""
User account storage helpers.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from core.db.base import get_conn, to_iso, utc_now
from core.db.users.auth import hash_password

_USER_COLUMNS = "id, email, password_hash, active, created_at"


def create_user(email: str, raw_password: str) -> int:
    conn = get_conn()
    cur = conn.cursor()

    cur.execute(
        """
        INSERT INTO users (email, password_hash, active, created_at)
        VALUES (?, ?, 1, ?)
        RETURNING id
        """,
        (email.strip().lower(), hash_password(raw_password), to_iso(utc_now())),
    )
    row = cur.fetchone()
    user_id = int(row["id"]) if row else 0

    conn.commit()
    conn.close()
    return user_id


def get_user_by_email(email: str) -> Dict | None:
    conn = get_conn()
    cur = conn.cursor()

    cur.execute(
        f"SELECT {_USER_COLUMNS} FROM users WHERE email = ?",
        ((email or "").strip().lower(),),
    )
    row = cur.fetchone()
    conn.close()

    return dict(row) if row else None


def get_user_by_id(user_id: int) -> Optional[Dict]:
    """Look up a user by numeric id. Returns dict or None."""
    conn = get_conn()
    cur = conn.cursor()

    cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,))
    row = cur.fetchone()
    conn.close()

    return dict(row) if row else None


def update_user_password(user_id: int, raw_password: str) -> None:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        "UPDATE users SET password_hash=? WHERE id=?",
        (hash_password(raw_password), user_id),
    )
    conn.commit()
    conn.close()


def set_user_active(user_id: int, active: bool) -> None:
    """Disable or re-enable sign-in; disabling also drops live sessions."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute("UPDATE users SET active=? WHERE id=?", (1 if active else 0, user_id))
    if not active:
        cur.execute("DELETE FROM sessions WHERE user_id=?", (user_id,))
    conn.commit()
    conn.close()


def list_users() -> List[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"SELECT {_USER_COLUMNS} FROM users ORDER BY id")
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


__all__ = [
    "create_user",
    "get_user_by_email",
    "get_user_by_id",
    "update_user_password",
    "set_user_active",
    "list_users",
]
