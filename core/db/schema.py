"""
Schema and migration helpers for Postgres.
"""
from __future__ import annotations

import logging
import os

from core.db.base import get_conn
from core.db.users import create_user, get_user_by_email, update_user_password

log = logging.getLogger("db")


def init_db() -> None:
    """Create the users, sessions, projects and saved_searches tables if they don't exist."""
    conn = get_conn()
    cur = conn.cursor()

    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS users(
            id SERIAL PRIMARY KEY,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS sessions(
            id TEXT PRIMARY KEY,
            user_id INTEGER NOT NULL,
            created_at TEXT NOT NULL,
            last_seen_at TEXT NOT NULL,
            expires_at TEXT NOT NULL,
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS projects(
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            location TEXT,
            region TEXT,
            city TEXT NOT NULL DEFAULT '',
            phase TEXT NOT NULL,
            developer TEXT,
            builder TEXT,
            property_type TEXT,
            apartments BIGINT,
            floor_area BIGINT,
            estimated_cost BIGINT,
            construction_start TEXT,
            structural_design TEXT,
            hvac_design TEXT,
            electrical_design TEXT,
            architectural_design TEXT,
            geotechnical_design TEXT,
            earthworks_contractor TEXT,
            additional_info TEXT,
            latitude DOUBLE PRECISION,
            longitude DOUBLE PRECISION,
            is_public INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS saved_searches(
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL,
            name TEXT NOT NULL,
            filters TEXT NOT NULL DEFAULT '{}',
            frequency TEXT NOT NULL DEFAULT 'weekly',
            is_enabled INTEGER NOT NULL DEFAULT 1,
            last_sent_at TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            CHECK (frequency IN ('daily', 'weekly')),
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        )
        """
    )
    cur.execute("CREATE INDEX IF NOT EXISTS projects_public_created_idx ON projects (is_public, created_at)")
    cur.execute("CREATE INDEX IF NOT EXISTS saved_searches_user_idx ON saved_searches (user_id)")

    conn.commit()
    conn.close()

    ensure_admin_from_env()


def ensure_admin_from_env() -> None:
    """
    Optionally seed/update an operator account from environment variables.
    Set ADMIN_EMAIL and ADMIN_PASSWORD before startup to use. Dashboard access
    still depends on the address being listed in ADMIN_EMAILS.
    """
    admin_email = os.getenv("ADMIN_EMAIL")
    admin_password = os.getenv("ADMIN_PASSWORD")

    if not admin_email or not admin_password:
        return

    existing = get_user_by_email(admin_email)
    if existing:
        update_user_password(existing["id"], admin_password)
        log.info("Refreshed operator account password", extra={"email": existing["email"]})
        return

    create_user(admin_email, admin_password)
    log.info("Created operator account", extra={"email": admin_email.strip().lower()})


__all__ = [
    "init_db",
    "ensure_admin_from_env",
]
