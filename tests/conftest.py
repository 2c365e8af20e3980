import os

import pytest

from app import security

_TABLES = [
    "saved_searches",
    "sessions",
    "projects",
    "users",
]


def _truncate_all():
    from core.db.base import get_conn

    conn = get_conn()
    cur = conn.cursor()
    cur.execute("TRUNCATE " + ", ".join(_TABLES) + " RESTART IDENTITY CASCADE")
    conn.commit()
    conn.close()


@pytest.fixture
def clean_db(monkeypatch):
    """Postgres-backed tests only run when DATABASE_URL points at a test database."""
    if not os.getenv("DATABASE_URL"):
        pytest.skip("DATABASE_URL must be set for Postgres-only tests.")
    monkeypatch.delenv("ADMIN_EMAIL", raising=False)
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)

    from core.db.schema import init_db

    init_db()
    _truncate_all()
    yield
    _truncate_all()


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    security.reset_rate_limits()
    yield
    security.reset_rate_limits()
