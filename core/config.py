"""
Environment-backed settings.

Values are read at call time so `.env` edits (and test monkeypatching) take
effect without re-importing modules.
"""
from __future__ import annotations

import os
from typing import List

DEFAULT_BASE_URL = "http://localhost:8000"


def parse_admin_emails(value: str | None) -> List[str]:
    return [part.strip().lower() for part in (value or "").split(",") if part.strip()]


def admin_emails() -> List[str]:
    return parse_admin_emails(os.getenv("ADMIN_EMAILS"))


def is_admin_email(email: str | None) -> bool:
    return (email or "").strip().lower() in admin_emails()


def public_base_url() -> str:
    return (os.getenv("PUBLIC_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")


def cron_secret() -> str:
    return os.getenv("CRON_SECRET") or ""


def secure_cookies() -> bool:
    return (
        os.getenv("COOKIE_SECURE", "").lower() in ("1", "true", "yes")
        or os.getenv("PUBLIC_BASE_URL", "").lower().startswith("https://")
    )


def missing_digest_config() -> List[str]:
    """Names of required settings the digest job cannot run without."""
    missing = []
    for name in ("DATABASE_URL", "EMAIL_USER", "EMAIL_PASSWORD"):
        if not os.getenv(name):
            missing.append(name)
    return missing


__all__ = [
    "DEFAULT_BASE_URL",
    "parse_admin_emails",
    "admin_emails",
    "is_admin_email",
    "public_base_url",
    "cron_secret",
    "secure_cookies",
    "missing_digest_config",
]
