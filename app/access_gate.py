"""
Route protection for the signed-in and admin areas.

`gate_redirect` is the pure decision; `access_gate` in `app.api` applies it
to every request and keeps the session cookie in step with the slid expiry.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional
from urllib.parse import quote

from app.auth_utils import SessionContext

log = logging.getLogger("access_gate")

PROTECTED_PREFIXES = ("/dashboard", "/projects")
ADMIN_PREFIXES = ("/dashboard",)
LOGIN_PATH = "/login"
NON_ADMIN_FALLBACK = "/projects"


def matches_prefix(path: str, prefixes: Iterable[str]) -> bool:
    """'/projects' and '/projects/12' match '/projects'; '/projectsx' does not."""
    return any(path == prefix or path.startswith(prefix + "/") for prefix in prefixes)


def login_url(next_path: str) -> str:
    return f"{LOGIN_PATH}?next={quote(next_path, safe='/')}"


def gate_redirect(path: str, ctx: SessionContext, admin_emails: Iterable[str]) -> Optional[str]:
    """Where to send this request instead, or None to let it through."""
    if not matches_prefix(path, PROTECTED_PREFIXES):
        return None

    if not ctx.signed_in:
        return login_url(path)

    if matches_prefix(path, ADMIN_PREFIXES):
        allowed = {email.strip().lower() for email in admin_emails}
        if ctx.email.strip().lower() not in allowed:
            log.info("Non-admin redirected", extra={"path": path, "user_id": ctx.user_id})
            return NON_ADMIN_FALLBACK

    return None


def safe_next_path(value: str | None, default: str = NON_ADMIN_FALLBACK) -> str:
    """Only same-site absolute paths are accepted as post-login targets."""
    value = (value or "").strip()
    if not value.startswith("/") or value.startswith("//") or "\\" in value:
        return default
    return value


__all__ = [
    "PROTECTED_PREFIXES",
    "ADMIN_PREFIXES",
    "matches_prefix",
    "login_url",
    "gate_redirect",
    "safe_next_path",
]
