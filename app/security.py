"""
Lightweight CSRF + rate limit helpers.
"""
from __future__ import annotations

import hmac
import secrets
import time
from html import escape
from typing import Dict, Tuple

from core.config import secure_cookies

CSRF_COOKIE_NAME = "csrf_token"
CSRF_FORM_FIELD = "csrf_token"


def issue_csrf_token(existing: str | None = None) -> str:
    """Return a CSRF token (re-use existing if provided, else create a new one)."""
    return existing or secrets.token_urlsafe(16)


def request_csrf_token(request) -> str:
    return issue_csrf_token(request.cookies.get(CSRF_COOKIE_NAME))


def csrf_input(token: str) -> str:
    return f'<input type="hidden" name="{CSRF_FORM_FIELD}" value="{escape(token, quote=True)}" />'


def attach_csrf_cookie(response, token: str) -> None:
    """
    Attach the CSRF token as a non-HTTPOnly cookie (double-submit pattern).
    `secure` follows COOKIE_SECURE / an https PUBLIC_BASE_URL.
    """
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=token,
        httponly=False,
        samesite="lax",
        secure=secure_cookies(),
    )


def validate_csrf(request, form_token: str | None) -> bool:
    """Compare the submitted token with the cookie value using constant-time compare."""
    cookie_token = request.cookies.get(CSRF_COOKIE_NAME) or ""
    form_token = form_token or ""
    if not cookie_token or not form_token:
        return False
    return hmac.compare_digest(cookie_token, form_token)


def client_ip(request) -> str:
    return request.client.host if request is not None and request.client else "unknown"


# -------- Rate limiting (in-memory) --------
_rate_state: Dict[str, list[float]] = {}


def allow_request_with_remaining(key: str, limit: int = 5, window_seconds: int = 60) -> Tuple[bool, int]:
    """
    Sliding-window rate limit with remaining-count feedback.
    Returns (allowed, remaining_after).
    """
    now = time.time()
    window_start = now - window_seconds
    history = [t for t in _rate_state.get(key, []) if t > window_start]
    if len(history) >= limit:
        _rate_state[key] = history
        return False, 0
    history.append(now)
    _rate_state[key] = history
    return True, max(0, limit - len(history))


def reset_rate_limits() -> None:
    _rate_state.clear()


__all__ = [
    "CSRF_COOKIE_NAME",
    "CSRF_FORM_FIELD",
    "issue_csrf_token",
    "request_csrf_token",
    "csrf_input",
    "attach_csrf_cookie",
    "validate_csrf",
    "client_ip",
    "allow_request_with_remaining",
    "reset_rate_limits",
]
