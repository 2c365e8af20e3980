"""
Helpers for session cookies and current-user lookup.

Each request resolves its `SessionContext` once (see `session_context`); pages
receive it explicitly instead of reading any module-level auth state. Sign-in
and sign-out are announced through `auth_events`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from fastapi import Request
from fastapi.responses import Response

from core.config import is_admin_email, secure_cookies
from core.database import delete_session, get_session, get_user_by_id, touch_session

log = logging.getLogger("auth")

SESSION_COOKIE_NAME = "session_id"
SESSION_COOKIE_MAX_AGE = 1800  # 30 minutes


@dataclass(frozen=True)
class SessionContext:
    user: Optional[Dict] = None
    token: Optional[str] = None

    @property
    def signed_in(self) -> bool:
        return self.user is not None

    @property
    def email(self) -> str:
        return (self.user or {}).get("email") or ""

    @property
    def user_id(self) -> Optional[int]:
        return (self.user or {}).get("id")

    @property
    def is_admin(self) -> bool:
        return self.signed_in and is_admin_email(self.email)


ANONYMOUS = SessionContext()


class AuthEvents:
    """Sign-in / sign-out notifications. `subscribe` returns the matching unsubscribe."""

    def __init__(self) -> None:
        self._listeners: List[Callable[[str, Dict], None]] = []

    def subscribe(self, listener: Callable[[str, Dict], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: str, user: Dict) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, user)
            except Exception:
                log.exception("Auth event listener failed", extra={"event": event})


auth_events = AuthEvents()


def get_current_user(request: Request):
    """
    Read session cookie and return (user_dict, session_token) or (None, None).
    Refreshes inactivity timeout when the session is valid.
    """
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None, None

    session = get_session(token)
    if not session:
        return None, token

    user = get_user_by_id(session["user_id"])
    if not user or not user.get("active"):
        delete_session(token)
        return None, token

    touch_session(token)
    return user, token


def load_session_context(request: Request) -> SessionContext:
    """Resolve the session; any lookup error degrades to anonymous."""
    try:
        user, token = get_current_user(request)
    except Exception as exc:
        log.error("Session lookup failed", extra={"path": request.url.path, "error": str(exc)})
        return ANONYMOUS
    if not user:
        return ANONYMOUS
    return SessionContext(user=user, token=token)


def session_context(request: Request) -> SessionContext:
    """The request's SessionContext, resolved at most once per request."""
    ctx = getattr(request.state, "session_ctx", None)
    if ctx is None:
        ctx = load_session_context(request)
        request.state.session_ctx = ctx
    return ctx


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        max_age=SESSION_COOKIE_MAX_AGE,
        samesite="lax",
        secure=secure_cookies(),
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME)


__all__ = [
    "SESSION_COOKIE_NAME",
    "SESSION_COOKIE_MAX_AGE",
    "SessionContext",
    "ANONYMOUS",
    "AuthEvents",
    "auth_events",
    "get_current_user",
    "load_session_context",
    "session_context",
    "set_session_cookie",
    "clear_session_cookie",
]
