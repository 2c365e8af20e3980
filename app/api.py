import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse

from app.access_gate import gate_redirect
from app.auth_utils import SESSION_COOKIE_NAME, auth_events, session_context, set_session_cookie
from app.routes import auth, dashboard, digests, projects, public, watchlists
from core.config import admin_emails
from core.database import init_db

# Ensure .env values are loaded even if uvicorn is launched without `dotenv run`.
# Use override=True so editing `.env` (and restarting uvicorn) reliably takes effect even if
# older values exist in the environment from a previous shell/session.
load_dotenv(override=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
log = logging.getLogger("api")

CONTENT_SECURITY_POLICY = (
    "default-src 'self'; "
    "img-src 'self' data: https://*.tile.openstreetmap.org https://unpkg.com; "
    "style-src 'self' 'unsafe-inline' https://unpkg.com; "
    "script-src 'self' 'unsafe-inline' https://unpkg.com; "
    "font-src 'self' data:; connect-src 'self';"
)


def log_auth_event(event: str, user: dict) -> None:
    log.info("Auth event", extra={"event": event, "user_id": user.get("id")})


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    unsubscribe = auth_events.subscribe(log_auth_event)
    try:
        yield
    finally:
        unsubscribe()


app = FastAPI(lifespan=lifespan)


app.include_router(public.router)
app.include_router(auth.router)
app.include_router(projects.router)
app.include_router(watchlists.router)
app.include_router(dashboard.router)
app.include_router(digests.router)


def _sets_session_cookie(response) -> bool:
    prefix = f"{SESSION_COOKIE_NAME}="
    return any(value.startswith(prefix) for value in response.headers.getlist("set-cookie"))


@app.middleware("http")
async def access_gate(request: Request, call_next):
    ctx = await run_in_threadpool(session_context, request)
    target = gate_redirect(request.url.path, ctx, admin_emails())
    if target:
        response = RedirectResponse(url=target, status_code=303)
    else:
        response = await call_next(request)

    # The lookup slid the session expiry; keep the cookie in step unless the
    # handler already set or cleared it (login / logout).
    if ctx.signed_in and ctx.token and not _sets_session_cookie(response):
        set_session_cookie(response, ctx.token)
    return response


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("Content-Security-Policy", CONTENT_SECURITY_POLICY)
    return response
