import logging

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse, Response

from app.auth_utils import session_context
from core.database import project_counts

router = APIRouter()
log = logging.getLogger("public")


@router.get("/")
def index(request: Request):
    ctx = session_context(request)
    return RedirectResponse(url="/projects" if ctx.signed_in else "/login", status_code=303)


@router.get("/health")
def health():
    """
    Basic health check for the app.
    """
    try:
        return {
            "status": "ok",
            "stats": project_counts(),
        }
    except Exception as e:
        log.warning("Health check failed", extra={"error": str(e)})
        return {
            "status": "error",
            "detail": str(e),
        }


@router.get("/favicon.ico")
def favicon():
    # Return empty 204 to avoid log noise for missing favicon
    return Response(status_code=204)
