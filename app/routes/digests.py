import hmac
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from core.config import cron_secret, missing_digest_config
from worker.digests import run_digests

router = APIRouter()
log = logging.getLogger("digests")


def secret_matches(provided: str | None, expected: str | None) -> bool:
    """Constant-time compare; an unset expected secret never matches."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


@router.get("/api/digests")
def digests(secret: str | None = None, debug: str | None = None):
    if not secret_matches(secret, cron_secret()):
        return JSONResponse({"error": "unauthorized"}, status_code=401)

    missing = missing_digest_config()
    if missing:
        return JSONResponse({"error": f"Missing {missing[0]}"}, status_code=500)

    debug_mode = debug == "1"
    try:
        result = run_digests(debug=debug_mode)
    except Exception as e:
        log.exception("Digest run failed", extra={"error": str(e)})
        return JSONResponse({"error": str(e) or e.__class__.__name__}, status_code=500)

    return JSONResponse(result.as_json(debug=debug_mode))
