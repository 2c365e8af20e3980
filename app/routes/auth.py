import logging

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.access_gate import safe_next_path
from app.auth_utils import (
    SESSION_COOKIE_NAME,
    auth_events,
    clear_session_cookie,
    session_context,
    set_session_cookie,
)
from app.layout import esc, render_page
from app.security import (
    allow_request_with_remaining,
    attach_csrf_cookie,
    client_ip,
    csrf_input,
    request_csrf_token,
    validate_csrf,
)
from core.database import (
    create_session,
    delete_session,
    get_user_by_email,
    is_valid_email,
    verify_password,
)

router = APIRouter()
log = logging.getLogger("auth")

LOGIN_LIMIT = 10
LOGIN_WINDOW_SECONDS = 300


def _login_form(csrf_token: str, next_path: str, *, email: str = "", message: str = "") -> str:
    message_html = f'<p class="error">{message}</p>' if message else ""
    return f"""
    <div class="card form-card">
      <p class="muted">Kirjaudu sisään nähdäksesi työmaat ja hakuvahdit.</p>
      {message_html}
      <form method="post" action="/login">
        <label>Sähköposti</label>
        <input type="email" name="email" required maxlength="254" value="{esc(email)}" />

        <label>Salasana</label>
        <input type="password" name="password" required maxlength="64" />

        <input type="hidden" name="next" value="{esc(next_path)}" />
        {csrf_input(csrf_token)}
        <button type="submit">Kirjaudu</button>
      </form>
    </div>
    """


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request, next: str | None = None):
    ctx = session_context(request)
    next_path = safe_next_path(next)
    if ctx.signed_in:
        return RedirectResponse(url=next_path, status_code=303)

    csrf_token = request_csrf_token(request)
    resp = render_page("Kirjaudu", _login_form(csrf_token, next_path), ctx)
    attach_csrf_cookie(resp, csrf_token)
    return resp


@router.post("/login", response_class=HTMLResponse)
def login(
    request: Request,
    email: str = Form(..., max_length=254),
    password: str = Form(..., max_length=64),
    next: str = Form(""),
    csrf_token: str = Form(""),
):
    ip = client_ip(request)
    allowed, remaining = allow_request_with_remaining(
        f"login:{ip}", limit=LOGIN_LIMIT, window_seconds=LOGIN_WINDOW_SECONDS
    )
    if not allowed:
        log.warning("Login rate limit hit", extra={"ip": ip})
        return HTMLResponse("Liian monta kirjautumisyritystä. Yritä myöhemmin uudelleen.", status_code=429)

    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Virheellinen tai puuttuva CSRF-tunniste.", status_code=403)

    next_path = safe_next_path(next)
    form_token = request_csrf_token(request)

    def _retry(message: str):
        body = _login_form(form_token, next_path, email=email, message=message)
        body += f"<p class='muted' style='text-align:center;'>Yrityksiä jäljellä: {remaining}</p>"
        return render_page("Kirjaudu", body, None, status_code=400)

    email = (email or "").strip().lower()
    if not is_valid_email(email):
        return _retry("Tarkista sähköpostiosoite.")

    user = get_user_by_email(email)
    if not user or not user.get("active") or not verify_password(password, user["password_hash"]):
        log.info("Failed login", extra={"email": email, "ip": ip})
        return _retry("Väärä sähköposti tai salasana.")

    token = create_session(user["id"])
    auth_events.publish("signed_in", user)
    response = RedirectResponse(url=next_path, status_code=303)
    set_session_cookie(response, token)
    return response


@router.get("/logout")
def logout(request: Request):
    ctx = session_context(request)
    token = ctx.token or request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        delete_session(token)
    if ctx.signed_in:
        auth_events.publish("signed_out", ctx.user)
    response = RedirectResponse(url="/login", status_code=303)
    clear_session_cookie(response)
    return response
