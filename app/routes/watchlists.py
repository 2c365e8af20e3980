import logging
from typing import Dict, List

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.auth_utils import SessionContext, session_context
from app.layout import esc, render_page
from app.routes.projects import FREQUENCY_LABELS
from app.security import attach_csrf_cookie, csrf_input, request_csrf_token, validate_csrf
from core.database import (
    delete_watch,
    get_watches_for_user,
    parse_iso,
    rename_watch,
    set_watch_enabled,
    set_watch_frequency,
)
from core.db.watches import FREQUENCIES
from core.formatting import format_datetime_fi

router = APIRouter()
log = logging.getLogger("watchlists")

LOGIN_REDIRECT = "/login?next=/watchlists"


def _last_sent_label(value) -> str:
    try:
        return format_datetime_fi(parse_iso(value), empty="Ei vielä lähetetty")
    except ValueError:
        return str(value)


def _watch_rows(watches: List[Dict], csrf_token: str) -> str:
    rows = ""
    for w in watches:
        wid = w.get("id")
        freq_opts = "".join(
            f'<option value="{f}"{" selected" if f == w.get("frequency") else ""}>{FREQUENCY_LABELS[f]}</option>'
            for f in FREQUENCIES
        )
        status = '<span class="badge active">Päällä</span>' if w.get("is_enabled") else '<span class="badge hidden">Pois</span>'
        toggle_label = "Poista käytöstä" if w.get("is_enabled") else "Ota käyttöön"
        rows += f"""
        <tr>
          <td>
            <form method="post" action="/watchlists/{wid}/rename">
              <input type="text" name="name" value="{esc(w.get("name"))}" maxlength="120" required />
              {csrf_input(csrf_token)}
              <button type="submit" class="small muted-btn" style="margin-top:0.3rem;">Tallenna nimi</button>
            </form>
            <div class="muted">{esc(w["filters"].summary())}</div>
          </td>
          <td>
            <form method="post" action="/watchlists/{wid}/frequency">
              <select name="frequency" onchange="this.form.submit()">{freq_opts}</select>
              {csrf_input(csrf_token)}
              <noscript><button type="submit" class="small">Vaihda</button></noscript>
            </form>
          </td>
          <td>
            {status}
            <form class="inline-form" method="post" action="/watchlists/{wid}/toggle">
              {csrf_input(csrf_token)}
              <button type="submit" class="small muted-btn">{toggle_label}</button>
            </form>
          </td>
          <td>{esc(_last_sent_label(w.get("last_sent_at")))}</td>
          <td>
            <form class="inline-form" method="post" action="/watchlists/{wid}/delete"
                  onsubmit="return confirm('Poistetaanko hakuvahti?');">
              {csrf_input(csrf_token)}
              <button type="submit" class="small danger">Poista</button>
            </form>
          </td>
        </tr>
        """
    return rows


def render_watchlists(request: Request, ctx: SessionContext, *, error: str = "", status_code: int = 200) -> HTMLResponse:
    csrf_token = request_csrf_token(request)
    try:
        watches = get_watches_for_user(ctx.user_id)
    except Exception as e:
        log.error("Listing watches failed", extra={"user_id": ctx.user_id, "error": str(e)})
        watches = []
        error = error or f"Virhe haussa: {e}"

    enabled = sum(1 for w in watches if w.get("is_enabled"))
    error_html = f'<div class="card error">{esc(error)}</div>' if error else ""

    if watches:
        content = f"""
        <table>
          <thead><tr><th>Nimi ja suodattimet</th><th>Tiheys</th><th>Tila</th><th>Viimeksi lähetetty</th><th></th></tr></thead>
          <tbody>{_watch_rows(watches, csrf_token)}</tbody>
        </table>
        """
    else:
        content = (
            '<p>Et ole vielä luonut hakuvahteja. Valitse suodattimet '
            '<a href="/projects">työmaasivulla</a> ja paina "Tallenna hakuvahti".</p>'
        )

    body = f"""
    {error_html}
    <div class="card">
      <p>Aktiivisia: <strong>{enabled}</strong> / {len(watches)}</p>
      <p><a href="/projects">← Takaisin projekteihin</a></p>
      {content}
    </div>
    """
    resp = render_page("Omat hakuvahdit", body, ctx, status_code=status_code)
    attach_csrf_cookie(resp, csrf_token)
    return resp


@router.get("/watchlists", response_class=HTMLResponse)
def watchlists(request: Request):
    ctx = session_context(request)
    if not ctx.signed_in:
        return RedirectResponse(url=LOGIN_REDIRECT, status_code=303)
    return render_watchlists(request, ctx)


def _guard(request: Request, csrf_token: str):
    ctx = session_context(request)
    if not ctx.signed_in:
        return ctx, RedirectResponse(url=LOGIN_REDIRECT, status_code=303)
    if not validate_csrf(request, csrf_token):
        return ctx, HTMLResponse("Virheellinen tai puuttuva CSRF-tunniste.", status_code=403)
    return ctx, None


def _apply(request: Request, ctx: SessionContext, watch_id: int, action: str, fn, *args):
    try:
        changed = fn(watch_id, ctx.user_id, *args)
    except ValueError as e:
        return render_watchlists(request, ctx, error=str(e), status_code=400)
    except Exception as e:
        log.error("Watch update failed", extra={"watch_id": watch_id, "action": action, "error": str(e)})
        return render_watchlists(request, ctx, error=f"Tallennusvirhe: {e}", status_code=500)
    if not changed:
        return render_watchlists(request, ctx, error="Hakuvahtia ei löytynyt.", status_code=404)
    log.info("Watch updated", extra={"watch_id": watch_id, "action": action, "user_id": ctx.user_id})
    return RedirectResponse(url="/watchlists", status_code=303)


@router.post("/watchlists/{watch_id}/rename")
def rename(request: Request, watch_id: int, name: str = Form("", max_length=120), csrf_token: str = Form("")):
    ctx, denied = _guard(request, csrf_token)
    if denied:
        return denied
    if not name.strip():
        return render_watchlists(request, ctx, error="Nimi ei voi olla tyhjä.", status_code=400)
    return _apply(request, ctx, watch_id, "rename", rename_watch, name)


@router.post("/watchlists/{watch_id}/frequency")
def change_frequency(request: Request, watch_id: int, frequency: str = Form(""), csrf_token: str = Form("")):
    ctx, denied = _guard(request, csrf_token)
    if denied:
        return denied
    if frequency not in FREQUENCIES:
        return render_watchlists(request, ctx, error="Tuntematon tiheys.", status_code=400)
    return _apply(request, ctx, watch_id, "frequency", set_watch_frequency, frequency)


@router.post("/watchlists/{watch_id}/toggle")
def toggle(request: Request, watch_id: int, csrf_token: str = Form("")):
    ctx, denied = _guard(request, csrf_token)
    if denied:
        return denied
    try:
        current = next((w for w in get_watches_for_user(ctx.user_id) if w.get("id") == watch_id), None)
    except Exception as e:
        log.error("Loading watch failed", extra={"watch_id": watch_id, "error": str(e)})
        return render_watchlists(request, ctx, error=f"Tallennusvirhe: {e}", status_code=500)
    if current is None:
        return render_watchlists(request, ctx, error="Hakuvahtia ei löytynyt.", status_code=404)
    return _apply(request, ctx, watch_id, "toggle", set_watch_enabled, not current.get("is_enabled"))


@router.post("/watchlists/{watch_id}/delete")
def delete(request: Request, watch_id: int, csrf_token: str = Form("")):
    ctx, denied = _guard(request, csrf_token)
    if denied:
        return denied
    return _apply(request, ctx, watch_id, "delete", delete_watch)
