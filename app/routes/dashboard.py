import logging
from typing import Dict, List, Mapping, Optional, Tuple

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.auth_utils import SessionContext, session_context
from app.layout import esc, render_page
from app.routes.projects import PROJECT_FIELD_LABELS
from app.security import attach_csrf_cookie, csrf_input, request_csrf_token, validate_csrf
from core.catalog import FINNISH_REGIONS
from core.database import (
    create_project,
    delete_project,
    get_project,
    list_all_projects,
    set_project_visibility,
    update_project,
)
from core.db.projects import EDITABLE_FIELDS, PHASE_OPTIONS, PHASE_PLANNING, has_coords
from core.formatting import digits_to_int_or_none, format_thousands_fi
from core.geocoding import geocode_address

router = APIRouter()
log = logging.getLogger("dashboard")

NUMBER_FIELDS = ("apartments", "floor_area", "estimated_cost")
NUMBER_SUFFIXES = {"apartments": "kpl", "floor_area": "m²", "estimated_cost": "€"}
TEXT_FIELDS = (
    "location",
    "developer",
    "builder",
    "property_type",
    "structural_design",
    "hvac_design",
    "electrical_design",
    "architectural_design",
    "geotechnical_design",
    "earthworks_contractor",
    "additional_info",
)
_LABELS = dict(PROJECT_FIELD_LABELS)


def project_payload_from_form(form: Mapping[str, str]) -> Tuple[Dict, List[str]]:
    """
    Normalize raw form values into a storable project payload.
    Returns (payload, errors); errors are user-facing messages.
    """
    errors: List[str] = []
    payload: Dict = {}

    name = (form.get("name") or "").strip()
    if not name:
        errors.append("Projektin nimi on pakollinen.")
    payload["name"] = name

    region = (form.get("region") or "").strip()
    if region and region not in FINNISH_REGIONS:
        errors.append(f"Tuntematon maakunta: {region}")
    payload["region"] = region or None

    payload["city"] = (form.get("city") or "").strip()

    phase = (form.get("phase") or "").strip()
    payload["phase"] = phase if phase in PHASE_OPTIONS else PHASE_PLANNING

    for field in TEXT_FIELDS:
        value = (form.get(field) or "").strip()
        payload[field] = value or None

    for field in NUMBER_FIELDS:
        payload[field] = digits_to_int_or_none(form.get(field))

    payload["construction_start"] = (form.get("construction_start") or "").strip() or None
    payload["is_public"] = (form.get("is_public") or "") in ("1", "on", "true")
    return payload, errors


def _form_values(project: Optional[Dict]) -> Dict[str, str]:
    if not project:
        return {field: "" for field in EDITABLE_FIELDS} | {"phase": PHASE_PLANNING, "is_public": "1"}
    values = {}
    for field in EDITABLE_FIELDS:
        value = project.get(field)
        if field in NUMBER_FIELDS:
            values[field] = format_thousands_fi(value)
        elif field == "is_public":
            values[field] = "1" if value else ""
        else:
            values[field] = "" if value is None else str(value)
    return values


def _text_input(field: str, values: Mapping[str, str], *, required: bool = False) -> str:
    req = " required" if required else ""
    return f"""
        <label>{esc(_LABELS[field])}
          <input type="text" name="{field}" value="{esc(values.get(field))}"{req} />
        </label>"""


def _project_form(values: Mapping[str, str], csrf_token: str, editing_id: Optional[int], error: str = "") -> str:
    action = f"/dashboard/projects/{editing_id}" if editing_id else "/dashboard/projects"
    heading = "Muokkaa projektia" if editing_id else "Lisää projekti"
    region_opts = ['<option value="">Valitse maakunta (ei pakollinen)</option>'] + [
        f'<option value="{esc(r)}"{" selected" if r == values.get("region") else ""}>{esc(r)}</option>'
        for r in FINNISH_REGIONS
    ]
    phase_opts = [
        f'<option value="{esc(p)}"{" selected" if p == values.get("phase") else ""}>{esc(p)}</option>'
        for p in PHASE_OPTIONS
    ]
    number_inputs = "".join(
        f"""
        <label>{esc(_LABELS[field])} ({NUMBER_SUFFIXES[field]})
          <input type="text" inputmode="numeric" name="{field}" value="{esc(values.get(field))}" />
        </label>"""
        for field in NUMBER_FIELDS
    )
    design_inputs = "".join(
        _text_input(field, values)
        for field in (
            "structural_design",
            "hvac_design",
            "electrical_design",
            "architectural_design",
            "geotechnical_design",
            "earthworks_contractor",
        )
    )
    checked = " checked" if values.get("is_public") else ""
    error_html = f'<p class="error">Tallennusvirhe: {esc(error)}</p>' if error else ""
    cancel = '<a href="/dashboard" style="margin-left:1rem;">Peruuta</a>' if editing_id else ""
    return f"""
    <div class="card" id="project-form">
      <h3>{heading}</h3>
      {error_html}
      <form method="post" action="{action}">
        <div class="grid">
          {_text_input("name", values, required=True)}
          {_text_input("location", values)}
          <label>{esc(_LABELS["region"])}
            <select name="region">{''.join(region_opts)}</select>
          </label>
          {_text_input("city", values)}
          <label>{esc(_LABELS["phase"])}
            <select name="phase">{''.join(phase_opts)}</select>
          </label>
          {_text_input("developer", values)}
          {_text_input("builder", values)}
          {_text_input("property_type", values)}
          {number_inputs}
          <label>{esc(_LABELS["construction_start"])}
            <input type="date" name="construction_start" value="{esc(values.get("construction_start"))}" />
          </label>
          {design_inputs}
        </div>
        <label>{esc(_LABELS["additional_info"])}
          <textarea name="additional_info" rows="3">{esc(values.get("additional_info"))}</textarea>
        </label>
        <label style="display:flex;gap:0.5rem;align-items:center;">
          <input type="checkbox" name="is_public" value="1"{checked} /> Julkinen
        </label>
        <p class="muted">Koordinaatit haetaan osoitteesta tallennettaessa.</p>
        {csrf_input(csrf_token)}
        <button type="submit">{"Tallenna muutokset" if editing_id else "Lisää projekti"}</button>
        {cancel}
      </form>
    </div>
    """


def _project_rows(projects: List[Dict], csrf_token: str) -> str:
    rows = ""
    for p in projects:
        pid = p.get("id")
        visibility = '<span class="badge active">Julkinen</span>' if p.get("is_public") else '<span class="badge hidden">Piilotettu</span>'
        coords = "" if has_coords(p) else ' <span class="badge nocoords">Ei koordinaatteja</span>'
        toggle_label = "Piilota" if p.get("is_public") else "Julkaise"
        rows += f"""
        <tr>
          <td><a href="/projects/{esc(pid)}">{esc(p.get("name"))}</a><div class="muted">{esc(p.get("location") or "")}</div></td>
          <td>{esc(p.get("city") or "")}<div class="muted">{esc(p.get("region") or "-")}</div></td>
          <td>{esc(p.get("phase"))}</td>
          <td>{visibility}{coords}</td>
          <td>
            <a href="/dashboard?edit={esc(pid)}#project-form">Muokkaa</a>
            <form class="inline-form" method="post" action="/dashboard/projects/{esc(pid)}/visibility">
              {csrf_input(csrf_token)}
              <button type="submit" class="small muted-btn">{toggle_label}</button>
            </form>
            <form class="inline-form" method="post" action="/dashboard/projects/{esc(pid)}/delete"
                  onsubmit="return confirm('Poistetaanko projekti?');">
              {csrf_input(csrf_token)}
              <button type="submit" class="small danger">Poista</button>
            </form>
          </td>
        </tr>
        """
    return rows or '<tr><td colspan="5">Ei projekteja vielä.</td></tr>'


def render_dashboard(
    request: Request,
    ctx: SessionContext,
    *,
    form_values: Optional[Mapping[str, str]] = None,
    editing_id: Optional[int] = None,
    error: str = "",
    notice: str = "",
    status_code: int = 200,
) -> HTMLResponse:
    csrf_token = request_csrf_token(request)
    list_error = ""
    try:
        projects = list_all_projects()
    except Exception as e:
        log.error("Listing projects failed", extra={"error": str(e)})
        projects = []
        list_error = f'<p class="error">Virhe haussa: {esc(e)}</p>'

    public_count = sum(1 for p in projects if p.get("is_public"))
    unmapped = sum(1 for p in projects if not has_coords(p))
    notice_html = f'<div class="card notice">{esc(notice)}</div>' if notice else ""
    values = form_values if form_values is not None else _form_values(None)

    body = f"""
    {notice_html}
    <div class="stats">
      <div class="stat"><div class="label">Projekteja</div><div class="value">{len(projects)}</div></div>
      <div class="stat"><div class="label">Julkisia</div><div class="value">{public_count}</div></div>
      <div class="stat"><div class="label">Piilotettuja</div><div class="value">{len(projects) - public_count}</div></div>
      <div class="stat"><div class="label">Ei koordinaatteja</div><div class="value">{unmapped}</div></div>
    </div>
    {_project_form(values, csrf_token, editing_id, error)}
    <div class="card">
      <p class="muted">Kaikki projektit (uusin ensin).</p>
      {list_error}
      <table>
        <thead><tr><th>Nimi</th><th>Kaupunki</th><th>Vaihe</th><th>Tila</th><th>Toiminnot</th></tr></thead>
        <tbody>{_project_rows(projects, csrf_token)}</tbody>
      </table>
    </div>
    """
    resp = render_page("Dashboard – Hallinta", body, ctx, status_code=status_code)
    attach_csrf_cookie(resp, csrf_token)
    return resp


def _forbidden(ctx: SessionContext):
    """Admin routes sit behind the gate; this covers direct calls without it."""
    if not ctx.signed_in:
        return RedirectResponse(url="/login?next=/dashboard", status_code=303)
    if not ctx.is_admin:
        return RedirectResponse(url="/projects", status_code=303)
    return None


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request, edit: Optional[int] = None, saved: Optional[int] = None, unmapped: Optional[int] = None):
    ctx = session_context(request)
    denied = _forbidden(ctx)
    if denied:
        return denied

    notice = ""
    if unmapped:
        notice = f"Projekti #{unmapped} tallennettiin, mutta osoitteelle ei löytynyt koordinaatteja. Kohde ei näy kartalla."
    elif saved:
        notice = f"Projekti #{saved} tallennettu."

    form_values = None
    editing_id = None
    if edit:
        try:
            project = get_project(edit)
        except Exception as e:
            log.error("Loading project for edit failed", extra={"project_id": edit, "error": str(e)})
            return render_dashboard(request, ctx, error=str(e), status_code=500)
        if project:
            form_values = _form_values(project)
            editing_id = edit
        else:
            notice = f"Projektia #{edit} ei löytynyt."

    return render_dashboard(request, ctx, form_values=form_values, editing_id=editing_id, notice=notice)


def _save(request: Request, form: Dict[str, str], csrf_token: str, project_id: Optional[int]):
    ctx = session_context(request)
    denied = _forbidden(ctx)
    if denied:
        return denied
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Virheellinen tai puuttuva CSRF-tunniste.", status_code=403)

    payload, errors = project_payload_from_form(form)
    if errors:
        return render_dashboard(
            request, ctx, form_values=form, editing_id=project_id, error=" ".join(errors), status_code=400
        )

    lat, lon = geocode_address(payload.get("location"))

    try:
        if project_id:
            if not update_project(project_id, payload, latitude=lat, longitude=lon):
                return render_dashboard(
                    request, ctx, form_values=form, editing_id=project_id,
                    error=f"Projektia #{project_id} ei löytynyt.", status_code=404,
                )
            saved_id = project_id
        else:
            saved_id = create_project(payload, latitude=lat, longitude=lon)
    except Exception as e:
        log.error("Saving project failed", extra={"project_id": project_id, "error": str(e)})
        return render_dashboard(request, ctx, form_values=form, editing_id=project_id, error=str(e), status_code=500)

    log.info("Project saved", extra={"project_id": saved_id, "mapped": lat is not None, "by": ctx.email})
    if lat is None or lon is None:
        return RedirectResponse(url=f"/dashboard?unmapped={saved_id}", status_code=303)
    return RedirectResponse(url=f"/dashboard?saved={saved_id}", status_code=303)


@router.post("/dashboard/projects")
def create_project_route(
    request: Request,
    name: str = Form("", max_length=200),
    location: str = Form("", max_length=300),
    region: str = Form(""),
    city: str = Form("", max_length=100),
    phase: str = Form(""),
    developer: str = Form("", max_length=200),
    builder: str = Form("", max_length=200),
    property_type: str = Form("", max_length=100),
    apartments: str = Form("", max_length=30),
    floor_area: str = Form("", max_length=30),
    estimated_cost: str = Form("", max_length=30),
    construction_start: str = Form("", max_length=30),
    structural_design: str = Form("", max_length=200),
    hvac_design: str = Form("", max_length=200),
    electrical_design: str = Form("", max_length=200),
    architectural_design: str = Form("", max_length=200),
    geotechnical_design: str = Form("", max_length=200),
    earthworks_contractor: str = Form("", max_length=200),
    additional_info: str = Form("", max_length=5000),
    is_public: str = Form(""),
    csrf_token: str = Form(""),
):
    form = {k: v for k, v in locals().items() if k in EDITABLE_FIELDS}
    return _save(request, form, csrf_token, None)


@router.post("/dashboard/projects/{project_id}")
def update_project_route(
    request: Request,
    project_id: int,
    name: str = Form("", max_length=200),
    location: str = Form("", max_length=300),
    region: str = Form(""),
    city: str = Form("", max_length=100),
    phase: str = Form(""),
    developer: str = Form("", max_length=200),
    builder: str = Form("", max_length=200),
    property_type: str = Form("", max_length=100),
    apartments: str = Form("", max_length=30),
    floor_area: str = Form("", max_length=30),
    estimated_cost: str = Form("", max_length=30),
    construction_start: str = Form("", max_length=30),
    structural_design: str = Form("", max_length=200),
    hvac_design: str = Form("", max_length=200),
    electrical_design: str = Form("", max_length=200),
    architectural_design: str = Form("", max_length=200),
    geotechnical_design: str = Form("", max_length=200),
    earthworks_contractor: str = Form("", max_length=200),
    additional_info: str = Form("", max_length=5000),
    is_public: str = Form(""),
    csrf_token: str = Form(""),
):
    form = {k: v for k, v in locals().items() if k in EDITABLE_FIELDS}
    return _save(request, form, csrf_token, project_id)


@router.post("/dashboard/projects/{project_id}/visibility")
def toggle_visibility(request: Request, project_id: int, csrf_token: str = Form("")):
    ctx = session_context(request)
    denied = _forbidden(ctx)
    if denied:
        return denied
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Virheellinen tai puuttuva CSRF-tunniste.", status_code=403)

    try:
        project = get_project(project_id)
        if not project:
            return render_dashboard(request, ctx, notice=f"Projektia #{project_id} ei löytynyt.", status_code=404)
        set_project_visibility(project_id, not project.get("is_public"))
    except Exception as e:
        log.error("Visibility toggle failed", extra={"project_id": project_id, "error": str(e)})
        return render_dashboard(request, ctx, error=f"Näkyvyyden vaihto epäonnistui: {e}", status_code=500)

    log.info("Project visibility toggled", extra={"project_id": project_id, "public": not project.get("is_public")})
    return RedirectResponse(url="/dashboard", status_code=303)


@router.post("/dashboard/projects/{project_id}/delete")
def delete_project_route(request: Request, project_id: int, csrf_token: str = Form("")):
    ctx = session_context(request)
    denied = _forbidden(ctx)
    if denied:
        return denied
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Virheellinen tai puuttuva CSRF-tunniste.", status_code=403)

    try:
        deleted = delete_project(project_id)
    except Exception as e:
        log.error("Deleting project failed", extra={"project_id": project_id, "error": str(e)})
        return render_dashboard(request, ctx, error=f"Poisto epäonnistui: {e}", status_code=500)

    log.info("Project deleted", extra={"project_id": project_id, "deleted": deleted})
    return RedirectResponse(url="/dashboard", status_code=303)
