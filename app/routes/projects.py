import logging
from typing import Dict, List, Mapping
from urllib.parse import urlencode

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.auth_utils import SessionContext, session_context
from app.layout import esc, render_page
from app.map_view import MapViewport, map_head, phase_class, render_map
from app.security import attach_csrf_cookie, csrf_input, request_csrf_token, validate_csrf
from core.catalog import CatalogView, MapBounds, build_catalog
from core.database import create_watch, get_project, list_public_projects
from core.db.projects import has_coords
from core.db.watches import DEFAULT_FREQUENCY, FREQUENCIES
from core.filters import FILTER_KEYS, ProjectFilters
from core.formatting import format_eur, format_m2, format_thousands_fi

router = APIRouter()
log = logging.getLogger("projects")

PROJECT_FIELD_LABELS = (
    ("name", "Nimi"),
    ("location", "Sijainti / osoite"),
    ("region", "Maakunta"),
    ("city", "Kaupunki"),
    ("phase", "Vaihe"),
    ("developer", "Rakennuttaja"),
    ("builder", "Rakennusliike"),
    ("property_type", "Kohdetyyppi"),
    ("apartments", "Asuntoja"),
    ("floor_area", "Kerrosala"),
    ("estimated_cost", "Arvioitu kustannus"),
    ("construction_start", "Rakentamisen aloitus"),
    ("structural_design", "Rakennesuunnittelu"),
    ("hvac_design", "LVI-suunnittelu"),
    ("electrical_design", "Sähkösuunnittelu"),
    ("architectural_design", "Arkkitehtisuunnittelu"),
    ("geotechnical_design", "Geosuunnittelu"),
    ("earthworks_contractor", "Maanrakennusurakoitsija"),
    ("additional_info", "Lisätiedot"),
)

FREQUENCY_LABELS = {"daily": "Päivittäin", "weekly": "Viikoittain"}

_VIEW_KEYS = ("south", "west", "north", "east", "lat", "lng", "z")
_WATCH_NAME_MAX = 120


def display_value(field: str, value) -> str:
    if value is None or value == "":
        return "-"
    if field == "floor_area":
        return format_m2(value) or "-"
    if field == "estimated_cost":
        return format_eur(value) or "-"
    if field == "apartments":
        return format_thousands_fi(value) or "-"
    return str(value)


def limit_to_map_from(params) -> bool:
    """Checkbox + hidden '0': absent means the default (on)."""
    values = params.getlist("limit")
    return not values or "1" in values


def _query(params: Mapping[str, str], **overrides) -> str:
    merged = {k: v for k, v in params.items() if v not in (None, "")}
    for key, value in overrides.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = str(value)
    return urlencode(merged)


def _base_params(view: CatalogView, request_params) -> Dict[str, str]:
    """The params describing the current view (filters, toggle, viewport)."""
    params: Dict[str, str] = dict(view.filters.to_dict())
    params["limit"] = "1" if view.limit_to_map else "0"
    for key in _VIEW_KEYS:
        if request_params.get(key):
            params[key] = request_params.get(key)
    return params


def _select(name: str, label: str, options: List[str], selected: str | None, *, empty: str = "Kaikki") -> str:
    opts = [f'<option value="">{esc(empty)}</option>']
    for option in options:
        sel = " selected" if option == selected else ""
        opts.append(f'<option value="{esc(option)}"{sel}>{esc(option)}</option>')
    return f"""
        <label>{esc(label)}
          <select name="{name}" onchange="this.form.submit()">{''.join(opts)}</select>
        </label>"""


def _filters_form(view: CatalogView, request_params) -> str:
    options = view.options
    hidden = "".join(
        f'<input type="hidden" name="{key}" value="{esc(request_params.get(key))}" />'
        for key in _VIEW_KEYS
        if request_params.get(key)
    )
    checked = " checked" if view.limit_to_map else ""
    return f"""
    <form method="get" action="/projects" class="card">
      <div class="grid">
        <label>Haku
          <input type="search" name="q" value="{esc(view.filters.q)}" placeholder="Nimi, rakennuttaja, kaupunki…" />
        </label>
        {_select("region", "Maakunta", options.regions, view.filters.region)}
        {_select("city", "Kaupunki", options.cities, view.filters.city)}
        {_select("phase", "Vaihe", options.phases, view.filters.phase)}
        {_select("property_type", "Kohdetyyppi", options.property_types, view.filters.property_type)}
      </div>
      {hidden}
      <input type="hidden" name="limit" value="0" />
      <label style="display:flex;gap:0.5rem;align-items:center;">
        <input type="checkbox" name="limit" value="1"{checked} onchange="this.form.submit()" />
        Näytä listassa vain kartan alueen kohteet
      </label>
      <button type="submit">Hae</button>
      <a href="/projects?{esc(_query(_base_params(view, request_params), **{k: None for k in FILTER_KEYS}))}" style="margin-left:1rem;">Tyhjennä suodattimet</a>
    </form>
    """


def _project_item(project: Dict, base_params: Dict[str, str]) -> str:
    pid = project.get("id")
    badges = f'<span class="badge {phase_class(project.get("phase"))}">{esc(project.get("phase"))}</span>'
    if not has_coords(project):
        badges += ' <span class="badge nocoords">Ei koordinaatteja</span>'
        map_link = ""
    else:
        map_link = f' · <a href="/projects?{esc(_query(base_params, focus=pid))}">Näytä kartalla</a>'
    meta = " • ".join(p for p in (project.get("city"), project.get("region") or "-") if p)
    return f"""
      <tr>
        <td>
          <strong><a href="/projects/{esc(pid)}">{esc(project.get("name"))}</a></strong>
          <div class="muted">{esc(meta)}</div>
          <div class="muted">{esc(project.get("developer") or "")}</div>
        </td>
        <td>{badges}{map_link}</td>
      </tr>
    """


def _watch_form(view: CatalogView, csrf_token: str) -> str:
    hidden = "".join(
        f'<input type="hidden" name="{key}" value="{esc(value)}" />' for key, value in view.filters.to_dict().items()
    )
    options = "".join(
        f'<option value="{f}"{" selected" if f == DEFAULT_FREQUENCY else ""}>{FREQUENCY_LABELS[f]}</option>'
        for f in FREQUENCIES
    )
    return f"""
    <div class="card">
      <p class="muted">Tallenna nykyiset suodattimet hakuvahdiksi ({esc(view.filters.summary())}).
      Saat sähköpostin, kun uusia hankkeita julkaistaan.</p>
      <form method="post" action="/projects/watch">
        <div class="grid">
          <label>Hakuvahdin nimi
            <input type="text" name="name" maxlength="{_WATCH_NAME_MAX}" placeholder="{esc(view.filters.summary())}" />
          </label>
          <label>Tiheys
            <select name="frequency">{options}</select>
          </label>
        </div>
        {hidden}
        {csrf_input(csrf_token)}
        <button type="submit">Tallenna hakuvahti</button>
      </form>
    </div>
    """


def render_catalog(ctx: SessionContext, view: CatalogView, request_params, csrf_token: str, focus_id=None):
    base_params = _base_params(view, request_params)
    # Focusing a project keeps the list as expanded as it is now.
    focus_params = dict(base_params, shown=str(view.shown), key=view.state_key)
    rows = "".join(_project_item(p, focus_params) for p in view.visible)
    if not rows:
        rows = '<tr><td colspan="2">Ei hakuehtoja vastaavia kohteita.</td></tr>'

    more = ""
    if view.has_more:
        more_href = "/projects?" + _query(base_params, shown=view.next_shown, key=view.state_key)
        more = f'<p style="text-align:center;"><a href="{esc(more_href)}">Näytä lisää ({len(view.visible)} / {len(view.listed)})</a></p>'

    map_html = render_map(
        view.filtered,
        viewport=MapViewport.from_params(request_params),
        bounds=view.bounds,
        focus_id=focus_id,
        report_initial_bounds=view.limit_to_map,
    )

    body = f"""
    {_filters_form(view, request_params)}
    <div class="stats">
      <div class="stat"><div class="label">Kartalla</div><div class="value">{view.map_count}</div></div>
      <div class="stat"><div class="label">Hakutuloksia</div><div class="value">{len(view.filtered)}</div></div>
      <div class="stat"><div class="label">Ei koordinaatteja</div><div class="value">{len(view.no_coords)}</div></div>
    </div>
    <div class="card">{map_html}</div>
    <div class="card">
      <table>
        <thead><tr><th>Kohde</th><th>Vaihe</th></tr></thead>
        <tbody>{rows}</tbody>
      </table>
      {more}
    </div>
    {_watch_form(view, csrf_token)}
    """
    return render_page("Työmaat", body, ctx, head_extra=map_head())


@router.get("/projects", response_class=HTMLResponse)
def projects_page(request: Request):
    ctx = session_context(request)
    params = request.query_params

    filters = ProjectFilters.from_mapping(params)
    view = build_catalog(
        list_public_projects(),
        filters,
        bounds=MapBounds.from_params(params),
        limit_to_map=limit_to_map_from(params),
        shown=params.get("shown"),
        shown_key=params.get("key"),
    )

    focus_id = None
    focus = params.get("focus")
    if focus and focus.isdigit():
        focus_id = int(focus)

    csrf_token = request_csrf_token(request)
    resp = render_catalog(ctx, view, params, csrf_token, focus_id=focus_id)
    attach_csrf_cookie(resp, csrf_token)
    return resp


@router.post("/projects/watch")
def save_watch(
    request: Request,
    name: str = Form("", max_length=_WATCH_NAME_MAX),
    frequency: str = Form(DEFAULT_FREQUENCY),
    q: str = Form(""),
    region: str = Form(""),
    city: str = Form(""),
    phase: str = Form(""),
    property_type: str = Form(""),
    csrf_token: str = Form(""),
):
    ctx = session_context(request)
    if not ctx.signed_in:
        return RedirectResponse(url="/login?next=/projects", status_code=303)
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Virheellinen tai puuttuva CSRF-tunniste.", status_code=403)

    filters = ProjectFilters(q=q, region=region, city=city, phase=phase, property_type=property_type)
    filters = ProjectFilters.from_mapping(filters.to_dict())
    watch_name = (name or "").strip() or filters.summary()[:_WATCH_NAME_MAX]
    if frequency not in FREQUENCIES:
        frequency = DEFAULT_FREQUENCY

    try:
        create_watch(user_id=ctx.user_id, name=watch_name, filters=filters, frequency=frequency)
    except Exception as e:
        log.error("Saving watch failed", extra={"user_id": ctx.user_id, "error": str(e)})
        body = f"""
        <div class="card form-card">
          <p class="error">Tallennusvirhe: {esc(e)}</p>
          <p><a href="/projects?{urlencode(filters.to_dict())}">Takaisin työmaihin</a></p>
        </div>
        """
        return render_page("Hakuvahti", body, ctx, status_code=500)

    log.info("Watch created", extra={"user_id": ctx.user_id, "frequency": frequency})
    return RedirectResponse(url="/watchlists", status_code=303)


@router.get("/projects/{project_id}", response_class=HTMLResponse)
def project_detail(request: Request, project_id: int):
    ctx = session_context(request)
    project = get_project(project_id, public_only=not ctx.is_admin)
    if not project:
        body = '<div class="card"><p>Kohdetta ei löytynyt.</p><p><a href="/projects">Takaisin työmaihin</a></p></div>'
        return render_page("Kohdetta ei löytynyt", body, ctx, status_code=404)

    rows = "".join(
        f"<tr><th>{esc(label)}</th><td>{esc(display_value(field, project.get(field)))}</td></tr>"
        for field, label in PROJECT_FIELD_LABELS
    )
    if has_coords(project):
        coords = f'{project["latitude"]:.5f}, {project["longitude"]:.5f}'
        map_link = f'<a href="/projects?{esc(urlencode({"focus": project["id"], "limit": "0"}))}">Näytä kartalla</a>'
    else:
        coords = "Ei koordinaatteja"
        map_link = ""
    body = f"""
    <div class="card">
      <p><a href="/projects">← Takaisin työmaihin</a> {map_link}</p>
      <table>
        <tbody>
          {rows}
          <tr><th>Koordinaatit</th><td>{esc(coords)}</td></tr>
          <tr><th>Lisätty</th><td>{esc(project.get("created_at"))}</td></tr>
        </tbody>
      </table>
    </div>
    """
    return render_page(project.get("name") or "Kohde", body, ctx)
