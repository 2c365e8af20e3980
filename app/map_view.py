"""
Leaflet map markup for the catalog page.

The server decides which markers exist; the browser only draws them and
reports viewport changes back by reloading the catalog with
south/west/north/east (and lat/lng/z so the same view is restored).
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from app.layout import esc
from core.catalog import MapBounds
from core.db.projects import has_coords

LEAFLET_VERSION = "1.9.4"
LEAFLET_CSS = f"https://unpkg.com/leaflet@{LEAFLET_VERSION}/dist/leaflet.css"
LEAFLET_JS = f"https://unpkg.com/leaflet@{LEAFLET_VERSION}/dist/leaflet.js"
TILE_URL = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"

DEFAULT_CENTER = (60.1699, 24.9384)  # Helsinki
DEFAULT_ZOOM = 6
FOCUS_ZOOM = 14
MIN_ZOOM = 1
MAX_ZOOM = 19


def phase_class(phase: str | None) -> str:
    p = (phase or "").lower()
    if "suunn" in p:
        return "planning"
    if "käynn" in p or "rakenn" in p or "rakent" in p:
        return "active"
    if "valmis" in p or "valmist" in p:
        return "done"
    if "kilpail" in p or "hank" in p:
        return "tender"
    return "default"


@dataclass(frozen=True)
class MapViewport:
    lat: float
    lng: float
    zoom: int

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "MapViewport":
        """Restore a reported view; anything unusable falls back to the default."""
        try:
            lat = float(params["lat"])
            lng = float(params["lng"])
            zoom = int(params["z"])
        except (KeyError, TypeError, ValueError):
            return DEFAULT_VIEWPORT
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            return DEFAULT_VIEWPORT
        return cls(lat=lat, lng=lng, zoom=min(MAX_ZOOM, max(MIN_ZOOM, zoom)))


DEFAULT_VIEWPORT = MapViewport(lat=DEFAULT_CENTER[0], lng=DEFAULT_CENTER[1], zoom=DEFAULT_ZOOM)


def popup_html(project: Dict) -> str:
    rows = [
        ("Maakunta", project.get("region") or "-"),
        ("Kaupunki", project.get("city") or "-"),
        ("Vaihe", project.get("phase") or "-"),
    ]
    optional = (
        ("Sijainti", "location"),
        ("Kohdetyyppi", "property_type"),
        ("Rakennuttaja", "developer"),
        ("Rakennusliike", "builder"),
        ("Aloitus", "construction_start"),
    )
    rows.extend((label, project[key]) for label, key in optional if project.get(key))
    lines = "".join(f"<div><strong>{esc(label)}:</strong> {esc(value)}</div>" for label, value in rows)
    return (
        f'<div class="popup"><div class="popup-title">{esc(project.get("name"))}</div>'
        f"{lines}"
        f'<div><a href="/projects/{esc(project.get("id"))}">Avaa kohde</a></div></div>'
    )


def marker_payload(projects: List[Dict]) -> List[Dict]:
    return [
        {
            "id": p.get("id"),
            "lat": p["latitude"],
            "lng": p["longitude"],
            "cls": phase_class(p.get("phase")),
            "popup": popup_html(p),
        }
        for p in projects
        if has_coords(p)
    ]


def map_head() -> str:
    return f"""
        <link rel="stylesheet" href="{LEAFLET_CSS}" crossorigin="" />
        <script src="{LEAFLET_JS}" crossorigin=""></script>
        <style>
          #project-map {{ height: 520px; width: 100%; border-radius: 12px; overflow: hidden; z-index: 0; }}
          .marker-dot {{ border-radius: 50%; border: 2px solid #fff; box-shadow: 0 0 4px rgba(0,0,0,0.6); }}
          .marker--planning {{ background: #38bdf8; }}
          .marker--active {{ background: #22c55e; }}
          .marker--done {{ background: #9ca3af; }}
          .marker--tender {{ background: #fbbf24; }}
          .marker--default {{ background: #a78bfa; }}
          .leaflet-popup-content {{ color: #111827; font-size: 13px; line-height: 1.35; min-width: 220px; }}
          .popup-title {{ font-weight: 700; margin-bottom: 6px; }}
        </style>
    """


def _json_for_script(data) -> str:
    return json.dumps(data, ensure_ascii=False).replace("</", "<\\/")


def render_map(
    projects: List[Dict],
    *,
    viewport: MapViewport = DEFAULT_VIEWPORT,
    bounds: Optional[MapBounds] = None,
    focus_id: Optional[int] = None,
    report_initial_bounds: bool = False,
) -> str:
    """
    Map container plus the script that draws `projects` (those with coordinates).

    `report_initial_bounds` makes the first render report its viewport once so a
    list limited to the map view has bounds to work with.
    """
    config = {
        "center": [viewport.lat, viewport.lng],
        "zoom": viewport.zoom,
        "tiles": TILE_URL,
        "markers": marker_payload(projects),
        "bounds": bounds.to_params() if bounds else None,
        "focus": focus_id,
        "focusZoom": FOCUS_ZOOM,
        "reportInitial": bool(report_initial_bounds),
    }
    return f"""
    <div id="project-map"></div>
    <script type="application/json" id="map-config">{_json_for_script(config)}</script>
    <script>
      (function() {{
        var el = document.getElementById('project-map');
        var cfgEl = document.getElementById('map-config');
        if (!el || !cfgEl || typeof L === 'undefined') return;
        var cfg = JSON.parse(cfgEl.textContent);

        var map = L.map(el).setView(cfg.center, cfg.zoom);
        L.tileLayer(cfg.tiles, {{ attribution: '&copy; OpenStreetMap contributors' }}).addTo(map);

        var byId = {{}};
        cfg.markers.forEach(function(m) {{
          var icon = L.divIcon({{
            className: 'marker-dot marker--' + m.cls,
            iconSize: [14, 14],
            iconAnchor: [7, 7],
            popupAnchor: [0, -8]
          }});
          // autoPan off: a popup must not move the map and trigger a reload.
          byId[String(m.id)] = L.marker([m.lat, m.lng], {{ icon: icon }})
            .bindPopup(m.popup, {{ autoPan: false }})
            .addTo(map);
        }});

        if (cfg.focus != null && byId[String(cfg.focus)]) {{
          var target = byId[String(cfg.focus)];
          map.setView(target.getLatLng(), cfg.focusZoom, {{ animate: false }});
          target.openPopup();
        }}

        function edges() {{
          var b = map.getBounds();
          return {{
            south: b.getSouth().toFixed(5),
            west: b.getWest().toFixed(5),
            north: b.getNorth().toFixed(5),
            east: b.getEast().toFixed(5)
          }};
        }}

        function sameEdges(a, b) {{
          if (!a || !b) return false;
          return ['south', 'west', 'north', 'east'].every(function(k) {{
            return Math.abs(parseFloat(a[k]) - parseFloat(b[k])) < 0.0001;
          }});
        }}

        function report(replace) {{
          var e = edges();
          if (sameEdges(e, cfg.bounds)) return;
          var c = map.getCenter();
          var params = new URLSearchParams(window.location.search);
          ['south', 'west', 'north', 'east'].forEach(function(k) {{ params.set(k, e[k]); }});
          params.set('lat', c.lat.toFixed(5));
          params.set('lng', c.lng.toFixed(5));
          params.set('z', String(map.getZoom()));
          params.delete('focus');
          params.delete('shown');
          params.delete('key');
          var url = window.location.pathname + '?' + params.toString();
          if (replace) window.location.replace(url); else window.location.assign(url);
        }}

        var timer = null;
        map.whenReady(function() {{
          if (cfg.reportInitial && !cfg.bounds && cfg.focus == null) report(true);
          map.on('moveend', function() {{
            if (timer) clearTimeout(timer);
            timer = setTimeout(function() {{ report(false); }}, 400);
          }});
        }});
      }})();
    </script>
    """


__all__ = [
    "DEFAULT_CENTER",
    "DEFAULT_ZOOM",
    "FOCUS_ZOOM",
    "MapViewport",
    "DEFAULT_VIEWPORT",
    "phase_class",
    "popup_html",
    "marker_payload",
    "map_head",
    "render_map",
]
