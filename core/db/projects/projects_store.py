"""
Construction project storage helpers.

Every row leaves this module through `normalize_project`, so callers only ever
see `latitude` / `longitude` as floats or None and `is_public` as a bool.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.db.base import get_conn, to_iso, utc_now
from core.filters import ProjectFilters

PHASE_PLANNING = "Suunnittelussa"
PHASE_CONSTRUCTION_STARTED = "Rakentaminen aloitettu"
PHASE_OPTIONS = (PHASE_PLANNING, PHASE_CONSTRUCTION_STARTED)

# Columns an admin edits through the dashboard form (coordinates excluded).
EDITABLE_FIELDS = (
    "name",
    "location",
    "region",
    "city",
    "phase",
    "developer",
    "builder",
    "property_type",
    "apartments",
    "floor_area",
    "estimated_cost",
    "construction_start",
    "structural_design",
    "hvac_design",
    "electrical_design",
    "architectural_design",
    "geotechnical_design",
    "earthworks_contractor",
    "additional_info",
    "is_public",
)

_COLUMNS = ", ".join(("id",) + EDITABLE_FIELDS + ("latitude", "longitude", "created_at"))


def _coerce_coord(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
    return number if math.isfinite(number) else None


def normalize_project(row: Dict) -> Dict:
    """
    Single coordinate accessor for project rows.

    Accepts the current `latitude`/`longitude` columns or the legacy `lat`/`lng`
    names, numeric or numeric strings.
    """
    project = dict(row)
    lat = project.pop("lat", None)
    lng = project.pop("lng", None)
    if project.get("latitude") is None:
        project["latitude"] = lat
    if project.get("longitude") is None:
        project["longitude"] = lng
    project["latitude"] = _coerce_coord(project["latitude"])
    project["longitude"] = _coerce_coord(project["longitude"])
    if "is_public" in project:
        project["is_public"] = bool(project["is_public"])
    return project


def has_coords(project: Dict) -> bool:
    return project.get("latitude") is not None and project.get("longitude") is not None


def _rows(cur) -> List[Dict]:
    return [normalize_project(r) for r in cur.fetchall()]


def list_public_projects() -> List[Dict]:
    """Public projects, newest first."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM projects
        WHERE is_public = 1
        ORDER BY created_at DESC, id DESC
        """
    )
    rows = _rows(cur)
    conn.close()
    return rows


def list_all_projects() -> List[Dict]:
    """Every project regardless of visibility (admin dashboard)."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"SELECT {_COLUMNS} FROM projects ORDER BY created_at DESC, id DESC")
    rows = _rows(cur)
    conn.close()
    return rows


def get_project(project_id: int, *, public_only: bool = False) -> Optional[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    sql = f"SELECT {_COLUMNS} FROM projects WHERE id = ?"
    if public_only:
        sql += " AND is_public = 1"
    cur.execute(sql, (project_id,))
    row = cur.fetchone()
    conn.close()
    return normalize_project(row) if row else None


def _values_for(payload: Dict) -> list:
    values = []
    for field in EDITABLE_FIELDS:
        value = payload.get(field)
        if field == "is_public":
            value = 1 if value else 0
        values.append(value)
    return values


def create_project(payload: Dict, *, latitude: float | None, longitude: float | None) -> int:
    conn = get_conn()
    cur = conn.cursor()
    columns = ", ".join(EDITABLE_FIELDS + ("latitude", "longitude", "created_at"))
    placeholders = ", ".join("?" for _ in range(len(EDITABLE_FIELDS) + 3))
    cur.execute(
        f"INSERT INTO projects ({columns}) VALUES ({placeholders}) RETURNING id",
        _values_for(payload) + [latitude, longitude, to_iso(utc_now())],
    )
    row = cur.fetchone()
    conn.commit()
    conn.close()
    return int(row["id"]) if row else 0


def update_project(project_id: int, payload: Dict, *, latitude: float | None, longitude: float | None) -> bool:
    conn = get_conn()
    cur = conn.cursor()
    assignments = ", ".join(f"{field} = ?" for field in EDITABLE_FIELDS + ("latitude", "longitude"))
    cur.execute(
        f"UPDATE projects SET {assignments} WHERE id = ?",
        _values_for(payload) + [latitude, longitude, project_id],
    )
    updated = cur.rowcount
    conn.commit()
    conn.close()
    return updated > 0


def set_project_visibility(project_id: int, is_public: bool) -> bool:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute("UPDATE projects SET is_public = ? WHERE id = ?", (1 if is_public else 0, project_id))
    updated = cur.rowcount
    conn.commit()
    conn.close()
    return updated > 0


def delete_project(project_id: int) -> bool:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute("DELETE FROM projects WHERE id = ?", (project_id,))
    deleted = cur.rowcount
    conn.commit()
    conn.close()
    return deleted > 0


def project_counts() -> Dict[str, int]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        SELECT COUNT(*) AS projects,
               COALESCE(SUM(CASE WHEN is_public = 1 THEN 1 ELSE 0 END), 0) AS public
        FROM projects
        """
    )
    row = cur.fetchone() or {}
    conn.close()
    return {"projects": int(row.get("projects") or 0), "public": int(row.get("public") or 0)}


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def find_new_public_projects(since: datetime, filters: ProjectFilters) -> List[Dict]:
    """
    Public projects created strictly after `since` that satisfy `filters`,
    newest first. Categorical filters match exactly; the free-text term is a
    case-insensitive substring of name, developer or builder.
    """
    clauses = ["is_public = 1", "created_at > ?"]
    params: list = [to_iso(since)]

    for field in ("region", "city", "phase", "property_type"):
        value = getattr(filters, field)
        if value:
            clauses.append(f"{field} = ?")
            params.append(value)

    if filters.q:
        pattern = _like_pattern(filters.q)
        clauses.append("(name ILIKE ? OR developer ILIKE ? OR builder ILIKE ?)")
        params.extend([pattern, pattern, pattern])

    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"""
        SELECT id, name, city, region, phase, created_at
        FROM projects
        WHERE {" AND ".join(clauses)}
        ORDER BY created_at DESC, id DESC
        """,
        params,
    )
    rows = [dict(r) for r in cur.fetchall()]
    conn.close()
    return rows


__all__ = [
    "PHASE_PLANNING",
    "PHASE_CONSTRUCTION_STARTED",
    "PHASE_OPTIONS",
    "EDITABLE_FIELDS",
    "normalize_project",
    "has_coords",
    "list_public_projects",
    "list_all_projects",
    "get_project",
    "create_project",
    "update_project",
    "set_project_visibility",
    "delete_project",
    "project_counts",
    "find_new_public_projects",
]
