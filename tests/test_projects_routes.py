import html
import re

import pytest
from starlette.datastructures import QueryParams

from app import auth_utils
from app.routes import projects

pytest.importorskip("httpx")
from fastapi.testclient import TestClient

import app.api as api_module

MEMBER = {"id": 2, "email": "member@example.com", "active": True}

PUBLIC = [
    {"id": 1, "name": "Kalasataman torni", "region": "Uusimaa", "city": "Helsinki", "phase": "Suunnittelussa",
     "latitude": 60.18, "longitude": 24.97, "is_public": True},
    {"id": 2, "name": "Hervannan koulu", "region": "Pirkanmaa", "city": "Tampere", "phase": "Rakentaminen aloitettu",
     "latitude": 61.45, "longitude": 23.85, "is_public": True},
    {"id": 3, "name": "Osoitteeton varasto", "region": "Lappi", "city": "Kemi", "phase": "Suunnittelussa",
     "latitude": None, "longitude": None, "is_public": True},
]


@pytest.fixture
def member_client(monkeypatch):
    monkeypatch.setattr(auth_utils, "get_current_user", lambda req: (MEMBER, "tok-member"))
    monkeypatch.setattr(projects, "list_public_projects", lambda: [dict(p) for p in PUBLIC])
    client = TestClient(api_module.app)
    client.cookies.set("csrf_token", "csrf-abc")
    return client


def test_limit_toggle_parsing():
    assert projects.limit_to_map_from(QueryParams("")) is True
    assert projects.limit_to_map_from(QueryParams("limit=0")) is False
    assert projects.limit_to_map_from(QueryParams("limit=0&limit=1")) is True


def test_display_value():
    assert projects.display_value("apartments", None) == "-"
    assert projects.display_value("estimated_cost", 2500000) == "2\u00a0500\u00a0000\u00a0€"
    assert projects.display_value("name", "Talo") == "Talo"


def test_catalog_filters_and_counts(member_client):
    resp = member_client.get("/projects", params={"region": "Uusimaa", "limit": "0"})
    assert resp.status_code == 200
    assert "Kalasataman torni" in resp.text
    assert "Hervannan koulu" not in resp.text
    assert "leaflet" in resp.text
    assert resp.headers.get("set-cookie", "").count("session_id=tok-member") == 1


def test_unmapped_projects_are_listed_with_badge(member_client):
    resp = member_client.get("/projects", params={"south": "60", "west": "24", "north": "61", "east": "26"})
    # The map still carries every filtered marker; only the list follows the viewport.
    assert '<a href="/projects/1">' in resp.text
    assert '<a href="/projects/3">' in resp.text
    assert '<a href="/projects/2">' not in resp.text
    assert "badge nocoords" in resp.text


def test_focus_link_keeps_expanded_list(member_client, monkeypatch):
    many = [
        dict(PUBLIC[0], id=i, name=f"Kohde {i:02d}", latitude=60.0 + i / 1000)
        for i in range(1, 41)
    ]
    monkeypatch.setattr(projects, "list_public_projects", lambda: [dict(p) for p in many])

    first = member_client.get("/projects", params={"limit": "0"})
    assert '<a href="/projects/40">' not in first.text
    more_href = html.unescape(re.search(r'<a href="(/projects\?[^"]*shown=[^"]*)">Näytä lisää', first.text).group(1))

    expanded = member_client.get(more_href)
    assert '<a href="/projects/40">' in expanded.text
    focus_href = html.unescape(re.search(r'<a href="(/projects\?[^"]*focus=40[^"]*)">Näytä kartalla', expanded.text).group(1))
    assert "shown=" in focus_href and "key=" in focus_href

    focused = member_client.get(focus_href)
    assert '<a href="/projects/40">' in focused.text


def test_save_watch_uses_filter_summary_when_unnamed(member_client, monkeypatch):
    saved = {}
    monkeypatch.setattr(projects, "create_watch", lambda **kw: saved.update(kw) or 11)

    resp = member_client.post(
        "/projects/watch",
        data={"name": "  ", "frequency": "daily", "region": "Lappi", "csrf_token": "csrf-abc"},
        follow_redirects=False,
    )

    assert resp.status_code == 303
    assert resp.headers["location"] == "/watchlists"
    assert saved["user_id"] == 2
    assert saved["name"] == "Maakunta: Lappi"
    assert saved["frequency"] == "daily"
    assert saved["filters"].to_dict() == {"region": "Lappi"}


def test_save_watch_failure_shows_error(member_client, monkeypatch):
    def boom(**kw):
        raise RuntimeError("disk full")

    monkeypatch.setattr(projects, "create_watch", boom)
    resp = member_client.post("/projects/watch", data={"name": "X", "csrf_token": "csrf-abc"})
    assert resp.status_code == 500
    assert "Tallennusvirhe" in resp.text


def test_save_watch_requires_csrf(member_client, monkeypatch):
    monkeypatch.setattr(projects, "create_watch", lambda **kw: pytest.fail("must not save"))
    resp = member_client.post("/projects/watch", data={"name": "X", "csrf_token": "nope"})
    assert resp.status_code == 403


def test_detail_hides_non_public_from_members(member_client, monkeypatch):
    seen = {}

    def fake_get(project_id, *, public_only=False):
        seen["public_only"] = public_only
        return None

    monkeypatch.setattr(projects, "get_project", fake_get)
    resp = member_client.get("/projects/9")
    assert resp.status_code == 404
    assert seen["public_only"] is True


def test_detail_renders_fields(member_client, monkeypatch):
    project = dict(PUBLIC[0], floor_area=12000, created_at="2025-03-01T10:00:00+00:00")
    monkeypatch.setattr(projects, "get_project", lambda project_id, public_only=False: project)
    resp = member_client.get("/projects/1")
    assert resp.status_code == 200
    assert "12\u00a0000\u00a0m²" in resp.text
    assert "focus=1" in resp.text
