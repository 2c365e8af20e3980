import pytest

from app import auth_utils
from app.routes import watchlists
from core.filters import ProjectFilters

pytest.importorskip("httpx")
from fastapi.testclient import TestClient

import app.api as api_module

MEMBER = {"id": 2, "email": "member@example.com", "active": True}


def _watch(id, **overrides):
    watch = {
        "id": id,
        "user_id": 2,
        "name": f"Vahti {id}",
        "filters": ProjectFilters(region="Uusimaa"),
        "frequency": "weekly",
        "is_enabled": True,
        "last_sent_at": None,
    }
    watch.update(overrides)
    return watch


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(auth_utils, "get_current_user", lambda req: (MEMBER, "tok-member"))
    monkeypatch.setattr(
        watchlists,
        "get_watches_for_user",
        lambda user_id: [_watch(1), _watch(2, is_enabled=False, last_sent_at="2025-03-14T07:05:00+00:00")],
    )
    c = TestClient(api_module.app)
    c.cookies.set("csrf_token", "csrf-abc")
    return c


def test_anonymous_is_sent_to_login():
    resp = TestClient(api_module.app).get("/watchlists", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login?next=/watchlists"


def test_list_shows_enabled_count_and_summary(client):
    resp = client.get("/watchlists")
    assert resp.status_code == 200
    assert "Aktiivisia: <strong>1</strong> / 2" in resp.text
    assert "Maakunta: Uusimaa" in resp.text
    assert "14.3.2025 klo 09.05" in resp.text
    assert "Ei vielä lähetetty" in resp.text


def test_rename(client, monkeypatch):
    calls = []
    monkeypatch.setattr(watchlists, "rename_watch", lambda wid, uid, name: calls.append((wid, uid, name)) or True)
    resp = client.post("/watchlists/1/rename", data={"name": "Helsingin koulut", "csrf_token": "csrf-abc"}, follow_redirects=False)
    assert resp.status_code == 303
    assert calls == [(1, 2, "Helsingin koulut")]


def test_rename_rejects_blank(client, monkeypatch):
    monkeypatch.setattr(watchlists, "rename_watch", lambda *a: pytest.fail("must not rename"))
    resp = client.post("/watchlists/1/rename", data={"name": "   ", "csrf_token": "csrf-abc"})
    assert resp.status_code == 400
    assert "Nimi ei voi olla tyhjä." in resp.text


def test_frequency_must_be_known(client, monkeypatch):
    calls = []
    monkeypatch.setattr(watchlists, "set_watch_frequency", lambda wid, uid, f: calls.append(f) or True)
    assert client.post("/watchlists/1/frequency", data={"frequency": "hourly", "csrf_token": "csrf-abc"}).status_code == 400
    resp = client.post("/watchlists/1/frequency", data={"frequency": "daily", "csrf_token": "csrf-abc"}, follow_redirects=False)
    assert resp.status_code == 303
    assert calls == ["daily"]


def test_toggle_flips_current_state(client, monkeypatch):
    calls = []
    monkeypatch.setattr(watchlists, "set_watch_enabled", lambda wid, uid, enabled: calls.append((wid, enabled)) or True)
    client.post("/watchlists/1/toggle", data={"csrf_token": "csrf-abc"}, follow_redirects=False)
    client.post("/watchlists/2/toggle", data={"csrf_token": "csrf-abc"}, follow_redirects=False)
    assert calls == [(1, False), (2, True)]


def test_someone_elses_watch_is_not_found(client, monkeypatch):
    monkeypatch.setattr(watchlists, "delete_watch", lambda wid, uid: False)
    resp = client.post("/watchlists/77/delete", data={"csrf_token": "csrf-abc"})
    assert resp.status_code == 404
    assert "Hakuvahtia ei löytynyt." in resp.text


def test_store_error_is_reported(client, monkeypatch):
    def boom(wid, uid):
        raise RuntimeError("db down")

    monkeypatch.setattr(watchlists, "delete_watch", boom)
    resp = client.post("/watchlists/1/delete", data={"csrf_token": "csrf-abc"})
    assert resp.status_code == 500
    assert "Tallennusvirhe" in resp.text


def test_mutations_require_csrf(client, monkeypatch):
    monkeypatch.setattr(watchlists, "delete_watch", lambda *a: pytest.fail("must not delete"))
    resp = client.post("/watchlists/1/delete", data={"csrf_token": "other"})
    assert resp.status_code == 403
