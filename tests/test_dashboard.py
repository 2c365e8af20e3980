import pytest

from app import auth_utils
from app.routes import dashboard
from core.db.projects import PHASE_CONSTRUCTION_STARTED, PHASE_PLANNING

ADMIN = {"id": 1, "email": "boss@example.com", "active": True}
MEMBER = {"id": 2, "email": "member@example.com", "active": True}


def test_payload_normalizes_free_text_numbers():
    payload, errors = dashboard.project_payload_from_form(
        {
            "name": "  Koulu  ",
            "region": "Uusimaa",
            "city": " Vantaa ",
            "phase": PHASE_CONSTRUCTION_STARTED,
            "apartments": "120 kpl",
            "floor_area": "1 200",
            "estimated_cost": "1.500.000 €",
            "construction_start": "",
            "developer": "",
            "is_public": "1",
        }
    )
    assert errors == []
    assert payload["name"] == "Koulu"
    assert payload["city"] == "Vantaa"
    assert payload["phase"] == PHASE_CONSTRUCTION_STARTED
    assert payload["apartments"] == 120
    assert payload["floor_area"] == 1200
    assert payload["estimated_cost"] == 1500000
    assert payload["construction_start"] is None
    assert payload["developer"] is None
    assert payload["is_public"] is True


def test_payload_defaults_and_errors():
    payload, errors = dashboard.project_payload_from_form({"name": " ", "region": "Narnia", "phase": "Outo"})
    assert len(errors) == 2
    assert payload["phase"] == PHASE_PLANNING
    assert payload["is_public"] is False

    payload, errors = dashboard.project_payload_from_form({"name": "X", "region": ""})
    assert errors == []
    assert payload["region"] is None


@pytest.fixture
def admin_client(monkeypatch):
    pytest.importorskip("httpx")
    from fastapi.testclient import TestClient

    import app.api as api_module

    monkeypatch.setenv("ADMIN_EMAILS", "boss@example.com")
    monkeypatch.setattr(auth_utils, "get_current_user", lambda req: (ADMIN, "tok-admin"))
    monkeypatch.setattr(dashboard, "list_all_projects", lambda: [])
    client = TestClient(api_module.app)
    client.cookies.set("csrf_token", "csrf-abc")
    return client


def _form(**overrides):
    form = {"name": "Uusi koulu", "location": "Koulutie 1, Vantaa", "region": "Uusimaa", "csrf_token": "csrf-abc"}
    form.update(overrides)
    return form


def test_create_with_geocode_hit(admin_client, monkeypatch):
    created = {}

    def fake_create(payload, *, latitude=None, longitude=None):
        created.update(payload=payload, latitude=latitude, longitude=longitude)
        return 42

    monkeypatch.setattr(dashboard, "geocode_address", lambda address: (60.29, 25.04))
    monkeypatch.setattr(dashboard, "create_project", fake_create)

    resp = admin_client.post("/dashboard/projects", data=_form(), follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"] == "/dashboard?saved=42"
    assert created["latitude"] == 60.29
    assert created["payload"]["name"] == "Uusi koulu"


def test_failed_geocode_still_saves_and_warns(admin_client, monkeypatch):
    monkeypatch.setattr(dashboard, "geocode_address", lambda address: (None, None))
    monkeypatch.setattr(dashboard, "create_project", lambda payload, latitude=None, longitude=None: 7)

    resp = admin_client.post("/dashboard/projects", data=_form(), follow_redirects=False)
    assert resp.headers["location"] == "/dashboard?unmapped=7"

    page = admin_client.get("/dashboard", params={"unmapped": 7})
    assert page.status_code == 200
    assert "ei löytynyt koordinaatteja" in page.text


def test_validation_error_keeps_form(admin_client, monkeypatch):
    monkeypatch.setattr(dashboard, "geocode_address", lambda address: pytest.fail("no geocode on invalid input"))
    resp = admin_client.post("/dashboard/projects", data=_form(name="", location="Säilyvä osoite"))
    assert resp.status_code == 400
    assert "Projektin nimi on pakollinen." in resp.text
    assert "Säilyvä osoite" in resp.text


def test_update_missing_project_is_404(admin_client, monkeypatch):
    monkeypatch.setattr(dashboard, "geocode_address", lambda address: (None, None))
    monkeypatch.setattr(dashboard, "update_project", lambda pid, payload, latitude=None, longitude=None: False)
    resp = admin_client.post("/dashboard/projects/99", data=_form())
    assert resp.status_code == 404


def test_csrf_is_required(admin_client, monkeypatch):
    monkeypatch.setattr(dashboard, "create_project", lambda *a, **k: pytest.fail("must not save"))
    resp = admin_client.post("/dashboard/projects", data=_form(csrf_token="forged"))
    assert resp.status_code == 403


def test_visibility_toggle_flips_flag(admin_client, monkeypatch):
    calls = []
    monkeypatch.setattr(dashboard, "get_project", lambda pid: {"id": pid, "is_public": True})
    monkeypatch.setattr(dashboard, "set_project_visibility", lambda pid, public: calls.append((pid, public)))

    resp = admin_client.post("/dashboard/projects/3/visibility", data={"csrf_token": "csrf-abc"}, follow_redirects=False)

    assert resp.status_code == 303
    assert calls == [(3, False)]


def test_delete(admin_client, monkeypatch):
    deleted = []
    monkeypatch.setattr(dashboard, "delete_project", lambda pid: deleted.append(pid) or True)
    resp = admin_client.post("/dashboard/projects/5/delete", data={"csrf_token": "csrf-abc"}, follow_redirects=False)
    assert resp.status_code == 303
    assert deleted == [5]


def test_member_cannot_post_to_dashboard(monkeypatch):
    pytest.importorskip("httpx")
    from fastapi.testclient import TestClient

    import app.api as api_module

    monkeypatch.setenv("ADMIN_EMAILS", "boss@example.com")
    monkeypatch.setattr(auth_utils, "get_current_user", lambda req: (MEMBER, "tok-member"))
    monkeypatch.setattr(dashboard, "delete_project", lambda pid: pytest.fail("must not delete"))

    client = TestClient(api_module.app)
    client.cookies.set("csrf_token", "csrf-abc")
    resp = client.post("/dashboard/projects/5/delete", data={"csrf_token": "csrf-abc"}, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/projects"
