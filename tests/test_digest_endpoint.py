import pytest

pytest.importorskip("httpx")
from fastapi.testclient import TestClient

import app.api as api_module
from app.routes import digests as digests_route
from worker.digests import DigestResult


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("CRON_SECRET", "s3cret")
    monkeypatch.setenv("DATABASE_URL", "postgresql://example/test")
    monkeypatch.setenv("EMAIL_USER", "bot@example.com")
    monkeypatch.setenv("EMAIL_PASSWORD", "pw")
    return TestClient(api_module.app)


def test_wrong_or_missing_secret_is_unauthorized(client, monkeypatch):
    monkeypatch.setattr(digests_route, "run_digests", lambda **kw: pytest.fail("job must not run"))

    assert client.get("/api/digests").status_code == 401
    resp = client.get("/api/digests", params={"secret": "nope"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "unauthorized"}


def test_unset_cron_secret_rejects_everything(client, monkeypatch):
    monkeypatch.delenv("CRON_SECRET")
    resp = client.get("/api/digests", params={"secret": ""})
    assert resp.status_code == 401


def test_missing_mail_config_is_reported(client, monkeypatch):
    monkeypatch.delenv("EMAIL_PASSWORD")
    resp = client.get("/api/digests", params={"secret": "s3cret"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Missing EMAIL_PASSWORD"}


def test_successful_run_returns_counts(client, monkeypatch):
    seen = {}

    def fake_run(*, debug=False):
        seen["debug"] = debug
        return DigestResult(checked=3, sent=1)

    monkeypatch.setattr(digests_route, "run_digests", fake_run)

    resp = client.get("/api/digests", params={"secret": "s3cret"})

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "checked": 3, "sent": 1}
    assert seen["debug"] is False


def test_debug_run_includes_rows(client, monkeypatch):
    rows = [{"watch_id": 7, "due": True, "projects_found": 2}]
    monkeypatch.setattr(
        digests_route, "run_digests", lambda *, debug=False: DigestResult(checked=1, sent=0, debug_rows=rows)
    )

    resp = client.get("/api/digests", params={"secret": "s3cret", "debug": "1"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["debugRows"] == rows


def test_job_failure_is_a_500(client, monkeypatch):
    def boom(**kw):
        raise RuntimeError("watch listing failed")

    monkeypatch.setattr(digests_route, "run_digests", boom)

    resp = client.get("/api/digests", params={"secret": "s3cret"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "watch listing failed"}


def test_secret_compare():
    assert digests_route.secret_matches("abc", "abc")
    assert not digests_route.secret_matches("abc", "abd")
    assert not digests_route.secret_matches(None, "abc")
    assert not digests_route.secret_matches("", "")
