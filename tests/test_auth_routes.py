import types

import pytest

from app import auth_utils, security
from app.routes import auth


def _request(cookies=None):
    return types.SimpleNamespace(
        client=types.SimpleNamespace(host="127.0.0.1"),
        cookies=cookies if cookies is not None else {security.CSRF_COOKIE_NAME: "cookie-token"},
        state=types.SimpleNamespace(),
        url=types.SimpleNamespace(path="/login"),
    )


@pytest.fixture
def member(monkeypatch):
    user = {"id": 5, "email": "member@example.com", "active": True, "password_hash": "hash"}
    monkeypatch.setattr(auth, "get_user_by_email", lambda email: user if email == user["email"] else None)
    monkeypatch.setattr(auth, "verify_password", lambda password, hashed: password == "Oikea-salasana-1")
    monkeypatch.setattr(auth, "create_session", lambda user_id: "new-session-token")
    return user


def test_login_rate_limit(monkeypatch):
    # Force rate limit to deny after 1 attempt
    calls = {"count": 0}

    def fake_allow_request_with_remaining(key, limit=5, window_seconds=60):
        calls["count"] += 1
        allowed = calls["count"] < 2
        return allowed, (1 if allowed else 0)

    monkeypatch.setattr(auth, "allow_request_with_remaining", fake_allow_request_with_remaining)

    # first call passes limit check but fails CSRF -> 403
    resp1 = auth.login(_request(), email="user@example.com", password="bad", next="", csrf_token="wrong")
    # second call exceeds limit -> 429
    resp2 = auth.login(_request(), email="user@example.com", password="bad", next="", csrf_token="wrong")
    assert resp1.status_code == 403
    assert resp2.status_code == 429


def test_real_limiter_blocks_eleventh_attempt(member):
    for _ in range(auth.LOGIN_LIMIT):
        resp = auth.login(_request(), email="member@example.com", password="bad", next="", csrf_token="cookie-token")
        assert resp.status_code == 400
    resp = auth.login(_request(), email="member@example.com", password="bad", next="", csrf_token="cookie-token")
    assert resp.status_code == 429


def test_login_rejects_missing_csrf(monkeypatch):
    monkeypatch.setattr(auth, "allow_request_with_remaining", lambda *a, **k: (True, 9))
    resp = auth.login(_request(cookies={}), email="user@example.com", password="bad", next="", csrf_token="")
    assert resp.status_code == 403


def test_invalid_email_rerenders_form(member):
    resp = auth.login(_request(), email="not-an-email", password="x", next="", csrf_token="cookie-token")
    assert resp.status_code == 400
    assert "Tarkista sähköpostiosoite." in resp.body.decode()


def test_wrong_password_rerenders_form(member):
    resp = auth.login(
        _request(), email="member@example.com", password="väärä", next="/dashboard", csrf_token="cookie-token"
    )
    assert resp.status_code == 400
    body = resp.body.decode()
    assert "Väärä sähköposti tai salasana." in body
    assert 'value="/dashboard"' in body


def test_inactive_user_cannot_sign_in(member):
    member["active"] = False
    resp = auth.login(
        _request(), email="member@example.com", password="Oikea-salasana-1", next="", csrf_token="cookie-token"
    )
    assert resp.status_code == 400


def test_successful_login_sets_cookie_and_follows_next(member):
    events = []
    unsubscribe = auth_utils.auth_events.subscribe(lambda event, user: events.append((event, user["id"])))
    try:
        resp = auth.login(
            _request(),
            email=" Member@Example.com ",
            password="Oikea-salasana-1",
            next="/projects?region=Lappi",
            csrf_token="cookie-token",
        )
    finally:
        unsubscribe()

    assert resp.status_code == 303
    assert resp.headers["location"] == "/projects?region=Lappi"
    assert "session_id=new-session-token" in resp.headers["set-cookie"]
    assert events == [("signed_in", 5)]


def test_offsite_next_falls_back_to_catalog(member):
    resp = auth.login(
        _request(),
        email="member@example.com",
        password="Oikea-salasana-1",
        next="https://evil.example/",
        csrf_token="cookie-token",
    )
    assert resp.headers["location"] == "/projects"


def test_logout_deletes_session_and_clears_cookie(monkeypatch):
    deleted = []
    events = []
    user = {"id": 5, "email": "member@example.com", "active": True}
    monkeypatch.setattr(auth_utils, "get_current_user", lambda req: (user, "tok"))
    monkeypatch.setattr(auth, "delete_session", deleted.append)
    unsubscribe = auth_utils.auth_events.subscribe(lambda event, u: events.append(event))
    try:
        resp = auth.logout(_request(cookies={auth_utils.SESSION_COOKIE_NAME: "tok"}))
    finally:
        unsubscribe()

    assert resp.status_code == 303
    assert resp.headers["location"] == "/login"
    assert deleted == ["tok"]
    assert events == ["signed_out"]
    assert 'session_id=""' in resp.headers["set-cookie"]


def test_logout_without_session_just_redirects(monkeypatch):
    monkeypatch.setattr(auth, "delete_session", lambda token: pytest.fail("nothing to delete"))
    resp = auth.logout(_request(cookies={}))
    assert resp.status_code in (302, 303)


def test_login_page_sets_csrf_cookie():
    pytest.importorskip("httpx")
    from fastapi.testclient import TestClient

    import app.api as api_module

    client = TestClient(api_module.app)
    resp = client.get("/login", params={"next": "/dashboard"})
    assert resp.status_code == 200
    assert security.CSRF_COOKIE_NAME in resp.cookies
    assert 'name="next" value="/dashboard"' in resp.text
