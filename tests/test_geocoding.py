import httpx

from core import geocoding


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_first_hit_is_used(monkeypatch):
    monkeypatch.setenv("GEOCODER_USER_AGENT", "tyomaat-tests/0.1")
    seen = {}

    def handler(request):
        seen["q"] = request.url.params["q"]
        seen["format"] = request.url.params["format"]
        seen["ua"] = request.headers["user-agent"]
        return httpx.Response(200, json=[{"lat": "60.1675", "lon": "24.9311"}, {"lat": "1", "lon": "2"}])

    coords = geocoding.geocode_address("  Mannerheimintie 1, Helsinki ", client=_client(handler))

    assert coords == (60.1675, 24.9311)
    assert seen == {"q": "Mannerheimintie 1, Helsinki", "format": "json", "ua": "tyomaat-tests/0.1"}


def test_no_results():
    coords = geocoding.geocode_address("Olematon 999", client=_client(lambda r: httpx.Response(200, json=[])))
    assert coords == (None, None)


def test_server_error_is_swallowed_into_none():
    coords = geocoding.geocode_address("Katu 1", client=_client(lambda r: httpx.Response(503)))
    assert coords == (None, None)


def test_network_error_is_swallowed_into_none():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    assert geocoding.geocode_address("Katu 1", client=_client(handler)) == (None, None)


def test_garbage_payload():
    client = _client(lambda r: httpx.Response(200, content=b"<html>"))
    assert geocoding.geocode_address("Katu 1", client=client) == (None, None)
    client = _client(lambda r: httpx.Response(200, json=[{"lat": "north"}]))
    assert geocoding.geocode_address("Katu 1", client=client) == (None, None)


def test_blank_address_makes_no_request():
    def handler(request):
        raise AssertionError("should not be called")

    assert geocoding.geocode_address("   ", client=_client(handler)) == (None, None)
    assert geocoding.geocode_address(None) == (None, None)
