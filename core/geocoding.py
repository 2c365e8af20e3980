"""
Best-effort forward geocoding of a project's address text (Nominatim).

Failures never raise: the caller gets (None, None) and saves the project
without coordinates.
"""
from __future__ import annotations

import logging
import os
from typing import Optional, Tuple

import httpx

log = logging.getLogger("geocoding")

DEFAULT_GEOCODER_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_USER_AGENT = "tyomaat-fi/1.0 (+https://tyomaat.fi)"
GEOCODE_TIMEOUT_SECONDS = 10.0

Coords = Tuple[Optional[float], Optional[float]]


def _geocoder_url() -> str:
    return os.getenv("GEOCODER_URL") or DEFAULT_GEOCODER_URL


def _user_agent() -> str:
    # Nominatim's usage policy requires an identifying User-Agent.
    return os.getenv("GEOCODER_USER_AGENT") or DEFAULT_USER_AGENT


def _first_hit(data) -> Coords:
    if not isinstance(data, list) or not data:
        return None, None
    hit = data[0]
    if not isinstance(hit, dict):
        return None, None
    try:
        return float(hit["lat"]), float(hit["lon"])
    except (KeyError, TypeError, ValueError):
        return None, None


def geocode_address(address: str | None, client: httpx.Client | None = None) -> Coords:
    """Return (lat, lon) of the first search hit, or (None, None)."""
    address = (address or "").strip()
    if not address:
        return None, None

    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=GEOCODE_TIMEOUT_SECONDS)
    try:
        response = client.get(
            _geocoder_url(),
            params={"format": "json", "q": address},
            headers={"User-Agent": _user_agent(), "Accept": "application/json"},
        )
        response.raise_for_status()
        coords = _first_hit(response.json())
    except (httpx.HTTPError, ValueError) as exc:
        log.warning("Geocoding failed", extra={"address": address, "error": str(exc)})
        return None, None
    finally:
        if owns_client:
            client.close()

    if coords == (None, None):
        log.info("No geocoding result", extra={"address": address})
    return coords


__all__ = ["GEOCODE_TIMEOUT_SECONDS", "geocode_address"]
