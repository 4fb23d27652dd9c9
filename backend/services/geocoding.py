"""Forward geocoding helpers using OpenStreetMap Nominatim.

Shares one requests session, User-Agent policy and global rate limit with
the nearby-places client so both stay within Nominatim's usage policy.
"""

from __future__ import annotations

import os
import time
import threading
import logging
import re
from typing import Any, Optional

import requests

from domain.errors import GeocodingFailed
from domain.models import ResolvedPlace

NOMINATIM_BASE_URL = os.getenv("NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org")
logger = logging.getLogger(__name__)
_session = requests.Session()
_last_request_ts: float = 0.0
_lock = threading.Lock()
_MIN_INTERVAL_SEC = float(os.getenv("NOMINATIM_MIN_INTERVAL", "1.1"))
_logged_ua = False
NOMINATIM_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT")
NOMINATIM_REFERER = os.getenv("NOMINATIM_REFERER")

FALLBACK_UA = "weather-places-dashboard/0.1 (contact: example@example.com)"
if NOMINATIM_USER_AGENT is None:
    logger.warning(
        "NOMINATIM_USER_AGENT not set in environment; using fallback UA. "
        "This may violate Nominatim usage policy."
    )

LOCALITY_KEYS = ("city", "town", "village", "hamlet")


def _redact_email(ua: str) -> str:
    if "@" not in ua:
        return ua
    return re.sub(r"\S+@\S+", "<redacted>", ua)

_ua_value = NOMINATIM_USER_AGENT or FALLBACK_UA
NOMINATIM_HEADERS = {
    "User-Agent": _ua_value,
}
if NOMINATIM_REFERER:
    NOMINATIM_HEADERS["Referer"] = NOMINATIM_REFERER


def _throttled_get(
    url: str,
    *,
    params: dict[str, Any],
    headers: dict[str, str],
    timeout: float,
) -> requests.Response:
    """Perform a GET request with a simple global rate limit."""
    global _last_request_ts, _logged_ua
    with _lock:
        now = time.time()
        delta = now - _last_request_ts
        if delta < _MIN_INTERVAL_SEC:
            time.sleep(_MIN_INTERVAL_SEC - delta)
        _last_request_ts = time.time()
        if not _logged_ua:
            logger.debug("Nominatim User-Agent: %s", _redact_email(_ua_value))
            _logged_ua = True
    return _session.get(url, params=params, headers=headers, timeout=timeout)


def pick_canonical_name(item: dict, query: str) -> str:
    """Locality name, then the provider's generic name, then the query."""
    address = item.get("address") or {}
    for key in LOCALITY_KEYS:
        value = address.get(key)
        if value and str(value).strip():
            return str(value).strip()
    name = item.get("name")
    if name and str(name).strip():
        return str(name).strip()
    return query


class PlaceResolver:
    """Resolves free text such as "Paris" into a canonical name and coordinates."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 10.0):
        self.base_url = (base_url or NOMINATIM_BASE_URL).rstrip("/")
        self.timeout = timeout

    def resolve(self, query: str) -> ResolvedPlace:
        """Geocode `query`.

        Raises GeocodingFailed(query) on transport errors, error statuses,
        undecodable bodies, empty results or unusable coordinates.
        """
        params = {
            "q": query,
            "format": "jsonv2",
            "addressdetails": "1",
            "limit": "1",
        }
        try:
            resp = _throttled_get(
                f"{self.base_url}/search",
                params=params,
                headers=NOMINATIM_HEADERS,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Nominatim search error for %r: %s", query, exc)
            raise GeocodingFailed(query) from exc

        status = resp.status_code
        if not 200 <= status <= 299:
            logger.warning("Nominatim search for %r returned %s", query, status)
            raise GeocodingFailed(query)

        try:
            data = resp.json()
        except ValueError as exc:
            logger.warning("Nominatim search JSON error for %r: %s", query, exc)
            raise GeocodingFailed(query) from exc

        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            logger.info("Nominatim found nothing for %r", query)
            raise GeocodingFailed(query)

        best = data[0]
        try:
            lat = float(best["lat"])
            lon = float(best["lon"])
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodingFailed(query) from exc

        name = pick_canonical_name(best, query)
        logger.debug("Resolved %r to %s (%.5f, %.5f)", query, name, lat, lon)
        return ResolvedPlace(name=name, latitude=lat, longitude=lon)


_default_place_resolver: Optional[PlaceResolver] = None


def get_default_place_resolver() -> PlaceResolver:
    global _default_place_resolver
    if _default_place_resolver is None:
        _default_place_resolver = PlaceResolver()
    return _default_place_resolver
