"""
Lightweight nearby-places client using Nominatim (OSM) with shared rate limiting and headers.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from domain.errors import DecodingError, InvalidResponse, NetworkError
from services.geocoding import NOMINATIM_BASE_URL, NOMINATIM_HEADERS, _throttled_get

METERS_PER_DEGREE_LAT = 111_320.0


@dataclass
class PlaceResult:
    """One nearby-search candidate, before deduplication."""
    provider: str  # e.g. "osm"
    place_id: str
    name: str
    lat: float
    lon: float
    types: List[str] = field(default_factory=list)
    raw: Optional[dict] = None


def bounding_viewbox(lat: float, lon: float, radius_m: float) -> str:
    """Nominatim viewbox string (left,top,right,bottom) around a center."""
    dlat = radius_m / METERS_PER_DEGREE_LAT
    cos_lat = max(math.cos(math.radians(lat)), 1e-6)
    dlon = radius_m / (METERS_PER_DEGREE_LAT * cos_lat)
    left = max(lon - dlon, -180.0)
    right = min(lon + dlon, 180.0)
    top = min(lat + dlat, 90.0)
    bottom = max(lat - dlat, -90.0)
    return f"{left:.6f},{top:.6f},{right:.6f},{bottom:.6f}"


class PlacesClient:
    def __init__(
        self,
        provider: str = "osm",
        base_url: Optional[str] = None,
        default_radius_m: float = 2000.0,
        timeout: float = 10.0,
    ):
        self.provider = provider
        self.base_url = (base_url or NOMINATIM_BASE_URL).rstrip("/")
        self.default_radius_m = default_radius_m
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    def search_nearby(
        self,
        lat: float,
        lon: float,
        radius_m: float,
        kind: Optional[str] = None,
        max_results: int = 10,
    ) -> List[PlaceResult]:
        """Return candidates around (lat, lon) in provider order.

        Raises NetworkError on transport failure, InvalidResponse on an error
        status and DecodingError when the body is not a JSON list.
        """
        radius = radius_m or self.default_radius_m
        params = {
            "q": kind or "tourist attraction",
            "format": "jsonv2",
            "viewbox": bounding_viewbox(lat, lon, radius),
            "bounded": "1",
            "limit": str(max_results),
        }
        try:
            resp = _throttled_get(
                f"{self.base_url}/search",
                params=params,
                headers=NOMINATIM_HEADERS,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            self.logger.warning("Nearby search failed at %.5f,%.5f: %s", lat, lon, exc)
            raise NetworkError(exc) from exc

        if not 200 <= resp.status_code <= 299:
            raise InvalidResponse(resp.status_code)
        try:
            data = resp.json()
        except ValueError as exc:
            raise DecodingError(exc) from exc
        if not isinstance(data, list):
            raise DecodingError(ValueError("expected a list of places"))

        results: List[PlaceResult] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            try:
                lat_val = float(item["lat"])
                lon_val = float(item["lon"])
            except (KeyError, TypeError, ValueError):
                continue
            types = [t for t in (item.get("category"), item.get("type")) if t]
            results.append(
                PlaceResult(
                    provider=self.provider,
                    place_id=str(item.get("place_id", "")),
                    name=item.get("name") or "",
                    lat=lat_val,
                    lon=lon_val,
                    types=types,
                    raw=item,
                )
            )

        self.logger.debug(
            "PlacesClient.search_nearby: provider=%s lat=%.6f lon=%.6f radius_m=%.1f kind=%s got %d results",
            self.provider,
            lat,
            lon,
            radius,
            kind,
            len(results),
        )
        return results


_default_places_client: Optional[PlacesClient] = None


def get_default_places_client() -> PlacesClient:
    global _default_places_client
    if _default_places_client is None:
        _default_places_client = PlacesClient()
    return _default_places_client
