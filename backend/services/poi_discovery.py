from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from domain.models import PointOfInterest, normalize_name
from services.places_client import PlaceResult, PlacesClient, get_default_places_client
from settings import settings

logger = logging.getLogger(__name__)


def dedupe_by_name(results: Iterable[PlaceResult], limit: int) -> List[PointOfInterest]:
    """First occurrence of each normalized name, in input order, at most `limit`."""
    seen: set[str] = set()
    pois: List[PointOfInterest] = []
    if limit <= 0:
        return pois
    for result in results:
        if not result.name or not result.name.strip():
            continue
        key = normalize_name(result.name)
        if key in seen:
            continue
        seen.add(key)
        pois.append(PointOfInterest(name=result.name, latitude=result.lat, longitude=result.lon))
        if len(pois) >= limit:
            break
    return pois


class PoiDiscovery:
    """Finds tourist attractions around a coordinate."""

    def __init__(
        self,
        client: Optional[PlacesClient] = None,
        radius_m: Optional[float] = None,
        query: Optional[str] = None,
        candidate_limit: Optional[int] = None,
        default_limit: Optional[int] = None,
    ):
        self.client = client or get_default_places_client()
        self.radius_m = radius_m or settings.POI_RADIUS_M
        self.query = query or settings.POI_QUERY
        self.candidate_limit = candidate_limit or settings.POI_CANDIDATE_LIMIT
        self.default_limit = default_limit or settings.POI_LIMIT

    def discover(self, lat: float, lon: float, limit: Optional[int] = None) -> List[PointOfInterest]:
        """Return unsaved POIs; provider errors propagate."""
        limit = self.default_limit if limit is None else limit
        candidates = self.client.search_nearby(
            lat,
            lon,
            radius_m=self.radius_m,
            kind=self.query,
            max_results=max(self.candidate_limit, limit),
        )
        pois = dedupe_by_name(candidates, limit)
        logger.debug("Discovered %d POIs from %d candidates", len(pois), len(candidates))
        return pois
