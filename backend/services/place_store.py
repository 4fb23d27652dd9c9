"""
Place store.

Keeps the visited places consistent across two backends:

- the structured store (SQLAlchemy), authoritative for places and their POIs;
- a flat JSON snapshot in app storage (name and coordinates only), written
  after every change to visited membership or order and read exactly once,
  at startup, to seed an empty structured store.

The in-memory `VisitedList` mirrors the structured store, most recent first.
"""
from __future__ import annotations

import json
import logging
import threading
from datetime import timedelta
from typing import Any, Callable, List, Optional

from sqlalchemy.orm import Session

from domain.models import Place, PointOfInterest, VisitedList, next_timestamp, utcnow
from repositories.places import PlacesRepository
from storage.app_storage import AppStorage

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "saved_places"


def encode_snapshot(places: List[Place]) -> str:
    payload = [
        {"name": p.name, "latitude": p.latitude, "longitude": p.longitude}
        for p in places
    ]
    return json.dumps(payload, separators=(",", ":"))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def decode_snapshot(raw: Optional[str]) -> List[dict]:
    """Decode the flat snapshot; anything malformed decodes as empty."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except ValueError:
        return []
    if not isinstance(data, list):
        return []
    entries = []
    for item in data:
        if not isinstance(item, dict):
            return []
        name = item.get("name")
        lat = item.get("latitude")
        lon = item.get("longitude")
        if not isinstance(name, str) or not _is_number(lat) or not _is_number(lon):
            return []
        entries.append({"name": name, "latitude": float(lat), "longitude": float(lon)})
    return entries


class PlaceStore:
    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        storage: Optional[AppStorage] = None,
        repository: Optional[PlacesRepository] = None,
    ):
        if session_factory is None:
            from db import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory
        self.storage = storage or AppStorage()
        self.repo = repository or PlacesRepository()
        self.visited = VisitedList()
        self._lock = threading.RLock()

    # Loading ------------------------------------------------------------
    def load_all(self) -> VisitedList:
        """Refresh the visited list from the structured store."""
        with self._lock:
            with self._session_factory() as session:
                places = self.repo.list_places(session)
            self.visited.replace_all(places)
            return self.visited

    def bootstrap_if_empty(self) -> int:
        """Seed an empty structured store from the flat snapshot.

        Returns the number of places restored.
        """
        with self._lock:
            with self._session_factory() as session:
                if self.repo.count_places(session) > 0:
                    return 0
                entries = decode_snapshot(self.storage.get(SNAPSHOT_KEY))
                if not entries:
                    return 0
                # Snapshot order is recency order: first entry gets the newest stamp.
                now = utcnow()
                restored: List[Place] = []
                seen: set[str] = set()
                for entry in entries:
                    place = Place(
                        name=entry["name"],
                        latitude=entry["latitude"],
                        longitude=entry["longitude"],
                    )
                    if place.name_key in seen:
                        continue
                    seen.add(place.name_key)
                    restored.append(place)
                for offset, place in enumerate(restored):
                    place.last_used_at = now - timedelta(microseconds=offset)
                    self.repo.create_place(session, place)
            self.visited.replace_all(restored)
            logger.info("Restored %d places from app storage snapshot", len(restored))
            return len(restored)

    # Lookup -------------------------------------------------------------
    def find_by_name(self, name: str) -> Optional[Place]:
        with self._lock:
            return self.visited.find_by_name(name)

    def find_by_id(self, place_id: str) -> Optional[Place]:
        with self._lock:
            return self.visited.find_by_id(place_id)

    # Mutation -----------------------------------------------------------
    def upsert(self, place: Place) -> Place:
        """Insert or update `place`, move it to the front and sync the snapshot."""
        with self._lock:
            with self._session_factory() as session:
                if self.repo.get_place(session, place.id) is None:
                    self.repo.create_place(session, place)
                else:
                    self.repo.update_place(session, place)
            for poi in place.points_of_interest:
                poi.place_id = place.id
            self.visited.move_to_front(place)
            self.sync_snapshot()
            return place

    def add_points_of_interest(self, place: Place, pois: List[PointOfInterest]) -> None:
        """Attach newly discovered POIs to an existing place and persist them."""
        if not pois:
            return
        with self._lock:
            if self.visited.find_by_id(place.id) is None:
                # Deleted while loading; keep the POIs in memory only.
                place.attach(pois)
                return
            with self._session_factory() as session:
                self.repo.add_points_of_interest(session, place.id, pois)
            place.attach(pois)

    def mark_used(self, place: Place, require_visited: bool = False) -> Optional[Place]:
        """Stamp `place` as the most recently used one.

        With `require_visited`, a place that is no longer visited (deleted
        while it was loading) is left deleted and None is returned.
        """
        with self._lock:
            if require_visited and self.visited.find_by_id(place.id) is None:
                logger.info("Skipping recency update for deleted place %s", place.name)
                return None
            place.last_used_at = next_timestamp(self.visited.newest_timestamp())
            return self.upsert(place)

    def delete(self, place: Place) -> bool:
        """Remove `place` (and its POIs) everywhere."""
        with self._lock:
            with self._session_factory() as session:
                deleted = self.repo.delete_place(session, place.id)
            removed = self.visited.remove(place)
            self.sync_snapshot()
            logger.info("Deleted place %s (store=%s, visited=%s)", place.name, deleted, removed)
            return deleted or removed

    def sync_snapshot(self, visited: Optional[VisitedList] = None) -> None:
        with self._lock:
            source = visited if visited is not None else self.visited
            self.storage.set(SNAPSHOT_KEY, encode_snapshot(list(source)))

    def read_snapshot(self) -> List[dict]:
        return decode_snapshot(self.storage.get(SNAPSHOT_KEY))
