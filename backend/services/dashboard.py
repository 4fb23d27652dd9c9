"""
Dashboard orchestration.

Coordinates place resolution, weather retrieval, POI discovery and
persistence for one load at a time, and publishes the resulting `AppState`
for the presentation layer.

A load runs Idle -> Loading -> Success | Failed. The loading flag is held by
a scoped operation, so every exit path clears it. Entry points called from
inside another entry point join the outer operation.

Overlapping loads are resolved latest-wins: each outermost operation takes a
generation token and view state published by a superseded operation is
dropped. Persistence from a superseded operation still applies.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Iterator, List, Optional

from domain.errors import (
    Info,
    MissingData,
    NetworkError,
    WeatherMapError,
)
from domain.models import (
    PRIMARY_TAB,
    AppState,
    Coordinate,
    MapRegion,
    Place,
    WeatherSnapshot,
)
from services.geocoding import PlaceResolver, get_default_place_resolver
from services.place_store import PlaceStore
from services.poi_discovery import PoiDiscovery
from services.weather_client import WeatherClient, get_default_weather_client
from settings import settings

logger = logging.getLogger(__name__)

StateListener = Callable[[AppState], None]


class DashboardOrchestrator:
    def __init__(
        self,
        *,
        weather_client: WeatherClient,
        resolver: PlaceResolver,
        poi_discovery: PoiDiscovery,
        store: PlaceStore,
        default_place_name: Optional[str] = None,
        default_coordinate: Optional[Coordinate] = None,
        map_zoom: Optional[float] = None,
    ) -> None:
        self.weather_client = weather_client
        self.resolver = resolver
        self.poi_discovery = poi_discovery
        self.store = store
        self.default_place_name = default_place_name or settings.DEFAULT_PLACE_NAME
        self.default_coordinate = default_coordinate or Coordinate(
            settings.DEFAULT_PLACE_LAT, settings.DEFAULT_PLACE_LON
        )
        self.map_zoom = map_zoom or settings.MAP_ZOOM

        self._state = AppState()
        self._state_lock = threading.RLock()
        self._listeners: List[StateListener] = []
        self._generation = 0
        self._in_flight = 0
        self._error_token: Optional[int] = None
        self._local = threading.local()

    # State --------------------------------------------------------------
    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call `listener` with every new state. Returns an unsubscribe callable."""
        with self._state_lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._state_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _apply(self, **changes) -> None:
        with self._state_lock:
            self._state = replace(self._state, **changes)
            state = self._state
            listeners = list(self._listeners)
        for listener in listeners:
            listener(state)

    def _is_current(self, token: Optional[int]) -> bool:
        return token is None or token == self._generation

    def _publish(self, token: Optional[int], **changes) -> bool:
        with self._state_lock:
            if not self._is_current(token):
                logger.debug("Dropping state from superseded operation %s", token)
                return False
            self._apply(**changes)
            return True

    def _publish_error(self, token: Optional[int], error: WeatherMapError) -> None:
        logger.warning("Publishing %s: %s", error.kind, error.message)
        with self._state_lock:
            if self._publish(token, alert=error):
                self._error_token = token

    def _publish_info(self, token: Optional[int], message: str) -> None:
        # Within one operation a success notice does not replace its own error.
        with self._state_lock:
            current = self._state.alert
            if current is not None and current.is_error and self._error_token == token:
                return
            self._publish(token, alert=Info(message))

    def _publish_visited(self, token: Optional[int] = None) -> None:
        self._publish(token, visited=self.store.visited.snapshot())

    @contextmanager
    def _operation(self) -> Iterator[int]:
        """Scope one load; nested entry points reuse the outer token."""
        depth = getattr(self._local, "depth", 0)
        if depth == 0:
            with self._state_lock:
                self._generation += 1
                self._local.token = self._generation
                self._in_flight += 1
                self._apply(is_loading=True)
        self._local.depth = depth + 1
        try:
            yield self._local.token
        finally:
            self._local.depth = depth
            if depth == 0:
                with self._state_lock:
                    self._in_flight -= 1
                    self._apply(is_loading=self._in_flight > 0)

    # UI helpers ---------------------------------------------------------
    def set_query(self, text: str) -> None:
        self._apply(query=text)

    def select_tab(self, index: int) -> None:
        self._apply(selected_tab=index)

    def dismiss_alert(self) -> None:
        with self._state_lock:
            self._error_token = None
            self._apply(alert=None)

    def focus(self, coordinate: Coordinate, zoom: Optional[float] = None) -> MapRegion:
        """Move the map without reloading anything."""
        region = MapRegion.around(coordinate, zoom if zoom is not None else self.map_zoom)
        self._apply(map_region=region)
        return region

    # Entry points -------------------------------------------------------
    def startup(self) -> None:
        """Restore saved places and load the most recent one, or the default."""
        self.store.bootstrap_if_empty()
        visited = self.store.load_all()
        self._publish_visited()
        most_recent = visited.first
        if most_recent is None:
            self.load_default()
        else:
            self.load_from_place(most_recent)

    def submit_query(self, text: Optional[str] = None) -> None:
        raw = self._state.query if text is None else text
        city = raw.strip()
        with self._operation() as token:
            try:
                if not city:
                    self._publish_info(token, "No location entered — loading default location")
                    self.load_default()
                else:
                    self.load_by_name(city)
            except WeatherMapError as exc:
                self._publish_error(token, exc)
            except Exception as exc:
                logger.exception("Unexpected failure while searching for %r", city)
                self._publish_error(token, NetworkError(exc))
            finally:
                self._apply(query="")

    def load_default(self) -> None:
        """Load the hardcoded fallback place; never consults the geocoder."""
        with self._operation() as token:
            self._publish(token, selected_tab=PRIMARY_TAB)
            existing = self.store.find_by_name(self.default_place_name)
            if existing is not None:
                self.load_from_place(existing)
                return
            try:
                self.load_by_coordinates(
                    self.default_coordinate.latitude,
                    self.default_coordinate.longitude,
                    self.default_place_name,
                )
            except WeatherMapError as exc:
                self._publish_error(token, exc)
            except Exception as exc:
                logger.exception("Unexpected failure loading the default place")
                self._publish_error(token, NetworkError(exc))

    def load_by_name(self, name: str) -> None:
        """Load a visited place by name, or resolve and create it.

        Any failure is published and followed by the default place.
        """
        cleaned = name.strip()
        with self._operation() as token:
            existing = self.store.find_by_name(cleaned)
            if existing is not None:
                self.load_from_place(existing)
                return
            try:
                resolved = self.resolver.resolve(cleaned)
                self.load_by_coordinates(resolved.latitude, resolved.longitude, resolved.name)
            except WeatherMapError as exc:
                self._publish_error(token, exc)
            except Exception as exc:
                logger.exception("Unexpected failure loading %r", cleaned)
                self._publish_error(token, NetworkError(exc))
            else:
                return
            self._publish(token, selected_tab=PRIMARY_TAB)
            self.load_default()

    def load_by_coordinates(self, lat: float, lon: float, name: str) -> Optional[Place]:
        """Create, persist and publish a new place. Errors propagate."""
        with self._operation() as token:
            existing = self.store.find_by_name(name)
            if existing is not None:
                self.load_from_place(existing)
                return existing

            coordinate = Coordinate(lat, lon)
            if not coordinate.is_valid:
                raise MissingData(f"coordinates out of range: {lat}, {lon}")

            weather = self.weather_client.fetch_weather(lat, lon)
            found = self.poi_discovery.discover(lat, lon)

            place = Place(name=name, latitude=lat, longitude=lon)
            place.attach(found)
            self.store.mark_used(place)

            self._publish_loaded(token, place, weather)
            self._publish_info(token, f"Saved location: {place.name}")
            logger.info("Saved new place %s with %d POIs", place.name, len(found))
            return place

    def load_from_place(self, place: Place) -> None:
        """Refresh weather for a saved place; failures are reported, not recovered."""
        with self._operation() as token:
            try:
                weather = self.weather_client.fetch_weather(place.latitude, place.longitude)
                if not place.points_of_interest:
                    found = self.poi_discovery.discover(place.latitude, place.longitude)
                    self.store.add_points_of_interest(place, found)
                self.store.mark_used(place, require_visited=True)
            except NetworkError as exc:
                self._publish_error(token, exc)
                return
            except Exception as exc:
                logger.warning("Reload of %s failed: %s", place.name, exc)
                self._publish_error(token, NetworkError(exc))
                return
            self._publish_loaded(token, place, weather)

    def delete(self, place: Place) -> bool:
        deleted = self.store.delete(place)
        self._publish_visited()
        return deleted

    def _publish_loaded(self, token: int, place: Place, weather: WeatherSnapshot) -> None:
        self._publish(
            token,
            current=weather.current,
            forecast=weather.forecast,
            pois=tuple(place.points_of_interest),
            active_place_name=place.name,
            map_region=MapRegion.around(place.coordinate, self.map_zoom),
            visited=self.store.visited.snapshot(),
            selected_tab=PRIMARY_TAB,
        )


_default_orchestrator: Optional[DashboardOrchestrator] = None
_default_lock = threading.Lock()


def get_default_orchestrator() -> DashboardOrchestrator:
    global _default_orchestrator
    with _default_lock:
        if _default_orchestrator is None:
            _default_orchestrator = DashboardOrchestrator(
                weather_client=get_default_weather_client(),
                resolver=get_default_place_resolver(),
                poi_discovery=PoiDiscovery(),
                store=PlaceStore(),
            )
        return _default_orchestrator
