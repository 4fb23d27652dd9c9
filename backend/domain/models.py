"""
Core domain models for the weather places dashboard.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional, Tuple
import uuid

from domain.errors import Notice


PRIMARY_TAB = 0
DEFAULT_ZOOM = 0.02


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what SQLite round-trips."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


def normalize_name(name: str) -> str:
    """Key used for case-insensitive name comparison."""
    return name.strip().lower()


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    @property
    def is_valid(self) -> bool:
        return -90.0 <= self.latitude <= 90.0 and -180.0 <= self.longitude <= 180.0


@dataclass(frozen=True)
class MapRegion:
    """Map focus: a center plus the visible span in degrees."""
    center: Coordinate
    latitude_delta: float = DEFAULT_ZOOM
    longitude_delta: float = DEFAULT_ZOOM

    @classmethod
    def around(cls, coordinate: Coordinate, zoom: float = DEFAULT_ZOOM) -> "MapRegion":
        return cls(center=coordinate, latitude_delta=zoom, longitude_delta=zoom)


@dataclass
class PointOfInterest:
    """
    A named attraction near a Place.

    `place_id` is a non-owning back-reference set once the POI is persisted
    under its Place; it is used for cascade bookkeeping only.
    """
    name: str
    latitude: float
    longitude: float
    id: str = field(default_factory=new_id)
    place_id: Optional[str] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


@dataclass
class Place:
    """
    A searched or saved location.

    Owns an ordered list of points of interest. `last_used_at` moves forward
    every time the place is loaded.
    """
    name: str
    latitude: float
    longitude: float
    id: str = field(default_factory=new_id)
    last_used_at: datetime = field(default_factory=utcnow)
    points_of_interest: List[PointOfInterest] = field(default_factory=list)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    @property
    def name_key(self) -> str:
        return normalize_name(self.name)

    def attach(self, pois: List[PointOfInterest]) -> None:
        """Append POIs to this place, taking ownership of them."""
        for poi in pois:
            poi.place_id = self.id
            self.points_of_interest.append(poi)


class VisitedList:
    """
    Recency-ordered places, most recent first.

    Holds at most one entry per place id. Reordering removes and reinserts
    at the front so ties keep most-recent-operation order.
    """

    def __init__(self, places: Optional[List[Place]] = None) -> None:
        self._places: List[Place] = []
        for place in places or []:
            if self.find_by_id(place.id) is None:
                self._places.append(place)

    def __iter__(self) -> Iterator[Place]:
        return iter(list(self._places))

    def __len__(self) -> int:
        return len(self._places)

    def __bool__(self) -> bool:
        return bool(self._places)

    @property
    def first(self) -> Optional[Place]:
        return self._places[0] if self._places else None

    def find_by_id(self, place_id: str) -> Optional[Place]:
        for place in self._places:
            if place.id == place_id:
                return place
        return None

    def find_by_name(self, name: str) -> Optional[Place]:
        key = normalize_name(name)
        for place in self._places:
            if place.name_key == key:
                return place
        return None

    def remove(self, place: Place) -> bool:
        before = len(self._places)
        self._places = [p for p in self._places if p.id != place.id]
        return len(self._places) != before

    def move_to_front(self, place: Place) -> None:
        self.remove(place)
        self._places.insert(0, place)

    def replace_all(self, places: List[Place]) -> None:
        self._places = []
        for place in places:
            if self.find_by_id(place.id) is None:
                self._places.append(place)

    def newest_timestamp(self) -> Optional[datetime]:
        stamps = [p.last_used_at for p in self._places if p.last_used_at]
        return max(stamps) if stamps else None

    def snapshot(self) -> Tuple[Place, ...]:
        return tuple(self._places)


def next_timestamp(previous: Optional[datetime]) -> datetime:
    """Current time, nudged forward so it is strictly after `previous`."""
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


# ============================================
# Weather
# ============================================

@dataclass(frozen=True)
class WeatherCondition:
    id: int
    main: str
    description: str
    icon: Optional[str] = None


@dataclass(frozen=True)
class CurrentConditions:
    """Current conditions; temperatures follow the requested unit system."""
    observed_at: datetime
    temperature: float
    pressure: int
    humidity: int
    wind_speed: float
    sunrise: datetime
    sunset: datetime
    feels_like: Optional[float] = None
    conditions: Tuple[WeatherCondition, ...] = ()

    @property
    def summary(self) -> str:
        return self.conditions[0].main if self.conditions else "Unknown"


@dataclass(frozen=True)
class DailyForecast:
    date: datetime
    temperature_min: float
    temperature_max: float
    conditions: Tuple[WeatherCondition, ...] = ()

    @property
    def summary(self) -> str:
        return self.conditions[0].main if self.conditions else "Unknown"


@dataclass(frozen=True)
class WeatherSnapshot:
    latitude: float
    longitude: float
    current: CurrentConditions
    forecast: Tuple[DailyForecast, ...] = ()
    timezone: Optional[str] = None


@dataclass(frozen=True)
class ResolvedPlace:
    """Result of forward geocoding a free-text query."""
    name: str
    latitude: float
    longitude: float


# ============================================
# Published dashboard state
# ============================================

@dataclass(frozen=True)
class AppState:
    """
    Snapshot of everything the presentation layer renders.

    Replaced wholesale on each publish, so readers never observe a
    half-applied update.
    """
    query: str = ""
    current: Optional[CurrentConditions] = None
    forecast: Tuple[DailyForecast, ...] = ()
    pois: Tuple[PointOfInterest, ...] = ()
    map_region: Optional[MapRegion] = None
    visited: Tuple[Place, ...] = ()
    is_loading: bool = False
    alert: Optional[Notice] = None
    active_place_name: str = ""
    selected_tab: int = PRIMARY_TAB
