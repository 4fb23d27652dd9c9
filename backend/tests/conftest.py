import os
import sys
from pathlib import Path

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

# Keep tests off the real database, the Nominatim rate limit and its UA warning.
os.environ.setdefault("WEATHER_DATABASE_URL", "sqlite://")
os.environ.setdefault("NOMINATIM_MIN_INTERVAL", "0")
os.environ.setdefault("NOMINATIM_USER_AGENT", "weather-places-tests/0.1")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db import init_db
from domain.errors import GeocodingFailed
from domain.models import PointOfInterest, ResolvedPlace
from services.place_store import PlaceStore
from services.weather_client import decode_weather
from storage.app_storage import AppStorage


def make_onecall_payload(lat=51.5, lon=-0.12, temp=14.2, days=3):
    """Minimal One Call 3.0 response body."""
    base = 1_760_000_000
    return {
        "lat": lat,
        "lon": lon,
        "timezone": "Europe/London",
        "current": {
            "dt": base,
            "sunrise": base - 20_000,
            "sunset": base + 20_000,
            "temp": temp,
            "feels_like": temp - 1,
            "pressure": 1012,
            "humidity": 71,
            "wind_speed": 3.6,
            "weather": [{"id": 803, "main": "Clouds", "description": "broken clouds", "icon": "04d"}],
        },
        "daily": [
            {
                "dt": base + 86_400 * i,
                "temp": {"min": 8.0 + i, "max": 15.0 + i, "day": 12.0},
                "weather": [{"id": 500, "main": "Rain", "description": "light rain", "icon": "10d"}],
            }
            for i in range(days)
        ],
    }


class FakeWeatherClient:
    def __init__(self):
        self.calls = []
        self.error = None

    def fetch_weather(self, lat, lon, exclude=None, units=None, max_retries=None):
        self.calls.append((lat, lon))
        if self.error is not None:
            raise self.error
        return decode_weather(make_onecall_payload(lat=lat, lon=lon))


class FakeResolver:
    def __init__(self, places=None):
        self.places = dict(places or {})
        self.calls = []

    def resolve(self, query):
        self.calls.append(query)
        found = self.places.get(query.lower())
        if found is None:
            raise GeocodingFailed(query)
        return found


class FakePoiDiscovery:
    def __init__(self, names=("British Museum", "Tower Bridge")):
        self.names = list(names)
        self.calls = []
        self.error = None

    def discover(self, lat, lon, limit=None):
        self.calls.append((lat, lon))
        if self.error is not None:
            raise self.error
        return [
            PointOfInterest(name=name, latitude=lat + 0.001 * i, longitude=lon)
            for i, name in enumerate(self.names)
        ]


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture
def app_storage(tmp_path):
    return AppStorage(str(tmp_path / "app_storage.sqlite"))


@pytest.fixture
def place_store(session_factory, app_storage):
    return PlaceStore(session_factory=session_factory, storage=app_storage)


@pytest.fixture
def weather_client():
    return FakeWeatherClient()


@pytest.fixture
def resolver():
    return FakeResolver(
        {
            "paris": ResolvedPlace("Paris", 48.8566, 2.3522),
            "berlin": ResolvedPlace("Berlin", 52.52, 13.405),
            "rome": ResolvedPlace("Rome", 41.9028, 12.4964),
        }
    )


@pytest.fixture
def poi_discovery():
    return FakePoiDiscovery()


@pytest.fixture
def onecall_payload():
    return make_onecall_payload
