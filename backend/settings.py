import os
from pathlib import Path

# Basic settings helper to read environment configuration.

BACKEND_ROOT = Path(__file__).resolve().parent
DATA_DIR = BACKEND_ROOT / "data"


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_int(val: str | None, default: int) -> int:
    if val is None or not val.strip():
        return default
    return int(val)


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    return float(val)


class Settings:
    def __init__(self) -> None:
        # Weather provider (OpenWeather One Call 3.0)
        self.OPENWEATHER_API_KEY: str | None = os.getenv("OPENWEATHER_API_KEY")
        self.OPENWEATHER_BASE_URL: str = os.getenv(
            "OPENWEATHER_BASE_URL", "https://api.openweathermap.org/data/3.0/onecall"
        )
        self.WEATHER_TIMEOUT_SECONDS: float = _as_float(os.getenv("WEATHER_TIMEOUT_SECONDS"), 15.0)
        self.WEATHER_MAX_RETRIES: int = _as_int(os.getenv("WEATHER_MAX_RETRIES"), 2)
        self.WEATHER_UNITS: str = os.getenv("WEATHER_UNITS", "metric")
        self.WEATHER_EXCLUDE: str = os.getenv("WEATHER_EXCLUDE", "minutely,hourly,alerts")

        # Fallback location, loaded without geocoding
        self.DEFAULT_PLACE_NAME: str = os.getenv("DEFAULT_PLACE_NAME", "London")
        self.DEFAULT_PLACE_LAT: float = _as_float(os.getenv("DEFAULT_PLACE_LAT"), 51.5073509)
        self.DEFAULT_PLACE_LON: float = _as_float(os.getenv("DEFAULT_PLACE_LON"), -0.1277583)

        # Nearby points of interest
        self.POI_RADIUS_M: float = _as_float(os.getenv("POI_RADIUS_M"), 2000.0)
        self.POI_LIMIT: int = _as_int(os.getenv("POI_LIMIT"), 5)
        self.POI_QUERY: str = os.getenv("POI_QUERY", "tourist attraction")
        self.POI_CANDIDATE_LIMIT: int = _as_int(os.getenv("POI_CANDIDATE_LIMIT"), 20)

        self.MAP_ZOOM: float = _as_float(os.getenv("MAP_ZOOM"), 0.02)

        self.WEATHER_DATABASE_URL: str = os.getenv(
            "WEATHER_DATABASE_URL", f"sqlite:///{DATA_DIR / 'weather_places.db'}"
        )
        self.APP_STORAGE_PATH: str = os.getenv(
            "APP_STORAGE_PATH", str(DATA_DIR / "app_storage.sqlite")
        )
        self.LOG_REQUESTS: bool = _as_bool(os.getenv("LOG_REQUESTS"), False)


settings = Settings()
