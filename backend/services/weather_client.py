"""
OpenWeather One Call 3.0 client.

Wraps request construction, a fixed per-attempt timeout, retry with
exponential backoff for transient failures, and mapping of every failure
into the `WeatherMapError` taxonomy.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from urllib.parse import urlparse

import requests

from domain.errors import (
    DecodingError,
    InvalidResponse,
    InvalidURL,
    MissingData,
    NetworkError,
)
from domain.models import CurrentConditions, DailyForecast, WeatherCondition, WeatherSnapshot
from settings import settings

logger = logging.getLogger(__name__)


@dataclass
class RequestConfig:
    timeout: float = 15.0
    retries: int = 2
    backoff_base: float = 0.5


def backoff_delay(attempt: int, base: float = 0.5) -> float:
    """Delay before the retry following `attempt` (0-based)."""
    return base * (2 ** attempt)


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, InvalidResponse):
        return 500 <= exc.status_code <= 599
    return isinstance(exc, requests.RequestException)


class WeatherClient:
    """Fetches current conditions and the daily forecast for a coordinate."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.OPENWEATHER_API_KEY
        self.base_url = base_url or settings.OPENWEATHER_BASE_URL
        self.session = session or requests.Session()
        self.request_config = request_config or RequestConfig(
            timeout=settings.WEATHER_TIMEOUT_SECONDS,
            retries=settings.WEATHER_MAX_RETRIES,
        )
        self._sleep = sleep

    def fetch_weather(
        self,
        lat: float,
        lon: float,
        exclude: Optional[str] = None,
        units: Optional[str] = None,
        max_retries: Optional[int] = None,
    ) -> WeatherSnapshot:
        """Fetch weather, retrying 5xx responses and transport failures.

        4xx responses, bad URLs and undecodable payloads fail on the first
        attempt. When retries run out the last `InvalidResponse` is raised
        for server errors and a `NetworkError` wrapping the last cause for
        transport failures.
        """
        if not self.api_key:
            raise MissingData("OpenWeather API key is not configured")
        self._check_url(self.base_url)

        params = {
            "lat": lat,
            "lon": lon,
            "exclude": exclude if exclude is not None else settings.WEATHER_EXCLUDE,
            "units": units or settings.WEATHER_UNITS,
            "appid": self.api_key,
        }
        retries = self.request_config.retries if max_retries is None else max_retries
        max_attempts = max(1, retries + 1)

        attempt = 0
        while True:
            try:
                payload = self._request_once(params)
            except (InvalidResponse, requests.RequestException) as exc:
                if not _is_retryable(exc) or attempt >= max_attempts - 1:
                    if isinstance(exc, requests.RequestException):
                        raise NetworkError(exc) from exc
                    raise
                delay = backoff_delay(attempt, self.request_config.backoff_base)
                logger.warning(
                    "Weather fetch attempt %d/%d failed (%s); retrying in %.2fs",
                    attempt + 1,
                    max_attempts,
                    exc,
                    delay,
                )
                self._sleep(delay)
                attempt += 1
                continue
            return decode_weather(payload)

    def _check_url(self, url: str) -> None:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidURL(url)

    def _request_once(self, params: dict) -> Any:
        try:
            response = self.session.get(
                self.base_url,
                params=params,
                timeout=self.request_config.timeout,
            )
        except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema) as exc:
            raise InvalidURL(self.base_url) from exc

        if settings.LOG_REQUESTS:
            logger.info(
                "OpenWeather request",
                extra={"status": response.status_code, "body": response.text[:500]},
            )
        if not 200 <= response.status_code <= 299:
            logger.error("OpenWeather returned %s", response.status_code)
            raise InvalidResponse(response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise DecodingError(exc) from exc


# helpers ------------------------------------------------------------

def _parse_epoch(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _conditions(items: Any) -> tuple[WeatherCondition, ...]:
    result = []
    for item in items or []:
        result.append(
            WeatherCondition(
                id=int(item["id"]),
                main=str(item["main"]),
                description=str(item["description"]),
                icon=item.get("icon"),
            )
        )
    return tuple(result)


def _decode_current(data: dict) -> CurrentConditions:
    feels_like = data.get("feels_like")
    return CurrentConditions(
        observed_at=_parse_epoch(data["dt"]),
        temperature=float(data["temp"]),
        feels_like=float(feels_like) if feels_like is not None else None,
        pressure=int(data["pressure"]),
        humidity=int(data["humidity"]),
        wind_speed=float(data["wind_speed"]),
        sunrise=_parse_epoch(data["sunrise"]),
        sunset=_parse_epoch(data["sunset"]),
        conditions=_conditions(data.get("weather")),
    )


def _decode_daily(data: dict) -> DailyForecast:
    temp = data["temp"]
    return DailyForecast(
        date=_parse_epoch(data["dt"]),
        temperature_min=float(temp["min"]),
        temperature_max=float(temp["max"]),
        conditions=_conditions(data.get("weather")),
    )


def decode_weather(payload: Any) -> WeatherSnapshot:
    """Decode a One Call payload; any shape problem becomes `DecodingError`."""
    try:
        current = _decode_current(payload["current"])
        daily = [_decode_daily(item) for item in payload.get("daily") or []]
        daily.sort(key=lambda d: d.date)
        return WeatherSnapshot(
            latitude=float(payload["lat"]),
            longitude=float(payload["lon"]),
            timezone=payload.get("timezone"),
            current=current,
            forecast=tuple(daily),
        )
    except (KeyError, TypeError, ValueError, AttributeError, OverflowError, OSError) as exc:
        raise DecodingError(exc) from exc


_default_weather_client: Optional[WeatherClient] = None


def get_default_weather_client() -> WeatherClient:
    global _default_weather_client
    if _default_weather_client is None:
        _default_weather_client = WeatherClient()
    return _default_weather_client
