"""
Dashboard API routes.

Exposes the published dashboard state and the orchestration entry points.
Failures during a load are part of the published state (`alert`), so these
routes return 200 after a load whether or not it succeeded.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from domain.models import (
    AppState,
    Coordinate,
    CurrentConditions,
    DailyForecast,
    MapRegion,
    Place,
    PointOfInterest,
)
from services.dashboard import get_default_orchestrator

router = APIRouter()
logger = logging.getLogger(__name__)


class PointOfInterestResponse(BaseModel):
    id: str
    name: str
    latitude: float
    longitude: float


class PlaceResponse(BaseModel):
    id: str
    name: str
    latitude: float
    longitude: float
    last_used_at: str
    poi_count: int


class CurrentResponse(BaseModel):
    observed_at: str
    temperature: float
    feels_like: Optional[float] = None
    pressure: int
    humidity: int
    wind_speed: float
    sunrise: str
    sunset: str
    summary: str
    description: Optional[str] = None


class ForecastDayResponse(BaseModel):
    date: str
    temperature_min: float
    temperature_max: float
    summary: str


class MapRegionResponse(BaseModel):
    latitude: float
    longitude: float
    latitude_delta: float
    longitude_delta: float


class AlertResponse(BaseModel):
    kind: str
    message: str
    is_error: bool


class StateResponse(BaseModel):
    query: str
    active_place_name: str
    is_loading: bool
    selected_tab: int
    current: Optional[CurrentResponse] = None
    forecast: List[ForecastDayResponse]
    pois: List[PointOfInterestResponse]
    map_region: Optional[MapRegionResponse] = None
    visited: List[PlaceResponse]
    alert: Optional[AlertResponse] = None


class SearchRequest(BaseModel):
    query: str = ""


class FocusRequest(BaseModel):
    latitude: float
    longitude: float
    zoom: Optional[float] = None


class TabRequest(BaseModel):
    index: int


def poi_to_response(poi: PointOfInterest) -> PointOfInterestResponse:
    return PointOfInterestResponse(
        id=poi.id, name=poi.name, latitude=poi.latitude, longitude=poi.longitude
    )


def place_to_response(place: Place) -> PlaceResponse:
    return PlaceResponse(
        id=place.id,
        name=place.name,
        latitude=place.latitude,
        longitude=place.longitude,
        last_used_at=place.last_used_at.isoformat(),
        poi_count=len(place.points_of_interest),
    )


def _current_to_response(current: CurrentConditions) -> CurrentResponse:
    return CurrentResponse(
        observed_at=current.observed_at.isoformat(),
        temperature=current.temperature,
        feels_like=current.feels_like,
        pressure=current.pressure,
        humidity=current.humidity,
        wind_speed=current.wind_speed,
        sunrise=current.sunrise.isoformat(),
        sunset=current.sunset.isoformat(),
        summary=current.summary,
        description=current.conditions[0].description if current.conditions else None,
    )


def _forecast_to_response(day: DailyForecast) -> ForecastDayResponse:
    return ForecastDayResponse(
        date=day.date.date().isoformat(),
        temperature_min=day.temperature_min,
        temperature_max=day.temperature_max,
        summary=day.summary,
    )


def _region_to_response(region: MapRegion) -> MapRegionResponse:
    return MapRegionResponse(
        latitude=region.center.latitude,
        longitude=region.center.longitude,
        latitude_delta=region.latitude_delta,
        longitude_delta=region.longitude_delta,
    )


def state_to_response(state: AppState) -> StateResponse:
    """Convert the published AppState to an API response."""
    alert = None
    if state.alert is not None:
        alert = AlertResponse(
            kind=state.alert.kind,
            message=state.alert.message,
            is_error=state.alert.is_error,
        )
    return StateResponse(
        query=state.query,
        active_place_name=state.active_place_name,
        is_loading=state.is_loading,
        selected_tab=state.selected_tab,
        current=_current_to_response(state.current) if state.current else None,
        forecast=[_forecast_to_response(d) for d in state.forecast],
        pois=[poi_to_response(p) for p in state.pois],
        map_region=_region_to_response(state.map_region) if state.map_region else None,
        visited=[place_to_response(p) for p in state.visited],
        alert=alert,
    )


def _get_visited_place(place_id: str) -> Place:
    place = get_default_orchestrator().store.find_by_id(place_id)
    if place is None:
        raise HTTPException(status_code=404, detail="Place not found")
    return place


@router.get("/state", response_model=StateResponse)
def get_state():
    return state_to_response(get_default_orchestrator().state)


@router.post("/search", response_model=StateResponse)
def search(data: SearchRequest):
    """Search for a place by name; an empty query loads the default place."""
    orchestrator = get_default_orchestrator()
    orchestrator.submit_query(data.query)
    return state_to_response(orchestrator.state)


@router.post("/places/default", response_model=StateResponse)
def load_default_place():
    orchestrator = get_default_orchestrator()
    orchestrator.load_default()
    return state_to_response(orchestrator.state)


@router.get("/places", response_model=List[PlaceResponse])
def list_places():
    orchestrator = get_default_orchestrator()
    return [place_to_response(p) for p in orchestrator.store.visited]


@router.post("/places/{place_id}/load", response_model=StateResponse)
def load_place(place_id: str):
    place = _get_visited_place(place_id)
    orchestrator = get_default_orchestrator()
    orchestrator.load_from_place(place)
    return state_to_response(orchestrator.state)


@router.delete("/places/{place_id}")
def delete_place(place_id: str):
    place = _get_visited_place(place_id)
    get_default_orchestrator().delete(place)
    logger.info("Deleted place %s via API", place_id)
    return {"deleted": place_id}


@router.post("/focus", response_model=MapRegionResponse)
def focus(data: FocusRequest):
    coordinate = Coordinate(data.latitude, data.longitude)
    if not coordinate.is_valid:
        raise HTTPException(status_code=400, detail="Coordinates out of range")
    region = get_default_orchestrator().focus(coordinate, data.zoom)
    return _region_to_response(region)


@router.put("/tab", response_model=StateResponse)
def select_tab(data: TabRequest):
    orchestrator = get_default_orchestrator()
    orchestrator.select_tab(data.index)
    return state_to_response(orchestrator.state)


@router.delete("/alert", response_model=StateResponse)
def dismiss_alert():
    orchestrator = get_default_orchestrator()
    orchestrator.dismiss_alert()
    return state_to_response(orchestrator.state)
