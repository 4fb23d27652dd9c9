from unittest.mock import MagicMock

import pytest
import requests

from domain.errors import DecodingError, InvalidResponse, NetworkError
from services import places_client as pc
from services.places_client import PlaceResult, PlacesClient, bounding_viewbox

from services.poi_discovery import PoiDiscovery, dedupe_by_name


def _result(name, lat=51.5, lon=-0.12):
    return PlaceResult(provider="osm", place_id=name, name=name, lat=lat, lon=lon)


class DummyResponse:
    def __init__(self, json_data, status_code=200):
        self._json = json_data
        self.status_code = status_code

    def json(self):
        return self._json


def test_dedupe_keeps_first_occurrence_of_normalized_name():
    results = [
        _result("Tower Bridge", lat=1.0),
        _result("  tower bridge ", lat=2.0),
        _result("British Museum"),
        _result("TOWER BRIDGE", lat=3.0),
        _result("Big Ben"),
    ]

    pois = dedupe_by_name(results, limit=5)

    assert [p.name for p in pois] == ["Tower Bridge", "British Museum", "Big Ben"]
    assert pois[0].latitude == 1.0
    assert all(p.place_id is None for p in pois)


def test_dedupe_truncates_after_dedup():
    results = [_result("A"), _result("a"), _result("B"), _result("C"), _result("D")]

    pois = dedupe_by_name(results, limit=2)

    assert [p.name for p in pois] == ["A", "B"]


def test_dedupe_skips_unnamed_and_handles_short_results():
    pois = dedupe_by_name([_result(""), _result("   "), _result("Only One")], limit=5)

    assert [p.name for p in pois] == ["Only One"]


def test_discover_uses_fixed_radius_and_category():
    client = MagicMock()
    client.search_nearby.return_value = [_result("A"), _result("B")]
    discovery = PoiDiscovery(client=client, radius_m=2000.0, query="tourist attraction")

    pois = discovery.discover(51.5, -0.12, limit=5)

    assert [p.name for p in pois] == ["A", "B"]
    args, kwargs = client.search_nearby.call_args
    assert args == (51.5, -0.12)
    assert kwargs["radius_m"] == 2000.0
    assert kwargs["kind"] == "tourist attraction"
    assert kwargs["max_results"] >= 5


def test_search_nearby_keeps_provider_order(monkeypatch):
    captured = {}

    def fake_get(url, params=None, headers=None, timeout=None):
        captured["url"] = url
        captured["params"] = params
        return DummyResponse(
            [
                {"place_id": 2, "name": "Zoo", "lat": "51.53", "lon": "-0.15", "category": "tourism", "type": "zoo"},
                {"place_id": 1, "name": "Aquarium", "lat": "51.50", "lon": "-0.12"},
                {"place_id": 3, "name": "Broken", "lat": "x", "lon": "y"},
            ]
        )

    monkeypatch.setattr(pc, "_throttled_get", fake_get)

    results = PlacesClient(base_url="https://nominatim.example.org").search_nearby(
        51.5, -0.12, radius_m=2000.0, kind="tourist attraction", max_results=20
    )

    assert [r.name for r in results] == ["Zoo", "Aquarium"]
    assert results[0].types == ["tourism", "zoo"]
    assert captured["url"] == "https://nominatim.example.org/search"
    assert captured["params"]["bounded"] == "1"
    assert captured["params"]["q"] == "tourist attraction"


def test_search_nearby_maps_failures(monkeypatch):
    client = PlacesClient()

    def offline(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(pc, "_throttled_get", offline)
    with pytest.raises(NetworkError):
        client.search_nearby(51.5, -0.12, radius_m=2000.0)

    monkeypatch.setattr(pc, "_throttled_get", lambda *a, **k: DummyResponse([], status_code=502))
    with pytest.raises(InvalidResponse):
        client.search_nearby(51.5, -0.12, radius_m=2000.0)

    monkeypatch.setattr(pc, "_throttled_get", lambda *a, **k: DummyResponse({"error": "nope"}))
    with pytest.raises(DecodingError):
        client.search_nearby(51.5, -0.12, radius_m=2000.0)


def test_bounding_viewbox_contains_center():
    left, top, right, bottom = (float(v) for v in bounding_viewbox(51.5, -0.12, 2000.0).split(","))

    assert left < -0.12 < right
    assert bottom < 51.5 < top
    assert top - bottom == pytest.approx(2 * 2000.0 / 111_320.0, rel=1e-3)
