"""
Tests for the dual-backend place store.
"""
import json

from domain.models import Place, PointOfInterest
from services.place_store import SNAPSHOT_KEY, decode_snapshot, encode_snapshot


def _place(name, lat=1.0, lon=2.0, pois=()):
    place = Place(name=name, latitude=lat, longitude=lon)
    place.attach([PointOfInterest(name=n, latitude=lat, longitude=lon) for n in pois])
    return place


def test_bootstrap_from_snapshot_into_empty_store(place_store, app_storage, session_factory):
    app_storage.set(SNAPSHOT_KEY, '[{"name":"Paris","latitude":48.8566,"longitude":2.3522}]')

    restored = place_store.bootstrap_if_empty()
    visited = place_store.load_all()

    assert restored == 1
    assert [p.name for p in visited] == ["Paris"]
    assert visited.first.points_of_interest == []
    with session_factory() as session:
        assert place_store.repo.count_places(session) == 1


def test_bootstrap_preserves_snapshot_order_and_dedupes(place_store, app_storage):
    app_storage.set(
        SNAPSHOT_KEY,
        json.dumps(
            [
                {"name": "Rome", "latitude": 41.9, "longitude": 12.5},
                {"name": "Paris", "latitude": 48.8, "longitude": 2.3},
                {"name": "rome", "latitude": 41.9, "longitude": 12.5},
            ]
        ),
    )

    place_store.bootstrap_if_empty()

    assert [p.name for p in place_store.load_all()] == ["Rome", "Paris"]


def test_bootstrap_skipped_when_store_has_places(place_store, app_storage):
    place_store.upsert(_place("Berlin"))
    app_storage.set(SNAPSHOT_KEY, '[{"name":"Paris","latitude":48.8566,"longitude":2.3522}]')

    assert place_store.bootstrap_if_empty() == 0
    assert [p.name for p in place_store.load_all()] == ["Berlin"]


def test_malformed_snapshot_is_treated_as_empty(place_store, app_storage):
    for raw in ["not json", '{"name": "Paris"}', '[{"name": "Paris"}]', '[{"name": 1, "latitude": 1, "longitude": 2}]']:
        app_storage.set(SNAPSHOT_KEY, raw)
        assert place_store.bootstrap_if_empty() == 0
    assert len(place_store.load_all()) == 0


def test_absent_snapshot_is_treated_as_empty(place_store):
    assert place_store.bootstrap_if_empty() == 0


def test_upsert_persists_place_with_pois_and_syncs_snapshot(place_store, session_factory):
    place = _place("London", 51.5, -0.12, pois=["Tower Bridge", "British Museum"])

    place_store.upsert(place)

    with session_factory() as session:
        stored = place_store.repo.get_place(session, place.id)
    assert [p.name for p in stored.points_of_interest] == ["Tower Bridge", "British Museum"]
    assert all(p.place_id == place.id for p in stored.points_of_interest)
    assert place_store.read_snapshot() == [{"name": "London", "latitude": 51.5, "longitude": -0.12}]


def test_mark_used_moves_place_to_front_in_memory_and_store(place_store):
    a = place_store.upsert(_place("A"))
    place_store.upsert(_place("B"))

    place_store.mark_used(a)

    assert [p.name for p in place_store.visited] == ["A", "B"]
    assert [p.name for p in place_store.load_all()] == ["A", "B"]
    assert [e["name"] for e in place_store.read_snapshot()] == ["A", "B"]


def test_add_points_of_interest_appends_to_existing_place(place_store, session_factory):
    place = place_store.upsert(_place("Paris"))

    place_store.add_points_of_interest(place, [PointOfInterest(name="Louvre", latitude=48.86, longitude=2.33)])

    assert [p.name for p in place.points_of_interest] == ["Louvre"]
    with session_factory() as session:
        assert place_store.repo.count_points_of_interest(session, place.id) == 1


def test_delete_cascades_and_updates_snapshot(place_store, session_factory):
    keep = place_store.upsert(_place("Keep"))
    gone = place_store.upsert(_place("Gone", pois=["Museum", "Park"]))

    assert place_store.delete(gone) is True

    with session_factory() as session:
        assert place_store.repo.get_place(session, gone.id) is None
        assert place_store.repo.count_points_of_interest(session) == 0
    assert place_store.find_by_id(gone.id) is None
    assert [e["name"] for e in place_store.read_snapshot()] == ["Keep"]
    assert place_store.find_by_name("keep") is keep


def test_snapshot_roundtrip_is_compact():
    raw = encode_snapshot([_place("Oslo", 59.91, 10.75)])

    assert raw == '[{"name":"Oslo","latitude":59.91,"longitude":10.75}]'
    assert decode_snapshot(raw) == [{"name": "Oslo", "latitude": 59.91, "longitude": 10.75}]


def test_mark_used_does_not_restore_deleted_place(place_store, session_factory):
    place = place_store.upsert(_place("Gone", pois=["Museum"]))
    place_store.delete(place)

    assert place_store.mark_used(place, require_visited=True) is None
    place_store.add_points_of_interest(place, [PointOfInterest(name="Park", latitude=1.0, longitude=2.0)])

    assert len(place_store.load_all()) == 0
    assert place_store.read_snapshot() == []
    with session_factory() as session:
        assert place_store.repo.count_points_of_interest(session) == 0
