"""
Unit tests for route stop normalization and the visiting sequence.
"""

from types import SimpleNamespace

import pytest

from rideshare.app.domain.routes.geo import haversine_km
from rideshare.app.domain.routes.stop_sequence import (
    StopPoint, find_stop, full_stop_sequence, path_distance_km, resolve_stops,
    stop_at, total_stop_count
)


def make_route(stops=None, stoppages=None):
    return SimpleNamespace(
        start_name="Depot", start_lat=23.80, start_lng=90.40,
        end_name="Office", end_lat=23.82, end_lng=90.42,
        stops=stops, stoppages=stoppages,
    )


def test_resolve_prefers_stops_over_legacy():
    route = make_route(
        stops=[{"name": "A", "lat": 1.0, "lng": 2.0, "order": 0}],
        stoppages=[{"name": "Legacy", "lat": 3.0, "lng": 4.0}],
    )
    assert resolve_stops(route) == [StopPoint(name="A", lat=1.0, lng=2.0, order=0)]


def test_resolve_falls_back_to_legacy_stoppages():
    route = make_route(stops=[], stoppages=[
        {"name": "Old A", "latitude": 1.5, "longitude": 2.5},
        {"name": "Old B", "latitude": 3.5, "longitude": 4.5},
    ])
    stops = resolve_stops(route)
    assert [s.name for s in stops] == ["Old A", "Old B"]
    assert [s.order for s in stops] == [0, 1]
    assert stops[0].lat == 1.5


def test_resolve_without_any_stops():
    assert resolve_stops(make_route()) == []
    assert total_stop_count(make_route()) == 2


def test_resolve_rejects_stop_without_coordinates():
    with pytest.raises(ValueError):
        resolve_stops(make_route(stops=[{"name": "Nowhere"}]))


def test_full_sequence_sorts_by_order():
    route = make_route(stops=[
        {"name": "Market", "lat": 23.81, "lng": 90.41, "order": 2},
        {"name": "School", "lat": 23.805, "lng": 90.405, "order": 1},
    ])
    sequence = full_stop_sequence(route)
    
    assert [s.id for s in sequence] == ["start", "stop-1", "stop-2", "end"]
    assert [s.name for s in sequence] == ["Depot", "School", "Market", "Office"]
    assert [s.index for s in sequence] == [0, 1, 2, 3]
    assert sequence[0].kind == "start" and sequence[-1].kind == "end"


def test_stop_at_past_the_end_is_none():
    sequence = full_stop_sequence(make_route())
    assert stop_at(sequence, 1).id == "end"
    assert stop_at(sequence, 2) is None


def test_find_stop_by_id_or_name():
    sequence = full_stop_sequence(make_route(stops=[{"name": "School", "lat": 1, "lng": 1, "order": 1}]))
    assert find_stop(sequence, "stop-1").name == "School"
    assert find_stop(sequence, "school").id == "stop-1"
    assert find_stop(sequence, "end").name == "Office"
    with pytest.raises(ValueError):
        find_stop(sequence, "Airport")


def test_haversine_known_distance():
    # One degree of latitude is about 111.2 km
    assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.05)
    assert haversine_km(10, 10, 10, 10) == 0


def test_path_distance_sums_legs():
    route = make_route(stops=[{"name": "Mid", "lat": 23.81, "lng": 90.41, "order": 0}])
    sequence = full_stop_sequence(route)
    first = haversine_km(23.80, 90.40, 23.81, 90.41)
    second = haversine_km(23.81, 90.41, 23.82, 90.42)
    assert path_distance_km(sequence, 0, 2) == pytest.approx(first + second)
    assert path_distance_km(sequence, 2, 0) == pytest.approx(first + second)
    assert path_distance_km(sequence, 1, 1) == 0


def test_legacy_duplicate_orders_get_distinct_ids():
    route = make_route(stoppages=[
        {"name": "A", "latitude": 1, "longitude": 1, "order": 1},
        {"name": "B", "latitude": 2, "longitude": 2, "order": 1},
        {"name": "C", "latitude": 3, "longitude": 3},
    ])
    sequence = full_stop_sequence(route)
    assert [s.id for s in sequence] == ["start", "stop-1", "stop-2", "stop-3", "end"]
    assert [s.name for s in sequence[1:-1]] == ["A", "B", "C"]
    assert find_stop(sequence, "stop-2").name == "B"


def test_stop_ids_follow_position_not_stored_order():
    sequence = full_stop_sequence(make_route(stops=[
        {"name": "Park", "lat": 1, "lng": 1, "order": 5},
        {"name": "Mall", "lat": 2, "lng": 2, "order": 0},
    ]))
    assert [(s.id, s.name, s.order) for s in sequence[1:-1]] == [("stop-1", "Mall", 0), ("stop-2", "Park", 5)]
