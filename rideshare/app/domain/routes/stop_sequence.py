"""
Stop sequence helpers for route templates.

Route stops have been persisted under two field names over time
(`stops`, and the older `stoppages`). resolve_stops is the only place that
knows about both; everything downstream works on StopPoint / SequenceStop.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from rideshare.app.domain.routes.geo import haversine_km

START_STOP_ID = "start"
END_STOP_ID = "end"


@dataclass(frozen=True)
class StopPoint:
    """Canonical intermediate stop."""
    name: str
    lat: float
    lng: float
    order: int


@dataclass(frozen=True)
class SequenceStop:
    """A point of the full [start, ...stops, end] sequence."""
    index: int
    id: str
    kind: str  # start | stop | end
    name: str
    lat: float
    lng: float
    order: Optional[int] = None


def _field(entry: Any, *names: str) -> Any:
    for name in names:
        value = entry.get(name) if isinstance(entry, dict) else getattr(entry, name, None)
        if value is not None:
            return value
    return None


def _normalize_stop(entry: Any, position: int) -> StopPoint:
    lat = _field(entry, "lat", "latitude")
    lng = _field(entry, "lng", "longitude")
    if lat is None or lng is None:
        raise ValueError(f"Route stop at position {position} has no coordinates")
    order = _field(entry, "order")
    name = _field(entry, "name", "address") or f"Stop {position + 1}"
    return StopPoint(
        name=str(name),
        lat=float(lat),
        lng=float(lng),
        order=int(order) if order is not None else position,
    )


def resolve_stops(route: Any) -> List[StopPoint]:
    """
    Intermediate stops of a route in canonical shape.
    
    Uses `route.stops` when present and non-empty, otherwise the legacy
    `route.stoppages`, otherwise no stops. Entries keep their stored order;
    full_stop_sequence sorts them.
    """
    raw = getattr(route, "stops", None) or getattr(route, "stoppages", None) or []
    return [_normalize_stop(entry, position) for position, entry in enumerate(raw)]


def total_stop_count(route: Any) -> int:
    """Start + intermediate stops + end."""
    return len(resolve_stops(route)) + 2


def full_stop_sequence(route: Any) -> List[SequenceStop]:
    """
    The visiting sequence: start point, stops sorted by `order`, end point.
    
    Sequence position is the stop index used by assignment progress and
    names intermediate stops ("stop-<index>"), so ids stay unique even when
    stored orders repeat or are missing.
    """
    stops = sorted(
        enumerate(resolve_stops(route)),
        key=lambda pair: (pair[1].order, pair[0])
    )
    
    sequence = [SequenceStop(
        index=0,
        id=START_STOP_ID,
        kind="start",
        name=route.start_name,
        lat=route.start_lat,
        lng=route.start_lng,
    )]
    for _, stop in stops:
        sequence.append(SequenceStop(
            index=len(sequence),
            id=f"stop-{len(sequence)}",
            kind="stop",
            name=stop.name,
            lat=stop.lat,
            lng=stop.lng,
            order=stop.order,
        ))
    sequence.append(SequenceStop(
        index=len(sequence),
        id=END_STOP_ID,
        kind="end",
        name=route.end_name,
        lat=route.end_lat,
        lng=route.end_lng,
    ))
    return sequence


def stop_at(sequence: Sequence[SequenceStop], stop_index: int) -> Optional[SequenceStop]:
    """Stop at a sequence position, or None once the route is finished."""
    if 0 <= stop_index < len(sequence):
        return sequence[stop_index]
    return None


def find_stop(sequence: Sequence[SequenceStop], identifier: str) -> SequenceStop:
    """
    Look a stop up by id ("start", "stop-2", "end") or, failing that, by name.
    
    Raises:
        ValueError: if nothing on the route matches
    """
    key = str(identifier).strip()
    for stop in sequence:
        if stop.id == key:
            return stop
    folded = key.casefold()
    for stop in sequence:
        if stop.name.casefold() == folded:
            return stop
    raise ValueError(f"Stop '{identifier}' is not on this route")


def path_distance_km(sequence: Sequence[SequenceStop], from_index: int, to_index: int) -> float:
    """Sum of straight-line legs between two sequence positions."""
    if from_index > to_index:
        from_index, to_index = to_index, from_index
    total = 0.0
    for i in range(from_index, to_index):
        a, b = sequence[i], sequence[i + 1]
        total += haversine_km(a.lat, a.lng, b.lat, b.lng)
    return total
