"""
geo.py — Great-circle distance and priority weighting.

Shared by the duplicate detector, the density grid and the clusterer.

USAGE
─────
    from campus_incidents.models.incident import Coordinate
    from campus_incidents.services.geo import haversine_distance

    hostel_a = Coordinate(lat=28.5355, lng=77.2707)
    hostel_b = Coordinate(lat=28.5356, lng=77.2708)
    haversine_distance(hostel_a, hostel_b)   # → ~14.9 metres
"""

from __future__ import annotations

import math
from typing import Iterable

from campus_incidents.models.incident import Coordinate, IncidentSnapshot, WeightedPoint

EARTH_RADIUS_METERS = 6_371_000.0

# Heat contributed by one incident of each priority
_PRIORITY_WEIGHTS = {"critical": 4.0, "high": 3.0, "medium": 2.0, "low": 1.0}
_DEFAULT_WEIGHT = 1.0


def distance_between(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance in metres between two points given in degrees."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_METERS * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    return distance_between(a.lat, a.lng, b.lat, b.lng)


def priority_weight(priority: str | None) -> float:
    """Map a priority label to its heat weight; unknown labels weigh 1."""
    return _PRIORITY_WEIGHTS.get(priority or "", _DEFAULT_WEIGHT)


def to_weighted_point(incident: IncidentSnapshot) -> WeightedPoint:
    return WeightedPoint(coordinate=incident.coordinate, weight=priority_weight(incident.priority))


def to_weighted_points(incidents: Iterable[IncidentSnapshot]) -> list[WeightedPoint]:
    return [to_weighted_point(i) for i in incidents]
