"""
clusterer.py — Greedy proximity clustering for map markers.

Single pass in input order. Each unclaimed point seeds a cluster and claims
every other unclaimed point within radius_meters of the SEED's coordinate.
The centroid is the plain mean of the members, built once the cluster closes.

Membership is tested against the seed, not the moving centroid, so two
members of one cluster can be up to 2 × radius apart, and a point in range
of two seeds goes to whichever seed comes first. Results depend on input
order; callers that need stable output sort first (routes/map.py sorts by id).
"""

from __future__ import annotations

from typing import Sequence

from campus_incidents.models.incident import Cluster, Coordinate, WeightedPoint
from campus_incidents.services.geo import haversine_distance

DEFAULT_CLUSTER_RADIUS_METERS = 100.0


def cluster_points(
    points: Sequence[WeightedPoint],
    radius_meters: float = DEFAULT_CLUSTER_RADIUS_METERS,
) -> list[Cluster]:
    """Group points into seed-anchored clusters. Every point lands in exactly one."""
    if radius_meters < 0:
        raise ValueError(f"radius_meters must not be negative, got {radius_meters}")

    used = [False] * len(points)
    clusters: list[Cluster] = []

    for i, seed in enumerate(points):
        if used[i]:
            continue
        used[i] = True

        count = 1
        lat_sum, lng_sum = seed.coordinate.lat, seed.coordinate.lng
        total_weight = seed.weight

        for j in range(len(points)):
            if used[j]:
                continue
            other = points[j]
            if haversine_distance(seed.coordinate, other.coordinate) <= radius_meters:
                used[j] = True
                count += 1
                lat_sum += other.coordinate.lat
                lng_sum += other.coordinate.lng
                total_weight += other.weight

        centroid = Coordinate(lat=lat_sum / count, lng=lng_sum / count)
        clusters.append(Cluster(centroid=centroid, member_count=count, total_weight=total_weight))

    return clusters
