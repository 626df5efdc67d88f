"""
density_grid.py — Uniform lat/lng grid for heatmap tiles.

Each point falls in the bucket (floor(lat / size), floor(lng / size)).
A bucket's weight is the sum of its members' weights and its position is
the bucket center, not the members' centroid, so tiles line up across
requests.

Partial grids built over disjoint shards can be combined with
merge_density_grids(); the result equals a single build over all points.
"""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Iterable, Sequence

from campus_incidents.models.incident import GridCell, IncidentSnapshot, WeightedPoint
from campus_incidents.services.geo import to_weighted_points

DEFAULT_CELL_SIZE_DEGREES = 0.001   # ~100 m at the equator

CellKey = tuple[int, int]


def cell_key(lat: float, lng: float, cell_size_degrees: float) -> CellKey:
    return math.floor(lat / cell_size_degrees), math.floor(lng / cell_size_degrees)


def _make_cell(key: CellKey, weight: float, cell_size_degrees: float) -> GridCell:
    row, col = key
    return GridCell(
        lat=row * cell_size_degrees + cell_size_degrees / 2,
        lng=col * cell_size_degrees + cell_size_degrees / 2,
        weight=weight,
        row=row,
        col=col,
    )


def _check_cell_size(cell_size_degrees: float) -> None:
    if cell_size_degrees <= 0:
        raise ValueError(f"cell_size_degrees must be positive, got {cell_size_degrees}")


def build_density_grid(
    points: Sequence[WeightedPoint],
    cell_size_degrees: float = DEFAULT_CELL_SIZE_DEGREES,
) -> list[GridCell]:
    """
    Bucket weighted points into grid cells.

    Returns one GridCell per occupied bucket, ordered by (row, col). Weights
    are summed with math.fsum so the totals are the same for any input order.
    """
    _check_cell_size(cell_size_degrees)

    buckets: dict[CellKey, list[float]] = defaultdict(list)
    for point in points:
        key = cell_key(point.coordinate.lat, point.coordinate.lng, cell_size_degrees)
        buckets[key].append(point.weight)

    return [
        _make_cell(key, math.fsum(weights), cell_size_degrees)
        for key, weights in sorted(buckets.items())
    ]


def merge_density_grids(
    grids: Iterable[Sequence[GridCell]],
    cell_size_degrees: float = DEFAULT_CELL_SIZE_DEGREES,
) -> list[GridCell]:
    """Merge partial grids (same cell size) by bucket key, summing weights."""
    _check_cell_size(cell_size_degrees)

    buckets: dict[CellKey, list[float]] = defaultdict(list)
    for grid in grids:
        for cell in grid:
            buckets[(cell.row, cell.col)].append(cell.weight)

    return [
        _make_cell(key, math.fsum(weights), cell_size_degrees)
        for key, weights in sorted(buckets.items())
    ]


def incident_heatmap(
    incidents: Iterable[IncidentSnapshot],
    cell_size_degrees: float = DEFAULT_CELL_SIZE_DEGREES,
) -> list[GridCell]:
    """Heatmap for stored incidents, weighted by priority."""
    return build_density_grid(to_weighted_points(incidents), cell_size_degrees)
