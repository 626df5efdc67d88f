"""
map.py — Map view payload: markers, heatmap grid and clusters.

Routes:
  GET /api/v1/incidents/map — incidents with a location, plus
                              heatmap : priority-weighted density grid
                              clusters: proximity clusters for marker grouping

HOW THE DATA FLOWS
──────────────────
1. MongoIncidentStore.map_batch() loads incidents matching the filters
   (category, status, date range, reporter), newest first, capped at
   settings.map_max_incidents.
2. Each incident becomes a WeightedPoint (critical=4 … low=1).
3. build_density_grid() buckets the points into cell_size° cells.
4. cluster_points() groups points within radius metres of a seed. Its output
   depends on input order, so points are sorted by incident id first; the
   same data gives the same clusters on every request.

TESTING
───────
  pytest tests/test_map.py -v
  curl "http://localhost:8000/api/v1/incidents/map?category=water&cell_size=0.002"
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from campus_incidents.core.config import settings
from campus_incidents.core.database import get_db
from campus_incidents.models.incident import Category, MapIncident, MapResponse, Status
from campus_incidents.services.clusterer import cluster_points
from campus_incidents.services.density_grid import incident_heatmap
from campus_incidents.services.geo import to_weighted_points
from campus_incidents.services.incident_store import MapFilters, MongoIncidentStore, as_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/incidents", tags=["map"])


@router.get("/map", response_model=MapResponse)
async def get_map(
    category:    Optional[Category] = Query(default=None),
    status:      Optional[Status] = Query(default=None),
    start_date:  Optional[datetime] = Query(default=None),
    end_date:    Optional[datetime] = Query(default=None),
    reported_by: Optional[str] = Query(default=None, description="Restrict to one reporter's incidents"),
    cell_size:   float = Query(default=settings.heatmap_cell_size_degrees, gt=0, le=1,
                               description="Heatmap cell size in degrees"),
    radius:      float = Query(default=settings.cluster_radius_meters, gt=0, le=50_000,
                               description="Cluster radius in metres"),
    db=Depends(get_db),
):
    """Return map markers with a density grid and proximity clusters."""
    start_date = as_utc(start_date) if start_date else None
    end_date = as_utc(end_date) if end_date else None
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=422, detail="start_date must not be after end_date")
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    filters = MapFilters(
        category=category,
        status=status,
        start_date=start_date,
        end_date=end_date,
        reported_by=reported_by,
        limit=settings.map_max_incidents,
    )
    incidents = await MongoIncidentStore(db).map_batch(filters)

    heatmap = incident_heatmap(incidents, cell_size)
    clusters = cluster_points(to_weighted_points(sorted(incidents, key=lambda i: i.id)), radius)
    logger.debug(
        "Map payload: %d incident(s), %d cell(s), %d cluster(s)",
        len(incidents), len(heatmap), len(clusters),
    )

    return MapResponse(
        incidents=[
            MapIncident(
                id=i.id,
                title=i.title,
                category=i.category,
                priority=i.priority,
                status=i.status,
                lat=i.coordinate.lat,
                lng=i.coordinate.lng,
                created_at=i.created_at,
            )
            for i in incidents
        ],
        total=len(incidents),
        heatmap=heatmap,
        clusters=clusters,
    )
