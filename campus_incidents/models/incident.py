"""
incident.py — Pydantic schemas for campus incidents and the geo engine.

Core value types (used by services/geo, duplicate_detector, density_grid,
clusterer):
  Coordinate        — lat/lng pair, range-validated
  IncidentSnapshot  — immutable view of a stored incident
  WeightedPoint     — coordinate + heat weight (derived from priority)
  GridCell          — one occupied heatmap bucket
  Cluster           — one proximity cluster
  DuplicateVerdict  — result of a duplicate check

API schemas (used by routes/incidents.py and routes/map.py):
  DuplicateCheckRequest, IncidentCreate, IncidentOut,
  IncidentListResponse, MapIncident, MapResponse
"""

from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints


# ── Enumerations ──────────────────────────────────────────────────────────────

Category = Literal["electricity", "water", "internet", "hostel", "garbage", "it", "equipment"]
Status = Literal["new", "in-progress", "resolved", "closed"]
Priority = Literal["low", "medium", "high", "critical"]

PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "critical")
OPEN_STATUSES: tuple[str, ...] = ("new", "in-progress")


# ── Core value types ──────────────────────────────────────────────────────────

class Coordinate(BaseModel):
    """A point on the globe in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class IncidentSnapshot(BaseModel):
    """Read-only incident record handed to the geo engine by the store."""

    model_config = ConfigDict(frozen=True)

    id: str
    category: Category
    status: Status
    title: str
    coordinate: Coordinate
    created_at: datetime
    priority: Priority = "medium"


class WeightedPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    weight: float = Field(default=1.0, ge=0)


class GridCell(BaseModel):
    """One occupied heatmap bucket; (row, col) is the floored bucket key."""

    lat: float      # cell center
    lng: float
    weight: float
    row: int
    col: int


class Cluster(BaseModel):
    centroid: Coordinate
    member_count: int = Field(..., ge=1)
    total_weight: float


class DuplicateCandidate(BaseModel):
    """A report that has not been stored yet."""

    category: Category
    coordinate: Coordinate
    title: Optional[str] = None


class NearbyMatch(BaseModel):
    id: str
    title: str
    distance_m: int   # rounded to whole meters


class DuplicateVerdict(BaseModel):
    is_duplicate: bool
    nearby_matches: list[NearbyMatch] = Field(default_factory=list)
    title_matches: list[str] = Field(default_factory=list)
    # Totals before nearby_matches is truncated
    nearby_count: int = 0
    similar_title_count: int = 0


# ── API schemas ───────────────────────────────────────────────────────────────

class DuplicateCheckRequest(BaseModel):
    """Payload for POST /api/v1/incidents/duplicate."""
    category: Category
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    title: Optional[str] = Field(default=None, max_length=200)


class IncidentLocation(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = Field(default=None, max_length=300)


class IncidentCreate(BaseModel):
    """Payload for POST /api/v1/incidents."""
    title: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
    category: Category
    description: str = Field(..., min_length=1, max_length=5000)
    # Unknown values fall back to "medium"
    priority: Optional[str] = None
    location: IncidentLocation
    reported_by: Optional[str] = None


class IncidentOut(BaseModel):
    """A stored incident."""
    id: str
    title: str
    category: Category
    description: str = ""
    priority: Priority = "medium"
    status: Status = "new"
    location: IncidentLocation
    reported_by: Optional[str] = None
    assigned_to: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None


class IncidentListResponse(BaseModel):
    incidents: list[IncidentOut]
    total: int
    limit: int
    skip: int
    has_more: bool


class MapIncident(BaseModel):
    """Slim incident shape for map markers."""
    id: str
    title: str
    category: Category
    priority: Priority
    status: Status
    lat: float
    lng: float
    created_at: datetime


class MapResponse(BaseModel):
    """Response body for GET /api/v1/incidents/map."""
    incidents: list[MapIncident]
    total: int
    heatmap: list[GridCell]
    clusters: list[Cluster]
