"""
incident_store.py — Storage queries that feed the geo engine.

The geo services never query MongoDB themselves. They are handed:
  • a duplicate window — open incidents of one category from the last N hours
  • a map batch       — incidents matching the map filters, already scoped to
                        what the caller may see

IncidentQuery is the contract; MongoIncidentStore implements it over the
Motor `incidents` collection.

Document shape in MongoDB:

  {
    "_id": ObjectId,
    "title": "Water Leakage",
    "category": "water",
    "description": "...",
    "priority": "critical",
    "status": "new",
    "location": { "latitude": 28.5356, "longitude": 77.2708, "address": "Hostel B" },
    "reported_by": "507f1f77bcf86cd799439011",
    "assigned_to": null,
    "created_at": ISODate(...),
    "updated_at": ISODate(...),
    "resolved_at": null
  }
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from motor.motor_asyncio import AsyncIOMotorDatabase

from campus_incidents.core.database import INCIDENTS_COLLECTION
from campus_incidents.models.incident import (
    OPEN_STATUSES,
    Coordinate,
    IncidentLocation,
    IncidentOut,
    IncidentSnapshot,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MapFilters:
    """Filters for the map batch. reported_by=None means no reporter scoping."""

    category: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    reported_by: Optional[str] = None
    limit: int = 2000


class IncidentQuery(Protocol):
    async def recent_open_window(
        self, category: str, now: datetime | None = None, hours: int = 24
    ) -> list[IncidentSnapshot]: ...

    async def map_batch(self, filters: MapFilters) -> list[IncidentSnapshot]: ...


# ── Document mapping ──────────────────────────────────────────────────────────

def as_utc(value: datetime) -> datetime:
    # Motor returns naive datetimes unless tz_aware=True
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def doc_to_snapshot(doc: dict) -> IncidentSnapshot:
    location = doc["location"]
    return IncidentSnapshot(
        id=str(doc["_id"]),
        category=doc["category"],
        status=doc.get("status", "new"),
        title=doc.get("title", ""),
        coordinate=Coordinate(lat=location["latitude"], lng=location["longitude"]),
        created_at=as_utc(doc["created_at"]),
        priority=doc.get("priority", "medium"),
    )


def doc_to_incident(doc: dict) -> IncidentOut:
    return IncidentOut(
        id=str(doc["_id"]),
        title=doc.get("title", ""),
        category=doc["category"],
        description=doc.get("description", ""),
        priority=doc.get("priority", "medium"),
        status=doc.get("status", "new"),
        location=IncidentLocation(**doc["location"]),
        reported_by=doc.get("reported_by"),
        assigned_to=doc.get("assigned_to"),
        created_at=as_utc(doc["created_at"]),
        updated_at=doc.get("updated_at"),
        resolved_at=doc.get("resolved_at"),
    )


def build_window_query(category: str, since: datetime) -> dict:
    return {
        "category": category,
        "status": {"$in": list(OPEN_STATUSES)},
        "created_at": {"$gte": since},
    }


def build_map_query(filters: MapFilters) -> dict:
    query: dict = {"location": {"$exists": True, "$ne": None}}
    if filters.category:
        query["category"] = filters.category
    if filters.status:
        query["status"] = filters.status
    if filters.start_date or filters.end_date:
        created: dict = {}
        if filters.start_date:
            created["$gte"] = filters.start_date
        if filters.end_date:
            created["$lte"] = filters.end_date
        query["created_at"] = created
    if filters.reported_by:
        query["reported_by"] = filters.reported_by
    return query


# ── Motor implementation ──────────────────────────────────────────────────────

class MongoIncidentStore:
    """IncidentQuery over the Motor `incidents` collection."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self._collection = db[INCIDENTS_COLLECTION]

    async def _snapshots(self, cursor) -> list[IncidentSnapshot]:
        snapshots = []
        async for doc in cursor:
            try:
                snapshots.append(doc_to_snapshot(doc))
            except Exception as exc:
                logger.warning("Skipping malformed incident doc %s: %s", doc.get("_id"), exc)
        return snapshots

    async def recent_open_window(
        self, category: str, now: datetime | None = None, hours: int = 24
    ) -> list[IncidentSnapshot]:
        now = now or datetime.now(tz=timezone.utc)
        query = build_window_query(category, now - timedelta(hours=hours))
        window = await self._snapshots(self._collection.find(query))
        logger.debug("Duplicate window for %s: %d incident(s)", category, len(window))
        return window

    async def map_batch(self, filters: MapFilters) -> list[IncidentSnapshot]:
        cursor = (
            self._collection.find(build_map_query(filters))
            .sort("created_at", -1)
            .limit(filters.limit)
        )
        return await self._snapshots(cursor)
