#!/usr/bin/env python3
"""
seed_incidents.py — Populate MongoDB with sample campus incidents.

Inserts:
  - Geo-tagged incidents around the main campus (for the map / heatmap demo)
  - Creates the indexes used by the duplicate window and map queries

Usage:
    python scripts/seed_incidents.py

Requires:
    pip install -e .
    MongoDB running locally (or set MONGO_URI / MONGO_DB_NAME env vars)

Safe to re-run: deletes seed data first, then re-inserts.
"""

import asyncio
from datetime import datetime, timedelta, timezone

from motor.motor_asyncio import AsyncIOMotorClient

from campus_incidents.core.config import settings
from campus_incidents.core.database import INCIDENTS_COLLECTION, ensure_indexes

SEED_REPORTER = "seed-script"

_HOSTEL_A = {"latitude": 28.5355, "longitude": 77.2707, "address": "Hostel A, Building 1"}
_HOSTEL_B = {"latitude": 28.5356, "longitude": 77.2708, "address": "Hostel B, Building 2"}
_MAIN_CAMPUS = {"latitude": 28.536, "longitude": 77.271, "address": "Main Campus Building"}
_LAB = {"latitude": 28.535, "longitude": 77.2705, "address": "Computer Lab"}
_LIBRARY = {"latitude": 28.5402, "longitude": 77.2751, "address": "Central Library"}


def _incident(title, category, priority, location, hours_ago, status="new", description=None):
    created = datetime.now(timezone.utc) - timedelta(hours=hours_ago)
    return {
        "title": title,
        "category": category,
        "description": description or f"{title} reported at {location['address']}.",
        "priority": priority,
        "status": status,
        "location": location,
        "reported_by": SEED_REPORTER,
        "assigned_to": None,
        "created_at": created,
        "updated_at": created,
        "resolved_at": created + timedelta(hours=2) if status == "resolved" else None,
    }


SAMPLE_INCIDENTS = [
    _incident("Broken Light Bulb", "electricity", "high", _HOSTEL_A, 1),
    _incident("Water Leakage", "water", "critical", _HOSTEL_B, 2),
    _incident("WiFi Down", "internet", "high", _HOSTEL_A, 3, status="in-progress"),
    _incident("Overflowing Garbage Bin", "garbage", "medium", _MAIN_CAMPUS, 5),
    _incident("Projector Not Working", "equipment", "medium", _LAB, 6),
    _incident("Lab PCs Not Booting", "it", "high", _LAB, 8, status="in-progress"),
    _incident("Broken Window Latch", "hostel", "low", _HOSTEL_B, 30),
    _incident("Power Outage", "electricity", "critical", _MAIN_CAMPUS, 48, status="resolved"),
    _incident("Water Cooler Leaking", "water", "medium", _LIBRARY, 10),
    _incident("Slow Internet", "internet", "low", _LIBRARY, 72, status="closed"),
]


async def seed() -> None:
    print("Connecting to MongoDB...")
    client = AsyncIOMotorClient(settings.mongo_uri)
    db = client[settings.mongo_db_name]

    try:
        await client.admin.command("ping")
        print("Connected.")

        # ─── Clean up previous seed data ──────────────────────────────────────
        deleted = await db[INCIDENTS_COLLECTION].delete_many({"reported_by": SEED_REPORTER})
        print(f"Removed {deleted.deleted_count} existing seed incidents.")

        # ─── Insert sample incidents ──────────────────────────────────────────
        result = await db[INCIDENTS_COLLECTION].insert_many(SAMPLE_INCIDENTS)
        print(f"Inserted {len(result.inserted_ids)} incidents.")

        # ─── Ensure indexes exist ─────────────────────────────────────────────
        await ensure_indexes(db)
        print("Indexes ensured.")

        print("\nSeed complete! Incidents per category:")
        pipeline = [{"$group": {"_id": "$category", "count": {"$sum": 1}}}]
        async for doc in db[INCIDENTS_COLLECTION].aggregate(pipeline):
            print(f"  {doc['_id']}: {doc['count']}")

    finally:
        client.close()


if __name__ == "__main__":
    asyncio.run(seed())
