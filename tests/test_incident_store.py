"""
test_incident_store.py — Query building and document mapping for the
storage collaborator, run against the in-memory FakeDB.
"""

from datetime import datetime, timedelta, timezone

import pytest

from campus_incidents.services.incident_store import (
    MapFilters,
    MongoIncidentStore,
    build_map_query,
    build_window_query,
    doc_to_snapshot,
)


class TestQueries:

    def test_window_query_shape(self):
        since = datetime(2026, 10, 17, tzinfo=timezone.utc)
        assert build_window_query("water", since) == {
            "category": "water",
            "status": {"$in": ["new", "in-progress"]},
            "created_at": {"$gte": since},
        }

    def test_map_query_defaults_to_located_incidents(self):
        assert build_map_query(MapFilters()) == {"location": {"$exists": True, "$ne": None}}

    def test_map_query_with_all_filters(self):
        start = datetime(2026, 10, 1, tzinfo=timezone.utc)
        end = datetime(2026, 10, 18, tzinfo=timezone.utc)
        query = build_map_query(MapFilters(
            category="it", status="new", start_date=start, end_date=end, reported_by="u1",
        ))
        assert query["category"] == "it"
        assert query["status"] == "new"
        assert query["created_at"] == {"$gte": start, "$lte": end}
        assert query["reported_by"] == "u1"

    def test_map_query_open_ended_range(self):
        end = datetime(2026, 10, 18, tzinfo=timezone.utc)
        assert build_map_query(MapFilters(end_date=end))["created_at"] == {"$lte": end}


class TestDocMapping:

    def test_snapshot_from_doc(self, incidents, incident_doc):
        (oid,) = incidents.seed(incident_doc(title="Lab PCs", category="it", priority="high"))
        snap = doc_to_snapshot(incidents.docs[oid])

        assert snap.id == oid
        assert snap.category == "it"
        assert snap.priority == "high"
        assert snap.coordinate.lat == 28.5356

    def test_naive_datetimes_treated_as_utc(self, incident_doc):
        doc = {**incident_doc(), "_id": "abc", "created_at": datetime(2026, 10, 18, 9, 0)}
        assert doc_to_snapshot(doc).created_at.tzinfo is not None


class TestMongoIncidentStore:

    async def test_recent_open_window_filters(self, fake_db, incidents, incident_doc):
        now = datetime.now(tz=timezone.utc)
        keep = incidents.seed(
            incident_doc(title="new water", category="water", status="new", hours_ago=1),
            incident_doc(title="in progress water", category="water", status="in-progress", hours_ago=23),
        )
        incidents.seed(
            incident_doc(title="resolved", category="water", status="resolved", hours_ago=1),
            incident_doc(title="closed", category="water", status="closed", hours_ago=1),
            incident_doc(title="old", category="water", status="new", hours_ago=25),
            incident_doc(title="other category", category="electricity", status="new", hours_ago=1),
        )

        window = await MongoIncidentStore(fake_db).recent_open_window("water", now=now)
        assert sorted(s.id for s in window) == sorted(keep)

    async def test_window_hours_configurable(self, fake_db, incidents, incident_doc):
        incidents.seed(incident_doc(hours_ago=30))
        store = MongoIncidentStore(fake_db)

        assert await store.recent_open_window("water") == []
        assert len(await store.recent_open_window("water", hours=48)) == 1

    async def test_malformed_docs_are_skipped(self, fake_db, incidents, incident_doc):
        broken = incident_doc()
        broken["location"] = {"latitude": 999, "longitude": 0}
        incidents.seed(incident_doc(), broken)

        window = await MongoIncidentStore(fake_db).recent_open_window("water")
        assert len(window) == 1

    async def test_map_batch_scopes_to_reporter(self, fake_db, incidents, incident_doc):
        mine = incidents.seed(incident_doc(reported_by="me"), incident_doc(reported_by="me", status="closed"))
        incidents.seed(incident_doc(reported_by="someone-else"))

        batch = await MongoIncidentStore(fake_db).map_batch(MapFilters(reported_by="me"))
        assert sorted(s.id for s in batch) == sorted(mine)

    async def test_map_batch_newest_first_and_limited(self, fake_db, incidents, incident_doc):
        incidents.seed(*(incident_doc(title=f"#{h}", hours_ago=h) for h in (5, 1, 3, 2, 4)))

        batch = await MongoIncidentStore(fake_db).map_batch(MapFilters(limit=3))
        assert [s.title for s in batch] == ["#1", "#2", "#3"]

    async def test_map_batch_date_range(self, fake_db, incidents, incident_doc):
        incidents.seed(*(incident_doc(title=f"{d}d", hours_ago=24 * d) for d in (1, 3, 10)))
        now = datetime.now(tz=timezone.utc)

        batch = await MongoIncidentStore(fake_db).map_batch(
            MapFilters(start_date=now - timedelta(days=5), end_date=now - timedelta(days=2))
        )
        assert [s.title for s in batch] == ["3d"]


@pytest.mark.parametrize("status", ["new", "in-progress"])
async def test_open_statuses_are_in_window(fake_db, incidents, incident_doc, status):
    incidents.seed(incident_doc(status=status))
    assert len(await MongoIncidentStore(fake_db).recent_open_window("water")) == 1
