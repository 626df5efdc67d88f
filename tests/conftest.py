"""
pytest configuration and shared fixtures for the Campus Incidents API tests.

Tests must not require a live MongoDB. We achieve this by:
  1. Patching connect_to_mongo / close_mongo_connection to no-ops.
  2. Setting db_client.client = None (disconnected) so DB-backed routes
     answer 503 and the health check reports "disconnected".
  3. Providing an in-memory FakeDB that route tests inject through
     app.dependency_overrides[get_db].
"""

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")


# ── In-memory Motor stand-in ──────────────────────────────────────────────────

def _matches_condition(value, condition) -> bool:
    if isinstance(condition, dict) and any(k.startswith("$") for k in condition):
        for op, operand in condition.items():
            if op == "$in" and value not in operand:
                return False
            if op == "$gte" and (value is None or value < operand):
                return False
            if op == "$lte" and (value is None or value > operand):
                return False
            if op == "$ne" and value == operand:
                return False
            if op == "$exists" and (value is not None) != operand:
                return False
        return True
    return value == condition


def matches(doc: dict, query: dict) -> bool:
    return all(_matches_condition(doc.get(k), v) for k, v in query.items())


class FakeCursor:
    def __init__(self, docs):
        self._docs = list(docs)
        self._skip = 0
        self._limit = None

    def sort(self, key, direction=1):
        self._docs.sort(key=lambda d: d.get(key), reverse=direction == -1)
        return self

    def skip(self, n):
        self._skip = n
        return self

    def limit(self, n):
        self._limit = n
        return self

    async def __aiter__(self):
        end = None if self._limit is None else self._skip + self._limit
        for doc in self._docs[self._skip:end]:
            yield doc


class FakeCollection:
    def __init__(self):
        self.docs: dict[str, dict] = {}

    def seed(self, *docs) -> list[str]:
        ids = []
        for doc in docs:
            oid = doc.get("_id") or ObjectId()
            self.docs[str(oid)] = {**doc, "_id": oid}
            ids.append(str(oid))
        return ids

    def find(self, query=None):
        return FakeCursor(d for d in self.docs.values() if matches(d, query or {}))

    async def find_one(self, query):
        for doc in self.docs.values():
            if matches(doc, query):
                return doc
        return None

    async def insert_one(self, doc):
        oid = ObjectId()
        self.docs[str(oid)] = {**doc, "_id": oid}
        result = MagicMock()
        result.inserted_id = oid
        return result

    async def count_documents(self, query):
        return sum(1 for d in self.docs.values() if matches(d, query))

    async def create_index(self, keys, **_kwargs):
        return "_".join(f"{k}_{v}" for k, v in keys)


class FakeDB:
    def __init__(self):
        self._collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name) -> FakeCollection:
        return self._collections.setdefault(name, FakeCollection())


def make_incident_doc(
    title="Water Leakage",
    category="water",
    lat=28.5356,
    lng=77.2708,
    status="new",
    priority="medium",
    hours_ago=1.0,
    reported_by="507f1f77bcf86cd799439011",
):
    created = datetime.now(tz=timezone.utc) - timedelta(hours=hours_ago)
    return {
        "title": title,
        "category": category,
        "description": f"{title} near the hostel.",
        "priority": priority,
        "status": status,
        "location": {"latitude": lat, "longitude": lng, "address": None},
        "reported_by": reported_by,
        "assigned_to": None,
        "created_at": created,
        "updated_at": created,
        "resolved_at": None,
    }


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
async def mock_db():
    """
    Patch the MongoDB lifecycle for every test.

    - connect_to_mongo / close_mongo_connection → no-op AsyncMocks
    - db_client.client / db_client.db → None (disconnected)
    """
    with (
        patch("campus_incidents.core.database.connect_to_mongo", new_callable=AsyncMock),
        patch("campus_incidents.core.database.close_mongo_connection", new_callable=AsyncMock),
    ):
        import campus_incidents.core.database as db_module

        original_client = db_module.db_client.client
        original_db = db_module.db_client.db

        db_module.db_client.client = None
        db_module.db_client.db = None

        yield

        db_module.db_client.client = original_client
        db_module.db_client.db = original_db


@pytest.fixture(autouse=True)
def reset_rate_limits():
    from campus_incidents.core.rate_limit import limiter

    limiter.reset()
    yield


@pytest.fixture()
def fake_db():
    return FakeDB()


@pytest.fixture()
def incidents(fake_db) -> FakeCollection:
    """The `incidents` collection of fake_db, for seeding documents."""
    return fake_db["incidents"]


@pytest.fixture()
async def client(mock_db):  # noqa: ARG001 — mock_db must run first
    """HTTPX client against the app with MongoDB disconnected."""
    from campus_incidents.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def api_client(fake_db):
    """HTTPX client against the app with get_db overridden to fake_db."""
    from campus_incidents.core.database import get_db
    from campus_incidents.main import app

    app.dependency_overrides[get_db] = lambda: fake_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture()
def incident_doc():
    """Factory for incident documents in the stored MongoDB shape."""
    return make_incident_doc
