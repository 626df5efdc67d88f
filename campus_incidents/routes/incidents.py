"""
incidents.py — Incident reporting routes.

Routes:
  POST /api/v1/incidents/duplicate — check a draft report against open incidents
  POST /api/v1/incidents           — file a new report (409 if one is already open nearby)
  GET  /api/v1/incidents           — list incidents (paginated, filterable)
  GET  /api/v1/incidents/{id}      — get a single incident

Authentication is handled upstream. Scoping to a reporter is expressed by
the optional reported_by field / query parameter.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from campus_incidents.core.config import settings
from campus_incidents.core.database import INCIDENTS_COLLECTION, get_db
from campus_incidents.core.rate_limit import CREATE_INCIDENT_LIMIT, DUPLICATE_CHECK_LIMIT, limiter
from campus_incidents.models.incident import (
    PRIORITIES,
    Category,
    Coordinate,
    DuplicateCandidate,
    DuplicateCheckRequest,
    DuplicateVerdict,
    IncidentCreate,
    IncidentListResponse,
    IncidentOut,
    Status,
)
from campus_incidents.services.duplicate_detector import detect_duplicate
from campus_incidents.services.incident_store import IncidentQuery, MongoIncidentStore, doc_to_incident

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/incidents", tags=["incidents"])


# ── Helpers ───────────────────────────────────────────────────────────────────

def _validate_oid(incident_id: str) -> ObjectId:
    try:
        return ObjectId(incident_id)
    except InvalidId:
        raise HTTPException(status_code=422, detail="Invalid incident ID format")


def _require_db(db):
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return db


def _resolve_priority(priority: Optional[str]) -> str:
    value = (priority or "").strip().lower()
    return value if value in PRIORITIES else "medium"


# ── Routes ────────────────────────────────────────────────────────────────────

@router.post("/duplicate", response_model=DuplicateVerdict)
@limiter.limit(DUPLICATE_CHECK_LIMIT)
async def check_duplicate(request: Request, payload: DuplicateCheckRequest, db=Depends(get_db)):
    """
    Check whether a draft report repeats an open incident.

    Compares against open incidents of the same category reported in the
    last `duplicate_window_hours` hours: a match within 100 m or an
    overlapping title flags the draft.
    """
    store: IncidentQuery = MongoIncidentStore(_require_db(db))
    window = await store.recent_open_window(payload.category, hours=settings.duplicate_window_hours)

    candidate = DuplicateCandidate(
        category=payload.category,
        coordinate=Coordinate(lat=payload.latitude, lng=payload.longitude),
        title=payload.title,
    )
    verdict = detect_duplicate(candidate, window)
    if verdict.is_duplicate:
        logger.info(
            "Possible duplicate %s report: %d nearby, %d similar title(s)",
            payload.category, verdict.nearby_count, verdict.similar_title_count,
        )
    return verdict


@router.post("", response_model=IncidentOut, status_code=201)
@limiter.limit(CREATE_INCIDENT_LIMIT)
async def create_incident(request: Request, payload: IncidentCreate, db=Depends(get_db)):
    """
    File a new incident.

    Refuses (409) when an open incident of the same category was reported
    within 100 m in the duplicate window. Only proximity blocks creation;
    title overlap is advisory and surfaced by /duplicate.
    """
    db = _require_db(db)
    store: IncidentQuery = MongoIncidentStore(db)

    window = await store.recent_open_window(payload.category, hours=settings.duplicate_window_hours)
    candidate = DuplicateCandidate(
        category=payload.category,
        coordinate=Coordinate(lat=payload.location.latitude, lng=payload.location.longitude),
    )
    verdict = detect_duplicate(candidate, window)
    if verdict.is_duplicate:
        raise HTTPException(
            status_code=409,
            detail={
                "message": "A similar incident was already reported nearby. Please check existing incidents.",
                "is_duplicate": True,
                "nearby_matches": [m.model_dump() for m in verdict.nearby_matches],
            },
        )

    now = datetime.now(tz=timezone.utc)
    doc = {
        "title": payload.title,
        "category": payload.category,
        "description": payload.description,
        "priority": _resolve_priority(payload.priority),
        "status": "new",
        "location": payload.location.model_dump(),
        "reported_by": payload.reported_by,
        "assigned_to": None,
        "created_at": now,
        "updated_at": now,
        "resolved_at": None,
    }
    result = await db[INCIDENTS_COLLECTION].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Incident %s reported (%s, %s)", result.inserted_id, doc["category"], doc["priority"])

    return doc_to_incident(doc)


@router.get("", response_model=IncidentListResponse)
async def list_incidents(
    category:    Optional[Category] = Query(default=None),
    status:      Optional[Status] = Query(default=None),
    reported_by: Optional[str] = Query(default=None),
    limit:       int = Query(default=settings.list_default_limit, ge=1, le=500),
    skip:        int = Query(default=0, ge=0),
    db=Depends(get_db),
):
    """Return incidents newest first, optionally filtered."""
    if db is None:
        return IncidentListResponse(incidents=[], total=0, limit=limit, skip=skip, has_more=False)

    query: dict = {}
    if category:
        query["category"] = category
    if status:
        query["status"] = status
    if reported_by:
        query["reported_by"] = reported_by

    total = await db[INCIDENTS_COLLECTION].count_documents(query)
    cursor = db[INCIDENTS_COLLECTION].find(query).sort("created_at", -1).skip(skip).limit(limit)

    incidents = []
    async for doc in cursor:
        try:
            incidents.append(doc_to_incident(doc))
        except Exception as exc:
            logger.warning("Skipping malformed incident doc: %s", exc)

    return IncidentListResponse(
        incidents=incidents,
        total=total,
        limit=limit,
        skip=skip,
        has_more=skip + limit < total,
    )


@router.get("/{incident_id}", response_model=IncidentOut)
async def get_incident(incident_id: str, db=Depends(get_db)):
    """Retrieve a single incident by ID."""
    db = _require_db(db)

    oid = _validate_oid(incident_id)
    doc = await db[INCIDENTS_COLLECTION].find_one({"_id": oid})
    if not doc:
        raise HTTPException(status_code=404, detail="Incident not found")

    return doc_to_incident(doc)
