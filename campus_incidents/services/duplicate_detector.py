"""
duplicate_detector.py — Decide whether a new report repeats an open incident.

Two independent signals:
  • spatial — an incident in the window lies closer than DUPLICATE_RADIUS_METERS
  • lexical — one title contains the other (case-insensitive)

Either one is enough to flag the candidate.

The window passed in must already be restricted to open incidents of the
same category created in the last 24 h. That query belongs to the store
(services/incident_store.py); this module only compares.

USAGE
─────
    verdict = detect_duplicate(candidate, await store.recent_open_window(...))
    if verdict.is_duplicate:
        ...
"""

from __future__ import annotations

from typing import Sequence

from campus_incidents.models.incident import (
    DuplicateCandidate,
    DuplicateVerdict,
    IncidentSnapshot,
    NearbyMatch,
)
from campus_incidents.services.geo import haversine_distance

DUPLICATE_RADIUS_METERS = 100.0
MAX_NEARBY_MATCHES = 3


def _normalise_title(title: str) -> str:
    return title.strip().casefold()


def titles_overlap(a: str, b: str) -> bool:
    """Symmetric containment test on case-folded titles. An empty title overlaps nothing."""
    a_norm, b_norm = _normalise_title(a), _normalise_title(b)
    if not a_norm or not b_norm:
        return False
    return a_norm in b_norm or b_norm in a_norm


def find_nearby(
    candidate: DuplicateCandidate,
    window: Sequence[IncidentSnapshot],
) -> list[tuple[float, IncidentSnapshot]]:
    """Return (distance, incident) for every spatial match, closest first."""
    nearby = []
    for incident in window:
        distance = haversine_distance(candidate.coordinate, incident.coordinate)
        if distance < DUPLICATE_RADIUS_METERS:
            nearby.append((distance, incident))
    # sort is stable, so equal distances keep window order
    nearby.sort(key=lambda pair: pair[0])
    return nearby


def find_title_matches(title: str, window: Sequence[IncidentSnapshot]) -> list[str]:
    return [incident.id for incident in window if titles_overlap(title, incident.title)]


def detect_duplicate(
    candidate: DuplicateCandidate,
    window: Sequence[IncidentSnapshot],
) -> DuplicateVerdict:
    """
    Compare a candidate report against a pre-filtered window of open incidents.

    nearby_matches holds at most MAX_NEARBY_MATCHES entries sorted by distance;
    title_matches lists every overlapping id. The title check is skipped when
    the candidate has no title.
    """
    nearby = find_nearby(candidate, window)

    title_ids: list[str] = []
    if candidate.title and candidate.title.strip():
        title_ids = find_title_matches(candidate.title, window)

    return DuplicateVerdict(
        is_duplicate=bool(nearby) or bool(title_ids),
        nearby_matches=[
            NearbyMatch(id=incident.id, title=incident.title, distance_m=round(distance))
            for distance, incident in nearby[:MAX_NEARBY_MATCHES]
        ],
        title_matches=title_ids,
        nearby_count=len(nearby),
        similar_title_count=len(title_ids),
    )
