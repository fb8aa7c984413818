"""Geocoding enrichment - fill missing coordinates and addresses per activity.

This stage never raises: a failed or empty lookup leaves the activity as-is.
It does not touch ``maps_confidence``; confidence is owned by refinement.
"""

import logging

from backend.enrichment.models.itinerary import Activity
from backend.enrichment.ports import Geocoder

logger = logging.getLogger(__name__)


def build_search_terms(
    destination: str | None,
    title: str | None,
    address: str | None = None,
    note: str | None = None,
) -> list[str]:
    """Query variants in priority order, deduplicated.

    title+address, destination+address, destination+title, title+note,
    address, title, note.
    """
    d = (destination or "").strip()
    t = (title or "").strip()
    a = (address or "").strip()
    n = (note or "").strip()

    ordered = [
        f"{t} {a}" if t and a else "",
        f"{d} {a}" if d and a else "",
        f"{d} {t}" if d and t else "",
        f"{t} {n}" if t and n else "",
        a,
        t,
        n,
    ]
    return list(dict.fromkeys(term for term in ordered if term))


def needs_geocoding(activity: Activity) -> bool:
    """Missing coordinates, or coordinates without an address."""
    return not activity.has_coordinates or not activity.address


async def enrich_activity(geocoder: Geocoder, destination: str, activity: Activity) -> Activity:
    """Geocode one activity; the first place with valid coordinates wins."""
    if not needs_geocoding(activity) or not activity.title.strip():
        return activity

    terms = build_search_terms(destination, activity.title, activity.address, activity.note)

    try:
        for term in terms:
            place = await geocoder.geocode(term, destination, reference_name=activity.title)
            if place is None or place.coordinate is None:
                continue

            update: dict[str, object] = {}
            if not activity.has_coordinates:
                update["lat"] = place.coordinate.lat
                update["lng"] = place.coordinate.lng
            if not activity.address and place.address:
                update["address"] = place.address
            return activity.model_copy(update=update)
    except Exception as e:
        logger.warning(f"Geocoding failed for {activity.title!r}: {type(e).__name__}: {e}")

    return activity


async def enrich_activities(
    geocoder: Geocoder, destination: str, activities: list[Activity]
) -> list[Activity]:
    """Enrich activities in order, one lookup chain at a time."""
    enriched: list[Activity] = []
    for activity in activities:
        enriched.append(await enrich_activity(geocoder, destination, activity))
    return enriched
