"""Address-based location of a single activity, on demand.

Tries progressively looser variants of the activity's address: Find Place
first (biased towards an optional anchor), then plain geocoding. Candidates
farther than ``MAX_ANCHOR_DISTANCE_METERS`` from the anchor are skipped.
Lookup failures only move on to the next variant; nothing is raised.
"""

import logging

from pydantic import BaseModel, Field

from backend.enrichment.adapters.google import GEOCODED_CONFIDENCE
from backend.enrichment.models.common import Coordinate
from backend.enrichment.models.itinerary import Activity
from backend.enrichment.models.places import Place
from backend.enrichment.ports import PlaceFinder
from backend.enrichment.utils.address import generate_address_candidates
from backend.enrichment.utils.geo import append_note, distance_meters, language_for

logger = logging.getLogger(__name__)

MAX_ANCHOR_DISTANCE_METERS = 150_000
ADDRESS_RESOLUTION_NOTE = "已根据详细地址自动定位，请核实。"


class LocateResolution(BaseModel):
    """Location fields for an activity; an empty resolution means not found."""

    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    address: str | None = None
    note: str | None = None
    maps_confidence: float | None = Field(default=None, ge=0, le=1)
    provider: str | None = None
    resolution: str | None = None
    place_id: str | None = None

    def is_empty(self) -> bool:
        return self.lat is None or self.lng is None


def location_bias(anchor: Coordinate | None) -> str | None:
    """Find Place ``locationbias`` parameter for an anchor point."""
    if anchor is None:
        return None
    return f"point:{anchor.lat},{anchor.lng}"


def too_far_from_anchor(coordinate: Coordinate, anchor: Coordinate | None) -> bool:
    return anchor is not None and distance_meters(anchor, coordinate) > MAX_ANCHOR_DISTANCE_METERS


async def _resolve_query(
    finder: PlaceFinder,
    query: str,
    language: str,
    anchor: Coordinate | None,
) -> Place | None:
    """One address variant: Find Place, completed or replaced by geocoding."""
    found = await finder.find_place(query, language=language, location_bias=location_bias(anchor))

    if found is not None and found.coordinate is not None:
        if too_far_from_anchor(found.coordinate, anchor):
            return None
        return found

    geocoded = await finder.geocode(query)
    if geocoded is None or geocoded.coordinate is None:
        return None
    if too_far_from_anchor(geocoded.coordinate, anchor):
        return None

    if found is None:
        return geocoded
    # Find Place knew the place but not where it is
    return geocoded.model_copy(
        update={
            "place_id": found.place_id or geocoded.place_id,
            "address": found.address or geocoded.address,
        }
    )


async def locate_activity(
    destination: str,
    activity: Activity,
    finder: PlaceFinder,
    anchor: Coordinate | None = None,
) -> LocateResolution:
    """Locate an activity from its address.

    Activities that already have coordinates are echoed back unchanged.
    """
    if activity.has_coordinates:
        return LocateResolution(
            lat=activity.lat,
            lng=activity.lng,
            address=activity.address,
            note=activity.note,
            maps_confidence=activity.maps_confidence,
        )

    address = (activity.address or "").strip()
    if not address:
        return LocateResolution()

    language = language_for(address)

    for query in generate_address_candidates(address):
        try:
            place = await _resolve_query(finder, query, language, anchor)
        except Exception as e:
            logger.warning(f"Address lookup failed for {query!r}: {type(e).__name__}: {e}")
            continue
        if place is None or place.coordinate is None:
            continue

        note = append_note(activity.note, ADDRESS_RESOLUTION_NOTE)
        return LocateResolution(
            lat=place.coordinate.lat,
            lng=place.coordinate.lng,
            address=place.address,
            note=note if note != activity.note else None,
            maps_confidence=min(max(activity.maps_confidence or 0.0, GEOCODED_CONFIDENCE), 1.0),
            provider=place.provider,
            resolution="address",
            place_id=place.place_id,
        )

    return LocateResolution()
