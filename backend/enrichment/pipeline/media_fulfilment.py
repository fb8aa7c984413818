"""Media request fulfilment - resolve an activity's pending imagery lookups.

Produces a delta (new photos, changed note, lifted confidence) instead of a
modified activity; the caller merges it. Provider failures only shrink the
delta, they never raise.
"""

import logging

from pydantic import BaseModel, Field

from backend.enrichment.models.common import Coordinate
from backend.enrichment.models.itinerary import MAX_ACTIVITY_PHOTOS, Activity
from backend.enrichment.models.places import to_coordinate
from backend.enrichment.pipeline.media import MAX_NAME_BASED_PHOTOS
from backend.enrichment.ports import Geocoder, ImageryProvider
from backend.enrichment.utils.geo import append_note, is_coordinate_in_china

logger = logging.getLogger(__name__)

STREET_VIEW_ATTACHED_NOTE = "附加了 Google 街景图像，请确认实际情况。"
STREET_VIEW_UNAVAILABLE_NOTE = "未能获取 Google 街景（状态：{status}）"


class MediaResolution(BaseModel):
    """Changes to apply to an activity; unset fields mean no change."""

    photos: list[str] | None = None
    note: str | None = None
    maps_confidence: float | None = Field(default=None, ge=0, le=1)

    def is_empty(self) -> bool:
        return self.photos is None and self.note is None and self.maps_confidence is None


async def _resolve_street_view_coordinate(
    destination: str,
    lat: float | None,
    lng: float | None,
    address_candidates: list[str],
    geocoder: Geocoder | None,
) -> tuple[Coordinate | None, float | None]:
    """Given coordinates, else the first geocodable address candidate.

    Returns the coordinate and, when it came from geocoding, the match confidence.
    """
    coordinate = to_coordinate(lat, lng)
    if coordinate is not None or geocoder is None:
        return coordinate, None

    for candidate in address_candidates:
        try:
            place = await geocoder.geocode(candidate, destination)
        except Exception as e:
            logger.warning(f"Address candidate geocoding failed for {candidate!r}: {type(e).__name__}")
            continue
        if place is not None and place.coordinate is not None:
            return place.coordinate, place.confidence
    return None, None


async def resolve_media_requests(
    destination: str,
    activity: Activity,
    imagery: ImageryProvider,
    geocoder: Geocoder | None = None,
) -> MediaResolution:
    """Fulfil the activity's street-view and place-photo requests."""
    requests = activity.media_requests
    if requests is None or requests.is_empty():
        return MediaResolution()

    existing = list(activity.photos or [])
    seen = set(existing)
    new_photos: list[str] = []
    note = activity.note
    confidence = activity.maps_confidence

    def add_photo(url: str) -> None:
        if url in seen or len(existing) + len(new_photos) >= MAX_ACTIVITY_PHOTOS:
            return
        seen.add(url)
        new_photos.append(url)

    street = requests.street_view
    if street is not None:
        coordinate, geocoded_confidence = await _resolve_street_view_coordinate(
            destination, street.lat, street.lng, street.address_candidates, geocoder
        )

        if coordinate is not None and not is_coordinate_in_china(coordinate):
            try:
                result = await imagery.fetch_street_view(coordinate.lat, coordinate.lng)
            except Exception as e:
                logger.warning(f"Street View lookup failed for {activity.title!r}: {type(e).__name__}")
                result = None

            if result is not None:
                uplift = street.min_confidence
                if result.url:
                    add_photo(result.url)
                    note = append_note(note, STREET_VIEW_ATTACHED_NOTE)
                    if geocoded_confidence is not None:
                        uplift = max(uplift or 0.0, geocoded_confidence)
                else:
                    note = append_note(
                        note, STREET_VIEW_UNAVAILABLE_NOTE.format(status=result.status or "UNKNOWN")
                    )
                if uplift is not None:
                    confidence = max(confidence or 0.0, uplift)

    photos_request = requests.place_photos
    if photos_request is not None:
        max_results = min(photos_request.max_results or MAX_NAME_BASED_PHOTOS, MAX_NAME_BASED_PHOTOS)
        try:
            urls = await imagery.search_place_photos(
                photos_request.query,
                destination_hint=photos_request.destination or destination,
                language=photos_request.language or "en",
                max_results=max_results,
            )
        except Exception as e:
            logger.warning(
                f"Name-based photo lookup failed for {photos_request.query!r}: {type(e).__name__}"
            )
            urls = []
        for url in urls[:max_results]:
            add_photo(url)

    resolution = MediaResolution()
    if new_photos:
        resolution.photos = new_photos
    if note is not None and note != activity.note:
        resolution.note = note
    if confidence is not None and (
        activity.maps_confidence is None or abs(confidence - activity.maps_confidence) > 1e-6
    ):
        resolution.maps_confidence = min(max(confidence, 0.0), 1.0)
    return resolution
