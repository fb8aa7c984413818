"""Media request planning - decide which imagery lookups each activity deserves.

Requests are only descriptors; fulfilment happens later, on demand
(see ``backend.enrichment.pipeline.media_fulfilment``).
"""

from backend.enrichment.models.itinerary import (
    Activity,
    MediaRequests,
    PlacePhotosRequest,
    StreetViewRequest,
)
from backend.enrichment.models.places import to_coordinate
from backend.enrichment.utils.address import derive_address_candidates
from backend.enrichment.utils.geo import contains_han, is_coordinate_in_china, language_for

MEDIA_CONFIDENCE_THRESHOLD = 0.8
MAX_NAME_BASED_PHOTOS = 3


def plan_street_view(
    activity: Activity,
    *,
    is_international: bool,
    confidence_threshold: float = MEDIA_CONFIDENCE_THRESHOLD,
) -> StreetViewRequest | None:
    """Street-level imagery for confidently placed, foreign locations."""
    confidence = activity.maps_confidence
    if confidence is None or confidence < confidence_threshold:
        return None

    coordinate = to_coordinate(activity.lat, activity.lng)
    foreign_coordinate = coordinate is not None and not is_coordinate_in_china(coordinate)
    candidates = derive_address_candidates(activity.address, activity.note)

    if not foreign_coordinate and not (is_international and candidates):
        return None

    return StreetViewRequest(
        lat=coordinate.lat if coordinate else None,
        lng=coordinate.lng if coordinate else None,
        address_candidates=candidates,
        min_confidence=confidence,
    )


def plan_place_photos(
    destination: str,
    activity: Activity,
    *,
    is_international: bool,
    confidence_threshold: float = MEDIA_CONFIDENCE_THRESHOLD,
    max_name_based_photos: int = MAX_NAME_BASED_PHOTOS,
) -> PlacePhotosRequest | None:
    """Name-based photo search for unlocated activities named in a foreign script."""
    if activity.photos or activity.has_coordinates or activity.address:
        return None
    confidence = activity.maps_confidence
    if confidence is None or confidence < confidence_threshold:
        return None
    if not is_international and contains_han(activity.title):
        return None

    return PlacePhotosRequest(
        query=activity.title,
        destination=destination or None,
        language=language_for(activity.title),
        max_results=max_name_based_photos,
    )


def plan_media_requests(
    destination: str,
    activities: list[Activity],
    *,
    is_international: bool,
    imagery_available: bool,
    confidence_threshold: float = MEDIA_CONFIDENCE_THRESHOLD,
    max_name_based_photos: int = MAX_NAME_BASED_PHOTOS,
) -> list[Activity]:
    """Attach pending media requests, or strip them all without an imagery provider."""
    planned: list[Activity] = []

    for activity in activities:
        if not imagery_available:
            planned.append(
                activity.model_copy(update={"media_requests": None})
                if activity.media_requests is not None
                else activity
            )
            continue

        requests = MediaRequests(
            street_view=plan_street_view(
                activity,
                is_international=is_international,
                confidence_threshold=confidence_threshold,
            ),
            place_photos=plan_place_photos(
                destination,
                activity,
                is_international=is_international,
                confidence_threshold=confidence_threshold,
                max_name_based_photos=max_name_based_photos,
            ),
        )
        planned.append(
            activity.model_copy(
                update={"media_requests": None if requests.is_empty() else requests}
            )
        )

    return planned
