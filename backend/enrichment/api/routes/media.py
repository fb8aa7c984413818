"""On-demand fulfilment of an activity's pending media requests."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend.enrichment.adapters.factory import create_imagery_client
from backend.enrichment.adapters.google import GoogleGeocoder, GoogleImageryClient
from backend.enrichment.config import get_settings
from backend.enrichment.models.itinerary import Activity
from backend.enrichment.pipeline.media_fulfilment import resolve_media_requests

router = APIRouter(tags=["media"])


class ActivityMediaRequest(BaseModel):
    """Request body for POST /activity-media."""

    destination: str = Field(..., min_length=1)
    activity: Activity


def get_imagery_client() -> GoogleImageryClient | None:
    return create_imagery_client(get_settings())


def get_address_geocoder() -> GoogleGeocoder | None:
    """Geocoder for street-view address candidates (same credentials as imagery)."""
    settings = get_settings()
    if not settings.google_maps_api_key:
        return None
    return GoogleGeocoder(
        api_key=settings.google_maps_api_key,
        timeout_seconds=settings.http_timeout_seconds,
        proxy_url=settings.google_maps_proxy_url,
    )


@router.post("/activity-media", response_model=None)
async def activity_media(
    body: ActivityMediaRequest,
    imagery: Annotated[GoogleImageryClient | None, Depends(get_imagery_client)],
    geocoder: Annotated[GoogleGeocoder | None, Depends(get_address_geocoder)],
) -> dict[str, Any] | JSONResponse:
    """Resolve street view and name-based photos for one activity.

    Returns:
        200 with {"ok": true, "data": {photos?, note?, maps_confidence?}}
        503 if no imagery provider is configured
    """
    if body.activity.media_requests is None:
        return {"ok": True, "data": {}}

    if imagery is None:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "error": "Imagery provider not configured"},
        )

    resolution = await resolve_media_requests(body.destination, body.activity, imagery, geocoder)
    return {"ok": True, "data": resolution.model_dump(exclude_none=True)}
