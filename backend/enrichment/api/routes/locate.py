"""On-demand address-based location of one activity."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from backend.enrichment.adapters.google import GoogleGeocoder
from backend.enrichment.api.routes.media import get_address_geocoder
from backend.enrichment.models.common import Coordinate
from backend.enrichment.models.itinerary import Activity
from backend.enrichment.pipeline.locate import locate_activity

router = APIRouter(tags=["locate"])


class ActivityLocateRequest(BaseModel):
    """Request body for POST /activity-locate."""

    destination: str = Field(..., min_length=1)
    anchor: Coordinate | None = None
    activity: Activity


@router.post("/activity-locate", response_model=None)
async def activity_locate(
    body: ActivityLocateRequest,
    geocoder: Annotated[GoogleGeocoder | None, Depends(get_address_geocoder)],
) -> dict[str, Any]:
    """Resolve coordinates for an activity from its address.

    Returns:
        200 with {"ok": true, "data": {lat, lng, address?, note?, maps_confidence, ...}}
        200 with {"ok": true, "data": {}} when nothing was found or no
        geocoder is configured
    """
    if geocoder is None and not body.activity.has_coordinates:
        return {"ok": True, "data": {}}

    resolution = await locate_activity(body.destination, body.activity, geocoder, body.anchor)
    return {"ok": True, "data": resolution.model_dump(exclude_none=True)}
