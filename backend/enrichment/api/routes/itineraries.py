"""Itinerary generation endpoint."""

import logging
from functools import lru_cache
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from backend.enrichment.errors import DraftGenerationError, DraftValidationError
from backend.enrichment.models.request import GenerationRequest
from backend.enrichment.pipeline.orchestrator import ItineraryPipeline, build_pipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/itineraries", tags=["itineraries"])


@lru_cache
def get_pipeline() -> ItineraryPipeline:
    """Process-wide pipeline; the classifier memo and cache client live on it."""
    return build_pipeline()


@router.post("", response_model=None)
async def create_itinerary(
    request: GenerationRequest,
    pipeline: Annotated[ItineraryPipeline, Depends(get_pipeline)],
) -> dict[str, Any] | JSONResponse:
    """Generate an enriched itinerary.

    Returns:
        200 with {"ok": true, "data": itinerary}
        422 if the generated draft is invalid
        502 if the draft generator failed
    """
    try:
        itinerary = await pipeline.generate(request)
    except DraftValidationError as e:
        logger.warning(f"Draft validation failed for {request.destination!r}: {e}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"ok": False, "error": str(e), "details": e.errors},
        )
    except DraftGenerationError as e:
        logger.warning(f"Draft generation failed for {request.destination!r}: {e}")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"ok": False, "error": str(e)},
        )

    return {"ok": True, "data": itinerary.model_dump(mode="json", exclude_none=True)}
